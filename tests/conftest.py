import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

import pytest
from openpyxl import Workbook

from packages.domain.classification.reference_index import ReferenceIndex
from packages.domain.classification.schemas import ClassifierResponse, Match

HEADERS = ["HS Code", "Description", "Duty Rate", "VAT"]

SAMPLE_ROWS = [
    ["7323.93", "Table, kitchen or other household articles of stainless steel", "20%", "16%"],
    ["7323.93.00.00", "Stainless steel pressure cookers and pots", "20%", "0"],
    ["8471.30", "Portable automatic data processing machines (laptops)", "0%", "16%"],
    ["8471300000", "Laptop computers weighing not more than 10 kg", "0", "16%"],
    ["0901.21", "Coffee, roasted, not decaffeinated", "25%", "16%"],
]


def write_workbook(path: Path, headers: Sequence, rows: Sequence[Sequence]) -> Path:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(headers))
    for row in rows:
        sheet.append(list(row))
    workbook.save(path)
    return path


@pytest.fixture()
def reference_file(tmp_path) -> Path:
    return write_workbook(tmp_path / "hs_codes.xlsx", HEADERS, SAMPLE_ROWS)


@pytest.fixture()
def reference_index(reference_file) -> ReferenceIndex:
    index = ReferenceIndex(reference_file)
    assert index.reload().loaded
    return index


class FakeClassifier:
    """Classifier double returning a canned response (or raising, or stalling)."""

    name = "fake"

    def __init__(
        self,
        matches: Optional[List[Match]] = None,
        note: Optional[str] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.matches = matches or []
        self.note = note
        self.error = error
        self.delay = delay
        self.calls = []
        self.closed = False

    async def classify(self, description, image_base64=None):
        self.calls.append((description, image_base64))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ClassifierResponse(matches=self.matches, note=self.note)

    async def aclose(self):
        self.closed = True
