"""
Reference Dataset Index - in-memory HS code reference table

Loads the authoritative HS code spreadsheet (first worksheet, first populated
row as headers) and answers two kinds of queries:

1. Code lookup: exact canonical match, then hierarchical prefix matching
   (6-digit global → 8-digit regional → 10-digit national)
2. Free-text search: token scoring over every column of every row

Loading is lazy and cheap: the file is only re-parsed when its modification
time changes (or when a reload is forced). A failed load never raises - the
index becomes empty and the failure message is returned to the caller.

Thread safety:
- One coarse lock serializes reload, lookup and search
- A reload swaps the whole row list, readers never see a partial index
"""
import csv
import threading
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import structlog
from openpyxl import load_workbook

from packages.common.metrics import REFERENCE_RELOADS
from packages.domain.classification.hs_codes import (
    KEY_COLUMN,
    digits_only,
    filter_columns,
    format_code,
    normalize_header,
    tokenize,
)
from packages.domain.classification.schemas import (
    ReferenceIndexStatus,
    ReferenceLoadResult,
    ReferenceSearchResult,
)

logger = structlog.get_logger()

DEFAULT_TOP_K = 5
MAX_TOP_K = 50

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
CSV_SUFFIXES = {".csv"}


class ReferenceLoadError(Exception):
    """Reference file is present but unusable (no sheet, no header, no key column)."""


@dataclass(frozen=True)
class ReferenceRow:
    """One row of the reference table, keyed by canonical HS code."""
    code: str
    columns: Mapping[str, str]
    search_text: str


def _cell_text(value: Any) -> str:
    """Render a cell the way it reads in the sheet (8471300000.0 → "8471300000")."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == time(0):
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


class ReferenceIndex:
    """
    HS code reference table with hierarchical lookup and ranked search.

    Usage:
        index = ReferenceIndex(Path("data/hs_codes.xlsx"))
        index.reload()
        index.lookup_by_code("8471 30")      # → {"HS Code": "8471.30", ...}
        index.search("laptop computer", 5)   # → ReferenceSearchResult
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._rows: List[ReferenceRow] = []
        self._loaded_mtime: Optional[float] = None
        self._loaded_at: Optional[datetime] = None
        self._last_message = "Not loaded"

    def reload(self) -> ReferenceLoadResult:
        """Force a re-parse of the reference file."""
        with self._lock:
            return self._load(force=True)

    def ensure_loaded(self) -> ReferenceLoadResult:
        """Parse the reference file unless the loaded copy is still current."""
        with self._lock:
            return self._load(force=False)

    def status(self) -> ReferenceIndexStatus:
        with self._lock:
            return ReferenceIndexStatus(
                loaded=bool(self._rows),
                row_count=len(self._rows),
                path=str(self.path),
                loaded_at=self._loaded_at,
            )

    def lookup_by_code(self, code: str) -> Optional[Dict[str, str]]:
        """
        Find the reference row for an HS code.

        Exact canonical match first, then the most specific row sharing at
        least the 6-digit prefix of the query.

        Args:
            code: HS code in any notation

        Returns:
            Filtered columns of the matching row, or None
        """
        with self._lock:
            if not self._load(force=False).loaded:
                return None

            row = self._find_best_by_code(code)
            if row is None:
                return None
            return filter_columns(row.columns)

    def search(self, query: str, top_k: int = DEFAULT_TOP_K) -> ReferenceSearchResult:
        """
        Rank reference rows against a free-text query.

        Scoring per row:
        - +100 canonical code equals the query formatted as a code
        - +20 canonical code starts with it (only when not an exact match)
        - +10 whole lowercase query appears in the row text
        - +2 per query token found in the row text

        Args:
            query: Free text or code
            top_k: Maximum rows (<= 0 → 5, capped at 50)

        Returns:
            ReferenceSearchResult ordered by score desc, code asc
        """
        with self._lock:
            load_result = self._load(force=False)
            if not load_result.loaded:
                return ReferenceSearchResult(total=0, rows=[], note=load_result.message)

            trimmed = (query or "").strip()
            if not trimmed:
                return ReferenceSearchResult(total=0, rows=[], note="Query is required.")

            limit = min(top_k if top_k > 0 else DEFAULT_TOP_K, MAX_TOP_K)
            lowered = trimmed.lower()
            tokens = tokenize(trimmed)
            formatted = format_code(trimmed)

            scored = []
            for row in self._rows:
                score = self._score(row, lowered, tokens, formatted)
                if score > 0:
                    scored.append((score, row))

            scored.sort(key=lambda item: (-item[0], item[1].code))
            rows = [filter_columns(row.columns) for _, row in scored[:limit]]

            return ReferenceSearchResult(total=len(rows), rows=rows)

    def find_best_by_description(self, text: Optional[str]) -> Optional[Dict[str, str]]:
        """Top search hit for a description, or None."""
        trimmed = (text or "").strip()
        if not trimmed:
            return None

        result = self.search(trimmed, 1)
        if result.total <= 0 or not result.rows:
            return None
        return result.rows[0]

    # ------------------------------------------------------------------
    # Loading (caller holds the lock)
    # ------------------------------------------------------------------

    def _load(self, force: bool) -> ReferenceLoadResult:
        path = self.path
        try:
            if not path.is_file():
                self._reset(None)
                return self._fail(
                    f"Reference file not found at '{path}'. Place your file there and retry.",
                    attempted=force,
                )

            mtime = path.stat().st_mtime
            if not force and self._rows and self._loaded_mtime == mtime:
                return ReferenceLoadResult(loaded=True, message="Loaded", row_count=len(self._rows))

            try:
                rows = self._parse(path)
            except ReferenceLoadError as e:
                self._reset(mtime)
                return self._fail(str(e))

            if not rows:
                self._reset(mtime)
                return self._fail("Reference file has no rows with an HS code.")

            self._rows = rows
            self._loaded_mtime = mtime
            self._loaded_at = datetime.now(timezone.utc)
            self._last_message = "Loaded"
            REFERENCE_RELOADS.labels(outcome="loaded").inc()

            logger.info("reference_loaded",
                        path=str(path),
                        row_count=len(rows),
                        forced=force)

            return ReferenceLoadResult(loaded=True, message="Loaded", row_count=len(rows))

        except Exception as e:
            logger.error("reference_load_failed",
                         path=str(path),
                         error=str(e),
                         exc_info=True)
            self._reset(None)
            return self._fail(f"Failed to read reference file: {e}")

    def _reset(self, mtime: Optional[float]) -> None:
        self._rows = []
        self._loaded_mtime = mtime
        self._loaded_at = None

    def _fail(self, message: str, attempted: bool = True) -> ReferenceLoadResult:
        """Record a failed load; only parse attempts and forced reloads are counted."""
        if message != self._last_message:
            logger.warning("reference_not_loaded",
                           path=str(self.path),
                           message=message)
        self._last_message = message
        if attempted:
            REFERENCE_RELOADS.labels(outcome="failed").inc()
        return ReferenceLoadResult(loaded=False, message=message, row_count=0)

    def _parse(self, path: Path) -> List[ReferenceRow]:
        suffix = path.suffix.lower()
        if suffix in EXCEL_SUFFIXES:
            return self._build_rows(self._read_workbook(path))
        if suffix in CSV_SUFFIXES:
            with path.open("r", encoding="utf-8-sig", newline="") as fp:
                return self._build_rows(list(csv.reader(fp)))
        raise ReferenceLoadError(
            f"Unsupported reference file type '{suffix}'. Use .xlsx or .csv."
        )

    @staticmethod
    def _read_workbook(path: Path) -> List[Sequence[Any]]:
        workbook = load_workbook(path, read_only=True, data_only=True)
        try:
            if not workbook.worksheets:
                raise ReferenceLoadError("Workbook has no worksheets.")
            worksheet = workbook.worksheets[0]
            return [tuple(row) for row in worksheet.iter_rows(values_only=True)]
        finally:
            workbook.close()

    @staticmethod
    def _build_rows(raw_rows: Iterable[Sequence[Any]]) -> List[ReferenceRow]:
        populated = [
            [_cell_text(cell) for cell in raw]
            for raw in raw_rows
            if any(_cell_text(cell) for cell in raw)
        ]
        if not populated:
            raise ReferenceLoadError("Worksheet is empty.")

        headers: List[Tuple[int, str]] = [
            (position, header)
            for position, header in enumerate(populated[0])
            if header
        ]
        if not headers:
            raise ReferenceLoadError("Header row is empty.")

        key_header = next(
            (header for _, header in headers if normalize_header(header) == KEY_COLUMN),
            None,
        )
        if key_header is None:
            raise ReferenceLoadError("Missing required 'HS Code' column.")

        rows = []
        for values in populated[1:]:
            columns: Dict[str, str] = {}
            seen_keys: Dict[str, str] = {}
            for position, header in headers:
                raw = values[position] if position < len(values) else ""
                if normalize_header(header) == KEY_COLUMN:
                    raw = format_code(raw) or ""
                # Header keys are case-insensitive, a later duplicate wins
                key = seen_keys.setdefault(header.lower(), header)
                columns[key] = raw

            code = columns.get(key_header, "")
            if not code:
                continue

            search_text = " ".join(columns.values()).lower()
            rows.append(ReferenceRow(code=code, columns=columns, search_text=search_text))

        return rows

    # ------------------------------------------------------------------
    # Matching (caller holds the lock)
    # ------------------------------------------------------------------

    def _find_best_by_code(self, code: str) -> Optional[ReferenceRow]:
        formatted = format_code(code)
        if formatted:
            for row in self._rows:
                if row.code == formatted:
                    return row

        digits = digits_only(code)
        if len(digits) < 6:
            return None

        global6 = digits[:6]
        regional8 = digits[:8] if len(digits) >= 8 else None
        national10 = digits[:10] if len(digits) >= 10 else None

        candidates = []
        for row in self._rows:
            row_digits = digits_only(row.code)
            if row_digits.startswith(global6):
                score = self._score_prefix(row_digits, global6, regional8, national10)
                candidates.append((score, row))

        if not candidates:
            return None

        candidates.sort(key=lambda item: (-item[0], item[1].code))
        return candidates[0][1]

    @staticmethod
    def _score_prefix(
        candidate_digits: str,
        global6: str,
        regional8: Optional[str],
        national10: Optional[str],
    ) -> int:
        score = 0
        if candidate_digits.startswith(global6):
            score += 10
        if regional8 and candidate_digits.startswith(regional8):
            score += 20
        if national10 and candidate_digits.startswith(national10):
            score += 40
        # Heading-level rows ("xxxx.xx.00.00") only get the bonus at full length
        if len(candidate_digits) >= 10 and candidate_digits[6:10] == "0000":
            score += 5
        return score

    @staticmethod
    def _score(row: ReferenceRow, lowered_query: str, tokens: List[str], formatted: Optional[str]) -> int:
        score = 0
        if formatted:
            if row.code == formatted:
                score += 100
            elif row.code.startswith(formatted):
                score += 20

        if lowered_query in row.search_text:
            score += 10

        for token in tokens:
            if token in row.search_text:
                score += 2

        return score
