"""
Data schemas for the HS code classification module
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys, accepting either spelling on input"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class JobStatus(str, Enum):
    """Classification job status"""
    PENDING = "pending"
    COMPLETED = "completed"     # terminal
    FAILED = "failed"           # terminal

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class SubCode(CamelModel):
    """Sub-heading entry returned by the classifier under a candidate match"""
    code: str = Field(
        default="",
        validation_alias=AliasChoices("hsCode", "code", "hs_code"),
    )
    title: str = ""
    notes: str = ""

    @field_validator("code", "title", "notes", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()


class Match(CamelModel):
    """
    Candidate HS code for an item.

    Produced by the external classifier, then reconciled against the
    reference dataset. `validated` is only true once a reference row was
    found for the candidate.
    """
    code: str = Field(
        default="",
        validation_alias=AliasChoices("hsCode", "code", "hs_code"),
        description="HS code, canonical dotted form once enriched",
    )
    description: str = ""
    confidence: float = Field(
        default=0.0,
        validation_alias=AliasChoices("matchPercent", "confidence", "match_percent"),
        description="Match confidence 0-100",
    )
    comment: str = ""
    subsections: List[SubCode] = Field(default_factory=list)
    reference_columns: Optional[Dict[str, str]] = None
    validated: bool = False

    @field_validator("code", "description", "comment", mode="before")
    @classmethod
    def coerce_text(cls, v):
        if v is None:
            return ""
        return str(v).strip()

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if value != value:  # NaN
            return 0.0
        return max(0.0, min(100.0, value))

    @field_validator("subsections", mode="before")
    @classmethod
    def coerce_subsections(cls, v):
        return v or []


class ClassifierResponse(CamelModel):
    """Structured reply of the external classifier"""
    matches: List[Match] = Field(default_factory=list)
    note: Optional[str] = None

    @field_validator("matches", mode="before")
    @classmethod
    def coerce_matches(cls, v):
        return v or []


class RecentEntry(CamelModel):
    """Recently classified item"""
    code: str
    description: str = ""


class ClassificationResult(CamelModel):
    """Payload stored on a completed job"""
    matches: List[Match] = Field(default_factory=list)
    note: Optional[str] = None
    recent: List[RecentEntry] = Field(default_factory=list)


class ReferenceLoadResult(CamelModel):
    """Outcome of a reference dataset (re)load"""
    loaded: bool
    message: str
    row_count: int = 0


class ReferenceSearchResult(CamelModel):
    """Ranked reference rows for a free-text query"""
    total: int = 0
    rows: List[Dict[str, str]] = Field(default_factory=list)
    note: Optional[str] = None


class ReferenceIndexStatus(CamelModel):
    """Snapshot of the reference index for health reporting"""
    loaded: bool
    row_count: int
    path: str
    loaded_at: Optional[datetime] = None
