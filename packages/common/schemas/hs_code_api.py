"""
HS code API schemas (Pydantic models)
Request and response bodies of the /classify and /reference endpoints
"""
from typing import Dict, List, Optional

from pydantic import Field

from packages.domain.classification.schemas import (
    CamelModel,
    ClassificationResult,
    JobStatus,
)


class ClassifyRequest(CamelModel):
    """Item submitted for classification"""
    description: Optional[str] = Field(None, description="Detailed item description")
    image_base64: Optional[str] = Field(None, description="Base64 image, optionally as a data URL")
    request_id: Optional[str] = Field(None, description="Caller correlation id, echoed on every status")

    model_config = {
        "json_schema_extra": {
            "example": {
                "description": "2kg stainless steel pressure cooker with glass lid",
                "requestId": "inspection-2041-item-3",
            }
        }
    }


class ClassifyAccepted(CamelModel):
    """Job accepted for processing"""
    job_id: str
    request_id: Optional[str] = None
    status: str = "accepted"


class ClassifyRejected(CamelModel):
    """Submission turned away before a job was created"""
    status: str
    reason: str
    message: str
    request_id: Optional[str] = None


class ClassifyStatus(CamelModel):
    """Poll response for a classification job"""
    job_id: str
    request_id: Optional[str] = None
    status: JobStatus
    result: Optional[ClassificationResult] = None
    error: Optional[str] = None


class ReferenceSearchRequest(CamelModel):
    """Free-text search over the reference table"""
    query: Optional[str] = None
    top_k: int = Field(5, description="Maximum rows (<= 0 means 5, capped at 50)")


class ReferenceRowResponse(CamelModel):
    """Filtered columns of one reference row"""
    columns: Dict[str, str]


class ReferenceReloadResponse(CamelModel):
    """Result of a forced reference reload"""
    status: str
    message: str
    rows: int


class ReferenceSearchResponse(CamelModel):
    """Ranked reference rows"""
    total: int
    rows: List[Dict[str, str]]
    note: Optional[str] = None
