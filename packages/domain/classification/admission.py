"""
Admission checks for classification requests

Cheap heuristics that run before a job is created, so the classifier is
only called for specific, goods-related submissions.
"""
import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

logger = structlog.get_logger()

MIN_WORDS = 5
MIN_CHARACTERS = 25

BLOCKED_PHRASES = (
    "weather",
    "football",
    "soccer",
    "match",
    "scores",
    "news",
    "politic",
    "election",
    "president",
    "governor",
    "import duty",
    "customs duty",
    "tariff",
    "tax rate",
    "exchange rate",
    "visa",
    "passport",
)

# Questions rather than item descriptions
BLOCKED_INTENTS = (
    "tell me about",
    "what is",
    "who is",
    "how to",
    "explain",
)


class RejectionReason(str, Enum):
    """Why a submission was turned away"""
    MISSING_INPUT = "missing_input"
    NOT_GOODS = "not_goods"
    NEEDS_MORE_DETAIL = "needs_more_detail"
    INVALID_IMAGE = "invalid_image"
    IMAGE_TOO_SMALL = "image_too_small"


REJECTION_MESSAGES = {
    RejectionReason.MISSING_INPUT: "Provide a detailed description or image to begin.",
    RejectionReason.NOT_GOODS: (
        "This tool only supports HS code classification for goods. "
        "Please provide a specific item description."
    ),
    RejectionReason.NEEDS_MORE_DETAIL: (
        "Please provide a more specific description (material, use, size, brand, etc.)."
    ),
    RejectionReason.INVALID_IMAGE: "Image payload is not valid base64. Upload the image again.",
    RejectionReason.IMAGE_TOO_SMALL: "Image appears too small. Upload a clearer photo with more detail.",
}


@dataclass(frozen=True)
class AdmissionResult:
    """Outcome of the admission checks."""
    accepted: bool
    description: Optional[str] = None
    image_base64: Optional[str] = None
    reason: Optional[RejectionReason] = None

    @property
    def message(self) -> Optional[str]:
        return REJECTION_MESSAGES.get(self.reason) if self.reason else None


def is_description_specific(description: str) -> bool:
    """At least 5 words and 25 characters."""
    return len(description.split()) >= MIN_WORDS and len(description) >= MIN_CHARACTERS


def is_goods_related(description: str) -> bool:
    """False when the text reads like news, sports, politics, travel or a duty-rate question."""
    text = description.lower()
    return not any(phrase in text for phrase in BLOCKED_PHRASES + BLOCKED_INTENTS)


def normalize_image_base64(image_base64: Optional[str]) -> Optional[str]:
    """
    Strip a data URL prefix ("data:image/png;base64,...") and blank payloads.

    Line breaks and other whitespace (MIME-wrapped base64) are removed so the
    payload decodes strictly and reaches the classifier as one line.
    """
    if not image_base64 or not image_base64.strip():
        return None

    trimmed = image_base64.strip()
    if trimmed.lower().startswith("data:"):
        comma = trimmed.find(",")
        if -1 < comma < len(trimmed) - 1:
            trimmed = trimmed[comma + 1:]
    return "".join(trimmed.split())


def _decoded_size(image_base64: str) -> Optional[int]:
    try:
        return len(base64.b64decode(image_base64, validate=True))
    except (binascii.Error, ValueError):
        return None


def validate_submission(
    description: Optional[str],
    image_base64: Optional[str],
    min_image_bytes: int = 0,
) -> AdmissionResult:
    """
    Run all admission checks on a classification request.

    Args:
        description: Free-text item description
        image_base64: Base64 image payload, optionally as a data URL
        min_image_bytes: Smallest decoded image accepted

    Returns:
        AdmissionResult with the trimmed description and normalized image
    """
    trimmed = (description or "").strip() or None
    image = normalize_image_base64(image_base64)

    if trimmed is None and image is None:
        return _reject(RejectionReason.MISSING_INPUT)

    if trimmed is not None:
        if not is_goods_related(trimmed):
            return _reject(RejectionReason.NOT_GOODS)
        if not is_description_specific(trimmed):
            return _reject(RejectionReason.NEEDS_MORE_DETAIL)

    if image is not None:
        size = _decoded_size(image)
        if size is None:
            return _reject(RejectionReason.INVALID_IMAGE)
        if size < min_image_bytes:
            return _reject(RejectionReason.IMAGE_TOO_SMALL)

    return AdmissionResult(accepted=True, description=trimmed, image_base64=image)


def _reject(reason: RejectionReason) -> AdmissionResult:
    logger.info("classification_request_rejected", reason=reason.value)
    return AdmissionResult(accepted=False, reason=reason)
