"""
Model reply decoding

Models are asked for strict JSON but do not always comply. Decoding tries,
in order:

1. The reply as-is
2. The reply without Markdown code fences
3. The outermost {...} object embedded in surrounding prose

and settles for an empty response with a note. It never raises.
"""
from typing import Any, Optional

import structlog
from pydantic import ValidationError

from packages.domain.classification.schemas import ClassifierResponse

logger = structlog.get_logger()

UNPARSEABLE_NOTE = "Unable to parse model response. Please refine the item description."
EMPTY_NOTE = "No response from model."


def strip_code_fences(content: str) -> str:
    """Remove a ```json ... ``` wrapper."""
    if not content.startswith("```"):
        return content

    first_newline = content.find("\n")
    if first_newline < 0:
        return content

    stripped = content[first_newline + 1:]
    last_fence = stripped.rfind("```")
    if last_fence >= 0:
        stripped = stripped[:last_fence]
    return stripped.strip()


def extract_json_object(content: str) -> Optional[str]:
    """Outermost brace-delimited span, or None."""
    start = content.find("{")
    end = content.rfind("}")
    if start < 0 or end <= start:
        return None
    return content[start:end + 1]


def _try_decode(raw: Optional[str]) -> Optional[ClassifierResponse]:
    if not raw or not raw.strip():
        return None
    try:
        return ClassifierResponse.model_validate_json(raw)
    except ValidationError:
        return None


def parse_structured(content: Any) -> ClassifierResponse:
    """Decode a reply that already arrived as a JSON object."""
    try:
        return ClassifierResponse.model_validate(content)
    except ValidationError as e:
        logger.warning("classifier_reply_invalid",
                       error_count=e.error_count())
        return ClassifierResponse(matches=[], note=UNPARSEABLE_NOTE)


def parse_model_reply(content: Optional[str]) -> ClassifierResponse:
    """
    Decode a text reply from a model.

    Args:
        content: Raw reply text

    Returns:
        Parsed response, or an empty response with an explanatory note
    """
    if content is None or not content.strip():
        return ClassifierResponse(matches=[], note=EMPTY_NOTE)

    content = strip_code_fences(content.strip())

    parsed = _try_decode(content) or _try_decode(extract_json_object(content))
    if parsed is not None:
        return parsed

    logger.warning("classifier_reply_unparseable",
                   preview=content[:200])
    return ClassifierResponse(matches=[], note=UNPARSEABLE_NOTE)
