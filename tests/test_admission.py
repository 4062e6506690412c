import base64

import pytest

from packages.domain.classification.admission import (
    RejectionReason,
    is_description_specific,
    is_goods_related,
    normalize_image_base64,
    validate_submission,
)

COOKER = "2kg stainless steel pressure cooker with glass lid"


def _image(size: int) -> str:
    return base64.b64encode(b"\xff" * size).decode("ascii")


def test_specific_description():
    assert is_description_specific(COOKER)
    assert is_goods_related(COOKER)


@pytest.mark.parametrize("text", ["red", "blue cotton shirt", "a b c d e"])
def test_underspecified_descriptions(text):
    assert not is_description_specific(text)


@pytest.mark.parametrize(
    "text",
    [
        "What is the weather like in Nairobi today",
        "Latest football scores from the weekend games",
        "Customs duty on imported second hand cars please",
        "How to renew my PASSPORT before travelling abroad",
        "Tell me about the election results in the county",
    ],
)
def test_off_topic_descriptions(text):
    assert not is_goods_related(text)


def test_missing_input():
    result = validate_submission("   ", None)

    assert not result.accepted
    assert result.reason == RejectionReason.MISSING_INPUT
    assert result.message


def test_not_goods_checked_before_specificity():
    result = validate_submission("weather", None)

    assert result.reason == RejectionReason.NOT_GOODS


def test_needs_more_detail():
    result = validate_submission("red", None)

    assert result.reason == RejectionReason.NEEDS_MORE_DETAIL
    assert "more specific" in result.message


def test_accepted_description_is_trimmed():
    result = validate_submission(f"  {COOKER}  ", None)

    assert result.accepted
    assert result.description == COOKER
    assert result.image_base64 is None
    assert result.message is None


def test_image_only_submission():
    payload = _image(2048)

    result = validate_submission(None, f"data:image/jpeg;base64,{payload}", min_image_bytes=1024)

    assert result.accepted
    assert result.description is None
    assert result.image_base64 == payload


def test_image_too_small():
    result = validate_submission(None, _image(100), min_image_bytes=1024)

    assert result.reason == RejectionReason.IMAGE_TOO_SMALL


def test_invalid_image():
    result = validate_submission(COOKER, "not base64 at all!")

    assert result.reason == RejectionReason.INVALID_IMAGE


def test_normalize_image_base64():
    assert normalize_image_base64(None) is None
    assert normalize_image_base64("  ") is None
    assert normalize_image_base64("data:image/png;base64,AAAA") == "AAAA"
    assert normalize_image_base64(" AAAA ") == "AAAA"
    # Data URL without payload is passed through unchanged
    assert normalize_image_base64("data:image/png;base64,") == "data:image/png;base64,"


def test_line_wrapped_image_is_accepted():
    wrapped = base64.encodebytes(b"\xff" * 2000).decode("ascii")
    assert "\n" in wrapped

    result = validate_submission(COOKER, wrapped, min_image_bytes=1024)

    assert result.accepted
    assert result.image_base64 == base64.b64encode(b"\xff" * 2000).decode("ascii")


def test_wrapped_data_url_is_flattened():
    payload = base64.encodebytes(b"\x89PNG" * 100).decode("ascii")

    normalized = normalize_image_base64(f"data:image/png;base64,{payload}")

    assert normalized == base64.b64encode(b"\x89PNG" * 100).decode("ascii")
