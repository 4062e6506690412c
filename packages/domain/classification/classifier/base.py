"""
External Classifier Base Interface

Defines the contract for HS code classifiers (Ollama, Anthropic, ...).
The worker only depends on this protocol, so providers can be swapped via
configuration without changing calling code.
"""
from typing import Optional, Protocol

from packages.domain.classification.schemas import ClassifierResponse

SYSTEM_PROMPT = (
    "You are an HS Code assistant for customs inspection. "
    "Given a passenger baggage item description and optional image, return up to 5 likely HS codes. "
    "Respond strictly in JSON per the provided schema. "
    "If information is insufficient, return an empty matches array and include a short note asking for specifics."
)

RESPONSE_SCHEMA = {
    "type": "object",
    "properties": {
        "matches": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "hsCode": {"type": "string"},
                    "description": {"type": "string"},
                    "matchPercent": {"type": "number"},
                    "comment": {"type": "string"},
                    "subsections": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "hsCode": {"type": "string"},
                                "title": {"type": "string"},
                                "notes": {"type": "string"},
                            },
                            "required": ["hsCode", "title", "notes"],
                        },
                    },
                },
                "required": ["hsCode", "description", "matchPercent", "comment", "subsections"],
            },
        },
        "note": {"type": "string"},
    },
    "required": ["matches"],
}


def build_user_prompt(description: Optional[str]) -> str:
    """User turn shared by all providers."""
    item = description.strip() if description and description.strip() else "N/A"
    return (
        "Item description:\n"
        f"{item}"
        "\n\nReturn best HS code matches with clear, concise descriptions."
    )


class ClassifierError(Exception):
    """The classifier could not be reached or answered with an error status."""


class ClassifierTimeoutError(ClassifierError):
    """The classifier did not answer in time."""


class Classifier(Protocol):
    """
    Protocol for HS code classifiers.

    Implementations must never raise on a malformed model reply - that is
    an empty ClassifierResponse with a note. Transport failures raise
    ClassifierError (ClassifierTimeoutError for timeouts).
    """

    name: str

    async def classify(
        self,
        description: Optional[str],
        image_base64: Optional[str] = None,
    ) -> ClassifierResponse:
        """
        Suggest HS codes for an item.

        Args:
            description: Item description (may be None when only an image is sent)
            image_base64: Raw base64 image payload (no data URL prefix)

        Returns:
            ClassifierResponse with up to 5 candidate matches

        Raises:
            ClassifierTimeoutError: If the provider timed out
            ClassifierError: If the provider call failed
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
