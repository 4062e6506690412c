"""
Anthropic classifier provider

Uses the Claude Messages API. There is no schema-constrained output mode
here, so the JSON schema is spelled out in the prompt and the reply goes
through the fallback decoder.
"""
import json
from typing import Any, Dict, List, Optional

import anthropic
import structlog

from packages.domain.classification.classifier.base import (
    RESPONSE_SCHEMA,
    SYSTEM_PROMPT,
    ClassifierError,
    ClassifierTimeoutError,
    build_user_prompt,
)
from packages.domain.classification.classifier.parsing import EMPTY_NOTE, parse_model_reply
from packages.domain.classification.schemas import ClassifierResponse

logger = structlog.get_logger()


def sniff_media_type(image_base64: str) -> str:
    """
    Guess the image media type from the first base64 characters.

    PNG starts "iVBOR", GIF "R0lG", WebP "UklG"; JPEG ("/9j/") is the default.
    """
    if image_base64.startswith("iVBOR"):
        return "image/png"
    if image_base64.startswith("R0lG"):
        return "image/gif"
    if image_base64.startswith("UklG"):
        return "image/webp"
    return "image/jpeg"


class AnthropicClassifier:
    """HS code classification through Claude."""

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-5",
        timeout_seconds: float = 300,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        """
        Initialize Anthropic classifier.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            model: Claude model name
            timeout_seconds: Request timeout
            client: Pre-built client
        """
        if client is None and not api_key:
            logger.warning("anthropic_api_key_missing",
                           message="ANTHROPIC_API_KEY not set, classification requests will fail")

        self.model = model
        self.client = client or anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )

    def build_content(self, description: Optional[str], image_base64: Optional[str]) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = []
        if image_base64:
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": sniff_media_type(image_base64),
                    "data": image_base64,
                },
            })
        content.append({
            "type": "text",
            "text": (
                build_user_prompt(description)
                + "\n\nRESPONSE FORMAT (return ONLY JSON matching this schema, no other text):\n"
                + json.dumps(RESPONSE_SCHEMA)
            ),
        })
        return content

    async def classify(
        self,
        description: Optional[str],
        image_base64: Optional[str] = None,
    ) -> ClassifierResponse:
        logger.info("anthropic_classify_started",
                    model=self.model,
                    has_image=bool(image_base64))

        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=1024,
                temperature=0.2,
                system=SYSTEM_PROMPT,
                messages=[
                    {
                        "role": "user",
                        "content": self.build_content(description, image_base64),
                    }
                ],
            )
        except anthropic.APITimeoutError as e:
            raise ClassifierTimeoutError(f"Anthropic request timed out: {e}") from e
        except anthropic.APIError as e:
            raise ClassifierError(f"Anthropic request failed: {e}") from e

        logger.info("anthropic_classify_complete",
                    model=self.model,
                    input_tokens=response.usage.input_tokens,
                    output_tokens=response.usage.output_tokens)

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        if not text:
            return ClassifierResponse(matches=[], note=EMPTY_NOTE)

        return parse_model_reply(text)

    async def aclose(self) -> None:
        await self.client.close()
