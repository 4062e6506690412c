"""
Ollama classifier provider

Calls a local Ollama server (`POST /api/chat`) with the HS code response
schema as the `format` constraint. Uses the vision model when an image is
attached and the (faster) text model otherwise.
"""
from typing import Any, Dict, Optional

import httpx
import structlog

from packages.domain.classification.classifier.base import (
    RESPONSE_SCHEMA,
    SYSTEM_PROMPT,
    ClassifierError,
    ClassifierTimeoutError,
    build_user_prompt,
)
from packages.domain.classification.classifier.parsing import (
    EMPTY_NOTE,
    parse_model_reply,
    parse_structured,
)
from packages.domain.classification.schemas import ClassifierResponse

logger = structlog.get_logger()


class OllamaClassifier:
    """HS code classification through an Ollama chat model."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.2-vision",
        text_model: str = "llama3:8b",
        timeout_seconds: float = 300,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Ollama classifier.

        Args:
            base_url: Ollama server URL
            model: Vision model used when an image is attached
            text_model: Model used for description-only requests
            timeout_seconds: HTTP timeout for one chat call
            http_client: Pre-built client (tests inject a MockTransport here)
        """
        self.model = model
        self.text_model = text_model
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
        )

    def build_payload(self, description: Optional[str], image_base64: Optional[str]) -> Dict[str, Any]:
        user_message: Dict[str, Any] = {
            "role": "user",
            "content": build_user_prompt(description),
        }
        if image_base64:
            user_message["images"] = [image_base64]

        return {
            "model": self.model if image_base64 else self.text_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                user_message,
            ],
            "stream": False,
            "format": RESPONSE_SCHEMA,
            "options": {
                "temperature": 0.2,
                "top_p": 0.9,
                "num_predict": 200,
            },
        }

    async def classify(
        self,
        description: Optional[str],
        image_base64: Optional[str] = None,
    ) -> ClassifierResponse:
        payload = self.build_payload(description, image_base64)

        logger.info("ollama_classify_started",
                    model=payload["model"],
                    has_image=bool(image_base64))

        try:
            response = await self._client.post("/api/chat", json=payload)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ClassifierTimeoutError(f"Ollama request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ClassifierError(f"Ollama request failed: {e}") from e

        try:
            body = response.json()
            content = body["message"]["content"]
        except (ValueError, KeyError, TypeError):
            logger.warning("ollama_reply_malformed",
                           status_code=response.status_code)
            return ClassifierResponse(matches=[], note=EMPTY_NOTE)

        if isinstance(content, (dict, list)):
            return parse_structured(content)
        if not isinstance(content, str):
            return ClassifierResponse(matches=[], note=EMPTY_NOTE)

        return parse_model_reply(content)

    async def aclose(self) -> None:
        await self._client.aclose()
