"""
Classifier Provider Factory

Creates the external classifier selected by CLASSIFIER_PROVIDER.
"""
import structlog

from packages.common.config import Settings
from packages.domain.classification.classifier.base import Classifier

logger = structlog.get_logger()


def create_classifier(settings: Settings) -> Classifier:
    """
    Build the configured classifier.

    Providers:
    - ollama: local Ollama server (default)
    - anthropic: Claude Messages API

    Args:
        settings: Application settings

    Returns:
        Classifier instance
    """
    if settings.classifier_provider == "anthropic":
        # Lazy import to avoid the SDK import cost when Ollama is used
        from packages.domain.classification.classifier.provider_anthropic import AnthropicClassifier

        classifier = AnthropicClassifier(
            api_key=settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout_seconds=settings.classifier_timeout_seconds,
        )
    else:
        from packages.domain.classification.classifier.provider_ollama import OllamaClassifier

        classifier = OllamaClassifier(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            text_model=settings.ollama_text_model,
            timeout_seconds=settings.classifier_timeout_seconds,
        )

    logger.info("classifier_created",
                provider=classifier.name,
                timeout_seconds=settings.classifier_timeout_seconds)

    return classifier
