"""
Factory for creating configured provider instances.
Handles provider instantiation with dependency injection.
"""

from typing import Optional
import logging

import httpx

from memo_intelligence.providers import LLMProviderBase
from memo_intelligence.providers.gemini_llm import GeminiLLMProvider
from shared_utils.config_loader import Settings, get_settings
from shared_utils.constants import LLMProvider, LogScope


logger = logging.getLogger(__name__)


class LLMProviderFactory:
    """Factory for creating completion providers."""

    @staticmethod
    def create(
        settings: Optional[Settings] = None,
        provider_type: str = LLMProvider.GEMINI.value,
        http_client: Optional[httpx.Client] = None,
    ) -> LLMProviderBase:
        """Create configured completion provider.

        Args:
            settings: Explicit settings; falls back to the cached process settings.
            provider_type: Provider name (only ``gemini`` today).
            http_client: Optional pre-built client (tests, proxies).

        Returns:
            Initialized provider.

        Raises:
            ConfigurationError: If the API key is missing.
            ValueError: If the provider type is unknown.
        """
        settings = settings or get_settings()

        logger.info(
            "Creating LLM provider",
            extra={"scope": LogScope.CONFIG, "provider": provider_type}
        )

        try:
            if provider_type == LLMProvider.GEMINI.value:
                provider = GeminiLLMProvider(
                    model_id=settings.gemini_model,
                    api_key=settings.gemini_api_key,
                    api_base=settings.gemini_api_base,
                    max_output_tokens=settings.max_output_tokens,
                    timeout=settings.request_timeout,
                    http_client=http_client,
                )
                provider.initialize()
                return provider

            raise ValueError(f"Unknown LLM provider: {provider_type}")

        except Exception as e:
            logger.error(
                "Failed to create LLM provider",
                extra={"scope": LogScope.CONFIG, "provider": provider_type, "error": str(e)}
            )
            raise
