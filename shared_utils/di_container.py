"""
Dependency injection container for managing application dependencies.
Centralizes provider creation and lifecycle management.
"""

from typing import Optional
import logging

from memo_intelligence.providers import LLMProviderBase
from memo_intelligence.providers.factory import LLMProviderFactory
from shared_utils.config_loader import get_settings
from shared_utils.constants import LogScope
from shared_utils.error_handler import AppException


logger = logging.getLogger(__name__)


class DIContainer:
    """Singleton dependency injection container."""

    _instance: Optional['DIContainer'] = None
    _llm_provider: Optional[LLMProviderBase] = None
    _history_store: Optional[object] = None
    _chunker: Optional[object] = None
    _analysis_service: Optional[object] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def reset(self):
        """Reset container (useful for testing)."""
        self._llm_provider = None
        self._history_store = None
        self._chunker = None
        self._analysis_service = None

    def get_llm_provider(self) -> LLMProviderBase:
        """Get or create LLM provider (lazy singleton).

        Returns:
            Initialized LLM provider.

        Raises:
            ConfigurationError: If the API key is missing.
            RuntimeError: If provider initialization fails for any other reason.
        """
        if self._llm_provider is None:
            logger.info(
                "Initializing LLM provider",
                extra={"scope": LogScope.CONFIG}
            )
            try:
                self._llm_provider = LLMProviderFactory.create(get_settings())
            except AppException as e:
                logger.error(
                    "Failed to initialize LLM provider",
                    extra={"scope": LogScope.CONFIG, "error": e.message}
                )
                raise
            except Exception as e:
                logger.error(
                    "Failed to initialize LLM provider",
                    extra={"scope": LogScope.CONFIG, "error": str(e)}
                )
                raise RuntimeError(f"LLM provider initialization failed: {e}") from e

        return self._llm_provider

    def get_history_store(self):
        """Get or create the history store adapter (lazy singleton).

        Uses InMemoryHistoryStoreAdapter when HISTORY_WEBHOOK_URL is empty
        (local dev), and WebhookHistoryStoreAdapter otherwise.
        """
        if self._history_store is None:
            settings = get_settings()
            if not settings.history_webhook_url:
                from adapters.in_memory_history_store import InMemoryHistoryStoreAdapter
                self._history_store = InMemoryHistoryStoreAdapter()
                logger.info("Initialized InMemoryHistoryStoreAdapter (local dev)")
            else:
                from adapters.webhook_history_store import WebhookHistoryStoreAdapter
                self._history_store = WebhookHistoryStoreAdapter(
                    webhook_url=settings.history_webhook_url,
                    timeout=settings.request_timeout,
                )
                logger.info("Initialized WebhookHistoryStoreAdapter")
        return self._history_store

    def get_chunker(self):
        """Get or create AudioChunker (lazy singleton)."""
        if self._chunker is None:
            from memo_intelligence.audio.chunker import AudioChunker

            self._chunker = AudioChunker.from_settings(get_settings())
            logger.info("Initialized AudioChunker")
        return self._chunker

    def get_analysis_service(self):
        """Get or create AnalysisService (lazy singleton)."""
        if self._analysis_service is None:
            from services.analysis_service import AnalysisService
            from services.summarization_service import SummarizationService
            from services.transcription_service import TranscriptionService

            settings = get_settings()
            llm = self.get_llm_provider()
            self._analysis_service = AnalysisService(
                chunker=self.get_chunker(),
                transcription=TranscriptionService(llm),
                summarization=SummarizationService(
                    llm, text_chunk_chars=settings.text_chunk_chars
                ),
                history_store=self.get_history_store(),
                roster=settings.roster,
                customer_label=settings.customer_label,
            )
            logger.info("Initialized AnalysisService")
        return self._analysis_service


# Global singleton instance
_container = DIContainer()


def get_di_container() -> DIContainer:
    """Get global DI container instance."""
    return _container
