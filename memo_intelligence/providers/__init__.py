"""
Abstract base classes for swappable providers.
Enables dependency injection and flexible component swapping.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging


class BaseProvider(ABC):
    """Base class for all providers."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @abstractmethod
    def initialize(self) -> None:
        """Initialize provider. Called after instantiation."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Check if provider is available and credentials are present."""
        pass


class LLMProviderBase(BaseProvider):
    """Abstract base for completion providers."""

    @abstractmethod
    def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        json_output: bool = False,
    ) -> str:
        """Generate a text completion."""
        pass

    @abstractmethod
    def generate_from_media(self, prompt: str, data: bytes, mime_type: str) -> str:
        """Generate a completion for a prompt plus inline media."""
        pass
