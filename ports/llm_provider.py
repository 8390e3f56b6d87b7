"""
Port interface for the generative completion endpoint.

memo_intelligence/providers/ holds the concrete implementation.
This port formalises the contract so services depend on the interface, not the impl.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProviderPort(Protocol):
    """Abstract interface for text and audio completions."""

    def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        json_output: bool = False,
    ) -> str:
        """Generate text from a prompt.

        Args:
            prompt: Instruction prompt.
            context: Optional context to prepend.
            json_output: Ask the endpoint to return JSON only.

        Returns:
            Raw completion text.

        Raises:
            ModelError: On a non-2xx response.
        """
        ...

    def generate_from_media(self, prompt: str, data: bytes, mime_type: str) -> str:
        """Generate text from a prompt plus one inline binary part.

        Args:
            prompt: Instruction prompt.
            data: Raw media bytes (sent base64-encoded).
            mime_type: MIME type of *data*, e.g. ``audio/mpeg``.

        Returns:
            Raw completion text.

        Raises:
            ModelError: On a non-2xx response.
        """
        ...
