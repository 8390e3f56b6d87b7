"""
Gemini completion provider (generateContent REST API over httpx).
"""

import base64
from typing import Any, Dict, List, Optional

import httpx

from memo_intelligence.providers import LLMProviderBase
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ConfigurationError, ExternalServiceError, ModelError


class GeminiLLMProvider(LLMProviderBase):
    """Google Gemini provider.

    Each call is a single POST; there are no retries; a failed call surfaces
    immediately as ``ModelError`` carrying the upstream status and body.
    """

    def __init__(
        self,
        model_id: str,
        api_key: Optional[str],
        api_base: str = Defaults.GEMINI_API_BASE,
        max_output_tokens: int = Defaults.MAX_OUTPUT_TOKENS,
        timeout: float = Defaults.REQUEST_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ):
        super().__init__(name=f"GeminiLLM({model_id})")
        self.model_id = model_id
        self.api_key = api_key
        self.api_base = api_base.rstrip("/")
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout
        self._client = http_client

    def initialize(self) -> None:
        """Create the HTTP client. A missing API key is a configuration error."""
        if not self.api_key:
            raise ConfigurationError(
                "GEMINI_API_KEY not configured",
                context={"model_id": self.model_id},
            )
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        self.logger.info(
            "Initialized Gemini provider",
            extra={"scope": LogScope.CONFIG, "model_id": self.model_id}
        )

    def is_available(self) -> bool:
        """Check if the client has been initialized with a key."""
        return self._client is not None and bool(self.api_key)

    # ------------------------------------------------------------------
    # LLMProviderBase
    # ------------------------------------------------------------------

    def generate(
        self,
        prompt: str,
        context: Optional[str] = None,
        json_output: bool = False,
    ) -> str:
        """Generate text from a prompt, optionally in forced-JSON mode."""
        full_prompt = f"{context}\n\n{prompt}" if context else prompt
        return self._generate([{"text": full_prompt}], json_output=json_output)

    def generate_from_media(self, prompt: str, data: bytes, mime_type: str) -> str:
        """Send the prompt followed by one inline base64 part."""
        parts = [
            {"text": prompt},
            {
                "inline_data": {
                    "mime_type": mime_type,
                    "data": base64.b64encode(data).decode("ascii"),
                }
            },
        ]
        return self._generate(parts, json_output=False)

    def list_models(self) -> List[str]:
        """Model ids available to this key that support generateContent."""
        response = self._request("GET", f"{self.api_base}/models")
        if response.status_code // 100 != 2:
            raise ModelError(
                f"Listing models failed: HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
            )
        models = response.json().get("models", [])
        return [
            m.get("name", "").split("/", 1)[-1]
            for m in models
            if "generateContent" in m.get("supportedGenerationMethods", ["generateContent"])
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _generate(self, parts: List[Dict[str, Any]], json_output: bool) -> str:
        if not self.is_available():
            raise RuntimeError("Gemini provider not initialized")

        generation_config: Dict[str, Any] = {"maxOutputTokens": self.max_output_tokens}
        if json_output:
            generation_config["responseMimeType"] = "application/json"
        body = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": generation_config,
        }

        url = f"{self.api_base}/models/{self.model_id}:generateContent"
        response = self._request("POST", url, json=body)

        if response.status_code == 404:
            self._raise_model_not_found(response)
        if response.status_code // 100 != 2:
            self.logger.error(
                "Gemini generation failed",
                extra={
                    "scope": LogScope.PROVIDER,
                    "status_code": response.status_code,
                    "body": response.text[:500],
                }
            )
            raise ModelError(
                f"Gemini API error: HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                context={"model_id": self.model_id},
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ModelError(
                "Gemini response is not valid JSON",
                status_code=response.status_code,
                context={"model_id": self.model_id, "body": response.text[:200]},
            ) from exc
        return self._extract_text(payload)

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(
                method,
                url,
                headers={"x-goog-api-key": self.api_key},
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise ExternalServiceError("Gemini", str(exc), context={"url": url}) from exc

    def _raise_model_not_found(self, response: httpx.Response) -> None:
        try:
            available = self.list_models()
        except Exception as exc:
            self.logger.warning(
                "Could not list Gemini models",
                extra={"scope": LogScope.PROVIDER, "error": str(exc)}
            )
            available = []
        self.logger.error(
            "Gemini model not found",
            extra={
                "scope": LogScope.PROVIDER,
                "model_id": self.model_id,
                "available_models": available,
            }
        )
        raise ModelError(
            f"Model '{self.model_id}' not found (HTTP 404: {response.text}). "
            f"Available models: {', '.join(available) or 'unknown'}",
            status_code=404,
            context={"model_id": self.model_id, "available_models": available},
        )

    def _extract_text(self, payload: Dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            feedback = payload.get("promptFeedback", {})
            raise ModelError(
                "Gemini returned no candidates",
                context={"model_id": self.model_id, "prompt_feedback": feedback},
            )
        parts = candidates[0].get("content", {}).get("parts", [])
        return "".join(part.get("text", "") for part in parts)
