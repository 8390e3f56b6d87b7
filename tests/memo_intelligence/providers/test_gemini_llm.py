"""
Tests for memo_intelligence.providers.gemini_llm and the provider factory.

HTTP traffic is served by httpx.MockTransport; no network access.
"""

import base64
import json
from typing import List

import httpx
import pytest

from memo_intelligence.providers.factory import LLMProviderFactory
from memo_intelligence.providers.gemini_llm import GeminiLLMProvider
from shared_utils.config_loader import Settings
from shared_utils.error_handler import ConfigurationError, ExternalServiceError, ModelError


BASE = "https://gemini.test/v1beta"


def _completion(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _provider(handler, requests: List[httpx.Request] = None) -> GeminiLLMProvider:
    def recording(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    provider = GeminiLLMProvider(
        model_id="gemini-1.5-flash",
        api_key="secret",
        api_base=BASE + "/",
        http_client=httpx.Client(transport=httpx.MockTransport(recording)),
    )
    provider.initialize()
    return provider


class TestInitialize:
    def test_missing_key(self) -> None:
        provider = GeminiLLMProvider(model_id="m", api_key="")
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            provider.initialize()
        assert not provider.is_available()

    def test_generate_before_initialize(self) -> None:
        provider = GeminiLLMProvider(model_id="m", api_key="k")
        with pytest.raises(RuntimeError, match="not initialized"):
            provider.generate("hi")


class TestGenerate:
    def test_request_shape(self) -> None:
        requests: List[httpx.Request] = []
        provider = _provider(lambda r: httpx.Response(200, json=_completion("hello")), requests)

        assert provider.generate("Say hello") == "hello"

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE}/models/gemini-1.5-flash:generateContent"
        assert request.headers["x-goog-api-key"] == "secret"
        body = json.loads(request.content)
        assert body["contents"] == [{"role": "user", "parts": [{"text": "Say hello"}]}]
        assert body["generationConfig"] == {"maxOutputTokens": 8192}

    def test_json_mode(self) -> None:
        requests: List[httpx.Request] = []
        provider = _provider(lambda r: httpx.Response(200, json=_completion("{}")), requests)

        provider.generate("Extract", json_output=True)

        config = json.loads(requests[0].content)["generationConfig"]
        assert config["responseMimeType"] == "application/json"

    def test_context_prepended(self) -> None:
        requests: List[httpx.Request] = []
        provider = _provider(lambda r: httpx.Response(200, json=_completion("ok")), requests)

        provider.generate("question", context="background")

        text = json.loads(requests[0].content)["contents"][0]["parts"][0]["text"]
        assert text == "background\n\nquestion"

    def test_parts_joined(self) -> None:
        payload = {"candidates": [{"content": {"parts": [{"text": "a"}, {"text": "b"}]}}]}
        provider = _provider(lambda r: httpx.Response(200, json=payload))
        assert provider.generate("x") == "ab"

    def test_media_inline_data(self) -> None:
        requests: List[httpx.Request] = []
        provider = _provider(lambda r: httpx.Response(200, json=_completion("Kaneko: hi")), requests)

        assert provider.generate_from_media("Transcribe", b"\x00\x01mp3", "audio/mpeg") == "Kaneko: hi"

        parts = json.loads(requests[0].content)["contents"][0]["parts"]
        assert parts[0] == {"text": "Transcribe"}
        assert parts[1]["inline_data"]["mime_type"] == "audio/mpeg"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"\x00\x01mp3"
        assert "responseMimeType" not in json.loads(requests[0].content)["generationConfig"]


class TestErrors:
    def test_non_2xx_carries_status_and_body(self) -> None:
        provider = _provider(lambda r: httpx.Response(429, text="quota exceeded"))
        with pytest.raises(ModelError) as excinfo:
            provider.generate("x")
        assert excinfo.value.status_code == 429
        assert "HTTP 429" in excinfo.value.message
        assert "quota exceeded" in excinfo.value.message

    def test_404_lists_models(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"models": [
                    {"name": "models/gemini-2.0-flash", "supportedGenerationMethods": ["generateContent"]},
                    {"name": "models/text-embedding-004", "supportedGenerationMethods": ["embedContent"]},
                    {"name": "models/gemini-1.5-pro"},
                ]})
            return httpx.Response(404, text="model not found")

        provider = _provider(handler)
        with pytest.raises(ModelError) as excinfo:
            provider.generate("x")

        assert excinfo.value.status_code == 404
        assert excinfo.value.context["available_models"] == ["gemini-2.0-flash", "gemini-1.5-pro"]
        assert "gemini-2.0-flash" in excinfo.value.message

    def test_404_when_listing_fails(self) -> None:
        provider = _provider(lambda r: httpx.Response(404 if r.method == "POST" else 500, text="no"))
        with pytest.raises(ModelError) as excinfo:
            provider.generate("x")
        assert excinfo.value.context["available_models"] == []
        assert "unknown" in excinfo.value.message

    def test_no_candidates(self) -> None:
        provider = _provider(lambda r: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))
        with pytest.raises(ModelError, match="no candidates") as excinfo:
            provider.generate("x")
        assert excinfo.value.context["prompt_feedback"] == {"blockReason": "SAFETY"}

    def test_2xx_body_not_json(self) -> None:
        provider = _provider(lambda r: httpx.Response(200, text="<html>gateway login</html>"))
        with pytest.raises(ModelError, match="not valid JSON") as excinfo:
            provider.generate("x")
        assert excinfo.value.status_code == 200
        assert excinfo.value.context["body"] == "<html>gateway login</html>"
        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        provider = _provider(handler)
        with pytest.raises(ExternalServiceError, match="Gemini unavailable"):
            provider.generate("x")

    def test_no_retry(self) -> None:
        requests: List[httpx.Request] = []
        provider = _provider(lambda r: httpx.Response(500, text="boom"), requests)
        with pytest.raises(ModelError):
            provider.generate("x")
        assert len(requests) == 1


class TestFactory:
    def test_creates_gemini(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        settings = Settings(gemini_api_key="k", gemini_model="gemini-2.0-flash")
        provider = LLMProviderFactory.create(settings, http_client=client)
        assert isinstance(provider, GeminiLLMProvider)
        assert provider.model_id == "gemini-2.0-flash"
        assert provider.is_available()

    def test_missing_key(self) -> None:
        with pytest.raises(ConfigurationError):
            LLMProviderFactory.create(Settings(gemini_api_key=""))

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            LLMProviderFactory.create(Settings(gemini_api_key="k"), provider_type="other")
