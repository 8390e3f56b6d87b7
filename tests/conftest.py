"""
Root conftest.py - shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • Test module basenames are unique across the tree.
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Markers: integration.
"""

import json
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from domain.models import AnalysisResult, AudioChunk, TaskItem
from shared_utils.constants import SummaryLabels


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: mark test as integration test")


# ---------------------------------------------------------------------------
# Minimal required settings kwargs for Settings(**BASE_SETTINGS_KWARGS)
# ---------------------------------------------------------------------------

BASE_SETTINGS_KWARGS: Dict[str, str] = {
    "gemini_api_key": "test-key",
    "environment": "development",
}


@pytest.fixture()
def base_settings_kwargs() -> Dict[str, str]:
    """Provide the minimal kwargs needed to instantiate ``Settings``."""
    return {**BASE_SETTINGS_KWARGS}


# ---------------------------------------------------------------------------
# Fake completion provider
# ---------------------------------------------------------------------------

class FakeLLMProvider:
    """Scriptable LLMProviderPort.

    ``media_responses`` answer ``generate_from_media`` in order; ``responder``
    computes the answer to ``generate`` from the prompt. Every call is
    recorded for assertions.
    """

    def __init__(
        self,
        media_responses: Optional[List[object]] = None,
        responder: Optional[Callable[[str, bool], str]] = None,
    ) -> None:
        self.media_responses = list(media_responses or [])
        self.responder = responder or (lambda prompt, json_output: "{}")
        self.media_calls: List[Tuple[str, bytes, str]] = []
        self.text_calls: List[Tuple[str, bool]] = []

    def generate(self, prompt: str, context: Optional[str] = None, json_output: bool = False) -> str:
        self.text_calls.append((prompt, json_output))
        return self.responder(prompt, json_output)

    def generate_from_media(self, prompt: str, data: bytes, mime_type: str) -> str:
        self.media_calls.append((prompt, data, mime_type))
        response = self.media_responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def fake_llm() -> FakeLLMProvider:
    return FakeLLMProvider()


def make_chunk(index: int, total_chunks: int = 2, window: float = 600.0) -> AudioChunk:
    """AudioChunk covering ``[index * window, (index + 1) * window)``."""
    payload = f"chunk-{index}".encode()
    return AudioChunk(
        index=index,
        data=payload,
        size_bytes=len(payload),
        start_seconds=index * window,
        duration_seconds=window,
        is_final=index == total_chunks - 1,
        total_duration_seconds=total_chunks * window,
    )


# ---------------------------------------------------------------------------
# Canned completion payloads
# ---------------------------------------------------------------------------

SYNTHESIS_SUMMARY: List[str] = [
    "[Organization] Acme Trading",
    "[Contact] Mr. Sato",
    "[Date/Time] whatever the model says",
    "[Duration] 3 min",
    "[File] model.mp3",
    "[Products] Model X printer",
    "[Purpose] Toner reorder",
    "[Background] Stock running low",
    "[Actions Taken] Quoted the price",
    "[Next Steps] Send the invoice",
]


def extraction_json(facts: List[str], score: Optional[float] = 0.7) -> str:
    return json.dumps({
        "facts": facts,
        "tasks": [{"task": "Send quote", "assignee": "Kaneko", "deadline": "Friday"}],
        "sentimentScore": score,
    })


def synthesis_json(**overrides) -> str:
    body = {
        "summary": SYNTHESIS_SUMMARY,
        "sentiment": "Positive",
        "sentimentScore": 0.8,
        "actionItems": [{"task": "Send the invoice", "assignee": "Kaneko", "deadline": "Monday"}],
    }
    body.update(overrides)
    return json.dumps(body)


def scripted_responder(extractions: List[str], synthesis: str) -> Callable[[str, bool], str]:
    """Answer extraction prompts in order, then the synthesis prompt."""
    queue = list(extractions)

    def respond(prompt: str, json_output: bool) -> str:
        if prompt.startswith("You are analysing part"):
            return queue.pop(0)
        return synthesis

    return respond


@pytest.fixture()
def sample_result() -> AnalysisResult:
    return AnalysisResult(
        summary=[f"{label} value {i}" for i, label in enumerate(SummaryLabels.ORDER)],
        action_items=[TaskItem(task="Send quote", assignee="Kaneko", deadline="Friday")],
        sentiment="Positive",
        sentiment_score=0.75,
        transcript="Kaneko: Hello\nCustomer: Hi",
        filename="20240115_1030.mp3",
    )
