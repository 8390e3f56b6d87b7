"""
Tests for services.analysis_service.

The end-to-end case runs a real 20-minute WAV (written at a low sample rate)
through the real chunker with a fake encoder and a scripted provider.
"""

import os
from datetime import datetime
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import soundfile as sf

from adapters.in_memory_history_store import InMemoryHistoryStoreAdapter
from conftest import (
    FakeLLMProvider,
    extraction_json,
    make_chunk,
    scripted_responder,
    synthesis_json,
)
from domain.models import HistoryRecord, SaveResult
from memo_intelligence.audio.chunker import AudioChunker
from services.analysis_service import AnalysisService, AnalysisStage, analyze
from services.summarization_service import SummarizationService
from services.transcription_service import TranscriptionService
from shared_utils.config_loader import Settings
from shared_utils.constants import SummaryLabels
from shared_utils.error_handler import (
    AnalysisError,
    AudioDecodeError,
    ExternalServiceError,
    ModelError,
    TranscriptionError,
    ValidationError,
)


RATE = 100


def _write_wav(path, seconds: float) -> str:
    t = np.arange(int(seconds * RATE)) / RATE
    sf.write(str(path), (0.3 * np.sin(2 * np.pi * 3 * t)).astype(np.float32), RATE, subtype="PCM_16")
    return str(path)


def _fake_encoder(samples, rate, **kwargs):
    return samples.astype("<i2").tobytes()


def _service(llm, chunker=None, history=None, roster=None) -> AnalysisService:
    return AnalysisService(
        chunker=chunker or AudioChunker(target_sample_rate=RATE, encoder=_fake_encoder),
        transcription=TranscriptionService(llm),
        summarization=SummarizationService(llm),
        history_store=history,
        roster=roster or ["Kaneko"],
    )


def _llm(media=None, synthesis=None) -> FakeLLMProvider:
    return FakeLLMProvider(
        media_responses=media or ["Kaneko: Thanks for calling", "Unknown Person: I need toner"],
        responder=scripted_responder([extraction_json(["fact"])], synthesis or synthesis_json()),
    )


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestEndToEnd:
    def test_twenty_minute_recording(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "202401151030.wav", 1200)
        llm = _llm()

        result = _service(llm).analyze(path)

        assert len(llm.media_calls) == 2
        assert result.transcript == "Kaneko: Thanks for calling\nUnknown Person: I need toner"
        synthesis_calls = [p for p, _ in llm.text_calls if not p.startswith("You are analysing part")]
        assert len(synthesis_calls) == 1
        assert len(result.summary) == 10
        assert [line.split("]")[0] + "]" for line in result.summary] == list(SummaryLabels.ORDER)
        assert result.field(SummaryLabels.DATETIME) == "2024/01/15 10:30-10:50"
        assert result.field(SummaryLabels.DURATION) == "20 min"
        assert result.field(SummaryLabels.FILE) == "202401151030.wav"
        assert result.filename == "202401151030.wav"

    def test_display_name_overrides_path(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "upload.wav", 60)
        result = _service(_llm(media=["Kaneko: hi"])).analyze(path, filename="20240301_0900.wav")
        assert result.field(SummaryLabels.DATETIME) == "2024/03/01 09:00-09:01"

    def test_mtime_used_without_filename_date(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "memo.wav", 30)
        stamp = datetime(2024, 5, 6, 7, 8).timestamp()
        os.utime(path, (stamp, stamp))

        result = _service(_llm(media=["Kaneko: hi"])).analyze(path)

        assert result.field(SummaryLabels.DATETIME) == "2024/05/06 07:08"

    def test_progress_reported(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "202401151030.wav", 1200)
        events = []

        _service(_llm()).analyze(path, progress_cb=lambda stage, f: events.append((stage, f)))

        assert events[0] == (AnalysisStage.TRANSCRIBING, 0.0)
        assert (AnalysisStage.TRANSCRIBING, 0.5) in events
        assert (AnalysisStage.TRANSCRIBING, 1.0) in events
        assert (AnalysisStage.SUMMARIZING, 0.0) in events
        assert events[-1] == (AnalysisStage.DONE, 1.0)


# ---------------------------------------------------------------------------
# Fatal errors
# ---------------------------------------------------------------------------


class TestFatal:
    def test_decode_failure(self, tmp_path) -> None:
        path = tmp_path / "broken.m4a"
        path.write_bytes(b"\x00" * 64)
        llm = _llm()
        with pytest.raises(AudioDecodeError):
            _service(llm).analyze(str(path))
        assert llm.media_calls == []

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(AnalysisError, match="Could not read audio file") as excinfo:
            _service(_llm()).analyze(str(tmp_path / "nope.wav"))
        assert excinfo.value.http_status == 400

    def test_transcription_failure_keeps_partial(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "call.wav", 1200)
        llm = _llm(media=["Kaneko: part one", ModelError("HTTP 500", status_code=500)])

        with pytest.raises(TranscriptionError) as excinfo:
            _service(llm).analyze(path)

        assert excinfo.value.partial_transcript == "Kaneko: part one"
        assert llm.text_calls == []

    def test_empty_transcript(self) -> None:
        chunker = MagicMock()
        chunker.iter_chunks.return_value = [make_chunk(0, total_chunks=1)]
        llm = _llm(media=["   "])
        with patch("services.analysis_service.os.path.getmtime", return_value=0):
            with pytest.raises(AnalysisError, match="no text"):
                _service(llm, chunker=chunker).analyze("/virtual/call.mp3")
        assert llm.text_calls == []

    def test_summarization_provider_error_wrapped(self) -> None:
        chunker = MagicMock()
        chunker.iter_chunks.return_value = [make_chunk(0, total_chunks=1)]

        def responder(prompt, json_output):
            raise ModelError("HTTP 503: overloaded", status_code=503)

        llm = FakeLLMProvider(media_responses=["Kaneko: hi"], responder=responder)
        with patch("services.analysis_service.os.path.getmtime", return_value=0):
            with pytest.raises(AnalysisError, match="Summarization failed") as excinfo:
                _service(llm, chunker=chunker).analyze("/virtual/call.mp3")
        assert excinfo.value.context["status_code"] == 503
        assert isinstance(excinfo.value.__cause__, ModelError)

    def test_unparseable_synthesis(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "call.wav", 10)
        llm = _llm(media=["Kaneko: hi"], synthesis="total garbage")
        with pytest.raises(AnalysisError) as excinfo:
            _service(llm).analyze(path)
        assert excinfo.value.error_code == "PARSING_FAILED"


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


class TestHistory:
    def test_save_sets_record_id(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "call.wav", 10)
        history = InMemoryHistoryStoreAdapter()

        result = _service(_llm(media=["Kaneko: hi"]), history=history).analyze(path, save=True)

        records = history.list_records()
        assert len(records) == 1
        assert result.record_id == records[0].id
        assert records[0].organization == "Acme Trading"

    def test_save_failure_is_not_fatal(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "call.wav", 10)
        history = MagicMock()
        history.save_record.side_effect = ExternalServiceError("HistoryWebhook", "timeout")

        result = _service(_llm(media=["Kaneko: hi"]), history=history).analyze(path, save=True)

        assert result.record_id is None
        assert result.warnings == ["History save failed: HistoryWebhook unavailable: timeout"]
        assert len(result.summary) == 10

    def test_not_saved_by_default(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "call.wav", 10)
        history = MagicMock()
        _service(_llm(media=["Kaneko: hi"]), history=history).analyze(path)
        history.save_record.assert_not_called()

    def test_update_summary_updates_in_place(self, sample_result) -> None:
        history = InMemoryHistoryStoreAdapter()
        service = _service(_llm(), history=history)
        saved_result, first = service.save_result(sample_result)

        lines = list(saved_result.summary)
        lines[1] = "[Contact] Ms. Tanaka"
        edited, second = service.update_summary(saved_result, lines)

        assert second.ok
        assert second.doc_id == first.doc_id
        assert edited.field(SummaryLabels.CONTACT) == "Ms. Tanaka"
        assert [r.contact for r in history.list_records()] == ["Ms. Tanaka"]

    def test_update_summary_validates(self, sample_result) -> None:
        with pytest.raises(ValidationError):
            _service(_llm(), history=InMemoryHistoryStoreAdapter()).update_summary(sample_result, [])

    def test_error_status_becomes_warning(self, sample_result) -> None:
        history = MagicMock()
        history.save_record.return_value = SaveResult(status="error", message="sheet locked")
        result, saved = _service(_llm(), history=history).save_result(sample_result)
        assert not saved.ok
        assert result.warnings == ["History save failed: sheet locked"]

    def test_without_store(self, sample_result) -> None:
        service = _service(_llm())
        result, saved = service.save_result(sample_result)
        assert saved.status == "error"
        assert service.list_history() == []

    def test_list_history(self) -> None:
        history = InMemoryHistoryStoreAdapter()
        history.save_record(HistoryRecord(organization="Acme"))
        assert [r.organization for r in _service(_llm(), history=history).list_history()] == ["Acme"]


class TestSegments:
    def test_speaker_normalization(self, sample_result) -> None:
        result = sample_result.model_copy(
            update={"transcript": "Kaneko: hello\nUnknown Person: hi"}
        )
        segments = _service(_llm()).segments(result)
        assert [(s.speaker, s.text) for s in segments] == [("Kaneko", "hello"), ("Customer", "hi")]


class TestFromSettings:
    def test_wiring(self) -> None:
        settings = Settings(
            gemini_api_key="k",
            operator_roster="Kaneko,Tanaka",
            customer_label="Caller",
            text_chunk_chars=500,
        )
        service = AnalysisService.from_settings(settings, llm_provider=FakeLLMProvider())

        assert isinstance(service._history, InMemoryHistoryStoreAdapter)
        assert service._roster == ["Kaneko", "Tanaka"]
        assert service._customer_label == "Caller"

    def test_module_level_analyze(self, tmp_path) -> None:
        path = _write_wav(tmp_path / "call.wav", 10)
        settings = Settings(gemini_api_key="k", audio_target_sample_rate=RATE)
        llm = _llm(media=["Kaneko: hi"])

        with patch("memo_intelligence.providers.factory.LLMProviderFactory.create", return_value=llm), \
                patch("memo_intelligence.audio.chunker.encode_mp3", side_effect=_fake_encoder):
            result = analyze(path, settings)

        assert result.transcript == "Kaneko: hi"
