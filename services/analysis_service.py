"""
Analysis service: orchestrates the full voice memo pipeline.

Flow:  audio file → AudioChunker → TranscriptionService → SummarizationService
       → AnalysisResult → (optional) HistoryStore.

Depends only on ports for the completion endpoint and the history store.
Every stage runs sequentially; there are no retries anywhere in the pipeline.
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from domain.models import AnalysisResult, AudioChunk, HistoryRecord, SaveResult, TranscriptSegment
from memo_intelligence.audio.chunker import AudioChunker
from memo_intelligence.engine.call_timing import derive_call_timing
from memo_intelligence.parser.transcript import TranscriptParser
from ports.history_store import HistoryStorePort
from services.summarization_service import SummarizationService
from services.transcription_service import TranscriptionService
from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import AnalysisError, AppException
from shared_utils.logging_utils import get_scoped_logger, log_execution
from shared_utils.validation import InputValidator

logger = get_scoped_logger(LogScope.ANALYSIS)

# (stage, fraction complete in [0, 1])
ProgressCallback = Callable[[str, float], None]


class AnalysisStage:
    """Stage names reported to progress callbacks."""
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    SAVING = "saving"
    DONE = "done"


class AnalysisService:
    """Runs one recording through the pipeline and manages its history record."""

    def __init__(
        self,
        chunker: AudioChunker,
        transcription: TranscriptionService,
        summarization: SummarizationService,
        history_store: Optional[HistoryStorePort] = None,
        roster: Optional[List[str]] = None,
        customer_label: str = Defaults.CUSTOMER_LABEL,
    ) -> None:
        self._chunker = chunker
        self._transcription = transcription
        self._summarization = summarization
        self._history = history_store
        self._roster = list(roster) if roster is not None else [Defaults.OPERATOR_ROSTER]
        self._customer_label = customer_label

    @classmethod
    def from_settings(
        cls,
        settings,
        llm_provider=None,
        history_store: Optional[HistoryStorePort] = None,
    ) -> "AnalysisService":
        """Wire the pipeline from Settings.

        The completion provider and history store are created from settings
        unless passed in.
        """
        if llm_provider is None:
            from memo_intelligence.providers.factory import LLMProviderFactory
            llm_provider = LLMProviderFactory.create(settings)

        if history_store is None:
            if settings.history_webhook_url:
                from adapters.webhook_history_store import WebhookHistoryStoreAdapter
                history_store = WebhookHistoryStoreAdapter(
                    settings.history_webhook_url,
                    timeout=settings.request_timeout,
                )
            else:
                from adapters.in_memory_history_store import InMemoryHistoryStoreAdapter
                history_store = InMemoryHistoryStoreAdapter()

        return cls(
            chunker=AudioChunker.from_settings(settings),
            transcription=TranscriptionService(llm_provider),
            summarization=SummarizationService(
                llm_provider,
                text_chunk_chars=settings.text_chunk_chars,
            ),
            history_store=history_store,
            roster=settings.roster,
            customer_label=settings.customer_label,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @log_execution(scope=LogScope.ANALYSIS)
    def analyze(
        self,
        audio_path: str,
        filename: Optional[str] = None,
        progress_cb: Optional[ProgressCallback] = None,
        save: bool = False,
    ) -> AnalysisResult:
        """Analyse one recording.

        Args:
            audio_path: Local path of the audio file.
            filename: Display name (defaults to the basename of *audio_path*);
                used for the date/time label and the ``[File]`` line.
            progress_cb: Called as ``progress_cb(stage, fraction)``.
            save: Persist the result to the history store (best-effort).

        Returns:
            The AnalysisResult. ``warnings`` lists degraded steps (dropped
            extraction chunks, failed history save).

        Raises:
            AnalysisError: Any fatal stage failure.
        """
        filename = filename or os.path.basename(audio_path)
        notify = progress_cb or (lambda stage, fraction: None)
        logger.info("analysis_started", audio_path=audio_path, filename=filename, save=save)

        try:
            modified_at = datetime.fromtimestamp(os.path.getmtime(audio_path))

            def on_chunk(chunk: AudioChunk) -> None:
                total = chunk.total_duration_seconds or 1.0
                notify(AnalysisStage.TRANSCRIBING, min(chunk.end_seconds / total, 1.0))

            notify(AnalysisStage.TRANSCRIBING, 0.0)
            report = self._transcription.transcribe(
                self._chunker.iter_chunks(audio_path),
                on_chunk=on_chunk,
            )
            if not report.transcript.strip():
                raise AnalysisError(
                    "Transcription produced no text",
                    context={"chunks": report.chunk_count},
                )

            timing = derive_call_timing(filename, report.total_duration_seconds, modified_at)
            notify(AnalysisStage.SUMMARIZING, 0.0)
            result, summary_report = self._run_summarization(report.transcript, timing, filename)
        except AnalysisError as exc:
            logger.error(
                "analysis_failed",
                filename=filename,
                error_code=exc.error_code,
                error=exc.message,
            )
            raise
        except OSError as exc:
            logger.error("analysis_failed", filename=filename, error=str(exc))
            raise AnalysisError(
                f"Could not read audio file: {exc}",
                context={"path": audio_path},
                http_status=400,
            ) from exc

        if save:
            notify(AnalysisStage.SAVING, 0.0)
            result, _ = self.save_result(result)

        notify(AnalysisStage.DONE, 1.0)
        logger.info(
            "analysis_completed",
            filename=filename,
            audio_chunks=report.chunk_count,
            text_chunks=summary_report.text_chunks,
            dropped_chunks=summary_report.dropped_chunks,
            record_id=result.record_id,
        )
        return result

    def update_summary(
        self,
        result: AnalysisResult,
        lines: List[str],
    ) -> Tuple[AnalysisResult, SaveResult]:
        """Apply a user edit of the summary lines and re-save.

        The record is updated in place when ``result.record_id`` is known.
        """
        lines = InputValidator.validate_summary_lines(lines)
        edited = result.with_summary(lines)
        logger.info("summary_edited", record_id=result.record_id, lines=len(lines))
        return self.save_result(edited)

    def save_result(self, result: AnalysisResult) -> Tuple[AnalysisResult, SaveResult]:
        """Best-effort save; failures come back as ``SaveResult(status="error")``."""
        if self._history is None:
            return result, SaveResult(status="error", message="No history store configured")

        record = HistoryRecord.from_result(result)
        try:
            saved = self._history.save_record(record)
        except AppException as exc:
            logger.warning("history_save_failed", error=exc.message, record_id=result.record_id)
            saved = SaveResult(status="error", message=exc.message)

        if saved.ok:
            if saved.doc_id:
                result = result.with_record_id(saved.doc_id)
        else:
            message = saved.message or "unknown error"
            result = result.model_copy(
                update={"warnings": result.warnings + [f"History save failed: {message}"]}
            )
        return result, saved

    def list_history(self) -> List[HistoryRecord]:
        if self._history is None:
            return []
        return self._history.list_records()

    def segments(self, result: AnalysisResult) -> List[TranscriptSegment]:
        """Speaker-normalized transcript for display."""
        return TranscriptParser.parse_segments(
            result.transcript, self._roster, self._customer_label
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _run_summarization(self, transcript, timing, filename):
        try:
            return self._summarization.summarize(transcript, timing, filename)
        except AnalysisError:
            raise
        except AppException as exc:
            # Provider/transport failures during summarization abort the run.
            raise AnalysisError(
                f"Summarization failed: {exc.message}",
                context={"cause": exc.error_code, **exc.context},
                http_status=502,
            ) from exc


def analyze(
    audio_path: str,
    settings=None,
    filename: Optional[str] = None,
    progress_cb: Optional[ProgressCallback] = None,
    save: bool = False,
) -> AnalysisResult:
    """One-shot ``analyze(file, config)`` using a freshly wired service."""
    if settings is None:
        from shared_utils.config_loader import get_settings
        settings = get_settings()
    service = AnalysisService.from_settings(settings)
    return service.analyze(audio_path, filename=filename, progress_cb=progress_cb, save=save)
