"""
Summarization service: transcript -> AnalysisResult.

Two passes over the completion endpoint:
    1. extraction, one forced-JSON call per text chunk (lossy: a chunk whose
       response cannot be parsed is dropped and recorded on the report)
    2. synthesis, a single forced-JSON call merging every extraction into the
       fixed summary template (a parse failure here is fatal)
"""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from domain.models import (
    AnalysisResult,
    CallTiming,
    PartialExtraction,
    SummarizationReport,
    TaskItem,
)
from memo_intelligence.engine.chunking import split_transcript
from memo_intelligence.engine.prompts import (
    SYNTHESIS_TRAILING_FIELD,
    build_extraction_prompt,
    build_synthesis_prompt,
)
from memo_intelligence.engine.sentiment import classify_sentiment, merge_sentiment
from memo_intelligence.engine.summary_template import normalize_summary
from memo_intelligence.parser.sanitizer import ResponseSanitizer
from ports.llm_provider import LLMProviderPort
from shared_utils.constants import Defaults, LogScope, SentimentLabel, SummaryLabels
from shared_utils.error_handler import ResponseParseError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.SUMMARIZATION)


class SummarizationService:
    """Map/reduce summarization of a transcript."""

    def __init__(
        self,
        llm_provider: LLMProviderPort,
        sanitizer: Optional[ResponseSanitizer] = None,
        text_chunk_chars: int = Defaults.TEXT_CHUNK_CHARS,
    ) -> None:
        self._llm = llm_provider
        self._sanitizer = sanitizer or ResponseSanitizer(trailing_field=SYNTHESIS_TRAILING_FIELD)
        self._text_chunk_chars = text_chunk_chars

    def summarize(
        self,
        transcript: str,
        timing: CallTiming,
        filename: str,
    ) -> Tuple[AnalysisResult, SummarizationReport]:
        """Produce the final AnalysisResult for *transcript*.

        Args:
            transcript: Full ordered transcript.
            timing: Precomputed date/time and duration labels.
            filename: Display name of the recording.

        Returns:
            ``(result, report)``; ``report.dropped_chunks`` lists the text
            chunks whose extraction could not be parsed.

        Raises:
            ResponseParseError: The synthesis response was unrecoverable.
            ModelError / ExternalServiceError: A completion call failed.
        """
        started = time.time()
        chunks = split_transcript(transcript, self._text_chunk_chars)
        logger.info("summarization_started", text_chunks=len(chunks), chars=len(transcript))

        extractions: List[PartialExtraction] = []
        dropped: List[int] = []
        for i, chunk in enumerate(chunks):
            extraction = self._extract(chunk, i, len(chunks))
            if extraction is None:
                dropped.append(i)
            else:
                extractions.append(extraction)

        payload = self._synthesize(extractions, timing, filename)
        result = self._build_result(payload, extractions, timing, filename, transcript)

        if dropped:
            result = result.model_copy(
                update={
                    "warnings": result.warnings
                    + [f"{len(dropped)} of {len(chunks)} transcript sections could not be analysed"]
                }
            )

        report = SummarizationReport(
            text_chunks=len(chunks),
            extracted_chunks=len(extractions),
            dropped_chunks=dropped,
            duration_ms=(time.time() - started) * 1000,
        )
        logger.info(
            "summarization_completed",
            text_chunks=report.text_chunks,
            dropped_chunks=report.dropped_chunks,
            sentiment=result.sentiment,
            duration_ms=round(report.duration_ms, 1),
        )
        return result, report

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _extract(self, chunk: str, index: int, total: int) -> Optional[PartialExtraction]:
        prompt = build_extraction_prompt(chunk, index + 1, total)
        raw = self._llm.generate(prompt, json_output=True)
        try:
            parsed = self._sanitizer.sanitize(raw, json_mode=True)
            if not isinstance(parsed, dict):
                raise ResponseParseError("Extraction response is not a JSON object")
            extraction = PartialExtraction.model_validate(parsed)
        except (ResponseParseError, PydanticValidationError, TypeError, ValueError) as exc:
            logger.warning("extraction_chunk_dropped", index=index, error=str(exc))
            return None
        logger.debug(
            "extraction_chunk_completed",
            index=index,
            facts=len(extraction.facts),
            tasks=len(extraction.tasks),
        )
        return extraction

    def _synthesize(
        self,
        extractions: List[PartialExtraction],
        timing: CallTiming,
        filename: str,
    ) -> Dict[str, Any]:
        prompt = build_synthesis_prompt(extractions, timing, filename)
        raw = self._llm.generate(prompt, json_output=True)
        parsed = self._sanitizer.sanitize(raw, json_mode=True)
        if not isinstance(parsed, dict):
            raise ResponseParseError(
                "Synthesis response is not a JSON object",
                context={"type": type(parsed).__name__},
            )
        return parsed

    # ------------------------------------------------------------------
    # Result assembly
    # ------------------------------------------------------------------

    def _build_result(
        self,
        payload: Dict[str, Any],
        extractions: List[PartialExtraction],
        timing: CallTiming,
        filename: str,
        transcript: str,
    ) -> AnalysisResult:
        summary = normalize_summary(
            payload.get("summary"),
            overrides={
                SummaryLabels.DATETIME: timing.datetime_label,
                SummaryLabels.DURATION: timing.duration_label,
                SummaryLabels.FILE: filename,
            },
        )

        raw_items = payload.get("actionItems", payload.get("tasks"))
        warnings: List[str] = []
        if raw_items == self._sanitizer.placeholder:
            logger.warning("action_items_truncated")
            warnings.append("Action items were cut off; tasks taken from the transcript sections")
        if not isinstance(raw_items, list):
            raw_items = [task for e in extractions for task in e.tasks]
        action_items = [
            item if isinstance(item, TaskItem) else TaskItem.model_validate(item)
            for item in raw_items
            if isinstance(item, (TaskItem, dict, str))
        ]
        action_items = [item for item in action_items if item.task]

        label, score = self._resolve_sentiment(payload, extractions)

        return AnalysisResult(
            summary=summary,
            action_items=action_items,
            sentiment=label,
            sentiment_score=score,
            transcript=transcript,
            filename=filename,
            warnings=warnings,
        )

    @staticmethod
    def _resolve_sentiment(
        payload: Dict[str, Any],
        extractions: List[PartialExtraction],
    ) -> Tuple[str, float]:
        score = _valid_score(payload.get("sentimentScore"))
        if score is None:
            merged = merge_sentiment(e.sentiment_score for e in extractions)
            if merged is None:
                logger.warning("sentiment_unavailable")
                return SentimentLabel.NEUTRAL.value, 0.5
            _, score = merged
            logger.info("sentiment_from_extractions", score=round(score, 3))

        label = payload.get("sentiment")
        if label not in {s.value for s in SentimentLabel}:
            label = classify_sentiment(score).value
        return label, score


def _valid_score(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return score if 0.0 <= score <= 1.0 else None
