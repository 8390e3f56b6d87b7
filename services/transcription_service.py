"""
Transcription service: audio chunks -> one ordered transcript.

Chunks are sent one at a time, in order; each completion is appended to the
running transcript before the next request starts. Depends only on the
LLMProviderPort.
"""

from __future__ import annotations

import time
from typing import Callable, Iterable, List, Optional

from domain.models import AudioChunk, TranscriptionReport
from memo_intelligence.engine.prompts import TRANSCRIPTION_PROMPT
from memo_intelligence.parser.transcript import TranscriptParser
from ports.llm_provider import LLMProviderPort
from shared_utils.constants import LogScope
from shared_utils.error_handler import AppException, TranscriptionError
from shared_utils.logging_utils import get_scoped_logger

logger = get_scoped_logger(LogScope.TRANSCRIPTION)

ChunkProgress = Callable[[AudioChunk], None]


class TranscriptionService:
    """Transcribes AudioChunks sequentially with a fixed instruction prompt."""

    def __init__(
        self,
        llm_provider: LLMProviderPort,
        prompt: str = TRANSCRIPTION_PROMPT,
    ) -> None:
        self._llm = llm_provider
        self._prompt = prompt

    def transcribe(
        self,
        chunks: Iterable[AudioChunk],
        on_chunk: Optional[ChunkProgress] = None,
    ) -> TranscriptionReport:
        """Transcribe every chunk and join the results in chunk order.

        Args:
            chunks: Ordered (possibly lazy) chunk sequence.
            on_chunk: Called after each chunk is transcribed.

        Returns:
            TranscriptionReport with the full transcript.

        Raises:
            AnalysisError: Chunk production failed (decode, oversize).
            TranscriptionError: A completion call failed; carries the
                transcript of the chunks finished before the failure.
        """
        started = time.time()
        parts: List[str] = []
        total_duration = 0.0
        count = 0

        for chunk in chunks:
            logger.info(
                "transcription_chunk_started",
                index=chunk.index,
                start_seconds=round(chunk.start_seconds, 3),
                size_bytes=chunk.size_bytes,
            )
            try:
                raw = self._llm.generate_from_media(self._prompt, chunk.data, chunk.mime_type)
            except Exception as exc:
                partial = "\n".join(parts)
                detail = exc.message if isinstance(exc, AppException) else str(exc)
                logger.error(
                    "transcription_chunk_failed",
                    index=chunk.index,
                    error=detail,
                    completed_chunks=count,
                )
                context = {"chunk_index": chunk.index, "completed_chunks": count}
                if isinstance(exc, AppException):
                    context.update(exc.context)
                raise TranscriptionError(
                    f"Transcription failed on chunk {chunk.index + 1}: {detail}",
                    partial_transcript=partial,
                    context=context,
                ) from exc

            text = TranscriptParser.unwrap(raw)
            parts.append(text)
            total_duration = chunk.total_duration_seconds
            count += 1
            logger.info(
                "transcription_chunk_completed",
                index=chunk.index,
                chars=len(text),
                is_final=chunk.is_final,
            )
            if on_chunk is not None:
                on_chunk(chunk)

        duration_ms = (time.time() - started) * 1000
        transcript = "\n".join(parts)
        logger.info(
            "transcription_completed",
            chunks=count,
            chars=len(transcript),
            duration_ms=round(duration_ms, 1),
        )
        return TranscriptionReport(
            transcript=transcript,
            chunk_count=count,
            total_duration_seconds=total_duration,
            duration_ms=duration_ms,
        )
