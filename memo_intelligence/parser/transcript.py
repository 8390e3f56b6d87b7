"""
Transcript text handling.

Two jobs:
    * flatten JSON-wrapped transcription output into ``label: utterance`` lines
    * split a transcript into display segments with normalized speaker names

Normalization is display-only. The transcript handed to summarization keeps
the raw labels the endpoint produced.
"""

import json
import re
from typing import Any, Iterable, List, Optional

from domain.models import TranscriptSegment
from memo_intelligence.parser.sanitizer import ResponseSanitizer
from shared_utils.constants import Defaults, LogScope
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.PARSER)


class TranscriptParser:
    """Parser for speaker-labelled transcript text.

    Expected line format (one utterance per line)::

        Kaneko: Thank you for calling.
        Customer: Hi, I have a question about my order.

    Full-width colons are accepted as the delimiter as well.
    """

    LINE_PATTERN: re.Pattern = re.compile(r"^\s*([^:：]{1,60}?)\s*[:：]\s*(.*)$")

    SPEAKER_KEYS = ("speaker", "name", "label", "role")
    TEXT_KEYS = ("text", "utterance", "content", "message")
    CONTAINER_KEYS = ("transcript", "segments", "utterances", "lines")

    @staticmethod
    def unwrap(raw: str) -> str:
        """Flatten JSON-wrapped transcription output into plain lines.

        Accepts an array of ``{speaker, text}`` objects, or an object holding
        such an array (or a plain transcript string) under a container key.
        Anything else is returned as-is (trimmed).

        Args:
            raw: Completion text for one audio chunk.

        Returns:
            Plain ``label: text`` transcript.
        """
        if raw is None:
            return ""
        text = ResponseSanitizer.strip_fences(raw)
        if not text or text[0] not in "[{":
            return raw.strip()

        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return raw.strip()

        lines = TranscriptParser._lines_from_payload(payload)
        if lines is None:
            return raw.strip()

        logger.debug("transcript_unwrapped_from_json", line_count=len(lines))
        return "\n".join(lines)

    @staticmethod
    def normalize_speaker(
        label: str,
        roster: Iterable[str],
        customer_label: str = Defaults.CUSTOMER_LABEL,
    ) -> str:
        """Map a raw speaker label onto the operator roster.

        A label containing a roster name (case-sensitive substring) becomes
        that name; anything else becomes *customer_label*.
        """
        for name in roster:
            if name and name in label:
                return name
        return customer_label

    @staticmethod
    def parse_segments(
        transcript: str,
        roster: Iterable[str],
        customer_label: str = Defaults.CUSTOMER_LABEL,
    ) -> List[TranscriptSegment]:
        """Split a transcript into display segments.

        Lines without a delimiter continue the previous utterance; a leading
        undelimited line is attributed to the customer.
        """
        roster = list(roster)
        segments: List[TranscriptSegment] = []

        for line in (transcript or "").splitlines():
            if not line.strip():
                continue
            match = TranscriptParser.LINE_PATTERN.match(line)
            if match:
                label, text = match.groups()
                segments.append(TranscriptSegment(
                    speaker=TranscriptParser.normalize_speaker(label, roster, customer_label),
                    text=text.strip(),
                ))
            elif segments:
                previous = segments[-1]
                segments[-1] = TranscriptSegment(
                    speaker=previous.speaker,
                    text=f"{previous.text} {line.strip()}".strip(),
                )
            else:
                segments.append(TranscriptSegment(speaker=customer_label, text=line.strip()))

        return segments

    @staticmethod
    def _lines_from_payload(payload: Any) -> Optional[List[str]]:
        if isinstance(payload, dict):
            for key in TranscriptParser.CONTAINER_KEYS:
                value = payload.get(key)
                if isinstance(value, str):
                    return [value.strip()]
                if isinstance(value, list):
                    return TranscriptParser._lines_from_payload(value)
            return None

        if not isinstance(payload, list):
            return None

        lines: List[str] = []
        for item in payload:
            if isinstance(item, str):
                lines.append(item.strip())
            elif isinstance(item, dict):
                speaker = next(
                    (str(item[k]) for k in TranscriptParser.SPEAKER_KEYS if item.get(k)), ""
                )
                text = next(
                    (str(item[k]) for k in TranscriptParser.TEXT_KEYS if item.get(k)), ""
                )
                if not speaker and not text:
                    continue
                lines.append(f"{speaker}: {text}" if speaker else text)
        return lines
