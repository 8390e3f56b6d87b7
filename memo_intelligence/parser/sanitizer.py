"""
JSON recovery for completion responses.

The completion endpoint is asked for JSON but does not always deliver clean
JSON: fenced Markdown, chatty preambles, raw control characters inside strings
and, for long recordings, an output truncated inside the trailing transcript
field. ``ResponseSanitizer`` walks a fixed ladder of repairs for exactly those
artifacts.

The ladder knows the shape of our own response templates (the trailing field
marker in particular). It is not a general-purpose JSON repair tool and should
not be used on arbitrary input.
"""

import json
import re
from typing import Any, Optional

from shared_utils.constants import LogScope
from shared_utils.error_handler import ResponseParseError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.PARSER)


class ResponseSanitizer:
    """Turns a raw completion into a parsed JSON object.

    Ladder (first success wins):
        1. strip Markdown fences (skipped when the endpoint ran in JSON mode)
        2. slice from the first ``{`` to the last ``}``
        3. ``json.loads``
        4. strip control characters 0x00-0x1F and retry
        5. cut at the last trailing-field key, close it with a placeholder
        6. raise ``ResponseParseError`` naming the original parse error
    """

    FENCE_PATTERN: re.Pattern = re.compile(r"```(?:json|JSON)?")
    CONTROL_CHARS: re.Pattern = re.compile(r"[\x00-\x1f]")

    DEFAULT_TRAILING_FIELD = "transcript"
    TRUNCATION_PLACEHOLDER = "[truncated]"

    def __init__(
        self,
        trailing_field: str = DEFAULT_TRAILING_FIELD,
        placeholder: str = TRUNCATION_PLACEHOLDER,
    ):
        self.trailing_field = trailing_field
        self.placeholder = placeholder

    def sanitize(self, raw: str, json_mode: bool = False) -> Any:
        """Parse *raw* into a JSON object.

        Args:
            raw: Completion text.
            json_mode: True when the request forced JSON output, in which
                case fences are not expected and are left alone.

        Returns:
            The parsed object (a dict for every template we use).

        Raises:
            ResponseParseError: If every repair step fails.
        """
        if raw is None or not raw.strip():
            raise ResponseParseError("Empty response from completion endpoint")

        text = raw.strip() if json_mode else self.strip_fences(raw)

        start = text.find("{")
        if start == -1:
            raise ResponseParseError(
                "No JSON object found in response",
                context={"preview": text[:200]},
            )
        tail = text[start:]
        end = tail.rfind("}")
        candidate = tail[: end + 1] if end != -1 else tail

        try:
            return json.loads(candidate)
        except json.JSONDecodeError as exc:
            original_error = exc
            logger.debug("json_parse_failed", step="initial", error=str(exc))

        cleaned = self.CONTROL_CHARS.sub("", candidate)
        try:
            result = json.loads(cleaned)
            logger.info("json_recovered", step="control_chars")
            return result
        except json.JSONDecodeError as exc:
            logger.debug("json_parse_failed", step="control_chars", error=str(exc))

        # The truncated tail may hold no closing brace at all, so repair works
        # on everything after the first "{" rather than on the sliced span.
        repaired = self._close_trailing_field(self.CONTROL_CHARS.sub("", tail))
        if repaired is not None:
            try:
                result = json.loads(repaired)
                logger.warning(
                    "json_recovered",
                    step="trailing_field_truncation",
                    trailing_field=self.trailing_field,
                )
                return result
            except json.JSONDecodeError as exc:
                logger.debug("json_parse_failed", step="trailing_field", error=str(exc))

        logger.error(
            "json_unrecoverable",
            error=str(original_error),
            length=len(raw),
        )
        raise ResponseParseError(
            f"Could not parse JSON response: {original_error}",
            context={"preview": text[:200]},
        ) from original_error

    @classmethod
    def strip_fences(cls, text: str) -> str:
        """Remove Markdown code fence markers and surrounding whitespace."""
        return cls.FENCE_PATTERN.sub("", text).strip()

    def _close_trailing_field(self, text: str) -> Optional[str]:
        # Match the key with its colon; the bare name can occur inside the cut value.
        marker = f'"{self.trailing_field}"'
        keys = list(re.finditer(re.escape(marker) + r"\s*:", text))
        if not keys:
            return None
        cut = keys[-1].start()
        if cut <= 0:
            return None
        head = text[:cut].rstrip()
        if not head.endswith((",", "{")):
            head += ","
        return f'{head}{marker}: {json.dumps(self.placeholder)}}}'
