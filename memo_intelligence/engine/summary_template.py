"""
Enforces the fixed summary label template on synthesized output.
"""

from typing import Any, Dict, List, Optional

from shared_utils.constants import SummaryLabels


EMPTY_VALUE = "-"


def normalize_summary(
    lines: Any,
    overrides: Optional[Dict[str, str]] = None,
) -> List[str]:
    """Return exactly one line per label, in template order.

    The first line starting with a label wins; lines with no known label are
    dropped. Missing labels get ``EMPTY_VALUE``. *overrides* replaces the
    value of a label outright (used for the precomputed date, duration and
    file fields).

    Args:
        lines: The ``summary`` value from the synthesis response (list or str).
        overrides: Label -> value map applied after matching.
    """
    if isinstance(lines, str):
        lines = lines.splitlines()
    if not isinstance(lines, list):
        lines = []

    values: Dict[str, str] = {}
    for line in lines:
        text = str(line).strip().lstrip("-•* ").strip()
        for label in SummaryLabels.ORDER:
            if text.startswith(label) and label not in values:
                values[label] = text[len(label):].lstrip(" :：").strip()
                break

    for label, value in (overrides or {}).items():
        values[label] = value

    return [
        f"{label} {values.get(label) or EMPTY_VALUE}"
        for label in SummaryLabels.ORDER
    ]
