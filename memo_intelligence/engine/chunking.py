"""
Transcript chunking for the extraction pass.

The completion endpoint has an input ceiling, so long transcripts are split
into contiguous pieces that break only between lines.
"""

from typing import List

from shared_utils.constants import Defaults


def split_transcript(text: str, max_chars: int = Defaults.TEXT_CHUNK_CHARS) -> List[str]:
    """Split *text* into chunks of at most *max_chars* characters.

    Chunks are contiguous: joined back with ``"\\n"`` they reproduce the
    input (minus trailing newlines). A line is never split; a single line
    longer than the budget becomes a chunk of its own.

    Args:
        text: Full transcript.
        max_chars: Character budget per chunk.

    Returns:
        Ordered list of chunks; empty for blank input.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be > 0")
    if not text or not text.strip():
        return []

    chunks: List[str] = []
    current: List[str] = []
    current_len = 0

    for line in text.rstrip("\n").split("\n"):
        # +1 for the newline that joins this line to the previous one
        added = len(line) + (1 if current else 0)
        if current and current_len + added > max_chars:
            chunks.append("\n".join(current))
            current = [line]
            current_len = len(line)
        else:
            current.append(line)
            current_len += added

    if current:
        chunks.append("\n".join(current))

    return chunks
