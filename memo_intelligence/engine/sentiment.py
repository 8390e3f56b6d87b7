"""
Sentiment score merging and classification.
"""

from typing import Iterable, Optional, Tuple

from shared_utils.constants import SentimentLabel, SentimentThresholds


def classify_sentiment(score: float) -> SentimentLabel:
    """>= 0.6 positive, <= 0.4 negative, neutral in between."""
    if score >= SentimentThresholds.POSITIVE:
        return SentimentLabel.POSITIVE
    if score <= SentimentThresholds.NEGATIVE:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


def merge_sentiment(scores: Iterable[Optional[float]]) -> Optional[Tuple[SentimentLabel, float]]:
    """Average the numeric scores and classify the mean.

    Non-numeric entries (None) are ignored.

    Returns:
        ``(label, mean)`` or None when no score is available.
    """
    values = [float(s) for s in scores if isinstance(s, (int, float))]
    if not values:
        return None
    mean = sum(values) / len(values)
    return classify_sentiment(mean), mean
