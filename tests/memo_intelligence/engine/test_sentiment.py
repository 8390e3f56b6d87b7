"""
Tests for memo_intelligence.engine.sentiment.
"""

import pytest

from memo_intelligence.engine.sentiment import classify_sentiment, merge_sentiment
from shared_utils.constants import SentimentLabel


class TestClassifySentiment:
    @pytest.mark.parametrize("score,label", [
        (1.0, SentimentLabel.POSITIVE),
        (0.6, SentimentLabel.POSITIVE),
        (0.59, SentimentLabel.NEUTRAL),
        (0.5, SentimentLabel.NEUTRAL),
        (0.41, SentimentLabel.NEUTRAL),
        (0.4, SentimentLabel.NEGATIVE),
        (0.0, SentimentLabel.NEGATIVE),
    ])
    def test_thresholds_inclusive(self, score, label) -> None:
        assert classify_sentiment(score) is label


class TestMergeSentiment:
    def test_mean_positive(self) -> None:
        label, score = merge_sentiment([0.9, 0.9, 0.1])
        assert score == pytest.approx(0.6333, abs=1e-4)
        assert label is SentimentLabel.POSITIVE

    def test_neutral(self) -> None:
        label, score = merge_sentiment([0.5, 0.5])
        assert score == 0.5
        assert label is SentimentLabel.NEUTRAL

    def test_none_ignored(self) -> None:
        label, score = merge_sentiment([None, 0.2, None])
        assert score == 0.2
        assert label is SentimentLabel.NEGATIVE

    @pytest.mark.parametrize("scores", [[], [None, None]])
    def test_no_scores(self, scores) -> None:
        assert merge_sentiment(scores) is None

    def test_accepts_generator(self) -> None:
        assert merge_sentiment(s for s in (0.8, 0.6))[1] == pytest.approx(0.7)
