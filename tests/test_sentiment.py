"""Tests for the deterministic sentiment provider and its TTL cache."""

import threading

import pytest

from quant_system.data.sentiment import (
    SentimentProvider,
    SentimentSnapshot,
    classify,
    ticker_seed,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(1000.0)


@pytest.fixture
def provider(clock) -> SentimentProvider:
    return SentimentProvider(ttl_seconds=60, bucket_seconds=300, clock=clock, wall_clock=lambda: 1_700_000_000.0)


class TestSnapshotContents:
    """Tests for generated snapshot fields."""

    def test_value_ranges(self, provider):
        snap = provider.get_sentiment_snapshot("AAPL")
        assert -1.0 <= snap.overall_market_sentiment <= 1.0
        assert list(snap.category_sentiment) == ["economic", "geopolitical", "social"]
        assert all(-1.0 <= v <= 1.0 for v in snap.category_sentiment.values())
        assert 10 <= snap.news_volume_24h <= 49
        assert 0.2 <= snap.negative_news_ratio <= 0.7

    def test_headlines_and_summary(self, provider):
        snap = provider.get_sentiment_snapshot("AAPL")
        assert len(snap.headlines) == 5
        assert all(-1.0 <= h.score <= 1.0 for h in snap.headlines)
        assert "AAPL" in snap.summary
        assert "Most negative category" in snap.summary

    def test_blank_ticker_defaults_to_spy(self, provider):
        assert provider.get_sentiment_snapshot("").ticker == "SPY"
        assert provider.get_sentiment_snapshot(None).ticker == "SPY"

    def test_ticker_is_uppercased(self, provider):
        assert provider.get_sentiment_snapshot(" msft ").ticker == "MSFT"

    def test_to_dict(self, provider):
        data = provider.get_sentiment_snapshot("AAPL").to_dict()
        assert data["ticker"] == "AAPL"
        assert len(data["headlines"]) == 5


class TestDeterminism:
    """Same ticker and time bucket give the same numbers."""

    def test_same_bucket_same_values(self, clock):
        a = SentimentProvider(clock=clock, wall_clock=lambda: 1_700_000_000.0)
        b = SentimentProvider(clock=clock, wall_clock=lambda: 1_700_000_050.0)
        sa = a.get_sentiment_snapshot("AAPL")
        sb = b.get_sentiment_snapshot("AAPL")
        assert sa.overall_market_sentiment == sb.overall_market_sentiment
        assert sa.category_sentiment == sb.category_sentiment

    def test_seed_is_stable(self):
        assert ticker_seed("AAPL", 5) == ticker_seed("AAPL", 5)
        assert ticker_seed("AAPL", 5) != ticker_seed("MSFT", 5)


class TestCache:
    """Tests for the per-ticker TTL cache."""

    def test_same_object_within_ttl(self, provider, clock):
        first = provider.get_sentiment_snapshot("AAPL")
        clock.now += 59
        assert provider.get_sentiment_snapshot("AAPL") is first

    def test_refreshed_after_ttl(self, provider, clock):
        first = provider.get_sentiment_snapshot("AAPL")
        clock.now += 61
        assert provider.get_sentiment_snapshot("AAPL") is not first

    def test_invalidate(self, provider):
        first = provider.get_sentiment_snapshot("AAPL")
        provider.invalidate("AAPL")
        assert provider.get_sentiment_snapshot("AAPL") is not first

    def test_concurrent_requests_share_snapshot(self, provider):
        results = []

        def worker():
            results.append(provider.get_sentiment_snapshot("NVDA"))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 8
        assert all(r is results[0] for r in results)


class TestHelpers:
    """Tests for classification and worst-category lookup."""

    def test_classify(self):
        assert classify(0.2) == "positive"
        assert classify(-0.2) == "negative"
        assert classify(0.15) == "neutral"

    def test_most_negative_tie_keeps_first(self):
        snap = SentimentSnapshot(
            ticker="X",
            generated_at="",
            overall_market_sentiment=0.0,
            category_sentiment={"economic": -0.5, "geopolitical": -0.5, "social": 0.1},
        )
        assert snap.most_negative_category() == ("economic", -0.5)
