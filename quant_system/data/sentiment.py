"""
뉴스 센티먼트 스냅샷 모듈.

[ 역할 ]
    티커별 센티먼트 스냅샷을 만들어 TTL(기본 60초) 동안 캐시.
    실제 뉴스 피드 대신 쓰는 결정적(deterministic) 생성기이며,
    실제 제공자(NewsAPI, GDELT 등)로 바꿀 때는 _build_snapshot()만 교체하면 된다.

[ 생성 규칙 ]
    시드 = hash(티커) XOR 시간 버킷(기본 5분) → 같은 버킷 안에서는 같은 값,
    시간이 지나면 천천히 바뀐다.
        overall      ~ U[-1, 1]
        economic     = clamp(overall*0.6 + U[-1,1]*0.4)
        geopolitical = clamp(overall*0.4 + U[-1,1]*0.6)
        social       = clamp(overall*0.5 + U[-1,1]*0.5)
        news_volume_24h     ∈ [10, 49]
        negative_news_ratio ∈ [0.2, 0.7]

[ 동시성 ]
    utils/keyed_store.py::KeyedStore로 티커별 Lock → 같은 티커 동시 요청 시
    생성은 한 번만 일어난다.

[ 호출하는 곳 ]
    - service.py::QuantService.get_sentiment_snapshot()
    - ml/forecaster.py (overall 점수를 특성으로 사용)
"""

import hashlib
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

import numpy as np

from quant_system.utils.keyed_store import KeyedStore

logger = logging.getLogger("quant_system.sentiment")

DEFAULT_TICKER = "SPY"
POSITIVE_THRESHOLD = 0.15
NEGATIVE_THRESHOLD = -0.15

# 카테고리: (overall 가중치, 노이즈 가중치). 순서가 곧 보고 순서.
CATEGORY_WEIGHTS: dict[str, tuple[float, float]] = {
    "economic": (0.6, 0.4),
    "geopolitical": (0.4, 0.6),
    "social": (0.5, 0.5),
}


@dataclass
class Headline:
    time: str
    title: str
    score: float    # [-1, 1]


@dataclass
class SentimentSnapshot:
    """센티먼트 스냅샷. category_sentiment는 삽입 순서를 유지한다."""
    ticker: str
    generated_at: str
    overall_market_sentiment: float                 # [-1, 1]
    category_sentiment: dict[str, float] = field(default_factory=dict)
    news_volume_24h: int = 0
    negative_news_ratio: float = 0.0                # [0, 1]
    headlines: list[Headline] = field(default_factory=list)
    summary: str = ""

    def most_negative_category(self) -> tuple[str | None, float]:
        """가장 낮은 카테고리. 동점이면 먼저 나온 카테고리."""
        worst_name: str | None = None
        worst = float("inf")
        for name, value in self.category_sentiment.items():
            if value < worst:
                worst = value
                worst_name = name
        return worst_name, worst

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def classify(score: float) -> str:
    if score > POSITIVE_THRESHOLD:
        return "positive"
    if score < NEGATIVE_THRESHOLD:
        return "negative"
    return "neutral"


def build_summary(snapshot: SentimentSnapshot) -> str:
    worst_name, worst = snapshot.most_negative_category()
    return (
        f"News sentiment for {snapshot.ticker} is {classify(snapshot.overall_market_sentiment)} "
        f"(score {snapshot.overall_market_sentiment:.3f}). "
        f"Most negative category: {worst_name} ({worst:.3f}). "
        f"Volume last 24h: {snapshot.news_volume_24h}."
    )


def ticker_seed(ticker: str, bucket: int) -> int:
    """프로세스와 무관하게 안정적인 시드 (내장 hash()는 실행마다 달라짐)."""
    digest = hashlib.sha256(ticker.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") ^ bucket


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass
class _CacheEntry:
    cached_at: float
    snapshot: SentimentSnapshot


class SentimentProvider:
    """티커별 TTL 캐시를 가진 센티먼트 제공자.

    Args:
        ttl_seconds: 캐시 유효 시간
        bucket_seconds: 시드 시간 버킷 크기
        clock: TTL 판정용 단조 시계 (테스트에서 주입)
        wall_clock: 시드 버킷/generated_at용 epoch 초
        rng_factory: seed → numpy Generator
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        bucket_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
        rng_factory: Callable[[int], np.random.Generator] = np.random.default_rng,
    ):
        self.ttl_seconds = ttl_seconds
        self.bucket_seconds = max(1, int(bucket_seconds))
        self._clock = clock
        self._wall_clock = wall_clock
        self._rng_factory = rng_factory
        self._cache: KeyedStore[_CacheEntry] = KeyedStore()

    def get_sentiment_snapshot(self, ticker: str | None) -> SentimentSnapshot:
        """티커 스냅샷. TTL 안이면 캐시된 같은 객체를 돌려준다."""
        key = (ticker or "").strip().upper() or DEFAULT_TICKER

        with self._cache.locked(key) as entry:
            now = self._clock()
            if entry is not None and (now - entry.cached_at) < self.ttl_seconds:
                return entry.snapshot

            snapshot = self._build_snapshot(key)
            self._cache.put(key, _CacheEntry(cached_at=now, snapshot=snapshot))
            logger.debug(f"Sentiment snapshot refreshed for {key}: {snapshot.overall_market_sentiment:.3f}")
            return snapshot

    def invalidate(self, ticker: str | None = None) -> None:
        """캐시 비우기. 전체 비우기는 ticker=None."""
        if ticker is None:
            self._cache.clear()
            return
        key = ticker.strip().upper()
        with self._cache.locked(key):
            self._cache.put(key, None)

    def _build_snapshot(self, ticker: str) -> SentimentSnapshot:
        wall = self._wall_clock()
        bucket = int(wall // self.bucket_seconds)
        rng = self._rng_factory(ticker_seed(ticker, bucket))

        overall = _clamp(rng.uniform(-1.0, 1.0), -1.0, 1.0)
        categories: dict[str, float] = {}
        for name, (w_overall, w_noise) in CATEGORY_WEIGHTS.items():
            noise = rng.uniform(-1.0, 1.0)
            categories[name] = _clamp(overall * w_overall + noise * w_noise, -1.0, 1.0)

        volume = int(rng.integers(10, 50))      # 10..49
        negative_ratio = _clamp(0.2 + rng.random() * 0.5, 0.0, 1.0)

        generated_at = datetime.fromtimestamp(wall, tz=timezone.utc).isoformat()
        econ = categories["economic"]
        geo = categories["geopolitical"]
        social = categories["social"]
        headlines = [
            Headline(generated_at, f"{ticker} market update: mixed signals as volume shifts", overall),
            Headline(generated_at, f"Macro watch: rates and inflation expectations influence {ticker}", econ),
            Headline(generated_at, "Geopolitics: risk sentiment swings across equities", geo),
            Headline(generated_at, f"Sector rotation: investors reposition around {ticker}", overall),
            Headline(generated_at, f"Social sentiment: retail chatter ticks {'up' if social >= 0 else 'down'}", social),
        ]

        snapshot = SentimentSnapshot(
            ticker=ticker,
            generated_at=generated_at,
            overall_market_sentiment=float(overall),
            category_sentiment={k: float(v) for k, v in categories.items()},
            news_volume_24h=volume,
            negative_news_ratio=float(negative_ratio),
            headlines=headlines,
        )
        snapshot.summary = build_summary(snapshot)
        return snapshot
