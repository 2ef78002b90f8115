"""
시장 데이터 제공 모듈.

[ 역할 ]
    원천(RawSeriesSource)이 돌려준 CSV 텍스트를 Bar 리스트로 변환.
    심볼 정규화 → 원천 조회 → 파싱 → 기간 필터 → 시간 오름차순 정렬.

[ 파싱 규칙 ]
    - 헤더 "date,open,high,low,close,volume" (대소문자 무시)
    - 날짜/가격 파싱 실패 행, 무한대 가격 행, close ≤ 0 행은 조용히 제외 (에러 아님)
    - 6개 열 뒤의 여분 필드와 행 끝 쉼표는 무시, 토큰화가 안 되는 행만 건너뜀
    - 거래량 파싱 실패나 무한대는 0으로 처리
    - 봉 시각은 해당 날짜의 UTC 자정, 같은 날짜 중복은 마지막 행 유지

[ 실패 처리 ]
    원천 예외(타임아웃/비정상 응답/파싱 실패)는 모두 빈 리스트로 강등.
    → 하위 계산은 InsufficientDataError 경로(note)로 처리된다.

[ 의존성 ]
    - core/data_provider.py::DataProvider, Bar, RawSeriesSource
    - ingestion/stooq.py, ingestion/yahoo_finance.py (원천 구현)

[ 호출하는 곳 ]
    - service.py::QuantService.get_daily_bars()
    - brokers/paper_broker.py (get_latest_price)
"""

import io
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable

import numpy as np
import pandas as pd

from quant_system.core.data_provider import BAR_COLUMNS, Bar, DataProvider, RawSeriesSource
from quant_system.core.errors import UpstreamFetchError

logger = logging.getLogger("quant_system.market_data")

PRICE_COLUMNS = ["open", "high", "low", "close"]


def utc_today() -> date:
    """UTC 기준 오늘 날짜. 최신가/예측 조회 구간의 끝."""
    return datetime.now(timezone.utc).date()


def normalize_symbol(ticker: str, default_suffix: str = ".us") -> str:
    """소문자화 + 시장 접미사 없으면 추가. 'AAPL' → 'aapl.us', '7203.JP' → '7203.jp'."""
    t = ticker.strip().lower()
    if "." in t:
        return t
    return t + default_suffix


def parse_daily_csv(text: str, symbol: str) -> list[Bar]:
    """CSV 텍스트 → Bar 리스트 (시간 오름차순).

    Raises:
        UpstreamFetchError: CSV 자체를 읽을 수 없음
    """
    if not text or not text.strip():
        return []

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            skipinitialspace=True,
            usecols=lambda c: str(c).strip().lower() in BAR_COLUMNS,
            index_col=False,
            on_bad_lines="skip",
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise UpstreamFetchError(f"Malformed CSV for {symbol}: {e}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = set(BAR_COLUMNS) - set(df.columns)
    if missing or df.empty:
        if missing:
            logger.debug(f"{symbol}: CSV missing columns {sorted(missing)}")
        return []

    df = df[BAR_COLUMNS].copy()
    df["date"] = pd.to_datetime(df["date"].str.strip(), format="%Y-%m-%d", errors="coerce")
    for col in PRICE_COLUMNS:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    volume = pd.to_numeric(df["volume"], errors="coerce")
    df["volume"] = volume.where(np.isfinite(volume), 0).clip(lower=0)

    valid = df["date"].notna() & np.isfinite(df[PRICE_COLUMNS]).all(axis=1) & (df["close"] > 0)
    dropped = int((~valid).sum())
    if dropped:
        logger.debug(f"{symbol}: dropped {dropped} invalid rows")

    df = (
        df[valid]
        .drop_duplicates(subset="date", keep="last")
        .sort_values("date")
    )

    return [
        Bar(
            symbol=symbol,
            time=datetime(row.date.year, row.date.month, row.date.day, tzinfo=timezone.utc),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=int(row.volume),
            timeframe="1d",
        )
        for row in df.itertuples(index=False)
    ]


class MarketDataProvider(DataProvider):
    """CSV 원천 기반 일봉 제공자.

    사용 예:
        provider = MarketDataProvider(source=stooq.fetch_raw_series)
        bars = provider.get_daily_bars("AAPL", date(2024, 1, 1), date(2024, 6, 30))
    """

    def __init__(
        self,
        source: RawSeriesSource,
        default_suffix: str = ".us",
        price_lookback_days: int = 30,
        today: Callable[[], date] | None = None,
    ):
        if source is None:
            raise TypeError("MarketDataProvider requires a raw series source")
        self.source = source
        self.default_suffix = default_suffix
        self.price_lookback_days = price_lookback_days
        self._today = today or utc_today

    def get_daily_bars(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
    ) -> list[Bar]:
        """일봉 조회. start_date, end_date 모두 포함. 실패 시 빈 리스트."""
        if not ticker or not ticker.strip():
            logger.warning("get_daily_bars called with blank ticker")
            return []

        symbol = ticker.strip().upper()
        query_symbol = normalize_symbol(ticker, self.default_suffix)

        try:
            text = self.source(query_symbol, start_date, end_date)
            bars = parse_daily_csv(text, symbol)
        except UpstreamFetchError as e:
            logger.error(f"Market data unavailable for {symbol}: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected market data failure for {symbol}: {e}")
            return []

        filtered = [b for b in bars if start_date <= b.date <= end_date]
        filtered.sort(key=lambda b: b.time)
        logger.debug(f"{symbol}: {len(filtered)} bars in {start_date} ~ {end_date}")
        return filtered

    def get_latest_price(self, ticker: str) -> float | None:
        """최근 price_lookback_days일 봉 중 마지막 종가. 없으면 None."""
        end = self._today()
        start = end - timedelta(days=self.price_lookback_days)
        bars = self.get_daily_bars(ticker, start, end)
        if not bars:
            return None
        return bars[-1].close
