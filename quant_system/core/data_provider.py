"""
주가 데이터 제공 추상 클래스 정의.

[ 역할 ]
    일봉 OHLCV(시가/고가/저가/종가/거래량) 데이터를 제공하는 인터페이스.
    데이터 소스(Stooq, Yahoo, 테스트용 스텁 등)에 독립적으로
    지표/백테스트/예측/모의투자에 데이터 공급.

[ 구현체 ]
    - data/market_data.py::MarketDataProvider  (원천 CSV 텍스트 파싱)

[ 원천(raw source) ]
    RawSeriesSource = fetch_raw_series(ticker, start, end) -> str
    헤더 "date,open,high,low,close,volume" + 거래일별 한 줄.
    - ingestion/stooq.py::fetch_raw_series
    - ingestion/yahoo_finance.py::fetch_raw_series

[ 호출하는 곳 ]
    - service.py::QuantService.get_daily_bars()
    - brokers/paper_broker.py에서 최신가 조회
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable

import pandas as pd

# (ticker, start, end) -> CSV 텍스트
RawSeriesSource = Callable[[str, date, date], str]

BAR_COLUMNS = ["date", "open", "high", "low", "close", "volume"]


@dataclass(frozen=True)
class Bar:
    """단일 일봉. 생성 후 불변.

    time은 해당 거래일의 UTC 자정. close > 0 인 봉만 유효하다.
    """
    symbol: str
    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: int
    timeframe: str = "1d"

    @property
    def date(self) -> date:
        return self.time.date()

    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3.0

    def simple_return(self) -> float:
        """(종가 - 시가) / 시가. 시가가 0이면 0."""
        if self.open == 0.0:
            return 0.0
        return (self.close - self.open) / self.open


def bars_to_frame(bars: list[Bar]) -> pd.DataFrame:
    """Bar 리스트 → DataFrame (columns: date, open, high, low, close, volume)."""
    if not bars:
        return pd.DataFrame(columns=BAR_COLUMNS)
    return pd.DataFrame(
        [
            {
                "date": b.date,
                "open": b.open,
                "high": b.high,
                "low": b.low,
                "close": b.close,
                "volume": b.volume,
            }
            for b in bars
        ],
        columns=BAR_COLUMNS,
    )


class DataProvider(ABC):
    """일봉 데이터 제공 추상 클래스."""

    @abstractmethod
    def get_daily_bars(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
    ) -> list[Bar]:
        """일봉 조회.

        Args:
            ticker: 종목 심볼 (예: "AAPL", "7203.jp")
            start_date: 시작일 (포함)
            end_date: 종료일 (포함)

        Returns:
            시간 오름차순 Bar 리스트. 실패/데이터 없음이면 빈 리스트.
        """
        ...

    @abstractmethod
    def get_latest_price(self, ticker: str) -> float | None:
        """최근 종가. 구할 수 없으면 None ("no price")."""
        ...
