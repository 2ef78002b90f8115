"""
샘플 일봉 생성 모듈.

[ 역할 ]
    네트워크 없이 백테스트/예측을 돌려볼 수 있도록 시드 고정 랜덤워크 봉을 생성.
    CSV 텍스트로도 내보낼 수 있어 MarketDataProvider의 원천으로 바로 쓸 수 있다.

[ 호출하는 곳 ]
    - run_backtest.py --sample
    - tests/ (합성 상승/하락 시리즈)
"""

from datetime import date, datetime, timezone

import numpy as np
import pandas as pd

from quant_system.core.data_provider import Bar, bars_to_frame


def generate_sample_bars(
    ticker: str,
    start_date: date,
    end_date: date,
    initial_price: float = 100.0,
    drift: float = 0.0002,
    volatility: float = 0.02,
    seed: int | None = None,
) -> list[Bar]:
    """영업일 기준 랜덤워크 일봉 생성.

    Args:
        ticker: 심볼
        start_date / end_date: 기간 (영업일만 생성)
        initial_price: 시작 가격
        drift: 일별 평균 수익률
        volatility: 일별 수익률 표준편차
        seed: 난수 시드 (None이면 티커 기반 고정값)
    """
    if seed is None:
        seed = sum(ord(c) * (i + 1) for i, c in enumerate(ticker))
    rng = np.random.default_rng(seed)

    dates = pd.bdate_range(start=start_date, end=end_date)
    n = len(dates)

    returns = rng.normal(drift, volatility, n)
    prices = initial_price * np.cumprod(1 + returns)

    bars = []
    for i, d in enumerate(dates):
        close = float(prices[i])
        high = close * (1 + abs(rng.normal(0, 0.01)))
        low = close * (1 - abs(rng.normal(0, 0.01)))
        open_price = close * (1 + rng.normal(0, 0.005))
        volume = int(rng.lognormal(12, 1))

        bars.append(Bar(
            symbol=ticker.upper(),
            time=datetime(d.year, d.month, d.day, tzinfo=timezone.utc),
            open=round(open_price, 2),
            high=round(max(high, open_price, close), 2),
            low=round(min(low, open_price, close), 2),
            close=round(close, 2),
            volume=volume,
        ))
    return bars


def trend_bars(
    ticker: str,
    closes: list[float],
    start_date: date = date(2024, 1, 1),
) -> list[Bar]:
    """주어진 종가 목록으로 일봉 생성 (달력 기준 하루 간격)."""
    dates = pd.date_range(start=start_date, periods=len(closes), freq="D")
    return [
        Bar(
            symbol=ticker.upper(),
            time=datetime(d.year, d.month, d.day, tzinfo=timezone.utc),
            open=c,
            high=c,
            low=c,
            close=c,
            volume=1_000,
        )
        for d, c in zip(dates, closes)
    ]


def bars_to_csv(bars: list[Bar]) -> str:
    """Bar 리스트 → 'date,open,high,low,close,volume' CSV 텍스트."""
    df = bars_to_frame(bars)
    if not df.empty:
        df["date"] = df["date"].astype(str)
    return df.to_csv(index=False)
