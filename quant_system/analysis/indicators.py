"""
기술적 지표 계산 모듈.

[ 역할 ]
    봉 리스트(종가)로부터 지표 시리즈를 계산. 모든 시리즈는 입력 봉과
    인덱스가 1:1로 정렬되며, 룩백 부족 구간은 None(미정의)으로 채운다.

[ 계산하는 지표 ]
    - SMA(period)         : 누적합(최신 더하고 가장 오래된 값 빼기) 이동평균
    - EMA(period)         : α = 2/(period+1), 첫 유효값에서 시작, None은 직전값 유지
    - RSI(period)         : Wilder 방식 (첫 period개 차분으로 시드 후 점진 평활)
    - Bollinger(period,k) : 중심 = SMA, 상/하단 = 중심 ± k * 모표준편차
    - MACD(fast,slow,sig) : EMA(fast) - EMA(slow), 시그널 = EMA(macd), 히스토그램

[ 시그널 규칙 ]
    crossover_signal(): i-1 → i 에서 short ≤ long → short > long 이면 BUY,
                        short ≥ long → short < long 이면 SELL, 그 외/None은 HOLD
    rsi_signal():       RSI < 30 → BUY, RSI > 70 → SELL

[ 호출하는 곳 ]
    - service.py::QuantService.calculate_indicators()
    - backtest/engine.py (지표 번들이 없을 때 직접 계산)
    - strategies/*.py에서 crossover_signal(), rsi_signal() 사용
"""

import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

from quant_system.core.data_provider import Bar
from quant_system.core.trading_strategy import SignalType

# 인덱스별 값 또는 None(룩백 부족)
IndicatorSeries = list[Optional[float]]

RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0


# ─── 지표 번들 ──────────────────────────────────────────────────────────────

@dataclass
class BollingerBands:
    upper: IndicatorSeries
    middle: IndicatorSeries
    lower: IndicatorSeries


@dataclass
class MACDResult:
    macd: IndicatorSeries
    signal: IndicatorSeries
    histogram: IndicatorSeries


@dataclass
class IndicatorBundle:
    """calculate_indicators()의 반환값. 모든 시리즈는 bars와 같은 길이."""
    ma_short: IndicatorSeries = field(default_factory=list)
    ma_long: IndicatorSeries = field(default_factory=list)
    rsi: IndicatorSeries = field(default_factory=list)
    bb_upper: IndicatorSeries = field(default_factory=list)
    bb_middle: IndicatorSeries = field(default_factory=list)
    bb_lower: IndicatorSeries = field(default_factory=list)
    macd: IndicatorSeries = field(default_factory=list)
    macd_signal: IndicatorSeries = field(default_factory=list)
    macd_histogram: IndicatorSeries = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)
    # 마지막 봉 기준 시그널 요약
    signals: dict[str, SignalType] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.ma_short)

    def to_dict(self) -> dict[str, Any]:
        return {
            "MA_short": self.ma_short,
            "MA_long": self.ma_long,
            "RSI": self.rsi,
            "BB_upper": self.bb_upper,
            "BB_middle": self.bb_middle,
            "BB_lower": self.bb_lower,
            "MACD": self.macd,
            "MACD_signal": self.macd_signal,
            "MACD_histogram": self.macd_histogram,
            "params": dict(self.params),
            "signals": {k: v.value for k, v in self.signals.items()},
        }


# ─── 지표 구현 ──────────────────────────────────────────────────────────────

def sma(values: Sequence[Optional[float]], period: int) -> IndicatorSeries:
    """단순 이동평균. 인덱스 < period-1 은 None, period ≤ 1 이면 원값 그대로."""
    n = len(values)
    if period <= 1:
        return list(values)

    out: IndicatorSeries = [None] * n
    running = 0.0
    for i, v in enumerate(values):
        if v is None:
            continue
        running += v
        if i >= period:
            oldest = values[i - period]
            if oldest is not None:
                running -= oldest
        if i >= period - 1:
            out[i] = running / period
    return out


def ema(values: Sequence[Optional[float]], period: int) -> IndicatorSeries:
    """지수 이동평균. 첫 유효값에서 시작하고 None 입력은 직전 EMA를 유지한다."""
    n = len(values)
    if period <= 1:
        return list(values)

    out: IndicatorSeries = [None] * n
    start = next((i for i, v in enumerate(values) if v is not None), None)
    if start is None:
        return out

    alpha = 2.0 / (period + 1.0)
    prev = float(values[start])
    out[start] = prev
    for i in range(start + 1, n):
        v = values[i]
        if v is not None:
            prev = alpha * v + (1.0 - alpha) * prev
        out[i] = prev
    return out


def _rsi_from_averages(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def rsi(values: Sequence[float], period: int = 14) -> IndicatorSeries:
    """Wilder RSI. 처음 period개 인덱스는 None, 봉이 period+1개 미만이면 전부 None."""
    n = len(values)
    out: IndicatorSeries = [None] * n
    if period < 1 or n < period + 1:
        return out

    gain = 0.0
    loss = 0.0
    for i in range(1, period + 1):
        diff = values[i] - values[i - 1]
        if diff >= 0:
            gain += diff
        else:
            loss -= diff

    avg_gain = gain / period
    avg_loss = loss / period
    out[period] = _rsi_from_averages(avg_gain, avg_loss)

    for i in range(period + 1, n):
        diff = values[i] - values[i - 1]
        avg_gain = (avg_gain * (period - 1) + max(diff, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-diff, 0.0)) / period
        out[i] = _rsi_from_averages(avg_gain, avg_loss)
    return out


def bollinger_bands(
    values: Sequence[float],
    period: int = 20,
    k: float = 2.0,
) -> BollingerBands:
    """볼린저 밴드. period ≤ 1 이면 상단 = 하단 = 원값."""
    n = len(values)
    middle = sma(values, period)
    if period <= 1:
        return BollingerBands(upper=list(values), middle=middle, lower=list(values))

    upper: IndicatorSeries = [None] * n
    lower: IndicatorSeries = [None] * n
    arr = np.asarray(values, dtype=float)
    for i in range(period - 1, n):
        mean = middle[i]
        if mean is None:
            continue
        window = arr[i - period + 1:i + 1]
        std = math.sqrt(float(np.mean((window - mean) ** 2)))
        upper[i] = mean + k * std
        lower[i] = mean - k * std
    return BollingerBands(upper=upper, middle=middle, lower=lower)


def macd(
    values: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """MACD 라인, 시그널 라인, 히스토그램."""
    ema_fast = ema(values, fast)
    ema_slow = ema(values, slow)

    line: IndicatorSeries = [
        f - s if f is not None and s is not None else None
        for f, s in zip(ema_fast, ema_slow)
    ]
    signal_line = ema(line, signal_period)
    hist: IndicatorSeries = [
        m - s if m is not None and s is not None else None
        for m, s in zip(line, signal_line)
    ]
    return MACDResult(macd=line, signal=signal_line, histogram=hist)


# ─── 시그널 규칙 ────────────────────────────────────────────────────────────

def crossover_signal(
    short: Sequence[Optional[float]],
    long: Sequence[Optional[float]],
    index: int,
) -> SignalType:
    """두 시리즈의 index-1 → index 교차 판정 (MA, MACD 공용)."""
    if index <= 0 or index >= len(short) or index >= len(long):
        return SignalType.HOLD

    s_prev, l_prev = short[index - 1], long[index - 1]
    s_now, l_now = short[index], long[index]
    if s_prev is None or l_prev is None or s_now is None or l_now is None:
        return SignalType.HOLD

    if s_prev <= l_prev and s_now > l_now:
        return SignalType.BUY
    if s_prev >= l_prev and s_now < l_now:
        return SignalType.SELL
    return SignalType.HOLD


def rsi_signal(
    values: Sequence[Optional[float]],
    index: int,
    oversold: float = RSI_OVERSOLD,
    overbought: float = RSI_OVERBOUGHT,
) -> SignalType:
    """RSI 과매도(<30) 매수, 과매수(>70) 매도."""
    if index < 0 or index >= len(values):
        return SignalType.HOLD
    v = values[index]
    if v is None:
        return SignalType.HOLD
    if v < oversold:
        return SignalType.BUY
    if v > overbought:
        return SignalType.SELL
    return SignalType.HOLD


# ─── 진입점 ────────────────────────────────────────────────────────────────

def calculate_indicators(
    bars: Sequence[Bar],
    ma_short: int = 20,
    ma_long: int = 50,
    rsi_period: int = 14,
    bb_period: int = 20,
    macd_fast: int = 12,
    macd_slow: int = 26,
    macd_signal: int = 9,
    bb_k: float = 2.0,
) -> IndicatorBundle:
    """봉 리스트로 전체 지표 번들 계산.

    Args:
        bars: 시간 오름차순 봉 리스트
        ma_short / ma_long: 단기/장기 SMA 기간
        rsi_period: RSI 기간
        bb_period: 볼린저 밴드 기간
        macd_fast / macd_slow / macd_signal: MACD 기간

    Returns:
        IndicatorBundle: 인덱스 정렬된 지표 시리즈 + 마지막 봉 시그널
    """
    close = [b.close for b in bars]

    ma_s = sma(close, ma_short)
    ma_l = sma(close, ma_long)
    rsi_values = rsi(close, rsi_period)
    bands = bollinger_bands(close, bb_period, bb_k)
    macd_result = macd(close, macd_fast, macd_slow, macd_signal)

    last = len(close) - 1
    signals = {
        "ma_signal": crossover_signal(ma_s, ma_l, last),
        "rsi_signal": rsi_signal(rsi_values, last),
        "macd_signal": crossover_signal(macd_result.macd, macd_result.signal, last),
    }

    return IndicatorBundle(
        ma_short=ma_s,
        ma_long=ma_l,
        rsi=rsi_values,
        bb_upper=bands.upper,
        bb_middle=bands.middle,
        bb_lower=bands.lower,
        macd=macd_result.macd,
        macd_signal=macd_result.signal,
        macd_histogram=macd_result.histogram,
        params={
            "ma_short": ma_short,
            "ma_long": ma_long,
            "rsi_period": rsi_period,
            "bb_period": bb_period,
            "bb_k": bb_k,
            "macd_fast": macd_fast,
            "macd_slow": macd_slow,
            "macd_signal": macd_signal,
        },
        signals=signals,
    )
