"""
RSI 임계값 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    BUY  : RSI < oversold   (기본 30) : 과매도, 반등 기대
    SELL : RSI > overbought (기본 70) : 과매수, 조정 기대

[ 파라미터 ]
    oversold:   과매도 기준
    overbought: 과매수 기준
"""

from typing import Any

from quant_system.analysis.indicators import (
    RSI_OVERBOUGHT,
    RSI_OVERSOLD,
    IndicatorBundle,
    rsi_signal,
)
from quant_system.core.data_provider import Bar
from quant_system.core.trading_strategy import SignalType, TradingStrategy
from quant_system.strategies import register


@register("rsi")
class RSIStrategy(TradingStrategy):
    """RSI 임계값 전략 구현체."""

    DEFAULT_PARAMS = {
        "oversold": RSI_OVERSOLD,
        "overbought": RSI_OVERBOUGHT,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        super().__init__(name="rsi", params=params)

    @property
    def oversold(self) -> float:
        return float(self.params["oversold"])

    @property
    def overbought(self) -> float:
        return float(self.params["overbought"])

    def signal(self, index: int, bars: list[Bar], indicators: IndicatorBundle) -> SignalType:
        return rsi_signal(indicators.rsi, index, self.oversold, self.overbought)
