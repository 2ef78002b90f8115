"""
MACD 교차 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    MACD 라인이 시그널 라인을 상향 돌파하면 매수, 하향 돌파하면 매도.
    판정 규칙은 MA 교차와 동일 (analysis/indicators.py::crossover_signal).
"""

from quant_system.analysis.indicators import IndicatorBundle, crossover_signal
from quant_system.core.data_provider import Bar
from quant_system.core.trading_strategy import SignalType, TradingStrategy
from quant_system.strategies import register


@register("macd")
class MACDStrategy(TradingStrategy):
    """MACD 교차 전략 구현체."""

    def __init__(self, params: dict | None = None):
        super().__init__(name="macd", params=params)

    def signal(self, index: int, bars: list[Bar], indicators: IndicatorBundle) -> SignalType:
        return crossover_signal(indicators.macd, indicators.macd_signal, index)
