"""
이동평균 교차(MA Cross) 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    "단기 SMA가 장기 SMA를 상향 돌파하면 매수, 하향 돌파하면 매도"

[ 전략 흐름 ]
    매 봉 signal() 호출됨 (← backtest/engine.py에서)
        └── crossover_signal(ma_short, ma_long, index)
              ├── 직전 short ≤ long, 현재 short > long → BUY
              ├── 직전 short ≥ long, 현재 short < long → SELL
              └── 그 외 또는 룩백 부족(None) → HOLD

[ 파라미터 ]
    없음. 이평 기간은 지표 번들(indicators.params)이 결정한다.
"""

from quant_system.analysis.indicators import IndicatorBundle, crossover_signal
from quant_system.core.data_provider import Bar
from quant_system.core.trading_strategy import SignalType, TradingStrategy
from quant_system.strategies import register


@register("ma", "ma_cross", "moving_average")
class MACrossStrategy(TradingStrategy):
    """이동평균 교차 전략 구현체."""

    def __init__(self, params: dict | None = None):
        super().__init__(name="ma", params=params)

    def signal(self, index: int, bars: list[Bar], indicators: IndicatorBundle) -> SignalType:
        return crossover_signal(indicators.ma_short, indicators.ma_long, index)
