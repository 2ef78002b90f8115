"""
모멘텀 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 구현체.
    lookback(기본 20)봉 수익률이 +threshold(기본 2%) 초과면 매수,
    -threshold 미만이면 매도. 지표 번들은 쓰지 않고 종가만 사용.

[ 별칭 ]
    "ml" 별칭: 백테스트 화면의 ML 전략 자리를 채우는 모멘텀 대용.

[ 파라미터 ]
    lookback:  비교 봉 수
    threshold: 매수/매도 기준 수익률 (비율)
"""

from typing import Any

from quant_system.analysis.indicators import IndicatorBundle
from quant_system.core.data_provider import Bar
from quant_system.core.trading_strategy import SignalType, TradingStrategy
from quant_system.strategies import register


@register("momentum", "ml")
class MomentumStrategy(TradingStrategy):
    """모멘텀 전략 구현체."""

    DEFAULT_PARAMS = {
        "lookback": 20,
        "threshold": 0.02,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        super().__init__(name="momentum", params=params)

    @property
    def lookback(self) -> int:
        return int(self.params["lookback"])

    @property
    def threshold(self) -> float:
        return float(self.params["threshold"])

    def signal(self, index: int, bars: list[Bar], indicators: IndicatorBundle) -> SignalType:
        if index < self.lookback or index >= len(bars):
            return SignalType.HOLD

        prev = bars[index - self.lookback].close
        if prev <= 0:
            return SignalType.HOLD

        momentum = bars[index].close / prev - 1.0
        if momentum > self.threshold:
            return SignalType.BUY
        if momentum < -self.threshold:
            return SignalType.SELL
        return SignalType.HOLD
