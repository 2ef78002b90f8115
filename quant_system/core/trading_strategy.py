"""
매매 전략 추상 클래스 정의.

[ 역할 ]
    백테스트 전략의 인터페이스를 정의.
    봉 리스트 + 지표 번들 + 인덱스를 받아 매수/매도/홀드 시그널을 반환하는
    순수 함수 signal()만 구현하면 된다. 상태(현금/보유)는 엔진이 관리.

[ 구현체 ]
    - strategies/ma_cross_strategy.py::MACrossStrategy   ("ma")
    - strategies/rsi_strategy.py::RSIStrategy            ("rsi")
    - strategies/macd_strategy.py::MACDStrategy          ("macd")
    - strategies/momentum_strategy.py::MomentumStrategy  ("momentum")

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run()에서 봉마다 signal() 호출

[ 데이터 흐름 ]
    (index, bars, indicators) → signal() → SignalType
    SignalType이 BUY/SELL이면 엔진이 주문 실행
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

from quant_system.core.data_provider import Bar

if TYPE_CHECKING:
    from quant_system.analysis.indicators import IndicatorBundle


class SignalType(Enum):
    """전략이 반환하는 시그널 종류. 저장하지 않고 매번 다시 계산한다."""
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class TradingStrategy(ABC):
    """매매 전략 추상 클래스.

    새 전략을 만들려면 이 클래스를 상속받아 signal()을 구현하고
    strategies/__init__.py의 @register로 등록한다.
    """

    DEFAULT_PARAMS: dict[str, Any] = {}

    def __init__(self, name: str, params: dict[str, Any] | None = None):
        self.name = name
        self.params = {**self.DEFAULT_PARAMS, **(params or {})}

    @abstractmethod
    def signal(
        self,
        index: int,
        bars: list[Bar],
        indicators: "IndicatorBundle",
    ) -> SignalType:
        """index 위치 봉의 시그널.

        Args:
            index: 평가할 봉 인덱스 (bars, indicators와 위치 정렬)
            bars: 시간 오름차순 봉 리스트
            indicators: bars로 계산된 지표 번들

        Returns:
            SignalType: 매수/매도/홀드
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, params={self.params})"
