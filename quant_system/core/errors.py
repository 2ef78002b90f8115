"""
예외 계층 정의.

[ 역할 ]
    엔진 내부에서 발생하는 예상 가능한 실패를 종류별로 구분.
    각 컴포넌트는 내부에서 raise 하고, 진입점(서비스/엔진의 public 메서드)이
    잡아서 note 또는 OrderOutcome(success=False)으로 변환한다.
    → 호출자 입장에서는 비즈니스 조건으로 예외가 던져지지 않는다.

[ 변환 위치 ]
    InsufficientDataError   → BacktestResult.note / ForecastResult.note
    InvalidRequestError     → OrderOutcome.error
    InsufficientFunds/Shares→ OrderOutcome.error (원장 상태 불변)
    UpstreamFetchError      → data/market_data.py에서 빈 리스트로 강등
    PriceUnavailableError   → OrderOutcome.error
"""


class QuantError(Exception):
    """모든 엔진 예외의 부모."""


class InsufficientDataError(QuantError):
    """계산에 필요한 봉 수(또는 학습 행 수)가 부족."""

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message)
        self.required = required
        self.available = available


class InvalidRequestError(QuantError):
    """잘못된 입력 (side, 수량, 티커 등). 상태 변경 전에 거부된다."""


class InsufficientFundsError(QuantError):
    """매수 금액이 가용 현금을 초과."""

    def __init__(self, needed: float, balance: float):
        super().__init__("Insufficient funds")
        self.needed = needed
        self.balance = balance


class InsufficientSharesError(QuantError):
    """매도 수량이 보유 수량을 초과하거나 보유 종목이 없음."""

    def __init__(self, message: str, owned: int = 0, attempted: int = 0):
        super().__init__(message)
        self.owned = owned
        self.attempted = attempted


class UpstreamFetchError(QuantError):
    """시세 원천(네트워크/파싱) 실패."""


class PriceUnavailableError(QuantError):
    """최신 가격을 구할 수 없음 ("no price" 센티널)."""
