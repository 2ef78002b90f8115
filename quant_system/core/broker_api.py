"""
모의투자 주문/계좌 인터페이스 정의.

[ 역할 ]
    모의투자 원장(PaperTradingLedger)이 외부와 주고받는 타입과
    외부 계좌 잔고 인터페이스(AccountGateway)를 정의.
    계좌/프로필 저장소는 이 코어 밖에 있으며, 이 클래스만 구현하면 연결된다.

[ 구현체 ]
    - brokers/account_gateway.py::InMemoryAccountGateway  (테스트/CLI용)
    - 외부 영속 계층 (실서비스, 코어 범위 밖)

[ 호출하는 곳 ]
    - brokers/paper_broker.py::PaperTradingLedger
      주문마다 get_account_balance()로 현금 동기화,
      체결 시 set_account_balance(..., reason_tag) 호출
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Hashable

AccountId = Hashable

# set_account_balance()에 전달하는 사유 태그
REASON_PAPER_BUY = "paper_trade_buy"
REASON_PAPER_SELL = "paper_trade_sell"


# ─── 주문 관련 Enum / Dataclass ─────────────────────────────────────────────

class OrderSide(Enum):
    """주문 방향."""
    BUY = "buy"
    SELL = "sell"

    @classmethod
    def parse(cls, value: "str | OrderSide | None") -> "OrderSide | None":
        """문자열(대소문자/공백 무시) → OrderSide. 알 수 없으면 None."""
        if isinstance(value, OrderSide):
            return value
        if value is None:
            return None
        normalized = str(value).strip().lower()
        for side in cls:
            if side.value == normalized:
                return side
        return None


class OrderStatus(Enum):
    """주문 처리 결과."""
    FILLED = "filled"
    REJECTED = "rejected"


@dataclass
class OrderOutcome:
    """place_order()의 반환값. 성공 여부 + 체결 정보 또는 거부 사유."""
    success: bool
    status: OrderStatus
    ticker: str = ""
    side: str = ""
    qty: int = 0
    price: float = 0.0
    balance: float = 0.0
    message: str = ""
    error: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def rejected(cls, error: str, ticker: str = "", side: str = "", qty: int = 0,
                 **details: Any) -> "OrderOutcome":
        return cls(
            success=False,
            status=OrderStatus.REJECTED,
            ticker=ticker,
            side=side,
            qty=qty,
            error=error,
            details=details,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


# ─── 추상 클래스 ────────────────────────────────────────────────────────────

class AccountGateway(ABC):
    """외부 계좌 잔고 인터페이스.

    잔고의 단일 진실 공급원은 외부 계좌이며, 원장은 주문 전에 항상
    이 값을 읽어 현금을 덮어쓴다.
    """

    @abstractmethod
    def get_account_balance(self, account_id: AccountId) -> float:
        """계좌 잔고 조회."""
        ...

    @abstractmethod
    def set_account_balance(
        self,
        account_id: AccountId,
        amount: float,
        reason_tag: str,
    ) -> None:
        """계좌 잔고 갱신.

        Args:
            account_id: 계좌 ID
            amount: 새 잔고
            reason_tag: 손익 이력 분류용 태그 (예: "paper_trade_buy")
        """
        ...
