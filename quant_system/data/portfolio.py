"""
모의투자 포트폴리오 모듈.

[ 역할 ]
    계좌별 현금, 보유 종목(Position), 주문 기록(OrderRecord)을 보관.
    PaperTradingLedger가 주문 체결 시 이 클래스를 통해 상태를 갱신.

[ 주요 클래스 ]
    Position    - 개별 종목의 수량/평균단가 + 마지막 평가가격/평가금액/미실현손익
    OrderRecord - 체결된 주문 1건 (시각, 방향, 수량, 가격, 총액)
    Portfolio   - 계좌 1개의 포트폴리오 (현금 + 포지션들 + 주문 기록)

[ 호출하는 곳 ]
    - brokers/paper_broker.py::PaperTradingLedger
      place_order()에서 apply_buy/apply_sell() 호출,
      get_portfolio()에서 mark()로 평가 후 snapshot() 반환
"""

import copy
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class Position:
    """개별 종목 포지션. Portfolio 내부에서 종목별로 관리됨."""
    ticker: str
    qty: int = 0
    avg_cost: float = 0.0           # 평균 매수가 (매수 시마다 가중평균 갱신)
    market_price: float = 0.0       # 마지막 평가 가격
    market_value: float = 0.0       # qty * market_price
    unrealized_pnl: float = 0.0     # (market_price - avg_cost) * qty

    def update_on_buy(self, qty: int, price: float) -> None:
        """매수 시 수량/평균단가 갱신."""
        total_cost = self.avg_cost * self.qty + price * qty
        self.qty += qty
        self.avg_cost = total_cost / self.qty if self.qty > 0 else 0.0

    def update_on_sell(self, qty: int) -> None:
        """매도 시 수량 감소. 평균단가는 유지."""
        self.qty -= min(qty, self.qty)

    def mark(self, price: float) -> None:
        """현재가로 평가금액/미실현손익 재계산 (센트 단위 반올림)."""
        self.market_price = round(price, 2)
        self.market_value = round(price * self.qty, 2)
        self.unrealized_pnl = round((price - self.avg_cost) * self.qty, 2)


@dataclass
class OrderRecord:
    """체결된 주문 기록."""
    time: str           # ISO-8601
    ticker: str
    side: str           # "BUY" or "SELL"
    qty: int
    price: float
    total_cost: float   # qty * price


@dataclass
class Portfolio:
    """계좌 1개의 모의투자 포트폴리오.

    cash_balance는 외부 계좌 잔고의 사본이며, 주문마다 원장이 덮어쓴다.
    """
    cash_balance: float = 0.0
    positions: dict[str, Position] = field(default_factory=dict)   # ticker → Position
    orders: list[OrderRecord] = field(default_factory=list)

    @property
    def positions_value(self) -> float:
        """마지막 평가 기준 보유 종목 가치 합."""
        return sum(p.market_value for p in self.positions.values())

    @property
    def total_value(self) -> float:
        return self.cash_balance + self.positions_value

    def get_position(self, ticker: str) -> Position | None:
        return self.positions.get(ticker)

    def apply_buy(self, ticker: str, qty: int, price: float, time: str) -> OrderRecord:
        """매수 반영. 현금 검증은 호출자 책임."""
        cost = qty * price
        self.cash_balance -= cost
        position = self.positions.setdefault(ticker, Position(ticker=ticker))
        position.update_on_buy(qty, price)
        position.mark(price)
        record = OrderRecord(time=time, ticker=ticker, side="BUY", qty=qty, price=price, total_cost=cost)
        self.orders.append(record)
        return record

    def apply_sell(self, ticker: str, qty: int, price: float, time: str) -> OrderRecord:
        """매도 반영. 수량이 0이 되면 포지션 삭제."""
        proceeds = qty * price
        self.cash_balance += proceeds
        position = self.positions[ticker]
        position.update_on_sell(qty)
        position.mark(price)
        if position.qty == 0:
            del self.positions[ticker]
        record = OrderRecord(time=time, ticker=ticker, side="SELL", qty=qty, price=price, total_cost=proceeds)
        self.orders.append(record)
        return record

    def get_holding_tickers(self) -> list[str]:
        return [t for t, p in self.positions.items() if p.qty > 0]

    def snapshot(self) -> "Portfolio":
        """외부에 넘길 독립 사본."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cash_balance": self.cash_balance,
            "positions": {t: asdict(p) for t, p in self.positions.items()},
            "orders": [asdict(o) for o in self.orders],
            "positions_value": self.positions_value,
            "total_value": self.total_value,
        }
