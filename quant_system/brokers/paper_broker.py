"""
모의투자 원장(PaperTradingLedger).

[ 역할 ]
    계좌별 Portfolio를 메모리에 보관하고, 최신 시장가로 매수/매도를 시뮬레이션.
    실제 증권사 주문은 내지 않으며, 현금의 진실 공급원은 외부 계좌(AccountGateway)이다.

[ 실행 흐름 ]
    place_order() 호출 시:
        1. 입력 검증 (티커 → 수량 타입/부호 → 방향 순으로 거부)
        2. 최신가 조회 (DataProvider.get_latest_price, 없으면 거부)
        3. 계좌 Lock 획득 → Portfolio 지연 생성 → 외부 잔고로 현금 동기화
        4. 매수: 잔고 < 수량*가격이면 거부, 아니면 잔고 차감 + 평균단가 갱신 + 주문 기록
           매도: 미보유/수량 초과면 거부, 아니면 잔고 가산 + 수량 감소(0이면 삭제) + 주문 기록
    get_portfolio() 호출 시:
        계좌 Lock 안에서 보유 종목마다 최신가로 평가 → 사본 반환 (수량/현금은 그대로)

[ 동시성 ]
    utils/keyed_store.py::KeyedStore로 계좌별 Lock.
    같은 계좌의 주문은 동기화→검증→반영이 한 번에 하나씩만 실행된다.

[ 의존성 ]
    - core/data_provider.py::DataProvider (최신가)
    - core/broker_api.py::AccountGateway (외부 잔고)
    - data/portfolio.py::Portfolio

[ 호출하는 곳 ]
    - service.py::QuantService.place_order() / get_portfolio()
"""

import logging
import numbers
from datetime import datetime, timezone
from typing import Callable

from quant_system.core.broker_api import (
    REASON_PAPER_BUY,
    REASON_PAPER_SELL,
    AccountGateway,
    AccountId,
    OrderOutcome,
    OrderSide,
    OrderStatus,
)
from quant_system.core.data_provider import DataProvider
from quant_system.core.errors import (
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidRequestError,
    PriceUnavailableError,
    QuantError,
)
from quant_system.data.portfolio import Portfolio
from quant_system.utils.keyed_store import KeyedStore

logger = logging.getLogger("quant_system.paper")


def _round2(v: float) -> float:
    return round(v, 2)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PaperTradingLedger:
    """계좌별 모의투자 포트폴리오 원장."""

    def __init__(
        self,
        data_provider: DataProvider,
        accounts: AccountGateway,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if data_provider is None:
            raise TypeError("PaperTradingLedger requires a data provider")
        if accounts is None:
            raise TypeError("PaperTradingLedger requires an account gateway")
        self.data_provider = data_provider
        self.accounts = accounts
        self._clock = clock
        self._portfolios: KeyedStore[Portfolio] = KeyedStore(factory=Portfolio)

    # ─── 주문 ────────────────────────────────────────────────────────────────

    def place_order(self, account_id: AccountId, ticker: str, side: str, qty: int) -> OrderOutcome:
        """시장가 모의 주문.

        Returns:
            OrderOutcome: 체결이면 success=True, 거부면 error에 사유.
                          거부 시 포트폴리오와 외부 잔고는 변하지 않는다.
        """
        symbol = (ticker or "").strip().upper()
        side_text = (side or "").strip().lower() if isinstance(side, str) else getattr(side, "value", "")

        try:
            order_side = self._validate(symbol, side, qty)
            price = self._latest_price(symbol)
            with self._portfolios.locked(account_id) as portfolio:
                portfolio.cash_balance = self.accounts.get_account_balance(account_id)
                if order_side == OrderSide.BUY:
                    return self._buy(account_id, portfolio, symbol, qty, price)
                return self._sell(account_id, portfolio, symbol, qty, price)

        except InsufficientFundsError as e:
            logger.info(f"[{account_id}] BUY {symbol} x{qty} 거부: 잔고 부족")
            return OrderOutcome.rejected(
                str(e), ticker=symbol, side=side_text, qty=qty,
                needed=_round2(e.needed), balance=_round2(e.balance),
            )
        except InsufficientSharesError as e:
            logger.info(f"[{account_id}] SELL {symbol} x{qty} 거부: {e}")
            details = {"owned": e.owned, "attempted": e.attempted} if e.attempted else {}
            return OrderOutcome.rejected(str(e), ticker=symbol, side=side_text, qty=qty, **details)
        except QuantError as e:
            logger.info(f"[{account_id}] 주문 거부 ({symbol or '-'}): {e}")
            return OrderOutcome.rejected(str(e), ticker=symbol, side=side_text, qty=qty)

    def _validate(self, symbol: str, side: str, qty: int) -> OrderSide:
        if not symbol:
            raise InvalidRequestError("Missing ticker")
        if isinstance(qty, bool) or not isinstance(qty, numbers.Integral):
            raise InvalidRequestError("qty must be a positive integer")
        if qty <= 0:
            raise InvalidRequestError("qty must be > 0")
        order_side = OrderSide.parse(side)
        if order_side is None:
            raise InvalidRequestError("side must be 'buy' or 'sell'")
        return order_side

    def _latest_price(self, symbol: str) -> float:
        price = self.data_provider.get_latest_price(symbol)
        if price is None or price <= 0:
            raise PriceUnavailableError(f"Could not fetch market price for {symbol}")
        return price

    def _buy(
        self,
        account_id: AccountId,
        portfolio: Portfolio,
        symbol: str,
        qty: int,
        price: float,
    ) -> OrderOutcome:
        cost = qty * price
        balance = portfolio.cash_balance
        if balance < cost:
            raise InsufficientFundsError(needed=cost, balance=balance)

        self.accounts.set_account_balance(account_id, balance - cost, REASON_PAPER_BUY)
        portfolio.apply_buy(symbol, qty, price, self._clock().isoformat())
        portfolio.cash_balance = self.accounts.get_account_balance(account_id)

        logger.debug(f"[{account_id}] BUY {symbol} x{qty} @ {price:,.2f}")
        return OrderOutcome(
            success=True,
            status=OrderStatus.FILLED,
            ticker=symbol,
            side=OrderSide.BUY.value,
            qty=qty,
            price=_round2(price),
            balance=_round2(portfolio.cash_balance),
            message=f"Bought {qty} shares of {symbol}",
        )

    def _sell(
        self,
        account_id: AccountId,
        portfolio: Portfolio,
        symbol: str,
        qty: int,
        price: float,
    ) -> OrderOutcome:
        position = portfolio.get_position(symbol)
        if position is None or position.qty <= 0:
            raise InsufficientSharesError(f"No shares owned for {symbol}")
        if qty > position.qty:
            raise InsufficientSharesError("Not enough shares", owned=position.qty, attempted=qty)

        proceeds = qty * price
        self.accounts.set_account_balance(account_id, portfolio.cash_balance + proceeds, REASON_PAPER_SELL)
        portfolio.apply_sell(symbol, qty, price, self._clock().isoformat())
        portfolio.cash_balance = self.accounts.get_account_balance(account_id)

        logger.debug(f"[{account_id}] SELL {symbol} x{qty} @ {price:,.2f}")
        return OrderOutcome(
            success=True,
            status=OrderStatus.FILLED,
            ticker=symbol,
            side=OrderSide.SELL.value,
            qty=qty,
            price=_round2(price),
            balance=_round2(portfolio.cash_balance),
            message=f"Sold {qty} shares of {symbol}",
        )

    # ─── 조회 ────────────────────────────────────────────────────────────────

    def get_portfolio(self, account_id: AccountId) -> Portfolio:
        """최신가로 평가한 포트폴리오 사본. 현금은 외부 잔고 값."""
        with self._portfolios.locked(account_id) as portfolio:
            for ticker, position in portfolio.positions.items():
                price = self.data_provider.get_latest_price(ticker)
                if price is None or price <= 0:
                    logger.warning(f"[{account_id}] {ticker} 최신가 없음, 이전 평가 유지")
                    continue
                position.mark(price)

            snapshot = portfolio.snapshot()

        snapshot.cash_balance = self.accounts.get_account_balance(account_id)
        return snapshot
