"""
In-memory 계좌 잔고 구현.

[ 역할 ]
    core/broker_api.py::AccountGateway 구현체.
    실제 계좌 저장소 없이 잔고를 메모리에 보관하고,
    잔고가 바뀔 때마다 사유 태그별 손익 이력(ProfitEntry)을 남긴다.

[ 호출하는 곳 ]
    - service.py::QuantService (accounts 미지정 시 기본값)
    - run_backtest.py, 단위 테스트
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from quant_system.core.broker_api import AccountGateway, AccountId


@dataclass
class ProfitEntry:
    """잔고 변동 1건."""
    time: str
    reason_tag: str
    delta: float            # 새 잔고 - 이전 잔고
    balance_after: float


class InMemoryAccountGateway(AccountGateway):
    """메모리 계좌 잔고. 처음 보는 계좌는 default_balance로 시작."""

    def __init__(self, default_balance: float = 100_000.0, balances: dict | None = None):
        self.default_balance = default_balance
        self._balances: dict[AccountId, float] = dict(balances or {})
        self._history: dict[AccountId, list[ProfitEntry]] = {}
        self._lock = threading.Lock()

    def get_account_balance(self, account_id: AccountId) -> float:
        with self._lock:
            return self._balances.setdefault(account_id, self.default_balance)

    def set_account_balance(self, account_id: AccountId, amount: float, reason_tag: str) -> None:
        with self._lock:
            before = self._balances.get(account_id, self.default_balance)
            self._balances[account_id] = amount
            self._history.setdefault(account_id, []).append(ProfitEntry(
                time=datetime.now(timezone.utc).isoformat(),
                reason_tag=reason_tag,
                delta=amount - before,
                balance_after=amount,
            ))

    def profit_history(self, account_id: AccountId, reason_tag: str | None = None) -> list[ProfitEntry]:
        """계좌의 잔고 변동 이력. reason_tag를 주면 해당 태그만."""
        with self._lock:
            entries = list(self._history.get(account_id, []))
        if reason_tag is None:
            return entries
        return [e for e in entries if e.reason_tag == reason_tag]

    def total_by_reason(self, account_id: AccountId) -> dict[str, float]:
        """사유 태그별 잔고 변동 합계."""
        totals: dict[str, float] = {}
        for e in self.profit_history(account_id):
            totals[e.reason_tag] = totals.get(e.reason_tag, 0.0) + e.delta
        return totals
