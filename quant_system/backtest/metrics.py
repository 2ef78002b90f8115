"""
백테스트 결과 / 성과 지표 모듈.

[ 역할 ]
    백테스트 결과 컨테이너(BacktestResult)와 거래기록 기반 지표 계산.

[ 계산하는 지표 ]
    - 총 수익률       = (최종 / 초기 - 1) * 100
    - 최대 낙폭(MDD)  = |최소 drawdown| * 100  (엔진이 봉마다 누적 계산)
    - 승률            = BUY→SELL 왕복 중 매도가 > 매수가 비율 (왕복 없으면 0%)
    - 연환산 수익률 / 샤프 비율 (일별 자산가치 기준, 연 252 거래일)

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run() 완료 시 호출
"""

from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np

TRADING_DAYS_PER_YEAR = 252


@dataclass
class BacktestTrade:
    """개별 거래 기록. calculate_win_rate()에서 왕복 승패 판정에 사용됨."""
    date: str
    side: str               # "BUY" or "SELL"
    qty: int
    price: float            # 체결 가격 (해당 봉 종가)
    cash_after: float
    position_after: int
    reason: str = ""        # "signal" / "stop_loss" / "take_profit"


@dataclass
class BacktestResult:
    """run_backtest()의 반환값. 차트 시리즈 + 거래 목록 + 요약 지표."""
    strategy: str = ""
    dates: list[str] = field(default_factory=list)
    portfolio_value: list[float] = field(default_factory=list)
    benchmark_value: list[float] = field(default_factory=list)   # buy & hold
    returns: list[float] = field(default_factory=list)           # 일별 수익률
    trades: list[BacktestTrade] = field(default_factory=list)
    total_return_pct: float = 0.0
    max_drawdown_pct: float = 0.0
    win_rate_pct: float = 0.0
    annual_return_pct: float = 0.0
    sharpe_ratio: float = 0.0
    total_trades: int = 0
    note: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.portfolio_value

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        return asdict(self)

    def summary(self) -> str:
        """성과 요약 문자열."""
        lines = [
            "=" * 50,
            f"백테스트 성과 리포트 [{self.strategy}]",
            "=" * 50,
            f"총 수익률:       {self.total_return_pct:>10.2f}%",
            f"연환산 수익률:    {self.annual_return_pct:>10.2f}%",
            f"샤프 비율:       {self.sharpe_ratio:>10.2f}",
            f"최대 낙폭(MDD):  {self.max_drawdown_pct:>10.2f}%",
            "-" * 50,
            f"총 거래 횟수:    {self.total_trades:>10d}",
            f"승률:            {self.win_rate_pct:>10.2f}%",
            "-" * 50,
            f"비고: {self.note}",
            "=" * 50,
        ]
        return "\n".join(lines)


def calculate_total_return(final_value: float, initial_capital: float) -> float:
    """총 수익률 (%)."""
    if initial_capital <= 0:
        return 0.0
    return (final_value / initial_capital - 1.0) * 100.0


def calculate_win_rate(trades: list[BacktestTrade]) -> float:
    """BUY 다음 SELL을 하나의 왕복으로 보고, 매도가 > 매수가이면 승리.

    닫힌 왕복이 없으면 0.
    """
    last_buy_price: float | None = None
    wins = 0
    closed = 0

    for t in trades:
        side = t.side.upper()
        if side == "BUY":
            last_buy_price = t.price
        elif side == "SELL" and last_buy_price is not None:
            closed += 1
            if t.price > last_buy_price:
                wins += 1
            last_buy_price = None

    if closed == 0:
        return 0.0
    return wins * 100.0 / closed


def calculate_annual_return(final_value: float, initial_capital: float, trading_days: int) -> float:
    """연환산 수익률: (최종/초기)^(1/년수) - 1."""
    if trading_days <= 0 or initial_capital <= 0 or final_value <= 0:
        return 0.0
    years = trading_days / TRADING_DAYS_PER_YEAR
    return ((final_value / initial_capital) ** (1 / years) - 1) * 100


def calculate_sharpe(daily_returns: list[float], risk_free_annual: float = 0.0) -> float:
    """샤프 = (평균 초과수익 / 표준편차) * sqrt(252). 변동이 없으면 0."""
    if len(daily_returns) < 2:
        return 0.0
    returns_arr = np.asarray(daily_returns, dtype=float)
    excess = returns_arr - risk_free_annual / TRADING_DAYS_PER_YEAR
    std = float(np.std(excess))
    if std <= 0:
        return 0.0
    return float(np.mean(excess) / std * np.sqrt(TRADING_DAYS_PER_YEAR))
