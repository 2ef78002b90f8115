"""
백테스팅 엔진 모듈.

[ 역할 ]
    과거 일봉에 전략을 적용하여 단일 종목 가상 매매를 시뮬레이션하고 성과를 측정.

[ 실행 흐름 ]
    run() 호출 시:
        0. 봉이 min_bars(60) 미만이면 note만 담긴 빈 결과 반환
        1. 봉 시간순 정렬, 지표 번들 준비, 벤치마크 수량 = 초기자금 / 첫 종가
        2. 인덱스 1부터 봉마다:
           a. 보유 중이면 손절/익절 먼저 확인 → 해당되면 전량 매도
           b. strategy.signal() → 미보유 BUY면 매수, 보유 SELL이면 전량 매도
           c. 자산가치(현금 + 보유*종가) / 벤치마크 가치 / 일별 수익률 기록
           d. 고점 및 최대 낙폭 갱신
        3. metrics.py로 총 수익률, MDD, 승률 등 계산

[ 수수료 ]
    매수 비용 = 수량 * 가격 * (1 + commission)
    매도 대금 = 수량 * 가격 * (1 - commission)

[ 의존성 ]
    - core/trading_strategy.py::TradingStrategy (전략 인터페이스)
    - strategies/__init__.py::create_strategy (이름 → 전략)
    - analysis/indicators.py::calculate_indicators
    - backtest/metrics.py (결과/지표)

[ 호출하는 곳 ]
    - service.py::QuantService.run_backtest()
    - run_backtest.py (CLI)
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from quant_system.analysis.indicators import IndicatorBundle, calculate_indicators
from quant_system.backtest.metrics import (
    BacktestResult,
    BacktestTrade,
    calculate_annual_return,
    calculate_sharpe,
    calculate_total_return,
    calculate_win_rate,
)
from quant_system.core.data_provider import Bar
from quant_system.core.errors import InsufficientDataError
from quant_system.core.trading_strategy import SignalType, TradingStrategy
from quant_system.strategies import create_strategy

logger = logging.getLogger("quant_system.backtest")

DEFAULT_MIN_BARS = 60

# 백테스트 지표 기본 기간 (지표 번들이 없거나 봉과 맞지 않을 때 사용)
DEFAULT_INDICATOR_PARAMS: dict[str, int] = {
    "ma_short": 20,
    "ma_long": 50,
    "rsi_period": 14,
    "bb_period": 20,
    "macd_fast": 12,
    "macd_slow": 26,
}


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def _round2(v: float) -> float:
    return round(v, 2)


@dataclass
class BacktestRequest:
    """백테스트 요청. 범위를 벗어난 값은 clamped_*()에서 잘라낸다."""
    strategy: "str | TradingStrategy" = "ma"
    initial_capital: float = 10_000.0
    position_pct: float = 1.0
    stop_loss: float = 0.0
    take_profit: float = 0.0
    commission: float = 0.0
    strategy_params: dict[str, Any] = field(default_factory=dict)

    def clamped_initial_capital(self) -> float:
        return max(1.0, float(self.initial_capital))

    def clamped_position_pct(self) -> float:
        return _clamp(float(self.position_pct), 0.01, 1.0)

    def clamped_stop_loss(self) -> float:
        return _clamp(float(self.stop_loss), 0.0, 0.5)

    def clamped_take_profit(self) -> float:
        return _clamp(float(self.take_profit), 0.0, 2.0)

    def clamped_commission(self) -> float:
        return _clamp(float(self.commission), 0.0, 0.02)


@dataclass
class BacktestState:
    """1회 실행 동안만 존재하는 시뮬레이션 상태."""
    cash: float
    shares: int = 0
    entry_price: float = 0.0      # 미보유면 0
    peak: float = 0.0
    max_drawdown: float = 0.0     # ≤ 0
    prev_value: float = 0.0


class BacktestEngine:
    """백테스팅 엔진. run()으로 시뮬레이션 실행."""

    def __init__(
        self,
        min_bars: int = DEFAULT_MIN_BARS,
        indicator_params: dict[str, int] | None = None,
    ):
        self.min_bars = min_bars
        self.indicator_params = {**DEFAULT_INDICATOR_PARAMS, **(indicator_params or {})}

    def run(
        self,
        request: BacktestRequest,
        bars: list[Bar],
        indicators: IndicatorBundle | None = None,
    ) -> BacktestResult:
        """백테스트 실행. 예상 가능한 실패는 note가 담긴 빈 결과로 반환.

        Args:
            request: 백테스트 요청 (전략, 자금, 손절/익절, 수수료)
            bars: 일봉 리스트
            indicators: bars로 계산된 지표 번들 (없거나 길이가 다르면 다시 계산)

        Returns:
            BacktestResult: 자산/벤치마크 곡선, 거래 목록, 요약 지표
        """
        try:
            strategy = self._resolve_strategy(request)
        except ValueError as e:
            logger.warning(str(e))
            return BacktestResult(strategy=str(request.strategy), note=str(e))

        try:
            return self._simulate(request, strategy, bars, indicators)
        except InsufficientDataError as e:
            logger.info(f"Backtest skipped: {e}")
            return BacktestResult(strategy=strategy.name, note=str(e))

    def _resolve_strategy(self, request: BacktestRequest) -> TradingStrategy:
        if isinstance(request.strategy, TradingStrategy):
            return request.strategy
        return create_strategy(request.strategy, params=request.strategy_params)

    def _prepare_indicators(
        self,
        data: list[Bar],
        bars: list[Bar],
        indicators: IndicatorBundle | None,
    ) -> IndicatorBundle:
        if indicators is not None and len(indicators) == len(data) and data == list(bars):
            return indicators
        return calculate_indicators(data, **self.indicator_params)

    def _simulate(
        self,
        request: BacktestRequest,
        strategy: TradingStrategy,
        bars: list[Bar],
        indicators: IndicatorBundle | None,
    ) -> BacktestResult:
        if bars is None or len(bars) < self.min_bars:
            available = 0 if bars is None else len(bars)
            raise InsufficientDataError(
                f"Not enough market bars for backtest (need {self.min_bars}+, got {available}).",
                required=self.min_bars,
                available=available,
            )

        data = sorted(bars, key=lambda b: b.time)
        bundle = self._prepare_indicators(data, bars, indicators)

        initial = request.clamped_initial_capital()
        position_pct = request.clamped_position_pct()
        stop_loss = request.clamped_stop_loss()
        take_profit = request.clamped_take_profit()
        commission = request.clamped_commission()

        bench_qty = initial / data[0].close
        state = BacktestState(cash=initial, peak=initial, prev_value=initial)
        result = BacktestResult(strategy=strategy.name)

        logger.info(
            f"백테스트 시작: {strategy.name} {data[0].date} ~ {data[-1].date} "
            f"({len(data)}봉, 초기자금 {initial:,.2f})"
        )

        for i in range(1, len(data)):
            bar = data[i]
            price = bar.close
            day = bar.date.isoformat()

            # 1. 손절/익절 우선
            if state.shares > 0 and state.entry_price > 0:
                move = price / state.entry_price - 1.0
                if stop_loss > 0 and move <= -stop_loss:
                    self._sell_all(state, result, day, price, commission, "stop_loss")
                elif take_profit > 0 and move >= take_profit:
                    self._sell_all(state, result, day, price, commission, "take_profit")

            # 2. 전략 시그널
            signal = strategy.signal(i, data, bundle)
            if signal == SignalType.BUY and state.shares == 0:
                self._buy(state, result, day, price, position_pct, commission)
            elif signal == SignalType.SELL and state.shares > 0:
                self._sell_all(state, result, day, price, commission, "signal")

            # 3. 곡선 기록
            value = state.cash + state.shares * price
            benchmark = bench_qty * price
            result.dates.append(day)
            result.portfolio_value.append(_round2(value))
            result.benchmark_value.append(_round2(benchmark))
            result.returns.append(value / state.prev_value - 1.0 if state.prev_value > 0 else 0.0)
            state.prev_value = value

            # 4. 고점 / 낙폭
            state.peak = max(state.peak, value)
            drawdown = value / state.peak - 1.0 if state.peak > 0 else 0.0
            state.max_drawdown = min(state.max_drawdown, drawdown)

        final_value = state.prev_value
        result.total_return_pct = calculate_total_return(final_value, initial)
        result.max_drawdown_pct = abs(state.max_drawdown) * 100.0
        result.win_rate_pct = calculate_win_rate(result.trades)
        result.annual_return_pct = calculate_annual_return(final_value, initial, len(result.portfolio_value))
        result.sharpe_ratio = calculate_sharpe(result.returns)
        result.total_trades = len(result.trades)
        result.note = "Backtest complete."

        logger.info(
            f"백테스트 완료: {strategy.name} 총 수익률 {result.total_return_pct:.2f}%, "
            f"MDD {result.max_drawdown_pct:.2f}%, 거래 {result.total_trades}건"
        )
        return result

    def _buy(
        self,
        state: BacktestState,
        result: BacktestResult,
        day: str,
        price: float,
        position_pct: float,
        commission: float,
    ) -> None:
        """현금 * position_pct 한도에서 수수료 포함 살 수 있는 만큼 정수 주 매수."""
        budget = state.cash * position_pct
        qty = math.floor(budget / (price * (1.0 + commission)))
        if qty <= 0:
            return

        cost = qty * price * (1.0 + commission)
        if cost > state.cash:
            return

        state.cash -= cost
        state.shares += qty
        state.entry_price = price
        result.trades.append(BacktestTrade(
            date=day,
            side="BUY",
            qty=qty,
            price=price,
            cash_after=_round2(state.cash),
            position_after=state.shares,
            reason="signal",
        ))
        logger.debug(f"[{day}] BUY {qty} @ {price:,.2f}")

    def _sell_all(
        self,
        state: BacktestState,
        result: BacktestResult,
        day: str,
        price: float,
        commission: float,
        reason: str,
    ) -> None:
        """보유 전량 매도."""
        qty = state.shares
        state.cash += qty * price * (1.0 - commission)
        state.shares = 0
        state.entry_price = 0.0
        result.trades.append(BacktestTrade(
            date=day,
            side="SELL",
            qty=qty,
            price=price,
            cash_after=_round2(state.cash),
            position_after=0,
            reason=reason,
        ))
        logger.debug(f"[{day}] SELL {qty} @ {price:,.2f} ({reason})")


def run_backtest(
    request: BacktestRequest,
    bars: list[Bar],
    indicators: IndicatorBundle | None = None,
) -> BacktestResult:
    """기본 설정 엔진으로 백테스트 실행."""
    return BacktestEngine().run(request, bars, indicators)
