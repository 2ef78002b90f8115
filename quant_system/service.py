"""
퀀트 엔진 서비스 파사드.

[ 역할 ]
    Config 하나로 시세/지표/센티먼트/예측/백테스트/모의투자 컴포넌트를 조립하고
    외부에 노출되는 진입점 7개를 메서드로 제공.

[ 진입점 ]
    get_daily_bars(ticker, start, end)            → list[Bar]
    calculate_indicators(bars)                    → IndicatorBundle
    get_sentiment_snapshot(ticker)                → SentimentSnapshot
    train_and_forecast(request)                   → ForecastResult
    run_backtest(ticker, start, end, request)     → BacktestResult
    place_order(account_id, ticker, side, qty)    → OrderOutcome
    get_portfolio(account_id)                     → Portfolio

[ 시세 원천 선택 ]
    config.market_data.source == "stooq"  → ingestion/stooq.py::fetch_raw_series
    config.market_data.source == "yahoo"  → ingestion/yahoo_finance.py::fetch_raw_series
    source 인자를 직접 넘기면 그것을 사용 (테스트에서 CSV 스텁 주입)

[ 호출하는 곳 ]
    - run_backtest.py (CLI)
    - 외부 HTTP 계층 (이 패키지 범위 밖)
"""

import logging
from datetime import date, timedelta
from functools import partial
from typing import Callable

from quant_system.analysis.indicators import IndicatorBundle
from quant_system.analysis.indicators import calculate_indicators as _calculate_indicators
from quant_system.backtest.engine import BacktestEngine, BacktestRequest
from quant_system.backtest.metrics import BacktestResult
from quant_system.brokers.account_gateway import InMemoryAccountGateway
from quant_system.brokers.paper_broker import PaperTradingLedger
from quant_system.core.broker_api import AccountGateway, AccountId, OrderOutcome
from quant_system.core.data_provider import Bar, RawSeriesSource
from quant_system.data.market_data import MarketDataProvider, utc_today
from quant_system.data.portfolio import Portfolio
from quant_system.data.sentiment import SentimentProvider, SentimentSnapshot
from quant_system.ingestion import stooq, yahoo_finance
from quant_system.ml.forecaster import ForecastModel, ForecastResult, TrainRequest
from quant_system.utils.config import Config

logger = logging.getLogger("quant_system.service")

# 예측 학습에 쓰는 과거 조회 기간 (달력일)
FORECAST_LOOKBACK_DAYS = 3 * 365


def build_source(config: Config) -> RawSeriesSource:
    """설정의 market_data.source에 맞는 원천 함수 생성."""
    md = config.market_data
    if md.source == "stooq":
        return partial(
            stooq.fetch_raw_series,
            base_url=md.base_url,
            timeout=md.timeout_seconds,
            max_retries=md.max_retries,
            retry_delay=md.retry_delay,
        )
    if md.source == "yahoo":
        return partial(
            yahoo_finance.fetch_raw_series,
            timeout=md.timeout_seconds,
            max_retries=md.max_retries,
            retry_delay=md.retry_delay,
        )
    raise ValueError(f"Unknown market data source: '{md.source}'. Available: stooq, yahoo")


class QuantService:
    """컴포넌트 조립 + 진입점.

    사용 예:
        service = QuantService(Config.from_yaml("config.yaml"))
        result = service.run_backtest("AAPL", date(2023, 1, 1), date(2024, 12, 31),
                                      BacktestRequest(strategy="rsi"))
    """

    def __init__(
        self,
        config: Config | None = None,
        source: RawSeriesSource | None = None,
        accounts: AccountGateway | None = None,
        sentiment: SentimentProvider | None = None,
        today: Callable[[], date] | None = None,
    ):
        self.config = config or Config()
        cfg = self.config
        self._today = today or utc_today

        self.market_data = MarketDataProvider(
            source=source or build_source(cfg),
            default_suffix=cfg.market_data.default_suffix,
            price_lookback_days=cfg.market_data.price_lookback_days,
            today=self._today,
        )
        self.sentiment = sentiment or SentimentProvider(
            ttl_seconds=cfg.sentiment.ttl_seconds,
            bucket_seconds=cfg.sentiment.bucket_seconds,
        )
        self.backtest_engine = BacktestEngine(
            min_bars=cfg.backtest.min_bars,
            indicator_params=self._indicator_params(),
        )
        self.forecast_model = ForecastModel(
            min_bars=cfg.forecast.min_bars,
            min_rows=cfg.forecast.min_rows,
        )
        self.accounts = accounts or InMemoryAccountGateway()
        self.ledger = PaperTradingLedger(self.market_data, self.accounts)

    def _indicator_params(self) -> dict:
        ind = self.config.indicators
        return {
            "ma_short": ind.ma_short,
            "ma_long": ind.ma_long,
            "rsi_period": ind.rsi_period,
            "bb_period": ind.bb_period,
            "bb_k": ind.bb_k,
            "macd_fast": ind.macd_fast,
            "macd_slow": ind.macd_slow,
            "macd_signal": ind.macd_signal,
        }

    # ─── 시세 / 지표 / 센티먼트 ──────────────────────────────────────────

    def get_daily_bars(self, ticker: str, start_date: date, end_date: date) -> list[Bar]:
        return self.market_data.get_daily_bars(ticker, start_date, end_date)

    def calculate_indicators(self, bars: list[Bar]) -> IndicatorBundle:
        return _calculate_indicators(bars, **self._indicator_params())

    def get_sentiment_snapshot(self, ticker: str) -> SentimentSnapshot:
        return self.sentiment.get_sentiment_snapshot(ticker)

    # ─── 예측 / 백테스트 ─────────────────────────────────────────────────

    def train_and_forecast(self, request: TrainRequest) -> ForecastResult:
        """최근 약 3년 일봉 + 센티먼트로 학습/예측."""
        req = request.normalized()
        end = self._today()
        start = end - timedelta(days=FORECAST_LOOKBACK_DAYS)

        bars = self.get_daily_bars(req.ticker, start, end)
        indicators = self.calculate_indicators(bars) if bars else None
        sentiment = self.get_sentiment_snapshot(req.ticker)
        return self.forecast_model.train_and_forecast(req, bars, indicators, sentiment)

    def run_backtest(
        self,
        ticker: str,
        start_date: date,
        end_date: date,
        request: BacktestRequest | None = None,
    ) -> BacktestResult:
        """기간 일봉을 받아 백테스트. request가 없으면 config.backtest 값 사용."""
        if request is None:
            bt = self.config.backtest
            request = BacktestRequest(
                strategy=bt.strategy,
                initial_capital=bt.initial_capital,
                position_pct=bt.position_pct,
                stop_loss=bt.stop_loss,
                take_profit=bt.take_profit,
                commission=bt.commission,
                strategy_params=dict(bt.strategy_params),
            )

        bars = self.get_daily_bars(ticker, start_date, end_date)
        indicators = self.calculate_indicators(bars) if bars else None
        return self.backtest_engine.run(request, bars, indicators)

    # ─── 모의투자 ────────────────────────────────────────────────────────

    def place_order(self, account_id: AccountId, ticker: str, side: str, qty: int) -> OrderOutcome:
        return self.ledger.place_order(account_id, ticker, side, qty)

    def get_portfolio(self, account_id: AccountId) -> Portfolio:
        return self.ledger.get_portfolio(account_id)
