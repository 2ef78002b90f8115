"""Tests for QuantService wiring, using a CSV stub instead of the network."""

from datetime import date, datetime, timezone

import pytest

from conftest import CsvSource
from quant_system.backtest.engine import BacktestRequest
from quant_system.brokers.account_gateway import InMemoryAccountGateway
from quant_system.data.market_data import utc_today
from quant_system.data.sentiment import SentimentProvider
from quant_system.ml.forecaster import NOTE_NOT_ENOUGH_BARS, NOTE_TRAINED, TrainRequest
from quant_system.service import QuantService, build_source
from quant_system.utils.config import Config

TODAY = date(2024, 7, 1)


@pytest.fixture
def service(csv_source) -> QuantService:
    return QuantService(
        Config(),
        source=csv_source,
        accounts=InMemoryAccountGateway(default_balance=50_000.0),
        sentiment=SentimentProvider(clock=lambda: 0.0, wall_clock=lambda: 1_700_000_000.0),
        today=lambda: TODAY,
    )


class TestBuildSource:
    """Tests for source selection from config."""

    @pytest.mark.parametrize("name", ["stooq", "yahoo"])
    def test_known_sources(self, name):
        config = Config()
        config.market_data.source = name
        assert callable(build_source(config))

    def test_unknown_source(self):
        config = Config()
        config.market_data.source = "bloomberg"
        with pytest.raises(ValueError, match="Unknown market data source"):
            build_source(config)


class TestMarketData:
    """Tests for bar and indicator entry points."""

    def test_daily_bars(self, service, csv_source, sample_bars):
        bars = service.get_daily_bars("spy", date(2024, 1, 1), date(2024, 3, 31))
        assert bars
        assert all(b.symbol == "SPY" for b in bars)
        assert bars[0].date >= date(2024, 1, 1)
        assert bars[-1].date <= date(2024, 3, 31)
        assert csv_source.calls[0][0] == "spy.us"

    def test_indicators_use_configured_periods(self, csv_source, sample_bars):
        config = Config()
        config.indicators.ma_short = 5
        svc = QuantService(config, source=csv_source, today=lambda: TODAY)
        bundle = svc.calculate_indicators(sample_bars)
        assert bundle.ma_short[3] is None
        assert bundle.ma_short[4] is not None

    def test_default_today_is_shared_utc_date(self, csv_source):
        svc = QuantService(source=csv_source)
        assert svc._today is utc_today
        assert svc.market_data._today is utc_today
        assert utc_today() == datetime.now(timezone.utc).date()

    def test_upstream_failure_is_empty(self):
        svc = QuantService(source=CsvSource(error=TimeoutError("slow")), today=lambda: TODAY)
        assert svc.get_daily_bars("SPY", date(2024, 1, 1), date(2024, 2, 1)) == []


class TestBacktestAndForecast:
    """Tests for run_backtest() and train_and_forecast() through the service."""

    def test_backtest_with_config_defaults(self, service):
        result = service.run_backtest("SPY", date(2023, 1, 1), date(2024, 6, 30))
        assert result.strategy == "ma"
        assert result.note == "Backtest complete."
        assert len(result.portfolio_value) == len(result.dates) > 0

    def test_backtest_with_request(self, service):
        result = service.run_backtest(
            "SPY", date(2023, 1, 1), date(2024, 6, 30), BacktestRequest(strategy="rsi", initial_capital=5_000),
        )
        assert result.strategy == "rsi"
        assert result.benchmark_value[0] == pytest.approx(5_000.0, rel=0.2)

    def test_backtest_short_range(self, service):
        result = service.run_backtest("SPY", date(2024, 6, 1), date(2024, 6, 28))
        assert result.is_empty
        assert result.note

    def test_unknown_ticker_forecast(self, service):
        result = service.train_and_forecast(TrainRequest(ticker="NOPE"))
        assert result.note == NOTE_NOT_ENOUGH_BARS

    def test_forecast(self, service, csv_source):
        result = service.train_and_forecast(TrainRequest(ticker="spy", horizon=5))
        assert result.note.startswith(NOTE_TRAINED)
        assert result.ticker == "SPY"
        assert len(result.future_predictions) == 5
        _, start, end = csv_source.calls[0]
        assert end == TODAY
        assert (end - start).days == 3 * 365


class TestPaperTrading:
    """Orders priced from the last close of the stubbed series."""

    def test_buy_at_last_close(self, service, sample_bars):
        last_close = sample_bars[-1].close
        outcome = service.place_order("acct", "SPY", "buy", 10)

        assert outcome.success
        assert outcome.price == round(last_close, 2)
        assert service.accounts.get_account_balance("acct") == pytest.approx(50_000.0 - 10 * last_close)

        portfolio = service.get_portfolio("acct")
        assert portfolio.get_position("SPY").qty == 10
        assert portfolio.cash_balance == pytest.approx(50_000.0 - 10 * last_close)

    def test_unknown_ticker_rejected(self, service):
        outcome = service.place_order("acct", "NOPE", "buy", 1)
        assert outcome.error == "Could not fetch market price for NOPE"


class TestSentiment:
    def test_snapshot(self, service):
        snap = service.get_sentiment_snapshot("spy")
        assert snap.ticker == "SPY"
        assert service.get_sentiment_snapshot("SPY") is snap
