"""Tests for Config loading and saving, and logger setup."""

import json
import logging
from pathlib import Path

from quant_system.utils.config import Config
from quant_system.utils.logger import setup_logger

REPO_CONFIG = Path(__file__).resolve().parent.parent / "config.yaml"


class TestDefaults:
    """Tests for built-in defaults."""

    def test_sections(self):
        config = Config()
        assert config.market_data.source == "stooq"
        assert config.indicators.ma_short == 20
        assert config.indicators.ma_long == 50
        assert config.backtest.min_bars == 60
        assert config.backtest.strategy_params == {}
        assert config.forecast.model_type == "linear_regression"
        assert config.forecast.min_bars == 80
        assert config.sentiment.bucket_seconds == 300
        assert config.log_level == "INFO"

    def test_repo_config_matches_defaults(self):
        config = Config.from_yaml(REPO_CONFIG)
        assert config.backtest == Config().backtest
        assert config.forecast == Config().forecast
        assert config.tickers == ["SPY", "AAPL", "MSFT"]


class TestLoading:
    """Tests for from_yaml() / from_json()."""

    def test_partial_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "backtest:\n"
            "  strategy: rsi\n"
            "  stop_loss: 0.05\n"
            "  strategy_params:\n"
            "    oversold: 25\n"
            "log_level: DEBUG\n",
            encoding="utf-8",
        )
        config = Config.from_yaml(path)

        assert config.backtest.strategy == "rsi"
        assert config.backtest.stop_loss == 0.05
        assert config.backtest.strategy_params == {"oversold": 25}
        assert config.backtest.initial_capital == 10_000.0
        assert config.indicators.rsi_period == 14
        assert config.log_level == "DEBUG"

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert Config.from_yaml(path) == Config()

    def test_unknown_keys_ignored(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("indicators:\n  ma_short: 5\n  vwap_period: 9\nclickhouse:\n  host: x\n", encoding="utf-8")
        config = Config.from_yaml(path)
        assert config.indicators.ma_short == 5
        assert not hasattr(config.indicators, "vwap_period")

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"forecast": {"horizon": 10}, "tickers": ["QQQ"]}), encoding="utf-8")
        config = Config.from_json(path)
        assert config.forecast.horizon == 10
        assert config.tickers == ["QQQ"]

    def test_save_round_trip(self, tmp_path):
        config = Config()
        config.market_data.source = "yahoo"
        config.backtest.strategy_params = {"lookback": 10}
        path = tmp_path / "nested" / "out.yaml"

        config.save_yaml(path)
        assert Config.from_yaml(path) == config


class TestLogger:
    """Tests for setup_logger()."""

    def test_file_and_console_handlers(self, tmp_path):
        logger = setup_logger("quant_system_test_file", level="debug", log_dir=tmp_path / "logs")
        try:
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2
            assert list((tmp_path / "logs").glob("quant_system_test_file_*.log"))
            assert logging.getLogger("urllib3").level == logging.WARNING
        finally:
            for handler in list(logger.handlers):
                handler.close()
                logger.removeHandler(handler)

    def test_console_only_and_idempotent(self):
        logger = setup_logger("quant_system_test_console", log_dir=None)
        try:
            again = setup_logger("quant_system_test_console", level="WARNING", log_dir=None)
            assert again is logger
            assert len(logger.handlers) == 1
            assert logger.level == logging.WARNING
        finally:
            for handler in list(logger.handlers):
                logger.removeHandler(handler)
