"""Tests for the strategy registry and built-in strategies."""

import pytest

from quant_system.analysis.indicators import IndicatorBundle, calculate_indicators
from quant_system.core.trading_strategy import SignalType
from quant_system.data.sample_data import trend_bars
from quant_system.strategies import (
    create_strategy,
    list_strategies,
    resolve_strategy_name,
)
from quant_system.strategies.ma_cross_strategy import MACrossStrategy
from quant_system.strategies.momentum_strategy import MomentumStrategy
from quant_system.strategies.rsi_strategy import RSIStrategy


class TestRegistry:
    """Tests for name/alias resolution."""

    def test_canonical_names(self):
        assert list_strategies() == ["ma", "macd", "momentum", "rsi"]

    @pytest.mark.parametrize("name, expected", [
        ("ma", "ma"),
        ("MA_CROSS", "ma"),
        (" Rsi ", "rsi"),
        ("macd", "macd"),
        ("ML", "momentum"),
        ("momentum", "momentum"),
    ])
    def test_aliases_case_insensitive(self, name, expected):
        assert resolve_strategy_name(name) == expected

    def test_unknown_name(self):
        assert resolve_strategy_name("split_buy") is None
        with pytest.raises(ValueError, match="Unknown strategy"):
            create_strategy("split_buy")

    def test_create_with_params(self):
        strategy = create_strategy("rsi", params={"oversold": 25})
        assert isinstance(strategy, RSIStrategy)
        assert strategy.oversold == 25.0
        assert strategy.overbought == 70.0


class TestMACross:
    """Tests for MACrossStrategy."""

    def test_delegates_to_crossover(self):
        bundle = IndicatorBundle(ma_short=[1.0, 3.0, 1.0], ma_long=[2.0, 2.0, 2.0])
        strategy = MACrossStrategy()
        assert strategy.signal(1, [], bundle) == SignalType.BUY
        assert strategy.signal(2, [], bundle) == SignalType.SELL


class TestRSIStrategy:
    """Tests for RSIStrategy thresholds."""

    def test_custom_thresholds(self):
        bundle = IndicatorBundle(rsi=[None, 28.0, 72.0])
        strategy = RSIStrategy(params={"oversold": 25, "overbought": 75})
        assert strategy.signal(0, [], bundle) == SignalType.HOLD
        assert strategy.signal(1, [], bundle) == SignalType.HOLD
        assert strategy.signal(2, [], bundle) == SignalType.HOLD

        default = RSIStrategy()
        assert default.signal(1, [], bundle) == SignalType.BUY
        assert default.signal(2, [], bundle) == SignalType.SELL


class TestMomentum:
    """Tests for MomentumStrategy."""

    def test_warmup_is_hold(self):
        bars = trend_bars("X", [100.0] * 25)
        strategy = MomentumStrategy()
        assert strategy.signal(19, bars, calculate_indicators(bars)) == SignalType.HOLD

    def test_buy_and_sell(self):
        up = trend_bars("X", [100.0] * 20 + [103.0])
        down = trend_bars("X", [100.0] * 20 + [97.0])
        flat = trend_bars("X", [100.0] * 20 + [101.0])
        strategy = MomentumStrategy()
        assert strategy.signal(20, up, IndicatorBundle()) == SignalType.BUY
        assert strategy.signal(20, down, IndicatorBundle()) == SignalType.SELL
        assert strategy.signal(20, flat, IndicatorBundle()) == SignalType.HOLD

    def test_custom_lookback(self):
        bars = trend_bars("X", [100.0, 100.0, 110.0])
        strategy = MomentumStrategy(params={"lookback": 2, "threshold": 0.05})
        assert strategy.signal(2, bars, IndicatorBundle()) == SignalType.BUY
