"""Tests for the feature builder, closed-form regression and forecast model."""

from datetime import date, timedelta

import numpy as np
import pytest

from quant_system.data.sample_data import generate_sample_bars, trend_bars
from quant_system.data.sentiment import SentimentSnapshot
from quant_system.ml.dataset import build_dataset, std_dev_returns
from quant_system.ml.forecaster import (
    NOTE_NOT_ENOUGH_BARS,
    NOTE_NOT_ENOUGH_ROWS,
    NOTE_SINGULAR,
    NOTE_TRAINED,
    ForecastModel,
    TrainRequest,
    train_and_forecast,
)
from quant_system.ml.regression import (
    directional_accuracy,
    fit_linear_regression,
    mae,
    r2,
    rmse,
    solve_gaussian,
)


class TestDataset:
    """Tests for feature rows and the time-ordered split."""

    def test_row_count(self):
        closes = [100.0 + i for i in range(100)]
        dataset = build_dataset(closes, horizon=5)
        # i = 30 .. 94
        assert len(dataset) == 65
        assert dataset.bar_indices[0] == 30
        assert dataset.bar_indices[-1] == 94

    def test_feature_values(self):
        closes = [100.0 + i for i in range(60)]
        first = build_dataset(closes, horizon=1, sentiment=0.25).examples[0]
        r1, r5, r20, vol10, sent = first.features
        assert r1 == pytest.approx(130.0 / 129.0 - 1)
        assert r5 == pytest.approx(130.0 / 125.0 - 1)
        assert r20 == pytest.approx(130.0 / 110.0 - 1)
        assert vol10 > 0
        assert sent == 0.25
        assert first.target == pytest.approx(131.0 / 130.0 - 1)

    def test_split_keeps_order_and_minimums(self):
        dataset = build_dataset([100.0 + i for i in range(100)], horizon=5)
        train, test = dataset.time_split(0.5)
        assert len(train) == 32
        assert len(test) == 33
        assert train.bar_indices[-1] < test.bar_indices[0]

    def test_split_clamped(self):
        dataset = build_dataset([100.0 + i for i in range(75)], horizon=5)
        # 40 rows; 0.9 would leave 4 for training
        assert dataset.split_index(0.9) == 10
        assert dataset.split_index(0.0) == 30

    def test_std_dev_returns(self):
        assert std_dev_returns([100.0] * 20, 5, 15) == 0.0
        assert std_dev_returns([100.0, 101.0, 102.0], 1, 2) == 0.0
        closes = [100.0, 110.0, 99.0, 108.9]
        rets = [0.1, -0.1, 0.1]
        assert std_dev_returns(closes, 1, 3) == pytest.approx(float(np.std(rets, ddof=1)))


class TestRegression:
    """Tests for normal-equation least squares."""

    def test_recovers_linear_function(self):
        rng = np.random.default_rng(0)
        X = rng.normal(size=(200, 3))
        y = 0.5 + 2.0 * X[:, 0] - 3.0 * X[:, 1] + 0.25 * X[:, 2]
        model = fit_linear_regression(X, y)
        assert model.weights == pytest.approx((0.5, 2.0, -3.0, 0.25), abs=1e-8)
        assert r2(y, model.predict(X)) == pytest.approx(1.0)

    def test_singular_gives_zero_vector(self):
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        assert solve_gaussian(A, np.array([1.0, 2.0])).tolist() == [0.0, 0.0]

    def test_degenerate_model(self):
        model = fit_linear_regression(np.zeros((5, 2)), np.zeros(5))
        assert model.weights == (0.0, 0.0, 0.0)
        assert model.is_degenerate

    def test_constant_column_folded_into_intercept(self):
        rng = np.random.default_rng(2)
        x = rng.normal(size=50)
        X = np.column_stack([x, np.full(50, 0.3)])
        model = fit_linear_regression(X, 1.0 + 4.0 * x)
        assert model.weights == pytest.approx((1.0, 4.0, 0.0), abs=1e-8)
        assert model.constant_features == (1,)

    def test_all_constant_features_predict_mean(self):
        y = np.arange(20, dtype=float)
        model = fit_linear_regression(np.zeros((20, 3)), y)
        assert model.weights == pytest.approx((9.5, 0.0, 0.0, 0.0))

    def test_partial_pivoting(self):
        A = np.array([[0.0, 1.0], [1.0, 1.0]])
        b = np.array([2.0, 3.0])
        assert solve_gaussian(A, b) == pytest.approx([1.0, 2.0])

    def test_predict_one_matches_predict(self):
        rng = np.random.default_rng(1)
        X = rng.normal(size=(30, 2))
        y = X[:, 0] + rng.normal(scale=0.1, size=30)
        model = fit_linear_regression(X, y)
        assert model.predict_one(X[3]) == pytest.approx(model.predict(X)[3])


class TestMetrics:
    """Tests for evaluation metrics."""

    def test_errors(self):
        y = np.array([1.0, -1.0, 2.0])
        p = np.array([2.0, -1.0, 0.0])
        assert mae(y, p) == pytest.approx(1.0)
        assert rmse(y, p) == pytest.approx(np.sqrt(5.0 / 3.0))

    def test_r2_constant_target_is_zero(self):
        assert r2(np.ones(5), np.zeros(5)) == 0.0

    def test_directional_accuracy_zero_counts_as_up(self):
        y = np.array([0.0, 0.1, -0.1, -0.2])
        p = np.array([0.05, -0.1, -0.3, 0.0])
        assert directional_accuracy(y, p) == pytest.approx(0.5)

    def test_empty(self):
        empty = np.array([])
        assert mae(empty, empty) == 0.0
        assert directional_accuracy(empty, empty) == 0.0


@pytest.fixture
def long_bars():
    return generate_sample_bars("SPY", date(2022, 1, 3), date(2024, 6, 28), seed=11)


class TestForecastModel:
    """Tests for ForecastModel.train_and_forecast()."""

    def test_not_enough_bars(self):
        bars = trend_bars("X", [100.0 + i for i in range(79)])
        result = train_and_forecast(TrainRequest(ticker="X"), bars)
        assert result.note == NOTE_NOT_ENOUGH_BARS
        assert result.is_empty
        assert result.future_predictions == []

    def test_not_enough_rows(self):
        bars = trend_bars("X", [100.0 + i for i in range(100)])
        result = train_and_forecast(TrainRequest(ticker="X", horizon=60), bars)
        assert result.note == NOTE_NOT_ENOUGH_ROWS

    def test_full_result(self, long_bars):
        snap = SentimentSnapshot(ticker="SPY", generated_at="", overall_market_sentiment=0.3)
        result = ForecastModel().train_and_forecast(TrainRequest(ticker="spy", horizon=5), long_bars, None, snap)

        assert result.ticker == "SPY"
        assert result.model_type == "linear_regression"
        assert result.note.startswith(NOTE_TRAINED)
        assert len(result.dates) == len(result.actual) == len(result.predicted) > 0
        assert len(result.weights) == 6
        assert 0.0 <= result.accuracy <= 1.0
        assert result.mae >= 0 and result.rmse >= result.mae

    def test_future_forecast(self, long_bars):
        result = train_and_forecast(TrainRequest(ticker="SPY", horizon=3), long_bars)
        last = long_bars[-1].date
        assert result.future_dates == [(last + timedelta(days=d)).isoformat() for d in (1, 2, 3)]
        assert len(set(result.future_predictions)) == 1

    def test_actual_series_is_shifted_close(self, long_bars):
        horizon = 5
        result = train_and_forecast(TrainRequest(ticker="SPY", horizon=horizon), long_bars)
        by_date = {b.date.isoformat(): i for i, b in enumerate(long_bars)}
        idx = by_date[result.dates[0]]
        assert result.actual[0] == round(long_bars[idx + horizon].close, 2)

    def test_lstm_substituted(self, long_bars):
        result = train_and_forecast(TrainRequest(ticker="SPY", model_type="LSTM"), long_bars)
        assert result.model_type == "linear_regression"
        assert "lstm" in result.note
        assert NOTE_TRAINED in result.note

    def test_random_forest_runs_as_linear(self, long_bars):
        result = train_and_forecast(TrainRequest(ticker="SPY", model_type="random_forest"), long_bars)
        assert result.model_type == "random_forest"
        assert result.note.startswith(NOTE_TRAINED)

    def test_request_normalization(self):
        req = TrainRequest(ticker="  ", model_type="", horizon=0, test_size=0.9).normalized()
        assert req.ticker == "SPY"
        assert req.model_type == "linear_regression"
        assert req.horizon == 1
        assert req.test_size == 0.5

    def test_deterministic(self, long_bars):
        a = train_and_forecast(TrainRequest(ticker="SPY"), long_bars)
        b = train_and_forecast(TrainRequest(ticker="SPY"), long_bars)
        assert a.weights == b.weights
        assert a.predicted == b.predicted

    def test_note_names_constant_sentiment(self, long_bars):
        snap = SentimentSnapshot(ticker="SPY", generated_at="", overall_market_sentiment=0.0)
        result = ForecastModel().train_and_forecast(TrainRequest(ticker="SPY"), long_bars, None, snap)
        assert result.note.startswith(NOTE_TRAINED)
        assert "absorbed by the intercept" in result.note
        assert "sentiment" in result.note
        assert result.weights[-1] == 0.0
        assert any(w != 0.0 for w in result.weights)

    def test_note_flags_all_zero_weights(self):
        bars = trend_bars("FLAT", [100.0] * 100)
        result = train_and_forecast(TrainRequest(ticker="FLAT"), bars)
        assert result.note.endswith(NOTE_SINGULAR)
        assert all(w == 0.0 for w in result.weights)
