"""
가격 예측(ForecastModel) 모듈.

[ 역할 ]
    일봉 + 센티먼트 점수로 선형회귀를 학습하여 horizon일 후 수익률을 예측하고
    테스트 구간 차트 시리즈와 미래 예측값을 돌려준다.

[ 실행 흐름 ]
    train_and_forecast() 호출 시:
        1. 요청 정규화 (빈 티커 → SPY, horizon ≥ 1, test_size ∈ [0.1, 0.5])
        2. 봉이 min_bars(80) 미만이면 note만 담긴 결과 반환
        3. ml/dataset.py로 특성 행 생성 → min_rows(50) 미만이면 note만 반환
        4. 시간순 분할 → 학습 구간으로 정규방정식 적합 (ml/regression.py)
        5. 테스트 구간 지표: 방향 정확도, MAE, RMSE, R²
        6. 테스트 구간 차트: 실제 = close[i+h], 예측 = close[i] * (1 + 예측수익률)
        7. 마지막 봉 특성으로 미래 수익률 예측 → 달력일 +1..+h 에 같은 가격 반복

[ 모델 종류 ]
    "linear_regression" 만 실제 구현. "random_forest"는 같은 선형회귀로 동작하고,
    그 외("lstm" 등)는 선형회귀로 대체하면서 note에 대체 사실을 남긴다.

[ note 꼬리말 ]
    특이 시스템으로 가중치가 모두 0이면 NOTE_SINGULAR,
    상수 특성(보통 요청당 하나인 sentiment)이 빠졌으면 NOTE_CONSTANT_FEATURES.

[ 호출하는 곳 ]
    - service.py::QuantService.train_and_forecast()
    - run_backtest.py --forecast
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from typing import Any

from quant_system.analysis.indicators import IndicatorBundle
from quant_system.core.data_provider import Bar
from quant_system.core.errors import InsufficientDataError
from quant_system.data.sentiment import SentimentSnapshot
from quant_system.ml.dataset import FEATURE_NAMES, FIRST_FEATURE_INDEX, build_dataset, feature_vector
from quant_system.ml.regression import (
    RegressionModel,
    directional_accuracy,
    fit_linear_regression,
    mae,
    r2,
    rmse,
)

logger = logging.getLogger("quant_system.ml")

DEFAULT_MODEL = "linear_regression"
# 이름만 다르고 선형회귀로 동작하는 모델
LINEAR_BACKED_MODELS = frozenset({DEFAULT_MODEL, "random_forest"})
DEFAULT_TICKER = "SPY"
DEFAULT_MIN_BARS = 80
DEFAULT_MIN_ROWS = 50

NOTE_NOT_ENOUGH_BARS = "Not enough market data. Need at least ~80 daily bars."
NOTE_NOT_ENOUGH_ROWS = "Not enough usable training rows after feature building."
NOTE_TRAINED = "Model trained with lightweight linear regression features."
NOTE_SINGULAR = "Normal equations were singular; all weights fell back to zero."
NOTE_CONSTANT_FEATURES = "Constant features held at weight 0 (absorbed by the intercept): {names}."


def _round2(v: float) -> float:
    return round(v, 2)


def _fit_remark(model: RegressionModel) -> str:
    """0 가중치 원인을 note 꼬리말로. 특이 시스템과 상수 특성을 구분한다."""
    if model.is_degenerate:
        return " " + NOTE_SINGULAR
    if model.constant_features:
        names = ", ".join(FEATURE_NAMES[j] for j in model.constant_features)
        return " " + NOTE_CONSTANT_FEATURES.format(names=names)
    return ""


@dataclass
class TrainRequest:
    """예측 요청. normalized()가 기본값/범위를 적용한 사본을 만든다."""
    ticker: str = DEFAULT_TICKER
    model_type: str = DEFAULT_MODEL
    horizon: int = 5
    test_size: float = 0.2

    def normalized(self) -> "TrainRequest":
        ticker = (self.ticker or "").strip().upper() or DEFAULT_TICKER
        model_type = (self.model_type or "").strip().lower() or DEFAULT_MODEL
        return TrainRequest(
            ticker=ticker,
            model_type=model_type,
            horizon=max(1, int(self.horizon)),
            test_size=max(0.1, min(0.5, float(self.test_size))),
        )


@dataclass
class ForecastResult:
    """train_and_forecast()의 반환값."""
    ticker: str
    model_type: str
    accuracy: float = 0.0          # 방향 정확도 [0, 1]
    mae: float = 0.0
    rmse: float = 0.0
    r2: float = 0.0
    dates: list[str] = field(default_factory=list)
    actual: list[float] = field(default_factory=list)
    predicted: list[float] = field(default_factory=list)
    future_dates: list[str] = field(default_factory=list)
    future_predictions: list[float] = field(default_factory=list)
    weights: list[float] = field(default_factory=list)
    note: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.dates

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ForecastModel:
    """선형회귀 기반 가격 예측기."""

    def __init__(self, min_bars: int = DEFAULT_MIN_BARS, min_rows: int = DEFAULT_MIN_ROWS):
        self.min_bars = min_bars
        self.min_rows = min_rows

    def train_and_forecast(
        self,
        request: TrainRequest,
        bars: list[Bar],
        indicators: IndicatorBundle | None = None,
        sentiment: SentimentSnapshot | None = None,
    ) -> ForecastResult:
        """학습 + 평가 + 미래 예측.

        Args:
            request: 예측 요청
            bars: 일봉 리스트
            indicators: 같은 봉으로 계산된 지표 번들 (현재 특성에는 쓰지 않음)
            sentiment: 센티먼트 스냅샷 (없으면 점수 0)

        Returns:
            ForecastResult: 데이터가 부족하면 note만 채워진 결과
        """
        req = request.normalized()
        substitution = ""
        if req.model_type not in LINEAR_BACKED_MODELS:
            substitution = f"Requested model '{req.model_type}' is not available; used linear_regression instead. "
            logger.info(f"[{req.ticker}] {req.model_type} → linear_regression 대체")
            req.model_type = DEFAULT_MODEL

        try:
            return self._fit(req, bars, sentiment, substitution)
        except InsufficientDataError as e:
            logger.info(f"[{req.ticker}] 예측 건너뜀: {e}")
            return ForecastResult(ticker=req.ticker, model_type=req.model_type, note=substitution + str(e))

    def _fit(
        self,
        req: TrainRequest,
        bars: list[Bar],
        sentiment: SentimentSnapshot | None,
        substitution: str,
    ) -> ForecastResult:
        available = len(bars) if bars else 0
        if available < self.min_bars:
            raise InsufficientDataError(NOTE_NOT_ENOUGH_BARS, required=self.min_bars, available=available)

        data = sorted(bars, key=lambda b: b.time)
        close = [b.close for b in data]
        score = sentiment.overall_market_sentiment if sentiment is not None else 0.0

        dataset = build_dataset(close, req.horizon, score)
        if len(dataset) < self.min_rows:
            raise InsufficientDataError(NOTE_NOT_ENOUGH_ROWS, required=self.min_rows, available=len(dataset))

        train, test = dataset.time_split(req.test_size)
        model = fit_linear_regression(train.X, train.y)
        y_pred = model.predict(test.X)
        y_true = test.y

        result = ForecastResult(
            ticker=req.ticker,
            model_type=req.model_type,
            accuracy=directional_accuracy(y_true, y_pred),
            mae=mae(y_true, y_pred),
            rmse=rmse(y_true, y_pred),
            r2=r2(y_true, y_pred),
            weights=list(model.weights),
        )

        for idx, pred in zip(test.bar_indices, y_pred):
            base = close[idx]
            result.dates.append(data[idx].date.isoformat())
            result.actual.append(_round2(close[idx + req.horizon]))
            result.predicted.append(_round2(base * (1.0 + float(pred))))

        last = len(close) - 1
        if last >= FIRST_FEATURE_INDEX:
            future_return = model.predict_one(feature_vector(close, last, score))
            future_price = _round2(close[last] * (1.0 + future_return))
            last_date = data[last].date
            for d in range(1, req.horizon + 1):
                result.future_dates.append((last_date + timedelta(days=d)).isoformat())
                result.future_predictions.append(future_price)

        result.note = substitution + NOTE_TRAINED + _fit_remark(model)
        logger.info(
            f"[{req.ticker}] 예측 완료: 학습 {len(train)}행 / 테스트 {len(test)}행, "
            f"방향정확도 {result.accuracy:.2%}, R² {result.r2:.4f}"
        )
        return result


def train_and_forecast(
    request: TrainRequest,
    bars: list[Bar],
    indicators: IndicatorBundle | None = None,
    sentiment: SentimentSnapshot | None = None,
) -> ForecastResult:
    """기본 설정 모델로 예측 실행."""
    return ForecastModel().train_and_forecast(request, bars, indicators, sentiment)
