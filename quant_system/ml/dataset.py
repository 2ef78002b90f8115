"""
지도학습 데이터셋 구성 모듈.

[ 역할 ]
    종가 시리즈 + 센티먼트 점수로 (특성 5개, 목표 수익률) 행을 만들고
    시간 순서 그대로(셔플 없음) 학습/테스트로 나눈다.

[ 특성 (인덱스 i 기준) ]
    r1    = close[i] / close[i-1]  - 1
    r5    = close[i] / close[i-5]  - 1
    r20   = close[i] / close[i-20] - 1
    vol10 = 일별 수익률 표본표준편차 (i-10 ~ i 구간)
    sent  = 센티먼트 overall 점수 (모든 행에 같은 값)

[ 목표 ]
    close[i + horizon] / close[i] - 1

[ 호출하는 곳 ]
    - ml/forecaster.py::ForecastModel.train_and_forecast()
"""

from dataclasses import dataclass

import numpy as np

FEATURE_NAMES = ("ret_1", "ret_5", "ret_20", "vol_10", "sentiment")
FIRST_FEATURE_INDEX = 30
MIN_SPLIT_ROWS = 10


@dataclass(frozen=True)
class TrainingExample:
    features: tuple[float, ...]
    target: float
    bar_index: int


@dataclass
class TrainingDataset:
    """시간순 학습 행 모음."""
    examples: list[TrainingExample]

    def __len__(self) -> int:
        return len(self.examples)

    @property
    def X(self) -> np.ndarray:
        if not self.examples:
            return np.empty((0, len(FEATURE_NAMES)))
        return np.array([e.features for e in self.examples], dtype=float)

    @property
    def y(self) -> np.ndarray:
        return np.array([e.target for e in self.examples], dtype=float)

    @property
    def bar_indices(self) -> list[int]:
        return [e.bar_index for e in self.examples]

    def split_index(self, test_size: float) -> int:
        """학습/테스트 경계. 양쪽 모두 최소 MIN_SPLIT_ROWS 행을 남긴다."""
        n = len(self.examples)
        split = int(np.floor(n * (1.0 - test_size)))
        return max(MIN_SPLIT_ROWS, min(split, n - MIN_SPLIT_ROWS))

    def time_split(self, test_size: float) -> tuple["TrainingDataset", "TrainingDataset"]:
        split = self.split_index(test_size)
        return TrainingDataset(self.examples[:split]), TrainingDataset(self.examples[split:])


def std_dev_returns(close: list[float], start: int, end_inclusive: int) -> float:
    """close[start..end] 구간 일별 수익률의 표본표준편차. 수익률이 2개 미만이면 0."""
    start = max(1, start)
    end_inclusive = min(end_inclusive, len(close) - 1)
    if end_inclusive - start < 2:
        return 0.0

    rets = [
        close[i] / close[i - 1] - 1.0
        for i in range(start, end_inclusive + 1)
        if close[i] > 0 and close[i - 1] > 0
    ]
    if len(rets) < 2:
        return 0.0
    return float(np.std(rets, ddof=1))


def feature_vector(close: list[float], i: int, sentiment: float) -> tuple[float, ...]:
    """인덱스 i 시점의 특성 5개. i ≥ 20 이어야 한다."""
    return (
        close[i] / close[i - 1] - 1.0,
        close[i] / close[i - 5] - 1.0,
        close[i] / close[i - 20] - 1.0,
        std_dev_returns(close, i - 10, i),
        sentiment,
    )


def build_dataset(close: list[float], horizon: int, sentiment: float = 0.0) -> TrainingDataset:
    """i = 30 .. len-horizon-1 에 대해 학습 행 생성."""
    examples = []
    for i in range(FIRST_FEATURE_INDEX, len(close) - horizon):
        if close[i] <= 0 or close[i - 1] <= 0:
            continue
        examples.append(TrainingExample(
            features=feature_vector(close, i, sentiment),
            target=close[i + horizon] / close[i] - 1.0,
            bar_index=i,
        ))
    return TrainingDataset(examples)
