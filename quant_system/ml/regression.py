"""
폐쇄형(closed-form) 선형회귀 모듈.

[ 역할 ]
    정규방정식 w = (XᵀX)⁻¹Xᵀy 를 부분 피벗팅 가우스 소거로 풀어 가중치를 구한다.
    가중치 벡터 길이 = 특성 수 + 1 (절편이 w[0]). 상수 특성 열은 가중치 0.
    시스템이 수치적으로 특이(피벗 < 1e-12)하면 실패 대신 0 벡터를 반환.

[ 평가 지표 ]
    mae, rmse, r2 (목표 분산 ~0 이면 0), directional_accuracy (0은 비음수로 취급)

[ 호출하는 곳 ]
    - ml/forecaster.py::ForecastModel
"""

import logging
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger("quant_system.ml")

PIVOT_EPSILON = 1e-12


@dataclass(frozen=True)
class RegressionModel:
    """학습된 선형회귀. weights[0]은 절편.

    constant_features: 적합에서 빠진 상수 특성 열 번호 (가중치 0, 절편이 흡수).
    """
    weights: tuple[float, ...]
    constant_features: tuple[int, ...] = ()

    @property
    def n_features(self) -> int:
        return len(self.weights) - 1

    @property
    def is_degenerate(self) -> bool:
        return all(w == 0.0 for w in self.weights)

    def predict_one(self, features) -> float:
        w = self.weights
        return float(w[0] + sum(wi * xi for wi, xi in zip(w[1:], features)))

    def predict(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=float)
        if X.size == 0:
            return np.empty(0)
        w = np.asarray(self.weights, dtype=float)
        return w[0] + X @ w[1:]


def solve_gaussian(A: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Ax = b 를 부분 피벗팅 가우스 소거로 풀이. 특이하면 0 벡터."""
    M = np.array(A, dtype=float, copy=True)
    B = np.array(b, dtype=float, copy=True)
    n = len(B)

    for k in range(n):
        pivot = k + int(np.argmax(np.abs(M[k:, k])))
        if abs(M[pivot, k]) < PIVOT_EPSILON:
            logger.warning("Singular normal equations; falling back to zero weights")
            return np.zeros(n)

        if pivot != k:
            M[[k, pivot]] = M[[pivot, k]]
            B[[k, pivot]] = B[[pivot, k]]

        for i in range(k + 1, n):
            f = M[i, k] / M[k, k]
            B[i] -= f * B[k]
            M[i, k:] -= f * M[k, k:]

    x = np.zeros(n)
    for i in range(n - 1, -1, -1):
        x[i] = (B[i] - M[i, i + 1:] @ x[i + 1:]) / M[i, i]
    return x


def fit_linear_regression(X: np.ndarray, y: np.ndarray) -> RegressionModel:
    """절편 포함 최소제곱 적합.

    상수 특성 열(예: 요청마다 하나뿐인 센티먼트 점수)은 절편과 겹치므로
    방정식에서 빼고 가중치 0으로 둔다.
    """
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float)
    if X.ndim != 2 or len(X) == 0:
        raise ValueError("fit_linear_regression requires a non-empty 2-D feature matrix")

    active = np.ptp(X, axis=0) > PIVOT_EPSILON
    if not active.all():
        logger.debug(f"Constant feature columns folded into intercept: {np.flatnonzero(~active).tolist()}")

    Xb = np.column_stack([np.ones(len(X)), X[:, active]])
    solved = solve_gaussian(Xb.T @ Xb, Xb.T @ y)

    weights = np.zeros(X.shape[1] + 1)
    if np.any(solved != 0.0):
        weights[0] = solved[0]
        weights[1:][active] = solved[1:]
    return RegressionModel(
        weights=tuple(float(w) for w in weights),
        constant_features=tuple(int(j) for j in np.flatnonzero(~active)),
    )


# ─── 평가 지표 ──────────────────────────────────────────────────────────────

def mae(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true, y_pred = np.asarray(y_true, dtype=float), np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        return 0.0
    return float(np.mean(np.abs(y_true - y_pred)))


def rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true, y_pred = np.asarray(y_true, dtype=float), np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        return 0.0
    return float(np.sqrt(np.mean((y_true - y_pred) ** 2)))


def r2(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    y_true, y_pred = np.asarray(y_true, dtype=float), np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        return 0.0
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    ss_res = float(np.sum((y_true - y_pred) ** 2))
    if ss_tot < 1e-12:
        return 0.0
    return 1.0 - ss_res / ss_tot


def directional_accuracy(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """예측/실제 수익률 부호 일치 비율 (0 이상을 상승으로 본다)."""
    y_true, y_pred = np.asarray(y_true, dtype=float), np.asarray(y_pred, dtype=float)
    if y_true.size == 0:
        return 0.0
    return float(np.mean((y_true >= 0) == (y_pred >= 0)))
