"""
전략 모듈.

[ 전략 등록 방식 ]
    @register("전략이름", "별칭", ...) 데코레이터를 붙이면 STRATEGY_REGISTRY에 자동 등록.
    백테스트 시작 시 이름(대소문자 무시)으로 한 번만 전략 클래스를 찾아 생성한다.

[ 등록된 전략 ]
    ma       (ma_cross)  → 단기/장기 SMA 교차
    rsi                  → RSI 과매도/과매수 임계값
    macd                 → MACD / 시그널 라인 교차
    momentum (ml)        → 20봉 수익률 ±2% 모멘텀

[ 새 전략 추가 방법 ]
    1. 이 디렉토리에 새 .py 파일 생성
    2. TradingStrategy를 상속받아 signal() 구현
    3. @register("이름") 데코레이터 추가
    → 끝. 백테스트 엔진 수정 불필요.
"""

from importlib import import_module
from pathlib import Path
from typing import Any

from quant_system.core.trading_strategy import TradingStrategy

# 전략 이름(별칭 포함) → 전략 클래스 매핑
STRATEGY_REGISTRY: dict[str, type[TradingStrategy]] = {}

# 별칭 → 대표 이름
_CANONICAL: dict[str, str] = {}


def register(name: str, *aliases: str):
    """전략 클래스를 STRATEGY_REGISTRY에 등록하는 데코레이터."""
    def decorator(cls: type[TradingStrategy]):
        for key in (name, *aliases):
            STRATEGY_REGISTRY[key] = cls
            _CANONICAL[key] = name
        return cls
    return decorator


def resolve_strategy_name(name: str | None) -> str | None:
    """입력 이름(대소문자/공백 무시, 별칭 허용) → 대표 이름. 없으면 None."""
    key = (name or "").strip().lower()
    return _CANONICAL.get(key)


def create_strategy(name: str, params: dict[str, Any] | None = None) -> TradingStrategy:
    """이름으로 전략 인스턴스를 생성.

    Args:
        name: 등록된 전략 이름 또는 별칭 (예: "ma", "macd", "ml")
        params: 전략 파라미터 (각 전략의 DEFAULT_PARAMS를 오버라이드)

    Raises:
        ValueError: 등록되지 않은 전략 이름
    """
    canonical = resolve_strategy_name(name)
    if canonical is None:
        available = ", ".join(list_strategies())
        raise ValueError(f"Unknown strategy: '{name}'. Available: {available}")
    return STRATEGY_REGISTRY[canonical](params=params)


def list_strategies() -> list[str]:
    """등록된 대표 전략 이름 목록 반환."""
    return sorted(set(_CANONICAL.values()))


def _auto_discover():
    """이 디렉토리의 모든 전략 모듈을 자동 임포트하여 @register가 실행되게 한다."""
    strategies_dir = Path(__file__).parent
    for py_file in strategies_dir.glob("*.py"):
        if py_file.name.startswith("_"):
            continue
        module_name = f"quant_system.strategies.{py_file.stem}"
        import_module(module_name)


# 모듈 로드 시 자동 탐색
_auto_discover()
