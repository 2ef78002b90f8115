"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    시세 원천, 지표 기간, 백테스트/예측 기본값, 센티먼트 캐시, 로깅 설정을 통합 관리.

[ 설정 파일 구조 (config.yaml) ]
    market_data:      → MarketDataConfig (원천, 타임아웃, 재시도)
    indicators:       → IndicatorConfig (MA/RSI/BB/MACD 기간)
    backtest:         → BacktestConfig (전략, 초기자금, 손절/익절, 수수료)
    forecast:         → ForecastConfig (모델 종류, 예측 기간, 테스트 비율)
    sentiment:        → SentimentConfig (캐시 TTL, 시드 시간 버킷)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_backtest.py에서 Config.from_yaml()로 로드
    - service.py::QuantService가 각 컴포넌트 생성 시 섹션 값을 사용
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class MarketDataConfig:
    """시세 원천 설정. config.yaml의 market_data 섹션에 대응."""
    source: str = "stooq"                 # "stooq" 또는 "yahoo"
    base_url: str = "https://stooq.com/q/d/l/"
    default_suffix: str = ".us"           # 접미사 없는 심볼에 붙일 시장 코드
    timeout_seconds: float = 10.0
    max_retries: int = 2
    retry_delay: float = 1.0
    price_lookback_days: int = 30         # 최신가 조회 시 가져올 기간


@dataclass
class IndicatorConfig:
    """지표 기간 설정. config.yaml의 indicators 섹션에 대응."""
    ma_short: int = 20
    ma_long: int = 50
    rsi_period: int = 14
    bb_period: int = 20
    bb_k: float = 2.0
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9


@dataclass
class BacktestConfig:
    """백테스트 설정. config.yaml의 backtest 섹션에 대응."""
    strategy: str = "ma"
    start_date: str = "2023-01-01"
    end_date: str = "2024-12-31"
    initial_capital: float = 10_000.0
    position_pct: float = 1.0     # 1회 매수 시 현금 대비 비율
    stop_loss: float = 0.0        # 0이면 비활성 (예: 0.05 = -5%)
    take_profit: float = 0.0      # 0이면 비활성 (예: 0.10 = +10%)
    commission: float = 0.0       # 체결금액 대비 비율
    min_bars: int = 60
    strategy_params: dict[str, Any] = field(default_factory=dict)   # 전략 DEFAULT_PARAMS 오버라이드


@dataclass
class ForecastConfig:
    """예측 모델 설정. config.yaml의 forecast 섹션에 대응."""
    model_type: str = "linear_regression"
    horizon: int = 5
    test_size: float = 0.2
    min_bars: int = 80
    min_rows: int = 50


@dataclass
class SentimentConfig:
    """센티먼트 설정. config.yaml의 sentiment 섹션에 대응."""
    ttl_seconds: float = 60.0
    bucket_seconds: int = 300     # 시드가 바뀌는 시간 간격 (약 5분)


def _section(cls, data: dict[str, Any] | None):
    """알려진 필드만 골라 섹션 dataclass 생성."""
    data = data or {}
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    market_data: MarketDataConfig = field(default_factory=MarketDataConfig)
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    sentiment: SentimentConfig = field(default_factory=SentimentConfig)
    tickers: list[str] = field(default_factory=list)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls._from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성. 누락된 섹션은 기본값."""
        return cls(
            market_data=_section(MarketDataConfig, data.get("market_data")),
            indicators=_section(IndicatorConfig, data.get("indicators")),
            backtest=_section(BacktestConfig, data.get("backtest")),
            forecast=_section(ForecastConfig, data.get("forecast")),
            sentiment=_section(SentimentConfig, data.get("sentiment")),
            tickers=list(data.get("tickers", [])),
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)
