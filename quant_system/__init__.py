"""
=============================================================================
퀀트 분석 엔진 (Quant System)
=============================================================================

[ 시스템 전체 구조 ]

    run_backtest.py (CLI 진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드
         ├── utils/logger.py        ← 로깅
         │
         └── service.py::QuantService  ← 컴포넌트 조립 + 진입점 7개
               │
               ├── data/market_data.py     ← 일봉 조회 (ingestion/stooq.py, yahoo_finance.py)
               ├── analysis/indicators.py  ← SMA/EMA/RSI/볼린저/MACD + 최신 시그널
               ├── data/sentiment.py       ← 결정적 센티먼트 스냅샷 (TTL 캐시)
               ├── ml/forecaster.py        ← 선형회귀 수익률 예측
               ├── backtest/engine.py      ← 단일 종목 백테스트
               │     ├── strategies/       ← ma / rsi / macd / momentum
               │     └── backtest/metrics.py
               └── brokers/paper_broker.py ← 계좌별 모의투자 원장
                     ├── data/portfolio.py
                     └── brokers/account_gateway.py (외부 잔고 in-memory 구현)


[ 핵심 추상 클래스 (core/) ]

    core/data_provider.py    → data/market_data.py::MarketDataProvider
    core/trading_strategy.py → strategies/*_strategy.py
    core/broker_api.py       → brokers/account_gateway.py::InMemoryAccountGateway
    core/errors.py           → 진입점에서 note / OrderOutcome으로 변환되는 예외 계층


[ 데이터 흐름 ]

    1. MarketDataProvider가 CSV 원천에서 일봉(Bar) 리스트 제공
    2. 지표 번들 계산 → 백테스트 엔진 / 예측 모델이 각각 소비
    3. 센티먼트 점수는 예측 모델 특성으로만 사용
    4. 모의투자 원장은 최신가 조회 + 외부 잔고만 사용
"""

__version__ = "0.1.0"
