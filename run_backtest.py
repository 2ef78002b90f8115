"""
백테스트 / 예측 실행 스크립트 (시스템 진입점).

[ 사용법 ]
    # 기본 실행 (config.yaml의 전략, 첫 번째 티커)
    python run_backtest.py

    # 전략/티커 지정
    python run_backtest.py --strategy rsi --ticker AAPL

    # 파라미터 오버라이드
    python run_backtest.py --strategy rsi -p oversold=25 -p overbought=75
    python run_backtest.py --strategy momentum -p lookback=10 -p threshold=0.03

    # 샘플 데이터로 테스트 (네트워크 없이)
    python run_backtest.py --sample
    python run_backtest.py --strategy macd --sample

    # 여러 전략 비교
    python run_backtest.py --compare ma rsi macd momentum
    python run_backtest.py --compare ma rsi --sample

    # 가격 예측 (선형회귀)
    python run_backtest.py --forecast --ticker MSFT
    python run_backtest.py --forecast --sample

    # 등록된 전략 목록 확인
    python run_backtest.py --list
"""

import argparse
from datetime import date
from pathlib import Path

from quant_system.backtest.engine import BacktestEngine, BacktestRequest
from quant_system.backtest.metrics import BacktestResult
from quant_system.core.data_provider import Bar
from quant_system.data.sample_data import generate_sample_bars
from quant_system.ml.forecaster import ForecastResult, TrainRequest
from quant_system.service import QuantService
from quant_system.strategies import list_strategies
from quant_system.utils.config import Config
from quant_system.utils.logger import setup_logger


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    # 숫자 자동 변환
    try:
        if "." in value:
            return key, float(value)
        return key, int(value)
    except ValueError:
        # bool 변환
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value


def load_bars(service: QuantService, config: Config, ticker: str, sample: bool) -> list[Bar]:
    """일봉 로드. sample이면 랜덤워크 생성."""
    start = date.fromisoformat(config.backtest.start_date)
    end = date.fromisoformat(config.backtest.end_date)

    if sample:
        print("샘플 데이터 생성 중...")
        bars = generate_sample_bars(ticker, start, end)
    else:
        print(f"{config.market_data.source}에서 {ticker} 일봉 조회 중...")
        bars = service.get_daily_bars(ticker, start, end)

    print(f"  {ticker}: {len(bars)}일 데이터")
    return bars


def build_request(config: Config, strategy_name: str, strategy_params: dict) -> BacktestRequest:
    bt = config.backtest
    return BacktestRequest(
        strategy=strategy_name,
        initial_capital=bt.initial_capital,
        position_pct=bt.position_pct,
        stop_loss=bt.stop_loss,
        take_profit=bt.take_profit,
        commission=bt.commission,
        strategy_params=strategy_params,
    )


def print_single_result(result: BacktestResult):
    """단일 전략 결과 출력."""
    print(f"\n[전략: {result.strategy}]")
    print(result.summary())

    if result.is_empty:
        return

    buy_count = sum(1 for t in result.trades if t.side == "BUY")
    sell_count = sum(1 for t in result.trades if t.side == "SELL")
    print(f"  매수: {buy_count}회")
    print(f"  매도: {sell_count}회")
    print(f"  벤치마크(매수 후 보유) 최종: {result.benchmark_value[-1]:,.2f}")

    sells = [t for t in result.trades if t.side == "SELL"]
    if sells:
        print("\n최근 매도 거래 (최대 5건):")
        for t in sells[-5:]:
            print(f"  [{t.date}] {t.qty}주 @ {t.price:,.2f} ({t.reason}) → 현금 {t.cash_after:,.2f}")


def print_comparison(results: dict[str, BacktestResult], ticker: str, config: Config):
    """여러 전략 비교 결과 출력."""
    period = f"{config.backtest.start_date} ~ {config.backtest.end_date}"

    names = list(results.keys())
    col_width = max(14, max(len(n) for n in names) + 2)

    print(f"\n{'=' * (20 + col_width * len(names))}")
    print(f"전략 비교 결과 ({ticker}, {period})")
    print(f"{'=' * (20 + col_width * len(names))}")

    header = f"{'':>20}" + "".join(f"{n:>{col_width}}" for n in names)
    print(header)
    print("-" * len(header))

    rows = [
        ("총 수익률", lambda r: f"{r.total_return_pct:.2f}%"),
        ("연환산 수익률", lambda r: f"{r.annual_return_pct:.2f}%"),
        ("샤프 비율", lambda r: f"{r.sharpe_ratio:.2f}"),
        ("최대 낙폭(MDD)", lambda r: f"{r.max_drawdown_pct:.2f}%"),
        ("총 거래 횟수", lambda r: f"{r.total_trades}"),
        ("승률", lambda r: f"{r.win_rate_pct:.1f}%"),
    ]

    for label, fmt in rows:
        row = f"{label:>20}" + "".join(f"{fmt(results[n]):>{col_width}}" for n in names)
        print(row)

    print(f"{'=' * (20 + col_width * len(names))}")


def print_forecast(result: ForecastResult):
    """예측 결과 출력."""
    print(f"\n[예측: {result.ticker} / {result.model_type}]")
    print(f"비고: {result.note}")
    if result.is_empty:
        return

    print(f"방향 정확도: {result.accuracy:.2%}")
    print(f"MAE: {result.mae:.5f}  RMSE: {result.rmse:.5f}  R²: {result.r2:.4f}")
    print("\n미래 예측:")
    for d, p in zip(result.future_dates, result.future_predictions):
        print(f"  {d}: {p:,.2f}")


def main():
    parser = argparse.ArgumentParser(description="퀀트 백테스트 / 예측 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--strategy", type=str, default=None, help="전략 이름 (config.yaml 대신 지정)")
    parser.add_argument("--ticker", type=str, default=None, help="종목 심볼 (기본: config의 첫 티커)")
    parser.add_argument("-p", "--param", action="append", default=[], help="파라미터 오버라이드 (예: -p oversold=25)")
    parser.add_argument("--sample", action="store_true", help="샘플 데이터로 테스트")
    parser.add_argument("--compare", nargs="+", metavar="STRATEGY", help="여러 전략 비교 (예: --compare ma rsi)")
    parser.add_argument("--forecast", action="store_true", help="선형회귀 가격 예측 실행")
    parser.add_argument("--list", action="store_true", help="등록된 전략 목록 출력")
    args = parser.parse_args()

    # 전략 목록 출력
    if args.list:
        print("등록된 전략:")
        for name in list_strategies():
            print(f"  - {name}")
        return

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_yaml(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()

    setup_logger(level=config.log_level, log_dir=config.log_dir)

    service = QuantService(config)
    ticker = (args.ticker or (config.tickers[0] if config.tickers else "SPY")).upper()

    # ─── 예측 모드 ───────────────────────────────────────────────────────
    if args.forecast:
        fc = config.forecast
        request = TrainRequest(ticker=ticker, model_type=fc.model_type, horizon=fc.horizon, test_size=fc.test_size)
        if args.sample:
            bars = load_bars(service, config, ticker, sample=True)
            sentiment = service.get_sentiment_snapshot(ticker)
            result = service.forecast_model.train_and_forecast(request, bars, None, sentiment)
        else:
            result = service.train_and_forecast(request)
        print_forecast(result)
        return

    # 데이터 로드 (한 번만)
    bars = load_bars(service, config, ticker, args.sample)
    if not bars:
        print("\n오류: 백테스트할 데이터가 없습니다. --sample 옵션으로 샘플 데이터를 사용해 보세요.")
        return

    engine: BacktestEngine = service.backtest_engine
    indicators = service.calculate_indicators(bars)

    # ─── 비교 모드 ───────────────────────────────────────────────────────
    if args.compare:
        print(f"\n{len(args.compare)}개 전략 비교 실행...")
        results = {}
        for name in args.compare:
            print(f"\n--- {name} 실행 중 ---")
            # 비교 모드에서는 config의 params를 기본으로 사용
            request = build_request(config, name, dict(config.backtest.strategy_params))
            result = engine.run(request, bars, indicators)
            if result.is_empty:
                print(f"  [SKIP] {name}: {result.note}")
                continue
            results[name] = result
        if results:
            print_comparison(results, ticker, config)
        return

    # ─── 단일 실행 모드 ─────────────────────────────────────────────────
    strategy_name = args.strategy or config.backtest.strategy
    strategy_params = dict(config.backtest.strategy_params)

    # CLI 파라미터 오버라이드
    for p in args.param:
        key, value = parse_param(p)
        strategy_params[key] = value

    print(f"\n전략: {strategy_name}")
    if args.param:
        print(f"파라미터 오버라이드: {dict(parse_param(p) for p in args.param)}")

    result = engine.run(build_request(config, strategy_name, strategy_params), bars, indicators)
    print_single_result(result)


if __name__ == "__main__":
    main()
