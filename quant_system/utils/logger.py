"""
로깅 모듈.

[ 역할 ]
    "quant_system" 루트 로거에 파일 + 콘솔 핸들러를 붙인다.
    하위 로거(quant_system.backtest, .market_data, .sentiment, .ml, .paper, .service)는
    핸들러 없이 루트로 전파만 한다.

[ 로그 파일 위치 ]
    {log_dir}/{name}_{YYYYMMDD}.log (예: logs/quant_system_20240601.log)
    log_dir=None 이면 콘솔만.

[ 외부 라이브러리 로그 ]
    requests/urllib3, yfinance 의 재시도/디버그 메시지는 WARNING 이상만 남긴다.

[ 호출하는 곳 ]
    - run_backtest.py에서 setup_logger(config.log_level, config.log_dir)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NOISY_LOGGERS = ("urllib3", "requests", "yfinance", "peewee")


def _daily_log_file(log_dir: str | Path, name: str) -> Path:
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)
    return log_path / f"{name}_{datetime.now().strftime('%Y%m%d')}.log"


def setup_logger(
    name: str = "quant_system",
    level: str = "INFO",
    log_dir: str | Path | None = "logs",
    console: bool = True,
) -> logging.Logger:
    """로거 설정. 이미 설정된 로거면 레벨만 갱신하고 핸들러는 다시 붙이지 않는다."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir:
        file_handler = logging.FileHandler(_daily_log_file(log_dir, name), encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
