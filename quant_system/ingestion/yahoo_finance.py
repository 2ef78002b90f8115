"""
Yahoo Finance 데이터 수집 모듈

Stooq 대신 사용할 수 있는 대체 원천. yfinance 결과 DataFrame을
"date,open,high,low,close,volume" CSV 텍스트로 바꿔서 돌려주므로
MarketDataProvider는 원천 종류와 관계없이 같은 파서를 쓴다.
"""
import logging
import time
from datetime import date, timedelta

import pandas as pd
import yfinance as yf

from quant_system.core.errors import UpstreamFetchError

logger = logging.getLogger("quant_system.market_data")


def to_yahoo_symbol(ticker: str) -> str:
    """정규화된 심볼(예: 'aapl.us') → Yahoo 심볼(예: 'AAPL')."""
    t = ticker.strip()
    if t.lower().endswith(".us"):
        t = t[:-3]
    return t.upper()


def fetch_raw_series(
    ticker: str,
    start_date: date,
    end_date: date,
    timeout: float = 10.0,
    max_retries: int = 2,
    retry_delay: float = 1.0,
) -> str:
    """
    Yahoo Finance에서 일봉을 받아 CSV 텍스트로 반환합니다.

    Args:
        ticker: 티커 심볼 (예: 'aapl.us', '^GSPC', '005930.KS')
        start_date: 시작 날짜
        end_date: 종료 날짜 (포함)
        timeout: 요청 타임아웃 (초)
        max_retries: 최대 시도 횟수
        retry_delay: 재시도 간 대기 시간 (초)

    Returns:
        헤더 포함 CSV 텍스트. 데이터가 없으면 빈 문자열.

    Raises:
        UpstreamFetchError: 모든 시도 실패
    """
    symbol = to_yahoo_symbol(ticker)
    attempts = max(1, max_retries)

    for attempt in range(attempts):
        try:
            logger.info(f"Fetching {symbol} from {start_date} to {end_date} (attempt {attempt + 1}/{attempts})")

            df = yf.Ticker(symbol).history(
                start=start_date,
                end=end_date + timedelta(days=1),  # end_date 포함
                auto_adjust=False,
                actions=False,
                timeout=timeout,
            )
            if df.empty:
                logger.warning(f"No data found for {symbol}")
                return ""
            return frame_to_csv(df)

        except Exception as e:
            logger.error(f"Error fetching {symbol} (attempt {attempt + 1}/{attempts}): {e}")
            if attempt < attempts - 1:
                time.sleep(retry_delay)

    raise UpstreamFetchError(f"Yahoo fetch failed for {symbol}")


def frame_to_csv(df: pd.DataFrame) -> str:
    """yfinance history DataFrame → 'date,open,high,low,close,volume' CSV 텍스트."""
    df = df.reset_index()
    df = df.rename(columns={
        'Date': 'date',
        'Open': 'open',
        'High': 'high',
        'Low': 'low',
        'Close': 'close',
        'Volume': 'volume',
    })
    df = df[['date', 'open', 'high', 'low', 'close', 'volume']]

    # timezone 제거 후 날짜만
    if pd.api.types.is_datetime64_any_dtype(df['date']):
        df['date'] = df['date'].dt.strftime('%Y-%m-%d')

    return df.to_csv(index=False)
