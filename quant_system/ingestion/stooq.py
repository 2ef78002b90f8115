"""
Stooq 일봉 CSV 수집 모듈.

[ 역할 ]
    Stooq(무료, API 키 불필요)에서 일봉 CSV 텍스트를 내려받는다.
    예: https://stooq.com/q/d/l/?s=aapl.us&i=d

[ 반환 형식 ]
    "Date,Open,High,Low,Close,Volume" 헤더 + 거래일별 한 줄의 텍스트.
    파싱은 data/market_data.py::MarketDataProvider가 담당.

[ 실패 처리 ]
    타임아웃/비정상 응답(2xx 외)/빈 응답 → 재시도 후 UpstreamFetchError.
    MarketDataProvider가 이를 잡아 빈 봉 리스트로 강등한다.
"""

import logging
import time
from datetime import date

import requests

from quant_system.core.errors import UpstreamFetchError

logger = logging.getLogger("quant_system.market_data")

STOOQ_URL = "https://stooq.com/q/d/l/"


def fetch_raw_series(
    ticker: str,
    start_date: date,
    end_date: date,
    base_url: str = STOOQ_URL,
    timeout: float = 10.0,
    max_retries: int = 2,
    retry_delay: float = 1.0,
    session: requests.Session | None = None,
) -> str:
    """Stooq에서 일봉 CSV 텍스트 조회.

    Args:
        ticker: Stooq 심볼 (이미 정규화된 값, 예: "aapl.us")
        start_date: 시작일
        end_date: 종료일
        base_url: Stooq CSV 엔드포인트
        timeout: 요청 타임아웃 (초)
        max_retries: 최대 시도 횟수
        retry_delay: 재시도 간 대기 시간 (초)
        session: 재사용할 requests 세션 (없으면 requests.get)

    Returns:
        CSV 텍스트

    Raises:
        UpstreamFetchError: 모든 시도 실패
    """
    params = {
        "s": ticker,
        "i": "d",
        "d1": start_date.strftime("%Y%m%d"),
        "d2": end_date.strftime("%Y%m%d"),
    }
    getter = session.get if session is not None else requests.get
    attempts = max(1, max_retries)

    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            logger.debug(f"Fetching {ticker} from Stooq (attempt {attempt}/{attempts})")
            response = getter(base_url, params=params, timeout=timeout)
            response.raise_for_status()
            return response.text or ""
        except requests.exceptions.RequestException as e:
            last_error = e
            logger.warning(f"Stooq request failed for {ticker} (attempt {attempt}/{attempts}): {e}")
            if attempt < attempts:
                time.sleep(retry_delay)

    raise UpstreamFetchError(f"Stooq fetch failed for {ticker}: {last_error}")
