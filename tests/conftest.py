"""Shared fixtures: synthetic bar series and stubbed upstream sources (no network)."""

from datetime import date

import pytest

from quant_system.core.data_provider import Bar, DataProvider
from quant_system.data.sample_data import bars_to_csv, generate_sample_bars, trend_bars


def dip_then_rally_closes(n: int = 100) -> list[float]:
    """30 bars drifting down, then a steady uptrend."""
    closes = []
    for i in range(n):
        if i < 30:
            closes.append(100.0 - 0.5 * i)
        else:
            closes.append(85.5 + 1.0 * (i - 29))
    return closes


class StubPriceProvider(DataProvider):
    """DataProvider with settable latest prices; bars are never fetched."""

    def __init__(self, prices: dict[str, float] | None = None):
        self.prices = dict(prices or {})
        self.calls: list[str] = []

    def get_daily_bars(self, ticker, start_date, end_date) -> list[Bar]:
        return []

    def get_latest_price(self, ticker: str) -> float | None:
        self.calls.append(ticker)
        return self.prices.get(ticker)


class CsvSource:
    """RawSeriesSource stub: symbol → CSV text, records every call."""

    def __init__(self, tables: dict[str, str] | None = None, error: Exception | None = None):
        self.tables = dict(tables or {})
        self.error = error
        self.calls: list[tuple[str, date, date]] = []

    def __call__(self, ticker: str, start_date: date, end_date: date) -> str:
        self.calls.append((ticker, start_date, end_date))
        if self.error is not None:
            raise self.error
        return self.tables.get(ticker, "")


@pytest.fixture
def uptrend_bars() -> list[Bar]:
    return trend_bars("TEST", dip_then_rally_closes(100))


@pytest.fixture
def sample_bars() -> list[Bar]:
    return generate_sample_bars("SPY", date(2023, 1, 2), date(2024, 6, 28), seed=7)


@pytest.fixture
def price_provider() -> StubPriceProvider:
    return StubPriceProvider({"AAPL": 150.0, "MSFT": 300.0})


@pytest.fixture
def csv_source(sample_bars) -> CsvSource:
    return CsvSource({"spy.us": bars_to_csv(sample_bars)})
