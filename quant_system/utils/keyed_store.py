"""
키별 잠금 저장소.

[ 역할 ]
    키 → 값 맵에 키마다 하나의 Lock을 붙인 저장소.
    같은 키에 대한 쓰기는 한 번에 하나만 허용하고, 다른 키끼리는 서로 막지 않는다.

[ 호출하는 곳 ]
    - data/sentiment.py::SentimentProvider   (티커 → 캐시 항목)
    - brokers/paper_broker.py::PaperTradingLedger  (계좌 ID → Portfolio)

[ 사용 예 ]
    store = KeyedStore(factory=Portfolio)
    with store.locked("acct-1") as portfolio:   # 없으면 factory()로 생성
        portfolio.cash_balance = ...
"""

import threading
from contextlib import contextmanager
from typing import Callable, Generic, Hashable, Iterator, TypeVar

V = TypeVar("V")


class KeyedStore(Generic[V]):
    """키별 Lock을 가진 in-memory 맵."""

    def __init__(self, factory: Callable[[], V] | None = None):
        self._factory = factory
        self._values: dict[Hashable, V] = {}
        self._locks: dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()   # _locks 딕셔너리 자체 보호

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def locked(self, key: Hashable) -> Iterator[V | None]:
        """key의 Lock을 잡은 상태로 값을 넘겨준다.

        factory가 있으면 값이 없을 때 생성해서 저장하고, 없으면 None을 넘긴다.
        """
        with self._lock_for(key):
            value = self._values.get(key)
            if value is None and self._factory is not None:
                value = self._factory()
                self._values[key] = value
            yield value

    def put(self, key: Hashable, value: V) -> None:
        """값 저장. 호출자가 이미 locked(key) 안에 있어야 한다."""
        self._values[key] = value

    def get(self, key: Hashable) -> V | None:
        return self._values.get(key)

    def keys(self) -> list[Hashable]:
        return list(self._values.keys())

    def clear(self) -> None:
        """모든 값 제거. 키별 Lock은 유지하고, 각 키의 Lock을 잡은 뒤에 값을 지운다."""
        with self._guard:
            keys = list(self._values.keys())
        for key in keys:
            with self._lock_for(key):
                self._values.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)
