"""Test configuration and fixtures for the backend test suite."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from riskr_backend.settings import get_settings
from riskr_backend.settlement import InMemoryGateway, InMemoryRoomStore, SettlementEngine
from riskr_backend.shared import PayoutReceipt

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure settings are loaded with predictable values during tests."""
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.delenv("GATEWAY_URL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryRoomStore:
    return InMemoryRoomStore(lock_timeout=5.0)


@pytest.fixture
def gateway(clock: FakeClock) -> InMemoryGateway:
    return InMemoryGateway(clock=clock)


@pytest.fixture
def engine(
    store: InMemoryRoomStore, gateway: InMemoryGateway, clock: FakeClock
) -> SettlementEngine:
    return SettlementEngine(
        store,
        gateway,
        fee_rate=0.10,
        cooldown=timedelta(seconds=300),
        clock=clock,
    )


class SlowGateway(InMemoryGateway):
    """Gateway whose calls take long enough for requests to overlap."""

    def __init__(self, delay: float = 0.05) -> None:
        super().__init__()
        self._delay = delay

    def verify_deposit(self, wallet_address: str, amount: int, proof: str) -> bool:
        time.sleep(self._delay)
        return super().verify_deposit(wallet_address, amount, proof)

    def send_payout(
        self, wallet_address: str, amount: int, *, idempotency_key: str
    ) -> PayoutReceipt:
        time.sleep(self._delay)
        return super().send_payout(
            wallet_address, amount, idempotency_key=idempotency_key
        )


def _run_together(*calls: Callable[[], Any]) -> list[Any]:
    """Start every call at the same time and collect results or exceptions."""
    barrier = threading.Barrier(len(calls))

    def invoke(call: Callable[[], Any]) -> Any:
        barrier.wait()
        try:
            return call()
        except Exception as exc:  # noqa: BLE001
            return exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(invoke, calls))


@pytest.fixture
def slow_gateway() -> SlowGateway:
    return SlowGateway()


@pytest.fixture
def run_together() -> Callable[..., list[Any]]:
    return _run_together
