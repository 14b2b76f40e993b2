"""Fixtures wiring the API to in-memory adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from fastapi.testclient import TestClient

from riskr_backend.api import create_api
from riskr_backend.api.dependencies import get_gateway
from riskr_backend.database import get_room_store

if TYPE_CHECKING:
    from collections.abc import Iterator

    from riskr_backend.settlement import InMemoryGateway, InMemoryRoomStore


@pytest.fixture
def client(store: InMemoryRoomStore, gateway: InMemoryGateway) -> Iterator[TestClient]:
    app = create_api()
    app.dependency_overrides[get_room_store] = lambda: store
    app.dependency_overrides[get_gateway] = lambda: gateway
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
