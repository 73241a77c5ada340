"""Root conftest — suite markers and shared in-process fixtures.

Every test runs without external services: ledgers are the in-memory
backend or fakeredis, and model calls go through ``ScriptedLLMAdapter``.
"""

from __future__ import annotations

from pathlib import Path

import fakeredis
import pytest

from memvault.ledger import InMemoryVaultBackend
from memvault.ledger import VaultReader
from memvault.ledger import VaultWriter
from memvault.observability import reset_latency_metrics
from tests.fakes import OWNER
from tests.fakes import ScriptedLLMAdapter
from tests.fakes import WRITER


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Attach suite markers from test path.

    - `tests/unit/*` -> `unit`
    - `tests/integration/*` -> `integration`
    """
    root = Path(__file__).resolve().parents[1]
    for item in items:
        item_path = Path(str(item.fspath)).resolve()
        try:
            rel = item_path.relative_to(root)
        except ValueError:
            continue

        parts = rel.parts
        if len(parts) < 2 or parts[0] != "tests":
            continue
        if parts[1] == "unit":
            item.add_marker(pytest.mark.unit)
        elif parts[1] == "integration":
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def clean_latency_metrics():
    reset_latency_metrics()
    yield
    reset_latency_metrics()


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock():
    """Deterministic clock: 1_700_000_000, then one second per call."""
    ticks = iter(range(1_700_000_000, 1_800_000_000))
    return lambda: float(next(ticks))


@pytest.fixture()
def backend(clock) -> InMemoryVaultBackend:
    return InMemoryVaultBackend(writer=WRITER, clock=clock)


@pytest.fixture()
def reader(backend) -> VaultReader:
    return VaultReader(backend, timeout_seconds=1.0)


@pytest.fixture()
def writer(backend) -> VaultWriter:
    return VaultWriter(backend, timeout_seconds=1.0)


@pytest.fixture()
def owner() -> str:
    return OWNER


# ---------------------------------------------------------------------------
# Redis (fakeredis)
# ---------------------------------------------------------------------------


@pytest.fixture()
def redis_server():
    """One fake Redis server; clients created from it share data."""
    return fakeredis.FakeServer()


@pytest.fixture()
async def redis_client(redis_server):
    client = fakeredis.FakeAsyncRedis(server=redis_server)
    yield client
    await client.aclose()


# ---------------------------------------------------------------------------
# LLM
# ---------------------------------------------------------------------------


@pytest.fixture()
def llm() -> ScriptedLLMAdapter:
    return ScriptedLLMAdapter()
