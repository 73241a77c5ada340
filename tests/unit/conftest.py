"""Unit test fixtures — configured service, FastMCP client and HTTP client."""

from __future__ import annotations

import httpx
import pytest
from fastmcp import Client

from memvault.ledger import InMemoryVaultBackend
from tests.fakes import WRITER


@pytest.fixture()
async def service_backend(clock):
    """Configure the service with a fresh in-memory ledger."""
    from memvault.server import configure
    from memvault.server import shutdown

    backend = InMemoryVaultBackend(writer=WRITER, clock=clock)
    await configure(backend=backend)
    yield backend
    await shutdown()


@pytest.fixture()
async def mcp_client(service_backend):
    """Yield a FastMCP Client wired to the memory vault server."""
    from memvault.server import mcp

    async with Client(mcp) as client:
        yield client


@pytest.fixture()
async def http_client(service_backend):
    """Yield an HTTP client speaking to the service's ASGI app in-process."""
    from memvault.server import mcp

    transport = httpx.ASGITransport(app=mcp.http_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
