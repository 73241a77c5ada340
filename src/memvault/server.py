"""memory-vault-mcp — FastMCP server plus a plain JSON HTTP surface.

MCP tools and HTTP routes share the same handlers, which delegate to
``VaultReader``/``VaultWriter``. Call ``configure(...)`` before serving.
The HTTP routes are FastMCP custom routes, so ``mcp.http_app()`` serves both.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from functools import wraps

from fastmcp import FastMCP
from pydantic import BaseModel
from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.responses import Response

from memvault import __version__
from memvault.config import VaultSettings
from memvault.errors import RangeError
from memvault.errors import ReadError
from memvault.errors import WriteError
from memvault.ledger import build_vault_backend
from memvault.ledger import derive_topic_key
from memvault.ledger import VaultBackend
from memvault.ledger import VaultReader
from memvault.ledger import VaultWriter
from memvault.observability import track_latency
from memvault.schemas import GetMemoryResult
from memvault.schemas import ListMemoriesResult
from memvault.schemas import MemoryCountResult
from memvault.schemas import MemoryEntry
from memvault.schemas import MemoryLocator
from memvault.schemas import StoreMemoryInput
from memvault.schemas import StoreMemoryResult

logger = logging.getLogger(__name__)

SERVICE_NAME = "memory-vault-mcp"
SERVICE_DESCRIPTION = "Memory vault MCP server: topic-keyed long-term memories for agents"

mcp = FastMCP(SERVICE_NAME)

# ---------------------------------------------------------------------------
# Vault instance (set via configure())
# ---------------------------------------------------------------------------

_backend: VaultBackend | None = None
_reader: VaultReader | None = None
_writer: VaultWriter | None = None


async def configure(
    settings: VaultSettings | None = None,
    *,
    backend: VaultBackend | None = None,
) -> None:
    """Initialize the ledger backend used by the tools and routes.

    An explicit *backend* wins over ``settings.ledger``.
    """
    global _backend, _reader, _writer
    if _backend is not None and _backend is not backend:
        try:
            await _backend.aclose()
        except RuntimeError:
            # Tests may reconfigure across event loops.
            pass

    cfg = settings or VaultSettings()
    _backend = backend if backend is not None else build_vault_backend(cfg.ledger)
    _reader = VaultReader(_backend, timeout_seconds=cfg.ledger.read_timeout_seconds)
    _writer = VaultWriter(_backend, timeout_seconds=cfg.ledger.write_timeout_seconds)


async def shutdown() -> None:
    """Close the backend and release server resources."""
    global _backend, _reader, _writer
    if _backend is not None:
        await _backend.aclose()
    _backend = None
    _reader = None
    _writer = None


def _get_vault() -> tuple[VaultReader, VaultWriter]:
    """Return the configured reader and writer or raise."""
    if _reader is None or _writer is None:
        raise RuntimeError("Memory vault not configured. Call configure() first.")
    return _reader, _writer


# ---------------------------------------------------------------------------
# Shared handlers: (status code, result)
# ---------------------------------------------------------------------------

_STORE_FIELDS = "user_address, topic, content"
_LOCATOR_FIELDS = "user_address, topic"


async def _store_memory(payload: object) -> tuple[int, StoreMemoryResult]:
    try:
        validated = StoreMemoryInput.model_validate(payload)
    except ValidationError:
        return 400, StoreMemoryResult(
            success=False, error=f"Missing required fields: {_STORE_FIELDS}"
        )

    _, writer = _get_vault()
    try:
        receipt = await writer.store_topic(
            validated.user_address, validated.topic, validated.content
        )
    except WriteError as exc:
        return 500, StoreMemoryResult(success=False, error=str(exc))

    return 200, StoreMemoryResult(
        success=True,
        message=(
            f"Successfully stored memory for user {validated.user_address} "
            f"under topic '{validated.topic}'"
        ),
        tx_hash=receipt.tx_id,
    )


async def _get_latest_memory(payload: object) -> tuple[int, GetMemoryResult]:
    try:
        validated = MemoryLocator.model_validate(payload)
    except ValidationError:
        return 400, GetMemoryResult(
            success=False, error=f"Missing required fields: {_LOCATOR_FIELDS}"
        )

    reader, _ = _get_vault()
    try:
        memory = await reader.fetch_latest(validated.user_address, validated.topic)
    except ReadError as exc:
        return 500, GetMemoryResult(success=False, error=str(exc))

    if memory is None:
        return 404, GetMemoryResult(
            success=False,
            error=(
                f"No memory stored for user {validated.user_address} "
                f"under topic '{validated.topic}'"
            ),
        )
    return 200, GetMemoryResult(
        success=True,
        timestamp=memory.timestamp,
        writer=memory.writer,
        content=memory.content,
    )


async def _get_memory_count(payload: object) -> tuple[int, MemoryCountResult]:
    try:
        validated = MemoryLocator.model_validate(payload)
    except ValidationError:
        return 400, MemoryCountResult(
            success=False, error=f"Missing required fields: {_LOCATOR_FIELDS}"
        )

    reader, _ = _get_vault()
    try:
        count = await reader.get_count(
            validated.user_address, derive_topic_key(validated.topic)
        )
    except ReadError as exc:
        return 500, MemoryCountResult(success=False, error=str(exc))
    return 200, MemoryCountResult(success=True, count=count)


async def _list_memories(payload: object) -> tuple[int, ListMemoriesResult]:
    try:
        validated = MemoryLocator.model_validate(payload)
    except ValidationError:
        return 400, ListMemoriesResult(
            success=False, error=f"Missing required fields: {_LOCATOR_FIELDS}"
        )

    reader, _ = _get_vault()
    try:
        memories = await reader.fetch_all(validated.user_address, validated.topic)
    except (ReadError, RangeError) as exc:
        return 500, ListMemoriesResult(success=False, error=str(exc))
    return 200, ListMemoriesResult(
        success=True,
        memories=[
            MemoryEntry(
                index=index,
                timestamp=m.timestamp,
                writer=m.writer,
                content=m.content,
            )
            for index, m in enumerate(memories)
        ],
    )


# ---------------------------------------------------------------------------
# MCP tools
# ---------------------------------------------------------------------------


@mcp.tool
async def store_memory(user_address: str, topic: str, content: str) -> StoreMemoryResult:
    """Store a memory string under a topic for a user.

    Args:
        user_address: Address of the user who owns the memory.
        topic: Topic/category for the memory.
        content: Memory content to store.
    """
    with track_latency("mcp.store_memory"):
        _, result = await _store_memory(
            {"user_address": user_address, "topic": topic, "content": content}
        )
    return result


@mcp.tool
async def get_latest_memory(user_address: str, topic: str) -> GetMemoryResult:
    """Retrieve the latest memory for a user and topic.

    Args:
        user_address: Address of the user who owns the memory.
        topic: Topic/category to retrieve memory from.
    """
    with track_latency("mcp.get_latest_memory"):
        _, result = await _get_latest_memory(
            {"user_address": user_address, "topic": topic}
        )
    return result


@mcp.tool
async def get_memory_count(user_address: str, topic: str) -> MemoryCountResult:
    """Count the memories stored for a user and topic."""
    with track_latency("mcp.get_memory_count"):
        _, result = await _get_memory_count(
            {"user_address": user_address, "topic": topic}
        )
    return result


@mcp.tool
async def list_memories(user_address: str, topic: str) -> ListMemoriesResult:
    """List every memory for a user and topic, oldest first."""
    with track_latency("mcp.list_memories"):
        _, result = await _list_memories(
            {"user_address": user_address, "topic": topic}
        )
    return result


# ---------------------------------------------------------------------------
# HTTP routes
# ---------------------------------------------------------------------------

_ALLOW_ORIGIN = {"Access-Control-Allow-Origin": "*"}
_PREFLIGHT_HEADERS = {
    **_ALLOW_ORIGIN,
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}
_ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def service_descriptor() -> dict:
    """Body of ``GET /``."""
    locator = {
        "user_address": "string - Address of the user",
        "topic": "string - Topic/category of the memory",
    }
    return {
        "name": SERVICE_NAME,
        "version": __version__,
        "description": SERVICE_DESCRIPTION,
        "tools": [
            {
                "name": "store_memory",
                "description": "Store a memory string under a topic for a user",
                "parameters": {**locator, "content": "string - Memory content to store"},
            },
            {
                "name": "get_latest_memory",
                "description": "Retrieve the latest memory for a user and topic",
                "parameters": locator,
            },
            {
                "name": "get_memory_count",
                "description": "Count the memories stored for a user and topic",
                "parameters": locator,
            },
            {
                "name": "list_memories",
                "description": "List every memory for a user and topic, oldest first",
                "parameters": locator,
            },
        ],
        "endpoints": {
            "store_memory": "/store-memory",
            "get_latest_memory": "/get-memory",
        },
    }


def _json(model: BaseModel, status_code: int) -> JSONResponse:
    return JSONResponse(
        model.model_dump(exclude_none=True),
        status_code=status_code,
        headers=_ALLOW_ORIGIN,
    )


def _guarded(
    handler: Callable[[Request], Awaitable[Response]],
) -> Callable[[Request], Awaitable[Response]]:
    """Turn unexpected handler failures into a 500 JSON response."""

    @wraps(handler)
    async def wrapper(request: Request) -> Response:
        try:
            return await handler(request)
        except Exception as exc:
            logger.exception("unhandled error in %s %s", request.method, request.url.path)
            return JSONResponse(
                {"success": False, "error": str(exc) or type(exc).__name__},
                status_code=500,
                headers=_ALLOW_ORIGIN,
            )

    return wrapper


async def _read_body(request: Request) -> object | None:
    try:
        return json.loads(await request.body())
    except ValueError:
        return None


def _invalid_body() -> JSONResponse:
    return JSONResponse(
        {"success": False, "error": "Request body must be a JSON object"},
        status_code=400,
        headers=_ALLOW_ORIGIN,
    )


@mcp.custom_route("/", methods=["GET"])
@_guarded
async def describe_service(request: Request) -> Response:
    return JSONResponse(service_descriptor(), headers=_ALLOW_ORIGIN)


@mcp.custom_route("/store-memory", methods=["POST"])
@_guarded
async def store_memory_route(request: Request) -> Response:
    payload = await _read_body(request)
    if payload is None:
        return _invalid_body()
    with track_latency("http.store_memory"):
        status, result = await _store_memory(payload)
    return _json(result, status)


@mcp.custom_route("/get-memory", methods=["POST"])
@_guarded
async def get_memory_route(request: Request) -> Response:
    payload = await _read_body(request)
    if payload is None:
        return _invalid_body()
    with track_latency("http.get_memory"):
        status, result = await _get_latest_memory(payload)
    return _json(result, status)


# Registered last: custom routes match in order, so this only sees requests
# no route above accepted (unknown paths, wrong methods, CORS preflight).
@mcp.custom_route("/{path:path}", methods=_ALL_METHODS)
async def fallback_route(request: Request) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=_PREFLIGHT_HEADERS)
    return JSONResponse({"error": "Not found"}, status_code=404)
