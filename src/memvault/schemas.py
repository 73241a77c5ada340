"""Pydantic models for the service surface (MCP tools and HTTP routes).

Input models validate request bodies and tool arguments; output models are
serialized as-is by FastMCP and by the HTTP handlers.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import Field

# ---------------------------------------------------------------------------
# Input models
# ---------------------------------------------------------------------------


class MemoryLocator(BaseModel):
    """Identifies one memory set."""

    user_address: str = Field(
        min_length=1,
        description="Address of the user who owns the memory.",
    )
    topic: str = Field(
        min_length=1,
        description="Topic label; hashed byte-for-byte into the ledger key.",
    )


class StoreMemoryInput(MemoryLocator):
    """Input for store_memory."""

    content: str = Field(
        min_length=1,
        description="Memory content to append.",
    )


# ---------------------------------------------------------------------------
# Output models
# ---------------------------------------------------------------------------


class StoreMemoryResult(BaseModel):
    """Result of store_memory."""

    success: bool
    message: str | None = None
    tx_hash: str | None = None
    error: str | None = None


class GetMemoryResult(BaseModel):
    """Result of get_latest_memory."""

    success: bool
    timestamp: int | None = None
    writer: str | None = None
    content: str | None = None
    error: str | None = None


class MemoryCountResult(BaseModel):
    """Result of get_memory_count."""

    success: bool
    count: int | None = None
    error: str | None = None


class MemoryEntry(BaseModel):
    """One record inside a ListMemoriesResult."""

    index: int
    timestamp: int
    writer: str
    content: str


class ListMemoriesResult(BaseModel):
    """Result of list_memories."""

    success: bool
    memories: list[MemoryEntry] = Field(default_factory=list)
    error: str | None = None
