"""Ledger domain data models."""

from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence

from pydantic import BaseModel
from pydantic import Field


class MemoryRecord(BaseModel):
    """One immutable entry of a memory set."""

    model_config = {"frozen": True}

    timestamp: int = Field(
        ge=0,
        description="Unix epoch seconds at which the ledger accepted the record.",
    )
    writer: str = Field(
        description="Identity that submitted the record (may differ from the owner).",
    )
    content: str = Field(
        description="Stored memory text.",
    )

    @classmethod
    def from_raw(cls, raw: object) -> MemoryRecord:
        """Validate a backend payload.

        Backends hand back either a mapping with ``timestamp``/``writer``/
        ``content`` keys or the contract's ``(timestamp, writer, content)``
        tuple.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, Mapping):
            return cls.model_validate(dict(raw))
        if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
            if len(raw) != 3:
                raise ValueError(f"expected 3 record fields, got {len(raw)}")
            timestamp, writer, content = raw
            return cls.model_validate(
                {"timestamp": timestamp, "writer": writer, "content": content}
            )
        raise ValueError(f"unsupported record payload: {type(raw).__name__}")


class TopicMemory(BaseModel):
    """A ``MemoryRecord`` together with the topic label it was read under."""

    model_config = {"frozen": True}

    topic: str
    timestamp: int
    writer: str
    content: str

    @classmethod
    def from_record(cls, topic: str, record: MemoryRecord) -> TopicMemory:
        return cls(
            topic=topic,
            timestamp=record.timestamp,
            writer=record.writer,
            content=record.content,
        )


class StoredMemory(BaseModel):
    """Receipt returned after an append was submitted."""

    model_config = {"frozen": True}

    tx_id: str = Field(description="Ledger transaction identifier.")
    owner: str = Field(description="Memory-space owner the record was stored for.")
    topic: str = Field(description="Topic label as supplied by the caller.")
    topic_key: str = Field(description="0x-prefixed hex of the derived topic key.")
    writer: str = Field(description="Identity that signed the append.")
