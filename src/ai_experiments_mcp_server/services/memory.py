"""
User memory service.

Stores short statements about a user as an append-only list inside a
single key/value record per user.
"""

import asyncio
import uuid
import weakref
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from ..client.json_data import KeyValueStore

logger = structlog.get_logger(__name__)

SAVED_MESSAGE = "Saved successfully."


def memories_key(prefix: str, user_email: str) -> str:
    return f"{prefix}/users/{user_email}/memories"


class Memory(BaseModel):
    """A single remembered statement."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    statement: str
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(),
        alias="createdAt",
    )

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class MemoryService:
    """
    Append and read user memories.

    The append is a read-modify-write against the remote store. With the
    "serialized" strategy, appends for the same user are queued behind a
    per-user lock so none are lost within this process. With "naive",
    concurrent appends for one user can overwrite each other.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = "reactAIExperiments",
        append_strategy: str = "serialized",
    ):
        self.store = store
        self.key_prefix = key_prefix
        self.append_strategy = append_strategy
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def key_for(self, user_email: str) -> str:
        return memories_key(self.key_prefix, user_email)

    async def append(self, user_email: str, statement: str) -> str:
        """
        Append a statement to the user's memory list.

        Args:
            user_email: User identity
            statement: Fact to remember

        Returns:
            Human-readable confirmation
        """
        key = self.key_for(user_email)
        memory = Memory(statement=statement)

        if self.append_strategy == "serialized":
            lock = self._lock_for(key)
            async with lock:
                await self._read_modify_write(key, memory)
        else:
            await self._read_modify_write(key, memory)

        logger.info("Memory saved", user_email=user_email, memory_id=memory.id)
        return SAVED_MESSAGE

    async def _read_modify_write(self, key: str, memory: Memory) -> None:
        existing = await self.store.get_key(key)
        if existing is None:
            await self.store.set_key(key, [memory.to_record()])
        else:
            memories = list(existing.value or [])
            await self.store.set_key(key, memories + [memory.to_record()])

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    async def get_memories(self, user_email: str) -> Optional[List[Dict[str, Any]]]:
        """Return the stored memory records, or None if the user has none."""
        record = await self.store.get_key(self.key_for(user_email))
        if record is None:
            return None
        return list(record.value or [])

    async def get_statements(self, user_email: str) -> Optional[List[str]]:
        memories = await self.get_memories(user_email)
        if memories is None:
            return None
        return [m.get("statement") for m in memories]
