"""
Pytest configuration and fixtures for AI Experiments MCP Server tests.
"""

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from ai_experiments_mcp_server.client.capabilities import CapabilitiesClient
from ai_experiments_mcp_server.client.json_data import JsonData, KeyValueStore
from ai_experiments_mcp_server.config.settings import BackendConfig, Config, ServerConfig
from ai_experiments_mcp_server.services.memory import MemoryService
from ai_experiments_mcp_server.services.personas import PersonaDirectory, persona_key


class InMemoryKeyValueStore(KeyValueStore):
    """
    KeyValueStore fake with versioned records.

    With yield_between_calls set, every read and write hands control back
    to the event loop first so concurrent callers interleave.
    """

    def __init__(self, yield_between_calls: bool = False):
        self.records: Dict[str, JsonData] = {}
        self.calls: List[tuple] = []
        self.yield_between_calls = yield_between_calls

    async def _pause(self) -> None:
        if self.yield_between_calls:
            await asyncio.sleep(0)

    async def get_key(self, key: str) -> Optional[JsonData]:
        await self._pause()
        self.calls.append(("get_key", key))
        record = self.records.get(key)
        return record.model_copy(deep=True) if record else None

    async def set_key(self, key: str, value: Any) -> Optional[JsonData]:
        await self._pause()
        self.calls.append(("set_key", key))
        now = datetime.now(timezone.utc)
        existing = self.records.get(key)
        record = JsonData(
            id=existing.id if existing else f"id-{len(self.records) + 1}",
            key=key,
            value=copy.deepcopy(value),
            version=(existing.version + 1) if existing else 1,
            expireAt=None,
            createdAt=existing.created_at if existing else now,
            updatedAt=now,
        )
        self.records[key] = record
        return record.model_copy(deep=True)

    async def delete_key(self, key: str) -> Any:
        self.calls.append(("delete_key", key))
        self.records.pop(key, None)

    async def get_keys_like(self, key: str) -> List[JsonData]:
        self.calls.append(("get_keys_like", key))
        return [r for k, r in self.records.items() if k.startswith(key)]

    async def delete_keys_like(self, key: str) -> Any:
        self.calls.append(("delete_keys_like", key))
        for k in [k for k in self.records if k.startswith(key)]:
            del self.records[k]

    async def create_many(self, items: List[Dict[str, Any]]) -> Any:
        for item in items:
            await self.set_key(item["key"], item.get("value"))


@pytest.fixture
def test_config():
    """Create a test configuration."""
    return Config(
        version="1.0.0-test",
        environment="test",
        server=ServerConfig(port=3999, log_level="DEBUG", cors_enabled=False),
        backend=BackendConfig(
            api_url="http://localhost:3000",
            api_secret="test-secret",
            timeout_seconds=5,
        ),
    )


@pytest.fixture
def kv_store_factory():
    return InMemoryKeyValueStore


@pytest.fixture
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def memory_service(kv_store):
    return MemoryService(kv_store, key_prefix="app")


@pytest.fixture
def persona_directory(kv_store):
    return PersonaDirectory(kv_store, key_prefix="app")


@pytest.fixture
def stored_persona(kv_store):
    """A persona owned by a@x.com under id 'tutor'."""
    value = {"collectionName": "tutor-docs", "name": "Tutor"}
    kv_store.records[persona_key("app", "a@x.com", "tutor")] = JsonData(
        id="persona-1", key=persona_key("app", "a@x.com", "tutor"), value=value, version=1
    )
    return value


@pytest.fixture
def mock_capabilities():
    """Create a mock capability backend."""
    capabilities = AsyncMock(spec=CapabilitiesClient)
    capabilities.get_relevant_docs.return_value = [
        {"pageContent": "Photosynthesis converts light to energy", "source": "biology.pdf"}
    ]
    capabilities.get_url_content.return_value = "Example Domain"
    capabilities.execute_code.return_value = {"output": "1\n"}
    return capabilities
