"""
Remote key/value client.

Typed wrapper around the backend's JSON document store. Records are
addressed by hierarchical string keys and hold arbitrary JSON values.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .backend import BackendClient

logger = structlog.get_logger(__name__)


class JsonData(BaseModel):
    """A stored JSON document."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    key: str
    value: Any = None
    version: Optional[Union[int, str]] = None
    expire_at: Optional[datetime] = Field(default=None, alias="expireAt")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


class KeyValueStore(ABC):
    """Key/value operations the memory and persona services depend on."""

    @abstractmethod
    async def get_key(self, key: str) -> Optional[JsonData]:
        """Return the record for key, or None when it was never set."""

    @abstractmethod
    async def set_key(self, key: str, value: Any) -> Optional[JsonData]:
        """Replace the whole value stored under key, creating the record if absent."""

    @abstractmethod
    async def delete_key(self, key: str) -> Any:
        """Remove one record."""

    @abstractmethod
    async def get_keys_like(self, key: str) -> List[JsonData]:
        """Return all records whose key matches the prefix pattern."""

    @abstractmethod
    async def delete_keys_like(self, key: str) -> Any:
        """Remove all records whose key matches the prefix pattern."""

    @abstractmethod
    async def create_many(self, items: List[Dict[str, Any]]) -> Any:
        """Create several {key, value} records in one call."""


class JsonDataClient(KeyValueStore):
    """KeyValueStore backed by the /json-data endpoints."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def get_key(self, key: str) -> Optional[JsonData]:
        result = await self.backend.request("GET", "/json-data", params={"key": key})
        return self._parse(result)

    async def set_key(self, key: str, value: Any) -> Optional[JsonData]:
        result = await self.backend.request(
            "POST", "/json-data", json_body={"key": key, "value": value}
        )
        logger.debug("Stored key", key=key)
        return self._parse(result)

    async def delete_key(self, key: str) -> Any:
        return await self.backend.request("DELETE", "/json-data", params={"key": key})

    async def get_keys_like(self, key: str) -> List[JsonData]:
        result = await self.backend.request("GET", "/json-data/key-like", params={"key": key})
        return [JsonData.model_validate(item) for item in result or []]

    async def delete_keys_like(self, key: str) -> Any:
        return await self.backend.request("DELETE", "/json-data/key-like", params={"key": key})

    async def create_many(self, items: List[Dict[str, Any]]) -> Any:
        data = [{"key": item["key"], "value": item.get("value")} for item in items]
        return await self.backend.request("POST", "/json-data/bulk", json_body={"data": data})

    @staticmethod
    def _parse(result: Any) -> Optional[JsonData]:
        if not result:
            return None
        return JsonData.model_validate(result)
