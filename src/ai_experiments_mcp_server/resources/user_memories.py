"""User memories resource."""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..services.memory import MemoryService
from .base import BaseResource


class UserMemoriesArguments(BaseModel):
    user_email: str = Field(alias="userEmail", min_length=1)


class UserMemoriesResource(BaseResource):
    """The statements remembered about a user, as a JSON array of strings."""

    name = "userMemories"
    uri_template = "users://{userEmail}/memories"
    description = "Everything remembered about the user, one statement per entry"
    arguments_model = UserMemoriesArguments

    def __init__(self, memory_service: MemoryService, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.memory_service = memory_service

    async def read(self, uri: str, arguments: UserMemoriesArguments) -> str:
        statements = await self.memory_service.get_statements(arguments.user_email)
        return json.dumps(statements or [])
