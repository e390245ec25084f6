"""
Save User Info tool.

Lets the host persist facts the user reveals about themselves so later
conversations can be personalized.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field

from ..services.memory import MemoryService
from .base import BaseTool, ToolResult


class SaveUserInfoArguments(BaseModel):
    statement: str = Field(
        description=(
            "A concise statement that captures the information to be saved (e.g., "
            "'User plans to start an AI & robotics company', 'User likes sci-fi movies', "
            "'User works at Google')."
        )
    )
    user_email: EmailStr = Field(alias="userEmail", description="Email of the user")


class SaveUserInfoToMemoryTool(BaseTool):
    """Append a statement to the user's memory list."""

    name = "saveUserInfoToMemory"
    description = (
        "Save any information the user reveals about themselves during conversations. This "
        "includes their preferences, interests, goals, plans, likes/dislikes, personality "
        "traits, or anything relevant that can help personalize future conversations."
    )
    arguments_model = SaveUserInfoArguments

    def __init__(self, memory_service: MemoryService, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.memory_service = memory_service

    async def execute(self, arguments: SaveUserInfoArguments) -> ToolResult:
        message = await self.memory_service.append(
            user_email=str(arguments.user_email),
            statement=arguments.statement,
        )
        return ToolResult.text(message)
