"""Memory prompt."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..services.memory import MemoryService
from .base import BasePrompt


class MemoryPromptArguments(BaseModel):
    user_email: str = Field(alias="userEmail", description="Email of the user")


class MemoryPrompt(BasePrompt):
    """Primes the model with what is remembered about the user."""

    name = "memory"
    description = "Personalize the conversation with what is remembered about the user"
    arguments_model = MemoryPromptArguments

    def __init__(self, memory_service: MemoryService, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.memory_service = memory_service

    async def render(self, arguments: MemoryPromptArguments) -> str:
        statements = await self.memory_service.get_statements(arguments.user_email)

        if statements:
            known = "\n".join(f"- {statement}" for statement in statements)
            intro = f"Here is what you know about the user:\n{known}"
        else:
            intro = "You do not know anything about the user yet."

        return (
            f"{intro}\n\n"
            "Use this to personalize your answers. Whenever the user reveals something new "
            "about themselves (preferences, interests, goals, plans, likes or dislikes), call "
            f"the saveUserInfoToMemory tool with userEmail \"{arguments.user_email}\" and a "
            "concise statement of it."
        )
