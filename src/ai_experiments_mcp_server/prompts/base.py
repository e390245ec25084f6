"""Base classes for MCP prompts."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

import structlog
from pydantic import BaseModel

from ..protocol.schemas import Prompt, PromptArgument
from ..tools.base import validate_arguments

logger = structlog.get_logger(__name__)


class BasePrompt(ABC):
    """
    Base class for prompts.

    A prompt renders a single user message from validated arguments.
    """

    name: str = ""
    description: str = ""
    arguments_model: Type[BaseModel]

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logger.bind(prompt=self.name)

    def get_schema(self) -> Prompt:
        arguments = [
            PromptArgument(
                name=field.alias or field_name,
                description=field.description,
                required=field.is_required(),
            )
            for field_name, field in self.arguments_model.model_fields.items()
        ]
        return Prompt(name=self.name, description=self.description, arguments=arguments)

    @abstractmethod
    async def render(self, arguments: Any) -> str:
        """Build the instruction text."""

    async def __call__(self, arguments: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Validate arguments and render the prompt messages.

        Raises:
            ToolValidationError: If arguments fail validation
        """
        validated = validate_arguments(self.arguments_model, arguments)
        self.logger.info("Rendering prompt", arguments=arguments)
        text = await self.render(validated)
        return [{"role": "user", "content": {"type": "text", "text": text}}]
