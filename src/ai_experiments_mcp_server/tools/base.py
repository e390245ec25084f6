"""
Base classes for MCP tools.

Provides common functionality and interfaces for all tools, including
argument validation, error handling, and result formatting. Resources
and prompts reuse the error types and argument validation defined here.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from ..protocol.schemas import Tool, ToolSchema

logger = structlog.get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ToolError(Exception):
    """Base exception for tool execution errors."""

    def __init__(
        self, message: str, code: str = "tool_error", details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ToolValidationError(ToolError):
    """Error for invalid tool arguments."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="validation_error", details=details)


class NotFoundError(ToolError):
    """A referenced record does not exist."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="not_found", details=details)


class ToolResult:
    """Standardized tool result format."""

    def __init__(
        self,
        content: List[Dict[str, Any]],
        is_error: bool = False,
    ):
        self.content = content
        self.is_error = is_error

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        """Create a successful result with a single text block."""
        return cls(content=[{"type": "text", "text": text}], is_error=False)

    @classmethod
    def json(cls, data: Any) -> "ToolResult":
        """Create a successful result holding JSON-serialized data."""
        return cls.text(json.dumps(data))

    @classmethod
    def error(
        cls,
        message: str,
        error_code: str = "tool_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> "ToolResult":
        """Create an error result."""
        error_text = f"Error: {message}"

        if details:
            details_text = json.dumps({"error_code": error_code, "details": details}, indent=2)
            error_text += f"\n\nError Details:\n```json\n{details_text}\n```"

        content = [{"type": "text", "text": error_text}]
        return cls(content=content, is_error=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format for MCP response."""
        return {
            "content": self.content,
            "isError": self.is_error,
        }


def validate_arguments(model: Type[ModelT], arguments: Dict[str, Any]) -> ModelT:
    """
    Validate raw arguments against a pydantic model.

    Raises:
        ToolValidationError: Listing every failing field
    """
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]) or "arguments",
                "message": error["msg"],
            }
            for error in e.errors()
        ]
        fields = ", ".join(error["field"] for error in errors)
        raise ToolValidationError(f"Invalid arguments: {fields}", details={"errors": errors})


class BaseTool(ABC):
    """
    Base class for all MCP tools.

    Subclasses declare a pydantic arguments model; the input schema sent
    to hosts is generated from it and arguments are validated against it
    before execute() runs.
    """

    # Tool metadata (must be defined by subclasses)
    name: str = ""
    description: str = ""
    arguments_model: Type[BaseModel]

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logger.bind(tool=self.name)

    def get_schema(self) -> Tool:
        """Get the tool schema definition."""
        schema = self.arguments_model.model_json_schema()
        properties = {
            name: {k: v for k, v in prop.items() if k != "title"}
            for name, prop in schema.get("properties", {}).items()
        }
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=ToolSchema(
                type="object",
                properties=properties,
                required=schema.get("required", []),
            ),
        )

    @abstractmethod
    async def execute(self, arguments: Any) -> ToolResult:
        """
        Execute the tool with validated arguments.

        Args:
            arguments: Instance of arguments_model

        Returns:
            Tool execution result

        Raises:
            ToolError: If execution fails
        """

    async def __call__(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate and execute; tool errors become error results.

        Backend errors are not caught here; the protocol handler turns them
        into error results.
        """
        try:
            self.logger.info("Executing tool", arguments=arguments)

            validated = validate_arguments(self.arguments_model, arguments)
            result = await self.execute(validated)

            self.logger.info("Tool execution completed", success=not result.is_error)
            return result.to_dict()

        except ToolError as e:
            self.logger.warning(
                "Tool execution failed",
                error_code=e.code,
                error_message=e.message,
                details=e.details,
            )
            return ToolResult.error(e.message, e.code, e.details).to_dict()
