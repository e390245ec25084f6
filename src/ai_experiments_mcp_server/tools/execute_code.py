"""Execute Code tool."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..client.capabilities import CapabilityBackend, CodeLanguage, UnsupportedLanguageError
from .base import BaseTool, ToolError, ToolResult


class ExecuteCodeArguments(BaseModel):
    code: str = Field(description="Source code to run")
    language: CodeLanguage = Field(
        description="Language of the code. Use 'unknown' if it is none of the listed ones."
    )


class ExecuteCodeTool(BaseTool):
    """Run a short snippet in the backend sandbox."""

    name = "executeCode"
    description = "Execute a short code snippet and return its output."
    arguments_model = ExecuteCodeArguments

    def __init__(self, capabilities: CapabilityBackend, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.capabilities = capabilities

    async def execute(self, arguments: ExecuteCodeArguments) -> ToolResult:
        try:
            result = await self.capabilities.execute_code(
                code=arguments.code, language=arguments.language
            )
        except UnsupportedLanguageError as e:
            raise ToolError(
                e.message,
                code="unsupported_language",
                details={"language": e.language},
            )
        return ToolResult.json(result)
