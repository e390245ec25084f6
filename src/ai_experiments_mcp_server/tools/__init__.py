"""
MCP tools implementation.

Tools expose user memory, persona retrieval, URL content and code
execution to MCP hosts.
"""

from .base import BaseTool, NotFoundError, ToolError, ToolResult, ToolValidationError
from .execute_code import ExecuteCodeTool
from .get_relevant_docs import GetRelevantDocsTool
from .get_url_content import GetUrlContentTool
from .save_user_info_to_memory import SaveUserInfoToMemoryTool

__all__ = [
    "BaseTool",
    "ToolError",
    "ToolResult",
    "ToolValidationError",
    "NotFoundError",
    "SaveUserInfoToMemoryTool",
    "GetRelevantDocsTool",
    "GetUrlContentTool",
    "ExecuteCodeTool",
]
