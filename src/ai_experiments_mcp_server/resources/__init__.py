"""MCP resources."""

from .base import BaseResource, compile_uri_template
from .user_memories import UserMemoriesResource

__all__ = ["BaseResource", "compile_uri_template", "UserMemoriesResource"]
