"""MCP prompts."""

from .base import BasePrompt
from .memory import MemoryPrompt
from .persona import PersonaPrompt

__all__ = ["BasePrompt", "MemoryPrompt", "PersonaPrompt"]
