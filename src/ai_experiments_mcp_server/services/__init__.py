"""Memory and persona services layered on the key/value store."""

from .memory import Memory, MemoryService, memories_key
from .personas import Persona, PersonaDirectory, persona_key

__all__ = [
    "Memory",
    "MemoryService",
    "memories_key",
    "Persona",
    "PersonaDirectory",
    "persona_key",
]
