"""Persona lookup against the key/value store."""

from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..client.json_data import KeyValueStore

logger = structlog.get_logger(__name__)


def persona_key(prefix: str, user_email: str, persona_id: str) -> str:
    return f"{prefix}/users/{user_email}/personas/{persona_id}"


class Persona(BaseModel):
    """Assistant persona bound to a retrieval collection."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    collection_name: str = Field(alias="collectionName")


class PersonaDirectory:
    """Resolves {userEmail, personaId} to a stored persona."""

    def __init__(self, store: KeyValueStore, key_prefix: str = "reactAIExperiments"):
        self.store = store
        self.key_prefix = key_prefix

    async def get_persona(self, user_email: str, persona_id: str) -> Optional[Persona]:
        record = await self.store.get_key(persona_key(self.key_prefix, user_email, persona_id))
        if record is None or not isinstance(record.value, dict):
            logger.info("Persona not found", user_email=user_email, persona_id=persona_id)
            return None
        try:
            return Persona.model_validate(record.value)
        except ValidationError as e:
            logger.warning(
                "Malformed persona record",
                user_email=user_email,
                persona_id=persona_id,
                error=str(e),
            )
            return None
