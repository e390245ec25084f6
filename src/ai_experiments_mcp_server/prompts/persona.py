"""Persona prompt."""

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..services.personas import PersonaDirectory
from ..tools.base import NotFoundError
from .base import BasePrompt


class PersonaPromptArguments(BaseModel):
    persona_id: str = Field(alias="personaId", description="Persona to act as")
    user_email: str = Field(alias="userEmail", description="Email of the persona owner")


class PersonaPrompt(BasePrompt):
    """Instructs the model to take on a stored persona."""

    name = "persona"
    description = "Act as one of the user's personas, backed by its knowledge base"
    arguments_model = PersonaPromptArguments

    def __init__(self, personas: PersonaDirectory, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.personas = personas

    async def render(self, arguments: PersonaPromptArguments) -> str:
        persona = await self.personas.get_persona(arguments.user_email, arguments.persona_id)
        if persona is None:
            raise NotFoundError("persona not found", details={"personaId": arguments.persona_id})

        persona_json = json.dumps(persona.model_dump(by_alias=True), indent=2)
        return (
            "From now on, act as the persona described below.\n\n"
            f"```json\n{persona_json}\n```\n\n"
            "Whenever an answer depends on the persona's own material, call the "
            f"getRelevantDocs tool with personaId \"{arguments.persona_id}\" and userEmail "
            f"\"{arguments.user_email}\" and base the answer on the documents it returns."
        )
