"""
Get Relevant Docs tool.

Resolves the caller's persona to its retrieval collection and returns
the documents most relevant to a query.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field

from ..client.capabilities import CapabilityBackend
from ..services.personas import PersonaDirectory
from .base import BaseTool, NotFoundError, ToolResult


class GetRelevantDocsArguments(BaseModel):
    query: str = Field(description="What to look up in the persona's knowledge base")
    persona_id: str = Field(alias="personaId", description="Persona whose collection is searched")
    user_email: EmailStr = Field(alias="userEmail", description="Email of the persona owner")
    sources: Optional[List[str]] = Field(
        default=None, description="Only return documents from these sources"
    )
    num_docs: Optional[int] = Field(
        default=None, alias="numDocs", ge=1, description="Maximum number of documents"
    )


class GetRelevantDocsTool(BaseTool):
    """Retrieval-augmented lookup scoped to a persona."""

    name = "getRelevantDocs"
    description = (
        "Get the documents from the persona's knowledge base that are most relevant to a "
        "query. Use it whenever answering requires the persona's own material."
    )
    arguments_model = GetRelevantDocsArguments

    def __init__(
        self,
        personas: PersonaDirectory,
        capabilities: CapabilityBackend,
        config: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(config)
        self.personas = personas
        self.capabilities = capabilities

    async def execute(self, arguments: GetRelevantDocsArguments) -> ToolResult:
        persona = await self.personas.get_persona(str(arguments.user_email), arguments.persona_id)
        if persona is None:
            raise NotFoundError(
                "persona not found",
                details={"personaId": arguments.persona_id},
            )

        docs = await self.capabilities.get_relevant_docs(
            query=arguments.query,
            collection_name=persona.collection_name,
            num_docs=arguments.num_docs,
            sources=arguments.sources,
        )
        return ToolResult.json(docs)
