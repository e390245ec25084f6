"""Get URL Content tool."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..client.capabilities import CapabilityBackend, UrlContentType
from .base import BaseTool, ToolResult


class GetUrlContentArguments(BaseModel):
    url: str = Field(description="URL to fetch")
    type: Optional[UrlContentType] = Field(
        default=None,
        description="Kind of content behind the URL. Leave it out if you are not sure.",
    )


class GetUrlContentTool(BaseTool):
    """Fetch normalized text content from a URL."""

    name = "getUrlContent"
    description = (
        "Get the text content of a URL: web pages, PDFs, Google Docs and Sheets, "
        "YouTube videos and images."
    )
    arguments_model = GetUrlContentArguments

    def __init__(self, capabilities: CapabilityBackend, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.capabilities = capabilities

    async def execute(self, arguments: GetUrlContentArguments) -> ToolResult:
        content = await self.capabilities.get_url_content(url=arguments.url, type=arguments.type)
        return ToolResult.text(content)
