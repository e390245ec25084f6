"""
Base classes for MCP resources.

A resource is registered under a URI template such as
users://{userEmail}/memories; reads are matched against the template and
its path segments validated before the resource is loaded.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type
from urllib.parse import unquote

import structlog
from pydantic import BaseModel

from ..protocol.schemas import ResourceTemplate
from ..tools.base import validate_arguments

logger = structlog.get_logger(__name__)

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def compile_uri_template(uri_template: str) -> "re.Pattern[str]":
    """Turn a level 1 URI template into a regex with one named group per variable."""
    pattern = ""
    position = 0
    for match in _PLACEHOLDER.finditer(uri_template):
        pattern += re.escape(uri_template[position : match.start()])
        pattern += f"(?P<{match.group(1)}>[^/]+)"
        position = match.end()
    pattern += re.escape(uri_template[position:])
    return re.compile(f"^{pattern}$")


class BaseResource(ABC):
    """Base class for templated resources."""

    name: str = ""
    uri_template: str = ""
    description: str = ""
    mime_type: str = "application/json"
    arguments_model: Type[BaseModel]

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logger.bind(resource=self.name)
        self._pattern = compile_uri_template(self.uri_template)

    def get_template(self) -> ResourceTemplate:
        return ResourceTemplate(
            uriTemplate=self.uri_template,
            name=self.name,
            description=self.description,
            mimeType=self.mime_type,
        )

    def match(self, uri: str) -> Optional[Dict[str, str]]:
        """Return the template variables for uri, or None if it does not match."""
        found = self._pattern.match(uri)
        if found is None:
            return None
        return {k: unquote(v) for k, v in found.groupdict().items()}

    @abstractmethod
    async def read(self, uri: str, arguments: Any) -> str:
        """Return the text of the resource at uri."""

    async def __call__(self, uri: str) -> List[Dict[str, Any]]:
        """
        Read the resource at uri as MCP contents.

        Raises:
            ToolValidationError: If the URI variables fail validation
        """
        variables = self.match(uri) or {}
        validated = validate_arguments(self.arguments_model, variables)
        self.logger.info("Reading resource", uri=uri)
        text = await self.read(uri, validated)
        return [{"uri": uri, "mimeType": self.mime_type, "text": text}]
