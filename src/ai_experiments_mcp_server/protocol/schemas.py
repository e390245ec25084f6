"""
MCP Protocol message schemas and data structures.

Defines the JSON-RPC 2.0 message formats for the Model Context Protocol,
including requests, responses, tools, resources, prompts and error handling.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

PROTOCOL_VERSION = "2024-11-05"
SUPPORTED_PROTOCOL_VERSIONS = ["2024-11-05", "2025-03-26", "2025-06-18"]


class MCPError(Exception):
    """Base exception for MCP protocol errors."""

    def __init__(
        self,
        message: str,
        code: int = -32000,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to JSON-RPC error format."""
        error_dict = {
            "code": self.code,
            "message": self.message,
        }
        if self.data:
            error_dict["data"] = self.data
        return error_dict


class MCPParseError(MCPError):
    """Error for unparseable messages."""

    def __init__(self, message: str = "Parse error"):
        super().__init__(message, code=-32700)


class MCPValidationError(MCPError):
    """Error for invalid request parameters."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32602, data=data)


class MCPMethodNotFoundError(MCPError):
    """Error for unknown method calls."""

    def __init__(self, method: str):
        super().__init__(f"Method not found: {method}", code=-32601)


class MCPInternalError(MCPError):
    """Error for internal server issues."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=-32603, data=data)


class MCPNotInitializedError(MCPError):
    """Error for requests sent before initialize."""

    def __init__(self) -> None:
        super().__init__("Session not initialized", code=-32002)


# Base message types
class MCPMessage(BaseModel):
    """Base class for all MCP messages."""

    model_config = ConfigDict(extra="forbid")

    jsonrpc: str = Field(default="2.0", description="JSON-RPC version")


class MCPRequest(MCPMessage):
    """Base class for MCP requests."""

    id: Union[str, int] = Field(description="Request ID")
    method: str = Field(description="Method name")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Method parameters")

    def param(self, name: str, default: Any = None) -> Any:
        return (self.params or {}).get(name, default)


class MCPResponse(MCPMessage):
    """Base class for MCP responses."""

    id: Union[str, int, None] = Field(description="Request ID")
    result: Optional[Dict[str, Any]] = Field(default=None, description="Response result")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Error information")

    def to_message(self) -> Dict[str, Any]:
        """JSON-RPC 2.0: a response carries either result or error, never both."""
        message = self.model_dump()
        if self.error is not None:
            message.pop("result", None)
        else:
            message.pop("error", None)
            if message["result"] is None:
                message["result"] = {}
        return message


class MCPNotification(MCPMessage):
    """Base class for MCP notifications (no response expected)."""

    method: str = Field(description="Method name")
    params: Optional[Dict[str, Any]] = Field(default=None, description="Method parameters")


# Client info structures
class ClientInfo(BaseModel):
    """Information about the MCP client."""

    name: str = Field(description="Client name")
    version: str = Field(description="Client version")


class ServerInfo(BaseModel):
    """Information about the MCP server."""

    name: str = Field(default="AI Experiments MCP Server", description="Server name")
    version: str = Field(default="1.0.0", description="Server version")


# Tool structures
class ToolSchema(BaseModel):
    """Tool input schema definition (JSON Schema object)."""

    type: str = Field(default="object", description="Schema type")
    properties: Dict[str, Dict[str, Any]] = Field(description="Tool parameters")
    required: List[str] = Field(default_factory=list, description="Required parameters")


class Tool(BaseModel):
    """Tool definition."""

    name: str = Field(description="Tool name")
    description: str = Field(description="Tool description")
    inputSchema: ToolSchema = Field(description="Tool input schema")


# Resource structures
class ResourceTemplate(BaseModel):
    """Parameterized resource definition, e.g. users://{userEmail}/memories."""

    uriTemplate: str = Field(description="RFC 6570 level 1 URI template")
    name: str = Field(description="Resource name")
    description: Optional[str] = Field(default=None, description="Resource description")
    mimeType: Optional[str] = Field(default=None, description="Content MIME type")


# Prompt structures
class PromptArgument(BaseModel):
    """Prompt argument definition."""

    name: str = Field(description="Argument name")
    description: Optional[str] = Field(default=None, description="Argument description")
    required: bool = Field(default=False, description="Whether the argument is required")


class Prompt(BaseModel):
    """Prompt definition."""

    name: str = Field(description="Prompt name")
    description: Optional[str] = Field(default=None, description="Prompt description")
    arguments: List[PromptArgument] = Field(default_factory=list, description="Prompt arguments")


# Initialize protocol
class MCPInitializeRequest(MCPRequest):
    """Initialize request from client."""

    method: str = Field(default="initialize", frozen=True)
    params: Dict[str, Any] = Field(description="Initialize parameters")

    @property
    def protocol_version(self) -> str:
        """Get protocol version from params."""
        version = self.params.get("protocolVersion", PROTOCOL_VERSION)
        return str(version)

    @property
    def client_info(self) -> Optional[ClientInfo]:
        """Get client info from params."""
        client_data = self.params.get("clientInfo")
        return ClientInfo(**client_data) if client_data else None


class MCPInitializeResponse(MCPResponse):
    """Initialize response to client."""

    def __init__(
        self,
        request_id: Union[str, int],
        protocol_version: str = PROTOCOL_VERSION,
        server_info: Optional[ServerInfo] = None,
        capabilities: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            id=request_id,
            result={
                "protocolVersion": protocol_version,
                "serverInfo": (server_info or ServerInfo()).model_dump(),
                "capabilities": capabilities
                or {
                    "tools": {},
                    "resources": {},
                    "prompts": {},
                },
            },
        )


# List tools
class MCPListToolsRequest(MCPRequest):
    """List tools request from client."""

    method: str = Field(default="tools/list", frozen=True)


class MCPListToolsResponse(MCPResponse):
    """List tools response to client."""

    def __init__(self, request_id: Union[str, int], tools: List[Tool]):
        super().__init__(
            id=request_id,
            result={"tools": [tool.model_dump() for tool in tools]},
        )


# Call tool
class MCPCallToolRequest(MCPRequest):
    """Call tool request from client."""

    method: str = Field(default="tools/call", frozen=True)

    @property
    def tool_name(self) -> str:
        """Get tool name from params."""
        name = self.param("name", "")
        return str(name) if name is not None else ""

    @property
    def tool_arguments(self) -> Dict[str, Any]:
        """Get tool arguments from params."""
        args = self.param("arguments", {})
        return args if isinstance(args, dict) else {}


class MCPCallToolResponse(MCPResponse):
    """Call tool response to client."""

    def __init__(
        self,
        request_id: Union[str, int],
        content: List[Dict[str, Any]],
        is_error: bool = False,
    ):
        super().__init__(
            id=request_id,
            result={
                "content": content,
                "isError": is_error,
            },
        )


# Resources
class MCPListResourcesResponse(MCPResponse):
    """List concrete resources. Templates are listed separately."""

    def __init__(self, request_id: Union[str, int], resources: List[Dict[str, Any]]):
        super().__init__(id=request_id, result={"resources": resources})


class MCPListResourceTemplatesResponse(MCPResponse):
    """List resource templates response to client."""

    def __init__(self, request_id: Union[str, int], templates: List[ResourceTemplate]):
        super().__init__(
            id=request_id,
            result={
                "resourceTemplates": [
                    template.model_dump(exclude_none=True) for template in templates
                ]
            },
        )


class MCPReadResourceRequest(MCPRequest):
    """Read resource request from client."""

    method: str = Field(default="resources/read", frozen=True)

    @property
    def uri(self) -> str:
        uri = self.param("uri", "")
        return str(uri) if uri is not None else ""


class MCPReadResourceResponse(MCPResponse):
    """Read resource response to client."""

    def __init__(self, request_id: Union[str, int], contents: List[Dict[str, Any]]):
        super().__init__(id=request_id, result={"contents": contents})


# Prompts
class MCPListPromptsResponse(MCPResponse):
    """List prompts response to client."""

    def __init__(self, request_id: Union[str, int], prompts: List[Prompt]):
        super().__init__(
            id=request_id,
            result={"prompts": [prompt.model_dump(exclude_none=True) for prompt in prompts]},
        )


class MCPGetPromptRequest(MCPRequest):
    """Get prompt request from client."""

    method: str = Field(default="prompts/get", frozen=True)

    @property
    def prompt_name(self) -> str:
        name = self.param("name", "")
        return str(name) if name is not None else ""

    @property
    def prompt_arguments(self) -> Dict[str, Any]:
        args = self.param("arguments", {})
        return args if isinstance(args, dict) else {}


class MCPGetPromptResponse(MCPResponse):
    """Get prompt response to client."""

    def __init__(
        self,
        request_id: Union[str, int],
        messages: List[Dict[str, Any]],
        description: Optional[str] = None,
    ):
        result: Dict[str, Any] = {"messages": messages}
        if description:
            result["description"] = description
        super().__init__(id=request_id, result=result)
