"""
MCP Protocol message handlers.

Implements the core logic for handling MCP protocol messages, routing
them to the registered tools, resources and prompts, and managing the
per-session protocol lifecycle.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Set

import structlog

from ..prompts.base import BasePrompt
from ..resources.base import BaseResource
from ..tools.base import ToolError
from ..utils.debug_log import DebugRecorder
from .schemas import (
    SUPPORTED_PROTOCOL_VERSIONS,
    MCPCallToolRequest,
    MCPCallToolResponse,
    MCPError,
    MCPGetPromptRequest,
    MCPGetPromptResponse,
    MCPInitializeRequest,
    MCPInitializeResponse,
    MCPInternalError,
    MCPListPromptsResponse,
    MCPListResourcesResponse,
    MCPListResourceTemplatesResponse,
    MCPListToolsResponse,
    MCPMethodNotFoundError,
    MCPNotInitializedError,
    MCPReadResourceRequest,
    MCPReadResourceResponse,
    MCPRequest,
    MCPResponse,
    MCPValidationError,
    ServerInfo,
    Tool,
)

logger = structlog.get_logger(__name__)

ToolExecutor = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]

DEFAULT_SESSION = "default"


class MCPHandler:
    """
    Main handler for MCP protocol messages.

    Routes incoming requests to appropriate handlers and tracks which
    sessions have completed initialization.
    """

    def __init__(
        self,
        server_info: Optional[ServerInfo] = None,
        debug_recorder: Optional[DebugRecorder] = None,
    ):
        self.server_info = server_info or ServerInfo()
        self.debug_recorder = debug_recorder or DebugRecorder()
        self._initialized_sessions: Set[str] = set()
        self._tools: Dict[str, Tool] = {}
        self._tool_executors: Dict[str, ToolExecutor] = {}
        self._resources: Dict[str, BaseResource] = {}
        self._prompts: Dict[str, BasePrompt] = {}

        # Protocol capabilities
        self._capabilities = {
            "tools": {},
            "resources": {},
            "prompts": {},
        }

    def register_tool(self, tool: Tool, executor: ToolExecutor) -> None:
        """
        Register a tool with its executor function.

        Args:
            tool: Tool definition
            executor: Async function to execute the tool
        """
        self._tools[tool.name] = tool
        self._tool_executors[tool.name] = executor
        logger.info("Registered tool", tool_name=tool.name)

    def register_resource(self, resource: BaseResource) -> None:
        """Register a templated resource."""
        self._resources[resource.name] = resource
        logger.info("Registered resource", resource_name=resource.name, uri=resource.uri_template)

    def register_prompt(self, prompt: BasePrompt) -> None:
        """Register a prompt."""
        self._prompts[prompt.name] = prompt
        logger.info("Registered prompt", prompt_name=prompt.name)

    async def handle_request(
        self, request: MCPRequest, session_id: str = DEFAULT_SESSION
    ) -> MCPResponse:
        """
        Handle incoming MCP request.

        Args:
            request: Incoming request
            session_id: Session the request arrived on

        Returns:
            Response to send back to client
        """
        logger.debug(
            "Handling request",
            method=request.method,
            request_id=request.id,
            session_id=session_id,
        )

        try:
            if request.method == "initialize":
                return await self._handle_initialize(request, session_id)
            elif request.method == "ping":
                return MCPResponse(id=request.id, result={})

            routes = {
                "tools/list": self._handle_list_tools,
                "tools/call": self._handle_call_tool,
                "resources/list": self._handle_list_resources,
                "resources/templates/list": self._handle_list_resource_templates,
                "resources/read": self._handle_read_resource,
                "prompts/list": self._handle_list_prompts,
                "prompts/get": self._handle_get_prompt,
            }
            route = routes.get(request.method)
            if route is None:
                raise MCPMethodNotFoundError(request.method)

            if session_id not in self._initialized_sessions:
                raise MCPNotInitializedError()

            return await route(request)

        except MCPError as e:
            logger.warning(
                "MCP error handling request",
                method=request.method,
                request_id=request.id,
                error_code=e.code,
                error_message=e.message,
            )
            return MCPResponse(
                id=request.id,
                error=e.to_dict(),
            )

        except Exception as e:
            logger.error(
                "Unexpected error handling request",
                method=request.method,
                request_id=request.id,
                error=str(e),
                exc_info=True,
            )
            return MCPResponse(
                id=request.id,
                error=MCPInternalError("Internal error", data={"details": str(e)}).to_dict(),
            )

    async def _handle_initialize(
        self, request: MCPRequest, session_id: str
    ) -> MCPInitializeResponse:
        """Handle initialize request."""
        try:
            init_request = MCPInitializeRequest(**request.model_dump())
        except Exception as e:
            raise MCPValidationError(f"Invalid initialize request: {e}")

        logger.info(
            "Initializing MCP session",
            session_id=session_id,
            protocol_version=init_request.protocol_version,
            client_info=init_request.client_info,
        )

        if init_request.protocol_version not in SUPPORTED_PROTOCOL_VERSIONS:
            logger.warning(
                "Unsupported protocol version",
                requested=init_request.protocol_version,
                supported=SUPPORTED_PROTOCOL_VERSIONS,
            )
            # Continue anyway - be liberal in what we accept

        self._initialized_sessions.add(session_id)

        return MCPInitializeResponse(
            request_id=request.id,
            protocol_version=init_request.protocol_version,
            server_info=self.server_info,
            capabilities=self._capabilities,
        )

    async def _handle_list_tools(self, request: MCPRequest) -> MCPListToolsResponse:
        logger.info("Listing tools", tool_count=len(self._tools))
        return MCPListToolsResponse(request.id, list(self._tools.values()))

    async def _handle_call_tool(self, request: MCPRequest) -> MCPCallToolResponse:
        """Handle call tool request."""
        try:
            call_request = MCPCallToolRequest(**request.model_dump())
        except Exception as e:
            raise MCPValidationError(f"Invalid call tool request: {e}")

        tool_name = call_request.tool_name
        arguments = call_request.tool_arguments

        logger.info(
            "Calling tool",
            tool_name=tool_name,
            arguments=arguments,
        )

        if tool_name not in self._tool_executors:
            raise MCPError(f"Unknown tool: {tool_name}", code=-32601)

        try:
            result = await self._tool_executors[tool_name](arguments)
            content = result["content"]
            is_error = result.get("isError", False)

        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool_name=tool_name,
                error=str(e),
                exc_info=True,
            )
            content = [
                {
                    "type": "text",
                    "text": f"Tool execution failed: {str(e)}",
                }
            ]
            is_error = True

        logger.info(
            "Tool execution completed",
            tool_name=tool_name,
            success=not is_error,
        )
        self.debug_recorder.record(
            "tool", tool_name, input=arguments, output={"content": content, "isError": is_error}
        )

        return MCPCallToolResponse(
            request_id=request.id,
            content=content,
            is_error=is_error,
        )

    async def _handle_list_resources(self, request: MCPRequest) -> MCPListResourcesResponse:
        # Only templated resources are served, so there is nothing concrete to list
        return MCPListResourcesResponse(request.id, [])

    async def _handle_list_resource_templates(
        self, request: MCPRequest
    ) -> MCPListResourceTemplatesResponse:
        templates = [resource.get_template() for resource in self._resources.values()]
        return MCPListResourceTemplatesResponse(request.id, templates)

    async def _handle_read_resource(self, request: MCPRequest) -> MCPReadResourceResponse:
        """Handle read resource request."""
        uri = MCPReadResourceRequest(**request.model_dump()).uri
        if not uri:
            raise MCPValidationError("Missing resource uri")

        for resource in self._resources.values():
            if resource.match(uri) is None:
                continue

            try:
                contents = await resource(uri)
            except ToolError as e:
                raise MCPValidationError(e.message, data=e.details)

            self.debug_recorder.record("resource", resource.name, input=uri, output=contents)
            return MCPReadResourceResponse(request.id, contents)

        raise MCPValidationError(f"Resource not found: {uri}")

    async def _handle_list_prompts(self, request: MCPRequest) -> MCPListPromptsResponse:
        prompts = [prompt.get_schema() for prompt in self._prompts.values()]
        return MCPListPromptsResponse(request.id, prompts)

    async def _handle_get_prompt(self, request: MCPRequest) -> MCPGetPromptResponse:
        """Handle get prompt request."""
        get_request = MCPGetPromptRequest(**request.model_dump())
        prompt = self._prompts.get(get_request.prompt_name)
        if prompt is None:
            raise MCPValidationError(f"Unknown prompt: {get_request.prompt_name}")

        arguments = get_request.prompt_arguments
        try:
            messages = await prompt(arguments)
        except ToolError as e:
            raise MCPValidationError(e.message, data=e.details)

        self.debug_recorder.record("prompt", prompt.name, input=arguments, output=messages)
        return MCPGetPromptResponse(request.id, messages, description=prompt.description)

    def is_initialized(self, session_id: str = DEFAULT_SESSION) -> bool:
        return session_id in self._initialized_sessions

    def end_session(self, session_id: str) -> None:
        """Forget a session's initialization state."""
        self._initialized_sessions.discard(session_id)

    def get_tool(self, name: str) -> Optional[Tool]:
        """Get tool by name."""
        return self._tools.get(name)
