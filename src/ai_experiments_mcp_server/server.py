"""
Main AI Experiments MCP Server implementation.

Coordinates the backend clients, services, handlers and transport to
serve tools, resources and prompts to MCP hosts over HTTP+SSE.
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from .client.backend import BackendClient
from .client.capabilities import CapabilitiesClient, CapabilityBackend
from .client.json_data import JsonDataClient, KeyValueStore
from .config.settings import Config
from .prompts.memory import MemoryPrompt
from .prompts.persona import PersonaPrompt
from .protocol.handlers import MCPHandler
from .protocol.schemas import ServerInfo
from .protocol.transport import SseTransport
from .resources.user_memories import UserMemoriesResource
from .services.memory import MemoryService
from .services.personas import PersonaDirectory
from .tools.execute_code import ExecuteCodeTool
from .tools.get_relevant_docs import GetRelevantDocsTool
from .tools.get_url_content import GetUrlContentTool
from .tools.save_user_info_to_memory import SaveUserInfoToMemoryTool
from .utils.debug_log import DebugRecorder

logger = structlog.get_logger(__name__)


class AIExperimentsMCPServer:
    """
    Main MCP server.

    Builds the service graph from configuration, registers the enabled
    handlers and runs the SSE transport until shutdown.
    """

    def __init__(
        self,
        config: Config,
        store: Optional[KeyValueStore] = None,
        capabilities: Optional[CapabilityBackend] = None,
    ):
        """
        Initialize the MCP server.

        Args:
            config: Server configuration
            store: Key/value store override, defaults to the backend client
            capabilities: Capability backend override, defaults to the backend client
        """
        self.config = config
        self._running = False
        self._shutdown_event: Optional[asyncio.Event] = None

        self.backend = BackendClient(config.backend)
        self.store = store or JsonDataClient(self.backend)
        self.capabilities = capabilities or CapabilitiesClient(self.backend)

        self.memory_service = MemoryService(
            self.store,
            key_prefix=config.memory.key_prefix,
            append_strategy=config.memory.append_strategy,
        )
        self.personas = PersonaDirectory(self.store, key_prefix=config.memory.key_prefix)

        self.debug_recorder = DebugRecorder(
            Path(config.server.debug_log_path) if config.debug_logging_enabled else None
        )
        self.mcp_handler = MCPHandler(
            server_info=ServerInfo(name="AI Experiments MCP Server", version=config.version),
            debug_recorder=self.debug_recorder,
        )
        self.transport = SseTransport(
            host=config.server.host,
            port=config.server.port,
            sse_path=config.server.sse_path,
            message_path=config.server.message_path,
            cors_enabled=config.server.cors_enabled,
        )

        self._handlers: Dict[str, Any] = {}
        self._register_handlers()

    def _register_handlers(self) -> None:
        """Register every enabled tool, resource and prompt with the MCP handler."""
        enabled = self.config.handlers

        if enabled.save_user_info_to_memory.enabled:
            self._add_tool(SaveUserInfoToMemoryTool(self.memory_service))

        if enabled.get_relevant_docs.enabled:
            self._add_tool(GetRelevantDocsTool(self.personas, self.capabilities))

        if enabled.get_url_content.enabled:
            self._add_tool(GetUrlContentTool(self.capabilities))

        if enabled.execute_code.enabled:
            self._add_tool(ExecuteCodeTool(self.capabilities))

        if enabled.user_memories.enabled:
            resource = UserMemoriesResource(self.memory_service)
            self._handlers[resource.name] = resource
            self.mcp_handler.register_resource(resource)

        if enabled.persona_prompt.enabled:
            self._add_prompt(PersonaPrompt(self.personas))

        if enabled.memory_prompt.enabled:
            self._add_prompt(MemoryPrompt(self.memory_service))

        logger.info(
            "Handlers registered",
            enabled_handlers=list(self._handlers.keys()),
            total_handlers=len(self._handlers),
        )

    def _add_tool(self, tool: Any) -> None:
        self._handlers[tool.name] = tool
        self.mcp_handler.register_tool(tool.get_schema(), tool)

    def _add_prompt(self, prompt: Any) -> None:
        self._handlers[prompt.name] = prompt
        self.mcp_handler.register_prompt(prompt)

    async def start(self) -> None:
        """Start the MCP server."""
        if self._running:
            return

        logger.info("Starting AI Experiments MCP Server", environment=self.config.environment)

        try:
            await self.backend.connect()

            self.transport.set_message_handler(self.mcp_handler.handle_request)
            self.transport.set_session_closed_handler(self.mcp_handler.end_session)
            await self.transport.start()

            self._running = True

            logger.info(
                "Server started successfully",
                handlers=list(self._handlers.keys()),
                debug_recording=self.debug_recorder.enabled,
            )

        except Exception as e:
            logger.error("Failed to start server", error=str(e), exc_info=True)
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the MCP server."""
        logger.info("Stopping AI Experiments MCP Server")

        self._running = False
        if self._shutdown_event is not None:
            self._shutdown_event.set()

        await self.transport.stop()
        await self.backend.disconnect()
        self.debug_recorder.close()

        logger.info("Server stopped")

    async def run(self) -> None:
        """Serve until SIGINT or SIGTERM."""
        self._shutdown_event = asyncio.Event()
        self._setup_signal_handlers()

        try:
            await self.start()
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        if sys.platform == "win32":
            return

        loop = asyncio.get_running_loop()

        def signal_handler(signum: int) -> None:
            logger.info(f"Received signal {signum}, initiating shutdown")
            if self._shutdown_event is not None:
                self._shutdown_event.set()

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, signal_handler, signum)

    @property
    def running(self) -> bool:
        """Check if server is running."""
        return self._running

    @property
    def handlers(self) -> dict:
        """Get registered handlers."""
        return self._handlers.copy()
