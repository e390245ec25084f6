"""
Transport layer for MCP protocol communication.

Implements the HTTP+SSE transport: a host opens a long-lived event
stream, receives the URL to post messages to, and gets every response
back as an event on its own stream.
"""

import json
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog
from aiohttp import web
from pydantic import ValidationError

from .schemas import MCPNotification, MCPRequest, MCPResponse
from .sessions import SessionRegistry, SseSession

logger = structlog.get_logger(__name__)

MessageHandler = Callable[[MCPRequest, str], Awaitable[MCPResponse]]


class TransportError(Exception):
    """Base exception for transport errors."""


class SseTransport:
    """
    Server-sent events transport for MCP communication.

    GET on the stream path opens a session; POST on the message path with
    ?sessionId=<id> delivers one JSON-RPC message to that session.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 3001,
        sse_path: str = "/sse",
        message_path: str = "/messages",
        cors_enabled: bool = False,
    ):
        self.host = host
        self.port = port
        self.sse_path = sse_path
        self.message_path = message_path
        self.cors_enabled = cors_enabled
        self.sessions = SessionRegistry()
        self._message_handler: Optional[MessageHandler] = None
        self._session_closed_handler: Optional[Callable[[str], None]] = None
        self._runner: Optional[web.AppRunner] = None

    def set_message_handler(self, handler: MessageHandler) -> None:
        """Set the message handler for incoming requests."""
        self._message_handler = handler

    def set_session_closed_handler(self, handler: Callable[[str], None]) -> None:
        """Set a callback invoked with the session id when a stream ends."""
        self._session_closed_handler = handler

    def create_app(self) -> web.Application:
        """Build the aiohttp application serving both endpoints."""
        app = web.Application()
        app.router.add_get(self.sse_path, self._handle_sse)
        app.router.add_post(self.message_path, self._handle_post)

        if self.cors_enabled:
            app.router.add_route("OPTIONS", self.sse_path, self._handle_preflight)
            app.router.add_route("OPTIONS", self.message_path, self._handle_preflight)
            app.on_response_prepare.append(self._add_cors_headers)

        app.on_shutdown.append(self._on_shutdown)
        return app

    async def start(self) -> None:
        """Start listening for connections."""
        if self._runner is not None:
            raise TransportError("Transport is already running")

        if not self._message_handler:
            raise TransportError("Message handler not set")

        self._runner = web.AppRunner(self.create_app())
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(
            "SSE transport listening",
            url=f"http://{self.host}:{self.port}{self.sse_path}",
            message_path=self.message_path,
        )

    async def stop(self) -> None:
        """Close all sessions and stop the HTTP server."""
        self.sessions.close_all()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("SSE transport stopped")

    @property
    def running(self) -> bool:
        return self._runner is not None

    async def _on_shutdown(self, app: web.Application) -> None:
        self.sessions.close_all()

    async def _handle_sse(self, request: web.Request) -> web.StreamResponse:
        """Open an event stream and pump the session's messages into it."""
        session = self.sessions.create()

        response = web.StreamResponse()
        response.content_type = "text/event-stream"
        response.headers["Cache-Control"] = "no-cache"
        await response.prepare(request)

        try:
            endpoint = f"{self.message_path}?sessionId={session.session_id}"
            await self._write_event(response, "endpoint", endpoint)

            while True:
                message = await session.next_message()
                if message is None:
                    break
                data = json.dumps(message, separators=(",", ":"))
                await self._write_event(response, "message", data)

        except ConnectionResetError:
            logger.info("Event stream disconnected", session_id=session.session_id)

        finally:
            self.sessions.remove(session.session_id)
            if self._session_closed_handler is not None:
                self._session_closed_handler(session.session_id)

        return response

    @staticmethod
    async def _write_event(response: web.StreamResponse, event: str, data: str) -> None:
        await response.write(f"event: {event}\ndata: {data}\n\n".encode("utf-8"))

    async def _handle_post(self, request: web.Request) -> web.Response:
        """Route one posted message to the session named in the query string."""
        session_id = request.query.get("sessionId") or request.query.get("session_id")
        if not session_id:
            return web.Response(status=400, text="Missing sessionId")

        session = self.sessions.get(session_id)
        if session is None:
            logger.warning("Message for unknown session", session_id=session_id)
            return web.Response(status=404, text="Session not found")

        body = await request.text()
        try:
            message_data = json.loads(body)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON received", error=str(e), body=body[:100])
            await session.send(self._create_error_response(None, -32700, "Parse error"))
            return web.Response(status=400, text="Invalid JSON")

        if not isinstance(message_data, dict):
            await session.send(self._create_error_response(None, -32600, "Invalid request"))
            return web.Response(status=400, text="Invalid message")

        with structlog.contextvars.bound_contextvars(session_id=session.session_id):
            await self._process_message(session, message_data)
        return web.Response(status=202, text="Accepted")

    async def _handle_preflight(self, request: web.Request) -> web.Response:
        return web.Response(status=204)

    async def _add_cors_headers(self, request: web.Request, response: web.StreamResponse) -> None:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "*"

    async def _process_message(self, session: SseSession, message_data: Dict[str, Any]) -> None:
        if "method" in message_data:
            if "id" in message_data:
                await self._handle_request(session, message_data)
            else:
                self._handle_notification(session, message_data)
        else:
            # Responses to server-initiated requests are not expected
            logger.warning("Received response in server mode", message_data=message_data)

    async def _handle_request(self, session: SseSession, message_data: Dict[str, Any]) -> None:
        """Handle incoming request message."""
        try:
            request = MCPRequest(**message_data)
        except ValidationError as e:
            logger.error("Invalid request format", error=str(e))
            request_id = message_data.get("id")
            await session.send(
                self._create_error_response(request_id, -32600, f"Invalid request: {e}")
            )
            return

        logger.info(
            "Processing request",
            method=request.method,
            request_id=request.id,
            session_id=session.session_id,
        )

        response = await self._safe_call_handler(request, session.session_id)
        await session.send(response.to_message())

    def _handle_notification(self, session: SseSession, message_data: Dict[str, Any]) -> None:
        try:
            notification = MCPNotification(**message_data)
            logger.info(
                "Received notification",
                method=notification.method,
                session_id=session.session_id,
            )
        except ValidationError as e:
            logger.error("Invalid notification format", error=str(e))

    async def _safe_call_handler(self, request: MCPRequest, session_id: str) -> MCPResponse:
        """Call the message handler, turning unexpected failures into error responses."""
        if self._message_handler is None:
            logger.error("No message handler set")
            return MCPResponse(
                id=request.id,
                error={"code": -32603, "message": "Internal error: no message handler"},
            )
        try:
            return await self._message_handler(request, session_id)
        except Exception as e:
            logger.error("Handler error", error=str(e), exc_info=True)
            return MCPResponse(
                id=request.id,
                error={"code": -32603, "message": f"Internal error: {e}"},
            )

    @staticmethod
    def _create_error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
        if not isinstance(request_id, (str, int)):
            request_id = None
        return MCPResponse(id=request_id, error={"code": code, "message": message}).to_message()
