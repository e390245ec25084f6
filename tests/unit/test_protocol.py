"""
Unit tests for MCP protocol implementation.
"""

import json

import pytest

from ai_experiments_mcp_server.client.backend import BackendClientError
from ai_experiments_mcp_server.prompts.memory import MemoryPrompt
from ai_experiments_mcp_server.prompts.persona import PersonaPrompt
from ai_experiments_mcp_server.protocol.handlers import MCPHandler
from ai_experiments_mcp_server.protocol.schemas import (
    MCPCallToolRequest,
    MCPInitializeRequest,
    MCPListToolsRequest,
    MCPRequest,
    MCPResponse,
)
from ai_experiments_mcp_server.resources.user_memories import UserMemoriesResource
from ai_experiments_mcp_server.tools.get_url_content import GetUrlContentTool
from ai_experiments_mcp_server.tools.save_user_info_to_memory import SaveUserInfoToMemoryTool


def initialize_request(request_id="init-1"):
    return MCPInitializeRequest(
        id=request_id,
        params={
            "protocolVersion": "2024-11-05",
            "clientInfo": {"name": "test-client", "version": "1.0.0"},
            "capabilities": {},
        },
    )


class TestMCPHandler:
    """Test MCP protocol handler."""

    @pytest.fixture
    def handler(self, memory_service, persona_directory, mock_capabilities):
        """Create MCP handler with every tool, resource and prompt registered."""
        handler = MCPHandler()
        for tool in (
            SaveUserInfoToMemoryTool(memory_service),
            GetUrlContentTool(mock_capabilities),
        ):
            handler.register_tool(tool.get_schema(), tool)
        handler.register_resource(UserMemoriesResource(memory_service))
        handler.register_prompt(PersonaPrompt(persona_directory))
        handler.register_prompt(MemoryPrompt(memory_service))
        return handler

    @pytest.fixture
    async def ready_handler(self, handler):
        await handler.handle_request(initialize_request(), "s1")
        return handler

    @pytest.mark.asyncio
    async def test_handle_initialize(self, handler):
        """Test initialize request handling."""
        response = await handler.handle_request(initialize_request("test-1"), "s1")

        assert response.id == "test-1"
        assert response.result["protocolVersion"] == "2024-11-05"
        assert response.result["serverInfo"]["name"] == "AI Experiments MCP Server"
        assert set(response.result["capabilities"]) == {"tools", "resources", "prompts"}
        assert handler.is_initialized("s1")

    @pytest.mark.asyncio
    async def test_list_tools_before_init(self, handler):
        response = await handler.handle_request(MCPListToolsRequest(id="test-1"), "s1")

        assert response.error is not None
        assert response.error["code"] == -32002

    @pytest.mark.asyncio
    async def test_initialization_is_per_session(self, ready_handler):
        response = await ready_handler.handle_request(MCPListToolsRequest(id="t"), "s2")

        assert response.error["code"] == -32002
        assert ready_handler.is_initialized("s1")
        assert not ready_handler.is_initialized("s2")

    @pytest.mark.asyncio
    async def test_end_session_forgets_initialization(self, ready_handler):
        ready_handler.end_session("s1")

        response = await ready_handler.handle_request(MCPListToolsRequest(id="t"), "s1")
        assert response.error["code"] == -32002

    @pytest.mark.asyncio
    async def test_ping_without_initialize(self, handler):
        response = await handler.handle_request(MCPRequest(id=7, method="ping"), "s1")

        assert response.error is None
        assert response.to_message() == {"jsonrpc": "2.0", "id": 7, "result": {}}

    @pytest.mark.asyncio
    async def test_unknown_method(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(id="x", method="sampling/createMessage"), "s1"
        )

        assert response.error["code"] == -32601
        assert "sampling/createMessage" in response.error["message"]

    @pytest.mark.asyncio
    async def test_list_tools(self, ready_handler):
        response = await ready_handler.handle_request(MCPListToolsRequest(id="t"), "s1")

        names = [tool["name"] for tool in response.result["tools"]]
        assert names == ["saveUserInfoToMemory", "getUrlContent"]
        schema = response.result["tools"][0]["inputSchema"]
        assert schema["type"] == "object"
        assert "userEmail" in schema["required"]

    @pytest.mark.asyncio
    async def test_call_tool(self, ready_handler, kv_store):
        request = MCPCallToolRequest(
            id="call-1",
            params={
                "name": "saveUserInfoToMemory",
                "arguments": {"statement": "likes tea", "userEmail": "a@x.com"},
            },
        )

        response = await ready_handler.handle_request(request, "s1")

        assert response.result == {
            "content": [{"type": "text", "text": "Saved successfully."}],
            "isError": False,
        }
        assert "app/users/a@x.com/memories" in kv_store.records

    @pytest.mark.asyncio
    async def test_call_unknown_tool(self, ready_handler):
        request = MCPCallToolRequest(id="c", params={"name": "nope", "arguments": {}})

        response = await ready_handler.handle_request(request, "s1")

        assert response.error["code"] == -32601

    @pytest.mark.asyncio
    async def test_backend_failure_becomes_error_result(self, ready_handler, mock_capabilities):
        mock_capabilities.get_url_content.side_effect = BackendClientError(
            "GET /experiments/url-content failed with status 502: bad gateway", status=502
        )
        request = MCPCallToolRequest(
            id="c", params={"name": "getUrlContent", "arguments": {"url": "https://a.b"}}
        )

        response = await ready_handler.handle_request(request, "s1")

        assert response.error is None
        assert response.result["isError"] is True
        assert "Tool execution failed" in response.result["content"][0]["text"]
        assert "502" in response.result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_list_resource_templates(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(id="r", method="resources/templates/list"), "s1"
        )

        assert response.result["resourceTemplates"] == [
            {
                "uriTemplate": "users://{userEmail}/memories",
                "name": "userMemories",
                "description": "Everything remembered about the user, one statement per entry",
                "mimeType": "application/json",
            }
        ]

    @pytest.mark.asyncio
    async def test_list_resources_is_empty(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(id="r", method="resources/list"), "s1"
        )

        assert response.result == {"resources": []}

    @pytest.mark.asyncio
    async def test_read_user_memories(self, ready_handler, memory_service):
        await memory_service.append("a@x.com", "likes tea")
        await memory_service.append("a@x.com", "works at Acme")

        response = await ready_handler.handle_request(
            MCPRequest(
                id="r",
                method="resources/read",
                params={"uri": "users://a@x.com/memories"},
            ),
            "s1",
        )

        contents = response.result["contents"]
        assert contents[0]["uri"] == "users://a@x.com/memories"
        assert contents[0]["mimeType"] == "application/json"
        assert json.loads(contents[0]["text"]) == ["likes tea", "works at Acme"]

    @pytest.mark.asyncio
    async def test_read_unknown_resource(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(id="r", method="resources/read", params={"uri": "files://x"}), "s1"
        )

        assert response.error["code"] == -32602
        assert "Resource not found" in response.error["message"]

    @pytest.mark.asyncio
    async def test_list_prompts(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(id="p", method="prompts/list"), "s1"
        )

        prompts = {p["name"]: p for p in response.result["prompts"]}
        assert set(prompts) == {"persona", "memory"}
        persona_args = [a["name"] for a in prompts["persona"]["arguments"]]
        assert persona_args == ["personaId", "userEmail"]
        assert all(a["required"] for a in prompts["persona"]["arguments"])

    @pytest.mark.asyncio
    async def test_get_persona_prompt(self, ready_handler, stored_persona):
        response = await ready_handler.handle_request(
            MCPRequest(
                id="p",
                method="prompts/get",
                params={
                    "name": "persona",
                    "arguments": {"personaId": "tutor", "userEmail": "a@x.com"},
                },
            ),
            "s1",
        )

        message = response.result["messages"][0]
        assert message["role"] == "user"
        assert "tutor-docs" in message["content"]["text"]
        assert "getRelevantDocs" in message["content"]["text"]

    @pytest.mark.asyncio
    async def test_get_persona_prompt_for_missing_persona(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(
                id="p",
                method="prompts/get",
                params={
                    "name": "persona",
                    "arguments": {"personaId": "ghost", "userEmail": "a@x.com"},
                },
            ),
            "s1",
        )

        assert response.error["code"] == -32602
        assert response.error["message"] == "persona not found"
        assert response.error["data"] == {"personaId": "ghost"}

    @pytest.mark.asyncio
    async def test_get_prompt_with_missing_argument(self, ready_handler):
        response = await ready_handler.handle_request(
            MCPRequest(id="p", method="prompts/get", params={"name": "memory"}), "s1"
        )

        assert response.error["code"] == -32602
        assert "userEmail" in response.error["message"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self, ready_handler, mock_capabilities):
        async def explode(request):
            raise RuntimeError("kaboom")

        ready_handler._handle_list_tools = explode

        response = await ready_handler.handle_request(MCPListToolsRequest(id="t"), "s1")

        assert response.error["code"] == -32603
        assert response.error["data"] == {"details": "kaboom"}


class TestMCPResponse:
    """Test JSON-RPC response serialization."""

    def test_result_only(self):
        message = MCPResponse(id=1, result={"ok": True}).to_message()
        assert message == {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}

    def test_error_only(self):
        message = MCPResponse(id=1, error={"code": -32601, "message": "x"}).to_message()
        assert "result" not in message
        assert message["error"]["code"] == -32601
