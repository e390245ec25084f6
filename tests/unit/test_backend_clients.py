"""
Unit tests for the backend HTTP clients against a local fake backend.
"""

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer, unused_port

from ai_experiments_mcp_server.client.backend import BackendClient, BackendClientError
from ai_experiments_mcp_server.client.capabilities import (
    CapabilitiesClient,
    UnsupportedLanguageError,
)
from ai_experiments_mcp_server.client.json_data import JsonDataClient
from ai_experiments_mcp_server.config.settings import BackendConfig

SECRET = "test-secret"


def make_backend_app(state):
    """A minimal in-memory stand-in for the backend's HTTP API."""
    records = state["records"]

    @web.middleware
    async def check_secret(request, handler):
        body = await request.json() if request.can_read_body else None
        state["requests"].append((request.method, request.path, dict(request.query), body))
        if request.headers.get("X-API-SECRET") != SECRET:
            return web.json_response({"message": "Unauthorized"}, status=401)
        return await handler(request)

    def stored(key, value):
        version = records[key]["version"] + 1 if key in records else 1
        records[key] = {
            "id": f"id-{key}",
            "key": key,
            "value": value,
            "version": version,
            "expireAt": None,
            "createdAt": "2024-01-01T00:00:00Z",
            "updatedAt": "2024-01-01T00:00:00Z",
        }
        return records[key]

    async def get_key(request):
        return web.json_response(records.get(request.query["key"]))

    async def set_key(request):
        body = await request.json()
        return web.json_response(stored(body["key"], body["value"]))

    async def delete_key(request):
        records.pop(request.query["key"], None)
        return web.json_response({"deleted": 1})

    async def get_keys_like(request):
        prefix = request.query["key"]
        return web.json_response([r for k, r in records.items() if k.startswith(prefix)])

    async def delete_keys_like(request):
        prefix = request.query["key"]
        for key in [k for k in records if k.startswith(prefix)]:
            del records[key]
        return web.Response(status=204)

    async def bulk(request):
        body = await request.json()
        created = [stored(item["key"], item["value"]) for item in body["data"]]
        return web.json_response({"count": len(created)})

    async def relevant_docs(request):
        return web.json_response([{"pageContent": "chlorophyll", "source": "bio.pdf"}])

    async def url_content(request):
        if request.query.get("type") == "image":
            return web.json_response({"description": "a cat"})
        return web.Response(text="Example Domain")

    async def execute_code(request):
        body = await request.json()
        if body["language"] == "cpp":
            return web.Response(text="compiled")
        return web.json_response({"output": "1\n"})

    async def broken(request):
        return web.Response(status=500, text="database unavailable")

    app = web.Application(middlewares=[check_secret])
    app.router.add_get("/json-data", get_key)
    app.router.add_post("/json-data", set_key)
    app.router.add_delete("/json-data", delete_key)
    app.router.add_get("/json-data/key-like", get_keys_like)
    app.router.add_delete("/json-data/key-like", delete_keys_like)
    app.router.add_post("/json-data/bulk", bulk)
    app.router.add_post("/experiments/relevant-docs", relevant_docs)
    app.router.add_get("/experiments/url-content", url_content)
    app.router.add_post("/experiments/execute-code", execute_code)
    app.router.add_get("/broken", broken)
    return app


@pytest.fixture
def backend_state():
    return {"records": {}, "requests": []}


@pytest.fixture
async def backend_server(backend_state):
    server = TestServer(make_backend_app(backend_state))
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
async def backend(backend_server):
    config = BackendConfig(
        api_url=f"http://{backend_server.host}:{backend_server.port}/",
        api_secret=SECRET,
        timeout_seconds=5,
    )
    client = BackendClient(config)
    await client.connect()
    yield client
    await client.disconnect()


class TestBackendClient:
    """Test the shared HTTP client."""

    @pytest.mark.asyncio
    async def test_secret_header_sent(self, backend, backend_state):
        await backend.request("GET", "/json-data", params={"key": "k"})

        assert backend_state["requests"][0][:3] == ("GET", "/json-data", {"key": "k"})

    @pytest.mark.asyncio
    async def test_wrong_secret_is_rejected(self, backend_server):
        config = BackendConfig(
            api_url=f"http://{backend_server.host}:{backend_server.port}",
            api_secret="wrong",
        )
        async with BackendClient(config) as client:
            with pytest.raises(BackendClientError) as exc_info:
                await client.request("GET", "/json-data", params={"key": "k"})

        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_http_error_status(self, backend):
        with pytest.raises(BackendClientError) as exc_info:
            await backend.request("GET", "/broken")

        assert exc_info.value.status == 500
        assert "database unavailable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_none_params_are_dropped(self, backend, backend_state):
        await backend.request("GET", "/json-data", params={"key": "k", "extra": None})

        assert backend_state["requests"][0][2] == {"key": "k"}

    @pytest.mark.asyncio
    async def test_connection_failure(self):
        config = BackendConfig(
            api_url=f"http://127.0.0.1:{unused_port()}", api_secret=SECRET, timeout_seconds=2
        )
        async with BackendClient(config) as client:
            with pytest.raises(BackendClientError) as exc_info:
                await client.request("GET", "/json-data", params={"key": "k"})

        assert exc_info.value.status is None
        assert exc_info.value.original_error is not None

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, backend_server):
        config = BackendConfig(
            api_url=f"http://{backend_server.host}:{backend_server.port}", api_secret=SECRET
        )
        client = BackendClient(config)
        assert not client.connected

        await client.connect()
        assert client.connected

        await client.disconnect()
        assert not client.connected


class TestJsonDataClient:
    """Test the key/value client."""

    @pytest.fixture
    def store(self, backend):
        return JsonDataClient(backend)

    @pytest.mark.asyncio
    async def test_get_missing_key(self, store):
        assert await store.get_key("app/users/a@x.com/memories") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value",
        [[], {"nested": {"list": [1, 2, {"deep": True}]}}, None, "text", 42],
    )
    async def test_set_then_get(self, store, value):
        await store.set_key("k", value)

        record = await store.get_key("k")
        assert record is not None
        assert record.key == "k"
        assert record.value == value
        assert record.version == 1

    @pytest.mark.asyncio
    async def test_set_replaces_whole_value(self, store):
        await store.set_key("k", [1, 2])
        record = await store.set_key("k", [3])

        assert record.value == [3]
        assert record.version == 2
        assert record.created_at is not None

    @pytest.mark.asyncio
    async def test_delete_key(self, store):
        await store.set_key("k", 1)
        await store.delete_key("k")

        assert await store.get_key("k") is None

    @pytest.mark.asyncio
    async def test_keys_like(self, store):
        await store.set_key("app/users/a@x.com/personas/p1", {"collectionName": "c1"})
        await store.set_key("app/users/a@x.com/personas/p2", {"collectionName": "c2"})
        await store.set_key("app/users/b@x.com/personas/p3", {"collectionName": "c3"})

        records = await store.get_keys_like("app/users/a@x.com/personas/")
        assert sorted(r.key for r in records) == [
            "app/users/a@x.com/personas/p1",
            "app/users/a@x.com/personas/p2",
        ]

        await store.delete_keys_like("app/users/a@x.com/")
        assert await store.get_keys_like("app/users/") != []
        assert await store.get_key("app/users/a@x.com/personas/p1") is None

    @pytest.mark.asyncio
    async def test_create_many(self, store, backend_state):
        await store.create_many([{"key": "a", "value": 1}, {"key": "b", "value": [2]}])

        assert (await store.get_key("b")).value == [2]
        method, path, _, body = backend_state["requests"][0]
        assert (method, path) == ("POST", "/json-data/bulk")
        assert body == {"data": [{"key": "a", "value": 1}, {"key": "b", "value": [2]}]}


class TestCapabilitiesClient:
    """Test the capability client."""

    @pytest.fixture
    def capabilities(self, backend):
        return CapabilitiesClient(backend)

    @pytest.mark.asyncio
    async def test_relevant_docs_body(self, capabilities, backend_state):
        docs = await capabilities.get_relevant_docs("chlorophyll", "tutor-docs", num_docs=2)

        assert docs == [{"pageContent": "chlorophyll", "source": "bio.pdf"}]
        assert backend_state["requests"][0][3] == {
            "query": "chlorophyll",
            "collectionName": "tutor-docs",
            "numDocs": 2,
        }

    @pytest.mark.asyncio
    async def test_url_content_text(self, capabilities, backend_state):
        content = await capabilities.get_url_content("https://example.com")

        assert content == "Example Domain"
        assert backend_state["requests"][0][2] == {"url": "https://example.com"}

    @pytest.mark.asyncio
    async def test_url_content_json_is_serialized(self, capabilities):
        content = await capabilities.get_url_content("https://a.b/cat.png", type="image")

        assert content == '{"description": "a cat"}'

    @pytest.mark.asyncio
    async def test_execute_code(self, capabilities, backend_state):
        assert await capabilities.execute_code("print(1)", "python") == {"output": "1\n"}
        assert backend_state["requests"][0][3] == {"code": "print(1)", "language": "python"}

    @pytest.mark.asyncio
    async def test_execute_code_text_result(self, capabilities):
        assert await capabilities.execute_code("int main(){}", "cpp") == {"output": "compiled"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("language", ["unknown", "cobol"])
    async def test_unsupported_language_makes_no_request(
        self, capabilities, backend_state, language
    ):
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            await capabilities.execute_code("x", language)

        assert exc_info.value.message == "This programming language is not supported"
        assert backend_state["requests"] == []
