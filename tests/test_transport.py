"""
Unit tests for the MCP transport implementations.

Tests the stdio transport with string IO streams and the HTTP/SSE transport
through FastAPI's TestClient.
"""

import asyncio
import io
import json
import os
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from mcpkit.protocol import ErrorCode
from mcpkit.schema import SchemaBuilder
from mcpkit.server import Server
from mcpkit.transport import (
    SSETransport,
    StdioTransport,
    Transport,
    TransportError,
    TransportType,
)


class EchoHandler:
    """Message handler answering every request with its method name."""

    def __init__(self):
        self.messages: List[Any] = []

    async def __call__(self, message: Any) -> Optional[Dict[str, Any]]:
        self.messages.append(message)
        if "id" not in message:
            return None
        return {"jsonrpc": "2.0", "id": message["id"], "result": {"method": message["method"]}}


def output_messages(stream: io.StringIO) -> List[Dict[str, Any]]:
    return [json.loads(line) for line in stream.getvalue().splitlines()]


@pytest_asyncio.fixture
async def stdio_transport():
    """Fixture for a stdio transport with string IO streams."""
    output_stream = io.StringIO()
    transport = StdioTransport(input_stream=io.StringIO(), output_stream=output_stream)
    yield transport, output_stream


class TestTransportBase:
    """Tests for the transport abstractions."""

    def test_transport_is_abstract(self):
        """Test that Transport cannot be instantiated."""
        with pytest.raises(TypeError):
            Transport()

    def test_transport_info(self):
        """Test transport info for each implementation."""
        assert StdioTransport().info.type == TransportType.STDIO
        info = SSETransport(host="0.0.0.0", port=8080, path_prefix="/api/").info
        assert info.type == TransportType.SSE
        assert info.description == "http://0.0.0.0:8080/api"

    def test_transport_error(self):
        """Test transport error attributes."""
        error = TransportError("broken pipe", data={"fd": 1})
        assert str(error) == "broken pipe"
        assert error.data == {"fd": 1}


class TestStdioTransport:
    """Tests for the stdio transport."""

    @pytest.mark.asyncio
    async def test_send_writes_one_line(self, stdio_transport):
        """Test that each message is written as a single line."""
        transport, output = stdio_transport
        await transport.send({"jsonrpc": "2.0", "method": "notifications/tools/list_changed"})
        await transport.send({"jsonrpc": "2.0", "id": 1, "result": {"text": "a\nb"}})

        lines = output.getvalue().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["result"]["text"] == "a\nb"

    @pytest.mark.asyncio
    async def test_send_failure(self, stdio_transport):
        """Test that write failures raise TransportError."""
        transport, output = stdio_transport
        output.close()
        with pytest.raises(TransportError):
            await transport.send({"jsonrpc": "2.0", "id": 1, "result": {}})

    @pytest.mark.asyncio
    async def test_listen_until_eof(self):
        """Test handling input lines until end of input."""
        lines = [
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "ping"}),
            "",
            json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
            "{broken",
            json.dumps({"jsonrpc": "2.0", "id": "b", "method": "tools/list"}),
        ]
        output = io.StringIO()
        transport = StdioTransport(io.StringIO("\n".join(lines) + "\n"), output)
        handler = EchoHandler()

        await asyncio.wait_for(transport.listen(handler), timeout=5)

        # The blank line is skipped and the broken line never reaches the handler
        assert len(handler.messages) == 3
        responses = output_messages(output)
        assert responses[0] == {"jsonrpc": "2.0", "id": 1, "result": {"method": "ping"}}
        assert responses[1]["id"] is None
        assert responses[1]["error"]["code"] == ErrorCode.PARSE_ERROR
        assert responses[2]["id"] == "b"

    @pytest.mark.asyncio
    async def test_unsendable_response_does_not_stop_listening(self):
        """Test that a response failing to send is logged and later messages are handled."""
        lines = [
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "bad"}),
            json.dumps({"jsonrpc": "2.0", "id": 2, "method": "ping"}),
        ]
        output = io.StringIO()
        transport = StdioTransport(io.StringIO("\n".join(lines) + "\n"), output)

        async def handler(message):
            if message["method"] == "bad":
                return {"jsonrpc": "2.0", "id": message["id"], "result": {"x": object()}}
            return {"jsonrpc": "2.0", "id": message["id"], "result": {}}

        await asyncio.wait_for(transport.listen(handler), timeout=5)

        assert output_messages(output) == [{"jsonrpc": "2.0", "id": 2, "result": {}}]

    @pytest.mark.asyncio
    async def test_close_stops_listening(self):
        """Test that close() ends listen() while input is still open."""
        read_fd, write_fd = os.pipe()
        input_stream = os.fdopen(read_fd, "r")
        writer = os.fdopen(write_fd, "w")
        transport = StdioTransport(input_stream, io.StringIO())
        handler = AsyncMock(return_value=None)

        task = asyncio.create_task(transport.listen(handler))
        await asyncio.sleep(0.05)
        assert not task.done()

        await transport.close()
        await asyncio.wait_for(task, timeout=5)
        writer.close()
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_listen_twice(self):
        """Test that a running transport cannot listen again."""
        read_fd, write_fd = os.pipe()
        writer = os.fdopen(write_fd, "w")
        transport = StdioTransport(os.fdopen(read_fd, "r"), io.StringIO())

        task = asyncio.create_task(transport.listen(EchoHandler()))
        await asyncio.sleep(0.05)
        with pytest.raises(TransportError):
            await transport.listen(EchoHandler())

        await transport.close()
        await asyncio.wait_for(task, timeout=5)
        writer.close()


class TestSSETransport:
    """Tests for the HTTP/SSE transport."""

    @pytest.fixture
    def transport(self):
        transport = SSETransport()
        transport.set_handler(EchoHandler())
        return transport

    def test_post_request(self, transport):
        """Test posting a request returns its response."""
        client = TestClient(transport.app)
        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert response.status_code == 200
        assert response.json() == {"jsonrpc": "2.0", "id": 1, "result": {"method": "ping"}}

    def test_post_notification(self, transport):
        """Test that notifications get an empty response."""
        client = TestClient(transport.app)
        response = client.post(
            "/mcp", json={"jsonrpc": "2.0", "method": "notifications/initialized"}
        )
        assert response.status_code == 204
        assert response.content == b""

    def test_post_invalid_json(self, transport):
        """Test that undecodable bodies get a parse error."""
        client = TestClient(transport.app)
        response = client.post(
            "/mcp", content=b"{nope", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["id"] is None
        assert body["error"]["code"] == ErrorCode.PARSE_ERROR

    def test_path_prefix(self):
        """Test that routes live under the path prefix."""
        transport = SSETransport(path_prefix="/api")
        transport.set_handler(EchoHandler())
        client = TestClient(transport.app)
        assert client.post("/api/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"}).status_code == 200
        assert client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"}).status_code == 404

    def test_health(self, transport):
        """Test the health endpoint."""
        client = TestClient(transport.app)
        assert client.get("/health").json() == {
            "status": "ok",
            "transport": "sse",
            "listeners": 0,
        }

    def test_no_handler(self):
        """Test posting before a handler is set."""
        client = TestClient(SSETransport().app)
        with pytest.raises(TransportError):
            client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "ping"})

    def test_server_over_http(self):
        """Test a full session against a server."""
        transport = SSETransport()
        server = Server(transport=transport)
        server.add_tool(
            "capitalize",
            "Convert text to uppercase",
            SchemaBuilder.object().add_property("text", SchemaBuilder.string()),
            lambda args: args["text"].upper(),
        )
        transport.set_handler(server.handle_message)
        client = TestClient(transport.app)

        response = client.post("/mcp", json={"jsonrpc": "2.0", "id": 1, "method": "tools/list"})
        assert response.json()["error"]["message"] == "Server not initialized"

        client.post("/mcp", json={"jsonrpc": "2.0", "id": 2, "method": "initialize"})
        response = client.post(
            "/mcp",
            json={
                "jsonrpc": "2.0",
                "id": 3,
                "method": "tools/call",
                "params": {"name": "capitalize", "arguments": {"text": "hello"}},
            },
        )
        assert response.json()["result"] == {"content": [{"type": "text", "text": "HELLO"}]}

    @pytest.mark.asyncio
    async def test_send_fans_out(self):
        """Test that outbound messages reach every event listener."""
        transport = SSETransport()
        first = transport._subscribe()
        second = transport._subscribe()
        assert transport.listener_count == 2

        message = {"jsonrpc": "2.0", "method": "notifications/prompts/list_changed"}
        await transport.send(message)
        assert first.get_nowait() == message
        assert second.get_nowait() == message

    @pytest.mark.asyncio
    async def test_event_generator(self):
        """Test SSE event formatting and listener cleanup."""
        transport = SSETransport()
        queue = transport._subscribe()
        message = {"jsonrpc": "2.0", "id": 1, "result": {}}
        await transport.send(message)
        await transport.close()

        events = [event async for event in transport._event_generator(queue)]
        assert events == [{"event": "message", "data": json.dumps(message)}]
        assert transport.listener_count == 0
