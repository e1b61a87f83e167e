"""
Unit tests for the MCP server.

Tests the request handler's lifecycle, method dispatch and error mapping, and
the server's change notifications and start/stop handling.
"""

import asyncio
import io
import json
import threading
from typing import Any, Dict, List

import pytest
import pytest_asyncio

from mcpkit.prompts import Prompt, PromptArgument, PromptMessage, PromptResponse
from mcpkit.protocol import PROTOCOL_VERSION, ErrorCode
from mcpkit.resources import ResourceContents
from mcpkit.schema import SchemaBuilder
from mcpkit.server import Server, ServerOptions
from mcpkit.transport import StdioTransport, Transport, TransportInfo, TransportType


class RecordingTransport(Transport):
    """Transport that records every message sent to the client."""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    @property
    def info(self) -> TransportInfo:
        return TransportInfo(type=TransportType.STDIO, description="recording")

    async def listen(self, handler):
        pass

    async def send(self, message):
        self.sent.append(message)

    async def close(self):
        pass


def request(method: str, params=None, request_id=1) -> Dict[str, Any]:
    message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def notification(method: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "method": method}


async def settle():
    """Let scheduled notification tasks run."""
    for _ in range(5):
        await asyncio.sleep(0.01)


def build_server(options=None) -> Server:
    server = Server(transport=RecordingTransport(), options=options)
    server.add_tool(
        "add",
        "Add two numbers",
        SchemaBuilder.object()
        .add_property("a", SchemaBuilder.number())
        .add_property("b", SchemaBuilder.number()),
        lambda args: args["a"] + args["b"],
    )
    server.add_resource(
        "memory://greeting",
        "Greeting",
        "A friendly greeting",
        lambda: ResourceContents.from_text("Hello, World!"),
    )
    server.add_template(
        "weather://{city}/{date}",
        "Weather",
        "Forecast",
        "application/json",
        lambda params: ResourceContents.from_text(json.dumps(params), "application/json"),
    )
    server.add_prompt(
        Prompt(
            name="greet",
            description="Greet someone",
            arguments=[PromptArgument(name="name", required=True)],
        ),
        lambda name, args: PromptResponse(
            messages=[PromptMessage.text("assistant", f"Hello {args['name']}!")]
        ),
    )
    return server


@pytest_asyncio.fixture
async def server():
    """Fixture for a server that has not been initialized."""
    return build_server()


@pytest_asyncio.fixture
async def initialized_server(server):
    """Fixture for a server that completed the initialize handshake."""
    response = await server.handle_message(request("initialize", {"protocolVersion": "x"}, 0))
    assert "result" in response
    return server


class TestLifecycle:
    """Tests for the initialize handshake."""

    @pytest.mark.asyncio
    async def test_requests_before_initialize(self, server):
        """Test that methods other than initialize are rejected first."""
        for method in ("tools/list", "ping", "no/such/method"):
            response = await server.handle_message(request(method))
            assert response == {
                "jsonrpc": "2.0",
                "id": 1,
                "error": {"code": ErrorCode.INVALID_REQUEST, "message": "Server not initialized"},
            }

    @pytest.mark.asyncio
    async def test_initialize(self, server):
        """Test the initialize result."""
        response = await server.handle_message(request("initialize", {}))
        assert response["id"] == 1
        assert response["result"] == {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {
                "tools": {"listChanged": True},
                "resources": {"listChanged": True, "subscribe": False},
                "prompts": {"listChanged": True},
            },
            "serverInfo": {"name": "mcpkit-server", "version": server.options.version},
        }
        assert server.handler.initialized

    @pytest.mark.asyncio
    async def test_capabilities_follow_options(self):
        """Test that capability flags come from the options."""
        server = build_server(
            ServerOptions(name="custom", version="9.9", tools_list_changed=False)
        )
        response = await server.handle_message(request("initialize"))
        result = response["result"]
        assert result["serverInfo"] == {"name": "custom", "version": "9.9"}
        assert result["capabilities"]["tools"] == {"listChanged": False}

    @pytest.mark.asyncio
    async def test_repeated_initialize(self, initialized_server):
        """Test that initialize may be sent again."""
        response = await initialized_server.handle_message(request("initialize", {}, 2))
        assert response["result"]["protocolVersion"] == PROTOCOL_VERSION

    @pytest.mark.asyncio
    async def test_initialized_notification(self, initialized_server):
        """Test that notifications get no response."""
        assert await initialized_server.handle_message(
            notification("notifications/initialized")
        ) is None
        assert await initialized_server.handle_message(
            notification("notifications/cancelled")
        ) is None

    @pytest.mark.asyncio
    async def test_ping(self, initialized_server):
        """Test ping."""
        response = await initialized_server.handle_message(request("ping", request_id="p"))
        assert response == {"jsonrpc": "2.0", "id": "p", "result": {}}


class TestDispatch:
    """Tests for method dispatch and error mapping."""

    @pytest.mark.asyncio
    async def test_unknown_method(self, initialized_server):
        """Test calling a method that does not exist."""
        response = await initialized_server.handle_message(request("tools/remove"))
        assert response["error"] == {
            "code": ErrorCode.METHOD_NOT_FOUND,
            "message": "Method not found: tools/remove",
        }

    @pytest.mark.asyncio
    async def test_malformed_envelope_keeps_id(self, initialized_server):
        """Test that malformed requests are answered on their id."""
        response = await initialized_server.handle_message(
            {"jsonrpc": "2.0", "id": 9, "method": 42}
        )
        assert response["id"] == 9
        assert response["error"]["code"] == ErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_malformed_envelope_without_usable_id(self, initialized_server):
        """Test that errors for unaddressable messages use a null id."""
        response = await initialized_server.handle_message([1, 2, 3])
        assert response["id"] is None
        assert response["error"]["code"] == ErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_tools_list(self, initialized_server):
        """Test listing tools."""
        response = await initialized_server.handle_message(request("tools/list"))
        tools = response["result"]["tools"]
        assert [tool["name"] for tool in tools] == ["add"]
        assert tools[0]["inputSchema"]["required"] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_tools_call(self, initialized_server):
        """Test calling a tool."""
        response = await initialized_server.handle_message(
            request("tools/call", {"name": "add", "arguments": {"a": 1, "b": 2}})
        )
        assert response["result"] == {"content": [{"type": "text", "text": "3"}]}

    @pytest.mark.asyncio
    async def test_tools_call_invalid_arguments(self, initialized_server):
        """Test that argument validation failures are tool errors, not protocol errors."""
        response = await initialized_server.handle_message(
            request("tools/call", {"name": "add", "arguments": {"a": "1", "b": 2}})
        )
        assert response["result"]["isError"] is True
        assert response["result"]["content"][0]["text"] == "Expected number value at a"

    @pytest.mark.asyncio
    async def test_tools_call_unknown_tool(self, initialized_server):
        """Test calling a tool that does not exist."""
        response = await initialized_server.handle_message(
            request("tools/call", {"name": "subtract", "arguments": {}})
        )
        assert response["error"] == {
            "code": ErrorCode.METHOD_NOT_FOUND,
            "message": "Tool not found: subtract",
        }

    @pytest.mark.asyncio
    async def test_tools_call_missing_params(self, initialized_server):
        """Test that tools/call needs a name and arguments."""
        response = await initialized_server.handle_message(request("tools/call", {"name": "add"}))
        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS

        response = await initialized_server.handle_message(request("tools/call"))
        assert response["error"]["code"] == ErrorCode.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_resources(self, initialized_server):
        """Test listing and reading resources."""
        response = await initialized_server.handle_message(request("resources/list"))
        assert response["result"] == {
            "resources": [
                {
                    "uri": "memory://greeting",
                    "name": "Greeting",
                    "description": "A friendly greeting",
                }
            ]
        }

        response = await initialized_server.handle_message(
            request("resources/read", {"uri": "memory://greeting"})
        )
        assert response["result"] == {
            "contents": [
                {"uri": "memory://greeting", "mimeType": "text/plain", "text": "Hello, World!"}
            ]
        }

    @pytest.mark.asyncio
    async def test_resource_templates(self, initialized_server):
        """Test listing and reading templated resources."""
        response = await initialized_server.handle_message(request("resources/templates/list"))
        assert response["result"]["resourceTemplates"][0]["uriTemplate"] == (
            "weather://{city}/{date}"
        )

        response = await initialized_server.handle_message(
            request("resources/read", {"uri": "weather://paris/2025-03-26"})
        )
        contents = response["result"]["contents"][0]
        assert contents["uri"] == "weather://paris/2025-03-26"
        assert json.loads(contents["text"]) == {"city": "paris", "date": "2025-03-26"}

    @pytest.mark.asyncio
    async def test_resource_not_found(self, initialized_server):
        """Test reading an unknown resource."""
        response = await initialized_server.handle_message(
            request("resources/read", {"uri": "memory://missing"})
        )
        assert response["error"] == {
            "code": ErrorCode.METHOD_NOT_FOUND,
            "message": "Resource not found: memory://missing",
        }

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_internal_error(self, initialized_server):
        """Test that reader exceptions become internal errors."""

        def explode():
            raise RuntimeError("boom")

        initialized_server.add_resource("memory://broken", "Broken", "", explode)
        response = await initialized_server.handle_message(
            request("resources/read", {"uri": "memory://broken"})
        )
        assert response["error"] == {
            "code": ErrorCode.INTERNAL_ERROR,
            "message": "Internal error: boom",
        }

    @pytest.mark.asyncio
    async def test_debug_adds_traceback(self):
        """Test that debug mode attaches the traceback to internal errors."""
        server = build_server(ServerOptions(debug=True))
        await server.handle_message(request("initialize", {}, 0))

        def explode():
            raise RuntimeError("boom")

        server.add_resource("memory://broken", "Broken", "", explode)
        response = await server.handle_message(
            request("resources/read", {"uri": "memory://broken"})
        )
        assert response["error"]["message"] == "Internal error: boom"
        assert "Traceback" in response["error"]["data"]
        assert "RuntimeError: boom" in response["error"]["data"]

    @pytest.mark.asyncio
    async def test_unencodable_result_is_internal_error(self, initialized_server):
        """Test that results JSON cannot encode become internal errors."""
        initialized_server.add_tool(
            "opaque",
            "Returns an envelope with an opaque value",
            SchemaBuilder.object(),
            lambda args: {"content": [], "_meta": {"handle": object()}},
        )
        response = await initialized_server.handle_message(
            request("tools/call", {"name": "opaque", "arguments": {}}, 7)
        )
        assert response["id"] == 7
        assert response["error"]["code"] == ErrorCode.INTERNAL_ERROR
        assert "not JSON serializable" in response["error"]["message"]

    @pytest.mark.asyncio
    async def test_prompts(self, initialized_server):
        """Test listing and getting prompts."""
        response = await initialized_server.handle_message(request("prompts/list"))
        assert response["result"]["prompts"][0]["name"] == "greet"

        response = await initialized_server.handle_message(
            request("prompts/get", {"name": "greet", "arguments": {"name": "Ada"}})
        )
        assert response["result"] == {
            "description": "",
            "messages": [
                {"role": "assistant", "content": {"type": "text", "text": "Hello Ada!"}}
            ],
        }

    @pytest.mark.asyncio
    async def test_prompts_get_errors(self, initialized_server):
        """Test prompt lookup and argument errors."""
        response = await initialized_server.handle_message(
            request("prompts/get", {"name": "greet"})
        )
        assert response["error"] == {
            "code": ErrorCode.INVALID_PARAMS,
            "message": "Missing required argument: name",
        }

        response = await initialized_server.handle_message(
            request("prompts/get", {"name": "farewell"})
        )
        assert response["error"]["code"] == ErrorCode.METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_failing_notification_is_silent(self, initialized_server):
        """Test that notifications never produce a response, even for bad methods."""
        message = {"jsonrpc": "2.0", "method": "tools/call", "params": {"name": "nope"}}
        assert await initialized_server.handle_message(message) is None


class TestNotifications:
    """Tests for change notifications."""

    @pytest.mark.asyncio
    async def test_no_notifications_before_initialize(self, server):
        """Test that changes before initialize are not reported."""
        notify = server.add_resource(
            "memory://counter", "Counter", "", lambda: ResourceContents.from_text("1")
        )
        notify()
        await settle()
        assert server.transport.sent == []

    @pytest.mark.asyncio
    async def test_resource_updated(self, initialized_server):
        """Test resource update notifications."""
        notify = initialized_server.add_dynamic_resource(
            "memory://notes/", "Notes", "", lambda rest: ResourceContents.from_text(rest)
        )
        notify()
        await settle()
        assert initialized_server.transport.sent == [
            {
                "jsonrpc": "2.0",
                "method": "notifications/resources/updated",
                "params": {"uri": "memory://notes/"},
            }
        ]

    @pytest.mark.asyncio
    async def test_list_changed_on_registration(self, initialized_server):
        """Test that new tools and prompts are announced."""
        initialized_server.add_tool(
            "noop", "Does nothing", SchemaBuilder.object(), lambda args: None
        )
        initialized_server.add_prompt(
            Prompt(name="hello"),
            lambda name, args: PromptResponse(messages=[PromptMessage.text("user", "hi")]),
        )
        await settle()
        assert [message["method"] for message in initialized_server.transport.sent] == [
            "notifications/tools/list_changed",
            "notifications/prompts/list_changed",
        ]

    @pytest.mark.asyncio
    async def test_disabled_capability(self):
        """Test that disabled capabilities suppress notifications."""
        server = build_server(ServerOptions(resources_list_changed=False))
        await server.handle_message(request("initialize"))
        notify = server.add_resource(
            "memory://counter", "Counter", "", lambda: ResourceContents.from_text("1")
        )
        notify()
        await settle()
        assert server.transport.sent == []

    @pytest.mark.asyncio
    async def test_notify_from_another_thread(self, initialized_server):
        """Test that notifiers can be called from worker threads."""
        notify = initialized_server.add_resource(
            "memory://counter", "Counter", "", lambda: ResourceContents.from_text("1")
        )
        worker = threading.Thread(target=notify)
        worker.start()
        await asyncio.get_running_loop().run_in_executor(None, worker.join)
        await settle()
        assert initialized_server.transport.sent == [
            {
                "jsonrpc": "2.0",
                "method": "notifications/resources/updated",
                "params": {"uri": "memory://counter"},
            }
        ]


def assert_listing_order(uris: List[str]) -> None:
    """Check static entries come first, then prefixes longest first."""
    statics = [uri for uri in uris if not uri.endswith("*")]
    assert uris[: len(statics)] == statics
    lengths = [len(uri) for uri in uris[len(statics):]]
    assert lengths == sorted(lengths, reverse=True)


class TestConcurrentAccess:
    """Tests for registry access from several threads at once."""

    @pytest.mark.asyncio
    async def test_registration_while_serving(self, initialized_server):
        """Test registering from worker threads while requests are handled."""
        server = initialized_server
        server.add_dynamic_resource(
            "root://", "Root", "", lambda rest: ResourceContents.from_text("root")
        )

        workers, per_worker = 8, 20
        errors: List[BaseException] = []

        def register(worker: int) -> None:
            try:
                for i in range(per_worker):
                    base = f"root://w{worker}/n{i}/"
                    server.add_dynamic_resource(
                        base, "Node", "", lambda rest: ResourceContents.from_text("node")
                    )
                    server.add_dynamic_resource(
                        base + "deep/", "Deep", "", lambda rest: ResourceContents.from_text("deep")
                    )
                    server.add_resource(
                        f"static://w{worker}/{i}",
                        "Static",
                        "",
                        lambda: ResourceContents.from_text("static"),
                    )
                    server.add_tool(
                        f"tool_{worker}_{i}", "Generated", SchemaBuilder.object(), lambda args: "ok"
                    )
                    server.add_prompt(
                        Prompt(name=f"prompt_{worker}_{i}"),
                        lambda name, args: PromptResponse(
                            messages=[PromptMessage.text("user", name)]
                        ),
                    )
            except BaseException as e:
                errors.append(e)

        threads = [threading.Thread(target=register, args=(n,)) for n in range(workers)]
        for thread in threads:
            thread.start()

        while any(thread.is_alive() for thread in threads):
            response = await server.handle_message(
                request("resources/read", {"uri": "root://w0/n0/deep/x"})
            )
            assert response["result"]["contents"][0]["text"] in ("root", "node", "deep")
            assert_listing_order([entry["uri"] for entry in server.resources.list()])
            assert "result" in await server.handle_message(request("tools/list"))
            assert "result" in await server.handle_message(request("prompts/list"))
            await asyncio.sleep(0)

        for thread in threads:
            thread.join()
        assert errors == []

        total = workers * per_worker
        assert len(server.tools) == total + 1
        assert len(server.prompts) == total + 1
        # greeting, weather template and root:// plus three entries per iteration
        assert len(server.resources) == 3 + 3 * total
        assert_listing_order([entry["uri"] for entry in server.resources.list()])

        for worker in range(workers):
            assert (await server.resources.read(f"root://w{worker}/n3/deep/x")).text == "deep"
            assert (await server.resources.read(f"root://w{worker}/n3/x")).text == "node"
            assert (await server.resources.read(f"root://w{worker}/other")).text == "root"

        await settle()
        methods = [message["method"] for message in server.transport.sent]
        assert methods.count("notifications/tools/list_changed") == total
        assert methods.count("notifications/prompts/list_changed") == total


class TestServerLifecycle:
    """Tests for starting and stopping the server."""

    @pytest.mark.asyncio
    async def test_serve_over_stdio(self):
        """Test serving a session until end of input."""
        lines = "\n".join(
            [
                json.dumps(request("initialize", {}, 1)),
                json.dumps(notification("notifications/initialized")),
                "not json",
                json.dumps(request("tools/call", {"name": "add", "arguments": {"a": 2, "b": 2}}, 2)),
            ]
        )
        output = io.StringIO()
        server = build_server()
        server.transport = StdioTransport(io.StringIO(lines + "\n"), output)

        await asyncio.wait_for(server.serve(), timeout=5)

        responses = [json.loads(line) for line in output.getvalue().splitlines()]
        assert [response["id"] for response in responses] == [1, None, 2]
        assert responses[1]["error"]["code"] == ErrorCode.PARSE_ERROR
        assert responses[2]["result"]["content"][0]["text"] == "4"
        assert not server.is_running

    @pytest.mark.asyncio
    async def test_session_survives_unencodable_result(self):
        """Test that one bad result neither ends the session nor loses its response."""
        server = build_server()
        server.add_tool(
            "opaque",
            "Returns an envelope with an opaque value",
            SchemaBuilder.object(),
            lambda args: {"content": [], "_meta": {"handle": object()}},
        )
        lines = "\n".join(
            [
                json.dumps(request("initialize", {}, 1)),
                json.dumps(request("tools/call", {"name": "opaque", "arguments": {}}, 2)),
                json.dumps(request("ping", None, 3)),
            ]
        )
        output = io.StringIO()
        server.transport = StdioTransport(io.StringIO(lines + "\n"), output)

        await asyncio.wait_for(server.serve(), timeout=5)

        responses = [json.loads(line) for line in output.getvalue().splitlines()]
        assert [response["id"] for response in responses] == [1, 2, 3]
        assert responses[1]["error"]["code"] == ErrorCode.INTERNAL_ERROR
        assert responses[2]["result"] == {}

    @pytest.mark.asyncio
    async def test_start_twice(self):
        """Test that a running server cannot be started again."""
        server = build_server()
        server.transport = StdioTransport(io.StringIO(""), io.StringIO())
        await server.start()
        try:
            with pytest.raises(RuntimeError):
                await server.start()
        finally:
            await server.close()

    @pytest.mark.asyncio
    async def test_start_without_transport(self):
        """Test that starting needs a transport."""
        with pytest.raises(RuntimeError):
            await Server().start()

    @pytest.mark.asyncio
    async def test_close_when_not_started(self):
        """Test that closing an idle server does nothing."""
        server = build_server()
        await server.close()
        await server.wait_for_shutdown()
        assert not server.is_running
