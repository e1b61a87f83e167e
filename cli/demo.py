"""
Demo content for the mcpkit CLI.

This module registers a small set of tools, prompts and resources on a
server, so the CLI has something to serve and inspect.
"""

import json
from typing import Any, Dict, Optional

from mcpkit.prompts import Prompt, PromptArgument, PromptMessage, PromptResponse
from mcpkit.protocol import NotFoundError
from mcpkit.resources import Notifier, ResourceContents
from mcpkit.schema import SchemaBuilder
from mcpkit.server import Server, ServerOptions
from mcpkit.transport import Transport

VERSION_INFO = {"version": "0.2.0", "built": "2025-03-26"}

# 1x1 pixel PNG
BADGE_IMAGE = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAACklEQVR4nGMAAQAABQABDQottAAAAABJRU5ErkJggg=="
)


class DemoNotes:
    """In-memory notes served under ``memory://notes/``."""

    def __init__(self) -> None:
        self._notes: Dict[str, str] = {"welcome": "Welcome to mcpkit!"}
        self.notify: Optional[Notifier] = None

    def read(self, name: str) -> ResourceContents:
        if name not in self._notes:
            raise NotFoundError(f"Note not found: {name}")
        return ResourceContents.from_text(self._notes[name])

    def write(self, name: str, text: str) -> None:
        self._notes[name] = text
        if self.notify is not None:
            self.notify()

    def write_tool(self, arguments: Dict[str, Any]) -> str:
        self.write(arguments["name"], arguments["text"])
        return f"Saved memory://notes/{arguments['name']}"


def add(arguments: Dict[str, Any]) -> float:
    return arguments["a"] + arguments["b"]


def capitalize(arguments: Dict[str, Any]) -> str:
    return arguments["text"].upper()


def greet(name: str, arguments: Dict[str, str]) -> PromptResponse:
    greeting = "¡Hola" if arguments.get("language") == "es" else "Hello"
    return PromptResponse(
        description="Greeting response",
        messages=[PromptMessage.text("assistant", f"{greeting} {arguments['name']}!")],
    )


def image_badge(name: str, arguments: Dict[str, str]) -> PromptResponse:
    return PromptResponse(
        messages=[
            PromptMessage.text(
                "assistant", f"User Badge for {arguments['username']} ({arguments['role']})"
            ),
            PromptMessage.image("assistant", BADGE_IMAGE, "image/png"),
        ]
    )


def system_info(name: str, arguments: Dict[str, str]) -> PromptResponse:
    return PromptResponse(
        messages=[
            PromptMessage.text("assistant", "Here's the current system information:"),
            PromptMessage.resource(
                "assistant", "config://version", "application/json", json.dumps(VERSION_INFO)
            ),
        ]
    )


def weather_forecast(params: Dict[str, str]) -> ResourceContents:
    forecast = {
        "city": params["city"],
        "date": params["date"],
        "temperature": 72,
        "conditions": "sunny",
        "humidity": 45,
        "windSpeed": 8,
    }
    return ResourceContents.from_text(json.dumps(forecast), "application/json")


def build_demo_server(
    transport: Optional[Transport] = None,
    options: Optional[ServerOptions] = None,
) -> Server:
    """
    Create a server with the demo tools, prompts and resources.

    Args:
        transport: Transport to serve on
        options: Server configuration options

    Returns:
        The configured server
    """
    server = Server(transport=transport, options=options or ServerOptions(name="mcpkit-demo"))

    server.add_tool(
        "add",
        "Add two numbers",
        SchemaBuilder.object()
        .add_property(
            "a", SchemaBuilder.number().set_description("First number").range(-1000, 1000)
        )
        .add_property(
            "b", SchemaBuilder.number().set_description("Second number").range(-1000, 1000)
        ),
        add,
    )
    server.add_tool(
        "capitalize",
        "Convert text to uppercase",
        SchemaBuilder.object().add_property(
            "text",
            SchemaBuilder.string().set_description("Text to capitalize").string_length(1, 1000),
        ),
        capitalize,
    )

    server.add_prompt(
        Prompt(
            name="greet",
            description="A friendly greeting prompt",
            arguments=[
                PromptArgument(name="name", description="User's name", required=True),
                PromptArgument(name="language", description="Language code (en/es)"),
            ],
        ),
        greet,
    )
    server.add_prompt(
        Prompt(
            name="image_badge",
            description="Generate a user badge with avatar",
            arguments=[
                PromptArgument(name="username", description="Username to display", required=True),
                PromptArgument(name="role", description="User role (admin/user)", required=True),
            ],
        ),
        image_badge,
    )
    server.add_prompt(
        Prompt(name="system_info", description="Show system information"),
        system_info,
    )

    server.add_resource(
        "config://version",
        "Version Info",
        "Current application version",
        lambda: ResourceContents.from_text(json.dumps(VERSION_INFO), "application/json"),
    )
    server.add_resource(
        "memory://greeting",
        "Greeting",
        "A friendly greeting",
        lambda: ResourceContents.from_text("Hello, World!"),
    )

    notes = DemoNotes()
    notes.notify = server.add_dynamic_resource(
        "memory://notes/", "Notes", "In-memory notes by name", notes.read
    )
    server.add_tool(
        "write_note",
        "Save a note under memory://notes/<name>",
        SchemaBuilder.object()
        .add_property(
            "name",
            SchemaBuilder.string()
            .set_description("Note name")
            .string_length(1, 100)
            .set_pattern(r"^[^/]+$"),
        )
        .add_property(
            "text", SchemaBuilder.string().set_description("Note text").string_length(0, 10000)
        ),
        notes.write_tool,
    )
    server.add_template(
        "weather://{city}/{date}",
        "Weather Forecast",
        "Get weather forecast for a specific city and date",
        "application/json",
        weather_forecast,
    )

    return server
