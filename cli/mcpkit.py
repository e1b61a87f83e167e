"""
mcpkit CLI application.

This module provides the command-line interface for running and inspecting
the demo MCP server, built using Typer.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cli.demo import build_demo_server
from mcpkit import __version__
from mcpkit.logging import configure_logging
from mcpkit.protocol import NotFoundError
from mcpkit.server import Server, ServerOptions
from mcpkit.transport import SSETransport, StdioTransport, Transport

# Create the Typer app
app = typer.Typer(
    name="mcpkit",
    help="Model Context Protocol (MCP) server toolkit",
    add_completion=False,
)

# Create the console for rich output
console = Console()

# stdout carries protocol messages when serving over stdio
err_console = Console(stderr=True)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Set up logging with the specified level.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: Write JSON lines instead of rich console output
    """
    handler = None
    if not json_output:
        handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=False)
    configure_logging(level, json_output=json_output, handler=handler)


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Configuration dictionary
    """
    # Default configuration paths
    default_paths = [
        Path.cwd() / "mcpkit.yaml",
        Path.cwd() / ".mcpkit.yaml",
        Path.home() / ".config" / "mcpkit" / "config.yaml",
    ]

    # Use the specified path or try default paths
    paths_to_try = [config_path] if config_path else default_paths

    for path in paths_to_try:
        if path and path.exists():
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                err_console.print(f"[bold red]Error loading configuration from {path}: {e}[/]")
                return {}
            if not isinstance(data, dict):
                err_console.print(f"[bold red]Invalid configuration in {path}: expected a mapping[/]")
                return {}
            return data

    if config_path:
        err_console.print(f"[bold yellow]Configuration file not found: {config_path}[/]")

    return {}


def get_profile(config: Dict[str, Any], name: Optional[str] = None) -> Dict[str, Any]:
    """
    Select a profile from configuration.

    Args:
        config: Configuration dictionary
        name: Profile name; the configured default profile when omitted

    Returns:
        Profile dictionary, empty when no profile applies
    """
    profiles = config.get("profiles") or {}
    name = name or config.get("default_profile")

    if name and name in profiles:
        return profiles[name] or {}
    if name:
        err_console.print(f"[bold yellow]Profile not found: {name}[/]")
    return {}


def create_transport(transport_type: str, host: str, port: int) -> Transport:
    """
    Create a transport by type name.

    Raises:
        ValueError: If the transport type is invalid
    """
    if transport_type == "stdio":
        return StdioTransport()
    if transport_type == "sse":
        return SSETransport(host=host, port=port)
    raise ValueError(f"Invalid transport type: {transport_type}")


def load_content(server: Server, prompt_dirs: List[str], resource_dirs: List[str]) -> None:
    """Load prompt files and serve resource directories on a server."""
    for prompt_dir in prompt_dirs:
        try:
            prompts = server.prompts.load_prompts_from_directory(prompt_dir)
            err_console.print(f"[green]Loaded {len(prompts)} prompts from {prompt_dir}[/]")
        except OSError as e:
            err_console.print(f"[bold red]Error loading prompts from {prompt_dir}: {e}[/]")

    for resource_dir in resource_dirs:
        root = Path(resource_dir).resolve()
        try:
            server.resources.register_directory(root, f"{root.as_uri()}/")
            err_console.print(f"[green]Serving resources from {resource_dir}[/]")
        except OSError as e:
            err_console.print(f"[bold red]Error loading resources from {resource_dir}: {e}[/]")


# Version command
@app.callback(invoke_without_command=True)
def main(
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
):
    """
    Model Context Protocol (MCP) server toolkit.
    """
    # Show version and exit if requested
    if version:
        console.print(f"[bold]mcpkit[/] version [bold blue]{__version__}[/]")
        raise typer.Exit()


@app.command("serve")
def serve(
    transport: Optional[str] = typer.Option(
        None,
        "--transport",
        "-t",
        help="Transport type (stdio, sse)",
    ),
    host: Optional[str] = typer.Option(
        None,
        "--host",
        "-h",
        help="Host to bind to (for sse transport)",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port to bind to (for sse transport)",
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Server name",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    profile: Optional[str] = typer.Option(
        None,
        "--profile",
        help="Configuration profile to use",
    ),
    prompt_dir: List[str] = typer.Option(
        [],
        "--prompt-dir",
        help="Directory to load prompts from (can be specified multiple times)",
    ),
    resource_dir: List[str] = typer.Option(
        [],
        "--resource-dir",
        help="Directory to serve resources from (can be specified multiple times)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug output",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Write logs as JSON lines",
    ),
):
    """
    Start the demo MCP server.
    """
    # Load configuration
    profile_cfg = get_profile(load_config(config), profile)

    # Command-line options override profile configuration
    transport = transport or profile_cfg.get("transport", "stdio")
    host = host or profile_cfg.get("host", "127.0.0.1")
    port = port or profile_cfg.get("port", 3000)
    debug = debug or profile_cfg.get("debug", False)
    log_level = "DEBUG" if debug else str(profile_cfg.get("log_level", "INFO"))

    prompt_dirs = list(prompt_dir) + list(profile_cfg.get("prompt_dirs", []))
    resource_dirs = list(resource_dir) + list(profile_cfg.get("resource_dirs", []))

    setup_logging(log_level, json_output=json_logs)

    options = ServerOptions(
        name=name or profile_cfg.get("name", "mcpkit-demo"),
        version=str(profile_cfg.get("version", __version__)),
        debug=debug,
    )

    try:
        server = build_demo_server(create_transport(transport, host, port), options)
    except ValueError as e:
        err_console.print(f"[bold red]{e}[/]")
        raise typer.Exit(1)

    load_content(server, prompt_dirs, resource_dirs)

    err_console.print(f"[bold]Starting MCP server[/] with [bold blue]{transport}[/] transport")
    if transport == "sse":
        err_console.print(f"Listening on [bold]http://{host}:{port}[/]")

    try:
        asyncio.run(server.serve())
    except KeyboardInterrupt:
        err_console.print("\n[bold yellow]Server stopped by user[/]")


@app.command("inspect")
def inspect_server(
    prompt_dir: List[str] = typer.Option(
        [],
        "--prompt-dir",
        help="Directory to load prompts from (can be specified multiple times)",
    ),
    resource_dir: List[str] = typer.Option(
        [],
        "--resource-dir",
        help="Directory to serve resources from (can be specified multiple times)",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
):
    """
    List the demo server's tools, resources, templates and prompts.
    """
    server = build_demo_server()
    load_content(server, list(prompt_dir), list(resource_dir))

    listing = {
        "tools": server.tools.list(),
        "resources": server.resources.list(),
        "resourceTemplates": server.resources.list_templates(),
        "prompts": server.prompts.list(),
    }

    if format == "json":
        console.print_json(json.dumps(listing))
        return

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="green")
    table.add_column("Parameters", style="yellow")
    for tool in listing["tools"]:
        params = ", ".join(tool["inputSchema"].get("properties", {}))
        table.add_row(tool["name"], tool["description"], params)
    console.print(table)

    table = Table(title="Resources")
    table.add_column("URI", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Description")
    for resource in listing["resources"]:
        table.add_row(resource["uri"], resource["name"], resource["description"])
    for template in listing["resourceTemplates"]:
        table.add_row(template["uriTemplate"], template["name"], template["description"])
    console.print(table)

    table = Table(title="Prompts")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="green")
    table.add_column("Arguments", style="yellow")
    for prompt in listing["prompts"]:
        arguments = ", ".join(
            f"{arg['name']}*" if arg.get("required") else arg["name"]
            for arg in prompt.get("arguments", [])
        )
        table.add_row(prompt["name"], prompt.get("description", ""), arguments)
    console.print(table)


@app.command("schema")
def show_schema(
    name: str = typer.Argument(..., help="Name of the tool"),
):
    """
    Print a tool's input schema as JSON.
    """
    server = build_demo_server()
    try:
        tool = server.tools.get(name)
    except NotFoundError as e:
        err_console.print(f"[bold red]{e.message}[/]")
        raise typer.Exit(1)

    console.print_json(json.dumps(tool.input_schema.to_json_schema()))


# Run the app
if __name__ == "__main__":
    app()
