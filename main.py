from __future__ import annotations

import json
import logging
from dataclasses import replace
import sys
from typing import Optional

import typer

from config import Settings
from dispatcher import Dispatcher, Method


cli = typer.Typer(add_completion=False)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("docs-mcp")


def configure_logging(level: str) -> None:
    # stdout carries protocol frames, so logs go to stderr only
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )


def _settings(root: Optional[str], log_level: Optional[str]) -> Settings:
    settings = Settings.from_env().with_root(root)
    if log_level is not None:
        settings = replace(settings, log_level=log_level)
    configure_logging(settings.log_level)
    return settings


@cli.command()
def run(
    transport: str = typer.Option("stdio", help="Transport: 'stdio' or 'http'."),
    root: Optional[str] = typer.Option(None, help="Documentation root directory."),
    host: Optional[str] = typer.Option(None, help="Host interface to bind (HTTP transport)."),
    port: Optional[int] = typer.Option(None, help="Port to bind (HTTP transport)."),
    log_level: Optional[str] = typer.Option(None, help="Log level (debug, info, warning, error)."),
) -> None:
    """Start the documentation server (defaults to stdio transport)."""

    settings = _settings(root, log_level)
    if host is not None:
        settings = replace(settings, host=host)
    if port is not None:
        settings = replace(settings, port=port)

    logger.info("serving %s over %s", settings.docs_root, transport)
    if transport == "stdio":
        Dispatcher(settings).serve(sys.stdin.buffer, sys.stdout.buffer)
    elif transport == "http":
        from fastmcp_app import create_mcp
        import uvicorn

        mcp = create_mcp(settings)
        # Force JSON-style HTTP on /mcp (non-streaming)
        app = mcp.http_app(path="/mcp", transport="http", json_response=True, stateless_http=True)
        uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    else:
        raise typer.BadParameter(f"unknown transport: {transport}", param_hint="--transport")


@cli.command()
def verify(
    root: Optional[str] = typer.Option(None, help="Documentation root directory."),
    query: str = typer.Option("commit", help="Query used to exercise search_docs."),
) -> None:
    """Exercise every provider in-process and report what the server exposes."""

    settings = _settings(root, None)
    dispatcher = Dispatcher(settings)
    failures = 0
    request_id = 0

    def call(method: Method, params: Optional[dict] = None) -> Optional[dict]:
        nonlocal failures, request_id
        request_id += 1
        response = dispatcher.handle({"id": request_id, "method": method.value, "params": params or {}})
        if "error" in response:
            failures += 1
            typer.echo(f"  {method.value} failed: {response['error']['message']}")
            return None
        return response["result"]

    typer.echo(f"Document root: {settings.docs_root}")

    listed = call(Method.LIST_RESOURCES)
    resources = listed["resources"] if listed else []
    typer.echo(f"Found {len(resources)} resources (showing first 5):")
    for resource in resources[:5]:
        typer.echo(f" - {resource['name']} ({resource['uri']})")

    if resources:
        first = resources[0]["uri"]
        read = call(Method.READ_RESOURCE, {"uri": first})
        if read:
            preview = read["contents"][0]["text"][:100].replace("\n", " ")
            typer.echo(f'Content preview of {first}: "{preview}..."')

    tools = call(Method.LIST_TOOLS)
    for tool in (tools or {}).get("tools", []):
        typer.echo(f"Tool: {tool['name']} - {tool['description']}")

    found = call(Method.CALL_TOOL, {"name": "search_docs", "arguments": {"query": query}})
    if found:
        matches = json.loads(found["content"][0]["text"])
        typer.echo(f"Found {len(matches)} matches for '{query}':")
        for match in matches[:3]:
            typer.echo(f" - In {match['name']}: \"{match['snippet'][:60]}...\"")

    if failures:
        raise typer.Exit(code=1)


@cli.callback(invoke_without_command=True)
def _default(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        run(transport="stdio", root=None, host=None, port=None, log_level=None)


if __name__ == "__main__":
    cli()
