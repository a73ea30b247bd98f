from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Callable, Dict, Optional, Set

from fastmcp import FastMCP
from fastmcp.server.middleware import Middleware, MiddlewareContext

from config import Settings
from paths import DOCS_SCHEME
from prompts import PromptProvider
from resources import MARKDOWN_MIME_TYPE, ResourceProvider
from search import SEARCH_TOOL, SEARCH_TOOL_NAME, SearchTool

logger = logging.getLogger(__name__)


class RescanDocuments(Middleware):
    """Refresh the published documents before every ``resources/list``."""

    def __init__(self, sync: Callable[[], Set[str]]) -> None:
        self._sync = sync

    async def on_list_resources(self, context: MiddlewareContext, call_next):
        present = self._sync()
        listed = await call_next(context)
        return [resource for resource in listed if str(resource.uri) in present]


def create_mcp(
    settings: Optional[Settings] = None,
    resources: Optional[ResourceProvider] = None,
    prompts: Optional[PromptProvider] = None,
    search: Optional[SearchTool] = None,
) -> FastMCP:
    """Create a FastMCP server publishing the documentation providers.

    Used for the HTTP transport; the stdio transport goes through
    :class:`dispatcher.Dispatcher`.
    """
    cfg = settings or Settings.from_env()
    resource_provider = resources or ResourceProvider(cfg)
    prompt_provider = prompts or PromptProvider(cfg)
    search_tool = search or SearchTool(cfg)

    mcp = FastMCP(name=cfg.server_name)

    # ---------------------------- Tools ---------------------------------

    @mcp.tool(name=SEARCH_TOOL_NAME, description=SEARCH_TOOL["description"])
    def search_docs(query: str) -> str:
        matches = search_tool.search(query)
        return json.dumps([asdict(match) for match in matches], indent=2)

    # ------------------------- Resources/Prompts ------------------------
    # Documents are re-scanned on every resources/list; any docs:// URI is
    # readable through the template even before it has been listed.

    registered: Dict[str, str] = {}

    def _register_resource(uri: str, name: str, description: str) -> None:
        def read_document() -> str:
            return resource_provider.read_resource(uri)["text"]

        try:
            resource = mcp.resource(uri, name=name, description=description, mime_type=MARKDOWN_MIME_TYPE)(
                read_document
            )
        except ValueError as exc:
            logger.warning("not publishing %s: %s", uri, exc)
            return
        registered[uri] = str(resource.uri)

    def sync_resources() -> Set[str]:
        current = resource_provider.list_resources()
        for entry in current:
            if entry["uri"] not in registered:
                _register_resource(entry["uri"], entry["name"], entry["description"])
        return {registered[entry["uri"]] for entry in current if entry["uri"] in registered}

    @mcp.resource(
        DOCS_SCHEME + "{path*}",
        name="document",
        description="Any markdown document under the documentation root",
        mime_type=MARKDOWN_MIME_TYPE,
    )
    def read_any_document(path: str) -> str:
        return resource_provider.read_resource(DOCS_SCHEME + path)["text"]

    sync_resources()
    mcp.add_middleware(RescanDocuments(sync_resources))

    commit = prompt_provider.get_template("generate-commit")
    scaffold = prompt_provider.get_template("scaffold-feature")

    def _render(name: str, **arguments: str) -> str:
        result = prompt_provider.get_prompt(name, arguments)
        return result["messages"][0]["content"]["text"]

    @mcp.prompt(name=commit.name, description=commit.description)
    def generate_commit(diff: str) -> str:
        return _render(commit.name, diff=diff)

    @mcp.prompt(name=scaffold.name, description=scaffold.description)
    def scaffold_feature(description: str) -> str:
        return _render(scaffold.name, description=description)

    return mcp
