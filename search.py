from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from config import Settings
from errors import invalid_request
from scanner import DocumentScanner, ResourceDescriptor

logger = logging.getLogger(__name__)

SEARCH_TOOL_NAME = "search_docs"
SNIPPET_BEFORE = 50
SNIPPET_AFTER = 150
ELLIPSIS = "..."

SEARCH_TOOL: Dict[str, Any] = {
    "name": SEARCH_TOOL_NAME,
    "description": "Search documentation for a specific query",
    "inputSchema": {
        "type": "object",
        "properties": {
            "query": {
                "type": "string",
                "description": "The search query",
            },
        },
        "required": ["query"],
    },
}


@dataclass(frozen=True)
class SearchMatch:
    uri: str
    name: str
    snippet: str


def extract_snippet(content: str, index: int) -> str:
    start = max(0, index - SNIPPET_BEFORE)
    end = min(len(content), index + SNIPPET_AFTER)
    window = content[start:end].replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
    return f"{ELLIPSIS}{window}{ELLIPSIS}"


class SearchTool:
    def __init__(self, settings: Settings) -> None:
        self.scanner = DocumentScanner(settings.docs_root)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [SEARCH_TOOL]

    def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        if name != SEARCH_TOOL_NAME:
            raise invalid_request(f"Unknown tool: {name}")
        query = (arguments or {}).get("query")
        if not isinstance(query, str):
            raise invalid_request(f"Tool '{SEARCH_TOOL_NAME}' requires string argument 'query'")

        matches = self.search(query)
        payload = json.dumps([asdict(match) for match in matches], indent=2)
        return {"content": [{"type": "text", "text": payload}]}

    def search(self, query: str) -> List[SearchMatch]:
        """Return the first case-insensitive hit of ``query`` in every readable document."""

        needle = query.lower()
        results = (self._match(descriptor, needle) for descriptor in self.scanner.scan())
        return [match for match in results if match is not None]

    def _match(self, descriptor: ResourceDescriptor, needle: str) -> Optional[SearchMatch]:
        try:
            content = descriptor.source_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.debug("search skipped %s: %s", descriptor.source_path, exc)
            return None

        index = content.lower().find(needle)
        if index < 0:
            return None
        return SearchMatch(
            uri=descriptor.uri,
            name=descriptor.display_name,
            snippet=extract_snippet(content, index),
        )


__all__ = ["SearchMatch", "SearchTool", "SEARCH_TOOL", "SEARCH_TOOL_NAME", "extract_snippet"]
