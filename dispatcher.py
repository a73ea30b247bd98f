"""Line-oriented JSON-RPC dispatcher for the documentation server.

One UTF-8 encoded JSON object per line arrives on the input stream; each
request is routed to the resource, prompt or search provider and exactly one
response line is written back before the next request is read.  Messages
without an ``id`` are notifications and never produce output.
"""

from __future__ import annotations

from enum import Enum
import json
import logging
from typing import Any, BinaryIO, Dict, Mapping, Optional

from config import Settings
from errors import McpError, error_payload, internal_error, invalid_request
from prompts import PromptProvider
from resources import ResourceProvider
from search import SearchTool

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
JSONRPC_VERSION = "2.0"


class Method(str, Enum):
    INITIALIZE = "initialize"
    PING = "ping"
    LIST_RESOURCES = "resources/list"
    READ_RESOURCE = "resources/read"
    LIST_PROMPTS = "prompts/list"
    GET_PROMPT = "prompts/get"
    LIST_TOOLS = "tools/list"
    CALL_TOOL = "tools/call"


def parse_method(name: Any) -> Method:
    try:
        return Method(name)
    except (TypeError, ValueError):
        raise invalid_request(f"Unknown method: {name}") from None


def _arguments(params: Mapping[str, Any]) -> Mapping[str, Any]:
    arguments = params.get("arguments") or {}
    if not isinstance(arguments, Mapping):
        raise invalid_request("arguments must be an object")
    return arguments


class Dispatcher:
    def __init__(
        self,
        settings: Settings,
        resources: Optional[ResourceProvider] = None,
        prompts: Optional[PromptProvider] = None,
        search: Optional[SearchTool] = None,
    ) -> None:
        self.settings = settings
        self.resources = resources or ResourceProvider(settings)
        self.prompts = prompts or PromptProvider(settings)
        self.search = search or SearchTool(settings)

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------
    def route(self, method: Method, params: Mapping[str, Any]) -> Dict[str, Any]:
        if method is Method.INITIALIZE:
            return self._initialize_result()
        if method is Method.PING:
            return {}
        if method is Method.LIST_RESOURCES:
            return {"resources": self.resources.list_resources()}
        if method is Method.READ_RESOURCE:
            return {"contents": [self.resources.read_resource(params.get("uri"))]}
        if method is Method.LIST_PROMPTS:
            return {"prompts": self.prompts.list_prompts()}
        if method is Method.GET_PROMPT:
            return self.prompts.get_prompt(params.get("name"), _arguments(params))
        if method is Method.LIST_TOOLS:
            return {"tools": self.search.list_tools()}
        if method is Method.CALL_TOOL:
            return self.search.call_tool(params.get("name"), _arguments(params))
        raise AssertionError(f"unhandled method {method!r}")

    @staticmethod
    def _is_known(method_name: Any) -> bool:
        try:
            parse_method(method_name)
        except McpError:
            return False
        return True

    def _initialize_result(self) -> Dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"resources": {}, "prompts": {}, "tools": {}},
            "serverInfo": {"name": self.settings.server_name, "version": self.settings.server_version},
        }

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------
    def handle(self, message: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
        """Process one decoded message; ``None`` means nothing is written back."""

        is_notification = "id" not in message
        request_id = message.get("id")
        method_name = message.get("method")

        if is_notification and not self._is_known(method_name):
            logger.debug("ignoring notification %r", method_name)
            return None

        try:
            method = parse_method(method_name)
            params = message.get("params") or {}
            if not isinstance(params, Mapping):
                raise invalid_request("params must be an object")
            result = self.route(method, params)
        except McpError as exc:
            logger.info("%s failed: %s", method_name, exc.error.message)
            response = self._error(request_id, exc)
        except Exception as exc:
            logger.exception("unexpected failure handling %s", method_name)
            response = self._error(request_id, internal_error(f"Internal error: {exc}"))
        else:
            response = {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

        return None if is_notification else response

    def handle_line(self, line: str) -> Optional[str]:
        if not line.strip():
            return None
        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.warning("discarding malformed message: %s", exc)
            return self._encode(self._error(None, invalid_request(f"Malformed JSON: {exc.msg}")))
        if not isinstance(message, dict):
            return self._encode(self._error(None, invalid_request("Request must be a JSON object")))

        response = self.handle(message)
        return None if response is None else self._encode(response)

    def serve(self, stdin: BinaryIO, stdout: BinaryIO) -> int:
        """Serve requests until ``stdin`` is exhausted; returns the number of responses written.

        Both streams are byte streams and frames are always UTF-8, whatever the
        locale of the process.  A line that is not valid UTF-8 is answered with
        an InvalidRequest error like any other malformed frame.
        """

        written = 0
        for raw in stdin:
            try:
                line = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                logger.warning("discarding undecodable message: %s", exc)
                reply: Optional[str] = self._encode(
                    self._error(None, invalid_request("Message is not valid UTF-8"))
                )
            else:
                reply = self.handle_line(line)
            if reply is None:
                continue
            stdout.write((reply + "\n").encode("utf-8", errors="replace"))
            stdout.flush()
            written += 1
        logger.info("input stream closed after %d responses", written)
        return written

    @staticmethod
    def _error(request_id: Any, exc: McpError) -> Dict[str, Any]:
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error_payload(exc)}

    @staticmethod
    def _encode(payload: Mapping[str, Any]) -> str:
        return json.dumps(payload, ensure_ascii=False)


__all__ = ["Dispatcher", "Method", "parse_method"]
