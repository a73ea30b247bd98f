"""Protocol error helpers shared by the providers and the dispatcher."""

from __future__ import annotations

from mcp.shared.exceptions import McpError
from mcp.types import INTERNAL_ERROR, INVALID_REQUEST, ErrorData


def invalid_request(message: str) -> McpError:
    return McpError(ErrorData(code=INVALID_REQUEST, message=message))


def internal_error(message: str) -> McpError:
    return McpError(ErrorData(code=INTERNAL_ERROR, message=message))


def error_payload(exc: McpError) -> dict:
    """Return the ``{code, message}`` object carried in a protocol error response."""

    return {"code": exc.error.code, "message": exc.error.message}


__all__ = ["McpError", "invalid_request", "internal_error", "error_payload"]
