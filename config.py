from __future__ import annotations

from dataclasses import dataclass, field, replace
import os
from pathlib import Path
from typing import Optional, Union


DEFAULT_DOCS_ROOT = Path(__file__).parent.absolute() / "docs"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() not in ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the documentation server."""

    docs_root: Path = field(default=DEFAULT_DOCS_ROOT)
    host: str = "127.0.0.1"
    port: int = 8085
    log_level: str = "INFO"
    strict_prompt_arguments: bool = True
    server_name: str = "docs-mcp-server"
    server_version: str = "1.0.0"

    @classmethod
    def from_env(cls) -> "Settings":
        root = os.getenv("DOCS_MCP_ROOT")
        host = os.getenv("MCP_HOST", cls.host)
        port = int(os.getenv("MCP_PORT", str(cls.port)))
        log_level = os.getenv("DOCS_MCP_LOG_LEVEL", cls.log_level)
        strict = _env_flag("DOCS_MCP_STRICT_PROMPTS", cls.strict_prompt_arguments)
        settings = cls(host=host, port=port, log_level=log_level, strict_prompt_arguments=strict)
        return settings.with_root(root) if root else settings

    def with_root(self, root: Optional[Union[str, Path]]) -> "Settings":
        if root is None:
            return self
        return replace(self, docs_root=Path(os.path.abspath(os.path.expanduser(str(root)))))
