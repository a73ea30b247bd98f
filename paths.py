"""Map ``docs://`` identifiers onto files beneath the document root.

The resolver is the only place that turns caller-supplied identifiers into
filesystem paths, so every lookup made by the resource provider goes through
:meth:`PathResolver.resolve`.  Canonicalization is lexical (``normpath``):
``..`` segments are collapsed but symlinks are not followed.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Union
from urllib.parse import unquote

DOCS_SCHEME = "docs://"
DOC_EXTENSION = ".md"


class AccessDeniedError(Exception):
    """Raised when an identifier would resolve outside the document root."""

    def __init__(self, identifier: str, reason: str = "outside document root") -> None:
        super().__init__(f"{reason}: {identifier}")
        self.identifier = identifier
        self.reason = reason


class PathResolver:
    def __init__(self, root: Union[str, Path]) -> None:
        self._root = os.path.normpath(os.path.abspath(str(root)))

    @property
    def root(self) -> Path:
        return Path(self._root)

    def resolve(self, identifier: str) -> Path:
        relative = identifier[len(DOCS_SCHEME):] if identifier.startswith(DOCS_SCHEME) else identifier

        if "\x00" in relative:
            raise AccessDeniedError(identifier, "path contains null bytes")

        candidate = self._join(relative)
        if not self.contains(candidate):
            raise AccessDeniedError(identifier)
        # a client that percent-decodes the identifier must not land outside the root either
        decoded = unquote(relative)
        if decoded != relative and ("\x00" in decoded or not self.contains(self._join(decoded))):
            raise AccessDeniedError(identifier, "encoded path escapes document root")
        return Path(candidate)

    def _join(self, relative: str) -> str:
        return os.path.normpath(os.path.join(self._root, relative + DOC_EXTENSION))

    def contains(self, path: Union[str, Path]) -> bool:
        """True when ``path`` (already canonical) equals the root or lies beneath it."""

        text = str(path)
        return text == self._root or text.startswith(self._root.rstrip(os.sep) + os.sep)


def to_uri(relative_path: str) -> str:
    """``intro/guide.md`` -> ``docs://intro/guide``."""

    posix = relative_path.replace(os.sep, "/")
    if posix.endswith(DOC_EXTENSION):
        posix = posix[: -len(DOC_EXTENSION)]
    return DOCS_SCHEME + posix


__all__ = ["AccessDeniedError", "PathResolver", "DOCS_SCHEME", "DOC_EXTENSION", "to_uri"]
