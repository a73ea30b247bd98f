from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from paths import DOC_EXTENSION, to_uri

logger = logging.getLogger(__name__)

HIDDEN_PREFIX = "."
DEPENDENCY_DIRS = frozenset({"node_modules"})


@dataclass(frozen=True)
class ResourceDescriptor:
    uri: str
    display_name: str
    description: str
    source_path: Path

    def as_metadata(self, mime_type: str) -> Dict[str, str]:
        return {
            "uri": self.uri,
            "name": self.display_name,
            "description": self.description,
            "mimeType": mime_type,
        }


def display_name_for(filename: str) -> str:
    stem = filename[: -len(DOC_EXTENSION)] if filename.endswith(DOC_EXTENSION) else filename
    return stem.replace("-", " ")


class DocumentScanner:
    """Walk the document root and describe every markdown file found.

    Each call re-walks the tree.  Directories starting with ``.`` and
    dependency folders such as ``node_modules`` are never entered.  A root
    that is missing or unreadable yields an empty list, and entries that
    cannot be inspected are dropped from the result.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(os.path.abspath(str(root)))

    def scan(self) -> List[ResourceDescriptor]:
        if not self.root.is_dir():
            logger.debug("document root %s is not a readable directory", self.root)
            return []
        return [descriptor for descriptor in self._walk(self.root) if descriptor is not None]

    def _walk(self, directory: Path) -> Iterator[Optional[ResourceDescriptor]]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda entry: entry.name)
        except OSError as exc:
            logger.debug("skipping unreadable directory %s: %s", directory, exc)
            yield None
            return

        for entry in entries:
            if self._is_walkable_dir(entry):
                yield from self._walk(Path(entry.path))
            else:
                yield self._describe(entry)

    def _is_walkable_dir(self, entry: os.DirEntry) -> bool:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            return False
        if not is_dir:
            return False
        return not entry.name.startswith(HIDDEN_PREFIX) and entry.name not in DEPENDENCY_DIRS

    def _describe(self, entry: os.DirEntry) -> Optional[ResourceDescriptor]:
        if not entry.name.endswith(DOC_EXTENSION):
            return None
        try:
            if not entry.is_file(follow_symlinks=False):
                return None
        except OSError as exc:
            logger.debug("skipping %s: %s", entry.path, exc)
            return None

        relative = Path(entry.path).relative_to(self.root).as_posix()
        return ResourceDescriptor(
            uri=to_uri(relative),
            display_name=display_name_for(entry.name),
            description=f"Documentation for {relative}",
            source_path=Path(entry.path),
        )


__all__ = ["ResourceDescriptor", "DocumentScanner", "display_name_for"]
