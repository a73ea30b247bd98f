from __future__ import annotations

import logging
from typing import Dict, List

from config import Settings
from errors import internal_error, invalid_request
from paths import DOCS_SCHEME, AccessDeniedError, PathResolver
from scanner import DocumentScanner

logger = logging.getLogger(__name__)

MARKDOWN_MIME_TYPE = "text/markdown"


class ResourceProvider:
    def __init__(self, settings: Settings) -> None:
        self.scanner = DocumentScanner(settings.docs_root)
        self.resolver = PathResolver(settings.docs_root)

    def list_resources(self) -> List[Dict[str, str]]:
        try:
            descriptors = self.scanner.scan()
        except Exception:
            logger.exception("resource scan failed")
            return []
        return [descriptor.as_metadata(MARKDOWN_MIME_TYPE) for descriptor in descriptors]

    def read_resource(self, uri: str) -> Dict[str, str]:
        if not isinstance(uri, str) or not uri.startswith(DOCS_SCHEME):
            raise invalid_request(f"Unknown resource scheme: {uri}")

        try:
            path = self.resolver.resolve(uri)
        except AccessDeniedError as exc:
            logger.warning("rejected resource read %s (%s)", uri, exc.reason)
            raise invalid_request(f"Access denied: {uri}") from exc

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise internal_error(f"Failed to read file: {exc}") from exc
        return {"uri": uri, "mimeType": MARKDOWN_MIME_TYPE, "text": text}
