from __future__ import annotations

from pathlib import Path

import pytest

from config import Settings

RULES_TEXT = "# Rules\nCommits use the form type(scope): subject.\n"
TEMPLATE_TEXT = "# Feature Design\n## Summary\n## Testing\n"
GUIDE_TEXT = "# Guide\nIntro text.\nBefore checkout, the payment flow requires a valid session.\nMore text.\n"


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    root = tmp_path / "docs"
    _write(root / "intro" / "guide.md", GUIDE_TEXT)
    _write(root / "process" / "workflow" / "DEVELOPMENT-RULES.md", RULES_TEXT)
    _write(root / "templates" / "01-FEATURE-DESIGN-TEMPLATE.md", TEMPLATE_TEXT)
    _write(root / ".hidden" / "secret.md", "hidden payment notes")
    _write(root / "node_modules" / "pkg" / "readme.md", "dependency payment docs")
    _write(root / "notes.txt", "payment in a text file")
    _write(tmp_path / "outside.md", "outside the root")
    return root


@pytest.fixture
def settings(docs_root: Path) -> Settings:
    return Settings().with_root(docs_root)


@pytest.fixture
def guide_only_root(tmp_path: Path) -> Path:
    root = tmp_path / "single"
    _write(root / "intro" / "guide.md", GUIDE_TEXT)
    return root
