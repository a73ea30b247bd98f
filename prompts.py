from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from config import Settings
from errors import internal_error, invalid_request

logger = logging.getLogger(__name__)

COMMIT_RULES_PATH = Path("process") / "workflow" / "DEVELOPMENT-RULES.md"
FEATURE_TEMPLATE_PATH = Path("templates") / "01-FEATURE-DESIGN-TEMPLATE.md"

COMMIT_MESSAGE = (
    "Please generate a commit message for the following changes.\n"
    "You MUST follow the commit standards defined below:\n"
    "\n"
    "{document}\n"
    "\n"
    "---\n"
    "CHANGES:\n"
    "{diff}\n"
)

SCAFFOLD_MESSAGE = (
    'I need to design a new feature: "{description}".\n'
    "Please create a design document following the strict template below.\n"
    "Do not skip any sections.\n"
    "\n"
    "TEMPLATE:\n"
    "{document}\n"
)


@dataclass(frozen=True)
class PromptArgument:
    name: str
    description: str
    required: bool = True

    def as_metadata(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description, "required": self.required}


@dataclass(frozen=True)
class PromptTemplate:
    name: str
    description: str
    arguments: Tuple[PromptArgument, ...]
    source_file: Path
    message: str

    def as_metadata(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "arguments": [argument.as_metadata() for argument in self.arguments],
        }

    def render(self, document: str, values: Mapping[str, str]) -> str:
        return self.message.format(document=document, **values)


PROMPT_CATALOG: Tuple[PromptTemplate, ...] = (
    PromptTemplate(
        name="generate-commit",
        description="Generate a standard-compliant commit message for staged changes",
        arguments=(PromptArgument("diff", "The git diff of staged changes"),),
        source_file=COMMIT_RULES_PATH,
        message=COMMIT_MESSAGE,
    ),
    PromptTemplate(
        name="scaffold-feature",
        description="Create a plan for a new feature following the standard template",
        arguments=(PromptArgument("description", "Description of the feature to build"),),
        source_file=FEATURE_TEMPLATE_PATH,
        message=SCAFFOLD_MESSAGE,
    ),
)


class PromptProvider:
    """Serve the fixed prompt catalog, rendering templates from the document root."""

    def __init__(self, settings: Settings) -> None:
        self.docs_root = Path(settings.docs_root)
        self.strict = settings.strict_prompt_arguments
        self._prompts: Dict[str, PromptTemplate] = {}
        for template in PROMPT_CATALOG:
            self._register(template)

    def _register(self, template: PromptTemplate) -> None:
        self._prompts[template.name] = template

    def list_prompts(self) -> List[Dict[str, Any]]:
        return [template.as_metadata() for template in self._prompts.values()]

    def get_template(self, name: str) -> PromptTemplate:
        if name not in self._prompts:
            raise invalid_request(f"Unknown prompt: {name}")
        return self._prompts[name]

    def get_prompt(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        template = self.get_template(name)
        values = self._collect_arguments(template, arguments or {})
        document = self._load(template)
        return {
            "description": template.description,
            "messages": [
                {
                    "role": "user",
                    "content": {"type": "text", "text": template.render(document, values)},
                }
            ],
        }

    def _collect_arguments(self, template: PromptTemplate, arguments: Mapping[str, Any]) -> Dict[str, str]:
        values: Dict[str, str] = {}
        for argument in template.arguments:
            value = arguments.get(argument.name)
            if isinstance(value, str):
                values[argument.name] = value
                continue
            if self.strict and argument.required:
                raise invalid_request(
                    f"Prompt '{template.name}' requires string argument '{argument.name}'"
                )
            values[argument.name] = "" if value is None else str(value)
        return values

    def _load(self, template: PromptTemplate) -> str:
        path = self.docs_root / template.source_file
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("prompt %s could not load %s: %s", template.name, path, exc)
            raise internal_error(f"Failed to load template for prompt '{template.name}': {exc}") from exc


__all__ = ["PromptArgument", "PromptTemplate", "PromptProvider", "PROMPT_CATALOG"]
