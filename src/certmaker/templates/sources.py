"""Where a stage's template comes from: the built-in default or a file."""
from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Optional, Union

from ..exceptions import TemplateError
from ..models import Stage


@dataclass(frozen=True, slots=True)
class DefaultTemplate:
    stage: Stage


@dataclass(frozen=True, slots=True)
class RawTemplate:
    content: str
    path: Optional[Path] = None


TemplateSource = Union[DefaultTemplate, RawTemplate]


def get_default_template(stage: Stage | str) -> str:
    """Return the built-in JSON template for ``stage``."""

    try:
        stage = Stage(stage)
    except ValueError as exc:
        raise TemplateError(f"no default template for {stage!r}") from exc
    resource = resources.files("certmaker.templates").joinpath("defaults").joinpath(f"{stage.value}.json")
    return resource.read_text(encoding="utf-8")


def resolve_template_source(stage: Stage, path: Path | str | None) -> TemplateSource:
    """Use the default template when ``path`` is empty, else read the file."""

    if not path:
        return DefaultTemplate(stage)
    template_path = Path(path)
    try:
        content = template_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(
            f"{stage.value} template error: template not found at {template_path}: {exc}"
        ) from exc
    return RawTemplate(content=content, path=template_path)


def template_content(source: TemplateSource) -> str:
    if isinstance(source, DefaultTemplate):
        return get_default_template(source.stage)
    return source.content


__all__ = [
    "DefaultTemplate",
    "RawTemplate",
    "TemplateSource",
    "get_default_template",
    "resolve_template_source",
    "template_content",
]
