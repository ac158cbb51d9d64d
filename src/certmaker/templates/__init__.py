"""Certificate template package exports."""
from .parser import derive_serial_number, parse_template
from .schema import TemplateDocument
from .sources import (
    DefaultTemplate,
    RawTemplate,
    TemplateSource,
    get_default_template,
    resolve_template_source,
    template_content,
)

__all__ = [
    "DefaultTemplate",
    "RawTemplate",
    "TemplateDocument",
    "TemplateSource",
    "derive_serial_number",
    "get_default_template",
    "parse_template",
    "resolve_template_source",
    "template_content",
]
