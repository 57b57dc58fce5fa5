"""Document template structures and the built-in template set."""

from .registry import (
    SectionSpec,
    PlaceholderSpec,
    TemplateStructure,
    TemplateRegistry,
    builtin_templates,
    placeholder_token,
    PLACEHOLDER_PATTERN,
)

__all__ = [
    "SectionSpec",
    "PlaceholderSpec",
    "TemplateStructure",
    "TemplateRegistry",
    "builtin_templates",
    "placeholder_token",
    "PLACEHOLDER_PATTERN",
]
