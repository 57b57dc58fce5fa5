"""
Document template structures.

A template is a set of named sections (with a markdown header, a required
flag and a rendering order) plus placeholder tokens that point at those
sections. ``render`` produces the skeleton a new document starts from.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..utils.error_handling import ValidationError
from ..utils.logging import get_logger, performance_timer

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*[A-Z0-9_]+\s*\}\}")


def placeholder_token(section_name: str) -> str:
    """``"Key Features"`` -> ``"{{KEY_FEATURES}}"``."""
    return "{{" + re.sub(r"[^A-Za-z0-9]+", "_", section_name).strip("_").upper() + "}}"


@dataclass
class SectionSpec:
    header: str
    required: bool = False
    order: int = 0

    @property
    def title(self) -> str:
        """Header text without the leading ``#`` marks."""
        return self.header.lstrip("#").strip()

    @property
    def level(self) -> int:
        stripped = self.header.lstrip()
        level = len(stripped) - len(stripped.lstrip("#"))
        return level or 2


@dataclass
class PlaceholderSpec:
    section: str
    description: str


@dataclass
class TemplateStructure:
    template_id: str
    name: str
    description: str = ""
    sections: Dict[str, SectionSpec] = field(default_factory=dict)
    placeholders: Dict[str, PlaceholderSpec] = field(default_factory=dict)

    def __post_init__(self):
        orders = [spec.order for spec in self.sections.values()]
        if len(orders) != len(set(orders)):
            raise ValidationError(f"Template '{self.template_id}' has duplicate section orders")
        for token, placeholder in self.placeholders.items():
            if placeholder.section not in self.sections:
                raise ValidationError(
                    f"Placeholder {token} in template '{self.template_id}' "
                    f"points at unknown section '{placeholder.section}'"
                )

    def ordered_sections(self) -> List[str]:
        return sorted(self.sections, key=lambda name: self.sections[name].order)

    def placeholders_for(self, section_name: str) -> List[str]:
        return [token for token, spec in self.placeholders.items() if spec.section == section_name]


def _structure(template_id: str, name: str, description: str, sections: List[tuple],
               placeholders: Optional[Dict[str, tuple]] = None) -> TemplateStructure:
    return TemplateStructure(
        template_id=template_id,
        name=name,
        description=description,
        sections={
            section: SectionSpec(header=f"## {section}", required=required, order=index + 1)
            for index, (section, required) in enumerate(sections)
        },
        placeholders={
            token: PlaceholderSpec(section=section, description=desc)
            for token, (section, desc) in (placeholders or {}).items()
        },
    )


def builtin_templates() -> List[TemplateStructure]:
    return [
        _structure(
            "prd", "Product Requirements Document",
            "Problem, users, goals and features of a product",
            [
                ("Problem Statement", True),
                ("Target Users", True),
                ("Goals and Objectives", True),
                ("Key Features", True),
                ("User Stories", False),
                ("Technical Requirements", False),
                ("Success Metrics", False),
                ("Timeline", False),
            ],
            {
                "{{PROBLEM_STATEMENT}}": ("Problem Statement", "The problem the product solves"),
                "{{TARGET_USERS}}": ("Target Users", "Who the product is for"),
                "{{GOALS}}": ("Goals and Objectives", "Measurable outcomes"),
                "{{KEY_FEATURES}}": ("Key Features", "Main capabilities"),
            },
        ),
        _structure(
            "requirements", "Requirements Document",
            "Functional and non-functional requirements",
            [
                ("Introduction", True),
                ("Functional Requirements", True),
                ("Non-Functional Requirements", True),
                ("Constraints", False),
                ("Acceptance Criteria", False),
            ],
            {
                "{{FUNCTIONAL_REQUIREMENTS}}": ("Functional Requirements", "What the system must do"),
                "{{NON_FUNCTIONAL_REQUIREMENTS}}": ("Non-Functional Requirements", "Quality attributes"),
                "{{CONSTRAINTS}}": ("Constraints", "Technical or business limits"),
            },
        ),
        _structure(
            "design", "Design Document",
            "Architecture, components and data flow",
            [
                ("Overview", True),
                ("System Architecture", True),
                ("Components", True),
                ("Data Flow", True),
                ("Error Handling", False),
                ("Testing Strategy", False),
            ],
            {
                "{{ARCHITECTURE}}": ("System Architecture", "High-level structure"),
                "{{COMPONENTS}}": ("Components", "Building blocks and interfaces"),
                "{{DATA_FLOW}}": ("Data Flow", "How data moves between components"),
            },
        ),
        _structure(
            "specification", "Implementation Specification",
            "Tasks and interfaces ready for implementation",
            [
                ("Overview", True),
                ("Interfaces", True),
                ("Implementation Tasks", True),
                ("Testing", False),
            ],
            {
                "{{IMPLEMENTATION_TASKS}}": ("Implementation Tasks", "Ordered list of tasks"),
            },
        ),
        _structure(
            "basic", "Basic Document",
            "A general-purpose document",
            [
                ("Overview", True),
                ("Requirements", False),
                ("Implementation", False),
                ("Testing", False),
            ],
            {
                "{{OVERVIEW}}": ("Overview", "What the document is about"),
            },
        ),
    ]


class TemplateRegistry:
    """Lookup of template structures by id."""

    def __init__(self, templates: Optional[List[TemplateStructure]] = None):
        self.logger = get_logger(__name__)
        self._templates: Dict[str, TemplateStructure] = {}
        for template in (templates if templates is not None else builtin_templates()):
            self.register(template)

    def register(self, template: TemplateStructure) -> None:
        self._templates[template.template_id] = template

    def get(self, template_id: str) -> Optional[TemplateStructure]:
        return self._templates.get(template_id)

    def list_templates(self) -> List[TemplateStructure]:
        return list(self._templates.values())

    @performance_timer("render template")
    def render(self, template_id: str, title: str) -> str:
        """Markdown skeleton for a new document built from ``template_id``."""
        template = self._templates.get(template_id)
        if template is None:
            raise ValidationError(f"Unknown template: {template_id}")

        lines = [f"# {title}", ""]
        for section_name in template.ordered_sections():
            spec = template.sections[section_name]
            lines.append(spec.header)
            lines.append("")
            lines.extend(template.placeholders_for(section_name) or [placeholder_token(section_name)])
            lines.append("")

        return "\n".join(lines)
