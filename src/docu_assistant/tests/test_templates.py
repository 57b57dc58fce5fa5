"""
Tests for template structures and rendering.
"""

import pytest

from docu_assistant.templates.registry import (
    PlaceholderSpec,
    SectionSpec,
    TemplateRegistry,
    TemplateStructure,
    placeholder_token,
)
from docu_assistant.utils.error_handling import ValidationError


class TestTemplateStructure:

    def test_builtin_ids(self, templates):
        ids = [t.template_id for t in templates.list_templates()]
        assert ids == ["prd", "requirements", "design", "specification", "basic"]

    def test_ordered_sections(self, prd_template):
        assert prd_template.ordered_sections()[:4] == [
            "Problem Statement", "Target Users", "Goals and Objectives", "Key Features",
        ]

    def test_section_title_and_level(self):
        spec = SectionSpec(header="### Deep Dive")

        assert spec.title == "Deep Dive"
        assert spec.level == 3

    def test_duplicate_orders_rejected(self):
        with pytest.raises(ValidationError, match="duplicate section orders"):
            TemplateStructure("t", "T", sections={"A": SectionSpec("## A", order=1), "B": SectionSpec("## B", order=1)})

    def test_placeholder_must_point_at_a_section(self):
        with pytest.raises(ValidationError, match="unknown section 'Nope'"):
            TemplateStructure(
                "t", "T",
                sections={"A": SectionSpec("## A", order=1)},
                placeholders={"{{X}}": PlaceholderSpec("Nope", "x")},
            )

    def test_placeholder_token(self):
        assert placeholder_token("Non-Functional Requirements") == "{{NON_FUNCTIONAL_REQUIREMENTS}}"


class TestRender:

    def test_prd_skeleton(self, templates):
        content = templates.render("prd", "Checkout")

        assert content.startswith("# Checkout\n\n## Problem Statement\n\n{{PROBLEM_STATEMENT}}\n")
        assert "## Success Metrics\n\n{{SUCCESS_METRICS}}\n" in content
        assert content.index("## Target Users") < content.index("## Key Features")

    def test_unknown_template(self, templates):
        with pytest.raises(ValidationError):
            templates.render("memo", "x")

    def test_custom_registry(self):
        registry = TemplateRegistry([
            TemplateStructure("memo", "Memo", sections={"Body": SectionSpec("## Body", order=1)}),
        ])

        assert registry.render("memo", "Note") == "# Note\n\n## Body\n\n{{BODY}}\n"
        assert registry.get("prd") is None
