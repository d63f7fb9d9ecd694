"""Template Registry - named article structures for the generation pipeline.

Each template fixes an ordered section structure and a list of variable
placeholders (``{{name}}`` syntax) that the request form collects.
Templates are defined at import time and never mutated.

Public API:
    Template: Immutable template definition
    get_template: Look up a template by id
    list_templates: All templates in registry order
    extract_variables: Placeholder names found in a text
    template_form_fields: Form field names for a template
    render_template: Markdown skeleton with placeholders substituted

Example:
    >>> get_template("faq").structure[0]
    'Question Categories'
    >>> template_form_fields(get_template("faq"))
    ('topic_area', 'audience', 'complexity_level')
"""

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Final, Mapping

from kb_studio.workflow.error_handling import TemplateNotFoundError

PLACEHOLDER_PATTERN: Final = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


@dataclass(frozen=True)
class Template:
    """An article template.

    Attributes:
        id: Registry key (e.g. "sop")
        name: Display name
        structure: Ordered section names
        variables: Placeholders in ``{{name}}`` syntax
        description: Short description shown in the template picker
        preview: Whether the template is still in preview
    """

    id: str
    name: str
    structure: tuple[str, ...]
    variables: tuple[str, ...]
    description: str = ""
    preview: bool = False


_TEMPLATES: Final[tuple[Template, ...]] = (
    Template(
        id="sop",
        name="Standard Operating Procedure",
        structure=(
            "Overview",
            "Prerequisites",
            "Step-by-Step Process",
            "Quality Checks",
            "Troubleshooting",
            "Related Resources",
        ),
        variables=(
            "{{process_name}}",
            "{{department}}",
            "{{tools_required}}",
            "{{compliance_notes}}",
        ),
        description="Repeatable internal process with checks and troubleshooting",
    ),
    Template(
        id="playbook",
        name="Sales/Service Playbook",
        structure=(
            "Situation Overview",
            "Key Objectives",
            "Action Steps",
            "Scripts & Templates",
            "Success Metrics",
            "Common Objections & Responses",
        ),
        variables=(
            "{{service_type}}",
            "{{client_segment}}",
            "{{industry}}",
            "{{state}}",
            "{{entity_type}}",
        ),
        description="Situation-specific guidance for sales and service teams",
    ),
    Template(
        id="faq",
        name="Frequently Asked Questions",
        structure=(
            "Question Categories",
            "Common Questions",
            "Detailed Answers",
            "Related Topics",
            "When to Escalate",
        ),
        variables=("{{topic_area}}", "{{audience}}", "{{complexity_level}}"),
        description="Grouped questions and answers with escalation guidance",
    ),
    Template(
        id="client_guide",
        name="Client-Facing Guide",
        structure=(
            "Introduction",
            "What You Need to Know",
            "Step-by-Step Instructions",
            "Important Notes",
            "Next Steps",
            "Getting Help",
        ),
        variables=("{{service_name}}", "{{client_type}}", "{{timeline}}", "{{deliverables}}"),
        description="Plain-language walkthrough written for clients",
    ),
    Template(
        id="product_docs",
        name="Product/Feature Documentation",
        structure=(
            "Feature Overview",
            "Benefits",
            "How It Works",
            "Setup Instructions",
            "Best Practices",
            "Limitations & Considerations",
        ),
        variables=("{{feature_name}}", "{{target_users}}", "{{integration_points}}"),
        description="Feature reference with setup steps and limitations",
        preview=True,
    ),
)

TEMPLATES: Final[Mapping[str, Template]] = MappingProxyType({t.id: t for t in _TEMPLATES})


def get_template(template_id: str) -> Template:
    """Look up a template by id.

    Raises:
        TemplateNotFoundError: If no template has this id
    """
    try:
        return TEMPLATES[template_id]
    except KeyError:
        raise TemplateNotFoundError(template_id, available=list(TEMPLATES)) from None


def list_templates() -> list[Template]:
    """Return all templates in registry order."""
    return list(TEMPLATES.values())


def extract_variables(text: str) -> tuple[str, ...]:
    """Return placeholder names in order of first appearance, without duplicates.

    Examples:
        >>> extract_variables("{{a}} and {{ b }} then {{a}}")
        ('a', 'b')
    """
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text or ""):
        seen.setdefault(match.group(1), None)
    return tuple(seen)


def template_form_fields(template: Template) -> tuple[str, ...]:
    """Form field names collected for a template, one per declared variable."""
    return tuple(variable.strip().strip("{}").strip() for variable in template.variables)


def render_template(
    template_id: str, variables: Mapping[str, str], title: str | None = None
) -> str:
    """Render a markdown skeleton for a template.

    The skeleton has a title heading, one ``##`` heading per section and a
    context list of the template variables. Known placeholders are replaced
    with their values; unknown ones are left in place.

    Raises:
        TemplateNotFoundError: If the template id is unknown
    """
    template = get_template(template_id)
    lines = [f"# {title or template.name}", ""]

    fields = template_form_fields(template)
    context = [f"- {name}: {variable}" for name, variable in zip(fields, template.variables)]
    if context:
        lines.extend(context)
        lines.append("")

    for section in template.structure:
        lines.extend([f"## {section}", ""])

    skeleton = "\n".join(lines).strip() + "\n"

    def _substitute(match: re.Match) -> str:
        value = variables.get(match.group(1))
        return value if value else match.group(0)

    return PLACEHOLDER_PATTERN.sub(_substitute, skeleton)
