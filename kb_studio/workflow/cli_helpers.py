"""CLI helper functions for the interactive generator.

This module provides utilities for displaying generated content and
collecting the generation request from the console.
"""

from typing import Optional, Sequence

from bs4 import BeautifulSoup

from kb_studio.agents.analyzer import ContentAnalysis
from kb_studio.agents.metadata import ArticleMetadata
from kb_studio.agents.models import AUDIENCES, GenerationRequest, GenerationStep
from kb_studio.agents.templates import Template, template_form_fields
from kb_studio.agents.versioner import FallbackUsed, VersionBatch
from kb_studio.workflow.state import SavedSession

TONES = ("professional", "friendly", "technical")
LENGTHS = ("brief", "standard", "comprehensive")
PREVIEW_CHARS = 500


def html_preview(html: str, limit: int = PREVIEW_CHARS) -> str:
    """Plain-text preview of HTML content, truncated to limit characters.

    Examples:
        >>> html_preview("<h1>Title</h1><p>Body text</p>")
        'Title\\nBody text'
    """
    text = BeautifulSoup(html or "", "html.parser").get_text("\n", strip=True)
    if len(text) > limit:
        return text[:limit].rstrip() + "..."
    return text


def _rule(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def display_templates(templates: Sequence[Template]) -> None:
    """Display the available templates as a numbered list.

    Example Output:
        1. Standard Operating Procedure (sop)
           Step-by-step process documentation
    """
    _rule("📚 ARTICLE TEMPLATES")
    for idx, template in enumerate(templates, start=1):
        preview = " [preview]" if template.preview else ""
        print(f"\n{idx}. {template.name} ({template.id}){preview}")
        if template.description:
            print(f"   {template.description}")
    print("\n" + "=" * 70)


def prompt_template_selection(templates: Sequence[Template]) -> Template:
    """Prompt the user to pick a template by number."""
    while True:
        try:
            choice = input(f"\n👉 Select a template (1-{len(templates)}): ").strip()
            choice_num = int(choice)
            if 1 <= choice_num <= len(templates):
                return templates[choice_num - 1]
            print(f"❌ Please enter a number between 1 and {len(templates)}")
        except ValueError:
            print("❌ Please enter a valid number")
        except KeyboardInterrupt:
            print("\n\n⚠️  Selection cancelled")
            raise


def prompt_text(label: str, *, required: bool = False, default: str = "") -> str:
    """Prompt for free text; re-asks while a required answer is empty."""
    suffix = f" [{default}]" if default else ""
    while True:
        value = input(f"👉 {label}{suffix}: ").strip() or default
        if value or not required:
            return value
        print(f"❌ {label} cannot be empty")


def prompt_choice(label: str, options: Sequence[str], default: str) -> str:
    """Prompt for one of a fixed set of options."""
    while True:
        value = input(f"👉 {label} ({'/'.join(options)}) [{default}]: ").strip().lower()
        if not value:
            return default
        if value in options:
            return value
        print(f"❌ Please choose one of: {', '.join(options)}")


def prompt_yes_no(question: str, default: bool = False) -> bool:
    hint = "Y/n" if default else "y/N"
    answer = input(f"👉 {question} ({hint}): ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def collect_request(templates: Sequence[Template]) -> GenerationRequest:
    """Walk the user through the generation form."""
    display_templates(templates)
    template = prompt_template_selection(templates)

    print(f"\n📝 {template.name}")
    title = prompt_text("Title", required=True)
    audience = prompt_choice("Audience", AUDIENCES, "internal")
    tone = prompt_choice("Tone", TONES, "professional")
    length = prompt_choice("Length", LENGTHS, "standard")
    include_compliance = prompt_yes_no("Include compliance guidance?")

    variables = {}
    fields = template_form_fields(template)
    if fields:
        print("\nTemplate variables (leave blank to skip):")
        for field in fields:
            variables[field] = prompt_text(field.replace("_", " ").title())

    requirements = prompt_text("Additional requirements (optional)")

    return GenerationRequest(
        template_id=template.id,
        title=title,
        audience=audience,
        tone=tone,
        length=length,
        include_compliance=include_compliance,
        custom_requirements=requirements or None,
        variables=variables,
    )


def display_step(step: GenerationStep) -> None:
    """Display one stage result with its hints."""
    _rule(f"📄 {step.stage.upper()}")
    print(html_preview(step.content))
    if step.suggestions:
        print("\n💡 Suggestions:")
        for suggestion in step.suggestions:
            print(f"   • {suggestion}")
    if step.next_steps:
        print("\n➡️  Next steps:")
        for next_step in step.next_steps:
            print(f"   • {next_step}")
    print("\n" + "=" * 70)


def display_versions(batch: VersionBatch) -> None:
    """Display each audience version, flagging fallbacks."""
    _rule("👥 AUDIENCE VERSIONS")
    for audience, result in batch.results:
        fell_back = isinstance(result, FallbackUsed)
        marker = " (original content, adaptation failed)" if fell_back else ""
        print(f"\n--- {audience.upper()}{marker} ---")
        print(html_preview(result.content, limit=300))
    print("\n" + "=" * 70)


def display_analysis(analysis: ContentAnalysis) -> None:
    """Display the content quality report."""
    _rule("🔍 CONTENT ANALYSIS")
    print(f"\n⭐ Brand fit: {analysis.brand_fit_score}/5")
    print(f"📖 Readability: {analysis.readability_level}")
    sections = (
        ("✅ Compliance checks", analysis.compliance_checks),
        ("💡 Suggestions", analysis.suggestions),
        ("⚠️  Missing elements", analysis.missing_elements),
        ("🛠️  Improvement plan", analysis.improvement_plan),
        ("➡️  Next steps", analysis.next_steps),
    )
    for heading, items in sections:
        if items:
            print(f"\n{heading}:")
            for item in items:
                print(f"   • {item}")
    print("\n" + "=" * 70)


def display_metadata(metadata: ArticleMetadata) -> None:
    _rule("🏷️  METADATA")
    print(f"\nExcerpt: {metadata.excerpt}")
    print(f"Tags: {', '.join(metadata.tags)}")
    print("\n" + "=" * 70)


def display_saved_sessions(sessions: Sequence[SavedSession]) -> None:
    """Display saved sessions, newest first."""
    if not sessions:
        print("\n⚠️  No saved sessions")
        return
    _rule("💾 SAVED SESSIONS")
    for idx, saved in enumerate(sessions, start=1):
        print(f"\n{idx}. {saved.form_data.title} ({saved.selected_template}) @ {saved.timestamp}")
    print("\n" + "=" * 70)


def prompt_session_selection(sessions: Sequence[SavedSession]) -> Optional[SavedSession]:
    """Pick a saved session to restore; blank input starts a new session."""
    if not sessions:
        return None
    display_saved_sessions(sessions)
    while True:
        choice = input(f"\n👉 Restore a session (1-{len(sessions)}, blank for new): ").strip()
        if not choice:
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(sessions):
            return sessions[int(choice) - 1]
        print("❌ Please enter a valid number")


def display_error(message: str) -> None:
    """Display error message in formatted style."""
    _rule("❌ ERROR")
    print(f"\n{message}")
    print("\n" + "=" * 70)


def display_info(message: str) -> None:
    """Display informational message in formatted style."""
    _rule("ℹ️  INFO")
    print(f"\n{message}")
    print("\n" + "=" * 70)


def display_success(message: str) -> None:
    """Display success message in formatted style."""
    _rule("✅ SUCCESS")
    print(f"\n{message}")
    print("\n" + "=" * 70)
