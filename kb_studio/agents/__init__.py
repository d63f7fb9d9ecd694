"""Agent modules for knowledge base content generation.

This package contains the generation stages (outline, draft, polish,
audience versions), the advisory analyzers and the template registry.
"""

from kb_studio.agents.analyzer import FALLBACK_ANALYSIS, ContentAnalysis, analyze_content
from kb_studio.agents.client_insights import ClientData, ClientInsights, generate_client_insights
from kb_studio.agents.drafter import generate_draft
from kb_studio.agents.metadata import FALLBACK_METADATA, ArticleMetadata, generate_metadata
from kb_studio.agents.models import AUDIENCES, GenerationRequest, GenerationStep
from kb_studio.agents.outliner import generate_outline
from kb_studio.agents.polisher import polish_article
from kb_studio.agents.templates import Template, get_template, list_templates
from kb_studio.agents.versioner import FallbackUsed, VersionBatch, VersionOk, generate_versions

__all__ = [
    "GenerationRequest",
    "GenerationStep",
    "AUDIENCES",
    "Template",
    "get_template",
    "list_templates",
    "generate_outline",
    "generate_draft",
    "polish_article",
    "generate_versions",
    "VersionBatch",
    "VersionOk",
    "FallbackUsed",
    "analyze_content",
    "ContentAnalysis",
    "FALLBACK_ANALYSIS",
    "generate_metadata",
    "ArticleMetadata",
    "FALLBACK_METADATA",
    "generate_client_insights",
    "ClientData",
    "ClientInsights",
]
