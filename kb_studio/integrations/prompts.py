"""Centralized prompt registry for LLM interactions.

This module contains versioned prompt templates used across the application.
Each prompt is a static string constant filled with ``str.format``; literal
braces in JSON examples are doubled.

Naming convention: <PURPOSE>_PROMPT_V<NUMBER>

Version History:
- V1: Knowledge base article pipeline and client insight prompts
"""

BRAND_VOICE_GUIDELINES_V1 = """
{brand} Brand Voice:
- Professional yet approachable
- Clear and concise communication
- Witty but not flippant
- Confident without being arrogant
- Use active voice and present tense when possible
- Avoid jargon unless necessary (then define it)
- Include practical examples
- End with clear action items when appropriate
"""

COMPLIANCE_REQUIREMENTS_V1 = """
Compliance Requirements:
- Include appropriate disclaimers for financial/tax advice
- State-specific considerations when applicable
- PII/PHI protection reminders
- "This is not legal/tax advice" statements
- Last reviewed dates
- Required approval processes
"""

LENGTH_GUIDANCE = {
    "brief": "Brief: roughly 400-700 words, only the essentials",
    "standard": "Standard: roughly 900-1500 words",
    "comprehensive": "Comprehensive: 1800+ words with examples for every section",
}

OUTLINE_SYSTEM_PROMPT_V1 = """You are an expert content strategist for {brand}, a modern accounting and financial services firm. Create detailed article outlines following our brand voice and compliance requirements.

{brand_voice}
{compliance}"""

ARTICLE_OUTLINE_PROMPT_V1 = """Create a detailed outline for a {template_name} article with these specifications:

Title: {title}
Audience: {audience}
Template Structure: {structure}
Length: {length}
Tone: {tone}
{variables_block}{requirements_block}
Create a comprehensive outline with:
1. Main sections and subsections
2. Key points to cover in each section
3. Suggested examples or case studies
4. Call-to-action recommendations
5. Compliance checkpoints (if applicable)

Format as a structured outline with clear hierarchy using markdown headings and bullet lists."""

DRAFT_SYSTEM_PROMPT_V1 = """You are an expert content writer for {brand}. Write comprehensive, practical articles that help our team and clients succeed. Follow our brand voice and ensure accuracy.

{brand_voice}
{compliance}"""

ARTICLE_DRAFT_PROMPT_V1 = """Write a complete {template_name} article with these specifications:

Title: {title}
Audience: {audience}
Length: {length}
Tone: {tone}
{variables_block}
{structure_block}
{requirements_block}
Requirements:
- Write in markdown format
- Include practical examples
- Add actionable takeaways
- Use clear headings and subheadings
- Include relevant internal links (use placeholder format [Link Text](/placeholder-url))
- Add compliance disclaimers if required
- End with clear next steps or resources

Write the complete article now:"""

POLISH_SYSTEM_PROMPT_V1 = """You are a senior editor for {brand}. Polish articles to perfection while maintaining our brand voice and ensuring compliance.

{brand_voice}
{compliance}"""

ARTICLE_POLISH_PROMPT_V1 = """Polish this article draft for final publication:

Original Article:
{draft}

Target Audience: {audience}
Tone: {tone}

Polishing Requirements:
1. Enhance readability and flow
2. Strengthen brand voice consistency
3. Add missing practical examples
4. Improve clarity and conciseness
5. Verify compliance elements
6. Optimize headings and structure
7. Add internal linking opportunities
8. Ensure proper call-to-actions

IMPORTANT: Format the output as clean HTML suitable for a rich text editor. Use ONLY these HTML tags:
- <h1>, <h2>, <h3> for headings
- <p> for paragraphs
- <ul>, <ol> and <li> for lists
- <strong> for bold text
- <em> for emphasis
- <blockquote> for quotes

Provide the polished, publication-ready HTML version:"""

ADAPTATION_SYSTEM_PROMPT_V1 = """You are a content adaptation specialist for {brand}. Transform articles for different audiences while maintaining core information.

{brand_voice}"""

AUDIENCE_GUIDELINES = {
    "internal": (
        "- Include technical details and process specifics\n"
        "- Add internal tools and system references\n"
        "- Use professional jargon appropriate for team\n"
        "- Include troubleshooting and edge cases"
    ),
    "client": (
        "- Simplify technical language\n"
        "- Focus on benefits and outcomes\n"
        "- Include clear action steps\n"
        "- Add reassuring elements and support info\n"
        "- Remove internal processes"
    ),
    "sales": (
        "- Emphasize value propositions\n"
        "- Include objection handling\n"
        "- Add persuasive elements\n"
        "- Focus on client benefits\n"
        "- Include pricing/package hints where appropriate"
    ),
}

AUDIENCE_ADAPTATION_PROMPT_V1 = """Adapt this article for a {audience} audience:

Original Article ({source_audience} version):
{content}

Adaptation Guidelines for {audience} audience:
{guidelines}

Keep the HTML structure (headings, paragraphs, lists). Provide the adapted version only:"""

ANALYSIS_SYSTEM_PROMPT_V1 = """You are a content quality analyst for {brand}. Analyze content for brand consistency, readability, and compliance.

{brand_voice}
{compliance}"""

CONTENT_ANALYSIS_PROMPT_V1 = """Analyze this content and provide a comprehensive, actionable quality assessment:

Content to Analyze:
{content}

Provide analysis in this JSON format:
{{
  "brandFitScore": <1-5 score>,
  "readabilityLevel": "<grade level or description>",
  "complianceChecks": ["<specific compliance item passed>"],
  "suggestions": ["<specific, actionable suggestion>"],
  "missingElements": ["<specific missing element>"],
  "improvementPlan": ["<concrete improvement step>"],
  "nextSteps": ["<next step for the author>"]
}}

Focus on specific, actionable suggestions that would immediately improve the content quality and business impact.
Respond with JSON only."""

METADATA_PROMPT_V1 = """Analyze this knowledge base article and generate metadata:

TITLE: {title}

CONTENT:
{content}

Generate a JSON response with:
1. "excerpt": A compelling 1-2 sentence summary (under 150 characters) that captures the article's main value
2. "tags": Array of 3-5 relevant tags for searchability (focus on topics, categories, and key concepts)

Use {brand}'s professional tone. Make the excerpt action-oriented and the tags specific and useful.

Format as valid JSON only, no other text."""

PAIN_POINTS_PROMPT_V1 = """Extract key pain points from this client data:

Company: {company}
Industry: {industry}
Recent Activities: {activities}
CRM Notes: {notes}

Based on industry patterns and any explicit mentions, identify 3-5 key pain points.
Return JSON: {{"painPoints": ["pain point 1", "pain point 2"]}}

Focus on operational, financial, and compliance challenges common to their industry and size."""

SERVICE_GAPS_PROMPT_V1 = """Analyze this client data to identify service gaps and upsell opportunities:

Company: {company}
Current Services: {services}
Industry: {industry}
Revenue: {revenue}
Employees: {employees}

Identify potential service gaps based on these rules:
1. Payroll missing: If revenue suggests >$50k payroll expense but no Payroll service
2. Multi-state complexity: If multi-location business without nexus compliance
3. High cash/growth: If strong financials suggest need for CFO services
4. Tax preparation: If bookkeeping client without tax services
5. Compliance gaps: Industry-specific requirements not being met

Return JSON:
{{"signals": [{{
  "type": "upsell" | "risk" | "opportunity",
  "severity": "Low" | "Medium" | "High",
  "confidence": 0.0-1.0,
  "title": "Brief signal title",
  "description": "What we detected",
  "recommendedAction": "Specific next step",
  "estimatedValue": "$X/month additional revenue"
}}]}}"""

RISK_SCORE_PROMPT_V1 = """Calculate a client risk score (0-100) based on this data:

Company: {company}
Services: {services}
Recent Activities: {activity_count} interactions
Last Activity: {last_activity}
Industry: {industry}

Risk factors to consider:
- Low engagement/communication frequency (higher risk)
- Service utilization patterns
- Payment history (if available)
- Industry volatility
- Seasonal business patterns

Return JSON: {{"riskScore": 0-100, "riskFactors": ["factor1", "factor2"]}}

0-20: Low risk (engaged, stable)
21-40: Low-medium risk
41-60: Medium risk
61-80: Medium-high risk
81-100: High risk (churn likely)"""
