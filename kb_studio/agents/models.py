"""Request and result types shared by the generation stages.

``GenerationRequest`` is a pydantic model because it is validated from form
input and serialized into stored sessions (camelCase keys, matching the
portal's JSON). Stage outputs are frozen dataclasses.
"""

from dataclasses import dataclass
from typing import Final, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Audience = Literal["internal", "client", "sales"]
Tone = Literal["professional", "friendly", "technical"]
Length = Literal["brief", "standard", "comprehensive"]
StepName = Literal["outline", "draft", "polish"]

AUDIENCES: Final[tuple[Audience, ...]] = ("internal", "client", "sales")


class GenerationRequest(BaseModel):
    """Parameters of one generation call.

    Attributes:
        template_id: Registry id of the article template
        title: Article title
        category_id: Knowledge base category the article will be filed under
        audience: Primary audience of the generated content
        tone: Writing tone
        length: Target length bucket
        include_compliance: Add compliance guidance to the prompts
        custom_requirements: Free-text extra instructions
        variables: Template variable values keyed by placeholder name
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    template_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    category_id: Optional[int] = None
    audience: Audience = "internal"
    tone: Tone = "professional"
    length: Length = "standard"
    include_compliance: bool = False
    custom_requirements: Optional[str] = None
    variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("custom_requirements")
    @classmethod
    def blank_requirements_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat an empty requirements box as not provided."""
        return v or None

    def filled_variables(self) -> dict[str, str]:
        """Variables that have a non-blank value."""
        return {name: value for name, value in self.variables.items() if value and value.strip()}


@dataclass(frozen=True)
class GenerationStep:
    """Output of one pipeline stage.

    Attributes:
        stage: Which stage produced the content
        content: HTML content for the rich-text editor
        suggestions: Editorial hints for the author
        next_steps: Suggested follow-up actions
    """

    stage: StepName
    content: str
    suggestions: tuple[str, ...] = ()
    next_steps: tuple[str, ...] = ()
