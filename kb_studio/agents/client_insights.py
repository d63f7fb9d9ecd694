"""Client Insights Agent - AI analysis of a client record.

Three independent model calls (pain points, service-gap signals, risk score)
run concurrently and are combined into one ``ClientInsights`` result. Each
call has its own fallback, so one failed call never fails the whole job.
This is the work performed behind the asynchronous insight jobs.

Public API:
    generate_client_insights: Run all three analyses with progress reporting
    extract_pain_points, detect_service_gaps, calculate_risk_score
    ClientData, ClientSignal, ClientInsights
"""

import asyncio
import inspect
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Final, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kb_studio.integrations.llm_client import generate_text, parse_json_response
from kb_studio.integrations.prompts import (
    PAIN_POINTS_PROMPT_V1,
    RISK_SCORE_PROMPT_V1,
    SERVICE_GAPS_PROMPT_V1,
)
from kb_studio.utils.logging_config import get_logger

DEFAULT_RISK_SCORE: Final = 50
PAIN_POINTS_FALLBACK: Final[tuple[str, ...]] = ("Unable to analyze pain points",)

ProgressCallback = Callable[[int], Union[None, Awaitable[None]]]


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class ClientData(BaseModel):
    """Client record submitted with an insight job (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    contact_id: Optional[str] = None
    company_name: str = "Unknown Company"
    industry: str = "Unknown"
    services: list[str] = Field(default_factory=list)
    revenue: Optional[str] = None
    employees: Optional[int] = None
    recent_activities: list[Any] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)
    last_activity: Optional[str] = None


@dataclass(frozen=True)
class ClientSignal:
    """One detected service gap, risk or opportunity."""

    type: Literal["upsell", "risk", "opportunity"]
    severity: Literal["Low", "Medium", "High"]
    confidence: float
    title: str
    description: str = ""
    recommended_action: str = ""
    estimated_value: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "confidence": self.confidence,
            "title": self.title,
            "description": self.description,
            "recommendedAction": self.recommended_action,
            "estimatedValue": self.estimated_value,
        }


@dataclass(frozen=True)
class ClientInsights:
    """Combined result of an insight job.

    Attributes:
        pain_points: 3-5 pain points (or the fallback message)
        signals: Service-gap signals
        risk_score: 0-100 churn risk
        last_analyzed: ISO timestamp of the analysis
    """

    pain_points: tuple[str, ...]
    signals: tuple[ClientSignal, ...]
    risk_score: int
    last_analyzed: str

    @property
    def upsell_opportunities(self) -> list[str]:
        """One-line summaries of the signals."""
        return [f"{s.title} - {s.estimated_value or 'Pricing TBD'}" for s in self.signals]

    def to_dict(self) -> dict[str, Any]:
        return {
            "painPoints": list(self.pain_points),
            "upsellOpportunities": self.upsell_opportunities,
            "riskScore": self.risk_score,
            "lastAnalyzed": self.last_analyzed,
            "signals": [signal.to_dict() for signal in self.signals],
        }


def _coerce_signal(raw: Any) -> Optional[ClientSignal]:
    """Build a ClientSignal from model JSON, or None if it is unusable."""
    if not isinstance(raw, dict) or not raw.get("title"):
        return None

    signal_type = raw.get("type")
    if signal_type not in ("upsell", "risk", "opportunity"):
        signal_type = "opportunity"
    severity = raw.get("severity")
    if severity not in ("Low", "Medium", "High"):
        severity = "Medium"
    try:
        confidence = min(1.0, max(0.0, float(raw.get("confidence", 0.5))))
    except (TypeError, ValueError):
        confidence = 0.5

    return ClientSignal(
        type=signal_type,
        severity=severity,
        confidence=confidence,
        title=str(raw["title"]),
        description=str(raw.get("description") or ""),
        recommended_action=str(raw.get("recommendedAction") or ""),
        estimated_value=raw.get("estimatedValue") or None,
    )


def _log_failure(message: str, client: ClientData, error: Exception) -> None:
    fields = {"contact_id": client.contact_id, "error_type": type(error).__name__}
    _get_logger().warning(message, extra={"extra_fields": fields})


def _json_list(data: Any, key: str) -> list:
    """The response itself when it is a list, else the list under key (or empty)."""
    if isinstance(data, list):
        return data
    items = data.get(key) if isinstance(data, dict) else None
    return items if isinstance(items, list) else []


async def extract_pain_points(client: ClientData, *, model: str | None = None) -> tuple[str, ...]:
    """Pain points for a client; fallback message on any failure."""
    prompt = PAIN_POINTS_PROMPT_V1.format(
        company=client.company_name,
        industry=client.industry,
        activities=json.dumps(client.recent_activities, default=str),
        notes=json.dumps(client.notes),
    )
    try:
        data = parse_json_response(await generate_text(prompt, model=model, temperature=0.5))
        items = _json_list(data, "painPoints")
        points = tuple(str(item).strip() for item in items if str(item).strip())
        return points or PAIN_POINTS_FALLBACK
    except Exception as e:  # pylint: disable=broad-except
        _log_failure("Pain point extraction failed", client, e)
        return PAIN_POINTS_FALLBACK


async def detect_service_gaps(
    client: ClientData, *, model: str | None = None
) -> tuple[ClientSignal, ...]:
    """Service-gap signals for a client; empty on any failure."""
    prompt = SERVICE_GAPS_PROMPT_V1.format(
        company=client.company_name,
        services=json.dumps(client.services),
        industry=client.industry,
        revenue=client.revenue or "Unknown",
        employees=client.employees if client.employees is not None else "Unknown",
    )
    try:
        data = parse_json_response(await generate_text(prompt, model=model, temperature=0.4))
        raw_signals = _json_list(data, "signals")
        return tuple(s for s in (_coerce_signal(raw) for raw in raw_signals) if s is not None)
    except Exception as e:  # pylint: disable=broad-except
        _log_failure("Service gap detection failed", client, e)
        return ()


async def calculate_risk_score(client: ClientData, *, model: str | None = None) -> int:
    """Risk score clamped to 0-100; DEFAULT_RISK_SCORE on any failure."""
    prompt = RISK_SCORE_PROMPT_V1.format(
        company=client.company_name,
        services=json.dumps(client.services),
        activity_count=len(client.recent_activities),
        last_activity=client.last_activity or "Unknown",
        industry=client.industry,
    )
    try:
        data = parse_json_response(await generate_text(prompt, model=model, temperature=0.3))
        score = data.get("riskScore") if isinstance(data, dict) else None
        if score is None or isinstance(score, bool):
            return DEFAULT_RISK_SCORE
        return max(0, min(100, round(float(score))))
    except Exception as e:  # pylint: disable=broad-except
        _log_failure("Risk score calculation failed", client, e)
        return DEFAULT_RISK_SCORE


async def _report(on_progress: Optional[ProgressCallback], progress: int) -> None:
    if on_progress is None:
        return
    outcome = on_progress(progress)
    if inspect.isawaitable(outcome):
        await outcome


async def generate_client_insights(
    client_data: Union[ClientData, dict[str, Any]],
    on_progress: Optional[ProgressCallback] = None,
    *,
    model: str | None = None,
) -> ClientInsights:
    """Run pain point, service gap and risk analyses concurrently.

    Progress is reported as 25 once the analyses start, then rises by 25 as
    each of the three finishes, ending at 100.

    Args:
        client_data: ClientData or its camelCase dict form
        on_progress: Optional sync or async callback receiving 0-100
        model: Optional LLM model override

    Returns:
        ClientInsights combining the three analyses
    """
    if isinstance(client_data, ClientData):
        client = client_data
    else:
        client = ClientData.model_validate(client_data)

    await _report(on_progress, 25)

    pain_task = asyncio.ensure_future(extract_pain_points(client, model=model))
    gaps_task = asyncio.ensure_future(detect_service_gaps(client, model=model))
    risk_task = asyncio.ensure_future(calculate_risk_score(client, model=model))

    progress = 25
    for finished in asyncio.as_completed([pain_task, gaps_task, risk_task]):
        await finished
        progress += 25
        await _report(on_progress, progress)

    insights = ClientInsights(
        pain_points=pain_task.result(),
        signals=gaps_task.result(),
        risk_score=risk_task.result(),
        last_analyzed=datetime.now(timezone.utc).isoformat(),
    )

    _get_logger().info(
        "Client insights generated",
        extra={
            "extra_fields": {
                "contact_id": client.contact_id,
                "signal_count": len(insights.signals),
                "risk_score": insights.risk_score,
            }
        },
    )
    return insights
