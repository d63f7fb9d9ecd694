"""Async job poller for long-running insight generation.

The poller is split in two:

- Pure transition functions (``on_submitted``, ``on_poll_result``,
  ``on_deadline``) over an immutable ``PollerState``. They encode the job
  lifecycle and are testable without timers.
- ``JobPoller``, which drives a ``JobClient`` with an injectable clock and
  sleep: submit, poll every interval, stop on a terminal status, and time
  out once the absolute deadline (measured from submission) is reached.

Lifecycle:
    submitted → polling → completed | failed | timed_out

Progress never decreases, and terminal states ignore further input.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Literal, Optional, Protocol

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from kb_studio.utils.config import get_settings
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import (
    APIError,
    JobFailedError,
    JobNotFoundError,
    JobTimeoutError,
)

_STATUS_ALIASES = {
    "active": "processing",
    "waiting": "queued",
    "delayed": "queued",
    "pending": "queued",
}


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


class JobStatus(BaseModel):
    """Status payload returned by submit and status calls.

    ``active`` (and queue-side waiting states) are normalized so callers
    only see queued, processing, completed or failed.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    job_id: Optional[str] = None
    status: Literal["queued", "processing", "completed", "failed"]
    progress: int = 0
    result: Any = None
    error: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip().lower()
            return _STATUS_ALIASES.get(v, v)
        return v

    @field_validator("progress", mode="before")
    @classmethod
    def clamp_progress(cls, v: Any) -> int:
        if v is None or isinstance(v, bool):
            return 0
        try:
            return max(0, min(100, int(float(v))))
        except (TypeError, ValueError):
            return 0

    @property
    def is_terminal(self) -> bool:
        return self.status in ("completed", "failed")


class PollPhase(str, Enum):
    """Phase of a polled job as seen by the client."""

    SUBMITTED = "submitted"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


TERMINAL_PHASES = frozenset({PollPhase.COMPLETED, PollPhase.FAILED, PollPhase.TIMED_OUT})


@dataclass(frozen=True)
class PollerState:
    """Immutable snapshot of a polled job.

    Attributes:
        job_id: Server job id (None if the job completed on submit)
        phase: Current phase
        progress: 0-100, never decreasing
        result: Job result once completed
        error: Failure or timeout message
        poll_count: Number of status polls performed
    """

    job_id: Optional[str]
    phase: PollPhase
    progress: int = 0
    result: Any = None
    error: Optional[str] = None
    poll_count: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


def _apply_status(state: PollerState, response: JobStatus, *, phase: PollPhase) -> PollerState:
    """Fold a status response into state; terminal statuses win over ``phase``."""
    if response.status == "completed":
        return replace(state, phase=PollPhase.COMPLETED, progress=100, result=response.result)
    if response.status == "failed":
        return replace(
            state,
            phase=PollPhase.FAILED,
            progress=max(state.progress, response.progress),
            error=response.error or "Job failed",
        )
    return replace(state, phase=phase, progress=max(state.progress, response.progress))


def on_submitted(response: JobStatus) -> PollerState:
    """Initial state from the submit response.

    A submit response may already be terminal (for example a cached
    result); a non-terminal response without a job id cannot be polled and
    is treated as failed.
    """
    state = PollerState(job_id=response.job_id, phase=PollPhase.SUBMITTED)
    state = _apply_status(state, response, phase=PollPhase.SUBMITTED)
    if not state.is_terminal and not state.job_id:
        return replace(state, phase=PollPhase.FAILED, error="Job was accepted without a job id")
    return state


def on_poll_result(state: PollerState, response: JobStatus) -> PollerState:
    """Next state after one status poll. Terminal states are returned unchanged."""
    if state.is_terminal:
        return state
    polled = replace(state, poll_count=state.poll_count + 1)
    return _apply_status(polled, response, phase=PollPhase.POLLING)


def on_deadline(state: PollerState, timeout: Optional[float] = None) -> PollerState:
    """State once the polling deadline has passed."""
    if state.is_terminal:
        return state
    limit = f" after {timeout:.0f}s" if timeout is not None else ""
    return replace(state, phase=PollPhase.TIMED_OUT, error=f"Job timed out{limit}")


class JobClient(Protocol):
    """Submit-and-poll interface to a job backend."""

    async def submit(self, payload: dict[str, Any]) -> JobStatus: ...

    async def get_status(self, job_id: str) -> JobStatus: ...


class JobPoller:
    """Drive a JobClient until the job completes, fails or times out.

    Args:
        client: Job backend
        interval: Seconds between polls (defaults to JOB_POLL_INTERVAL)
        timeout: Absolute deadline in seconds from submission (defaults to JOB_TIMEOUT)
        clock: Monotonic time source
        sleep: Async sleep function
        on_update: Optional callback receiving every new state
    """

    def __init__(
        self,
        client: JobClient,
        *,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        on_update: Optional[Callable[[PollerState], None]] = None,
    ):
        settings = get_settings()
        self.client = client
        self.interval = interval if interval is not None else settings.JOB_POLL_INTERVAL
        self.timeout = timeout if timeout is not None else settings.JOB_TIMEOUT
        self._clock = clock
        self._sleep = sleep
        self._on_update = on_update

    def _emit(self, state: PollerState) -> PollerState:
        if self._on_update is not None:
            self._on_update(state)
        return state

    async def _poll_once(self, state: PollerState) -> PollerState:
        try:
            response = await self.client.get_status(state.job_id)
        except JobNotFoundError as e:
            return on_poll_result(
                state, JobStatus(job_id=state.job_id, status="failed", error=str(e))
            )
        except APIError as e:
            # Status endpoint hiccup: count the poll, keep waiting for the deadline
            _get_logger().warning(
                "Job status poll failed",
                extra={"extra_fields": {"job_id": state.job_id, "status_code": e.status_code}},
            )
            return replace(state, phase=PollPhase.POLLING, poll_count=state.poll_count + 1)
        return on_poll_result(state, response)

    async def run(self, payload: dict[str, Any]) -> PollerState:
        """Submit a job and poll it to a terminal state.

        Raises:
            APIError: If the submit call itself fails
        """
        deadline = self._clock() + self.timeout
        state = self._emit(on_submitted(await self.client.submit(payload)))

        _get_logger().info(
            "Job submitted",
            extra={"extra_fields": {"job_id": state.job_id, "phase": state.phase.value}},
        )

        while not state.is_terminal:
            remaining = deadline - self._clock()
            if remaining <= 0:
                state = self._emit(on_deadline(state, self.timeout))
                break

            await self._sleep(min(self.interval, remaining))

            if self._clock() >= deadline:
                state = self._emit(on_deadline(state, self.timeout))
                break

            state = self._emit(await self._poll_once(state))

        _get_logger().info(
            "Job finished",
            extra={
                "extra_fields": {
                    "job_id": state.job_id,
                    "phase": state.phase.value,
                    "poll_count": state.poll_count,
                }
            },
        )
        return state

    async def wait_for_result(self, payload: dict[str, Any]) -> Any:
        """Run the job and return its result.

        Raises:
            JobFailedError: If the job failed
            JobTimeoutError: If the deadline passed first
        """
        state = await self.run(payload)
        if state.phase is PollPhase.COMPLETED:
            return state.result
        if state.phase is PollPhase.TIMED_OUT:
            raise JobTimeoutError(state.error or "Job timed out", job_id=state.job_id)
        raise JobFailedError(state.error or "Job failed", job_id=state.job_id)
