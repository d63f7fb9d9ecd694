"""Error types and error-context tracking for the generation workflow.

Failure classes and how they surface:

- Generation failure (LLM call failed or returned nothing): ``GenerationError``,
  propagated to the caller; no session state is committed.
- Parse failure of advisory output (analysis, metadata): never raised; the
  agents return their static fallback values.
- Per-audience adaptation failure: recorded as ``FallbackUsed`` in the
  version batch, logged, not raised.
- Job failure or timeout: ``JobFailedError`` / ``JobTimeoutError``.
- Session store write failure: ``SessionStoreError``.
"""

import logging
import time
from typing import Any, Optional, Type

logger = logging.getLogger(__name__)


class WorkflowError(Exception):
    """Root of every error this package raises on purpose.

    Carries the generation session id (prefixed to the message) and any
    keyword context given by the raiser.
    """

    def __init__(self, message: str, session_id: Optional[str] = None, **context):
        super().__init__(message)
        self.session_id = session_id
        self.context = context
        self.timestamp = time.time()

    def __str__(self):
        # KeyError subclasses would otherwise repr-quote the message
        base = Exception.__str__(self)
        if self.session_id:
            return f"[{self.session_id}] {base}"
        return base


class TemplateNotFoundError(WorkflowError, KeyError):
    """Unknown template id. Generation stays disabled until a valid one is chosen."""

    def __init__(self, template_id: str, **context):
        super().__init__(f"Template '{template_id}' not found", **context)
        self.template_id = template_id


class GenerationError(WorkflowError):
    """A stage (outline, draft, polish, versions) could not produce content.

    The message is meant for display next to a retry action.
    """

    def __init__(self, message: str, stage: str, session_id: Optional[str] = None, **context):
        super().__init__(message, session_id, **context)
        self.stage = stage


class StageNotReadyError(WorkflowError):
    """A stage was requested before the content it depends on exists."""

    def __init__(self, stage: str, missing: str, session_id: Optional[str] = None):
        super().__init__(
            f"Cannot enter '{stage}' stage: {missing} content is missing",
            session_id,
            missing=missing,
        )
        self.stage = stage
        self.missing = missing


class APIError(WorkflowError):
    """A portal backend call failed; ``status_code`` is set for HTTP errors."""

    def __init__(
        self,
        message: str,
        api_name: str,
        status_code: Optional[int] = None,
        session_id: Optional[str] = None,
        **context,
    ):
        super().__init__(message, session_id, **context)
        self.api_name = api_name
        self.status_code = status_code


class JobError(WorkflowError):
    """Base class for terminal async job outcomes other than success."""

    def __init__(self, message: str, job_id: Optional[str] = None, **context):
        super().__init__(message, **context)
        self.job_id = job_id


class JobFailedError(JobError):
    """The job reached the ``failed`` state."""


class JobTimeoutError(JobError):
    """The job did not reach a terminal state before the polling deadline."""


class JobNotFoundError(JobError):
    """Status was requested for an unknown job id."""


class SessionStoreError(WorkflowError):
    """Persisting a session snapshot failed."""


class ErrorContext:
    """Time an operation and log it, with collected details if it raises.

    Exceptions always propagate.

    Usage:
        with ErrorContext("outline", session_id="s-123") as ctx:
            ctx.add_info("template", "faq")
            ...
    """

    def __init__(self, operation: str, session_id: Optional[str] = None):
        self.operation = operation
        self.session_id = session_id
        self.info: dict[str, Any] = {}
        self.duration: float = 0.0
        self._started: Optional[float] = None

    def __enter__(self) -> "ErrorContext":
        self._started = time.perf_counter()
        logger.debug(f"Starting operation: {self.operation}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if self._started is not None:
            self.duration = time.perf_counter() - self._started

        if exc_val is not None:
            logger.error(
                f"Operation '{self.operation}' failed after {self.duration:.2f}s: {exc_val}",
                extra={"extra_fields": {"session_id": self.session_id, **self.info}},
            )
        else:
            logger.debug(f"Operation '{self.operation}' finished in {self.duration:.2f}s")
        return False

    def add_info(self, key: str, value: Any) -> None:
        """Attach a detail to the failure log record."""
        self.info[key] = value


def validate_state_field(
    state: dict, field: str, expected_type: Type, session_id: Optional[str] = None
) -> None:
    """Require ``state[field]`` to be present, non-None and of expected_type.

    Raises:
        WorkflowError: Naming the missing or mistyped field
    """
    value = state.get(field)
    if value is None:
        raise WorkflowError(f"Required field '{field}' missing from state", session_id)
    if not isinstance(value, expected_type):
        raise WorkflowError(
            f"Field '{field}' is {type(value).__name__}, expected {expected_type.__name__}",
            session_id,
            field=field,
        )


__all__ = [
    "WorkflowError",
    "TemplateNotFoundError",
    "GenerationError",
    "StageNotReadyError",
    "APIError",
    "JobError",
    "JobFailedError",
    "JobTimeoutError",
    "JobNotFoundError",
    "SessionStoreError",
    "ErrorContext",
    "validate_state_field",
]
