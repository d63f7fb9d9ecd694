"""In-process insight job queue.

``LocalInsightQueue`` implements the ``JobClient`` protocol on top of
asyncio tasks, so the job poller can run against it without a portal
backend. Jobs run the client-insights agent with bounded concurrency,
report progress while they run, and feed queue metrics.

Finished jobs are retained for status lookups: the last 10 completed and
the last 25 failed.
"""

import asyncio
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from kb_studio.agents.client_insights import generate_client_insights
from kb_studio.utils.logging_config import get_logger
from kb_studio.workflow.error_handling import JobNotFoundError
from kb_studio.workflow.job_poller import JobStatus

KEEP_COMPLETED = 10
KEEP_FAILED = 25

InsightWorker = Callable[[dict[str, Any], Callable[[int], None]], Awaitable[Any]]


def _get_logger():
    """Get logger instance lazily to avoid import-time config loading."""
    return get_logger(__name__)


@dataclass
class QueueMetrics:
    """Running counters for processed jobs.

    Attributes:
        jobs_processed: Successfully completed jobs
        jobs_failed: Failed jobs
        average_processing_time: Mean duration of successful jobs in ms
        last_processed_at: When the last job finished (either outcome)
    """

    jobs_processed: int = 0
    jobs_failed: int = 0
    average_processing_time: float = 0.0
    last_processed_at: Optional[datetime] = None

    def record(self, processing_ms: float, *, failed: bool = False) -> None:
        if failed:
            self.jobs_failed += 1
        else:
            self.jobs_processed += 1
            self.average_processing_time += (
                processing_ms - self.average_processing_time
            ) / self.jobs_processed
        self.last_processed_at = datetime.now(timezone.utc)


@dataclass
class _LocalJob:
    job_id: str
    status: str = "queued"
    progress: int = 0
    result: Any = None
    error: Optional[str] = None
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def to_status(self) -> JobStatus:
        return JobStatus(
            job_id=self.job_id,
            status=self.status,
            progress=self.progress,
            result=self.result,
            error=self.error,
        )


def _result_payload(result: Any) -> Any:
    to_dict = getattr(result, "to_dict", None)
    return to_dict() if callable(to_dict) else result


class LocalInsightQueue:
    """Asyncio-backed job queue for client insights.

    Args:
        worker: Coroutine function ``(client_data, on_progress) -> result``
        max_concurrency: Jobs processed at the same time
        clock: Monotonic time source for processing-time metrics
    """

    def __init__(
        self,
        worker: InsightWorker = generate_client_insights,
        *,
        max_concurrency: int = 2,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._worker = worker
        self._semaphore = asyncio.Semaphore(max_concurrency)
        self._clock = clock
        self._jobs: dict[str, _LocalJob] = {}
        self._completed: deque[str] = deque()
        self._failed: deque[str] = deque()
        self.metrics = QueueMetrics()

    async def submit(self, payload: dict[str, Any]) -> JobStatus:
        """Queue an insight job.

        Args:
            payload: ``{"contactId": ..., "clientData": {...}}``; a bare
                client-data dict is also accepted
        """
        job = _LocalJob(job_id=uuid4().hex)
        self._jobs[job.job_id] = job
        client_data = payload.get("clientData", payload)
        job.task = asyncio.create_task(self._process(job, client_data))

        _get_logger().info(
            "Insight job queued",
            extra={"extra_fields": {"job_id": job.job_id, "contact_id": payload.get("contactId")}},
        )
        return job.to_status()

    async def get_status(self, job_id: str) -> JobStatus:
        """Current status of a job.

        Raises:
            JobNotFoundError: If the id is unknown or already pruned
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job '{job_id}' not found", job_id=job_id)
        return job.to_status()

    def get_metrics(self) -> dict[str, Any]:
        """Copy of the queue metrics."""
        return asdict(self.metrics)

    async def drain(self) -> None:
        """Wait for every running job to finish."""
        tasks = [job.task for job in self._jobs.values() if job.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _set_progress(self, job: _LocalJob, progress: int) -> None:
        job.progress = max(job.progress, min(100, int(progress)))

    def _retain(self, job: _LocalJob) -> None:
        finished, limit = (
            (self._completed, KEEP_COMPLETED)
            if job.status == "completed"
            else (self._failed, KEEP_FAILED)
        )
        finished.append(job.job_id)
        while len(finished) > limit:
            self._jobs.pop(finished.popleft(), None)

    async def _process(self, job: _LocalJob, client_data: dict[str, Any]) -> None:
        async with self._semaphore:
            job.status = "processing"
            started = self._clock()
            try:
                result = await self._worker(
                    client_data, lambda progress: self._set_progress(job, progress)
                )
            except Exception as e:  # pylint: disable=broad-except
                elapsed_ms = (self._clock() - started) * 1000
                job.status = "failed"
                job.error = str(e) or type(e).__name__
                self.metrics.record(elapsed_ms, failed=True)
                _get_logger().error(
                    "Insight job failed",
                    extra={"extra_fields": {"job_id": job.job_id, "error_type": type(e).__name__}},
                )
            else:
                elapsed_ms = (self._clock() - started) * 1000
                job.result = _result_payload(result)
                job.progress = 100
                job.status = "completed"
                self.metrics.record(elapsed_ms)
                _get_logger().info(
                    "Insight job completed",
                    extra={
                        "extra_fields": {"job_id": job.job_id, "duration_ms": round(elapsed_ms)}
                    },
                )
            self._retain(job)
