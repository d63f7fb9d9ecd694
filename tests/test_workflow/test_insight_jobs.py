"""Tests for the in-process insight job queue."""

import asyncio
import json
from unittest.mock import patch

import pytest

from kb_studio.workflow.error_handling import JobNotFoundError
from kb_studio.workflow.insight_jobs import KEEP_COMPLETED, KEEP_FAILED, LocalInsightQueue
from kb_studio.workflow.job_poller import JobPoller, PollPhase


class SteppingClock:
    """Advances by a fixed step on every read."""

    def __init__(self, step: float = 0.5):
        self.now = 0.0
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


async def echo_worker(client_data, on_progress):
    on_progress(50)
    return {"company": client_data.get("companyName")}


async def failing_worker(client_data, on_progress):
    raise RuntimeError("LLM unavailable")


class TestLocalInsightQueue:
    """Test job lifecycle, retention and metrics."""

    @pytest.mark.asyncio
    async def test_submit_returns_queued_status(self):
        queue = LocalInsightQueue(echo_worker)

        status = await queue.submit({"contactId": "c1", "clientData": {"companyName": "Acme"}})
        await queue.drain()

        assert status.status == "queued"
        assert status.job_id

    @pytest.mark.asyncio
    async def test_completed_job(self):
        queue = LocalInsightQueue(echo_worker)

        submitted = await queue.submit({"contactId": "c1", "clientData": {"companyName": "Acme"}})
        await queue.drain()
        status = await queue.get_status(submitted.job_id)

        assert status.status == "completed"
        assert status.progress == 100
        assert status.result == {"company": "Acme"}

    @pytest.mark.asyncio
    async def test_bare_client_data_payload(self):
        queue = LocalInsightQueue(echo_worker)

        submitted = await queue.submit({"companyName": "Bare Co"})
        await queue.drain()

        assert (await queue.get_status(submitted.job_id)).result == {"company": "Bare Co"}

    @pytest.mark.asyncio
    async def test_progress_visible_while_running(self):
        release = asyncio.Event()

        async def slow_worker(client_data, on_progress):
            on_progress(40)
            await release.wait()
            return "done"

        queue = LocalInsightQueue(slow_worker)
        submitted = await queue.submit({})
        await asyncio.sleep(0)

        running = await queue.get_status(submitted.job_id)
        release.set()
        await queue.drain()

        assert running.status == "processing"
        assert running.progress == 40
        assert (await queue.get_status(submitted.job_id)).status == "completed"

    @pytest.mark.asyncio
    async def test_failed_job(self, caplog):
        queue = LocalInsightQueue(failing_worker)

        submitted = await queue.submit({})
        await queue.drain()
        status = await queue.get_status(submitted.job_id)

        assert status.status == "failed"
        assert status.error == "LLM unavailable"
        assert "Insight job failed" in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_job(self):
        with pytest.raises(JobNotFoundError) as exc_info:
            await LocalInsightQueue(echo_worker).get_status("missing")

        assert exc_info.value.job_id == "missing"

    @pytest.mark.asyncio
    async def test_completed_retention(self):
        queue = LocalInsightQueue(echo_worker)

        job_ids = [(await queue.submit({})).job_id for _ in range(KEEP_COMPLETED + 2)]
        await queue.drain()

        missing = 0
        for job_id in job_ids:
            try:
                await queue.get_status(job_id)
            except JobNotFoundError:
                missing += 1
        assert missing == 2

    @pytest.mark.asyncio
    async def test_failed_retention(self):
        queue = LocalInsightQueue(failing_worker)

        job_ids = [(await queue.submit({})).job_id for _ in range(KEEP_FAILED + 1)]
        await queue.drain()

        with pytest.raises(JobNotFoundError):
            await queue.get_status(job_ids[0])
        assert (await queue.get_status(job_ids[-1])).status == "failed"

    @pytest.mark.asyncio
    async def test_metrics(self):
        queue = LocalInsightQueue(echo_worker, clock=SteppingClock(0.5))
        for _ in range(3):
            await queue.submit({})
        await queue.drain()

        failing = LocalInsightQueue(failing_worker)
        await failing.submit({})
        await failing.drain()

        metrics = queue.get_metrics()
        assert metrics["jobs_processed"] == 3
        assert metrics["jobs_failed"] == 0
        assert metrics["average_processing_time"] == pytest.approx(500.0)
        assert metrics["last_processed_at"] is not None
        assert failing.get_metrics()["jobs_failed"] == 1

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        active = 0
        peak = 0

        async def tracking_worker(client_data, on_progress):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1

        queue = LocalInsightQueue(tracking_worker, max_concurrency=2)
        for _ in range(5):
            await queue.submit({})
        await queue.drain()

        assert peak == 2


class TestPollingLocalQueue:
    """Test the poller driving the local queue end to end."""

    @pytest.mark.asyncio
    async def test_poller_collects_insights(self):
        async def fake_generate(prompt, **kwargs):
            if "pain points" in prompt:
                return json.dumps(["Slow month-end close", "Manual payroll"])
            if "service gaps" in prompt:
                return json.dumps([{"type": "upsell", "title": "Payroll services"}])
            return json.dumps({"riskScore": 35})

        queue = LocalInsightQueue()
        poller = JobPoller(queue, interval=0.01, timeout=5)

        with patch("kb_studio.agents.client_insights.generate_text", side_effect=fake_generate):
            result = await poller.wait_for_result(
                {"contactId": "c1", "clientData": {"companyName": "Acme Dental"}}
            )

        assert result["riskScore"] == 35
        assert result["painPoints"] == ["Slow month-end close", "Manual payroll"]
        assert result["upsellOpportunities"] == ["Payroll services - Pricing TBD"]

    @pytest.mark.asyncio
    async def test_poller_reports_failure(self):
        poller = JobPoller(LocalInsightQueue(failing_worker), interval=0.01, timeout=5)

        state = await poller.run({})

        assert state.phase is PollPhase.FAILED
        assert state.error == "LLM unavailable"
