"""Tests for pipeline state helpers."""

import pytest

from kb_studio.agents.models import GenerationRequest
from kb_studio.workflow.graph_state import (
    VALID_STEPS,
    create_initial_state,
    request_from_state,
    validate_pipeline_step,
    validate_required_fields,
)


@pytest.fixture
def request_data() -> GenerationRequest:
    return GenerationRequest(template_id="sop", title="Month-End Close", include_compliance=True)


class TestCreateInitialState:
    """Tests for create_initial_state."""

    def test_initial_fields(self, request_data):
        state = create_initial_state("  wf-1  ", request_data)

        assert state["workflow_id"] == "wf-1"
        assert state["current_step"] == "outline"
        assert state["errors"] == []
        assert state["request"]["templateId"] == "sop"
        assert state["request"]["includeCompliance"] is True

    @pytest.mark.parametrize("workflow_id", ["", "   "])
    def test_empty_workflow_id_rejected(self, request_data, workflow_id):
        with pytest.raises(ValueError, match="workflow_id cannot be empty"):
            create_initial_state(workflow_id, request_data)

    def test_initial_state_is_valid(self, request_data):
        valid, missing = validate_required_fields(create_initial_state("wf-1", request_data))

        assert valid is True
        assert missing == []


class TestValidation:
    def test_missing_fields_reported(self):
        valid, missing = validate_required_fields({"workflow_id": "wf-1"})

        assert valid is False
        assert missing == ["request", "current_step", "errors"]

    @pytest.mark.parametrize("step", sorted(VALID_STEPS))
    def test_known_steps(self, step):
        assert validate_pipeline_step(step) is True

    def test_unknown_step(self):
        assert validate_pipeline_step("publish") is False


class TestRequestFromState:
    def test_round_trip(self, request_data):
        state = create_initial_state("wf-1", request_data)

        assert request_from_state(state) == request_data

    def test_missing_request(self):
        with pytest.raises(ValueError, match="request is required"):
            request_from_state({"workflow_id": "wf-1"})

    def test_invalid_request(self):
        with pytest.raises(ValueError):
            request_from_state({"request": {"title": "No template"}})
