"""
Unit Tests: ApprovalWorkflow

Lifecycle invariants:
- Request ids are unique
- Submission suspends until the matching decision arrives
- Decisions leave the pending index and are recorded once
- The log replays pending and decided requests after restart
- Timeouts and cancellation unblock waiters
"""

import asyncio
import json

import pytest

from intentgate.hitl.approval_log import InMemoryApprovalLog, JsonlApprovalLog
from intentgate.hitl.approval_workflow import ApprovalWorkflow
from intentgate.hitl.base import ApprovalDecision, ApprovalLogEntry, utcnow
from intentgate.hitl.errors import ApprovalTimeoutError, DuplicateDecisionError


@pytest.fixture
def workflow():
    """Fresh workflow over an in-memory log."""
    return ApprovalWorkflow(store=InMemoryApprovalLog())


def _request(intent_id="INT-001", turn_id=None):
    return ApprovalWorkflow.create_request(
        "Refactor auth module",
        "--- a/src/auth/module.ts\n+++ b/src/auth/module.ts\n",
        ["src/auth/module.ts"],
        intent_id=intent_id,
        turn_id=turn_id,
    )


async def _submit_and_wait_until_pending(workflow, request, **kwargs):
    task = asyncio.create_task(workflow.submit_for_approval(request, **kwargs))
    await asyncio.sleep(0)
    return task


class TestCreateRequest:
    """Tests for request construction."""

    def test_request_has_required_fields(self):
        request = ApprovalWorkflow.create_request(
            "Refactor auth module",
            "diff content here",
            ["src/auth/module.ts"],
            "INT-001",
            "turn-123",
        )

        assert request.request_id.startswith("approval-")
        assert request.timestamp is not None
        assert request.change_summary == "Refactor auth module"
        assert request.diff == "diff content here"
        assert request.files_affected == ("src/auth/module.ts",)
        assert request.intent_id == "INT-001"
        assert request.turn_id == "turn-123"

    def test_request_ids_are_unique_under_rapid_creation(self):
        ids = {ApprovalWorkflow.create_request("c", "d", []).request_id for _ in range(500)}
        assert len(ids) == 500

    def test_create_does_not_touch_storage(self, workflow):
        request = _request()

        assert workflow.get_pending_request(request.request_id) is None
        assert workflow.get_all_log_entries() == []

    def test_request_is_immutable(self):
        request = _request()
        with pytest.raises(AttributeError):
            request.change_summary = "tampered"


class TestSubmitAndDecide:
    """Tests for suspension and resumption."""

    @pytest.mark.asyncio
    async def test_submit_registers_pending_and_logs_request(self, workflow):
        request = _request()
        task = await _submit_and_wait_until_pending(workflow, request)

        assert workflow.get_pending_request(request.request_id) == request
        entries = workflow.get_all_log_entries()
        assert len(entries) == 1
        assert not entries[0].is_decision

        workflow.record_decision(request.request_id, True, "alice")
        await task

    @pytest.mark.asyncio
    async def test_decision_resumes_submitter(self, workflow):
        request = _request()
        task = await _submit_and_wait_until_pending(workflow, request)

        assert not task.done()
        workflow.record_decision(request.request_id, True, "alice", notes="LGTM")
        decision = await task

        assert decision.approved is True
        assert decision.approver == "alice"
        assert decision.approver_notes == "LGTM"

    @pytest.mark.asyncio
    async def test_approved_request_leaves_pending_index(self, workflow):
        request = _request()
        task = await _submit_and_wait_until_pending(workflow, request)

        workflow.record_decision(request.request_id, True, "alice")
        await task

        assert workflow.is_approved(request.request_id)
        assert workflow.get_pending_request(request.request_id) is None

    @pytest.mark.asyncio
    async def test_rejected_decision_is_retrievable(self, workflow):
        request = _request()
        task = await _submit_and_wait_until_pending(workflow, request)

        workflow.record_decision(request.request_id, False, "bob")
        decision = await task

        assert decision.approved is False
        assert not workflow.is_approved(request.request_id)
        assert workflow.get_decision(request.request_id).approver == "bob"

    @pytest.mark.asyncio
    async def test_concurrent_requests_resolve_independently(self, workflow):
        first, second = _request(), _request()
        task1 = await _submit_and_wait_until_pending(workflow, first)
        task2 = await _submit_and_wait_until_pending(workflow, second)

        workflow.record_decision(second.request_id, False, "bob")
        assert (await task2).approved is False
        await asyncio.sleep(0)

        assert not task1.done()
        assert workflow.get_pending_request(first.request_id) is not None

        workflow.record_decision(first.request_id, True, "alice")
        assert (await task1).approved is True

    @pytest.mark.asyncio
    async def test_submit_after_decision_returns_immediately(self, workflow):
        request = _request()
        workflow.record_decision(request.request_id, True, "alice")

        decision = await workflow.submit_for_approval(request, timeout=0.01)

        assert decision.approved
        assert workflow.get_pending_request(request.request_id) is None

    @pytest.mark.asyncio
    async def test_timeout_raises_and_keeps_request_pending(self, workflow):
        request = _request()

        with pytest.raises(ApprovalTimeoutError) as exc_info:
            await workflow.submit_for_approval(request, timeout=0.01)

        assert exc_info.value.request_id == request.request_id
        assert workflow.get_pending_request(request.request_id) is not None

        workflow.record_decision(request.request_id, True, "alice")
        assert workflow.is_approved(request.request_id)

    @pytest.mark.asyncio
    async def test_default_timeout_applies(self):
        workflow = ApprovalWorkflow(store=InMemoryApprovalLog(), default_timeout=0.01)

        with pytest.raises(ApprovalTimeoutError):
            await workflow.submit_for_approval(_request())

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, workflow):
        request = _request()
        task = await _submit_and_wait_until_pending(workflow, request)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # A later decision is still recorded
        workflow.record_decision(request.request_id, False, "bob")
        assert workflow.get_decision(request.request_id) is not None


class TestRecordDecision:
    """Tests for decision recording."""

    def test_decision_for_unknown_request_is_logged(self, workflow):
        decision = workflow.record_decision("approval-remote-1", True, "carol", requires_override=True)

        assert decision.request_id == "approval-remote-1"
        assert workflow.is_approved("approval-remote-1")
        assert workflow.requires_override("approval-remote-1")

        entries = workflow.get_all_log_entries()
        assert len(entries) == 1
        assert entries[0].request is None
        assert entries[0].to_dict()["request_id"] == "approval-remote-1"
        assert entries[0].to_dict()["decision"]["approver"] == "carol"

    def test_second_decision_is_refused(self, workflow):
        workflow.record_decision("approval-x", True, "alice")

        with pytest.raises(DuplicateDecisionError):
            workflow.record_decision("approval-x", False, "bob")

        assert workflow.is_approved("approval-x")
        assert len(workflow.get_all_log_entries()) == 1

    def test_unknown_request_is_not_approved(self, workflow):
        assert not workflow.is_approved("approval-missing")
        assert not workflow.requires_override("approval-missing")
        assert workflow.get_decision("approval-missing") is None

    @pytest.mark.asyncio
    async def test_pending_request_is_not_approved(self, workflow):
        request = _request()
        task = await _submit_and_wait_until_pending(workflow, request)

        assert not workflow.is_approved(request.request_id)

        workflow.record_decision(request.request_id, True, "alice")
        await task

    def test_override_defaults_to_false(self, workflow):
        workflow.record_decision("approval-y", True, "alice")
        assert not workflow.requires_override("approval-y")


class TestQueries:
    """Tests for log queries by intent and turn."""

    @pytest.mark.asyncio
    async def test_decisions_by_intent_and_turn(self, workflow):
        a = _request(intent_id="INT-001", turn_id="turn-1")
        b = _request(intent_id="INT-002", turn_id="turn-2")
        task_a = await _submit_and_wait_until_pending(workflow, a)
        task_b = await _submit_and_wait_until_pending(workflow, b)

        workflow.record_decision(a.request_id, True, "alice", requires_override=True)
        workflow.record_decision(b.request_id, False, "bob")
        await asyncio.gather(task_a, task_b)

        by_intent = workflow.get_decisions_by_intent("INT-001")
        assert [e.request_id for e in by_intent] == [a.request_id]
        assert by_intent[0].decision.requires_override is True

        by_turn = workflow.get_decisions_by_turn("turn-2")
        assert [e.request_id for e in by_turn] == [b.request_id]

        # Request entries are excluded from decision queries but kept in the log
        assert len(workflow.get_log_entries_by_intent("INT-001")) == 2
        assert len(workflow.get_all_log_entries()) == 4

    @pytest.mark.asyncio
    async def test_all_pending_requests(self, workflow):
        a, b = _request(), _request()
        task_a = await _submit_and_wait_until_pending(workflow, a)
        task_b = await _submit_and_wait_until_pending(workflow, b)

        pending_ids = {r.request_id for r in workflow.get_all_pending_requests()}
        assert pending_ids == {a.request_id, b.request_id}

        workflow.record_decision(a.request_id, True, "alice")
        workflow.record_decision(b.request_id, True, "alice")
        await asyncio.gather(task_a, task_b)
        assert workflow.get_all_pending_requests() == []


class TestDurableLog:
    """Tests for replay and the JSON-lines format."""

    @pytest.mark.asyncio
    async def test_pending_request_survives_restart(self, tmp_path):
        path = tmp_path / "approval_log.jsonl"
        first = ApprovalWorkflow(store=JsonlApprovalLog(path))
        request = _request()

        with pytest.raises(ApprovalTimeoutError):
            await first.submit_for_approval(request, timeout=0.01)

        second = ApprovalWorkflow(store=JsonlApprovalLog(path))
        assert second.get_pending_request(request.request_id) == request

        second.record_decision(request.request_id, True, "alice")

        third = ApprovalWorkflow(store=JsonlApprovalLog(path))
        assert third.get_pending_request(request.request_id) is None
        assert third.is_approved(request.request_id)

    def test_log_lines_follow_record_format(self, tmp_path):
        path = tmp_path / "approval_log.jsonl"
        workflow = ApprovalWorkflow(store=JsonlApprovalLog(path))
        workflow.record_decision("approval-1", True, "alice", notes="ok", requires_override=True)

        record = json.loads(path.read_text().splitlines()[0])
        assert record["request_id"] == "approval-1"
        assert set(record["decision"]) == {
            "request_id", "timestamp", "approved", "approver", "approver_notes", "requires_override",
        }
        assert "logged_at" in record

    def test_clear_all_resets_everything(self, tmp_path):
        path = tmp_path / "approval_log.jsonl"
        workflow = ApprovalWorkflow(store=JsonlApprovalLog(path))
        workflow.record_decision("approval-1", True, "alice")

        workflow.clear_all()

        assert not path.exists()
        assert workflow.get_decision("approval-1") is None
        assert workflow.get_all_log_entries() == []

    def test_non_object_lines_are_skipped_on_replay(self, tmp_path, caplog):
        path = tmp_path / "approval_log.jsonl"
        JsonlApprovalLog(path).append(
            ApprovalLogEntry(
                request_id="a-1",
                decision=ApprovalDecision(
                    request_id="a-1", timestamp=utcnow(), approved=True, approver="alice"
                ),
            )
        )
        valid = path.read_text(encoding="utf-8")
        path.write_text('"garbage"\n[]\n{not json\n' + valid, encoding="utf-8")

        workflow = ApprovalWorkflow(store=JsonlApprovalLog(path))

        assert workflow.is_approved("a-1")
        assert len(workflow.get_all_log_entries()) == 1
        skipped = [r for r in caplog.records if "Skipping malformed" in r.message]
        assert len(skipped) == 3

    def test_unwritable_log_degrades_to_warning(self, tmp_path, caplog):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        workflow = ApprovalWorkflow(store=JsonlApprovalLog(blocker / "approval_log.jsonl"))

        decision = workflow.record_decision("approval-1", True, "alice")

        assert decision.approved
        assert workflow.is_approved("approval-1")
        assert any("Failed to persist" in r.message for r in caplog.records)
