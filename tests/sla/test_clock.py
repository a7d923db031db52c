from datetime import timedelta

import pytest
from pydantic import ValidationError

from helpdesk.sla.domain import DEFAULT_POLICY_MATRIX, DeadlineStatus, SLAClock, SLAConfig, SLATracking

from tests.fakes import T0, make_policy, make_snapshot


def minutes(n):
    return T0 + timedelta(minutes=n)


def make_tracking(**overrides):
    values = dict(
        ticket_id=1,
        ticket_created_at=T0,
        first_response_due_at=minutes(60),
        resolution_due_at=minutes(100),
        policy_id=1,
        department_id=3,
        priority="HIGH",
    )
    values.update(overrides)
    return SLATracking(**values)


class TestArithmetic:

    def test_due_at(self):
        assert SLAClock.compute_due_at(T0, 240) == minutes(240)

    def test_warning_at_eighty_percent(self):
        assert SLAClock.warning_at(T0, minutes(100), 80) == minutes(80)

    def test_warning_at_zero_percent_is_creation(self):
        assert SLAClock.warning_at(T0, minutes(100), 0) == T0

    def test_warning_at_hundred_percent_is_due(self):
        assert SLAClock.warning_at(T0, minutes(100), 100) == minutes(100)


class TestDeadlineState:

    @pytest.mark.parametrize("at,state", [
        (79, "PENDING"),
        (80, "AT_RISK"),
        (99, "AT_RISK"),
        (100, "BREACHED"),
    ])
    def test_resolution_progression(self, at, state):
        tracking = make_tracking()
        assert SLAClock.deadline_state(tracking, "resolution", make_snapshot(), minutes(at), 80) == state

    def test_milestone_before_due_is_satisfied(self):
        snapshot = make_snapshot(first_response_at=minutes(30))
        assert SLAClock.deadline_state(make_tracking(), "first_response", snapshot, minutes(200), 80) == "SATISFIED"

    def test_milestone_after_due_is_breached(self):
        snapshot = make_snapshot(first_response_at=minutes(61))
        assert SLAClock.deadline_state(make_tracking(), "first_response", snapshot, minutes(200), 80) == "BREACHED"

    def test_closed_status_satisfies_resolution(self):
        snapshot = make_snapshot(status="CLOSED")
        assert SLAClock.deadline_state(make_tracking(), "resolution", snapshot, minutes(90), 80) == "SATISFIED"

    def test_breach_marker_wins_without_snapshot(self):
        tracking = make_tracking(resolution_breached_at=minutes(100))
        assert SLAClock.deadline_state(tracking, "resolution", None, minutes(50), 80) == "BREACHED"

    def test_derive_reports_remaining_time(self):
        status = DeadlineStatus.derive(make_tracking(), "first_response", make_snapshot(), minutes(45), 80)
        assert status.remaining_seconds == 15 * 60
        assert status.state == "PENDING"


class TestPendingTransitions:

    def test_nothing_before_threshold(self):
        assert SLAClock.pending_transitions(make_tracking(), "resolution", make_snapshot(), minutes(70), 80) == []

    def test_warning_then_breach_in_one_call(self):
        transitions = SLAClock.pending_transitions(make_tracking(), "resolution", make_snapshot(), minutes(120), 80)
        assert transitions == ["AT_RISK", "BREACHED"]

    def test_warning_not_repeated(self):
        tracking = make_tracking(resolution_warning_sent_at=minutes(81))
        assert SLAClock.pending_transitions(tracking, "resolution", make_snapshot(), minutes(90), 80) == []

    def test_warning_suppressed_after_breach(self):
        tracking = make_tracking(resolution_breached_at=minutes(100))
        assert SLAClock.pending_transitions(tracking, "resolution", make_snapshot(), minutes(120), 80) == []

    def test_reached_milestone_stops_transitions(self):
        snapshot = make_snapshot(first_response_at=minutes(10))
        assert SLAClock.pending_transitions(make_tracking(), "first_response", snapshot, minutes(90), 80) == []


class TestTrackingEntity:

    def test_markers_are_set_once(self):
        tracking = make_tracking()
        assert tracking.mark_breached("resolution", minutes(100))
        assert not tracking.mark_breached("resolution", minutes(200))
        assert tracking.resolution_breached_at == minutes(100)

    def test_recompute_freezes_marked_deadlines(self):
        tracking = make_tracking(first_response_warning_sent_at=minutes(50))

        changed = tracking.recompute(make_policy(7, priority="URGENT", first_response=30, resolution=50))

        assert changed == ["resolution"]
        assert tracking.first_response_due_at == minutes(60)
        assert tracking.resolution_due_at == minutes(50)
        assert (tracking.policy_id, tracking.priority) == (7, "URGENT")

    def test_needs_recompute(self):
        tracking = make_tracking()
        assert not tracking.needs_recompute(3, "HIGH")
        assert tracking.needs_recompute(4, "HIGH")
        assert tracking.needs_recompute(3, "LOW")

    def test_unknown_deadline_type(self):
        with pytest.raises(ValueError):
            make_tracking().due_at("escalation")


class TestSLAConfig:

    def test_fills_missing_entries_from_matrix(self):
        config = SLAConfig(default_policies={"URGENT": {"first_response": 15}})
        assert config.policy_minutes("URGENT") == {"first_response": 15, "resolution": 240}
        assert config.policy_minutes("LOW") == DEFAULT_POLICY_MATRIX["LOW"]

    def test_rejects_unknown_priority(self):
        with pytest.raises(ValidationError):
            SLAConfig(default_policies={"CRITICAL": {"first_response": 5}})

    def test_rejects_out_of_range_percent(self):
        with pytest.raises(ValidationError):
            SLAConfig(warning_percent=120)
