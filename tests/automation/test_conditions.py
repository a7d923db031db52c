from datetime import timedelta

import pytest

from helpdesk.automation.domain import Condition, ConditionEvaluator, condition_problem

from tests.fakes import T0, make_snapshot


def matches(field, operator, value, **snapshot):
    return ConditionEvaluator.matches(Condition(field, operator, value), make_snapshot(**snapshot), T0)


class TestStringConditions:

    @pytest.mark.parametrize("operator,value,expected", [
        ("contains", "vpn", True),
        ("contains", "  VPN ", True),
        ("contains", "printer", False),
        ("starts_with", "cannot", True),
        ("ends_with", "VPN", True),
        ("equals", "Cannot connect to VPN", True),
        ("equals", "cannot connect to vpn", False),
        ("not_equals", "cannot connect to vpn", True),
    ])
    def test_subject(self, operator, value, expected):
        assert matches("subject", operator, value) is expected

    def test_values_are_trimmed(self):
        assert matches("priority", "equals", " HIGH ", priority="HIGH  ")

    def test_requester_email_domain(self):
        assert matches("requesterEmail", "ends_with", "@EXAMPLE.com")
        assert not matches("requesterEmail", "ends_with", "@acme.io")

    def test_numeric_operator_on_string_field_never_matches(self):
        assert not matches("subject", "greater_than", "a")


class TestNumericConditions:

    def test_department_equals(self):
        assert matches("departmentId", "equals", "3")
        assert not matches("departmentId", "equals", "4")

    def test_missing_department_is_only_not_equal(self):
        assert matches("departmentId", "not_equals", "3", department_id=None)
        assert not matches("departmentId", "equals", "3", department_id=None)
        assert not matches("departmentId", "greater_than", "0", department_id=None)

    def test_non_numeric_value_never_matches(self):
        assert not matches("departmentId", "equals", "sales")
        assert not matches("departmentId", "not_equals", "sales")

    def test_hours_since_update_counts_from_last_update(self):
        snapshot = make_snapshot(updated_at=T0 - timedelta(hours=50))
        assert ConditionEvaluator.matches(Condition("hoursSinceUpdate", "greater_than", "48"), snapshot, T0)
        assert not ConditionEvaluator.matches(Condition("hoursSinceUpdate", "less_than", "48"), snapshot, T0)

    def test_hours_since_update_falls_back_to_creation(self):
        snapshot = make_snapshot(created_at=T0 - timedelta(hours=2), updated_at=None)
        assert ConditionEvaluator.matches(Condition("hoursSinceUpdate", "greater_than", "1.5"), snapshot, T0)

    def test_string_operator_on_numeric_field_never_matches(self):
        assert not matches("departmentId", "contains", "3")


class TestConditionProblem:

    def test_valid(self):
        assert condition_problem(Condition("subject", "contains", "x")) is None
        assert condition_problem(Condition("hoursSinceUpdate", "greater_than", "24")) is None

    def test_unknown_field(self):
        assert "unknown field" in condition_problem(Condition("body", "contains", "x"))

    def test_bad_operator(self):
        assert "not supported" in condition_problem(Condition("status", "less_than", "x"))

    def test_department_must_be_integer(self):
        assert "not numeric" in condition_problem(Condition("departmentId", "equals", "2.5"))
