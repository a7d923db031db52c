import pytest

from helpdesk.automation.application import AutomationRuleService
from helpdesk.automation.domain import Action, Condition
from helpdesk.core import ResourceNotFoundException, ValidationException

from tests.fakes import T0, make_rule, make_snapshot


@pytest.fixture
def service(rule_repo, audit_log):
    return AutomationRuleService(rule_repo, audit_log)


async def test_create_assigns_id_and_audits(service, audit_log):
    created = await service.create_rule(make_rule(0, name="VPN triage"), actor_id=7)

    assert created.id == 1
    assert created.created_by == 7
    assert created.created_at is not None
    entry = audit_log.entries[-1]
    assert (entry.action, entry.entity, entry.entity_id, entry.actor_id) == ("RULE_CREATE", "automation_rule", 1, 7)
    assert entry.new_value["name"] == "VPN triage"


async def test_create_rejects_invalid_rule(service, rule_repo):
    rule = make_rule(
        0,
        trigger="TICKET_DELETED",
        conditions=[Condition("departmentId", "contains", "3")],
        actions=[Action("assign_user", {"user": 5})],
    )

    with pytest.raises(ValidationException) as exc:
        await service.create_rule(rule)

    errors = exc.value.details["errors"]
    assert len(errors) == 3
    assert any(e.startswith("conditions[0]") for e in errors)
    assert any(e.startswith("actions[0]") for e in errors)
    assert rule_repo.rules == {}


async def test_rule_without_actions_is_invalid(service):
    with pytest.raises(ValidationException):
        await service.create_rule(make_rule(0, actions=[]))


async def test_get_missing_rule(service):
    with pytest.raises(ResourceNotFoundException):
        await service.get_rule(42)


async def test_update_is_partial(service):
    created = await service.create_rule(make_rule(0, name="old", priority=3))

    updated = await service.update_rule(created.id, {"name": "new"}, actor_id=1)

    assert updated.name == "new"
    assert updated.priority == 3


async def test_update_rejects_unknown_attributes(service):
    created = await service.create_rule(make_rule(0))
    with pytest.raises(ValidationException):
        await service.update_rule(created.id, {"id": 99})


async def test_toggle_is_audited_separately(service, audit_log):
    created = await service.create_rule(make_rule(0))

    disabled = await service.set_active(created.id, False, actor_id=2)

    assert disabled.is_active is False
    assert audit_log.actions() == ["RULE_CREATE", "RULE_TOGGLE"]


async def test_delete(service, rule_repo, audit_log):
    created = await service.create_rule(make_rule(0))

    await service.delete_rule(created.id, actor_id=3)

    assert rule_repo.rules == {}
    assert audit_log.entries[-1].action == "RULE_DELETE"
    assert audit_log.entries[-1].old_value["id"] == created.id


async def test_preview_matches_without_side_effects(service, rule_repo, gateway, audit_log):
    await service.create_rule(make_rule(0, conditions=[("subject", "contains", "vpn")]))
    await service.create_rule(make_rule(0, conditions=[("subject", "contains", "printer")]))
    audit_count = len(audit_log.entries)

    matched = await service.preview("TICKET_CREATED", make_snapshot(), T0)

    assert [m.rule_id for m in matched] == [1]
    assert gateway.mutations == []
    assert len(audit_log.entries) == audit_count


async def test_list_in_execution_order(service):
    await service.create_rule(make_rule(0, priority=5))
    await service.create_rule(make_rule(0, priority=1))

    rules = await service.list_rules()

    assert [r.id for r in rules] == [2, 1]
