import pytest
from pydantic import ValidationError

from helpdesk.automation.application import (
    ActionDTO, ConditionDTO, RuleCreateDTO, RuleResponse, RuleUpdateDTO,
)
from helpdesk.automation.domain import Condition

from tests.fakes import make_rule


def test_condition_combination_is_checked():
    with pytest.raises(ValidationError):
        ConditionDTO(field="status", operator="greater_than", value="1")
    with pytest.raises(ValidationError):
        ConditionDTO(field="hoursSinceUpdate", operator="greater_than", value="soon")
    assert ConditionDTO(field="hoursSinceUpdate", operator="greater_than", value="24").value == "24"


def test_action_params_are_normalized_to_camel_case():
    dto = ActionDTO(type="assign_department", params={"department_id": 4})
    assert dto.params == {"departmentId": 4}


def test_action_params_reject_extra_keys():
    with pytest.raises(ValidationError):
        ActionDTO(type="add_tag", params={"tag": "vpn", "color": "red"})


def test_create_dto_to_domain():
    dto = RuleCreateDTO(
        name="  Escalate urgent  ",
        trigger="TICKET_CREATED",
        conditions=[{"field": "priority", "operator": "equals", "value": "URGENT"}],
        actions=[{"type": "assign_user", "params": {"userId": 5}}],
    )

    rule = dto.to_domain()

    assert rule.name == "Escalate urgent"
    assert rule.conditions == [Condition("priority", "equals", "URGENT")]
    assert rule.actions[0].params == {"userId": 5}


def test_create_dto_requires_an_action():
    with pytest.raises(ValidationError):
        RuleCreateDTO(name="x", trigger="TICKET_CREATED", actions=[])


def test_update_dto_only_reports_sent_fields():
    assert RuleUpdateDTO(priority=2).to_changes() == {"priority": 2}
    assert RuleUpdateDTO(description=None).to_changes() == {"description": None}
    assert RuleUpdateDTO().to_changes() == {}


def test_response_echoes_stored_rule():
    rule = make_rule(3, conditions=[("subject", "contains", "vpn")])

    response = RuleResponse.from_domain(rule)

    assert response.id == 3
    assert response.conditions[0].field == "subject"
    assert response.actions[0].type == "add_tag"
