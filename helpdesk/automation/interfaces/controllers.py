"""
Automation Controllers (API Routes)
===================================

FastAPI routes for automation rule administration.

Controllers are thin - they delegate to application services.
Authentication is handled upstream; the acting admin is passed in the
``X-Actor-Id`` header.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status

from helpdesk.automation.application import (
    AutomationRuleService,
    PreviewMatch,
    RuleActiveDTO,
    RuleCreateDTO,
    RuleListResponse,
    RulePreviewRequest,
    RulePreviewResponse,
    RuleResponse,
    RuleUpdateDTO,
)
from helpdesk.automation.application.dto import TriggerStr
from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/automation", tags=["Automation Rules"])


# ========== Example payloads for Swagger ==========

RULE_CREATE_EXAMPLE = {
    "name": "Route VPN tickets to Network",
    "trigger": "TICKET_CREATED",
    "conditions": [
        {"field": "subject", "operator": "contains", "value": "vpn"},
        {"field": "priority", "operator": "equals", "value": "HIGH"}
    ],
    "actions": [
        {"type": "assign_department", "params": {"departmentId": 3}},
        {"type": "add_tag", "params": {"tag": "network"}}
    ],
    "is_active": True,
    "priority": 0
}


# ========== Dependencies ==========

def get_rule_service(request: Request) -> AutomationRuleService:
    """Get the rule service wired at startup."""
    return request.app.state.rule_service


def get_actor_id(x_actor_id: Optional[int] = Header(None, alias="X-Actor-Id")) -> Optional[int]:
    """Acting admin, if the caller identified one."""
    return x_actor_id


# ========== Route Handlers ==========

@router.get(
    "/rules",
    response_model=RuleListResponse,
    summary="List automation rules",
    description="Rules in execution order: priority ascending, then id ascending."
)
async def list_rules(
    trigger: Optional[TriggerStr] = Query(None, description="Filter by trigger"),
    active_only: bool = Query(False, description="Only active rules"),
    service: AutomationRuleService = Depends(get_rule_service)
):
    rules = await service.list_rules(trigger=trigger, active_only=active_only)
    return RuleListResponse(
        rules=[RuleResponse.from_domain(rule) for rule in rules],
        total=len(rules)
    )


@router.post(
    "/rules",
    response_model=RuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an automation rule",
    description="""
    Create a rule. Conditions and actions are validated against the closed
    vocabulary; an invalid combination is rejected with 422.
    """,
    openapi_extra={
        "requestBody": {"content": {"application/json": {"example": RULE_CREATE_EXAMPLE}}}
    }
)
async def create_rule(
    body: RuleCreateDTO,
    actor_id: Optional[int] = Depends(get_actor_id),
    service: AutomationRuleService = Depends(get_rule_service)
):
    rule = await service.create_rule(body.to_domain(), actor_id)
    return RuleResponse.from_domain(rule)


@router.post(
    "/rules/preview",
    response_model=RulePreviewResponse,
    summary="Dry-run the active rules",
    description="Match the active rules for a trigger against a snapshot without executing actions."
)
async def preview_rules(
    body: RulePreviewRequest,
    service: AutomationRuleService = Depends(get_rule_service)
):
    matched = await service.preview(body.trigger, body.ticket.to_domain())
    return RulePreviewResponse(
        trigger=body.trigger,
        ticket_id=body.ticket.ticket_id,
        matched=[PreviewMatch.from_domain(m) for m in matched]
    )


@router.get("/rules/{rule_id}", response_model=RuleResponse, summary="Get an automation rule")
async def get_rule(
    rule_id: int,
    service: AutomationRuleService = Depends(get_rule_service)
):
    return RuleResponse.from_domain(await service.get_rule(rule_id))


@router.put("/rules/{rule_id}", response_model=RuleResponse, summary="Update an automation rule")
async def update_rule(
    rule_id: int,
    body: RuleUpdateDTO,
    actor_id: Optional[int] = Depends(get_actor_id),
    service: AutomationRuleService = Depends(get_rule_service)
):
    rule = await service.update_rule(rule_id, body.to_changes(), actor_id)
    return RuleResponse.from_domain(rule)


@router.patch(
    "/rules/{rule_id}/active",
    response_model=RuleResponse,
    summary="Enable or disable an automation rule"
)
async def set_rule_active(
    rule_id: int,
    body: RuleActiveDTO,
    actor_id: Optional[int] = Depends(get_actor_id),
    service: AutomationRuleService = Depends(get_rule_service)
):
    rule = await service.set_active(rule_id, body.is_active, actor_id)
    logger.info(
        "Automation rule toggled",
        extra={"rule_id": rule_id, "is_active": body.is_active, "actor_id": actor_id}
    )
    return RuleResponse.from_domain(rule)


@router.delete(
    "/rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an automation rule"
)
async def delete_rule(
    rule_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    service: AutomationRuleService = Depends(get_rule_service)
):
    await service.delete_rule(rule_id, actor_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Export router for inclusion in main app
automation_router = router
