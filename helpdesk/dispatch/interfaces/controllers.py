"""
Internal Controllers (API Routes)
=================================

Routes called by the ticket service, not by end users.

``POST /internal/events`` runs automation synchronously so the caller can
treat it as part of the operation that produced the event; it answers 200
even when automation failed internally.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from helpdesk.automation.application.dto import TriggerStr
from helpdesk.dispatch.application import TriggerDispatcher
from helpdesk.dispatch.infrastructure import PeriodicJobs

router = APIRouter(prefix="/internal", tags=["Internal"])

HOURLY_CHECK_JOB = "hourly_check"
SLA_SWEEP_JOB = "sla_sweep"


# ========== DTOs ==========

class EventRequest(BaseModel):
    """A ticket event from the ticket service."""
    model_config = ConfigDict(populate_by_name=True)

    trigger: TriggerStr
    ticket_id: int = Field(..., alias="ticketId", gt=0)


class ActionResultResponse(BaseModel):
    rule_id: int
    action_type: str
    ok: bool
    error: Optional[str] = None
    skipped: bool = False


class EventResponse(BaseModel):
    trigger: str
    ticket_id: int
    status: str
    reason: Optional[str] = None
    matched_rule_ids: List[int] = Field(default_factory=list)
    results: List[ActionResultResponse] = Field(default_factory=list)
    sla_error: Optional[str] = None


class JobRunResponse(BaseModel):
    job: str
    skipped: bool
    result: Optional[Dict[str, Any]] = None


# ========== Dependencies ==========

def get_dispatcher(request: Request) -> TriggerDispatcher:
    return request.app.state.dispatcher


def get_jobs(request: Request) -> PeriodicJobs:
    return request.app.state.jobs


# ========== Route Handlers ==========

@router.post("/events", response_model=EventResponse, summary="Handle a ticket event")
async def handle_event(
    body: EventRequest,
    dispatcher: TriggerDispatcher = Depends(get_dispatcher)
):
    result = await dispatcher.on_event(body.trigger, body.ticket_id)
    return EventResponse(**result.to_dict())


async def _run_job(jobs: PeriodicJobs, name: str) -> JobRunResponse:
    outcome = await jobs.run(name)
    result = outcome.result.to_dict() if outcome.result is not None else None
    return JobRunResponse(job=name, skipped=outcome.skipped, result=result)


@router.post("/jobs/hourly-check", response_model=JobRunResponse, summary="Run HOURLY_CHECK now")
async def run_hourly_check(jobs: PeriodicJobs = Depends(get_jobs)):
    return await _run_job(jobs, HOURLY_CHECK_JOB)


@router.post("/jobs/sla-sweep", response_model=JobRunResponse, summary="Run the SLA sweep now")
async def run_sla_sweep(jobs: PeriodicJobs = Depends(get_jobs)):
    return await _run_job(jobs, SLA_SWEEP_JOB)


# Export router for inclusion in main app
internal_router = router
