"""
Dispatch Interfaces Layer
=========================

Internal HTTP routes for ticket events and manual job runs.
"""

from helpdesk.dispatch.interfaces.controllers import (
    HOURLY_CHECK_JOB,
    SLA_SWEEP_JOB,
    get_dispatcher,
    get_jobs,
    internal_router,
)

__all__ = [
    "HOURLY_CHECK_JOB",
    "SLA_SWEEP_JOB",
    "get_dispatcher",
    "get_jobs",
    "internal_router",
]
