"""
Dispatch Application Layer
==========================

Event routing into the rule engine and SLA tracking.
"""

from helpdesk.dispatch.application.dispatcher import (
    HOURLY_BATCH_SIZE,
    DispatchResult,
    DispatchStatus,
    HourlyCheckSummary,
    TriggerDispatcher,
)

__all__ = [
    "HOURLY_BATCH_SIZE",
    "DispatchResult",
    "DispatchStatus",
    "HourlyCheckSummary",
    "TriggerDispatcher",
]
