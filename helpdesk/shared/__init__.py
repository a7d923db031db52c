"""
Shared Kernel Module
====================

This module contains shared infrastructure and domain elements used across
all bounded contexts (Automation Rules and SLA Tracking).

Architecture Pattern: Modular Monolith
- Each module (automation, sla, dispatch) is a bounded context
- Shared kernel contains the ticket-service contract and generic infrastructure

DO NOT add rule or SLA business logic to the shared kernel.
"""
