#!/usr/bin/env python3
"""
Seed SLA Policies
=================

Creates the default SLA policy matrix for the given departments.

Usage:
    python scripts/seed_sla_policies.py 1 2 3

Minutes come from ``default_policies`` in the SLA config file, falling back
to the built-in matrix. Pairs that already have an active policy are skipped.
"""

import asyncio
import sys

from helpdesk.config import settings, VALID_PRIORITIES
from helpdesk.infrastructure.database import close_database, create_tables, init_database
from helpdesk.sla.domain import SLAPolicy
from helpdesk.sla.infrastructure import SLAConfigManager, SQLAlchemySLAPolicyRepository


async def seed(department_ids: list[int]) -> int:
    """Create missing policies; returns how many were created."""
    config = SLAConfigManager(settings).load(settings.sla_config_path)
    repository = SQLAlchemySLAPolicyRepository()

    init_database()
    await create_tables()

    created = 0
    try:
        for department_id in department_ids:
            for priority in VALID_PRIORITIES:
                if await repository.find_active(department_id, priority):
                    print(f"department {department_id} {priority}: already has an active policy")
                    continue
                minutes = config.policy_minutes(priority)
                policy = await repository.create(SLAPolicy(
                    id=0,
                    department_id=department_id,
                    priority=priority,
                    first_response_minutes=minutes["first_response"],
                    resolution_minutes=minutes["resolution"],
                ))
                created += 1
                print(
                    f"department {department_id} {priority}: policy {policy.id} "
                    f"({policy.first_response_minutes}/{policy.resolution_minutes} min)"
                )
    finally:
        await close_database()

    return created


def main() -> None:
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)
    try:
        department_ids = [int(arg) for arg in sys.argv[1:]]
    except ValueError:
        print("department ids must be integers")
        sys.exit(2)

    created = asyncio.run(seed(department_ids))
    print(f"Created {created} policies")


if __name__ == "__main__":
    main()
