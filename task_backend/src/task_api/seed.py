from __future__ import annotations

import logging
from typing import Any, Dict, List

from .services import TaskService

logger = logging.getLogger(__name__)

SAMPLE_TASKS: List[Dict[str, Any]] = [
    {"name": "Withdraw cash from bank", "dueDate": "2024-12-25", "status": "Pending", "priority": "Red"},
    {"name": "Call estate agent for rent", "dueDate": "2024-12-24", "status": "In Progress", "priority": "Blue"},
    {"name": "Review mailbox", "dueDate": "2024-12-24", "status": "Pending", "priority": "Red"},
    {"name": "Call office for follow up", "dueDate": "2024-12-24", "status": "Pending", "priority": "Yellow"},
    {"name": "Review home grocery", "dueDate": "2024-12-24", "status": "Done", "priority": "Blue"},
    {"name": "Buy monthly internet package", "dueDate": "2024-12-24", "status": "Pending", "priority": "Blue"},
    {"name": "Visit Zoo and Park with Kids", "dueDate": "2024-12-22", "status": "Pending", "priority": "Blue"},
    {"name": "Call travel agent for tickets", "dueDate": "2024-12-04", "status": "Pending", "priority": "Blue"},
    {"name": "Review email tickets", "dueDate": "2024-12-04", "status": "Pending", "priority": "Red"},
    {"name": "Call kids school for follow up", "dueDate": "2024-12-04", "status": "Pending", "priority": "Yellow"},
]


# PUBLIC_INTERFACE
def seed_sample_tasks(service: TaskService) -> int:
    """
    Insert SAMPLE_TASKS when the store is empty.

    Returns:
        Number of tasks inserted (0 if the store already held tasks).
    """
    existing = service.get_stats()["total"]
    if existing > 0:
        logger.info("store already has %d tasks, skipping seeding", existing)
        return 0

    for payload in SAMPLE_TASKS:
        service.create_task(payload)
    logger.info("seeded %d sample tasks", len(SAMPLE_TASKS))
    return len(SAMPLE_TASKS)
