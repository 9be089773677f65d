"""
Order Lifecycle

Derives an order's status and completion timestamp from its task list and
assignee. Every function here is pure with respect to the order: it returns
an updated copy and leaves the input untouched. The only side effect is
appending to the assignment ledger when one is passed in.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from orderdesk.models.domain import Order, OrderStatus, TaskItem, as_utc
from orderdesk.services.assignments import AssignmentLedger
from orderdesk.utils.errors import NotFoundError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def derive_status(tasks: List[TaskItem], assigned_to: Optional[str] = None) -> OrderStatus:
    """
    Status implied by a task list.

    An order is completed once it has tasks and all of them are done. It is
    in progress when any task is done or when someone is assigned, and
    unassigned otherwise.
    """
    if tasks and all(task.completed for task in tasks):
        return OrderStatus.COMPLETED
    if any(task.completed for task in tasks) or assigned_to:
        return OrderStatus.IN_PROGRESS
    return OrderStatus.UNASSIGNED


def is_consistent(order: Order) -> bool:
    """Check the status/completed_at invariants of an order"""
    all_done = bool(order.tasks) and all(task.completed for task in order.tasks)
    if (order.status == OrderStatus.COMPLETED) != all_done:
        return False
    if (order.completed_at is not None) != (order.status == OrderStatus.COMPLETED):
        return False
    return all((task.completed_at is not None) == task.completed for task in order.tasks)


def toggle_task(
    order: Order,
    task_id: str,
    completed: bool,
    ledger: Optional[AssignmentLedger] = None,
    now: Optional[datetime] = None
) -> Order:
    """
    Mark one task done or not done and recompute the order's status.

    Raises:
        NotFoundError: If the order has no task with this id
    """
    if order.find_task(task_id) is None:
        raise NotFoundError("Task", task_id)

    now = as_utc(now) or _utcnow()
    tasks = []
    for task in order.tasks:
        if task.id != task_id:
            tasks.append(task)
        elif completed:
            tasks.append(task.model_copy(update={
                "completed": True,
                "completed_at": task.completed_at or now,
            }))
        else:
            tasks.append(task.model_copy(update={"completed": False, "completed_at": None}))

    status = derive_status(tasks, order.assigned_to)
    # unchecking never sends work that has started back to the unassigned column
    if status == OrderStatus.UNASSIGNED and order.status != OrderStatus.UNASSIGNED:
        status = OrderStatus.IN_PROGRESS

    if status == OrderStatus.COMPLETED:
        completed_at = order.completed_at if order.status == OrderStatus.COMPLETED else now
    else:
        completed_at = None

    updated = order.model_copy(update={
        "tasks": tasks,
        "status": status,
        "completed_at": completed_at,
    })

    if status != order.status:
        logger.info(f"Order {order.id} moved from {order.status.value} to {status.value}")
    if (
        status == OrderStatus.COMPLETED
        and order.status != OrderStatus.COMPLETED
        and order.assigned_to
        and ledger is not None
    ):
        ledger.record_completion(order.id, order.assigned_to, now)

    return updated


def assign(
    order: Order,
    agent_name: str,
    ledger: AssignmentLedger,
    now: Optional[datetime] = None
) -> Order:
    """
    Assign an order to an agent.

    Unassigned orders move to in progress; in-progress and completed orders
    keep their status. The assignment is appended to the ledger, which only
    counts it towards the agent's total on the first (order, agent) event.
    """
    agent_name = (agent_name or "").strip()
    if not agent_name:
        raise ValueError("agent_name must not be blank")

    status = order.status
    if status == OrderStatus.UNASSIGNED:
        status = OrderStatus.IN_PROGRESS

    _, first = ledger.record_assignment(order.id, agent_name, as_utc(now) or _utcnow())
    logger.info(f"Assigned order {order.id} to {agent_name} (first assignment: {first})")

    return order.model_copy(update={"assigned_to": agent_name, "status": status})
