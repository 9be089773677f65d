"""
Order Service

Carries out user actions against the order store: creating orders from a
category, assigning them, checking off tasks, editing details and deleting.
Lifecycle rules live in orderdesk.services.lifecycle; this module loads the
order and its ledger, applies the rule and writes the result back.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from orderdesk.models.domain import (
    AssignmentEvent,
    DashboardStats,
    Order,
    OrderDetails,
    OrderStatus,
    Priority,
)
from orderdesk.models.forms import NewOrderForm, OrderDetailsForm, parse_form
from orderdesk.services import lifecycle
from orderdesk.services.assignments import AssignmentLedger
from orderdesk.services.catalog import CategoryCatalog
from orderdesk.services.directory import DirectoryService
from orderdesk.services.stats import compute_stats
from orderdesk.services.store import OrderStore
from orderdesk.utils.config import settings
from orderdesk.utils.errors import ValidationError

logger = logging.getLogger(__name__)


def new_order_id() -> str:
    return f"order-{uuid4().hex[:16]}"


class OrderService:
    """Order operations on top of an OrderStore"""

    def __init__(
        self,
        store: OrderStore,
        catalog: Optional[CategoryCatalog] = None,
        directory: Optional[DirectoryService] = None
    ):
        self.store = store
        self.catalog = catalog or CategoryCatalog(store)
        self.directory = directory or DirectoryService(store)

    def _persist_ledger(self, ledger: AssignmentLedger, assignments_before: int, completions_before: int):
        """Write events appended to a ledger since it was loaded"""
        for event in ledger.assignments[assignments_before:]:
            self.store.append_assignment(event)
        for event in ledger.completions[completions_before:]:
            self.store.append_completion(event)

    def list_orders(self) -> List[Order]:
        return self.store.list_orders()

    def get_order(self, order_id: str) -> Order:
        return self.store.get_order(order_id)

    def stats(self) -> DashboardStats:
        return compute_stats(self.store.list_orders())

    def create_order(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Order:
        """
        Create an order from raw form input.

        Args:
            data: NewOrderForm fields (order_type, customer_name, ticket_number, ...)
            now: Creation time, defaults to the current UTC time

        Returns:
            The stored order

        Raises:
            ValidationError: If the form is invalid
            NotFoundError: If the category or the initial assignee does not exist
        """
        form = parse_form(NewOrderForm, data)
        now = now or datetime.now(timezone.utc)
        tasks = self.catalog.build_tasks(form.order_type, form.custom_tasks)

        order = Order(
            id=new_order_id(),
            title=f"{form.order_type} - {form.customer_name}",
            type=form.order_type,
            status=OrderStatus.UNASSIGNED,
            priority=form.priority or Priority(settings.DEFAULT_PRIORITY),
            details=OrderDetails(customer_name=form.customer_name, ticket_number=form.ticket_number),
            tasks=tasks,
            created_at=now,
        )

        ledger = AssignmentLedger()
        if form.assigned_to:
            self.directory.find_agent(form.assigned_to)
            order = lifecycle.assign(order, form.assigned_to, ledger, now)

        self.store.create_order(order)
        self._persist_ledger(ledger, 0, 0)
        logger.info(f"Created order {order.id} ({order.title}) with {len(tasks)} tasks")
        return order

    def assign_order(self, order_id: str, agent_name: str, now: Optional[datetime] = None) -> Order:
        """Assign an existing order to an agent"""
        agent_name = (agent_name or "").strip()
        if not agent_name:
            raise ValidationError("Agent name is required", {"agent_name": "Agent name is required"})
        order = self.store.get_order(order_id)
        self.directory.find_agent(agent_name)
        ledger = self.store.load_ledger(order_id)
        before = (len(ledger.assignments), len(ledger.completions))

        updated = lifecycle.assign(order, agent_name, ledger, now)
        self.store.update_order(updated)
        self._persist_ledger(ledger, *before)
        return updated

    def set_task(
        self,
        order_id: str,
        task_id: str,
        completed: bool,
        now: Optional[datetime] = None
    ) -> Order:
        """Mark a task done or not done"""
        order = self.store.get_order(order_id)
        ledger = self.store.load_ledger(order_id)
        before = (len(ledger.assignments), len(ledger.completions))

        updated = lifecycle.toggle_task(order, task_id, completed, ledger, now)
        self.store.update_order(updated)
        self._persist_ledger(ledger, *before)
        return updated

    def toggle_task(self, order_id: str, task_id: str, now: Optional[datetime] = None) -> Order:
        """Flip a task's completion, as a checklist click does"""
        order = self.store.get_order(order_id)
        task = order.find_task(task_id)
        completed = not task.completed if task is not None else True
        return self.set_task(order_id, task_id, completed, now)

    def update_details(self, order_id: str, data: Dict[str, Any]) -> Order:
        """Edit invoice number, note and priority"""
        form = parse_form(OrderDetailsForm, data)
        order = self.store.get_order(order_id)
        details = order.details.model_copy(update={
            "invoice_number": form.invoice_number,
            "note": form.note,
        })
        updated = order.model_copy(update={
            "details": details,
            "priority": form.priority or order.priority,
        })
        self.store.update_order(updated)
        logger.info(f"Updated details of order {order_id}")
        return updated

    def delete_order(self, order_id: str):
        """Remove an order permanently"""
        self.store.delete_order(order_id)
        logger.info(f"Deleted order {order_id}")

    def assignment_history(self, order_id: str) -> List[AssignmentEvent]:
        """Who the order was assigned to, newest first"""
        return self.store.load_ledger(order_id).history(order_id)
