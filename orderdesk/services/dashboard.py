"""
Dashboard Session

A single user's view of the order store: a local snapshot of orders,
departments and stats plus the search, filter and sort settings applied to
it. Every action talks to the store and then updates the snapshot. Failures
are turned into a message for the user and leave the snapshot as it was.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from orderdesk.models.domain import DashboardStats, Department, Order
from orderdesk.models.filters import (
    OrderBoard,
    OrderFilters,
    SearchField,
    SortDirection,
    SortOption,
)
from orderdesk.services import filtering
from orderdesk.services.export import export_orders_csv
from orderdesk.services.orders import OrderService
from orderdesk.services.stats import compute_stats
from orderdesk.utils.errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DashboardSession:
    """Local snapshot plus view settings for one dashboard user"""

    def __init__(self, service: OrderService):
        self.service = service
        self.orders: List[Order] = []
        self.departments: List[Department] = []
        self.stats = DashboardStats()
        self.error: Optional[str] = None
        self.field_errors: Dict[str, str] = {}
        self.seen_version: Optional[int] = None

        # view settings
        self.search_term = ""
        self.search_field = SearchField.CUSTOMER
        self.filters = OrderFilters()
        self.sort_by = SortOption.TICKET
        self.sort_direction = SortDirection.ASC
        self.show_completed = False
        self.focus_agent: Optional[str] = None
        self.focus_department: Optional[str] = None

    # ------------------------------------------------------------------
    # loading
    # ------------------------------------------------------------------

    def refresh(self) -> bool:
        """Re-fetch the whole snapshot; returns False if the store failed"""
        try:
            # feed position before the fetch
            version = self.service.store.change_version()
            orders = self.service.list_orders()
            departments = self.service.directory.list_departments()
        except StoreError as e:
            logger.error(f"Error loading data: {e}")
            self.error = "Failed to load data. Please try again."
            return False
        self.orders = orders
        self.departments = departments
        self.stats = compute_stats(orders)
        self.seen_version = version
        self.error = None
        return True

    def poll(self, timeout: float = 0.0) -> bool:
        """Refresh if the store reports a change; True when a refresh happened"""
        if self.seen_version is None:
            return self.refresh()
        try:
            version = self.service.store.wait_for_change(self.seen_version, timeout)
        except StoreError as e:
            logger.error(f"Change feed failed: {e}")
            return False
        if version != self.seen_version:
            return self.refresh()
        return False

    # ------------------------------------------------------------------
    # actions
    # ------------------------------------------------------------------

    def _run(self, action: str, call: Callable[[], T]) -> Optional[T]:
        self.error = None
        self.field_errors = {}
        try:
            return call()
        except ValidationError as e:
            self.field_errors = dict(e.errors)
            self.error = str(e)
        except (StoreError, NotFoundError) as e:
            logger.error(f"Failed to {action}: {e}")
            self.error = f"Failed to {action}. Please try again."
        return None

    def _replace(self, order: Order):
        self.orders = [order if o.id == order.id else o for o in self.orders]
        self.stats = compute_stats(self.orders)

    def create_order(self, data: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Order]:
        order = self._run("create order", lambda: self.service.create_order(data, now))
        if order is not None:
            self.orders = [order] + self.orders
            self.stats = compute_stats(self.orders)
        return order

    def assign_order(self, order_id: str, agent_name: str) -> Optional[Order]:
        order = self._run("assign order", lambda: self.service.assign_order(order_id, agent_name))
        if order is not None:
            # agent counters changed as well
            self.refresh()
        return order

    def toggle_task(self, order_id: str, task_id: str) -> Optional[Order]:
        order = self._run("update task", lambda: self.service.toggle_task(order_id, task_id))
        if order is not None:
            self._replace(order)
        return order

    def update_details(self, order_id: str, data: Dict[str, Any]) -> Optional[Order]:
        order = self._run("update order details", lambda: self.service.update_details(order_id, data))
        if order is not None:
            self._replace(order)
        return order

    def delete_order(self, order_id: str) -> bool:
        deleted = self._run("delete order", lambda: self.service.delete_order(order_id) or True)
        if deleted:
            self.orders = [o for o in self.orders if o.id != order_id]
            self.stats = compute_stats(self.orders)
        return bool(deleted)

    # ------------------------------------------------------------------
    # view
    # ------------------------------------------------------------------

    def focus_on_agent(self, agent_name: Optional[str]):
        self.focus_agent = agent_name
        self.focus_department = None

    def focus_on_department(self, department_name: Optional[str]):
        self.focus_department = department_name
        self.focus_agent = None

    def toggle_sort_direction(self):
        self.sort_direction = (
            SortDirection.DESC if self.sort_direction == SortDirection.ASC else SortDirection.ASC
        )

    def visible_orders(self, now: Optional[datetime] = None) -> List[Order]:
        """Snapshot narrowed by agent/department focus, search and filters"""
        orders = self.orders
        if self.focus_agent:
            orders = filtering.orders_for_agent(orders, self.focus_agent)
        elif self.focus_department:
            orders = filtering.orders_for_department(orders, self.departments, self.focus_department)
        return filtering.apply(
            orders,
            self.search_term,
            self.search_field,
            self.filters,
            self.sort_by,
            self.sort_direction,
            now,
        )

    def board(self, now: Optional[datetime] = None) -> OrderBoard:
        return filtering.group_by_status(self.visible_orders(now), self.show_completed)

    def export_csv(self) -> str:
        return export_orders_csv(self.orders)
