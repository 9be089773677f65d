"""
Order Filtering & Sorting

Search, filter, sort and group an order snapshot for display. Nothing here
touches the store; every function takes a list of orders and returns a new one.
"""

import functools
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from orderdesk.models.domain import Department, Order, OrderStatus, as_utc
from orderdesk.models.filters import (
    OrderBoard,
    OrderColumn,
    OrderFilters,
    SearchField,
    SortDirection,
    SortOption,
)

COLUMN_TITLES = {
    OrderStatus.UNASSIGNED: "Unassigned",
    OrderStatus.IN_PROGRESS: "In Progress",
    OrderStatus.COMPLETED: "Completed",
}


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def matches_search(order: Order, search_term: str, search_field: SearchField) -> bool:
    """Apply the search box to a single order"""
    if not search_term:
        return True
    if search_field == SearchField.CUSTOMER:
        return search_term.lower() in order.details.customer_name.lower()
    if search_field == SearchField.AGENT:
        return search_term.lower() in (order.assigned_to or "").lower()
    # ticket numbers are digit strings, matched as typed
    return search_term in order.details.ticket_number


def matches_filters(order: Order, filters: OrderFilters, now: datetime) -> bool:
    """Apply every active filter predicate to a single order"""
    if filters.customer_name and filters.customer_name.lower() not in order.details.customer_name.lower():
        return False

    if filters.assigned_to and order.assigned_to != filters.assigned_to:
        return False

    if filters.created_within is not None:
        if as_utc(now) - order.created_at > filters.created_within.to_timedelta():
            return False

    if filters.closed_after is not None and order.completed_at is not None:
        if order.completed_at - order.created_at > filters.closed_after.to_timedelta():
            return False

    if not filters.status.allows(order.status):
        return False

    return order.priority in filters.priority


def _comparator(sort_by: SortOption) -> Callable[[Order, Order], int]:
    if sort_by == SortOption.AGENT:
        return lambda a, b: _cmp(a.assigned_to or "", b.assigned_to or "")
    if sort_by == SortOption.DATE:
        # newest first before the direction is applied
        return lambda a, b: _cmp(b.created_at, a.created_at)
    if sort_by == SortOption.TIME:
        # UTC hour of day only, so orders from different days interleave by shift
        return lambda a, b: as_utc(b.created_at).hour - as_utc(a.created_at).hour
    return lambda a, b: _cmp(a.details.ticket_number, b.details.ticket_number)


def sort_orders(
    orders: Iterable[Order],
    sort_by: SortOption = SortOption.TICKET,
    sort_direction: SortDirection = SortDirection.ASC
) -> List[Order]:
    """Stable sort; DESC negates the comparison rather than reversing the list"""
    compare = _comparator(sort_by)
    sign = 1 if sort_direction == SortDirection.ASC else -1
    return sorted(orders, key=functools.cmp_to_key(lambda a, b: sign * compare(a, b)))


def apply(
    orders: Iterable[Order],
    search_term: str = "",
    search_field: SearchField = SearchField.CUSTOMER,
    filters: Optional[OrderFilters] = None,
    sort_by: SortOption = SortOption.TICKET,
    sort_direction: SortDirection = SortDirection.ASC,
    now: Optional[datetime] = None
) -> List[Order]:
    """
    Produce the displayed subset of an order collection.

    Args:
        orders: Snapshot to filter; not modified
        search_term: Search box contents, empty matches everything
        search_field: Which field the search box applies to
        filters: Advanced filters, all of which must pass
        sort_by: Sort key
        sort_direction: ASC keeps the key's natural comparison, DESC flips it
        now: Reference time for relative windows

    Returns:
        Filtered orders in display order
    """
    filters = filters or OrderFilters()
    now = as_utc(now) or datetime.now(timezone.utc)
    kept = [
        order for order in orders
        if matches_search(order, search_term, search_field) and matches_filters(order, filters, now)
    ]
    return sort_orders(kept, sort_by, sort_direction)


def group_by_status(orders: Iterable[Order], show_completed: bool = False) -> OrderBoard:
    """
    Split a display list into status columns.

    The unassigned column only appears when it has orders; the completed
    column only appears when show_completed is set.
    """
    buckets = {status: [] for status in OrderStatus}
    for order in orders:
        buckets[order.status].append(order)

    columns = []
    if buckets[OrderStatus.UNASSIGNED]:
        columns.append(OrderColumn(
            status=OrderStatus.UNASSIGNED,
            title=COLUMN_TITLES[OrderStatus.UNASSIGNED],
            orders=buckets[OrderStatus.UNASSIGNED],
        ))
    columns.append(OrderColumn(
        status=OrderStatus.IN_PROGRESS,
        title=COLUMN_TITLES[OrderStatus.IN_PROGRESS],
        orders=buckets[OrderStatus.IN_PROGRESS],
    ))
    if show_completed:
        columns.append(OrderColumn(
            status=OrderStatus.COMPLETED,
            title=COLUMN_TITLES[OrderStatus.COMPLETED],
            orders=buckets[OrderStatus.COMPLETED],
        ))

    return OrderBoard(columns=columns, completed_count=len(buckets[OrderStatus.COMPLETED]))


def orders_for_agent(orders: Iterable[Order], agent_name: str) -> List[Order]:
    """Orders currently assigned to one agent"""
    return [order for order in orders if order.assigned_to == agent_name]


def orders_for_department(
    orders: Iterable[Order],
    departments: Iterable[Department],
    department_name: str
) -> List[Order]:
    """Orders assigned to any agent of one department"""
    members = set()
    for department in departments:
        if department.name == department_name:
            members = {agent.name for agent in department.agents}
            break
    return [order for order in orders if order.assigned_to and order.assigned_to in members]
