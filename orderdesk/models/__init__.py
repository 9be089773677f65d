"""
Models package for OrderDesk.
"""

# Domain models
from .domain import (
    Order,
    OrderDetails,
    TaskItem,
    Agent,
    Department,
    AssignmentEvent,
    CompletionEvent,
    OrderCategory,
    DashboardStats,
    OrderStatus,
    Priority,
    EventKind,
)

# Query models
from .filters import (
    OrderFilters,
    StatusFilter,
    TimeWindow,
    OrderColumn,
    OrderBoard,
    SearchField,
    SortOption,
    SortDirection,
    TimeUnit,
    TIME_WINDOW_PRESETS,
)

# Form models
from .forms import (
    NewOrderForm,
    OrderDetailsForm,
    DepartmentForm,
    AgentForm,
    CategoryForm,
    parse_form,
)

__all__ = [
    # Domain
    "Order",
    "OrderDetails",
    "TaskItem",
    "Agent",
    "Department",
    "AssignmentEvent",
    "CompletionEvent",
    "OrderCategory",
    "DashboardStats",
    "OrderStatus",
    "Priority",
    "EventKind",
    # Queries
    "OrderFilters",
    "StatusFilter",
    "TimeWindow",
    "OrderColumn",
    "OrderBoard",
    "SearchField",
    "SortOption",
    "SortDirection",
    "TimeUnit",
    "TIME_WINDOW_PRESETS",
    # Forms
    "NewOrderForm",
    "OrderDetailsForm",
    "DepartmentForm",
    "AgentForm",
    "CategoryForm",
    "parse_form",
]
