"""
Query Models - Pydantic models describing how an order list is searched,
filtered, sorted and grouped for display.
"""

from datetime import timedelta
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, ConfigDict

from orderdesk.models.domain import Order, OrderStatus, Priority
from orderdesk.utils.errors import ValidationError


# ============================================================================
# Enums
# ============================================================================

class SearchField(str, Enum):
    """Field the search box matches against."""
    CUSTOMER = "customer"
    AGENT = "agent"
    TICKET = "ticket"


class SortOption(str, Enum):
    """Available sort keys."""
    AGENT = "agent"
    DATE = "date"
    TIME = "time"
    TICKET = "ticket"


class SortDirection(str, Enum):
    """Sort direction; DESC flips the computed comparison."""
    ASC = "asc"
    DESC = "desc"


class TimeUnit(str, Enum):
    """Units a time window can be expressed in."""
    HOURS = "h"
    DAYS = "d"
    MONTHS = "m"


# ============================================================================
# Time Windows
# ============================================================================

class TimeWindow(BaseModel):
    """
    A relative duration with an explicit unit.

    Months are 30 days long, except that whole years count 365 days each,
    so 6 months is 180 days and 24 months is 730 days.
    """

    model_config = ConfigDict(frozen=True)

    amount: int = Field(..., gt=0)
    unit: TimeUnit

    @property
    def code(self) -> str:
        return f"{self.amount}{self.unit.value}"

    def to_timedelta(self) -> timedelta:
        if self.unit == TimeUnit.HOURS:
            return timedelta(hours=self.amount)
        if self.unit == TimeUnit.DAYS:
            return timedelta(days=self.amount)
        if self.amount % 12 == 0:
            return timedelta(days=365 * (self.amount // 12))
        return timedelta(days=30 * self.amount)

    @classmethod
    def hours(cls, amount: int) -> "TimeWindow":
        return cls(amount=amount, unit=TimeUnit.HOURS)

    @classmethod
    def days(cls, amount: int) -> "TimeWindow":
        return cls(amount=amount, unit=TimeUnit.DAYS)

    @classmethod
    def months(cls, amount: int) -> "TimeWindow":
        return cls(amount=amount, unit=TimeUnit.MONTHS)

    @classmethod
    def from_code(cls, code: str) -> "TimeWindow":
        """Look up one of the preset windows offered by the filter panel"""
        try:
            return TIME_WINDOW_PRESETS[code]
        except KeyError:
            raise ValidationError(
                f"Unknown time window: {code}",
                {"time_window": f"Must be one of {', '.join(TIME_WINDOW_PRESETS)}"}
            )


TIME_WINDOW_PRESETS: Dict[str, TimeWindow] = {
    window.code: window
    for window in (
        TimeWindow.hours(1),
        TimeWindow.hours(12),
        TimeWindow.hours(24),
        TimeWindow.days(3),
        TimeWindow.days(7),
        TimeWindow.days(15),
        TimeWindow.days(30),
        TimeWindow.days(45),
        TimeWindow.days(60),
        TimeWindow.months(6),
        TimeWindow.months(12),
        TimeWindow.months(24),
    )
}


# ============================================================================
# Filters
# ============================================================================

class StatusFilter(BaseModel):
    """Independent per-status visibility flags."""

    unassigned: bool = True
    in_progress: bool = True
    completed: bool = True

    def allows(self, status: OrderStatus) -> bool:
        if status == OrderStatus.UNASSIGNED:
            return self.unassigned
        if status == OrderStatus.IN_PROGRESS:
            return self.in_progress
        return self.completed


class OrderFilters(BaseModel):
    """Advanced filter panel state; every active predicate must pass."""

    customer_name: str = Field(default="", description="Case-insensitive substring of the customer name")
    assigned_to: str = Field(default="", description="Exact agent name, empty for any agent")
    created_within: Optional[TimeWindow] = Field(default=None, description="None means all time")
    closed_after: Optional[TimeWindow] = Field(
        default=None,
        description="Maximum time from creation to completion for completed orders"
    )
    status: StatusFilter = Field(default_factory=StatusFilter)
    priority: Set[Priority] = Field(default_factory=lambda: {Priority.LOW, Priority.MEDIUM, Priority.HIGH})


# ============================================================================
# Display
# ============================================================================

class OrderColumn(BaseModel):
    """One status bucket of the dashboard board."""

    status: OrderStatus
    title: str
    orders: List[Order] = Field(default_factory=list)


class OrderBoard(BaseModel):
    """Grouped, display-ready view of a filtered order list."""

    columns: List[OrderColumn] = Field(default_factory=list)
    completed_count: int = 0
