"""
Domain Models - Pydantic models for order-tracking entities.

These models represent the core business entities (orders, their task
checklists, agents, departments and the assignment ledger) and are used
for validation and serialization when talking to the order store.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken to be UTC; aware ones are converted to UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ============================================================================
# Enums
# ============================================================================

class OrderStatus(str, Enum):
    """Lifecycle stages of an order."""
    UNASSIGNED = "unassigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class Priority(str, Enum):
    """Order priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EventKind(str, Enum):
    """Kinds of entries in the assignment ledger."""
    ASSIGNED = "assigned"
    COMPLETED = "completed"


# ============================================================================
# Orders
# ============================================================================

class TaskItem(BaseModel):
    """One checklist item within an order."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    text: str
    completed: bool = False
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")

    @field_validator("completed_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class OrderDetails(BaseModel):
    """Customer-facing details of an order."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    customer_name: str = Field(default="", alias="customerName")
    ticket_number: str = Field(default="", alias="ticketNumber")
    invoice_number: Optional[str] = Field(default=None, alias="invoiceNumber")
    note: Optional[str] = None


class Order(BaseModel):
    """A customer service order tracked through the three-stage lifecycle."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    type: str
    status: OrderStatus = OrderStatus.UNASSIGNED
    priority: Priority = Priority.MEDIUM
    details: OrderDetails = Field(default_factory=OrderDetails)
    tasks: List[TaskItem] = Field(default_factory=list)
    assigned_to: Optional[str] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    @field_validator("created_at", "completed_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    def find_task(self, task_id: str) -> Optional[TaskItem]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None


# ============================================================================
# People
# ============================================================================

class Agent(BaseModel):
    """
    A staff member who can be assigned orders.

    The order counters are derived from the assignment ledger when an
    agent is read back from the store.
    """

    model_config = ConfigDict(from_attributes=True)

    name: str
    department_name: Optional[str] = None
    email: Optional[str] = None
    extension: Optional[str] = None
    completed_orders: int = Field(default=0, ge=0)
    total_orders: int = Field(default=0, ge=0)


class Department(BaseModel):
    """A named grouping of agents."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    agents: List[Agent] = Field(default_factory=list)

    def find_agent(self, name: str) -> Optional[Agent]:
        for agent in self.agents:
            if agent.name == name:
                return agent
        return None


# ============================================================================
# Ledger
# ============================================================================

class AssignmentEvent(BaseModel):
    """An agent being assigned to an order."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str
    agent_name: str
    assigned_at: datetime

    @field_validator("assigned_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


class CompletionEvent(BaseModel):
    """An assigned order reaching the completed stage."""

    model_config = ConfigDict(from_attributes=True)

    order_id: str
    agent_name: str
    completed_at: datetime

    @field_validator("completed_at")
    @classmethod
    def to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)


# ============================================================================
# Configuration & Aggregates
# ============================================================================

class OrderCategory(BaseModel):
    """An order type together with the task checklist new orders receive."""

    model_config = ConfigDict(from_attributes=True)

    name: str
    tasks: List[str] = Field(default_factory=list)


class DashboardStats(BaseModel):
    """Global order counts shown on the dashboard."""

    total_orders: int = 0
    completed_orders: int = 0
    pending_orders: int = 0
