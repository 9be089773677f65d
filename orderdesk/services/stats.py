"""
Stats Aggregator

Dashboard counts, per-agent and per-department rollups, and agent period
reports. Agent counters come from replaying the assignment ledger.
"""

import calendar
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from orderdesk.models.domain import Agent, DashboardStats, Department, Order, OrderStatus, as_utc
from orderdesk.services.assignments import AssignmentLedger
from orderdesk.utils.config import settings

logger = logging.getLogger(__name__)


class ReportPeriod(str, Enum):
    """Periods an agent report can cover."""
    WEEKLY = "Weekly Report"
    MONTHLY = "Monthly Report"
    QUARTERLY = "Quarterly Report"
    ANNUAL = "Annual Report"


class DepartmentRollup(BaseModel):
    """Order counters summed over a department's agents."""

    name: str
    completed_orders: int = 0
    total_orders: int = 0
    agents: List[Agent] = Field(default_factory=list)


class AgentReport(BaseModel):
    """An agent's orders and counts over a reporting period."""

    agent_name: str
    period: ReportPeriod
    start: datetime
    end: datetime
    open_orders: int = 0
    completed_orders: int = 0
    past_due_orders: int = 0
    orders: List[Order] = Field(default_factory=list)


def compute_stats(orders: Iterable[Order]) -> DashboardStats:
    """Total, completed and pending counts over an order collection"""
    total = 0
    completed = 0
    for order in orders:
        total += 1
        if order.status == OrderStatus.COMPLETED:
            completed += 1
    return DashboardStats(
        total_orders=total,
        completed_orders=completed,
        pending_orders=total - completed,
    )


def with_counters(agent: Agent, ledger: AssignmentLedger) -> Agent:
    """Copy of an agent with counters filled in from the ledger"""
    completed, total = ledger.counters_for(agent.name)
    return agent.model_copy(update={"completed_orders": completed, "total_orders": total})


def department_rollup(department: Department, ledger: AssignmentLedger) -> DepartmentRollup:
    """Sum ledger-derived counters over a department's agents"""
    counters = ledger.counters()
    agents = []
    completed_sum = 0
    total_sum = 0
    for agent in department.agents:
        completed, total = counters.get(agent.name, (0, 0))
        agents.append(agent.model_copy(update={"completed_orders": completed, "total_orders": total}))
        completed_sum += completed
        total_sum += total
    return DepartmentRollup(
        name=department.name,
        completed_orders=completed_sum,
        total_orders=total_sum,
        agents=agents,
    )


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def report_range(period: ReportPeriod, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Start and end of a reporting period ending now"""
    end = as_utc(now) or datetime.now(timezone.utc)
    if period == ReportPeriod.WEEKLY:
        start = end - timedelta(days=7)
    elif period == ReportPeriod.MONTHLY:
        start = _months_back(end, 1)
    elif period == ReportPeriod.QUARTERLY:
        start = _months_back(end, 3)
    else:
        start = _months_back(end, 12)
    return start, end


def is_past_due(order: Order, now: datetime) -> bool:
    """An open order older than PAST_DUE_DAYS"""
    if order.status == OrderStatus.COMPLETED:
        return False
    return as_utc(now) > order.created_at + timedelta(days=settings.PAST_DUE_DAYS)


def agent_report(
    orders: Iterable[Order],
    agent_name: str,
    period: ReportPeriod,
    now: Optional[datetime] = None
) -> AgentReport:
    """Build an agent's report over the orders created within the period"""
    start, end = report_range(period, now)
    agent_orders = [
        order for order in orders
        if order.assigned_to == agent_name and start <= order.created_at <= end
    ]
    report = AgentReport(
        agent_name=agent_name,
        period=period,
        start=start,
        end=end,
        open_orders=sum(1 for o in agent_orders if o.status == OrderStatus.IN_PROGRESS),
        completed_orders=sum(1 for o in agent_orders if o.status == OrderStatus.COMPLETED),
        past_due_orders=sum(1 for o in agent_orders if is_past_due(o, end)),
        orders=agent_orders,
    )
    logger.info(
        f"Built {period.value} for {agent_name}: {len(agent_orders)} orders, "
        f"{report.past_due_orders} past due"
    )
    return report
