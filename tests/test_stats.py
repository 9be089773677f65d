"""
Stats & Ledger Tests

Dashboard counts, ledger-derived agent counters, department rollups and
agent reports.
"""

import sys
import os
from datetime import datetime, timedelta, timezone

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from orderdesk.models import Agent, Department, Order, OrderDetails, OrderStatus
from orderdesk.services.assignments import AssignmentLedger
from orderdesk.services.stats import (
    ReportPeriod,
    agent_report,
    compute_stats,
    department_rollup,
    report_range,
)

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=timezone.utc)


def make_order(order_id, status, assigned_to=None, age=timedelta(days=1)):
    return Order(
        id=order_id,
        title="One Time Order - Acme",
        type="One Time Order",
        status=status,
        details=OrderDetails(customer_name="Acme", ticket_number="12345"),
        assigned_to=assigned_to,
        created_at=NOW - age,
        completed_at=NOW if status == OrderStatus.COMPLETED else None,
    )


class TestComputeStats:
    """Global counts"""

    def test_mixed_statuses(self):
        orders = [
            make_order("1", OrderStatus.COMPLETED),
            make_order("2", OrderStatus.COMPLETED),
            make_order("3", OrderStatus.IN_PROGRESS),
            make_order("4", OrderStatus.UNASSIGNED),
        ]
        stats = compute_stats(orders)
        assert stats.total_orders == 4
        assert stats.completed_orders == 2
        assert stats.pending_orders == 2

    def test_empty(self):
        stats = compute_stats([])
        assert (stats.total_orders, stats.completed_orders, stats.pending_orders) == (0, 0, 0)


class TestLedger:
    """Counters replayed from assignment history"""

    def test_first_assignment_flag(self):
        ledger = AssignmentLedger()
        _, first = ledger.record_assignment("o1", "Ann", NOW)
        _, again = ledger.record_assignment("o1", "Ann", NOW)
        _, other = ledger.record_assignment("o1", "Bob", NOW)
        assert (first, again, other) == (True, False, True)

    def test_counters_never_exceed_total(self):
        ledger = AssignmentLedger()
        ledger.record_assignment("o1", "Ann", NOW)
        ledger.record_completion("o1", "Ann", NOW)
        ledger.record_completion("o2", "Ann", NOW)  # never assigned o2
        completed, total = ledger.counters_for("Ann")
        assert (completed, total) == (1, 1)

    def test_history_newest_first(self):
        ledger = AssignmentLedger()
        ledger.record_assignment("o1", "Ann", NOW - timedelta(hours=2))
        ledger.record_assignment("o1", "Bob", NOW)
        ledger.record_assignment("o2", "Cid", NOW)
        assert [e.agent_name for e in ledger.history("o1")] == ["Bob", "Ann"]

    def test_department_rollup(self):
        ledger = AssignmentLedger()
        ledger.record_assignment("o1", "Ann", NOW)
        ledger.record_assignment("o2", "Ann", NOW)
        ledger.record_assignment("o3", "Bob", NOW)
        ledger.record_completion("o1", "Ann", NOW)
        department = Department(name="Support", agents=[Agent(name="Ann"), Agent(name="Bob"), Agent(name="Dee")])

        rollup = department_rollup(department, ledger)

        assert rollup.total_orders == 3
        assert rollup.completed_orders == 1
        assert [(a.name, a.completed_orders, a.total_orders) for a in rollup.agents] == [
            ("Ann", 1, 2), ("Bob", 0, 1), ("Dee", 0, 0)
        ]


class TestAgentReport:
    """Per-agent period reports"""

    def test_report_range_months(self):
        start, end = report_range(ReportPeriod.MONTHLY, NOW)
        assert end == NOW
        # March 31 minus one month clamps to the end of February
        assert start == datetime(2026, 2, 28, 12, 0, tzinfo=timezone.utc)

        start, _ = report_range(ReportPeriod.ANNUAL, NOW)
        assert start == datetime(2025, 3, 31, 12, 0, tzinfo=timezone.utc)

    def test_weekly_counts(self):
        orders = [
            make_order("open-new", OrderStatus.IN_PROGRESS, "Ann", age=timedelta(days=2)),
            make_order("open-late", OrderStatus.IN_PROGRESS, "Ann", age=timedelta(days=6, hours=23)),
            make_order("done", OrderStatus.COMPLETED, "Ann", age=timedelta(days=3)),
            make_order("too-old", OrderStatus.IN_PROGRESS, "Ann", age=timedelta(days=30)),
            make_order("someone-else", OrderStatus.IN_PROGRESS, "Bob"),
        ]

        report = agent_report(orders, "Ann", ReportPeriod.WEEKLY, NOW)

        assert [o.id for o in report.orders] == ["open-new", "open-late", "done"]
        assert report.open_orders == 2
        assert report.completed_orders == 1
        assert report.past_due_orders == 0

    def test_past_due_in_quarterly_report(self):
        orders = [
            make_order("stale", OrderStatus.IN_PROGRESS, "Ann", age=timedelta(days=20)),
            make_order("closed", OrderStatus.COMPLETED, "Ann", age=timedelta(days=20)),
        ]
        report = agent_report(orders, "Ann", ReportPeriod.QUARTERLY, NOW)
        assert report.past_due_orders == 1

    def test_naive_creation_times(self):
        order = Order(
            id="naive",
            title="One Time Order - Acme",
            type="One Time Order",
            status=OrderStatus.IN_PROGRESS,
            details=OrderDetails(customer_name="Acme", ticket_number="12345"),
            assigned_to="Ann",
            created_at=datetime(2026, 3, 20, 9, 0),
        )

        report = agent_report([order], "Ann", ReportPeriod.MONTHLY, NOW.replace(tzinfo=None))

        assert report.open_orders == 1
        assert report.past_due_orders == 1
        assert report.start.tzinfo == timezone.utc
