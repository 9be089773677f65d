"""
Order Service Tests

End-to-end user actions against the in-memory order store: categories,
departments, order creation, assignment, checklists and the dashboard session.
"""

import sys
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from orderdesk.models import OrderStatus, Priority, SearchField, StatusFilter
from orderdesk.services import (
    CategoryCatalog,
    DashboardSession,
    DirectoryService,
    InMemoryOrderStore,
    OrderService,
)
from orderdesk.utils.errors import NotFoundError, StoreError, ValidationError

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    store = InMemoryOrderStore()
    CategoryCatalog(store).ensure_defaults()
    directory = DirectoryService(store)
    directory.ensure_defaults()
    directory.add_agent({"name": "Ann", "department_name": "Support", "email": "ann@example.com"})
    directory.add_agent({"name": "Bob", "department_name": "Support"})
    directory.add_agent({"name": "Cid", "department_name": "Sales"})
    return store


@pytest.fixture
def service(store):
    return OrderService(store)


def new_order(service, **overrides):
    data = {
        "order_type": "One Time Order",
        "customer_name": "Acme",
        "ticket_number": "12345",
    }
    data.update(overrides)
    return service.create_order(data, now=NOW)


class TestCatalog:
    """Order categories"""

    def test_defaults_seeded_once(self, store):
        catalog = CategoryCatalog(store)
        assert len(catalog.ensure_defaults()) == 4
        assert len(catalog.ensure_defaults()) == 4

    def test_add_and_use_category(self, service):
        service.catalog.add_category({"name": "Fax Line", "tasks": ["Port Number", " ", "Test Fax"]})

        order = new_order(service, order_type="Fax Line")

        assert [t.text for t in order.tasks] == ["Port Number", "Test Fax"]

    def test_duplicate_category_rejected(self, service):
        with pytest.raises(ValidationError):
            service.catalog.add_category({"name": "SIP Trunk", "tasks": []})

    def test_unknown_category(self, service):
        with pytest.raises(NotFoundError):
            new_order(service, order_type="Carrier Pigeon")


class TestDirectory:
    """Departments and agents"""

    def test_agent_names_unique_per_department(self, service):
        with pytest.raises(ValidationError):
            service.directory.add_agent({"name": "Ann", "department_name": "Support"})
        # same name elsewhere is fine
        service.directory.add_agent({"name": "Ann", "department_name": "Sales"})

    def test_department_names_unique(self, service):
        with pytest.raises(ValidationError):
            service.directory.create_department({"name": "Sales"})

    def test_delete_department_removes_agents(self, service):
        service.directory.delete_department("Sales")
        with pytest.raises(NotFoundError):
            service.directory.find_agent("Cid")


class TestCreateOrder:
    """Order creation"""

    def test_new_order_starts_unassigned(self, service):
        order = new_order(service)

        assert order.status == OrderStatus.UNASSIGNED
        assert order.priority == Priority.MEDIUM
        assert order.title == "One Time Order - Acme"
        assert [t.id for t in order.tasks][:2] == ["task-0", "task-1"]
        assert not any(t.completed for t in order.tasks)
        assert service.get_order(order.id).details.ticket_number == "12345"

    def test_custom_tasks_appended(self, service):
        order = new_order(service, custom_tasks=["Call back", ""])
        assert order.tasks[-1].text == "Call back"
        assert len(order.tasks) == 6

    def test_invalid_ticket_never_reaches_store(self, service):
        with pytest.raises(ValidationError) as exc:
            new_order(service, ticket_number="1234")
        assert "ticket_number" in exc.value.errors
        assert service.list_orders() == []

    def test_created_with_assignee(self, service):
        order = new_order(service, assigned_to="Ann")

        assert order.status == OrderStatus.IN_PROGRESS
        assert service.directory.find_agent("Ann").total_orders == 1


class TestAssignAndComplete:
    """Assignment and checklist flow"""

    def test_full_lifecycle(self, service):
        order = new_order(service)

        order = service.assign_order(order.id, "Ann", now=NOW)
        assert order.status == OrderStatus.IN_PROGRESS

        for task in order.tasks:
            order = service.set_task(order.id, task.id, True, now=NOW + timedelta(hours=1))

        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at == NOW + timedelta(hours=1)
        ann = service.directory.find_agent("Ann")
        assert (ann.completed_orders, ann.total_orders) == (1, 1)

        reopened = service.toggle_task(order.id, "task-0")
        assert reopened.status == OrderStatus.IN_PROGRESS
        assert reopened.completed_at is None

    def test_reassigning_same_agent_counts_once(self, service):
        order = new_order(service)

        service.assign_order(order.id, "Ann", now=NOW)
        service.assign_order(order.id, "Ann", now=NOW + timedelta(minutes=1))

        assert service.directory.find_agent("Ann").total_orders == 1
        assert len(service.assignment_history(order.id)) == 2

    def test_history_newest_first(self, service):
        order = new_order(service)
        service.assign_order(order.id, "Ann", now=NOW)
        service.assign_order(order.id, "Bob", now=NOW + timedelta(minutes=1))

        history = service.assignment_history(order.id)

        assert [e.agent_name for e in history] == ["Bob", "Ann"]

    def test_assign_to_unknown_agent(self, service):
        order = new_order(service)
        with pytest.raises(NotFoundError):
            service.assign_order(order.id, "Zed")
        assert service.get_order(order.id).status == OrderStatus.UNASSIGNED

    def test_blank_agent_name(self, service):
        order = new_order(service)
        with pytest.raises(ValidationError) as exc:
            service.assign_order(order.id, "   ")
        assert "agent_name" in exc.value.errors
        assert service.get_order(order.id).status == OrderStatus.UNASSIGNED

    def test_assign_missing_order(self, service):
        with pytest.raises(NotFoundError):
            service.assign_order("order-missing", "Ann")

    def test_toggle_missing_task(self, service):
        order = new_order(service)
        with pytest.raises(NotFoundError):
            service.toggle_task(order.id, "task-99")


class TestDetailsAndDelete:
    """Editing and deleting orders"""

    def test_update_details(self, service):
        order = new_order(service)

        updated = service.update_details(order.id, {
            "invoice_number": "123456",
            "note": "Call after 5pm",
            "priority": "high",
        })

        assert updated.details.invoice_number == "123456"
        assert updated.details.note == "Call after 5pm"
        assert updated.priority == Priority.HIGH
        assert updated.details.customer_name == "Acme"

    def test_bad_invoice_and_long_note(self, service):
        order = new_order(service)
        with pytest.raises(ValidationError) as exc:
            service.update_details(order.id, {"invoice_number": "12ab", "note": "x" * 129})
        assert set(exc.value.errors) == {"invoice_number", "note"}

    def test_delete_is_permanent(self, service):
        order = new_order(service)
        service.delete_order(order.id)
        with pytest.raises(NotFoundError):
            service.get_order(order.id)
        with pytest.raises(NotFoundError):
            service.delete_order(order.id)


class TestDashboardSession:
    """Local snapshot and error handling"""

    def test_refresh_and_stats(self, service):
        new_order(service)
        done = new_order(service, ticket_number="54321", assigned_to="Ann")
        for task in done.tasks:
            service.set_task(done.id, task.id, True, now=NOW)

        session = DashboardSession(service)
        assert session.refresh()

        assert session.stats.total_orders == 2
        assert session.stats.completed_orders == 1
        assert session.stats.pending_orders == 1

    def test_board_uses_view_settings(self, service):
        new_order(service, customer_name="Acme")
        new_order(service, customer_name="Globex", ticket_number="22222", assigned_to="Cid")
        session = DashboardSession(service)
        session.refresh()

        session.search_field = SearchField.CUSTOMER
        session.search_term = "glob"
        board = session.board(now=NOW)

        assert [c.status for c in board.columns] == [OrderStatus.IN_PROGRESS]
        assert board.columns[0].orders[0].details.customer_name == "Globex"

        session.search_term = ""
        session.focus_on_department("Support")
        assert session.visible_orders(now=NOW) == []

    def test_status_filter_in_session(self, service):
        order = new_order(service)
        session = DashboardSession(service)
        session.refresh()
        session.filters = session.filters.model_copy(update={"status": StatusFilter(unassigned=False)})
        assert session.visible_orders(now=NOW) == []
        session.filters = session.filters.model_copy(update={"status": StatusFilter()})
        assert [o.id for o in session.visible_orders(now=NOW)] == [order.id]

    def test_validation_errors_are_shown_inline(self, service):
        session = DashboardSession(service)
        result = session.create_order({"order_type": "SIP Trunk", "customer_name": "", "ticket_number": "12"})

        assert result is None
        assert set(session.field_errors) == {"customer_name", "ticket_number"}
        assert session.orders == []

    def test_store_error_leaves_snapshot_unchanged(self, service):
        order = new_order(service)
        session = DashboardSession(service)
        session.refresh()

        with patch.object(service.store, "update_order", side_effect=StoreError("connection reset")):
            assert session.toggle_task(order.id, "task-0") is None

        assert session.error == "Failed to update task. Please try again."
        assert session.orders[0].tasks[0].completed is False

    def test_poll_refreshes_after_remote_change(self, service):
        session = DashboardSession(service)
        session.refresh()

        assert session.poll() is False
        new_order(service)
        assert session.poll() is True
        assert len(session.orders) == 1
        assert session.poll() is False

    def test_every_session_sees_a_remote_change(self, store, service):
        first = DashboardSession(OrderService(store))
        second = DashboardSession(OrderService(store))
        first.refresh()
        second.refresh()

        new_order(service)

        assert first.poll() is True
        assert second.poll() is True
        assert len(first.orders) == len(second.orders) == 1

    def test_first_poll_loads_snapshot(self, service):
        new_order(service)
        session = DashboardSession(service)

        assert session.poll() is True
        assert len(session.orders) == 1

    def test_delete_updates_snapshot(self, service):
        order = new_order(service)
        session = DashboardSession(service)
        session.refresh()

        assert session.delete_order(order.id) is True
        assert session.orders == []
        assert session.stats.total_orders == 0

    def test_export_has_header_and_rows(self, service):
        new_order(service)
        new_order(service, ticket_number="22222")
        session = DashboardSession(service)
        session.refresh()

        lines = session.export_csv().strip().split("\n")

        assert lines[0].startswith("Ticket Number,Customer Name")
        assert len(lines) == 3
