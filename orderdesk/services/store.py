"""
Order Store

The authoritative collection of orders, departments, agents, categories
and assignment history. PostgresOrderStore persists through the shared
Database pool; InMemoryOrderStore keeps everything in process and is used
for local sessions and tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from orderdesk.models.domain import (
    Agent,
    AssignmentEvent,
    CompletionEvent,
    Department,
    EventKind,
    Order,
    OrderCategory,
    OrderDetails,
    TaskItem,
)
from orderdesk.services.assignments import AssignmentLedger
from orderdesk.utils.database import db
from orderdesk.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class OrderStore(ABC):
    """Operations the rest of OrderDesk needs from a backing store"""

    # -- orders --
    @abstractmethod
    def list_orders(self) -> List[Order]: ...

    @abstractmethod
    def get_order(self, order_id: str) -> Order: ...

    @abstractmethod
    def create_order(self, order: Order) -> Order: ...

    @abstractmethod
    def update_order(self, order: Order) -> Order: ...

    @abstractmethod
    def delete_order(self, order_id: str) -> None: ...

    # -- departments & agents --
    @abstractmethod
    def list_departments(self) -> List[Department]: ...

    @abstractmethod
    def create_department(self, name: str) -> Department: ...

    @abstractmethod
    def delete_department(self, name: str) -> None: ...

    @abstractmethod
    def save_agent(self, agent: Agent) -> Agent: ...

    @abstractmethod
    def delete_agent(self, department_name: str, name: str) -> None: ...

    # -- ledger --
    @abstractmethod
    def append_assignment(self, event: AssignmentEvent) -> None: ...

    @abstractmethod
    def append_completion(self, event: CompletionEvent) -> None: ...

    @abstractmethod
    def load_ledger(self, order_id: Optional[str] = None) -> AssignmentLedger: ...

    # -- categories --
    @abstractmethod
    def list_categories(self) -> List[OrderCategory]: ...

    @abstractmethod
    def save_category(self, category: OrderCategory) -> OrderCategory: ...

    @abstractmethod
    def delete_category(self, name: str) -> None: ...

    # -- change feed --
    @abstractmethod
    def change_version(self) -> int:
        """Current position of the change feed"""

    @abstractmethod
    def wait_for_change(self, since: int, timeout: float = 0.0) -> int:
        """
        Wait up to `timeout` seconds for the change feed to move past `since`

        Returns:
            The current version; equal to `since` when nothing changed
        """


# ============================================================================
# In-memory
# ============================================================================

class InMemoryOrderStore(OrderStore):
    """Process-local store; every read returns copies"""

    def __init__(self):
        self._orders: Dict[str, Order] = {}
        self._departments: Dict[str, Dict[str, Agent]] = {}
        self._categories: Dict[str, OrderCategory] = {}
        self._assignments: List[AssignmentEvent] = []
        self._completions: List[CompletionEvent] = []
        self._version = 0
        self._changed = threading.Condition()

    def _touch(self):
        with self._changed:
            self._version += 1
            self._changed.notify_all()

    def list_orders(self) -> List[Order]:
        return [order.model_copy(deep=True) for order in self._orders.values()]

    def get_order(self, order_id: str) -> Order:
        if order_id not in self._orders:
            raise NotFoundError("Order", order_id)
        return self._orders[order_id].model_copy(deep=True)

    def create_order(self, order: Order) -> Order:
        if order.id in self._orders:
            raise ValidationError(f"Order already exists: {order.id}", {"id": "Duplicate order id"})
        self._orders[order.id] = order.model_copy(deep=True)
        self._touch()
        return order

    def update_order(self, order: Order) -> Order:
        if order.id not in self._orders:
            raise NotFoundError("Order", order.id)
        self._orders[order.id] = order.model_copy(deep=True)
        self._touch()
        return order

    def delete_order(self, order_id: str) -> None:
        if self._orders.pop(order_id, None) is None:
            raise NotFoundError("Order", order_id)
        self._touch()

    def list_departments(self) -> List[Department]:
        return [
            Department(name=name, agents=[agent.model_copy() for agent in agents.values()])
            for name, agents in self._departments.items()
        ]

    def create_department(self, name: str) -> Department:
        if name in self._departments:
            raise ValidationError(f"Department already exists: {name}", {"name": "Department already exists"})
        self._departments[name] = {}
        return Department(name=name)

    def delete_department(self, name: str) -> None:
        if self._departments.pop(name, None) is None:
            raise NotFoundError("Department", name)

    def save_agent(self, agent: Agent) -> Agent:
        if agent.department_name not in self._departments:
            raise NotFoundError("Department", str(agent.department_name))
        self._departments[agent.department_name][agent.name] = agent.model_copy(
            update={"completed_orders": 0, "total_orders": 0}
        )
        return agent

    def delete_agent(self, department_name: str, name: str) -> None:
        agents = self._departments.get(department_name)
        if agents is None:
            raise NotFoundError("Department", department_name)
        if agents.pop(name, None) is None:
            raise NotFoundError("Agent", name)

    def append_assignment(self, event: AssignmentEvent) -> None:
        self._assignments.append(event)

    def append_completion(self, event: CompletionEvent) -> None:
        self._completions.append(event)

    def load_ledger(self, order_id: Optional[str] = None) -> AssignmentLedger:
        return AssignmentLedger(
            [e for e in self._assignments if order_id is None or e.order_id == order_id],
            [e for e in self._completions if order_id is None or e.order_id == order_id],
        )

    def list_categories(self) -> List[OrderCategory]:
        return [category.model_copy(deep=True) for category in self._categories.values()]

    def save_category(self, category: OrderCategory) -> OrderCategory:
        self._categories[category.name] = category.model_copy(deep=True)
        return category

    def delete_category(self, name: str) -> None:
        if self._categories.pop(name, None) is None:
            raise NotFoundError("Category", name)

    def change_version(self) -> int:
        with self._changed:
            return self._version

    def wait_for_change(self, since: int, timeout: float = 0.0) -> int:
        with self._changed:
            if timeout > 0:
                self._changed.wait_for(lambda: self._version != since, timeout)
            return self._version


# ============================================================================
# PostgreSQL
# ============================================================================

def row_to_order(row: Dict[str, Any]) -> Order:
    """Build an Order from an orders table row"""
    return Order(
        id=row['id'],
        title=row['title'],
        type=row['type'],
        status=row['status'],
        priority=row['priority'],
        details=OrderDetails.model_validate(row.get('details') or {}),
        tasks=[TaskItem.model_validate(task) for task in row.get('tasks') or []],
        assigned_to=row.get('assigned_to'),
        created_at=row['created_at'],
        completed_at=row.get('completed_at'),
    )


def _order_params(order: Order) -> Dict[str, Any]:
    return {
        'id': order.id,
        'title': order.title,
        'type': order.type,
        'status': order.status.value,
        'priority': order.priority.value,
        'details': Json(order.details.model_dump(mode='json', by_alias=True, exclude_none=True)),
        'tasks': Json([task.model_dump(mode='json', by_alias=True) for task in order.tasks]),
        'assigned_to': order.assigned_to,
        'created_at': order.created_at,
        'completed_at': order.completed_at,
    }


class PostgresOrderStore(OrderStore):
    """Order store backed by the PostgreSQL schema in orderdesk.utils.database"""

    def __init__(self, database=None):
        self.db = database or db

    # -- orders --

    def list_orders(self) -> List[Order]:
        query = """
            SELECT id, title, type, status, priority, details, tasks,
                   assigned_to, created_at, completed_at
            FROM orders
            ORDER BY created_at DESC
        """
        return [row_to_order(row) for row in self.db.execute_query(query)]

    def get_order(self, order_id: str) -> Order:
        query = """
            SELECT id, title, type, status, priority, details, tasks,
                   assigned_to, created_at, completed_at
            FROM orders
            WHERE id = %s
        """
        row = self.db.execute_query(query, (order_id,), fetch_one=True)
        if not row:
            raise NotFoundError("Order", order_id)
        return row_to_order(row)

    def create_order(self, order: Order) -> Order:
        query = """
            INSERT INTO orders (id, title, type, status, priority, details, tasks,
                                assigned_to, created_at, completed_at)
            VALUES (%(id)s, %(title)s, %(type)s, %(status)s, %(priority)s, %(details)s,
                    %(tasks)s, %(assigned_to)s, %(created_at)s, %(completed_at)s)
        """
        self.db.execute_update(query, _order_params(order))
        logger.info(f"Created order {order.id}")
        return order

    def update_order(self, order: Order) -> Order:
        query = """
            UPDATE orders
            SET title = %(title)s, type = %(type)s, status = %(status)s,
                priority = %(priority)s, details = %(details)s, tasks = %(tasks)s,
                assigned_to = %(assigned_to)s, completed_at = %(completed_at)s
            WHERE id = %(id)s
        """
        if self.db.execute_update(query, _order_params(order)) == 0:
            raise NotFoundError("Order", order.id)
        return order

    def delete_order(self, order_id: str) -> None:
        if self.db.execute_update("DELETE FROM orders WHERE id = %s", (order_id,)) == 0:
            raise NotFoundError("Order", order_id)
        logger.info(f"Deleted order {order_id}")

    # -- departments & agents --

    def list_departments(self) -> List[Department]:
        departments = self.db.execute_query("SELECT name FROM departments ORDER BY created_at, name")
        agents = self.db.execute_query("""
            SELECT name, department_name, email, extension
            FROM agents
            ORDER BY created_at, name
        """)
        by_department: Dict[str, List[Agent]] = {row['name']: [] for row in departments}
        for row in agents:
            by_department.setdefault(row['department_name'], []).append(Agent(**row))
        return [Department(name=name, agents=members) for name, members in by_department.items()]

    def create_department(self, name: str) -> Department:
        inserted = self.db.execute_update(
            "INSERT INTO departments (name) VALUES (%s) ON CONFLICT (name) DO NOTHING",
            (name,)
        )
        if inserted == 0:
            raise ValidationError(f"Department already exists: {name}", {"name": "Department already exists"})
        return Department(name=name)

    def delete_department(self, name: str) -> None:
        # agents go with it through ON DELETE CASCADE
        if self.db.execute_update("DELETE FROM departments WHERE name = %s", (name,)) == 0:
            raise NotFoundError("Department", name)

    def save_agent(self, agent: Agent) -> Agent:
        exists = self.db.execute_query(
            "SELECT 1 AS found FROM departments WHERE name = %s",
            (agent.department_name,),
            fetch_one=True
        )
        if not exists:
            raise NotFoundError("Department", str(agent.department_name))
        self.db.execute_update("""
            INSERT INTO agents (name, department_name, email, extension)
            VALUES (%s, %s, %s, %s)
            ON CONFLICT (department_name, name)
            DO UPDATE SET email = EXCLUDED.email, extension = EXCLUDED.extension
        """, (agent.name, agent.department_name, agent.email, agent.extension))
        return agent

    def delete_agent(self, department_name: str, name: str) -> None:
        deleted = self.db.execute_update(
            "DELETE FROM agents WHERE department_name = %s AND name = %s",
            (department_name, name)
        )
        if deleted == 0:
            raise NotFoundError("Agent", name)

    # -- ledger --

    def append_assignment(self, event: AssignmentEvent) -> None:
        self.db.execute_update("""
            INSERT INTO assignment_history (order_id, agent_name, kind, occurred_at)
            VALUES (%s, %s, %s, %s)
        """, (event.order_id, event.agent_name, EventKind.ASSIGNED.value, event.assigned_at))

    def append_completion(self, event: CompletionEvent) -> None:
        self.db.execute_update("""
            INSERT INTO assignment_history (order_id, agent_name, kind, occurred_at)
            VALUES (%s, %s, %s, %s)
        """, (event.order_id, event.agent_name, EventKind.COMPLETED.value, event.completed_at))

    def load_ledger(self, order_id: Optional[str] = None) -> AssignmentLedger:
        if order_id is None:
            rows = self.db.execute_query("""
                SELECT order_id, agent_name, kind, occurred_at
                FROM assignment_history
                ORDER BY occurred_at, event_id
            """)
        else:
            rows = self.db.execute_query("""
                SELECT order_id, agent_name, kind, occurred_at
                FROM assignment_history
                WHERE order_id = %s
                ORDER BY occurred_at, event_id
            """, (order_id,))

        assignments = []
        completions = []
        for row in rows:
            if row['kind'] == EventKind.COMPLETED.value:
                completions.append(CompletionEvent(
                    order_id=row['order_id'],
                    agent_name=row['agent_name'],
                    completed_at=row['occurred_at'],
                ))
            else:
                assignments.append(AssignmentEvent(
                    order_id=row['order_id'],
                    agent_name=row['agent_name'],
                    assigned_at=row['occurred_at'],
                ))
        return AssignmentLedger(assignments, completions)

    # -- categories --

    def list_categories(self) -> List[OrderCategory]:
        rows = self.db.execute_query("SELECT name, tasks FROM order_categories ORDER BY position, name")
        return [OrderCategory(name=row['name'], tasks=row['tasks'] or []) for row in rows]

    def save_category(self, category: OrderCategory) -> OrderCategory:
        self.db.execute_update("""
            INSERT INTO order_categories (name, tasks, position)
            VALUES (%s, %s, (SELECT COALESCE(MAX(position), -1) + 1 FROM order_categories))
            ON CONFLICT (name) DO UPDATE SET tasks = EXCLUDED.tasks
        """, (category.name, Json(category.tasks)))
        return category

    def delete_category(self, name: str) -> None:
        if self.db.execute_update("DELETE FROM order_categories WHERE name = %s", (name,)) == 0:
            raise NotFoundError("Category", name)

    # -- change feed --

    def change_version(self) -> int:
        return self.db.notification_count()

    def wait_for_change(self, since: int, timeout: float = 0.0) -> int:
        if self.db.notification_count() == since:
            self.db.poll_notifications(timeout)
        return self.db.notification_count()
