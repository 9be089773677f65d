"""
Category Catalog

Order categories and the task checklist each one starts with. Categories
live in the order store so every session sees the same definitions; the
defaults below are seeded into an empty store.
"""

import logging
from typing import Any, Dict, List, Optional

from orderdesk.models.domain import OrderCategory, TaskItem
from orderdesk.models.forms import CategoryForm, parse_form
from orderdesk.services.store import OrderStore
from orderdesk.utils.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES: List[OrderCategory] = [
    OrderCategory(name="SIP Trunk", tasks=[
        "CSA Signed",
        "Customer Created",
        "Account Created",
        "DID Provisioned",
        "Subscriptions Added",
        "Discounts Added",
        "Welcome Email Sent",
        "One time charges Invoiced",
        "Project Completed",
    ]),
    OrderCategory(name="RO Cloud CPS", tasks=[
        "CSA Signed",
        "Customer Created",
        "Accounts Created",
        "Inbound Routing Set",
        "Auto Attendant Set",
        "Phones Provisioned",
        "DID Provisioned",
        "Subscriptions Added",
        "Discounts Added",
        "Welcome Email Sent",
        "One time charges Invoiced",
        "Project Completed",
    ]),
    OrderCategory(name="3CX Cloud/On Prem", tasks=[
        "CSA Signed",
        "Customer Created",
        "Account Created",
        "DID Provisioned",
        "3CX Health & Performance Monitoring",
        "3CX License + Hosting",
        "Remote Phone System Configuration",
        "Subscriptions Added",
        "Discounts Added",
        "Welcome Email Sent",
        "One time charges Invoiced",
        "Project Completed",
    ]),
    OrderCategory(name="One Time Order", tasks=[
        "Ticket Created",
        "Customer Added in QB",
        "Invoice sent",
        "Payment Received",
        "Project Completed",
    ]),
]


class CategoryCatalog:
    """Reads and edits the persisted order categories"""

    def __init__(self, store: OrderStore):
        self.store = store

    def ensure_defaults(self) -> List[OrderCategory]:
        """Seed the default categories into a store that has none"""
        categories = self.store.list_categories()
        if categories:
            return categories
        for category in DEFAULT_CATEGORIES:
            self.store.save_category(category)
        logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} default order categories")
        return self.store.list_categories()

    def list_categories(self) -> List[OrderCategory]:
        return self.store.list_categories()

    def get(self, name: str) -> OrderCategory:
        for category in self.store.list_categories():
            if category.name == name:
                return category
        raise NotFoundError("Category", name)

    def add_category(self, data: Dict[str, Any]) -> OrderCategory:
        form = parse_form(CategoryForm, data)
        if any(c.name == form.name for c in self.store.list_categories()):
            raise ValidationError(
                f"Category already exists: {form.name}",
                {"name": "Category already exists"}
            )
        category = self.store.save_category(OrderCategory(name=form.name, tasks=form.tasks))
        logger.info(f"Added category {category.name} with {len(category.tasks)} tasks")
        return category

    def update_tasks(self, name: str, tasks: List[str]) -> OrderCategory:
        self.get(name)
        form = parse_form(CategoryForm, {"name": name, "tasks": tasks})
        return self.store.save_category(OrderCategory(name=form.name, tasks=form.tasks))

    def delete_category(self, name: str):
        self.store.delete_category(name)
        logger.info(f"Deleted category {name}")

    def build_tasks(self, name: str, custom_tasks: Optional[List[str]] = None) -> List[TaskItem]:
        """Fresh, incomplete checklist for a new order of this category"""
        texts = list(self.get(name).tasks) + list(custom_tasks or [])
        return [
            TaskItem(id=f"task-{index}", text=text, completed=False)
            for index, text in enumerate(texts)
        ]
