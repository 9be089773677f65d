"""
Exception types shared across OrderDesk.
"""

from typing import Dict, Optional


class OrderDeskError(Exception):
    """Base class for all OrderDesk errors"""


class NotFoundError(OrderDeskError):
    """A referenced order, task, agent, department or category does not exist"""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class ValidationError(OrderDeskError):
    """
    Malformed user input.

    Carries a field -> message map so the input boundary can show each
    problem next to the offending field.
    """

    def __init__(self, message: str, errors: Optional[Dict[str, str]] = None):
        self.errors = errors or {}
        super().__init__(message)


class StoreError(OrderDeskError):
    """The backing store failed to complete an operation"""
