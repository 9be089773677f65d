"""
Services package for OrderDesk.
"""

from .assignments import AssignmentLedger
from .catalog import CategoryCatalog, DEFAULT_CATEGORIES
from .dashboard import DashboardSession
from .directory import DirectoryService
from .orders import OrderService
from .store import OrderStore, InMemoryOrderStore, PostgresOrderStore

__all__ = [
    "AssignmentLedger",
    "CategoryCatalog",
    "DEFAULT_CATEGORIES",
    "DashboardSession",
    "DirectoryService",
    "OrderService",
    "OrderStore",
    "InMemoryOrderStore",
    "PostgresOrderStore",
]
