"""
CSV export of the order collection, one row per order.
"""

import csv
import io
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional

from orderdesk.models.domain import Order
from orderdesk.utils.config import settings

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "Ticket Number",
    "Customer Name",
    "Status",
    "Priority",
    "Type",
    "Assigned To",
    "Created Date",
    "Completed Date",
]


def _day(value: Optional[datetime]) -> str:
    return value.date().isoformat() if value else ""


def order_row(order: Order) -> List[str]:
    return [
        order.details.ticket_number or "",
        order.details.customer_name or "",
        order.status.value,
        order.priority.value,
        order.type,
        order.assigned_to or "",
        _day(order.created_at),
        _day(order.completed_at),
    ]


def export_orders_csv(orders: Iterable[Order]) -> str:
    """Render orders as CSV text; the header row is always present"""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    count = 0
    for order in orders:
        writer.writerow(order_row(order))
        count += 1
    logger.info(f"Exported {count} orders to CSV")
    return out.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"{settings.EXPORT_FILENAME_PREFIX}_{today.isoformat()}.csv"
