"""
Form Validation & Export Tests
"""

import csv
import io
import sys
import os
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

# Add the project root to the Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from orderdesk.models import (
    NewOrderForm,
    Order,
    OrderDetails,
    OrderDetailsForm,
    OrderStatus,
    parse_form,
)
from orderdesk.services.export import CSV_HEADER, export_filename, export_orders_csv
from orderdesk.utils.config import configure_logging, settings
from orderdesk.utils.errors import ValidationError


class TestNewOrderForm:
    """Order creation input"""

    def test_valid(self):
        form = parse_form(NewOrderForm, {
            "order_type": "SIP Trunk",
            "customer_name": "  Acme  ",
            "ticket_number": "00042",
            "assigned_to": "",
        })
        assert form.customer_name == "Acme"
        assert form.assigned_to is None

    @pytest.mark.parametrize("ticket", ["1234", "123456", "12a45", ""])
    def test_ticket_must_be_five_digits(self, ticket):
        with pytest.raises(ValidationError) as exc:
            parse_form(NewOrderForm, {"order_type": "SIP Trunk", "customer_name": "Acme", "ticket_number": ticket})
        assert exc.value.errors["ticket_number"] == "Ticket number must be exactly 5 digits"

    def test_customer_name_length(self):
        name = "x" * (settings.CUSTOMER_NAME_MAX_LENGTH + 1)
        with pytest.raises(ValidationError) as exc:
            parse_form(NewOrderForm, {"order_type": "SIP Trunk", "customer_name": name, "ticket_number": "12345"})
        assert "customer_name" in exc.value.errors

    def test_missing_fields(self):
        with pytest.raises(ValidationError) as exc:
            parse_form(NewOrderForm, {"order_type": "SIP Trunk"})
        assert {"customer_name", "ticket_number"} <= set(exc.value.errors)


class TestOrderDetailsForm:
    """Order detail edits"""

    @pytest.mark.parametrize("invoice", ["12345", "123456789012"])
    def test_invoice_lengths_accepted(self, invoice):
        assert parse_form(OrderDetailsForm, {"invoice_number": invoice}).invoice_number == invoice

    @pytest.mark.parametrize("invoice", ["1234", "1234567890123", "INV-12345"])
    def test_invoice_lengths_rejected(self, invoice):
        with pytest.raises(ValidationError):
            parse_form(OrderDetailsForm, {"invoice_number": invoice})

    def test_blank_invoice_clears_it(self):
        assert parse_form(OrderDetailsForm, {"invoice_number": "  "}).invoice_number is None

    def test_note_limit(self):
        parse_form(OrderDetailsForm, {"note": "x" * settings.NOTE_MAX_LENGTH})
        with pytest.raises(ValidationError):
            parse_form(OrderDetailsForm, {"note": "x" * (settings.NOTE_MAX_LENGTH + 1)})


class TestExport:
    """CSV export"""

    def test_empty_collection_has_header(self):
        text = export_orders_csv([])
        assert text.strip() == ",".join(CSV_HEADER)

    def test_one_row_per_order(self):
        orders = [
            Order(
                id="order-1",
                title="SIP Trunk - Acme, Inc",
                type="SIP Trunk",
                status=OrderStatus.COMPLETED,
                details=OrderDetails(customer_name="Acme, Inc", ticket_number="12345"),
                assigned_to="Ann",
                created_at=datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
                completed_at=datetime(2026, 3, 2, 17, 0, tzinfo=timezone.utc),
            ),
            Order(
                id="order-2",
                title="One Time Order - Globex",
                type="One Time Order",
                details=OrderDetails(customer_name="Globex", ticket_number="54321"),
                created_at=datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc),
            ),
        ]

        rows = list(csv.reader(io.StringIO(export_orders_csv(orders))))

        assert len(rows) == 3
        assert rows[1] == [
            "12345", "Acme, Inc", "completed", "medium", "SIP Trunk", "Ann", "2026-03-01", "2026-03-02"
        ]
        assert rows[2][5] == ""
        assert rows[2][7] == ""

    def test_filename(self):
        assert export_filename(date(2026, 3, 2)) == f"{settings.EXPORT_FILENAME_PREFIX}_2026-03-02.csv"


class TestConfig:
    """Settings and logging"""

    def test_defaults(self):
        assert settings.CUSTOMER_NAME_MAX_LENGTH == 32
        assert settings.NOTE_MAX_LENGTH == 128
        assert settings.DEFAULT_PRIORITY == "medium"

    def test_configure_logging_uses_level(self):
        with patch("orderdesk.utils.config.logging.basicConfig") as mock_basic:
            configure_logging("debug")
        assert mock_basic.call_args[1]["level"] == "DEBUG"
