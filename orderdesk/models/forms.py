"""
Form Models - Pydantic models for user input.

Everything a user types goes through one of these models before it
reaches the order service. Pydantic's own errors are converted into
OrderDesk's ValidationError with one message per offending field.
"""

import re
from typing import Any, Dict, List, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, Field, field_validator

from orderdesk.models.domain import Priority
from orderdesk.utils.config import settings
from orderdesk.utils.errors import ValidationError

TICKET_NUMBER_RE = re.compile(r"^\d{5}$")
INVOICE_NUMBER_RE = re.compile(r"^\d{5,12}$")

FormT = TypeVar("FormT", bound=BaseModel)


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class NewOrderForm(BaseModel):
    """Input for creating an order of a given category."""

    order_type: str = Field(..., min_length=1, description="Order category name")
    customer_name: str = Field(..., description="Customer name")
    ticket_number: str = Field(..., description="Five digit ticket number")
    custom_tasks: List[str] = Field(default_factory=list, description="Extra checklist items")
    priority: Optional[Priority] = Field(default=None, description="Defaults to DEFAULT_PRIORITY")
    assigned_to: Optional[str] = Field(default=None, description="Agent to assign on creation")

    @field_validator("customer_name")
    @classmethod
    def check_customer_name(cls, value: str) -> str:
        value = value.strip()
        if not value or len(value) > settings.CUSTOMER_NAME_MAX_LENGTH:
            raise ValueError(
                f"Customer name is required and must be at most "
                f"{settings.CUSTOMER_NAME_MAX_LENGTH} characters"
            )
        return value

    @field_validator("ticket_number")
    @classmethod
    def check_ticket_number(cls, value: str) -> str:
        value = value.strip()
        if not TICKET_NUMBER_RE.match(value):
            raise ValueError("Ticket number must be exactly 5 digits")
        return value

    @field_validator("custom_tasks")
    @classmethod
    def drop_blank_tasks(cls, value: List[str]) -> List[str]:
        return [task.strip() for task in value if task and task.strip()]

    @field_validator("assigned_to")
    @classmethod
    def blank_assignee(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class OrderDetailsForm(BaseModel):
    """Input for editing an existing order's invoice, note and priority."""

    invoice_number: Optional[str] = Field(default=None, description="5 to 12 digit invoice number")
    note: Optional[str] = Field(default=None, description="Free-text note")
    priority: Optional[Priority] = None

    @field_validator("invoice_number")
    @classmethod
    def check_invoice_number(cls, value: Optional[str]) -> Optional[str]:
        value = _blank_to_none(value)
        if value is not None and not INVOICE_NUMBER_RE.match(value):
            raise ValueError("Invoice number must be 5-12 digits")
        return value

    @field_validator("note")
    @classmethod
    def check_note(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > settings.NOTE_MAX_LENGTH:
            raise ValueError(f"Note must be at most {settings.NOTE_MAX_LENGTH} characters")
        return value or None


class DepartmentForm(BaseModel):
    """Input for creating a department."""

    name: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Department name is required")
        return value


class AgentForm(BaseModel):
    """Input for adding or editing an agent."""

    name: str
    department_name: str
    email: Optional[str] = None
    extension: Optional[str] = None

    @field_validator("name", "department_name")
    @classmethod
    def check_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("This field is required")
        return value

    @field_validator("email", "extension")
    @classmethod
    def blank_optional(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)


class CategoryForm(BaseModel):
    """Input for adding or editing an order category."""

    name: str
    tasks: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Category name is required")
        return value

    @field_validator("tasks")
    @classmethod
    def drop_blank_tasks(cls, value: List[str]) -> List[str]:
        return [task.strip() for task in value if task and task.strip()]


def parse_form(form_cls: Type[FormT], data: Dict[str, Any]) -> FormT:
    """
    Validate raw input against a form model.

    Raises:
        ValidationError: with a field -> message map if any field is invalid
    """
    try:
        return form_cls.model_validate(data)
    except pydantic.ValidationError as e:
        errors = {}
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "__root__"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            errors.setdefault(field, message)
        raise ValidationError(f"Invalid {form_cls.__name__}", errors) from e
