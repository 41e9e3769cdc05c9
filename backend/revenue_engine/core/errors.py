"""
Engine error types

NotFound and Validation errors abort the single requested operation and
bubble up to the adapter (HTTP router, CLI) that invoked it.
"""

from enum import Enum
from typing import Any, List, Optional, Type


class RevenueEngineError(Exception):
    """Base class for all engine errors."""


class EntityNotFoundError(RevenueEngineError):
    """Raised when a referenced Lead/Activity/Policy/Commission/Campaign id does not exist."""
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class LeadValidationError(RevenueEngineError):
    """Raised when lead input is missing required fields."""
    def __init__(self, missing_fields: List[str]):
        self.missing_fields = missing_fields
        super().__init__(f"Missing required fields: {', '.join(missing_fields)}")


class InvalidValueError(RevenueEngineError):
    """Raised when a value cannot be parsed into its enum."""
    def __init__(self, field: str, value: Any, allowed: Optional[List[str]] = None):
        self.field = field
        self.value = value
        self.allowed = allowed or []
        message = f"Invalid {field}: {value}"
        if self.allowed:
            message += f". Allowed: {self.allowed}"
        super().__init__(message)


class DuplicateLeadError(RevenueEngineError):
    """Raised when a lead with the same phone or email already exists for the agent."""
    def __init__(self, existing_lead_id: str, phone: str, email: Optional[str] = None):
        self.existing_lead_id = existing_lead_id
        detail = f"phone {phone}" + (f" or email {email}" if email else "")
        super().__init__(f"Lead already exists with {detail} ({existing_lead_id})")


class CommissionStateError(RevenueEngineError):
    """Raised on an illegal commission status change."""


def parse_enum(enum_cls: Type[Enum], value: Any, field: str) -> Enum:
    """
    Parse a raw value (enum member, value or member name) into ``enum_cls``.

    Accepts "ISSUED", "issued" or PolicyStatus.ISSUED alike.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        raw = value.strip()
        try:
            return enum_cls(raw)
        except ValueError:
            pass
        try:
            return enum_cls[raw.upper()]
        except KeyError:
            pass
    raise InvalidValueError(field, value, [m.value for m in enum_cls])
