"""
Core - settings and error types shared by every layer
"""

from revenue_engine.core.errors import (
    CommissionStateError,
    DuplicateLeadError,
    EntityNotFoundError,
    InvalidValueError,
    LeadValidationError,
    RevenueEngineError,
)
from revenue_engine.core.settings import Settings, get_settings

__all__ = [
    "CommissionStateError",
    "DuplicateLeadError",
    "EntityNotFoundError",
    "InvalidValueError",
    "LeadValidationError",
    "RevenueEngineError",
    "Settings",
    "get_settings",
]
