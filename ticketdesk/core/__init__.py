"""Configuration, logging, storage and error types shared across the service."""

from .config import Settings, get_settings
from .errors import (
    ConstraintViolationError,
    InvalidReferenceError,
    InvalidTransitionError,
    MissingRequiredFieldError,
    NotFoundError,
    TicketServiceError,
)

__all__ = [
    "Settings",
    "get_settings",
    "TicketServiceError",
    "NotFoundError",
    "InvalidTransitionError",
    "MissingRequiredFieldError",
    "InvalidReferenceError",
    "ConstraintViolationError",
]
