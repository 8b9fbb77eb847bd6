from __future__ import annotations


class TicketServiceError(RuntimeError):
    """Base error for ticket lifecycle issues."""


class NotFoundError(TicketServiceError):
    """Raised when a ticket, customer or user reference does not resolve."""


class InvalidTransitionError(TicketServiceError):
    """Raised when a status change is not permitted from the current state."""


class MissingRequiredFieldError(TicketServiceError):
    """Raised when a transition is missing a field it cannot do without."""


class InvalidReferenceError(TicketServiceError):
    """Raised when a ticket would point at an inactive or unknown user."""


class ConstraintViolationError(TicketServiceError):
    """Raised when storage rejects a write on a uniqueness or foreign-key rule."""
