"""Route modules exposed by the API package."""

from . import directory, ping, reports, tickets

__all__ = ["directory", "ping", "reports", "tickets"]
