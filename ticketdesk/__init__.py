"""Ticket lifecycle and audit service."""
