"""Field level audit trail for ticket mutations.

Every change produced by the state machine is described by a :class:`FieldChange`
keyed on a known :class:`AuditField`. The :class:`AuditRecorder` turns a batch of
changes into ``ticket_history`` rows inside the caller's open transaction, so the
history can never be committed without the ticket update that caused it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from packages.db.models import TicketHistoryTable

from .models import TicketHistoryEntry
from .state import TicketStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditField(str, Enum):
    """Ticket fields whose changes are written to the history table."""

    STATUS = "status"
    PENDING_REASON_ID = "pending_reason_id"
    CLOSING_REASON_ID = "closing_reason_id"
    ASSIGNED_TO = "assigned_to"
    SCHEDULED_DATE = "scheduled_date"
    SLA_DUE_DATE = "sla_due_date"
    CLOSED_AT = "closed_at"
    RESOLVED_AT = "resolved_at"


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with millisecond precision and a ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    rendered = value.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return rendered.replace("+00:00", "Z")


def _serialize_status(value: Any) -> str:
    return TicketStatus(value).value


def _serialize_id(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected an integer id, got {value!r}")
    return str(value)


def _serialize_timestamp(value: Any) -> str:
    if not isinstance(value, datetime):
        raise TypeError(f"Expected a datetime, got {value!r}")
    return format_timestamp(value)


_SERIALIZERS: Mapping[AuditField, Callable[[Any], str]] = {
    AuditField.STATUS: _serialize_status,
    AuditField.PENDING_REASON_ID: _serialize_id,
    AuditField.CLOSING_REASON_ID: _serialize_id,
    AuditField.ASSIGNED_TO: _serialize_id,
    AuditField.SCHEDULED_DATE: _serialize_timestamp,
    AuditField.SLA_DUE_DATE: _serialize_timestamp,
    AuditField.CLOSED_AT: _serialize_timestamp,
    AuditField.RESOLVED_AT: _serialize_timestamp,
}


def serialize_value(field: AuditField, value: Any) -> str | None:
    """Return the canonical string stored in the history table for ``value``."""

    if value is None:
        return None
    return _SERIALIZERS[field](value)


@dataclass(frozen=True, slots=True)
class FieldChange:
    """Old and new value of one ticket field within a single mutation.

    A change is a no-op only when the raw values are equal. Two timestamps that
    differ below the millisecond still produce a row even though their stored
    strings match. ``always_record`` keeps the entry even when nothing changed;
    closing an already closed ticket relies on it to append a fresh history row.
    """

    field: AuditField
    old_value: Any
    new_value: Any
    always_record: bool = False

    @property
    def serialized_old(self) -> str | None:
        return serialize_value(self.field, self.old_value)

    @property
    def serialized_new(self) -> str | None:
        return serialize_value(self.field, self.new_value)

    @property
    def is_noop(self) -> bool:
        return self.old_value == self.new_value


class AuditRecorder:
    """Write history rows for a batch of field changes."""

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utcnow

    def build_entries(
        self,
        *,
        ticket_id: int,
        actor_id: int,
        reason: str | None,
        changes: Sequence[FieldChange],
        recorded_at: datetime | None = None,
    ) -> list[TicketHistoryEntry]:
        """Return one entry per effective change, all sharing the same timestamp.

        ``recorded_at`` defaults to the recorder clock; the repository passes the
        mutation's ``updated_at`` so history and ticket agree on the instant.
        """

        recorded_at = recorded_at or self._clock()
        entries: list[TicketHistoryEntry] = []
        for change in changes:
            if change.is_noop and not change.always_record:
                logger.debug("Skipping unchanged field %s on ticket %s", change.field.value, ticket_id)
                continue
            entries.append(
                TicketHistoryEntry(
                    id=None,
                    ticket_id=ticket_id,
                    changed_by=actor_id,
                    field_name=change.field.value,
                    old_value=change.serialized_old,
                    new_value=change.serialized_new,
                    change_reason=reason,
                    created_at=recorded_at,
                )
            )
        return entries

    async def record_changes(
        self,
        session: AsyncSession,
        *,
        ticket_id: int,
        actor_id: int,
        reason: str | None,
        changes: Sequence[FieldChange],
        recorded_at: datetime | None = None,
    ) -> list[TicketHistoryEntry]:
        """Stage history rows on ``session``; the caller owns the transaction."""

        entries = self.build_entries(
            ticket_id=ticket_id, actor_id=actor_id, reason=reason, changes=changes, recorded_at=recorded_at
        )
        rows = [
            TicketHistoryTable(
                ticket_id=entry.ticket_id,
                changed_by=entry.changed_by,
                field_name=entry.field_name,
                old_value=entry.old_value,
                new_value=entry.new_value,
                change_reason=entry.change_reason,
                created_at=entry.created_at,
            )
            for entry in entries
        ]
        session.add_all(rows)
        await session.flush()
        for entry, row in zip(entries, rows):
            entry.id = row.id
        return entries
