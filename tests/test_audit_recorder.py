from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ticketdesk.tickets.audit import AuditField, AuditRecorder, FieldChange, format_timestamp, serialize_value
from ticketdesk.tickets.state import TicketStatus

STAMP = datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)


def test_format_timestamp_uses_milliseconds_and_z_suffix():
    value = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)
    assert format_timestamp(value) == "2024-01-02T03:04:05.678Z"


def test_format_timestamp_converts_offsets_to_utc():
    plus_two = timezone(timedelta(hours=2))
    assert format_timestamp(datetime(2024, 1, 1, 2, 0, tzinfo=plus_two)) == "2024-01-01T00:00:00.000Z"


def test_serialize_value_per_field():
    assert serialize_value(AuditField.STATUS, TicketStatus.IN_PROGRESS) == "in_progress"
    assert serialize_value(AuditField.PENDING_REASON_ID, 7) == "7"
    assert serialize_value(AuditField.SLA_DUE_DATE, STAMP) == "2024-01-01T00:00:00.000Z"
    assert serialize_value(AuditField.ASSIGNED_TO, None) is None


def test_serialize_value_rejects_wrong_types():
    with pytest.raises(TypeError):
        serialize_value(AuditField.ASSIGNED_TO, "7")
    with pytest.raises(TypeError):
        serialize_value(AuditField.CLOSED_AT, "2024-01-01")


def test_build_entries_skips_noops_and_shares_timestamp():
    recorder = AuditRecorder(clock=lambda: STAMP)
    entries = recorder.build_entries(
        ticket_id=5,
        actor_id=9,
        reason="Customer asked to wait",
        changes=[
            FieldChange(AuditField.STATUS, TicketStatus.OPEN, TicketStatus.PENDING),
            FieldChange(AuditField.ASSIGNED_TO, 3, 3),
            FieldChange(AuditField.PENDING_REASON_ID, None, 1),
        ],
    )

    assert [entry.field_name for entry in entries] == ["status", "pending_reason_id"]
    assert {entry.created_at for entry in entries} == {STAMP}
    assert all(entry.changed_by == 9 and entry.ticket_id == 5 for entry in entries)
    assert entries[0].old_value == "open"
    assert entries[0].new_value == "pending"
    assert entries[1].old_value is None
    assert entries[1].new_value == "1"
    assert entries[1].change_reason == "Customer asked to wait"


def test_build_entries_keeps_always_recorded_noops():
    recorder = AuditRecorder(clock=lambda: STAMP)
    entries = recorder.build_entries(
        ticket_id=1,
        actor_id=1,
        reason=None,
        changes=[FieldChange(AuditField.STATUS, TicketStatus.CLOSED, TicketStatus.CLOSED, always_record=True)],
    )

    assert len(entries) == 1
    assert entries[0].old_value == entries[0].new_value == "closed"
    assert entries[0].change_reason is None


def test_build_entries_with_empty_changes():
    recorder = AuditRecorder(clock=lambda: STAMP)
    assert recorder.build_entries(ticket_id=1, actor_id=1, reason=None, changes=[]) == []


def test_sub_millisecond_timestamp_change_is_recorded():
    later = STAMP + timedelta(microseconds=400)
    change = FieldChange(AuditField.SCHEDULED_DATE, STAMP, later)

    assert change.serialized_old == change.serialized_new
    assert not change.is_noop

    entries = AuditRecorder(clock=lambda: STAMP).build_entries(ticket_id=1, actor_id=1, reason=None, changes=[change])
    assert len(entries) == 1


def test_equal_instants_in_other_offsets_are_noops():
    plus_two = timezone(timedelta(hours=2))
    change = FieldChange(AuditField.SLA_DUE_DATE, STAMP, STAMP.astimezone(plus_two))

    assert change.is_noop


def test_build_entries_prefers_explicit_recorded_at():
    mutated_at = STAMP + timedelta(minutes=5)
    recorder = AuditRecorder(clock=lambda: STAMP)

    entries = recorder.build_entries(
        ticket_id=1,
        actor_id=1,
        reason=None,
        changes=[FieldChange(AuditField.STATUS, TicketStatus.OPEN, TicketStatus.RESOLVED)],
        recorded_at=mutated_at,
    )

    assert entries[0].created_at == mutated_at
