"""
Tests for audit completeness, atomicity and audit read access
"""
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.core.exceptions import AuditWriteFailed
from app.models.audit_log import AuditAction, AuditLog
from app.models.master_data import Service
from app.models.time_entry import TimeEntry
from app.services import audit_service
from app.services.audit_service import (
    get_audit_logs_by_date_range,
    get_audit_logs_by_user,
    get_audit_logs_for_record,
    list_audit_logs,
    record_mutation,
)
from app.services.mutation_service import apply_mutation
from app.utils.enums import AccessAction, ResourceType

TIMESTAMPS = ("created_at", "updated_at")


def _admin_reader():
    return SimpleNamespace(id=0, role="super_admin", department_id=None, is_active=True)


def _without_timestamps(data):
    return {k: v for k, v in data.items() if k not in TIMESTAMPS}


def _log_entry(db, actor, catalog, minutes=45):
    return apply_mutation(db, actor, AccessAction.INSERT, ResourceType.TIME_ENTRY, {
        "job_id": catalog["job"].id,
        "service_id": catalog["service"].id,
        "duration_minutes": minutes,
        "entry_date": date(2026, 3, 2),
    })


def test_insert_then_soft_delete_yields_two_audit_rows(db, staff_a, catalog):
    created = _log_entry(db, staff_a, catalog)
    entry_id = created.resource.id

    deleted = apply_mutation(db, staff_a, AccessAction.DELETE, ResourceType.TIME_ENTRY, {"id": entry_id})

    logs = get_audit_logs_for_record(db, _admin_reader(), "time_entries", entry_id)
    assert [log.action for log in reversed(logs)] == ["INSERT", "DELETE"]
    insert_log, delete_log = reversed(logs)

    assert insert_log.id == created.audit_entry_id
    assert delete_log.id == deleted.audit_entry_id
    assert insert_log.old_data is None
    assert insert_log.new_data["duration_minutes"] == 45
    assert insert_log.new_data["user_id"] == staff_a.id
    assert delete_log.new_data is None
    assert _without_timestamps(delete_log.old_data) == _without_timestamps(insert_log.new_data)
    assert delete_log.user_id == staff_a.id
    assert delete_log.actor_id == staff_a.id

    # Soft delete keeps the row
    row = db.get(TimeEntry, entry_id)
    assert row is not None and row.deleted_at is not None


def test_update_records_full_rows(db, staff_a, catalog):
    created = _log_entry(db, staff_a, catalog)
    result = apply_mutation(db, staff_a, AccessAction.UPDATE, ResourceType.TIME_ENTRY, {
        "id": created.resource.id,
        "duration_minutes": 90,
    })

    log = db.get(AuditLog, result.audit_entry_id)
    assert log.action == AuditAction.UPDATE.value
    assert log.old_data["duration_minutes"] == 45
    assert log.new_data["duration_minutes"] == 90
    # Full rows, not diffs
    assert set(log.old_data) == set(log.new_data)
    assert "job_id" in log.new_data


def test_every_mutation_has_exactly_one_audit_row(db, admin, catalog):
    service_id = catalog["service"].id
    apply_mutation(db, admin, AccessAction.UPDATE, ResourceType.SERVICE, {"id": service_id, "active": False})
    apply_mutation(db, admin, AccessAction.UPDATE, ResourceType.SERVICE, {"id": service_id, "name": "Dev"})
    created = apply_mutation(db, admin, AccessAction.INSERT, ResourceType.SERVICE, {"name": "QA"})

    assert db.query(AuditLog).filter(AuditLog.record_id == service_id, AuditLog.table_name == "services").count() == 2
    assert db.query(AuditLog).filter(AuditLog.record_id == created.resource.id, AuditLog.table_name == "services").count() == 1


def test_password_hash_never_reaches_the_audit_log(db, super_admin, dept_a):
    result = apply_mutation(db, super_admin, AccessAction.INSERT, ResourceType.USER, {
        "email": "new@example.com",
        "role": "staff",
        "department_id": dept_a.id,
        "password_hash": "not-a-real-hash",
    })
    log = db.get(AuditLog, result.audit_entry_id)
    assert "password_hash" not in log.new_data
    assert log.new_data["email"] == "new@example.com"


def test_failed_audit_write_rolls_back_insert(db, staff_a, catalog, monkeypatch):
    def failing(*args, **kwargs):
        raise AuditWriteFailed()

    monkeypatch.setattr(audit_service, "record_mutation", failing)

    with pytest.raises(AuditWriteFailed):
        _log_entry(db, staff_a, catalog)

    assert db.query(TimeEntry).count() == 0
    assert db.query(AuditLog).count() == 0


def test_failed_audit_write_rolls_back_update(db, admin, catalog, monkeypatch):
    service_id = catalog["service"].id

    def failing(*args, **kwargs):
        raise AuditWriteFailed()

    monkeypatch.setattr(audit_service, "record_mutation", failing)

    with pytest.raises(AuditWriteFailed):
        apply_mutation(db, admin, AccessAction.UPDATE, ResourceType.SERVICE, {"id": service_id, "active": False})

    assert db.get(Service, service_id).active is True
    assert db.query(AuditLog).count() == 0


def test_malformed_entries_are_rejected(db, admin):
    with pytest.raises(AuditWriteFailed):
        record_mutation(db, "clients", 1, AuditAction.INSERT, {"id": 1}, {"id": 1}, admin.id)
    with pytest.raises(AuditWriteFailed):
        record_mutation(db, "clients", 1, AuditAction.DELETE, {"id": 1}, {"id": 1}, admin.id)
    with pytest.raises(AuditWriteFailed):
        record_mutation(db, "clients", 1, AuditAction.UPDATE, None, {"id": 1}, admin.id)


def test_audit_reads_empty_for_staff_and_managers(db, staff_a, manager, admin, catalog):
    _log_entry(db, staff_a, catalog)

    assert list_audit_logs(db, staff_a) == []
    assert list_audit_logs(db, manager) == []
    assert get_audit_logs_by_user(db, staff_a, staff_a.id) == []
    assert len(list_audit_logs(db, admin)) == 1


def test_audit_reads_filter_and_order_newest_first(db, admin, staff_a, catalog):
    first = _log_entry(db, staff_a, catalog, minutes=10)
    second = _log_entry(db, staff_a, catalog, minutes=20)

    logs = list_audit_logs(db, admin, table_name=ResourceType.TIME_ENTRY)
    assert [log.record_id for log in logs] == [second.resource.id, first.resource.id]

    by_user = get_audit_logs_by_user(db, admin, staff_a.id)
    assert len(by_user) == 2

    now = datetime.now(timezone.utc)
    in_range = get_audit_logs_by_date_range(db, admin, now - timedelta(hours=1), now + timedelta(hours=1))
    assert len(in_range) == 2

    assert len(list_audit_logs(db, admin, limit=1)) == 1

def test_setting_deleted_at_through_update_is_audited_as_delete(db, staff_a, catalog):
    created = _log_entry(db, staff_a, catalog)
    result = apply_mutation(db, staff_a, AccessAction.UPDATE, ResourceType.TIME_ENTRY, {
        "id": created.resource.id,
        "deleted_at": datetime.now(timezone.utc),
    })

    log = db.get(AuditLog, result.audit_entry_id)
    assert log.action == AuditAction.DELETE.value
    assert log.old_data["deleted_at"] is None
    assert log.new_data is None
