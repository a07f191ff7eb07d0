"""
Tests for apply_mutation: authorization, guards, side effects and idempotency
"""
from datetime import date

import pytest

from app.core.exceptions import (
    ConstraintViolation,
    Forbidden,
    NotFound,
    SelfModificationDenied,
)
from app.models.audit_log import AuditLog
from app.models.department import Department
from app.models.manager_department import ManagerDepartment
from app.models.master_data import Client, Job, Project, Service
from app.models.time_entry import TimeEntry
from app.models.user import Role, User
from app.services.access_service import get_visible
from app.services.department_scope import DepartmentScope
from app.services.manager_department_service import assign_departments
from app.services.mutation_service import apply_mutation
from app.services.time_entry_service import (
    get_entry_details,
    list_team_entries,
    list_user_entries,
)
from app.tests.helpers import make_entry, make_user
from app.utils.enums import AccessAction, ResourceType

INSERT = AccessAction.INSERT
UPDATE = AccessAction.UPDATE
DELETE = AccessAction.DELETE


def _audit_count(db, table_name, record_id):
    return db.query(AuditLog).filter(
        AuditLog.table_name == table_name,
        AuditLog.record_id == record_id,
    ).count()


def _entry_payload(catalog, **extra):
    payload = {
        "job_id": catalog["job"].id,
        "service_id": catalog["service"].id,
        "duration_minutes": 30,
        "entry_date": date(2026, 3, 3),
    }
    payload.update(extra)
    return payload


class TestIdempotentToggles:
    def test_deactivating_twice_writes_one_audit_row(self, db, admin, catalog):
        service_id = catalog["service"].id

        first = apply_mutation(db, admin, UPDATE, ResourceType.SERVICE, {"id": service_id, "active": False})
        second = apply_mutation(db, admin, UPDATE, ResourceType.SERVICE, {"id": service_id, "active": False})

        assert first.changed is True
        assert second.changed is False
        assert second.audit_entry_id is None
        assert _audit_count(db, "services", service_id) == 1

    def test_deleting_a_deleted_entry_is_a_no_op(self, db, super_admin, staff_a, catalog):
        entry = make_entry(db, staff_a, catalog["job"], catalog["service"])

        apply_mutation(db, super_admin, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})
        again = apply_mutation(db, super_admin, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})

        assert again.changed is False
        assert _audit_count(db, "time_entries", entry.id) == 1

    def test_owner_repeating_a_delete_is_a_no_op(self, db, staff_a, catalog):
        entry = make_entry(db, staff_a, catalog["job"], catalog["service"])

        first = apply_mutation(db, staff_a, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})
        deleted_at = db.get(TimeEntry, entry.id).deleted_at
        again = apply_mutation(db, staff_a, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})

        assert first.changed is True
        assert again.changed is False
        assert again.audit_entry_id is None
        assert db.get(TimeEntry, entry.id).deleted_at == deleted_at
        assert _audit_count(db, "time_entries", entry.id) == 1

    def test_repeat_delete_by_someone_else_stays_hidden(self, db, staff_a, staff_b, catalog):
        entry = make_entry(db, staff_b, catalog["job"], catalog["service"])
        apply_mutation(db, staff_b, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})

        with pytest.raises(NotFound):
            apply_mutation(db, staff_a, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})

    def test_same_role_for_self_is_a_no_op(self, db, admin):
        result = apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": admin.id, "role": "admin"})
        assert result.changed is False


class TestMasterData:
    def test_non_admins_cannot_write(self, db, manager, staff_a, catalog):
        with pytest.raises(Forbidden):
            apply_mutation(db, staff_a, INSERT, ResourceType.CLIENT, {"name": "Globex"})
        with pytest.raises(Forbidden):
            apply_mutation(db, manager, UPDATE, ResourceType.JOB, {"id": catalog["job"].id, "active": False})

    def test_deactivating_client_does_not_cascade(self, db, admin, staff_a, catalog):
        apply_mutation(db, admin, UPDATE, ResourceType.CLIENT, {"id": catalog["client"].id, "active": False})

        assert db.get(Project, catalog["project"].id).active is True
        assert db.get(Job, catalog["job"].id).active is True

        # Still individually active, so staff can look them up directly
        assert get_visible(db, staff_a, ResourceType.PROJECT, catalog["project"].id).name == "Website"
        assert get_visible(db, staff_a, ResourceType.JOB, catalog["job"].id).job_no == "J-100"
        with pytest.raises(NotFound):
            get_visible(db, staff_a, ResourceType.CLIENT, catalog["client"].id)
        assert get_visible(db, admin, ResourceType.CLIENT, catalog["client"].id).active is False

    def test_deleting_referenced_row_is_a_constraint_violation(self, db, admin, staff_a, catalog):
        make_entry(db, staff_a, catalog["job"], catalog["service"])

        with pytest.raises(ConstraintViolation, match="still in use"):
            apply_mutation(db, admin, DELETE, ResourceType.SERVICE, {"id": catalog["service"].id})

        assert db.get(Service, catalog["service"].id) is not None
        assert _audit_count(db, "services", catalog["service"].id) == 0

    def test_deleting_parent_with_children_is_a_constraint_violation(self, db, admin, catalog):
        with pytest.raises(ConstraintViolation):
            apply_mutation(db, admin, DELETE, ResourceType.CLIENT, {"id": catalog["client"].id})
        assert db.get(Client, catalog["client"].id) is not None

    def test_unreferenced_row_can_be_deleted(self, db, admin, catalog):
        result = apply_mutation(db, admin, DELETE, ResourceType.TASK, {"id": catalog["task"].id})
        log = db.get(AuditLog, result.audit_entry_id)
        assert log.action == "DELETE"
        assert log.old_data["name"] == "Coding"
        assert log.new_data is None

    def test_duplicate_name_is_a_constraint_violation(self, db, admin, catalog):
        with pytest.raises(ConstraintViolation, match="already exists"):
            apply_mutation(db, admin, INSERT, ResourceType.SERVICE, {"name": "Development"})

    def test_missing_row_is_not_found(self, db, admin):
        with pytest.raises(NotFound):
            apply_mutation(db, admin, UPDATE, ResourceType.CLIENT, {"id": 404, "active": False})


class TestTimeEntries:
    def test_insert_defaults_owner_and_department(self, db, staff_a, dept_a, catalog):
        result = apply_mutation(db, staff_a, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog))
        assert result.resource.user_id == staff_a.id
        assert result.resource.department_id == dept_a.id

    def test_cannot_log_time_for_someone_else(self, db, admin, staff_a, catalog):
        with pytest.raises(Forbidden):
            apply_mutation(db, admin, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog, user_id=staff_a.id))
        assert db.query(TimeEntry).count() == 0

    def test_cannot_file_entry_under_another_department(self, db, staff_c, manager, dept_a, catalog):
        with pytest.raises(Forbidden):
            apply_mutation(
                db, staff_c, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog, department_id=dept_a.id)
            )
        assert db.query(TimeEntry).count() == 0

        created = apply_mutation(db, staff_c, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog))
        assert created.resource.department_id == staff_c.department_id
        scope = DepartmentScope.for_session(db)
        assert list_team_entries(db, manager, scope) == []

    def test_super_admin_files_entry_under_any_active_department(self, db, super_admin, dept_c, catalog):
        result = apply_mutation(
            db, super_admin, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog, department_id=dept_c.id)
        )
        assert result.resource.department_id == dept_c.id

    def test_inactive_department_cannot_be_selected(self, db, super_admin, dept_c, catalog):
        dept_c.active = False
        db.commit()

        with pytest.raises(ConstraintViolation, match="Department is inactive"):
            apply_mutation(
                db, super_admin, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog, department_id=dept_c.id)
            )
        assert db.query(TimeEntry).count() == 0

    def test_inactive_selection_is_rejected(self, db, admin, staff_a, catalog):
        apply_mutation(db, admin, UPDATE, ResourceType.SERVICE, {"id": catalog["service"].id, "active": False})

        with pytest.raises(ConstraintViolation, match="inactive"):
            apply_mutation(db, staff_a, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog))
        assert db.query(TimeEntry).count() == 0

    def test_job_under_inactive_client_is_rejected(self, db, admin, staff_a, catalog):
        apply_mutation(db, admin, UPDATE, ResourceType.CLIENT, {"id": catalog["client"].id, "active": False})
        with pytest.raises(ConstraintViolation):
            apply_mutation(db, staff_a, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog))

    def test_foreign_entry_looks_missing_to_staff(self, db, staff_a, staff_b, catalog):
        entry = make_entry(db, staff_b, catalog["job"], catalog["service"])
        with pytest.raises(NotFound):
            apply_mutation(db, staff_a, UPDATE, ResourceType.TIME_ENTRY, {"id": entry.id, "duration_minutes": 5})
        with pytest.raises(NotFound):
            apply_mutation(db, staff_a, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})

    def test_admin_may_only_modify_own_entries(self, db, admin, super_admin, staff_a, catalog):
        entry = make_entry(db, staff_a, catalog["job"], catalog["service"])
        with pytest.raises(Forbidden):
            apply_mutation(db, admin, UPDATE, ResourceType.TIME_ENTRY, {"id": entry.id, "duration_minutes": 5})

        result = apply_mutation(db, super_admin, UPDATE, ResourceType.TIME_ENTRY, {"id": entry.id, "duration_minutes": 5})
        assert result.resource.duration_minutes == 5

    def test_soft_deleted_entry_is_visible_only_to_super_admin(self, db, super_admin, admin, staff_a, catalog):
        entry = make_entry(db, staff_a, catalog["job"], catalog["service"])
        apply_mutation(db, staff_a, DELETE, ResourceType.TIME_ENTRY, {"id": entry.id})

        with pytest.raises(NotFound):
            get_visible(db, staff_a, ResourceType.TIME_ENTRY, entry.id)
        with pytest.raises(NotFound):
            get_visible(db, admin, ResourceType.TIME_ENTRY, entry.id)
        assert get_visible(db, super_admin, ResourceType.TIME_ENTRY, entry.id).deleted_at is not None
        assert list_user_entries(db, staff_a) == []

    def test_historical_entry_survives_deactivation(self, db, admin, staff_a, catalog):
        entry = make_entry(db, staff_a, catalog["job"], catalog["service"], task=catalog["task"])

        for resource_type, key in (
            (ResourceType.SERVICE, "service"),
            (ResourceType.TASK, "task"),
            (ResourceType.JOB, "job"),
            (ResourceType.CLIENT, "client"),
        ):
            apply_mutation(db, admin, UPDATE, resource_type, {"id": catalog[key].id, "active": False})

        scope = DepartmentScope.for_session(db)
        details = get_entry_details(db, staff_a, entry.id, scope)
        assert details["service"]["name"] == "Development"
        assert details["task"]["name"] == "Coding"
        assert details["job"]["job_no"] == "J-100"
        assert details["client"]["name"] == "Acme"
        assert [e.id for e in list_user_entries(db, staff_a)] == [entry.id]

    def test_ownership_change_needs_super_admin(self, db, super_admin, staff_a, staff_b, catalog):
        entry = make_entry(db, staff_a, catalog["job"], catalog["service"])
        with pytest.raises(Forbidden):
            apply_mutation(db, staff_a, UPDATE, ResourceType.TIME_ENTRY, {"id": entry.id, "user_id": staff_b.id})

        result = apply_mutation(db, super_admin, UPDATE, ResourceType.TIME_ENTRY, {"id": entry.id, "user_id": staff_b.id})
        assert result.resource.user_id == staff_b.id


class TestUsers:
    def test_self_role_change_denied(self, db, super_admin):
        with pytest.raises(SelfModificationDenied):
            apply_mutation(db, super_admin, UPDATE, ResourceType.USER, {"id": super_admin.id, "role": "admin"})
        assert db.get(User, super_admin.id).role == "super_admin"

    def test_self_deactivation_and_self_delete_denied(self, db, admin):
        with pytest.raises(SelfModificationDenied):
            apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": admin.id, "is_active": False})
        with pytest.raises(SelfModificationDenied):
            apply_mutation(db, admin, DELETE, ResourceType.USER, {"id": admin.id})
        assert db.get(User, admin.id).is_active is True

    def test_admin_changes_another_users_role(self, db, admin, staff_a):
        result = apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": staff_a.id, "role": "admin"})
        assert result.resource.role == "admin"

    def test_admin_cannot_grant_super_admin(self, db, admin, staff_a, dept_a):
        with pytest.raises(Forbidden):
            apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": staff_a.id, "role": "super_admin"})
        with pytest.raises(Forbidden):
            apply_mutation(db, admin, INSERT, ResourceType.USER, {
                "email": "boss@example.com", "role": "super_admin", "department_id": dept_a.id,
            })

    def test_staff_edits_own_profile_but_not_role(self, db, staff_a):
        result = apply_mutation(db, staff_a, UPDATE, ResourceType.USER, {"id": staff_a.id, "display_name": "Ali"})
        assert result.resource.display_name == "Ali"
        with pytest.raises(Forbidden):
            apply_mutation(db, staff_a, UPDATE, ResourceType.USER, {"id": staff_a.id, "role": "manager"})

    def test_unchanged_privileged_fields_do_not_block_profile_edit(self, db, staff_a, dept_a):
        result = apply_mutation(db, staff_a, UPDATE, ResourceType.USER, {
            "id": staff_a.id,
            "display_name": "Alice B",
            "email": staff_a.email,
            "department_id": dept_a.id,
        })
        assert result.changed is True
        assert result.resource.display_name == "Alice B"

        with pytest.raises(Forbidden):
            apply_mutation(db, staff_a, UPDATE, ResourceType.USER, {
                "id": staff_a.id, "display_name": "Alice C", "email": "other@example.com",
            })
        assert db.get(User, staff_a.id).display_name == "Alice B"

    def test_becoming_manager_is_signalled(self, db, admin, staff_a):
        result = apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": staff_a.id, "role": "manager"})
        assert result.became_manager is True

    def test_role_change_away_from_manager_clears_assignments(self, db, admin, manager, dept_b):
        result = apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": manager.id, "role": "staff"})

        assert result.changed is True
        assert db.query(ManagerDepartment).filter(ManagerDepartment.manager_id == manager.id).count() == 0
        assert _audit_count(db, "users", manager.id) == 1

    def test_inactive_actor_cannot_mutate(self, db, dept_a, catalog):
        ghost = make_user(db, "ghost@example.com", Role.ADMIN, dept_a, is_active=False)
        with pytest.raises(Forbidden):
            apply_mutation(db, ghost, UPDATE, ResourceType.CLIENT, {"id": catalog["client"].id, "active": False})


class TestGuards:
    def test_reads_are_not_mutations(self, db, admin):
        with pytest.raises(ValueError):
            apply_mutation(db, admin, AccessAction.READ, ResourceType.CLIENT, {"id": 1})

    def test_audit_log_cannot_be_written(self, db, super_admin):
        with pytest.raises(Forbidden):
            apply_mutation(db, super_admin, INSERT, ResourceType.AUDIT_LOG, {"table_name": "x"})


def test_end_to_end_manager_scope_and_promotion(db, admin, dept_a, dept_b, dept_c, catalog):
    """Assign, log, review as a team, then promote the manager"""
    operations = Department(name="Operations", active=True)
    db.add(operations)
    db.commit()
    manager = make_user(db, "m@example.com", Role.MANAGER, operations)
    s1 = make_user(db, "s1@example.com", Role.STAFF, dept_a)
    s2 = make_user(db, "s2@example.com", Role.STAFF, dept_c)

    assign_departments(db, admin, manager.id, [dept_a.id, dept_b.id])

    e1 = apply_mutation(db, s1, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog)).resource
    e2 = apply_mutation(db, s2, INSERT, ResourceType.TIME_ENTRY, _entry_payload(catalog)).resource

    scope = DepartmentScope.for_session(db)
    seen = list_team_entries(db, manager, scope)
    assert [e.id for e in seen] == [e1.id]
    with pytest.raises(NotFound):
        get_visible(db, manager, ResourceType.TIME_ENTRY, e2.id, scope)
    with pytest.raises(Forbidden):
        list_team_entries(db, manager, scope, department_id=dept_c.id)

    before = _audit_count(db, "users", manager.id)
    apply_mutation(db, admin, UPDATE, ResourceType.USER, {"id": manager.id, "role": "admin"})

    assert db.query(ManagerDepartment).filter(ManagerDepartment.manager_id == manager.id).count() == 0
    assert _audit_count(db, "users", manager.id) == before + 1
    log = db.query(AuditLog).filter(
        AuditLog.table_name == "users", AuditLog.record_id == manager.id
    ).order_by(AuditLog.id.desc()).first()
    assert log.action == "UPDATE"
    assert log.old_data["role"] == "manager"
    assert log.new_data["role"] == "admin"
