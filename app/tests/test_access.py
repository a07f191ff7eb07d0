"""
Tests for the access check endpoint
"""
from fastapi import status

from app.tests.helpers import auth_headers, make_entry


def _check(client, user, **body):
    return client.post("/api/v1/access/check", json=body, headers=auth_headers(user))


def test_manager_check_respects_department_scope(client, db, manager, staff_b, staff_c, catalog):
    in_scope = make_entry(db, staff_b, catalog["job"], catalog["service"])
    out_of_scope = make_entry(db, staff_c, catalog["job"], catalog["service"])

    response = _check(client, manager, action="read", resource_type="time_entries", resource_id=in_scope.id)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"allowed": True, "reason": None}

    response = _check(client, manager, action="read", resource_type="time_entries", resource_id=out_of_scope.id)
    assert response.json() == {"allowed": False, "reason": "not_found"}


def test_update_check_reports_forbidden_for_visible_row(client, db, manager, staff_b, catalog):
    entry = make_entry(db, staff_b, catalog["job"], catalog["service"])
    response = _check(client, manager, action="update", resource_type="time_entries", resource_id=entry.id)
    assert response.json() == {"allowed": False, "reason": "forbidden"}


def test_missing_row_reports_not_found(client, admin):
    response = _check(client, admin, action="update", resource_type="clients", resource_id=12345)
    assert response.json() == {"allowed": False, "reason": "not_found"}


def test_general_question_without_row(client, staff_a, admin):
    assert _check(client, staff_a, action="insert", resource_type="clients").json()["allowed"] is False
    assert _check(client, admin, action="insert", resource_type="clients").json()["allowed"] is True


def test_unknown_action_is_a_validation_error(client, admin):
    response = _check(client, admin, action="approve", resource_type="clients")
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
