"""
Test suite for Page Permission endpoints.

Tests cover:
- GET /permissions/check and /permissions/user-pages (session and participant callers)
- PUT /permissions, /permissions/bulk, /permissions/actions (admin only, audited)
- GET /permissions/matrix and /permissions/audit
"""
import pytest
from sqlalchemy.exc import OperationalError

from app.crud.audit_log import audit_log
from app.models.audit_log import AuditLog
from app.models.iam import Role, RolePagePermission

BASE = "/api/v1/permissions"


def audit_count(db, action_type=None):
    return audit_log.count(db, action_type=action_type)


class TestCheck:

    def test_teacher_cannot_open_permission_admin(self, client, teacher_permissions, teacher_headers):
        response = client.get(
            f"{BASE}/check", params={"pagePath": "/settings/page-permissions"}, headers=teacher_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["hasAccess"] is False
        assert data["role"] == "teacher"
        assert data["userId"] == 2

    def test_teacher_granted_page(self, client, teacher_permissions, teacher_headers):
        response = client.get(
            f"{BASE}/check", params={"pagePath": "/students", "action": "view"}, headers=teacher_headers
        )
        assert response.json()["data"]["hasAccess"] is True

    def test_admin_checks_another_user(self, client, teacher_permissions, teacher_user, admin_headers):
        response = client.get(
            f"{BASE}/check",
            params={"pagePath": "/reports", "userId": teacher_user.user_id},
            headers=admin_headers,
        )

        data = response.json()["data"]
        assert data["role"] == "teacher"
        assert data["hasAccess"] is False

    def test_teacher_cannot_check_another_user(self, client, teacher_permissions, admin_user, teacher_headers):
        response = client.get(
            f"{BASE}/check",
            params={"pagePath": "/reports", "userId": admin_user.user_id},
            headers=teacher_headers,
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error_code"] == "FORBIDDEN"

    def test_unknown_target_user(self, client, roles, admin_headers):
        response = client.get(f"{BASE}/check", params={"pagePath": "/reports", "userId": 999}, headers=admin_headers)
        assert response.status_code == 404

    def test_no_identity_at_all(self, client, roles):
        response = client.get(f"{BASE}/check", params={"pagePath": "/reports"})
        assert response.status_code == 401


class TestParticipant:

    @pytest.fixture
    def participant_pages(self, test_db, roles, pages, grant_page):
        participant = Role(role_id=9, name="participant")
        test_db.add(participant)
        test_db.commit()
        grant_page(participant, pages["/training"])
        grant_page(participant, pages["/dashboard"])

    def test_participant_reads_own_pages(self, client, participant_pages):
        response = client.get(f"{BASE}/user-pages", headers={"X-Participant-Id": "P-0042"})

        assert response.status_code == 200
        items = response.json()["data"]
        assert [p["id"] for p in items] == [1, 5]
        assert items[0]["path"] == "/participant/dashboard"

    def test_participant_limited_to_view(self, client, participant_pages):
        headers = {"X-Participant-Id": "P-0042"}

        view = client.get(f"{BASE}/check", params={"pagePath": "/training", "action": "view"}, headers=headers)
        update = client.get(f"{BASE}/check", params={"pagePath": "/training", "action": "update"}, headers=headers)

        assert view.json()["data"]["hasAccess"] is True
        assert update.json()["data"]["hasAccess"] is False

    def test_participant_action_name_ignores_case(self, client, participant_pages):
        response = client.get(
            f"{BASE}/check", params={"pagePath": "/training", "action": "VIEW"}, headers={"X-Participant-Id": "P-0042"}
        )

        assert response.json()["data"]["hasAccess"] is True

    def test_participant_cannot_query_other_users(self, client, participant_pages, teacher_user):
        response = client.get(
            f"{BASE}/user-pages", params={"userId": teacher_user.user_id}, headers={"X-Participant-Id": "P-0042"}
        )
        assert response.status_code == 403

    def test_participant_cannot_write(self, client, participant_pages):
        response = client.put(
            BASE,
            json={"role": "participant", "pageId": 3, "isAllowed": True},
            headers={"X-Participant-Id": "P-0042"},
        )
        assert response.status_code == 401


class TestUserPages:

    def test_teacher_pages_in_menu_order(self, client, teacher_permissions, teacher_headers):
        response = client.get(f"{BASE}/user-pages", headers=teacher_headers)

        assert response.status_code == 200
        assert [p["id"] for p in response.json()["data"]] == [1, 2, 5, 8]


class TestUpdate:

    def test_teacher_cannot_update(self, client, teacher_permissions, teacher_headers):
        response = client.put(BASE, json={"role": "teacher", "pageId": 3, "isAllowed": True}, headers=teacher_headers)

        assert response.status_code == 403

    def test_update_is_idempotent(self, client, test_db, teacher_permissions, admin_headers):
        payload = {"role": "teacher", "pageId": 3, "isAllowed": True}

        first = client.put(BASE, json=payload, headers=admin_headers)
        second = client.put(BASE, json=payload, headers=admin_headers)

        assert first.status_code == second.status_code == 200
        assert first.json()["data"]["changed"] is True
        assert first.json()["data"]["previous"] is False
        assert second.json()["data"]["changed"] is False
        assert second.json()["message"] == "Permission unchanged"
        assert audit_count(test_db, "permission_changed") == 1

        entry = test_db.query(AuditLog).one()
        assert entry.role_id == 2
        assert entry.page_id == 3
        assert entry.audit_data == {"before": {"isAllowed": False}, "after": {"isAllowed": True}}

    def test_update_then_check(self, client, teacher_permissions, admin_headers, teacher_headers):
        client.put(BASE, json={"role": "Teacher", "pageId": 4, "isAllowed": True}, headers=admin_headers)

        response = client.get(
            f"{BASE}/check", params={"pagePath": "/settings/page-permissions"}, headers=teacher_headers
        )
        assert response.json()["data"]["hasAccess"] is True

    def test_unknown_role(self, client, teacher_permissions, admin_headers):
        response = client.put(BASE, json={"role": "ghost", "pageId": 3, "isAllowed": True}, headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["detail"]["error_code"] == "NOT_FOUND"

    def test_audit_failure_is_reported_not_fatal(self, client, test_db, teacher_permissions, admin_headers, monkeypatch):
        def broken_create(*args, **kwargs):
            raise OperationalError("INSERT INTO permission_audit_log", {}, Exception("disk full"))

        monkeypatch.setattr(audit_log, "create", broken_create)

        response = client.put(BASE, json={"role": "teacher", "pageId": 3, "isAllowed": True}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["warnings"] == ["AUDIT_WRITE_FAILED"]
        row = test_db.query(RolePagePermission).filter_by(role_id=2, page_id=3).one()
        assert row.is_allowed is True


class TestBulk:

    def test_bulk_audits_changed_cells_only(self, client, test_db, teacher_permissions, admin_headers):
        payload = {
            "role": "teacher",
            "permissions": [
                {"pageId": 2, "isAllowed": True},
                {"pageId": 3, "isAllowed": True},
                {"pageId": 6, "isAllowed": True},
            ],
        }

        response = client.put(f"{BASE}/bulk", json=payload, headers=admin_headers)

        assert response.status_code == 200
        assert [c["changed"] for c in response.json()["data"]] == [False, True, True]
        assert response.json()["message"] == "2 permission(s) changed"
        assert audit_count(test_db, "permission_changed") == 2

    def test_bulk_unknown_page_applies_nothing(self, client, test_db, teacher_permissions, admin_headers):
        payload = {"role": "teacher", "permissions": [{"pageId": 6, "isAllowed": True}, {"pageId": 999, "isAllowed": True}]}

        response = client.put(f"{BASE}/bulk", json=payload, headers=admin_headers)

        assert response.status_code == 404
        assert test_db.query(RolePagePermission).filter_by(role_id=2, page_id=6).count() == 0
        assert audit_count(test_db) == 0


class TestActions:

    def test_action_override(self, client, test_db, teacher_permissions, admin_headers, teacher_headers):
        response = client.put(
            f"{BASE}/actions",
            json={"role": "teacher", "pageId": 8, "actionName": "DELETE", "isAllowed": False},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["actionName"] == "delete"
        assert audit_count(test_db, "action_permission_changed") == 1

        check = client.get(
            f"{BASE}/check", params={"pagePath": "/students", "action": "delete"}, headers=teacher_headers
        )
        assert check.json()["data"]["hasAccess"] is False

    def test_invalid_action(self, client, teacher_permissions, admin_headers):
        response = client.put(
            f"{BASE}/actions",
            json={"role": "teacher", "pageId": 8, "actionName": "approve", "isAllowed": True},
            headers=admin_headers,
        )
        assert response.status_code == 422


class TestMatrixAndAudit:

    def test_matrix_requires_admin(self, client, teacher_permissions, teacher_headers):
        response = client.get(f"{BASE}/matrix", headers=teacher_headers)
        assert response.status_code == 403

    def test_matrix_for_admin(self, client, teacher_permissions, admin_headers):
        response = client.get(f"{BASE}/matrix", headers=admin_headers)

        assert response.status_code == 200
        role_names = [row["roleName"] for row in response.json()["data"]]
        assert role_names == ["admin", "coordinator", "director", "teacher"]

    def test_audit_trail_filtered_and_paginated(self, client, teacher_permissions, admin_headers):
        for page_id in (3, 4, 6):
            client.put(BASE, json={"role": "teacher", "pageId": page_id, "isAllowed": True}, headers=admin_headers)
        client.put(BASE, json={"role": "director", "pageId": 3, "isAllowed": True}, headers=admin_headers)

        response = client.get(f"{BASE}/audit", params={"roleId": 2, "limit": 2}, headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["meta"]["total"] == 3
        assert body["meta"]["has_next"] is True
        assert [entry["pageId"] for entry in body["data"]] == [6, 4]

    def test_audit_trail_requires_admin(self, client, teacher_permissions, teacher_headers):
        assert client.get(f"{BASE}/audit", headers=teacher_headers).status_code == 403

    def test_audit_trail_empty_when_table_absent(self, client, test_db, teacher_permissions, admin_headers):
        AuditLog.__table__.drop(bind=test_db.get_bind())

        response = client.get(f"{BASE}/audit", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["meta"]["total"] == 0

    def test_audit_trail_unreachable_store(self, client, teacher_permissions, admin_headers, monkeypatch):
        def broken_read(*args, **kwargs):
            raise OperationalError("SELECT permission_audit_log", {}, Exception("server closed the connection"))

        monkeypatch.setattr(audit_log, "_filtered", broken_read)

        response = client.get(f"{BASE}/audit", headers=admin_headers)

        assert response.status_code == 500
        assert response.json()["detail"]["error_code"] == "STORAGE_UNAVAILABLE"
