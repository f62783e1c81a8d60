"""
Test suite for IAM Role and Page endpoints.

Tests cover:
- POST/PUT/DELETE /roles (case-insensitive names, delete refused while in use)
- POST/DELETE /pages (unique paths)
- every write is audited
"""
from app.crud.audit_log import audit_log
from app.models.iam import RolePagePermission
from app.services.permission_resolver import PermissionResolver

ROLES_URL = "/api/v1/roles"
PAGES_URL = "/api/v1/pages"


class TestRoles:

    def test_list_roles_with_user_counts(self, client, admin_headers, teacher_user):
        response = client.get(ROLES_URL, headers=admin_headers)

        assert response.status_code == 200
        counts = {role["name"]: role["userCount"] for role in response.json()["data"]}
        assert counts["admin"] == 1
        assert counts["teacher"] == 1
        assert counts["director"] == 0

    def test_create_role(self, client, test_db, admin_headers):
        response = client.post(ROLES_URL, json={"name": "Partner", "description": "NGO partner"}, headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["data"]["name"] == "Partner"
        assert audit_log.count(test_db, action_type="role_created") == 1

    def test_create_duplicate_ignores_case(self, client, admin_headers):
        response = client.post(ROLES_URL, json={"name": "TEACHER"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["detail"]["error_code"] == "CONFLICT"

    def test_rename_conflict_ignores_case(self, client, roles, admin_headers):
        response = client.put(
            f"{ROLES_URL}/{roles['director'].role_id}", json={"name": "Teacher"}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_rename_keeps_permissions_and_is_audited(
        self, client, test_db, roles, pages, grant_page, admin_headers
    ):
        grant_page(roles["director"], pages["/reports"])

        response = client.put(
            f"{ROLES_URL}/{roles['director'].role_id}", json={"name": "Provincial Director"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert test_db.query(RolePagePermission).filter_by(role_id=roles["director"].role_id).count() == 1
        assert audit_log.count(test_db, action_type="role_renamed") == 1
        assert PermissionResolver(test_db).resolve("provincial director", "/reports") is True

    def test_same_name_is_not_audited(self, client, test_db, roles, admin_headers):
        response = client.put(
            f"{ROLES_URL}/{roles['director'].role_id}", json={"name": "director"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert audit_log.count(test_db) == 0

    def test_delete_refused_while_users_hold_role(self, client, roles, admin_headers, teacher_user):
        response = client.delete(f"{ROLES_URL}/{roles['teacher'].role_id}", headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["detail"]["details"]["userCount"] == 1

    def test_delete_unused_role_removes_its_permissions(
        self, client, test_db, roles, pages, grant_page, admin_headers
    ):
        director_id = roles["director"].role_id
        grant_page(roles["director"], pages["/reports"])

        response = client.delete(f"{ROLES_URL}/{director_id}", headers=admin_headers)

        assert response.status_code == 200
        assert test_db.query(RolePagePermission).filter_by(role_id=director_id).count() == 0
        assert audit_log.count(test_db, action_type="role_deleted") == 1

    def test_delete_unknown_role(self, client, admin_headers):
        assert client.delete(f"{ROLES_URL}/999", headers=admin_headers).status_code == 404

    def test_roles_require_admin(self, client, teacher_headers):
        assert client.get(ROLES_URL, headers=teacher_headers).status_code == 403


class TestPages:

    def test_create_page(self, client, test_db, pages, admin_headers):
        response = client.post(
            PAGES_URL,
            json={"pageName": "Attendance", "pagePath": "/attendance", "menuCategory": "Data"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["iconName"] == "FileText"
        assert data["menuCategory"] == "Data"
        assert audit_log.count(test_db, action_type="page_created") == 1

    def test_duplicate_path(self, client, pages, admin_headers):
        response = client.post(
            PAGES_URL, json={"pageName": "Schools again", "pagePath": "/schools"}, headers=admin_headers
        )

        assert response.status_code == 409

    def test_path_must_be_absolute(self, client, pages, admin_headers):
        response = client.post(PAGES_URL, json={"pageName": "Bad", "pagePath": "schools"}, headers=admin_headers)

        assert response.status_code == 422

    def test_delete_page_cascades_permissions(self, client, test_db, roles, pages, grant_page, admin_headers):
        grant_page(roles["teacher"], pages["/reports"])

        response = client.delete(f"{PAGES_URL}/3", headers=admin_headers)

        assert response.status_code == 200
        assert test_db.query(RolePagePermission).filter_by(page_id=3).count() == 0
        assert audit_log.count(test_db, action_type="page_deleted") == 1
