"""
Session validation through a protected endpoint (GET /api/v1/auth/me).

Missing, unknown, expired and inactive sessions are all 401 but carry
different error codes so the client knows whether to re-login.
"""
from datetime import timedelta

from app.services.session_store import utc_now

ME_URL = "/api/v1/auth/me"


def error_code(response):
    return response.json()["detail"]["error_code"]


class TestSessionValidation:

    def test_valid_bearer_token(self, client, teacher_user, teacher_headers):
        response = client.get(ME_URL, headers=teacher_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["userId"] == teacher_user.user_id
        assert data["role"] == "teacher"
        assert data["user"]["dashboardPath"] == "/teacher"

    def test_session_header(self, client, teacher_user):
        response = client.get(ME_URL, headers={"X-Session-Token": teacher_user.session_token})
        assert response.status_code == 200

    def test_session_cookie_from_login(self, client, teacher_user):
        login = client.post("/api/v1/auth/login", json={"username": "teacher_user", "password": "Secret123!"})
        assert login.status_code == 200
        assert "session-token" in login.cookies

        response = client.get(ME_URL)
        assert response.status_code == 200
        assert response.json()["data"]["username"] == "teacher_user"

    def test_missing_token(self, client):
        response = client.get(ME_URL)

        assert response.status_code == 401
        assert error_code(response) == "UNAUTHENTICATED"

    def test_unknown_token(self, client, teacher_user):
        response = client.get(ME_URL, headers={"Authorization": "Bearer not-a-real-token"})

        assert response.status_code == 401
        assert error_code(response) == "UNAUTHENTICATED"
        assert response.json()["detail"]["success"] is False

    def test_expired_session(self, client, test_db, teacher_user, teacher_headers):
        teacher_user.session_expires = utc_now() - timedelta(minutes=1)
        test_db.commit()

        response = client.get(ME_URL, headers=teacher_headers)

        assert response.status_code == 401
        assert error_code(response) == "SESSION_EXPIRED"

    def test_inactive_account(self, client, test_db, teacher_user, teacher_headers):
        teacher_user.is_active = False
        test_db.commit()

        response = client.get(ME_URL, headers=teacher_headers)

        assert response.status_code == 401
        assert error_code(response) == "ACCOUNT_INACTIVE"

    def test_validation_does_not_touch_the_session(self, client, test_db, teacher_user, teacher_headers):
        expires_before = teacher_user.session_expires

        client.get(ME_URL, headers=teacher_headers)
        test_db.refresh(teacher_user)

        assert teacher_user.session_expires == expires_before
        assert teacher_user.session_token == "token-teacher_user"

    def test_response_carries_tracking_headers(self, client, teacher_headers):
        response = client.get(ME_URL, headers=teacher_headers)

        assert "X-Request-ID" in response.headers
        assert "X-Response-Time" in response.headers


def test_health_check(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"
