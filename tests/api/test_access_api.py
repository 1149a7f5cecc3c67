'''
Role guards and redirects, exercised through real routes.
'''
import pytest
import httpx

from tutor_hub_backend.database import models as db_models
from tutor_hub_backend.database.db_enums import UserRole
from tutor_hub_backend.services.security import JWTHandler
from tutor_hub_backend.services.user_service import UserService

from tests.constants import TEST_SUBJECT_ID


def auth_headers_for_user(user: db_models.Users) -> dict:
    token = JWTHandler.create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def new_teacher(user_service: UserService) -> db_models.Users:
    """A teacher who registered but never finished profile setup."""
    created = await user_service.create_user_with_profile(
        name="New Teacher", username="new_teacher", email="new.teacher@example.com",
        password="long-enough-password", role=UserRole.TEACHER,
    )
    return await user_service.get_user_by_id(created.id)


@pytest.mark.anyio
class TestRoleGuards:

    async def test_wrong_role_points_to_own_dashboard(self, client: httpx.AsyncClient, test_parent):
        response = await client.get("/admin/users/", headers=auth_headers_for_user(test_parent))

        assert response.status_code == 403
        assert response.headers["x-redirect-to"] == "/parents/dashboard"

    async def test_incomplete_profile_points_to_setup(self, client: httpx.AsyncClient, new_teacher):
        response = await client.get("/dashboard/", headers=auth_headers_for_user(new_teacher))

        assert response.status_code == 403
        assert response.json()["detail"] == "Please complete your profile first."
        assert response.headers["x-redirect-to"] == "/teachers/profile-setup"

    async def test_setup_routes_stay_open_while_incomplete(self, client: httpx.AsyncClient, new_teacher):
        response = await client.get("/profile/", headers=auth_headers_for_user(new_teacher))

        assert response.status_code == 200, response.json()
        assert response.json()["profile_completed"] is False
        assert response.json()["teacher_profile"]["status"] == "submitted"

    async def test_no_token(self, client: httpx.AsyncClient):
        response = await client.get("/dashboard/")
        assert response.status_code == 401

    async def test_inactive_user_token_is_rejected(self, client: httpx.AsyncClient, test_parent, db_session):
        test_parent.is_active = False
        await db_session.flush()

        response = await client.get("/dashboard/", headers=auth_headers_for_user(test_parent))
        assert response.status_code == 401


@pytest.mark.anyio
class TestProfileSetupAPI:

    async def test_teacher_setup_flow(self, client: httpx.AsyncClient, new_teacher, test_subject, test_admin):
        headers = auth_headers_for_user(new_teacher)

        step = await client.post(
            "/profile/setup/steps/3",
            json={"available_days": [1, 2], "available_time_start": "10:00", "available_time_end": "09:00"},
            headers=headers,
        )
        assert step.status_code == 422
        assert step.json()["step"] == 3

        response = await client.post(
            "/profile/setup/teacher",
            json={
                "phone": "+201009998887",
                "date_of_birth": "1990-05-17",
                "place_of_birth": "Alexandria",
                "education": [{"degree": "BSc Physics", "institution": "Cairo University"}],
                "subject_ids": [str(TEST_SUBJECT_ID)],
                "available_days": [2, 4],
            },
            headers=headers,
        )
        assert response.status_code == 200, response.json()
        assert response.json()["profile_completed"] is True

        dashboard = await client.get("/dashboard/", headers=headers)
        assert dashboard.status_code == 200, dashboard.json()
        assert dashboard.json()["role"] == "teacher"

    async def test_parent_cannot_use_teacher_setup(self, client: httpx.AsyncClient, test_parent):
        response = await client.post("/profile/setup/teacher", json={}, headers=auth_headers_for_user(test_parent))
        assert response.status_code == 403
        assert response.headers["x-redirect-to"] == "/parents/dashboard"


@pytest.mark.anyio
class TestDashboardAPI:

    async def test_parent_dashboard(self, client: httpx.AsyncClient, test_parent):
        response = await client.get("/dashboard/", headers=auth_headers_for_user(test_parent))

        assert response.status_code == 200, response.json()
        body = response.json()
        assert body["role"] == "parent"
        assert body["parent"]["children_count"] == 1
        assert "teacher" not in body

    async def test_admin_dashboard(self, client: httpx.AsyncClient, test_admin):
        response = await client.get("/dashboard/", headers=auth_headers_for_user(test_admin))

        assert response.status_code == 200, response.json()
        assert response.json()["admin"]["users_by_role"]["admin"] == 1
