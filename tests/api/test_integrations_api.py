'''
Endpoints backed by outbound HTTP integrations (Quran.com, the Cloudflare D1 worker).
Both clients are swapped for ones running on an in-process httpx transport.
'''
import pytest
import httpx

from tutor_hub_backend.main import app
from tutor_hub_backend.database import models as db_models
from tutor_hub_backend.services.security import JWTHandler
from tutor_hub_backend.services.quran_service import QuranService, get_quran_service
from tutor_hub_backend.services.cloudflare_service import CloudflareD1Service, get_cloudflare_service


def auth_headers_for_user(user: db_models.Users) -> dict:
    token = JWTHandler.create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


def quran_api(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/chapters"):
        return httpx.Response(200, json={"chapters": [
            {"id": 1, "name_simple": "Al-Fatihah", "translated_name": {"name": "The Opener"}},
            {"id": 2, "name_simple": "Al-Baqarah", "translated_name": {"name": "The Cow"}},
        ]})
    return httpx.Response(500, json={})


@pytest.fixture
def use_quran_api(client, cache):
    app.dependency_overrides[get_quran_service] = lambda: QuranService(
        cache, base_url="https://quran.test/api/v4", transport=httpx.MockTransport(quran_api)
    )


@pytest.fixture
def use_d1_worker(client):
    """Points the D1 client at a handler the test provides."""
    def install(handler):
        app.dependency_overrides[get_cloudflare_service] = lambda: CloudflareD1Service(
            base_url="https://worker.test", transport=httpx.MockTransport(handler)
        )
    return install


@pytest.mark.anyio
class TestQuranAPI:

    async def test_chapters_search(self, client: httpx.AsyncClient, use_quran_api, test_parent):
        response = await client.get(
            "/quran/chapters", params={"search": "cow"}, headers=auth_headers_for_user(test_parent)
        )

        assert response.status_code == 200, response.json()
        assert [c["id"] for c in response.json()] == [2]

    async def test_chapter_out_of_range(self, client: httpx.AsyncClient, use_quran_api, test_parent):
        response = await client.get("/quran/chapters/0", headers=auth_headers_for_user(test_parent))
        assert response.status_code == 404

    async def test_upstream_failure_is_a_bad_gateway(self, client: httpx.AsyncClient, use_quran_api, test_parent):
        response = await client.get("/quran/tafsirs", headers=auth_headers_for_user(test_parent))
        assert response.status_code == 502

    async def test_requires_login(self, client: httpx.AsyncClient, use_quran_api):
        response = await client.get("/quran/chapters")
        assert response.status_code == 401


@pytest.mark.anyio
class TestCloudflareUsersAPI:

    async def test_list_users(self, client: httpx.AsyncClient, use_d1_worker, test_admin):
        use_d1_worker(lambda request: httpx.Response(200, json={"data": [{"id": 1, "name": "Amr"}]}))

        response = await client.get("/cloudflare/users/", headers=auth_headers_for_user(test_admin))

        assert response.status_code == 200, response.json()
        assert response.json() == [{"id": 1, "name": "Amr"}]

    async def test_worker_error_is_a_bad_gateway(self, client: httpx.AsyncClient, use_d1_worker, test_admin):
        use_d1_worker(lambda request: httpx.Response(400, json={"error": "Email already exists"}))

        response = await client.post(
            "/cloudflare/users/",
            json={"name": "Amr", "email": "amr@example.com"},
            headers=auth_headers_for_user(test_admin),
        )

        assert response.status_code == 502
        assert response.json() == {"detail": "Failed to create user: Email already exists"}

    async def test_admins_only(self, client: httpx.AsyncClient, use_d1_worker, test_teacher):
        use_d1_worker(lambda request: httpx.Response(200, json={"data": []}))

        response = await client.get("/cloudflare/users/", headers=auth_headers_for_user(test_teacher))

        assert response.status_code == 403
        assert response.headers["x-redirect-to"] == "/teachers/dashboard"
