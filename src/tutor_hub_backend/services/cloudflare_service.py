'''
Client for the Cloudflare worker that fronts the D1 users table.
'''
from typing import Any, Optional

import httpx

from ..common.config import settings
from ..common.exceptions import CloudflareD1Error
from ..common.logger import log

UNKNOWN_ERROR = "Unknown error occurred"
UNEXPECTED_RESPONSE = "Unexpected response from the worker"


class CloudflareD1Service:
    """
    Thin async wrapper around the worker's /api/users endpoints.
    Every failure, upstream or transport, surfaces as CloudflareD1Error
    with a "Failed to <action>: <reason>" message.
    """
    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.CLOUDFLARE_WORKER_URL).rstrip("/")
        self._transport = transport

    @staticmethod
    def _upstream_error(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return UNKNOWN_ERROR
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return UNKNOWN_ERROR

    async def _request(self, action: str, method: str, path: str, payload: dict | None = None) -> Any:
        url = f"{self.base_url}/api/users{path}"
        try:
            async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT, transport=self._transport) as client:
                response = await client.request(method, url, json=payload)
        except httpx.RequestError as e:
            log.error(f"Cloudflare worker unreachable while trying to {action}: {e}", exc_info=True)
            raise CloudflareD1Error(f"Failed to {action}: {e}") from e

        if not response.is_success:
            reason = self._upstream_error(response)
            log.warning(f"Cloudflare worker answered {response.status_code} while trying to {action}: {reason}")
            raise CloudflareD1Error(f"Failed to {action}: {reason}")
        try:
            body = response.json()
        except ValueError as e:
            raise CloudflareD1Error(f"Failed to {action}: {UNKNOWN_ERROR}") from e
        if not isinstance(body, dict):
            log.warning(f"Cloudflare worker sent a {type(body).__name__} body while trying to {action}.")
            raise CloudflareD1Error(f"Failed to {action}: {UNEXPECTED_RESPONSE}")
        return body

    async def _fetch_data(self, action: str, path: str) -> Any:
        body = await self._request(action, "GET", path)
        if "data" not in body:
            log.warning(f"Cloudflare worker response without 'data' while trying to {action}.")
            raise CloudflareD1Error(f"Failed to {action}: {UNEXPECTED_RESPONSE}")
        return body["data"]

    async def get_all_users(self) -> list[dict]:
        return await self._fetch_data("fetch users", "")

    async def get_user_by_id(self, user_id: int | str) -> dict:
        return await self._fetch_data("fetch user", f"/{user_id}")

    async def create_user(self, name: str, email: str) -> dict:
        log.info(f"Creating D1 user {email}")
        return await self._request("create user", "POST", "", {"name": name, "email": email})

    async def update_user(self, user_id: int | str, data: dict) -> dict:
        log.info(f"Updating D1 user {user_id}")
        return await self._request("update user", "PUT", f"/{user_id}", data)

    async def delete_user(self, user_id: int | str) -> dict:
        log.info(f"Deleting D1 user {user_id}")
        return await self._request("delete user", "DELETE", f"/{user_id}")


def get_cloudflare_service() -> CloudflareD1Service:
    """FastAPI dependency; tests override it with a client on a mock transport."""
    return CloudflareD1Service()
