"""HTTP client the front-end tier uses to call the API.

Learn: Thin wrapper over httpx.AsyncClient. Every call takes the caller's
bearer token explicitly; the client holds no per-user state. Transport
failures and non-2xx responses both come back as ApiResponse with
success=False rather than raising, so routes decide how to surface them.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog
from fastapi import Request

logger = structlog.get_logger()


@dataclass
class ApiResponse:
    success: bool
    status_code: int
    data: Any = None
    error: Any = None


class ApiClient:
    """Calls the API tier on behalf of a signed-in browser session."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def request(
        self,
        method: str,
        endpoint: str,
        token: Optional[str] = None,
        json: Any = None,
        request_id: Optional[str] = None,
    ) -> ApiResponse:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if request_id:
            headers["X-Request-ID"] = request_id

        try:
            resp = await self.client.request(method, endpoint, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.error("api_client.unreachable", method=method, endpoint=endpoint, error=str(e))
            return ApiResponse(success=False, status_code=502, error="API unavailable")

        data = None
        if resp.content:
            try:
                data = resp.json()
            except ValueError:
                data = resp.text

        if resp.is_success:
            return ApiResponse(success=True, status_code=resp.status_code, data=data)

        error = data.get("detail") if isinstance(data, dict) else data
        logger.info(
            "api_client.error",
            method=method,
            endpoint=endpoint,
            status_code=resp.status_code,
        )
        return ApiResponse(
            success=False,
            status_code=resp.status_code,
            data=data,
            error=error or f"API error: {resp.status_code}",
        )

    async def get(self, endpoint: str, token: Optional[str] = None, **kw) -> ApiResponse:
        return await self.request("GET", endpoint, token=token, **kw)

    async def post(self, endpoint: str, json: Any, token: Optional[str] = None, **kw) -> ApiResponse:
        return await self.request("POST", endpoint, token=token, json=json, **kw)

    async def put(self, endpoint: str, json: Any, token: Optional[str] = None, **kw) -> ApiResponse:
        return await self.request("PUT", endpoint, token=token, json=json, **kw)

    async def delete(self, endpoint: str, token: Optional[str] = None, **kw) -> ApiResponse:
        return await self.request("DELETE", endpoint, token=token, **kw)

    async def aclose(self) -> None:
        await self.client.aclose()


def get_api_client(request: Request) -> ApiClient:
    """FastAPI dependency — the app-wide client built in create_web_app()."""
    return request.app.state.api_client
