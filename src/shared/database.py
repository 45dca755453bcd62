"""
Supabase REST client (auth, PostgREST rows and RPC) using httpx.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from dateutil.parser import isoparse
from loguru import logger

from .config import Settings, get_settings
from .errors import AuthenticationRequired, BaaSError


def parse_timestamp(value: Any) -> datetime:
    """Parse a store timestamp into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = isoparse(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class BaaSClient:
    """Async client for the Supabase auth and PostgREST APIs.

    Calls made without an ``access_token`` run with the service key.
    Calls made with one run as that user, so row-level access control
    applies on the store side.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.supabase_url.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _headers(self, access_token: Optional[str] = None) -> dict[str, str]:
        """Get request headers with the API key and bearer credential."""
        service_key = self.settings.supabase_service_key.get_secret_value()
        anon_key = self.settings.supabase_anon_key.get_secret_value()
        if access_token:
            return {
                "apikey": anon_key or service_key,
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            }
        return {
            "apikey": service_key,
            "Authorization": f"Bearer {service_key}",
            "Content-Type": "application/json",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.settings.supabase_timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        access_token: Optional[str] = None,
        extra_headers: Optional[dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        client = await self._get_client()
        headers = self._headers(access_token)
        if extra_headers:
            headers.update(extra_headers)
        try:
            response = await client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise BaaSError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            logger.warning(f"Supabase {method} {path} returned {response.status_code}")
            raise BaaSError(
                f"{method} {path} returned {response.status_code}",
                upstream_status=response.status_code,
            )
        return response

    # -------------------------------------------------------------------------
    # Auth
    # -------------------------------------------------------------------------

    async def get_user(self, access_token: str) -> dict[str, Any]:
        """Resolve a bearer token to the identity provider's user record."""
        if not access_token:
            raise AuthenticationRequired()
        try:
            response = await self._request("GET", "/auth/v1/user", access_token=access_token)
        except BaaSError as e:
            if e.upstream_status in (401, 403):
                raise AuthenticationRequired() from e
            raise

        user = response.json()
        if not isinstance(user, dict) or not user.get("id"):
            raise AuthenticationRequired()
        return user

    async def has_role(self, user_id: str, role: str) -> bool:
        """Call the has_role(_user_id, _role) database function."""
        response = await self._request(
            "POST",
            "/rest/v1/rpc/has_role",
            json={"_user_id": user_id, "_role": role},
        )
        try:
            return response.json() is True
        except ValueError as e:
            raise BaaSError(f"has_role returned a non-JSON body: {e}") from e

    # -------------------------------------------------------------------------
    # Rows
    # -------------------------------------------------------------------------

    async def select(
        self,
        table: str,
        columns: str = "*",
        eq: Optional[dict[str, Any]] = None,
        gte: Optional[dict[str, Any]] = None,
        order: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
        access_token: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Query rows with equality / lower-bound filters."""
        params: list[tuple[str, str]] = [("select", columns)]
        for column, value in (eq or {}).items():
            params.append((column, f"eq.{_format_value(value)}"))
        for column, value in (gte or {}).items():
            params.append((column, f"gte.{_format_value(value)}"))
        if order:
            params.append(("order", f"{order}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))

        response = await self._request(
            "GET", f"/rest/v1/{table}", access_token=access_token, params=params
        )
        return response.json()

    async def insert(
        self,
        table: str,
        row: dict[str, Any],
        access_token: Optional[str] = None,
    ) -> dict[str, Any]:
        """Insert a row and return the stored representation."""
        response = await self._request(
            "POST",
            f"/rest/v1/{table}",
            access_token=access_token,
            extra_headers={"Prefer": "return=representation"},
            json=row,
        )
        rows = response.json()
        if isinstance(rows, list):
            if not rows:
                raise BaaSError(f"Insert into {table} returned no rows")
            return rows[0]
        return rows

    async def update(
        self,
        table: str,
        match: dict[str, Any],
        values: dict[str, Any],
        access_token: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        """Update matching rows, returning the updated rows."""
        params = [(column, f"eq.{_format_value(v)}") for column, v in match.items()]
        response = await self._request(
            "PATCH",
            f"/rest/v1/{table}",
            access_token=access_token,
            extra_headers={"Prefer": "return=representation"},
            params=params,
            json=values,
        )
        return response.json()

    async def delete(
        self,
        table: str,
        match: dict[str, Any],
        access_token: Optional[str] = None,
    ) -> int:
        """Delete matching rows, returning how many were removed."""
        params = [(column, f"eq.{_format_value(v)}") for column, v in match.items()]
        response = await self._request(
            "DELETE",
            f"/rest/v1/{table}",
            access_token=access_token,
            extra_headers={"Prefer": "return=representation"},
            params=params,
        )
        return len(response.json())


def _format_value(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
