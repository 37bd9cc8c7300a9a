"""Thin async client for the Supabase auth (GoTrue) and PostgREST endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from luxora.core.errors import BackendUnavailableError
from luxora.core.logging import get_logger

logger = get_logger("supabase")


class SupabaseAuthError(Exception):
    """The auth endpoint rejected the request (bad credentials, duplicate user, ...)."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


def _eq_filters(filters: Mapping[str, Any]) -> Dict[str, str]:
    return {column: f"eq.{value}" for column, value in filters.items()}


class SupabaseClient:
    def __init__(
        self,
        url: Optional[str],
        anon_key: Optional[str],
        client: httpx.AsyncClient,
        timeout: float = 5.0,
    ) -> None:
        self.url = (url or "").rstrip("/")
        self.anon_key = anon_key
        self.client = client
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)

    def _headers(self, access_token: Optional[str] = None, **extra: str) -> Dict[str, str]:
        return {
            "apikey": self.anon_key or "",
            "Authorization": f"Bearer {access_token or self.anon_key}",
            "Content-Type": "application/json",
            **extra,
        }

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        if not self.configured:
            raise BackendUnavailableError("Supabase is not configured")
        try:
            response = await self.client.request(
                method,
                f"{self.url}{path}",
                params=params,
                json=json,
                headers=headers or self._headers(),
                timeout=self.timeout,
            )
        except httpx.HTTPError as exc:
            raise BackendUnavailableError(f"Supabase request failed: {exc}") from exc

        if response.status_code >= 500:
            raise BackendUnavailableError(
                f"Supabase returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response

    # Auth

    async def _auth_call(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = await self._request(method, f"/auth/v1{path}", **kwargs)
        if not response.is_success:
            raise SupabaseAuthError(_error_message(response), response.status_code)
        if not response.content:
            return {}
        return response.json()

    async def sign_in_with_password(self, email: str, password: str) -> Dict[str, Any]:
        return await self._auth_call(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )

    async def sign_up(
        self, email: str, password: str, metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        return await self._auth_call(
            "POST",
            "/signup",
            json={"email": email, "password": password, "data": metadata or {}},
        )

    async def sign_out(self, access_token: str) -> None:
        await self._auth_call("POST", "/logout", headers=self._headers(access_token))

    async def reset_password_for_email(
        self, email: str, redirect_to: Optional[str] = None
    ) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._auth_call("POST", "/recover", params=params, json={"email": email})

    async def get_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Resolve a user from an access token; ``None`` if the token is rejected."""
        try:
            return await self._auth_call("GET", "/user", headers=self._headers(access_token))
        except SupabaseAuthError as exc:
            logger.info("Access token rejected: %s", exc.message)
            return None

    # PostgREST

    async def _rest_call(self, method: str, table: str, **kwargs: Any) -> Any:
        response = await self._request(method, f"/rest/v1/{table}", **kwargs)
        if not response.is_success:
            raise BackendUnavailableError(
                f"{method} {table} failed: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.content:
            return []
        return response.json()

    async def select(
        self,
        table: str,
        filters: Mapping[str, Any],
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"select": columns, **_eq_filters(filters)}
        if order:
            params["order"] = order
        if limit:
            params["limit"] = limit
        return await self._rest_call(
            "GET", table, params=params, headers=self._headers(access_token)
        )

    async def insert(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self._rest_call(
            "POST",
            table,
            json=rows,
            headers=self._headers(access_token, Prefer="return=representation"),
        )

    async def update(
        self,
        table: str,
        values: Dict[str, Any],
        filters: Mapping[str, Any],
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self._rest_call(
            "PATCH",
            table,
            params=_eq_filters(filters),
            json=values,
            headers=self._headers(access_token, Prefer="return=representation"),
        )

    async def delete(
        self,
        table: str,
        filters: Mapping[str, Any],
        access_token: Optional[str] = None,
    ) -> None:
        await self._rest_call(
            "DELETE", table, params=_eq_filters(filters), headers=self._headers(access_token)
        )
