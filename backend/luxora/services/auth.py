"""Sign-in, sign-up and session resolution backed by Supabase auth."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from luxora.core.errors import (
    AppError,
    AuthenticationError,
    BackendUnavailableError,
    ConflictError,
    ServiceNotConfiguredError,
    ValidationAppError,
    sanitize_input,
    validate_request_data,
)
from luxora.core.logging import get_logger
from luxora.models.auth import UserProfile
from luxora.services.supabase_client import SupabaseAuthError, SupabaseClient

logger = get_logger("auth")

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6
MIN_USERNAME_LENGTH = 2
PROFILES_TABLE = "profiles"

AuthListener = Callable[[str, Optional[Dict[str, Any]]], Any]


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    access_token: str


def _session_from(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    if not payload.get("access_token"):
        return None
    return {
        "access_token": payload["access_token"],
        "refresh_token": payload.get("refresh_token"),
        "expires_in": payload.get("expires_in"),
        "token_type": payload.get("token_type", "bearer"),
    }


def _bearer_token(authorization: str) -> str:
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be a Bearer token")
    return token.strip()


class IdentityService:
    def __init__(self, client: SupabaseClient) -> None:
        self.client = client
        self._listeners: List[AuthListener] = []

    @property
    def configured(self) -> bool:
        return self.client.configured

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register ``callback(event, session)``; returns an unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _emit(self, event: str, session: Optional[Dict[str, Any]]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception as exc:
                logger.error("Auth listener failed on %s: %s", event, exc, exc_info=True)

    def _require_configured(self) -> None:
        if not self.configured:
            raise ServiceNotConfiguredError("Authentication service is not configured")

    @staticmethod
    def _validate_credentials(email: Any, password: Any) -> str:
        email = sanitize_input(email).lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationAppError("Invalid email format", "INVALID_EMAIL")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationAppError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                "WEAK_PASSWORD",
            )
        return email

    async def _fetch_profile(
        self, user_id: str, access_token: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        try:
            rows = await self.client.select(
                PROFILES_TABLE, {"id": user_id}, limit=1, access_token=access_token
            )
        except BackendUnavailableError as exc:
            logger.warning("Could not load profile for %s: %s", user_id, exc.message)
            return None
        if not rows:
            return None
        row = rows[0]
        return UserProfile(
            id=row.get("id", user_id),
            email=row.get("email", ""),
            username=row.get("username"),
            avatar_url=row.get("avatar_url"),
            created_at=row.get("created_at"),
        ).model_dump()

    async def _profile_exists(self, column: str, value: str) -> bool:
        rows = await self.client.select(PROFILES_TABLE, {column: value}, columns=column, limit=1)
        return bool(rows)

    async def sign_in(self, email: Any, password: Any) -> Dict[str, Any]:
        validate_request_data({"email": email, "password": password}, ["email", "password"])
        email = self._validate_credentials(email, password)
        self._require_configured()

        try:
            payload = await self.client.sign_in_with_password(email, password)
        except SupabaseAuthError as exc:
            if "invalid login credentials" in exc.message.lower() or exc.status_code == 401:
                raise AuthenticationError("Invalid email or password", "INVALID_CREDENTIALS")
            raise ValidationAppError(exc.message, "AUTH_ERROR")
        except BackendUnavailableError as exc:
            raise AppError("Authentication service unavailable", "AUTH_UNAVAILABLE", 503) from exc

        user = payload.get("user") or {}
        session = _session_from(payload)
        profile = None
        if user.get("id"):
            profile = await self._fetch_profile(user["id"], payload.get("access_token"))

        logger.info("User %s signed in", user.get("id"))
        self._emit("SIGNED_IN", session)
        return {"user": user, "session": session, "profile": profile}

    async def sign_up(self, email: Any, password: Any, username: Any) -> Dict[str, Any]:
        validate_request_data(
            {"email": email, "password": password, "username": username},
            ["email", "password", "username"],
        )
        email = self._validate_credentials(email, password)
        username = sanitize_input(username)
        if len(username) < MIN_USERNAME_LENGTH:
            raise ValidationAppError(
                f"Username must be at least {MIN_USERNAME_LENGTH} characters",
                "INVALID_USERNAME",
            )
        self._require_configured()

        try:
            if await self._profile_exists("email", email):
                raise ConflictError("User with this email already exists", "USER_EXISTS")
            if await self._profile_exists("username", username):
                raise ConflictError("Username is already taken", "USERNAME_TAKEN")
            payload = await self.client.sign_up(email, password, {"username": username})
        except SupabaseAuthError as exc:
            if "already registered" in exc.message.lower():
                raise ConflictError("User with this email already exists", "USER_EXISTS")
            raise ValidationAppError(exc.message, "SIGNUP_ERROR")
        except BackendUnavailableError as exc:
            raise AppError("Authentication service unavailable", "AUTH_UNAVAILABLE", 503) from exc

        user = payload.get("user") or (payload if payload.get("id") else {})
        session = _session_from(payload)

        if user.get("id"):
            now = datetime.now(timezone.utc).isoformat()
            try:
                await self.client.insert(
                    PROFILES_TABLE,
                    [
                        {
                            "id": user["id"],
                            "email": email,
                            "username": username,
                            "created_at": now,
                            "updated_at": now,
                        }
                    ],
                    access_token=payload.get("access_token"),
                )
            except BackendUnavailableError as exc:
                logger.error("Profile creation failed for %s: %s", user["id"], exc.message)

        logger.info("User %s signed up", user.get("id"))
        self._emit("SIGNED_UP", session)
        return {"user": user, "session": session}

    async def sign_out(self, access_token: Optional[str]) -> None:
        self._require_configured()
        if access_token:
            try:
                await self.client.sign_out(access_token)
            except (SupabaseAuthError, BackendUnavailableError) as exc:
                logger.warning("Remote sign-out failed: %s", exc)
        self._emit("SIGNED_OUT", None)

    async def reset_password_for_email(self, email: Any, redirect_to: Optional[str] = None) -> None:
        validate_request_data({"email": email}, ["email"])
        email = sanitize_input(email).lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationAppError("Invalid email format", "INVALID_EMAIL")
        self._require_configured()
        try:
            await self.client.reset_password_for_email(email, redirect_to)
        except SupabaseAuthError as exc:
            raise ValidationAppError(exc.message, "AUTH_ERROR")
        except BackendUnavailableError as exc:
            raise AppError("Authentication service unavailable", "AUTH_UNAVAILABLE", 503) from exc
        self._emit("PASSWORD_RECOVERY", None)

    async def get_session(self, access_token: Optional[str]) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "authenticated": False,
            "configured": self.configured,
            "user": None,
            "profile": None,
        }
        if not self.configured or not access_token:
            return result
        try:
            user = await self.client.get_user(access_token)
        except BackendUnavailableError as exc:
            logger.warning("Session lookup failed: %s", exc.message)
            return result
        if not user or not user.get("id"):
            return result

        result.update(
            authenticated=True,
            user=user,
            profile=await self._fetch_profile(user["id"], access_token),
        )
        return result

    async def resolve(self, authorization: Optional[str]) -> Optional[AuthContext]:
        """Map an ``Authorization`` header to the calling user, if any."""
        if not authorization:
            return None
        if not self.configured:
            logger.warning("Authorization supplied but auth is not configured; treating as anonymous")
            return None
        token = _bearer_token(authorization)
        try:
            user = await self.client.get_user(token)
        except BackendUnavailableError as exc:
            raise AppError("Authentication service unavailable", "AUTH_UNAVAILABLE", 503) from exc
        if not user or not user.get("id"):
            raise AuthenticationError("Invalid or expired session token")
        return AuthContext(user_id=user["id"], access_token=token)

    async def resolve_user_id(self, authorization: Optional[str]) -> Optional[str]:
        context = await self.resolve(authorization)
        return context.user_id if context else None
