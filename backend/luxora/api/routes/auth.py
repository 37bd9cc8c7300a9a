from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from luxora.api.dependencies import bearer_token, get_identity_service
from luxora.core.errors import success_response
from luxora.models.auth import ResetPasswordRequest, SignInRequest, SignUpRequest
from luxora.services.auth import IdentityService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signin")
async def sign_in(
    body: SignInRequest, identity: IdentityService = Depends(get_identity_service)
) -> JSONResponse:
    result = await identity.sign_in(body.email, body.password)
    return success_response({**result, "message": "Successfully signed in"})


@router.post("/signup")
async def sign_up(
    body: SignUpRequest, identity: IdentityService = Depends(get_identity_service)
) -> JSONResponse:
    result = await identity.sign_up(body.email, body.password, body.username)
    return success_response({**result, "message": "Account created successfully"})


@router.post("/signout")
async def sign_out(
    token: Optional[str] = Depends(bearer_token),
    identity: IdentityService = Depends(get_identity_service),
) -> JSONResponse:
    await identity.sign_out(token)
    return success_response({"message": "Successfully signed out"})


@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest, identity: IdentityService = Depends(get_identity_service)
) -> JSONResponse:
    await identity.reset_password_for_email(body.email, body.redirect_to)
    return success_response({"message": "Password reset email sent"})


@router.get("/session")
async def session(
    token: Optional[str] = Depends(bearer_token),
    identity: IdentityService = Depends(get_identity_service),
) -> JSONResponse:
    return success_response(await identity.get_session(token))
