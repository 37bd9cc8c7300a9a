from typing import Optional

from pydantic import BaseModel


class SignInRequest(BaseModel):
    email: str = ""
    password: str = ""


class SignUpRequest(BaseModel):
    email: str = ""
    password: str = ""
    username: str = ""


class ResetPasswordRequest(BaseModel):
    email: str = ""
    redirect_to: Optional[str] = None


class UserProfile(BaseModel):
    id: str
    email: str
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[str] = None
