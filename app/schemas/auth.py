from pydantic import BaseModel, Field, model_validator
from typing import Optional

from app.schemas.base import CamelModel


class LoginRequest(BaseModel):
    """Username or email plus password"""
    username: Optional[str] = Field(None, description="Username")
    email: Optional[str] = Field(None, description="Email address")
    password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self):
        if not (self.username or self.email):
            raise ValueError("username or email is required")
        return self

    @property
    def identifier(self) -> str:
        return self.username or self.email


class SessionUserResponse(CamelModel):
    user_id: int
    username: str
    email: Optional[str] = None
    full_name: str
    role: str
    school_id: Optional[int] = None
    dashboard_path: str


class LoginResponse(CamelModel):
    """The token is also set as the session cookie"""
    session_token: str
    expires_at: str
    user: SessionUserResponse