from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from balancewise.domain.entities.user import User


class InitiateAuthResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(..., alias="authUrl")
    state: str


class PollRequest(BaseModel):
    state: str = Field(..., min_length=1)


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    picture: str | None = None
    gdrive_allowed: bool

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            name=user.name,
            picture=user.profile_pic,
            gdrive_allowed=user.gdrive_allowed,
        )


class PollResponse(BaseModel):
    authenticated: bool
    token: str | None = None
    user: UserResponse | None = None


class VerifyResponse(BaseModel):
    valid: bool
    user: UserResponse


class DriveAccessTokenResponse(BaseModel):
    access_token: str
    expires_at: datetime | None = None
