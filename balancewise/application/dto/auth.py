from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from balancewise.domain.entities.user import User


@dataclass(frozen=True)
class ProviderTokens:
    access_token: str
    refresh_token: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class ProviderProfile:
    id: str
    email: str
    name: str
    picture_url: str | None


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: str
    name: str


@dataclass(frozen=True)
class InitiateAuthOutput:
    auth_url: str
    state: str


@dataclass(frozen=True)
class HandleCallbackInput:
    state: str
    code: str


@dataclass(frozen=True)
class LoginOutput:
    user: User
    token: str


@dataclass(frozen=True)
class PollLoginOutput:
    authenticated: bool
    user: User | None = None
    token: str | None = None


@dataclass(frozen=True)
class DriveAccessTokenOutput:
    access_token: str
    expires_at: datetime | None


@dataclass(frozen=True)
class CleanupOutput:
    states_deleted: int | None
    tokens_deleted: int | None
