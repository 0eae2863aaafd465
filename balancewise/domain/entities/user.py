from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str
    profile_pic: str | None
    gdrive_allowed: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class AuthState:
    state: str
    user_id: str | None
    authenticated: bool
    auth_url: str | None
    expires_at: datetime
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def is_pending(self) -> bool:
        return not self.authenticated and self.user_id is None


@dataclass(frozen=True)
class StoredProviderToken:
    user_id: str
    access_token: str | None
    refresh_token: str | None
    expires_at: datetime
    created_at: datetime
