from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from balancewise.application.dto.auth import ProviderProfile, ProviderTokens, SessionClaims
from balancewise.domain.entities.user import AuthState, StoredProviderToken, User
from balancewise.domain.exceptions import (
    DuplicateKeyError,
    ImageDownloadError,
    InvalidTokenError,
    NotFoundError,
)


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


class FakeAccountsPort:
    def __init__(self):
        self.users: dict[str, User] = {}
        self.states: dict[str, AuthState] = {}
        self.tokens: dict[str, StoredProviderToken] = {}
        self.transactions = 0

    def execute_in_transaction(self, fn):
        snapshot = (dict(self.users), dict(self.states), dict(self.tokens))
        self.transactions += 1
        try:
            return fn(self)
        except Exception:
            self.users, self.states, self.tokens = snapshot
            raise

    def get_user_by_id(self, *, user_id: str) -> User | None:
        return self.users.get(user_id)

    def _find_by_email(self, email: str) -> User | None:
        for user in self.users.values():
            if user.email == email.lower():
                return user
        return None

    def get_user_by_email(self, *, email: str) -> User | None:
        return self._find_by_email(email)

    def create_user(self, *, user_id, email, name, profile_pic, created_at, updated_at) -> User:
        if self._find_by_email(email) is not None:
            raise DuplicateKeyError("user with this email already exists")
        user = User(
            id=user_id,
            email=email,
            name=name,
            profile_pic=profile_pic,
            gdrive_allowed=False,
            created_at=created_at,
            updated_at=updated_at,
        )
        self.users[user.id] = user
        return user

    def update_user_profile_by_email(self, *, email, name, profile_pic, updated_at) -> User:
        user = self._find_by_email(email)
        if user is None:
            raise NotFoundError("user not found")
        updated = replace(user, name=name, profile_pic=profile_pic, updated_at=updated_at)
        self.users[user.id] = updated
        return updated

    def update_user_gdrive_allowed(self, *, user_id, gdrive_allowed, updated_at) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("user not found")
        updated = replace(user, gdrive_allowed=gdrive_allowed, updated_at=updated_at)
        self.users[user_id] = updated
        return updated

    def create_state(self, *, state, auth_url, user_id, expires_at, created_at) -> AuthState:
        if state in self.states:
            raise DuplicateKeyError("auth state already exists")
        row = AuthState(
            state=state,
            user_id=user_id,
            authenticated=False,
            auth_url=auth_url,
            expires_at=expires_at,
            created_at=created_at,
        )
        self.states[state] = row
        return row

    def get_state(self, *, state: str) -> AuthState | None:
        return self.states.get(state)

    def mark_state_authenticated(self, *, state, user_id, now) -> AuthState | None:
        row = self.states.get(state)
        if row is None or row.authenticated or row.user_id is not None or row.expires_at <= now:
            return None
        updated = replace(row, user_id=user_id, authenticated=True)
        self.states[state] = updated
        return updated

    def consume_authenticated_state(self, *, state, now) -> AuthState | None:
        row = self.states.get(state)
        if row is None or not row.authenticated or row.user_id is None or row.expires_at <= now:
            return None
        del self.states[state]
        return row

    def delete_state(self, *, state: str) -> None:
        self.states.pop(state, None)

    def delete_expired_states(self, *, now: datetime) -> int:
        expired = [key for key, row in self.states.items() if row.expires_at < now]
        for key in expired:
            del self.states[key]
        return len(expired)

    def upsert_provider_token(self, *, user_id, access_token, refresh_token, expires_at, created_at):
        existing = self.tokens.get(user_id)
        if existing is not None and not refresh_token:
            refresh_token = existing.refresh_token
        row = StoredProviderToken(
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            created_at=existing.created_at if existing else created_at,
        )
        self.tokens[user_id] = row
        return row

    def get_provider_token(self, *, user_id: str) -> StoredProviderToken | None:
        return self.tokens.get(user_id)

    def delete_expired_provider_tokens(self, *, now: datetime) -> int:
        expired = [key for key, row in self.tokens.items() if row.expires_at < now]
        for key in expired:
            del self.tokens[key]
        return len(expired)


class FakeIdentityProvider:
    def __init__(self):
        self.profile = ProviderProfile(
            id="google-sub-1",
            email="Alice@Example.com",
            name="Alice",
            picture_url="https://example.com/alice.png",
        )
        self.refresh_token: str | None = "refresh-1"
        self.exchange_error: Exception | None = None
        self.calls: list[tuple[str, str]] = []

    def build_auth_url(self, *, state: str, login_hint: str | None = None) -> str:
        url = f"https://accounts.example.com/auth?state={state}"
        if login_hint:
            url += f"&login_hint={login_hint}"
        return url

    def exchange_code(self, *, code: str) -> ProviderTokens:
        self.calls.append(("exchange_code", code))
        if self.exchange_error is not None:
            raise self.exchange_error
        return ProviderTokens(access_token=f"access-{code}", refresh_token=self.refresh_token, expires_at=None)

    def fetch_profile(self, *, access_token: str) -> ProviderProfile:
        self.calls.append(("fetch_profile", access_token))
        return self.profile

    def refresh_access_token(self, *, refresh_token: str) -> ProviderTokens:
        self.calls.append(("refresh_access_token", refresh_token))
        if self.exchange_error is not None:
            raise self.exchange_error
        return ProviderTokens(
            access_token=f"fresh-{refresh_token}",
            refresh_token=refresh_token,
            expires_at=datetime(2026, 1, 1, 13, 0, tzinfo=timezone.utc),
        )


class FakeImageFetcher:
    def __init__(self, data: bytes = b"png-bytes"):
        self.data = data
        self.fail = False

    def fetch(self, *, url: str) -> bytes:
        if self.fail:
            raise ImageDownloadError("failed to download image: status 404")
        return self.data


class FakeTokenPort:
    def issue_token(self, *, user_id: str, email: str, name: str, now: datetime) -> str:
        return f"session::{user_id}::{email}"

    def verify_token(self, *, token: str) -> SessionClaims:
        parts = token.split("::")
        if len(parts) != 3 or parts[0] != "session":
            raise InvalidTokenError()
        return SessionClaims(user_id=parts[1], email=parts[2], name="")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def accounts() -> FakeAccountsPort:
    return FakeAccountsPort()


@pytest.fixture
def identity_provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def image_fetcher() -> FakeImageFetcher:
    return FakeImageFetcher()


@pytest.fixture
def token_port() -> FakeTokenPort:
    return FakeTokenPort()


@pytest.fixture
def make_user(accounts, clock):
    def _make_user(*, user_id="0b7e8a52-7e7b-4f0e-9a63-3f1c2b9d4e11", email="alice@example.com", gdrive_allowed=False):
        return accounts.users.setdefault(
            user_id,
            User(
                id=user_id,
                email=email,
                name="Alice",
                profile_pic=None,
                gdrive_allowed=gdrive_allowed,
                created_at=clock(),
                updated_at=clock(),
            ),
        )

    return _make_user
