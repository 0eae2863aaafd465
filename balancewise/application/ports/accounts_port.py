from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from balancewise.domain.entities.user import AuthState, StoredProviderToken, User


TAccountsResult = TypeVar("TAccountsResult")


class UserPort(Protocol):
    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def get_user_by_email(self, *, email: str) -> User | None:
        ...

    def create_user(
        self,
        *,
        user_id: str,
        email: str,
        name: str,
        profile_pic: str | None,
        created_at: datetime,
        updated_at: datetime,
    ) -> User:
        ...

    def update_user_profile_by_email(
        self,
        *,
        email: str,
        name: str,
        profile_pic: str | None,
        updated_at: datetime,
    ) -> User:
        ...

    def update_user_gdrive_allowed(
        self,
        *,
        user_id: str,
        gdrive_allowed: bool,
        updated_at: datetime,
    ) -> User:
        ...


class AuthStatePort(Protocol):
    def create_state(
        self,
        *,
        state: str,
        auth_url: str,
        user_id: str | None,
        expires_at: datetime,
        created_at: datetime,
    ) -> AuthState:
        ...

    def get_state(self, *, state: str) -> AuthState | None:
        ...

    def mark_state_authenticated(self, *, state: str, user_id: str, now: datetime) -> AuthState | None:
        ...

    def consume_authenticated_state(self, *, state: str, now: datetime) -> AuthState | None:
        ...

    def delete_state(self, *, state: str) -> None:
        ...

    def delete_expired_states(self, *, now: datetime) -> int:
        ...


class ProviderTokenPort(Protocol):
    def upsert_provider_token(
        self,
        *,
        user_id: str,
        access_token: str | None,
        refresh_token: str | None,
        expires_at: datetime,
        created_at: datetime,
    ) -> StoredProviderToken:
        ...

    def get_provider_token(self, *, user_id: str) -> StoredProviderToken | None:
        ...

    def delete_expired_provider_tokens(self, *, now: datetime) -> int:
        ...


class AccountsPort(UserPort, AuthStatePort, ProviderTokenPort, Protocol):
    def execute_in_transaction(self, fn: Callable[[AccountsPort], TAccountsResult]) -> TAccountsResult:
        ...
