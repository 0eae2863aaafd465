from __future__ import annotations

from typing import Any, Mapping

from balancewise.domain.entities.user import AuthState, StoredProviderToken, User


def _as_str(value: Any) -> str:
    return str(value)


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def map_row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        id=_as_str(row["id"]),
        email=row["email"],
        name=row["name"],
        profile_pic=row.get("profile_pic"),
        gdrive_allowed=bool(row["gdrive_allowed"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def map_row_to_auth_state(row: Mapping[str, Any]) -> AuthState:
    return AuthState(
        state=row["state"],
        user_id=_as_optional_str(row.get("user_id")),
        authenticated=bool(row["authenticated"]),
        auth_url=row.get("auth_url"),
        expires_at=row["expires_at"],
        created_at=row["created_at"],
    )


def map_row_to_provider_token(row: Mapping[str, Any]) -> StoredProviderToken:
    return StoredProviderToken(
        user_id=_as_str(row["user_id"]),
        access_token=row.get("access_token") or None,
        refresh_token=row.get("refresh_token") or None,
        expires_at=row["expires_at"],
        created_at=row["created_at"],
    )
