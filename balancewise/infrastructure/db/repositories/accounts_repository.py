from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Connection

from balancewise.application.ports.accounts_port import AccountsPort
from balancewise.domain.exceptions import DuplicateKeyError, NotFoundError
from balancewise.infrastructure.db.mappers.accounts_mapper import (
    map_row_to_auth_state,
    map_row_to_provider_token,
    map_row_to_user,
)


TResult = TypeVar("TResult")

USER_COLUMNS = "id, email, name, profile_pic, gdrive_allowed, created_at, updated_at"
STATE_COLUMNS = "state, user_id, authenticated, auth_url, expires_at, created_at"
TOKEN_COLUMNS = "user_id, access_token, refresh_token, expires_at, created_at"


class SqlAccountsRepository(AccountsPort):
    def __init__(self, engine, *, connection: Connection | None = None):
        self._engine = engine
        self._connection = connection

    def execute_in_transaction(self, fn: Callable[[AccountsPort], TResult]) -> TResult:
        if self._connection is not None:
            return fn(self)
        with self._engine.begin() as conn:
            return fn(SqlAccountsRepository(self._engine, connection=conn))

    @contextmanager
    def _read(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.connect() as conn:
            yield conn

    @contextmanager
    def _write(self) -> Iterator[Connection]:
        if self._connection is not None:
            yield self._connection
            return
        with self._engine.begin() as conn:
            yield conn

    def get_user_by_id(self, *, user_id: str):
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE id = :user_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def get_user_by_email(self, *, email: str):
        sql = f"""
            SELECT {USER_COLUMNS}
            FROM public.users
            WHERE lower(email) = :email
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"email": email.lower()}).mappings().first()
        if row is None:
            return None
        return map_row_to_user(row)

    def create_user(
        self,
        *,
        user_id: str,
        email: str,
        name: str,
        profile_pic: str | None,
        created_at: datetime,
        updated_at: datetime,
    ):
        # DO NOTHING keeps an enclosing transaction usable when the email races.
        sql = f"""
            INSERT INTO public.users (
                id, email, name, profile_pic, gdrive_allowed, created_at, updated_at
            ) VALUES (
                :id, :email, :name, :profile_pic, false, :created_at, :updated_at
            )
            ON CONFLICT (email) DO NOTHING
            RETURNING {USER_COLUMNS}
        """
        params = {
            "id": user_id,
            "email": email,
            "name": name,
            "profile_pic": profile_pic,
            "created_at": created_at,
            "updated_at": updated_at,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            raise DuplicateKeyError("user with this email already exists")
        return map_row_to_user(row)

    def update_user_profile_by_email(
        self,
        *,
        email: str,
        name: str,
        profile_pic: str | None,
        updated_at: datetime,
    ):
        sql = f"""
            UPDATE public.users
            SET name = :name,
                profile_pic = :profile_pic,
                updated_at = :updated_at
            WHERE lower(email) = :email
            RETURNING {USER_COLUMNS}
        """
        params = {
            "email": email.lower(),
            "name": name,
            "profile_pic": profile_pic,
            "updated_at": updated_at,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            raise NotFoundError("user not found")
        return map_row_to_user(row)

    def update_user_gdrive_allowed(self, *, user_id: str, gdrive_allowed: bool, updated_at: datetime):
        sql = f"""
            UPDATE public.users
            SET gdrive_allowed = :gdrive_allowed,
                updated_at = :updated_at
            WHERE id = :user_id
            RETURNING {USER_COLUMNS}
        """
        params = {
            "user_id": user_id,
            "gdrive_allowed": gdrive_allowed,
            "updated_at": updated_at,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            raise NotFoundError("user not found")
        return map_row_to_user(row)

    def create_state(
        self,
        *,
        state: str,
        auth_url: str,
        user_id: str | None,
        expires_at: datetime,
        created_at: datetime,
    ):
        sql = f"""
            INSERT INTO public.auth_states (
                state, user_id, authenticated, auth_url, expires_at, created_at
            ) VALUES (
                :state, :user_id, false, :auth_url, :expires_at, :created_at
            )
            ON CONFLICT (state) DO NOTHING
            RETURNING {STATE_COLUMNS}
        """
        params = {
            "state": state,
            "user_id": user_id,
            "auth_url": auth_url,
            "expires_at": expires_at,
            "created_at": created_at,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().first()
        if row is None:
            raise DuplicateKeyError("auth state already exists")
        return map_row_to_auth_state(row)

    def get_state(self, *, state: str):
        sql = f"""
            SELECT {STATE_COLUMNS}
            FROM public.auth_states
            WHERE state = :state
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"state": state}).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_state(row)

    def mark_state_authenticated(self, *, state: str, user_id: str, now: datetime):
        sql = f"""
            UPDATE public.auth_states
            SET user_id = :user_id,
                authenticated = true
            WHERE state = :state
              AND authenticated = false
              AND user_id IS NULL
              AND expires_at > :now
            RETURNING {STATE_COLUMNS}
        """
        with self._write() as conn:
            row = conn.execute(
                text(sql),
                {
                    "state": state,
                    "user_id": user_id,
                    "now": now,
                },
            ).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_state(row)

    def consume_authenticated_state(self, *, state: str, now: datetime):
        # Only one concurrent caller gets the row back.
        sql = f"""
            DELETE FROM public.auth_states
            WHERE state = :state
              AND authenticated = true
              AND user_id IS NOT NULL
              AND expires_at > :now
            RETURNING {STATE_COLUMNS}
        """
        with self._write() as conn:
            row = conn.execute(text(sql), {"state": state, "now": now}).mappings().first()
        if row is None:
            return None
        return map_row_to_auth_state(row)

    def delete_state(self, *, state: str) -> None:
        sql = """
            DELETE FROM public.auth_states
            WHERE state = :state
        """
        with self._write() as conn:
            conn.execute(text(sql), {"state": state})

    def delete_expired_states(self, *, now: datetime) -> int:
        sql = """
            DELETE FROM public.auth_states
            WHERE expires_at < :now
        """
        with self._write() as conn:
            result = conn.execute(text(sql), {"now": now})
        return result.rowcount

    def upsert_provider_token(
        self,
        *,
        user_id: str,
        access_token: str | None,
        refresh_token: str | None,
        expires_at: datetime,
        created_at: datetime,
    ):
        # Google omits refresh_token after the first consent; keep the stored one.
        sql = f"""
            INSERT INTO public.provider_tokens (
                user_id, access_token, refresh_token, expires_at, created_at
            ) VALUES (
                :user_id, :access_token, :refresh_token, :expires_at, :created_at
            )
            ON CONFLICT (user_id) DO UPDATE
            SET access_token = EXCLUDED.access_token,
                refresh_token = COALESCE(EXCLUDED.refresh_token, provider_tokens.refresh_token),
                expires_at = EXCLUDED.expires_at
            RETURNING {TOKEN_COLUMNS}
        """
        params = {
            "user_id": user_id,
            "access_token": access_token or None,
            "refresh_token": refresh_token or None,
            "expires_at": expires_at,
            "created_at": created_at,
        }
        with self._write() as conn:
            row = conn.execute(text(sql), params).mappings().one()
        return map_row_to_provider_token(row)

    def get_provider_token(self, *, user_id: str):
        sql = f"""
            SELECT {TOKEN_COLUMNS}
            FROM public.provider_tokens
            WHERE user_id = :user_id
            LIMIT 1
        """
        with self._read() as conn:
            row = conn.execute(text(sql), {"user_id": user_id}).mappings().first()
        if row is None:
            return None
        return map_row_to_provider_token(row)

    def delete_expired_provider_tokens(self, *, now: datetime) -> int:
        sql = """
            DELETE FROM public.provider_tokens
            WHERE expires_at < :now
        """
        with self._write() as conn:
            result = conn.execute(text(sql), {"now": now})
        return result.rowcount
