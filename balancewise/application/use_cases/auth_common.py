from __future__ import annotations

import secrets
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from balancewise.domain.exceptions import DomainError, InternalError


STATE_TTL = timedelta(minutes=10)
PROVIDER_TOKEN_TTL = timedelta(days=30)
STATE_ENTROPY_BYTES = 32

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_state() -> str:
    return secrets.token_urlsafe(STATE_ENTROPY_BYTES)


@contextmanager
def wrap_step(message: str) -> Iterator[None]:
    """Re-raise unexpected failures as InternalError prefixed with the failing step.

    Domain errors pass through untouched so callers keep their stable kind.
    """
    try:
        yield
    except DomainError:
        raise
    except Exception as exc:
        raise InternalError(f"{message}: {exc}") from exc
