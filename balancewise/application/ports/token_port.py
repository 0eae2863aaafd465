from __future__ import annotations

from datetime import datetime
from typing import Protocol

from balancewise.application.dto.auth import SessionClaims


class TokenPort(Protocol):
    def issue_token(self, *, user_id: str, email: str, name: str, now: datetime) -> str:
        ...

    def verify_token(self, *, token: str) -> SessionClaims:
        ...
