from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

import jwt

from balancewise.application.dto.auth import SessionClaims
from balancewise.application.ports.token_port import TokenPort
from balancewise.domain.exceptions import InvalidTokenError


TOKEN_TYPE = "session"


class JwtTokenService(TokenPort):
    def __init__(self, *, jwt_secret: str, ttl_days: int = 30, algorithm: str = "HS256"):
        self._jwt_secret = jwt_secret
        self._ttl_days = ttl_days
        self._algorithm = algorithm

    def issue_token(self, *, user_id: str, email: str, name: str, now: datetime) -> str:
        exp = now + timedelta(days=self._ttl_days)
        payload = {
            "sub": user_id,
            "userId": user_id,
            "email": email,
            "name": name,
            "type": TOKEN_TYPE,
            "jti": uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._jwt_secret, algorithm=self._algorithm)

    def verify_token(self, *, token: str) -> SessionClaims:
        try:
            payload = jwt.decode(
                token,
                self._jwt_secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError() from exc

        if payload.get("type") != TOKEN_TYPE:
            raise InvalidTokenError("invalid token type")

        user_id = payload.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise InvalidTokenError("invalid token subject")

        return SessionClaims(
            user_id=user_id,
            email=str(payload.get("email") or ""),
            name=str(payload.get("name") or ""),
        )
