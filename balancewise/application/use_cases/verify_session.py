from __future__ import annotations

from uuid import UUID

from balancewise.application.ports.accounts_port import UserPort
from balancewise.application.ports.token_port import TokenPort
from balancewise.domain.entities.user import User
from balancewise.domain.exceptions import InvalidTokenError, UnauthorizedError

from .auth_common import wrap_step


class VerifySessionTokenUseCase:
    def __init__(self, *, user_port: UserPort, token_port: TokenPort):
        self._user_port = user_port
        self._token_port = token_port

    def execute(self, *, token: str) -> User:
        token = token.strip()
        if not token:
            raise InvalidTokenError("missing session token")

        claims = self._token_port.verify_token(token=token)
        try:
            user_id = str(UUID(claims.user_id))
        except ValueError as exc:
            raise InvalidTokenError("invalid token subject") from exc

        with wrap_step("failed to get user"):
            user = self._user_port.get_user_by_id(user_id=user_id)
        if user is None:
            raise UnauthorizedError()
        return user
