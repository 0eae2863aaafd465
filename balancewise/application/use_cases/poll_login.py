from __future__ import annotations

import logging

from balancewise.application.dto.auth import PollLoginOutput
from balancewise.application.ports.accounts_port import AccountsPort
from balancewise.application.ports.token_port import TokenPort
from balancewise.domain.exceptions import NotFoundError

from .auth_common import Clock, utcnow, wrap_step


logger = logging.getLogger(__name__)


class PollLoginUseCase:
    """Hands out the session for a completed login, exactly once.

    The state row is deleted with a conditional statement and the token is only
    issued to the caller that deleted it. User lookup and token issuance run in
    the same transaction, so a failure there puts the state back for a retry.
    """

    def __init__(
        self,
        *,
        accounts_port: AccountsPort,
        token_port: TokenPort,
        clock: Clock = utcnow,
    ):
        self._accounts_port = accounts_port
        self._token_port = token_port
        self._clock = clock

    def execute(self, *, state: str) -> PollLoginOutput:
        def _tx(accounts_port: AccountsPort) -> PollLoginOutput:
            now = self._clock()
            with wrap_step("failed to consume state"):
                consumed = accounts_port.consume_authenticated_state(state=state, now=now)
            # Unknown, expired, pending and already consumed states look the same.
            if consumed is None:
                return PollLoginOutput(authenticated=False)

            with wrap_step("failed to get user"):
                user = accounts_port.get_user_by_id(user_id=consumed.user_id)
            if user is None:
                raise NotFoundError("user for authenticated state not found")

            with wrap_step("failed to generate session token"):
                token = self._token_port.issue_token(
                    user_id=user.id,
                    email=user.email,
                    name=user.name,
                    now=now,
                )
            return PollLoginOutput(authenticated=True, user=user, token=token)

        output = self._accounts_port.execute_in_transaction(_tx)
        if output.authenticated:
            logger.info("auth: poll consumed state=%s... user_id=%s", state[:8], output.user.id)
        return output
