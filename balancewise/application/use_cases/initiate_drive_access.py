from __future__ import annotations

import logging

from balancewise.application.dto.auth import InitiateAuthOutput
from balancewise.application.ports.accounts_port import AccountsPort
from balancewise.application.ports.identity_provider_port import IdentityProviderPort
from balancewise.domain.exceptions import UnauthorizedError

from .auth_common import STATE_TTL, Clock, generate_state, utcnow, wrap_step


logger = logging.getLogger(__name__)


class InitiateDriveAccessUseCase:
    """Starts the Google Drive grant for a user who is already signed in.

    The state row is bound to the user from the start, so the callback does not
    need a poll step to learn who granted access.
    """

    def __init__(
        self,
        *,
        accounts_port: AccountsPort,
        identity_provider: IdentityProviderPort,
        clock: Clock = utcnow,
    ):
        self._accounts_port = accounts_port
        self._identity_provider = identity_provider
        self._clock = clock

    def execute(self, *, user_id: str) -> InitiateAuthOutput:
        with wrap_step("failed to get user"):
            user = self._accounts_port.get_user_by_id(user_id=user_id)
        if user is None:
            raise UnauthorizedError()

        state = generate_state()
        auth_url = self._identity_provider.build_auth_url(state=state, login_hint=user.email)
        now = self._clock()

        with wrap_step("failed to create auth state"):
            self._accounts_port.create_state(
                state=state,
                auth_url=auth_url,
                user_id=user.id,
                expires_at=now + STATE_TTL,
                created_at=now,
            )

        logger.info("auth: initiated drive access state=%s... user_id=%s", state[:8], user.id)
        return InitiateAuthOutput(auth_url=auth_url, state=state)
