from __future__ import annotations

import logging

from balancewise.application.dto.auth import InitiateAuthOutput
from balancewise.application.ports.accounts_port import AuthStatePort
from balancewise.application.ports.identity_provider_port import IdentityProviderPort

from .auth_common import STATE_TTL, Clock, generate_state, utcnow, wrap_step


logger = logging.getLogger(__name__)


class InitiateLoginUseCase:
    def __init__(
        self,
        *,
        state_port: AuthStatePort,
        identity_provider: IdentityProviderPort,
        clock: Clock = utcnow,
    ):
        self._state_port = state_port
        self._identity_provider = identity_provider
        self._clock = clock

    def execute(self) -> InitiateAuthOutput:
        state = generate_state()
        auth_url = self._identity_provider.build_auth_url(state=state)
        now = self._clock()

        with wrap_step("failed to create auth state"):
            self._state_port.create_state(
                state=state,
                auth_url=auth_url,
                user_id=None,
                expires_at=now + STATE_TTL,
                created_at=now,
            )

        logger.info("auth: initiated login state=%s...", state[:8])
        return InitiateAuthOutput(auth_url=auth_url, state=state)
