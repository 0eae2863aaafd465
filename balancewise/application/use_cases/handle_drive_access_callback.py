from __future__ import annotations

import logging

from balancewise.application.dto.auth import HandleCallbackInput
from balancewise.application.ports.accounts_port import AccountsPort
from balancewise.application.ports.identity_provider_port import IdentityProviderPort
from balancewise.domain.entities.user import User
from balancewise.domain.exceptions import InvalidOrExpiredStateError, UnauthorizedError

from .auth_common import PROVIDER_TOKEN_TTL, Clock, utcnow, wrap_step


logger = logging.getLogger(__name__)


class HandleDriveAccessCallbackUseCase:
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

    def execute(self, command: HandleCallbackInput) -> User:
        with wrap_step("failed to get auth state"):
            auth_state = self._accounts_port.get_state(state=command.state)
        if auth_state is None or auth_state.is_expired(self._clock()):
            raise InvalidOrExpiredStateError()
        if auth_state.user_id is None or auth_state.authenticated:
            raise InvalidOrExpiredStateError("state does not belong to a drive access request")
        user_id = auth_state.user_id

        tokens = self._identity_provider.exchange_code(code=command.code)

        with wrap_step("failed to get user"):
            user = self._accounts_port.get_user_by_id(user_id=user_id)
        if user is None:
            raise UnauthorizedError()

        def _tx(accounts_port: AccountsPort) -> User:
            now = self._clock()
            with wrap_step("failed to store token"):
                accounts_port.upsert_provider_token(
                    user_id=user_id,
                    access_token=tokens.access_token,
                    refresh_token=tokens.refresh_token,
                    expires_at=now + PROVIDER_TOKEN_TTL,
                    created_at=now,
                )
            with wrap_step("failed to consume state"):
                accounts_port.delete_state(state=command.state)
            with wrap_step("failed to update gdrive_allowed"):
                return accounts_port.update_user_gdrive_allowed(
                    user_id=user_id,
                    gdrive_allowed=True,
                    updated_at=now,
                )

        user = self._accounts_port.execute_in_transaction(_tx)
        logger.info("auth: granted drive access email=%s user_id=%s", user.email, user.id)
        return user
