from __future__ import annotations

import logging

from balancewise.application.dto.auth import CleanupOutput
from balancewise.application.ports.accounts_port import AuthStatePort, ProviderTokenPort

from .auth_common import Clock, utcnow


logger = logging.getLogger(__name__)


class CleanupExpiredUseCase:
    """Sweeps expired auth states and provider tokens.

    Each sweep runs on its own; a failure is logged and reported as ``None`` in
    the output, never raised.
    """

    def __init__(
        self,
        *,
        state_port: AuthStatePort,
        token_store: ProviderTokenPort,
        clock: Clock = utcnow,
    ):
        self._state_port = state_port
        self._token_store = token_store
        self._clock = clock

    def execute(self) -> CleanupOutput:
        now = self._clock()

        states_deleted: int | None = None
        try:
            states_deleted = self._state_port.delete_expired_states(now=now)
        except Exception:
            logger.exception("cleanup: failed to delete expired states")

        tokens_deleted: int | None = None
        try:
            tokens_deleted = self._token_store.delete_expired_provider_tokens(now=now)
        except Exception:
            logger.exception("cleanup: failed to delete expired tokens")

        logger.info("cleanup: states_deleted=%s tokens_deleted=%s", states_deleted, tokens_deleted)
        return CleanupOutput(states_deleted=states_deleted, tokens_deleted=tokens_deleted)
