from __future__ import annotations

from balancewise.application.dto.auth import DriveAccessTokenOutput
from balancewise.application.ports.accounts_port import ProviderTokenPort
from balancewise.application.ports.identity_provider_port import IdentityProviderPort
from balancewise.domain.entities.user import User
from balancewise.domain.exceptions import ExtendedAccessNotGrantedError

from .auth_common import Clock, utcnow, wrap_step


class GetDriveAccessTokenUseCase:
    """Mints a short-lived Google access token from the stored refresh token."""

    def __init__(
        self,
        *,
        token_store: ProviderTokenPort,
        identity_provider: IdentityProviderPort,
        clock: Clock = utcnow,
    ):
        self._token_store = token_store
        self._identity_provider = identity_provider
        self._clock = clock

    def execute(self, *, user: User) -> DriveAccessTokenOutput:
        if not user.gdrive_allowed:
            raise ExtendedAccessNotGrantedError()

        with wrap_step("failed to get stored token"):
            stored = self._token_store.get_provider_token(user_id=user.id)
        if stored is None or not stored.refresh_token or stored.expires_at < self._clock():
            raise ExtendedAccessNotGrantedError()

        tokens = self._identity_provider.refresh_access_token(refresh_token=stored.refresh_token)
        return DriveAccessTokenOutput(access_token=tokens.access_token, expires_at=tokens.expires_at)
