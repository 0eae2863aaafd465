from __future__ import annotations

import base64
import logging
from uuid import uuid4

from balancewise.application.dto.auth import HandleCallbackInput, LoginOutput, ProviderProfile, ProviderTokens
from balancewise.application.ports.accounts_port import AccountsPort
from balancewise.application.ports.identity_provider_port import IdentityProviderPort
from balancewise.application.ports.image_fetcher_port import ImageFetcherPort
from balancewise.application.ports.token_port import TokenPort
from balancewise.domain.entities.user import User
from balancewise.domain.exceptions import (
    DuplicateKeyError,
    ImageDownloadError,
    InvalidOrExpiredStateError,
)

from .auth_common import PROVIDER_TOKEN_TTL, Clock, normalize_email, utcnow, wrap_step


logger = logging.getLogger(__name__)


class HandleLoginCallbackUseCase:
    """Completes a pending login handshake.

    Provider calls happen before any write. The user upsert, the provider token
    upsert and the state transition then run in a single transaction, so a
    failure at any step leaves the pending state untouched and the provider may
    retry the callback.
    """

    def __init__(
        self,
        *,
        accounts_port: AccountsPort,
        identity_provider: IdentityProviderPort,
        image_fetcher: ImageFetcherPort,
        token_port: TokenPort,
        clock: Clock = utcnow,
    ):
        self._accounts_port = accounts_port
        self._identity_provider = identity_provider
        self._image_fetcher = image_fetcher
        self._token_port = token_port
        self._clock = clock

    def execute(self, command: HandleCallbackInput) -> LoginOutput:
        with wrap_step("failed to get auth state"):
            auth_state = self._accounts_port.get_state(state=command.state)
        if auth_state is None or auth_state.is_expired(self._clock()):
            raise InvalidOrExpiredStateError()
        if not auth_state.is_pending():
            raise InvalidOrExpiredStateError("state already used")

        tokens = self._identity_provider.exchange_code(code=command.code)
        profile = self._identity_provider.fetch_profile(access_token=tokens.access_token)
        profile_pic = self._download_profile_picture(profile.picture_url)

        def _tx(accounts_port: AccountsPort) -> User:
            now = self._clock()
            user = self._upsert_user(accounts_port, profile=profile, profile_pic=profile_pic)
            self._store_provider_tokens(accounts_port, user_id=user.id, tokens=tokens)
            with wrap_step("failed to update state"):
                updated = accounts_port.mark_state_authenticated(
                    state=command.state,
                    user_id=user.id,
                    now=now,
                )
            if updated is None:
                raise InvalidOrExpiredStateError()
            return user

        user = self._accounts_port.execute_in_transaction(_tx)

        with wrap_step("failed to generate session token"):
            token = self._token_port.issue_token(
                user_id=user.id,
                email=user.email,
                name=user.name,
                now=self._clock(),
            )

        logger.info("auth: authenticated user email=%s state=%s...", user.email, command.state[:8])
        return LoginOutput(user=user, token=token)

    def _download_profile_picture(self, url: str | None) -> str | None:
        if not url:
            return None
        try:
            data = self._image_fetcher.fetch(url=url)
        except ImageDownloadError as exc:
            logger.warning("auth: profile picture unavailable, continuing without it error=%s", exc)
            return None
        return base64.b64encode(data).decode("ascii")

    def _upsert_user(
        self,
        accounts_port: AccountsPort,
        *,
        profile: ProviderProfile,
        profile_pic: str | None,
    ) -> User:
        email = normalize_email(profile.email)
        now = self._clock()

        with wrap_step("failed to get user"):
            existing = accounts_port.get_user_by_email(email=email)

        if existing is None:
            try:
                with wrap_step("failed to create user"):
                    user = accounts_port.create_user(
                        user_id=str(uuid4()),
                        email=email,
                        name=profile.name,
                        profile_pic=profile_pic,
                        created_at=now,
                        updated_at=now,
                    )
            except DuplicateKeyError:
                logger.info("auth: user created concurrently, updating instead email=%s", email)
            else:
                logger.info("auth: created new user email=%s", email)
                return user

        with wrap_step("failed to update user"):
            user = accounts_port.update_user_profile_by_email(
                email=email,
                name=profile.name,
                profile_pic=profile_pic,
                updated_at=now,
            )
        logger.info("auth: updated existing user email=%s", email)
        return user

    def _store_provider_tokens(
        self,
        accounts_port: AccountsPort,
        *,
        user_id: str,
        tokens: ProviderTokens,
    ) -> None:
        now = self._clock()
        with wrap_step("failed to store token"):
            accounts_port.upsert_provider_token(
                user_id=user_id,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                expires_at=now + PROVIDER_TOKEN_TTL,
                created_at=now,
            )
