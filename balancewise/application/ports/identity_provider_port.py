from __future__ import annotations

from typing import Protocol

from balancewise.application.dto.auth import ProviderProfile, ProviderTokens


class IdentityProviderPort(Protocol):
    def build_auth_url(self, *, state: str, login_hint: str | None = None) -> str:
        ...

    def exchange_code(self, *, code: str) -> ProviderTokens:
        ...

    def fetch_profile(self, *, access_token: str) -> ProviderProfile:
        ...

    def refresh_access_token(self, *, refresh_token: str) -> ProviderTokens:
        ...
