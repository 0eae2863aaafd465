from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from urllib.parse import urlencode

import httpx
from google.auth.exceptions import GoogleAuthError
from google.auth.transport import requests as google_requests
from google.oauth2.credentials import Credentials

from balancewise.application.dto.auth import ProviderProfile, ProviderTokens
from balancewise.application.ports.identity_provider_port import IdentityProviderPort
from balancewise.application.use_cases.auth_common import Clock, utcnow
from balancewise.domain.exceptions import ProviderExchangeError, ProviderProfileError


logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

LOGIN_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.email",
    "https://www.googleapis.com/auth/userinfo.profile",
)
DRIVE_SCOPES = ("https://www.googleapis.com/auth/drive.file",)


@dataclass(frozen=True)
class GoogleOAuthClientSettings:
    client_id: str
    client_secret: str
    redirect_url: str
    scopes: tuple[str, ...]
    auth_url: str = GOOGLE_AUTH_URL
    token_url: str = GOOGLE_TOKEN_URL
    userinfo_url: str = GOOGLE_USERINFO_URL
    timeout_seconds: float = 10
    force_consent: bool = False
    include_granted_scopes: bool = False


class GoogleOAuthClient(IdentityProviderPort):
    def __init__(
        self,
        settings: GoogleOAuthClientSettings,
        *,
        http_client: httpx.Client | None = None,
        clock: Clock = utcnow,
    ):
        self._settings = settings
        self._clock = clock
        self._http = http_client or httpx.Client(timeout=settings.timeout_seconds)

    def build_auth_url(self, *, state: str, login_hint: str | None = None) -> str:
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": self._settings.redirect_url,
            "response_type": "code",
            "scope": " ".join(self._settings.scopes),
            "state": state,
            "access_type": "offline",
        }
        if self._settings.force_consent:
            params["prompt"] = "consent"
        if login_hint:
            params["login_hint"] = login_hint
        if self._settings.include_granted_scopes:
            params["include_granted_scopes"] = "true"
        return f"{self._settings.auth_url}?{urlencode(params)}"

    def exchange_code(self, *, code: str) -> ProviderTokens:
        data = {
            "code": code,
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            "redirect_uri": self._settings.redirect_url,
            "grant_type": "authorization_code",
        }
        try:
            response = self._http.post(
                self._settings.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("google_oauth_client: code exchange failed error=%s", exc)
            raise ProviderExchangeError() from exc

        access_token = payload.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise ProviderExchangeError("token response missing access_token")

        return ProviderTokens(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or None,
            expires_at=_expires_at(payload.get("expires_in"), now=self._clock()),
        )

    def fetch_profile(self, *, access_token: str) -> ProviderProfile:
        try:
            response = self._http.get(
                self._settings.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("google_oauth_client: userinfo request failed error=%s", exc)
            raise ProviderProfileError() from exc

        email = payload.get("email")
        subject = payload.get("id") or payload.get("sub")
        if not email or not subject:
            raise ProviderProfileError("user info missing required fields")

        name = payload.get("name") if isinstance(payload.get("name"), str) else ""
        picture = payload.get("picture") if isinstance(payload.get("picture"), str) else None
        return ProviderProfile(
            id=str(subject),
            email=str(email),
            name=name or str(email).split("@")[0],
            picture_url=picture or None,
        )

    def refresh_access_token(self, *, refresh_token: str) -> ProviderTokens:
        credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=self._settings.token_url,
            client_id=self._settings.client_id,
            client_secret=self._settings.client_secret,
            scopes=list(self._settings.scopes),
        )
        try:
            credentials.refresh(google_requests.Request())
        except GoogleAuthError as exc:
            logger.warning("google_oauth_client: refresh failed error=%s", exc)
            raise ProviderExchangeError("failed to refresh access token") from exc

        expiry = credentials.expiry
        if expiry is not None and expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return ProviderTokens(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expires_at=expiry,
        )


def _expires_at(expires_in, *, now: datetime) -> datetime | None:
    try:
        seconds = int(expires_in)
    except (TypeError, ValueError):
        return None
    return now + timedelta(seconds=seconds)
