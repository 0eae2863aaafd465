from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from balancewise.api.errors import to_http_exception
from balancewise.application.use_cases.analyze_food import AnalyzeFoodUseCase
from balancewise.application.use_cases.cleanup_expired import CleanupExpiredUseCase
from balancewise.application.use_cases.get_drive_access_token import GetDriveAccessTokenUseCase
from balancewise.application.use_cases.handle_drive_access_callback import (
    HandleDriveAccessCallbackUseCase,
)
from balancewise.application.use_cases.handle_login_callback import HandleLoginCallbackUseCase
from balancewise.application.use_cases.initiate_drive_access import InitiateDriveAccessUseCase
from balancewise.application.use_cases.initiate_login import InitiateLoginUseCase
from balancewise.application.use_cases.poll_login import PollLoginUseCase
from balancewise.application.use_cases.verify_session import VerifySessionTokenUseCase
from balancewise.domain.entities.user import User
from balancewise.domain.exceptions import DomainError
from balancewise.infrastructure.clients.google_oauth_client import (
    DRIVE_SCOPES,
    LOGIN_SCOPES,
    GoogleOAuthClient,
    GoogleOAuthClientSettings,
)
from balancewise.infrastructure.clients.http_image_fetcher import HttpImageFetcher
from balancewise.infrastructure.clients.openai_vision_client import OpenAIVisionClient
from balancewise.infrastructure.db.engine import get_engine
from balancewise.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from balancewise.infrastructure.security.token_service import JwtTokenService
from balancewise.shared.config import get_settings


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def _get_accounts_repository() -> SqlAccountsRepository:
    return SqlAccountsRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    if not settings.jwt_secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET is required.")
    return JwtTokenService(jwt_secret=settings.jwt_secret, ttl_days=settings.jwt_ttl_days)


def _google_settings(*, redirect_url: str, scopes: tuple[str, ...], drive: bool) -> GoogleOAuthClientSettings:
    settings = get_settings()
    if not settings.google_client_id:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_ID is required.")
    if not settings.google_client_secret:
        raise HTTPException(status_code=500, detail="GOOGLE_CLIENT_SECRET is required.")
    return GoogleOAuthClientSettings(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_url=redirect_url,
        scopes=scopes,
        auth_url=settings.google_auth_url,
        token_url=settings.google_token_url,
        userinfo_url=settings.google_userinfo_url,
        timeout_seconds=settings.google_timeout_seconds,
        force_consent=drive,
        include_granted_scopes=drive,
    )


@lru_cache(maxsize=1)
def _get_google_login_client() -> GoogleOAuthClient:
    settings = get_settings()
    return GoogleOAuthClient(
        _google_settings(redirect_url=settings.google_redirect_url, scopes=LOGIN_SCOPES, drive=False)
    )


@lru_cache(maxsize=1)
def _get_google_drive_client() -> GoogleOAuthClient:
    settings = get_settings()
    return GoogleOAuthClient(
        _google_settings(redirect_url=settings.google_drive_redirect_url, scopes=DRIVE_SCOPES, drive=True)
    )


@lru_cache(maxsize=1)
def _get_image_fetcher() -> HttpImageFetcher:
    settings = get_settings()
    return HttpImageFetcher(timeout_seconds=settings.avatar_timeout_seconds)


@lru_cache(maxsize=1)
def _get_vision_client() -> OpenAIVisionClient:
    settings = get_settings()
    if not settings.openai_api_key:
        raise HTTPException(status_code=500, detail="OPENAI_API_KEY is required.")
    return OpenAIVisionClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout_seconds=settings.openai_timeout_seconds,
    )


def get_initiate_login_use_case() -> InitiateLoginUseCase:
    return InitiateLoginUseCase(
        state_port=_get_accounts_repository(),
        identity_provider=_get_google_login_client(),
    )


def get_handle_login_callback_use_case() -> HandleLoginCallbackUseCase:
    return HandleLoginCallbackUseCase(
        accounts_port=_get_accounts_repository(),
        identity_provider=_get_google_login_client(),
        image_fetcher=_get_image_fetcher(),
        token_port=_get_token_service(),
    )


def get_poll_login_use_case() -> PollLoginUseCase:
    return PollLoginUseCase(
        accounts_port=_get_accounts_repository(),
        token_port=_get_token_service(),
    )


def get_verify_session_use_case() -> VerifySessionTokenUseCase:
    return VerifySessionTokenUseCase(
        user_port=_get_accounts_repository(),
        token_port=_get_token_service(),
    )


def get_initiate_drive_access_use_case() -> InitiateDriveAccessUseCase:
    return InitiateDriveAccessUseCase(
        accounts_port=_get_accounts_repository(),
        identity_provider=_get_google_drive_client(),
    )


def get_handle_drive_access_callback_use_case() -> HandleDriveAccessCallbackUseCase:
    return HandleDriveAccessCallbackUseCase(
        accounts_port=_get_accounts_repository(),
        identity_provider=_get_google_drive_client(),
    )


def get_drive_access_token_use_case() -> GetDriveAccessTokenUseCase:
    return GetDriveAccessTokenUseCase(
        token_store=_get_accounts_repository(),
        identity_provider=_get_google_drive_client(),
    )


def get_analyze_food_use_case() -> AnalyzeFoodUseCase:
    return AnalyzeFoodUseCase(vision_port=_get_vision_client())


def build_cleanup_use_case(dsn: str) -> CleanupExpiredUseCase:
    repository = SqlAccountsRepository(get_engine(dsn))
    return CleanupExpiredUseCase(state_port=repository, token_store=repository)


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail={"code": "INVALID_TOKEN", "message": "authorization header is required"},
        )
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=401,
            detail={"code": "INVALID_TOKEN", "message": "invalid authorization header format"},
        )
    return token.strip()


def get_current_user(
    authorization: str | None = Header(default=None),
    use_case: VerifySessionTokenUseCase = Depends(get_verify_session_use_case),
) -> User:
    token = extract_bearer_token(authorization)
    try:
        return use_case.execute(token=token)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
