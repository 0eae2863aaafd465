from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse

from balancewise.api.deps import (
    get_current_user,
    get_drive_access_token_use_case,
    get_handle_drive_access_callback_use_case,
    get_handle_login_callback_use_case,
    get_initiate_drive_access_use_case,
    get_initiate_login_use_case,
    get_poll_login_use_case,
)
from balancewise.api.errors import to_http_exception
from balancewise.api.pages import DRIVE_SUCCESS_PAGE, LOGIN_SUCCESS_PAGE
from balancewise.api.schemas.auth import (
    DriveAccessTokenResponse,
    InitiateAuthResponse,
    PollRequest,
    PollResponse,
    UserResponse,
    VerifyResponse,
)
from balancewise.application.dto.auth import HandleCallbackInput
from balancewise.application.use_cases.get_drive_access_token import GetDriveAccessTokenUseCase
from balancewise.application.use_cases.handle_drive_access_callback import (
    HandleDriveAccessCallbackUseCase,
)
from balancewise.application.use_cases.handle_login_callback import HandleLoginCallbackUseCase
from balancewise.application.use_cases.initiate_drive_access import InitiateDriveAccessUseCase
from balancewise.application.use_cases.initiate_login import InitiateLoginUseCase
from balancewise.application.use_cases.poll_login import PollLoginUseCase
from balancewise.domain.entities.user import User
from balancewise.domain.exceptions import DomainError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth")


def _callback_input(state: str | None, code: str | None, error: str | None) -> HandleCallbackInput:
    if error:
        logger.warning("auth: provider returned an error error=%s", error)
        raise HTTPException(
            status_code=400,
            detail={"code": "OAUTH_ERROR", "message": f"oauth error: {error}"},
        )
    if not state or not code:
        raise HTTPException(
            status_code=400,
            detail={"code": "INVALID_REQUEST", "message": "missing state or code parameter"},
        )
    return HandleCallbackInput(state=state, code=code)


@router.post("/initiate", response_model=InitiateAuthResponse)
def initiate_login(
    use_case: InitiateLoginUseCase = Depends(get_initiate_login_use_case),
):
    try:
        output = use_case.execute()
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return InitiateAuthResponse(auth_url=output.auth_url, state=output.state)


@router.get("/callback", response_class=HTMLResponse)
def login_callback(
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    use_case: HandleLoginCallbackUseCase = Depends(get_handle_login_callback_use_case),
):
    command = _callback_input(state, code, error)
    try:
        use_case.execute(command)
    except DomainError as exc:
        logger.warning("auth: callback failed code=%s error=%s", exc.code, exc)
        raise to_http_exception(exc) from exc
    return HTMLResponse(content=LOGIN_SUCCESS_PAGE)


@router.post("/poll", response_model=PollResponse, response_model_exclude_none=True)
def poll_login(
    req: PollRequest,
    use_case: PollLoginUseCase = Depends(get_poll_login_use_case),
):
    try:
        output = use_case.execute(state=req.state)
    except DomainError as exc:
        raise to_http_exception(exc) from exc

    if not output.authenticated or output.user is None:
        return PollResponse(authenticated=False)
    return PollResponse(
        authenticated=True,
        token=output.token,
        user=UserResponse.from_user(output.user),
    )


@router.get("/verify", response_model=VerifyResponse)
def verify_session(current_user: User = Depends(get_current_user)):
    return VerifyResponse(valid=True, user=UserResponse.from_user(current_user))


@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.from_user(current_user)


@router.post("/request-drive-permission", response_model=InitiateAuthResponse)
def request_drive_permission(
    current_user: User = Depends(get_current_user),
    use_case: InitiateDriveAccessUseCase = Depends(get_initiate_drive_access_use_case),
):
    try:
        output = use_case.execute(user_id=current_user.id)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return InitiateAuthResponse(auth_url=output.auth_url, state=output.state)


@router.get("/callback-drive", response_class=HTMLResponse)
def drive_callback(
    state: str | None = None,
    code: str | None = None,
    error: str | None = None,
    use_case: HandleDriveAccessCallbackUseCase = Depends(get_handle_drive_access_callback_use_case),
):
    command = _callback_input(state, code, error)
    try:
        user = use_case.execute(command)
    except DomainError as exc:
        logger.warning("auth: drive callback failed code=%s error=%s", exc.code, exc)
        raise to_http_exception(exc) from exc
    logger.info("auth: drive permission granted user_id=%s", user.id)
    return HTMLResponse(content=DRIVE_SUCCESS_PAGE)


@router.get("/google-token", response_model=DriveAccessTokenResponse)
def get_google_token(
    current_user: User = Depends(get_current_user),
    use_case: GetDriveAccessTokenUseCase = Depends(get_drive_access_token_use_case),
):
    try:
        output = use_case.execute(user=current_user)
    except DomainError as exc:
        raise to_http_exception(exc) from exc
    return DriveAccessTokenResponse(access_token=output.access_token, expires_at=output.expires_at)
