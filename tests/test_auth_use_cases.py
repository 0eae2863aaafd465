from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import httpx
import pytest

from balancewise.application.dto.auth import HandleCallbackInput
from balancewise.application.use_cases.handle_login_callback import HandleLoginCallbackUseCase
from balancewise.application.use_cases.initiate_login import InitiateLoginUseCase
from balancewise.application.use_cases.poll_login import PollLoginUseCase
from balancewise.application.use_cases.verify_session import VerifySessionTokenUseCase
from balancewise.domain.exceptions import (
    InternalError,
    InvalidOrExpiredStateError,
    InvalidTokenError,
    NotFoundError,
    ProviderExchangeError,
    UnauthorizedError,
)
from balancewise.infrastructure.clients.http_image_fetcher import HttpImageFetcher


@pytest.fixture
def initiate(accounts, identity_provider, clock):
    return InitiateLoginUseCase(state_port=accounts, identity_provider=identity_provider, clock=clock)


@pytest.fixture
def callback(accounts, identity_provider, image_fetcher, token_port, clock):
    return HandleLoginCallbackUseCase(
        accounts_port=accounts,
        identity_provider=identity_provider,
        image_fetcher=image_fetcher,
        token_port=token_port,
        clock=clock,
    )


@pytest.fixture
def poll(accounts, token_port, clock):
    return PollLoginUseCase(accounts_port=accounts, token_port=token_port, clock=clock)


def test_initiate_login_persists_pending_state_with_ten_minute_ttl(initiate, accounts, clock):
    output = initiate.execute()

    row = accounts.states[output.state]
    assert output.auth_url.endswith(f"state={output.state}")
    assert row.user_id is None
    assert row.authenticated is False
    assert row.expires_at == clock() + timedelta(minutes=10)
    assert len(output.state) >= 43


def test_initiate_login_generates_distinct_states(initiate):
    assert initiate.execute().state != initiate.execute().state


def test_login_flow_initiate_callback_poll_consumes_state(initiate, callback, poll, accounts):
    started = initiate.execute()

    assert poll.execute(state=started.state).authenticated is False

    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))
    assert login.user.email == "alice@example.com"
    assert login.token == f"session::{login.user.id}::alice@example.com"
    assert accounts.states[started.state].authenticated is True
    assert accounts.states[started.state].user_id == login.user.id

    first = poll.execute(state=started.state)
    assert first.authenticated is True
    assert first.user.id == login.user.id
    assert first.token
    assert started.state not in accounts.states

    second = poll.execute(state=started.state)
    assert second.authenticated is False
    assert second.token is None


def test_callback_stores_provider_tokens_for_thirty_days(initiate, callback, accounts, clock):
    started = initiate.execute()

    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    stored = accounts.tokens[login.user.id]
    assert stored.access_token == "access-code-1"
    assert stored.refresh_token == "refresh-1"
    assert stored.expires_at == clock() + timedelta(days=30)


def test_callback_downloads_profile_picture_as_base64(initiate, callback):
    started = initiate.execute()

    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert login.user.profile_pic == "cG5nLWJ5dGVz"


def test_callback_on_expired_state_is_rejected_without_side_effects(
    initiate, callback, accounts, identity_provider, clock
):
    started = initiate.execute()
    clock.advance(timedelta(minutes=11))

    with pytest.raises(InvalidOrExpiredStateError):
        callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert identity_provider.calls == []
    assert accounts.users == {}
    assert accounts.states[started.state].authenticated is False


def test_callback_on_unknown_state_is_rejected(callback, identity_provider):
    with pytest.raises(InvalidOrExpiredStateError):
        callback.execute(HandleCallbackInput(state="missing", code="code-1"))
    assert identity_provider.calls == []


def test_second_callback_on_completed_state_is_rejected_without_provider_call(
    initiate, callback, accounts, identity_provider
):
    started = initiate.execute()
    callback.execute(HandleCallbackInput(state=started.state, code="code-1"))
    identity_provider.calls.clear()
    completed = accounts.states[started.state]

    with pytest.raises(InvalidOrExpiredStateError):
        callback.execute(HandleCallbackInput(state=started.state, code="code-2"))

    assert identity_provider.calls == []
    assert accounts.states[started.state] == completed


def test_login_callback_rejects_drive_access_state(callback, accounts, identity_provider, make_user, clock):
    user = make_user()
    accounts.create_state(
        state="drive-state",
        auth_url="https://accounts.example.com",
        user_id=user.id,
        expires_at=clock() + timedelta(minutes=10),
        created_at=clock(),
    )

    with pytest.raises(InvalidOrExpiredStateError):
        callback.execute(HandleCallbackInput(state="drive-state", code="code-1"))
    assert identity_provider.calls == []


def test_two_logins_for_same_email_update_single_user(initiate, callback, accounts, identity_provider):
    first_state = initiate.execute().state
    first = callback.execute(HandleCallbackInput(state=first_state, code="code-1"))

    identity_provider.profile = replace(identity_provider.profile, name="Alice Cooper")
    second_state = initiate.execute().state
    second = callback.execute(HandleCallbackInput(state=second_state, code="code-2"))

    assert len(accounts.users) == 1
    assert second.user.id == first.user.id
    assert second.user.name == "Alice Cooper"


def test_avatar_download_failure_still_logs_user_in(initiate, callback, accounts, image_fetcher):
    image_fetcher.fail = True
    started = initiate.execute()

    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert login.user.profile_pic is None
    assert login.token
    assert accounts.states[started.state].authenticated is True


def test_exchange_failure_leaves_state_pending(initiate, callback, accounts, identity_provider):
    identity_provider.exchange_error = ProviderExchangeError()
    started = initiate.execute()

    with pytest.raises(ProviderExchangeError):
        callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert accounts.users == {}
    assert accounts.states[started.state].is_pending()


def test_store_failure_rolls_back_user_and_state(initiate, callback, accounts, monkeypatch):
    started = initiate.execute()

    def _boom(**kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(accounts, "upsert_provider_token", _boom)

    with pytest.raises(InternalError) as excinfo:
        callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert str(excinfo.value).startswith("failed to store token")
    assert accounts.users == {}
    assert accounts.states[started.state].is_pending()


def test_concurrent_user_creation_falls_back_to_update(initiate, callback, accounts, make_user, monkeypatch):
    existing = make_user()
    monkeypatch.setattr(accounts, "get_user_by_email", lambda **kwargs: None)
    started = initiate.execute()

    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert login.user.id == existing.id
    assert len(accounts.users) == 1


def test_poll_unknown_state_is_not_authenticated(poll):
    assert poll.execute(state="missing").authenticated is False


def test_poll_expired_authenticated_state_is_not_authenticated(initiate, callback, poll, clock):
    started = initiate.execute()
    callback.execute(HandleCallbackInput(state=started.state, code="code-1"))
    clock.advance(timedelta(minutes=11))

    assert poll.execute(state=started.state).authenticated is False


def test_poll_raises_when_authenticated_user_is_gone(initiate, callback, poll, accounts):
    started = initiate.execute()
    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))
    del accounts.users[login.user.id]

    with pytest.raises(NotFoundError):
        poll.execute(state=started.state)
    assert accounts.states[started.state].authenticated is True


def test_verify_session_returns_user(accounts, token_port, make_user):
    user = make_user()
    use_case = VerifySessionTokenUseCase(user_port=accounts, token_port=token_port)

    assert use_case.execute(token=f"session::{user.id}::{user.email}") == user


@pytest.mark.parametrize("token", ["", "   ", "garbage", "session::not-a-uuid::alice@example.com"])
def test_verify_session_rejects_invalid_tokens(accounts, token_port, token):
    use_case = VerifySessionTokenUseCase(user_port=accounts, token_port=token_port)

    with pytest.raises(InvalidTokenError):
        use_case.execute(token=token)


def test_verify_session_rejects_deleted_subject(accounts, token_port):
    use_case = VerifySessionTokenUseCase(user_port=accounts, token_port=token_port)

    with pytest.raises(UnauthorizedError):
        use_case.execute(token="session::0b7e8a52-7e7b-4f0e-9a63-3f1c2b9d4e11::alice@example.com")


def test_poll_hands_out_session_to_a_single_consumer(
    initiate, callback, accounts, token_port, clock, monkeypatch
):
    started = initiate.execute()
    callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    def _separate_read(**kwargs):
        raise AssertionError("poll must consume the state in one statement")

    monkeypatch.setattr(accounts, "get_state", _separate_read)
    first_worker = PollLoginUseCase(accounts_port=accounts, token_port=token_port, clock=clock)
    second_worker = PollLoginUseCase(accounts_port=accounts, token_port=token_port, clock=clock)

    first = first_worker.execute(state=started.state)
    second = second_worker.execute(state=started.state)

    assert first.authenticated is True
    assert first.token
    assert second.authenticated is False
    assert second.token is None


def test_poll_token_failure_keeps_state_for_retry(initiate, callback, poll, accounts, token_port, monkeypatch):
    started = initiate.execute()
    callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    def _boom(**kwargs):
        raise RuntimeError("signing key unavailable")

    monkeypatch.setattr(token_port, "issue_token", _boom)

    with pytest.raises(InternalError):
        poll.execute(state=started.state)

    assert accounts.states[started.state].authenticated is True


def test_malformed_avatar_url_still_logs_user_in(accounts, identity_provider, token_port, clock):
    identity_provider.profile = replace(identity_provider.profile, picture_url="http://[::1/a.png")
    fetcher = HttpImageFetcher(
        timeout_seconds=5,
        http_client=httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"img"))),
    )
    callback = HandleLoginCallbackUseCase(
        accounts_port=accounts,
        identity_provider=identity_provider,
        image_fetcher=fetcher,
        token_port=token_port,
        clock=clock,
    )
    started = InitiateLoginUseCase(state_port=accounts, identity_provider=identity_provider, clock=clock).execute()

    login = callback.execute(HandleCallbackInput(state=started.state, code="code-1"))

    assert login.user.profile_pic is None
    assert login.token
