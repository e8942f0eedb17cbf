"""Tests for TokenManager."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from core.domain.entities import (
    GMAIL_READONLY_SCOPE,
    UNAUTHORIZED_TOKEN,
    Credential,
    FailureReason,
    User,
)
from core.usecases.authentication import TokenManager


@pytest.mark.asyncio
async def test_authorize_unknown_user(token_manager, gmail):
    result = await token_manager.authorize(999)

    assert result.error == FailureReason.USER_NOT_FOUND
    assert gmail.calls == []


@pytest.mark.asyncio
async def test_authorize_sentinel_returns_unauthorized_handle(token_manager, user_repository, gmail):
    """Test that a sentinel token is not an error and makes no provider call."""
    await user_repository.create(User(id=1, email="bob@example.com"))

    result = await token_manager.authorize(1)

    assert result.ok
    assert result.value.authorized is False
    assert result.value.client.credential is None
    assert gmail.calls == []


@pytest.mark.asyncio
async def test_authorize_with_stored_credential(token_manager, authorized_user):
    result = await token_manager.authorize(authorized_user.id)

    assert result.ok
    assert result.value.authorized is True
    assert result.value.client.access_token == "access-123"
    assert result.value.client.credential.refresh_token == "refresh-123"


@pytest.mark.asyncio
async def test_authorize_corrupt_credential(token_manager, user_repository):
    await user_repository.create(User(id=1, email="bob@example.com", token="not-a-token"))

    result = await token_manager.authorize(1)

    assert result.error == FailureReason.CREDENTIAL_CORRUPT
    assert result.value.authorized is False


@pytest.mark.asyncio
async def test_authorize_credential_with_bad_json(token_manager, user_repository):
    await user_repository.create(User(id=1, email="bob@example.com", token="enc:{not json"))

    result = await token_manager.authorize(1)

    assert result.error == FailureReason.CREDENTIAL_CORRUPT


def test_authorization_url_requests_readonly_scope(token_manager, gmail):
    url = token_manager.build_authorization_url(token_manager.new_client(), state="42")

    assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
    assert gmail.calls == [("authorization_url", (GMAIL_READONLY_SCOPE,), "42")]


def test_issued_state_round_trips(token_manager):
    state = token_manager.issue_state(42)

    assert state.startswith("42.")
    assert token_manager.verify_state(state) == 42


@pytest.mark.parametrize("state", ["42", "42.", "42.forged", "abc.def", ""])
def test_unsigned_or_forged_state_is_rejected(token_manager, state):
    assert token_manager.verify_state(state) is None


def test_state_from_another_secret_is_rejected(
    token_manager, client_config, user_repository, gmail, encryption_service, logger
):
    other = TokenManager(
        client_config=client_config,
        user_repository=user_repository,
        gmail_api_client=gmail,
        encryption_service=encryption_service,
        logger=logger,
        state_secret="another-secret",
    )

    assert token_manager.verify_state(other.issue_state(42)) is None


@pytest.mark.asyncio
async def test_exchange_code_stores_credential(token_manager, user_repository, encryption_service, gmail):
    await user_repository.create(User(id=1, email="bob@example.com"))

    result = await token_manager.exchange_code(1, token_manager.new_client(), "auth-code")

    assert result.ok
    assert result.value.access_token == "access-new"
    assert gmail.calls == [("exchange", "auth-code")]
    stored = json.loads(await encryption_service.decrypt(user_repository.users[1].token))
    assert stored["access_token"] == "access-new"
    assert stored["refresh_token"] == "refresh-new"


@pytest.mark.asyncio
async def test_exchange_code_provider_rejection(token_manager, user_repository, gmail):
    await user_repository.create(User(id=1, email="bob@example.com"))
    gmail.token_error = RuntimeError("invalid_grant")

    result = await token_manager.exchange_code(1, token_manager.new_client(), "bad-code")

    assert result.error == FailureReason.EXCHANGE_FAILED
    assert user_repository.users[1].token == UNAUTHORIZED_TOKEN


@pytest.mark.asyncio
async def test_exchange_code_persistence_failure(token_manager, user_repository):
    """Test that a token the store refused is reported as an exchange failure."""
    await user_repository.create(User(id=1, email="bob@example.com"))
    user_repository.fail_set_token = True

    result = await token_manager.exchange_code(1, token_manager.new_client(), "auth-code")

    assert result.error == FailureReason.EXCHANGE_FAILED
    assert result.value is None


@pytest.mark.asyncio
async def test_exchange_code_for_unknown_user(token_manager):
    result = await token_manager.exchange_code(999, token_manager.new_client(), "auth-code")

    assert result.error == FailureReason.EXCHANGE_FAILED


@pytest.mark.asyncio
async def test_ensure_fresh_leaves_valid_token_alone(token_manager, gmail):
    credential = Credential(
        access_token="fresh",
        refresh_token="refresh-123",
        expiry=datetime.now(timezone.utc) + timedelta(hours=1),
    )
    client = token_manager.new_client().with_credential(credential)

    result = await token_manager.ensure_fresh(1, client)

    assert result.ok
    assert result.value.access_token == "fresh"
    assert gmail.calls == []


@pytest.mark.asyncio
async def test_ensure_fresh_refreshes_inside_skew_window(token_manager, user_repository, gmail):
    await user_repository.create(User(id=1, email="bob@example.com"))
    credential = Credential(
        access_token="stale",
        refresh_token="refresh-123",
        expiry=datetime.now(timezone.utc) + timedelta(seconds=30),
    )
    client = token_manager.new_client().with_credential(credential)

    result = await token_manager.ensure_fresh(1, client)

    assert result.ok
    assert result.value.access_token == "access-refreshed"
    assert result.value.credential.refresh_token == "refresh-123"
    assert gmail.calls == [("refresh", "refresh-123")]


@pytest.mark.asyncio
async def test_revoke_restores_sentinel(token_manager, authorized_user, user_repository):
    assert await token_manager.revoke(authorized_user.id) is True

    assert user_repository.users[authorized_user.id].token == UNAUTHORIZED_TOKEN
    assert not user_repository.users[authorized_user.id].is_authorized()


@pytest.mark.asyncio
async def test_revoke_unknown_user(token_manager):
    assert await token_manager.revoke(999) is False


@pytest.mark.asyncio
async def test_repository_error_is_reported_as_user_not_found(token_manager):
    token_manager.user_repository = AsyncMock()
    token_manager.user_repository.find_by_id.side_effect = RuntimeError("database is locked")

    result = await token_manager.authorize(1)

    assert result.error == FailureReason.USER_NOT_FOUND
    assert "database is locked" in result.detail


@pytest.mark.asyncio
async def test_store_exception_is_an_exchange_failure(token_manager):
    token_manager.user_repository = AsyncMock()
    token_manager.user_repository.set_token.side_effect = RuntimeError("disk full")

    result = await token_manager.exchange_code(1, token_manager.new_client(), "auth-code")

    assert result.error == FailureReason.EXCHANGE_FAILED
