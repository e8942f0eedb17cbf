"""Tests for SyncOrchestrator end-to-end over in-memory ports."""

import base64
from unittest.mock import AsyncMock

import pytest

from core.domain.entities import FailureReason, SyncState, User


def b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@pytest.fixture
def mailbox(gmail):
    """Checkpoint 100 has two new messages, a and b; b carries one attachment."""
    gmail.history_pages = {
        None: {
            "history": [
                {"id": "101", "messagesAdded": [{"message": {"id": "a"}}]},
                {"id": "102", "messagesAdded": [{"message": {"id": "b"}}]},
            ],
            "historyId": "200",
        }
    }
    gmail.messages = {
        "a": {"id": "a", "raw": b64(b"Subject: A\r\n\r\nbody a")},
        "b": {
            "id": "b",
            "raw": b64(b"Subject: B\r\n\r\nbody b"),
            "payload": {"parts": [{"filename": "report.csv", "body": {"attachmentId": "att-b"}}]},
        },
    }
    gmail.attachments = {"att-b": {"data": b64(b"x,y\n1,2\n")}}
    return gmail


@pytest.mark.asyncio
async def test_sync_delivers_mail_and_advances_checkpoint(
    orchestrator, authorized_user, mailbox, user_repository
):
    result = await orchestrator.sync("alice@example.com", 200)

    assert result.ok
    assert result.state == SyncState.DONE
    assert [mail.message for mail in result.value] == [
        "Subject: A\r\n\r\nbody a",
        "Subject: B\r\n\r\nbody b",
    ]
    assert result.value[1].attachments[0].name == "report.csv"
    assert result.value[1].attachments[0].data == b"x,y\n1,2\n"
    assert mailbox.calls_of("history") == [("history", 100, None)]
    assert user_repository.users[42].history_id == 200


@pytest.mark.asyncio
async def test_email_lookup_is_case_insensitive(orchestrator, authorized_user, mailbox):
    result = await orchestrator.sync("Alice@Example.COM", 200)

    assert result.ok


@pytest.mark.asyncio
async def test_unknown_user(orchestrator, gmail):
    result = await orchestrator.sync("nobody@example.com", 200)

    assert result.error == FailureReason.USER_NOT_FOUND
    assert result.state == SyncState.FAILED
    assert gmail.calls == []


@pytest.mark.asyncio
async def test_sentinel_token_is_unauthorized_without_provider_calls(
    orchestrator, user_repository, gmail
):
    await user_repository.create(User(id=7, email="bob@example.com", history_id=100))

    result = await orchestrator.sync("bob@example.com", 200)

    assert result.error == FailureReason.UNAUTHORIZED
    assert result.value is None
    assert gmail.calls == []
    assert user_repository.users[7].history_id == 100


@pytest.mark.asyncio
async def test_corrupt_token(orchestrator, user_repository, gmail):
    await user_repository.create(
        User(id=8, email="carol@example.com", token="garbage", history_id=100)
    )

    result = await orchestrator.sync("carol@example.com", 200)

    assert result.error == FailureReason.CREDENTIAL_CORRUPT
    assert gmail.calls == []


@pytest.mark.asyncio
async def test_failed_message_leaves_checkpoint_untouched(
    orchestrator, authorized_user, mailbox, user_repository
):
    mailbox.failing_messages = {"b"}

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.MESSAGE_FETCH_FAILED
    assert result.state == SyncState.FAILED
    assert result.value is None
    assert user_repository.users[42].history_id == 100
    assert user_repository.history_id_writes == []


@pytest.mark.asyncio
async def test_failed_attachment_leaves_checkpoint_untouched(
    orchestrator, authorized_user, mailbox, user_repository
):
    mailbox.failing_attachments = {"att-b"}

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.ATTACHMENT_FETCH_FAILED
    assert user_repository.users[42].history_id == 100


@pytest.mark.asyncio
async def test_failed_page_leaves_checkpoint_untouched(
    orchestrator, authorized_user, mailbox, user_repository
):
    mailbox.history_errors[None] = RuntimeError("boom")

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.PAGE_FETCH_FAILED
    assert mailbox.calls_of("message") == []
    assert user_repository.users[42].history_id == 100


@pytest.mark.asyncio
async def test_commit_failure_discards_fetched_mail(
    orchestrator, authorized_user, mailbox, user_repository
):
    user_repository.fail_set_history_id = True

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.CHECKPOINT_COMMIT_FAILED
    assert result.value is None
    assert user_repository.users[42].history_id == 100


@pytest.mark.asyncio
async def test_commit_exception_is_a_commit_failure(
    orchestrator, authorized_user, mailbox, user_repository
):
    user_repository.raise_on_set_history_id = RuntimeError("database is locked")

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.CHECKPOINT_COMMIT_FAILED


@pytest.mark.asyncio
async def test_checkpoint_never_moves_backwards(
    orchestrator, authorized_user, mailbox, user_repository, logger
):
    """Test that a stale notification still syncs but keeps the larger checkpoint."""
    result = await orchestrator.sync("alice@example.com", 50)

    assert result.ok
    assert user_repository.users[42].history_id == 100
    assert logger.messages("warning")


@pytest.mark.asyncio
async def test_no_new_messages_still_commits(orchestrator, authorized_user, gmail, user_repository):
    gmail.history_pages = {None: {"historyId": "150"}}

    result = await orchestrator.sync("alice@example.com", 150)

    assert result.ok
    assert result.value == []
    assert user_repository.users[42].history_id == 150


@pytest.mark.asyncio
async def test_expired_token_is_refreshed_before_paging(
    orchestrator, user_repository, encryption_service, mailbox
):
    token = await encryption_service.encrypt(
        '{"access_token": "old", "refresh_token": "refresh-123", "expiry": "2000-01-01T00:00:00Z"}'
    )
    await user_repository.create(User(id=42, email="alice@example.com", token=token, history_id=100))

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.ok
    assert mailbox.calls[0] == ("refresh", "refresh-123")
    stored = await encryption_service.decrypt(user_repository.users[42].token)
    assert "access-refreshed" in stored
    assert "refresh-123" in stored


@pytest.mark.asyncio
async def test_refresh_failure(orchestrator, user_repository, encryption_service, mailbox):
    token = await encryption_service.encrypt(
        '{"access_token": "old", "refresh_token": "refresh-123", "expiry": "2000-01-01T00:00:00Z"}'
    )
    await user_repository.create(User(id=42, email="alice@example.com", token=token, history_id=100))
    mailbox.token_error = RuntimeError("invalid_grant")

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.TOKEN_REFRESH_FAILED
    assert mailbox.calls_of("history") == []


@pytest.mark.asyncio
async def test_sync_runs_are_recorded(orchestrator, authorized_user, mailbox, sync_run_repository):
    await orchestrator.sync("alice@example.com", 200)
    mailbox.failing_messages = {"a"}
    await orchestrator.sync("alice@example.com", 300)

    runs = await orchestrator.get_sync_runs("alice@example.com")

    assert len(runs) == 2
    by_state = {run.state: run for run in runs}
    done = by_state[SyncState.DONE]
    assert done.start_history_id == 100
    assert done.committed_history_id == 200
    assert done.message_count == 2
    assert done.attachment_count == 1
    failed = by_state[SyncState.FAILED]
    assert failed.failure_reason == FailureReason.MESSAGE_FETCH_FAILED
    assert failed.start_history_id == 200
    assert failed.committed_history_id is None
    assert failed.error_message.startswith("resolving")


@pytest.mark.asyncio
async def test_sync_run_store_failure_does_not_change_outcome(
    orchestrator, authorized_user, mailbox, sync_run_repository, user_repository
):
    sync_run_repository.fail = True

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.ok
    assert user_repository.users[42].history_id == 200


@pytest.mark.asyncio
async def test_bootstrap_checkpoint_uses_profile_history_id(
    orchestrator, authorized_user, gmail, user_repository
):
    result = await orchestrator.bootstrap_checkpoint("alice@example.com")

    assert result.ok
    assert result.value == 555
    assert user_repository.users[42].history_id == 555


@pytest.mark.asyncio
async def test_bootstrap_checkpoint_requires_authorization(orchestrator, user_repository, gmail):
    await user_repository.create(User(id=7, email="bob@example.com"))

    result = await orchestrator.bootstrap_checkpoint("bob@example.com")

    assert result.error == FailureReason.UNAUTHORIZED
    assert gmail.calls == []


@pytest.mark.asyncio
async def test_ensure_checkpoint_initializes_new_user(orchestrator, user_repository, encryption_service):
    token = await encryption_service.encrypt('{"access_token": "access-123"}')
    await user_repository.create(User(id=7, email="bob@example.com", token=token))

    result = await orchestrator.ensure_checkpoint(7)

    assert result.ok
    assert result.value == 555
    assert user_repository.users[7].history_id == 555


@pytest.mark.asyncio
async def test_ensure_checkpoint_keeps_existing_value(orchestrator, authorized_user, gmail, user_repository):
    result = await orchestrator.ensure_checkpoint(42)

    assert result.ok
    assert result.value == 100
    assert gmail.calls_of("profile") == []
    assert user_repository.history_id_writes == []


@pytest.mark.asyncio
async def test_ensure_checkpoint_unknown_user(orchestrator):
    result = await orchestrator.ensure_checkpoint(404)

    assert result.error == FailureReason.USER_NOT_FOUND


@pytest.mark.asyncio
async def test_user_lookup_error_is_user_not_found(orchestrator, gmail):
    orchestrator.user_repository = AsyncMock()
    orchestrator.user_repository.find_by_email.side_effect = RuntimeError("connection refused")

    result = await orchestrator.sync("alice@example.com", 200)

    assert result.error == FailureReason.USER_NOT_FOUND
    assert result.state == SyncState.FAILED
    assert gmail.calls == []
