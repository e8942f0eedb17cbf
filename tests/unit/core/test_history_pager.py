"""Tests for HistoryPager pagination."""

import pytest

from core.domain.entities import Credential, FailureReason, OAuthClient
from core.domain.exceptions import GmailApiError
from core.usecases.history_pager import HistoryPager


def _record(record_id, *message_ids):
    return {
        "id": record_id,
        "messagesAdded": [{"message": {"id": message_id}} for message_id in message_ids],
    }


@pytest.fixture
def client(client_config):
    return OAuthClient(config=client_config, credential=Credential(access_token="access-123"))


@pytest.fixture
def three_pages(gmail):
    gmail.history_pages = {
        None: {"history": [_record("1", "a")], "nextPageToken": "p2"},
        "p2": {"history": [_record("2", "b"), _record("3")], "nextPageToken": "p3"},
        "p3": {"history": [_record("4", "c", "d")]},
    }
    return gmail


@pytest.mark.asyncio
async def test_follows_page_tokens_until_exhausted(three_pages, logger, client):
    """Test that every page is fetched once and entries are concatenated in order."""
    pager = HistoryPager(gmail_api_client=three_pages, logger=logger)

    result = await pager.list_changes_since(client, 100)

    assert result.ok
    assert [call[2] for call in three_pages.calls_of("history")] == [None, "p2", "p3"]
    assert all(call[1] == 100 for call in three_pages.calls_of("history"))
    assert [entry.id for entry in result.value] == ["1", "2", "3", "4"]
    assert [entry.messages_added for entry in result.value] == [["a"], ["b"], [], ["c", "d"]]


@pytest.mark.asyncio
async def test_page_without_history_key_is_empty(gmail, logger, client):
    """Test that a response with no history field yields no entries."""
    gmail.history_pages = {None: {"historyId": "100"}}
    pager = HistoryPager(gmail_api_client=gmail, logger=logger)

    result = await pager.list_changes_since(client, 100)

    assert result.ok
    assert result.value == []


@pytest.mark.asyncio
async def test_failing_page_discards_partial_results(three_pages, logger, client):
    """Test that a failure on a later page returns no entries at all."""
    three_pages.history_errors["p2"] = GmailApiError("변경 이력 조회", 500, "backend error")
    pager = HistoryPager(gmail_api_client=three_pages, logger=logger)

    result = await pager.list_changes_since(client, 100)

    assert not result.ok
    assert result.error == FailureReason.PAGE_FETCH_FAILED
    assert result.value is None
    assert len(three_pages.calls_of("history")) == 2


@pytest.mark.asyncio
async def test_unexpected_error_is_page_fetch_failure(gmail, logger, client):
    """Test that transport errors are reported the same way as API errors."""
    gmail.history_errors[None] = ConnectionError("connection reset")
    pager = HistoryPager(gmail_api_client=gmail, logger=logger)

    result = await pager.list_changes_since(client, 100)

    assert result.error == FailureReason.PAGE_FETCH_FAILED
    assert "connection reset" in result.detail


@pytest.mark.asyncio
async def test_expired_checkpoint_is_logged_distinctly(gmail, logger, client):
    """Test that a 404 for a too-old startHistoryId is called out in the log."""
    gmail.history_errors[None] = GmailApiError("변경 이력 조회", 404, "Requested entity was not found.")
    pager = HistoryPager(gmail_api_client=gmail, logger=logger)

    result = await pager.list_changes_since(client, 7)

    assert result.error == FailureReason.PAGE_FETCH_FAILED
    assert any("체크포인트가 너무 오래됨" in message for message in logger.messages("error"))


@pytest.mark.asyncio
async def test_page_limit_stops_runaway_pagination(three_pages, logger, client):
    """Test that paging stops with a failure once max_pages is reached."""
    pager = HistoryPager(gmail_api_client=three_pages, logger=logger, max_pages=2)

    result = await pager.list_changes_since(client, 100)

    assert result.error == FailureReason.PAGE_FETCH_FAILED
    assert len(three_pages.calls_of("history")) == 2
