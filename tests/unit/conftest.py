"""Unit test fixtures.

Use cases are exercised against in-memory fakes of the ports; no network
or database is touched unless a test opts into a tmp sqlite file.
"""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest

from core.domain.entities import OAuthClientConfig, User
from core.usecases.authentication import TokenManager
from core.usecases.history_pager import HistoryPager
from core.usecases.mail_sync import SyncOrchestrator
from core.usecases.message_resolver import MessageResolver
from tests.unit.fakes import (
    FakeEncryptionService,
    FakeGmailApiClient,
    InMemorySyncRunRepository,
    InMemoryUserRepository,
    RecordingLogger,
)


@pytest.fixture
def client_config():
    """OAuth application settings used by every test."""
    return OAuthClientConfig(
        client_id="test_client_id.apps.googleusercontent.com",
        client_secret="test_client_secret",
        redirect_uri="http://localhost:5000/auth/callback",
    )


@pytest.fixture
def logger():
    return RecordingLogger()


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def sync_run_repository():
    return InMemorySyncRunRepository()


@pytest.fixture
def encryption_service():
    return FakeEncryptionService()


@pytest.fixture
def gmail():
    return FakeGmailApiClient()


@pytest.fixture
def token_manager(client_config, user_repository, gmail, encryption_service, logger):
    return TokenManager(
        client_config=client_config,
        user_repository=user_repository,
        gmail_api_client=gmail,
        encryption_service=encryption_service,
        logger=logger,
        state_secret="test-state-secret",
    )


@pytest.fixture
def orchestrator(user_repository, token_manager, gmail, logger, sync_run_repository):
    return SyncOrchestrator(
        user_repository=user_repository,
        token_manager=token_manager,
        history_pager=HistoryPager(gmail_api_client=gmail, logger=logger),
        message_resolver=MessageResolver(gmail_api_client=gmail, logger=logger),
        logger=logger,
        sync_run_repository=sync_run_repository,
    )


@pytest.fixture
async def authorized_user(user_repository, encryption_service):
    """A user with a stored, valid credential and checkpoint 100."""
    token = await encryption_service.encrypt(
        '{"access_token": "access-123", "refresh_token": "refresh-123"}'
    )
    return await user_repository.create(
        User(id=42, email="alice@example.com", token=token, history_id=100)
    )
