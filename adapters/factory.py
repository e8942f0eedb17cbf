"""
어댑터 팩토리

모든 어댑터들을 생성하고 의존성을 주입하는 팩토리 클래스입니다.
클린 아키텍처의 의존성 역전 원칙을 구현합니다.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.ports import (
    ConfigPort,
    EncryptionServicePort,
    GmailApiClientPort,
    LoggerPort,
    SyncRunRepositoryPort,
    UserRepositoryPort,
)
from core.usecases.authentication import TokenManager
from core.usecases.history_pager import HistoryPager
from core.usecases.mail_sync import SyncOrchestrator
from core.usecases.message_resolver import MessageResolver

from .db.repositories import SyncRunRepositoryAdapter, UserRepositoryAdapter
from .external.encryption_service import EncryptionServiceAdapter
from .external.gmail_api_client import GmailApiClientAdapter
from .logger import LoggerAdapter
from config.adapters import get_config


class AdapterFactory:
    """어댑터 팩토리"""

    def __init__(self, config: Optional[ConfigPort] = None):
        self.config = config or get_config()
        self.oauth_client_config = self.config.get_oauth_client_config()
        self._logger: Optional[LoggerPort] = None
        self._encryption_service: Optional[EncryptionServicePort] = None
        self._gmail_api_client: Optional[GmailApiClientPort] = None

    def create_logger(self) -> LoggerPort:
        """로거 어댑터를 생성합니다."""
        if self._logger is None:
            self._logger = LoggerAdapter(
                name="gmailsync",
                level=self.config.get_log_level(),
                format_string=self.config.get_log_format(),
            )
        return self._logger

    def create_encryption_service(self) -> EncryptionServicePort:
        """암호화 서비스 어댑터를 생성합니다."""
        if self._encryption_service is None:
            self._encryption_service = EncryptionServiceAdapter(
                encryption_key=self.config.get_encryption_key(),
                logger=self.create_logger(),
            )
        return self._encryption_service

    def create_gmail_api_client(self) -> GmailApiClientPort:
        """Gmail API 클라이언트 어댑터를 생성합니다."""
        if self._gmail_api_client is None:
            self._gmail_api_client = GmailApiClientAdapter(
                logger=self.create_logger(),
                timeout=self.config.get_http_timeout(),
            )
        return self._gmail_api_client

    def create_user_repository(self, session: AsyncSession) -> UserRepositoryPort:
        """사용자 Repository 어댑터를 생성합니다."""
        return UserRepositoryAdapter(session)

    def create_sync_run_repository(self, session: AsyncSession) -> SyncRunRepositoryPort:
        """동기화 이력 Repository 어댑터를 생성합니다."""
        return SyncRunRepositoryAdapter(session)

    def create_token_manager(self, session: AsyncSession) -> TokenManager:
        """토큰 관리 유즈케이스를 생성합니다."""
        return TokenManager(
            client_config=self.oauth_client_config,
            user_repository=self.create_user_repository(session),
            gmail_api_client=self.create_gmail_api_client(),
            encryption_service=self.create_encryption_service(),
            logger=self.create_logger(),
            state_secret=self.config.get_encryption_key(),
        )

    def create_sync_orchestrator(self, session: AsyncSession) -> SyncOrchestrator:
        """메일 동기화 유즈케이스를 생성합니다."""
        logger = self.create_logger()
        gmail_api_client = self.create_gmail_api_client()

        return SyncOrchestrator(
            user_repository=self.create_user_repository(session),
            token_manager=self.create_token_manager(session),
            history_pager=HistoryPager(
                gmail_api_client=gmail_api_client,
                logger=logger,
                max_pages=self.config.get_sync_max_history_pages(),
            ),
            message_resolver=MessageResolver(gmail_api_client=gmail_api_client, logger=logger),
            logger=logger,
            sync_run_repository=self.create_sync_run_repository(session),
        )

    def get_config(self) -> ConfigPort:
        """설정 객체를 반환합니다."""
        return self.config


# 전역 팩토리 인스턴스
_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """전역 어댑터 팩토리 인스턴스를 반환합니다."""
    global _factory
    if _factory is None:
        _factory = AdapterFactory()
    return _factory


def initialize_adapter_factory(config: Optional[ConfigPort] = None) -> AdapterFactory:
    """어댑터 팩토리를 초기화합니다."""
    global _factory
    _factory = AdapterFactory(config)
    return _factory
