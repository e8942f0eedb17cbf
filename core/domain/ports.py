"""
포트 인터페이스 정의

클린 아키텍처의 핵심으로, Core 레이어와 외부 어댑터 간의 계약을 정의합니다.
모든 포트는 추상 기본 클래스(ABC)로 정의되어 구현을 강제합니다.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from .entities import OAuthClientConfig, SyncRun, User


class UserRepositoryPort(ABC):
    """사용자 저장소 포트 (토큰과 체크포인트 보관)"""

    @abstractmethod
    async def create(self, user: User) -> User:
        """사용자 생성"""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: int) -> Optional[User]:
        """ID로 사용자 조회"""
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        """이메일로 사용자 조회"""
        pass

    @abstractmethod
    async def list_all(self, skip: int = 0, limit: int = 100) -> List[User]:
        """모든 사용자 목록 조회"""
        pass

    @abstractmethod
    async def set_token(self, user_id: int, serialized_token: str) -> bool:
        """직렬화된 토큰 저장"""
        pass

    @abstractmethod
    async def set_history_id(self, user_id: int, history_id: int) -> bool:
        """체크포인트(historyId) 저장"""
        pass


class SyncRunRepositoryPort(ABC):
    """동기화 이력 저장소 포트"""

    @abstractmethod
    async def create(self, sync_run: SyncRun) -> SyncRun:
        """동기화 이력 생성"""
        pass

    @abstractmethod
    async def update(self, sync_run: SyncRun) -> SyncRun:
        """동기화 이력 업데이트"""
        pass

    @abstractmethod
    async def get_by_id(self, sync_run_id: UUID) -> Optional[SyncRun]:
        """ID로 동기화 이력 조회"""
        pass

    @abstractmethod
    async def list_by_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[SyncRun]:
        """사용자별 동기화 이력 조회"""
        pass


class GmailApiClientPort(ABC):
    """Gmail API 클라이언트 포트"""

    @abstractmethod
    def get_authorization_url(
        self,
        config: OAuthClientConfig,
        scopes: List[str],
        state: Optional[str] = None,
    ) -> str:
        """인증 URL 생성"""
        pass

    @abstractmethod
    async def exchange_code_for_token(self, config: OAuthClientConfig, code: str) -> dict:
        """인증 코드를 토큰으로 교환"""
        pass

    @abstractmethod
    async def refresh_token(self, config: OAuthClientConfig, refresh_token: str) -> dict:
        """토큰 갱신"""
        pass

    @abstractmethod
    async def get_profile(self, access_token: str) -> dict:
        """메일함 프로필 조회 (현재 historyId 포함)"""
        pass

    @abstractmethod
    async def list_history(
        self,
        access_token: str,
        start_history_id: int,
        page_token: Optional[str] = None,
    ) -> dict:
        """historyId 이후의 변경 이력 한 페이지 조회"""
        pass

    @abstractmethod
    async def get_message(self, access_token: str, message_id: str) -> dict:
        """특정 메시지 조회"""
        pass

    @abstractmethod
    async def get_attachment(self, access_token: str, message_id: str, attachment_id: str) -> dict:
        """첨부파일 조회"""
        pass


class EncryptionServicePort(ABC):
    """암호화 서비스 포트"""

    @abstractmethod
    async def encrypt(self, data: str) -> str:
        """데이터 암호화"""
        pass

    @abstractmethod
    async def decrypt(self, encrypted_data: str) -> str:
        """데이터 복호화"""
        pass


class LoggerPort(ABC):
    """로거 포트"""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        pass


class ConfigPort(ABC):
    """설정 포트"""

    # 환경 설정
    @abstractmethod
    def get_environment(self) -> str:
        """환경 조회 (development, production, testing)"""
        pass

    @abstractmethod
    def is_debug(self) -> bool:
        """디버그 모드 여부"""
        pass

    # 데이터베이스 설정
    @abstractmethod
    def get_database_url(self) -> str:
        """데이터베이스 URL 조회"""
        pass

    # Google OAuth 설정
    @abstractmethod
    def get_oauth_client_config(self) -> OAuthClientConfig:
        """OAuth 애플리케이션 설정 조회"""
        pass

    # 보안 설정
    @abstractmethod
    def get_encryption_key(self) -> str:
        """암호화 키 조회"""
        pass

    # 로깅 설정
    @abstractmethod
    def get_log_level(self) -> str:
        """로그 레벨 조회"""
        pass

    @abstractmethod
    def get_log_format(self) -> str:
        """로그 포맷 조회"""
        pass

    # 웹 서버 설정
    @abstractmethod
    def get_web_host(self) -> str:
        """웹 서버 호스트 조회"""
        pass

    @abstractmethod
    def get_web_port(self) -> int:
        """웹 서버 포트 조회"""
        pass

    @abstractmethod
    def get_web_workers(self) -> int:
        """웹 서버 워커 수 조회"""
        pass

    # 동기화 설정
    @abstractmethod
    def get_http_timeout(self) -> float:
        """Gmail API 요청 타임아웃(초) 조회"""
        pass

    @abstractmethod
    def get_sync_max_history_pages(self) -> int:
        """한 번의 동기화에서 조회할 최대 history 페이지 수"""
        pass

    @abstractmethod
    def get_web_config(self) -> dict:
        """웹 서버 설정 조회"""
        pass

    @abstractmethod
    def get_log_config(self) -> dict:
        """로그 설정 조회"""
        pass
