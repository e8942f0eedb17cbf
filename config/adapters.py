"""
설정 어댑터

Pydantic Settings 기반으로 ConfigPort를 구현하는 설정 어댑터입니다.
"""

import json
import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.entities import OAuthClientConfig
from core.domain.ports import ConfigPort


class BaseConfig(BaseSettings, ConfigPort):
    """기본 설정 클래스"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 환경 설정
    environment: str = Field(default="development")
    debug: bool = Field(default=False)

    # 데이터베이스 설정
    database_url: str = Field(...)

    # Google OAuth 애플리케이션 설정 (콘솔에서 내려받은 credentials JSON)
    google_credentials: str = Field(...)

    # 암호화 설정
    encryption_key: str = Field(...)

    # 로깅 설정
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # 웹 서버 설정 (인증 콜백, 푸시 알림 수신)
    web_host: str = Field(default="0.0.0.0")
    web_port: int = Field(default=5000)
    web_workers: int = Field(default=1)

    # 메일 동기화 설정
    http_timeout: float = Field(default=30.0)
    sync_max_history_pages: int = Field(default=1000)

    @field_validator("google_credentials")
    @classmethod
    def validate_google_credentials(cls, v):
        """credentials JSON 검증"""
        try:
            OAuthClientConfig.from_descriptor(json.loads(v))
        except (ValueError, KeyError, TypeError) as e:
            raise ValueError(f"GOOGLE_CREDENTIALS 형식이 올바르지 않습니다: {e}")
        return v

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v):
        """암호화 키 검증"""
        if len(v) < 16:
            raise ValueError("암호화 키는 16자 이상이어야 합니다")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """로그 레벨 검증"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"로그 레벨은 {valid_levels} 중 하나여야 합니다")
        return v.upper()

    @field_validator("sync_max_history_pages")
    @classmethod
    def validate_sync_max_history_pages(cls, v):
        if v < 1:
            raise ValueError("SYNC_MAX_HISTORY_PAGES는 1 이상이어야 합니다")
        return v

    # ConfigPort 인터페이스 구현
    def get_environment(self) -> str:
        return self.environment

    def is_debug(self) -> bool:
        return self.debug

    def get_database_url(self) -> str:
        return self.database_url

    def get_oauth_client_config(self) -> OAuthClientConfig:
        return OAuthClientConfig.from_descriptor(json.loads(self.google_credentials))

    def get_encryption_key(self) -> str:
        return self.encryption_key

    def get_log_level(self) -> str:
        return self.log_level

    def get_log_format(self) -> str:
        return self.log_format

    def get_web_host(self) -> str:
        return self.web_host

    def get_web_port(self) -> int:
        return self.web_port

    def get_web_workers(self) -> int:
        return self.web_workers

    def get_http_timeout(self) -> float:
        return self.http_timeout

    def get_sync_max_history_pages(self) -> int:
        return self.sync_max_history_pages

    def get_web_config(self) -> dict:
        """웹 서버 설정 조회"""
        return {
            "host": self.web_host,
            "port": self.web_port,
            "workers": self.web_workers,
        }

    def get_log_config(self) -> dict:
        """로그 설정 조회"""
        return {
            "level": self.log_level,
            "format": self.log_format,
        }


_DEV_CREDENTIALS = json.dumps({
    "installed": {
        "client_id": "dev_client_id.apps.googleusercontent.com",
        "client_secret": "dev_client_secret",
        "redirect_uris": ["http://localhost:5000/auth/callback"],
    }
})


class DevelopmentConfig(BaseConfig):
    """개발 환경 설정"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "DEBUG"

    # 개발용 기본값들
    database_url: str = Field(default="sqlite+aiosqlite:///./dev_database.db")

    # 개발용 더미 값들 (실제 사용 시 .env 파일에서 설정)
    google_credentials: str = Field(default=_DEV_CREDENTIALS)
    encryption_key: str = Field(default="dev_encryption_key_32_bytes_long")


class ProductionConfig(BaseConfig):
    """운영 환경 설정"""

    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    # 운영 환경에서는 더 많은 워커 사용
    web_workers: int = Field(default=4)

    @field_validator("database_url")
    @classmethod
    def validate_production_database_url(cls, v):
        """운영 환경에서는 SQLite를 허용하지 않음"""
        if not v or v.startswith("sqlite"):
            raise ValueError("운영 환경에서는 PostgreSQL 데이터베이스가 필요합니다")
        return v

    @field_validator("encryption_key")
    @classmethod
    def validate_production_secrets(cls, v):
        """운영 환경에서는 실제 시크릿 값이 필수"""
        if not v or v.startswith("dev_"):
            raise ValueError("운영 환경에서는 실제 시크릿 값이 필요합니다")
        return v


class TestingConfig(BaseConfig):
    """테스트 환경 설정"""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"

    database_url: str = Field(default="sqlite+aiosqlite:///./test_database.db")

    # 테스트용 더미 값들
    google_credentials: str = json.dumps({
        "installed": {
            "client_id": "test_client_id.apps.googleusercontent.com",
            "client_secret": "test_client_secret",
            "redirect_uris": ["http://localhost:5000/auth/callback"],
        }
    })
    encryption_key: str = "test_encryption_key_32_bytes_long"


class ConfigAdapter:
    """설정 어댑터 팩토리"""

    @staticmethod
    def create_config() -> ConfigPort:
        """환경에 따른 설정 객체를 생성합니다."""
        environment = os.getenv("ENVIRONMENT", "development").lower()

        if environment == "production":
            return ProductionConfig()
        elif environment == "testing":
            return TestingConfig()
        else:
            return DevelopmentConfig()


# 전역 설정 인스턴스
_config: Optional[ConfigPort] = None


def get_config() -> ConfigPort:
    """전역 설정 인스턴스를 반환합니다."""
    global _config
    if _config is None:
        _config = ConfigAdapter.create_config()
    return _config


def initialize_config() -> ConfigPort:
    """설정을 초기화합니다."""
    global _config
    _config = ConfigAdapter.create_config()
    return _config
