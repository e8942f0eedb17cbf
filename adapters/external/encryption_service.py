"""
암호화 서비스 어댑터

저장되는 OAuth 토큰의 암호화/복호화를 담당하는 어댑터입니다.
Fernet 대칭 암호화를 사용합니다.
"""

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from core.domain.ports import EncryptionServicePort, LoggerPort


class EncryptionError(Exception):
    """암호화/복호화 실패"""


class EncryptionServiceAdapter(EncryptionServicePort):
    """암호화 서비스 어댑터"""

    def __init__(self, encryption_key: str, logger: LoggerPort):
        self.logger = logger
        self._fernet = self._create_fernet(encryption_key)

    def _create_fernet(self, password: str) -> Fernet:
        """암호화 키로부터 Fernet 인스턴스를 생성합니다."""
        salt = b"gmail_history_sync_salt"

        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=100000,
        )

        key = base64.urlsafe_b64encode(kdf.derive(password.encode()))
        return Fernet(key)

    async def encrypt(self, data: str) -> str:
        """데이터를 암호화합니다."""
        if not data:
            return ""

        result = self._fernet.encrypt(data.encode()).decode()

        self.logger.debug("데이터 암호화 성공")
        return result

    async def decrypt(self, encrypted_data: str) -> str:
        """암호화된 데이터를 복호화합니다."""
        if not encrypted_data:
            return ""

        try:
            result = self._fernet.decrypt(encrypted_data.encode()).decode()
        except (InvalidToken, UnicodeError) as e:
            self.logger.error(f"데이터 복호화 실패: {type(e).__name__}")
            raise EncryptionError("복호화 실패") from e

        self.logger.debug("데이터 복호화 성공")
        return result
