"""
도메인 예외

어댑터가 외부 호출 실패를 알리는 데 사용하는 예외입니다.
유즈케이스는 이 예외를 잡아 Result 실패값으로 변환합니다.
"""

from typing import Optional


class GmailApiError(Exception):
    """Gmail/Google OAuth 호출이 성공 상태를 반환하지 않은 경우"""

    def __init__(self, operation: str, status_code: Optional[int] = None, message: str = ""):
        self.operation = operation
        self.status_code = status_code
        self.message = message
        super().__init__(f"{operation} 실패: {status_code} - {message}")


class CredentialDecodeError(Exception):
    """저장된 토큰을 복호화하거나 역직렬화할 수 없는 경우"""
