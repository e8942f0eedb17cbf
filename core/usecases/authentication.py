"""
인증 유즈케이스

Gmail OAuth 2.0 Authorization Code Flow 처리를 위한 비즈니스 로직을 구현합니다.
- 저장된 토큰으로 클라이언트 복원
- 인증 URL 생성
- 인증 코드 교환 및 토큰 저장
- 토큰 갱신
"""

import hashlib
import hmac
import json
from typing import Optional

from ..domain.entities import (
    GMAIL_READONLY_SCOPE,
    UNAUTHORIZED_TOKEN,
    AuthHandle,
    Credential,
    FailureReason,
    OAuthClient,
    OAuthClientConfig,
    Result,
    User,
)
from ..domain.exceptions import CredentialDecodeError
from ..domain.ports import (
    EncryptionServicePort,
    GmailApiClientPort,
    LoggerPort,
    UserRepositoryPort,
)

SCOPES = [GMAIL_READONLY_SCOPE]


class TokenManager:
    """OAuth 토큰 수명 주기 관리 유즈케이스"""

    def __init__(
        self,
        client_config: OAuthClientConfig,
        user_repository: UserRepositoryPort,
        gmail_api_client: GmailApiClientPort,
        encryption_service: EncryptionServicePort,
        logger: LoggerPort,
        state_secret: str,
    ):
        self.client_config = client_config
        self.state_secret = state_secret
        self.user_repository = user_repository
        self.gmail_api_client = gmail_api_client
        self.encryption_service = encryption_service
        self.logger = logger

    def new_client(self) -> OAuthClient:
        """토큰이 없는 클라이언트 핸들을 만듭니다."""
        return OAuthClient(config=self.client_config)

    async def authorize(self, user_id: int) -> Result:
        """
        저장된 토큰으로 사용자의 클라이언트 핸들을 만듭니다.

        Args:
            user_id: 사용자 ID

        Returns:
            AuthHandle을 담은 Result.
            토큰이 센티널 값이면 authorized=False 핸들을 성공으로 반환하고,
            토큰이 손상되었으면 authorized=False 핸들과 CREDENTIAL_CORRUPT를 함께 반환합니다.
        """
        self.logger.debug(f"사용자 인증 정보 조회: {user_id}")

        try:
            user = await self.user_repository.find_by_id(user_id)
        except Exception as e:
            self.logger.error(f"사용자 조회 실패: {user_id}, 오류: {str(e)}")
            return Result.failure(FailureReason.USER_NOT_FOUND, str(e))

        if not user:
            self.logger.warning(f"사용자를 찾을 수 없음: {user_id}")
            return Result.failure(FailureReason.USER_NOT_FOUND, f"user {user_id}")

        if not user.is_authorized():
            return Result.success(AuthHandle(client=self.new_client(), authorized=False))

        rehydrated = await self.rehydrate(user)
        if not rehydrated.ok:
            return Result.failure(
                rehydrated.error,
                rehydrated.detail,
                value=AuthHandle(client=self.new_client(), authorized=False),
            )

        return Result.success(AuthHandle(client=rehydrated.value, authorized=True))

    async def rehydrate(self, user: User) -> Result:
        """
        저장된 토큰을 복호화/역직렬화하여 클라이언트 핸들을 복원합니다.

        센티널 토큰은 UNAUTHORIZED, 손상된 토큰은 CREDENTIAL_CORRUPT로 실패합니다.
        """
        if not user.is_authorized():
            return Result.failure(FailureReason.UNAUTHORIZED, f"user {user.id}")

        try:
            credential = await self._deserialize(user.token)
        except CredentialDecodeError as e:
            self.logger.error(f"저장된 토큰 손상: {user.id}, 오류: {str(e)}")
            return Result.failure(FailureReason.CREDENTIAL_CORRUPT, str(e))

        return Result.success(self.new_client().with_credential(credential))

    def build_authorization_url(self, client: OAuthClient, state: Optional[str] = None) -> str:
        """읽기 전용 권한과 오프라인 접근 모드로 인증 URL을 생성합니다."""
        return self.gmail_api_client.get_authorization_url(
            config=client.config,
            scopes=SCOPES,
            state=state,
        )

    def issue_state(self, user_id: int) -> str:
        """콜백에서 사용자를 식별할 서명된 state 값을 만듭니다. 형식: {user_id}.{HMAC-SHA256}"""
        return f"{user_id}.{self._sign(str(user_id))}"

    def verify_state(self, state: str) -> Optional[int]:
        """state 서명을 검증하고 사용자 ID를 반환합니다. 위조되었거나 형식이 틀리면 None."""
        user_part, _, signature = state.partition(".")
        if not signature or not hmac.compare_digest(signature, self._sign(user_part)):
            self.logger.warning(f"유효하지 않은 state 서명: {user_part}")
            return None
        try:
            return int(user_part)
        except ValueError:
            return None

    def _sign(self, value: str) -> str:
        return hmac.new(self.state_secret.encode(), value.encode(), hashlib.sha256).hexdigest()

    async def exchange_code(self, user_id: int, client: OAuthClient, code: str) -> Result:
        """
        인증 코드를 토큰으로 교환하고 저장합니다.

        Args:
            user_id: 사용자 ID
            client: 토큰을 받을 클라이언트 핸들
            code: 인증 코드

        Returns:
            토큰이 설정된 OAuthClient를 담은 Result.
            저장에 실패하면 발급된 토큰은 버려지고 EXCHANGE_FAILED가 반환됩니다.
        """
        self.logger.info(f"인증 코드 교환 시작: {user_id}")

        try:
            token_response = await self.gmail_api_client.exchange_code_for_token(
                config=client.config,
                code=code,
            )
            credential = Credential.from_token_response(token_response)
        except Exception as e:
            self.logger.error(f"토큰 교환 실패: {user_id}, 오류: {str(e)}")
            return Result.failure(FailureReason.EXCHANGE_FAILED, str(e))

        if not await self._store(user_id, credential):
            self.logger.error(f"토큰 저장 실패: {user_id}")
            return Result.failure(FailureReason.EXCHANGE_FAILED, "토큰을 저장하지 못했습니다")

        self.logger.info(f"인증 코드 교환 완료: {user_id}")
        return Result.success(client.with_credential(credential))

    async def ensure_fresh(self, user_id: int, client: OAuthClient) -> Result:
        """
        만료된 액세스 토큰을 갱신하고 저장된 토큰을 교체합니다.

        리프레시 토큰이 없으면 그대로 반환합니다.
        """
        credential = client.credential
        if credential is None or not credential.is_expired() or not credential.can_refresh():
            return Result.success(client)

        self.logger.info(f"토큰 갱신 시작: {user_id}")

        try:
            token_response = await self.gmail_api_client.refresh_token(
                config=client.config,
                refresh_token=credential.refresh_token,
            )
            refreshed = Credential.from_token_response(token_response, previous=credential)
        except Exception as e:
            self.logger.error(f"토큰 갱신 실패: {user_id}, 오류: {str(e)}")
            return Result.failure(FailureReason.TOKEN_REFRESH_FAILED, str(e))

        if not await self._store(user_id, refreshed):
            self.logger.error(f"갱신된 토큰 저장 실패: {user_id}")
            return Result.failure(FailureReason.TOKEN_REFRESH_FAILED, "갱신된 토큰을 저장하지 못했습니다")

        self.logger.info(f"토큰 갱신 완료: {user_id}")
        return Result.success(client.with_credential(refreshed))

    async def revoke(self, user_id: int) -> bool:
        """저장된 토큰을 센티널 값으로 되돌립니다."""
        self.logger.info(f"토큰 폐기: {user_id}")
        try:
            return await self.user_repository.set_token(user_id, UNAUTHORIZED_TOKEN)
        except Exception as e:
            self.logger.error(f"토큰 폐기 실패: {user_id}, 오류: {str(e)}")
            return False

    async def _store(self, user_id: int, credential: Credential) -> bool:
        """토큰을 직렬화, 암호화하여 한 번에 저장합니다."""
        try:
            serialized = await self.encryption_service.encrypt(credential.model_dump_json())
            return bool(await self.user_repository.set_token(user_id, serialized))
        except Exception as e:
            self.logger.error(f"토큰 저장 오류: {user_id}, {str(e)}")
            return False

    async def _deserialize(self, stored_token: str) -> Credential:
        try:
            decrypted = await self.encryption_service.decrypt(stored_token)
            return Credential.model_validate(json.loads(decrypted))
        except Exception as e:
            raise CredentialDecodeError(str(e)) from e
