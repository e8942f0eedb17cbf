"""
Gmail API 클라이언트 어댑터

Gmail REST API 및 Google OAuth 2.0 엔드포인트와의 통신을 담당하는 어댑터입니다.
읽기 전용 범위에서 필요한 history/message/attachment 조회만 구현합니다.
"""

from typing import List, Optional
from urllib.parse import urlencode

import httpx

from core.domain.entities import OAuthClientConfig
from core.domain.exceptions import GmailApiError
from core.domain.ports import GmailApiClientPort, LoggerPort


class GmailApiClientAdapter(GmailApiClientPort):
    """Gmail API 클라이언트 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.base_url = "https://gmail.googleapis.com/gmail/v1/users/me"
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _auth_headers(self, access_token: str) -> dict:
        return {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    def _check(self, response: httpx.Response, operation: str, expected: int = 200) -> dict:
        if response.status_code != expected:
            error_msg = f"{operation} 실패: {response.status_code} - {response.text}"
            self.logger.error(error_msg)
            raise GmailApiError(operation, response.status_code, response.text)
        return response.json()

    def get_authorization_url(
        self,
        config: OAuthClientConfig,
        scopes: List[str],
        state: Optional[str] = None,
    ) -> str:
        """인증 URL을 생성합니다."""
        params = {
            "access_type": "offline",
            "scope": " ".join(scopes),
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
        }

        if state:
            params["state"] = state

        url = f"{config.auth_uri}?{urlencode(params)}"

        self.logger.debug(f"생성된 인증 URL: {url}")
        return url

    async def exchange_code_for_token(self, config: OAuthClientConfig, code: str) -> dict:
        """인증 코드를 토큰으로 교환합니다."""
        self.logger.debug(f"토큰 교환: client_id={config.client_id}")

        data = {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "code": code,
            "redirect_uri": config.redirect_uri,
            "grant_type": "authorization_code",
        }

        async with self._client() as client:
            response = await client.post(
                config.token_uri,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            result = self._check(response, "토큰 교환")

            self.logger.debug("토큰 교환 성공")
            return result

    async def refresh_token(self, config: OAuthClientConfig, refresh_token: str) -> dict:
        """토큰을 갱신합니다."""
        self.logger.debug(f"토큰 갱신: client_id={config.client_id}")

        data = {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        async with self._client() as client:
            response = await client.post(
                config.token_uri,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
            result = self._check(response, "토큰 갱신")

            self.logger.debug("토큰 갱신 성공")
            return result

    async def get_profile(self, access_token: str) -> dict:
        """메일함 프로필을 조회합니다."""
        self.logger.debug("메일함 프로필 조회")

        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/profile",
                headers=self._auth_headers(access_token),
            )
            result = self._check(response, "프로필 조회")

            self.logger.debug(f"프로필 조회 성공: {result.get('emailAddress', 'N/A')}")
            return result

    async def list_history(
        self,
        access_token: str,
        start_history_id: int,
        page_token: Optional[str] = None,
    ) -> dict:
        """변경 이력 한 페이지를 조회합니다."""
        self.logger.debug(f"변경 이력 조회: startHistoryId={start_history_id}, pageToken={page_token}")

        params = {"startHistoryId": str(start_history_id)}
        if page_token:
            params["pageToken"] = page_token

        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/history",
                headers=self._auth_headers(access_token),
                params=params,
            )
            result = self._check(response, "변경 이력 조회")

            self.logger.debug(f"변경 이력 조회 성공: {len(result.get('history', []))}개 레코드")
            return result

    async def get_message(self, access_token: str, message_id: str) -> dict:
        """특정 메시지를 조회합니다."""
        self.logger.debug(f"메시지 조회: message_id={message_id}")

        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/messages/{message_id}",
                headers=self._auth_headers(access_token),
                params={"format": "full"},
            )
            result = self._check(response, "메시지 조회")

            self.logger.debug(f"메시지 조회 성공: {message_id}")
            return result

    async def get_attachment(self, access_token: str, message_id: str, attachment_id: str) -> dict:
        """첨부파일을 조회합니다."""
        self.logger.debug(f"첨부파일 조회: message_id={message_id}")

        async with self._client() as client:
            response = await client.get(
                f"{self.base_url}/messages/{message_id}/attachments/{attachment_id}",
                headers=self._auth_headers(access_token),
            )
            result = self._check(response, "첨부파일 조회")

            self.logger.debug(f"첨부파일 조회 성공: {result.get('size', 'N/A')} bytes")
            return result
