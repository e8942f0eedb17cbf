"""
도메인 엔티티 정의

Gmail 증분 동기화의 핵심 개념을 나타내는 엔티티들을 정의합니다.
모든 엔티티는 Pydantic 모델을 기반으로 하여 타입 안정성을 보장합니다.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

# 아직 인증하지 않은 사용자의 토큰 저장값
UNAUTHORIZED_TOKEN = " "

GMAIL_READONLY_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"


def utcnow() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


class FailureReason(str, Enum):
    """동기화 실패 사유"""
    USER_NOT_FOUND = "user_not_found"
    UNAUTHORIZED = "unauthorized"
    CREDENTIAL_CORRUPT = "credential_corrupt"
    EXCHANGE_FAILED = "exchange_failed"
    TOKEN_REFRESH_FAILED = "token_refresh_failed"
    PAGE_FETCH_FAILED = "page_fetch_failed"
    MESSAGE_FETCH_FAILED = "message_fetch_failed"
    ATTACHMENT_FETCH_FAILED = "attachment_fetch_failed"
    CHECKPOINT_COMMIT_FAILED = "checkpoint_commit_failed"


class SyncState(str, Enum):
    """동기화 진행 상태"""
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    PAGING = "paging"
    RESOLVING = "resolving"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


class Result(BaseModel):
    """
    유즈케이스 호출 결과

    성공이면 error가 None이고 value에 결과가 담깁니다.
    실패해도 관찰용으로 value가 채워질 수 있습니다 (예: 미인증 핸들).
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Optional[Any] = None
    error: Optional[FailureReason] = None
    detail: Optional[str] = None
    state: Optional[SyncState] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None, **kwargs) -> "Result":
        return cls(value=value, **kwargs)

    @classmethod
    def failure(cls, error: FailureReason, detail: Optional[str] = None, **kwargs) -> "Result":
        return cls(error=error, detail=detail, **kwargs)


class User(BaseModel):
    """동기화 대상 사용자 엔티티"""

    id: int = Field(..., description="사용자 ID (메신저 사용자 식별자)")
    email: str = Field(..., description="Gmail 주소")
    token: str = Field(default=UNAUTHORIZED_TOKEN, description="직렬화(암호화)된 OAuth 토큰")
    history_id: int = Field(default=0, description="마지막으로 동기화된 historyId")
    created_at: datetime = Field(default_factory=utcnow, description="생성 시간")
    updated_at: datetime = Field(default_factory=utcnow, description="수정 시간")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """이메일 형식 검증"""
        if "@" not in v:
            raise ValueError("유효한 이메일 주소가 아닙니다")
        return v.lower()

    def is_authorized(self) -> bool:
        """토큰이 저장되어 있는지 확인"""
        return bool(self.token) and self.token != UNAUTHORIZED_TOKEN


class OAuthClientConfig(BaseModel):
    """OAuth 애플리케이션 설정 (client id/secret, redirect URI)"""

    client_id: str
    client_secret: str
    redirect_uri: str
    auth_uri: str = "https://accounts.google.com/o/oauth2/v2/auth"
    token_uri: str = "https://oauth2.googleapis.com/token"

    @classmethod
    def from_descriptor(cls, descriptor: dict) -> "OAuthClientConfig":
        """
        Google 콘솔에서 내려받은 credentials JSON으로부터 설정을 만듭니다.

        `installed` 또는 `web` 섹션을 사용하며, 첫 번째 redirect URI를 선택합니다.
        """
        section = descriptor.get("installed") or descriptor.get("web")
        if not section:
            raise ValueError("credentials에 installed/web 섹션이 없습니다")

        redirect_uris = section.get("redirect_uris") or []
        if not redirect_uris:
            raise ValueError("credentials에 redirect_uris가 없습니다")

        values = {
            "client_id": section["client_id"],
            "client_secret": section["client_secret"],
            "redirect_uri": redirect_uris[0],
        }
        if section.get("auth_uri"):
            values["auth_uri"] = section["auth_uri"]
        if section.get("token_uri"):
            values["token_uri"] = section["token_uri"]
        return cls(**values)


class Credential(BaseModel):
    """OAuth 토큰 정보"""

    access_token: str = Field(..., description="액세스 토큰")
    refresh_token: Optional[str] = Field(None, description="리프레시 토큰")
    token_type: str = Field(default="Bearer", description="토큰 타입")
    scope: str = Field(default=GMAIL_READONLY_SCOPE, description="권한 범위")
    expiry: Optional[datetime] = Field(None, description="만료 시간 (UTC)")

    @classmethod
    def from_token_response(
        cls,
        token_response: dict,
        previous: Optional["Credential"] = None,
    ) -> "Credential":
        """
        토큰 엔드포인트 응답으로 Credential을 만듭니다.

        갱신 응답에는 refresh_token이 빠져 있을 수 있으므로 이전 값을 유지합니다.
        """
        expiry = None
        if token_response.get("expires_in") is not None:
            expiry = utcnow() + timedelta(seconds=int(token_response["expires_in"]))

        refresh_token = token_response.get("refresh_token")
        if not refresh_token and previous is not None:
            refresh_token = previous.refresh_token

        return cls(
            access_token=token_response["access_token"],
            refresh_token=refresh_token,
            token_type=token_response.get("token_type", "Bearer"),
            scope=token_response.get("scope") or (previous.scope if previous else GMAIL_READONLY_SCOPE),
            expiry=expiry,
        )

    def is_expired(self, skew_seconds: int = 60) -> bool:
        """토큰이 만료되었는지 확인 (만료 시간이 없으면 만료되지 않은 것으로 간주)"""
        if self.expiry is None:
            return False
        expiry = self.expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        return utcnow() + timedelta(seconds=skew_seconds) >= expiry

    def can_refresh(self) -> bool:
        """토큰 갱신 가능한지 확인"""
        return self.refresh_token is not None


class OAuthClient(BaseModel):
    """Gmail API 호출에 사용하는 클라이언트 핸들"""

    config: OAuthClientConfig
    credential: Optional[Credential] = None

    def with_credential(self, credential: Credential) -> "OAuthClient":
        return OAuthClient(config=self.config, credential=credential)

    @property
    def access_token(self) -> str:
        if self.credential is None:
            raise ValueError("인증되지 않은 클라이언트입니다")
        return self.credential.access_token


class AuthHandle(BaseModel):
    """authorize 결과"""

    client: OAuthClient
    authorized: bool = False


class ChangeEntry(BaseModel):
    """Gmail history 레코드 하나"""

    id: Optional[str] = None
    messages_added: List[str] = Field(default_factory=list, description="추가된 메시지 ID 목록")

    @classmethod
    def from_api(cls, record: dict) -> "ChangeEntry":
        message_ids = []
        for added in record.get("messagesAdded") or []:
            message_id = (added.get("message") or {}).get("id")
            if message_id:
                message_ids.append(message_id)
        return cls(id=record.get("id"), messages_added=message_ids)


class PartBody(BaseModel):
    """메시지 파트 본문"""

    data: Optional[str] = None
    attachment_id: Optional[str] = None
    size: int = 0


class MessagePart(BaseModel):
    """메시지 파트 (MIME 트리 노드)"""

    part_id: Optional[str] = None
    mime_type: Optional[str] = None
    filename: Optional[str] = None
    body: PartBody = Field(default_factory=PartBody)
    parts: List["MessagePart"] = Field(default_factory=list)

    @classmethod
    def from_api(cls, payload: dict) -> "MessagePart":
        body = payload.get("body") or {}
        return cls(
            part_id=payload.get("partId"),
            mime_type=payload.get("mimeType"),
            filename=payload.get("filename"),
            body=PartBody(
                data=body.get("data"),
                attachment_id=body.get("attachmentId"),
                size=body.get("size") or 0,
            ),
            parts=[cls.from_api(part) for part in payload.get("parts") or []],
        )

    def is_attachment(self) -> bool:
        return bool(self.filename)

    def walk(self):
        """자기 자신부터 깊이 우선으로 하위 파트를 순회합니다."""
        yield self
        for part in self.parts:
            yield from part.walk()


class MessageRecord(BaseModel):
    """Gmail에서 가져온 메시지"""

    id: str
    thread_id: Optional[str] = None
    history_id: Optional[str] = None
    raw: Optional[str] = None
    snippet: Optional[str] = None
    payload: Optional[MessagePart] = None

    @classmethod
    def from_api(cls, data: dict) -> "MessageRecord":
        payload = data.get("payload")
        return cls(
            id=data["id"],
            thread_id=data.get("threadId"),
            history_id=data.get("historyId"),
            raw=data.get("raw"),
            snippet=data.get("snippet"),
            payload=MessagePart.from_api(payload) if payload else None,
        )

    def iter_attachment_parts(self):
        """첨부파일 파트를 깊이 우선 순서로 반환합니다."""
        if self.payload is None:
            return
        for part in self.payload.walk():
            if part.is_attachment():
                yield part


class Attachment(BaseModel):
    """디코딩된 첨부파일"""

    name: str
    data: bytes


class MailObject(BaseModel):
    """하위 전달 단위: 디코딩된 메시지와 첨부파일 목록"""

    message: str
    attachments: List[Attachment] = Field(default_factory=list)


class SyncRun(BaseModel):
    """동기화 실행 이력 엔티티"""

    id: UUID = Field(default_factory=uuid4, description="동기화 이력 ID")
    user_id: int = Field(..., description="사용자 ID")
    state: SyncState = Field(default=SyncState.IDLE, description="도달한 상태")
    start_history_id: Optional[int] = Field(None, description="시작 historyId")
    requested_history_id: int = Field(..., description="트리거가 전달한 historyId")
    committed_history_id: Optional[int] = Field(None, description="커밋된 historyId")
    message_count: int = Field(default=0, description="해석된 메시지 수")
    attachment_count: int = Field(default=0, description="해석된 첨부파일 수")
    failure_reason: Optional[FailureReason] = Field(None, description="실패 사유")
    error_message: Optional[str] = Field(None, description="오류 메시지")
    started_at: datetime = Field(default_factory=utcnow, description="시작 시간")
    completed_at: Optional[datetime] = Field(None, description="완료 시간")

    def mark_as_completed(self, committed_history_id: int, mails: List[MailObject]) -> None:
        """동기화 완료로 표시"""
        self.state = SyncState.DONE
        self.committed_history_id = committed_history_id
        self.message_count = len(mails)
        self.attachment_count = sum(len(mail.attachments) for mail in mails)
        self.completed_at = utcnow()

    def mark_as_failed(self, reason: FailureReason, error_message: Optional[str] = None) -> None:
        """동기화 실패로 표시"""
        self.state = SyncState.FAILED
        self.failure_reason = reason
        self.error_message = error_message
        self.completed_at = utcnow()

    def is_completed(self) -> bool:
        """동기화가 끝났는지 확인"""
        return self.state in [SyncState.DONE, SyncState.FAILED]
