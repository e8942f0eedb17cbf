"""
Gmail 푸시 알림 라우터

Cloud Pub/Sub push 구독으로 전달되는 Gmail 변경 알림을 받아 동기화를 실행합니다.
같은 메일함에 대한 동기화는 메일함별 잠금으로 직렬화합니다.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.domain.entities import FailureReason
from core.usecases.mail_sync import SyncOrchestrator
from core.usecases.message_resolver import decode_base64
from adapters.logger import create_logger
from adapters.web.dependencies import get_sync_orchestrator

router = APIRouter(prefix="/gmail", tags=["gmail"])
logger = create_logger("push_router")

# 재시도해도 결과가 같은 실패 (Pub/Sub에 재전송을 요청하지 않음)
PERMANENT_FAILURES = {
    FailureReason.USER_NOT_FOUND,
    FailureReason.UNAUTHORIZED,
    FailureReason.CREDENTIAL_CORRUPT,
}


class MailboxLocks:
    """메일함 주소별 asyncio.Lock. 잠금을 기다리는 작업이 없으면 항목을 제거합니다."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, email: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(email, asyncio.Lock())
        self._users[email] = self._users.get(email, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[email] -= 1
            if self._users[email] == 0:
                del self._users[email]
                del self._locks[email]


mailbox_locks = MailboxLocks()


class PubSubMessage(BaseModel):
    data: str
    message_id: Optional[str] = Field(None, alias="messageId")


class PushEnvelope(BaseModel):
    message: PubSubMessage
    subscription: Optional[str] = None


class GmailNotification(BaseModel):
    email_address: str = Field(..., alias="emailAddress")
    history_id: int = Field(..., alias="historyId")


def parse_notification(envelope: PushEnvelope) -> GmailNotification:
    """Pub/Sub 메시지의 data(base64 JSON)를 Gmail 알림으로 변환합니다."""
    payload = json.loads(decode_base64(envelope.message.data).decode("utf-8"))
    return GmailNotification.model_validate(payload)


@router.post("/push")
async def receive_push(
    envelope: PushEnvelope,
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Gmail 푸시 알림을 처리합니다."""
    try:
        notification = parse_notification(envelope)
    except ValueError as e:
        logger.error(f"푸시 알림 파싱 실패: {str(e)}")
        raise HTTPException(status_code=400, detail="알림 형식이 올바르지 않습니다")

    email = notification.email_address.lower()
    logger.info(f"푸시 알림 수신: {email}, historyId={notification.history_id}")

    async with mailbox_locks.hold(email):
        result = await orchestrator.sync(email, notification.history_id)

    if result.ok:
        return {"status": "synced", "messages": len(result.value)}

    body = {"status": "failed", "reason": result.error.value}
    if result.error in PERMANENT_FAILURES:
        return body

    # 일시적 실패는 Pub/Sub가 같은 알림을 다시 보내도록 한다
    return JSONResponse(content=body, status_code=503)
