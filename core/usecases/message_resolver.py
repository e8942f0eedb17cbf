"""
메시지 해석 유즈케이스

변경 이력에서 추가된 메시지 ID를 모아 메시지와 첨부파일을 순서대로 가져오고,
디코딩된 MailObject 목록으로 변환합니다.
하나라도 실패하면 부분 결과 없이 전체를 실패로 처리합니다.
"""

import base64
import binascii
from typing import List

from ..domain.entities import (
    Attachment,
    ChangeEntry,
    FailureReason,
    MailObject,
    MessageRecord,
    OAuthClient,
    Result,
)
from ..domain.ports import GmailApiClientPort, LoggerPort


def decode_base64(data: str) -> bytes:
    """
    Gmail 본문 데이터를 디코딩합니다.

    Gmail은 패딩이 생략된 base64url을 사용하지만 표준 알파벳도 허용합니다.
    """
    data = data.strip()
    padded = data + "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def collect_message_ids(entries: List[ChangeEntry]) -> List[str]:
    """추가된 메시지 ID를 발견 순서대로 모읍니다 (중복 유지)."""
    message_ids = []
    for entry in entries:
        message_ids.extend(entry.messages_added)
    return message_ids


class AttachmentFetchError(Exception):
    """첨부파일을 바이트로 해석하지 못한 경우"""


class MessageResolver:
    """메시지 및 첨부파일 해석"""

    def __init__(self, gmail_api_client: GmailApiClientPort, logger: LoggerPort):
        self.gmail_api_client = gmail_api_client
        self.logger = logger

    async def resolve_all(self, client: OAuthClient, entries: List[ChangeEntry]) -> Result:
        """
        변경 이력의 모든 추가 메시지를 MailObject로 해석합니다.

        Args:
            client: 인증된 클라이언트 핸들
            entries: HistoryPager가 반환한 변경 이력

        Returns:
            MailObject 목록을 담은 Result
        """
        message_ids = collect_message_ids(entries)
        self.logger.info(f"메시지 해석 시작: {len(message_ids)}개")

        records = []
        for message_id in message_ids:
            try:
                data = await self.gmail_api_client.get_message(
                    access_token=client.access_token,
                    message_id=message_id,
                )
                records.append(MessageRecord.from_api(data))
            except Exception as e:
                self.logger.error(f"메시지 조회 실패: {message_id}, 오류: {str(e)}")
                return Result.failure(FailureReason.MESSAGE_FETCH_FAILED, f"{message_id}: {str(e)}")

        mails = []
        for record in records:
            try:
                attachments = await self._resolve_attachments(client, record)
            except Exception as e:
                self.logger.error(f"첨부파일 조회 실패: {record.id}, 오류: {str(e)}")
                return Result.failure(FailureReason.ATTACHMENT_FETCH_FAILED, f"{record.id}: {str(e)}")

            mails.append(MailObject(message=self._decode_message(record), attachments=attachments))

        self.logger.info(f"메시지 해석 완료: {len(mails)}개")
        return Result.success(mails)

    async def _resolve_attachments(self, client: OAuthClient, record: MessageRecord) -> List[Attachment]:
        attachments = []
        for part in record.iter_attachment_parts():
            if part.body.data:
                data = decode_base64(part.body.data)
            elif part.body.attachment_id:
                response = await self.gmail_api_client.get_attachment(
                    access_token=client.access_token,
                    message_id=record.id,
                    attachment_id=part.body.attachment_id,
                )
                if response.get("data") is None:
                    raise AttachmentFetchError(f"첨부파일 데이터 없음: {part.filename}")
                data = decode_base64(response["data"])
            else:
                raise AttachmentFetchError(f"첨부파일 본문 없음: {part.filename}")

            attachments.append(Attachment(name=part.filename, data=data))
        return attachments

    def _decode_message(self, record: MessageRecord) -> str:
        """raw가 있으면 raw를, 없으면 본문 파트(text/plain, text/html), snippet 순으로 사용합니다."""
        if record.raw:
            return self._decode_text(record.raw)

        if record.payload is not None:
            for mime_type in ("text/plain", "text/html"):
                for part in record.payload.walk():
                    if part.mime_type == mime_type and not part.is_attachment() and part.body.data:
                        return self._decode_text(part.body.data)

        return record.snippet or ""

    def _decode_text(self, data: str) -> str:
        try:
            return decode_base64(data).decode("utf-8", errors="replace")
        except (binascii.Error, ValueError) as e:
            self.logger.warning(f"본문 디코딩 실패: {str(e)}")
            return ""
