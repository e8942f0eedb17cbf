"""
History 페이지 조회 유즈케이스

체크포인트(historyId) 이후의 Gmail 변경 이력을 nextPageToken을 따라 끝까지 조회합니다.
중간 페이지가 하나라도 실패하면 부분 결과 없이 전체를 실패로 처리합니다.
"""

from typing import List, Optional

from ..domain.entities import ChangeEntry, FailureReason, OAuthClient, Result
from ..domain.exceptions import GmailApiError
from ..domain.ports import GmailApiClientPort, LoggerPort


class HistoryPager:
    """변경 이력 페이지네이션"""

    def __init__(
        self,
        gmail_api_client: GmailApiClientPort,
        logger: LoggerPort,
        max_pages: int = 1000,
    ):
        self.gmail_api_client = gmail_api_client
        self.logger = logger
        self.max_pages = max_pages

    async def list_changes_since(self, client: OAuthClient, start_history_id: int) -> Result:
        """
        start_history_id 이후의 변경 이력을 모두 조회합니다.

        Args:
            client: 인증된 클라이언트 핸들
            start_history_id: 시작 체크포인트

        Returns:
            ChangeEntry 목록을 담은 Result (제공자 순서 유지, 중복 제거 없음)
        """
        self.logger.debug(f"변경 이력 조회 시작: startHistoryId={start_history_id}")

        entries: List[ChangeEntry] = []
        page_token: Optional[str] = None
        pages = 0

        while True:
            if pages >= self.max_pages:
                self.logger.error(f"변경 이력 페이지 수 초과: {pages}페이지")
                return Result.failure(
                    FailureReason.PAGE_FETCH_FAILED,
                    f"history 페이지가 {self.max_pages}개를 넘었습니다",
                )

            try:
                response = await self.gmail_api_client.list_history(
                    access_token=client.access_token,
                    start_history_id=start_history_id,
                    page_token=page_token,
                )
            except GmailApiError as e:
                if e.status_code == 404:
                    self.logger.error(f"체크포인트가 너무 오래됨: startHistoryId={start_history_id}")
                else:
                    self.logger.error(f"변경 이력 페이지 조회 실패: {str(e)}")
                return Result.failure(FailureReason.PAGE_FETCH_FAILED, str(e))
            except Exception as e:
                self.logger.error(f"변경 이력 페이지 조회 오류: {str(e)}")
                return Result.failure(FailureReason.PAGE_FETCH_FAILED, str(e))

            pages += 1
            entries.extend(ChangeEntry.from_api(record) for record in response.get("history") or [])

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        self.logger.debug(f"변경 이력 조회 완료: {pages}페이지, {len(entries)}개 레코드")
        return Result.success(entries)
