"""
메일 동기화 유즈케이스

인증 → history 조회 → 메시지 해석 → 체크포인트 커밋 순서로 증분 동기화를 수행합니다.
체크포인트는 모든 메시지와 첨부파일이 해석된 뒤에만 한 번 기록됩니다.
"""

from typing import List, Optional

from ..domain.entities import (
    FailureReason,
    MailObject,
    Result,
    SyncRun,
    SyncState,
    User,
)
from ..domain.ports import LoggerPort, SyncRunRepositoryPort, UserRepositoryPort
from .authentication import TokenManager
from .history_pager import HistoryPager
from .message_resolver import MessageResolver


class SyncOrchestrator:
    """증분 동기화 오케스트레이터"""

    def __init__(
        self,
        user_repository: UserRepositoryPort,
        token_manager: TokenManager,
        history_pager: HistoryPager,
        message_resolver: MessageResolver,
        logger: LoggerPort,
        sync_run_repository: Optional[SyncRunRepositoryPort] = None,
    ):
        self.user_repository = user_repository
        self.token_manager = token_manager
        self.history_pager = history_pager
        self.message_resolver = message_resolver
        self.logger = logger
        self.sync_run_repository = sync_run_repository

    async def sync(self, user_email: str, new_history_id: int) -> Result:
        """
        사용자의 메일함을 마지막 체크포인트부터 동기화합니다.

        Args:
            user_email: 사용자 Gmail 주소
            new_history_id: 성공 시 기록할 새 체크포인트 (푸시 알림의 historyId)

        Returns:
            MailObject 목록을 담은 Result. 실패하면 value가 없고
            state는 FAILED, error에 실패 사유가 담깁니다.
        """
        self.logger.info(f"메일 동기화 시작: {user_email}, historyId={new_history_id}")

        state = SyncState.AUTHORIZING

        try:
            user = await self.user_repository.find_by_email(user_email.lower())
        except Exception as e:
            self.logger.error(f"사용자 조회 실패: {user_email}, 오류: {str(e)}")
            return self._failed(FailureReason.USER_NOT_FOUND, str(e), state)

        if not user:
            self.logger.warning(f"사용자를 찾을 수 없음: {user_email}")
            return self._failed(FailureReason.USER_NOT_FOUND, user_email, state)

        sync_run = await self._start_run(user, new_history_id)

        if not user.is_authorized():
            self.logger.error(f"인증되지 않은 사용자: {user.id}")
            return await self._fail_run(sync_run, FailureReason.UNAUTHORIZED, "token is sentinel", state)

        client_result = await self.token_manager.rehydrate(user)
        if not client_result.ok:
            return await self._fail_run(sync_run, client_result.error, client_result.detail, state)

        client_result = await self.token_manager.ensure_fresh(user.id, client_result.value)
        if not client_result.ok:
            return await self._fail_run(sync_run, client_result.error, client_result.detail, state)
        client = client_result.value

        state = SyncState.PAGING
        history_result = await self.history_pager.list_changes_since(client, user.history_id)
        if not history_result.ok:
            return await self._fail_run(sync_run, history_result.error, history_result.detail, state)

        state = SyncState.RESOLVING
        resolve_result = await self.message_resolver.resolve_all(client, history_result.value)
        if not resolve_result.ok:
            return await self._fail_run(sync_run, resolve_result.error, resolve_result.detail, state)
        mails: List[MailObject] = resolve_result.value

        state = SyncState.COMMITTING
        committed_history_id = max(user.history_id, new_history_id)
        if new_history_id < user.history_id:
            self.logger.warning(
                f"요청된 historyId가 저장된 값보다 작음: {new_history_id} < {user.history_id}"
            )

        try:
            committed = await self.user_repository.set_history_id(user.id, committed_history_id)
        except Exception as e:
            self.logger.error(f"체크포인트 저장 오류: {user.id}, {str(e)}")
            committed = False

        if not committed:
            # 이미 가져온 메일은 버려지고 다음 재시도에서 다시 가져온다
            return await self._fail_run(
                sync_run,
                FailureReason.CHECKPOINT_COMMIT_FAILED,
                f"historyId={committed_history_id}",
                state,
            )

        if sync_run is not None:
            sync_run.mark_as_completed(committed_history_id, mails)
            await self._save_run(sync_run)

        self.logger.info(
            f"메일 동기화 완료: {user_email}, 메시지: {len(mails)}, historyId={committed_history_id}"
        )
        return Result.success(mails, state=SyncState.DONE)

    async def bootstrap_checkpoint(self, user_email: str) -> Result:
        """
        메일함의 현재 historyId를 조회하여 시작 체크포인트로 저장합니다.

        Args:
            user_email: 사용자 Gmail 주소

        Returns:
            저장된 historyId를 담은 Result
        """
        self.logger.info(f"체크포인트 초기화: {user_email}")

        try:
            user = await self.user_repository.find_by_email(user_email.lower())
        except Exception as e:
            self.logger.error(f"사용자 조회 실패: {user_email}, 오류: {str(e)}")
            return Result.failure(FailureReason.USER_NOT_FOUND, str(e))

        if not user:
            return Result.failure(FailureReason.USER_NOT_FOUND, user_email)

        return await self._bootstrap(user)

    async def ensure_checkpoint(self, user_id: int) -> Result:
        """
        체크포인트가 아직 없는(historyId=0) 사용자만 초기화합니다.

        인증 직후 호출되며, 이미 체크포인트가 있으면 저장된 값을 그대로 반환합니다.
        """
        try:
            user = await self.user_repository.find_by_id(user_id)
        except Exception as e:
            self.logger.error(f"사용자 조회 실패: {user_id}, 오류: {str(e)}")
            return Result.failure(FailureReason.USER_NOT_FOUND, str(e))

        if not user:
            return Result.failure(FailureReason.USER_NOT_FOUND, f"user {user_id}")

        if user.history_id > 0:
            return Result.success(user.history_id)

        self.logger.info(f"체크포인트 초기화: {user.email}")
        return await self._bootstrap(user)

    async def _bootstrap(self, user: User) -> Result:
        client_result = await self.token_manager.rehydrate(user)
        if client_result.ok:
            client_result = await self.token_manager.ensure_fresh(user.id, client_result.value)
        if not client_result.ok:
            return client_result

        try:
            profile = await self.token_manager.gmail_api_client.get_profile(
                client_result.value.access_token
            )
            history_id = int(profile["historyId"])
        except Exception as e:
            self.logger.error(f"프로필 조회 실패: {user.email}, 오류: {str(e)}")
            return Result.failure(FailureReason.PAGE_FETCH_FAILED, str(e))

        try:
            committed = await self.user_repository.set_history_id(user.id, history_id)
        except Exception as e:
            self.logger.error(f"체크포인트 저장 오류: {user.id}, {str(e)}")
            committed = False

        if not committed:
            return Result.failure(FailureReason.CHECKPOINT_COMMIT_FAILED, f"historyId={history_id}")

        self.logger.info(f"체크포인트 초기화 완료: {user.email}, historyId={history_id}")
        return Result.success(history_id)

    async def get_sync_runs(self, user_email: str, skip: int = 0, limit: int = 100) -> List[SyncRun]:
        """사용자의 동기화 이력을 조회합니다."""
        if self.sync_run_repository is None:
            return []
        user = await self.user_repository.find_by_email(user_email.lower())
        if not user:
            return []
        return await self.sync_run_repository.list_by_user(user.id, skip=skip, limit=limit)

    def _failed(self, reason: FailureReason, detail: Optional[str], state: SyncState) -> Result:
        self.logger.error(f"메일 동기화 실패: {reason.value} ({state.value} 단계), {detail}")
        return Result.failure(reason, detail, state=SyncState.FAILED)

    async def _fail_run(
        self,
        sync_run: Optional[SyncRun],
        reason: FailureReason,
        detail: Optional[str],
        state: SyncState,
    ) -> Result:
        if sync_run is not None:
            sync_run.mark_as_failed(reason, f"{state.value}: {detail}")
            await self._save_run(sync_run)
        return self._failed(reason, detail, state)

    async def _start_run(self, user: User, new_history_id: int) -> Optional[SyncRun]:
        if self.sync_run_repository is None:
            return None
        sync_run = SyncRun(
            user_id=user.id,
            state=SyncState.AUTHORIZING,
            start_history_id=user.history_id,
            requested_history_id=new_history_id,
        )
        try:
            return await self.sync_run_repository.create(sync_run)
        except Exception as e:
            self.logger.warning(f"동기화 이력 생성 실패: {user.id}, {str(e)}")
            return None

    async def _save_run(self, sync_run: SyncRun) -> None:
        try:
            await self.sync_run_repository.update(sync_run)
        except Exception as e:
            self.logger.warning(f"동기화 이력 저장 실패: {sync_run.id}, {str(e)}")
