"""
데이터베이스 Repository 어댑터

Core 레이어의 Repository 포트를 구현하는 SQLAlchemy 기반 어댑터들입니다.
SQLite 호환성을 위해 UUID를 문자열로 변환하여 처리합니다.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entities import FailureReason, SyncRun, SyncState, User
from core.domain.ports import SyncRunRepositoryPort, UserRepositoryPort
from .models import SyncRunModel, UserModel


class UserRepositoryAdapter(UserRepositoryPort):
    """사용자 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, user: User) -> User:
        """사용자를 생성합니다."""
        model = UserModel(
            id=user.id,
            email=user.email,
            token=user.token,
            history_id=user.history_id,
        )

        try:
            self.session.add(model)
            await self.session.commit()
            await self.session.refresh(model)
        except Exception:
            await self.session.rollback()
            raise

        return self._model_to_entity(model)

    async def find_by_id(self, user_id: int) -> Optional[User]:
        """ID로 사용자를 조회합니다."""
        stmt = select(UserModel).where(UserModel.id == user_id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def find_by_email(self, email: str) -> Optional[User]:
        """이메일로 사용자를 조회합니다."""
        stmt = select(UserModel).where(UserModel.email == email.lower()).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def list_all(self, skip: int = 0, limit: int = 100) -> List[User]:
        """모든 사용자를 조회합니다."""
        stmt = select(UserModel).order_by(UserModel.id).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        models = result.scalars().all()

        return [self._model_to_entity(model) for model in models]

    async def set_token(self, user_id: int, serialized_token: str) -> bool:
        """토큰을 저장합니다. 사용자가 없으면 False를 반환합니다."""
        return await self._update_user(user_id, token=serialized_token)

    async def set_history_id(self, user_id: int, history_id: int) -> bool:
        """체크포인트를 저장합니다. 사용자가 없으면 False를 반환합니다."""
        return await self._update_user(user_id, history_id=history_id)

    async def _update_user(self, user_id: int, **values) -> bool:
        stmt = update(UserModel).where(UserModel.id == user_id).values(**values)
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return result.rowcount == 1

    def _model_to_entity(self, model: UserModel) -> User:
        """모델을 엔티티로 변환합니다."""
        values = {
            "id": model.id,
            "email": model.email,
            "token": model.token,
            "history_id": model.history_id or 0,
        }
        if model.created_at is not None:
            values["created_at"] = model.created_at
        if model.updated_at is not None:
            values["updated_at"] = model.updated_at
        return User(**values)


class SyncRunRepositoryAdapter(SyncRunRepositoryPort):
    """동기화 이력 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, sync_run: SyncRun) -> SyncRun:
        """동기화 이력을 생성합니다."""
        model = SyncRunModel(id=str(sync_run.id))
        self._apply(model, sync_run)

        try:
            self.session.add(model)
            await self.session.commit()
            await self.session.refresh(model)
        except Exception:
            # 세션은 여러 Repository가 공유하므로 실패한 트랜잭션을 남기지 않는다
            await self.session.rollback()
            raise

        return self._model_to_entity(model)

    async def update(self, sync_run: SyncRun) -> SyncRun:
        """동기화 이력을 업데이트합니다."""
        try:
            stmt = select(SyncRunModel).where(SyncRunModel.id == str(sync_run.id))
            result = await self.session.execute(stmt)
            model = result.scalar_one_or_none()

            if model is None:
                raise ValueError(f"동기화 이력을 찾을 수 없습니다: {sync_run.id}")

            self._apply(model, sync_run)

            await self.session.commit()
            await self.session.refresh(model)
        except Exception:
            await self.session.rollback()
            raise

        return self._model_to_entity(model)

    async def get_by_id(self, sync_run_id: UUID) -> Optional[SyncRun]:
        """ID로 동기화 이력을 조회합니다."""
        stmt = select(SyncRunModel).where(SyncRunModel.id == str(sync_run_id))
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def list_by_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[SyncRun]:
        """사용자별 동기화 이력을 최신순으로 조회합니다."""
        stmt = (
            select(SyncRunModel)
            .where(SyncRunModel.user_id == user_id)
            .order_by(desc(SyncRunModel.started_at))
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        models = result.scalars().all()

        return [self._model_to_entity(model) for model in models]

    def _apply(self, model: SyncRunModel, sync_run: SyncRun) -> None:
        model.user_id = sync_run.user_id
        model.state = sync_run.state.value
        model.start_history_id = sync_run.start_history_id
        model.requested_history_id = sync_run.requested_history_id
        model.committed_history_id = sync_run.committed_history_id
        model.message_count = sync_run.message_count
        model.attachment_count = sync_run.attachment_count
        model.failure_reason = sync_run.failure_reason.value if sync_run.failure_reason else None
        model.error_message = sync_run.error_message
        model.started_at = sync_run.started_at
        model.completed_at = sync_run.completed_at

    def _model_to_entity(self, model: SyncRunModel) -> SyncRun:
        """모델을 엔티티로 변환합니다."""
        return SyncRun(
            id=UUID(model.id),
            user_id=model.user_id,
            state=SyncState(model.state),
            start_history_id=model.start_history_id,
            requested_history_id=model.requested_history_id,
            committed_history_id=model.committed_history_id,
            message_count=model.message_count or 0,
            attachment_count=model.attachment_count or 0,
            failure_reason=FailureReason(model.failure_reason) if model.failure_reason else None,
            error_message=model.error_message,
            started_at=model.started_at,
            completed_at=model.completed_at,
        )
