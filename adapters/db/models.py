"""
SQLAlchemy 데이터베이스 모델

도메인 엔티티와 매핑되는 데이터베이스 테이블 모델을 정의합니다.
SQLite 호환성을 위해 UUID는 String으로 처리합니다.
"""

import uuid

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from core.domain.entities import UNAUTHORIZED_TOKEN

Base = declarative_base()


class UserModel(Base):
    """사용자 테이블 모델"""

    __tablename__ = "users"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    token = Column(Text, nullable=False, default=UNAUTHORIZED_TOKEN)  # 암호화된 값 또는 센티널
    history_id = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # 관계 설정
    sync_runs = relationship("SyncRunModel", back_populates="user")


class SyncRunModel(Base):
    """동기화 이력 테이블 모델"""

    __tablename__ = "sync_runs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(BigInteger().with_variant(Integer, "sqlite"), ForeignKey("users.id"), nullable=False, index=True)
    state = Column(String(50), nullable=False, default="idle", index=True)  # SyncState enum을 문자열로 저장
    start_history_id = Column(BigInteger)
    requested_history_id = Column(BigInteger, nullable=False)
    committed_history_id = Column(BigInteger)
    message_count = Column(Integer, default=0)
    attachment_count = Column(Integer, default=0)
    failure_reason = Column(String(50), index=True)  # FailureReason enum을 문자열로 저장
    error_message = Column(Text)
    started_at = Column(DateTime(timezone=True), index=True)
    completed_at = Column(DateTime(timezone=True), index=True)

    # 복합 인덱스
    __table_args__ = (
        Index("idx_sync_runs_user_started", "user_id", "started_at"),
        Index("idx_sync_runs_user_state", "user_id", "state"),
    )

    # 관계 설정
    user = relationship("UserModel", back_populates="sync_runs")
