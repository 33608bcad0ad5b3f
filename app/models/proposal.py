import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    String, Text, Boolean, Numeric, DateTime, ForeignKey, CheckConstraint,
    Enum, Uuid, Index, func
)
from sqlalchemy.types import TypeDecorator
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.auth import RoleName


class VotingMethodType(PyEnum):
    SIMPLE_MAJORITY = "SimpleMajority"
    WEIGHTED_AREA = "WeightedArea"
    PER_SEAT = "PerSeat"
    CONSENSUS = "Consensus"


class ProposalStatusType(PyEnum):
    SCHEDULED = "Scheduled"
    OPEN = "Open"
    CLOSED = "Closed"
    TALLIED = "Tallied"


# 집계 규칙 리비전 (Result.method_applied_version에 기록)
TALLY_RULES_VERSION = "v1"


class RoleSetType(TypeDecorator):
    """
    eligible_roles 저장 타입
    - 메모리: frozenset[RoleName]
    - DB: "Admin,Homeowner" 형태의 구분자 문자열 (정렬하여 저장)
    """
    impl = String(255)
    cache_ok = True

    delimiter = ","

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        names = sorted(RoleName(role).value for role in value)
        return self.delimiter.join(names)

    def process_result_value(self, value, dialect):
        if value is None:
            return frozenset()
        return frozenset(
            RoleName(name.strip())
            for name in value.split(self.delimiter)
            if name.strip()
        )


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Proposal(Base):
    __tablename__ = "proposals"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_proposals_window"),
        Index("idx_proposals_status", "status"),
        Index("idx_proposals_start_end", "start_time", "end_time"),
        Index("idx_proposals_building_id", "building_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    # NULL이면 전체 공개 제안
    building_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("buildings.id", ondelete="SET NULL"),
        nullable=True,
    )
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    end_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    voting_method: Mapped[VotingMethodType] = mapped_column(
        Enum(
            VotingMethodType,
            native_enum=False,
            length=32,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    eligible_roles: Mapped[frozenset] = mapped_column(RoleSetType, nullable=False)
    # 저장되는 값은 Scheduled 또는 Tallied 뿐 (Open/Closed는 시각으로부터 파생)
    status: Mapped[ProposalStatusType] = mapped_column(
        Enum(
            ProposalStatusType,
            native_enum=False,
            length=16,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=ProposalStatusType.SCHEDULED,
    )
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    creator = relationship("User", foreign_keys=[created_by])
    votes = relationship("Vote", back_populates="proposal")
    result = relationship("ProposalResult", back_populates="proposal", uselist=False)


class ProposalResult(Base):
    """집계 결과 (제안당 최대 1건, 생성 후 불변)"""
    __tablename__ = "proposal_results"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    proposal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposals.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    passed: Mapped[bool] = mapped_column(Boolean, nullable=False)
    yes_weight: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    no_weight: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    abstain_weight: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    total_weight: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    tallied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    method_applied_version: Mapped[str] = mapped_column(String(16), nullable=False)

    proposal = relationship("Proposal", back_populates="result")
