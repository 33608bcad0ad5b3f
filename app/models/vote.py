import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    Numeric, DateTime, ForeignKey, CheckConstraint, Enum, Uuid,
    UniqueConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class VoteChoiceType(PyEnum):
    YES = "Yes"
    NO = "No"
    ABSTAIN = "Abstain"


class Vote(Base):
    """
    (proposal, user)당 현재 유효한 투표 1건
    - weight는 투표 시점 스냅샷 (집계 시 재계산하지 않음)
    - 재투표 시 choice/weight/cast_at 전체를 덮어씀
    """
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("proposal_id", "user_id", name="uq_votes_proposal_user"),
        CheckConstraint("weight >= 0", name="ck_votes_weight_non_negative"),
        Index("idx_votes_proposal_id", "proposal_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    proposal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("proposals.id", ondelete="RESTRICT"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    choice: Mapped[VoteChoiceType] = mapped_column(
        Enum(
            VoteChoiceType,
            native_enum=False,
            length=16,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
    )
    weight: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    cast_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    # Relationships
    proposal = relationship("Proposal", back_populates="votes")
    voter = relationship("User", foreign_keys=[user_id])
