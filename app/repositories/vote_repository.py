import uuid
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Set, Tuple
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import select, func
from sqlalchemy.dialects import mysql, postgresql, sqlite

from app.models.vote import Vote, VoteChoiceType


class VoteRepository:
    """투표 원장 리포지토리"""

    def __init__(self, db: Session):
        self.db = db

    def get_user_vote(self, proposal_id: UUID, user_id: UUID) -> Vote | None:
        """사용자의 특정 제안에 대한 현재 투표 조회"""
        stmt = select(Vote).where(
            Vote.proposal_id == proposal_id,
            Vote.user_id == user_id
        )
        result = self.db.execute(stmt)
        return result.scalar_one_or_none()

    def upsert_vote(
        self,
        proposal_id: UUID,
        user_id: UUID,
        choice: VoteChoiceType,
        weight: Decimal,
        cast_at: datetime
    ) -> Tuple[Vote, bool]:
        """
        투표 생성 또는 덮어쓰기 (단일 INSERT ... ON CONFLICT 문)
        - (proposal_id, user_id) UNIQUE 제약이 중복 행을 막음
        - 동시 요청이 와도 조회 후 쓰기 경합 없이 마지막 투표가 남음

        Returns:
            (저장된 투표, 새로 INSERT되었는지 여부)
            충돌 시 UPDATE는 id를 바꾸지 않으므로 새로 만든 id가 남아 있으면 INSERT
        """
        candidate_id = uuid.uuid4()
        insert = self._dialect_insert()
        stmt = insert(Vote).values(
            id=candidate_id,
            proposal_id=proposal_id,
            user_id=user_id,
            choice=choice,
            weight=weight,
            cast_at=cast_at,
        )
        if self._dialect_name() in ("mysql", "mariadb"):
            stmt = stmt.on_duplicate_key_update(
                choice=stmt.inserted.choice,
                weight=stmt.inserted.weight,
                cast_at=stmt.inserted.cast_at,
            )
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=[Vote.proposal_id, Vote.user_id],
                set_={
                    "choice": stmt.excluded.choice,
                    "weight": stmt.excluded.weight,
                    "cast_at": stmt.excluded.cast_at,
                },
            )
        self.db.execute(stmt)

        # 세션에 남은 이전 스냅샷 대신 방금 쓴 행을 읽음
        reload_stmt = (
            select(Vote)
            .where(
                Vote.proposal_id == proposal_id,
                Vote.user_id == user_id
            )
            .execution_options(populate_existing=True)
        )
        vote = self.db.execute(reload_stmt).scalar_one()
        return vote, vote.id == candidate_id

    def list_votes(self, proposal_id: UUID) -> List[Vote]:
        """제안의 모든 현재 투표 조회"""
        stmt = (
            select(Vote)
            .where(Vote.proposal_id == proposal_id)
            .order_by(Vote.cast_at.asc())
            .execution_options(populate_existing=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def count_votes(self, proposal_id: UUID) -> int:
        stmt = select(func.count(Vote.id)).where(Vote.proposal_id == proposal_id)
        return self.db.execute(stmt).scalar_one() or 0

    def get_choice_aggregates(
        self,
        proposal_id: UUID
    ) -> Dict[VoteChoiceType, Tuple[int, Decimal]]:
        """선택지별 (투표 수, 가중치 합) 조회"""
        stmt = (
            select(
                Vote.choice,
                func.count(Vote.id).label("vote_count"),
                func.sum(Vote.weight).label("weight_sum"),
            )
            .where(Vote.proposal_id == proposal_id)
            .group_by(Vote.choice)
        )
        aggregates = {
            choice: (0, Decimal("0")) for choice in VoteChoiceType
        }
        for row in self.db.execute(stmt).all():
            weight_sum = Decimal(str(row.weight_sum)) if row.weight_sum is not None else Decimal("0")
            aggregates[row.choice] = (row.vote_count or 0, weight_sum)
        return aggregates

    def get_voted_proposal_ids(
        self,
        user_id: UUID,
        proposal_ids: List[UUID]
    ) -> Set[UUID]:
        """주어진 제안 중 사용자가 이미 투표한 제안 ID"""
        if not proposal_ids:
            return set()
        stmt = select(Vote.proposal_id).where(
            Vote.user_id == user_id,
            Vote.proposal_id.in_(proposal_ids)
        )
        return set(self.db.execute(stmt).scalars().all())

    def _dialect_name(self) -> str:
        return self.db.get_bind().dialect.name

    def _dialect_insert(self):
        name = self._dialect_name()
        if name == "postgresql":
            return postgresql.insert
        if name == "sqlite":
            return sqlite.insert
        if name in ("mysql", "mariadb"):
            return mysql.insert
        raise NotImplementedError(f"Atomic vote upsert is not supported on dialect '{name}'")
