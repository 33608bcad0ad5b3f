from datetime import datetime
from typing import List, Set
from uuid import UUID

from sqlalchemy import select, update, and_, or_
from sqlalchemy.orm import Session, joinedload

from app.models.proposal import Proposal, ProposalResult, ProposalStatusType


class ProposalRepository:
    """제안 및 집계 결과 리포지토리"""

    def __init__(self, db: Session):
        self.db = db

    def create_proposal(self, proposal: Proposal) -> Proposal:
        """제안 생성"""
        self.db.add(proposal)
        self.db.flush()
        self.db.refresh(proposal)
        return proposal

    def update_proposal(self, proposal: Proposal) -> Proposal:
        """변경된 제안 반영"""
        self.db.flush()
        return proposal

    def get_by_id(
        self,
        proposal_id: UUID,
        include_deleted: bool = False
    ) -> Proposal | None:
        """제안 조회 (결과 포함)"""
        stmt = (
            select(Proposal)
            .where(Proposal.id == proposal_id)
            .options(joinedload(Proposal.result))
        )
        if not include_deleted:
            stmt = stmt.where(Proposal.is_deleted.is_(False))
        result = self.db.execute(stmt)
        return result.unique().scalar_one_or_none()

    def get_for_update(self, proposal_id: UUID) -> Proposal | None:
        """
        집계용 행 잠금 조회 (SELECT ... FOR UPDATE)
        - 잠금을 지원하지 않는 DB(SQLite)에서는 일반 조회
        - populate_existing으로 세션 캐시 대신 최신 행을 읽음
        """
        stmt = (
            select(Proposal)
            .where(
                Proposal.id == proposal_id,
                Proposal.is_deleted.is_(False)
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = self.db.execute(stmt)
        return result.scalar_one_or_none()

    def get_for_share(self, proposal_id: UUID) -> Proposal | None:
        """
        투표용 공유 잠금 조회 (SELECT ... FOR SHARE)
        - 투표끼리는 서로 막지 않고, 수정/삭제/집계의 FOR UPDATE와는 직렬화됨
        """
        stmt = (
            select(Proposal)
            .where(
                Proposal.id == proposal_id,
                Proposal.is_deleted.is_(False)
            )
            .with_for_update(read=True)
            .execution_options(populate_existing=True)
        )
        result = self.db.execute(stmt)
        return result.scalar_one_or_none()

    def list_visible(
        self,
        now: datetime,
        building_ids: Set[UUID] | None,
        status: ProposalStatusType | None = None
    ) -> List[Proposal]:
        """
        호출자에게 보이는 제안 목록
        - building_ids가 None이면 전체 (Admin)
        - 아니면 전체 공개 제안 + 접근 가능한 건물 제안
        - status는 now 기준 파생 상태로 필터링
        """
        stmt = (
            select(Proposal)
            .where(Proposal.is_deleted.is_(False))
            .options(joinedload(Proposal.result))
            .order_by(Proposal.start_time.desc(), Proposal.created_at.desc())
        )
        if building_ids is not None:
            stmt = stmt.where(
                or_(
                    Proposal.building_id.is_(None),
                    Proposal.building_id.in_(building_ids)
                )
            )
        if status is not None:
            stmt = stmt.where(self._derived_status_clause(status, now))
        result = self.db.execute(stmt)
        return list(result.unique().scalars().all())

    def list_due_for_tally(self, now: datetime) -> List[UUID]:
        """종료 시각이 지났지만 아직 집계되지 않은 제안 ID 목록"""
        stmt = (
            select(Proposal.id)
            .where(
                Proposal.is_deleted.is_(False),
                Proposal.status != ProposalStatusType.TALLIED,
                Proposal.end_time <= now,
            )
            .order_by(Proposal.end_time.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def mark_tallied_if_not_tallied(self, proposal_id: UUID) -> bool:
        """
        조건부 상태 변경
        - WHERE id = :id AND status != 'Tallied' 조건으로 업데이트
        - 이미 집계된 경우 False 반환 (중복 집계 방지)
        """
        stmt = (
            update(Proposal)
            .where(
                Proposal.id == proposal_id,
                Proposal.status != ProposalStatusType.TALLIED
            )
            .values(status=ProposalStatusType.TALLIED)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        return result.rowcount == 1

    def create_result(self, result: ProposalResult) -> ProposalResult:
        """
        집계 결과 생성
        - proposal_id UNIQUE 제약 위반 시 IntegrityError (호출자가 처리)
        """
        self.db.add(result)
        self.db.flush()
        return result

    def get_result(self, proposal_id: UUID) -> ProposalResult | None:
        stmt = select(ProposalResult).where(ProposalResult.proposal_id == proposal_id)
        return self.db.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _derived_status_clause(status: ProposalStatusType, now: datetime):
        """파생 상태를 SQL 조건으로 변환 (derive_status와 동일한 경계)"""
        if status == ProposalStatusType.TALLIED:
            return Proposal.status == ProposalStatusType.TALLIED
        not_tallied = Proposal.status != ProposalStatusType.TALLIED
        if status == ProposalStatusType.SCHEDULED:
            return and_(not_tallied, Proposal.start_time > now)
        if status == ProposalStatusType.OPEN:
            return and_(
                not_tallied,
                Proposal.start_time <= now,
                Proposal.end_time > now
            )
        return and_(not_tallied, Proposal.end_time <= now)
