"""투표/재투표 공통 로직"""
import logging
from datetime import datetime
from typing import Tuple
from uuid import UUID
from sqlalchemy.orm import Session

from app.models.proposal import ProposalStatusType
from app.models.vote import Vote, VoteChoiceType
from app.dependencies.aggregate_repositories import VotingAggregateRepositories
from app.exceptions import (
    ProposalNotFoundError,
    NotEligibleError,
    AlreadyTalliedError,
)
from app.services.voting.core.eligibility import EligibilityResolver
from app.services.voting.core.lifecycle import ensure_voting_open
from app.utils.clock import as_utc
from app.utils.transaction import transaction

logger = logging.getLogger(__name__)


class VoteUseCase:
    """투표 원장 쓰기 (제안·사용자당 현재 투표 1건)"""

    def __init__(
        self,
        db: Session,
        repos: VotingAggregateRepositories,
        resolver: EligibilityResolver
    ):
        self.db = db
        self.repos = repos
        self.resolver = resolver

    def cast(
        self,
        proposal_id: UUID,
        user_id: UUID,
        choice: VoteChoiceType,
        now: datetime
    ) -> Tuple[Vote, bool]:
        """
        투표 생성 또는 덮어쓰기

        사전 조건 (순서대로, 각각 다른 예외):
            1. 제안 존재 및 삭제되지 않음 -> ProposalNotFoundError
            2. now in [start, end) -> VoteWindowNotOpenYetError / VoteWindowClosedError
            3. 자격 -> NotEligibleError
            4. 집계 결과 없음 -> AlreadyTalliedError

        Returns:
            (저장된 투표, 기존 투표를 덮어썼는지 여부)
        """
        now = as_utc(now)

        with transaction(self.db):
            # 제안 행 공유 잠금: 수정/삭제/집계(FOR UPDATE)가 끝날 때까지 대기하고,
            # 잠근 뒤 읽은 최신 상태로만 자격과 가중치를 계산
            proposal = self.repos.proposal.get_for_share(proposal_id)

            # 1. 제안 존재 확인
            if not proposal:
                raise ProposalNotFoundError(proposal_id)

            # 2. 투표 기간 확인
            ensure_voting_open(now, proposal.start_time, proposal.end_time)

            # 3. 자격 확인 (현재 역할/소유 기준으로 계산한 가중치를 스냅샷)
            decision = self.resolver.resolve(user_id, proposal)
            if not decision.eligible:
                raise NotEligibleError(decision.reason)

            # 4. 집계 여부 확인
            if (
                proposal.status == ProposalStatusType.TALLIED
                or self.repos.proposal.get_result(proposal_id) is not None
            ):
                raise AlreadyTalliedError(proposal_id)

            vote, created = self.repos.vote.upsert_vote(
                proposal_id=proposal_id,
                user_id=user_id,
                choice=choice,
                weight=decision.weight,
                cast_at=now,
            )

        recast = not created
        logger.info(
            f"Vote {'recast' if recast else 'cast'}: proposal={proposal_id} user={user_id} "
            f"choice={choice.value} weight={vote.weight}"
        )
        return vote, recast
