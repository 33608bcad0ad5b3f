"""집계 확정 로직"""
import logging
from datetime import datetime
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.proposal import ProposalResult, ProposalStatusType, TALLY_RULES_VERSION
from app.dependencies.aggregate_repositories import VotingAggregateRepositories
from app.exceptions import ProposalNotFoundError, AlreadyTalliedError
from app.services.voting.core.lifecycle import ensure_tally_due
from app.services.voting.core.tally_rules import compute_tally
from app.utils.clock import as_utc
from app.utils.transaction import transaction

logger = logging.getLogger(__name__)


class TallyUseCase:
    """집계 (제안당 1회, 되돌릴 수 없음)"""

    def __init__(self, db: Session, repos: VotingAggregateRepositories):
        self.db = db
        self.repos = repos

    def tally(self, proposal_id: UUID, now: datetime) -> ProposalResult:
        """
        제안 집계

        1. 사전 검증 (존재, 미집계, 종료 시각 경과)
        2. 하나의 트랜잭션에서:
            - 행 잠금 후 종료 시각 재확인
            - 조건부 UPDATE로 Tallied 전환 (이미 Tallied면 실패)
            - 모든 투표 로드 (스냅샷 가중치 그대로 사용)
            - Result INSERT (proposal_id UNIQUE)
        Result와 Tallied 상태는 함께 커밋되거나 함께 rollback된다.
        """
        now = as_utc(now)

        proposal = self.repos.proposal.get_by_id(proposal_id)
        if not proposal:
            raise ProposalNotFoundError(proposal_id)
        if proposal.result is not None or proposal.status == ProposalStatusType.TALLIED:
            raise AlreadyTalliedError(proposal_id)
        ensure_tally_due(now, proposal.end_time)

        try:
            with transaction(self.db):
                locked = self.repos.proposal.get_for_update(proposal_id)
                if locked is None:
                    raise ProposalNotFoundError(proposal_id)
                ensure_tally_due(now, locked.end_time)

                if not self.repos.proposal.mark_tallied_if_not_tallied(proposal_id):
                    logger.warning(f"Proposal {proposal_id} was tallied by a concurrent caller")
                    raise AlreadyTalliedError(proposal_id)

                votes = self.repos.vote.list_votes(proposal_id)
                outcome = compute_tally(locked.voting_method, votes)

                result = ProposalResult(
                    proposal_id=proposal_id,
                    passed=outcome.passed,
                    yes_weight=outcome.yes_weight,
                    no_weight=outcome.no_weight,
                    abstain_weight=outcome.abstain_weight,
                    total_weight=outcome.total_weight,
                    tallied_at=now,
                    method_applied_version=TALLY_RULES_VERSION,
                )
                self.repos.proposal.create_result(result)
        except IntegrityError as e:
            logger.warning(f"Duplicate result rejected for proposal {proposal_id}")
            raise AlreadyTalliedError(proposal_id) from e

        logger.info(
            f"Proposal {proposal_id} tallied: passed={outcome.passed} "
            f"yes={outcome.yes_weight} no={outcome.no_weight} "
            f"abstain={outcome.abstain_weight} votes={len(votes)}"
        )
        return result
