from datetime import datetime
from typing import Set
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.auth import RoleName, PRIVILEGED_ROLES
from app.models.proposal import Proposal, ProposalResult, ProposalStatusType
from app.dependencies.aggregate_repositories import VotingAggregateRepositories
from app.exceptions import ProposalNotFoundError, PrivilegedActionForbiddenError
from app.schemas.voting.common import ProposalResultInfo
from app.services.voting.core.eligibility import EligibilityResolver
from app.services.voting.core.lifecycle import derive_status
from app.utils.clock import as_utc


class VotingBaseService:
    """투표 관련 공통 서비스 로직"""

    def __init__(self, db: Session, repos: VotingAggregateRepositories):
        self.db = db
        self.repos = repos
        self.resolver = EligibilityResolver(repos.directory)

    def verify_privileged(self, user_id: UUID, operation: str) -> Set[RoleName]:
        """Admin/Manager 권한 확인"""
        roles = self.repos.directory.get_user_roles(user_id)
        if not roles & PRIVILEGED_ROLES:
            raise PrivilegedActionForbiddenError(operation)
        return roles

    def get_proposal_or_404(self, proposal_id: UUID) -> Proposal:
        proposal = self.repos.proposal.get_by_id(proposal_id)
        if not proposal:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    def get_visible_proposal(self, proposal_id: UUID, user_id: UUID) -> Proposal:
        """
        호출자가 볼 수 있는 제안 조회
        - 건물 범위 제안은 접근 권한이 없으면 존재하지 않는 것처럼 처리
        """
        proposal = self.get_proposal_or_404(proposal_id)
        if proposal.building_id is not None and not self.resolver.has_building_access(
            user_id, proposal.building_id
        ):
            raise ProposalNotFoundError(proposal_id)
        return proposal

    @staticmethod
    def _status_of(proposal: Proposal, now: datetime):
        return derive_status(
            now,
            proposal.start_time,
            proposal.end_time,
            has_result=(
                proposal.result is not None
                or proposal.status == ProposalStatusType.TALLIED
            ),
        )

    @staticmethod
    def _build_result_info(result: ProposalResult) -> ProposalResultInfo:
        return ProposalResultInfo(
            proposal_id=result.proposal_id,
            passed=result.passed,
            yes_weight=result.yes_weight,
            no_weight=result.no_weight,
            abstain_weight=result.abstain_weight,
            total_weight=result.total_weight,
            tallied_at=as_utc(result.tallied_at),
            method_applied_version=result.method_applied_version,
        )
