import logging
from datetime import datetime
from typing import List
from uuid import UUID

from app.models.proposal import Proposal, ProposalStatusType
from app.models.vote import VoteChoiceType
from app.services.voting.base import VotingBaseService
from app.services.voting.core.lifecycle import validate_window
from app.services.voting.core.tally_usecase import TallyUseCase
from app.schemas.voting import (
    ProposalCreateRequest,
    ProposalUpdateRequest,
    ProposalSummaryResponse,
    ProposalDetailResponse,
    ProposalResultInfo,
    VotingSummaryResponse,
    TallySweepResponse,
)
from app.exceptions import (
    NotFoundError,
    ValidationError,
    ProposalNotFoundError,
    AlreadyTalliedError,
    ProposalLockedError,
    PrivilegedActionForbiddenError,
)
from app.utils.clock import as_utc
from app.utils.transaction import transaction

logger = logging.getLogger(__name__)


class ProposalService(VotingBaseService):
    """제안 생명주기 서비스 (생성/조회/수정/삭제/집계)"""

    def __init__(self, db, repos):
        super().__init__(db, repos)
        self.tally_usecase = TallyUseCase(db, repos)

    def create_proposal(
        self,
        creator_id: UUID,
        request: ProposalCreateRequest,
        now: datetime
    ) -> ProposalDetailResponse:
        """
        제안 생성
        - Admin/Manager만 가능
        - end_time > start_time, 투표 가능 역할 1개 이상
        """
        self.verify_privileged(creator_id, "create proposals")

        start_time = as_utc(request.start_time)
        end_time = as_utc(request.end_time)
        self._validate_proposal_fields(
            actor_id=creator_id,
            title=request.title,
            eligible_roles=request.eligible_roles,
            start_time=start_time,
            end_time=end_time,
            building_id=request.building_id,
        )

        proposal = Proposal(
            title=request.title,
            description=request.description,
            created_by=creator_id,
            building_id=request.building_id,
            start_time=start_time,
            end_time=end_time,
            voting_method=request.voting_method,
            eligible_roles=frozenset(request.eligible_roles),
            status=ProposalStatusType.SCHEDULED,
        )
        with transaction(self.db):
            created = self.repos.proposal.create_proposal(proposal)

        logger.info(
            f"Proposal {created.id} created by {creator_id}: "
            f"method={created.voting_method.value} scope={created.building_id or 'global'}"
        )
        return self._build_detail(self.get_proposal_or_404(created.id), creator_id, now)

    def list_proposals(
        self,
        user_id: UUID,
        now: datetime,
        status: ProposalStatusType | None = None
    ) -> List[ProposalSummaryResponse]:
        """
        제안 목록
        - 전체 공개 제안 + 접근 가능한 건물 제안 (Admin은 전체)
        - status는 now 기준 파생 상태
        """
        now = as_utc(now)
        building_ids = self.resolver.visible_building_ids(user_id)
        proposals = self.repos.proposal.list_visible(now, building_ids, status)
        return [self._build_summary(proposal, now) for proposal in proposals]

    def get_proposal(
        self,
        proposal_id: UUID,
        user_id: UUID,
        now: datetime
    ) -> ProposalDetailResponse:
        """
        제안 상세
        - 집계 전: 현재 투표 기준 실시간 집계
        - 집계 후: 확정 결과 포함
        """
        proposal = self.get_visible_proposal(proposal_id, user_id)
        return self._build_detail(proposal, user_id, now)

    def _build_detail(
        self,
        proposal: Proposal,
        user_id: UUID,
        now: datetime
    ) -> ProposalDetailResponse:
        now = as_utc(now)
        proposal_id = proposal.id
        aggregates = self.repos.vote.get_choice_aggregates(proposal_id)
        yes_count, yes_weight = aggregates[VoteChoiceType.YES]
        no_count, no_weight = aggregates[VoteChoiceType.NO]
        abstain_count, abstain_weight = aggregates[VoteChoiceType.ABSTAIN]

        user_vote = self.repos.vote.get_user_vote(proposal_id, user_id)
        decision = self.resolver.resolve(user_id, proposal)

        summary = self._build_summary(proposal, now)
        return ProposalDetailResponse(
            **summary.model_dump(),
            description=proposal.description,
            yes_count=yes_count,
            no_count=no_count,
            abstain_count=abstain_count,
            total_votes=yes_count + no_count + abstain_count,
            yes_weight=yes_weight,
            no_weight=no_weight,
            abstain_weight=abstain_weight,
            user_vote=user_vote.choice if user_vote else None,
            user_eligible=decision.eligible,
            result=self._build_result_info(proposal.result) if proposal.result else None,
        )

    def update_proposal(
        self,
        proposal_id: UUID,
        actor_id: UUID,
        request: ProposalUpdateRequest,
        now: datetime
    ) -> ProposalDetailResponse:
        """
        제안 수정
        - Admin/Manager만 가능
        - 첫 투표 전까지만 가능 (스냅샷된 가중치 보호)
        - 요청에 포함된 필드만 변경
        """
        self.verify_privileged(actor_id, "edit proposals")
        self.get_visible_proposal(proposal_id, actor_id)
        now = as_utc(now)

        with transaction(self.db):
            proposal = self._lock_unvoted_proposal(proposal_id, "edit")

            changes = request.model_dump(include=request.model_fields_set)
            for field in ("title", "description", "start_time", "end_time",
                          "voting_method", "eligible_roles"):
                if field in changes and changes[field] is None:
                    raise ValidationError(
                        message=f"Invalid {field}",
                        detail=f"{field} cannot be null"
                    )

            title = changes.get("title", proposal.title)
            start_time = as_utc(changes.get("start_time", proposal.start_time))
            end_time = as_utc(changes.get("end_time", proposal.end_time))
            eligible_roles = changes.get("eligible_roles", list(proposal.eligible_roles))
            building_id = changes.get("building_id", proposal.building_id)
            self._validate_proposal_fields(
                actor_id=actor_id,
                title=title,
                eligible_roles=eligible_roles,
                start_time=start_time,
                end_time=end_time,
                building_id=building_id if "building_id" in changes else None,
            )

            proposal.title = title
            proposal.description = changes.get("description", proposal.description)
            proposal.building_id = building_id
            proposal.start_time = start_time
            proposal.end_time = end_time
            proposal.voting_method = changes.get("voting_method", proposal.voting_method)
            proposal.eligible_roles = frozenset(eligible_roles)
            proposal.updated_at = now
            self.repos.proposal.update_proposal(proposal)

        logger.info(f"Proposal {proposal_id} edited by {actor_id}: {sorted(changes)}")
        return self._build_detail(self.get_proposal_or_404(proposal_id), actor_id, now)

    def remove_proposal(self, proposal_id: UUID, actor_id: UUID, now: datetime) -> None:
        """
        제안 삭제 (soft delete)
        - Admin/Manager만 가능
        - 첫 투표 전까지만 가능
        """
        self.verify_privileged(actor_id, "remove proposals")
        self.get_visible_proposal(proposal_id, actor_id)

        with transaction(self.db):
            proposal = self._lock_unvoted_proposal(proposal_id, "remove")
            proposal.is_deleted = True
            proposal.updated_at = as_utc(now)
            self.repos.proposal.update_proposal(proposal)

        logger.info(f"Proposal {proposal_id} removed by {actor_id}")

    def tally(self, proposal_id: UUID, actor_id: UUID, now: datetime) -> ProposalResultInfo:
        """
        제안 집계
        - Admin/Manager만 가능
        - 종료 시각 이후, 제안당 1회
        """
        self.verify_privileged(actor_id, "tally proposals")
        result = self.tally_usecase.tally(proposal_id, now)
        return self._build_result_info(result)

    def tally_due(self, actor_id: UUID, now: datetime) -> TallySweepResponse:
        """
        종료된 미집계 제안 일괄 집계 (외부 cron 등에서 호출)
        - 제안마다 별도 트랜잭션
        - 다른 호출자가 먼저 집계한 제안은 건너뜀
        """
        self.verify_privileged(actor_id, "tally proposals")
        now = as_utc(now)

        tallied: List[ProposalResultInfo] = []
        skipped: List[UUID] = []
        for proposal_id in self.repos.proposal.list_due_for_tally(now):
            try:
                result = self.tally_usecase.tally(proposal_id, now)
            except (AlreadyTalliedError, ProposalNotFoundError) as e:
                logger.info(f"Skipping proposal {proposal_id} in tally sweep: {e.message}")
                skipped.append(proposal_id)
                continue
            tallied.append(self._build_result_info(result))

        logger.info(f"Tally sweep finished: tallied={len(tallied)} skipped={len(skipped)}")
        return TallySweepResponse(tallied=tallied, skipped_proposal_ids=skipped)

    def get_voting_summary(self, user_id: UUID, now: datetime) -> VotingSummaryResponse:
        """진행 중인 제안 수 / 투표 대기 중인 제안 수"""
        now = as_utc(now)
        building_ids = self.resolver.visible_building_ids(user_id)
        open_proposals = self.repos.proposal.list_visible(
            now, building_ids, ProposalStatusType.OPEN
        )

        eligible_ids = [
            proposal.id
            for proposal in open_proposals
            if self.resolver.resolve(user_id, proposal).eligible
        ]
        voted_ids = self.repos.vote.get_voted_proposal_ids(user_id, eligible_ids)

        return VotingSummaryResponse(
            active_proposals_count=len(open_proposals),
            pending_votes_count=len(set(eligible_ids) - voted_ids),
        )

    def _lock_unvoted_proposal(self, proposal_id: UUID, operation: str) -> Proposal:
        """트랜잭션 안에서 잠금 조회 후 투표/집계가 없는지 확인"""
        proposal = self.repos.proposal.get_for_update(proposal_id)
        if not proposal:
            raise ProposalNotFoundError(proposal_id)
        if proposal.status == ProposalStatusType.TALLIED:
            raise AlreadyTalliedError(proposal_id)
        if self.repos.vote.count_votes(proposal_id) > 0:
            raise ProposalLockedError(proposal_id, operation)
        return proposal

    def _validate_proposal_fields(
        self,
        actor_id: UUID,
        title: str,
        eligible_roles,
        start_time: datetime,
        end_time: datetime,
        building_id: UUID | None,
    ) -> None:
        if not title:
            raise ValidationError(
                message="Invalid title",
                detail="title cannot be empty"
            )
        if not eligible_roles:
            raise ValidationError(
                message="Invalid eligible_roles",
                detail="At least one eligible role is required"
            )
        validate_window(start_time, end_time)
        if building_id is not None and not self.repos.directory.building_exists(building_id):
            raise NotFoundError(
                message="Building not found",
                detail=f"Building with id {building_id} not found"
            )
        # 호출자가 볼 수 없는 건물에는 제안을 만들거나 옮길 수 없음
        if building_id is not None and not self.resolver.has_building_access(actor_id, building_id):
            raise PrivilegedActionForbiddenError(
                "manage proposals",
                detail=f"You have no access to building {building_id}"
            )

    def _build_summary(self, proposal: Proposal, now: datetime) -> ProposalSummaryResponse:
        return ProposalSummaryResponse(
            id=proposal.id,
            title=proposal.title,
            created_by=proposal.created_by,
            building_id=proposal.building_id,
            start_time=as_utc(proposal.start_time),
            end_time=as_utc(proposal.end_time),
            voting_method=proposal.voting_method,
            eligible_roles=sorted(proposal.eligible_roles, key=lambda role: role.value),
            status=self._status_of(proposal, now),
            created_at=as_utc(proposal.created_at) if proposal.created_at else None,
        )
