from datetime import datetime
from uuid import UUID

from app.models.vote import Vote, VoteChoiceType
from app.services.voting.base import VotingBaseService
from app.services.voting.core.vote_usecase import VoteUseCase
from app.schemas.voting import CastVoteResponse, MyVoteResponse, VoteRecordResponse
from app.utils.clock import as_utc


class VoteService(VotingBaseService):
    """투표 관련 서비스"""

    def __init__(self, db, repos):
        super().__init__(db, repos)
        self.vote_usecase = VoteUseCase(db, repos, self.resolver)

    def cast_vote(
        self,
        proposal_id: UUID,
        user_id: UUID,
        choice: VoteChoiceType,
        now: datetime
    ) -> CastVoteResponse:
        """
        투표 생성/재투표 (upsert)
        - 진행 중(Open)인 제안에만 가능
        - 재투표 시 선택/가중치/시각 모두 교체 (마지막 투표 유효)
        """
        vote, recast = self.vote_usecase.cast(proposal_id, user_id, choice, now)
        record = self._build_record(vote)
        return CastVoteResponse(**record.model_dump(), success=True, recast=recast)

    def get_my_vote(self, proposal_id: UUID, user_id: UUID) -> MyVoteResponse:
        """본인 투표 조회 (투표하지 않았으면 vote = None)"""
        self.get_visible_proposal(proposal_id, user_id)
        vote = self.repos.vote.get_user_vote(proposal_id, user_id)
        return MyVoteResponse(
            proposal_id=proposal_id,
            has_voted=vote is not None,
            vote=self._build_record(vote) if vote else None,
        )

    @staticmethod
    def _build_record(vote: Vote) -> VoteRecordResponse:
        return VoteRecordResponse(
            proposal_id=vote.proposal_id,
            user_id=vote.user_id,
            choice=vote.choice,
            weight=vote.weight,
            cast_at=as_utc(vote.cast_at),
        )
