from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends

from app.models import User
from app.services.voting import VoteService
from app.schemas.voting import CastVoteRequest, CastVoteResponse, MyVoteResponse
from app.dependencies.auth import get_current_user
from app.dependencies.clock import get_now
from app.dependencies.services import get_vote_service


router = APIRouter(tags=["proposals-vote"])


@router.post(
    "/proposals/{proposal_id}/vote",
    response_model=CastVoteResponse
)
def cast_vote(
    proposal_id: UUID,
    request: CastVoteRequest,
    current_user: User = Depends(get_current_user),
    vote_service: VoteService = Depends(get_vote_service),
    now: datetime = Depends(get_now),
) -> CastVoteResponse:
    """
    투표/재투표 API (upsert)
    - 진행 중인 제안에 자격 있는 사용자만 가능
    - 이미 투표한 경우 선택/가중치를 덮어씀
    """
    return vote_service.cast_vote(
        proposal_id=proposal_id,
        user_id=current_user.id,
        choice=request.choice,
        now=now
    )


@router.get(
    "/proposals/{proposal_id}/votes/me",
    response_model=MyVoteResponse
)
def get_my_vote(
    proposal_id: UUID,
    current_user: User = Depends(get_current_user),
    vote_service: VoteService = Depends(get_vote_service),
) -> MyVoteResponse:
    """본인 투표 조회 API (투표하지 않았으면 vote = null)"""
    return vote_service.get_my_vote(
        proposal_id=proposal_id,
        user_id=current_user.id
    )
