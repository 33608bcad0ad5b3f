from pydantic import BaseModel, ConfigDict
from uuid import UUID
from decimal import Decimal
from datetime import datetime

from app.models.vote import VoteChoiceType


class CastVoteRequest(BaseModel):
    """투표 요청"""
    choice: VoteChoiceType  # "Yes", "No", "Abstain"


class VoteRecordResponse(BaseModel):
    """투표 기록"""
    proposal_id: UUID
    user_id: UUID
    choice: VoteChoiceType
    weight: Decimal  # 투표 시점 스냅샷
    cast_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CastVoteResponse(VoteRecordResponse):
    """투표 응답"""
    success: bool = True
    recast: bool  # 기존 투표를 덮어썼는지 여부


class MyVoteResponse(BaseModel):
    """본인 투표 조회 응답 (투표하지 않았으면 vote = None)"""
    proposal_id: UUID
    has_voted: bool
    vote: VoteRecordResponse | None
