from pydantic import BaseModel, ConfigDict, Field, field_validator
from uuid import UUID
from decimal import Decimal
from typing import List
from datetime import datetime

from app.models.auth import RoleName
from app.models.proposal import VotingMethodType, ProposalStatusType
from app.models.vote import VoteChoiceType
from app.schemas.voting.common import ProposalResultInfo


# ============================================================================
# Request Schemas
# ============================================================================

class ProposalCreateRequest(BaseModel):
    """제안 생성 요청 (Admin/Manager)"""
    title: str = Field(max_length=255)
    description: str
    building_id: UUID | None = None  # None이면 전체 공개 제안
    start_time: datetime  # 시간대가 없으면 UTC로 간주
    end_time: datetime
    voting_method: VotingMethodType
    eligible_roles: List[RoleName]

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        return value.strip()


class ProposalUpdateRequest(BaseModel):
    """제안 수정 요청 (첫 투표 전까지만 가능, 보낸 필드만 변경)"""
    title: str | None = Field(default=None, max_length=255)
    description: str | None = None
    building_id: UUID | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    voting_method: VotingMethodType | None = None
    eligible_roles: List[RoleName] | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        return value.strip() if value is not None else None


# ============================================================================
# Response Schemas
# ============================================================================

class ProposalSummaryResponse(BaseModel):
    """제안 목록 항목"""
    id: UUID
    title: str
    created_by: UUID
    building_id: UUID | None
    start_time: datetime
    end_time: datetime
    voting_method: VotingMethodType
    eligible_roles: List[RoleName]
    status: ProposalStatusType  # 조회 시각 기준 파생 상태
    created_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class ProposalDetailResponse(ProposalSummaryResponse):
    """제안 상세 (집계 전이면 실시간 집계, 집계 후면 확정 결과)"""
    description: str
    yes_count: int
    no_count: int
    abstain_count: int
    total_votes: int
    yes_weight: Decimal
    no_weight: Decimal
    abstain_weight: Decimal
    user_vote: VoteChoiceType | None  # 본인 현재 투표
    user_eligible: bool
    result: ProposalResultInfo | None


class VotingSummaryResponse(BaseModel):
    """대시보드용 투표 요약"""
    active_proposals_count: int  # 진행 중이며 볼 수 있는 제안 수
    pending_votes_count: int  # 자격이 있지만 아직 투표하지 않은 제안 수


class TallySweepResponse(BaseModel):
    """마감된 제안 일괄 집계 결과"""
    tallied: List[ProposalResultInfo]
    skipped_proposal_ids: List[UUID]  # 다른 호출자가 먼저 집계한 제안
