from datetime import datetime
from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status

from app.models import User
from app.models.proposal import ProposalStatusType
from app.services.voting import ProposalService
from app.schemas.voting import (
    ProposalCreateRequest,
    ProposalUpdateRequest,
    ProposalSummaryResponse,
    ProposalDetailResponse,
    ProposalResultInfo,
    VotingSummaryResponse,
)
from app.dependencies.auth import get_current_user
from app.dependencies.clock import get_now
from app.dependencies.services import get_proposal_service


router = APIRouter(tags=["proposals"])


@router.post(
    "/proposals",
    response_model=ProposalDetailResponse,
    status_code=status.HTTP_201_CREATED
)
def create_proposal(
    request: ProposalCreateRequest,
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> ProposalDetailResponse:
    """
    제안 생성 API
    - Admin/Manager만 가능
    - building_id가 없으면 전체 공개 제안
    - end_time > start_time, eligible_roles 1개 이상
    """
    return proposal_service.create_proposal(
        creator_id=current_user.id,
        request=request,
        now=now
    )


@router.get(
    "/proposals",
    response_model=List[ProposalSummaryResponse]
)
def list_proposals(
    status_filter: ProposalStatusType | None = Query(None, alias="status"),
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> List[ProposalSummaryResponse]:
    """
    제안 목록 조회 API
    - 전체 공개 제안 + 접근 가능한 건물의 제안
    - status: Scheduled / Open / Closed / Tallied (조회 시각 기준)
    """
    return proposal_service.list_proposals(
        user_id=current_user.id,
        now=now,
        status=status_filter
    )


# /proposals/{proposal_id}보다 먼저 등록해야 함
@router.get(
    "/proposals/summary",
    response_model=VotingSummaryResponse
)
def get_voting_summary(
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> VotingSummaryResponse:
    """진행 중 제안 수 / 투표 대기 제안 수 조회 API"""
    return proposal_service.get_voting_summary(
        user_id=current_user.id,
        now=now
    )


@router.get(
    "/proposals/{proposal_id}",
    response_model=ProposalDetailResponse
)
def get_proposal(
    proposal_id: UUID,
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> ProposalDetailResponse:
    """
    제안 상세 조회 API
    - 집계 전: 선택지별 실시간 투표 수/가중치
    - 집계 후: 확정 결과 (result)
    """
    return proposal_service.get_proposal(
        proposal_id=proposal_id,
        user_id=current_user.id,
        now=now
    )


@router.patch(
    "/proposals/{proposal_id}",
    response_model=ProposalDetailResponse
)
def update_proposal(
    proposal_id: UUID,
    request: ProposalUpdateRequest,
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> ProposalDetailResponse:
    """제안 수정 API (Admin/Manager, 첫 투표 전까지만)"""
    return proposal_service.update_proposal(
        proposal_id=proposal_id,
        actor_id=current_user.id,
        request=request,
        now=now
    )


@router.delete(
    "/proposals/{proposal_id}",
    status_code=status.HTTP_204_NO_CONTENT
)
def remove_proposal(
    proposal_id: UUID,
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> Response:
    """제안 삭제 API (Admin/Manager, 첫 투표 전까지만)"""
    proposal_service.remove_proposal(
        proposal_id=proposal_id,
        actor_id=current_user.id,
        now=now
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/proposals/{proposal_id}/tally",
    response_model=ProposalResultInfo
)
def tally_proposal(
    proposal_id: UUID,
    current_user: User = Depends(get_current_user),
    proposal_service: ProposalService = Depends(get_proposal_service),
    now: datetime = Depends(get_now),
) -> ProposalResultInfo:
    """
    집계 API
    - Admin/Manager만 가능
    - 종료 시각 이후 1회만 가능 (결과는 변경 불가)
    """
    return proposal_service.tally(
        proposal_id=proposal_id,
        actor_id=current_user.id,
        now=now
    )
