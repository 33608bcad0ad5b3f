from app.schemas.voting.common import ProposalResultInfo
from app.schemas.voting.proposal import (
    ProposalCreateRequest,
    ProposalUpdateRequest,
    ProposalSummaryResponse,
    ProposalDetailResponse,
    VotingSummaryResponse,
    TallySweepResponse,
)
from app.schemas.voting.vote import (
    CastVoteRequest,
    VoteRecordResponse,
    CastVoteResponse,
    MyVoteResponse,
)

__all__ = [
    "ProposalResultInfo",
    "ProposalCreateRequest",
    "ProposalUpdateRequest",
    "ProposalSummaryResponse",
    "ProposalDetailResponse",
    "VotingSummaryResponse",
    "TallySweepResponse",
    "CastVoteRequest",
    "VoteRecordResponse",
    "CastVoteResponse",
    "MyVoteResponse",
]
