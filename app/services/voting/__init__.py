from app.services.voting.proposal_service import ProposalService
from app.services.voting.vote_service import VoteService

__all__ = ["ProposalService", "VoteService"]
