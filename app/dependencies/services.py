from fastapi import Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.services.voting import ProposalService, VoteService
from app.dependencies.aggregate_repositories import VotingAggregateRepositories
from app.dependencies.repositories import get_voting_aggregate_repositories


def get_proposal_service(
    db: Session = Depends(get_db),
    repos: VotingAggregateRepositories = Depends(get_voting_aggregate_repositories),
) -> ProposalService:
    """ProposalService 의존성 주입"""
    return ProposalService(db=db, repos=repos)


def get_vote_service(
    db: Session = Depends(get_db),
    repos: VotingAggregateRepositories = Depends(get_voting_aggregate_repositories),
) -> VoteService:
    """VoteService 의존성 주입"""
    return VoteService(db=db, repos=repos)
