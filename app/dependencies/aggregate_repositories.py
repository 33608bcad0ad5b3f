"""
Repository Aggregate 패턴 구현
의존성 주입을 위해 투표 엔진이 쓰는 Repository들을 하나로 묶은 Aggregate 클래스
"""
from sqlalchemy.orm import Session

from app.repositories.proposal_repository import ProposalRepository
from app.repositories.vote_repository import VoteRepository
from app.repositories.directory_repository import DirectoryRepository


class VotingAggregateRepositories:
    """투표 관련 모든 Repository를 하나로 묶은 Aggregate"""

    def __init__(self, db: Session):
        self.proposal = ProposalRepository(db)
        self.vote = VoteRepository(db)
        self.directory = DirectoryRepository(db)
