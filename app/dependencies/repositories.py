from fastapi import Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.dependencies.aggregate_repositories import VotingAggregateRepositories
from app.repositories.directory_repository import DirectoryRepository


# Aggregate 의존성
def get_voting_aggregate_repositories(db: Session = Depends(get_db)) -> VotingAggregateRepositories:
    """투표 관련 Repository들의 Aggregate 의존성 주입"""
    return VotingAggregateRepositories(db)


# 개별 Repository 의존성
def get_directory_repository(db: Session = Depends(get_db)) -> DirectoryRepository:
    """DirectoryRepository 의존성 주입"""
    return DirectoryRepository(db)
