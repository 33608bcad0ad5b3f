"""
마감된 제안 일괄 집계 (1회 실행)

상주 스케줄러가 아니라 외부 cron 등이 주기적으로 실행하는 명령이다.

    TALLY_SWEEP_ACTOR_ID=<admin-user-uuid> python -m app.workers.tally_sweep
"""
import logging
import sys
from os import getenv
from uuid import UUID
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.dependencies.aggregate_repositories import VotingAggregateRepositories
from app.exceptions import AppException
from app.schemas.voting import TallySweepResponse
from app.services.voting import ProposalService
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class TallySweep:
    def __init__(self, db: Session, actor_id: UUID):
        self.db = db
        self.actor_id = actor_id
        self.service = ProposalService(db, VotingAggregateRepositories(db))

    def run_once(self) -> TallySweepResponse:
        """현재 시각 기준으로 종료된 제안을 모두 집계"""
        return self.service.tally_due(self.actor_id, utcnow())


def main() -> int:
    logging.basicConfig(
        level=getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    actor = getenv("TALLY_SWEEP_ACTOR_ID")
    if not actor:
        logger.error("TALLY_SWEEP_ACTOR_ID environment variable is not set")
        return 2
    if SessionLocal is None:
        logger.error("DATABASE_URL environment variable is not set")
        return 2

    db = SessionLocal()
    try:
        summary = TallySweep(db, UUID(actor)).run_once()
    except AppException as e:
        logger.error(f"Tally sweep failed: {e.message} ({e.detail})")
        return 1
    finally:
        db.close()

    for result in summary.tallied:
        logger.info(f"Tallied {result.proposal_id}: passed={result.passed}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
