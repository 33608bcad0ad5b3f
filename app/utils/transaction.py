import logging
from contextlib import contextmanager
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def transaction(db: Session):
    """
    서비스 계층 작업 단위 (commit/rollback을 한 곳에서만 수행)

        with transaction(self.db):
            proposal = self.repos.proposal.get_for_share(...)
            ensure_voting_open(now, proposal.start_time, proposal.end_time)
            self.repos.vote.upsert_vote(...)

    - 블록이 정상 종료되면 commit
    - 예외가 나면 rollback 후 그대로 다시 raise (AppException은 라우터에서 응답으로 변환)
    - 리포지토리는 flush까지만 하고 commit하지 않음
    """
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.debug(f"Transaction rolled back: {e.__class__.__name__}")
        raise
