"""제안 상태 파생 및 기간 검증"""
from datetime import datetime

from app.models.proposal import ProposalStatusType
from app.exceptions import (
    InvalidProposalWindowError,
    VoteWindowNotOpenYetError,
    VoteWindowClosedError,
    TallyNotYetDueError,
)
from app.utils.clock import as_utc


def derive_status(
    now: datetime,
    start_time: datetime,
    end_time: datetime,
    has_result: bool
) -> ProposalStatusType:
    """
    Scheduled --(now >= start)--> Open --(now >= end)--> Closed --(tally)--> Tallied

    Tallied만 저장되는 상태이며 나머지는 조회할 때마다 다시 계산한다.
    """
    if has_result:
        return ProposalStatusType.TALLIED
    now = as_utc(now)
    if now < as_utc(start_time):
        return ProposalStatusType.SCHEDULED
    if now < as_utc(end_time):
        return ProposalStatusType.OPEN
    return ProposalStatusType.CLOSED


def validate_window(start_time: datetime, end_time: datetime) -> None:
    if as_utc(end_time) <= as_utc(start_time):
        raise InvalidProposalWindowError()


def ensure_voting_open(now: datetime, start_time: datetime, end_time: datetime) -> None:
    """투표 가능 구간 [start, end) 확인"""
    now = as_utc(now)
    if now < as_utc(start_time):
        raise VoteWindowNotOpenYetError(as_utc(start_time))
    if now >= as_utc(end_time):
        raise VoteWindowClosedError(as_utc(end_time))


def ensure_tally_due(now: datetime, end_time: datetime) -> None:
    if as_utc(now) < as_utc(end_time):
        raise TallyNotYetDueError(as_utc(end_time))
