from datetime import datetime, timedelta, timezone

import pytest

from app.exceptions import (
    InvalidProposalWindowError,
    TallyNotYetDueError,
    VoteWindowClosedError,
    VoteWindowNotOpenYetError,
)
from app.models.proposal import ProposalStatusType
from app.services.voting.core.lifecycle import (
    derive_status,
    ensure_tally_due,
    ensure_voting_open,
    validate_window,
)

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
END = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("now, expected", [
    (START - timedelta(seconds=1), ProposalStatusType.SCHEDULED),
    (START, ProposalStatusType.OPEN),
    (END - timedelta(microseconds=1), ProposalStatusType.OPEN),
    (END, ProposalStatusType.CLOSED),
    (END + timedelta(days=30), ProposalStatusType.CLOSED),
])
def test_derive_status_boundaries(now, expected):
    assert derive_status(now, START, END, has_result=False) == expected


def test_result_always_means_tallied():
    assert derive_status(START - timedelta(days=1), START, END, has_result=True) == ProposalStatusType.TALLIED
    assert derive_status(END, START, END, has_result=True) == ProposalStatusType.TALLIED


def test_naive_datetimes_are_treated_as_utc():
    naive_start = START.replace(tzinfo=None)
    naive_end = END.replace(tzinfo=None)

    assert derive_status(START, naive_start, naive_end, has_result=False) == ProposalStatusType.OPEN


def test_validate_window_rejects_empty_or_inverted_window():
    with pytest.raises(InvalidProposalWindowError):
        validate_window(START, START)
    with pytest.raises(InvalidProposalWindowError):
        validate_window(END, START)
    validate_window(START, END)


def test_voting_window_is_half_open():
    with pytest.raises(VoteWindowNotOpenYetError):
        ensure_voting_open(START - timedelta(seconds=1), START, END)
    with pytest.raises(VoteWindowClosedError):
        ensure_voting_open(END, START, END)

    ensure_voting_open(START, START, END)


def test_tally_due_at_end_time():
    with pytest.raises(TallyNotYetDueError):
        ensure_tally_due(END - timedelta(seconds=1), END)
    ensure_tally_due(END, END)
