"""집계 규칙 (순수 함수)"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Protocol

from app.models.proposal import VotingMethodType
from app.models.vote import VoteChoiceType


class WeightedBallot(Protocol):
    choice: VoteChoiceType
    weight: Decimal


@dataclass(frozen=True)
class TallyOutcome:
    yes_weight: Decimal
    no_weight: Decimal
    abstain_weight: Decimal
    total_weight: Decimal
    passed: bool


def compute_tally(
    voting_method: VotingMethodType,
    ballots: Iterable[WeightedBallot]
) -> TallyOutcome:
    """
    스냅샷된 가중치로 선택지별 합계와 가결 여부 계산

    total_weight = yes + no (기권은 분모에서 제외)
    - SimpleMajority / PerSeat / WeightedArea: yes > no
    - Consensus: no == 0 and yes > 0 (반대 한 표로 부결)
    """
    sums = {choice: Decimal("0") for choice in VoteChoiceType}
    for ballot in ballots:
        sums[ballot.choice] += Decimal(ballot.weight)

    yes_weight = sums[VoteChoiceType.YES]
    no_weight = sums[VoteChoiceType.NO]
    abstain_weight = sums[VoteChoiceType.ABSTAIN]

    if voting_method == VotingMethodType.CONSENSUS:
        passed = no_weight == 0 and yes_weight > 0
    else:
        passed = yes_weight > no_weight

    return TallyOutcome(
        yes_weight=yes_weight,
        no_weight=no_weight,
        abstain_weight=abstain_weight,
        total_weight=yes_weight + no_weight,
        passed=passed,
    )
