from datetime import timedelta
from types import SimpleNamespace
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from app.exceptions import (
    AlreadyTalliedError,
    InvalidProposalWindowError,
    NotFoundError,
    PrivilegedActionForbiddenError,
    ProposalLockedError,
    ProposalNotFoundError,
    TallyNotYetDueError,
    ValidationError,
)
from app.models import (
    ApartmentOwner,
    Proposal,
    ProposalResult,
    ProposalStatusType,
    RoleName,
    TALLY_RULES_VERSION,
    VoteChoiceType,
    VotingMethodType,
)
from app.schemas.voting import ProposalCreateRequest, ProposalUpdateRequest
from app.utils.clock import as_utc

YES, NO, ABSTAIN = VoteChoiceType.YES, VoteChoiceType.NO, VoteChoiceType.ABSTAIN


def cast_all(vote_service, proposal, voters_and_choices, now):
    for voter, choice in voters_and_choices:
        vote_service.cast_vote(proposal.id, voter.id, choice, now)


def count_results(db, proposal_id):
    return db.execute(
        select(func.count(ProposalResult.id)).where(ProposalResult.proposal_id == proposal_id)
    ).scalar_one()


def create_request(now, **overrides):
    fields = dict(
        title="Replace the elevator",
        description="Quote attached",
        start_time=now,
        end_time=now + timedelta(days=7),
        voting_method=VotingMethodType.SIMPLE_MAJORITY,
        eligible_roles=[RoleName.HOMEOWNER],
    )
    fields.update(overrides)
    return ProposalCreateRequest(**fields)


# ---------------------------------------------------------------------
# 집계
# ---------------------------------------------------------------------

def test_simple_majority_two_yes_one_no_passes(seed, admin, proposal_service, vote_service, now):
    voters = [seed.user(RoleName.HOMEOWNER) for _ in range(3)]
    proposal = seed.proposal(admin)
    cast_all(vote_service, proposal, zip(voters, [YES, YES, NO]), now)

    result = proposal_service.tally(proposal.id, admin.id, proposal.end_time)

    assert result.yes_weight == Decimal("2")
    assert result.no_weight == Decimal("1")
    assert result.total_weight == Decimal("3")
    assert result.passed is True
    assert result.method_applied_version == TALLY_RULES_VERSION


def test_consensus_single_no_vetoes(seed, admin, proposal_service, vote_service, now):
    voters = [seed.user(RoleName.HOMEOWNER) for _ in range(3)]
    proposal = seed.proposal(admin, voting_method=VotingMethodType.CONSENSUS)
    cast_all(vote_service, proposal, zip(voters, [YES, YES, NO]), now)

    result = proposal_service.tally(proposal.id, admin.id, proposal.end_time)

    assert result.yes_weight == Decimal("2")
    assert result.passed is False


def test_weighted_area_scoped_to_building(seed, admin, proposal_service, vote_service, now):
    building = seed.building()
    user_a = seed.user(RoleName.HOMEOWNER)
    user_c = seed.user(RoleName.HOMEOWNER)
    seed.own(user_a, seed.apartment(building, 50.0, number="A"))
    seed.own(user_c, seed.apartment(building, 30.0, number="C"))
    proposal = seed.proposal(
        admin, voting_method=VotingMethodType.WEIGHTED_AREA, building=building
    )
    cast_all(vote_service, proposal, [(user_a, YES), (user_c, NO)], now)

    result = proposal_service.tally(proposal.id, admin.id, proposal.end_time)

    assert result.yes_weight == Decimal("50")
    assert result.no_weight == Decimal("30")
    assert result.passed is True


def test_tally_uses_snapshotted_weight(db, seed, admin, proposal_service, vote_service, now):
    building = seed.building()
    seller = seed.user(RoleName.HOMEOWNER)
    seed.own(seller, seed.apartment(building, 50.0))
    proposal = seed.proposal(
        admin, voting_method=VotingMethodType.WEIGHTED_AREA, building=building
    )
    vote_service.cast_vote(proposal.id, seller.id, YES, now)

    # 투표 후 세대 매각
    db.execute(delete(ApartmentOwner).where(ApartmentOwner.user_id == seller.id))
    db.commit()

    result = proposal_service.tally(proposal.id, admin.id, proposal.end_time)

    assert result.yes_weight == Decimal("50")
    assert result.passed is True


def test_tally_before_end_is_rejected(db, seed, admin, proposal_service, now):
    proposal = seed.proposal(admin)

    with pytest.raises(TallyNotYetDueError):
        proposal_service.tally(proposal.id, admin.id, now)

    assert count_results(db, proposal.id) == 0


def test_tally_twice_keeps_first_result(db, seed, admin, proposal_service, vote_service, now):
    voter = seed.user(RoleName.HOMEOWNER)
    proposal = seed.proposal(admin)
    vote_service.cast_vote(proposal.id, voter.id, YES, now)

    first = proposal_service.tally(proposal.id, admin.id, proposal.end_time)
    with pytest.raises(AlreadyTalliedError):
        proposal_service.tally(proposal.id, admin.id, proposal.end_time + timedelta(days=1))

    assert count_results(db, proposal.id) == 1
    detail = proposal_service.get_proposal(proposal.id, admin.id, proposal.end_time + timedelta(days=2))
    assert detail.status == ProposalStatusType.TALLIED
    assert detail.result == first


def test_tally_requires_privileged_actor(db, seed, admin, proposal_service):
    homeowner = seed.user(RoleName.HOMEOWNER)
    proposal = seed.proposal(admin)

    with pytest.raises(PrivilegedActionForbiddenError):
        proposal_service.tally(proposal.id, homeowner.id, proposal.end_time)

    assert count_results(db, proposal.id) == 0


def test_tally_with_no_votes_fails_closed(seed, admin, proposal_service):
    proposal = seed.proposal(admin)

    result = proposal_service.tally(proposal.id, admin.id, proposal.end_time)

    assert result.total_weight == Decimal("0")
    assert result.passed is False


def test_tally_unknown_proposal(admin, proposal_service, now):
    with pytest.raises(ProposalNotFoundError):
        proposal_service.tally(uuid4(), admin.id, now)


def test_tally_due_sweeps_closed_proposals(seed, admin, proposal_service, now):
    closed_a = seed.proposal(admin, start_time=now - timedelta(days=2), end_time=now - timedelta(days=1))
    closed_b = seed.proposal(admin, start_time=now - timedelta(days=2), end_time=now)
    seed.proposal(admin)

    summary = proposal_service.tally_due(admin.id, now)

    assert {result.proposal_id for result in summary.tallied} == {closed_a.id, closed_b.id}
    assert summary.skipped_proposal_ids == []
    assert proposal_service.tally_due(admin.id, now).tallied == []


# ---------------------------------------------------------------------
# 생성 / 수정 / 삭제
# ---------------------------------------------------------------------

def test_manager_creates_scoped_proposal(seed, proposal_service, now):
    building = seed.building()
    manager = seed.user(RoleName.MANAGER)
    seed.manage(manager, building)

    detail = proposal_service.create_proposal(
        manager.id,
        create_request(now + timedelta(hours=1), building_id=building.id,
                       eligible_roles=[RoleName.RENTER, RoleName.HOMEOWNER]),
        now,
    )

    assert detail.status == ProposalStatusType.SCHEDULED
    assert detail.building_id == building.id
    assert detail.created_by == manager.id
    assert detail.eligible_roles == [RoleName.HOMEOWNER, RoleName.RENTER]
    assert detail.total_votes == 0
    assert detail.result is None


def test_create_requires_privileged_actor(seed, proposal_service, now):
    homeowner = seed.user(RoleName.HOMEOWNER)

    with pytest.raises(PrivilegedActionForbiddenError):
        proposal_service.create_proposal(homeowner.id, create_request(now), now)


def test_create_rejects_invalid_window(admin, proposal_service, now):
    with pytest.raises(InvalidProposalWindowError):
        proposal_service.create_proposal(admin.id, create_request(now, end_time=now), now)


def test_create_requires_eligible_role(admin, proposal_service, now):
    with pytest.raises(ValidationError):
        proposal_service.create_proposal(admin.id, create_request(now, eligible_roles=[]), now)


def test_create_rejects_unknown_building(admin, proposal_service, now):
    with pytest.raises(NotFoundError):
        proposal_service.create_proposal(admin.id, create_request(now, building_id=uuid4()), now)


def test_edit_before_first_vote(seed, admin, proposal_service, now):
    proposal = seed.proposal(admin)
    request = ProposalUpdateRequest(
        title="Repaint the lobby green",
        voting_method=VotingMethodType.CONSENSUS,
    )

    detail = proposal_service.update_proposal(proposal.id, admin.id, request, now)

    assert detail.title == "Repaint the lobby green"
    assert detail.voting_method == VotingMethodType.CONSENSUS
    assert detail.description == "Repaint the lobby before spring"


def test_edit_rejects_inverted_window(seed, admin, proposal_service, now):
    proposal = seed.proposal(admin)
    request = ProposalUpdateRequest(end_time=proposal.start_time - timedelta(minutes=1))

    with pytest.raises(InvalidProposalWindowError):
        proposal_service.update_proposal(proposal.id, admin.id, request, now)


def test_edit_and_remove_locked_after_first_vote(seed, admin, proposal_service, vote_service, now):
    voter = seed.user(RoleName.HOMEOWNER)
    proposal = seed.proposal(admin)
    vote_service.cast_vote(proposal.id, voter.id, YES, now)

    with pytest.raises(ProposalLockedError):
        proposal_service.update_proposal(
            proposal.id, admin.id, ProposalUpdateRequest(title="Changed"), now
        )
    with pytest.raises(ProposalLockedError):
        proposal_service.remove_proposal(proposal.id, admin.id, now)


def test_removed_proposal_disappears(seed, admin, proposal_service, now):
    proposal = seed.proposal(admin)

    proposal_service.remove_proposal(proposal.id, admin.id, now)

    with pytest.raises(ProposalNotFoundError):
        proposal_service.get_proposal(proposal.id, admin.id, now)
    assert proposal_service.list_proposals(admin.id, now) == []


# ---------------------------------------------------------------------
# 조회
# ---------------------------------------------------------------------

def test_detail_has_live_counts_and_caller_state(seed, admin, proposal_service, vote_service, now):
    voters = [seed.user(RoleName.HOMEOWNER) for _ in range(3)]
    renter = seed.user(RoleName.RENTER)
    proposal = seed.proposal(admin)
    cast_all(vote_service, proposal, zip(voters, [YES, NO, ABSTAIN]), now)

    detail = proposal_service.get_proposal(proposal.id, voters[0].id, now)

    assert detail.status == ProposalStatusType.OPEN
    assert (detail.yes_count, detail.no_count, detail.abstain_count) == (1, 1, 1)
    assert detail.total_votes == 3
    assert detail.yes_weight == Decimal("1")
    assert detail.user_vote == YES
    assert detail.user_eligible is True

    renter_view = proposal_service.get_proposal(proposal.id, renter.id, now)
    assert renter_view.user_vote is None
    assert renter_view.user_eligible is False


def test_scoped_proposals_hidden_from_outsiders(seed, admin, proposal_service, now):
    building = seed.building("1 Main St")
    other = seed.building("9 Side St")
    insider = seed.user(RoleName.RENTER)
    outsider = seed.user(RoleName.RENTER)
    seed.rent(insider, seed.apartment(building))
    seed.rent(outsider, seed.apartment(other))
    scoped = seed.proposal(admin, building=building, title="Fix the roof")
    public = seed.proposal(admin, title="Annual budget")

    assert {p.id for p in proposal_service.list_proposals(insider.id, now)} == {scoped.id, public.id}
    assert {p.id for p in proposal_service.list_proposals(outsider.id, now)} == {public.id}
    assert {p.id for p in proposal_service.list_proposals(admin.id, now)} == {scoped.id, public.id}

    with pytest.raises(ProposalNotFoundError):
        proposal_service.get_proposal(scoped.id, outsider.id, now)


def test_list_filters_by_derived_status(seed, admin, proposal_service, now):
    scheduled = seed.proposal(admin, start_time=now + timedelta(hours=1), end_time=now + timedelta(hours=2))
    open_ = seed.proposal(admin)
    closed = seed.proposal(admin, start_time=now - timedelta(hours=2), end_time=now - timedelta(hours=1))
    tallied = seed.proposal(admin, start_time=now - timedelta(hours=3), end_time=now - timedelta(hours=2))
    proposal_service.tally(tallied.id, admin.id, now)

    def ids(status):
        return [p.id for p in proposal_service.list_proposals(admin.id, now, status)]

    assert ids(ProposalStatusType.SCHEDULED) == [scheduled.id]
    assert ids(ProposalStatusType.OPEN) == [open_.id]
    assert ids(ProposalStatusType.CLOSED) == [closed.id]
    assert ids(ProposalStatusType.TALLIED) == [tallied.id]
    assert len(proposal_service.list_proposals(admin.id, now)) == 4


def test_voting_summary(seed, admin, proposal_service, vote_service, now):
    homeowner = seed.user(RoleName.HOMEOWNER)
    voted = seed.proposal(admin, title="Voted")
    seed.proposal(admin, title="Pending")
    seed.proposal(admin, eligible_roles=[RoleName.RENTER], title="Renters only")
    seed.proposal(admin, start_time=now + timedelta(hours=1), end_time=now + timedelta(hours=2))
    vote_service.cast_vote(voted.id, homeowner.id, YES, now)

    summary = proposal_service.get_voting_summary(homeowner.id, now)

    assert summary.active_proposals_count == 3
    assert summary.pending_votes_count == 1


# ---------------------------------------------------------------------
# 건물 범위 권한 (쓰기 전에 판단)
# ---------------------------------------------------------------------

def count_proposals(db):
    return db.execute(select(func.count(Proposal.id))).scalar_one()


def test_manager_cannot_create_for_building_without_access(db, seed, proposal_service, now):
    building = seed.building()
    manager = seed.user(RoleName.MANAGER)

    with pytest.raises(PrivilegedActionForbiddenError):
        proposal_service.create_proposal(
            manager.id, create_request(now, building_id=building.id), now
        )

    assert count_proposals(db) == 0


def test_manager_cannot_move_proposal_to_building_without_access(db, seed, proposal_service, now):
    managed = seed.building("1 Main St")
    other = seed.building("9 Side St")
    manager = seed.user(RoleName.MANAGER)
    seed.manage(manager, managed)
    proposal = seed.proposal(manager, building=managed)

    with pytest.raises(PrivilegedActionForbiddenError):
        proposal_service.update_proposal(
            proposal.id, manager.id, ProposalUpdateRequest(building_id=other.id), now
        )

    db.expire_all()
    assert proposal.building_id == managed.id


def test_manager_cannot_touch_proposal_of_unseen_building(db, seed, admin, proposal_service, now):
    building = seed.building()
    manager = seed.user(RoleName.MANAGER)
    proposal = seed.proposal(admin, building=building, title="Roof")

    with pytest.raises(ProposalNotFoundError):
        proposal_service.update_proposal(
            proposal.id, manager.id, ProposalUpdateRequest(title="Changed"), now
        )
    with pytest.raises(ProposalNotFoundError):
        proposal_service.remove_proposal(proposal.id, manager.id, now)

    db.expire_all()
    assert proposal.title == "Roof"
    assert proposal.is_deleted is False


def test_admin_creates_for_any_building(seed, admin, proposal_service, now):
    building = seed.building()

    detail = proposal_service.create_proposal(
        admin.id, create_request(now, building_id=building.id), now
    )

    assert detail.building_id == building.id


# ---------------------------------------------------------------------
# DB 제약이 최종 판정 (애플리케이션 사전 검사 우회)
# ---------------------------------------------------------------------

def test_second_result_row_violates_unique_constraint(db, seed, admin, proposal_service):
    proposal = seed.proposal(admin)
    proposal_service.tally(proposal.id, admin.id, proposal.end_time)

    db.add(ProposalResult(
        proposal_id=proposal.id,
        passed=True,
        yes_weight=Decimal("1"),
        no_weight=Decimal("0"),
        abstain_weight=Decimal("0"),
        total_weight=Decimal("1"),
        tallied_at=proposal.end_time,
        method_applied_version=TALLY_RULES_VERSION,
    ))
    with pytest.raises(IntegrityError):
        db.flush()
    db.rollback()

    assert count_results(db, proposal.id) == 1


def test_mark_tallied_only_wins_once(db, seed, admin, repos):
    proposal = seed.proposal(admin)

    assert repos.proposal.mark_tallied_if_not_tallied(proposal.id) is True
    db.commit()
    assert repos.proposal.mark_tallied_if_not_tallied(proposal.id) is False


def stale_snapshot(end_time):
    """다른 호출자의 집계가 커밋되기 전에 읽은 제안 상태"""
    def get_by_id(proposal_id, include_deleted=False):
        return SimpleNamespace(result=None, status=ProposalStatusType.SCHEDULED, end_time=end_time)
    return get_by_id


def test_unique_result_constraint_maps_to_already_tallied(
    db, seed, admin, repos, proposal_service, vote_service, monkeypatch, now
):
    voter = seed.user(RoleName.HOMEOWNER)
    proposal = seed.proposal(admin)
    vote_service.cast_vote(proposal.id, voter.id, YES, now)
    end_time = proposal.end_time
    first = proposal_service.tally(proposal.id, admin.id, end_time)

    # 상태만 되돌려 조건부 UPDATE도 통과시키고 UNIQUE 제약만 남김
    db.execute(
        update(Proposal)
        .where(Proposal.id == proposal.id)
        .values(status=ProposalStatusType.SCHEDULED)
    )
    db.commit()
    monkeypatch.setattr(repos.proposal, "get_by_id", stale_snapshot(end_time))

    with pytest.raises(AlreadyTalliedError):
        proposal_service.tally(proposal.id, admin.id, end_time + timedelta(days=1))

    monkeypatch.undo()
    assert count_results(db, proposal.id) == 1
    stored = repos.proposal.get_result(proposal.id)
    assert as_utc(stored.tallied_at) == first.tallied_at
    assert stored.yes_weight == first.yes_weight
    # 상태 전환도 함께 rollback
    assert repos.proposal.get_by_id(proposal.id).status == ProposalStatusType.SCHEDULED


def test_losing_tally_caller_gets_already_tallied(db, seed, admin, repos, proposal_service, monkeypatch):
    proposal = seed.proposal(admin)
    end_time = proposal.end_time
    first = proposal_service.tally(proposal.id, admin.id, end_time)
    monkeypatch.setattr(repos.proposal, "get_by_id", stale_snapshot(end_time))

    with pytest.raises(AlreadyTalliedError):
        proposal_service.tally(proposal.id, admin.id, end_time + timedelta(hours=1))

    monkeypatch.undo()
    assert count_results(db, proposal.id) == 1
    assert as_utc(repos.proposal.get_result(proposal.id).tallied_at) == first.tallied_at
