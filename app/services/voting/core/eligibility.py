"""투표 자격 및 가중치 계산"""
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Protocol, Set
from uuid import UUID

from app.models.auth import RoleName
from app.models.proposal import Proposal, VotingMethodType

WEIGHT_QUANTUM = Decimal("0.000001")


class MembershipDirectory(Protocol):
    """RBAC/부동산 서브시스템 조회 인터페이스"""

    def get_user_roles(self, user_id: UUID) -> Set[RoleName]: ...

    def get_user_building_access(self, user_id: UUID) -> Set[UUID]: ...

    def get_owned_apartment_areas(
        self, user_id: UUID, building_id: UUID | None = None
    ) -> List[float | None]: ...


@dataclass(frozen=True)
class EligibilityDecision:
    eligible: bool
    weight: Decimal
    reason: str | None = None


class EligibilityResolver:
    """
    (사용자, 제안) -> 자격/가중치

    항상 현재 역할/소유 데이터로 계산한다. 집계 단계는 이 결과가 아니라
    투표 행에 스냅샷된 가중치를 사용한다.
    """

    def __init__(self, directory: MembershipDirectory):
        self.directory = directory

    def resolve(self, user_id: UUID, proposal: Proposal) -> EligibilityDecision:
        roles = self.directory.get_user_roles(user_id)

        # 1. 역할 확인
        if not roles & set(proposal.eligible_roles):
            return EligibilityDecision(
                eligible=False,
                weight=Decimal("0"),
                reason="Your roles are not eligible for this proposal"
            )

        # 2. 건물 범위 확인 (전체 공개 제안은 생략)
        if proposal.building_id is not None and not self.has_building_access(
            user_id, proposal.building_id, roles
        ):
            return EligibilityDecision(
                eligible=False,
                weight=Decimal("0"),
                reason="You have no access to the building this proposal is scoped to"
            )

        # 3. 가중치
        return EligibilityDecision(
            eligible=True,
            weight=self.compute_weight(user_id, proposal)
        )

    def compute_weight(self, user_id: UUID, proposal: Proposal) -> Decimal:
        """
        투표 방식별 가중치
        - SimpleMajority / PerSeat / Consensus: 1
        - WeightedArea: 범위 내 소유 세대 면적 합 (면적 미상은 0)
        """
        if proposal.voting_method != VotingMethodType.WEIGHTED_AREA:
            return Decimal("1")

        areas = self.directory.get_owned_apartment_areas(user_id, proposal.building_id)
        total = Decimal("0")
        for area in areas:
            if area is None or area <= 0:
                continue
            total += Decimal(str(area))
        return total.quantize(WEIGHT_QUANTUM)

    def has_building_access(
        self,
        user_id: UUID,
        building_id: UUID,
        roles: Set[RoleName] | None = None
    ) -> bool:
        building_ids = self.visible_building_ids(user_id, roles)
        return building_ids is None or building_id in building_ids

    def visible_building_ids(
        self,
        user_id: UUID,
        roles: Set[RoleName] | None = None
    ) -> Set[UUID] | None:
        """접근 가능한 건물 ID 집합 (Admin은 제한 없음 -> None)"""
        if roles is None:
            roles = self.directory.get_user_roles(user_id)
        if RoleName.ADMIN in roles:
            return None
        return self.directory.get_user_building_access(user_id)
