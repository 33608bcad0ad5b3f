from typing import List, Set
from uuid import UUID
from sqlalchemy.orm import Session
from sqlalchemy import select, union

from app.models.auth import User, Role, UserRole, RoleName
from app.models.property import (
    Building, Apartment, ApartmentOwner, ApartmentRenter, BuildingManager
)


class DirectoryRepository:
    """
    RBAC/부동산 서브시스템 조회 리포지토리 (읽기 전용)

    자격/가중치 계산용 조회 세 가지(역할, 건물 접근, 소유 면적)와
    인증/검증용 보조 조회(활성 사용자, 건물 존재 여부)만 제공한다.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_user_roles(self, user_id: UUID) -> Set[RoleName]:
        """사용자 역할 집합 조회 (알 수 없는 역할명은 무시)"""
        stmt = (
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.user_id == user_id)
        )
        known = {role.value: role for role in RoleName}
        return {
            known[name]
            for name in self.db.execute(stmt).scalars().all()
            if name in known
        }

    def get_user_building_access(self, user_id: UUID) -> Set[UUID]:
        """
        사용자가 접근 가능한 건물 ID 집합
        - 소유 세대 (삭제되지 않은 세대)
        - 활성 임차 세대
        - 관리 건물
        """
        owned = (
            select(Apartment.building_id)
            .join(ApartmentOwner, ApartmentOwner.apartment_id == Apartment.id)
            .where(
                ApartmentOwner.user_id == user_id,
                Apartment.is_deleted.is_(False),
            )
        )
        rented = (
            select(Apartment.building_id)
            .join(ApartmentRenter, ApartmentRenter.apartment_id == Apartment.id)
            .where(
                ApartmentRenter.user_id == user_id,
                ApartmentRenter.is_active.is_(True),
                Apartment.is_deleted.is_(False),
            )
        )
        managed = (
            select(BuildingManager.building_id)
            .where(BuildingManager.user_id == user_id)
        )
        result = self.db.execute(union(owned, rented, managed))
        return set(result.scalars().all())

    def get_owned_apartment_areas(
        self,
        user_id: UUID,
        building_id: UUID | None = None
    ) -> List[float | None]:
        """
        소유 세대 면적 목록 (면적 미상이면 None)
        - building_id가 주어지면 해당 건물 세대만
        """
        stmt = (
            select(Apartment.size_sq_m)
            .join(ApartmentOwner, ApartmentOwner.apartment_id == Apartment.id)
            .join(Building, Building.id == Apartment.building_id)
            .where(
                ApartmentOwner.user_id == user_id,
                Apartment.is_deleted.is_(False),
                Building.is_deleted.is_(False),
            )
        )
        if building_id is not None:
            stmt = stmt.where(Apartment.building_id == building_id)
        return list(self.db.execute(stmt).scalars().all())

    def building_exists(self, building_id: UUID) -> bool:
        stmt = select(Building.id).where(
            Building.id == building_id,
            Building.is_deleted.is_(False)
        )
        return self.db.execute(stmt).scalar_one_or_none() is not None

    def get_active_user(self, user_id: UUID) -> User | None:
        """활성 사용자 조회 (인증 의존성용)"""
        stmt = select(User).where(User.id == user_id, User.is_active.is_(True))
        return self.db.execute(stmt).scalar_one_or_none()
