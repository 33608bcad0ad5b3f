"""
투표 엔진 테스트 공통 fixture

- SQLite 인메모리 DB (StaticPool로 모든 세션이 같은 연결 공유)
- RBAC/부동산 서브시스템 데이터는 Seeder로 직접 삽입
- 기준 시각은 고정값 (now fixture)
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-at-least-32-characters-long")
os.environ.setdefault("ENVIRONMENT", "test")

from app.db import Base, get_db  # noqa: E402
from app.models import (  # noqa: E402
    User, Role, UserRole, RoleName,
    Building, Apartment, ApartmentOwner, ApartmentRenter, BuildingManager,
    Proposal, ProposalStatusType, VotingMethodType,
)
from app.dependencies.aggregate_repositories import VotingAggregateRepositories  # noqa: E402
from app.services.voting import ProposalService, VoteService  # noqa: E402

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class Seeder:
    """외부 서브시스템 소유 데이터 및 제안 직접 삽입"""

    def __init__(self, db: Session):
        self.db = db
        self._roles = {}

    def role(self, name: RoleName) -> Role:
        if name not in self._roles:
            role = Role(name=name.value)
            self.db.add(role)
            self.db.flush()
            self._roles[name] = role
        return self._roles[name]

    def user(self, *roles: RoleName, name: str | None = None) -> User:
        user = User(name=name)
        self.db.add(user)
        self.db.flush()
        for role in roles:
            self.db.add(UserRole(user_id=user.id, role_id=self.role(role).id))
        self.db.commit()
        return user

    def building(self, address: str = "1 Main St") -> Building:
        building = Building(address=address)
        self.db.add(building)
        self.db.commit()
        return building

    def apartment(
        self,
        building: Building,
        size_sq_m: float | None = None,
        number: str = "101"
    ) -> Apartment:
        apartment = Apartment(building_id=building.id, number=number, size_sq_m=size_sq_m)
        self.db.add(apartment)
        self.db.commit()
        return apartment

    def own(self, user: User, apartment: Apartment) -> ApartmentOwner:
        owner = ApartmentOwner(apartment_id=apartment.id, user_id=user.id)
        self.db.add(owner)
        self.db.commit()
        return owner

    def rent(self, user: User, apartment: Apartment, is_active: bool = True) -> ApartmentRenter:
        renter = ApartmentRenter(apartment_id=apartment.id, user_id=user.id, is_active=is_active)
        self.db.add(renter)
        self.db.commit()
        return renter

    def manage(self, user: User, building: Building) -> BuildingManager:
        manager = BuildingManager(building_id=building.id, user_id=user.id)
        self.db.add(manager)
        self.db.commit()
        return manager

    def proposal(
        self,
        creator: User,
        voting_method: VotingMethodType = VotingMethodType.SIMPLE_MAJORITY,
        eligible_roles: Iterable[RoleName] = (RoleName.HOMEOWNER,),
        building: Building | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        title: str = "Repaint the lobby",
    ) -> Proposal:
        proposal = Proposal(
            title=title,
            description=f"{title} before spring",
            created_by=creator.id,
            building_id=building.id if building else None,
            start_time=start_time or FIXED_NOW - timedelta(hours=1),
            end_time=end_time or FIXED_NOW + timedelta(hours=1),
            voting_method=voting_method,
            eligible_roles=frozenset(eligible_roles),
            status=ProposalStatusType.SCHEDULED,
        )
        self.db.add(proposal)
        self.db.commit()
        return proposal


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def repos(db) -> VotingAggregateRepositories:
    return VotingAggregateRepositories(db)


@pytest.fixture
def proposal_service(db, repos) -> ProposalService:
    return ProposalService(db, repos)


@pytest.fixture
def vote_service(db, repos) -> VoteService:
    return VoteService(db, repos)


@pytest.fixture
def admin(seed) -> User:
    return seed.user(RoleName.ADMIN, name="admin")


class CurrentUser:
    """API 테스트에서 요청 사용자 전환"""

    def __init__(self):
        self.user: User | None = None

    def __call__(self) -> User:
        return self.user


@pytest.fixture
def current_user() -> CurrentUser:
    return CurrentUser()


@pytest.fixture
def app(db, current_user, now):
    from main import app as fastapi_app
    from app.dependencies.auth import get_current_user
    from app.dependencies.clock import get_now

    def override_get_db():
        yield db

    clock = {"now": now}
    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_current_user] = current_user
    fastapi_app.dependency_overrides[get_now] = lambda: clock["now"]
    fastapi_app.state.test_clock = clock
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)
