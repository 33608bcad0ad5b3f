"""
부동산 서브시스템 테이블 매핑

건물/세대 CRUD는 별도 서브시스템 소관이며, 여기서는 투표 자격/가중치 계산에
필요한 조회용 컬럼만 매핑한다.
"""
import uuid
from datetime import datetime
from sqlalchemy import (
    String, Boolean, Float, DateTime, ForeignKey, Uuid,
    UniqueConstraint, Index, func
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base


class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    apartments = relationship("Apartment", back_populates="building")


class Apartment(Base):
    __tablename__ = "apartments"
    __table_args__ = (
        Index("idx_apartments_building_id", "building_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    building_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("buildings.id", ondelete="CASCADE"),
        nullable=False,
    )
    number: Mapped[str] = mapped_column(String(64), nullable=False)
    # 면적 미상이면 NULL (가중치 0으로 취급)
    size_sq_m: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="0"
    )

    building = relationship("Building", back_populates="apartments")


class ApartmentOwner(Base):
    __tablename__ = "apartment_owners"
    __table_args__ = (
        UniqueConstraint("apartment_id", "user_id", name="uq_apartment_owners_apartment_user"),
        Index("idx_apartment_owners_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    apartment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("apartments.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )


class ApartmentRenter(Base):
    __tablename__ = "apartment_renters"
    __table_args__ = (
        Index("idx_apartment_renters_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    apartment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("apartments.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="1"
    )


class BuildingManager(Base):
    __tablename__ = "building_managers"
    __table_args__ = (
        UniqueConstraint("building_id", "user_id", name="uq_building_managers_building_user"),
        Index("idx_building_managers_user_id", "user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    building_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("buildings.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
