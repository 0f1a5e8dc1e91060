"""
SQLAlchemy модели справочника ветеринаров и отзывов.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Базовый класс для всех моделей."""
    pass


REVIEW_STATUS_PENDING = "pending"
REVIEW_STATUS_APPROVED = "approved"
REVIEW_STATUS_REJECTED = "rejected"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


vet_specializations = Table(
    "vet_specializations",
    Base.metadata,
    Column("vet_id", ForeignKey("veterinarians.id", ondelete="CASCADE"), primary_key=True),
    Column("specialization_id", ForeignKey("specializations.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    """Пользователь Telegram."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        return f"<User {self.telegram_id} @{self.username}>"


class City(Base):
    """Город."""

    __tablename__ = "cities"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        return f"<City {self.name}>"


class Specialization(Base):
    """Специализация врача (терапевт, хирург, ...)."""

    __tablename__ = "specializations"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    vets: Mapped[list["Veterinarian"]] = relationship(
        secondary=vet_specializations, back_populates="specializations"
    )

    def __repr__(self) -> str:
        return f"<Specialization {self.name}>"


class Clinic(Base):
    """Ветеринарная клиника."""

    __tablename__ = "clinics"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), index=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    working_hours: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    district: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    metro_station: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city_id: Mapped[Optional[int]] = mapped_column(ForeignKey("cities.id"), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    city: Mapped[Optional["City"]] = relationship()

    def __repr__(self) -> str:
        return f"<Clinic {self.id} {self.name}>"


class Veterinarian(Base):
    """Ветеринарный врач."""

    __tablename__ = "veterinarians"

    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    experience_years: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city_id: Mapped[Optional[int]] = mapped_column(ForeignKey("cities.id"), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    city: Mapped[Optional["City"]] = relationship()
    specializations: Mapped[list["Specialization"]] = relationship(
        secondary=vet_specializations, back_populates="vets"
    )
    schedules: Mapped[list["Schedule"]] = relationship(
        back_populates="vet", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Veterinarian {self.id} {self.full_name}>"


class Schedule(Base):
    """Расписание приёма врача в клинике (один день недели)."""

    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    vet_id: Mapped[int] = mapped_column(ForeignKey("veterinarians.id", ondelete="CASCADE"), index=True)
    clinic_id: Mapped[int] = mapped_column(ForeignKey("clinics.id", ondelete="CASCADE"), index=True)
    day_of_week: Mapped[int] = mapped_column(Integer)  # 1 = Пн ... 7 = Вс
    start_time: Mapped[str] = mapped_column(String(5))  # "09:00"
    end_time: Mapped[str] = mapped_column(String(5))
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)

    vet: Mapped["Veterinarian"] = relationship(back_populates="schedules")
    clinic: Mapped["Clinic"] = relationship()

    def __repr__(self) -> str:
        return f"<Schedule vet={self.vet_id} clinic={self.clinic_id} day={self.day_of_week}>"


class Review(Base):
    """Отзыв пользователя о враче."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(primary_key=True)
    vet_id: Mapped[int] = mapped_column(ForeignKey("veterinarians.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), index=True)

    # Оценка от 1 до 5
    rating: Mapped[int] = mapped_column(Integer)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # pending / approved / rejected
    status: Mapped[str] = mapped_column(String(20), default=REVIEW_STATUS_PENDING, index=True)
    moderated_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)
    moderated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    vet: Mapped["Veterinarian"] = relationship()
    user: Mapped["User"] = relationship(foreign_keys=[user_id])

    def __repr__(self) -> str:
        return f"<Review {self.id} vet={self.vet_id} rating={self.rating} {self.status}>"


class UserRequest(Base):
    """Лог поисковых запросов пользователей."""

    __tablename__ = "user_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, index=True)  # Telegram ID
    specialization_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("specializations.id"), nullable=True
    )
    search_query: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def __repr__(self) -> str:
        return f"<UserRequest user={self.user_id} spec={self.specialization_id}>"
