from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrlocker.core.entities.locker import LockerStatus
from qrlocker.infrastructure.config import settings
from qrlocker.infrastructure.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InstructorModel(Base):
    __tablename__ = settings.instructor_table

    instructor_id: Mapped[str] = mapped_column(String, primary_key=True)
    credential: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)

    locker = relationship("LockerModel", back_populates="instructor", uselist=False)


class LockerModel(Base):
    __tablename__ = settings.locker_table

    locker_number: Mapped[int] = mapped_column(Integer, primary_key=True)
    instructor_id: Mapped[str | None] = mapped_column(
        ForeignKey(f"{settings.instructor_table}.instructor_id"),
        nullable=True,
        index=True,
        unique=True,
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=LockerStatus.LOCKED.value)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    # arrival ticket of the last status write; later-arriving writes only
    applied_sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    instructor = relationship("InstructorModel", back_populates="locker")
