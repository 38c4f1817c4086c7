"""Availability model definitions."""

from sqlalchemy import Column, Enum, ForeignKey, Integer, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from reservily.database import Base
from reservily.models.enums import DayOfWeek


class Availability(Base):
    """A doctor's bookable window on one weekday, end exclusive."""
    __tablename__ = "availability"
    __table_args__ = (
        UniqueConstraint("doctor_id", "day_of_week", name="uq_availability_doctor_day"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctor_profiles.id", ondelete="CASCADE"), nullable=False)
    day_of_week = Column(Enum(DayOfWeek, native_enum=False, length=16), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    doctor = relationship("DoctorProfile", back_populates="availability")
