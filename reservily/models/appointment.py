"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Integer, Text, Time, text
from sqlalchemy.orm import relationship

from reservily.database import Base
from reservily.models.enums import AppointmentStatus

ACTIVE_SLOT_CONDITION = text("status IN ('PENDING', 'APPROVED')")


class Appointment(Base):
    """Represents a patient's booking of one doctor slot."""
    __tablename__ = "appointments"
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "date",
            "time",
            unique=True,
            sqlite_where=ACTIVE_SLOT_CONDITION,
            postgresql_where=ACTIVE_SLOT_CONDITION,
        ),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctor_profiles.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    status = Column(
        Enum(AppointmentStatus, native_enum=False, length=16),
        default=AppointmentStatus.PENDING,
        nullable=False,
    )
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    doctor = relationship("DoctorProfile", back_populates="appointments")
    patient = relationship("User", foreign_keys=[patient_id])
