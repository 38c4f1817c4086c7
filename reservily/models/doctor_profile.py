"""Doctor profile model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from reservily.database import Base
from reservily.models.enums import SubscriptionStatus


class DoctorProfile(Base):
    """Practice details and subscription state of a doctor account."""
    __tablename__ = "doctor_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    specialty = Column(String, nullable=False)
    city = Column(String, nullable=False)
    clinic_address = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    experience = Column(Integer, nullable=False, default=0)
    bio = Column(Text)
    subscription_status = Column(
        Enum(SubscriptionStatus, native_enum=False, length=16),
        default=SubscriptionStatus.INACTIVE,
        nullable=False,
    )
    subscription_expires_at = Column(DateTime)
    payment_proof_url = Column(String)
    payment_reference = Column(String)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    user = relationship("User", back_populates="doctor_profile")
    availability = relationship(
        "Availability",
        back_populates="doctor",
        cascade="all, delete-orphan",
    )
    appointments = relationship("Appointment", back_populates="doctor")
    payment_submissions = relationship("PaymentSubmission", back_populates="doctor")
