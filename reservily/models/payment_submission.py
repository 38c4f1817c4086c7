"""Payment submission model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from reservily.database import Base


class PaymentSubmission(Base):
    """Bank transfer proof sent by a doctor for admin review."""
    __tablename__ = "payment_submissions"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctor_profiles.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    proof_image_url = Column(String, nullable=False)
    reference_number = Column(String, nullable=False)
    notes = Column(Text)
    is_verified = Column(Boolean, default=False, nullable=False)
    verified_at = Column(DateTime)
    verified_by = Column(Integer, ForeignKey("users.id"))
    created_at = Column(DateTime, default=datetime.now)

    doctor = relationship("DoctorProfile", back_populates="payment_submissions")
