from reservily.models import appointment, availability, doctor_profile, payment_submission, user
from reservily.models.appointment import Appointment
from reservily.models.availability import Availability
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.payment_submission import PaymentSubmission
from reservily.models.user import User

__all__ = [
    "Appointment",
    "Availability",
    "DoctorProfile",
    "PaymentSubmission",
    "User",
    "appointment",
    "availability",
    "doctor_profile",
    "payment_submission",
    "user",
]
