"""Notification events for patients and doctors.

There is no mail transport yet: every event is written to the application log
under this module's logger so it can be shipped or replayed.
"""

import logging
from datetime import datetime

from reservily.models.appointment import Appointment
from reservily.models.doctor_profile import DoctorProfile

logger = logging.getLogger(__name__)


def send_appointment_confirmation(appointment: Appointment) -> None:
    logger.info(
        'Appointment %s requested by %s with doctor %s on %s at %s',
        appointment.id,
        appointment.patient.email,
        appointment.doctor.user.email,
        appointment.date.isoformat(),
        appointment.time.strftime('%H:%M'),
    )


def send_appointment_status_update(appointment: Appointment) -> None:
    logger.info(
        'Appointment %s for %s is now %s',
        appointment.id,
        appointment.patient.email,
        appointment.status.value,
    )


def send_subscription_activated(profile: DoctorProfile, expires_at: datetime) -> None:
    logger.info(
        'Subscription activated for %s until %s',
        profile.user.email,
        expires_at.date().isoformat(),
    )


def send_payment_rejected(profile: DoctorProfile) -> None:
    logger.info('Payment proof rejected for %s; resubmission requested', profile.user.email)
