import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from reservily.auth.dependencies import require_active_subscription, require_roles
from reservily.database import get_db
from reservily.models.appointment import Appointment
from reservily.models.availability import Availability
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.enums import ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus, DayOfWeek, Role
from reservily.models.user import User
from reservily.routes.doctor_routes import bookable_doctor_filters
from reservily.schemas import AppointmentResponse, ClockTime, format_clock_time
from reservily.services import notifications

logger = logging.getLogger(__name__)

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 500


class BookAppointmentRequest(BaseModel):
    doctor_id: int = Field(gt=0)
    date: date
    time: ClockTime
    notes: str | None = Field(default=None, max_length=MAX_APPOINTMENT_NOTES_LENGTH)

    @field_validator('date')
    @classmethod
    def validate_date(cls, value: date) -> date:
        if value < date.today():
            raise ValueError('Appointments cannot be booked in the past.')
        return value

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        return normalized


def check_within_window(window: Availability | None, day: DayOfWeek, slot_time) -> None:
    if window is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Doctor is not available on {day.value}.',
        )

    if slot_time < window.start_time or slot_time >= window.end_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f'Doctor is available from {format_clock_time(window.start_time)} '
                f'to {format_clock_time(window.end_time)} on {day.value}.'
            ),
        )


def find_slot_conflict(db: Session, doctor_id: int, slot_date: date, slot_time) -> Appointment | None:
    return db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.date == slot_date,
        Appointment.time == slot_time,
        Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
    ).first()


def get_doctor_appointment(appointment_id: int, profile: DoctorProfile, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.doctor_id == profile.id,
    ).first()

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    return appointment


def decide_appointment(appointment: Appointment, decision: AppointmentStatus, db: Session) -> Appointment:
    if appointment.status != AppointmentStatus.PENDING:
        action = 'approve' if decision == AppointmentStatus.APPROVED else 'reject'
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Cannot {action} an appointment with status: {appointment.status.value}.',
        )

    appointment.status = decision
    db.commit()
    db.refresh(appointment)
    notifications.send_appointment_status_update(appointment)
    return appointment


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: User = Depends(require_roles(Role.PATIENT)),
    db: Session = Depends(get_db),
):
    now = datetime.now()

    doctor = db.query(DoctorProfile).join(DoctorProfile.user).filter(
        DoctorProfile.id == data.doctor_id,
        *bookable_doctor_filters(now),
    ).first()
    if doctor is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Doctor not found or not available for booking.',
        )

    day = DayOfWeek.from_date(data.date)
    window = db.query(Availability).filter(
        Availability.doctor_id == doctor.id,
        Availability.day_of_week == day,
    ).first()
    check_within_window(window, day, data.time)

    if datetime.combine(data.date, data.time) <= now:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Appointments must be scheduled in the future.',
        )

    if find_slot_conflict(db, doctor.id, data.date, data.time):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='This time slot is already booked.')

    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=current_user.id,
        date=data.date,
        time=data.time,
        notes=data.notes,
        status=AppointmentStatus.PENDING,
    )
    db.add(appointment)
    # A racing booking for the same slot fails here on uq_appointments_active_slot.
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s booked with doctor profile %s', appointment.id, doctor.id)
    notifications.send_appointment_confirmation(appointment)
    return appointment


@router.patch('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(require_roles(Role.PATIENT)),
    db: Session = Depends(get_db),
):
    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.patient_id == current_user.id,
    ).first()

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    if appointment.status in (AppointmentStatus.CANCELLED, AppointmentStatus.REJECTED):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Appointment is already {appointment.status.value.lower()}.',
        )

    appointment.status = AppointmentStatus.CANCELLED
    db.commit()
    db.refresh(appointment)
    notifications.send_appointment_status_update(appointment)
    return appointment


@router.patch('/{appointment_id}/approve', response_model=AppointmentResponse)
def approve_appointment(
    appointment_id: int,
    profile: DoctorProfile = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    appointment = get_doctor_appointment(appointment_id, profile, db)
    return decide_appointment(appointment, AppointmentStatus.APPROVED, db)


@router.patch('/{appointment_id}/reject', response_model=AppointmentResponse)
def reject_appointment(
    appointment_id: int,
    profile: DoctorProfile = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    appointment = get_doctor_appointment(appointment_id, profile, db)
    return decide_appointment(appointment, AppointmentStatus.REJECTED, db)


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(require_roles(Role.PATIENT, Role.DOCTOR, Role.ADMIN)),
    db: Session = Depends(get_db),
):
    query = db.query(Appointment).filter(Appointment.id == appointment_id)

    if current_user.role == Role.PATIENT:
        query = query.filter(Appointment.patient_id == current_user.id)
    elif current_user.role == Role.DOCTOR:
        profile = current_user.doctor_profile
        query = query.filter(Appointment.doctor_id == (profile.id if profile else None))

    appointment = query.first()
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')

    return appointment
