import logging
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from reservily.auth.dependencies import get_doctor_profile, require_active_subscription
from reservily.database import get_db
from reservily.models.appointment import Appointment
from reservily.models.availability import Availability
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.enums import DayOfWeek, SubscriptionStatus
from reservily.models.payment_submission import PaymentSubmission
from reservily.models.user import User
from reservily.schemas import (
    AppointmentResponse,
    AvailabilityResponse,
    ClockTime,
    DoctorResponse,
    Page,
    PaymentSubmissionResponse,
    paginate,
    parse_appointment_status,
    parse_day_of_week,
)
from reservily.services import subscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=['doctors'])

MAX_BIO_LENGTH = 1000
MAX_PAYMENT_NOTES_LENGTH = 500


class UpdateDoctorProfileRequest(BaseModel):
    specialty: str | None = Field(default=None, min_length=1)
    city: str | None = Field(default=None, min_length=1)
    clinic_address: str | None = Field(default=None, min_length=1)
    price: Decimal | None = Field(default=None, gt=0)
    bio: str | None = Field(default=None, max_length=MAX_BIO_LENGTH)
    experience: int | None = Field(default=None, ge=0)

    @field_validator('specialty', 'city', 'clinic_address', mode='before')
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator('bio', mode='before')
    @classmethod
    def normalize_bio(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator('specialty', 'city', 'clinic_address', 'price', 'experience')
    @classmethod
    def reject_null(cls, value):
        # Only bio may be cleared.
        if value is None:
            raise ValueError('cannot be null')
        return value


class SetAvailabilityRequest(BaseModel):
    day_of_week: DayOfWeek
    start_time: ClockTime
    end_time: ClockTime

    @field_validator('day_of_week', mode='before')
    @classmethod
    def normalize_day(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class PaymentProofRequest(BaseModel):
    reference_number: str = Field(min_length=1)
    amount: Decimal = Field(gt=0)
    proof_image_url: AnyHttpUrl
    notes: str | None = Field(default=None, max_length=MAX_PAYMENT_NOTES_LENGTH)

    @field_validator('reference_number')
    @classmethod
    def strip_reference(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Reference number is required.')
        return normalized


class PaymentInstructionsResponse(BaseModel):
    bank_name: str
    account_number: str
    account_holder: str
    routing_number: str
    steps: list[str]


class SubscriptionInfoResponse(BaseModel):
    subscription_status: SubscriptionStatus
    subscription_expires_at: datetime | None = None
    monthly_price: float
    currency: str
    payment_instructions: PaymentInstructionsResponse


class PaymentProofResponse(BaseModel):
    message: str
    submission: PaymentSubmissionResponse


def bookable_doctor_filters(now: datetime) -> list:
    """Filters for doctors patients can see and book."""
    return [
        DoctorProfile.subscription_status == SubscriptionStatus.ACTIVE,
        or_(
            DoctorProfile.subscription_expires_at.is_(None),
            DoctorProfile.subscription_expires_at > now,
        ),
        User.is_active.is_(True),
    ]


@router.get('', response_model=Page[DoctorResponse])
def search_doctors(
    specialty: str | None = Query(default=None),
    city: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(DoctorProfile).join(DoctorProfile.user).filter(*bookable_doctor_filters(datetime.now()))

    if specialty and specialty.strip():
        query = query.filter(DoctorProfile.specialty.ilike(f'%{specialty.strip()}%'))
    if city and city.strip():
        query = query.filter(DoctorProfile.city.ilike(f'%{city.strip()}%'))

    query = query.order_by(DoctorProfile.created_at.desc(), DoctorProfile.id.desc())
    return paginate(query, page, limit, DoctorResponse)


@router.get('/me/subscription', response_model=SubscriptionInfoResponse)
def get_subscription_info(profile: DoctorProfile = Depends(get_doctor_profile)):
    bank_info = subscription.get_bank_account_info()
    return SubscriptionInfoResponse(
        subscription_status=profile.subscription_status,
        subscription_expires_at=profile.subscription_expires_at,
        monthly_price=bank_info['amount'],
        currency=bank_info['currency'],
        payment_instructions=PaymentInstructionsResponse(
            bank_name=bank_info['bank_name'],
            account_number=bank_info['account_number'],
            account_holder=bank_info['account_holder'],
            routing_number=bank_info['routing_number'],
            steps=subscription.PAYMENT_STEPS,
        ),
    )


@router.post('/payment-proof', response_model=PaymentProofResponse, status_code=status.HTTP_201_CREATED)
def submit_payment_proof(
    data: PaymentProofRequest,
    profile: DoctorProfile = Depends(get_doctor_profile),
    db: Session = Depends(get_db),
):
    awaiting_review = db.query(PaymentSubmission).filter(
        PaymentSubmission.doctor_id == profile.id,
        PaymentSubmission.is_verified.is_(False),
    ).first()
    if awaiting_review:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='A payment submission is already awaiting review.',
        )

    proof_image_url = str(data.proof_image_url)
    submission = PaymentSubmission(
        doctor_id=profile.id,
        amount=data.amount,
        proof_image_url=proof_image_url,
        reference_number=data.reference_number,
        notes=data.notes.strip() if data.notes and data.notes.strip() else None,
    )
    db.add(submission)

    profile.payment_proof_url = proof_image_url
    profile.payment_reference = data.reference_number
    # Renewing while still paid up keeps the doctor bookable.
    if not subscription.is_subscription_active(profile):
        profile.subscription_status = SubscriptionStatus.PENDING

    db.commit()
    db.refresh(submission)
    logger.info('Payment submission %s received for doctor profile %s', submission.id, profile.id)

    return PaymentProofResponse(
        message='Payment proof submitted. An admin will review and activate your subscription within 24 hours.',
        submission=PaymentSubmissionResponse.model_validate(submission),
    )


@router.put('/profile', response_model=DoctorResponse)
def update_profile(
    data: UpdateDoctorProfileRequest,
    profile: DoctorProfile = Depends(get_doctor_profile),
    db: Session = Depends(get_db),
):
    for field_name, value in data.model_dump(exclude_unset=True).items():
        setattr(profile, field_name, value)

    db.commit()
    db.refresh(profile)
    return profile


@router.get('/me/availability', response_model=list[AvailabilityResponse])
def get_my_availability(
    profile: DoctorProfile = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    windows = db.query(Availability).filter(Availability.doctor_id == profile.id).all()
    return sorted(windows, key=lambda window: window.day_of_week.position)


@router.post('/availability', response_model=AvailabilityResponse, status_code=status.HTTP_201_CREATED)
def set_availability(
    data: SetAvailabilityRequest,
    profile: DoctorProfile = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    if data.start_time >= data.end_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='start_time must be before end_time.',
        )

    window = db.query(Availability).filter(
        Availability.doctor_id == profile.id,
        Availability.day_of_week == data.day_of_week,
    ).first()

    if window is None:
        window = Availability(doctor_id=profile.id, day_of_week=data.day_of_week)
        db.add(window)

    window.start_time = data.start_time
    window.end_time = data.end_time

    db.commit()
    db.refresh(window)
    return window


@router.delete('/availability/{day_of_week}', status_code=status.HTTP_204_NO_CONTENT)
def delete_availability(
    day_of_week: str,
    profile: DoctorProfile = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    day = parse_day_of_week(day_of_week)

    db.query(Availability).filter(
        Availability.doctor_id == profile.id,
        Availability.day_of_week == day,
    ).delete(synchronize_session=False)
    db.commit()

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get('/me/appointments', response_model=Page[AppointmentResponse])
def get_my_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    profile: DoctorProfile = Depends(require_active_subscription),
    db: Session = Depends(get_db),
):
    appointment_status = parse_appointment_status(status_filter)

    query = db.query(Appointment).filter(Appointment.doctor_id == profile.id)
    if appointment_status is not None:
        query = query.filter(Appointment.status == appointment_status)

    query = query.order_by(Appointment.date.asc(), Appointment.time.asc())
    return paginate(query, page, limit, AppointmentResponse)


@router.get('/{doctor_id}', response_model=DoctorResponse)
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    doctor = db.query(DoctorProfile).join(DoctorProfile.user).filter(
        DoctorProfile.id == doctor_id,
        *bookable_doctor_filters(datetime.now()),
    ).first()

    if doctor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Doctor not found.')

    return doctor
