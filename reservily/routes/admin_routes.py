import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session

from reservily.auth.dependencies import require_roles
from reservily.core import config
from reservily.database import get_db
from reservily.models.appointment import Appointment
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.enums import AppointmentStatus, Role, SubscriptionStatus
from reservily.models.payment_submission import PaymentSubmission
from reservily.models.user import User
from reservily.schemas import (
    AppointmentResponse,
    MessageResponse,
    Page,
    PaymentSubmissionResponse,
    UserDetailResponse,
    UserResponse,
    paginate,
    parse_appointment_status,
)
from reservily.services import notifications, subscription

logger = logging.getLogger(__name__)

require_admin = require_roles(Role.ADMIN)

router = APIRouter(tags=['admin'], dependencies=[Depends(require_admin)])


class VerifyPaymentRequest(BaseModel):
    duration_months: int = Field(default=1, ge=1, le=config.MAX_SUBSCRIPTION_MONTHS)


class VerifyPaymentResponse(BaseModel):
    message: str
    subscription_status: SubscriptionStatus
    subscription_expires_at: datetime


class UserCountsResponse(BaseModel):
    total: int
    doctors: int
    patients: int


class DoctorCountsResponse(BaseModel):
    active: int
    pending_verification: int


class AppointmentCountsResponse(BaseModel):
    total: int
    pending: int


class PaymentCountsResponse(BaseModel):
    pending_review: int


class StatsResponse(BaseModel):
    users: UserCountsResponse
    doctors: DoctorCountsResponse
    appointments: AppointmentCountsResponse
    payments: PaymentCountsResponse


def get_user_or_404(user_id: int, db: Session) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found.')
    return user


def get_submission_or_404(submission_id: int, db: Session) -> PaymentSubmission:
    submission = db.get(PaymentSubmission, submission_id)
    if submission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Payment submission not found.')
    if submission.is_verified:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Payment already verified.')
    return submission


@router.get('/stats', response_model=StatsResponse)
def get_stats(db: Session = Depends(get_db)):
    return StatsResponse(
        users=UserCountsResponse(
            total=db.query(User).count(),
            doctors=db.query(User).filter(User.role == Role.DOCTOR).count(),
            patients=db.query(User).filter(User.role == Role.PATIENT).count(),
        ),
        doctors=DoctorCountsResponse(
            active=db.query(DoctorProfile).filter(
                DoctorProfile.subscription_status == SubscriptionStatus.ACTIVE
            ).count(),
            pending_verification=db.query(DoctorProfile).filter(
                DoctorProfile.subscription_status == SubscriptionStatus.PENDING
            ).count(),
        ),
        appointments=AppointmentCountsResponse(
            total=db.query(Appointment).count(),
            pending=db.query(Appointment).filter(Appointment.status == AppointmentStatus.PENDING).count(),
        ),
        payments=PaymentCountsResponse(
            pending_review=db.query(PaymentSubmission).filter(PaymentSubmission.is_verified.is_(False)).count(),
        ),
    )


@router.get('/users', response_model=Page[UserDetailResponse])
def list_users(
    role: str | None = Query(default=None),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(User)

    if role and role.strip():
        try:
            query = query.filter(User.role == Role(role.strip().upper()))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid role.') from exc

    if search and search.strip():
        pattern = f'%{search.strip()}%'
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    query = query.order_by(User.created_at.desc(), User.id.desc())
    return paginate(query, page, limit, UserDetailResponse)


@router.get('/users/{user_id}', response_model=UserDetailResponse)
def get_user(user_id: int, db: Session = Depends(get_db)):
    return get_user_or_404(user_id, db)


@router.patch('/users/{user_id}/suspend', response_model=UserResponse)
def suspend_user(user_id: int, db: Session = Depends(get_db)):
    user = get_user_or_404(user_id, db)

    if user.role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Cannot suspend an admin account.')

    user.is_active = False
    db.commit()
    db.refresh(user)
    logger.info('User %s suspended', user.id)
    return user


@router.patch('/users/{user_id}/activate', response_model=UserResponse)
def activate_user(user_id: int, db: Session = Depends(get_db)):
    user = get_user_or_404(user_id, db)

    user.is_active = True
    db.commit()
    db.refresh(user)
    logger.info('User %s reactivated', user.id)
    return user


@router.get('/payment-submissions', response_model=Page[PaymentSubmissionResponse])
def list_payment_submissions(
    verified: bool | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(PaymentSubmission)
    if verified is not None:
        query = query.filter(PaymentSubmission.is_verified.is_(verified))

    query = query.order_by(PaymentSubmission.created_at.desc(), PaymentSubmission.id.desc())
    return paginate(query, page, limit, PaymentSubmissionResponse)


@router.post('/payment-submissions/{submission_id}/verify', response_model=VerifyPaymentResponse)
def verify_payment(
    submission_id: int,
    data: VerifyPaymentRequest | None = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    data = data or VerifyPaymentRequest()
    submission = get_submission_or_404(submission_id, db)
    profile = submission.doctor

    now = datetime.now()
    expires_at = subscription.calculate_expiry_date(profile, data.duration_months, now)

    submission.is_verified = True
    submission.verified_at = now
    submission.verified_by = current_user.id
    profile.subscription_status = SubscriptionStatus.ACTIVE
    profile.subscription_expires_at = expires_at

    # Submission and profile change commit together.
    db.commit()
    logger.info('Payment submission %s verified by admin %s', submission.id, current_user.id)
    notifications.send_subscription_activated(profile, expires_at)

    return VerifyPaymentResponse(
        message=(
            f'Subscription activated for {data.duration_months} month(s). '
            f'Expires: {expires_at.date().isoformat()}'
        ),
        subscription_status=profile.subscription_status,
        subscription_expires_at=expires_at,
    )


@router.post('/payment-submissions/{submission_id}/reject', response_model=MessageResponse)
def reject_payment(submission_id: int, db: Session = Depends(get_db)):
    submission = get_submission_or_404(submission_id, db)
    profile = submission.doctor

    # The profile mirrors the latest proof, which is this one while it awaits review.
    if (
        profile.payment_proof_url == submission.proof_image_url
        and profile.payment_reference == submission.reference_number
    ):
        profile.payment_proof_url = None
        profile.payment_reference = None
    if profile.subscription_status == SubscriptionStatus.PENDING:
        profile.subscription_status = SubscriptionStatus.INACTIVE

    db.delete(submission)

    db.commit()
    logger.info('Payment submission %s rejected', submission_id)
    notifications.send_payment_rejected(profile)

    return MessageResponse(message='Payment rejected. Doctor notified to resubmit.')


@router.get('/appointments', response_model=Page[AppointmentResponse])
def list_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    appointment_status = parse_appointment_status(status_filter)

    query = db.query(Appointment)
    if appointment_status is not None:
        query = query.filter(Appointment.status == appointment_status)

    query = query.order_by(Appointment.created_at.desc(), Appointment.id.desc())
    return paginate(query, page, limit, AppointmentResponse)
