"""Manual bank-transfer subscription rules.

Doctors pay the monthly fee by bank transfer, upload proof of the transfer,
and an admin activates the subscription after checking it. This module holds
the pure rules for that flow; routes own the database writes.
"""

from datetime import datetime

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from reservily.core import config
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.enums import SubscriptionStatus

PAYMENT_STEPS = [
    '1. Transfer the monthly subscription fee to the bank account above',
    '2. Include your registered email as the transfer reference',
    '3. Submit your payment proof via POST /api/doctors/payment-proof',
    '4. An admin will verify and activate your account within 24 hours',
]


def get_bank_account_info() -> dict:
    return {
        'bank_name': config.BANK_NAME,
        'account_number': config.BANK_ACCOUNT_NUMBER,
        'account_holder': config.BANK_ACCOUNT_HOLDER,
        'routing_number': config.BANK_ROUTING_NUMBER,
        'amount': config.SUBSCRIPTION_MONTHLY_PRICE,
        'currency': config.SUBSCRIPTION_CURRENCY,
    }


def is_subscription_active(profile: DoctorProfile, now: datetime | None = None) -> bool:
    if profile.subscription_status != SubscriptionStatus.ACTIVE:
        return False
    if profile.subscription_expires_at is None:
        return True
    return profile.subscription_expires_at > (now or datetime.now())


def is_subscription_expired(profile: DoctorProfile, now: datetime | None = None) -> bool:
    return (
        profile.subscription_status == SubscriptionStatus.ACTIVE
        and profile.subscription_expires_at is not None
        and profile.subscription_expires_at <= (now or datetime.now())
    )


def calculate_expiry_date(profile: DoctorProfile, months: int, now: datetime | None = None) -> datetime:
    """Return the expiry after paying for ``months`` more calendar months.

    Paid time still left on an active subscription is kept, so an early
    renewal extends the current expiry instead of restarting from today.
    """
    now = now or datetime.now()
    start = now
    if is_subscription_active(profile, now) and profile.subscription_expires_at is not None:
        start = max(now, profile.subscription_expires_at)
    return start + relativedelta(months=months)


def expire_if_lapsed(profile: DoctorProfile, db: Session, now: datetime | None = None) -> bool:
    """Flip a lapsed ACTIVE subscription to INACTIVE. Returns True if it did."""
    if not is_subscription_expired(profile, now):
        return False

    profile.subscription_status = SubscriptionStatus.INACTIVE
    db.commit()
    return True
