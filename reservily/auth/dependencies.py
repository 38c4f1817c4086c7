import logging

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from reservily.auth import jwt_handler
from reservily.database import get_db
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.enums import Role, SubscriptionStatus
from reservily.models.user import User
from reservily.services import subscription

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
        )

    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired. Please log in again.",
        ) from exc
    except jwt.InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token.") from exc

    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject.")

    user = db.get(User, int(subject))
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists.")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Your account has been suspended.")
    return user


def require_roles(*roles: Role):
    """Build a dependency that only lets users with one of ``roles`` through."""

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            logger.warning("User %s (%s) denied access", current_user.id, current_user.role.value)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {' or '.join(role.value for role in roles)}.",
            )
        return current_user

    return dependency


def get_doctor_profile(
    current_user: User = Depends(require_roles(Role.DOCTOR)),
    db: Session = Depends(get_db),
) -> DoctorProfile:
    profile = db.query(DoctorProfile).filter(DoctorProfile.user_id == current_user.id).first()
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor profile not found.")
    return profile


def require_active_subscription(
    profile: DoctorProfile = Depends(get_doctor_profile),
    db: Session = Depends(get_db),
) -> DoctorProfile:
    if profile.subscription_status != SubscriptionStatus.ACTIVE:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your subscription is not active. Please complete payment to activate your account.",
        )

    if subscription.expire_if_lapsed(profile, db):
        logger.info("Subscription for doctor profile %s expired", profile.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your subscription has expired. Please renew to continue.",
        )

    return profile
