import logging
from datetime import datetime
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from reservily.auth import jwt_handler
from reservily.auth.dependencies import get_current_user
from reservily.auth.passwords import hash_password, verify_password
from reservily.database import get_db
from reservily.models.doctor_profile import DoctorProfile
from reservily.models.enums import Role, SubscriptionStatus
from reservily.models.user import User
from reservily.schemas import MessageResponse, UserDetailResponse
from reservily.services import subscription

logger = logging.getLogger(__name__)

router = APIRouter(tags=['auth'])

MAX_BIO_LENGTH = 1000
DOCTOR_ONLY_FIELDS = ('specialty', 'city', 'clinic_address', 'price', 'experience', 'bio')
REQUIRED_DOCTOR_FIELDS = ('specialty', 'city', 'clinic_address', 'price', 'experience')


class RegisterRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    role: Literal['DOCTOR', 'PATIENT']
    specialty: str | None = None
    city: str | None = None
    clinic_address: str | None = None
    price: Decimal | None = Field(default=None, gt=0)
    experience: int | None = Field(default=None, ge=0)
    bio: str | None = Field(default=None, max_length=MAX_BIO_LENGTH)

    @field_validator('name', 'specialty', 'city', 'clinic_address', 'bio', mode='before')
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode='after')
    def check_role_fields(self) -> 'RegisterRequest':
        if self.role == Role.DOCTOR.value:
            missing = [name for name in REQUIRED_DOCTOR_FIELDS if getattr(self, name) in (None, '')]
            if missing:
                raise ValueError(f'{", ".join(missing)} required for doctor accounts')
        else:
            forbidden = [name for name in DOCTOR_ONLY_FIELDS if getattr(self, name) is not None]
            if forbidden:
                raise ValueError(f'{", ".join(forbidden)} not allowed for patient accounts')
        return self


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator('email', mode='before')
    @classmethod
    def normalize_email(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=100)


class BankInfoResponse(BaseModel):
    bank_name: str
    account_number: str
    account_holder: str
    routing_number: str
    amount: float
    currency: str
    instructions: str


class AuthUserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    subscription_status: SubscriptionStatus | None = None
    subscription_expires_at: datetime | None = None


class AuthResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = 'bearer'
    user: AuthUserResponse
    bank_info: BankInfoResponse | None = None


def build_auth_user(user: User) -> AuthUserResponse:
    profile = user.doctor_profile
    return AuthUserResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        subscription_status=profile.subscription_status if profile else None,
        subscription_expires_at=profile.subscription_expires_at if profile else None,
    )


@router.post('/register', response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == data.email).first()
    if existing_user:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email already registered.')

    role = Role(data.role)
    user = User(
        name=data.name,
        email=data.email,
        hashed_password=hash_password(data.password),
        role=role,
    )
    db.add(user)

    if role == Role.DOCTOR:
        db.flush()
        db.add(
            DoctorProfile(
                user_id=user.id,
                specialty=data.specialty,
                city=data.city,
                clinic_address=data.clinic_address,
                price=data.price,
                experience=data.experience,
                bio=data.bio or None,
                subscription_status=SubscriptionStatus.INACTIVE,
            )
        )

    # User and profile rows land in the same commit.
    db.commit()
    db.refresh(user)
    logger.info('Registered %s account %s', role.value, user.id)

    bank_info = None
    message = 'Patient account created successfully.'
    if role == Role.DOCTOR:
        message = 'Doctor account created. Please complete payment to activate your subscription.'
        bank_info = BankInfoResponse(
            **subscription.get_bank_account_info(),
            instructions=(
                'Please transfer the subscription fee and submit your payment proof '
                'via POST /api/doctors/payment-proof'
            ),
        )

    return AuthResponse(
        message=message,
        access_token=jwt_handler.create_access_token(subject=str(user.id), role=role.value),
        user=build_auth_user(user),
        bank_info=bank_info,
    )


@router.post('/login', response_model=AuthResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password.')

    if not verify_password(data.password, user.hashed_password):
        logger.warning('Failed login for user %s', user.id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password.')

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Your account has been suspended. Contact support.',
        )

    return AuthResponse(
        message='Login successful.',
        access_token=jwt_handler.create_access_token(subject=str(user.id), role=user.role.value),
        user=build_auth_user(user),
    )


@router.get('/me', response_model=UserDetailResponse)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.put('/change-password', response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Current password is incorrect.')

    current_user.hashed_password = hash_password(data.new_password)
    db.commit()

    return MessageResponse(message='Password updated successfully.')
