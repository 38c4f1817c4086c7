"""Response models and helpers shared by more than one router."""

import math
import re
from datetime import date, datetime, time
from typing import Annotated, Generic, TypeVar

from fastapi import HTTPException, status
from pydantic import BaseModel, BeforeValidator, field_serializer, field_validator
from sqlalchemy.orm import Query

from reservily.models.enums import AppointmentStatus, DayOfWeek, Role, SubscriptionStatus

CLOCK_TIME_PATTERN = re.compile(r'^([0-1]\d|2[0-3]):([0-5]\d)$')

T = TypeVar('T')


def parse_clock_time(value):
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str) or not CLOCK_TIME_PATTERN.match(value.strip()):
        raise ValueError('must be in HH:MM format')
    hours, minutes = value.strip().split(':')
    return time(int(hours), int(minutes))


def format_clock_time(value: time) -> str:
    return value.strftime('%H:%M')


ClockTime = Annotated[time, BeforeValidator(parse_clock_time)]


def parse_day_of_week(value: str) -> DayOfWeek:
    try:
        return DayOfWeek(value.strip().upper())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid day of week.') from exc


def parse_appointment_status(value: str | None) -> AppointmentStatus | None:
    if value is None or not value.strip():
        return None
    try:
        return AppointmentStatus(value.strip().upper())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Invalid status. Use one of: {", ".join(item.value for item in AppointmentStatus)}.',
        ) from exc


class MessageResponse(BaseModel):
    message: str


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class Page(BaseModel, Generic[T]):
    data: list[T]
    pagination: Pagination


def paginate(query: Query, page: int, limit: int, schema: type[BaseModel]) -> Page:
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page[schema](
        data=[schema.model_validate(item) for item in items],
        pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    )


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    id: int
    day_of_week: DayOfWeek
    start_time: time
    end_time: time

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time')
    def serialize_clock_time(self, value: time) -> str:
        return format_clock_time(value)


class DoctorSummary(BaseModel):
    id: int
    specialty: str
    city: str
    clinic_address: str
    price: float
    user: UserSummary

    class Config:
        from_attributes = True


class DoctorResponse(BaseModel):
    id: int
    user_id: int
    specialty: str
    city: str
    clinic_address: str
    price: float
    experience: int
    bio: str | None = None
    subscription_status: SubscriptionStatus
    subscription_expires_at: datetime | None = None
    created_at: datetime | None = None
    user: UserSummary
    availability: list[AvailabilityResponse] = []

    class Config:
        from_attributes = True

    @field_validator('availability')
    @classmethod
    def sort_availability(cls, value: list[AvailabilityResponse]) -> list[AvailabilityResponse]:
        return sorted(value, key=lambda window: window.day_of_week.position)


class UserDetailResponse(UserResponse):
    doctor_profile: DoctorResponse | None = None


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: int
    patient_id: int
    date: date
    time: time
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime | None = None
    doctor: DoctorSummary | None = None
    patient: UserSummary | None = None

    class Config:
        from_attributes = True

    @field_serializer('time')
    def serialize_time(self, value: time) -> str:
        return format_clock_time(value)


class PaymentSubmissionResponse(BaseModel):
    id: int
    doctor_id: int
    amount: float
    proof_image_url: str
    reference_number: str
    notes: str | None = None
    is_verified: bool
    verified_at: datetime | None = None
    verified_by: int | None = None
    created_at: datetime | None = None
    doctor: DoctorSummary | None = None

    class Config:
        from_attributes = True
