from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from reservily.auth.dependencies import require_roles
from reservily.database import get_db
from reservily.models.appointment import Appointment
from reservily.models.enums import Role
from reservily.models.user import User
from reservily.schemas import AppointmentResponse, Page, UserResponse, paginate, parse_appointment_status

router = APIRouter(tags=['patients'])

require_patient = require_roles(Role.PATIENT)


class UpdatePatientProfileRequest(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)

    @field_validator('name')
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if len(normalized) < 2:
            raise ValueError('Name must be at least 2 characters.')
        return normalized


@router.get('/profile', response_model=UserResponse)
def get_profile(current_user: User = Depends(require_patient)):
    return current_user


@router.put('/profile', response_model=UserResponse)
def update_profile(
    data: UpdatePatientProfileRequest,
    current_user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    if data.name is not None:
        current_user.name = data.name
        db.commit()
        db.refresh(current_user)

    return current_user


@router.get('/appointments', response_model=Page[AppointmentResponse])
def get_my_appointments(
    status_filter: str | None = Query(default=None, alias='status'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    current_user: User = Depends(require_patient),
    db: Session = Depends(get_db),
):
    appointment_status = parse_appointment_status(status_filter)

    query = db.query(Appointment).filter(Appointment.patient_id == current_user.id)
    if appointment_status is not None:
        query = query.filter(Appointment.status == appointment_status)

    query = query.order_by(Appointment.date.asc(), Appointment.time.asc())
    return paginate(query, page, limit, AppointmentResponse)
