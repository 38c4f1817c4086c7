import logging
from datetime import date, time, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from conftest import add_window, auth_header, make_doctor, make_user, next_weekday
from reservily.models.appointment import Appointment
from reservily.models.enums import AppointmentStatus, DayOfWeek, Role, SubscriptionStatus
from reservily.routes import appointment_routes
from reservily.routes.appointment_routes import (
    BookAppointmentRequest,
    approve_appointment,
    book_appointment,
    cancel_appointment,
    get_appointment,
    reject_appointment,
)


@pytest.fixture
def booking_setup(db):
    profile = make_doctor(db)
    add_window(db, profile, day=DayOfWeek.MONDAY, start=time(9, 0), end=time(17, 0))
    patient = make_user(db)
    return profile, patient


def _request(profile, slot: str = '10:00', day: date | None = None, notes: str | None = None) -> BookAppointmentRequest:
    return BookAppointmentRequest(
        doctor_id=profile.id,
        date=day or next_weekday(DayOfWeek.MONDAY),
        time=slot,
        notes=notes,
    )


def _book(db, profile, patient, slot: str = '10:00') -> Appointment:
    return book_appointment(_request(profile, slot), current_user=patient, db=db)


def test_book_appointment_creates_pending_appointment(db, booking_setup, caplog) -> None:
    profile, patient = booking_setup

    with caplog.at_level(logging.INFO, logger='reservily.services.notifications'):
        appointment = book_appointment(_request(profile, notes='  Chest pain  '), current_user=patient, db=db)

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.time == time(10, 0)
    assert appointment.patient_id == patient.id
    assert appointment.notes == 'Chest pain'
    assert 'patient@mail.com' in caplog.text


def test_book_appointment_rejects_unbookable_doctor(db) -> None:
    profile = make_doctor(db, subscription_status=SubscriptionStatus.PENDING, expires_at=None)
    add_window(db, profile)
    patient = make_user(db)

    with pytest.raises(HTTPException) as exception_info:
        _book(db, profile, patient)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Doctor not found or not available for booking.'


def test_book_appointment_rejects_day_without_window(db, booking_setup) -> None:
    profile, patient = booking_setup

    with pytest.raises(HTTPException) as exception_info:
        book_appointment(
            _request(profile, day=next_weekday(DayOfWeek.TUESDAY)),
            current_user=patient,
            db=db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Doctor is not available on TUESDAY.'


@pytest.mark.parametrize('slot', ['08:59', '17:00', '18:30'])
def test_book_appointment_rejects_time_outside_window(db, booking_setup, slot: str) -> None:
    profile, patient = booking_setup

    with pytest.raises(HTTPException) as exception_info:
        _book(db, profile, patient, slot=slot)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Doctor is available from 09:00 to 17:00 on MONDAY.'


def test_book_appointment_accepts_window_start(db, booking_setup) -> None:
    profile, patient = booking_setup

    assert _book(db, profile, patient, slot='09:00').time == time(9, 0)


def test_book_appointment_rejects_taken_slot(db, booking_setup) -> None:
    profile, patient = booking_setup
    _book(db, profile, patient)
    other_patient = make_user(db, email='other@mail.com')

    with pytest.raises(HTTPException) as exception_info:
        _book(db, profile, other_patient)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This time slot is already booked.'


def test_cancelled_appointment_frees_its_slot(db, booking_setup) -> None:
    profile, patient = booking_setup
    first = _book(db, profile, patient)
    cancel_appointment(appointment_id=first.id, current_user=patient, db=db)

    second = _book(db, profile, patient)

    assert second.id != first.id
    assert second.status == AppointmentStatus.PENDING


def test_active_slot_index_blocks_duplicate_insert(db, booking_setup) -> None:
    profile, patient = booking_setup
    slot_date = next_weekday(DayOfWeek.MONDAY)

    for _ in range(2):
        db.add(Appointment(
            doctor_id=profile.id,
            patient_id=patient.id,
            date=slot_date,
            time=time(11, 0),
            status=AppointmentStatus.PENDING,
        ))

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_book_request_rejects_past_date_and_bad_time() -> None:
    with pytest.raises(ValidationError):
        BookAppointmentRequest(doctor_id=1, date=date.today() - timedelta(days=1), time='10:00')

    with pytest.raises(ValidationError):
        BookAppointmentRequest(doctor_id=1, date=date.today() + timedelta(days=1), time='25:00')


def test_cancel_appointment_only_finds_own_appointments(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)
    stranger = make_user(db, email='stranger@mail.com')

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=appointment.id, current_user=stranger, db=db)

    assert exception_info.value.status_code == 404


def test_cancel_appointment_rejects_repeat_cancel(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)
    cancel_appointment(appointment_id=appointment.id, current_user=patient, db=db)

    with pytest.raises(HTTPException) as exception_info:
        cancel_appointment(appointment_id=appointment.id, current_user=patient, db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Appointment is already cancelled.'


def test_patient_can_cancel_approved_appointment(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)
    approve_appointment(appointment_id=appointment.id, profile=profile, db=db)

    cancelled = cancel_appointment(appointment_id=appointment.id, current_user=patient, db=db)

    assert cancelled.status == AppointmentStatus.CANCELLED


def test_doctor_decisions_only_apply_to_pending(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)

    assert approve_appointment(appointment_id=appointment.id, profile=profile, db=db).status == AppointmentStatus.APPROVED

    with pytest.raises(HTTPException) as exception_info:
        reject_appointment(appointment_id=appointment.id, profile=profile, db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Cannot reject an appointment with status: APPROVED.'


def test_doctor_cannot_decide_other_doctors_appointment(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)
    other_doctor = make_doctor(db, email='other-doctor@mail.com')

    with pytest.raises(HTTPException) as exception_info:
        approve_appointment(appointment_id=appointment.id, profile=other_doctor, db=db)

    assert exception_info.value.status_code == 404


def test_rejected_appointment_frees_its_slot(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)
    reject_appointment(appointment_id=appointment.id, profile=profile, db=db)

    assert _book(db, profile, patient).status == AppointmentStatus.PENDING


def test_get_appointment_is_scoped_by_role(db, booking_setup) -> None:
    profile, patient = booking_setup
    appointment = _book(db, profile, patient)
    stranger = make_user(db, email='stranger@mail.com')
    other_doctor = make_doctor(db, email='other-doctor@mail.com')
    admin = make_user(db, role=Role.ADMIN, email='admin@mail.com')

    assert get_appointment(appointment_id=appointment.id, current_user=patient, db=db).id == appointment.id
    assert get_appointment(appointment_id=appointment.id, current_user=profile.user, db=db).id == appointment.id
    assert get_appointment(appointment_id=appointment.id, current_user=admin, db=db).id == appointment.id

    for outsider in (stranger, other_doctor.user):
        with pytest.raises(HTTPException) as exception_info:
            get_appointment(appointment_id=appointment.id, current_user=outsider, db=db)
        assert exception_info.value.status_code == 404


def test_booking_endpoint_rejects_doctors(client, db, booking_setup) -> None:
    profile, _ = booking_setup

    response = client.post(
        '/api/appointments',
        json={'doctor_id': profile.id, 'date': next_weekday(DayOfWeek.MONDAY).isoformat(), 'time': '10:00'},
        headers=auth_header(profile.user),
    )

    assert response.status_code == 403
    assert response.json() == {'detail': 'Access denied. Required role: PATIENT.'}


def test_booking_endpoint_returns_clock_time(client, db, booking_setup) -> None:
    profile, patient = booking_setup

    response = client.post(
        '/api/appointments',
        json={'doctor_id': profile.id, 'date': next_weekday(DayOfWeek.MONDAY).isoformat(), 'time': '14:30'},
        headers=auth_header(patient),
    )

    assert response.status_code == 201
    body = response.json()
    assert body['time'] == '14:30'
    assert body['status'] == 'PENDING'
    assert body['doctor']['user']['name'] == 'Dana Doctor'


def test_booking_endpoint_rejects_time_already_past_today(client, db) -> None:
    profile = make_doctor(db)
    add_window(db, profile, day=DayOfWeek.from_date(date.today()), start=time(0, 0), end=time(23, 59))
    patient = make_user(db)

    response = client.post(
        '/api/appointments',
        json={'doctor_id': profile.id, 'date': date.today().isoformat(), 'time': '00:00'},
        headers=auth_header(patient),
    )

    assert response.status_code == 400
    assert response.json() == {'detail': 'Appointments must be scheduled in the future.'}


def test_booking_endpoint_reports_slot_race_as_conflict(client, db, booking_setup, monkeypatch) -> None:
    profile, patient = booking_setup
    slot_date = next_weekday(DayOfWeek.MONDAY)
    db.add(Appointment(
        doctor_id=profile.id,
        patient_id=patient.id,
        date=slot_date,
        time=time(10, 0),
        status=AppointmentStatus.APPROVED,
    ))
    db.commit()
    # The competing request read the slot as free before this row was committed.
    monkeypatch.setattr(appointment_routes, 'find_slot_conflict', lambda *args: None)
    other_patient = make_user(db, email='other@mail.com')

    response = client.post(
        '/api/appointments',
        json={'doctor_id': profile.id, 'date': slot_date.isoformat(), 'time': '10:00'},
        headers=auth_header(other_patient),
    )

    assert response.status_code == 409
    assert response.json() == {'detail': 'A record with these details already exists.'}
