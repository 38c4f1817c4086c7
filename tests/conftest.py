import os
from datetime import date, datetime, time, timedelta

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('BCRYPT_ROUNDS', '4')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from reservily.auth import jwt_handler  # noqa: E402
from reservily.auth.passwords import hash_password  # noqa: E402
from reservily.database import Base, get_db  # noqa: E402
from reservily.models.availability import Availability  # noqa: E402
from reservily.models.doctor_profile import DoctorProfile  # noqa: E402
from reservily.models.enums import DayOfWeek, Role, SubscriptionStatus  # noqa: E402
from reservily.models.user import User  # noqa: E402

DEFAULT_PASSWORD = 'password123'


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db):
    from reservily.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, role=Role.PATIENT, email='patient@mail.com', name='Pat Patient', is_active=True) -> User:
    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(DEFAULT_PASSWORD),
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_doctor(
    db,
    email='doctor@mail.com',
    name='Dana Doctor',
    specialty='Cardiology',
    city='Springfield',
    subscription_status=SubscriptionStatus.ACTIVE,
    expires_at='default',
    is_active=True,
) -> DoctorProfile:
    if expires_at == 'default':
        expires_at = datetime.now() + timedelta(days=30)

    user = make_user(db, role=Role.DOCTOR, email=email, name=name, is_active=is_active)
    profile = DoctorProfile(
        user_id=user.id,
        specialty=specialty,
        city=city,
        clinic_address='1 Main Street',
        price=50,
        experience=5,
        subscription_status=subscription_status,
        subscription_expires_at=expires_at,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def add_window(db, profile, day=DayOfWeek.MONDAY, start=time(9, 0), end=time(17, 0)) -> Availability:
    window = Availability(doctor_id=profile.id, day_of_week=day, start_time=start, end_time=end)
    db.add(window)
    db.commit()
    db.refresh(window)
    return window


def next_weekday(day: DayOfWeek) -> date:
    """The next date strictly after today that falls on ``day``."""
    today = date.today()
    days_ahead = (day.position - today.weekday()) % 7 or 7
    return today + timedelta(days=days_ahead)


def auth_header(user: User) -> dict:
    token = jwt_handler.create_access_token(subject=str(user.id), role=user.role.value)
    return {'Authorization': f'Bearer {token}'}
