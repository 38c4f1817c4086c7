from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from reservily.core import config

connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_doctor_profile_schema_checked = False
_appointment_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_doctor_profile_schema() -> None:
    global _doctor_profile_schema_checked

    if _doctor_profile_schema_checked:
        return

    with _schema_lock:
        if _doctor_profile_schema_checked:
            return

        inspector = inspect(engine)

        if 'doctor_profiles' not in inspector.get_table_names():
            _doctor_profile_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_doctor_profiles_status_city ON doctor_profiles(subscription_status, city)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_doctor_profiles_status_specialty ON doctor_profiles(subscription_status, specialty)')
            )

        _doctor_profile_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_doctor_date ON appointments(doctor_id, date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_date ON appointments(patient_id, date)')
            )

        _appointment_schema_checked = True
