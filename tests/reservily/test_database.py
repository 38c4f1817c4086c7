import pytest
from sqlalchemy import create_engine, inspect
from sqlalchemy.pool import StaticPool

from reservily import database


@pytest.fixture
def fresh_engine(monkeypatch):
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    monkeypatch.setattr(database, 'engine', engine)
    monkeypatch.setattr(database, '_doctor_profile_schema_checked', False)
    monkeypatch.setattr(database, '_appointment_schema_checked', False)
    yield engine
    engine.dispose()


def _index_names(engine, table_name: str) -> set[str]:
    return {index['name'] for index in inspect(engine).get_indexes(table_name)}


def test_schema_helpers_add_lookup_indexes(fresh_engine) -> None:
    database.Base.metadata.create_all(bind=fresh_engine)

    database.ensure_doctor_profile_schema()
    database.ensure_appointment_schema()

    assert {
        'idx_doctor_profiles_status_city',
        'idx_doctor_profiles_status_specialty',
    } <= _index_names(fresh_engine, 'doctor_profiles')
    assert {
        'idx_appointments_doctor_date',
        'idx_appointments_patient_date',
        'uq_appointments_active_slot',
    } <= _index_names(fresh_engine, 'appointments')
    assert database._doctor_profile_schema_checked is True
    assert database._appointment_schema_checked is True


def test_schema_helpers_skip_missing_tables(fresh_engine) -> None:
    database.ensure_doctor_profile_schema()
    database.ensure_appointment_schema()

    assert inspect(fresh_engine).get_table_names() == []
    assert database._appointment_schema_checked is True
