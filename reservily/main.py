import logging
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from reservily.core import config
from reservily.core.errors import register_exception_handlers
from reservily.database import Base, engine, ensure_appointment_schema, ensure_doctor_profile_schema
from reservily.models import appointment, availability, doctor_profile, payment_submission, user
from reservily.routes import admin_routes, appointment_routes, auth_routes, doctor_routes, patient_routes

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)

logger = logging.getLogger(__name__)

app = FastAPI(title=config.SERVICE_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in config.CLIENT_URL.split(',')],
    allow_credentials=config.CLIENT_URL != '*',
    allow_methods=['GET', 'POST', 'PUT', 'PATCH', 'DELETE'],
    allow_headers=['Content-Type', 'Authorization'],
)

register_exception_handlers(app)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(
            bind=engine,
            tables=[
                user.User.__table__,
                doctor_profile.DoctorProfile.__table__,
                availability.Availability.__table__,
                appointment.Appointment.__table__,
                payment_submission.PaymentSubmission.__table__,
            ],
        )
        ensure_doctor_profile_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': f'{config.SERVICE_NAME} Running'}


@app.get('/health')
def health():
    return {
        'status': 'OK',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'service': config.SERVICE_NAME,
    }


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(doctor_routes.router, prefix='/api/doctors')
app.include_router(patient_routes.router, prefix='/api/patients')
app.include_router(appointment_routes.router, prefix='/api/appointments')
app.include_router(admin_routes.router, prefix='/api/admin')
