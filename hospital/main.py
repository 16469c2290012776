import logging
import time
from datetime import timedelta

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from hospital.core import config
from hospital.database import Base, SessionLocal, engine, ensure_appointment_schema
from hospital.models import appointment, audit_log, doctor, patient, user  # noqa: F401
from hospital.routes import (
    appointment_routes,
    audit_routes,
    auth_routes,
    doctor_routes,
    report_routes,
    user_routes,
)
from hospital.services.auth import AuthService
from hospital.services.scheduling import DoctorLocks
from hospital.services.sessions import SessionStore

logging.basicConfig(
    level='DEBUG' if config.DEBUG else config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Hospital Appointments API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.middleware('http')
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    logger.info('Incoming request %s %s', request.method, request.url.path)
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            'Request %s %s completed with %s in %.0fms',
            request.method,
            request.url.path,
            status_code,
            elapsed_ms,
        )


def ensure_admin_user(sessions: SessionStore) -> None:
    if not (config.ADMIN_EMAIL and config.ADMIN_PASSWORD):
        return

    db = SessionLocal()
    try:
        AuthService(db, sessions).ensure_admin(config.ADMIN_EMAIL, config.ADMIN_PASSWORD)
    finally:
        db.close()


@app.on_event('startup')
def initialize_application() -> None:
    app.state.session_store = SessionStore(default_ttl=timedelta(hours=config.SESSION_TTL_HOURS))
    app.state.doctor_locks = DoctorLocks() if config.BOOKING_SERIALIZATION == 'doctor_lock' else None
    logger.info('Booking serialization mode: %s', config.BOOKING_SERIALIZATION)

    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_admin_user(app.state.session_store)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('shutdown')
def discard_sessions() -> None:
    store = getattr(app.state, 'session_store', None)
    if store is not None:
        store.clear()


@app.get('/')
def root():
    return {'status': 'Hospital Appointments API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(doctor_routes.router, prefix='/doctors')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(audit_routes.router, prefix='/audit')
app.include_router(user_routes.router, prefix='/users')
app.include_router(report_routes.router, prefix='/reports')
