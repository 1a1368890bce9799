import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from autofix.core import config
from autofix.database import Base, SessionLocal, engine, ensure_booking_schema
from autofix.models import appointment, blocked_period, service, shop_settings, user  # noqa: F401
from autofix.routes import appointment_routes, auth_routes, availability_routes
from autofix.services.booking_service import seed_reference_data

logging.basicConfig(level=logging.DEBUG if config.APP_ENV.lower() == 'development' else logging.INFO)

app = FastAPI(title='AutoFix Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()

        db = SessionLocal()
        try:
            seed_reference_data(db)
        finally:
            db.close()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'AutoFix Booking API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
