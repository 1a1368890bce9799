import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from autofix.core import config


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./autofix.db")

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)
        table_names = set(inspector.get_table_names())

        with engine.begin() as connection:
            if 'appointments' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_date_start ON appointments(date, start_minute)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, date)')
                )
            if 'blocked_periods' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_blocked_periods_date ON blocked_periods(date)')
                )

        _booking_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
