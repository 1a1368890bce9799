import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')

from autofix.database import Base  # noqa: E402
from autofix.models.appointment import Appointment  # noqa: E402
from autofix.models.blocked_period import BlockedPeriod  # noqa: E402
from autofix.models.service import Service  # noqa: E402
from autofix.models.shop_settings import ShopSettings  # noqa: E402
from autofix.models.user import Role, User  # noqa: E402
from autofix.services.booking_service import seed_reference_data  # noqa: E402

BOOKING_TABLES = [
    User.__table__,
    Service.__table__,
    ShopSettings.__table__,
    Appointment.__table__,
    BlockedPeriod.__table__,
]


@pytest.fixture
def booking_db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=BOOKING_TABLES)

    db = testing_session_local()
    try:
        seed_reference_data(db)
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(BOOKING_TABLES)))


@pytest.fixture
def client_user(booking_db) -> User:
    user = User(email='ana@example.com', name='Ana López', role=Role.CLIENT.value)
    booking_db.add(user)
    booking_db.commit()
    booking_db.refresh(user)
    return user


@pytest.fixture
def other_client(booking_db) -> User:
    user = User(email='luis@example.com', name='Luis Pérez', role=Role.CLIENT.value)
    booking_db.add(user)
    booking_db.commit()
    booking_db.refresh(user)
    return user


@pytest.fixture
def admin_user(booking_db) -> User:
    return booking_db.query(User).filter(User.role == Role.ADMIN.value).one()


@pytest.fixture
def services(booking_db) -> dict[str, Service]:
    return {service.name: service for service in booking_db.query(Service).all()}
