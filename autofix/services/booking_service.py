"""Booking operations against the database.

This module is the persistence side of the availability engine: it loads
operating hours, appointments and blocks for a date, hands them to
``autofix.scheduling.availability`` and writes the outcome back. Every
function takes the session explicitly.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autofix.core import config
from autofix.errors import FolioExhausted, InvalidRequest, InvalidTransition, NotFound, SlotConflict
from autofix.models.appointment import Appointment, AppointmentStatus, make_slot_key
from autofix.models.blocked_period import BlockedPeriod
from autofix.models.service import Service
from autofix.models.shop_settings import SHOP_SETTINGS_ID, ShopSettings
from autofix.models.user import Role, User
from autofix.scheduling.availability import (
    Interval,
    OperatingHours,
    Slot,
    block_start_options,
    compute_slots,
    ensure_bookable,
    occupying_intervals,
)
from autofix.scheduling.clock import format_hhmm, parse_hhmm
from autofix.scheduling.folio import build_verification_payload, generate_folio
from autofix.scheduling.locks import booking_locks

logger = logging.getLogger(__name__)

WHOLE_DAY_BLOCK = 'ALL'

DEFAULT_SERVICES = [
    ('Cambio de Aceite', 30, 500),
    ('Afinación Mayor', 120, 2500),
    ('Frenos', 60, 1200),
    ('Diagnóstico General', 30, 300),
]

ALLOWED_TRANSITIONS = {
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


@dataclass(frozen=True)
class BookingRequest:
    client_id: int
    service_id: int
    date: date
    time: str
    vehicle_make: str
    vehicle_model: str
    vehicle_plate: str | None = None


@dataclass(frozen=True)
class DailyStats:
    date: date
    appointments: int
    pending: int
    revenue: int


def seed_reference_data(db: Session) -> None:
    """Create the settings row, the default catalogue and the admin user if missing."""
    if db.get(ShopSettings, SHOP_SETTINGS_ID) is None:
        hours = default_operating_hours()
        db.add(
            ShopSettings(
                id=SHOP_SETTINGS_ID,
                open_minute=hours.open_minute,
                close_minute=hours.close_minute,
                slot_interval_minutes=hours.slot_interval_minutes,
            )
        )

    if db.query(Service.id).first() is None:
        for name, duration_minutes, price in DEFAULT_SERVICES:
            db.add(Service(name=name, duration_minutes=duration_minutes, price=price))

    admin_email = config.ADMIN_EMAIL.strip().lower()
    if admin_email and db.query(User).filter(User.email == admin_email).first() is None:
        db.add(User(email=admin_email, name=config.ADMIN_NAME, role=Role.ADMIN.value))

    db.commit()


def default_operating_hours() -> OperatingHours:
    return OperatingHours(
        open_minute=parse_hhmm(config.SHOP_OPEN_TIME),
        close_minute=parse_hhmm(config.SHOP_CLOSE_TIME, allow_end_of_day=True),
        slot_interval_minutes=config.SLOT_INTERVAL_MINUTES,
    )


def get_operating_hours(db: Session) -> OperatingHours:
    settings = db.get(ShopSettings, SHOP_SETTINGS_ID)
    if settings is None:
        return default_operating_hours()

    return OperatingHours(
        open_minute=settings.open_minute,
        close_minute=settings.close_minute,
        slot_interval_minutes=settings.slot_interval_minutes,
    )


def update_operating_hours(db: Session, open_time: str, close_time: str, slot_interval_minutes: int) -> OperatingHours:
    hours = OperatingHours(
        open_minute=parse_hhmm(open_time),
        close_minute=parse_hhmm(close_time, allow_end_of_day=True),
        slot_interval_minutes=slot_interval_minutes,
    )

    settings = db.get(ShopSettings, SHOP_SETTINGS_ID)
    if settings is None:
        settings = ShopSettings(id=SHOP_SETTINGS_ID)
        db.add(settings)

    settings.open_minute = hours.open_minute
    settings.close_minute = hours.close_minute
    settings.slot_interval_minutes = hours.slot_interval_minutes
    db.commit()

    logger.info(
        'Operating hours set to %s-%s every %d minutes',
        open_time,
        close_time,
        slot_interval_minutes,
    )
    return hours


def list_services(db: Session) -> list[Service]:
    return db.query(Service).order_by(Service.id.asc()).all()


def get_service(db: Session, service_id: int) -> Service:
    service = db.get(Service, service_id)
    if service is None:
        raise NotFound('Service not found.')
    return service


def load_occupying_intervals(db: Session, day: date, hours: OperatingHours) -> list[Interval]:
    appointments = db.query(Appointment).filter(
        Appointment.date == day,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    ).all()
    blocks = db.query(BlockedPeriod).filter(BlockedPeriod.date == day).all()

    return occupying_intervals(appointments, blocks, hours)


def get_slots_for_date(db: Session, day: date, service_duration_minutes: int) -> list[Slot]:
    hours = get_operating_hours(db)
    return compute_slots(service_duration_minutes, hours, load_occupying_intervals(db, day, hours))


def _validate_booking_request(request: BookingRequest, now: datetime) -> int:
    start_minute = parse_hhmm(request.time)

    if request.date < now.date():
        raise InvalidRequest('Appointments cannot be booked on a past date.')
    if request.date == now.date() and start_minute <= now.hour * 60 + now.minute:
        raise InvalidRequest('That time has already passed today.')
    if not request.vehicle_make.strip() or not request.vehicle_model.strip():
        raise InvalidRequest('Vehicle make and model are required.')

    return start_minute


def _folio_in_use(db: Session, folio: str) -> bool:
    return db.query(Appointment.id).filter(Appointment.id == folio).first() is not None


def _slot_key_in_use(db: Session, slot_key: str) -> bool:
    return db.query(Appointment.id).filter(Appointment.slot_key == slot_key).first() is not None


def commit_appointment(db: Session, request: BookingRequest, now: datetime | None = None) -> Appointment:
    """Book a slot if it is still free at commit time.

    Availability is recomputed from the database while holding the lock for
    the requested date; the unique slot_key catches writers outside this
    process.
    """
    now = now or datetime.now()
    start_minute = _validate_booking_request(request, now)

    if db.get(User, request.client_id) is None:
        raise NotFound('Client not found.')
    service = get_service(db, request.service_id)
    if service.duration_minutes <= 0:
        raise InvalidRequest('Service duration must be a positive number of minutes.')

    slot_key = make_slot_key(request.date, start_minute)

    with booking_locks.hold(request.date):
        for _ in range(config.FOLIO_MAX_ATTEMPTS):
            hours = get_operating_hours(db)
            try:
                ensure_bookable(
                    start_minute,
                    service.duration_minutes,
                    hours,
                    load_occupying_intervals(db, request.date, hours),
                )
            except SlotConflict:
                logger.warning('Slot %s on %s is no longer available', request.time, request.date)
                raise

            folio = generate_folio(
                now.year,
                lambda candidate: _folio_in_use(db, candidate),
                prefix=config.FOLIO_PREFIX,
                max_attempts=config.FOLIO_MAX_ATTEMPTS,
            )
            appointment = Appointment(
                id=folio,
                client_id=request.client_id,
                service_id=service.id,
                service_name=service.name,
                duration_minutes=service.duration_minutes,
                price=service.price,
                date=request.date,
                start_minute=start_minute,
                vehicle_make=request.vehicle_make.strip(),
                vehicle_model=request.vehicle_model.strip(),
                vehicle_plate=(request.vehicle_plate or '').strip() or None,
                status=AppointmentStatus.CONFIRMED.value,
                slot_key=slot_key,
                created_at=now,
            )

            db.add(appointment)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                if _slot_key_in_use(db, slot_key):
                    logger.warning('Slot %s on %s was taken by a concurrent booking', request.time, request.date)
                    raise SlotConflict('This time was already booked, please choose another one.')
                if not _folio_in_use(db, folio):
                    raise
                logger.warning('Folio %s collided, generating another one', folio)
                continue

            db.refresh(appointment)
            logger.info(
                'Booked %s for client %s on %s at %s (%s)',
                appointment.id,
                appointment.client_id,
                appointment.date,
                request.time,
                appointment.service_name,
            )
            return appointment

    raise FolioExhausted('Could not assign a folio to the appointment, please try again.')


def get_appointment(db: Session, folio: str) -> Appointment:
    appointment = db.get(Appointment, folio)
    if appointment is None:
        raise NotFound('Appointment not found.')
    return appointment


def update_status(db: Session, folio: str, new_status: str) -> Appointment:
    try:
        target = AppointmentStatus(new_status)
    except ValueError as exc:
        raise InvalidRequest(f'Unknown appointment status {new_status!r}.') from exc

    appointment = get_appointment(db, folio)
    current = AppointmentStatus(appointment.status)

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f'Cannot change an appointment from {current.value} to {target.value}.')

    changes = {Appointment.status: target.value}
    if target is AppointmentStatus.CANCELLED:
        changes[Appointment.slot_key] = None

    # Only applies if nobody changed the status since it was read.
    updated = db.query(Appointment).filter(
        Appointment.id == folio,
        Appointment.status == current.value,
    ).update(changes, synchronize_session=False)
    db.commit()
    db.refresh(appointment)

    if updated == 0:
        logger.warning('Appointment %s changed to %s before it could be set to %s', folio, appointment.status, target.value)
        raise InvalidTransition(
            f'Cannot change an appointment from {appointment.status} to {target.value}.'
        )

    logger.info('Appointment %s changed from %s to %s', folio, current.value, target.value)
    return appointment


def add_block(
    db: Session,
    day: date,
    start: str,
    note: str | None = None,
    today: date | None = None,
) -> BlockedPeriod:
    """Block one slot (``HH:MM``) or the whole day (``ALL``).

    Existing appointments are left alone; staff may block over them.
    """
    today = today or date.today()
    if day < today:
        raise InvalidRequest('Blocks cannot be added on a past date.')

    hours = get_operating_hours(db)
    start_minute: int | None = None
    if start.strip().upper() != WHOLE_DAY_BLOCK:
        start_minute = parse_hhmm(start)
        if start_minute not in block_start_options(hours):
            raise InvalidRequest(f'{format_hhmm(start_minute)} is not a slot start within opening hours.')

    block = BlockedPeriod(date=day, start_minute=start_minute, note=(note or '').strip() or None)
    db.add(block)
    db.commit()
    db.refresh(block)

    logger.info('Blocked %s on %s', format_block_start(block), day)
    return block


def format_block_start(block: BlockedPeriod) -> str:
    if block.start_minute is None:
        return WHOLE_DAY_BLOCK
    return format_hhmm(block.start_minute)


def remove_block(db: Session, block_id: int) -> None:
    block = db.get(BlockedPeriod, block_id)
    if block is None:
        raise NotFound('Blocked period not found.')

    blocked_date = block.date
    db.delete(block)
    db.commit()
    logger.info('Removed block %s on %s', block_id, blocked_date)


def list_blocks(db: Session, from_date: date | None = None) -> list[BlockedPeriod]:
    query = db.query(BlockedPeriod)
    if from_date is not None:
        query = query.filter(BlockedPeriod.date >= from_date)
    return query.order_by(BlockedPeriod.date.asc(), BlockedPeriod.start_minute.asc()).all()


def list_client_appointments(db: Session, client_id: int) -> list[Appointment]:
    return db.query(Appointment).filter(
        Appointment.client_id == client_id,
    ).order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()


def list_appointments(
    db: Session,
    on_date: date | None = None,
    status: str | None = None,
) -> list[Appointment]:
    query = db.query(Appointment)
    if on_date is not None:
        query = query.filter(Appointment.date == on_date)
    if status is not None:
        try:
            query = query.filter(Appointment.status == AppointmentStatus(status).value)
        except ValueError as exc:
            raise InvalidRequest(f'Unknown appointment status {status!r}.') from exc
    return query.order_by(Appointment.date.asc(), Appointment.start_minute.asc()).all()


def daily_stats(db: Session, day: date) -> DailyStats:
    active = db.query(
        func.count(Appointment.id),
        func.coalesce(func.sum(Appointment.price), 0),
    ).filter(
        Appointment.date == day,
        Appointment.status != AppointmentStatus.CANCELLED.value,
    ).one()
    pending = db.query(func.count(Appointment.id)).filter(
        Appointment.date == day,
        Appointment.status == AppointmentStatus.CONFIRMED.value,
    ).scalar()

    return DailyStats(date=day, appointments=active[0], pending=pending or 0, revenue=int(active[1]))


def get_verification_payload(db: Session, folio: str) -> str:
    appointment = get_appointment(db, folio)
    client = db.get(User, appointment.client_id)
    client_name = client.name if client is not None else ''

    return build_verification_payload(
        appointment.id,
        client_name,
        appointment.vehicle_make,
        appointment.vehicle_model,
        appointment.date,
        appointment.start_minute,
    )
