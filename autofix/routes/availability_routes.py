from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from autofix.auth.dependencies import require_admin
from autofix.database import get_db
from autofix.errors import BookingError
from autofix.models.blocked_period import BlockedPeriod
from autofix.models.user import User
from autofix.routes.http_errors import booking_http_error, database_unavailable_error, ensure_database_ready
from autofix.scheduling.availability import OperatingHours, block_start_options
from autofix.scheduling.clock import format_hhmm
from autofix.services import booking_service

router = APIRouter(tags=['availability'])

MAX_BLOCK_NOTE_LENGTH = 200


class ServiceResponse(BaseModel):
    id: int
    name: str
    duration_minutes: int
    price: int

    class Config:
        from_attributes = True


class OperatingHoursResponse(BaseModel):
    open_time: str
    close_time: str
    slot_interval_minutes: int


class UpdateOperatingHoursRequest(BaseModel):
    open_time: str
    close_time: str
    slot_interval_minutes: int


class SlotResponse(BaseModel):
    time: str
    available: bool


class CreateBlockRequest(BaseModel):
    date: date
    time: str
    note: str | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        if normalized.upper() == booking_service.WHOLE_DAY_BLOCK:
            return booking_service.WHOLE_DAY_BLOCK
        return normalized

    @field_validator('note')
    @classmethod
    def validate_note(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_BLOCK_NOTE_LENGTH:
            raise ValueError(f'Notes must be {MAX_BLOCK_NOTE_LENGTH} characters or fewer.')

        return normalized


class BlockResponse(BaseModel):
    id: int
    date: date
    time: str
    whole_day: bool
    note: str | None = None


def to_hours_response(hours: OperatingHours) -> OperatingHoursResponse:
    return OperatingHoursResponse(
        open_time=format_hhmm(hours.open_minute),
        close_time=format_hhmm(hours.close_minute),
        slot_interval_minutes=hours.slot_interval_minutes,
    )


def to_block_response(block: BlockedPeriod) -> BlockResponse:
    return BlockResponse(
        id=block.id,
        date=block.date,
        time=booking_service.format_block_start(block),
        whole_day=block.is_whole_day,
        note=block.note,
    )


@router.get('/services', response_model=list[ServiceResponse])
def list_services(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return booking_service.list_services(db)
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.get('/hours', response_model=OperatingHoursResponse)
def get_operating_hours(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        return to_hours_response(booking_service.get_operating_hours(db))
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.put('/hours', response_model=OperatingHoursResponse)
def update_operating_hours(
    data: UpdateOperatingHoursRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        hours = booking_service.update_operating_hours(
            db,
            data.open_time,
            data.close_time,
            data.slot_interval_minutes,
        )
        return to_hours_response(hours)
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable_error() from exc


@router.get('/slots', response_model=list[SlotResponse])
def list_slots(
    slot_date: date = Query(..., alias='date'),
    service_id: int = Query(...),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        service = booking_service.get_service(db, service_id)
        slots = booking_service.get_slots_for_date(db, slot_date, service.duration_minutes)
        return [SlotResponse(time=slot.time, available=slot.available) for slot in slots]
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.get('/block-options', response_model=list[str])
def list_block_options(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        hours = booking_service.get_operating_hours(db)
        return [booking_service.WHOLE_DAY_BLOCK] + [format_hhmm(start) for start in block_start_options(hours)]
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.get('/blocks', response_model=list[BlockResponse])
def list_blocks(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        return [to_block_response(block) for block in booking_service.list_blocks(db, from_date=date.today())]
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.post('/blocks', response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
def create_block(
    data: CreateBlockRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        block = booking_service.add_block(db, data.date, data.time, data.note)
        return to_block_response(block)
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable_error() from exc


@router.delete('/blocks/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_block(
    block_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        booking_service.remove_block(db, block_id)
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable_error() from exc
