from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from autofix.auth.dependencies import get_current_user, require_admin, require_client
from autofix.database import get_db
from autofix.errors import BookingError
from autofix.models.appointment import Appointment, AppointmentStatus
from autofix.models.user import User
from autofix.routes.http_errors import booking_http_error, database_unavailable_error, ensure_database_ready
from autofix.scheduling.clock import format_hhmm
from autofix.services import booking_service

router = APIRouter(tags=['appointments'])

MAX_VEHICLE_FIELD_LENGTH = 60


class VehicleRequest(BaseModel):
    make: str
    model: str
    plate: str | None = None

    @field_validator('make', 'model')
    @classmethod
    def validate_required(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Vehicle make and model are required.')
        if len(normalized) > MAX_VEHICLE_FIELD_LENGTH:
            raise ValueError(f'Vehicle fields must be {MAX_VEHICLE_FIELD_LENGTH} characters or fewer.')
        return normalized

    @field_validator('plate')
    @classmethod
    def validate_plate(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().upper()
        return normalized or None


class CreateAppointmentRequest(BaseModel):
    service_id: int
    date: date
    time: str
    vehicle: VehicleRequest

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return value.strip()


class UpdateStatusRequest(BaseModel):
    status: AppointmentStatus


class VehicleResponse(BaseModel):
    make: str
    model: str
    plate: str | None = None


class AppointmentResponse(BaseModel):
    id: str
    client_id: int
    service_id: int
    service_name: str
    duration_minutes: int
    price: int
    date: date
    time: str
    vehicle: VehicleResponse
    status: AppointmentStatus
    created_at: datetime


class DailyStatsResponse(BaseModel):
    date: date
    appointments: int
    pending: int
    revenue: int


class VerificationResponse(BaseModel):
    folio: str
    payload: str


def to_appointment_response(appointment: Appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        client_id=appointment.client_id,
        service_id=appointment.service_id,
        service_name=appointment.service_name,
        duration_minutes=appointment.duration_minutes,
        price=appointment.price,
        date=appointment.date,
        time=format_hhmm(appointment.start_minute),
        vehicle=VehicleResponse(
            make=appointment.vehicle_make,
            model=appointment.vehicle_model,
            plate=appointment.vehicle_plate,
        ),
        status=AppointmentStatus(appointment.status),
        created_at=appointment.created_at,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    client: User = Depends(require_client),
):
    ensure_database_ready()

    request = booking_service.BookingRequest(
        client_id=client.id,
        service_id=data.service_id,
        date=data.date,
        time=data.time,
        vehicle_make=data.vehicle.make,
        vehicle_model=data.vehicle.model,
        vehicle_plate=data.vehicle.plate,
    )

    try:
        appointment = booking_service.commit_appointment(db, request)
        return to_appointment_response(appointment)
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable_error() from exc


@router.get('/mine', response_model=list[AppointmentResponse])
def list_my_appointments(
    db: Session = Depends(get_db),
    client: User = Depends(require_client),
):
    ensure_database_ready()

    try:
        return [
            to_appointment_response(appointment)
            for appointment in booking_service.list_client_appointments(db, client.id)
        ]
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    on_date: date | None = Query(default=None, alias='date'),
    appointment_status: AppointmentStatus | None = Query(default=None, alias='status'),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        appointments = booking_service.list_appointments(
            db,
            on_date=on_date,
            status=appointment_status.value if appointment_status else None,
        )
        return [to_appointment_response(appointment) for appointment in appointments]
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.get('/stats', response_model=DailyStatsResponse)
def get_daily_stats(
    on_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        stats = booking_service.daily_stats(db, on_date or date.today())
        return DailyStatsResponse(
            date=stats.date,
            appointments=stats.appointments,
            pending=stats.pending,
            revenue=stats.revenue,
        )
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc


@router.patch('/{folio}/status', response_model=AppointmentResponse)
def update_appointment_status(
    folio: str,
    data: UpdateStatusRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        appointment = booking_service.update_status(db, folio, data.status.value)
        return to_appointment_response(appointment)
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable_error() from exc


@router.get('/{folio}/verification', response_model=VerificationResponse)
def get_verification(
    folio: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = booking_service.get_appointment(db, folio)
        if not current_user.is_admin and appointment.client_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the client who booked this appointment can view its code.',
            )

        return VerificationResponse(
            folio=appointment.id,
            payload=booking_service.get_verification_payload(db, folio),
        )
    except BookingError as exc:
        raise booking_http_error(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc
