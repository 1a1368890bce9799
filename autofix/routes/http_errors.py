from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from autofix.database import ensure_booking_schema
from autofix.errors import (
    BookingError,
    FolioExhausted,
    InvalidRequest,
    InvalidTransition,
    NotFound,
    SlotConflict,
)

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

BOOKING_ERROR_STATUS = {
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    SlotConflict: status.HTTP_409_CONFLICT,
    InvalidTransition: status.HTTP_409_CONFLICT,
    NotFound: status.HTTP_404_NOT_FOUND,
    FolioExhausted: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def booking_http_error(exc: BookingError) -> HTTPException:
    status_code = status.HTTP_400_BAD_REQUEST
    for error_type, mapped_status in BOOKING_ERROR_STATUS.items():
        if isinstance(exc, error_type):
            status_code = mapped_status
            break
    return HTTPException(status_code=status_code, detail=exc.message)


def database_unavailable_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=DATABASE_UNAVAILABLE_DETAIL,
    )


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable_error() from exc
