import random
import re
from datetime import date
from typing import Callable

from autofix.errors import FolioExhausted
from autofix.scheduling.clock import format_hhmm

FOLIO_SUFFIX_SPACE = 10000
FOLIO_PATTERN = re.compile(r'^[A-Z]+-\d{4}-\d{4}$')


def format_folio(prefix: str, year: int, number: int) -> str:
    return f'{prefix}-{year:04d}-{number:04d}'


def generate_folio(
    year: int,
    is_taken: Callable[[str], bool],
    prefix: str = 'TM',
    max_attempts: int = 25,
    rng: random.Random | None = None,
) -> str:
    """Pick a random ``<prefix>-<year>-<NNNN>`` folio not already in use."""
    chooser = rng or random.SystemRandom()

    for _ in range(max_attempts):
        candidate = format_folio(prefix, year, chooser.randrange(FOLIO_SUFFIX_SPACE))
        if not is_taken(candidate):
            return candidate

    raise FolioExhausted(f'Could not assign a free folio for {year} after {max_attempts} attempts.')


def build_verification_payload(
    folio: str,
    client_name: str,
    vehicle_make: str,
    vehicle_model: str,
    appointment_date: date,
    start_minute: int,
) -> str:
    # Read by the shop's scanners; keep the layout byte-for-byte.
    return (
        f'FOLIO:{folio}|CLIENTE:{client_name}|AUTO:{vehicle_make} {vehicle_model}'
        f'|FECHA:{appointment_date.isoformat()} {format_hhmm(start_minute)}'
    )
