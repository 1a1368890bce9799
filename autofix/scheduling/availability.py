"""Slot availability for a single shop calendar day.

Everything here is a pure function of its inputs: operating hours, the
occupying intervals of one date and the requested service duration. All
times are minutes since midnight and all intervals are half-open
``[start, end)``, so a service ending at 10:00 does not collide with one
starting at 10:00.
"""

from dataclasses import dataclass
from typing import Iterable, Protocol

from autofix.errors import InvalidRequest, SlotConflict
from autofix.scheduling.clock import MINUTES_PER_DAY, format_hhmm

CANCELLED_STATUS = 'cancelled'


@dataclass(frozen=True)
class OperatingHours:
    open_minute: int
    close_minute: int
    slot_interval_minutes: int

    def __post_init__(self) -> None:
        if not 0 <= self.open_minute < self.close_minute <= MINUTES_PER_DAY:
            raise InvalidRequest('Opening time must be before closing time within the same day.')
        if self.slot_interval_minutes <= 0:
            raise InvalidRequest('Slot interval must be a positive number of minutes.')


@dataclass(frozen=True)
class Interval:
    start: int
    end: int

    def overlaps(self, other: 'Interval') -> bool:
        return intervals_overlap(self.start, self.end, other.start, other.end)


@dataclass(frozen=True)
class Slot:
    start_minute: int
    available: bool

    @property
    def time(self) -> str:
        return format_hhmm(self.start_minute)


class OccupyingAppointment(Protocol):
    start_minute: int
    duration_minutes: int
    status: str


class OccupyingBlock(Protocol):
    start_minute: int | None


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and a_end > b_start


def occupying_intervals(
    appointments: Iterable[OccupyingAppointment],
    blocks: Iterable[OccupyingBlock],
    hours: OperatingHours,
) -> list[Interval]:
    """Intervals that make time unbookable on one date.

    Cancelled appointments never occupy time. A whole-day block (no start
    minute) covers the operating hours; a timed block covers one slot of the
    configured interval.
    """
    intervals: list[Interval] = []

    for appointment in appointments:
        if appointment.status == CANCELLED_STATUS:
            continue
        intervals.append(
            Interval(appointment.start_minute, appointment.start_minute + appointment.duration_minutes)
        )

    for block in blocks:
        if block.start_minute is None:
            intervals.append(Interval(hours.open_minute, hours.close_minute))
        else:
            intervals.append(Interval(block.start_minute, block.start_minute + hours.slot_interval_minutes))

    return intervals


def iterate_candidate_starts(service_duration_minutes: int, hours: OperatingHours) -> list[int]:
    starts: list[int] = []
    current = hours.open_minute

    while current + service_duration_minutes <= hours.close_minute:
        starts.append(current)
        current += hours.slot_interval_minutes

    return starts


def compute_slots(
    service_duration_minutes: int,
    hours: OperatingHours,
    occupying: Iterable[Interval],
) -> list[Slot]:
    if service_duration_minutes <= 0:
        raise InvalidRequest('Service duration must be a positive number of minutes.')

    occupied = list(occupying)
    slots: list[Slot] = []

    for start in iterate_candidate_starts(service_duration_minutes, hours):
        candidate = Interval(start, start + service_duration_minutes)
        is_booked = any(candidate.overlaps(interval) for interval in occupied)
        slots.append(Slot(start_minute=start, available=not is_booked))

    return slots


def find_slot(slots: Iterable[Slot], start_minute: int) -> Slot | None:
    for slot in slots:
        if slot.start_minute == start_minute:
            return slot
    return None


def ensure_bookable(
    start_minute: int,
    service_duration_minutes: int,
    hours: OperatingHours,
    occupying: Iterable[Interval],
) -> None:
    """Re-check a requested start against the freshest occupancy.

    Raises ``InvalidRequest`` when the start is not one of the day's
    candidate starts and ``SlotConflict`` when it is taken.
    """
    slots = compute_slots(service_duration_minutes, hours, occupying)
    requested = find_slot(slots, start_minute)

    if requested is None:
        raise InvalidRequest(
            f'{format_hhmm(start_minute)} is not a bookable start time for a '
            f'{service_duration_minutes}-minute service.'
        )
    if not requested.available:
        raise SlotConflict('This time was already booked, please choose another one.')


def block_start_options(hours: OperatingHours) -> list[int]:
    return list(range(hours.open_minute, hours.close_minute, hours.slot_interval_minutes))
