from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return not BOOKING_TRANSITIONS[self]


BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# Statuses that hold a (service, date, slot) reservation.
OCCUPYING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED})


def allowed_sources(target: BookingStatus) -> frozenset[BookingStatus]:
    """Statuses from which ``target`` is reachable in a single transition."""
    return frozenset(source for source, targets in BOOKING_TRANSITIONS.items() if target in targets)


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS[current]


def parse_status(value: str) -> BookingStatus:
    try:
        return BookingStatus(value.strip().lower())
    except ValueError as exc:
        raise ValueError(f"Invalid booking status: {value}") from exc

