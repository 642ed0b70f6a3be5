import enum


class ReservationStatus(str, enum.Enum):
    active = "ACTIVE"
    fulfilled = "FULFILLED"
    cancelled = "CANCELLED"
    expired = "EXPIRED"


# Machine à états fermée : aucune transition ne revient vers ACTIVE.
RESERVATION_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.active: frozenset(
        {
            ReservationStatus.fulfilled,
            ReservationStatus.cancelled,
            ReservationStatus.expired,
        }
    ),
    ReservationStatus.fulfilled: frozenset(),
    ReservationStatus.cancelled: frozenset(),
    ReservationStatus.expired: frozenset(),
}


def can_transition(current: ReservationStatus, target: ReservationStatus) -> bool:
    return target in RESERVATION_TRANSITIONS[current]
