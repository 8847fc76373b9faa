"""Status machines for vehicles, rentals and booking requests.

Every status change in the services goes through ``advance``, which only
accepts the (state, event) pairs listed in the machine's table.
"""
from enum import Enum
from typing import Dict, Tuple, Union

from ..errors import InvalidTransition
from ..models import BookingStatus, RentalStatus, VehicleStatus


class VehicleEvent(str, Enum):
    RENT = "rent"
    RETURN = "return"
    SERVICE = "service"
    RELEASE = "release"
    ARCHIVE = "archive"


class RentalEvent(str, Enum):
    COMPLETE = "complete"
    CANCEL = "cancel"


class BookingEvent(str, Enum):
    CONFIRM = "confirm"
    REJECT = "reject"
    COMPLETE = "complete"


class StateMachine:
    def __init__(self, name: str, states: type, transitions: Dict[Tuple[Enum, Enum], Enum]) -> None:
        self.name = name
        self.states = states
        self.transitions = transitions

    def advance(self, state: Union[str, Enum], event: Enum) -> Enum:
        current = self.states(state)
        try:
            return self.transitions[(current, event)]
        except KeyError:
            raise InvalidTransition(self.name, current.value, event.value) from None

    def can(self, state: Union[str, Enum], event: Enum) -> bool:
        return (self.states(state), event) in self.transitions

    def event_for(self, state: Union[str, Enum], target: Union[str, Enum]) -> Enum:
        """Find the event that moves ``state`` to ``target``."""
        current = self.states(state)
        wanted = self.states(target)
        for (source, event), result in self.transitions.items():
            if source == current and result == wanted:
                return event
        raise InvalidTransition(self.name, current.value, f"move to {wanted.value}")


VEHICLE_MACHINE = StateMachine(
    "vehicle",
    VehicleStatus,
    {
        (VehicleStatus.AVAILABLE, VehicleEvent.RENT): VehicleStatus.RENTED,
        (VehicleStatus.RENTED, VehicleEvent.RETURN): VehicleStatus.AVAILABLE,
        (VehicleStatus.AVAILABLE, VehicleEvent.SERVICE): VehicleStatus.MAINTENANCE,
        (VehicleStatus.MAINTENANCE, VehicleEvent.RELEASE): VehicleStatus.AVAILABLE,
        (VehicleStatus.AVAILABLE, VehicleEvent.ARCHIVE): VehicleStatus.ARCHIVED,
        (VehicleStatus.MAINTENANCE, VehicleEvent.ARCHIVE): VehicleStatus.ARCHIVED,
    },
)

RENTAL_MACHINE = StateMachine(
    "rental",
    RentalStatus,
    {
        (RentalStatus.ACTIVE, RentalEvent.COMPLETE): RentalStatus.COMPLETED,
        (RentalStatus.ACTIVE, RentalEvent.CANCEL): RentalStatus.CANCELLED,
    },
)

BOOKING_MACHINE = StateMachine(
    "booking request",
    BookingStatus,
    {
        (BookingStatus.PENDING, BookingEvent.CONFIRM): BookingStatus.CONFIRMED,
        (BookingStatus.PENDING, BookingEvent.REJECT): BookingStatus.REJECTED,
        (BookingStatus.CONFIRMED, BookingEvent.COMPLETE): BookingStatus.COMPLETED,
    },
)
