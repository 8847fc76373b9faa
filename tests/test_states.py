import pytest

from fleetdesk.errors import InvalidStateError, InvalidTransition
from fleetdesk.models import BookingStatus, RentalStatus, VehicleStatus
from fleetdesk.services.states import (
    BOOKING_MACHINE,
    RENTAL_MACHINE,
    VEHICLE_MACHINE,
    BookingEvent,
    RentalEvent,
    VehicleEvent,
)


def test_booking_lifecycle():
    assert BOOKING_MACHINE.advance("pending", BookingEvent.CONFIRM) == BookingStatus.CONFIRMED
    assert BOOKING_MACHINE.advance("pending", BookingEvent.REJECT) == BookingStatus.REJECTED
    assert BOOKING_MACHINE.advance("confirmed", BookingEvent.COMPLETE) == BookingStatus.COMPLETED


@pytest.mark.parametrize(
    "state, event",
    [
        ("confirmed", BookingEvent.REJECT),
        ("confirmed", BookingEvent.CONFIRM),
        ("rejected", BookingEvent.CONFIRM),
        ("pending", BookingEvent.COMPLETE),
        ("completed", BookingEvent.COMPLETE),
    ],
)
def test_booking_rejects_undefined_pairs(state, event):
    with pytest.raises(InvalidTransition) as info:
        BOOKING_MACHINE.advance(state, event)
    assert info.value.state == state
    assert info.value.event == event.value


def test_invalid_transition_is_an_invalid_state_error():
    with pytest.raises(InvalidStateError):
        RENTAL_MACHINE.advance(RentalStatus.COMPLETED, RentalEvent.COMPLETE)


def test_rental_terminal_states():
    assert RENTAL_MACHINE.advance("active", RentalEvent.CANCEL) == RentalStatus.CANCELLED
    assert not RENTAL_MACHINE.can("cancelled", RentalEvent.COMPLETE)
    assert not RENTAL_MACHINE.can("completed", RentalEvent.CANCEL)


def test_vehicle_rent_only_from_available():
    assert VEHICLE_MACHINE.advance("available", VehicleEvent.RENT) == VehicleStatus.RENTED
    for status in ("rented", "maintenance", "archived"):
        assert not VEHICLE_MACHINE.can(status, VehicleEvent.RENT)


def test_vehicle_archive_from_idle_states_only():
    for status in ("available", "maintenance"):
        assert VEHICLE_MACHINE.advance(status, VehicleEvent.ARCHIVE) == VehicleStatus.ARCHIVED
    assert not VEHICLE_MACHINE.can("rented", VehicleEvent.ARCHIVE)


def test_event_for_finds_the_connecting_event():
    assert BOOKING_MACHINE.event_for("confirmed", "completed") == BookingEvent.COMPLETE
    assert VEHICLE_MACHINE.event_for("available", "maintenance") == VehicleEvent.SERVICE
    with pytest.raises(InvalidTransition):
        VEHICLE_MACHINE.event_for("archived", "available")


def test_unknown_state_value_raises_value_error():
    with pytest.raises(ValueError):
        BOOKING_MACHINE.advance("lost", BookingEvent.CONFIRM)
