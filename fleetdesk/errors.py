"""Domain errors raised by the services and mapped to HTTP responses in main."""


class FleetError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(FleetError):
    status_code = 400


class NotFoundError(FleetError):
    status_code = 404


class InvalidStateError(FleetError):
    status_code = 400


class InvalidTransition(InvalidStateError):
    def __init__(self, machine: str, state: str, event: str) -> None:
        super().__init__(f"Cannot {event} a {machine} that is {state}")
        self.machine = machine
        self.state = state
        self.event = event


class ConflictError(FleetError):
    status_code = 409
