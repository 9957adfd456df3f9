"""Typed errors raised by the reservation engine.

Every guard failure in the core is one of these. They are grouped into four
categories so that callers can react per category (the HTTP layer maps them to
status codes) without knowing every concrete class.
"""


class ReservationError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# Categories

class ValidationError(ReservationError):
    """Caller input is malformed; rejected before any mutation."""


class ConflictError(ReservationError):
    """The request collides with existing state; retry with other parameters."""


class NotFoundError(ReservationError):
    pass


class StateError(ReservationError):
    """The operation is not allowed in the reservation's current state."""


# Validation

class InvalidWindow(ValidationError):
    pass


class OutsideOpeningHours(ValidationError):
    pass


class InvalidAmount(ValidationError):
    pass


# Conflict

class TimeConflict(ConflictError):
    pass


class SeatUnavailable(ConflictError):
    pass


# Not found

class SeatNotFound(NotFoundError):
    def __init__(self, seat_id):
        self.seat_id = seat_id
        super().__init__(f"seat {seat_id} not found")


class UserNotFound(NotFoundError):
    def __init__(self, user_id):
        self.user_id = user_id
        super().__init__(f"user {user_id} not found or inactive")


class ReservationNotFound(NotFoundError):
    def __init__(self, reservation_ref):
        self.reservation_ref = reservation_ref
        super().__init__(f"reservation {reservation_ref} not found")


# State

class AlreadyTerminal(StateError):
    pass


class AlreadyPaid(StateError):
    pass


class NotPaid(StateError):
    pass


class AlreadyCheckedIn(StateError):
    pass


class NotCheckedIn(StateError):
    pass


class OutsideCheckInWindow(StateError):
    pass


class NotRefundable(StateError):
    pass
