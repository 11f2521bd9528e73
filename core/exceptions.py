class ReservationSystemError(Exception):
    """Base class for errors that are reported to API callers as-is."""

    status_code = 400
    default_message = 'The request could not be processed.'

    def __init__(self, message=None, errors=None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class InvalidInputError(ReservationSystemError):
    status_code = 400
    default_message = 'Invalid input.'


class NotFoundError(ReservationSystemError):
    status_code = 404
    default_message = 'The requested resource was not found.'


class SeatConflictError(ReservationSystemError):
    status_code = 409
    default_message = 'This seat is already booked. Please pick another seat.'

    def __init__(self, showtime_id=None, seat_number=None, message=None):
        self.showtime_id = showtime_id
        self.seat_number = seat_number
        if message is None and seat_number is not None:
            message = f"Seat {seat_number} for showtime {showtime_id} is already booked."
        super().__init__(message)


class UnauthorizedError(ReservationSystemError):
    status_code = 403
    default_message = 'You are not authorized to access this resource.'


class AuthenticationRequiredError(ReservationSystemError):
    status_code = 401
    default_message = 'Authentication credentials were not provided.'


class PaymentGatewayError(ReservationSystemError):
    status_code = 502
    default_message = 'Payment processing failed.'

    def __init__(self, message=None, gateway_message=None):
        self.gateway_message = gateway_message
        if message is None and gateway_message:
            message = f"Payment processing failed: {gateway_message}"
        super().__init__(message)
