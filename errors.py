"""Exceptions raised by the ordering, dashboard and catalog services.

Routes in app.py catch these at the request boundary and turn them into
status codes, JSON payloads or flash messages.
"""


class RestaurantError(Exception):
    """Base class for service errors."""

    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(RestaurantError):
    """Missing or malformed client input."""

    status_code = 400


class NotFoundError(RestaurantError):
    """Referenced entity is absent or inactive."""

    status_code = 404


class PersistenceError(RestaurantError):
    """The database rejected or failed a read/write."""

    status_code = 500
