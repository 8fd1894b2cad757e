"""Domain errors raised by the services and mapped to responses in main.py."""

from fastapi import status


class TravelPlannerError(Exception):
    """Base class for errors that map directly onto an HTTP response."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class BadRequest(TravelPlannerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"


class Forbidden(TravelPlannerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"


class NotFound(TravelPlannerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class DuplicateConflict(TravelPlannerError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Destination already exists"


class StorageUnavailable(TravelPlannerError):
    # Details of infrastructure failures never reach the client
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error"
