"""Translation of service errors into HTTP errors."""

from fastapi import HTTPException, status

from shortlinks.services.exceptions import (
    AliasTakenError,
    AllocationExhaustedError,
    InvalidInputError,
    LinkNotFoundError,
    LinkOwnershipError,
    PersistenceError,
    ServiceError,
)

# Checked in order; subclasses before their bases
STATUS_BY_ERROR = [
    (InvalidInputError, status.HTTP_400_BAD_REQUEST),
    (AliasTakenError, status.HTTP_409_CONFLICT),
    (LinkNotFoundError, status.HTTP_404_NOT_FOUND),
    (LinkOwnershipError, status.HTTP_403_FORBIDDEN),
    (AllocationExhaustedError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (PersistenceError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def http_error(exc: ServiceError) -> HTTPException:
    """Build the HTTPException matching a service error."""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            headers = None
            if isinstance(exc, PersistenceError) and exc.retryable:
                headers = {"Retry-After": "1"}
            return HTTPException(status_code=status_code, detail=str(exc), headers=headers)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))
