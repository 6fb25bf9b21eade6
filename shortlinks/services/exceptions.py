"""Exceptions for the shortlinks service layer.

This module contains the exception hierarchy for the service layer,
providing domain-specific exceptions that abstract underlying implementation details.
"""


class ServiceError(Exception):
    """Base exception for all service-level errors."""
    pass


class InvalidInputError(ServiceError):
    """A caller-supplied value failed validation."""
    pass


class InvalidURLError(InvalidInputError):
    """The URL is not an absolute URL."""
    pass


class InvalidAliasError(InvalidInputError):
    """The requested alias doesn't meet requirements."""
    pass


class AliasTakenError(ServiceError):
    """The requested alias has already been claimed, possibly by a deleted link."""

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(f"Alias '{alias}' is already taken")


class AllocationExhaustedError(ServiceError):
    """No free short code was found within the attempt limit."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique short code after {attempts} attempts")


class LinkNotFoundError(ServiceError):
    """No active link matches the code, alias or id."""
    pass


class LinkOwnershipError(ServiceError):
    """The requester does not own the link."""
    pass


class PersistenceError(ServiceError):
    """The store was unreachable, timed out, or rejected the operation.

    ``retryable`` is set when repeating the same call may succeed,
    e.g. after a timeout.
    """

    def __init__(self, message: str, retryable: bool = False):
        self.retryable = retryable
        super().__init__(message)


class ClickRecordingError(PersistenceError):
    """A click event could not be stored."""
    pass


class StatsRetrievalError(PersistenceError):
    """Error occurred while retrieving statistics."""
    pass
