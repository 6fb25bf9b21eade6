"""Tests for service error to HTTP status translation."""

import pytest

from shortlinks.api.errors import http_error
from shortlinks.services.exceptions import (
    AliasTakenError,
    AllocationExhaustedError,
    InvalidAliasError,
    InvalidURLError,
    LinkNotFoundError,
    LinkOwnershipError,
    PersistenceError,
    ServiceError,
    StatsRetrievalError,
)


@pytest.mark.api
@pytest.mark.parametrize("error, status_code", [
    (InvalidURLError("bad url"), 400),
    (InvalidAliasError("bad alias"), 400),
    (AliasTakenError("foo"), 409),
    (LinkNotFoundError("gone"), 404),
    (LinkOwnershipError("not yours"), 403),
    (AllocationExhaustedError(20), 503),
    (StatsRetrievalError("store down"), 503),
    (ServiceError("unexpected"), 500),
])
def test_status_codes(error, status_code):
    assert http_error(error).status_code == status_code


@pytest.mark.api
def test_retryable_persistence_error_sets_retry_after():
    assert http_error(PersistenceError("timed out", retryable=True)).headers == {"Retry-After": "1"}
    assert http_error(PersistenceError("broken")).headers is None
