"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested resource or record does not exist."""


class FetchError(DomainError):
    """A listing request failed.

    Attributes:
        status: HTTP status code, or None when no response was received
        message: Server-supplied or generic error message
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        self.message = message


class StaleAggregationError(DomainError):
    """An aggregation run was superseded before it could commit its result."""

    def __init__(self, generation: int, current_generation: int):
        super().__init__(stale_aggregation(generation, current_generation))
        self.generation = generation
        self.current_generation = current_generation


def unknown_resource(name: str) -> str:
    """Return message for an unregistered listing resource."""
    return f"Unknown resource '{name}'"


def http_status_error(status: int, reason: str) -> str:
    """Return fallback message for a non-2xx response without a JSON error."""
    return f"HTTP {status}: {reason}"


def fetch_failed(url: str, cause: object) -> str:
    """Return message for a request that never produced a response."""
    return f"Failed to fetch {url}: {cause}"


def stale_aggregation(generation: int, current_generation: int) -> str:
    """Return message when an aggregation run is superseded."""
    return (
        f"Aggregation run {generation} was superseded by run {current_generation}"
    )


def invalid_page_size(page_size: int) -> str:
    """Return message for a non-positive page size."""
    return f"Page size must be positive, got {page_size}"
