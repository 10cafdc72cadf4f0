"""
Domain error taxonomy for the learning-weight engine.

Every error raised across a public boundary (recorder, ranking query,
repositories, CLI) derives from ``LearningError``. Each class carries an
``http_status`` so an outer HTTP layer can map it without inspecting
messages:

  ValidationError   -> 400   malformed input; never retried
  NotFound          -> 404   referenced decision does not exist
  AlreadyExists     -> 409   duplicate decision id
  StoreUnavailable  -> 503   backing store failed (transient)
  StoreTimeout      -> 504   backing store did not answer in time

The engine never retries on its own; retries belong to the caller.
"""

from __future__ import annotations

from typing import Any


class LearningError(RuntimeError):
    """Base class for all engine errors."""

    http_status: int = 500
    code: str = "internal_error"


class ValidationError(LearningError):
    """Raised when caller input fails validation.

    Attributes:
        errors: Field-level detail, one ``{"field": ..., "message": ...}``
            dict per offending field.
    """

    http_status = 400
    code = "validation_error"

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(f"{field}: {message}", errors=[{"field": field, "message": message}])


class NotFound(LearningError):
    """Raised when a referenced record does not exist.

    Attributes:
        entity:    Kind of record, e.g. ``"decision"``.
        entity_id: The identifier that failed to resolve.
    """

    http_status = 404
    code = "not_found"

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} with ID {entity_id} not found")


class AlreadyExists(LearningError):
    """Raised when inserting a record whose id is already taken."""

    http_status = 409
    code = "already_exists"

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} with ID {entity_id} already exists")


class StoreError(LearningError):
    """Transient backing-store failure during a read or write."""

    http_status = 503
    code = "store_error"


class StoreUnavailable(StoreError):
    """The store could not be opened or rejected the statement."""

    code = "store_unavailable"


class StoreTimeout(StoreError):
    """The store stayed locked past the configured busy timeout."""

    http_status = 504
    code = "store_timeout"
