"""Service-layer exceptions.

Endpoints translate these to HTTP responses: validation → 400,
not found → 404, conflict and illegal transition → 409, folio allocation
→ 500. ``ServiceError`` subclasses ``ValueError`` so callers that only care
about "the request was rejected" can keep catching ``ValueError``.
"""

from __future__ import annotations


class ServiceError(ValueError):
    """Base class for expected, user-facing service failures."""


class ValidationError(ServiceError):
    """Required input is missing or malformed."""


class NotFoundError(ServiceError):
    """A referenced record does not exist."""


class ConflictError(ServiceError):
    """The change would violate a uniqueness or referential rule."""


class IllegalTransitionError(ServiceError):
    """The record's current state does not allow the requested change."""


class FolioAllocationError(RuntimeError):
    """No unique folio could be allocated within the retry budget."""
