"""Error taxonomy for Tessera.

- UpstreamError: the backing document/blob/identity service failed. Caches
  recover from it locally (log and return absent), it never reaches readers.
- InvalidationLookupMiss: a mutation kind has no registered invalidation
  rule. The graph treats this as a no-op; strict callers can opt in.
- MutationError: a wrapped write failed and the caller asked to re-raise.
"""

from __future__ import annotations


class TesseraError(Exception):
    """Base exception for Tessera."""


class UpstreamError(TesseraError):
    """Failure talking to the upstream service."""

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class InvalidationLookupMiss(TesseraError):
    """No invalidation rule registered for a mutation kind."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"No invalidation rule registered for mutation kind '{kind}'")


class MutationError(TesseraError):
    """A wrapped mutation failed."""

    def __init__(self, kind: str | None, original: BaseException):
        self.kind = kind
        self.original = original
        super().__init__(f"Mutation {kind or '<anonymous>'} failed: {original}")
