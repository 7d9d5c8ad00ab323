"""Exception hierarchy for the DA server and its relay client."""

from __future__ import annotations


class DAServerError(Exception):
    """
    Base exception for all DA server errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(DAServerError):
    """
    Raised when input is malformed before any storage or network work happens.

    Covers malformed key encodings, blob-size mismatches and
    commitment/blob count mismatches. Never retried.
    """


class AuthorizationError(DAServerError):
    """Raised when a write arrives from an address outside the sequencer prefix."""


class NotFoundError(DAServerError):
    """
    Raised when a requested key is absent.

    Kept distinct from other failures so callers can branch on
    "does not exist" versus "failed".
    """


class StorageError(DAServerError):
    """Raised when the filesystem fails to read or write a blob."""


class RelayError(DAServerError):
    """Raised when a relay peer cannot be reached or answers unexpectedly."""


class ReplicationError(RelayError):
    """
    Raised when pushing blobs to relay peers fails.

    For a single push this means the retry budget is exhausted.
    For a batch upload it means at least one target failed.
    """


class VerificationError(DAServerError):
    """
    Raised when a fetched blob does not match the commitment it was requested by.

    No fallback to another peer happens. The caller must retry explicitly
    against a different target.
    """
