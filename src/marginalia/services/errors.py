"""Exceptions raised by the domain services.

Every error carries a short, machine-usable ``detail`` string. The HTTP
layer maps each class to a status code through :attr:`ForumError.status_code`.
"""

from __future__ import annotations


class ForumError(RuntimeError):
    """Base exception for all domain failures."""

    status_code = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(ForumError):
    """A referenced answer, question, vote, proposal or user does not exist."""

    status_code = 404


class InvariantViolationError(ForumError):
    """The request would break a structural rule of the forum."""


class ParentMismatchError(InvariantViolationError):
    """A reply's parent belongs to a different question."""


class ReplyVoteError(InvariantViolationError):
    """Votes are only accepted on root answers."""


class DeletedContentError(InvariantViolationError):
    """Deleted answers cannot be modified."""


class AlreadyDeletedError(InvariantViolationError):
    """The answer has already left the visible state."""


class PermissionDeniedError(ForumError):
    """The caller lacks ownership or the role the operation requires."""

    status_code = 403


class BannedUserError(PermissionDeniedError):
    """The caller has been banned by a moderator."""


class QuotaExceededError(ForumError):
    """A per-file or per-user upload limit was hit."""


class InternalCorruptionError(ForumError):
    """Stored data violates an invariant the service relies on."""

    status_code = 500


class AliasExhaustedError(InternalCorruptionError):
    """No unique pseudonym could be allocated within the retry budget."""
