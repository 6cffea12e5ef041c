"""Exception types raised by the Title Editor client.

Hierarchy:
- TitleEditorError: root of everything raised by this package
  - APIConnectionError: transport failures and non-success server responses
    - AuthenticationError: bad credentials or an expired/refused token
    - ReplaceRollbackError: a criterion replace failed and so did its rollback
  - NotFoundError: fetch/delete/lookup of something that isn't there
  - AlreadyExistsError: creating a second instance of a singleton
  - UnsupportedError: operation not available for a resource kind
  - MissingDataError: prerequisites for an operation are missing
    - MissingFieldError: a required attribute was omitted at create
  - ReadOnlyFieldError: attempt to change a non-writable attribute
  - InvalidDataError: a value is not acceptable
"""

from __future__ import annotations

from typing import Any


class TitleEditorError(Exception):
    """Base class for all Title Editor client errors."""


class APIConnectionError(TitleEditorError):
    """The server could not be reached or answered with an error status.

    Attributes:
        status_code: HTTP status, if a response was received
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(APIConnectionError):
    """Credentials were rejected or the session token is no longer valid."""


class ReplaceRollbackError(APIConnectionError):
    """Replacing a criterion failed, and recreating the original failed too.

    The original criterion is gone from the server and from the local
    collection. The data needed to recreate it by hand is kept here.

    Attributes:
        original_error: The error from the failed create of the replacement
        victim_fields: The fields of the criterion that could not be restored
    """

    def __init__(self, message: str, original_error: BaseException, victim_fields: dict[str, Any]):
        super().__init__(message, getattr(original_error, "status_code", None))
        self.original_error = original_error
        self.victim_fields = victim_fields


class NotFoundError(TitleEditorError):
    """No such item on the server or in a managed collection."""


class AlreadyExistsError(TitleEditorError):
    """The item already exists and only one is allowed."""


class UnsupportedError(TitleEditorError):
    """The operation is not supported for this kind of object."""


class MissingDataError(TitleEditorError):
    """Data needed for the operation is missing."""


class MissingFieldError(MissingDataError):
    """One or more required attributes were not provided at create."""


class ReadOnlyFieldError(TitleEditorError):
    """The attribute cannot be changed directly."""


class InvalidDataError(TitleEditorError):
    """A value is not valid for the attribute or operation."""
