"""Error messages and next-step hints for the command line.

Every exception shown to a user gets a non-empty message, even when its str()
is empty. Title Editor errors also get a hint about what to try next.
"""

from __future__ import annotations

from pydantic import ValidationError
from rich.markup import escape as _escape_markup

from ..exceptions import AlreadyExistsError
from ..exceptions import APIConnectionError
from ..exceptions import AuthenticationError
from ..exceptions import MissingDataError
from ..exceptions import NotFoundError

# Used when the exception itself has nothing to say
FRIENDLY_MESSAGES: dict[type, str] = {
    TimeoutError: "Request timed out. The Title Editor server may be slow or unreachable.",
    ConnectionError: "The connection to the server was lost.",
    KeyboardInterrupt: "Interrupted.",
}

# Checked in order, so subclasses must come before their bases
HINTS: dict[type, str] = {
    AuthenticationError: "Check the user name, and set TITLE_EDITOR_PASSWORD or enter the password when prompted.",
    APIConnectionError: "Check the server URL with 'title-editor config show'.",
    NotFoundError: "Run 'title-editor titles' to list the available titles.",
    AlreadyExistsError: "Delete or update the existing item instead.",
    MissingDataError: "Add the missing items first, then try again.",
}


def _lookup(table: dict[type, str], e: BaseException) -> str | None:
    return next((text for exc_type, text in table.items() if isinstance(e, exc_type)), None)


def _describe(e: BaseException) -> str:
    """str(e), except pydantic errors are flattened to 'field: problem; ...'."""
    if isinstance(e, ValidationError):
        return "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
    return str(e)


def format_error_message(e: BaseException, *, include_type: bool = True) -> str:
    """A one-line, never empty, message for an exception.

    Args:
        e: The exception to describe
        include_type: Prefix the exception's class name, unless the message
            already mentions it

    Examples:
        >>> format_error_message(NotFoundError("No title 'x'"), include_type=False)
        "No title 'x'"

        >>> format_error_message(KeyboardInterrupt())
        'KeyboardInterrupt: Interrupted.'
    """
    error_type = type(e).__name__
    message = _describe(e) or _lookup(FRIENDLY_MESSAGES, e)

    if message is None:
        return f"{error_type}: (no additional details)"
    if include_type and error_type not in message:
        return f"{error_type}: {message}"
    return message


def hint_for(e: BaseException) -> str | None:
    """A suggested next step for an error, if there is one."""
    return _lookup(HINTS, e)


def escape_markup(value: object) -> str:
    """str(value), safe to put inside rich markup."""
    return _escape_markup(str(value))
