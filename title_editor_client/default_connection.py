"""A process-wide default connection, for scripts and the command line.

The object model never reads this; pass ``default_connection()`` as ``cnx``
explicitly where it is wanted.
"""

from __future__ import annotations

import logging
from typing import Any

from .connection import Connection
from .exceptions import InvalidDataError

logger = logging.getLogger(__name__)

DEFAULT_NAME = "default"

_default: Connection | None = None


def default_connection() -> Connection:
    """The default connection, created unconnected on first use."""
    global _default
    if _default is None:
        _default = Connection(name=DEFAULT_NAME)
    return _default


def connect(url: str | None = None, user: str | None = None, password: str | None = None, **params: Any) -> str:
    """Replace the default connection with a new one.

    Args:
        url: Server URL
        user: User name
        password: Password
        **params: Other Connection options (timeout, verify, transport, name)

    Returns:
        The new connection's description, as from str()
    """
    global _default
    params.setdefault("name", DEFAULT_NAME)
    new_cnx = Connection(url, user, password, **params)
    disconnect()
    _default = new_cnx
    return str(_default)


def set_default_connection(connection: Connection) -> None:
    """Use an existing connection as the default."""
    global _default
    if not isinstance(connection, Connection):
        raise InvalidDataError("Title Editor connections must be instances of Connection")
    _default = connection


def disconnect() -> None:
    """Disconnect the default connection, if it is connected."""
    if _default is not None and _default.connected:
        _default.disconnect()
        logger.debug("Disconnected default connection")
