"""HTTP transport for the Title Editor REST API.

The object model only needs something implementing ``Transport``. ``Connection``
is the real implementation, built on httpx with bearer-token authentication.
"""

from __future__ import annotations

import logging
from datetime import UTC
from datetime import datetime
from datetime import timedelta
from typing import Any
from typing import Protocol
from typing import runtime_checkable

import httpx

from .exceptions import AlreadyExistsError
from .exceptions import APIConnectionError
from .exceptions import AuthenticationError
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)

API_VERSION = "v2"
TOKEN_RSRC = "auth/tokens"
DEFAULT_TIMEOUT = 60.0

# Refresh the token this long before the server says it expires
TOKEN_REFRESH_MARGIN = timedelta(seconds=60)


@runtime_checkable
class Transport(Protocol):
    """What the object model needs from a server connection.

    All methods return the decoded JSON payload (or None for an empty body)
    and raise a TitleEditorError subclass on a non-success status.
    """

    def get(self, path: str) -> Any: ...

    def post(self, path: str, body: Any = None) -> Any: ...

    def put(self, path: str, body: Any = None) -> Any: ...

    def delete(self, path: str) -> Any: ...


class Connection:
    """An authenticated connection to a Title Editor server.

    Example:
        cnx = Connection("https://example.appcatalog.jamfcloud.com", "admin", "secret")
        titles = cnx.get("softwaretitles")

    Attributes:
        name: Optional label for this connection
        url: Server URL as given, without the API version
        user: The user we authenticated as
        connected: Whether a token has been obtained
    """

    def __init__(
        self,
        url: str | None = None,
        user: str | None = None,
        password: str | None = None,
        *,
        name: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ):
        """Create a connection, connecting immediately if a URL is given.

        Args:
            url: Server URL, e.g. https://example.appcatalog.jamfcloud.com
            user: Title Editor user name
            password: Password for the user
            name: Optional label, shown by str()
            timeout: Request timeout in seconds
            verify: Verify the server's TLS certificate
            transport: httpx transport to use instead of the network (for tests)
        """
        self.name = name
        self.url: str | None = None
        self.user: str | None = None
        self.connected = False
        self.connect_time: datetime | None = None
        self._password: str | None = None
        self._client: httpx.Client | None = None
        self._token: str | None = None
        self._token_expires: datetime | None = None

        if url is not None:
            self.connect(url, user, password, timeout=timeout, verify=verify, transport=transport)

    def connect(
        self,
        url: str,
        user: str | None,
        password: str | None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        verify: bool = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Open the HTTP client and obtain a token.

        Raises:
            AuthenticationError: If the credentials are rejected
            APIConnectionError: If the server can't be reached
        """
        if not user or not password:
            raise AuthenticationError("Both user and password are required to connect")

        self.disconnect()
        self.url = url.rstrip("/")
        self.user = user
        self._password = password
        self._client = httpx.Client(
            base_url=f"{self.url}/{API_VERSION}/",
            timeout=timeout,
            verify=verify,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._acquire_token()
        self.connected = True
        self.connect_time = datetime.now(UTC)
        logger.info(f"Connected to {self.url} as {user}")

    def disconnect(self) -> None:
        """Close the HTTP client. Safe to call when not connected."""
        if self._client is not None:
            self._client.close()
        self._client = None
        self._token = None
        self._token_expires = None
        self.connected = False

    close = disconnect

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.disconnect()

    def __str__(self) -> str:
        if not self.connected:
            return "not connected"
        host = httpx.URL(self.url or "").host
        label = f"{self.user}@{host}"
        return f"{label}, name: {self.name}" if self.name else label

    # Transport API

    def get(self, path: str) -> Any:
        return self._request("GET", path)

    def post(self, path: str, body: Any = None) -> Any:
        return self._request("POST", path, body)

    def put(self, path: str, body: Any = None) -> Any:
        return self._request("PUT", path, body)

    def delete(self, path: str) -> Any:
        return self._request("DELETE", path)

    # Internals

    def _acquire_token(self) -> None:
        if self._client is None:
            raise APIConnectionError("Not connected to a Title Editor server")
        try:
            response = self._client.post(TOKEN_RSRC, auth=(self.user or "", self._password or ""))
        except httpx.TransportError as e:
            raise APIConnectionError(f"Could not reach {self.url}: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(f"Authentication failed for {self.user}", response.status_code)
        _raise_for_status("POST", TOKEN_RSRC, response)

        data = response.json()
        self._token = data["token"]
        self._token_expires = _parse_expiration(data.get("expires"))
        logger.debug(f"Obtained token for {self.user}, expires {self._token_expires}")

    def _token_needs_refresh(self) -> bool:
        if self._token is None:
            return True
        if self._token_expires is None:
            return False
        return datetime.now(UTC) >= self._token_expires - TOKEN_REFRESH_MARGIN

    def _request(self, method: str, path: str, body: Any = None, *, retry_auth: bool = True) -> Any:
        if self._client is None or not self.connected:
            raise APIConnectionError("Not connected to a Title Editor server")

        if self._token_needs_refresh():
            self._acquire_token()

        logger.debug(f"{method} {path}")
        try:
            response = self._client.request(
                method,
                path,
                json=body,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.TransportError as e:
            raise APIConnectionError(f"{method} {path} failed: {e}") from e

        # One retry with a fresh token, in case it was revoked server-side
        if response.status_code == 401 and retry_auth:
            logger.debug(f"{method} {path} returned 401, refreshing token")
            self._acquire_token()
            return self._request(method, path, body, retry_auth=False)

        _raise_for_status(method, path, response)

        if not response.content:
            return None
        return response.json()


def _parse_expiration(value: Any) -> datetime | None:
    """Token expiration comes back as epoch milliseconds or an ISO timestamp."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, UTC)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unrecognized token expiration: {value!r}")
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _error_text(response: httpx.Response) -> str:
    """Pull a human readable message out of an error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase

    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            parts = []
            for err in errors:
                if isinstance(err, dict):
                    parts.append(str(err.get("description") or err.get("message") or err))
                else:
                    parts.append(str(err))
            return "; ".join(parts)
        for key in ("message", "error", "description"):
            if data.get(key):
                return str(data[key])
    return str(data)


def _raise_for_status(method: str, path: str, response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return

    message = f"{method} {path}: {status} {_error_text(response)}"
    if status == 404:
        raise NotFoundError(message)
    if status in (401, 403):
        raise AuthenticationError(message, status)
    if status == 409:
        raise AlreadyExistsError(message)
    raise APIConnectionError(message, status)
