"""Resource path resolution.

Path grammar:
- ``<collection>`` lists or creates root objects (software titles)
- ``<collection>/<id>`` fetches, updates or deletes any object
- ``<container collection>/<container id>/<collection>`` creates a child
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from .exceptions import InvalidDataError
from .exceptions import UnsupportedError

if TYPE_CHECKING:
    from .lifecycle import ResourceLifecycle

SOFTWARE_TITLES = "softwaretitles"
PATCHES = "patches"
REQUIREMENTS = "requirements"
CAPABILITIES = "capabilities"
COMPONENTS = "components"
CRITERIA = "criteria"
KILL_APPS = "killapps"
EXTENSION_ATTRIBUTES = "extensionattributes"

VALUELISTS_CRITERIA = "valuelists/criteria"


def object_path(kind: type[ResourceLifecycle], primary_id: Any) -> str:
    """Path for GET/PUT/DELETE of a single object, regardless of its container."""
    if primary_id is None:
        raise InvalidDataError(f"{kind.__name__} has no id yet; it has not been created on the server")
    return f"{kind.RSRC_PATH}/{primary_id}"


def creation_path(kind: type[ResourceLifecycle], container: Any | None) -> str:
    """Path to POST a new object of the given kind.

    Args:
        kind: The class of the object being created
        container: The object that will contain the new one, or None
            when creating a root object

    Returns:
        The resource path for the POST

    Raises:
        UnsupportedError: If a contained kind is created without a container,
            or inside a container of the wrong kind
    """
    if container is None:
        if kind.CONTAINER_RSRC_PATH is not None:
            raise UnsupportedError(
                f"{kind.__name__} objects must be created inside a container ({kind.CONTAINER_RSRC_PATH})"
            )
        return kind.RSRC_PATH

    validate_container(kind, container)
    container_id = container.primary_id
    if container_id is None or container_id == -1:
        raise InvalidDataError(f"Container {type(container).__name__} does not exist on the server")
    return f"{type(container).RSRC_PATH}/{container_id}/{kind.RSRC_PATH}"


def validate_container(kind: type[ResourceLifecycle], container: Any) -> None:
    """Make sure a container is the right kind to hold objects of ``kind``."""
    expected = kind.CONTAINER_RSRC_PATH
    actual = getattr(type(container), "RSRC_PATH", None)
    if expected is None or actual != expected:
        raise UnsupportedError(
            f"{kind.__name__} objects cannot be contained in {type(container).__name__} objects"
        )
