"""Server lifecycle shared by every Title Editor object.

Objects are pydantic models that mirror one resource on the server. There is
no local "dirty" state: every change is sent to the server as it is made.

An object comes into existence in exactly one of three ways:

- ``Kind.create(...)`` makes it on the server (POST) and returns it
- ``Kind.fetch(id, cnx=...)`` reads it from the server (GET)
- ``Kind.instantiate_from_container(container, **data)`` builds it from data
  already embedded in its container's payload, without any HTTP call

Calling the class directly raises UnsupportedError.

Concrete kinds fulfil the ResourceLifecycle contract: they declare their
resource path, the resource path of their container kind, the name of their
primary id field, and two callbacks that apply POST/PUT responses.
"""

from __future__ import annotations

import logging
import weakref
from typing import Annotated
from typing import Any
from typing import ClassVar
from typing import Protocol

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import PrivateAttr
from pydantic.alias_generators import to_camel

from .connection import Transport
from .exceptions import APIConnectionError
from .exceptions import InvalidDataError
from .exceptions import NotFoundError
from .exceptions import ReadOnlyFieldError
from .exceptions import UnsupportedError
from .paths import SOFTWARE_TITLES
from .paths import creation_path
from .paths import object_path
from .paths import validate_container
from .schema import READONLY
from .schema import APIAttr
from .schema import build_attr_table
from .schema import sendable_fields
from .schema import validate_required

logger = logging.getLogger(__name__)

ORIGIN_CREATE = "create"
ORIGIN_FETCH = "fetch"
ORIGIN_CONTAINER = "container"
ORIGINS = frozenset({ORIGIN_CREATE, ORIGIN_FETCH, ORIGIN_CONTAINER})

# Primary id value of an object that has been deleted from the server
DELETED_ID = -1


class ResourceLifecycle(Protocol):
    """Contract every concrete resource kind fulfils.

    Attributes:
        RSRC_PATH: Path segment of the kind's collection, e.g. 'patches'
        CONTAINER_RSRC_PATH: RSRC_PATH of the containing kind, None for roots
        PRIMARY_ID_KEY: Name of the field holding the server-assigned id
    """

    RSRC_PATH: ClassVar[str]
    CONTAINER_RSRC_PATH: ClassVar[str | None]
    PRIMARY_ID_KEY: ClassVar[str]

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        """Apply a POST response (ids, server-computed values). Returns the new id."""
        ...

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        """Apply a PUT response. Returns the object's id."""
        ...


class APIObject(BaseModel):
    """Base for all server-backed objects.

    Subclasses declare their fields with ``Annotated[type, APIAttr(...)]``
    and set the ResourceLifecycle class constants.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="ignore",
    )

    RSRC_PATH: ClassVar[str]
    CONTAINER_RSRC_PATH: ClassVar[str | None] = None
    PRIMARY_ID_KEY: ClassVar[str]
    # Some kinds can only be read through the payload of their container
    FETCHABLE: ClassVar[bool] = True
    API_ATTRS: ClassVar[dict[str, APIAttr]] = {}

    _cnx: Any = PrivateAttr(default=None)
    _container_ref: Any = PrivateAttr(default=None)
    _creating: bool = PrivateAttr(default=False)
    _deleted_id: Any = PrivateAttr(default=None)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        cls.API_ATTRS = build_attr_table(cls)

    def model_post_init(self, context: Any, /) -> None:
        origin = context.get("origin") if isinstance(context, dict) else None
        if origin not in ORIGINS:
            raise UnsupportedError(
                f"{type(self).__name__} can only be instantiated using .fetch or .create, not directly"
            )

    # Construction
    ##########################

    @classmethod
    def create(cls, container: APIObject | None = None, cnx: Transport | None = None, **init_data: Any):
        """Make a new object on the server.

        Args:
            container: The object that will contain the new one. Required for
                every kind except software titles.
            cnx: The connection to use. Defaults to the container's.
            **init_data: Attribute values, by local field name. Required
                attributes must be present.

        Returns:
            The new object, already saved on the server

        Raises:
            MissingFieldError: If a required attribute is missing
            UnsupportedError: If the container is missing or of the wrong kind
        """
        if container is not None:
            validate_container(cls, container)
            cnx = cnx or container.cnx
        elif cls.CONTAINER_RSRC_PATH is not None:
            raise UnsupportedError(f"{cls.__name__} objects must be created inside a container")

        if cnx is None:
            raise APIConnectionError(f"No connection given to create {cls.__name__}")

        unknown = set(init_data) - set(cls.model_fields)
        if unknown:
            raise InvalidDataError(f"Unknown attribute(s) for {cls.__name__}: {', '.join(sorted(unknown))}")
        validate_required(cls.__name__, cls.API_ATTRS, init_data)

        obj = cls._build(init_data, origin=ORIGIN_CREATE, cnx=cnx, container=container)
        obj.create_on_server()
        return obj

    @classmethod
    def fetch(cls, primary_id: Any, *, cnx: Transport):
        """Read an object from the server by its primary id.

        Raises:
            UnsupportedError: If this kind is only available via its container
            NotFoundError: If there is no such object
        """
        if not cls.FETCHABLE:
            raise UnsupportedError(f"{cls.__name__} objects are fetched as part of the object that contains them")
        if isinstance(primary_id, dict):
            raise InvalidDataError(f"{cls.__name__} objects are fetched only by their id number")

        data = cnx.get(object_path(cls, primary_id))
        return cls._build(data, origin=ORIGIN_FETCH, cnx=cnx)

    @classmethod
    def instantiate_from_container(cls, container: APIObject, **init_data: Any):
        """Build an object from data embedded in its container's payload.

        No HTTP call is made; the object is taken to exist on the server.
        """
        validate_container(cls, container)
        return cls._build(init_data, origin=ORIGIN_CONTAINER, cnx=container.cnx, container=container)

    @classmethod
    def _build(cls, data: dict[str, Any], *, origin: str, cnx: Transport | None, container: APIObject | None = None):
        obj = cls.model_validate(data, context={"origin": origin})
        obj._cnx = cnx
        if container is not None:
            obj._container_ref = weakref.ref(container)
        obj._creating = origin == ORIGIN_CREATE
        obj._init_children(data)
        return obj

    def _init_children(self, data: dict[str, Any]) -> None:
        """Build managers and sub-objects from the raw payload. Override as needed."""

    # Lifecycle callbacks, overridden by concrete kinds
    ##########################

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, self.PRIMARY_ID_KEY)
        return self.primary_id

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        return self.primary_id

    def update_modification_time(self, response: dict[str, Any] | None = None) -> None:
        """Hook for the root of a tree; called whenever anything in it changes."""

    # Properties
    ##########################

    @property
    def primary_id(self) -> Any:
        """Server-assigned id. None before creation, -1 after deletion."""
        return getattr(self, self.PRIMARY_ID_KEY)

    @property
    def deleted_id(self) -> Any:
        """The primary id this object had before it was deleted."""
        return self._deleted_id

    @property
    def cnx(self) -> Transport | None:
        return self._cnx

    @property
    def container(self) -> APIObject | None:
        """The object containing this one, if it is still alive."""
        if self._container_ref is None:
            return None
        return self._container_ref()

    @property
    def root(self) -> APIObject:
        """The top of the container chain, possibly this object itself."""
        obj = self
        while (parent := obj.container) is not None:
            obj = parent
        return obj

    @property
    def software_title(self):
        """The SoftwareTitle ultimately containing this object, if known."""
        root = self.root
        return root if root.RSRC_PATH == SOFTWARE_TITLES else None

    @property
    def creating(self) -> bool:
        return self._creating

    @property
    def persisted(self) -> bool:
        return not self._creating and self.primary_id not in (None, DELETED_ID)

    # Server operations
    ##########################

    def to_api(self) -> dict[str, Any]:
        """The payload to POST for this object."""
        return self.model_dump(
            mode="json",
            by_alias=True,
            include=sendable_fields(self.API_ATTRS),
            exclude_none=True,
        )

    def create_on_server(self) -> Any:
        """POST this object. Only valid for objects made by ``create``.

        Returns:
            The new primary id
        """
        if not self._creating:
            raise UnsupportedError("Do not call 'create_on_server' directly - use the .create class method.")

        container = self.container
        path = creation_path(type(self), container)
        response = self._cnx.post(path, self.to_api()) or {}

        container_id = container.primary_id if container is not None else None
        new_id = self.handle_create_response(response, container_id=container_id)
        self._creating = False
        self._notify_root(response)

        logger.info(f"Created {type(self).__name__} {new_id} at {path}")
        return new_id

    def update(self, attr_name: str, new_value: Any) -> Any:
        """Change one attribute on the server, then locally.

        Plain assignment (``obj.attr = value``) does the same thing.

        Returns:
            The primary id of this object

        Raises:
            ReadOnlyFieldError: If the attribute can't be changed directly
        """
        attr = self.API_ATTRS.get(attr_name)
        if attr is None:
            raise InvalidDataError(f"{type(self).__name__} has no attribute '{attr_name}'")
        if attr.readonly or attr.do_not_send:
            raise ReadOnlyFieldError(f"The value for {attr_name} cannot be updated directly.")
        return self.update_on_server(attr_name, new_value)

    def update_on_server(self, attr_name: str, new_value: Any) -> Any:
        """Send a single attribute to the server without the read-only check.

        Used by managers for values like positions, which are read-only to
        everyone else.
        """
        self._ensure_persisted()

        # Validate and convert on a scratch copy, so a bad value or a
        # server error leaves this object untouched.
        probe = self.model_copy()
        BaseModel.__setattr__(probe, attr_name, new_value)
        payload = probe.model_dump(mode="json", by_alias=True, include={attr_name})

        response = self._cnx.put(object_path(type(self), self.primary_id), payload) or {}
        self._set_local(attr_name, getattr(probe, attr_name))
        self._notify_root(response)
        return self.handle_update_response(response)

    def delete(self) -> Any:
        """Delete this object from the server.

        Afterwards the primary id is -1 and ``deleted_id`` holds the old one.
        Deleting an object a second time raises without a server call.

        Returns:
            The id of the deleted object

        Raises:
            NotFoundError: If the object was already deleted through this
                object (no server call is made), or is gone from the server
        """
        if self.primary_id == DELETED_ID:
            raise NotFoundError(f"{type(self).__name__} {self._deleted_id} has already been deleted")
        self._ensure_persisted()

        self._cnx.delete(object_path(type(self), self.primary_id))
        self._deleted_id = self.primary_id
        self._set_local(self.PRIMARY_ID_KEY, DELETED_ID)
        if self.root is not self:
            self._notify_root(None)

        logger.info(f"Deleted {type(self).__name__} {self._deleted_id}")
        return self._deleted_id

    # Internals
    ##########################

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).model_fields:
            self.update(name, value)
            return
        if isinstance(getattr(type(self), name, None), property):
            object.__setattr__(self, name, value)
            return
        super().__setattr__(name, value)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return False
        return self.primary_id not in (None, DELETED_ID) and self.primary_id == other.primary_id

    def _set_local(self, attr_name: str, value: Any) -> None:
        """Set an attribute locally without talking to the server."""
        BaseModel.__setattr__(self, attr_name, value)

    def _apply_response(self, response: dict[str, Any], *attr_names: str) -> None:
        """Copy the named attributes out of a server response, if present."""
        for attr_name in attr_names:
            alias = type(self).model_fields[attr_name].alias or to_camel(attr_name)
            if alias in response:
                self._set_local(attr_name, response[alias])
            elif attr_name in response:
                self._set_local(attr_name, response[attr_name])

    def _ensure_persisted(self) -> None:
        if self.primary_id == DELETED_ID:
            raise NotFoundError(f"{type(self).__name__} {self._deleted_id} has been deleted")
        if self._creating or self.primary_id is None:
            raise UnsupportedError(f"{type(self).__name__} has not been created on the server")
        if self._cnx is None:
            raise APIConnectionError(f"{type(self).__name__} {self.primary_id} has no connection")

    def _notify_root(self, response: dict[str, Any] | None) -> None:
        root = self.root
        root.update_modification_time(response if root is self else None)


class OrderedAPIObject(APIObject):
    """An object with an explicit, zero-based position among its siblings.

    The server renumbers siblings itself when one of them is created, moved
    or deleted. Only the manager holding the object should change its
    position.
    """

    absolute_order_id: Annotated[int | None, READONLY] = None

    def set_absolute_order_id(self, new_index: int) -> Any:
        """Move this object on the server. Siblings are renumbered by the server."""
        if new_index == self.absolute_order_id:
            return self.primary_id
        return self.update_on_server("absolute_order_id", new_index)

    def set_local_absolute_order_id(self, new_index: int) -> None:
        """Change the local position only, to match what the server already did."""
        self._set_local("absolute_order_id", new_index)
