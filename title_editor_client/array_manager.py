"""Managed, server-synchronized lists of API objects.

Objects like software titles hold lists of other objects (requirements,
patches, ...). Those lists are never exposed directly. Instead the container
holds an ArrayManager subclass, which offers safe ways to add, update, move
and delete members so that the local list stays in step with the server.

Do not create or delete members yourself; use the ``add_*`` and ``delete_*``
methods of the concrete manager.

Subclasses must set MEMBER_CLASS.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable
from collections.abc import Iterator
from typing import Any
from typing import ClassVar
from typing import Generic
from typing import TypeVar

from .exceptions import InvalidDataError
from .exceptions import NotFoundError
from .lifecycle import APIObject

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=APIObject)


class ArrayManager(Generic[M]):
    """An ordered list of API objects that all share one container.

    Reading works like a read-only sequence: ``len()``, indexing, iteration,
    ``first``/``last``. Iteration and ``to_tuple`` work on a snapshot, so
    members may be changed while iterating.

    Not safe for concurrent use from multiple threads.
    """

    MEMBER_CLASS: ClassVar[type[APIObject]]

    def __init__(self, data: list[dict[str, Any]] | None, container: APIObject):
        """Build the managed list from a container's payload.

        Args:
            data: The JSON array of member data embedded in the container's
                payload, or None
            container: The object that holds this manager
        """
        self._container_ref = weakref.ref(container)
        self._members: list[M] = [
            self.MEMBER_CLASS.instantiate_from_container(container, **member_data)  # type: ignore[misc]
            for member_data in data or []
        ]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._members!r})"

    @property
    def container(self) -> APIObject | None:
        return self._container_ref()

    # Read access
    ##########################

    def to_tuple(self) -> tuple[M, ...]:
        """A read-only snapshot of the members."""
        return tuple(self._members)

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[M]:
        return iter(self.to_tuple())

    def __getitem__(self, idx: int) -> M:
        return self._members[idx]

    @property
    def first(self) -> M | None:
        return self._members[0] if self._members else None

    @property
    def last(self) -> M | None:
        return self._members[-1] if self._members else None

    def is_empty(self) -> bool:
        return not self._members

    def find(self, predicate: Callable[[M], bool]) -> M | None:
        return next((m for m in self.to_tuple() if predicate(m)), None)

    def find_by_attr(self, attr_name: str, value: Any) -> M | None:
        """The first member whose attribute equals value, or None."""
        if attr_name not in self.MEMBER_CLASS.model_fields:
            return None
        return self.find(lambda m: getattr(m, attr_name) == value)

    def index(self, member: M | None = None, predicate: Callable[[M], bool] | None = None) -> int | None:
        """Position of a member (by identity) or of the first one matching a predicate."""
        for idx, candidate in enumerate(self._members):
            if member is not None and candidate is member:
                return idx
            if predicate is not None and predicate(candidate):
                return idx
        return None

    def member_by_id(self, primary_id: Any) -> M:
        """The member with the given primary id.

        Raises:
            NotFoundError: If there is no such member
        """
        for member in self._members:
            if member.primary_id == primary_id:
                return member
        raise NotFoundError(
            f"No matching {self.MEMBER_CLASS.__name__} with {self.MEMBER_CLASS.PRIMARY_ID_KEY} {primary_id} found"
        )

    # Mutation. These are the building blocks for the add_*/delete_* methods
    # of concrete managers.
    ##########################

    def add_member(self, new_member: M, index: int | None = None) -> M:
        """Insert an already-created member into the local list.

        This does not talk to the server. Create the member on the server
        first, so server errors are raised before the list is touched.

        Args:
            new_member: The member to add
            index: Position to insert at. Defaults to the end.

        Returns:
            The member that was added
        """
        if not new_member.persisted:
            raise InvalidDataError(f"Only {self.MEMBER_CLASS.__name__} objects saved on the server can be added")
        if index is None:
            self._members.append(new_member)
        else:
            self._members.insert(index, new_member)
        return new_member

    def update_member(self, primary_id: Any, **attribs: Any) -> M:
        """Change attributes of a member, each one a server round trip.

        Explicit None values are sent.

        Returns:
            The updated member
        """
        member = self.member_by_id(primary_id)
        for attr_name, new_value in attribs.items():
            member.update(attr_name, new_value)
        return member

    def move_member(self, member: M, index: int) -> None:
        """Move a member to a new position in the local list only.

        Used after the new order has already been saved on the server.
        """
        curr_idx = self.index(member)
        if curr_idx is None:
            raise NotFoundError(f"{member!r} is not managed here")
        self._members.insert(index, self._members.pop(curr_idx))

    def delete_member(self, primary_id: Any) -> M:
        """Delete a member from the server, then from the local list.

        Returns:
            The member that was removed
        """
        member = self.member_by_id(primary_id)
        member.delete()
        self._members = [m for m in self._members if m is not member]
        return member

    def delete_all_members(self) -> None:
        """Delete every member from the server and empty the local list.

        Members are dropped from the list one at a time, as they are deleted,
        so a failure part way through leaves only the survivors.
        """
        for member in self.to_tuple():
            member.delete()
            self._members.remove(member)
        logger.debug(f"Deleted all {self.MEMBER_CLASS.__name__} members")

    def _update_local_absolute_order_ids(self) -> None:
        """Make each member's position match its list index, locally only.

        The server renumbers siblings itself when one changes position.
        """
        for idx, member in enumerate(self._members):
            member.set_local_absolute_order_id(idx)  # type: ignore[attr-defined]
