"""Criteria, and the managers that keep ordered lists of them.

A criterion is one test against a computer's inventory, e.g.
'Application Title' is 'FooBar.app'. Software titles, patches and patch
components each hold an ordered list of criteria:

- SoftwareTitle.requirements: which computers have any version installed
- Patch.capabilities: which computers may install the patch
- Patch.component.criteria: which computers have this exact version

Criteria are immutable once created. Changing name, operator and value one
at a time would leave the criterion invalid in between, so to change one,
replace it: ``replace_criterion`` deletes it and creates a new one at the
same position.
"""

from __future__ import annotations

import logging
from typing import Annotated
from typing import Any
from typing import ClassVar

from pydantic import Field
from pydantic import field_serializer
from pydantic import field_validator

from .array_manager import ArrayManager
from .connection import Transport
from .exceptions import APIConnectionError
from .exceptions import ReadOnlyFieldError
from .exceptions import ReplaceRollbackError
from .exceptions import TitleEditorError
from .lifecycle import OrderedAPIObject
from .paths import VALUELISTS_CRITERIA
from .schema import PLAIN
from .schema import REQUIRED
from .schema import AndOr
from .schema import validate_required

logger = logging.getLogger(__name__)

# The authoritative list is available from CriteriaManager.available_types
TYPE_RECON = "recon"
TYPE_EA = "extensionAttribute"
TYPES = (TYPE_RECON, TYPE_EA)


class Criterion(OrderedAPIObject):
    """Base class for the three kinds of criteria."""

    # Fixed once created; name, operator and value only make sense together
    IMMUTABLE_ATTRIBUTES: ClassVar[tuple[str, ...]] = ("name", "operator", "value", "type")

    and_or: Annotated[AndOr, PLAIN] = Field(AndOr.AND, alias="and")
    name: Annotated[str | None, REQUIRED] = None
    operator: Annotated[str | None, REQUIRED] = None
    value: Any = None
    type: Annotated[str | None, REQUIRED] = None

    @field_validator("and_or", mode="before")
    @classmethod
    def _and_or_from_api(cls, value: Any) -> AndOr:
        return AndOr.from_api(value)

    @field_serializer("and_or")
    def _and_or_to_api(self, value: AndOr) -> bool:
        return value.to_api()

    def update(self, attr_name: str, new_value: Any) -> Any:
        """Change the join operator. The other attributes are fixed once created.

        Raises:
            ReadOnlyFieldError: For name, operator, value or type. Use
                ``replace_criterion`` on the manager instead.
        """
        if attr_name in self.IMMUTABLE_ATTRIBUTES:
            raise ReadOnlyFieldError(
                f"{type(self).__name__} {attr_name} cannot be changed in place. "
                "Use replace_criterion to swap in a new criterion."
            )
        return super().update(attr_name, new_value)

    def criterion_fields(self) -> dict[str, Any]:
        """The values needed to recreate this criterion."""
        return {
            "name": self.name,
            "operator": self.operator,
            "value": self.value,
            "type": self.type,
            "and_or": self.and_or,
        }


class CriteriaManager(ArrayManager[Criterion]):
    """Keeps an ordered list of criteria in step with the server.

    Positions (``absolute_order_id``) are zero-based and always equal the
    list index after a successful operation.
    """

    # Value lists
    ##########################

    @staticmethod
    def available_names(cnx: Transport) -> list[str]:
        """All criterion names known to the server."""
        return cnx.get(f"{VALUELISTS_CRITERIA}/names")

    @staticmethod
    def available_types(cnx: Transport) -> list[str]:
        """All criterion types known to the server."""
        return cnx.get(f"{VALUELISTS_CRITERIA}/types")

    @staticmethod
    def operators_for(name: str, cnx: Transport) -> list[str]:
        """The operators usable with a criterion name.

        e.g. for 'Application Title': ['is', 'is not', 'has', 'does not have']
        """
        return cnx.post(f"{VALUELISTS_CRITERIA}/operators", {"name": name})

    # Criteria
    ##########################

    def add_criterion(
        self,
        name: str,
        operator: str,
        value: Any,
        type: str = TYPE_RECON,
        and_or: AndOr | str = AndOr.AND,
        absolute_order_id: int | None = None,
    ) -> Any:
        """Create a criterion on the server and add it to the list.

        Args:
            name: Criterion name, see available_names
            operator: Comparison operator, see operators_for
            value: The value compared against each computer's
            type: 'recon' or 'extensionAttribute'
            and_or: How this criterion joins the previous one
            absolute_order_id: Zero-based position. Defaults to the end.

        Returns:
            The id of the new criterion
        """
        size = len(self._members)
        position = size if absolute_order_id is None else max(0, min(absolute_order_id, size))

        new_criterion = self.MEMBER_CLASS.create(
            container=self.container,
            name=name,
            operator=operator,
            value=value,
            type=type,
            and_or=AndOr.from_api(and_or),
            absolute_order_id=position,
        )
        self.add_member(new_criterion, index=position)
        self._update_local_absolute_order_ids()
        return new_criterion.primary_id

    def replace_criterion(
        self,
        primary_id: Any,
        name: str,
        operator: str,
        value: Any,
        type: str = TYPE_RECON,
        and_or: AndOr | str = AndOr.AND,
    ) -> Any:
        """Replace a criterion with a new one at the same position.

        The old criterion is deleted first. If creating the new one then
        fails with a connection error, the old one is recreated in its place
        before the error is re-raised.

        Returns:
            The id of the new criterion

        Raises:
            NotFoundError: If there is no criterion with that id
            ReplaceRollbackError: If both the create and the rollback failed.
                The old criterion is then gone from the server and the list. If
                that empties the list, the owner is disabled as by
                delete_criterion.
        """
        new_fields = {
            "name": name,
            "operator": operator,
            "value": value,
            "type": type,
            "and_or": AndOr.from_api(and_or),
        }
        validate_required(self.MEMBER_CLASS.__name__, self.MEMBER_CLASS.API_ATTRS, new_fields)

        victim = self.member_by_id(primary_id)
        victim_fields = victim.criterion_fields()
        position = victim.absolute_order_id
        if position is None:
            position = self.index(victim)

        self.delete_member(primary_id)
        try:
            return self.add_criterion(**new_fields, absolute_order_id=position)
        except APIConnectionError as create_error:
            logger.warning(
                f"Replacing {self.MEMBER_CLASS.__name__} {primary_id} failed ({create_error}), "
                f"restoring it at position {position}"
            )
            try:
                self.add_criterion(**victim_fields, absolute_order_id=position)
            except TitleEditorError as rollback_error:
                logger.error(
                    f"Could not restore {self.MEMBER_CLASS.__name__} {primary_id} "
                    f"at position {position}: {rollback_error}"
                )
                self._update_local_absolute_order_ids()
                if self.is_empty():
                    self._after_emptied()
                raise ReplaceRollbackError(
                    f"Replacing {self.MEMBER_CLASS.__name__} {primary_id} failed, and it could not be restored",
                    original_error=create_error,
                    victim_fields=victim_fields,
                ) from rollback_error
            raise

    def move_criterion(self, primary_id: Any, absolute_order_id: int) -> int:
        """Move a criterion to a new position.

        The position is clamped to the list. The server renumbers the other
        criteria itself; the local list is then renumbered to match.

        Returns:
            The new position
        """
        position = max(0, min(absolute_order_id, len(self._members) - 1))

        # server first, so errors are raised before the list changes
        criterion = self.member_by_id(primary_id)
        criterion.set_absolute_order_id(position)

        self.move_member(criterion, position)
        self._update_local_absolute_order_ids()
        return position

    def delete_criterion(self, primary_id: Any) -> Any:
        """Delete a criterion and renumber the rest.

        Returns:
            The id of the deleted criterion
        """
        deleted_id = self.delete_member(primary_id).deleted_id
        self._update_local_absolute_order_ids()
        if self.is_empty():
            self._after_emptied()
        return deleted_id

    def delete_all_criteria(self) -> None:
        self.delete_all_members()
        self._after_emptied()

    def _after_emptied(self) -> None:
        """Called when the last criterion is deleted. Override as needed."""
