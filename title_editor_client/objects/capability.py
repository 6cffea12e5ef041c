"""Patch capabilities: criteria for which computers may install a patch."""

from __future__ import annotations

from typing import Annotated
from typing import Any

from ..criteria import CriteriaManager
from ..criteria import Criterion
from ..paths import CAPABILITIES
from ..paths import PATCHES
from ..schema import SERVER_ONLY


class Capability(Criterion):
    """One capability of a Patch. Fetched only as part of the patch."""

    RSRC_PATH = CAPABILITIES
    CONTAINER_RSRC_PATH = PATCHES
    PRIMARY_ID_KEY = "capability_id"
    FETCHABLE = False

    capability_id: Annotated[int | None, SERVER_ONLY] = None
    patch_id: Annotated[int | None, SERVER_ONLY] = None

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "capability_id", "patch_id", "absolute_order_id")
        return self.capability_id

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        self._apply_response(response, "absolute_order_id")
        return self.capability_id


class CapabilityManager(CriteriaManager):
    """The capabilities of a Patch, from ``Patch.capabilities``."""

    MEMBER_CLASS = Capability

    def _after_emptied(self) -> None:
        # patches without a capability are not valid
        patch = self.container
        if patch is not None:
            patch.disable()
