"""Criteria of a patch component."""

from __future__ import annotations

from typing import Annotated
from typing import Any

from ..criteria import CriteriaManager
from ..criteria import Criterion
from ..paths import COMPONENTS
from ..paths import CRITERIA
from ..schema import SERVER_ONLY


class ComponentCriterion(Criterion):
    """One criterion identifying computers with a specific patch version."""

    RSRC_PATH = CRITERIA
    CONTAINER_RSRC_PATH = COMPONENTS
    PRIMARY_ID_KEY = "criteria_id"

    criteria_id: Annotated[int | None, SERVER_ONLY] = None
    component_id: Annotated[int | None, SERVER_ONLY] = None

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "criteria_id", "component_id", "absolute_order_id")
        return self.criteria_id

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        self._apply_response(response, "absolute_order_id")
        return self.criteria_id


class ComponentCriteriaManager(CriteriaManager):
    """The criteria of a Component, from ``Component.criteria``."""

    MEMBER_CLASS = ComponentCriterion

    def _after_emptied(self) -> None:
        # a patch whose component has no criteria can't stay enabled
        component = self.container
        patch = component.container if component is not None else None
        if patch is not None:
            patch.disable()
