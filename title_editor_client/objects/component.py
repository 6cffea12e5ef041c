"""Patch components.

A patch has at most one component, whose criteria identify computers that
have exactly that patch's version installed. The server sends components as
a list; Patch hides that and exposes a single ``component``.
"""

from __future__ import annotations

from typing import Annotated
from typing import Any

from pydantic import PrivateAttr

from ..lifecycle import APIObject
from ..paths import COMPONENTS
from ..paths import PATCHES
from ..schema import SERVER_ONLY
from .component_criterion import ComponentCriteriaManager


class Component(APIObject):
    RSRC_PATH = COMPONENTS
    CONTAINER_RSRC_PATH = PATCHES
    PRIMARY_ID_KEY = "component_id"

    component_id: Annotated[int | None, SERVER_ONLY] = None
    patch_id: Annotated[int | None, SERVER_ONLY] = None
    name: str | None = None
    version: str | None = None

    _criteria: ComponentCriteriaManager | None = PrivateAttr(default=None)

    def _init_children(self, data: dict[str, Any]) -> None:
        self._criteria = ComponentCriteriaManager(data.get("criteria"), container=self)

    @property
    def criteria(self) -> ComponentCriteriaManager:
        return self._criteria

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "component_id", "patch_id")
        return self.component_id
