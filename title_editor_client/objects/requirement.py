"""Software title requirements.

A requirement is a criterion that, together with the title's other
requirements, identifies computers with any version of the title installed.
"""

from __future__ import annotations

from typing import Annotated
from typing import Any

from ..criteria import CriteriaManager
from ..criteria import Criterion
from ..paths import REQUIREMENTS
from ..paths import SOFTWARE_TITLES
from ..schema import SERVER_ONLY


class Requirement(Criterion):
    """One requirement of a SoftwareTitle. Fetched only as part of the title."""

    RSRC_PATH = REQUIREMENTS
    CONTAINER_RSRC_PATH = SOFTWARE_TITLES
    PRIMARY_ID_KEY = "requirement_id"
    FETCHABLE = False

    requirement_id: Annotated[int | None, SERVER_ONLY] = None
    software_title_id: Annotated[int | None, SERVER_ONLY] = None

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "requirement_id", "absolute_order_id")
        self._set_local("software_title_id", container_id)
        return self.requirement_id

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        self._apply_response(response, "and_or", "absolute_order_id")
        return self.requirement_id


class RequirementManager(CriteriaManager):
    """The requirements of a SoftwareTitle, from ``SoftwareTitle.requirements``."""

    MEMBER_CLASS = Requirement

    def _after_emptied(self) -> None:
        # titles without requirements can't be enabled
        title = self.container
        if title is not None:
            title.disable()
