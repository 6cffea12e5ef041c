"""Patches: specific versions of a software title, newest first."""

from __future__ import annotations

import logging
from typing import Annotated
from typing import Any

from pydantic import PrivateAttr

from ..array_manager import ArrayManager
from ..exceptions import AlreadyExistsError
from ..exceptions import MissingDataError
from ..lifecycle import OrderedAPIObject
from ..paths import PATCHES
from ..paths import SOFTWARE_TITLES
from ..schema import REQUIRED
from ..schema import SERVER_ONLY
from ..schema import UTCDatetime
from .capability import CapabilityManager
from .component import Component
from .kill_app import KillAppManager

logger = logging.getLogger(__name__)


class Patch(OrderedAPIObject):
    """One version of a SoftwareTitle.

    Patches can't be enabled when created. Add capabilities and a component
    with criteria first, then call ``enable``.
    """

    RSRC_PATH = PATCHES
    CONTAINER_RSRC_PATH = SOFTWARE_TITLES
    PRIMARY_ID_KEY = "patch_id"

    patch_id: Annotated[int | None, SERVER_ONLY] = None
    software_title_id: Annotated[int | None, SERVER_ONLY] = None
    enabled: bool | None = None
    version: Annotated[str | None, REQUIRED] = None
    release_date: UTCDatetime | None = None
    # Can this be installed when no earlier version is? Reporting only.
    standalone: bool | None = None
    # Reporting only. Use a capability to actually require an OS version.
    minimum_operating_system: str | None = None
    reboot: bool | None = None

    _capabilities: CapabilityManager | None = PrivateAttr(default=None)
    _kill_apps: KillAppManager | None = PrivateAttr(default=None)
    _component: Component | None = PrivateAttr(default=None)

    def _init_children(self, data: dict[str, Any]) -> None:
        self._capabilities = CapabilityManager(data.get("capabilities"), container=self)
        self._kill_apps = KillAppManager(data.get("killApps"), container=self)
        components = data.get("components") or []
        self._component = Component.instantiate_from_container(self, **components[0]) if components else None

    @property
    def capabilities(self) -> CapabilityManager:
        return self._capabilities

    @property
    def kill_apps(self) -> KillAppManager:
        return self._kill_apps

    @property
    def component(self) -> Component | None:
        return self._component

    # Enabling
    ##########################

    def enable(self) -> str | None:
        """Enable this patch.

        Also makes this version the title's current version when it is the
        newest enabled patch.

        Returns:
            'enabled', or None if already enabled

        Raises:
            MissingDataError: Without at least one capability and a component
                with at least one criterion
        """
        if self.enabled:
            return None
        if self.capabilities.is_empty() or self.component is None or self.component.criteria.is_empty():
            raise MissingDataError(
                "Patches must have at least one capability, and a component with at least one criterion, "
                "before they can be enabled"
            )

        self.enabled = True

        title = self.container
        if title is not None and title.patches.all_enabled()[0] is self:
            title.current_version = self.version
        return "enabled"

    def disable(self) -> str | None:
        """Disable this patch.

        A title with no enabled patches can't stay enabled, so the title is
        disabled too if this was its last one.

        Returns:
            'disabled', or None if already disabled
        """
        if not self.enabled:
            return None
        self.enabled = False

        title = self.container
        if title is not None and title.enabled and not title.patches.all_enabled():
            logger.info(f"Disabling title {title.primary_id}: no enabled patches remain")
            title.disable()
        return "disabled"

    # Component
    ##########################

    def add_component(self, name: str, version: str) -> Any:
        """Add the component of this patch. There can be only one.

        Args:
            name: Usually the name of the software title
            version: Usually the version of this patch

        Returns:
            The id of the new component

        Raises:
            AlreadyExistsError: If the patch already has a component
        """
        if self._component is not None:
            raise AlreadyExistsError(
                "This Patch already has a Component. Either delete it before creating a new one, "
                "or update the existing one."
            )
        self._component = Component.create(container=self, name=name, version=version)
        return self._component.component_id

    def delete_component(self) -> Any:
        """Delete the component. The patch is disabled, as it is no longer valid.

        Returns:
            The id of the deleted component, or None if there wasn't one
        """
        if self._component is None:
            return None
        deleted_id = self._component.delete()
        self._component = None
        self.disable()
        return deleted_id

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "patch_id", "absolute_order_id", "enabled")
        self._set_local("software_title_id", container_id)
        return self.patch_id

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        self._apply_response(response, "absolute_order_id")
        return self.patch_id


class PatchManager(ArrayManager[Patch]):
    """The patches of a SoftwareTitle, from ``SoftwareTitle.patches``.

    Patches are ordered newest to oldest; position 0 is the newest.
    """

    MEMBER_CLASS = Patch

    def all_enabled(self) -> list[Patch]:
        """The currently enabled patches, newest first."""
        return [p for p in self._members if p.enabled]

    def patch_ids_to_versions(self) -> dict[Any, str | None]:
        return {p.patch_id: p.version for p in self._members}

    def add_patch(
        self,
        version: str,
        minimum_operating_system: str | None = None,
        release_date: Any = None,
        reboot: bool | None = None,
        standalone: bool | None = None,
        absolute_order_id: int = 0,
    ) -> Any:
        """Add a patch. It can't be enabled until it has capabilities and a component.

        Args:
            version: The version of the title installed by this patch
            minimum_operating_system: Lowest OS the patch runs on
            release_date: When the patch became available (datetime or ISO string)
            reboot: Does installing the patch require a reboot?
            standalone: Can this be installed with no earlier version present?
            absolute_order_id: Zero-based position, newest first. Defaults to
                0, making this the newest patch.

        Returns:
            The id of the new patch
        """
        position = max(0, min(absolute_order_id, len(self._members)))
        new_patch = Patch.create(
            container=self.container,
            version=version,
            minimum_operating_system=minimum_operating_system,
            release_date=release_date,
            reboot=reboot,
            standalone=standalone,
            absolute_order_id=position,
        )
        self.add_member(new_patch, index=position)
        self._update_local_absolute_order_ids()
        return new_patch.patch_id

    def update_patch(self, patch_id: Any, **attribs: Any) -> Any:
        """Change attributes of a patch.

        To change its position use ``move_patch``.

        Returns:
            The id of the updated patch
        """
        position = attribs.pop("absolute_order_id", None)
        patch = self.update_member(patch_id, **attribs)
        if position is not None:
            patch.set_absolute_order_id(position)
            self.move_member(patch, patch.absolute_order_id)
            self._update_local_absolute_order_ids()
        return patch.patch_id

    def move_patch(self, patch_id: Any, absolute_order_id: int) -> int:
        """Move a patch to a new position, clamped to the list.

        Returns:
            The new position
        """
        position = max(0, min(absolute_order_id, len(self._members) - 1))
        self.update_patch(patch_id, absolute_order_id=position)
        return position

    def delete_patch(self, patch_id: Any) -> Any:
        """Delete a patch.

        If no enabled patch remains, the title is disabled.

        Returns:
            The id of the deleted patch
        """
        patch = self.delete_member(patch_id)
        self._update_local_absolute_order_ids()
        self._disable_title_if_no_enabled_patches()
        return patch.deleted_id

    def delete_all_patches(self) -> None:
        self.delete_all_members()
        self._disable_title_if_no_enabled_patches()

    def _disable_title_if_no_enabled_patches(self) -> None:
        title = self.container
        if title is not None and title.enabled and not self.all_enabled():
            logger.info(f"Disabling title {title.primary_id}: no enabled patches remain")
            title.disable()
