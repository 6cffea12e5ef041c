"""Kill apps: applications that must not be running while a patch installs."""

from __future__ import annotations

from typing import Annotated
from typing import Any

from ..array_manager import ArrayManager
from ..lifecycle import APIObject
from ..paths import KILL_APPS
from ..paths import PATCHES
from ..schema import REQUIRED
from ..schema import SERVER_ONLY


class KillApp(APIObject):
    """An app that is quit (or that the user is asked to quit) before a patch installs."""

    RSRC_PATH = KILL_APPS
    CONTAINER_RSRC_PATH = PATCHES
    PRIMARY_ID_KEY = "kill_app_id"

    kill_app_id: Annotated[int | None, SERVER_ONLY] = None
    patch_id: Annotated[int | None, SERVER_ONLY] = None
    bundle_id: Annotated[str | None, REQUIRED] = None
    app_name: Annotated[str | None, REQUIRED] = None

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "kill_app_id", "patch_id")
        return self.kill_app_id


class KillAppManager(ArrayManager[KillApp]):
    """The kill apps of a Patch, from ``Patch.kill_apps``. Unordered."""

    MEMBER_CLASS = KillApp

    def add_kill_app(self, app_name: str, bundle_id: str) -> Any:
        """Add an app that can't be running while the patch installs.

        Args:
            app_name: e.g. 'Safari.app'
            bundle_id: e.g. 'com.apple.Safari'

        Returns:
            The id of the new kill app
        """
        new_ka = KillApp.create(container=self.container, app_name=app_name, bundle_id=bundle_id)
        self.add_member(new_ka)
        return new_ka.primary_id

    def update_kill_app(self, kill_app_id: Any, **attribs: Any) -> Any:
        """Change attributes of a kill app. Returns its id."""
        return self.update_member(kill_app_id, **attribs).kill_app_id

    def delete_kill_app(self, kill_app_id: Any) -> Any:
        """Delete a kill app. Returns the deleted id."""
        return self.delete_member(kill_app_id).deleted_id

    def delete_all_kill_apps(self) -> None:
        self.delete_all_members()
