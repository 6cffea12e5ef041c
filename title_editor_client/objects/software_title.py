"""Software titles, the root of every object tree in the Title Editor."""

from __future__ import annotations

import logging
from datetime import UTC
from datetime import datetime
from typing import Annotated
from typing import Any

from pydantic import Field
from pydantic import PrivateAttr
from pydantic.alias_generators import to_camel

from ..connection import Transport
from ..exceptions import AlreadyExistsError
from ..exceptions import InvalidDataError
from ..exceptions import MissingDataError
from ..exceptions import NotFoundError
from ..lifecycle import ORIGIN_FETCH
from ..lifecycle import APIObject
from ..paths import SOFTWARE_TITLES
from ..paths import object_path
from ..schema import REQUIRED
from ..schema import SERVER_ONLY
from ..schema import UTCDatetime
from .extension_attribute import ExtensionAttribute
from .patch import PatchManager
from .requirement import RequirementManager

logger = logging.getLogger(__name__)

LOCAL_SOURCE_NAME = "Local"
LOCAL_SOURCE_ID = 0

# Summary keys that can identify a title, in the order they're checked
IDENT_KEYS = ("softwareTitleId", "id")


class SoftwareTitle(APIObject):
    """A piece of software whose patches are reported to Jamf Pro.

    Titles are created disabled. A title can be enabled once it has at least
    one requirement and at least one enabled patch.

    Example:
        title = SoftwareTitle.create(
            cnx=cnx, unique_id="com.example.app", name="App", publisher="Example", current_version="1.0"
        )
        title.requirements.add_criterion("Application Title", "is", "App.app")
    """

    RSRC_PATH = SOFTWARE_TITLES
    CONTAINER_RSRC_PATH = None
    PRIMARY_ID_KEY = "software_title_id"

    software_title_id: Annotated[int | None, SERVER_ONLY] = None
    # The unique string identifier, e.g. 'com.example.app'
    unique_id: Annotated[str | None, REQUIRED] = Field(None, alias="id")
    enabled: bool | None = None
    name: Annotated[str | None, REQUIRED] = None
    publisher: Annotated[str | None, REQUIRED] = None
    app_name: str | None = None
    bundle_id: str | None = None
    last_modified: Annotated[UTCDatetime | None, SERVER_ONLY] = None
    current_version: Annotated[str | None, REQUIRED] = None
    source_id: Annotated[int | None, SERVER_ONLY] = None

    _requirements: RequirementManager | None = PrivateAttr(default=None)
    _patches: PatchManager | None = PrivateAttr(default=None)
    _extension_attribute: ExtensionAttribute | None = PrivateAttr(default=None)

    # Class methods
    ##########################

    @classmethod
    def all(cls, cnx: Transport) -> list[dict[str, Any]]:
        """Summaries of every title on the server, as raw API dicts."""
        return cnx.get(cls.RSRC_PATH) or []

    @classmethod
    def all_ids(cls, cnx: Transport) -> list[str]:
        """The unique string ids of all titles."""
        return [summary.get("id") for summary in cls.all(cnx)]

    @classmethod
    def all_software_title_ids(cls, cnx: Transport) -> list[int]:
        """The numeric primary ids of all titles."""
        return [summary.get("softwareTitleId") for summary in cls.all(cnx)]

    @classmethod
    def valid_id(
        cls,
        ident: Any,
        *,
        cnx: Transport,
        key: str | None = None,
        raise_if_not_found: bool = False,
    ) -> int | None:
        """Look up the numeric id of a title.

        Args:
            ident: The numeric id or the unique string id
            cnx: The connection to use
            key: Only match against this attribute (local or API name)
            raise_if_not_found: Raise instead of returning None

        Returns:
            The software_title_id, or None if there's no match

        Raises:
            NotFoundError: If raise_if_not_found and there's no match
        """
        summaries = cls.all(cnx)
        if key is not None:
            api_key = _api_key(key)
            matched = next((s for s in summaries if s.get(api_key) == ident), None)
        else:
            matched = next(
                (s for s in summaries if any(s.get(k) == ident for k in IDENT_KEYS)),
                None,
            )

        value = matched.get("softwareTitleId") if matched else None
        if value is None and raise_if_not_found:
            raise NotFoundError(f"No {cls.__name__} found for identifier '{ident}'")
        return value

    @classmethod
    def fetch(cls, ident: Any = None, *, cnx: Transport, **key_and_ident: Any) -> SoftwareTitle:
        """Fetch a title by numeric id, unique id, or any other summary key.

        Example:
            SoftwareTitle.fetch(12, cnx=cnx)
            SoftwareTitle.fetch("com.example.app", cnx=cnx)
            SoftwareTitle.fetch(name="App", cnx=cnx)

        Raises:
            NotFoundError: If no title matches
        """
        if ident is None and not key_and_ident:
            raise InvalidDataError(f"An identifier, or 'key=identifier', is required to fetch a {cls.__name__}")

        if ident is not None:
            primary_id = cls.valid_id(ident, cnx=cnx, raise_if_not_found=True)
        else:
            key, ident = next(iter(key_and_ident.items()))
            if key == cls.PRIMARY_ID_KEY:
                primary_id = ident
            else:
                primary_id = cls.valid_id(ident, cnx=cnx, key=key, raise_if_not_found=True)

        data = cnx.get(object_path(cls, primary_id))
        return cls._build(data, origin=ORIGIN_FETCH, cnx=cnx)

    @classmethod
    def autofill_patches(cls, ident: Any, *, cnx: Transport) -> list[dict[str, Any]]:
        """Patch data suggested by the server for a title, from its source."""
        primary_id = cls.valid_id(ident, cnx=cnx, raise_if_not_found=True)
        return cnx.get(f"{cls.RSRC_PATH}/{primary_id}/patches/autofill")

    @classmethod
    def autofill_requirements(cls, ident: Any, *, cnx: Transport) -> list[dict[str, Any]]:
        """Requirement data suggested by the server for a title, from its source."""
        primary_id = cls.valid_id(ident, cnx=cnx, raise_if_not_found=True)
        return cnx.get(f"{cls.RSRC_PATH}/{primary_id}/requirements/autofill")

    # Init
    ##########################

    def _init_children(self, data: dict[str, Any]) -> None:
        self._requirements = RequirementManager(data.get("requirements"), container=self)
        self._patches = PatchManager(data.get("patches"), container=self)
        eas = data.get("extensionAttributes") or []
        self._extension_attribute = ExtensionAttribute.instantiate_from_container(self, **eas[0]) if eas else None

    # Properties
    ##########################

    @property
    def requirements(self) -> RequirementManager:
        return self._requirements

    @property
    def patches(self) -> PatchManager:
        return self._patches

    @property
    def extension_attribute(self) -> ExtensionAttribute | None:
        return self._extension_attribute

    @property
    def local(self) -> bool:
        """Was this title made in this Title Editor, rather than from a subscribed source?"""
        return self.source_id == LOCAL_SOURCE_ID

    # Instance methods
    ##########################

    def autofill_patches_for_title(self) -> list[dict[str, Any]]:
        return type(self).autofill_patches(self.software_title_id, cnx=self.cnx)

    def autofill_requirements_for_title(self) -> list[dict[str, Any]]:
        return type(self).autofill_requirements(self.software_title_id, cnx=self.cnx)

    def enable(self) -> str | None:
        """Enable this title.

        Returns:
            'enabled', or None if already enabled

        Raises:
            MissingDataError: Without at least one requirement and one enabled patch
        """
        if self.enabled:
            return None
        if self.requirements.is_empty() or not self.patches.all_enabled():
            raise MissingDataError(
                "SoftwareTitles must have at least one requirement and one enabled patch before they can be enabled"
            )
        self.enabled = True
        return "enabled"

    def disable(self) -> str | None:
        """Disable this title.

        Returns:
            'disabled', or None if already disabled
        """
        if not self.enabled:
            return None
        self.enabled = False
        return "disabled"

    def update_modification_time(self, response: dict[str, Any] | None = None) -> None:
        """Refresh ``last_modified`` after a change anywhere in this title.

        Uses the server's value when the response carries one. Otherwise the
        local clock is used, which may differ slightly from the server; fetch
        the title again for the exact value.
        """
        stamp = (response or {}).get("lastModified")
        if stamp is None:
            stamp = datetime.now(UTC)
        self._set_local("last_modified", stamp)

    # Extension attribute
    ##########################

    def add_extension_attribute(self, key: str, display_name: str, script: str) -> Any:
        """Add the extension attribute of this title. There can be only one.

        Args:
            key: The name of the EA as shown in Jamf Pro
            display_name: The name shown in the Title Editor
            script: The script code, starting with '#!'

        Returns:
            The id of the new extension attribute

        Raises:
            AlreadyExistsError: If the title already has one
        """
        if self._extension_attribute is not None:
            raise AlreadyExistsError(
                "This SoftwareTitle already has an Extension Attribute. Either delete it before creating a new one, "
                "or update the existing one."
            )
        self._extension_attribute = ExtensionAttribute.create(
            container=self, key=key, display_name=display_name, script=script
        )
        return self._extension_attribute.extension_attribute_id

    def delete_extension_attribute(self) -> Any:
        """Delete the extension attribute.

        An attribute that is already gone, here or on the server, is not an
        error.

        Returns:
            The deleted id, or None if there was nothing to delete
        """
        ea = self._extension_attribute
        if ea is None:
            return None
        self._extension_attribute = None
        try:
            return ea.delete()
        except NotFoundError:
            logger.debug(f"Extension attribute of title {self.software_title_id} was already deleted")
            return None

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "software_title_id", "source_id", "enabled")
        return self.software_title_id

    def handle_update_response(self, response: dict[str, Any]) -> Any:
        return self.software_title_id


def _api_key(key: str) -> str:
    """Summary dicts use API names; accept local field names too."""
    info = SoftwareTitle.model_fields.get(key)
    if info is None:
        return key
    return info.alias or to_camel(key)
