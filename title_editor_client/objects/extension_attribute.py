"""Software title extension attributes.

A title may have one extension attribute: a script run on computers whose
output can be used by criteria of type 'extensionAttribute'. The script is
stored base64-encoded in ``value``.
"""

from __future__ import annotations

import base64
from typing import Annotated
from typing import Any

from ..exceptions import InvalidDataError
from ..lifecycle import APIObject
from ..paths import EXTENSION_ATTRIBUTES
from ..paths import SOFTWARE_TITLES
from ..schema import REQUIRED
from ..schema import SERVER_ONLY


def encode_script(code: str) -> str:
    if not str(code).startswith("#!"):
        raise InvalidDataError("Code must be a string starting with #!")
    return base64.b64encode(code.encode("utf-8")).decode("ascii")


class ExtensionAttribute(APIObject):
    """The extension attribute of a SoftwareTitle.

    Use SoftwareTitle.add_extension_attribute and
    SoftwareTitle.delete_extension_attribute rather than creating or deleting
    these directly.
    """

    RSRC_PATH = EXTENSION_ATTRIBUTES
    CONTAINER_RSRC_PATH = SOFTWARE_TITLES
    PRIMARY_ID_KEY = "extension_attribute_id"

    extension_attribute_id: Annotated[int | None, SERVER_ONLY] = None
    software_title_id: Annotated[int | None, SERVER_ONLY] = None
    # Name of the EA in Jamf Pro. Must be unique there and in the Title Editor.
    key: Annotated[str | None, REQUIRED] = None
    value: str | None = None
    display_name: Annotated[str | None, REQUIRED] = None

    @classmethod
    def create(cls, container: APIObject | None = None, cnx: Any = None, **init_data: Any):
        """Create, accepting a raw ``script`` in place of an encoded ``value``."""
        script = init_data.pop("script", None)
        if script is not None:
            init_data["value"] = encode_script(script)
        return super().create(container=container, cnx=cnx, **init_data)

    @property
    def script(self) -> str | None:
        """The decoded script, or None if there isn't one."""
        if not self.value:
            return None
        return base64.b64decode(self.value).decode("utf-8")

    @script.setter
    def script(self, code: str) -> None:
        self.value = encode_script(code)

    def handle_create_response(self, response: dict[str, Any], container_id: Any = None) -> Any:
        self._apply_response(response, "extension_attribute_id")
        self._set_local("software_title_id", container_id)
        return self.extension_attribute_id
