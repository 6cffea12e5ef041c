"""Client for the Jamf Title Editor REST API.

Software titles are fetched or created with an explicit connection, and
everything inside them is reached through the title:

    from title_editor_client import Connection, SoftwareTitle

    with Connection(url, user, password) as cnx:
        title = SoftwareTitle.fetch("com.example.app", cnx=cnx)
        title.patches.add_patch("2.0")
"""

from .connection import Connection
from .connection import Transport
from .criteria import TYPE_EA
from .criteria import TYPE_RECON
from .exceptions import AlreadyExistsError
from .exceptions import APIConnectionError
from .exceptions import AuthenticationError
from .exceptions import InvalidDataError
from .exceptions import MissingDataError
from .exceptions import MissingFieldError
from .exceptions import NotFoundError
from .exceptions import ReadOnlyFieldError
from .exceptions import ReplaceRollbackError
from .exceptions import TitleEditorError
from .exceptions import UnsupportedError
from .objects import Capability
from .objects import Component
from .objects import ComponentCriterion
from .objects import ExtensionAttribute
from .objects import KillApp
from .objects import Patch
from .objects import Requirement
from .objects import SoftwareTitle
from .schema import AndOr

__version__ = "0.1.0"

__all__ = [
    # Connection
    "Connection",
    "Transport",
    # Objects
    "SoftwareTitle",
    "Requirement",
    "Patch",
    "Capability",
    "Component",
    "ComponentCriterion",
    "KillApp",
    "ExtensionAttribute",
    "AndOr",
    "TYPE_RECON",
    "TYPE_EA",
    # Errors
    "TitleEditorError",
    "APIConnectionError",
    "AuthenticationError",
    "ReplaceRollbackError",
    "NotFoundError",
    "AlreadyExistsError",
    "UnsupportedError",
    "MissingDataError",
    "MissingFieldError",
    "ReadOnlyFieldError",
    "InvalidDataError",
]
