"""Concrete Title Editor resource kinds and their managers."""

from .capability import Capability
from .capability import CapabilityManager
from .component import Component
from .component_criterion import ComponentCriteriaManager
from .component_criterion import ComponentCriterion
from .extension_attribute import ExtensionAttribute
from .kill_app import KillApp
from .kill_app import KillAppManager
from .patch import Patch
from .patch import PatchManager
from .requirement import Requirement
from .requirement import RequirementManager
from .software_title import SoftwareTitle

__all__ = [
    # Root
    "SoftwareTitle",
    "ExtensionAttribute",
    # Requirements
    "Requirement",
    "RequirementManager",
    # Patches
    "Patch",
    "PatchManager",
    "Capability",
    "CapabilityManager",
    "Component",
    "ComponentCriterion",
    "ComponentCriteriaManager",
    "KillApp",
    "KillAppManager",
]
