"""
Asset model: typed material references and logo placement.

Materials are passive data. The plan compiler partitions them into
timeline entries and side channels at render time.
"""

from .errors import MaterialError, DuplicateMaterialError, MaterialNotFoundError
from .models import (
    MaterialType,
    Material,
    LogoAnchor,
    LogoSettings,
    DEFAULT_LOGO_SETTINGS,
    TIMELINE_TYPES,
    SINGLETON_TYPES,
    find_material,
)
from .collection import attach, detach, renumber, validate_materials, probe_material

__all__ = [
    "MaterialError",
    "DuplicateMaterialError",
    "MaterialNotFoundError",
    "MaterialType",
    "Material",
    "LogoAnchor",
    "LogoSettings",
    "DEFAULT_LOGO_SETTINGS",
    "TIMELINE_TYPES",
    "SINGLETON_TYPES",
    "find_material",
    "attach",
    "detach",
    "renumber",
    "validate_materials",
    "probe_material",
]
