"""
Encode plan compiler.

Pure translation of (materials, preset, logo settings) into an EncodePlan.
No processes are spawned here; probing is injected.
"""

from .errors import PlanError, MissingMainVideoError
from .plan import PlanInput, EncodePlan
from .labels import LabelAllocator
from .filtergraph import (
    FilterGraphBuilder,
    compile_plan,
    escape_filter_path,
    format_number,
    resolve_logo_position,
)

__all__ = [
    "PlanError",
    "MissingMainVideoError",
    "PlanInput",
    "EncodePlan",
    "LabelAllocator",
    "FilterGraphBuilder",
    "compile_plan",
    "escape_filter_path",
    "format_number",
    "resolve_logo_position",
]
