"""
Material list operations.

A project's materials are kept as a plain ordered list of immutable
Material values. Operations return new lists; indices are renumbered
1..N after every change so the list order is the timeline order.
"""

import logging
from typing import Callable, List, Optional, Sequence

from ..metadata import MediaProbe, MetadataError, probe_media
from .errors import DuplicateMaterialError, MaterialNotFoundError
from .models import Material, MaterialType, SINGLETON_TYPES

logger = logging.getLogger(__name__)


def renumber(materials: Sequence[Material]) -> List[Material]:
    """Assign indices 1..N in list order."""
    return [m.with_index(i + 1) for i, m in enumerate(materials)]


def validate_materials(materials: Sequence[Material]) -> None:
    """
    Enforce the per-job cardinality rules.

    Raises:
        DuplicateMaterialError: If a single-instance type appears twice
    """
    seen = set()
    for material in materials:
        if material.type not in SINGLETON_TYPES:
            continue
        if material.type in seen:
            raise DuplicateMaterialError(material.type.value)
        seen.add(material.type)


def attach(materials: Sequence[Material], material: Material) -> List[Material]:
    """
    Attach a material.

    A single-instance type replaces the existing one in place; Audio is
    appended. Intro is inserted before everything else and Video right
    after it; everything else is appended, so timeline entries stay in
    playback order.
    """
    result = list(materials)

    if material.type in SINGLETON_TYPES:
        for i, existing in enumerate(result):
            if existing.type == material.type:
                result[i] = material
                return renumber(result)

    if material.type == MaterialType.INTRO:
        result.insert(0, material)
    elif material.type == MaterialType.VIDEO:
        position = 1 if result and result[0].type == MaterialType.INTRO else 0
        result.insert(position, material)
    else:
        result.append(material)

    return renumber(result)


def detach(materials: Sequence[Material], index: int) -> List[Material]:
    """
    Remove the material with the given index.

    Raises:
        MaterialNotFoundError: If no material has that index
    """
    remaining = [m for m in materials if m.index != index]
    if len(remaining) == len(materials):
        raise MaterialNotFoundError(index)
    return renumber(remaining)


def probe_material(
    path: str,
    material_type: MaterialType,
    index: int = 0,
    probe: Optional[Callable[[str], MediaProbe]] = None,
) -> Material:
    """
    Build a Material for ``path`` with display metadata from ffprobe.

    A failed probe is not fatal: the material is created with empty
    metadata and a warning is logged.
    """
    probe = probe or probe_media
    try:
        info = probe(path)
    except MetadataError as e:
        logger.warning(f"[PROBE] Could not read metadata for {path}: {e}")
        return Material(type=material_type, path=path, index=index)

    return Material(
        type=material_type,
        path=path,
        duration=info.duration_text if info.duration_seconds > 0 else "",
        resolution=info.resolution_text,
        audio_summary=info.audio_summary,
        index=index,
    )
