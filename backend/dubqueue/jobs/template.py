"""
Render job templates.

A template is a Pending RenderJob built from the materials of the open
project. Applying a preset fills the container extension and a suggested
output path.
"""

import os
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from ..compiler import MissingMainVideoError
from ..materials import LogoSettings, Material, MaterialType, find_material, renumber, validate_materials
from ..presets import Preset, apply_container_extension, build_suggested_output_name
from .models import JobStatus, RenderJob


def build_render_job(
    materials: Sequence[Material],
    preset_name: str,
    logo: LogoSettings,
    output_folder: Optional[str] = None,
    title: Optional[str] = None,
) -> RenderJob:
    """
    Build a Pending job from project materials.

    Args:
        materials: Project materials; timeline order follows their index
        preset_name: Name of the preset the job will render with
        logo: Logo settings snapshot for this job
        output_folder: Defaults to the main video's folder
        title: Defaults to the main video's base name

    Raises:
        MissingMainVideoError: If there is no Video material
        DuplicateMaterialError: If a single-instance type appears twice
    """
    validate_materials(materials)

    main_video = find_material(materials, MaterialType.VIDEO)
    if main_video is None:
        raise MissingMainVideoError("Add a main video before queueing the project.")

    folder = output_folder or os.path.dirname(main_video.path)

    return RenderJob(
        title=title or Path(main_video.path).stem or "Project",
        preset_name=preset_name,
        main_video_path=main_video.path,
        # Stable sort: unnumbered (index 0) materials keep their list order
        materials=renumber(sorted(materials, key=lambda m: m.index)),
        logo=logo,
        output_folder=folder,
        status=JobStatus.PENDING,
    )


def apply_preset(job: RenderJob, preset: Preset, now: Optional[datetime] = None) -> RenderJob:
    """
    Apply preset-derived output fields to ``job`` in place.

    Sets the container extension. A blank output path gets the suggested
    name inside the output folder; an existing path has its extension
    swapped when it differs.
    """
    extension = preset.container_extension
    job.container_ext = extension

    if not job.output_path.strip():
        name = build_suggested_output_name(job, preset, now)
        job.output_path = os.path.join(job.output_folder, name) if job.output_folder else name
    else:
        job.output_path = apply_container_extension(job.output_path, extension)

    return job
