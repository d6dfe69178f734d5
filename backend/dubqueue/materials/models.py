"""
Material and logo placement models.

Materials are typed file references attached to a project:
- Timeline materials (Intro, Video, Outro) occupy track time, in index order
- Side-channel materials (Logo, Subtitles, Audio) augment the timeline

Materials are immutable once probed. The only permitted change is index
renumbering, which produces a new instance.

LogoSettings is a frozen value. Editors work on their own draft and commit
a new snapshot; queued jobs never share a live instance.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MaterialType(str, Enum):
    """Role a file plays in a render job."""

    INTRO = "Intro"
    VIDEO = "Video"
    LOGO = "Logo"
    SUBTITLES = "Subtitles"
    AUDIO = "Audio"
    OUTRO = "Outro"


# Types that occupy a position in the sequential video track
TIMELINE_TYPES = frozenset({MaterialType.INTRO, MaterialType.VIDEO, MaterialType.OUTRO})

# Types allowed at most once per job (Audio is a set)
SINGLETON_TYPES = frozenset({
    MaterialType.INTRO,
    MaterialType.VIDEO,
    MaterialType.OUTRO,
    MaterialType.LOGO,
    MaterialType.SUBTITLES,
})


class Material(BaseModel):
    """
    A file attached to a project, with probed display metadata.

    duration/resolution/audio_summary are display strings filled at attach
    time (e.g. "00:01:23.450", "1920x1080@30", "aac, 2 ch, 48000 Hz").
    The plan compiler re-probes timeline entries at render time and does
    not rely on these strings.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: MaterialType
    path: str
    duration: str = ""
    resolution: str = ""
    audio_summary: str = ""
    index: int = 0

    @property
    def is_timeline(self) -> bool:
        return self.type in TIMELINE_TYPES

    def with_index(self, index: int) -> "Material":
        """Return a copy renumbered to ``index``."""
        return self.model_copy(update={"index": index})


class LogoAnchor(str, Enum):
    """Corner-based logo placement."""

    TOP_LEFT = "TopLeft"
    TOP_RIGHT = "TopRight"
    BOTTOM_LEFT = "BottomLeft"
    BOTTOM_RIGHT = "BottomRight"


class LogoSettings(BaseModel):
    """
    Logo overlay placement.

    Exactly one placement mode is active: when use_manual_placement is set,
    (manual_x, manual_y) override the anchor.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    anchor: LogoAnchor = LogoAnchor.BOTTOM_RIGHT
    use_manual_placement: bool = False
    manual_x: float = 0.0
    manual_y: float = 0.0
    opacity: float = Field(default=1.0, ge=0.0, le=1.0)
    scale_percent: float = Field(default=100.0, gt=0.0)

    def with_manual_position(self, x: float, y: float) -> "LogoSettings":
        return self.model_copy(update={
            "manual_x": x,
            "manual_y": y,
            "use_manual_placement": True,
        })

    def with_anchor(self, anchor: LogoAnchor) -> "LogoSettings":
        return self.model_copy(update={
            "anchor": anchor,
            "use_manual_placement": False,
        })

    def with_opacity_percent(self, percent: float) -> "LogoSettings":
        """Set opacity from a 0-100 slider value (clamped)."""
        clamped = min(max(percent, 0.0), 100.0)
        return self.model_copy(update={"opacity": clamped / 100.0})

    def with_scale_percent(self, percent: float) -> "LogoSettings":
        # Validate through the model so scale_percent > 0 still holds
        return LogoSettings.model_validate({**self.model_dump(), "scale_percent": percent})


DEFAULT_LOGO_SETTINGS = LogoSettings()


def find_material(materials, material_type: MaterialType) -> Optional[Material]:
    """Return the first material of ``material_type`` or None."""
    for material in materials:
        if material.type == material_type:
            return material
    return None
