"""
Encode plan model.

An EncodePlan is derived data: it is recomputed from a job and its preset
on every run and never persisted.
"""

from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..materials import MaterialType


class PlanInput(BaseModel):
    """One encoder input, bound in list order as input 0, 1, 2, ..."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    role: MaterialType
    options: Tuple[str, ...] = ()
    """Input options placed before ``-i`` (e.g. ``("-loop", "1")`` for a still logo)."""


class EncodePlan(BaseModel):
    """
    Compiled, engine-agnostic description of one render.

    video_label/audio_label are either filter graph labels such as ``[v3]``,
    raw stream references such as ``[0:a]``, or, when no filter graph was
    needed, plain stream specifiers such as ``0:v:0``.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    inputs: List[PlanInput]
    filter_graph: Optional[str] = None
    video_label: str
    audio_label: Optional[str] = None
    total_duration: float = 0.0
    output_width: int = 0
    output_height: int = 0
    warnings: List[str] = Field(default_factory=list)

    @property
    def has_audio(self) -> bool:
        return self.audio_label is not None

    @property
    def filter_steps(self) -> List[str]:
        """Individual filter graph segments in emission order."""
        if not self.filter_graph:
            return []
        return self.filter_graph.split(";")
