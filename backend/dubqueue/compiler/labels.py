"""
Filter graph label allocation.

LabelAllocator is an immutable counter set. Each call to ``next`` returns
the new label together with the advanced allocator, so the builder threads
allocation state explicitly instead of sharing mutable counters.
"""

from dataclasses import dataclass, replace
from typing import Tuple

VIDEO = "v"
AUDIO = "a"
LOGO = "l"

_FIELDS = {VIDEO: "video", AUDIO: "audio", LOGO: "logo"}


@dataclass(frozen=True)
class LabelAllocator:
    video: int = 0
    audio: int = 0
    logo: int = 0

    def next(self, prefix: str) -> Tuple[str, "LabelAllocator"]:
        """
        Allocate the next label for ``prefix`` ("v", "a" or "l").

        Returns:
            (label, allocator) where label looks like ``[v1]``
        """
        field_name = _FIELDS[prefix]
        count = getattr(self, field_name) + 1
        return f"[{prefix}{count}]", replace(self, **{field_name: count})


def input_stream(index: int, stream_type: str) -> str:
    """Raw stream reference for input ``index``, e.g. ``[2:a]``."""
    return f"[{index}:{stream_type}]"
