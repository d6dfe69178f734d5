"""
Media probing for render materials.

Wraps ffprobe to read duration, audio presence and frame size.
"""

from .errors import (
    MetadataError,
    MetadataExtractionError,
    FFProbeNotFoundError,
)
from .models import MediaProbe, degraded_probe
from .extractors import probe_media, parse_probe_data, find_ffprobe

__all__ = [
    "MetadataError",
    "MetadataExtractionError",
    "FFProbeNotFoundError",
    "MediaProbe",
    "degraded_probe",
    "probe_media",
    "parse_probe_data",
    "find_ffprobe",
]
