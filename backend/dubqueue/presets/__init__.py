"""
Encoding presets: models, directory store and output naming.
"""

from .errors import PresetError, PresetNotFoundError, InvalidPresetNameError
from .models import (
    VideoCodec,
    RateControl,
    HardwareEncoder,
    PixelFormat,
    Container,
    AudioCodec,
    VideoSettings,
    AudioSettings,
    GeneralSettings,
    Preset,
)
from .store import PresetStore, sanitize_preset_name
from .naming import build_suggested_output_name, apply_container_extension

__all__ = [
    "PresetError",
    "PresetNotFoundError",
    "InvalidPresetNameError",
    "VideoCodec",
    "RateControl",
    "HardwareEncoder",
    "PixelFormat",
    "Container",
    "AudioCodec",
    "VideoSettings",
    "AudioSettings",
    "GeneralSettings",
    "Preset",
    "PresetStore",
    "sanitize_preset_name",
    "build_suggested_output_name",
    "apply_container_extension",
]
