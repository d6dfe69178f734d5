"""
Preset-specific error types.

All errors inherit from PresetError for easy catching.
"""


class PresetError(Exception):
    """Base exception for all preset failures."""
    pass


class PresetNotFoundError(PresetError):
    """Raised when a preset cannot be loaded by name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Preset '{name}' could not be loaded. "
            f"Remove the item or choose a different preset."
        )


class InvalidPresetNameError(PresetError):
    """Raised when saving a preset without a usable name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid preset name: {name!r}")
