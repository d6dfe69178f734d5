"""
Directory-backed preset store.

Each preset is one JSON document named after the sanitized preset name.
Listing fails open: an unreadable directory yields no names rather than
an error, so a broken preset folder never stops the application.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from ..storage import read_json, write_json_atomic
from .errors import InvalidPresetNameError, PresetNotFoundError
from .models import Preset

logger = logging.getLogger(__name__)

# Characters not allowed in file names on any supported platform
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_preset_name(name: str) -> str:
    """Replace characters that cannot appear in a file name with ``_``."""
    return _INVALID_FILENAME_CHARS.sub("_", name)


class PresetStore:
    """
    Named presets persisted as individual documents in ``directory``.

    Thread-safety: writes and reads of one document are serialized by
    the shared per-path lock in dubqueue.storage.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, name: str) -> Path:
        return self.directory / (sanitize_preset_name(name) + ".json")

    def list_names(self) -> List[str]:
        """
        List available preset names, sorted case-insensitively.

        Returns:
            Preset names, or an empty list if the directory cannot be read
        """
        try:
            if not self.directory.is_dir():
                return []
            names = [p.stem for p in self.directory.glob("*.json") if p.stem.strip()]
        except OSError as e:
            logger.warning(f"[STORE] Could not list presets in {self.directory}: {e}")
            return []

        return sorted(names, key=str.lower)

    def get(self, name: str) -> Optional[Preset]:
        """
        Load a preset by name.

        The returned preset always carries the requested name, even if
        the document on disk says otherwise.

        Returns:
            The preset, or None if it is missing or unreadable
        """
        if not name or not name.strip():
            return None

        path = self.path_for(name)
        if not path.is_file():
            return None

        try:
            data = read_json(path)
            preset = Preset.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"[STORE] Could not load preset '{name}' from {path}: {e}")
            return None

        return preset.renamed(name)

    def load(self, name: str) -> Preset:
        """
        Load a preset by name.

        Raises:
            PresetNotFoundError: If the preset is missing or unreadable
        """
        preset = self.get(name)
        if preset is None:
            raise PresetNotFoundError(name)
        return preset

    def save(self, preset: Preset) -> Path:
        """
        Persist a preset, replacing any document with the same name.

        Raises:
            InvalidPresetNameError: If the preset name is blank
        """
        if not preset.name or not preset.name.strip():
            raise InvalidPresetNameError(preset.name)

        path = self.path_for(preset.name)
        write_json_atomic(path, preset.model_dump(mode="json"))
        logger.info(f"[STORE] Saved preset '{preset.name}' to {path}")
        return path

    def delete(self, name: str) -> bool:
        """
        Delete a preset document.

        Returns:
            True if deleted, False if it did not exist
        """
        path = self.path_for(name)
        if not path.is_file():
            return False
        path.unlink()
        logger.info(f"[STORE] Deleted preset '{name}'")
        return True
