"""
Application configuration.

Values come from the environment with defaults under ~/.dubqueue:

    DUBQUEUE_HOME       data directory (presets/, queue/queue.json)
    DUBQUEUE_FFMPEG     ffmpeg binary (default: PATH lookup)
    DUBQUEUE_FFPROBE    ffprobe binary (default: PATH lookup)
    DUBQUEUE_LOG_LEVEL  logging level name (default: INFO)

Every component also accepts explicit paths, so tests never need the
user's home directory.
"""

import os
import shutil
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_DATA_DIR = Path.home() / ".dubqueue"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data_dir: Path = DEFAULT_DATA_DIR
    ffmpeg_path: Optional[str] = None
    ffprobe_path: Optional[str] = None
    shutdown_delay_seconds: int = Field(default=60, ge=0)
    log_level: str = "INFO"

    @property
    def presets_dir(self) -> Path:
        return self.data_dir / "presets"

    @property
    def queue_file(self) -> Path:
        return self.data_dir / "queue" / "queue.json"


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build the configuration from environment variables."""
    env = os.environ if env is None else env

    data_dir = env.get("DUBQUEUE_HOME")
    return AppConfig(
        data_dir=Path(data_dir).expanduser() if data_dir else DEFAULT_DATA_DIR,
        ffmpeg_path=env.get("DUBQUEUE_FFMPEG") or shutil.which("ffmpeg"),
        ffprobe_path=env.get("DUBQUEUE_FFPROBE") or shutil.which("ffprobe"),
        log_level=(env.get("DUBQUEUE_LOG_LEVEL") or "INFO").upper(),
    )
