"""
Render job models.

A RenderJob is the unit of work in the queue. It is mutable only while
Pending; the queue engine owns every status change after that.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..materials import DEFAULT_LOGO_SETTINGS, LogoSettings, Material


class JobStatus(str, Enum):
    """
    Job status.

    Pending -> Processing -> Completed | Failed | Cancelled
    """

    PENDING = "Pending"  # Queued, not yet started
    PROCESSING = "Processing"  # Being rendered now
    COMPLETED = "Completed"  # Output written
    FAILED = "Failed"  # Render failed; the run continued
    CANCELLED = "Cancelled"  # Run cancelled, or interrupted by a crash


class RenderJob(BaseModel):
    """
    One queued render.

    The logo settings are a frozen snapshot taken when the job was built;
    later edits in the project never reach queued jobs.
    """

    model_config = ConfigDict(extra="forbid")

    # Identity
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sequence_id: int = 0  # 1..N, processing order

    title: str = "Project"  # From the main video file name
    preset_name: str = ""
    main_video_path: str = ""
    materials: List[Material] = Field(default_factory=list)
    logo: LogoSettings = DEFAULT_LOGO_SETTINGS

    # Output
    output_path: str = ""  # Full path including extension
    output_folder: str = ""
    container_ext: str = ".mp4"  # From the preset container

    # State
    status: JobStatus = JobStatus.PENDING
    failure_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # User options
    shutdown_when_completed: bool = False
    gpu_acceleration: bool = True

    @property
    def display_name(self) -> str:
        """Output file name, or the title when no output is set yet."""
        if self.output_path:
            return self.output_path.replace("\\", "/").rsplit("/", 1)[-1]
        return self.title
