"""
Render result model.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RenderResult(BaseModel):
    """Outcome of one successful render."""

    model_config = ConfigDict(extra="forbid")

    output_path: str
    command: List[str] = Field(default_factory=list)
    timeline_duration: float = 0.0
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    warnings: List[str] = Field(default_factory=list)

    def duration_seconds(self) -> Optional[float]:
        """Wall-clock render time in seconds."""
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def summary(self) -> str:
        duration = self.duration_seconds()
        duration_str = f" ({duration:.1f}s)" if duration is not None else ""
        warning_str = f" with {len(self.warnings)} warning(s)" if self.warnings else ""
        return f"COMPLETED{duration_str}{warning_str}: {self.output_path}"
