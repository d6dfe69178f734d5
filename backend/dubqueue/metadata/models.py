"""
Probed media metadata.

Only the fields the plan compiler and the material list need:
duration, audio presence, frame dimensions, and display summaries.
Missing values are explicit (0 / None), never guessed.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class MediaProbe(BaseModel):
    """Result of probing one media file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    duration_seconds: float = 0.0
    has_audio: bool = False
    has_video: bool = False
    width: int = 0
    height: int = 0
    frame_rate: Optional[float] = None
    audio_codec: Optional[str] = None
    audio_channels: Optional[int] = None
    audio_sample_rate: Optional[int] = None

    @property
    def resolution_text(self) -> str:
        """Display resolution, e.g. ``1920x1080@30``."""
        if not self.width or not self.height:
            return ""
        if self.frame_rate:
            fps = f"{self.frame_rate:.3f}".rstrip("0").rstrip(".")
            return f"{self.width}x{self.height}@{fps}"
        return f"{self.width}x{self.height}"

    @property
    def duration_text(self) -> str:
        """Display duration, e.g. ``00:01:23.450``."""
        total_ms = int(round(self.duration_seconds * 1000))
        hours, rem = divmod(total_ms, 3_600_000)
        minutes, rem = divmod(rem, 60_000)
        seconds, millis = divmod(rem, 1000)
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"

    @property
    def audio_summary(self) -> str:
        if not self.has_audio:
            return ""
        parts = [self.audio_codec or "audio"]
        if self.audio_channels:
            parts.append(f"{self.audio_channels} ch")
        if self.audio_sample_rate:
            parts.append(f"{self.audio_sample_rate} Hz")
        return ", ".join(parts)


def degraded_probe(path: str) -> MediaProbe:
    """Metadata used when probing fails: zero duration, no audio, 0x0."""
    return MediaProbe(path=path)
