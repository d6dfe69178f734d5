"""
Media probing using ffprobe.

This module uses ffprobe (part of ffmpeg) to read duration, stream presence
and frame dimensions from media files. Probing is read-only.

Failures raise MetadataExtractionError; callers decide whether a failure is
fatal. The plan compiler treats it as a soft failure and degrades metadata.
"""

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import FFProbeNotFoundError, MetadataExtractionError
from .models import MediaProbe

logger = logging.getLogger(__name__)

# Cache ffprobe lookup
_ffprobe_path: Optional[str] = None


def find_ffprobe() -> Optional[str]:
    """
    Locate the ffprobe binary.

    Result is cached after the first successful lookup.

    Returns:
        Absolute path to ffprobe, or None if not installed
    """
    global _ffprobe_path

    if _ffprobe_path is None:
        _ffprobe_path = shutil.which("ffprobe")

    return _ffprobe_path


def probe_media(filepath: str, ffprobe_path: Optional[str] = None) -> MediaProbe:
    """
    Probe a media file.

    Args:
        filepath: Path to the media file
        ffprobe_path: Explicit ffprobe binary (defaults to PATH lookup)

    Returns:
        MediaProbe with duration, audio presence and dimensions

    Raises:
        FFProbeNotFoundError: If ffprobe is not available
        MetadataExtractionError: If the file is missing or cannot be parsed
    """
    binary = ffprobe_path or find_ffprobe()
    if not binary:
        raise FFProbeNotFoundError()

    path = Path(filepath)
    if not path.is_file():
        raise MetadataExtractionError(filepath, "File does not exist")

    try:
        probe_data = _run_ffprobe(binary, filepath)
    except subprocess.CalledProcessError as e:
        raise MetadataExtractionError(
            filepath, f"ffprobe failed with exit code {e.returncode}"
        ) from e
    except json.JSONDecodeError as e:
        raise MetadataExtractionError(
            filepath, f"Failed to parse ffprobe output: {e}"
        ) from e
    except OSError as e:
        raise MetadataExtractionError(filepath, f"Could not run ffprobe: {e}") from e

    return parse_probe_data(filepath, probe_data)


def _run_ffprobe(binary: str, filepath: str) -> Dict[str, Any]:
    """
    Run ffprobe and return parsed JSON output.

    Raises:
        subprocess.CalledProcessError: If ffprobe fails
        json.JSONDecodeError: If output is not valid JSON
    """
    cmd = [
        binary,
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        filepath,
    ]

    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        check=True,
    )

    return json.loads(result.stdout)


def parse_probe_data(filepath: str, probe_data: Dict[str, Any]) -> MediaProbe:
    """
    Convert raw ffprobe JSON into a MediaProbe.

    Still images (logos) report no duration; that is not an error.
    """
    streams = probe_data.get("streams") or []
    format_info = probe_data.get("format") or {}

    video_stream = next(
        (s for s in streams if s.get("codec_type") == "video"), None
    )
    audio_stream = next(
        (s for s in streams if s.get("codec_type") == "audio"), None
    )

    duration = _parse_float(format_info.get("duration"))
    if duration is None and video_stream:
        duration = _parse_float(video_stream.get("duration"))
    if duration is None and audio_stream:
        duration = _parse_float(audio_stream.get("duration"))

    width = height = 0
    frame_rate = None
    if video_stream:
        width = int(video_stream.get("width") or 0)
        height = int(video_stream.get("height") or 0)
        frame_rate = _parse_rational(video_stream.get("r_frame_rate"))
        if not frame_rate:
            frame_rate = _parse_rational(video_stream.get("avg_frame_rate"))

    audio_codec = audio_channels = audio_sample_rate = None
    if audio_stream:
        audio_codec = audio_stream.get("codec_name")
        audio_channels = audio_stream.get("channels")
        audio_sample_rate = _parse_int(audio_stream.get("sample_rate"))

    logger.debug(
        f"[PROBE] {filepath}: duration={duration} video={video_stream is not None} "
        f"audio={audio_stream is not None} size={width}x{height}"
    )

    return MediaProbe(
        path=filepath,
        duration_seconds=max(duration or 0.0, 0.0),
        has_audio=audio_stream is not None,
        has_video=video_stream is not None,
        width=width,
        height=height,
        frame_rate=frame_rate or None,
        audio_codec=audio_codec,
        audio_channels=audio_channels,
        audio_sample_rate=audio_sample_rate,
    )


def _parse_float(value: Any) -> Optional[float]:
    if value in (None, "", "N/A"):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_int(value: Any) -> Optional[int]:
    parsed = _parse_float(value)
    return int(parsed) if parsed is not None else None


def _parse_rational(value: Optional[str]) -> Optional[float]:
    """Parse an ffprobe rational such as ``30000/1001``."""
    if not value:
        return None
    if "/" not in value:
        return _parse_float(value)
    num, _, den = value.partition("/")
    numerator = _parse_float(num)
    denominator = _parse_float(den)
    if not numerator or not denominator:
        return None
    return numerator / denominator
