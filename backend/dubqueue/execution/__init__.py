"""
Render execution: preset translation, progress interpretation and the
single-job ffmpeg executor.
"""

from .errors import (
    RenderError,
    InvalidOutputPathError,
    EncoderNotFoundError,
    EncodeFailureError,
    RenderCancelledError,
)
from .progress import (
    ProgressReport,
    ProgressParser,
    interpret_progress,
    format_duration,
)
from .options import (
    build_encoder_options,
    build_command,
    map_argument,
    select_video_encoder,
)
from .results import RenderResult
from .executor import RenderExecutor, find_ffmpeg, terminate_process

__all__ = [
    "RenderError",
    "InvalidOutputPathError",
    "EncoderNotFoundError",
    "EncodeFailureError",
    "RenderCancelledError",
    "ProgressReport",
    "ProgressParser",
    "interpret_progress",
    "format_duration",
    "build_encoder_options",
    "build_command",
    "map_argument",
    "select_video_encoder",
    "RenderResult",
    "RenderExecutor",
    "find_ffmpeg",
    "terminate_process",
]
