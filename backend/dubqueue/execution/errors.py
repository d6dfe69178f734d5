"""
Render execution errors.

A render error fails one job; the queue records it and moves on.
RenderCancelledError is not a failure: it ends the whole run.
"""

from typing import Optional


class RenderError(Exception):
    """Base exception for render execution failures."""
    pass


class InvalidOutputPathError(RenderError):
    """Raised when a job has no usable output path."""

    def __init__(self, output_path: str, reason: str = "Render job does not contain a valid output path."):
        self.output_path = output_path
        self.reason = reason
        super().__init__(reason if not output_path else f"{reason} ({output_path})")


class EncoderNotFoundError(RenderError):
    """Raised when no ffmpeg binary is configured or on PATH."""

    def __init__(self):
        super().__init__(
            "ffmpeg not found. Install ffmpeg or set DUBQUEUE_FFMPEG to its path."
        )


class EncodeFailureError(RenderError):
    """Raised when the encoder exits non-zero or cannot be started."""

    def __init__(self, exit_code: Optional[int], stderr_tail: str = ""):
        self.exit_code = exit_code
        self.stderr_tail = stderr_tail
        if exit_code is None:
            message = "Encoder could not be started"
        else:
            message = f"Encoder exited with code {exit_code}"
        if stderr_tail:
            message += f": {stderr_tail}"
        super().__init__(message)


class RenderCancelledError(RenderError):
    """Raised when a render is stopped by a cancellation request."""

    def __init__(self, output_path: str = ""):
        self.output_path = output_path
        super().__init__(f"Render cancelled: {output_path}" if output_path else "Render cancelled")
