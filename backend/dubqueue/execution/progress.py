"""
Encoder progress interpretation.

The encoder is started with ``-progress pipe:1`` and writes blocks of
key=value lines to stdout, each block closed by ``progress=continue`` or
``progress=end``:

    frame=240
    fps=48.00
    bitrate=1520.3kbits/s
    out_time_us=8000000
    out_time=00:00:08.000000
    speed=1.6x
    progress=continue

ProgressParser turns each block into a ProgressReport. interpret_progress
turns one report into a completion fraction for the job.

Resolution order for the fraction (first match wins):
    percent -> fraction -> processed_time / total_duration -> 0
Percent and fraction values above 1 are treated as percentages and divided
by 100. The result is always clamped to [0, 1].
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class ProgressReport:
    """One progress sample. Every field is optional except ``finished``."""

    percent: Optional[float] = None
    fraction: Optional[float] = None
    processed_time: Optional[float] = None
    frame: Optional[int] = None
    fps: Optional[float] = None
    speed: Optional[float] = None
    bitrate_kbps: Optional[float] = None
    finished: bool = False


def _normalize(value: float) -> float:
    if abs(value) > 1:
        value /= 100.0
    return min(max(value, 0.0), 1.0)


def interpret_progress(report: ProgressReport, total_duration: float) -> float:
    """
    Convert a progress sample into a completion fraction in [0, 1].

    Args:
        report: The progress sample
        total_duration: Job timeline duration in seconds (0 if unknown)

    Returns:
        Completion fraction for this sample. Ordering across samples is the
        caller's concern.
    """
    if report.percent is not None:
        return _normalize(report.percent)

    if report.fraction is not None:
        return _normalize(report.fraction)

    if total_duration > 0 and report.processed_time is not None:
        return min(max(report.processed_time / total_duration, 0.0), 1.0)

    return 0.0


def parse_timestamp(value: str) -> Optional[float]:
    """Parse ``HH:MM:SS.ffffff`` (hours may exceed 24) into seconds."""
    parts = value.strip().split(":")
    if len(parts) != 3:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
        seconds = float(parts[2])
    except ValueError:
        return None
    sign = -1 if value.strip().startswith("-") else 1
    return sign * (abs(hours) * 3600 + minutes * 60 + seconds)


def _number(value: Optional[str], suffix: str = "") -> Optional[float]:
    if value is None:
        return None
    text = value.strip()
    if suffix and text.endswith(suffix):
        text = text[: -len(suffix)]
    if not text or text == "N/A":
        return None
    try:
        return float(text)
    except ValueError:
        return None


class ProgressParser:
    """
    Incremental parser for ``-progress`` output.

    Usage:
        parser = ProgressParser()
        for line in process.stdout:
            report = parser.feed_line(line)
            if report:
                fraction = interpret_progress(report, duration)
    """

    def __init__(self):
        self._fields: Dict[str, str] = {}

    def feed_line(self, line: str) -> Optional[ProgressReport]:
        """
        Consume one line.

        Returns:
            A ProgressReport when the line closes a block, None otherwise
        """
        key, sep, value = line.strip().partition("=")
        if not sep:
            return None

        key = key.strip()
        value = value.strip()

        if key != "progress":
            self._fields[key] = value
            return None

        report = self._build_report(finished=(value == "end"))
        self._fields = {}
        return report

    def _build_report(self, finished: bool) -> ProgressReport:
        fields = self._fields

        # out_time_ms is reported in microseconds by ffmpeg, like out_time_us
        processed_time = None
        for key in ("out_time_us", "out_time_ms"):
            micros = _number(fields.get(key))
            if micros is not None:
                processed_time = micros / 1_000_000
                break
        if processed_time is None and fields.get("out_time"):
            processed_time = parse_timestamp(fields["out_time"])

        frame = _number(fields.get("frame"))

        return ProgressReport(
            percent=_number(fields.get("percent")),
            fraction=_number(fields.get("fraction")),
            processed_time=max(processed_time, 0.0) if processed_time is not None else None,
            frame=int(frame) if frame is not None else None,
            fps=_number(fields.get("fps")),
            speed=_number(fields.get("speed"), suffix="x"),
            bitrate_kbps=_number(fields.get("bitrate"), suffix="kbits/s"),
            finished=finished,
        )


def format_duration(seconds: float) -> str:
    """
    Format a duration for display.

    Returns ``mm:ss`` below one hour and ``hh:mm:ss`` otherwise.
    """
    total = max(int(seconds), 0)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"
