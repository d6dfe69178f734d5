"""
Render executor: drives exactly one ffmpeg encode for one job.

Design rules:
- One subprocess per job, owned by the executor for its whole life
- Progress is read from stdout (``-progress pipe:1``)
- stderr is drained on a side thread; its tail is attached to failures
- Cancellation is cooperative: a watcher thread waits on the cancel event
  and stops the process with SIGTERM, escalating to SIGKILL after 5s
- The executor never changes job status; that belongs to the queue
"""

import logging
import os
import shutil
import subprocess
import threading
from collections import deque
from datetime import datetime
from typing import Callable, Optional

from ..compiler import EncodePlan, FilterGraphBuilder
from ..materials import TIMELINE_TYPES
from ..presets import Preset
from .errors import (
    EncodeFailureError,
    EncoderNotFoundError,
    InvalidOutputPathError,
    RenderCancelledError,
)
from .options import build_command
from .progress import ProgressParser, ProgressReport, interpret_progress
from .results import RenderResult

logger = logging.getLogger(__name__)

# Seconds to wait after SIGTERM before SIGKILL
TERMINATE_GRACE_SECONDS = 5

# Number of stderr lines kept for failure diagnostics
STDERR_TAIL_LINES = 20

ProgressCallback = Callable[[float, ProgressReport], None]


def find_ffmpeg() -> Optional[str]:
    """Locate ffmpeg on PATH."""
    return shutil.which("ffmpeg")


def process_group_options() -> dict:
    """
    Popen options that start the encoder in its own process group.

    A terminal Ctrl+C then reaches only dubqueue; the encoder is stopped
    through the cancel path.
    """
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def terminate_process(process: subprocess.Popen, grace_seconds: float = TERMINATE_GRACE_SECONDS) -> None:
    """Stop ``process`` with SIGTERM, escalating to SIGKILL after the grace period."""
    if process.poll() is not None:
        return

    logger.info(f"[FFmpeg] Sending SIGTERM to PID {process.pid}")
    try:
        process.terminate()
        try:
            process.wait(timeout=grace_seconds)
        except subprocess.TimeoutExpired:
            logger.warning(f"[FFmpeg] PID {process.pid} did not terminate, sending SIGKILL")
            process.kill()
            process.wait()
    except ProcessLookupError:
        pass  # Process already dead


class RenderExecutor:
    """
    Runs one render job through ffmpeg.

    Args:
        ffmpeg_path: Encoder binary (defaults to PATH lookup at render time)
        builder: Plan compiler (inject one with a fake probe for tests)
        popen: Process factory with the subprocess.Popen signature
    """

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        builder: Optional[FilterGraphBuilder] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.builder = builder or FilterGraphBuilder()
        self._popen = popen

    def prepare(self, job, preset: Preset) -> EncodePlan:
        """
        Validate the output path and compile the plan without running it.

        Raises:
            InvalidOutputPathError: If the job has no output path
            MissingMainVideoError: If the job has no timeline material
        """
        output_path = (job.output_path or "").strip()
        if not output_path:
            raise InvalidOutputPathError(job.output_path or "")

        return self.builder.compile(job.materials, preset, job.logo)

    def render(
        self,
        job,
        preset: Preset,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_timeline_duration: Optional[Callable[[float], None]] = None,
    ) -> RenderResult:
        """
        Render one job to its output path.

        Args:
            job: RenderJob to render
            preset: The job's resolved preset
            cancel_event: Set to request cancellation
            on_progress: Called with (fraction, report) for every progress block
            on_timeline_duration: Called once with the timeline duration in seconds

        Returns:
            RenderResult on success

        Raises:
            InvalidOutputPathError: Output path blank or directory not creatable
            MissingMainVideoError: No timeline material
            EncoderNotFoundError: ffmpeg not available
            EncodeFailureError: ffmpeg failed to start or exited non-zero
            RenderCancelledError: cancel_event was set before the encoder finished
        """
        cancel_event = cancel_event or threading.Event()
        started_at = datetime.now()

        plan = self.prepare(job, preset)
        output_dir = os.path.dirname(job.output_path)
        if output_dir:
            try:
                os.makedirs(output_dir, exist_ok=True)
            except OSError as e:
                raise InvalidOutputPathError(job.output_path, f"Cannot create output folder: {e}") from e

        duration = plan.total_duration
        if duration <= 0:
            # Unknown length: one second per timeline entry keeps progress moving
            duration = float(sum(1 for i in plan.inputs if i.role in TIMELINE_TYPES))
        if on_timeline_duration:
            on_timeline_duration(duration)

        for warning in plan.warnings:
            logger.warning(f"[PLAN] {warning}")

        ffmpeg_path = self.ffmpeg_path or find_ffmpeg()
        if not ffmpeg_path:
            raise EncoderNotFoundError()

        cmd = build_command(plan, preset, job, ffmpeg_path)

        if cancel_event.is_set():
            raise RenderCancelledError(job.output_path)

        logger.info(f"[FFmpeg] Executing: {' '.join(cmd)}")
        try:
            process = self._popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                **process_group_options(),
            )
        except OSError as e:
            raise EncodeFailureError(None, str(e)) from e

        logger.info(f"[FFmpeg] Started PID {process.pid} for {job.output_path}")

        stderr_tail: deque = deque(maxlen=STDERR_TAIL_LINES)
        finished = threading.Event()

        stderr_thread = threading.Thread(
            target=self._drain_stderr, args=(process, stderr_tail), daemon=True
        )
        watcher = threading.Thread(
            target=self._watch_cancel, args=(process, cancel_event, finished), daemon=True
        )
        stderr_thread.start()
        watcher.start()

        try:
            self._read_progress(process, duration, on_progress)
            exit_code = process.wait()
        except BaseException:
            terminate_process(process)
            raise
        finally:
            finished.set()
            watcher.join()
            stderr_thread.join()

        logger.info(f"[FFmpeg] PID {process.pid} exited with code {exit_code}")

        # A clean exit is a finished encode even if a cancel arrived meanwhile
        if exit_code != 0 and cancel_event.is_set():
            raise RenderCancelledError(job.output_path)

        if exit_code != 0:
            tail = "\n".join(stderr_tail)
            logger.error(f"[FFmpeg] Failed ({exit_code}): {tail}")
            raise EncodeFailureError(exit_code, tail)

        if on_progress:
            on_progress(1.0, ProgressReport(fraction=1.0, finished=True))

        result = RenderResult(
            output_path=job.output_path,
            command=cmd,
            timeline_duration=duration,
            started_at=started_at,
            completed_at=datetime.now(),
            warnings=list(plan.warnings),
        )
        logger.info(f"[FFmpeg] {result.summary()}")
        return result

    @staticmethod
    def _read_progress(process, duration: float, on_progress: Optional[ProgressCallback]) -> None:
        parser = ProgressParser()
        if process.stdout is None:
            return
        for line in process.stdout:
            report = parser.feed_line(line)
            if report is not None and on_progress:
                on_progress(interpret_progress(report, duration), report)

    @staticmethod
    def _drain_stderr(process, tail: deque) -> None:
        if process.stderr is None:
            return
        for line in process.stderr:
            line = line.rstrip()
            if line:
                tail.append(line)

    @staticmethod
    def _watch_cancel(process, cancel_event: threading.Event, finished: threading.Event) -> None:
        while not finished.is_set():
            if cancel_event.wait(timeout=0.2):
                terminate_process(process)
                return
