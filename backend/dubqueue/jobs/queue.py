"""
Render queue engine.

Owns the ordered job list, runs Pending jobs one at a time through the
RenderExecutor, aggregates progress and ETA, and persists the queue after
every structural change and status transition (write-through).

Concurrency:
- One run at a time; jobs inside a run execute strictly sequentially
- Structural edits are refused with QueueBusyError while a run is active,
  including a run owned by another process (see QueueStore.run_lock)
- cancel() is accepted at any time and stops the whole remaining run
- All bookkeeping happens under one re-entrant lock, so progress from the
  encoder thread never interleaves with another job's updates

Failure policy:
- A failing job is marked Failed and the run continues
- Cancellation marks the running job and every job not yet started in the
  run as Cancelled
"""

import logging
import os
import threading
import time
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict

from ..execution import (
    InvalidOutputPathError,
    ProgressReport,
    RenderCancelledError,
    RenderExecutor,
    RenderResult,
)
from ..presets import PresetNotFoundError, PresetStore
from .errors import (
    DuplicateOutputError,
    JobNotEditableError,
    JobNotFoundError,
    NoTemplateProviderError,
    QueueBusyError,
)
from .models import JobStatus, RenderJob
from .shutdown import DEFAULT_SHUTDOWN_DELAY_SECONDS, request_shutdown
from .state import recover_interrupted, validate_job_reset, validate_job_transition
from .store import QueueStore
from .template import apply_preset

logger = logging.getLogger(__name__)


class QueueProgress(BaseModel):
    """Snapshot of overall run progress."""

    model_config = ConfigDict(extra="forbid")

    is_running: bool = False
    fraction: float = 0.0
    elapsed_seconds: float = 0.0
    remaining_seconds: float = 0.0
    current_title: Optional[str] = None
    completed_count: int = 0
    total: int = 0

    # Latest encoder statistics for the current job
    frame: Optional[int] = None
    fps: Optional[float] = None
    speed: Optional[float] = None
    bitrate_kbps: Optional[float] = None

    @property
    def percent(self) -> float:
        return self.fraction * 100.0


class QueueRunSummary(BaseModel):
    """Outcome of one run."""

    model_config = ConfigDict(extra="forbid")

    completed: int = 0
    failed: int = 0
    cancelled: int = 0
    elapsed_seconds: float = 0.0
    was_cancelled: bool = False
    shutdown_requested: bool = False


def _output_key(path: str) -> str:
    return os.path.normpath(path).casefold()


class RenderQueue:
    """
    Durable, cancellable render queue.

    Args:
        store: Queue persistence
        preset_store: Source of presets by name
        executor: Runs one job (defaults to a RenderExecutor on PATH ffmpeg)
        clock: Monotonic time source in seconds
        shutdown_requester: Called with the delay when a shutdown is due
        shutdown_delay_seconds: Grace delay passed to the shutdown request
        template_provider: Returns a job template built from the open project
        on_count_changed: Called with the job count after structural changes
    """

    def __init__(
        self,
        store: QueueStore,
        preset_store: PresetStore,
        executor: Optional[RenderExecutor] = None,
        clock: Callable[[], float] = time.monotonic,
        shutdown_requester: Callable[[int], bool] = request_shutdown,
        shutdown_delay_seconds: int = DEFAULT_SHUTDOWN_DELAY_SECONDS,
        template_provider: Optional[Callable[[], RenderJob]] = None,
        on_count_changed: Optional[Callable[[int], None]] = None,
    ):
        self.store = store
        self.preset_store = preset_store
        self.executor = executor or RenderExecutor()
        self.template_provider = template_provider
        self.on_count_changed = on_count_changed
        self._clock = clock
        self._shutdown_requester = shutdown_requester
        self._shutdown_delay_seconds = shutdown_delay_seconds

        self._lock = threading.RLock()
        self._jobs: List[RenderJob] = []
        self._shutdown_when_completed = False

        # Run state
        self._running = False
        self._run_shutdown = False
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._run_total = 0
        self._run_done = 0
        self._current_fraction = 0.0
        self._current_title: Optional[str] = None
        self._last_report: Optional[ProgressReport] = None
        self._started_at: Optional[float] = None
        self._finished_at: Optional[float] = None
        self._last_summary: Optional[QueueRunSummary] = None

    # ------------------------------------------------------------------
    # Queue contents
    # ------------------------------------------------------------------

    def load(self) -> List[RenderJob]:
        """
        Replace the in-memory queue with the stored one.

        Interrupted jobs are reclassified as Cancelled and written back.
        While another process holds the run lock its Processing job is
        still in flight, so the document is loaded read-only.
        """
        with self._lock:
            if self._running:
                raise QueueBusyError("reload the queue")

            jobs = self.store.read()
            recovered = 0
            if self.store.run_lock.held_elsewhere():
                logger.info("[QUEUE] Another process is running the queue; loaded read-only")
            else:
                recovered = recover_interrupted(jobs)

            self._jobs = jobs
            self._renumber()
            if recovered:
                logger.info(f"[QUEUE] Reclassified {recovered} interrupted job(s) as Cancelled")
                self.commit()
            logger.info(f"[QUEUE] Loaded {len(self._jobs)} job(s)")
        self._notify_count()
        return self.jobs()

    def jobs(self) -> List[RenderJob]:
        """Copies of the queued jobs in processing order."""
        with self._lock:
            return [job.model_copy(deep=True) for job in self._jobs]

    def get(self, job_id: str) -> RenderJob:
        with self._lock:
            return self._find(job_id).model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    @property
    def is_busy(self) -> bool:
        with self._lock:
            return self._running

    @property
    def shutdown_when_completed(self) -> bool:
        return self._shutdown_when_completed

    @property
    def last_summary(self) -> Optional[QueueRunSummary]:
        return self._last_summary

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def enqueue(self, job: RenderJob) -> RenderJob:
        """
        Add a job to the end of the queue.

        The job's preset fills its container extension and, when blank, a
        suggested output path.

        Raises:
            QueueBusyError: If a run is active
            DuplicateOutputError: If another job already writes to the same path
        """
        job = job.model_copy(deep=True)
        with self._lock:
            self._require_idle("add to the queue")

            preset = self.preset_store.get(job.preset_name) if job.preset_name else None
            if preset is not None:
                apply_preset(job, preset)
            else:
                logger.warning(f"[QUEUE] Preset '{job.preset_name}' not found; output path left as given")

            self._check_duplicate_output(job.output_path)

            job.status = JobStatus.PENDING
            job.failure_reason = None
            job.shutdown_when_completed = job.shutdown_when_completed or self._shutdown_when_completed

            self._jobs.append(job)
            self._renumber()
            self.commit()
            logger.info(f"[QUEUE] Enqueued job {job.id} -> {job.output_path}")
            stored = job.model_copy(deep=True)

        self._notify_count()
        return stored

    def add_from_template(self, output_path: Optional[str] = None) -> RenderJob:
        """
        Enqueue a job built from the open project.

        Raises:
            NoTemplateProviderError: If no template source is connected
        """
        if self.template_provider is None:
            raise NoTemplateProviderError()

        job = self.template_provider()
        if output_path:
            job.output_path = output_path
            job.output_folder = os.path.dirname(output_path) or job.output_folder
        return self.enqueue(job)

    def remove(self, job_id: str) -> RenderJob:
        with self._lock:
            self._require_idle("remove from the queue")
            job = self._find(job_id)
            self._jobs.remove(job)
            self._renumber()
            self.commit()
            logger.info(f"[QUEUE] Removed job {job_id}")

        self._notify_count()
        return job

    def clear(self) -> int:
        """Remove every job. Returns the number removed."""
        with self._lock:
            self._require_idle("clear the queue")
            removed = len(self._jobs)
            self._jobs = []
            self._reset_progress(total=0)
            self.commit()
            logger.info(f"[QUEUE] Cleared {removed} job(s)")

        self._notify_count()
        return removed

    def move(self, job_id: str, position: int) -> List[RenderJob]:
        """
        Move a job to ``position`` (0-based, clamped to the queue bounds).

        Returns:
            The reordered queue
        """
        with self._lock:
            self._require_idle("reorder the queue")
            job = self._find(job_id)
            self._jobs.remove(job)
            position = min(max(position, 0), len(self._jobs))
            self._jobs.insert(position, job)
            self._renumber()
            self.commit()
            logger.info(f"[QUEUE] Moved job {job_id} to position {position + 1}")
            return self.jobs()

    def update_job(
        self,
        job_id: str,
        output_path: Optional[str] = None,
        preset_name: Optional[str] = None,
        gpu_acceleration: Optional[bool] = None,
        title: Optional[str] = None,
    ) -> RenderJob:
        """
        Edit a Pending job.

        Changing the preset re-applies its container extension.

        Raises:
            QueueBusyError: If a run is active
            JobNotEditableError: If the job is not Pending
            DuplicateOutputError: If the new output path is already queued
        """
        with self._lock:
            self._require_idle("edit a queued job")
            job = self._find(job_id)
            if job.status != JobStatus.PENDING:
                raise JobNotEditableError(job_id, job.status.value)

            updated = job.model_copy(deep=True)
            if title is not None:
                updated.title = title
            if gpu_acceleration is not None:
                updated.gpu_acceleration = gpu_acceleration
            if output_path is not None:
                updated.output_path = output_path
                updated.output_folder = os.path.dirname(output_path) or updated.output_folder
            if preset_name is not None:
                updated.preset_name = preset_name

            preset_changed = preset_name is not None and preset_name != job.preset_name
            if preset_changed or output_path is not None:
                preset = self.preset_store.get(updated.preset_name)
                if preset is not None:
                    apply_preset(updated, preset)

            if _output_key(updated.output_path) != _output_key(job.output_path):
                self._check_duplicate_output(updated.output_path, exclude=job)

            self._jobs[self._jobs.index(job)] = updated
            self.commit()
            logger.info(f"[QUEUE] Updated job {job_id}")
            return updated.model_copy(deep=True)

    def set_shutdown_when_completed(self, enabled: bool) -> None:
        """
        Request (or withdraw) an OS shutdown when the run finishes.

        The choice is stored on every queued job. For a single run, pass
        ``shutdown=True`` to run() or start() instead.

        Raises:
            QueueBusyError: If another process is running the queue
        """
        with self._lock:
            if self.store.run_lock.held_elsewhere():
                raise QueueBusyError("change the shutdown option")
            self._shutdown_when_completed = enabled
            for job in self._jobs:
                job.shutdown_when_completed = enabled
            self.commit()
            logger.info(f"[QUEUE] Shutdown when completed: {enabled}")

    def reset_job(self, job_id: str) -> RenderJob:
        """
        Re-queue a Failed or Cancelled job as Pending.

        Raises:
            InvalidStateTransitionError: If the job is Pending, Processing or Completed
        """
        with self._lock:
            self._require_idle("re-queue a job")
            job = self._find(job_id)
            validate_job_reset(job.status)
            job.status = JobStatus.PENDING
            job.failure_reason = None
            job.started_at = None
            job.completed_at = None
            self.commit()
            logger.info(f"[LIFECYCLE] Job {job_id} reset to Pending")
            return job.model_copy(deep=True)

    def commit(self) -> None:
        """Write the full queue to durable storage."""
        with self._lock:
            self.store.save(self._jobs)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def run(self, shutdown: bool = False) -> QueueRunSummary:
        """
        Process every Pending job in sequence order on the calling thread.

        Args:
            shutdown: Request an OS shutdown after this run only

        Raises:
            QueueBusyError: If a run is already active
        """
        job_ids = self._begin_run(shutdown)
        return self._execute_run(job_ids)

    def start(self, shutdown: bool = False) -> threading.Thread:
        """
        Run the queue on a background thread.

        Args:
            shutdown: Request an OS shutdown after this run only

        Raises:
            QueueBusyError: If a run is already active
        """
        job_ids = self._begin_run(shutdown)
        thread = threading.Thread(
            target=self._execute_run, args=(job_ids,), name="dubqueue-run", daemon=True
        )
        with self._lock:
            self._thread = thread
        thread.start()
        return thread

    def cancel(self) -> bool:
        """
        Request cancellation of the active run.

        Returns:
            True if a run was active
        """
        with self._lock:
            running = self._running
        if running:
            logger.info("[QUEUE] Cancellation requested")
            self._cancel_event.set()
        return running

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for a background run to finish.

        Returns:
            True if no run is active afterwards
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
        return not self.is_busy

    def progress(self) -> QueueProgress:
        """Current overall progress with linear ETA."""
        with self._lock:
            total = self._run_total
            units = self._run_done + self._current_fraction
            fraction = min(max(units / total, 0.0), 1.0) if total > 0 else 0.0

            elapsed = 0.0
            if self._started_at is not None:
                end = self._finished_at if self._finished_at is not None else self._clock()
                elapsed = max(end - self._started_at, 0.0)

            remaining = 0.0
            if total > 0 and 0 < units < total:
                remaining = elapsed / units * (total - units)

            report = self._last_report
            return QueueProgress(
                is_running=self._running,
                fraction=fraction,
                elapsed_seconds=elapsed,
                remaining_seconds=remaining,
                current_title=self._current_title,
                completed_count=self._run_done,
                total=total,
                frame=report.frame if report else None,
                fps=report.fps if report else None,
                speed=report.speed if report else None,
                bitrate_kbps=report.bitrate_kbps if report else None,
            )

    def _begin_run(self, shutdown: bool) -> List[str]:
        with self._lock:
            if self._running or not self.store.run_lock.acquire():
                raise QueueBusyError("start a run")
            job_ids = [job.id for job in self._jobs if job.status == JobStatus.PENDING]
            self._running = True
            self._run_shutdown = shutdown
            self._cancel_event = threading.Event()
            self._reset_progress(total=len(job_ids))
            self._started_at = self._clock()
            logger.info(f"[QUEUE] Run started with {len(job_ids)} pending job(s)")
            return job_ids

    def _execute_run(self, job_ids: List[str]) -> QueueRunSummary:
        summary = QueueRunSummary()
        try:
            for position, job_id in enumerate(job_ids):
                if self._cancel_event.is_set():
                    self._cancel_remaining(job_ids[position:], summary)
                    summary.was_cancelled = True
                    break

                outcome = self._run_job(job_id)
                if outcome == JobStatus.COMPLETED:
                    summary.completed += 1
                elif outcome == JobStatus.FAILED:
                    summary.failed += 1
                elif outcome == JobStatus.CANCELLED:
                    summary.cancelled += 1
                    self._cancel_remaining(job_ids[position + 1:], summary)
                    summary.was_cancelled = True
                    break

            if not summary.was_cancelled:
                with self._lock:
                    self._run_done = self._run_total
                    self._current_fraction = 0.0
                    self._current_title = None

            summary.shutdown_requested = self._maybe_shutdown(job_ids, summary)
        finally:
            with self._lock:
                self._finished_at = self._clock()
                self._running = False
                self._run_shutdown = False
                self.store.run_lock.release()
                summary.elapsed_seconds = max(self._finished_at - (self._started_at or self._finished_at), 0.0)
                self._last_summary = summary

        logger.info(
            f"[QUEUE] Run finished: {summary.completed} completed, {summary.failed} failed, "
            f"{summary.cancelled} cancelled in {summary.elapsed_seconds:.1f}s"
        )
        return summary

    def _run_job(self, job_id: str) -> Optional[JobStatus]:
        with self._lock:
            job = self._find_or_none(job_id)
            if job is None or job.status != JobStatus.PENDING:
                return None

            self._transition(job, JobStatus.PROCESSING)
            job.started_at = datetime.now()
            self._current_fraction = 0.0
            self._current_title = job.display_name
            self._last_report = None
            self.commit()
            snapshot = job.model_copy(deep=True)

        logger.info(f"[LIFECYCLE] Job {job_id} ({snapshot.display_name}) -> Processing")

        preset = self.preset_store.get(snapshot.preset_name)
        if preset is None:
            return self._finish_job(job_id, JobStatus.FAILED, str(PresetNotFoundError(snapshot.preset_name)))

        if not snapshot.output_path.strip():
            return self._finish_job(job_id, JobStatus.FAILED, str(InvalidOutputPathError("")))

        try:
            result: RenderResult = self.executor.render(
                snapshot,
                preset,
                cancel_event=self._cancel_event,
                on_progress=self._on_job_progress,
            )
        except RenderCancelledError:
            return self._finish_job(job_id, JobStatus.CANCELLED, None)
        except Exception as e:
            logger.error(f"[QUEUE] Failed to render '{snapshot.display_name}': {e}")
            return self._finish_job(job_id, JobStatus.FAILED, str(e))

        for warning in result.warnings:
            logger.warning(f"[QUEUE] {snapshot.display_name}: {warning}")
        return self._finish_job(job_id, JobStatus.COMPLETED, None)

    def _finish_job(self, job_id: str, status: JobStatus, reason: Optional[str]) -> JobStatus:
        with self._lock:
            job = self._find_or_none(job_id)
            if job is not None:
                self._transition(job, status)
                job.failure_reason = reason
                job.completed_at = datetime.now()
                self.commit()

            if status != JobStatus.CANCELLED:
                self._run_done += 1
            self._current_fraction = 0.0

        logger.info(f"[LIFECYCLE] Job {job_id} -> {status.value}" + (f": {reason}" if reason else ""))
        return status

    def _cancel_remaining(self, job_ids: List[str], summary: QueueRunSummary) -> None:
        with self._lock:
            changed = False
            for job_id in job_ids:
                job = self._find_or_none(job_id)
                if job is not None and job.status in (JobStatus.PENDING, JobStatus.PROCESSING):
                    self._transition(job, JobStatus.CANCELLED)
                    job.completed_at = datetime.now()
                    summary.cancelled += 1
                    changed = True
            self._current_fraction = 0.0
            self._current_title = None
            if changed:
                self.commit()

    def _maybe_shutdown(self, job_ids: List[str], summary: QueueRunSummary) -> bool:
        if summary.was_cancelled or summary.completed == 0:
            return False

        with self._lock:
            run_jobs = [job for job in self._jobs if job.id in set(job_ids)]
            wanted = (
                self._run_shutdown
                or self._shutdown_when_completed
                or any(j.shutdown_when_completed for j in run_jobs)
            )
        if not wanted:
            return False

        issued = self._shutdown_requester(self._shutdown_delay_seconds)
        if not issued:
            logger.warning("[SHUTDOWN] Shutdown was requested but could not be scheduled")
        return issued

    def _on_job_progress(self, fraction: float, report: ProgressReport) -> None:
        with self._lock:
            # Fractions never move backwards within one job
            self._current_fraction = max(self._current_fraction, min(max(fraction, 0.0), 1.0))
            self._last_report = report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, job: RenderJob, status: JobStatus) -> None:
        validate_job_transition(job.status, status)
        job.status = status

    def _find(self, job_id: str) -> RenderJob:
        job = self._find_or_none(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _find_or_none(self, job_id: str) -> Optional[RenderJob]:
        for job in self._jobs:
            if job.id == job_id:
                return job
        return None

    def _require_idle(self, operation: str) -> None:
        if self._running or self.store.run_lock.held_elsewhere():
            raise QueueBusyError(operation)

    def _check_duplicate_output(self, output_path: str, exclude: Optional[RenderJob] = None) -> None:
        if not output_path.strip():
            return
        key = _output_key(output_path)
        for job in self._jobs:
            if job is exclude:
                continue
            if job.output_path and _output_key(job.output_path) == key:
                raise DuplicateOutputError(output_path)

    def _renumber(self) -> None:
        for i, job in enumerate(self._jobs):
            job.sequence_id = i + 1

    def _reset_progress(self, total: int) -> None:
        self._run_total = total
        self._run_done = 0
        self._current_fraction = 0.0
        self._current_title = None
        self._last_report = None
        self._started_at = None
        self._finished_at = None

    def _notify_count(self) -> None:
        if self.on_count_changed is not None:
            self.on_count_changed(len(self))
