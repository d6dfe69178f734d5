"""
State transition validation for render jobs.

Job lifecycle: Pending -> Processing -> Completed | Failed | Cancelled
Pending jobs may also be cancelled directly when a run is aborted before
reaching them.

INVARIANT: Terminal states are immutable during a run. The only way out of
Failed or Cancelled is an explicit reset back to Pending (re-queue), and
Completed jobs are never reset.
"""

from typing import FrozenSet, List, Set, Tuple

from .errors import InvalidStateTransitionError
from .models import JobStatus, RenderJob


TERMINAL_JOB_STATES: FrozenSet[JobStatus] = frozenset({
    JobStatus.COMPLETED,
    JobStatus.FAILED,
    JobStatus.CANCELLED,
})

_JOB_TRANSITIONS: Set[Tuple[JobStatus, JobStatus]] = {
    # Starting a job
    (JobStatus.PENDING, JobStatus.PROCESSING),

    # Run cancelled before the job started
    (JobStatus.PENDING, JobStatus.CANCELLED),

    # Outcomes
    (JobStatus.PROCESSING, JobStatus.COMPLETED),
    (JobStatus.PROCESSING, JobStatus.FAILED),
    (JobStatus.PROCESSING, JobStatus.CANCELLED),
}

_RESET_TRANSITIONS: Set[Tuple[JobStatus, JobStatus]] = {
    (JobStatus.FAILED, JobStatus.PENDING),
    (JobStatus.CANCELLED, JobStatus.PENDING),
}


def is_job_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_JOB_STATES


def can_transition_job(from_status: JobStatus, to_status: JobStatus) -> bool:
    """
    Check if a job state transition is legal.

    Staying in the same state is allowed; terminal states go nowhere.
    """
    if from_status == to_status:
        return True

    if is_job_terminal(from_status):
        return False

    return (from_status, to_status) in _JOB_TRANSITIONS


def validate_job_transition(from_status: JobStatus, to_status: JobStatus) -> None:
    """
    Validate a job state transition, raising an exception if illegal.

    Raises:
        InvalidStateTransitionError: If the transition is not allowed
    """
    if not can_transition_job(from_status, to_status):
        raise InvalidStateTransitionError(from_status.value, to_status.value)


def validate_job_reset(from_status: JobStatus) -> None:
    """
    Validate re-queueing a finished job.

    Raises:
        InvalidStateTransitionError: Unless the job is Failed or Cancelled
    """
    if (from_status, JobStatus.PENDING) not in _RESET_TRANSITIONS:
        raise InvalidStateTransitionError(from_status.value, JobStatus.PENDING.value)


def recover_interrupted(jobs: List[RenderJob]) -> int:
    """
    Reclassify jobs persisted as Processing to Cancelled.

    A stored Processing status means the previous run never finished, so
    the job's state cannot be trusted.

    Returns:
        Number of jobs reclassified
    """
    recovered = 0
    for job in jobs:
        if job.status == JobStatus.PROCESSING:
            job.status = JobStatus.CANCELLED
            recovered += 1
    return recovered
