"""
Render jobs and the durable render queue.
"""

from .errors import (
    QueueError,
    JobNotFoundError,
    DuplicateOutputError,
    QueueBusyError,
    InvalidStateTransitionError,
    JobNotEditableError,
    NoTemplateProviderError,
)
from .models import JobStatus, RenderJob
from .state import (
    TERMINAL_JOB_STATES,
    is_job_terminal,
    can_transition_job,
    validate_job_transition,
    validate_job_reset,
    recover_interrupted,
)
from .template import build_render_job, apply_preset
from .store import QueueStore
from .shutdown import request_shutdown, shutdown_command
from .queue import RenderQueue, QueueProgress, QueueRunSummary

__all__ = [
    "QueueError",
    "JobNotFoundError",
    "DuplicateOutputError",
    "QueueBusyError",
    "InvalidStateTransitionError",
    "JobNotEditableError",
    "NoTemplateProviderError",
    "JobStatus",
    "RenderJob",
    "TERMINAL_JOB_STATES",
    "is_job_terminal",
    "can_transition_job",
    "validate_job_transition",
    "validate_job_reset",
    "recover_interrupted",
    "build_render_job",
    "apply_preset",
    "QueueStore",
    "request_shutdown",
    "shutdown_command",
    "RenderQueue",
    "QueueProgress",
    "QueueRunSummary",
]
