"""
Queue-specific error types.

All errors inherit from QueueError for easy catching.
Errors are explicit and provide actionable messages.
"""


class QueueError(Exception):
    """Base exception for all render queue failures."""
    pass


class JobNotFoundError(QueueError):
    """Raised when a job id is not in the queue."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class DuplicateOutputError(QueueError):
    """Raised when a job's output path is already used by a queued job."""

    def __init__(self, output_path: str):
        self.output_path = output_path
        super().__init__(f"That output file is already queued: {output_path}")


class QueueBusyError(QueueError):
    """Raised on structural edits while a run is active."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Cannot {operation} while the queue is processing")


class InvalidStateTransitionError(QueueError):
    """Raised when attempting an illegal job state transition."""

    def __init__(self, current_state: str, target_state: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(f"Invalid job state transition: {current_state} -> {target_state}")


class JobNotEditableError(QueueError):
    """Raised when editing a job that is no longer Pending."""

    def __init__(self, job_id: str, status: str):
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job {job_id} is {status}; only Pending jobs can be edited")


class NoTemplateProviderError(QueueError):
    """Raised by add_from_template when no project template source is connected."""

    def __init__(self):
        super().__init__("No project is open to build a render job from")
