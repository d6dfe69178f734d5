"""
Queue persistence.

The whole queue is one JSON document:

    {"version": 1, "jobs": [ ...RenderJob... ]}

Every save is a full replace through a temp file and os.replace. Loading
fails open: a missing, unreadable or corrupt document yields an empty
queue so a bad file never stops the application from starting.

A run lock file (``queue.json.lock``) beside the document marks the
process that is currently running the queue.
"""

import logging
from pathlib import Path
from typing import Iterable, List

from pydantic import TypeAdapter, ValidationError

from ..storage import RunLock, read_json, write_json_atomic
from .models import RenderJob
from .state import recover_interrupted

logger = logging.getLogger(__name__)

QUEUE_DOCUMENT_VERSION = 1

_JOB_LIST = TypeAdapter(List[RenderJob])


class QueueStore:
    """Single-document store for the render queue."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self.run_lock = RunLock(self.path.with_name(self.path.name + ".lock"))

    def read(self) -> List[RenderJob]:
        """
        Read the stored jobs exactly as written.

        Returns:
            Jobs in stored order, or [] on any read or parse error
        """
        if not self.path.is_file():
            return []

        try:
            data = read_json(self.path)
            return _JOB_LIST.validate_python(data.get("jobs", []))
        except (OSError, ValueError, AttributeError, ValidationError) as e:
            logger.warning(f"[STORE] Could not load queue from {self.path}: {e}")
            return []

    def load(self) -> List[RenderJob]:
        """
        Load the persisted queue after a restart.

        Jobs stored as Processing come back as Cancelled. Nothing is
        written back.
        """
        jobs = self.read()
        recovered = recover_interrupted(jobs)
        if recovered:
            logger.info(f"[STORE] Reclassified {recovered} interrupted job(s) as Cancelled")
        return jobs

    def save(self, jobs: Iterable[RenderJob]) -> None:
        """Replace the stored queue with ``jobs``."""
        payload = {
            "version": QUEUE_DOCUMENT_VERSION,
            "jobs": [job.model_dump(mode="json") for job in jobs],
        }
        write_json_atomic(self.path, payload)
        logger.debug(f"[STORE] Saved {len(payload['jobs'])} job(s) to {self.path}")

    def count(self) -> int:
        return len(self.read())
