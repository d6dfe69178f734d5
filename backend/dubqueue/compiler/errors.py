"""
Plan compilation errors.

Compilation errors are raised synchronously, before any encoder process
is spawned, and are never retried.
"""


class PlanError(Exception):
    """Base exception for encode plan compilation failures."""
    pass


class MissingMainVideoError(PlanError):
    """Raised when a job has no timeline material (Intro, Video or Outro)."""

    def __init__(self, detail: str = "Render job must contain at least one video clip."):
        self.detail = detail
        super().__init__(detail)
