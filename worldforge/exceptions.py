"""Exception hierarchy for WorldForge."""


class WorldForgeError(Exception):
    """Base class for all WorldForge errors."""


class ValidationError(WorldForgeError):
    """Request rejected before any record is created."""


class EntityNotFoundError(WorldForgeError):
    """Lookup by id found nothing inside the given world."""


class GenerationError(WorldForgeError):
    """A phase could not produce usable output. Aborts the job."""

    def __init__(self, message: str, phase: str | None = None, raw: str | None = None):
        super().__init__(message)
        self.phase = phase
        self.raw = raw


class CoherenceAuditError(WorldForgeError):
    """The advisory coherence pass failed. Always handled by the checker."""


class PersistenceError(WorldForgeError):
    """The entity store failed mid-job. The job is left for stale reclaim."""
