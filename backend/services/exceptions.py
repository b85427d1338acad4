"""Exceptions raised by the background job services."""


class JobError(Exception):
    """Base exception for job and manual-refresh failures."""

    pass


class BatchSetupError(JobError):
    """A batch job failed before reaching its per-entity loop.

    Nothing was written. The runner retries these per the job's
    ``RetryPolicy``.
    """

    def __init__(self, job_id: str, message: str):
        self.job_id = job_id
        super().__init__(f"{job_id}: {message}")


class EntityNotFoundError(JobError):
    """A manual trigger referenced a user, account or connection that does not exist."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class ConnectionSyncError(JobError):
    """A single-connection sync was reported as failed by the aggregation service."""

    def __init__(self, connection_id: str, message: str | None):
        self.connection_id = connection_id
        self.error_message = message or "unknown error"
        super().__init__(f"Sync failed for connection {connection_id}: {self.error_message}")
