"""Exception types raised by the replication core.

Usage:
    from db_replicator.errors import SchemaApplyError, DataWriteError
"""


class ReplicatorError(Exception):
    """Base class for replication errors."""

    pass


class DatabaseConnectionError(ReplicatorError, ConnectionError):
    """Raised when an endpoint cannot be reached or authenticated."""

    pass


class SchemaApplyError(ReplicatorError):
    """Raised when a statement of the synchronization script fails.

    The schema transaction has already been rolled back when this is raised.
    """

    def __init__(self, message: str, statement: str | None = None) -> None:
        super().__init__(message)
        self.statement = statement


class DataWriteError(ReplicatorError):
    """Raised when a row of a batch cannot be written to the target."""

    def __init__(self, table: str, message: str) -> None:
        super().__init__(message)
        self.table = table


class ReplicationCancelled(ReplicatorError):
    """Raised inside a batch when cancellation is requested."""

    pass
