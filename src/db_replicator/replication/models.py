"""Result models for the replication pipeline.

Each result is built once, when its stage completes, and never mutated.
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field

from db_replicator.schema.models import SchemaSyncResult


class ValidationResult(BaseModel):
    """Outcome of testing both endpoints."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error_message: str = ""
    source_version: str = ""
    target_version: str = ""


class TableResult(BaseModel):
    """Outcome of copying one table.

    ``rows_processed`` counts rows of committed batches only.
    """

    model_config = ConfigDict(frozen=True)

    table_name: str
    success: bool = False
    cancelled: bool = False
    error_message: str = ""
    rows_processed: int = 0


class DataReplicationResult(BaseModel):
    """Outcome of copying all selected tables."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    cancelled: bool = False
    error_message: str = ""
    table_results: list[TableResult] = Field(default_factory=list)

    @property
    def total_rows_processed(self) -> int:
        return sum(r.rows_processed for r in self.table_results)

    @property
    def failed_tables(self) -> list[TableResult]:
        return [r for r in self.table_results if not r.success and not r.cancelled]


class ReplicationResult(BaseModel):
    """Outcome of one full replication run.

    Attributes:
        success: True if every stage that ran succeeded.
        cancelled: True if the run was cancelled during data copy.
        error_message: First failure, prefixed with the stage that failed.
        preview_only: True if the run stopped after previewing schema changes.
        duration: Wall-clock time of the run.
        rows_processed: Rows committed across all tables.
        tables_processed: Number of tables attempted.
        validation_result: Connection validation outcome.
        schema_sync_result: Schema synchronization outcome (if it ran).
        data_replication_result: Data copy outcome (if it ran).
    """

    model_config = ConfigDict(frozen=True)

    success: bool = False
    cancelled: bool = False
    error_message: str = ""
    preview_only: bool = False
    duration: timedelta = timedelta(0)
    rows_processed: int = 0
    tables_processed: int = 0
    validation_result: ValidationResult | None = None
    schema_sync_result: SchemaSyncResult | None = None
    data_replication_result: DataReplicationResult | None = None
