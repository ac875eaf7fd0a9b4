"""Data replication: masking, table filtering, progress, batched copy and
the end-to-end orchestrator.

Usage:
    from db_replicator.replication import run_replication, ProgressChannel
    from db_replicator.replication import mask_value, filter_tables
"""

from db_replicator.replication.filters import filter_tables, should_replicate_table
from db_replicator.replication.masking import find_rule, mask_row, mask_value
from db_replicator.replication.models import (
    DataReplicationResult,
    ReplicationResult,
    TableResult,
    ValidationResult,
)
from db_replicator.replication.progress import (
    ProgressChannel,
    ReplicationProgress,
    render_progress,
)
from db_replicator.replication.replicator import replicate_data, replicate_table
from db_replicator.replication.service import run_replication

__all__ = [
    "mask_value",
    "mask_row",
    "find_rule",
    "filter_tables",
    "should_replicate_table",
    "ReplicationProgress",
    "ProgressChannel",
    "render_progress",
    "TableResult",
    "DataReplicationResult",
    "ValidationResult",
    "ReplicationResult",
    "replicate_table",
    "replicate_data",
    "run_replication",
]
