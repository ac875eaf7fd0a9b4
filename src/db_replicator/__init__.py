"""db-replicator: Async MySQL schema and data replication.

Compares and synchronizes the schema of a target database with a source,
then copies table data in masked, cancellable batches.

Usage:
    from db_replicator import ReplicationConfig, ConnectionEndpoint, run_replication
    from db_replicator import ProgressChannel, render_progress, setup_logging
    from db_replicator import compare_schemas, generate_script
"""

__version__ = "0.1.0"

# Logging
from db_replicator.logging_config import mask_connection_string, setup_logging

# Config
from db_replicator.config.models import (
    ConnectionEndpoint,
    DataMaskingRule,
    MaskingType,
    ReplicationConfig,
    ReplicationMode,
)

# Errors
from db_replicator.errors import (
    DataWriteError,
    DatabaseConnectionError,
    ReplicationCancelled,
    ReplicatorError,
    SchemaApplyError,
)

# Adapters
from db_replicator.adapters.base import DatabaseClient
from db_replicator.adapters.mysql import AsyncMySQLAdapter

# Factory
from db_replicator.factory import connect_and_validate, create_adapter

# Schema
from db_replicator.schema.comparator import compare_schemas
from db_replicator.schema.script import generate_script
from db_replicator.schema.splitter import split_statements
from db_replicator.schema.sync import synchronize_schema

# Replication
from db_replicator.replication.progress import ProgressChannel, render_progress
from db_replicator.replication.replicator import replicate_data
from db_replicator.replication.service import run_replication

__all__ = [
    # Logging
    "setup_logging",
    "mask_connection_string",
    # Config
    "ConnectionEndpoint",
    "ReplicationConfig",
    "ReplicationMode",
    "DataMaskingRule",
    "MaskingType",
    # Errors
    "ReplicatorError",
    "DatabaseConnectionError",
    "SchemaApplyError",
    "DataWriteError",
    "ReplicationCancelled",
    # Adapters
    "DatabaseClient",
    "AsyncMySQLAdapter",
    # Factory
    "create_adapter",
    "connect_and_validate",
    # Schema
    "compare_schemas",
    "generate_script",
    "split_statements",
    "synchronize_schema",
    # Replication
    "ProgressChannel",
    "render_progress",
    "replicate_data",
    "run_replication",
]
