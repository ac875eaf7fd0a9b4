"""Configuration models: endpoints, replication options and masking rules.

Usage:
    >>> from db_replicator.config import ConnectionEndpoint, ReplicationConfig
"""

from db_replicator.config.models import (
    ConflictResolutionStrategy,
    ConnectionEndpoint,
    DataMaskingRule,
    MaskingType,
    ReplicationConfig,
    ReplicationMode,
)

__all__ = [
    "ConnectionEndpoint",
    "ReplicationConfig",
    "ReplicationMode",
    "ConflictResolutionStrategy",
    "DataMaskingRule",
    "MaskingType",
]
