"""Pydantic models for replication configuration.

These models are the fully-resolved configuration handed to the core.
Loading them from files or the environment is the caller's concern.
"""

import ssl
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.engine import URL

from db_replicator.logging_config import mask_connection_string, mask_username


# ============================================================================
# Enums
# ============================================================================


class ReplicationMode(str, Enum):
    """How target tables are prepared before copying."""

    FULL = "full"  # truncate target tables, then copy everything
    INCREMENTAL = "incremental"  # no truncate; change tracking is not implemented


class ConflictResolutionStrategy(str, Enum):
    """Declared conflict strategies (validated, not enacted)."""

    SOURCE_WINS = "source_wins"
    TARGET_WINS = "target_wins"
    NEWER_WINS = "newer_wins"
    FAIL = "fail"


class MaskingType(str, Enum):
    """Data masking strategies."""

    FULL_MASK = "full_mask"
    PARTIAL_MASK = "partial_mask"
    FIXED_VALUE = "fixed_value"
    CUSTOM_PATTERN = "custom_pattern"


# ============================================================================
# Connection Endpoint
# ============================================================================


class ConnectionEndpoint(BaseModel):
    """A fully-addressed, credentialed MySQL connection target.

    Example:
        >>> ep = ConnectionEndpoint(database="shop", username="app", password="s3cret")
        >>> ep.describe()
        'a****@localhost:3306/shop'
    """

    model_config = ConfigDict(frozen=True)

    host: str = "localhost"
    port: int = 3306
    database: str = ""
    username: str = ""
    password: str = Field(default="", repr=False)
    connect_timeout: int = 30  # seconds
    max_pool_size: int = 100
    min_pool_size: int = 0
    use_ssl: bool = False
    ssl_ca_path: str = ""
    ssl_cert_path: str = ""
    ssl_key_path: str = ""
    additional_parameters: dict[str, str] = Field(default_factory=dict)

    def build_url(self) -> URL:
        """Build the SQLAlchemy URL for the ``mysql+aiomysql`` dialect."""
        return URL.create(
            "mysql+aiomysql",
            username=self.username or None,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database or None,
            query=dict(self.additional_parameters),
        )

    def connect_args(self) -> dict[str, Any]:
        """Driver keyword arguments: timeout and TLS context."""
        args: dict[str, Any] = {"connect_timeout": self.connect_timeout}
        if self.use_ssl:
            context = ssl.create_default_context(cafile=self.ssl_ca_path or None)
            if self.ssl_cert_path:
                context.load_cert_chain(
                    self.ssl_cert_path, keyfile=self.ssl_key_path or None
                )
            args["ssl"] = context
        return args

    def build_connection_string(self) -> str:
        """Key=value connection string (contains the password -- never log it)."""
        parts = [
            f"Server={self.host}",
            f"Port={self.port}",
            f"Database={self.database}",
            f"User ID={self.username}",
            f"Password={self.password}",
            f"Connect Timeout={self.connect_timeout}",
            f"MaximumPoolSize={self.max_pool_size}",
            f"MinimumPoolSize={self.min_pool_size}",
        ]
        if self.use_ssl:
            parts.append("SslMode=Required")
            if self.ssl_cert_path:
                parts.append(f"SslCert={self.ssl_cert_path}")
            if self.ssl_key_path:
                parts.append(f"SslKey={self.ssl_key_path}")
            if self.ssl_ca_path:
                parts.append(f"SslCa={self.ssl_ca_path}")
        else:
            parts.append("SslMode=None")
        for key, value in self.additional_parameters.items():
            parts.append(f"{key}={value}")
        return ";".join(parts) + ";"

    def masked_connection_string(self) -> str:
        """Connection string safe for logs."""
        return mask_connection_string(self.build_connection_string())

    def describe(self) -> str:
        """Short ``user@host:port/db`` label with the user obscured."""
        return f"{mask_username(self.username)}@{self.host}:{self.port}/{self.database}"


# ============================================================================
# Masking Rules
# ============================================================================


class DataMaskingRule(BaseModel):
    """Masking rule for one (table, column) pair."""

    model_config = ConfigDict(frozen=True)

    table: str
    column: str
    masking_type: MaskingType = MaskingType.FULL_MASK
    pattern: str = ""  # literal for fixed_value, template for custom_pattern

    def matches(self, table: str, column: str) -> bool:
        """Case-insensitive exact match on (table, column)."""
        return (
            self.table.lower() == table.lower()
            and self.column.lower() == column.lower()
        )


# ============================================================================
# Replication Config
# ============================================================================


class ReplicationConfig(BaseModel):
    """Complete, resolved configuration for one replication run."""

    source: ConnectionEndpoint
    target: ConnectionEndpoint
    mode: ReplicationMode = ReplicationMode.FULL
    sync_schema: bool = True
    preview_schema_changes: bool = True
    batch_size: int = Field(default=1000, gt=0)

    # Declared but not enacted -- see DESIGN.md
    max_retry_attempts: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=0)
    conflict_resolution: ConflictResolutionStrategy = ConflictResolutionStrategy.SOURCE_WINS
    include_schemas: list[str] = Field(default_factory=list)
    exclude_schemas: list[str] = Field(default_factory=list)
    enable_checkpointing: bool = False
    checkpoint_path: str = "./checkpoints"

    include_tables: list[str] = Field(default_factory=list)
    exclude_tables: list[str] = Field(default_factory=list)
    parallel_threads: int = Field(default=1, ge=1)
    data_masking_rules: list[DataMaskingRule] = Field(default_factory=list)

    def masking_rules_for(self, table: str) -> list[DataMaskingRule]:
        """Masking rules whose table matches *table* (case-insensitive)."""
        return [r for r in self.data_masking_rules if r.table.lower() == table.lower()]
