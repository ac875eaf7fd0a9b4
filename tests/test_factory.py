"""Tests for the client factory and endpoint validation."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from db_replicator.adapters.mysql import AsyncMySQLAdapter
from db_replicator.config.models import ConnectionEndpoint, ReplicationConfig
from db_replicator.errors import DatabaseConnectionError
from db_replicator.factory import connect_and_validate, create_adapter


def _config() -> ReplicationConfig:
    return ReplicationConfig(
        source=ConnectionEndpoint(database="src"),
        target=ConnectionEndpoint(database="dst"),
    )


def _make_client(version: str = "8.0.36", error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.test_connection = AsyncMock(return_value=True, side_effect=error)
    client.server_version = AsyncMock(return_value=version)
    client.close = AsyncMock()
    return client


# ============================================================================
# Test: create_adapter
# ============================================================================


class TestCreateAdapter:
    """Verify create_adapter builds a MySQL adapter for the endpoint."""

    def test_returns_mysql_adapter(self) -> None:
        """The adapter is bound to the given endpoint."""
        endpoint = ConnectionEndpoint(database="shop")
        with patch("db_replicator.adapters.mysql.create_async_engine_pooled"):
            adapter = create_adapter(endpoint)
        assert isinstance(adapter, AsyncMySQLAdapter)
        assert adapter.endpoint is endpoint


# ============================================================================
# Test: connect_and_validate
# ============================================================================


class TestConnectAndValidate:
    """Verify both endpoints are checked and failures reported, not raised."""

    @pytest.mark.asyncio
    async def test_success_records_versions(self) -> None:
        """Both server versions are recorded and clients closed."""
        source, target = _make_client("8.0.36"), _make_client("8.4.0")
        with patch("db_replicator.factory.create_adapter", side_effect=[source, target]):
            result = await connect_and_validate(_config())

        assert result.success
        assert result.source_version == "8.0.36"
        assert result.target_version == "8.4.0"
        source.close.assert_awaited_once()
        target.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_source_failure(self) -> None:
        """A source failure stops before the target is checked."""
        source = _make_client(error=DatabaseConnectionError("refused"))
        with patch("db_replicator.factory.create_adapter", side_effect=[source]) as mock_create:
            result = await connect_and_validate(_config())

        assert not result.success
        assert result.error_message == "Failed to connect to source database: refused"
        assert mock_create.call_count == 1
        source.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_target_failure_keeps_source_version(self) -> None:
        """A target failure still reports the source version."""
        source = _make_client("8.0.36")
        target = _make_client(error=DatabaseConnectionError("access denied"))
        with patch("db_replicator.factory.create_adapter", side_effect=[source, target]):
            result = await connect_and_validate(_config())

        assert not result.success
        assert result.error_message == "Failed to connect to target database: access denied"
        assert result.source_version == "8.0.36"
        assert result.target_version == ""
