"""Replication progress snapshots, the channel that carries them, and a
``rich`` renderer that consumes them.

Producers call ``ProgressChannel.publish()``, which never blocks: when the
channel is full the oldest snapshot is dropped.  A single consumer iterates
the channel with ``async for`` until it is closed.

Usage:
    channel = ProgressChannel()
    renderer = asyncio.create_task(render_progress(channel))
    result = await run_replication(config, progress=channel)
    channel.close()
    await renderer
"""

import asyncio
import time

from pydantic import BaseModel, ConfigDict
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)


class ReplicationProgress(BaseModel):
    """Point-in-time progress of a replication run."""

    model_config = ConfigDict(frozen=True)

    current_table: str
    current_table_index: int
    total_tables: int
    processed_rows: int = 0
    total_rows: int = 0
    rows_per_second: float = 0.0
    table_percent_complete: float = 0.0
    overall_percent_complete: float = 0.0

    @classmethod
    def for_table(
        cls,
        table: str,
        table_index: int,
        total_tables: int,
        processed_rows: int,
        total_rows: int,
        rows_per_second: float,
    ) -> "ReplicationProgress":
        """Build a snapshot, deriving both percentages.

        Example:
            >>> p = ReplicationProgress.for_table("users", 2, 4, 50, 100, 10.0)
            >>> p.table_percent_complete, p.overall_percent_complete
            (50.0, 37.5)
        """
        if total_rows > 0:
            table_fraction = min(processed_rows / total_rows, 1.0)
        else:
            table_fraction = 1.0
        overall = 0.0
        if total_tables > 0:
            overall = (table_index - 1 + table_fraction) / total_tables * 100
        return cls(
            current_table=table,
            current_table_index=table_index,
            total_tables=total_tables,
            processed_rows=processed_rows,
            total_rows=total_rows,
            rows_per_second=rows_per_second,
            table_percent_complete=table_fraction * 100,
            overall_percent_complete=overall,
        )


class ProgressChannel:
    """Bounded single-consumer channel of ``ReplicationProgress`` snapshots.

    Args:
        maxsize: Snapshots held before the oldest is dropped.
    """

    def __init__(self, maxsize: int = 100) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be at least 1")
        self._queue: asyncio.Queue[ReplicationProgress | None] = asyncio.Queue(maxsize)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _put(self, item: ReplicationProgress | None) -> None:
        while True:
            try:
                self._queue.put_nowait(item)
                return
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                    self.dropped += 1
                except asyncio.QueueEmpty:
                    pass

    def publish(self, snapshot: ReplicationProgress) -> None:
        """Enqueue *snapshot* without blocking; ignored once closed."""
        if not self._closed:
            self._put(snapshot)

    def close(self) -> None:
        """Signal the consumer that no more snapshots will arrive."""
        if not self._closed:
            self._closed = True
            self._put(None)

    def __aiter__(self) -> "ProgressChannel":
        return self

    async def __anext__(self) -> ReplicationProgress:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


async def render_progress(
    channel: ProgressChannel,
    console: Console | None = None,
    interval: float = 1.0,
) -> ReplicationProgress | None:
    """Draw snapshots from *channel* as ``rich`` progress bars.

    The display is refreshed at most once per *interval* seconds, plus once
    when the channel closes.

    Returns:
        The last snapshot received, or ``None`` if there was none.
    """
    last: ReplicationProgress | None = None
    last_refresh = 0.0

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("{task.fields[detail]}"),
        TimeElapsedColumn(),
        console=console,
        auto_refresh=False,
    ) as progress:
        overall = progress.add_task("Overall", total=100, detail="")
        current = progress.add_task("Waiting", total=100, detail="")

        async for snapshot in channel:
            last = snapshot
            progress.update(
                overall,
                completed=snapshot.overall_percent_complete,
                detail=f"table {snapshot.current_table_index}/{snapshot.total_tables}",
            )
            progress.update(
                current,
                description=snapshot.current_table,
                completed=snapshot.table_percent_complete,
                detail=(
                    f"{snapshot.processed_rows:,}/{snapshot.total_rows:,} rows "
                    f"({snapshot.rows_per_second:,.0f}/s)"
                ),
            )
            now = time.monotonic()
            if now - last_refresh >= interval:
                progress.refresh()
                last_refresh = now

        progress.refresh()

    return last
