"""
Refresh Controller

Owns the published channel snapshot and runs refresh cycles with single-flight
protection. Timer and manual triggers share one entry point; a trigger that
arrives while a cycle is running is dropped, not queued.
"""
from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Callable, Literal

from radioinfo.config import RadioInfoSettings, settings
from radioinfo.exceptions import ChannelNotFoundError, ConnectivityError, LoadError
from radioinfo.models import EMPTY_SNAPSHOT, Channel, Program, Snapshot
from radioinfo.services.data_loader import DataLoader
from radioinfo.services.notifications import Notification, NotificationCenter, NotificationKind
from radioinfo.utils.logging_helpers import log_refresh_end, log_refresh_start, log_snapshot_summary


logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(slots=True)
class RefreshSummary:
    reason: str
    started_at: datetime
    completed_at: datetime
    status: Literal["success", "failed"]
    channels_loaded: int = 0
    programs_loaded: int = 0
    channels_without_schedule: int = 0
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        payload = {
            "reason": self.reason,
            "status": self.status,
            "channels_loaded": self.channels_loaded,
            "programs_loaded": self.programs_loaded,
            "channels_without_schedule": self.channels_without_schedule,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }
        if self.error:
            payload["error"] = self.error
        return payload


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RefreshController:
    """
    Coordinates refresh cycles and serves the current snapshot.

    The cycle runs as an asyncio task; its completion callback is the only
    place the snapshot is replaced, so readers always see a whole generation.
    """

    def __init__(
        self,
        config: RadioInfoSettings = settings,
        *,
        loader_factory: Callable[[], DataLoader] | None = None,
        notifications: NotificationCenter | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config
        self._loader_factory = loader_factory or (lambda: DataLoader(config))
        self.notifications = notifications or NotificationCenter(config.notification_history_size)
        self._clock = clock

        self._state = RefreshState.IDLE
        self._state_lock = threading.Lock()
        self._snapshot: Snapshot = EMPTY_SNAPSHOT
        self._task: asyncio.Task | None = None
        self._last_summary: RefreshSummary | None = None

    @property
    def state(self) -> RefreshState:
        return self._state

    def is_refreshing(self) -> bool:
        return self._state is RefreshState.REFRESHING

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def last_summary(self) -> RefreshSummary | None:
        return self._last_summary

    def get_snapshot(self) -> tuple[Channel, ...]:
        """Return the channels of the current snapshot in published order"""
        return self._snapshot.channels

    def get_programs_for_channel(self, channel_id: int) -> tuple[Program, ...]:
        """
        Return the programs of a channel in the current snapshot

        A channel without a schedule yields no programs and a NO_SCHEDULE
        notification.

        Raises:
            ChannelNotFoundError: If no channel has this id
        """
        channel = self._snapshot.find_channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)

        if not channel.has_schedule:
            self.notifications.publish(Notification(
                kind=NotificationKind.NO_SCHEDULE,
                message=f"Could not find a schedule for channel {channel.name}",
                channel_id=channel.id,
            ))
            return ()

        return channel.programs

    def get_program(self, channel_id: int, index: int) -> Program:
        """
        Return one program by its position in the channel's schedule

        Raises:
            ChannelNotFoundError: If no channel has this id
            IndexError: If the position is outside the schedule
        """
        channel = self._snapshot.find_channel(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        if index < 0 or index >= len(channel.programs):
            raise IndexError(f"Channel {channel_id} has no program at position {index}")
        return channel.programs[index]

    async def get_program_image(self, channel_id: int, index: int) -> tuple[bytes, str]:
        """Return (content, media_type) for a program image, placeholder on failure"""
        program = self.get_program(channel_id, index)
        async with self._loader_factory() as loader:
            return await loader.load_program_image(program)

    def trigger_refresh(self, reason: str = "manual") -> asyncio.Future | None:
        """
        Start a refresh cycle unless one is already running

        Must be called from the event loop thread.

        Args:
            reason: What triggered the refresh, used for logging

        Returns:
            Future resolving to the RefreshSummary once the result has been
            published, or None if the trigger was dropped
        """
        loop = asyncio.get_running_loop()

        if not self._try_begin():
            logger.warning("Refresh already in progress, skipping %s trigger", reason)
            return None

        started_at = self._clock()
        completion: asyncio.Future = loop.create_future()
        log_refresh_start(logger, reason)

        task = loop.create_task(self._run_cycle(reason))
        self._task = task
        task.add_done_callback(partial(self._on_cycle_done, reason, started_at, completion))
        return completion

    async def refresh(self, reason: str = "manual") -> RefreshSummary | None:
        """Trigger a refresh and wait for its summary; None if it was dropped"""
        completion = self.trigger_refresh(reason)
        if completion is None:
            return None
        return await completion

    async def aclose(self) -> None:
        """Cancel an in-flight cycle, used at shutdown"""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    def _try_begin(self) -> bool:
        with self._state_lock:
            if self._state is not RefreshState.IDLE:
                return False
            self._state = RefreshState.REFRESHING
            return True

    def _finish(self) -> None:
        with self._state_lock:
            self._state = RefreshState.IDLE

    async def _run_cycle(self, reason: str) -> list[Channel]:
        async with self._loader_factory() as loader:
            await loader.check_connectivity()
            # consumers drop their channel lists; the snapshot itself stays until publish
            self.notifications.publish(Notification(
                kind=NotificationKind.REFRESH_STARTED,
                message=f"Refresh ({reason}) started",
            ))
            return await loader.load_channels_with_schedules()

    def _on_cycle_done(
        self,
        reason: str,
        started_at: datetime,
        completion: asyncio.Future,
        task: asyncio.Task,
    ) -> None:
        summary = RefreshSummary(
            reason=reason,
            started_at=started_at,
            completed_at=self._clock(),
            status="failed",
        )
        try:
            if task.cancelled():
                logger.warning("Refresh (%s) cancelled", reason)
                summary.error = "cancelled"
            elif task.exception() is None:
                snapshot = self._publish(task.result())
                summary.status = "success"
                summary.channels_loaded = len(snapshot.channels)
                summary.programs_loaded = snapshot.program_count
                summary.channels_without_schedule = sum(
                    1 for channel in snapshot.channels if not channel.has_schedule
                )
                self.notifications.publish(Notification(
                    kind=NotificationKind.REFRESH_COMPLETED,
                    message=f"Loaded {summary.channels_loaded} channels",
                ))
            else:
                summary.error = str(task.exception())
                self._report_failure(reason, task.exception())
        finally:
            self._last_summary = summary
            self._task = None
            self._finish()
            log_refresh_end(logger, reason)
            if not completion.done():
                completion.set_result(summary)

    def _report_failure(self, reason: str, exc: BaseException) -> None:
        if isinstance(exc, ConnectivityError):
            logger.error("Refresh (%s) aborted, no connection: %s", reason, exc)
            kind = NotificationKind.CONNECTIVITY_FAILED
            message = f"No connection: {exc}"
        elif isinstance(exc, LoadError):
            logger.error("Refresh (%s) aborted: %s", reason, exc)
            kind = NotificationKind.LOAD_FAILED
            message = f"Could not load channels: {exc}"
        else:
            logger.error("Unexpected error during refresh (%s): %s", reason, exc, exc_info=exc)
            kind = NotificationKind.LOAD_FAILED
            message = f"Could not load channels: {exc}"

        self.notifications.publish(Notification(kind=kind, message=message))

    def _publish(self, channels: list[Channel]) -> Snapshot:
        snapshot = Snapshot(channels=tuple(channels), published_at=self._clock())
        self._snapshot = snapshot
        log_snapshot_summary(
            logger,
            len(snapshot.channels),
            snapshot.program_count,
            sum(1 for channel in snapshot.channels if not channel.has_schedule),
        )
        return snapshot


# Global singleton instance
_controller: RefreshController | None = None


def get_refresh_controller() -> RefreshController:
    """
    Get or create the global refresh controller singleton.

    Returns:
        The global RefreshController instance
    """
    global _controller
    if _controller is None:
        _controller = RefreshController()
    return _controller


def reset_refresh_controller() -> None:
    """
    Reset the refresh controller (mainly for testing).

    WARNING: Only use this in test environments!
    """
    global _controller
    _controller = None
