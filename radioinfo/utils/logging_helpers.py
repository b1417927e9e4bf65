"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging of refresh cycles.
"""
import logging
from datetime import datetime, timezone


def log_refresh_start(logger: logging.Logger, reason: str) -> None:
    """
    Log the start of a refresh cycle.

    Args:
        logger: Logger instance
        reason: What triggered the refresh (e.g. 'manual', 'scheduled')
    """
    logger.info(f"Refresh ({reason}) started at {datetime.now(timezone.utc).isoformat()}")


def log_refresh_end(logger: logging.Logger, reason: str) -> None:
    """Log refresh cycle end."""
    logger.info(f"Refresh ({reason}) finished at {datetime.now(timezone.utc).isoformat()}")


def log_channel_processing(logger: logging.Logger, idx: int, total: int, channel_id: int, name: str) -> None:
    """
    Log per-channel schedule fetch header.

    Args:
        logger: Logger instance
        idx: Current channel index (1-based)
        total: Total number of channels
        channel_id: Channel id being fetched
        name: Channel name
    """
    logger.debug(f"Fetching schedule {idx}/{total}: channel {channel_id} ({name})")


def log_snapshot_summary(
    logger: logging.Logger,
    channels_count: int,
    programs_count: int,
    missing_count: int
) -> None:
    """
    Log snapshot summary.

    Args:
        logger: Logger instance
        channels_count: Number of channels in the snapshot
        programs_count: Number of programs across all channels
        missing_count: Number of channels without a schedule
    """
    logger.info(
        f"Snapshot summary - Channels: {channels_count}, Programs: {programs_count}, "
        f"Without schedule: {missing_count}"
    )
