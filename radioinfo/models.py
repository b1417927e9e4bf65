"""
In-memory data model for channels and their schedules.

All records are immutable. A refresh cycle builds a new set of records
and publishes them as one Snapshot.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


SENTINEL_CHANNEL_ID = 0


@dataclass(frozen=True, slots=True)
class Program:
    """Single scheduled episode with local wall-clock times."""
    name: str
    description: str
    start_time: str
    end_time: str
    image_url: str | None = None


@dataclass(frozen=True, slots=True)
class Channel:
    """Channel and its programs inside the admitted time window.

    An id of SENTINEL_CHANNEL_ID marks a channel whose schedule
    could not be found; its programs are always empty.
    """
    id: int
    name: str
    programs: tuple[Program, ...] = ()

    @property
    def has_schedule(self) -> bool:
        return self.id != SENTINEL_CHANNEL_ID


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Complete channel collection published by one refresh cycle."""
    channels: tuple[Channel, ...] = field(default_factory=tuple)
    published_at: datetime | None = None

    def find_channel(self, channel_id: int) -> Channel | None:
        for channel in self.channels:
            if channel.id == channel_id:
                return channel
        return None

    @property
    def program_count(self) -> int:
        return sum(len(channel.programs) for channel in self.channels)


EMPTY_SNAPSHOT = Snapshot()


__all__ = ["SENTINEL_CHANNEL_ID", "Program", "Channel", "Snapshot", "EMPTY_SNAPSHOT"]
