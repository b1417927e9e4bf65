from pydantic import BaseModel, Field

from radioinfo.models import Channel, Program


class ProgramResponse(BaseModel):
    """Single program data"""
    name: str
    description: str
    start_time: str = Field(..., description="Local start time (Europe/Stockholm) or '-' if unknown")
    end_time: str = Field(..., description="Local end time (Europe/Stockholm) or '-' if unknown")
    image_url: str | None = None

    @classmethod
    def from_program(cls, program: Program) -> "ProgramResponse":
        return cls(
            name=program.name,
            description=program.description,
            start_time=program.start_time,
            end_time=program.end_time,
            image_url=program.image_url,
        )


class ChannelSummary(BaseModel):
    """Channel entry in the snapshot listing"""
    id: int = Field(..., description="Channel id, 0 when no schedule was found")
    name: str
    schedule_available: bool
    program_count: int

    @classmethod
    def from_channel(cls, channel: Channel) -> "ChannelSummary":
        return cls(
            id=channel.id,
            name=channel.name,
            schedule_available=channel.has_schedule,
            program_count=len(channel.programs),
        )


class SnapshotResponse(BaseModel):
    """Current snapshot"""
    published_at: str | None
    refreshing: bool
    channels: list[ChannelSummary]


class ChannelProgramsResponse(BaseModel):
    """Programs of one channel"""
    channel_id: int
    channel_name: str
    schedule_available: bool
    programs: list[ProgramResponse]


class NotificationResponse(BaseModel):
    kind: str
    message: str
    created_at: str
    channel_id: int | None = None
    is_error: bool


class RefreshResponse(BaseModel):
    """Outcome of a manual refresh request"""
    status: str = Field(..., description="'started' or 'skipped'")
    message: str
