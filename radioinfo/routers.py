from typing import Annotated
from fastapi import APIRouter, Depends, HTTPException, Query, Response
import logging

from radioinfo import __version__
from radioinfo.dependencies import get_controller
from radioinfo.exceptions import ChannelNotFoundError
from radioinfo.schemas import (
    ChannelProgramsResponse,
    ChannelSummary,
    NotificationResponse,
    ProgramResponse,
    RefreshResponse,
    SnapshotResponse,
)
from radioinfo.services import RefreshController, refresh_scheduler


logger = logging.getLogger(__name__)

main_router = APIRouter()

Controller = Annotated[RefreshController, Depends(get_controller)]


@main_router.get("/")
async def root(controller: Controller) -> dict:
    """Root endpoint with service information"""
    next_run = refresh_scheduler.get_next_run_time()
    snapshot = controller.snapshot
    last = controller.last_summary

    return {
        "service": "RadioInfo",
        "version": __version__,
        "state": controller.state.value,
        "last_published": snapshot.published_at.isoformat() if snapshot.published_at else None,
        "last_refresh": last.to_dict() if last else None,
        "next_scheduled_refresh": next_run.isoformat() if next_run else None,
        "endpoints": {
            "channels": "/channels - Current channel snapshot",
            "programs": "/channels/{id}/programs - Programs of one channel",
            "image": "/channels/{id}/programs/{index}/image - Program image",
            "refresh": "/refresh - Manually trigger a refresh (POST)",
            "notifications": "/notifications - Recent notifications",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(controller: Controller) -> dict:
    """Health check endpoint"""
    next_run = refresh_scheduler.get_next_run_time()
    return {
        "status": "ok",
        "scheduler_running": refresh_scheduler.scheduler.running if refresh_scheduler.scheduler else False,
        "refreshing": controller.is_refreshing(),
        "channels": len(controller.get_snapshot()),
        "next_refresh": next_run.isoformat() if next_run else None
    }


@main_router.get("/channels", response_model=SnapshotResponse)
async def list_channels(controller: Controller) -> SnapshotResponse:
    """Current snapshot of channels in published order"""
    snapshot = controller.snapshot
    return SnapshotResponse(
        published_at=snapshot.published_at.isoformat() if snapshot.published_at else None,
        refreshing=controller.is_refreshing(),
        channels=[ChannelSummary.from_channel(channel) for channel in snapshot.channels],
    )


@main_router.get("/channels/{channel_id}/programs", response_model=ChannelProgramsResponse)
async def channel_programs(channel_id: int, controller: Controller) -> ChannelProgramsResponse:
    """
    Programs of one channel within the current window

    A channel without a schedule returns an empty list and records a
    notification.
    """
    try:
        channel = controller.snapshot.find_channel(channel_id)
        programs = controller.get_programs_for_channel(channel_id)
    except ChannelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return ChannelProgramsResponse(
        channel_id=channel.id,
        channel_name=channel.name,
        schedule_available=channel.has_schedule,
        programs=[ProgramResponse.from_program(program) for program in programs],
    )


@main_router.get("/channels/{channel_id}/programs/{index}/image")
async def program_image(channel_id: int, index: int, controller: Controller) -> Response:
    """Image of one program; a placeholder is served when the image is unavailable"""
    try:
        content, media_type = await controller.get_program_image(channel_id, index)
    except ChannelNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IndexError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return Response(content=content, media_type=media_type)


@main_router.post("/refresh", response_model=RefreshResponse)
async def trigger_refresh(controller: Controller) -> RefreshResponse:
    """
    Manually trigger a refresh

    Returns immediately; the new snapshot is published when the cycle completes.
    """
    logger.info("Manual refresh triggered via API")
    if controller.trigger_refresh(reason="manual") is None:
        return RefreshResponse(status="skipped", message="Refresh already in progress")

    return RefreshResponse(status="started", message="Refresh started")


@main_router.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    controller: Controller,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> list[NotificationResponse]:
    """Most recent notifications, oldest first"""
    return [
        NotificationResponse(**notification.to_dict())
        for notification in controller.notifications.recent(limit)
    ]
