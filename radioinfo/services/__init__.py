"""
Services package for RadioInfo

This package contains the loading pipeline, the refresh controller and the scheduler.
"""
from radioinfo.services.data_loader import DataLoader
from radioinfo.services.notifications import Notification, NotificationCenter, NotificationKind
from radioinfo.services.refresh_controller import (
    RefreshController,
    RefreshState,
    RefreshSummary,
    get_refresh_controller,
)
from radioinfo.services.scheduler_service import refresh_scheduler

__all__ = [
    'DataLoader',
    'Notification',
    'NotificationCenter',
    'NotificationKind',
    'RefreshController',
    'RefreshState',
    'RefreshSummary',
    'get_refresh_controller',
    'refresh_scheduler',
]
