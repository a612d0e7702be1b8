"""Notification scheduler package."""

from zerobudget.services.notifications.interface import (
    InMemoryNotificationScheduler,
    NotificationSchedulerInterface,
)

__all__ = ["InMemoryNotificationScheduler", "NotificationSchedulerInterface"]
