"""
Notification Scheduler Interface

The core resolves each category's effective due date and the reminder
dates around it. Actually delivering reminders (push notifications,
e-mail, calendar) is the scheduler's job.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from zerobudget.models.budget import ReminderRequest


class NotificationSchedulerInterface(ABC):

    @abstractmethod
    async def schedule(self, request: ReminderRequest) -> None:
        """
        Schedule reminders for one category, replacing any existing ones.

        The request's due_date is already resolved; use it as-is.
        """
        pass

    @abstractmethod
    async def cancel(self, category_id: UUID) -> None:
        """Cancel all reminders for a category. Unknown ids are a no-op."""
        pass


class InMemoryNotificationScheduler(NotificationSchedulerInterface):
    """Keeps the latest request per category. Used by tests and local sessions."""

    def __init__(self):
        self.scheduled: dict[UUID, ReminderRequest] = {}

    async def schedule(self, request: ReminderRequest) -> None:
        self.scheduled[request.category_id] = request

    async def cancel(self, category_id: UUID) -> None:
        self.scheduled.pop(category_id, None)
