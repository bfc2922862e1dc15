"""
tminus/notifications.py

Event reminders.

NotificationScheduler is the interface the EventStore schedules through.
ReminderScheduler implements it with a single asyncio polling loop that
checks every pending reminder at a fixed interval and hands due ones to a
callback, rather than creating one task per reminder.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from .events.models import Event


DEFAULT_NOTIFICATION_TIMES = (60, 1440)


def reminder_body(minutes_before: int, event_name: str) -> str:
    """
    Reminder text for an offset in minutes.

    Examples:
        30 -> "Launch starts in 30 minutes!"
        120 -> "Launch starts in 2 hours!"
        1440 -> "Launch starts in 1 day!"
    """
    if minutes_before < 60:
        return f"{event_name} starts in {minutes_before} minutes!"
    if minutes_before < 1440:
        hours = minutes_before // 60
        return f"{event_name} starts in {hours} {'hour' if hours == 1 else 'hours'}!"
    days = minutes_before // 1440
    return f"{event_name} starts in {days} {'day' if days == 1 else 'days'}!"


@dataclass(frozen=True)
class Reminder:
    """
    A scheduled reminder.

    Attributes:
        id: "<event_id>:<minutes_before>".
        event_id: Event the reminder belongs to.
        title: Short title (the event name).
        body: Reminder text.
        fire_at: When to deliver (UTC).
    """
    id: str
    event_id: str
    title: str
    body: str
    fire_at: datetime


class NotificationScheduler(ABC):
    """Interface for scheduling event reminders."""

    @abstractmethod
    async def schedule_notifications(
        self,
        event: Event,
        minutes_before: Iterable[int] = DEFAULT_NOTIFICATION_TIMES
    ) -> List[str]:
        """
        Schedule reminders ahead of an event.

        Offsets whose fire time has already passed are skipped.

        Returns:
            Ids of the reminders actually scheduled.
        """
        pass

    @abstractmethod
    async def cancel_notifications(self, event_id: str) -> None:
        """Cancel every reminder of an event."""
        pass


class ReminderScheduler(NotificationScheduler):
    """
    Polling reminder scheduler.

    Args:
        check_interval: Seconds between checks (default: 30).
        on_notify: Async callback called with each due Reminder.
    """

    def __init__(
        self,
        check_interval: float = 30.0,
        on_notify: Optional[Callable[[Reminder], Awaitable[None]]] = None
    ):
        self.check_interval = check_interval
        self.on_notify = on_notify
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._pending: Dict[str, Reminder] = {}
        self.logger = logging.getLogger(f"{__name__}.scheduler")

    async def start(self) -> None:
        """Start the polling loop."""
        if self.running:
            self.logger.warning("Reminder scheduler already running")
            return

        self.running = True
        self._task = asyncio.create_task(self._check_loop())
        self.logger.info(
            f"Reminder scheduler started (interval: {self.check_interval}s, "
            f"tracking: {len(self._pending)} reminders)"
        )

    async def stop(self) -> None:
        """
        Stop the polling loop.

        Pending reminders are kept; they are rebuilt from the events on the
        next start anyway.
        """
        if not self.running:
            return

        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self.logger.info("Reminder scheduler stopped")

    async def schedule_notifications(
        self,
        event: Event,
        minutes_before: Iterable[int] = DEFAULT_NOTIFICATION_TIMES
    ) -> List[str]:
        now = datetime.now(timezone.utc)
        target = event.target_date
        if target.tzinfo is None:
            target = target.replace(tzinfo=timezone.utc)

        scheduled = []
        for minutes in minutes_before:
            fire_at = target - timedelta(minutes=minutes)
            if fire_at <= now:
                continue
            reminder = Reminder(
                id=f"{event.id}:{minutes}",
                event_id=event.id,
                title=event.name,
                body=reminder_body(minutes, event.name),
                fire_at=fire_at,
            )
            self._pending[reminder.id] = reminder
            scheduled.append(reminder.id)

        self.logger.debug(f"Scheduled {len(scheduled)} reminders for {event.id}")
        return scheduled

    async def cancel_notifications(self, event_id: str) -> None:
        for reminder_id in [r.id for r in self._pending.values() if r.event_id == event_id]:
            del self._pending[reminder_id]
            self.logger.debug(f"Cancelled reminder: {reminder_id}")

    @property
    def pending_count(self) -> int:
        """Number of reminders being tracked."""
        return len(self._pending)

    def get_pending(self, event_id: Optional[str] = None) -> List[Reminder]:
        """Pending reminders ordered by fire time, optionally for one event."""
        reminders = [
            r for r in self._pending.values()
            if event_id is None or r.event_id == event_id
        ]
        return sorted(reminders, key=lambda r: r.fire_at)

    async def _check_loop(self) -> None:
        """Deliver due reminders every check_interval until stopped."""
        self.logger.debug("Check loop started")

        while self.running:
            try:
                await self._fire_due()
                await asyncio.sleep(self.check_interval)
            except asyncio.CancelledError:
                self.logger.debug("Check loop cancelled")
                raise
            except Exception as e:
                self.logger.exception(f"Error in reminder loop: {e}")
                await asyncio.sleep(self.check_interval)

        self.logger.debug("Check loop ended")

    async def _fire_due(self) -> None:
        now = datetime.now(timezone.utc)
        due = [r for r in self._pending.values() if r.fire_at <= now]

        for reminder in sorted(due, key=lambda r: r.fire_at):
            del self._pending[reminder.id]
            if self.on_notify:
                try:
                    await self.on_notify(reminder)
                except Exception as e:
                    self.logger.exception(f"Error in notify callback for {reminder.id}: {e}")
