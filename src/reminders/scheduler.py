# slashAI - Discord Bot and MCP Server
# Copyright (c) 2025-2026 Slash Daemon slashdaemon@protonmail.com
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, version 3 of the License.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.
#
# Commercial licensing: [slashdaemon@protonmail.com]

"""
Reminder Scheduler Module

Arms one cancellable timer per pending reminder and delivers it through the
gateway when due. Repeating reminders get a single follow-up timer after
delivery, cancelled by acknowledgment or deletion.

All store and timer-map access happens under one asyncio.Lock. Timer
callbacks drop the lock before calling the gateway and take it again to
arm the follow-up.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol, Sequence

from analytics import EventTracker

from .errors import EmptyNote, TimeAlreadyPassed
from .gateway import Control, DeliveryGateway, ReminderAction
from .manager import Reminder, ReminderManager

logger = logging.getLogger("remindbot.reminders.scheduler")

FOLLOW_UP_SECONDS = 60

DELIVERY_PREFIX = "🔔 Напоминание: "
FOLLOW_UP_PREFIX = "🔁 Повтор: "


class TimerCall(Protocol):
    def cancel(self) -> None: ...


class TimerFacility(Protocol):
    """Registers delayed callbacks that can be cancelled before they run."""

    def call_later(
        self, delay: float, callback: Callable[[], Awaitable[None]]
    ) -> TimerCall: ...


class ScheduledCall:
    """Handle for a callback registered with LoopTimers."""

    def __init__(self, delay: float):
        self.delay = delay
        self.cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()


class LoopTimers:
    """
    Timer facility on the running event loop.

    Uses loop.call_later, so waiting never blocks a handler and a cancelled
    timer never starts its callback.
    """

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def call_later(
        self, delay: float, callback: Callable[[], Awaitable[None]]
    ) -> ScheduledCall:
        loop = asyncio.get_running_loop()
        call = ScheduledCall(delay)

        def _start() -> None:
            if call.cancelled:
                return
            task = loop.create_task(callback())
            self._tasks.add(task)
            task.add_done_callback(self._finished)

        call._handle = loop.call_later(max(0.0, delay), _start)
        return call

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Timer callback failed", exc_info=task.exception())

    async def aclose(self) -> None:
        """Cancel callbacks that are still running."""
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


@dataclass
class ListedReminder:
    """A reminder snapshot with its remaining time in whole seconds."""

    reminder: Reminder
    remaining_seconds: int


@dataclass
class CategoryGroup:
    category: str
    reminders: list[ListedReminder]


class ReminderScheduler:
    """
    Schedules, delivers, acknowledges and deletes reminders.

    Owns the reminder store and the timer maps; everything that touches
    either goes through the scheduler's lock.
    """

    def __init__(
        self,
        gateway: DeliveryGateway,
        manager: Optional[ReminderManager] = None,
        timers: Optional[TimerFacility] = None,
        clock: Callable[[], datetime] = datetime.now,
        follow_up_seconds: float = FOLLOW_UP_SECONDS,
        tracker: Optional[EventTracker] = None,
    ):
        """
        Initialize the reminder scheduler.

        Args:
            gateway: Outbound delivery
            manager: Reminder store (a fresh one if omitted)
            timers: Timer facility (event-loop timers if omitted)
            clock: Returns the current instant
            follow_up_seconds: Delay of the single follow-up
            tracker: Analytics sink (disabled if omitted)
        """
        self.gateway = gateway
        self.manager = manager or ReminderManager()
        self.timers = timers or LoopTimers()
        self.clock = clock
        self.follow_up_seconds = follow_up_seconds
        self.tracker = tracker or EventTracker(enabled=False)

        self._lock = asyncio.Lock()
        self._primary: dict[str, TimerCall] = {}
        self._follow_up: dict[str, TimerCall] = {}

    # =========================================================================
    # Operations
    # =========================================================================

    async def schedule(
        self,
        chat_id: int,
        note: str,
        fire_at: datetime,
        category: str,
        repeat_enabled: bool = False,
    ) -> str:
        """
        Store a reminder and arm its timer.

        Returns:
            The new reminder ID

        Raises:
            EmptyNote: If note is blank
            TimeAlreadyPassed: If fire_at is not after now
        """
        note = note.strip()
        if not note:
            raise EmptyNote()

        async with self._lock:
            now = self.clock()
            if fire_at <= now:
                raise TimeAlreadyPassed(fire_at, now)

            reminder = self.manager.create_reminder(
                chat_id, note, fire_at, category, repeat_enabled
            )
            self._arm_primary(reminder.id, (fire_at - now).total_seconds())

        self.tracker.track(
            "reminder_created",
            "reminder",
            chat_id=chat_id,
            properties={
                "reminder_id": reminder.id,
                "category": category,
                "repeat_enabled": repeat_enabled,
            },
        )
        return reminder.id

    async def acknowledge(self, reminder_id: str, chat_id: Optional[int] = None) -> Reminder:
        """
        Mark a reminder completed and cancel its pending timers.

        The record stays in the store until deleted.

        Raises:
            UnknownReminderId: If the reminder is gone or owned by another chat
        """
        async with self._lock:
            reminder = self.manager.require_reminder(reminder_id, chat_id)
            self._cancel_timers(reminder_id)
            self.manager.mark_completed(reminder_id)
            snapshot = replace(reminder)

        self.tracker.track(
            "reminder_acknowledged",
            "reminder",
            chat_id=snapshot.chat_id,
            properties={"reminder_id": reminder_id},
        )
        return snapshot

    async def cancel(self, reminder_id: str, chat_id: Optional[int] = None) -> bool:
        """
        Cancel timers and remove a reminder. Unknown IDs are a no-op.

        Returns:
            True if a reminder was removed
        """
        async with self._lock:
            reminder = self.manager.get_reminder(reminder_id)
            if reminder is None or (chat_id is not None and reminder.chat_id != chat_id):
                logger.debug(f"Cancel of unknown reminder {reminder_id} ignored")
                return False
            self._cancel_timers(reminder_id)
            self.manager.remove_reminder(reminder_id)

        self.tracker.track(
            "reminder_deleted",
            "reminder",
            chat_id=reminder.chat_id,
            properties={"reminder_id": reminder_id},
        )
        return True

    async def list_reminders(
        self, chat_id: int, include_completed: bool = False
    ) -> list[CategoryGroup]:
        """
        List a chat's reminders grouped by category.

        Categories are sorted by name; reminders keep insertion order.
        Remaining time is truncated to whole seconds and never negative.
        """
        async with self._lock:
            now = self.clock()
            grouped: dict[str, list[ListedReminder]] = {}
            for reminder in self.manager.list_reminders(chat_id, include_completed):
                remaining = max(0, int((reminder.fire_at - now).total_seconds()))
                grouped.setdefault(reminder.category, []).append(
                    ListedReminder(replace(reminder), remaining)
                )

        return [CategoryGroup(category, grouped[category]) for category in sorted(grouped)]

    async def set_latest_category(self, chat_id: int, category: str) -> Optional[str]:
        """
        Re-tag the chat's most recent reminder.

        Returns:
            ID of the re-tagged reminder, or None if the chat has none
        """
        async with self._lock:
            reminder = self.manager.latest_reminder(chat_id)
            if reminder is None:
                return None
            self.manager.set_category(reminder.id, category)
            return reminder.id

    def is_armed(self, reminder_id: str) -> bool:
        return reminder_id in self._primary

    def follow_up_armed(self, reminder_id: str) -> bool:
        return reminder_id in self._follow_up

    async def shutdown(self) -> None:
        """Cancel every armed timer."""
        async with self._lock:
            for reminder_id in set(self._primary) | set(self._follow_up):
                self._cancel_timers(reminder_id)
        aclose = getattr(self.timers, "aclose", None)
        if aclose is not None:
            await aclose()
        logger.info("Reminder scheduler stopped")

    # =========================================================================
    # Timers
    # =========================================================================

    def _arm_primary(self, reminder_id: str, delay: float) -> None:
        call: Optional[TimerCall] = None

        async def _fire() -> None:
            await self._on_primary(reminder_id, call)

        call = self.timers.call_later(delay, _fire)
        self._primary[reminder_id] = call
        logger.debug(f"Armed reminder {reminder_id} in {delay:.1f}s")

    def _arm_follow_up(self, reminder_id: str) -> None:
        call: Optional[TimerCall] = None

        async def _fire() -> None:
            await self._on_follow_up(reminder_id, call)

        call = self.timers.call_later(self.follow_up_seconds, _fire)
        self._follow_up[reminder_id] = call
        logger.debug(f"Armed follow-up for {reminder_id} in {self.follow_up_seconds}s")

    def _cancel_timers(self, reminder_id: str) -> None:
        for timers in (self._primary, self._follow_up):
            call = timers.pop(reminder_id, None)
            if call is not None:
                call.cancel()

    async def _on_primary(self, reminder_id: str, call: Optional[TimerCall]) -> None:
        async with self._lock:
            # Cancelled or replaced before we got the lock
            if call is None or self._primary.get(reminder_id) is not call:
                return
            del self._primary[reminder_id]

            reminder = self.manager.mark_fired(reminder_id)
            if reminder is None or reminder.completed:
                return
            chat_id, note, repeat = reminder.chat_id, reminder.note, reminder.repeat_enabled

        controls = []
        if repeat:
            controls.append(Control(ReminderAction.ACKNOWLEDGE, reminder_id))
        controls.append(Control(ReminderAction.DELETE, reminder_id))

        delivered = await self._deliver(chat_id, DELIVERY_PREFIX + note, controls)
        logger.info(f"Delivered reminder {reminder_id} to chat {chat_id} (ok={delivered})")
        self.tracker.track(
            "reminder_delivered",
            "reminder",
            chat_id=chat_id,
            properties={"reminder_id": reminder_id, "success": delivered, "repeat": repeat},
        )

        if not repeat:
            return

        async with self._lock:
            reminder = self.manager.get_reminder(reminder_id)
            if reminder is None or reminder.completed:
                return
            self._arm_follow_up(reminder_id)

    async def _on_follow_up(self, reminder_id: str, call: Optional[TimerCall]) -> None:
        async with self._lock:
            if call is None or self._follow_up.get(reminder_id) is not call:
                return
            del self._follow_up[reminder_id]

            reminder = self.manager.get_reminder(reminder_id)
            if reminder is None or reminder.completed:
                return
            chat_id, note = reminder.chat_id, reminder.note

        controls = [
            Control(ReminderAction.ACKNOWLEDGE, reminder_id),
            Control(ReminderAction.DELETE, reminder_id),
        ]
        delivered = await self._deliver(chat_id, FOLLOW_UP_PREFIX + note, controls)
        logger.info(f"Sent follow-up for reminder {reminder_id} (ok={delivered})")
        self.tracker.track(
            "reminder_follow_up",
            "reminder",
            chat_id=chat_id,
            properties={"reminder_id": reminder_id, "success": delivered},
        )

    async def _deliver(self, chat_id: int, text: str, controls: Sequence[Control]) -> bool:
        try:
            await self.gateway.deliver(chat_id, text, controls)
            return True
        except Exception as e:
            logger.error(f"Failed to deliver to chat {chat_id}: {e}", exc_info=True)
            return False
