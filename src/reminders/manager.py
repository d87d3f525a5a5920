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
Reminder Manager Module

In-memory store for reminder records, keyed by ID and indexed per chat.
Not locked on its own; ReminderScheduler holds its lock around every call.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .errors import UnknownReminderId

logger = logging.getLogger("remindbot.reminders.manager")


@dataclass
class Reminder:
    """A scheduled note bound to one chat."""

    id: str
    chat_id: int
    note: str
    fire_at: datetime
    category: str
    repeat_enabled: bool  # captured at creation, never re-read
    completed: bool = False
    fired: bool = False


def make_reminder_id(chat_id: int, fire_at: datetime) -> str:
    """Derive an ID from the owning chat and the fire instant."""
    stamp = int(fire_at.timestamp() * 1_000_000)
    return f"{chat_id}_{stamp}"


class ReminderManager:
    """
    Holds reminder records for all chats.

    Provides methods to create, look up, re-tag, complete and remove
    reminders, plus per-chat listing in insertion order.
    """

    def __init__(self):
        self._reminders: dict[str, Reminder] = {}
        self._by_chat: dict[int, list[str]] = {}

    def __len__(self) -> int:
        return len(self._reminders)

    def __contains__(self, reminder_id: str) -> bool:
        return reminder_id in self._reminders

    def create_reminder(
        self,
        chat_id: int,
        note: str,
        fire_at: datetime,
        category: str,
        repeat_enabled: bool = False,
    ) -> Reminder:
        """
        Create and store a new reminder.

        Args:
            chat_id: Owning chat
            note: Reminder text
            fire_at: When to deliver
            category: Category label
            repeat_enabled: Send one follow-up if not acknowledged

        Returns:
            The stored Reminder
        """
        base_id = make_reminder_id(chat_id, fire_at)
        reminder_id = base_id
        suffix = 1
        # Same chat, same instant: keep IDs unique
        while reminder_id in self._reminders:
            reminder_id = f"{base_id}_{suffix}"
            suffix += 1

        reminder = Reminder(
            id=reminder_id,
            chat_id=chat_id,
            note=note,
            fire_at=fire_at,
            category=category,
            repeat_enabled=repeat_enabled,
        )
        self._reminders[reminder_id] = reminder
        self._by_chat.setdefault(chat_id, []).append(reminder_id)

        logger.info(
            f"Created reminder {reminder_id} for chat {chat_id}: "
            f"fire_at={fire_at}, category={category}, repeat={repeat_enabled}"
        )
        return reminder

    def get_reminder(self, reminder_id: str) -> Optional[Reminder]:
        return self._reminders.get(reminder_id)

    def require_reminder(self, reminder_id: str, chat_id: Optional[int] = None) -> Reminder:
        """
        Get a reminder or raise.

        Args:
            reminder_id: Reminder ID
            chat_id: If given, the reminder must belong to this chat

        Raises:
            UnknownReminderId: If missing or owned by another chat
        """
        reminder = self._reminders.get(reminder_id)
        if reminder is None or (chat_id is not None and reminder.chat_id != chat_id):
            raise UnknownReminderId(reminder_id)
        return reminder

    def list_reminders(self, chat_id: int, include_completed: bool = False) -> list[Reminder]:
        """List a chat's reminders in insertion order."""
        reminders = [self._reminders[rid] for rid in self._by_chat.get(chat_id, [])]
        if include_completed:
            return reminders
        return [r for r in reminders if not r.completed]

    def latest_reminder(self, chat_id: int) -> Optional[Reminder]:
        """Most recently created reminder of a chat, if any."""
        ids = self._by_chat.get(chat_id)
        if not ids:
            return None
        return self._reminders[ids[-1]]

    def set_category(self, reminder_id: str, category: str) -> bool:
        reminder = self._reminders.get(reminder_id)
        if reminder is None:
            return False
        reminder.category = category
        logger.info(f"Re-tagged reminder {reminder_id} as '{category}'")
        return True

    def mark_fired(self, reminder_id: str) -> Optional[Reminder]:
        reminder = self._reminders.get(reminder_id)
        if reminder is not None:
            reminder.fired = True
        return reminder

    def mark_completed(self, reminder_id: str) -> Optional[Reminder]:
        reminder = self._reminders.get(reminder_id)
        if reminder is not None:
            reminder.completed = True
            logger.info(f"Reminder {reminder_id} completed")
        return reminder

    def remove_reminder(self, reminder_id: str) -> Optional[Reminder]:
        """
        Remove a reminder. Removing an unknown ID is a no-op.

        Returns:
            The removed Reminder, or None if it was not stored
        """
        reminder = self._reminders.pop(reminder_id, None)
        if reminder is None:
            return None

        chat_ids = self._by_chat.get(reminder.chat_id, [])
        if reminder_id in chat_ids:
            chat_ids.remove(reminder_id)
        if not chat_ids:
            self._by_chat.pop(reminder.chat_id, None)

        logger.info(f"Removed reminder {reminder_id} for chat {reminder.chat_id}")
        return reminder

    def all_ids(self) -> list[str]:
        return list(self._reminders)
