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
Reminder Errors

Every failure the reminder core can report. Handlers in the service layer
catch ReminderError and turn it into a reply; nothing here is fatal.
"""

from datetime import datetime
from typing import Optional


class ReminderError(Exception):
    """Base class for reminder failures."""

    pass


class TimeParseError(ReminderError):
    """Raised when a time expression cannot be turned into a future instant."""

    pass


class UnrecognizedTimeExpression(TimeParseError):
    """No duration or date pattern matched the text."""

    def __init__(self, text: str):
        super().__init__(f"Could not recognize a time expression in: '{text}'")
        self.text = text


class TimeAlreadyPassed(TimeParseError):
    """A pattern matched but the resolved instant is not after now."""

    def __init__(self, fire_at: datetime, now: Optional[datetime] = None):
        super().__init__(f"Time {fire_at.isoformat()} has already passed")
        self.fire_at = fire_at
        self.now = now


class EmptyNote(ReminderError):
    """The time resolved but no note text was left to remind about."""

    def __init__(self):
        super().__init__("Reminder note is empty")


class UnknownReminderId(ReminderError, LookupError):
    """An operation referenced a reminder that is not in the store."""

    def __init__(self, reminder_id: str):
        super().__init__(f"Unknown reminder: {reminder_id}")
        self.reminder_id = reminder_id
