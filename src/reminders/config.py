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
Reminder Configuration

Tunable parameters for parsing, scheduling and follow-ups.
Values can be overridden via environment variables.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import pytz

logger = logging.getLogger("remindbot.reminders.config")

DEFAULT_CATEGORY = "Другое"


def validate_timezone(tz_name: str) -> bool:
    """
    Validate that a timezone name is valid.

    Args:
        tz_name: IANA timezone name (e.g., "Europe/Moscow")

    Returns:
        True if valid, False otherwise
    """
    try:
        pytz.timezone(tz_name)
        return True
    except pytz.UnknownTimeZoneError:
        return False


@dataclass
class ReminderConfig:
    """Configuration for the reminder service."""

    # IANA name; None means server local time (naive datetimes)
    timezone: Optional[str] = None

    # Single follow-up sent this long after an unacknowledged delivery
    follow_up_seconds: int = 60

    # Clock time used when only a day is given
    default_hour: int = 9

    default_category: str = DEFAULT_CATEGORY

    @classmethod
    def from_env(cls) -> "ReminderConfig":
        """Create config from environment variables with defaults."""
        timezone = os.getenv("REMINDER_TIMEZONE") or None
        if timezone and not validate_timezone(timezone):
            logger.warning(
                f"Invalid REMINDER_TIMEZONE '{timezone}', falling back to server local time"
            )
            timezone = None

        return cls(
            timezone=timezone,
            follow_up_seconds=int(os.getenv("REMINDER_FOLLOW_UP_SECONDS", "60")),
            default_hour=int(os.getenv("REMINDER_DEFAULT_HOUR", "9")),
            default_category=os.getenv("REMINDER_DEFAULT_CATEGORY", DEFAULT_CATEGORY),
        )

    def clock(self) -> Callable[[], datetime]:
        """Return a callable giving the current instant in the configured zone."""
        if self.timezone is None:
            return datetime.now

        tz = pytz.timezone(self.timezone)
        return lambda: datetime.now(tz)
