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
Lightweight analytics tracking for the reminder bot.

Usage:
    tracker = EventTracker.from_env()

    # Fire-and-forget, uses a background task
    tracker.track("reminder_created", "reminder", chat_id=123, properties={"category": "Работа"})

    # When you need to await completion
    await tracker.track_async("time_parse_failed", "parser", chat_id=123)

Events only go anywhere when DATABASE_URL is set; otherwise tracking is a no-op.
"""

import asyncio
import json
import logging
import os
from typing import Any, Optional

import asyncpg

logger = logging.getLogger("remindbot.analytics")


class EventTracker:
    """Records events into the analytics_events table without blocking callers."""

    def __init__(self, database_url: Optional[str] = None, enabled: bool = True):
        self.database_url = database_url
        self.enabled = enabled and bool(database_url)
        self._pool: Optional[asyncpg.Pool] = None
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_env(cls) -> "EventTracker":
        """Create a tracker from DATABASE_URL and ANALYTICS_ENABLED."""
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            enabled=os.getenv("ANALYTICS_ENABLED", "true").lower() == "true",
        )

    async def _get_pool(self) -> Optional[asyncpg.Pool]:
        """Get or create the connection pool."""
        if self._pool is None and self.enabled:
            try:
                self._pool = await asyncpg.create_pool(self.database_url, min_size=1, max_size=3)
            except Exception as e:
                logger.warning(f"Analytics pool creation failed: {e}")
                self.enabled = False
                return None
        return self._pool

    async def track_async(
        self,
        event_name: str,
        event_category: str,
        chat_id: Optional[int] = None,
        properties: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Track an event asynchronously.

        Args:
            event_name: Specific event identifier (e.g., "reminder_created")
            event_category: Event group (e.g., "reminder", "parser", "error")
            chat_id: Owning chat (optional)
            properties: Additional event data as key-value pairs

        Returns:
            True if event was recorded, False otherwise
        """
        if not self.enabled:
            return False

        pool = await self._get_pool()
        if pool is None:
            return False

        try:
            await pool.execute(
                """
                INSERT INTO analytics_events
                    (event_name, event_category, chat_id, properties)
                VALUES ($1, $2, $3, $4)
                """,
                event_name,
                event_category,
                chat_id,
                json.dumps(properties or {}, default=str),
            )
            return True
        except Exception as e:
            logger.debug(f"Analytics tracking failed: {e}")
            return False

    def track(
        self,
        event_name: str,
        event_category: str,
        chat_id: Optional[int] = None,
        properties: Optional[dict[str, Any]] = None,
    ) -> None:
        """Track an event (fire-and-forget). Safe to call without a running loop."""
        if not self.enabled:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        task = loop.create_task(self.track_async(event_name, event_category, chat_id, properties))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def shutdown(self) -> None:
        """Wait for pending writes and close the pool."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
