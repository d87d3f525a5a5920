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
remindbot Discord Bot

Maintains the Discord connection and runs the conversational reminder
service on top of it. Also serves a plain /healthz endpoint for the host.
"""

import asyncio
import os
from typing import Optional

import discord
from aiohttp import web
from discord.ext import commands
from dotenv import load_dotenv

from analytics import EventTracker
from commands.reminder_commands import DiscordGateway, ReminderCommands
from reminders import ReminderConfig, ReminderService

load_dotenv()

import logging

DEFAULT_HEALTH_PORT = 8081

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("remindbot")


async def _healthz(request: web.Request) -> web.Response:
    return web.Response(text="OK")


def build_health_app() -> web.Application:
    """aiohttp application exposing GET /healthz."""
    app = web.Application()
    app.router.add_get("/healthz", _healthz)
    return app


class DiscordBot(commands.Bot):
    """Discord bot that hosts the reminder service."""

    def __init__(
        self,
        config: Optional[ReminderConfig] = None,
        analytics: Optional[EventTracker] = None,
        health_port: Optional[int] = None,
    ):
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.messages = True

        super().__init__(command_prefix="!", intents=intents)

        self.config = config or ReminderConfig.from_env()
        self.analytics = analytics or EventTracker.from_env()
        self.health_port = health_port or int(os.getenv("HEALTH_PORT", DEFAULT_HEALTH_PORT))

        self.gateway = DiscordGateway(self)
        self.reminder_service = ReminderService(
            self.gateway, config=self.config, analytics=self.analytics
        )
        self.gateway.bind(self.reminder_service)

        self._health_runner: Optional[web.AppRunner] = None

    async def setup_hook(self):
        """Called when the bot is starting up."""
        logger.info(f"Setup: REMINDER_TIMEZONE={self.config.timezone or 'server local'}")
        logger.info(f"Setup: REMINDER_FOLLOW_UP_SECONDS={self.config.follow_up_seconds}")
        logger.info(f"Setup: DATABASE_URL={'set' if os.getenv('DATABASE_URL') else 'missing'}")
        logger.info(f"Setup: ANALYTICS_ENABLED={self.analytics.enabled}")

        await self.add_cog(ReminderCommands(self, self.reminder_service))
        logger.info("Reminder commands registered")

        await self._start_health_server()

    async def _start_health_server(self):
        self._health_runner = web.AppRunner(build_health_app())
        await self._health_runner.setup()
        site = web.TCPSite(self._health_runner, port=self.health_port)
        await site.start()
        logger.info(f"Health endpoint listening on :{self.health_port}/healthz")

    async def on_ready(self):
        """Called when the bot has connected to Discord."""
        print(f"Logged in as {self.user} (ID: {self.user.id})")
        print(f"Connected to {len(self.guilds)} guild(s)")

    async def close(self):
        """Clean up resources on shutdown."""
        await self.reminder_service.shutdown()
        if self._health_runner:
            await self._health_runner.cleanup()
        await super().close()


async def main():
    """Run the bot."""
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        print("Error: DISCORD_BOT_TOKEN environment variable not set")
        print("Please set it in your .env file")
        return

    bot = DiscordBot()
    await bot.start(token)


def run():
    """Console entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
