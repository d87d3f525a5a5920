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
Reminder Commands

Discord side of the reminder service: a cog that turns DMs and mentions into
inbound text events, and a gateway that delivers replies and reminders with
their buttons.
"""

import logging
from typing import Optional, Sequence

import discord
from discord.ext import commands

from reminders import Control, ReminderService

from .views import MenuView, ReminderControlsView

logger = logging.getLogger("remindbot.commands.reminder")

# Discord message length limit
DISCORD_MAX_LENGTH = 2000


def chunk_message(content: str, limit: int = DISCORD_MAX_LENGTH) -> list[str]:
    """Split a message at line breaks (or hard-cut long lines) to fit Discord's limit."""
    if len(content) <= limit:
        return [content]

    chunks = []
    current = ""
    for line in content.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]

        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate

    if current:
        chunks.append(current)
    return chunks


class DiscordGateway:
    """Delivers service output to Discord channels (chat_id = channel ID)."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.service: Optional[ReminderService] = None

    def bind(self, service: ReminderService) -> None:
        """Attach the service that button presses are routed to."""
        self.service = service

    async def _get_channel(self, chat_id: int) -> discord.abc.Messageable:
        channel = self.bot.get_channel(chat_id)
        if channel is None:
            channel = await self.bot.fetch_channel(chat_id)
        return channel

    async def deliver(
        self,
        chat_id: int,
        text: str,
        controls: Sequence[Control] = (),
        show_menu: bool = False,
    ) -> None:
        channel = await self._get_channel(chat_id)

        view = None
        if controls:
            view = ReminderControlsView(self.service, controls)
        elif show_menu:
            view = MenuView(self.service)

        chunks = chunk_message(text)
        for chunk in chunks[:-1]:
            await channel.send(chunk)
        # Buttons go on the last chunk
        if view is not None:
            await channel.send(chunks[-1], view=view)
        else:
            await channel.send(chunks[-1])


class ReminderCommands(commands.Cog):
    """
    Conversational reminders over Discord.

    Listens to DMs and to messages that mention the bot. Everything else
    (parsing, state, scheduling) happens in ReminderService.
    """

    def __init__(self, bot: commands.Bot, service: ReminderService):
        self.bot = bot
        self.service = service

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        """Forward a user message to the reminder service."""
        if message.author.bot:
            return

        is_dm = isinstance(message.channel, discord.DMChannel)
        if not is_dm and not self.bot.user.mentioned_in(message):
            return

        content = message.content
        for mention in (f"<@{self.bot.user.id}>", f"<@!{self.bot.user.id}>"):
            content = content.replace(mention, "")
        content = content.strip()
        if not content:
            return

        logger.debug(f"Inbound text from chat {message.channel.id}: {content[:80]}")
        await self.service.on_inbound_text(message.channel.id, content)
