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
Discord UI Components for Reminders

Buttons for reminder controls (acknowledge/delete) and the main menu.
"""

import logging
from typing import Sequence

import discord

from reminders import Control, ReminderAction, ReminderService
from reminders.service import MENU_LAYOUT

logger = logging.getLogger("remindbot.commands.views")

# Discord allows at most 25 components per message
MAX_BUTTONS = 25


class ReminderActionButton(discord.ui.Button):
    """One control bound to one reminder."""

    def __init__(self, service: ReminderService, control: Control, label: str, row: int):
        style = (
            discord.ButtonStyle.success
            if control.action is ReminderAction.ACKNOWLEDGE
            else discord.ButtonStyle.danger
        )
        super().__init__(
            label=label,
            style=style,
            custom_id=f"reminder:{control.action.value}:{control.reminder_id}",
            row=row,
        )
        self.service = service
        self.control = control

    async def callback(self, interaction: discord.Interaction):
        """Forward the press to the service and disable the button."""
        logger.debug(
            f"{self.control.action.value} pressed for {self.control.reminder_id} "
            f"by {interaction.user}"
        )
        toast = await self.service.on_inbound_action(
            interaction.channel_id, self.control.reminder_id, self.control.action
        )

        self.disabled = True
        await interaction.response.edit_message(view=self.view)
        await interaction.followup.send(toast, ephemeral=True)


class ReminderControlsView(discord.ui.View):
    """
    Buttons attached to a delivered reminder or a reminder list.

    Never times out: a reminder can be acknowledged long after delivery.
    """

    def __init__(self, service: ReminderService, controls: Sequence[Control]):
        super().__init__(timeout=None)
        controls = list(controls)[:MAX_BUTTONS]
        numbered = len({c.reminder_id for c in controls}) > 1

        for index, control in enumerate(controls):
            label = f"{control.label} {index + 1}" if numbered else control.label
            self.add_item(ReminderActionButton(service, control, label, row=index // 5))


class MenuButton(discord.ui.Button):
    """Menu entry that is handled exactly like typing its label."""

    def __init__(self, service: ReminderService, label: str, row: int):
        super().__init__(label=label, style=discord.ButtonStyle.secondary, row=row)
        self.service = service

    async def callback(self, interaction: discord.Interaction):
        await interaction.response.defer()
        await self.service.on_inbound_text(interaction.channel_id, self.label)


class MenuView(discord.ui.View):
    """Main menu: remind, add category, list, repeat on/off."""

    def __init__(self, service: ReminderService):
        super().__init__(timeout=None)
        for row, labels in enumerate(MENU_LAYOUT):
            for label in labels:
                self.add_item(MenuButton(service, label, row))
