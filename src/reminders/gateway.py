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
Delivery Gateway Interface

The reminder core only talks to the chat transport through this protocol.
The Discord adapter in commands/ implements it; tests use a recording fake.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Sequence


class ReminderAction(str, Enum):
    """Inline actions a user can trigger on a reminder."""

    ACKNOWLEDGE = "acknowledge"
    DELETE = "delete"


ACTION_LABELS = {
    ReminderAction.ACKNOWLEDGE: "✅ Выполнено",
    ReminderAction.DELETE: "❌ Удалить",
}


@dataclass(frozen=True)
class Control:
    """A button bound to one reminder."""

    action: ReminderAction
    reminder_id: str

    @property
    def label(self) -> str:
        return ACTION_LABELS[self.action]


class DeliveryGateway(Protocol):
    """Outbound side of the chat transport."""

    async def deliver(
        self,
        chat_id: int,
        text: str,
        controls: Sequence[Control] = (),
        show_menu: bool = False,
    ) -> None:
        """Send text to a chat, optionally with reminder controls or the main menu."""
        ...
