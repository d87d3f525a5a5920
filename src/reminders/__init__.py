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
Conversational Reminders Package

Parses free-text time expressions, classifies notes, and schedules
in-memory reminders with an optional single follow-up.
"""

from .classifier import classify
from .config import ReminderConfig, validate_timezone
from .conversation import ConversationState, ConversationTracker, OutcomeKind
from .errors import (
    EmptyNote,
    ReminderError,
    TimeAlreadyPassed,
    TimeParseError,
    UnknownReminderId,
    UnrecognizedTimeExpression,
)
from .gateway import Control, DeliveryGateway, ReminderAction
from .manager import Reminder, ReminderManager
from .scheduler import LoopTimers, ReminderScheduler
from .service import ReminderService
from .time_parser import (
    MESSAGE_ORDER,
    REPLY_ORDER,
    ParsedTime,
    TimeExpressionParser,
    parse_time_expression,
)

__all__ = [
    "classify",
    "ReminderConfig",
    "validate_timezone",
    "ConversationState",
    "ConversationTracker",
    "OutcomeKind",
    "EmptyNote",
    "ReminderError",
    "TimeAlreadyPassed",
    "TimeParseError",
    "UnknownReminderId",
    "UnrecognizedTimeExpression",
    "Control",
    "DeliveryGateway",
    "ReminderAction",
    "Reminder",
    "ReminderManager",
    "LoopTimers",
    "ReminderScheduler",
    "ReminderService",
    "MESSAGE_ORDER",
    "REPLY_ORDER",
    "ParsedTime",
    "TimeExpressionParser",
    "parse_time_expression",
]
