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
Conversation State Tracker

Per-chat state machine deciding what a plain message means:

    IDLE              + text with note and time -> SCHEDULE, stays IDLE
    IDLE              + text without a time     -> ASK_TIME, AWAITING_TIME(text)
    AWAITING_TIME(n)  + time reply              -> SCHEDULE(n), back to IDLE
    AWAITING_TIME(n)  + anything else           -> FORMAT_ERROR, keeps n
    AWAITING_CATEGORY + any text                -> CATEGORY_SET, back to IDLE

The tracker only decides; the service performs the scheduling and replies.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import TimeAlreadyPassed, UnrecognizedTimeExpression
from .time_parser import MESSAGE_ORDER, REPLY_ORDER, TimeExpressionParser

logger = logging.getLogger("remindbot.reminders.conversation")


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_TIME = "awaiting_time"
    AWAITING_CATEGORY = "awaiting_category"


class OutcomeKind(str, Enum):
    SCHEDULE = "schedule"
    ASK_TIME = "ask_time"
    FORMAT_ERROR = "format_error"
    TIME_PASSED = "time_passed"
    EMPTY_NOTE = "empty_note"
    CATEGORY_SET = "category_set"


@dataclass
class ChatState:
    """Ephemeral per-chat settings and pending input."""

    pending_note: Optional[str] = None
    awaiting_category: bool = False
    repeat_enabled: bool = False
    sticky_category: Optional[str] = None

    @property
    def state(self) -> ConversationState:
        if self.awaiting_category:
            return ConversationState.AWAITING_CATEGORY
        if self.pending_note is not None:
            return ConversationState.AWAITING_TIME
        return ConversationState.IDLE


@dataclass
class Outcome:
    """What the service should do with an inbound message."""

    kind: OutcomeKind
    note: Optional[str] = None
    fire_at: Optional[datetime] = None
    category: Optional[str] = None


class ConversationTracker:
    """Holds ChatState for every chat and applies the transition table."""

    def __init__(
        self,
        message_parser: Optional[TimeExpressionParser] = None,
        reply_parser: Optional[TimeExpressionParser] = None,
        default_hour: int = 9,
    ):
        self.message_parser = message_parser or TimeExpressionParser(MESSAGE_ORDER, default_hour)
        self.reply_parser = reply_parser or TimeExpressionParser(REPLY_ORDER, default_hour)
        self._chats: dict[int, ChatState] = {}

    def chat(self, chat_id: int) -> ChatState:
        return self._chats.setdefault(chat_id, ChatState())

    def state(self, chat_id: int) -> ConversationState:
        return self.chat(chat_id).state

    # =========================================================================
    # Transitions
    # =========================================================================

    def on_text(self, chat_id: int, text: str, now: datetime) -> Outcome:
        """
        Apply one plain-text message to the chat's state.

        Args:
            chat_id: Chat the message came from
            text: Trimmed message text
            now: Current instant for time parsing

        Returns:
            Outcome describing the action to take
        """
        chat = self.chat(chat_id)
        text = text.strip()

        if chat.awaiting_category:
            return self._on_category_reply(chat_id, chat, text)
        if chat.pending_note is not None:
            return self._on_time_reply(chat_id, chat, text, now)
        return self._on_fresh_text(chat_id, chat, text, now)

    def _on_category_reply(self, chat_id: int, chat: ChatState, text: str) -> Outcome:
        chat.awaiting_category = False
        chat.sticky_category = text or None
        logger.info(f"Chat {chat_id} sticky category set to '{chat.sticky_category}'")
        return Outcome(OutcomeKind.CATEGORY_SET, category=chat.sticky_category)

    def _on_time_reply(self, chat_id: int, chat: ChatState, text: str, now: datetime) -> Outcome:
        note = chat.pending_note
        try:
            parsed = self.reply_parser.parse(text, now)
        except UnrecognizedTimeExpression:
            logger.debug(f"Chat {chat_id}: time reply not understood: '{text}'")
            return Outcome(OutcomeKind.FORMAT_ERROR, note=note)
        except TimeAlreadyPassed as e:
            return Outcome(OutcomeKind.TIME_PASSED, note=note, fire_at=e.fire_at)

        chat.pending_note = None
        return Outcome(OutcomeKind.SCHEDULE, note=note, fire_at=parsed.fire_at)

    def _on_fresh_text(self, chat_id: int, chat: ChatState, text: str, now: datetime) -> Outcome:
        try:
            parsed = self.message_parser.parse(text, now)
        except UnrecognizedTimeExpression:
            chat.pending_note = text
            logger.debug(f"Chat {chat_id}: awaiting time for '{text}'")
            return Outcome(OutcomeKind.ASK_TIME, note=text)
        except TimeAlreadyPassed as e:
            return Outcome(OutcomeKind.TIME_PASSED, fire_at=e.fire_at)

        if not parsed.note:
            return Outcome(OutcomeKind.EMPTY_NOTE, fire_at=parsed.fire_at)
        return Outcome(OutcomeKind.SCHEDULE, note=parsed.note, fire_at=parsed.fire_at)

    # =========================================================================
    # Explicit commands
    # =========================================================================

    def await_time(self, chat_id: int, note: str) -> None:
        """Put a note back into AWAITING_TIME (e.g. after a rejected schedule)."""
        chat = self.chat(chat_id)
        chat.pending_note = note
        chat.awaiting_category = False

    def request_category(self, chat_id: int) -> None:
        self.chat(chat_id).awaiting_category = True

    def set_category(self, chat_id: int, category: Optional[str]) -> None:
        """Set or clear (None) the sticky category without a state change."""
        self.chat(chat_id).sticky_category = category or None

    def set_repeat(self, chat_id: int, enabled: bool) -> None:
        self.chat(chat_id).repeat_enabled = enabled
        logger.info(f"Chat {chat_id} repeat {'enabled' if enabled else 'disabled'}")

    def reset(self, chat_id: int) -> None:
        """Drop pending input; sticky settings are kept."""
        chat = self.chat(chat_id)
        chat.pending_note = None
        chat.awaiting_category = False
