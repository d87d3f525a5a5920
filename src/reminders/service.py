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
Reminder Service

Entry point for the two inbound event types coming from the chat transport:
plain text and button actions. Routes menu commands, feeds everything else
through the conversation tracker, and turns outcomes into scheduler calls
and replies.

Each handler is an error boundary: a bad message produces a reply, never an
exception in the transport's dispatch loop.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Union

from analytics import EventTracker

from .classifier import classify
from .config import ReminderConfig
from .conversation import ConversationTracker, Outcome, OutcomeKind
from .errors import (
    EmptyNote,
    ReminderError,
    TimeAlreadyPassed,
    UnknownReminderId,
    UnrecognizedTimeExpression,
)
from .gateway import Control, DeliveryGateway, ReminderAction
from .scheduler import CategoryGroup, ReminderScheduler, TimerFacility

logger = logging.getLogger("remindbot.reminders.service")

# Menu buttons (sent back as plain text by the transport)
MENU_REMIND = "📝 Напомни мне"
MENU_ADD_CATEGORY = "➕ Добавить категорию"
MENU_LIST = "📋 Список"
MENU_REPEAT_ON = "🔁 Повтор включён"
MENU_REPEAT_OFF = "🔁 Повтор выключен"

MENU_LAYOUT = (
    (MENU_REMIND, MENU_ADD_CATEGORY),
    (MENU_LIST,),
    (MENU_REPEAT_ON, MENU_REPEAT_OFF),
)

GREETING = "👋 Напиши напоминание, потом укажи время (например: через 5 сек пойти гулять)."
HELP = (
    "📚 Напиши что напомнить — бот спросит через сколько.\n"
    "Можно сразу: «через 10 минут позвонить маме», «завтра в 9:00 купить молоко», "
    "«10 мая в 14:00 аптека».\n"
    f"{MENU_REMIND} — диалог\n"
    f"{MENU_LIST} — напоминания\n"
    "🔁 Повтор — включить/выключить повтор\n"
    f"{MENU_ADD_CATEGORY} — своя категория (/category <название>, /category — сбросить)"
)
ASK_NOTE = "✍ Что напомнить?"
ASK_TIME = "⏳ Через сколько напомнить?"
ASK_CATEGORY = "🏷️ Введите название категории для последнего напоминания:"
FORMAT_ERROR = "⛔ Не понял время. Пример: 'через 5 мин', 'в 17:00' или 'завтра в 10 часов'."
TIME_PASSED = "⚠️ Время уже прошло."
EMPTY_NOTE = "✍ Не понял, что напомнить. Напиши текст напоминания."
REPEAT_ON = "🔁 Повтор включён"
REPEAT_OFF = "🔁 Повтор выключен"
LIST_EMPTY = "📋 Нет напоминаний"
SCHEDULED = "✅ Запомнил! Напомню {when} (Категория: {category})"
CATEGORY_LINKED = "🏷️ Категория '{category}' привязана."
CATEGORY_STICKY = "🏷️ Категория '{category}' будет у новых напоминаний."
CATEGORY_CLEARED = "🏷️ Категория сброшена, определяю автоматически."
GENERIC_ERROR = "😵 Что-то пошло не так, попробуйте ещё раз."

ACK_DONE = "✅ Выполнено"
DELETE_DONE = "🗑️ Удалено"
ALREADY_GONE = "Напоминание уже удалено"

DATE_FORMAT = "%d.%m %H:%M"

_ERROR_REPLIES = {
    UnrecognizedTimeExpression: FORMAT_ERROR,
    TimeAlreadyPassed: TIME_PASSED,
    EmptyNote: EMPTY_NOTE,
}


def format_remaining(seconds: int) -> str:
    """Human-readable remaining time ("2 ч 5 мин", "40 сек")."""
    if seconds <= 0:
        return "сейчас"

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)

    parts = []
    if days:
        parts.append(f"{days} д")
    if hours:
        parts.append(f"{hours} ч")
    if minutes:
        parts.append(f"{minutes} мин")
    if secs and not days and not hours:
        parts.append(f"{secs} сек")
    return " ".join(parts)


def render_list(groups: list[CategoryGroup]) -> tuple[str, list[Control]]:
    """Render grouped reminders as numbered text plus one delete control per reminder."""
    if not groups:
        return LIST_EMPTY, []

    lines = []
    controls = []
    for group in groups:
        lines.append(f"🔖 **{group.category}**:")
        for item in group.reminders:
            reminder = item.reminder
            when = reminder.fire_at.strftime(DATE_FORMAT)
            if reminder.completed:
                status = "выполнено"
            elif reminder.fired:
                status = "отправлено"
            else:
                status = f"через {format_remaining(item.remaining_seconds)}"
            lines.append(f"{len(controls) + 1}. {reminder.note} ({when}, {status})")
            controls.append(Control(ReminderAction.DELETE, reminder.id))
        lines.append("")

    return "\n".join(lines).rstrip(), controls


class ReminderService:
    """
    Conversational reminder service.

    Owns the conversation tracker and the scheduler; inject a gateway for
    outbound messages and, in tests, a timer facility and clock.
    """

    def __init__(
        self,
        gateway: DeliveryGateway,
        config: Optional[ReminderConfig] = None,
        timers: Optional[TimerFacility] = None,
        clock: Optional[Callable[[], datetime]] = None,
        analytics: Optional[EventTracker] = None,
        scheduler: Optional[ReminderScheduler] = None,
        conversation: Optional[ConversationTracker] = None,
    ):
        self.gateway = gateway
        self.config = config or ReminderConfig()
        self.clock = clock or self.config.clock()
        self.analytics = analytics or EventTracker(enabled=False)
        self.scheduler = scheduler or ReminderScheduler(
            gateway,
            timers=timers,
            clock=self.clock,
            follow_up_seconds=self.config.follow_up_seconds,
            tracker=self.analytics,
        )
        self.conversation = conversation or ConversationTracker(
            default_hour=self.config.default_hour
        )
        self._chat_locks: dict[int, asyncio.Lock] = {}

        self._commands = {
            "/start": self._cmd_start,
            "привет": self._cmd_start,
            "/help": self._cmd_help,
            "/remind": self._cmd_remind,
            MENU_REMIND.lower(): self._cmd_remind,
            "/list": self._cmd_list,
            MENU_LIST.lower(): self._cmd_list,
            MENU_ADD_CATEGORY.lower(): self._cmd_add_category,
            MENU_REPEAT_ON.lower(): self._cmd_repeat_on,
            "🔁 повтор включен": self._cmd_repeat_on,
            "/repeat on": self._cmd_repeat_on,
            MENU_REPEAT_OFF.lower(): self._cmd_repeat_off,
            "/repeat off": self._cmd_repeat_off,
        }

    def _chat_lock(self, chat_id: int) -> asyncio.Lock:
        return self._chat_locks.setdefault(chat_id, asyncio.Lock())

    # =========================================================================
    # Inbound events
    # =========================================================================

    async def on_inbound_text(self, chat_id: int, text: str) -> None:
        """Handle a plain text message from a chat."""
        text = (text or "").strip()
        if not text:
            return

        self.analytics.track("message_received", "message", chat_id=chat_id)

        # Messages of one chat are handled strictly in order
        async with self._chat_lock(chat_id):
            try:
                await self._dispatch_text(chat_id, text)
            except ReminderError as e:
                await self._reply_error(chat_id, e)
            except Exception as e:
                logger.error(f"Error handling message in chat {chat_id}: {e}", exc_info=True)
                self.analytics.track(
                    "handler_error",
                    "error",
                    chat_id=chat_id,
                    properties={"error_type": type(e).__name__, "error_message": str(e)[:200]},
                )
                await self._safe_reply(chat_id, GENERIC_ERROR)

    async def on_inbound_action(
        self, chat_id: int, reminder_id: str, action: Union[ReminderAction, str]
    ) -> str:
        """
        Handle a button press bound to a reminder.

        Returns:
            Short confirmation text for the transport to show
        """
        try:
            action = ReminderAction(action)
        except ValueError:
            logger.warning(f"Unknown action '{action}' for reminder {reminder_id}")
            return GENERIC_ERROR

        try:
            if action is ReminderAction.ACKNOWLEDGE:
                await self.scheduler.acknowledge(reminder_id, chat_id)
                return ACK_DONE

            removed = await self.scheduler.cancel(reminder_id, chat_id)
            return DELETE_DONE if removed else ALREADY_GONE
        except UnknownReminderId:
            # Double presses and stale buttons are expected
            logger.debug(f"Action {action.value} on unknown reminder {reminder_id}")
            return ALREADY_GONE
        except Exception as e:
            logger.error(f"Error handling {action.value} for {reminder_id}: {e}", exc_info=True)
            return GENERIC_ERROR

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.analytics.shutdown()

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def _dispatch_text(self, chat_id: int, text: str) -> None:
        lowered = text.lower()

        command = self._commands.get(lowered)
        if command is not None:
            await command(chat_id)
            return

        if lowered == "/category" or lowered.startswith("/category "):
            category = text[len("/category"):].strip()
            await self._cmd_category(chat_id, category or None)
            return

        outcome = self.conversation.on_text(chat_id, text, self.clock())
        await self._apply(chat_id, outcome)

    async def _apply(self, chat_id: int, outcome: Outcome) -> None:
        kind = outcome.kind
        if kind is OutcomeKind.SCHEDULE:
            await self._schedule(chat_id, outcome.note, outcome.fire_at)
        elif kind is OutcomeKind.ASK_TIME:
            await self._reply(chat_id, ASK_TIME)
        elif kind is OutcomeKind.FORMAT_ERROR:
            self.analytics.track("time_parse_failed", "parser", chat_id=chat_id)
            await self._reply(chat_id, FORMAT_ERROR)
        elif kind is OutcomeKind.TIME_PASSED:
            await self._reply(chat_id, TIME_PASSED)
        elif kind is OutcomeKind.EMPTY_NOTE:
            await self._reply(chat_id, EMPTY_NOTE)
        elif kind is OutcomeKind.CATEGORY_SET:
            await self._link_category(chat_id, outcome.category)

    async def _schedule(self, chat_id: int, note: str, fire_at: datetime) -> str:
        chat = self.conversation.chat(chat_id)
        category = chat.sticky_category or classify(note, self.config.default_category)

        reminder_id = await self.scheduler.schedule(
            chat_id, note, fire_at, category, chat.repeat_enabled
        )
        await self._reply(
            chat_id,
            SCHEDULED.format(when=fire_at.strftime(DATE_FORMAT), category=category),
        )
        return reminder_id

    async def _link_category(self, chat_id: int, category: Optional[str]) -> None:
        if category is None:
            await self._reply(chat_id, CATEGORY_CLEARED)
            return

        reminder_id = await self.scheduler.set_latest_category(chat_id, category)
        template = CATEGORY_LINKED if reminder_id else CATEGORY_STICKY
        await self._reply(chat_id, template.format(category=category))

    # =========================================================================
    # Commands
    # =========================================================================

    async def _cmd_start(self, chat_id: int) -> None:
        self.conversation.reset(chat_id)
        await self._reply(chat_id, GREETING, show_menu=True)

    async def _cmd_help(self, chat_id: int) -> None:
        await self._reply(chat_id, HELP)

    async def _cmd_remind(self, chat_id: int) -> None:
        self.conversation.reset(chat_id)
        await self._reply(chat_id, ASK_NOTE)

    async def _cmd_list(self, chat_id: int) -> None:
        # Acknowledged reminders stay listed; deleting them is what frees the record
        groups = await self.scheduler.list_reminders(chat_id, include_completed=True)
        text, controls = render_list(groups)
        await self._reply(chat_id, text, controls)

    async def _cmd_add_category(self, chat_id: int) -> None:
        self.conversation.request_category(chat_id)
        await self._reply(chat_id, ASK_CATEGORY)

    async def _cmd_category(self, chat_id: int, category: Optional[str]) -> None:
        self.conversation.set_category(chat_id, category)
        await self._link_category(chat_id, category)

    async def _cmd_repeat_on(self, chat_id: int) -> None:
        self.conversation.set_repeat(chat_id, True)
        await self._reply(chat_id, REPEAT_ON)

    async def _cmd_repeat_off(self, chat_id: int) -> None:
        self.conversation.set_repeat(chat_id, False)
        await self._reply(chat_id, REPEAT_OFF)

    # =========================================================================
    # Replies
    # =========================================================================

    async def _reply(
        self,
        chat_id: int,
        text: str,
        controls: Optional[list[Control]] = None,
        show_menu: bool = False,
    ) -> None:
        await self.gateway.deliver(chat_id, text, controls or (), show_menu=show_menu)

    async def _reply_error(self, chat_id: int, error: ReminderError) -> None:
        for error_type, reply in _ERROR_REPLIES.items():
            if isinstance(error, error_type):
                logger.info(f"Chat {chat_id}: {error}")
                await self._safe_reply(chat_id, reply)
                return

        if isinstance(error, UnknownReminderId):
            logger.debug(f"Chat {chat_id}: {error}")
            return

        logger.warning(f"Chat {chat_id}: unhandled reminder error: {error}")
        await self._safe_reply(chat_id, GENERIC_ERROR)

    async def _safe_reply(self, chat_id: int, text: str) -> None:
        try:
            await self._reply(chat_id, text)
        except Exception as e:
            logger.error(f"Failed to reply to chat {chat_id}: {e}", exc_info=True)
