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

"""Tests for the in-memory reminder store."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.errors import UnknownReminderId
from reminders.manager import ReminderManager, make_reminder_id

FIRE_AT = datetime(2024, 3, 2, 9, 0)


@pytest.fixture
def manager():
    return ReminderManager()


class TestCreate:
    def test_id_derived_from_chat_and_instant(self, manager):
        reminder = manager.create_reminder(1, "купить хлеб", FIRE_AT, "Дом")
        assert reminder.id == make_reminder_id(1, FIRE_AT)
        assert reminder.id.startswith("1_")
        assert reminder.completed is False
        assert reminder.fired is False

    def test_same_instant_gets_unique_ids(self, manager):
        first = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        second = manager.create_reminder(1, "b", FIRE_AT, "Другое")
        third = manager.create_reminder(1, "c", FIRE_AT, "Другое")
        assert len({first.id, second.id, third.id}) == 3
        assert second.id == f"{first.id}_1"
        assert len(manager) == 3

    def test_same_instant_other_chat_does_not_collide(self, manager):
        first = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        second = manager.create_reminder(2, "a", FIRE_AT, "Другое")
        assert first.id != second.id

    def test_repeat_flag_captured(self, manager):
        reminder = manager.create_reminder(1, "a", FIRE_AT, "Другое", repeat_enabled=True)
        assert reminder.repeat_enabled is True


class TestLookup:
    def test_require_missing(self, manager):
        with pytest.raises(UnknownReminderId) as exc_info:
            manager.require_reminder("nope")
        assert exc_info.value.reminder_id == "nope"

    def test_require_other_chat(self, manager):
        reminder = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        with pytest.raises(UnknownReminderId):
            manager.require_reminder(reminder.id, chat_id=2)
        assert manager.require_reminder(reminder.id, chat_id=1) is reminder

    def test_unknown_id_is_a_lookup_error(self, manager):
        with pytest.raises(LookupError):
            manager.require_reminder("nope")

    def test_contains(self, manager):
        reminder = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        assert reminder.id in manager
        assert "nope" not in manager


class TestListing:
    def test_scoped_by_chat_in_insertion_order(self, manager):
        a = manager.create_reminder(1, "a", FIRE_AT + timedelta(hours=2), "Другое")
        manager.create_reminder(2, "x", FIRE_AT, "Другое")
        b = manager.create_reminder(1, "b", FIRE_AT, "Другое")
        assert [r.id for r in manager.list_reminders(1)] == [a.id, b.id]

    def test_completed_hidden_by_default(self, manager):
        a = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        b = manager.create_reminder(1, "b", FIRE_AT + timedelta(minutes=1), "Другое")
        manager.mark_completed(a.id)
        assert [r.id for r in manager.list_reminders(1)] == [b.id]
        assert len(manager.list_reminders(1, include_completed=True)) == 2

    def test_latest_reminder(self, manager):
        assert manager.latest_reminder(1) is None
        manager.create_reminder(1, "a", FIRE_AT, "Другое")
        b = manager.create_reminder(1, "b", FIRE_AT - timedelta(hours=1), "Другое")
        assert manager.latest_reminder(1) is b

    def test_unknown_chat_is_empty(self, manager):
        assert manager.list_reminders(99) == []


class TestMutation:
    def test_set_category(self, manager):
        reminder = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        assert manager.set_category(reminder.id, "Работа") is True
        assert reminder.category == "Работа"
        assert manager.set_category("nope", "Работа") is False

    def test_mark_fired(self, manager):
        reminder = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        assert manager.mark_fired(reminder.id).fired is True
        assert manager.mark_fired("nope") is None

    def test_remove_is_idempotent(self, manager):
        reminder = manager.create_reminder(1, "a", FIRE_AT, "Другое")
        assert manager.remove_reminder(reminder.id) is reminder
        assert manager.remove_reminder(reminder.id) is None
        assert manager.list_reminders(1) == []
        assert manager.latest_reminder(1) is None
        assert manager.all_ids() == []
