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

"""Shared fakes: a virtual clock, a timer facility driven by it, and a recording gateway."""

import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from reminders.gateway import Control


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now


class FakeCall:
    def __init__(self, due: datetime, callback, seq: int):
        self.due = due
        self.callback = callback
        self.seq = seq
        self.cancelled = False
        self.done = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Timer facility that only runs callbacks when the test advances the clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.calls: list[FakeCall] = []

    def call_later(self, delay, callback) -> FakeCall:
        call = FakeCall(self.clock.now + timedelta(seconds=delay), callback, len(self.calls))
        self.calls.append(call)
        return call

    @property
    def pending(self) -> list[FakeCall]:
        return [c for c in self.calls if not c.cancelled and not c.done]

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, running due callbacks in order (including newly armed ones)."""
        target = self.clock.now + timedelta(seconds=seconds)
        while True:
            due = [c for c in self.pending if c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: (c.due, c.seq))
            self.clock.now = max(self.clock.now, call.due)
            call.done = True
            await call.callback()
        self.clock.now = target


@dataclass
class Delivery:
    chat_id: int
    text: str
    controls: tuple = ()
    show_menu: bool = False


@dataclass
class RecordingGateway:
    deliveries: list[Delivery] = field(default_factory=list)
    fail: bool = False

    async def deliver(self, chat_id, text, controls=(), show_menu=False):
        if self.fail:
            raise ConnectionError("channel unavailable")
        self.deliveries.append(Delivery(chat_id, text, tuple(controls), show_menu))

    def texts(self, chat_id=None) -> list[str]:
        return [d.text for d in self.deliveries if chat_id is None or d.chat_id == chat_id]

    @property
    def last(self) -> Delivery:
        return self.deliveries[-1]


def actions(controls: tuple[Control, ...]) -> list[str]:
    return [c.action.value for c in controls]


START = datetime(2024, 3, 1, 20, 0)


@pytest.fixture
def clock():
    return FakeClock(START)


@pytest.fixture
def timers(clock):
    return FakeTimers(clock)


@pytest.fixture
def gateway():
    return RecordingGateway()
