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
Category Classifier

Assigns a category to reminder text by keyword roots. A word matches a root
when either one is a prefix of the other, which covers inflected forms
("встречу", "встречи") without a morphological analyzer.

The reverse direction (word is a prefix of the root) only applies to words
of at least MIN_PARTIAL_WORD_LENGTH letters, so prepositions and short
stems such as "в" or "про" never pull a note into a category.
"""

import re

from .config import DEFAULT_CATEGORY

_WORD_RE = re.compile(r"[^\W\d_]+")

# Shorter words never match as a prefix of a root ("в", "про", "the")
MIN_PARTIAL_WORD_LENGTH = 4

# Checked in order; first category with a matching root wins
CATEGORY_ROOTS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "Работа",
        (
            "код", "проект", "встреч", "дедлайн", "работ", "отчет", "отчёт",
            "созвон", "code", "project", "meeting", "deadline", "work", "report",
        ),
    ),
    (
        "Учёба",
        (
            "лекц", "дз", "экзамен", "школ", "учеб", "учёб", "урок", "семинар",
            "lecture", "homework", "exam", "school", "study", "lesson",
        ),
    ),
    (
        "Здоровье",
        (
            "врач", "лекарств", "здоров", "таблет", "аптек", "больниц",
            "doctor", "medic", "pill", "health", "pharmac", "dentist",
        ),
    ),
    (
        "Дом",
        (
            "убор", "стирк", "посуд", "продукт", "молок", "хлеб", "магазин",
            "clean", "laundry", "dishes", "grocer", "milk", "bread",
        ),
    ),
    (
        "Финансы",
        (
            "оплат", "счет", "счёт", "банк", "налог", "кредит", "деньг", "аренд",
            "payment", "bill", "bank", "tax", "rent", "money",
        ),
    ),
    (
        "Развлечения",
        (
            "кино", "сериал", "игр", "концерт", "фильм", "театр",
            "movie", "film", "game", "concert", "series", "theat",
        ),
    ),
)


def tokenize(text: str) -> list[str]:
    """Split text into lowercase runs of letters (no digits or punctuation)."""
    return _WORD_RE.findall(text.lower())


def word_matches_root(word: str, root: str) -> bool:
    if word.startswith(root):
        return True
    return len(word) >= MIN_PARTIAL_WORD_LENGTH and root.startswith(word)


def classify(note: str, default: str = DEFAULT_CATEGORY) -> str:
    """
    Classify a reminder note into a category.

    Args:
        note: Reminder text
        default: Label returned when nothing matches

    Returns:
        Category label (always non-empty)
    """
    words = tokenize(note)
    for category, roots in CATEGORY_ROOTS:
        if any(word_matches_root(word, root) for word in words for root in roots):
            return category
    return default
