"""Categorized game history log.

The log is purely observational: engine logic never reads it back. Entries are
mirrored to the module logger so a host application can route them through its
own logging configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .types import Keyword

if TYPE_CHECKING:
    from .state import CardInstance, GameState

logger = logging.getLogger(__name__)


class LogCategory(str, Enum):
    COMBAT = "combat"
    DEATH = "death"
    SUMMON = "summon"
    SPELL = "spell"
    BUFF = "buff"
    DEBUFF = "debuff"
    HEAL = "heal"
    DAMAGE = "damage"
    PHASE = "phase"
    CHOICE = "choice"


KEYWORD_EMOJIS: dict[Keyword, str] = {
    Keyword.HASTE: "⚡",
    Keyword.HIDDEN: "\U0001f648",
    Keyword.LURE: "\U0001f9f2",
    Keyword.INVISIBLE: "\U0001f47b",
    Keyword.PASSIVE: "\U0001f4a4",
    Keyword.BARRIER: "\U0001f6e1️",
    Keyword.ACUITY: "\U0001f441️",
    Keyword.IMMUNE: "\U0001f3db️",
    Keyword.EDIBLE: "\U0001f356",
    Keyword.SCAVENGE: "\U0001f9b4",
    Keyword.NEUROTOXIC: "\U0001f9ca",
    Keyword.AMBUSH: "\U0001f40d",
    Keyword.TOXIC: "☠️",
    Keyword.POISONOUS: "\U0001f9ea",
    Keyword.HARMLESS: "\U0001f54a️",
    Keyword.FROZEN: "❄️",
}


@dataclass(frozen=True)
class LogEntry:
    category: LogCategory | None
    message: str


def format_keyword(keyword: Keyword) -> str:
    emoji = KEYWORD_EMOJIS.get(keyword)
    return f"{emoji} {keyword.value}" if emoji else keyword.value


def format_card(card: CardInstance | None) -> str:
    if card is None:
        return "(nothing)"
    return f"[{card.name}]"


def _append(state: GameState, entry: LogEntry) -> None:
    state.log.append(entry)
    state.log_count += 1
    overflow = len(state.log) - state.config.log_limit
    if overflow > 0:
        del state.log[:overflow]
    logger.debug("%s %s", entry.category.value if entry.category else "-", entry.message)


def log_game_action(state: GameState, category: LogCategory, message: str) -> None:
    _append(state, LogEntry(category=category, message=message))


def log_message(state: GameState, message: str) -> None:
    """Uncategorized line (phase separators, refusals)."""
    _append(state, LogEntry(category=None, message=message))
