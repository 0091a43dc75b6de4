"""Keyword predicates and the few keyword helpers that write creature status.

Predicates are pure. Mutators (``enter_stalking``, ``trigger_molt``, ...)
return whether anything changed and are no-ops on ``None``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .types import CardType, Keyword

if TYPE_CHECKING:
    from .state import CardInstance, GameState

DEFAULT_MAX_STALK_BONUS = 3

# Restrictions stay in force when a creature's abilities are suppressed.
RESTRICTION_KEYWORDS = frozenset(
    {Keyword.HARMLESS, Keyword.PASSIVE, Keyword.FROZEN, Keyword.WEBBED}
)

KEYWORD_DESCRIPTIONS: dict[Keyword, str] = {
    Keyword.HASTE: "Can attack the rival directly on the turn it is played.",
    Keyword.FREE_PLAY: "Does not count toward the one-card-per-turn limit.",
    Keyword.HIDDEN: "Cannot be targeted by attacks, but can be targeted by spells.",
    Keyword.LURE: "Rival's creatures must attack this creature if able.",
    Keyword.INVISIBLE: "Cannot be targeted by attacks or spells.",
    Keyword.PASSIVE: "Cannot attack but can still defend and be consumed.",
    Keyword.BARRIER: "Negates the first instance of damage taken.",
    Keyword.ACUITY: "Can target Hidden and Invisible creatures.",
    Keyword.IMMUNE: "Only takes damage from direct creature attacks.",
    Keyword.EDIBLE: "Can be consumed as prey; nutrition equals its ATK.",
    Keyword.INEDIBLE: "Cannot be consumed.",
    Keyword.SCAVENGE: "May consume from the carrion pile when played.",
    Keyword.NEUROTOXIC: "Combat damage paralyzes the target and strips its abilities.",
    Keyword.AMBUSH: "When attacking, cannot be dealt combat damage.",
    Keyword.TOXIC: "Kills any creature it damages in combat regardless of HP.",
    Keyword.POISONOUS: "When defending, kills the attacker after combat.",
    Keyword.HARMLESS: "Cannot attack and deals no combat damage.",
    Keyword.FROZEN: "Cannot attack or be consumed. Thaws at the end of its owner's turn.",
    Keyword.PACK: "Gains +1 ATK for each other Canine you control.",
    Keyword.WEB: "On attack, applies Webbed to the defender if it survives.",
    Keyword.WEBBED: "Cannot attack. Cleared when the creature takes damage.",
    Keyword.PRIDE: "Gains +1 ATK for each other Feline with Pride you control; may join attacks.",
    Keyword.STALK: "May enter stalking: Hidden, +1 ATK per turn (max +3) until it attacks.",
    Keyword.STALKING: "Hidden and gaining attack until it strikes.",
    Keyword.SHELL: "Absorbs damage up to its shell level; refills at end of its owner's turn.",
    Keyword.MOLT: "The first time it would die, revives at 1 HP with no keywords.",
    Keyword.REGEN: "Heals to full at the end of its owner's turn.",
}


def are_abilities_active(card: CardInstance | None) -> bool:
    if card is None:
        return False
    return not (card.dry_dropped or card.abilities_cancelled)


def has_keyword(card: CardInstance | None, keyword: Keyword) -> bool:
    if card is None:
        return False
    if keyword in RESTRICTION_KEYWORDS:
        return keyword in card.keywords
    if not are_abilities_active(card):
        return False
    return keyword in card.keywords


def _keyword_check(keyword: Keyword) -> Callable[[CardInstance | None], bool]:
    def check(card: CardInstance | None) -> bool:
        return has_keyword(card, keyword)

    check.__name__ = f"has_{keyword.name.lower()}"
    return check


is_hidden = _keyword_check(Keyword.HIDDEN)
is_invisible = _keyword_check(Keyword.INVISIBLE)
has_lure = _keyword_check(Keyword.LURE)
has_haste = _keyword_check(Keyword.HASTE)
is_free_play = _keyword_check(Keyword.FREE_PLAY)
is_passive = _keyword_check(Keyword.PASSIVE)
has_acuity = _keyword_check(Keyword.ACUITY)
is_immune = _keyword_check(Keyword.IMMUNE)
is_edible = _keyword_check(Keyword.EDIBLE)
is_inedible = _keyword_check(Keyword.INEDIBLE)
has_scavenge = _keyword_check(Keyword.SCAVENGE)
has_neurotoxic = _keyword_check(Keyword.NEUROTOXIC)
has_ambush = _keyword_check(Keyword.AMBUSH)
has_toxic = _keyword_check(Keyword.TOXIC)
has_poisonous = _keyword_check(Keyword.POISONOUS)
is_harmless = _keyword_check(Keyword.HARMLESS)
has_pack = _keyword_check(Keyword.PACK)
has_web = _keyword_check(Keyword.WEB)
has_pride = _keyword_check(Keyword.PRIDE)
has_stalk = _keyword_check(Keyword.STALK)
is_stalking = _keyword_check(Keyword.STALKING)
has_molt = _keyword_check(Keyword.MOLT)
has_regen = _keyword_check(Keyword.REGEN)

KEYWORD_PREDICATES: dict[Keyword, Callable[[CardInstance | None], bool]] = {
    kw: _keyword_check(kw) for kw in Keyword
}


def active_keywords(card: CardInstance | None) -> list[Keyword]:
    if card is None:
        return []
    return [kw for kw in card.keywords if KEYWORD_PREDICATES[kw](card)]


def has_active_barrier(card: CardInstance | None) -> bool:
    return card is not None and card.has_barrier and are_abilities_active(card)


def is_frozen(card: CardInstance | None) -> bool:
    if card is None:
        return False
    return card.frozen or Keyword.FROZEN in card.keywords


def is_webbed(card: CardInstance | None) -> bool:
    if card is None:
        return False
    return card.webbed or Keyword.WEBBED in card.keywords


def can_attack(card: CardInstance | None) -> bool:
    if card is None or not card.is_creature:
        return False
    if is_frozen(card) or is_webbed(card) or card.paralyzed:
        return False
    return not (is_passive(card) or is_harmless(card))


def can_be_consumed(card: CardInstance | None) -> bool:
    if card is None:
        return False
    return not (is_frozen(card) or is_inedible(card))


def can_consume(card: CardInstance | None) -> bool:
    if card is None or card.type != CardType.PREDATOR:
        return False
    return not is_frozen(card)


# ---------------------------------------------------------------------------
# Attack bonuses


def calculate_pack_bonus(creature: CardInstance | None, state: GameState | None, owner_index: int | None) -> int:
    """+1 for each other active Canine on the owner's field."""
    if creature is None or not has_pack(creature):
        return 0
    if state is None or owner_index is None:
        return 0
    count = 0
    for card in state.players[owner_index].creatures():
        if card is creature:
            continue
        if card.tribe == "Canine" and are_abilities_active(card):
            count += 1
    return count


def calculate_pride_bonus(creature: CardInstance | None, state: GameState | None, owner_index: int | None) -> int:
    """+1 for each other active Feline with Pride on the owner's field."""
    if creature is None or not has_pride(creature):
        return 0
    if state is None or owner_index is None:
        return 0
    count = 0
    for card in state.players[owner_index].creatures():
        if card is creature:
            continue
        if card.tribe == "Feline" and has_pride(card):
            count += 1
    return count


def get_effective_attack(
    creature: CardInstance | None, state: GameState | None = None, owner_index: int | None = None
) -> int:
    """Damage this creature deals right now.

    Pack, Pride and Stalk bonuses are computed here and never written into
    ``current_atk``.
    """
    if creature is None:
        return 0
    return (
        creature.current_atk
        + calculate_pack_bonus(creature, state, owner_index)
        + calculate_pride_bonus(creature, state, owner_index)
        + get_stalk_bonus(creature)
    )


# ---------------------------------------------------------------------------
# Shell


@dataclass(frozen=True)
class ShellResult:
    shell_absorbed: int = 0
    hp_damage: int = 0
    shell_depleted: bool = False


def has_shell(card: CardInstance | None) -> bool:
    return card is not None and are_abilities_active(card) and card.shell_level > 0


def get_shell_level(card: CardInstance | None) -> int:
    return card.shell_level if has_shell(card) else 0


def get_current_shell(card: CardInstance | None) -> int:
    return card.current_shell if has_shell(card) else 0


def apply_damage_with_shell(card: CardInstance | None, damage: int) -> ShellResult:
    """Drain shell first and report what is left for HP. HP itself is untouched."""
    if card is None or damage <= 0:
        return ShellResult()
    shell = get_current_shell(card)
    if shell <= 0:
        return ShellResult(hp_damage=damage)
    absorbed = min(shell, damage)
    card.current_shell = shell - absorbed
    return ShellResult(
        shell_absorbed=absorbed,
        hp_damage=damage - absorbed,
        shell_depleted=card.current_shell == 0,
    )


def regenerate_shell(card: CardInstance | None) -> bool:
    if not has_shell(card):
        return False
    assert card is not None
    if card.current_shell >= card.shell_level:
        return False
    card.current_shell = card.shell_level
    return True


# ---------------------------------------------------------------------------
# Molt


def has_molted(card: CardInstance | None) -> bool:
    return card is not None and card.molted


def trigger_molt(card: CardInstance | None) -> bool:
    if card is None or not has_molt(card):
        return False
    card.current_hp = 1
    card.keywords = []
    card.shell_level = 0
    card.current_shell = 0
    card.has_barrier = False
    card.frozen = False
    card.frozen_dies_turn = None
    card.webbed = False
    card.paralyzed = False
    card.paralyzed_until_turn = None
    card.stalk_bonus = 0
    card.stalking_from_hidden = False
    card.died_in_combat = False
    card.slain_by = None
    card.molted = True
    return True


# ---------------------------------------------------------------------------
# Stalk


def enter_stalking(card: CardInstance | None) -> bool:
    if card is None or not has_stalk(card) or is_stalking(card):
        return False
    card.keywords.append(Keyword.STALKING)
    if Keyword.HIDDEN in card.keywords:
        card.stalking_from_hidden = False
    else:
        card.keywords.append(Keyword.HIDDEN)
        card.stalking_from_hidden = True
    card.stalk_bonus = 0
    return True


def increment_stalk_bonus(card: CardInstance | None, cap: int = DEFAULT_MAX_STALK_BONUS) -> int:
    if card is None or not is_stalking(card):
        return 0
    card.stalk_bonus = min(cap, card.stalk_bonus + 1)
    return card.stalk_bonus


def get_stalk_bonus(card: CardInstance | None) -> int:
    if card is None or not is_stalking(card):
        return 0
    return card.stalk_bonus


def end_stalking(card: CardInstance | None) -> bool:
    if card is None or Keyword.STALKING not in card.keywords:
        return False
    card.keywords.remove(Keyword.STALKING)
    if card.stalking_from_hidden and Keyword.HIDDEN in card.keywords:
        card.keywords.remove(Keyword.HIDDEN)
    card.stalking_from_hidden = False
    card.stalk_bonus = 0
    return True
