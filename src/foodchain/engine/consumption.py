"""Predator-eats-prey resolution.

A predator consumes prey at play time. Each point of nutrition grants +1/+1.
Prey leave the field for carrion (tokens are discarded). A predator that eats
nothing is dry-dropped and keeps no abilities. After a play-time meal the
predator may keep eating through the extended consumption window, up to
``max_consumption`` in total for the turn.
"""

from __future__ import annotations

from collections.abc import Sequence

from .effects import trigger_card_effect
from .history import LogCategory, format_card, log_game_action, log_message
from .keywords import can_be_consumed, can_consume, has_scavenge, is_edible
from .state import CardInstance, ExtendedConsumption, GameState
from .types import CardType, Trigger


def nutrition_value(card: CardInstance) -> int:
    if card.type == CardType.PREDATOR and is_edible(card):
        return card.current_atk
    return card.nutrition


def is_prey_for(predator: CardInstance, prey: CardInstance) -> bool:
    if prey is predator or not prey.is_creature:
        return False
    if prey.type != CardType.PREY and not is_edible(prey):
        return False
    if not can_be_consumed(prey):
        return False
    return nutrition_value(prey) <= predator.current_atk


def get_consumable_prey(state: GameState, predator: CardInstance, player_index: int) -> list[CardInstance]:
    if not can_consume(predator):
        return []
    return [c for c in state.players[player_index].creatures() if is_prey_for(predator, c)]


def get_consumable_carrion(state: GameState, predator: CardInstance, player_index: int) -> list[CardInstance]:
    if not has_scavenge(predator):
        return []
    return [
        c
        for c in state.players[player_index].carrion
        if c.is_creature and nutrition_value(c) <= predator.current_atk
    ]


def consume_prey(
    state: GameState,
    predator: CardInstance,
    prey_list: Sequence[CardInstance],
    player_index: int,
    carrion_list: Sequence[CardInstance] = (),
) -> int:
    """Move the eaten cards out of play and grow the predator. Returns total nutrition.

    Eligibility is the caller's job; this only performs the transfer.
    """
    if not prey_list and not carrion_list:
        return 0
    ps = state.players[player_index]
    total = sum(nutrition_value(c) for c in (*prey_list, *carrion_list))
    predator.current_atk += total
    predator.current_hp += total

    for prey in prey_list:
        slot = ps.slot_of(prey)
        if slot is None:
            continue
        ps.field[slot] = None
        if not prey.is_token:
            ps.carrion.append(prey)

    for dead in carrion_list:
        for i, c in enumerate(ps.carrion):
            if c is dead:
                del ps.carrion[i]
                ps.exile.append(dead)
                break

    count = len(prey_list) + len(carrion_list)
    log_game_action(
        state,
        LogCategory.BUFF,
        f"{format_card(predator)} consumes {count} prey for +{total}/+{total}.",
    )
    state.notify()
    return total


def validate_meal(
    state: GameState,
    predator: CardInstance,
    prey_list: Sequence[CardInstance],
    player_index: int,
    carrion_list: Sequence[CardInstance] = (),
) -> str | None:
    """Return a refusal message, or None if the meal is legal."""
    if len(prey_list) + len(carrion_list) > state.config.max_consumption:
        return f"A predator can consume at most {state.config.max_consumption} prey."
    if len({id(c) for c in prey_list}) != len(prey_list) or len({id(c) for c in carrion_list}) != len(carrion_list):
        return "The same prey was chosen twice."
    if prey_list or carrion_list:
        if not can_consume(predator):
            return f"{predator.name} cannot consume right now."
    field_prey = get_consumable_prey(state, predator, player_index)
    for prey in prey_list:
        if not any(prey is c for c in field_prey):
            return f"{prey.name} cannot be consumed by {predator.name}."
    carrion = get_consumable_carrion(state, predator, player_index)
    for dead in carrion_list:
        if not any(dead is c for c in carrion):
            return f"{dead.name} cannot be scavenged by {predator.name}."
    return None


def feed_on_play(
    state: GameState,
    predator: CardInstance,
    prey_list: Sequence[CardInstance],
    player_index: int,
    carrion_list: Sequence[CardInstance] = (),
) -> tuple[str, ...]:
    """Play-time meal, before the predator takes its slot.

    An empty meal dry-drops the predator. Returns the ids of what was eaten.
    """
    if not prey_list and not carrion_list:
        predator.dry_dropped = True
        log_game_action(
            state, LogCategory.DEBUFF, f"{format_card(predator)} was dry-dropped and loses its abilities."
        )
        return ()
    eaten = tuple(c.instance_id for c in (*prey_list, *carrion_list))
    consume_prey(state, predator, prey_list, player_index, carrion_list)
    return eaten


def after_play_consumption(
    state: GameState, predator: CardInstance, consumed_ids: Sequence[str], player_index: int
) -> None:
    """Fire ``onConsume`` once and open the extended window if more prey is edible."""
    if not consumed_ids or predator.dry_dropped:
        return
    trigger_card_effect(state, predator, Trigger.ON_CONSUME, player_index, consumed_ids=tuple(consumed_ids))

    eaten = len(consumed_ids)
    cap = state.config.max_consumption
    if eaten < cap and state.owner_of(predator) == player_index and get_consumable_prey(state, predator, player_index):
        state.extended_consumption = ExtendedConsumption(
            predator_id=predator.instance_id, consumed_count=eaten, max_consumption=cap
        )
        log_message(state, f"{format_card(predator)} may keep eating ({eaten}/{cap}).")


def extend_consumption(state: GameState, predator: CardInstance, prey: CardInstance, player_index: int) -> bool:
    """Eat one more prey inside the open window. ``onConsume`` does not fire again."""
    window = state.extended_consumption
    if window is None or window.predator_id != predator.instance_id:
        log_message(state, "No extended consumption is available for that predator.")
        return False
    if not any(prey is c for c in get_consumable_prey(state, predator, player_index)):
        log_message(state, f"{prey.name} cannot be consumed by {predator.name}.")
        return False

    consume_prey(state, predator, [prey], player_index)
    window.consumed_count += 1
    if window.consumed_count >= window.max_consumption or not get_consumable_prey(state, predator, player_index):
        state.extended_consumption = None
        log_message(state, f"{format_card(predator)} has finished eating.")
    return True
