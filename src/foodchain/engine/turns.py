"""Turn and phase state machine.

Phases cycle Start → Draw → Main 1 → Before Combat → Combat → Main 2 → End and
then hand over to the other player. Blocked transitions never raise: they log
why and return False, and the caller may try again once the precondition
clears.
"""

from __future__ import annotations

from .combat import cleanup_destroyed, has_pending_before_combat
from .effects import context_for, resolve_effect_result, trigger_card_effect
from .history import LogCategory, format_card, log_game_action, log_message
from .keywords import (
    are_abilities_active,
    can_attack,
    has_regen,
    increment_stalk_bonus,
    is_stalking,
    regenerate_shell,
)
from .results import TransformCard
from .state import GameState, draw_card, reset_combat
from .types import PHASE_ORDER, Keyword, Phase, Trigger

MAIN_PHASES = (Phase.MAIN_1, Phase.MAIN_2)
CONSTRICTION_HEAL = 2


def can_play_card(state: GameState) -> bool:
    if state.setup.stage != "complete":
        return False
    return state.phase in MAIN_PHASES


def card_limit_available(state: GameState) -> bool:
    return not state.card_played_this_turn


def _set_phase(state: GameState, phase: Phase) -> None:
    state.phase = phase
    log_message(state, f"━━━ PHASE: {phase.value.upper()} ━━━")
    state.notify()


# ---------------------------------------------------------------------------
# Start


def _run_start_of_turn_effects(state: GameState) -> None:
    p_i = state.active_player_index
    ps = state.players[p_i]
    for card in list(ps.field):
        if card is None or ps.slot_of(card) is None:
            continue
        if card.effects.get(Trigger.ON_START) and are_abilities_active(card):
            log_message(state, f"→ {card.name} start-of-turn effect activates.")
            trigger_card_effect(state, card, Trigger.ON_START, p_i)
        if card.transform_on_start and ps.slot_of(card) is not None:
            log_message(state, f"→ {card.name} transforms at start of turn.")
            resolve_effect_result(
                state,
                (TransformCard(card.instance_id, card.transform_on_start),),
                context_for(state, p_i, card),
            )


def start_turn(state: GameState) -> None:
    ps = state.active_player
    state.card_played_this_turn = False
    state.extended_consumption = None
    state.end_of_turn_finalized = False
    state.before_combat_queue.clear()
    state.end_of_turn_queue.clear()
    reset_combat(state)
    log_message(state, f"Turn {state.turn}: {ps.name}'s Turn")

    for card in ps.creatures():
        if is_stalking(card):
            bonus = increment_stalk_bonus(card, state.config.max_stalk_bonus)
            log_game_action(state, LogCategory.BUFF, f"{format_card(card)} stalks closer (+{bonus} ATK).")

    _run_start_of_turn_effects(state)
    cleanup_destroyed(state)


# ---------------------------------------------------------------------------
# Phase entry


def _enter_draw(state: GameState) -> None:
    p_i = state.active_player_index
    ps = state.players[p_i]
    skip = (
        state.config.skip_first_draw
        and state.turn == 1
        and p_i == state.setup.first_player_index
    )
    if skip:
        log_message(state, f"[Draw] {ps.name} skips the first draw.")
    else:
        hand_size = len(ps.hand)
        deck_size = len(ps.deck)
        if draw_card(state, p_i) is not None:
            # the drawn card stays hidden from the log
            log_message(
                state,
                f"[Draw] {ps.name} draws a card. (Hand: {hand_size} → {hand_size + 1}, "
                f"Deck: {deck_size} → {deck_size - 1})",
            )
        else:
            log_message(state, f"[Draw] {ps.name} has no cards left in deck.")
    _set_phase(state, Phase.MAIN_1)
    _enter_main(state)


def _enter_main(state: GameState) -> None:
    ps = state.active_player
    limit = "Available" if card_limit_available(state) else "USED"
    log_message(state, f"[{state.phase.value}] {ps.name} can play cards. (Hand: {len(ps.hand)}, Card limit: {limit})")


def _enter_before_combat(state: GameState) -> None:
    ps = state.active_player
    queued = [c for c in ps.creatures() if has_pending_before_combat(c)]
    state.before_combat_queue = [c.instance_id for c in queued]
    if not queued:
        log_message(state, "[Before Combat] No before-combat effects.")
        _set_phase(state, Phase.COMBAT)
        _enter_combat(state)
        return
    names = ", ".join(c.name for c in queued)
    log_message(state, f"[Before Combat] {len(queued)} effect(s) queued: {names}")


def _enter_combat(state: GameState) -> None:
    ps = state.active_player
    ready = [c for c in ps.creatures() if not c.has_attacked and can_attack(c)]
    log_message(state, f"[Combat] {ps.name} has {len(ready)} creature(s) ready to attack.")


def _apply_constriction(state: GameState) -> None:
    ps = state.active_player
    for card in ps.creatures():
        if not card.definition.constricts or not card.has_attacked or not are_abilities_active(card):
            continue
        card.current_hp = card.hp
        ps.hp += CONSTRICTION_HEAL
        log_game_action(
            state,
            LogCategory.HEAL,
            f"{format_card(card)} constricts: regenerates to {card.hp} HP and heals {ps.name} "
            f"for {CONSTRICTION_HEAL} HP.",
        )


def _enter_end(state: GameState) -> bool:
    """Queue ``onEnd`` effects. Returns True when the turn was handed over."""
    ps = state.active_player
    queued = [
        c for c in ps.creatures() if c.effects.get(Trigger.ON_END) and are_abilities_active(c)
    ]
    state.end_of_turn_queue = [c.instance_id for c in queued]
    state.end_of_turn_finalized = False
    if queued:
        names = ", ".join(c.name for c in queued)
        log_message(state, f"[End] Queuing {len(queued)} end-of-turn effect(s): {names}")
        state.notify()
        return False
    end_turn(state)
    return True


def advance_phase(state: GameState) -> bool:
    """Move to the next phase. Returns False when the move is refused."""
    if state.setup.stage != "complete":
        log_message(state, "Finish the opening roll before advancing phases.")
        return False
    if state.pending_decision is not None:
        log_message(state, "Resolve the pending selection before advancing.")
        return False
    if state.phase == Phase.BEFORE_COMBAT and state.before_combat_queue:
        log_message(state, "Resolve before-combat effects before advancing.")
        return False
    if state.phase == Phase.END:
        return end_turn(state)

    following = PHASE_ORDER[PHASE_ORDER.index(state.phase) + 1]
    _set_phase(state, following)

    if following == Phase.DRAW:
        _enter_draw(state)
    elif following == Phase.MAIN_1:
        _enter_main(state)
    elif following == Phase.BEFORE_COMBAT:
        _enter_before_combat(state)
    elif following == Phase.COMBAT:
        _enter_combat(state)
    elif following == Phase.MAIN_2:
        _enter_main(state)
        _apply_constriction(state)
    elif following == Phase.END:
        _enter_end(state)
    return True


# ---------------------------------------------------------------------------
# Queue draining


def resolve_before_combat_effect(state: GameState, instance_id: str) -> bool:
    if state.phase != Phase.BEFORE_COMBAT or instance_id not in state.before_combat_queue:
        log_message(state, "That creature has no queued before-combat effect.")
        return False
    state.before_combat_queue.remove(instance_id)
    card = state.creature_by_id(instance_id)
    if card is None:
        return True
    card.before_combat_fired = True
    trigger_card_effect(state, card, Trigger.ON_BEFORE_COMBAT, state.active_player_index)
    cleanup_destroyed(state)
    return True


def resolve_end_of_turn_effect(state: GameState, instance_id: str) -> bool:
    if state.phase != Phase.END or instance_id not in state.end_of_turn_queue:
        log_message(state, "That creature has no queued end-of-turn effect.")
        return False
    state.end_of_turn_queue.remove(instance_id)
    card = state.creature_by_id(instance_id)
    if card is None:
        return True
    trigger_card_effect(state, card, Trigger.ON_END, state.active_player_index)
    cleanup_destroyed(state)
    return True


# ---------------------------------------------------------------------------
# End


def finalize_end_phase(state: GameState) -> None:
    """Turn-boundary status resolution. Runs at most once per End phase."""
    if state.end_of_turn_finalized:
        return
    ps = state.active_player
    log_message(state, "[End Phase Finalize] Processing end-of-turn effects...")

    for card in ps.creatures():
        if has_regen(card) and card.current_hp < card.hp:
            card.current_hp = card.hp
            log_game_action(state, LogCategory.HEAL, f"{format_card(card)} regenerates to full health.")

    for card in ps.creatures():
        if regenerate_shell(card):
            log_game_action(state, LogCategory.BUFF, f"{format_card(card)}'s shell regenerates.")

    for card in ps.creatures():
        if card.frozen and card.frozen_dies_turn is None:
            card.frozen = False
            if Keyword.FROZEN in card.keywords:
                card.keywords.remove(Keyword.FROZEN)
            log_game_action(state, LogCategory.BUFF, f"{format_card(card)} thaws out.")

    for card in ps.creatures():
        if card.frozen and card.frozen_dies_turn is not None and card.frozen_dies_turn <= state.turn:
            card.current_hp = 0
            log_game_action(state, LogCategory.DEATH, f"{format_card(card)} succumbs to frozen toxin.")

    for player in state.players:
        for card in player.creatures():
            if card.paralyzed and card.paralyzed_until_turn is not None and card.paralyzed_until_turn <= state.turn:
                card.paralyzed = False
                card.paralyzed_until_turn = None
                log_game_action(state, LogCategory.BUFF, f"{format_card(card)} recovers from paralysis.")

    cleanup_destroyed(state)
    log_message(state, f"{ps.name} ends turn. (HP: {ps.hp}, Hand: {len(ps.hand)}, Deck: {len(ps.deck)})")
    state.end_of_turn_finalized = True
    state.notify()


def end_turn(state: GameState) -> bool:
    """Hand the turn over. From an earlier phase this first enters End.

    Returns False when refused. Entering End with queued ``onEnd`` effects
    returns True but leaves the turn with the current player until the queue
    is drained and ``end_turn`` is called again.
    """
    if state.setup.stage != "complete":
        log_message(state, "Complete the opening roll before ending the turn.")
        return False
    if state.pending_decision is not None:
        log_message(state, "Resolve the pending selection before ending the turn.")
        return False
    if state.phase == Phase.BEFORE_COMBAT and state.before_combat_queue:
        log_message(state, "Resolve before-combat effects before ending the turn.")
        return False
    if state.phase != Phase.END:
        _set_phase(state, Phase.END)
        _enter_end(state)
        return True
    if not state.end_of_turn_finalized and state.end_of_turn_queue:
        log_message(state, "Resolve end-of-turn effects before ending the turn.")
        return False

    finalize_end_phase(state)
    previous = state.active_player.name
    state.active_player_index = state.opponent(state.active_player_index)
    state.turn += 1
    state.phase = Phase.START
    log_message(state, f"Turn {state.turn - 1} complete. Passing to {state.active_player.name}... ({previous} ended)")
    start_turn(state)
    if state.winner is None and state.pending_decision is None:
        advance_phase(state)
    return True


# ---------------------------------------------------------------------------
# Setup


def roll_for_first_choice(state: GameState) -> int:
    """Both players roll a d10 (ties reroll). The winner picks who starts."""
    while True:
        rolls = (state.rng.randint(1, 10), state.rng.randint(1, 10))
        for p_i, roll in enumerate(rolls):
            log_message(state, f"{state.players[p_i].name} rolls a {roll}.")
        if rolls[0] != rolls[1]:
            break
        log_message(state, "Tie! Rerolling to determine who chooses first.")
    winner = 0 if rolls[0] > rolls[1] else 1
    state.setup.rolls = rolls
    state.setup.roll_winner_index = winner
    state.setup.stage = "choice"
    log_message(state, f"{state.players[winner].name} wins the roll and chooses who goes first.")
    return winner


def choose_first_player(state: GameState, player_index: int) -> bool:
    """Finish setup and roll the first turn into Main 1."""
    if state.setup.stage != "choice":
        log_message(state, "The first player can only be chosen after the opening roll.")
        return False
    if player_index not in (0, 1):
        log_message(state, "Choose player 0 or player 1.")
        return False
    state.setup.stage = "complete"
    state.setup.first_player_index = player_index
    state.active_player_index = player_index
    state.phase = Phase.START
    log_game_action(state, LogCategory.PHASE, f"{state.players[player_index].name} goes first.")
    start_turn(state)
    if state.pending_decision is None:
        advance_phase(state)
    return True
