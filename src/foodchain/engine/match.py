from __future__ import annotations

import random
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from .actions import (
    Action,
    AdvancePhaseAction,
    AttackAction,
    ChooseFirstPlayerAction,
    EndTurnAction,
    ExtendConsumptionAction,
    PlayCardAction,
    ResolveQueuedEffectAction,
    ResolveSelectionAction,
    TargetRef,
)
from .combat import (
    BeforeCombatRequired,
    can_attack_player,
    cleanup_destroyed,
    get_available_pride_allies,
    get_valid_targets,
    initiate_combat,
    resolve_pride_coordinated_damage,
)
from .consumption import after_play_consumption, extend_consumption, feed_on_play, validate_meal
from .effects import context_for, resolve_card_effect, resolve_effect_result, resolve_selection, trigger_card_effect
from .history import LogCategory, LogEntry, format_card, log_game_action, log_message
from .keywords import can_attack, is_free_play
from .state import CardInstance, FieldSpell, GameState, MatchConfig, PlayerState, draw_card
from .turns import (
    advance_phase,
    can_play_card,
    choose_first_player,
    end_turn,
    resolve_before_combat_effect,
    resolve_end_of_turn_effect,
    roll_for_first_choice,
)
from .types import CardDatabase, CardType, Phase, Trigger

SPELL_TYPES = (CardType.SPELL, CardType.FREE_SPELL)


@dataclass
class StepResult:
    ok: bool
    events: list[LogEntry]
    error: str | None = None


def _events_since(state: GameState, log_count: int) -> list[LogEntry]:
    fresh = state.log_count - log_count
    if fresh <= 0:
        return []
    return state.log[-fresh:]


def _check_winner(state: GameState) -> None:
    if state.winner is not None:
        return
    p0 = state.players[0].hp
    p1 = state.players[1].hp
    if p0 <= 0 and p1 <= 0:
        # Deterministic tie-break: the active player loses
        state.winner = state.opponent(state.active_player_index)
    elif p0 <= 0:
        state.winner = 1
    elif p1 <= 0:
        state.winner = 0
    else:
        return
    log_game_action(state, LogCategory.PHASE, f"{state.players[state.winner].name} wins the game!")
    state.notify()


class _Refused(Exception):
    """An illegal-but-expected action. Turned into ``StepResult(ok=False)``."""


def _refuse(state: GameState, message: str) -> _Refused:
    log_message(state, message)
    return _Refused(message)


def _own_field_card(state: GameState, player: int, slot: int) -> CardInstance:
    ps = state.players[player]
    if slot < 0 or slot >= len(ps.field) or ps.field[slot] is None:
        raise _refuse(state, "No card in that slot.")
    card = ps.field[slot]
    assert card is not None
    return card


def _target_card(state: GameState, target: TargetRef) -> CardInstance:
    if target.kind != "creature" or target.slot is None:
        raise _refuse(state, "Target a creature.")
    card = _own_field_card(state, target.player, target.slot)
    if not card.is_creature:
        raise _refuse(state, "Target a creature.")
    return card


# ---------------------------------------------------------------------------
# Playing cards


def _play_spell(state: GameState, player: int, card: CardInstance) -> None:
    ps = state.players[player]

    if card.definition.field_spell:
        slot = ps.empty_slot()
        if slot is None:
            raise _refuse(state, "No empty field slots available.")
        ps.hand.remove(card)
        previous = state.field_spell
        if previous is not None:
            found = state.find_on_field(previous.instance_id)
            if found is not None:
                owner_index, old_slot, old = found
                state.players[owner_index].field[old_slot] = None
                state.players[owner_index].exile.append(old)
                log_game_action(state, LogCategory.SPELL, f"{format_card(old)} is replaced.")
        ps.field[slot] = card
        card.summoned_turn = state.turn
        state.field_spell = FieldSpell(instance_id=card.instance_id, owner_index=player)
        log_game_action(state, LogCategory.SPELL, f"{ps.name} sets the field spell {format_card(card)}.")
        trigger_card_effect(state, card, Trigger.ON_PLAY, player)
        return

    context = context_for(state, player, card)
    result = resolve_card_effect(state, card, Trigger.ON_PLAY, context)
    if not result:
        raise _refuse(state, f"{card.name} would have no effect.")
    ps.hand.remove(card)
    log_game_action(state, LogCategory.SPELL, f"{ps.name} casts {format_card(card)}.")
    resolve_effect_result(state, result, context)
    ps.exile.append(card)


def _collect_meal(
    state: GameState, player: int, action: PlayCardAction
) -> tuple[list[CardInstance], list[CardInstance]]:
    ps = state.players[player]
    prey = [_own_field_card(state, player, slot) for slot in action.prey_slots]
    carrion: list[CardInstance] = []
    for index in action.carrion_indices:
        if index < 0 or index >= len(ps.carrion):
            raise _refuse(state, "No card at that carrion position.")
        carrion.append(ps.carrion[index])
    return prey, carrion


def _play_creature(state: GameState, player: int, card: CardInstance, action: PlayCardAction) -> None:
    ps = state.players[player]
    prey, carrion = _collect_meal(state, player, action)

    if card.type == CardType.PREDATOR:
        refusal = validate_meal(state, card, prey, player, carrion)
        if refusal:
            raise _refuse(state, refusal)
    elif prey or carrion:
        raise _refuse(state, "Only predators consume prey.")

    if ps.empty_slot() is None and not prey:
        raise _refuse(state, "No empty field slots available.")

    ps.hand.remove(card)
    consumed: tuple[str, ...] = ()
    if card.type == CardType.PREDATOR:
        consumed = feed_on_play(state, card, prey, player, carrion)

    slot = ps.empty_slot()
    assert slot is not None
    ps.field[slot] = card
    card.summoned_turn = state.turn

    # Dry-dropped predators lose Free Play with the rest of their abilities.
    if not is_free_play(card):
        state.card_played_this_turn = True
    log_game_action(state, LogCategory.SUMMON, f"{ps.name} plays {format_card(card)}.")

    trigger_card_effect(state, card, Trigger.ON_PLAY, player)
    if card.type == CardType.PREDATOR:
        after_play_consumption(state, card, consumed, player)


def _play_card(state: GameState, action: PlayCardAction) -> None:
    if not can_play_card(state):
        raise _refuse(state, "Cards may only be played during a main phase.")
    ps = state.players[action.player]
    if action.hand_index < 0 or action.hand_index >= len(ps.hand):
        raise _refuse(state, "Invalid hand index.")
    card = ps.hand[action.hand_index]

    if card.type == CardType.TRAP:
        raise _refuse(state, "Traps trigger from hand on the rival's turn.")
    if state.card_played_this_turn:
        raise _refuse(state, "You have already played a card this turn.")

    free = card.type == CardType.FREE_SPELL or is_free_play(card)
    window = state.extended_consumption
    state.extended_consumption = None

    try:
        if card.type in SPELL_TYPES:
            _play_spell(state, action.player, card)
            if not free:
                state.card_played_this_turn = True
        else:
            _play_creature(state, action.player, card, action)
    except _Refused:
        state.extended_consumption = window
        raise
    cleanup_destroyed(state)


# ---------------------------------------------------------------------------
# Combat


def _attack(state: GameState, action: AttackAction) -> None:
    if state.phase != Phase.COMBAT:
        raise _refuse(state, "Attacks can only be declared during the Combat phase.")
    player = action.player
    enemy = state.opponent(player)
    attacker = _own_field_card(state, player, action.attacker_slot)
    if not attacker.is_creature:
        raise _refuse(state, "Only creatures can attack.")
    if attacker.has_attacked:
        raise _refuse(state, f"{attacker.name} has already attacked this turn.")
    if not can_attack(attacker):
        raise _refuse(state, f"{attacker.name} cannot attack.")

    valid = get_valid_targets(state, attacker, player)
    defender: CardInstance | None = None
    if action.target.kind == "player":
        if action.target.player != enemy or not valid.player:
            raise _refuse(state, "Invalid target.")
    else:
        if action.target.player != enemy:
            raise _refuse(state, "Invalid target.")
        defender = _target_card(state, action.target)
        if not any(defender is c for c in valid.creatures):
            raise _refuse(state, "Invalid target.")

    allies: list[CardInstance] = []
    if action.pride_slots:
        available = get_available_pride_allies(state, attacker, player)
        for slot in action.pride_slots:
            ally = _own_field_card(state, player, slot)
            if not any(ally is c for c in available) or any(ally is c for c in allies):
                raise _refuse(state, f"{ally.name} cannot join this hunt.")
            if defender is None and not can_attack_player(state, ally):
                raise _refuse(state, f"{ally.name} cannot attack the rival this turn.")
            allies.append(ally)

    outcome = initiate_combat(state, attacker, defender, player, enemy)
    if isinstance(outcome, BeforeCombatRequired):
        attacker.before_combat_fired = True
        log_message(state, f"{attacker.name}'s before-combat effect resolves first.")
        trigger_card_effect(state, attacker, Trigger.ON_BEFORE_COMBAT, player)
        cleanup_destroyed(state)
        if state.pending_decision is not None:
            log_message(state, "Resolve the selection, then declare the attack again.")
            return
        if state.players[player].slot_of(attacker) is None or not can_attack(attacker):
            return
        if defender is not None and state.players[enemy].slot_of(defender) is None:
            log_message(state, "The target is no longer on the field.")
            return
        initiate_combat(state, attacker, defender, player, enemy)

    attacker.has_attacked = True
    for ally in allies:
        if defender is not None and defender.current_hp <= 0:
            break
        resolve_pride_coordinated_damage(state, ally, defender, player, enemy)
    cleanup_destroyed(state)


# ---------------------------------------------------------------------------
# Other actions


def _extend(state: GameState, action: ExtendConsumptionAction) -> None:
    predator = _own_field_card(state, action.player, action.predator_slot)
    prey = _own_field_card(state, action.player, action.prey_slot)
    if not extend_consumption(state, predator, prey, action.player):
        raise _Refused(state.log[-1].message)


def _resolve_selection(state: GameState, action: ResolveSelectionAction) -> None:
    decision = state.pending_decision
    assert decision is not None
    if action.player != decision.context.player_index:
        raise _refuse(state, "Only the acting player may choose this target.")
    card = _target_card(state, action.target)
    if not resolve_selection(state, card.instance_id):
        raise _Refused(state.log[-1].message)
    cleanup_destroyed(state)


def _resolve_queued(state: GameState, action: ResolveQueuedEffectAction) -> None:
    card = _own_field_card(state, action.player, action.slot)
    if state.phase == Phase.BEFORE_COMBAT:
        ok = resolve_before_combat_effect(state, card.instance_id)
    elif state.phase == Phase.END:
        ok = resolve_end_of_turn_effect(state, card.instance_id)
    else:
        raise _refuse(state, "There are no queued effects in this phase.")
    if not ok:
        raise _Refused(state.log[-1].message)


def _dispatch(state: GameState, action: Action) -> None:
    if isinstance(action, ChooseFirstPlayerAction):
        if action.player != state.setup.roll_winner_index:
            raise _refuse(state, "Only the roll winner chooses who goes first.")
        if not choose_first_player(state, action.first_player):
            raise _Refused(state.log[-1].message)
        return

    if state.pending_decision is not None:
        if not isinstance(action, ResolveSelectionAction):
            raise _refuse(state, "Resolve the pending selection first.")
        _resolve_selection(state, action)
        return
    if isinstance(action, ResolveSelectionAction):
        raise _refuse(state, "There is no pending selection.")

    if state.setup.stage != "complete":
        raise _refuse(state, "Finish the opening roll first.")
    if action.player != state.active_player_index:
        raise _refuse(state, "Not your turn.")

    if isinstance(action, PlayCardAction):
        _play_card(state, action)
    elif isinstance(action, AttackAction):
        _attack(state, action)
    elif isinstance(action, ExtendConsumptionAction):
        _extend(state, action)
    elif isinstance(action, ResolveQueuedEffectAction):
        _resolve_queued(state, action)
    elif isinstance(action, AdvancePhaseAction):
        if not advance_phase(state):
            raise _Refused(state.log[-1].message)
    elif isinstance(action, EndTurnAction):
        if not end_turn(state):
            raise _Refused(state.log[-1].message)
    else:
        raise _refuse(state, "Unknown action.")


def step(state: GameState, action: Action) -> StepResult:
    """Apply a single action to the game state.

    This mutates `state` in-place but remains deterministic for a given
    (seed, initial decks, action sequence). Refused actions leave the state
    unchanged apart from a log line.
    """
    if state.winner is not None:
        return StepResult(ok=False, events=[], error="Match already ended.")

    # Log first so replay has a full record of attempted actions
    state.action_log.append(action)
    mark = state.log_count
    try:
        _dispatch(state, action)
    except _Refused as exc:
        return StepResult(ok=False, events=_events_since(state, mark), error=str(exc))
    _check_winner(state)
    return StepResult(ok=True, events=_events_since(state, mark))


def _build_player(state_cards: CardDatabase, name: str, deck: Sequence[str], cfg: MatchConfig) -> PlayerState:
    for card_id in deck:
        if state_cards.get(card_id).is_token:
            raise ValueError(f"Token card {card_id!r} cannot be put in a deck.")
    if len(deck) < cfg.starting_hand:
        raise ValueError(f"Decks need at least {cfg.starting_hand} cards.")
    return PlayerState(
        name=name,
        hp=cfg.starting_hp,
        deck=list(deck),
        hand=[],
        field=[None for _ in range(cfg.field_slots)],
    )


def new_match(
    cards: CardDatabase,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    config: MatchConfig | None = None,
    names: tuple[str, str] = ("Player 1", "Player 2"),
    broadcast: Callable[[GameState], None] | None = None,
) -> GameState:
    """Shuffle, deal opening hands and roll for who chooses the first player."""
    cfg = config or MatchConfig()
    p0 = _build_player(cards, names[0], deck0, cfg)
    p1 = _build_player(cards, names[1], deck1, cfg)

    rng = random.Random(seed)
    rng.shuffle(p0.deck)
    rng.shuffle(p1.deck)

    state = GameState(cards=cards, config=cfg, seed=seed, rng=rng, players=[p0, p1], broadcast=broadcast)
    for _ in range(cfg.starting_hand):
        draw_card(state, 0)
        draw_card(state, 1)
    roll_for_first_choice(state)
    return state


def replay(
    cards: CardDatabase,
    deck0: Sequence[str],
    deck1: Sequence[str],
    seed: int,
    actions: Iterable[Action],
    config: MatchConfig | None = None,
) -> GameState:
    state = new_match(cards=cards, deck0=deck0, deck1=deck1, seed=seed, config=config)
    for a in actions:
        step(state, a)
        if state.winner is not None:
            break
    return state
