from __future__ import annotations

from foodchain.engine.actions import (
    Action,
    AdvancePhaseAction,
    AttackAction,
    ChooseFirstPlayerAction,
    EndTurnAction,
    PlayCardAction,
    ResolveQueuedEffectAction,
    ResolveSelectionAction,
    TargetRef,
)
from foodchain.engine.combat import get_valid_targets
from foodchain.engine.keywords import can_attack
from foodchain.engine.match import new_match, replay, step
from foodchain.engine.serialize import snapshot
from foodchain.engine.state import GameState
from foodchain.engine.types import Phase
from foodchain.paths import get_paths
from foodchain.services.content import ContentService


def _choose_action(state: GameState) -> Action:
    if state.setup.stage == "choice":
        winner = state.setup.roll_winner_index
        assert winner is not None
        return ChooseFirstPlayerAction(player=winner, first_player=winner)

    decision = state.pending_decision
    if decision is not None:
        found = state.find_on_field(decision.candidates[0])
        assert found is not None
        owner, slot, _ = found
        return ResolveSelectionAction(
            player=decision.context.player_index, target=TargetRef.creature_target(owner, slot)
        )

    p = state.active_player_index
    ps = state.players[p]
    enemy = state.opponent(p)

    if state.phase in (Phase.MAIN_1, Phase.MAIN_2) and not state.card_played_this_turn:
        if ps.empty_slot() is not None:
            for i, card in enumerate(ps.hand):
                if card.is_creature:
                    return PlayCardAction(player=p, hand_index=i)

    if state.phase == Phase.BEFORE_COMBAT and state.before_combat_queue:
        found = state.find_on_field(state.before_combat_queue[0])
        assert found is not None
        return ResolveQueuedEffectAction(player=p, slot=found[1])

    if state.phase == Phase.END and state.end_of_turn_queue:
        found = state.find_on_field(state.end_of_turn_queue[0])
        if found is not None:
            return ResolveQueuedEffectAction(player=p, slot=found[1])

    if state.phase == Phase.COMBAT:
        for slot, card in enumerate(ps.field):
            if card is None or card.has_attacked or not can_attack(card):
                continue
            valid = get_valid_targets(state, card, p)
            if valid.player:
                return AttackAction(player=p, attacker_slot=slot, target=TargetRef.player_target(enemy))
            if valid.creatures:
                target_slot = state.players[enemy].slot_of(valid.creatures[0])
                assert target_slot is not None
                return AttackAction(
                    player=p, attacker_slot=slot, target=TargetRef.creature_target(enemy, target_slot)
                )

    if state.phase == Phase.END:
        return EndTurnAction(player=p)
    return AdvancePhaseAction(player=p)


def test_engine_determinism_replay() -> None:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    cards = content.load_cards_db()
    decks = content.load_decks(cards)
    deck0 = decks.get("fish")
    deck1 = decks.get("predators")

    seed = 424242
    state1 = new_match(cards, deck0, deck1, seed=seed)

    actions = []
    for _ in range(200):
        if state1.winner is not None:
            break
        a = _choose_action(state1)
        actions.append(a)
        step(state1, a)

    assert state1.turn > 3

    snap1 = snapshot(state1)

    state2 = replay(cards, deck0, deck1, seed=seed, actions=actions)
    snap2 = snapshot(state2)

    assert snap1 == snap2


def test_same_seed_same_opening(cards) -> None:
    deck = ["amphibian-prey-tree-frog"] * 6 + ["fish-prey-blobfish"] * 6
    a = new_match(cards, deck, deck, seed=5)
    b = new_match(cards, deck, deck, seed=5)

    assert snapshot(a) == snapshot(b)
    assert [c.instance_id for c in a.players[0].hand] == ["c1", "c3", "c5", "c7", "c9"]
