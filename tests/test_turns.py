from __future__ import annotations

from foodchain.engine.actions import (
    AdvancePhaseAction,
    ChooseFirstPlayerAction,
    EndTurnAction,
    PlayCardAction,
    ResolveQueuedEffectAction,
)
from foodchain.engine.match import new_match, step
from foodchain.engine.types import Keyword, Phase
from foodchain.engine.turns import advance_phase, card_limit_available, finalize_end_phase


def test_opening_roll_decides_who_chooses(cards) -> None:
    deck = ["amphibian-prey-tree-frog"] * 8
    state = new_match(cards, deck, deck, seed=99)

    assert state.setup.stage == "choice"
    assert state.setup.rolls is not None
    assert state.setup.rolls[0] != state.setup.rolls[1]
    winner = state.setup.roll_winner_index
    assert winner in (0, 1)
    assert all(len(p.hand) == 5 for p in state.players)

    assert not step(state, AdvancePhaseAction(player=winner)).ok
    assert not step(state, ChooseFirstPlayerAction(player=1 - winner, first_player=winner)).ok

    assert step(state, ChooseFirstPlayerAction(player=winner, first_player=1)).ok
    assert state.setup.stage == "complete"
    assert state.active_player_index == 1
    assert state.turn == 1
    assert state.phase == Phase.MAIN_1
    # the first player skips the turn-1 draw
    assert len(state.players[1].hand) == 5


def test_second_player_draws_and_draw_is_not_revealed(start) -> None:
    state = start()

    res = step(state, EndTurnAction(player=0))

    assert res.ok
    assert state.active_player_index == 1
    assert state.turn == 2
    assert state.phase == Phase.MAIN_1
    assert len(state.players[1].hand) == 6
    assert not any("Tree Frog" in e.message for e in res.events)


def test_cannot_act_out_of_turn(state) -> None:
    res = step(state, EndTurnAction(player=1))
    assert not res.ok
    assert res.error == "Not your turn."


def test_cards_only_in_main_phases(state, give) -> None:
    give(0, "amphibian-prey-tree-frog")
    assert step(state, AdvancePhaseAction(player=0)).ok
    assert state.phase == Phase.COMBAT

    res = step(state, PlayCardAction(player=0, hand_index=0))

    assert not res.ok
    assert step(state, AdvancePhaseAction(player=0)).ok
    assert state.phase == Phase.MAIN_2
    assert step(state, PlayCardAction(player=0, hand_index=0)).ok


def test_before_combat_queue_blocks_until_drained(state, place) -> None:
    jaguar = place(0, "feline-predator-jaguar")

    assert step(state, AdvancePhaseAction(player=0)).ok
    assert state.phase == Phase.BEFORE_COMBAT
    assert state.before_combat_queue == [jaguar.instance_id]

    assert not step(state, AdvancePhaseAction(player=0)).ok
    assert not step(state, EndTurnAction(player=0)).ok

    # no enemy creature to target, so the effect fizzles
    assert step(state, ResolveQueuedEffectAction(player=0, slot=0)).ok
    assert state.before_combat_queue == []
    assert jaguar.before_combat_fired
    assert step(state, AdvancePhaseAction(player=0)).ok
    assert state.phase == Phase.COMBAT


def test_advance_phase_refuses_while_selection_pending(state, place, give) -> None:
    place(1, "amphibian-prey-tree-frog")
    give(0, "spell-rockslide")
    assert step(state, PlayCardAction(player=0, hand_index=0)).ok
    assert state.pending_decision is not None

    assert not advance_phase(state)
    assert state.phase == Phase.MAIN_1


def test_end_of_turn_queue_then_hand_over(state, place) -> None:
    wrasse = place(0, "fish-prey-cleaner-wrasse")
    state.players[0].hp = 7

    assert step(state, EndTurnAction(player=0)).ok
    assert state.phase == Phase.END
    assert state.end_of_turn_queue == [wrasse.instance_id]
    assert state.active_player_index == 0

    assert not step(state, EndTurnAction(player=0)).ok
    assert step(state, ResolveQueuedEffectAction(player=0, slot=0)).ok
    assert state.players[0].hp == 8

    assert step(state, EndTurnAction(player=0)).ok
    assert state.active_player_index == 1
    assert state.phase == Phase.MAIN_1


def test_regen_and_shell_refresh_at_end(state, place) -> None:
    axolotl = place(0, "amphibian-predator-axolotl")
    crab = place(0, "crustacean-predator-king-crab")
    axolotl.current_hp = 1
    crab.current_shell = 0
    state.phase = Phase.END

    finalize_end_phase(state)

    assert axolotl.current_hp == 3
    assert crab.current_shell == 2
    assert state.end_of_turn_finalized


def test_frozen_thaws_and_frozen_toxin_kills(state, place) -> None:
    frozen = place(0, "amphibian-prey-tree-frog")
    doomed = place(0, "amphibian-prey-tree-frog")
    lion = place(1, "feline-predator-lion")
    frozen.frozen = True
    doomed.frozen = True
    doomed.frozen_dies_turn = state.turn
    lion.paralyzed = True
    lion.paralyzed_until_turn = state.turn

    assert step(state, EndTurnAction(player=0)).ok

    assert not frozen.frozen
    assert state.players[0].field[1] is None
    assert state.players[0].carrion == [doomed]
    assert not lion.paralyzed


def test_constriction_in_main_two(state, place) -> None:
    boa = place(0, "reptile-predator-boa-constrictor")
    boa.has_attacked = True
    boa.current_hp = 1
    state.phase = Phase.COMBAT

    assert step(state, AdvancePhaseAction(player=0)).ok

    assert state.phase == Phase.MAIN_2
    assert boa.current_hp == 4
    assert state.players[0].hp == 12


def test_start_of_turn_growth_and_transformation(state, place) -> None:
    leopard = place(0, "feline-predator-leopard")
    spawn = place(0, "amphibian-prey-frog-spawn")
    leopard.keywords.extend([Keyword.STALKING, Keyword.HIDDEN])
    leopard.stalking_from_hidden = True

    assert step(state, EndTurnAction(player=0)).ok
    assert leopard.stalk_bonus == 0
    assert step(state, EndTurnAction(player=1)).ok

    assert state.turn == 3
    assert leopard.stalk_bonus == 1
    grown = state.players[0].field[1]
    assert grown is not None and grown is not spawn
    assert grown.card_id == "amphibian-prey-tree-frog"
    assert grown.is_token


def test_field_spell_occupies_a_slot_and_triggers_each_turn(state, give) -> None:
    give(0, "field-coral-reef")
    assert step(state, PlayCardAction(player=0, hand_index=0)).ok
    reef = state.players[0].field[0]
    assert reef is not None
    assert state.field_spell is not None and state.field_spell.instance_id == reef.instance_id
    assert state.card_played_this_turn

    state.players[0].hp = 8
    assert step(state, EndTurnAction(player=0)).ok
    assert step(state, EndTurnAction(player=1)).ok
    assert state.players[0].hp == 9


def test_traps_cannot_be_played(state, give) -> None:
    give(0, "trap-snare")
    res = step(state, PlayCardAction(player=0, hand_index=0))
    assert not res.ok
    assert state.players[0].hand[0].card_id == "trap-snare"


def test_card_limit_resets_each_turn(state, give) -> None:
    give(0, "amphibian-prey-tree-frog")
    assert card_limit_available(state)
    assert step(state, PlayCardAction(player=0, hand_index=0)).ok
    assert not card_limit_available(state)

    assert step(state, EndTurnAction(player=0)).ok
    assert card_limit_available(state)
