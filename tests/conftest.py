from __future__ import annotations

from collections.abc import Callable

import pytest

from foodchain.engine.actions import ChooseFirstPlayerAction
from foodchain.engine.match import new_match, step
from foodchain.engine.state import CardInstance, GameState, create_card_instance
from foodchain.engine.types import CardDatabase, Phase
from foodchain.paths import get_paths
from foodchain.services.content import ContentService

FILLER = "amphibian-prey-tree-frog"

Place = Callable[..., CardInstance]
Give = Callable[[int, str], int]


@pytest.fixture(scope="session")
def cards() -> CardDatabase:
    paths = get_paths()
    content = ContentService(paths.data_dir, paths.schema_dir)
    return content.load_cards_db()


def start_match(cards: CardDatabase, seed: int = 7, first: int = 0) -> GameState:
    """A match past the opening roll, in ``first``'s turn-1 Main 1."""
    deck = [FILLER] * 12
    state = new_match(cards, deck, deck, seed=seed)
    res = step(state, ChooseFirstPlayerAction(player=state.setup.roll_winner_index, first_player=first))
    assert res.ok
    return state


@pytest.fixture
def state(cards: CardDatabase) -> GameState:
    """Player 0 to act in Main 1 of turn 1, with empty hands."""
    s = start_match(cards)
    for ps in s.players:
        ps.hand.clear()
    assert s.phase == Phase.MAIN_1
    return s


@pytest.fixture
def place(state: GameState) -> Place:
    """Put a fresh instance of ``card_id`` on ``player``'s field.

    Placed creatures count as summoned on an earlier turn unless
    ``fresh=True``.
    """

    def _place(player: int, card_id: str, slot: int | None = None, *, fresh: bool = False) -> CardInstance:
        inst = create_card_instance(state, state.cards.get(card_id))
        inst.summoned_turn = state.turn if fresh else state.turn - 1
        ps = state.players[player]
        if slot is None:
            slot = ps.empty_slot()
        assert slot is not None
        ps.field[slot] = inst
        return inst

    return _place


@pytest.fixture
def give(state: GameState) -> Give:
    """Add ``card_id`` to ``player``'s hand and return its hand index."""

    def _give(player: int, card_id: str) -> int:
        ps = state.players[player]
        ps.hand.append(create_card_instance(state, state.cards.get(card_id)))
        return len(ps.hand) - 1

    return _give


@pytest.fixture
def start(cards: CardDatabase) -> Callable[..., GameState]:
    def _start(seed: int = 7, first: int = 0) -> GameState:
        return start_match(cards, seed=seed, first=first)

    return _start
