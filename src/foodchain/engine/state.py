from __future__ import annotations

import random
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Literal

from .history import LogEntry
from .results import PendingDecision, SlainBy
from .types import (
    CREATURE_TYPES,
    CardDatabase,
    CardDefinition,
    CardType,
    Effect,
    Keyword,
    Phase,
    Trigger,
)

SetupStage = Literal["rolling", "choice", "complete"]


@dataclass(frozen=True)
class MatchConfig:
    starting_hp: int = 10
    starting_hand: int = 5
    field_slots: int = 3
    max_consumption: int = 3
    max_stalk_bonus: int = 3
    skip_first_draw: bool = True
    log_limit: int = 2000


@dataclass(eq=False)
class CardInstance:
    """A card in a zone. Compared by identity; moved between zones, never copied."""

    instance_id: str
    definition: CardDefinition
    keywords: list[Keyword]
    effects: dict[Trigger, tuple[Effect, ...]]
    current_atk: int = 0
    current_hp: int = 0
    summoned_turn: int = 0
    is_token: bool = False
    transform_on_start: str | None = None

    frozen: bool = False
    frozen_dies_turn: int | None = None
    paralyzed: bool = False
    paralyzed_until_turn: int | None = None
    webbed: bool = False
    has_barrier: bool = False
    dry_dropped: bool = False
    abilities_cancelled: bool = False

    has_attacked: bool = False
    joined_pride_attack: bool = False
    before_combat_fired: bool = False

    died_in_combat: bool = False
    slain_by: SlainBy | None = None
    killed_by_toxic: bool = False

    shell_level: int = 0
    current_shell: int = 0
    molted: bool = False

    stalk_bonus: int = 0
    stalking_from_hidden: bool = False

    copied_from_id: str | None = None

    @property
    def card_id(self) -> str:
        return self.definition.id

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def type(self) -> CardType:
        return self.definition.type

    @property
    def tribe(self) -> str | None:
        return self.definition.tribe

    @property
    def atk(self) -> int:
        return self.definition.atk

    @property
    def hp(self) -> int:
        return self.definition.hp

    @property
    def nutrition(self) -> int:
        return self.definition.nutrition

    @property
    def is_creature(self) -> bool:
        return self.definition.type in CREATURE_TYPES

    def snapshot(self) -> SlainBy:
        return SlainBy(
            instance_id=self.instance_id,
            name=self.name,
            type=self.type.value,
            atk=self.current_atk,
            hp=self.current_hp,
        )


@dataclass
class PlayerState:
    name: str
    hp: int
    deck: list[str]
    hand: list[CardInstance]
    field: list[CardInstance | None]
    carrion: list[CardInstance] = field(default_factory=list)
    exile: list[CardInstance] = field(default_factory=list)

    def creatures(self) -> Iterator[CardInstance]:
        for card in self.field:
            if card is not None and card.is_creature:
                yield card

    def empty_slot(self) -> int | None:
        for i, card in enumerate(self.field):
            if card is None:
                return i
        return None

    def slot_of(self, card: CardInstance) -> int | None:
        for i, c in enumerate(self.field):
            if c is card:
                return i
        return None


@dataclass
class ExtendedConsumption:
    predator_id: str
    consumed_count: int
    max_consumption: int = 3


@dataclass
class FieldSpell:
    instance_id: str
    owner_index: int


@dataclass
class SetupState:
    stage: SetupStage = "rolling"
    rolls: tuple[int, int] | None = None
    roll_winner_index: int | None = None
    first_player_index: int | None = None


@dataclass
class GameState:
    cards: CardDatabase
    config: MatchConfig
    seed: int
    rng: random.Random
    players: list[PlayerState]
    active_player_index: int = 0
    phase: Phase = Phase.START
    turn: int = 1
    card_played_this_turn: bool = False
    extended_consumption: ExtendedConsumption | None = None
    field_spell: FieldSpell | None = None
    before_combat_queue: list[str] = field(default_factory=list)
    end_of_turn_queue: list[str] = field(default_factory=list)
    end_of_turn_finalized: bool = False
    setup: SetupState = field(default_factory=SetupState)
    pending_decision: PendingDecision | None = None
    deferred_decisions: list[PendingDecision] = field(default_factory=list)
    winner: int | None = None
    log: list[LogEntry] = field(default_factory=list)
    log_count: int = 0
    action_log: list[object] = field(default_factory=list)
    broadcast: Callable[[GameState], None] | None = None
    next_instance_number: int = 1

    def opponent(self, player: int) -> int:
        return 1 - player

    @property
    def active_player(self) -> PlayerState:
        return self.players[self.active_player_index]

    def new_instance_id(self) -> str:
        instance_id = f"c{self.next_instance_number}"
        self.next_instance_number += 1
        return instance_id

    def find_on_field(self, instance_id: str) -> tuple[int, int, CardInstance] | None:
        for p_i, ps in enumerate(self.players):
            for slot, card in enumerate(ps.field):
                if card is not None and card.instance_id == instance_id:
                    return p_i, slot, card
        return None

    def creature_by_id(self, instance_id: str) -> CardInstance | None:
        found = self.find_on_field(instance_id)
        return found[2] if found else None

    def owner_of(self, card: CardInstance) -> int | None:
        for p_i, ps in enumerate(self.players):
            if ps.slot_of(card) is not None:
                return p_i
        return None

    def notify(self) -> None:
        if self.broadcast is not None:
            self.broadcast(self)


def create_card_instance(
    state: GameState, definition: CardDefinition, *, is_token: bool | None = None
) -> CardInstance:
    inst = CardInstance(
        instance_id=state.new_instance_id(),
        definition=definition,
        keywords=list(definition.keywords),
        effects=dict(definition.effects),
        is_token=definition.is_token if is_token is None else is_token,
        transform_on_start=definition.transform_on_start,
    )
    if definition.is_creature:
        inst.current_atk = definition.atk
        inst.current_hp = definition.hp
        inst.summoned_turn = state.turn
        inst.has_barrier = Keyword.BARRIER in definition.keywords
        inst.frozen = Keyword.FROZEN in definition.keywords
        inst.shell_level = definition.shell_level
        inst.current_shell = definition.shell_level
    return inst


def draw_card(state: GameState, player: int) -> CardInstance | None:
    ps = state.players[player]
    if not ps.deck:
        return None
    card_id = ps.deck.pop(0)
    inst = create_card_instance(state, state.cards.get(card_id))
    ps.hand.append(inst)
    return inst


def reset_combat(state: GameState) -> None:
    for ps in state.players:
        for card in ps.creatures():
            card.has_attacked = False
            card.joined_pride_attack = False
            card.before_combat_fired = False
