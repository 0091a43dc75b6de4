from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

TargetKind = Literal["player", "creature"]


@dataclass(frozen=True)
class TargetRef:
    kind: TargetKind
    player: int
    slot: int | None = None

    @staticmethod
    def player_target(player: int) -> "TargetRef":
        return TargetRef(kind="player", player=player, slot=None)

    @staticmethod
    def creature_target(player: int, slot: int) -> "TargetRef":
        return TargetRef(kind="creature", player=player, slot=slot)


@dataclass(frozen=True)
class ChooseFirstPlayerAction:
    player: int
    first_player: int


@dataclass(frozen=True)
class PlayCardAction:
    """Play a card from hand.

    ``prey_slots`` names the caller's own field slots a predator eats;
    ``carrion_indices`` picks from the caller's carrion for Scavenge.
    """

    player: int
    hand_index: int
    prey_slots: tuple[int, ...] = ()
    carrion_indices: tuple[int, ...] = ()


@dataclass(frozen=True)
class AttackAction:
    player: int
    attacker_slot: int
    target: TargetRef
    pride_slots: tuple[int, ...] = ()


@dataclass(frozen=True)
class ExtendConsumptionAction:
    player: int
    predator_slot: int
    prey_slot: int


@dataclass(frozen=True)
class ResolveSelectionAction:
    player: int
    target: TargetRef


@dataclass(frozen=True)
class ResolveQueuedEffectAction:
    """Drain one Before Combat or End queue entry, by field slot."""

    player: int
    slot: int


@dataclass(frozen=True)
class AdvancePhaseAction:
    player: int


@dataclass(frozen=True)
class EndTurnAction:
    player: int


Action = (
    ChooseFirstPlayerAction
    | PlayCardAction
    | AttackAction
    | ExtendConsumptionAction
    | ResolveSelectionAction
    | ResolveQueuedEffectAction
    | AdvancePhaseAction
    | EndTurnAction
)
