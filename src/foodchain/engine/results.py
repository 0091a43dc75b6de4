"""Declarative effect outcomes.

Card effect evaluation produces a tuple of these values; the effect result
resolver applies them to a game state. Creatures are referenced by instance id
so that outcomes (and paused decisions holding them) never keep live objects.
"""

from __future__ import annotations

from dataclasses import dataclass

from .types import TargetedEffect


@dataclass(frozen=True)
class SlainBy:
    instance_id: str
    name: str
    type: str
    atk: int
    hp: int


@dataclass(frozen=True)
class EffectContext:
    player_index: int
    opponent_index: int
    source_id: str | None = None
    killer: SlainBy | None = None
    consumed_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Heal:
    player_index: int
    amount: int


@dataclass(frozen=True)
class DamagePlayer:
    player_index: int
    amount: int


@dataclass(frozen=True)
class Draw:
    player_index: int
    count: int


@dataclass(frozen=True)
class DamageCreature:
    instance_id: str
    amount: int
    source_label: str = "effect"


@dataclass(frozen=True)
class KillCreature:
    instance_id: str


@dataclass(frozen=True)
class BuffCreature:
    instance_id: str
    attack: int
    health: int


@dataclass(frozen=True)
class FreezeCreature:
    instance_id: str
    lethal: bool = False


@dataclass(frozen=True)
class ParalyzeCreature:
    instance_id: str


@dataclass(frozen=True)
class GrantBarrier:
    instance_id: str


@dataclass(frozen=True)
class EnterStalking:
    instance_id: str


@dataclass(frozen=True)
class RegenCreature:
    instance_id: str


@dataclass(frozen=True)
class TransformCard:
    instance_id: str
    into: str


@dataclass(frozen=True)
class SummonTokens:
    player_index: int
    token_ids: tuple[str, ...]


@dataclass(frozen=True)
class CopyAbilities:
    target_id: str
    source_id: str


@dataclass(frozen=True)
class PendingOnPlay:
    instance_id: str
    player_index: int


@dataclass(frozen=True)
class SelectTarget:
    candidates: tuple[str, ...]
    effect: TargetedEffect


Outcome = (
    Heal
    | DamagePlayer
    | Draw
    | DamageCreature
    | KillCreature
    | BuffCreature
    | FreezeCreature
    | ParalyzeCreature
    | GrantBarrier
    | EnterStalking
    | RegenCreature
    | TransformCard
    | SummonTokens
    | CopyAbilities
    | PendingOnPlay
    | SelectTarget
)

EffectResult = tuple[Outcome, ...]


@dataclass(frozen=True)
class AwaitingTargetSelection:
    """A paused effect chain waiting for the acting player to pick a creature."""

    candidates: tuple[str, ...]
    effect: TargetedEffect
    context: EffectContext
    remaining: EffectResult = ()


PendingDecision = AwaitingTargetSelection
