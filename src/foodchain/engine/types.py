from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal


class CardType(str, Enum):
    PREDATOR = "Predator"
    PREY = "Prey"
    SPELL = "Spell"
    FREE_SPELL = "Free Spell"
    TRAP = "Trap"


class Keyword(str, Enum):
    HASTE = "Haste"
    FREE_PLAY = "Free Play"
    HIDDEN = "Hidden"
    LURE = "Lure"
    INVISIBLE = "Invisible"
    PASSIVE = "Passive"
    BARRIER = "Barrier"
    ACUITY = "Acuity"
    IMMUNE = "Immune"
    EDIBLE = "Edible"
    INEDIBLE = "Inedible"
    SCAVENGE = "Scavenge"
    NEUROTOXIC = "Neurotoxic"
    AMBUSH = "Ambush"
    TOXIC = "Toxic"
    POISONOUS = "Poisonous"
    HARMLESS = "Harmless"
    FROZEN = "Frozen"
    PACK = "Pack"
    WEB = "Web"
    WEBBED = "Webbed"
    PRIDE = "Pride"
    STALK = "Stalk"
    STALKING = "Stalking"
    SHELL = "Shell"
    MOLT = "Molt"
    REGEN = "Regen"


class Trigger(str, Enum):
    ON_PLAY = "onPlay"
    ON_CONSUME = "onConsume"
    ON_SLAIN = "onSlain"
    ON_START = "onStart"
    ON_END = "onEnd"
    ON_BEFORE_COMBAT = "onBeforeCombat"


class Phase(str, Enum):
    START = "Start"
    DRAW = "Draw"
    MAIN_1 = "Main 1"
    BEFORE_COMBAT = "Before Combat"
    COMBAT = "Combat"
    MAIN_2 = "Main 2"
    END = "End"


PHASE_ORDER: tuple[Phase, ...] = tuple(Phase)

CREATURE_TYPES = frozenset({CardType.PREDATOR, CardType.PREY})

TargetSide = Literal["enemy", "friendly", "any"]


@dataclass(frozen=True)
class HealEffect:
    type: Literal["heal"]
    amount: int


@dataclass(frozen=True)
class DamageOpponentEffect:
    type: Literal["damage_opponent"]
    amount: int


@dataclass(frozen=True)
class DrawEffect:
    type: Literal["draw"]
    count: int


@dataclass(frozen=True)
class BuffSelfEffect:
    type: Literal["buff_self"]
    attack: int
    health: int


@dataclass(frozen=True)
class BuffPrideEffect:
    type: Literal["buff_pride"]
    attack: int
    health: int


@dataclass(frozen=True)
class SummonTokensEffect:
    type: Literal["summon_tokens"]
    token_ids: tuple[str, ...]


@dataclass(frozen=True)
class DamageTargetEffect:
    type: Literal["damage_target"]
    amount: int
    side: TargetSide = "enemy"


@dataclass(frozen=True)
class KillTargetEffect:
    type: Literal["kill_target"]
    side: TargetSide = "enemy"


@dataclass(frozen=True)
class FreezeTargetEffect:
    type: Literal["freeze_target"]
    side: TargetSide = "enemy"
    lethal: bool = False


@dataclass(frozen=True)
class ParalyzeTargetEffect:
    type: Literal["paralyze_target"]
    side: TargetSide = "enemy"


@dataclass(frozen=True)
class FreezeEnemiesEffect:
    type: Literal["freeze_enemies"]


@dataclass(frozen=True)
class GrantBarrierEffect:
    type: Literal["grant_barrier"]


@dataclass(frozen=True)
class EnterStalkingEffect:
    type: Literal["enter_stalking"]


@dataclass(frozen=True)
class CopyAbilitiesEffect:
    type: Literal["copy_abilities"]
    side: TargetSide = "any"


@dataclass(frozen=True)
class TransformSelfEffect:
    type: Literal["transform_self"]
    into: str


@dataclass(frozen=True)
class RegenSelfEffect:
    type: Literal["regen_self"]


Effect = (
    HealEffect
    | DamageOpponentEffect
    | DrawEffect
    | BuffSelfEffect
    | BuffPrideEffect
    | SummonTokensEffect
    | DamageTargetEffect
    | KillTargetEffect
    | FreezeTargetEffect
    | ParalyzeTargetEffect
    | FreezeEnemiesEffect
    | GrantBarrierEffect
    | EnterStalkingEffect
    | CopyAbilitiesEffect
    | TransformSelfEffect
    | RegenSelfEffect
)

# Effects that need a creature chosen before they can apply.
TargetedEffect = (
    DamageTargetEffect
    | KillTargetEffect
    | FreezeTargetEffect
    | ParalyzeTargetEffect
    | CopyAbilitiesEffect
)


@dataclass(frozen=True)
class CardDefinition:
    id: str
    name: str
    type: CardType
    atk: int = 0
    hp: int = 0
    nutrition: int = 0
    tribe: str | None = None
    keywords: tuple[Keyword, ...] = ()
    effects: Mapping[Trigger, tuple[Effect, ...]] = field(default_factory=dict)
    shell_level: int = 0
    transform_on_start: str | None = None
    is_token: bool = False
    field_spell: bool = False
    constricts: bool = False
    rules_text: str = ""

    @property
    def is_creature(self) -> bool:
        return self.type in CREATURE_TYPES


@dataclass(frozen=True)
class CardDatabase:
    """Immutable card database used by the engine."""

    cards: dict[str, CardDefinition]

    def get(self, card_id: str) -> CardDefinition:
        return self.cards[card_id]

    def tokens(self) -> Sequence[CardDefinition]:
        return [c for c in self.cards.values() if c.is_token]
