"""Deterministic, headless rules engine for the Food Chain card game.

This package performs no I/O. Hosts drive it through ``step`` and observe it
through ``GameState.log`` and the optional ``broadcast`` hook.
"""

from .actions import (
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
from .match import StepResult, new_match, replay, step
from .state import CardInstance, GameState, MatchConfig, PlayerState
from .types import CardType, Keyword, Phase, Trigger

__all__ = [
    "AdvancePhaseAction",
    "AttackAction",
    "CardInstance",
    "CardType",
    "ChooseFirstPlayerAction",
    "EndTurnAction",
    "ExtendConsumptionAction",
    "GameState",
    "Keyword",
    "MatchConfig",
    "Phase",
    "PlayCardAction",
    "PlayerState",
    "ResolveQueuedEffectAction",
    "ResolveSelectionAction",
    "StepResult",
    "TargetRef",
    "Trigger",
    "new_match",
    "replay",
    "step",
]
