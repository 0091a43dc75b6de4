from __future__ import annotations

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
from .state import CardInstance, GameState, PlayerState


def _target_to_dict(t: TargetRef | None) -> dict[str, object] | None:
    if t is None:
        return None
    return {"kind": t.kind, "player": t.player, "slot": t.slot}


def action_to_dict(a: Action) -> dict[str, object]:
    if isinstance(a, ChooseFirstPlayerAction):
        return {"type": "choose_first", "player": a.player, "first_player": a.first_player}
    if isinstance(a, PlayCardAction):
        return {
            "type": "play",
            "player": a.player,
            "hand_index": a.hand_index,
            "prey_slots": list(a.prey_slots),
            "carrion_indices": list(a.carrion_indices),
        }
    if isinstance(a, AttackAction):
        return {
            "type": "attack",
            "player": a.player,
            "attacker_slot": a.attacker_slot,
            "target": _target_to_dict(a.target),
            "pride_slots": list(a.pride_slots),
        }
    if isinstance(a, ExtendConsumptionAction):
        return {
            "type": "extend_consumption",
            "player": a.player,
            "predator_slot": a.predator_slot,
            "prey_slot": a.prey_slot,
        }
    if isinstance(a, ResolveSelectionAction):
        return {"type": "select", "player": a.player, "target": _target_to_dict(a.target)}
    if isinstance(a, ResolveQueuedEffectAction):
        return {"type": "resolve_queued", "player": a.player, "slot": a.slot}
    if isinstance(a, AdvancePhaseAction):
        return {"type": "advance_phase", "player": a.player}
    if isinstance(a, EndTurnAction):
        return {"type": "end_turn", "player": a.player}
    # should be unreachable
    return {"type": "unknown"}


def _card_to_dict(c: CardInstance | None) -> dict[str, object] | None:
    if c is None:
        return None
    out: dict[str, object] = {
        "instance_id": c.instance_id,
        "card_id": c.card_id,
        "keywords": [k.value for k in c.keywords],
        "is_token": c.is_token,
    }
    if c.is_creature:
        out.update(
            {
                "atk": c.current_atk,
                "hp": c.current_hp,
                "summoned_turn": c.summoned_turn,
                "frozen": c.frozen,
                "frozen_dies_turn": c.frozen_dies_turn,
                "paralyzed": c.paralyzed,
                "paralyzed_until_turn": c.paralyzed_until_turn,
                "webbed": c.webbed,
                "has_barrier": c.has_barrier,
                "dry_dropped": c.dry_dropped,
                "abilities_cancelled": c.abilities_cancelled,
                "has_attacked": c.has_attacked,
                "shell": [c.current_shell, c.shell_level],
                "molted": c.molted,
                "stalk_bonus": c.stalk_bonus,
            }
        )
    return out


def _player_to_dict(p: PlayerState) -> dict[str, object]:
    return {
        "name": p.name,
        "hp": p.hp,
        "deck": list(p.deck),
        "hand": [_card_to_dict(c) for c in p.hand],
        "field": [_card_to_dict(c) for c in p.field],
        "carrion": [c.card_id for c in p.carrion],
        "exile": [c.card_id for c in p.exile],
    }


def snapshot(state: GameState) -> dict[str, object]:
    """Return a JSON-serializable canonical snapshot of the current game state."""
    pending = state.pending_decision
    return {
        "seed": state.seed,
        "turn": state.turn,
        "phase": state.phase.value,
        "active_player": state.active_player_index,
        "setup": {
            "stage": state.setup.stage,
            "rolls": list(state.setup.rolls) if state.setup.rolls else None,
            "first_player": state.setup.first_player_index,
        },
        "card_played_this_turn": state.card_played_this_turn,
        "extended_consumption": (
            {
                "predator_id": state.extended_consumption.predator_id,
                "consumed_count": state.extended_consumption.consumed_count,
            }
            if state.extended_consumption
            else None
        ),
        "field_spell": state.field_spell.instance_id if state.field_spell else None,
        "before_combat_queue": list(state.before_combat_queue),
        "end_of_turn_queue": list(state.end_of_turn_queue),
        "pending_decision": (
            {"candidates": list(pending.candidates), "effect": pending.effect.type} if pending else None
        ),
        "winner": state.winner,
        "players": [_player_to_dict(p) for p in state.players],
        "action_log": [action_to_dict(a) for a in state.action_log],  # type: ignore[arg-type]
    }
