"""Card effect evaluation and effect result resolution.

``resolve_card_effect`` turns a card's declarative effect descriptors for one
trigger into a tuple of outcomes. ``resolve_effect_result`` applies outcomes to
the state. Effects that need a chosen creature pause the chain by placing an
``AwaitingTargetSelection`` in ``state.pending_decision``; ``resolve_selection``
resumes it.
"""

from __future__ import annotations

from .history import LogCategory, format_card, format_keyword, log_game_action, log_message
from .keywords import (
    apply_damage_with_shell,
    are_abilities_active,
    enter_stalking,
    has_active_barrier,
    has_pride,
    is_immune,
    is_invisible,
)
from .results import (
    AwaitingTargetSelection,
    BuffCreature,
    CopyAbilities,
    DamageCreature,
    DamagePlayer,
    Draw,
    EffectContext,
    EffectResult,
    EnterStalking,
    FreezeCreature,
    GrantBarrier,
    Heal,
    KillCreature,
    Outcome,
    ParalyzeCreature,
    PendingOnPlay,
    RegenCreature,
    SelectTarget,
    SummonTokens,
    TransformCard,
)
from .state import CardInstance, GameState, create_card_instance, draw_card
from .types import (
    BuffPrideEffect,
    BuffSelfEffect,
    CopyAbilitiesEffect,
    DamageOpponentEffect,
    DamageTargetEffect,
    DrawEffect,
    Effect,
    EnterStalkingEffect,
    FreezeEnemiesEffect,
    FreezeTargetEffect,
    GrantBarrierEffect,
    HealEffect,
    Keyword,
    KillTargetEffect,
    ParalyzeTargetEffect,
    RegenSelfEffect,
    SummonTokensEffect,
    TargetedEffect,
    TargetSide,
    TransformSelfEffect,
    Trigger,
)


def context_for(state: GameState, player_index: int, card: CardInstance | None = None, **extra: object) -> EffectContext:
    return EffectContext(
        player_index=player_index,
        opponent_index=state.opponent(player_index),
        source_id=card.instance_id if card is not None else None,
        **extra,  # type: ignore[arg-type]
    )


def strip_abilities(card: CardInstance) -> None:
    card.keywords = []
    card.effects = {}
    card.transform_on_start = None
    card.has_barrier = False
    card.shell_level = 0
    card.current_shell = 0
    card.stalk_bonus = 0
    card.stalking_from_hidden = False
    card.abilities_cancelled = True


def paralyze_creature(state: GameState, card: CardInstance) -> None:
    """Strip abilities and leave the creature Harmless until the next turn ends."""
    strip_abilities(card)
    card.keywords = [Keyword.HARMLESS]
    card.paralyzed = True
    card.paralyzed_until_turn = state.turn + 1


def apply_effect_damage(state: GameState, card: CardInstance, amount: int, source_label: str = "effect") -> int:
    if amount <= 0:
        return 0
    if is_immune(card):
        log_game_action(state, LogCategory.BUFF, f"{format_card(card)} is immune to {source_label} damage.")
        return 0
    if has_active_barrier(card):
        card.has_barrier = False
        log_game_action(
            state, LogCategory.BUFF, f"{format_card(card)}'s {format_keyword(Keyword.BARRIER)} blocks the damage."
        )
        return 0
    shell = apply_damage_with_shell(card, amount)
    card.current_hp -= shell.hp_damage
    card.webbed = False
    log_game_action(state, LogCategory.DAMAGE, f"{format_card(card)} takes {amount} damage.")
    return amount


# ---------------------------------------------------------------------------
# Evaluation


def target_candidates(
    state: GameState, context: EffectContext, side: TargetSide, *, exclude: str | None = None
) -> tuple[str, ...]:
    if side == "enemy":
        players = [context.opponent_index]
    elif side == "friendly":
        players = [context.player_index]
    else:
        players = [context.player_index, context.opponent_index]
    out: list[str] = []
    for p_i in players:
        for card in state.players[p_i].creatures():
            if card.instance_id == exclude or is_invisible(card):
                continue
            out.append(card.instance_id)
    return tuple(out)


def _evaluate(state: GameState, effect: Effect, context: EffectContext) -> list[Outcome]:
    source = context.source_id
    if isinstance(effect, HealEffect):
        return [Heal(context.player_index, effect.amount)]
    if isinstance(effect, DamageOpponentEffect):
        return [DamagePlayer(context.opponent_index, effect.amount)]
    if isinstance(effect, DrawEffect):
        return [Draw(context.player_index, effect.count)]
    if isinstance(effect, SummonTokensEffect):
        return [SummonTokens(context.player_index, effect.token_ids)]
    if isinstance(effect, FreezeEnemiesEffect):
        return [FreezeCreature(c.instance_id) for c in state.players[context.opponent_index].creatures()]
    if isinstance(effect, BuffPrideEffect):
        return [
            BuffCreature(c.instance_id, effect.attack, effect.health)
            for c in state.players[context.player_index].creatures()
            if has_pride(c)
        ]
    if isinstance(effect, (DamageTargetEffect, KillTargetEffect, FreezeTargetEffect, ParalyzeTargetEffect)):
        candidates = target_candidates(state, context, effect.side)
        return [SelectTarget(candidates, effect)] if candidates else []
    if isinstance(effect, CopyAbilitiesEffect):
        candidates = target_candidates(state, context, effect.side, exclude=source)
        return [SelectTarget(candidates, effect)] if candidates and source else []
    if source is None:
        return []
    if isinstance(effect, BuffSelfEffect):
        return [BuffCreature(source, effect.attack, effect.health)]
    if isinstance(effect, GrantBarrierEffect):
        return [GrantBarrier(source)]
    if isinstance(effect, EnterStalkingEffect):
        return [EnterStalking(source)]
    if isinstance(effect, TransformSelfEffect):
        return [TransformCard(source, effect.into)]
    if isinstance(effect, RegenSelfEffect):
        return [RegenCreature(source)]
    raise ValueError(f"Unknown effect: {effect!r}")


def resolve_card_effect(
    state: GameState, card: CardInstance, trigger: Trigger, context: EffectContext
) -> EffectResult | None:
    """Evaluate ``card``'s effects for ``trigger``. Returns None when nothing fires."""
    if not are_abilities_active(card):
        return None
    effects = card.effects.get(trigger)
    if not effects:
        return None
    outcomes: list[Outcome] = []
    for effect in effects:
        outcomes.extend(_evaluate(state, effect, context))
    return tuple(outcomes) or None


def targeted_outcome(effect: TargetedEffect, target_id: str, context: EffectContext) -> Outcome | None:
    if isinstance(effect, DamageTargetEffect):
        return DamageCreature(target_id, effect.amount)
    if isinstance(effect, KillTargetEffect):
        return KillCreature(target_id)
    if isinstance(effect, FreezeTargetEffect):
        return FreezeCreature(target_id, lethal=effect.lethal)
    if isinstance(effect, ParalyzeTargetEffect):
        return ParalyzeCreature(target_id)
    if isinstance(effect, CopyAbilitiesEffect):
        if context.source_id is None:
            return None
        return CopyAbilities(target_id=context.source_id, source_id=target_id)
    raise ValueError(f"Unknown targeted effect: {effect!r}")


def trigger_card_effect(
    state: GameState, card: CardInstance, trigger: Trigger, player_index: int, **extra: object
) -> bool:
    """Evaluate and resolve one trigger. Returns whether anything fired."""
    context = context_for(state, player_index, card, **extra)
    result = resolve_card_effect(state, card, trigger, context)
    if not result:
        return False
    resolve_effect_result(state, result, context)
    return True


# ---------------------------------------------------------------------------
# Resolution


def _living(state: GameState, instance_id: str) -> CardInstance | None:
    card = state.creature_by_id(instance_id)
    if card is None:
        log_message(state, f"Effect target {instance_id} is no longer on the field.")
    return card


def _place_token(state: GameState, player_index: int, token_id: str) -> CardInstance | None:
    ps = state.players[player_index]
    slot = ps.empty_slot()
    definition = state.cards.get(token_id)
    if slot is None:
        log_message(state, f"No empty field slots available to summon {definition.name}.")
        return None
    token = create_card_instance(state, definition, is_token=True)
    ps.field[slot] = token
    log_game_action(state, LogCategory.SUMMON, f"{ps.name} summons {format_card(token)}.")
    return token


def _copy_abilities(state: GameState, target: CardInstance, source: CardInstance) -> None:
    target.keywords = list(source.keywords)
    target.effects = dict(source.effects)
    target.transform_on_start = source.transform_on_start
    target.has_barrier = Keyword.BARRIER in source.keywords
    target.shell_level = source.shell_level
    target.current_shell = source.shell_level
    target.copied_from_id = source.card_id
    kws = ", ".join(format_keyword(k) for k in source.keywords) or "no keywords"
    log_game_action(
        state,
        LogCategory.CHOICE,
        f"{format_card(target)} copies {format_card(source)}'s abilities (replacing original): {kws}.",
    )


def _apply(state: GameState, outcome: Outcome, context: EffectContext) -> None:
    limit = state.config.starting_hp

    if isinstance(outcome, Heal):
        ps = state.players[outcome.player_index]
        healed = max(0, min(outcome.amount, limit - ps.hp))
        ps.hp += healed
        log_game_action(state, LogCategory.HEAL, f"{ps.name} heals {healed} HP.")

    elif isinstance(outcome, DamagePlayer):
        ps = state.players[outcome.player_index]
        ps.hp -= outcome.amount
        log_game_action(state, LogCategory.DAMAGE, f"{ps.name} takes {outcome.amount} damage.")

    elif isinstance(outcome, Draw):
        ps = state.players[outcome.player_index]
        for _ in range(max(0, outcome.count)):
            draw_card(state, outcome.player_index)
        log_game_action(state, LogCategory.BUFF, f"{ps.name} draws {outcome.count} card(s).")

    elif isinstance(outcome, DamageCreature):
        card = _living(state, outcome.instance_id)
        if card is not None:
            apply_effect_damage(state, card, outcome.amount, outcome.source_label)

    elif isinstance(outcome, KillCreature):
        card = _living(state, outcome.instance_id)
        if card is not None:
            card.current_hp = 0
            log_game_action(state, LogCategory.DEATH, f"{format_card(card)} is destroyed.")

    elif isinstance(outcome, BuffCreature):
        card = _living(state, outcome.instance_id)
        if card is not None:
            card.current_atk += outcome.attack
            card.current_hp += outcome.health
            log_game_action(
                state, LogCategory.BUFF, f"{format_card(card)} gains +{outcome.attack}/+{outcome.health}."
            )

    elif isinstance(outcome, FreezeCreature):
        card = _living(state, outcome.instance_id)
        if card is not None:
            card.frozen = True
            # Plain Frozen never carries an expiry; only the lethal toxin does.
            card.frozen_dies_turn = state.turn + 1 if outcome.lethal else None
            log_game_action(state, LogCategory.DEBUFF, f"{format_card(card)} is {format_keyword(Keyword.FROZEN)}.")

    elif isinstance(outcome, ParalyzeCreature):
        card = _living(state, outcome.instance_id)
        if card is not None:
            paralyze_creature(state, card)
            log_game_action(
                state,
                LogCategory.DEBUFF,
                f"{format_card(card)} is paralyzed! (loses all abilities, gains Harmless)",
            )

    elif isinstance(outcome, GrantBarrier):
        card = _living(state, outcome.instance_id)
        if card is not None:
            card.has_barrier = True
            if Keyword.BARRIER not in card.keywords:
                card.keywords.append(Keyword.BARRIER)
            log_game_action(state, LogCategory.BUFF, f"{format_card(card)} gains {format_keyword(Keyword.BARRIER)}.")

    elif isinstance(outcome, EnterStalking):
        card = _living(state, outcome.instance_id)
        if card is not None and enter_stalking(card):
            log_game_action(state, LogCategory.BUFF, f"{format_card(card)} begins stalking.")

    elif isinstance(outcome, RegenCreature):
        card = _living(state, outcome.instance_id)
        if card is not None and card.current_hp < card.hp:
            healed = card.hp - card.current_hp
            card.current_hp = card.hp
            log_game_action(
                state, LogCategory.HEAL, f"{format_card(card)} regenerates to full health (+{healed} HP)."
            )

    elif isinstance(outcome, TransformCard):
        found = state.find_on_field(outcome.instance_id)
        if found is None:
            return
        owner_index, slot, card = found
        replacement = create_card_instance(state, state.cards.get(outcome.into), is_token=True)
        state.players[owner_index].field[slot] = replacement
        log_game_action(
            state, LogCategory.SUMMON, f"{format_card(card)} transforms into {format_card(replacement)}."
        )

    elif isinstance(outcome, SummonTokens):
        for token_id in outcome.token_ids:
            token = _place_token(state, outcome.player_index, token_id)
            if token is not None:
                trigger_card_effect(state, token, Trigger.ON_PLAY, outcome.player_index)

    elif isinstance(outcome, CopyAbilities):
        target = _living(state, outcome.target_id)
        source = _living(state, outcome.source_id)
        if target is None or source is None:
            log_game_action(state, LogCategory.DEBUFF, "Copy abilities failed: creature no longer exists.")
            return
        _copy_abilities(state, target, source)
        if Trigger.ON_PLAY in source.effects and are_abilities_active(target):
            owner = state.owner_of(target)
            if owner is not None:
                _apply(state, PendingOnPlay(target.instance_id, owner), context)

    elif isinstance(outcome, PendingOnPlay):
        card = _living(state, outcome.instance_id)
        if card is not None:
            trigger_card_effect(state, card, Trigger.ON_PLAY, outcome.player_index)

    elif isinstance(outcome, SelectTarget):
        # handled by resolve_effect_result, which owns the continuation
        raise ValueError("SelectTarget must be resolved through resolve_effect_result")

    else:
        raise ValueError(f"Unknown outcome: {outcome!r}")


def resolve_effect_result(state: GameState, result: EffectResult | None, context: EffectContext) -> None:
    if not result:
        return
    for i, outcome in enumerate(result):
        if isinstance(outcome, SelectTarget):
            decision = AwaitingTargetSelection(
                candidates=outcome.candidates,
                effect=outcome.effect,
                context=context,
                remaining=tuple(result[i + 1 :]),
            )
            if state.pending_decision is None:
                state.pending_decision = decision
                log_game_action(
                    state,
                    LogCategory.CHOICE,
                    f"{state.players[context.player_index].name} must choose a target "
                    f"({len(outcome.candidates)} option(s)).",
                )
            else:
                state.deferred_decisions.append(decision)
            return
        _apply(state, outcome, context)


def resolve_selection(state: GameState, instance_id: str) -> bool:
    """Resume a paused effect chain with the chosen creature.

    Returns False (and changes nothing) when no decision is pending or the
    choice is not one of the candidates.
    """
    decision = state.pending_decision
    if decision is None:
        log_message(state, "There is no pending selection.")
        return False
    if instance_id not in decision.candidates:
        log_message(state, "Invalid target selected.")
        return False

    state.pending_decision = None
    outcome = targeted_outcome(decision.effect, instance_id, decision.context)
    if outcome is not None:
        _apply(state, outcome, decision.context)
    resolve_effect_result(state, decision.remaining, decision.context)

    while state.pending_decision is None and state.deferred_decisions:
        state.pending_decision = state.deferred_decisions.pop(0)
    return True
