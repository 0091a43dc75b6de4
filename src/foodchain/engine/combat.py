"""Combat resolution.

Every entry point resolves one complete attack synchronously. Creature combat
follows a fixed order: damage (Barrier, then Shell, then HP), Toxic,
Neurotoxic, Web, death marking, Ambush, Poisonous, and finally the end of
Stalking. Cleanup is separate and runs after the caller finishes the attack.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .effects import context_for, paralyze_creature, resolve_card_effect, resolve_effect_result
from .history import LogCategory, format_card, format_keyword, log_game_action, log_message
from .keywords import (
    apply_damage_with_shell,
    are_abilities_active,
    can_attack,
    end_stalking,
    get_effective_attack,
    has_active_barrier,
    has_acuity,
    has_ambush,
    has_haste,
    has_lure,
    has_neurotoxic,
    has_poisonous,
    has_pride,
    has_toxic,
    has_web,
    is_harmless,
    is_hidden,
    is_invisible,
    is_stalking,
    is_webbed,
    trigger_molt,
)
from .state import CardInstance, GameState, PlayerState
from .types import Keyword, Trigger


@dataclass(frozen=True)
class HitResult:
    damage: int = 0
    barrier_blocked: bool = False
    shell_absorbed: int = 0

    @property
    def landed(self) -> bool:
        return self.damage > 0 and not self.barrier_blocked


@dataclass(frozen=True)
class CombatResult:
    attacker_hit: HitResult = HitResult()
    defender_hit: HitResult = HitResult()

    @property
    def attacker_damage(self) -> int:
        return self.attacker_hit.damage

    @property
    def defender_damage(self) -> int:
        return self.defender_hit.damage


@dataclass(frozen=True)
class DirectAttackResult:
    damage: int


@dataclass(frozen=True)
class BeforeCombatRequired:
    """The attacker's ``onBeforeCombat`` must resolve before the attack."""

    instance_id: str


@dataclass
class ValidTargets:
    creatures: list[CardInstance] = field(default_factory=list)
    player: bool = False


def can_attack_player(state: GameState, attacker: CardInstance) -> bool:
    return has_haste(attacker) or attacker.summoned_turn < state.turn


def get_valid_targets(state: GameState, attacker: CardInstance, attacker_owner_index: int) -> ValidTargets:
    opponent = state.players[state.opponent(attacker_owner_index)]
    precise = has_acuity(attacker)
    targetable = [
        c for c in opponent.creatures() if precise or not (is_hidden(c) or is_invisible(c))
    ]
    lured = [c for c in targetable if has_lure(c)]
    if lured:
        return ValidTargets(creatures=lured, player=False)
    return ValidTargets(creatures=targetable, player=can_attack_player(state, attacker))


def apply_damage(state: GameState, creature: CardInstance, amount: int) -> HitResult:
    """Barrier blocks the whole hit, otherwise Shell soaks first and HP takes the rest."""
    if amount <= 0:
        return HitResult()
    if has_active_barrier(creature):
        creature.has_barrier = False
        log_game_action(
            state, LogCategory.BUFF, f"{format_card(creature)}'s {format_keyword(Keyword.BARRIER)} blocks the attack!"
        )
        return HitResult(damage=0, barrier_blocked=True)
    shell = apply_damage_with_shell(creature, amount)
    if shell.shell_absorbed:
        log_game_action(
            state,
            LogCategory.BUFF,
            f"{format_card(creature)}'s shell absorbs {shell.shell_absorbed} damage"
            + (" and breaks." if shell.shell_depleted else "."),
        )
    creature.current_hp -= shell.hp_damage
    creature.webbed = False
    return HitResult(damage=amount, shell_absorbed=shell.shell_absorbed)


def _toxic(state: GameState, source: CardInstance, target: CardInstance, hit: HitResult) -> None:
    if has_toxic(source) and hit.landed and target.current_hp > 0:
        target.current_hp = 0
        target.killed_by_toxic = True
        log_game_action(
            state,
            LogCategory.DEATH,
            f"{format_keyword(Keyword.TOXIC)}: {format_card(target)} is killed by "
            f"{format_card(source)}'s toxic venom!",
        )


def _neurotoxic(state: GameState, source: CardInstance, target: CardInstance, hit: HitResult) -> None:
    if has_neurotoxic(source) and hit.landed:
        paralyze_creature(state, target)
        log_game_action(
            state,
            LogCategory.DEBUFF,
            f"{format_keyword(Keyword.NEUROTOXIC)}: {format_card(target)} is paralyzed until turn "
            f"{target.paralyzed_until_turn}.",
        )


def _mark_slain(state: GameState, victim: CardInstance, killer: CardInstance) -> None:
    if victim.died_in_combat:
        return
    victim.died_in_combat = True
    victim.slain_by = killer.snapshot()
    log_game_action(state, LogCategory.DEATH, f"{format_card(victim)} is slain!")


def resolve_creature_combat(
    state: GameState,
    attacker: CardInstance,
    defender: CardInstance,
    attacker_owner_index: int,
    defender_owner_index: int,
) -> CombatResult:
    attack_power = get_effective_attack(attacker, state, attacker_owner_index)
    counter_power = get_effective_attack(defender, state, defender_owner_index)
    log_game_action(
        state,
        LogCategory.COMBAT,
        f"{format_card(attacker)} ({attack_power}/{attacker.current_hp}) attacks "
        f"{format_card(defender)} ({counter_power}/{defender.current_hp})",
    )

    ambush = has_ambush(attacker)
    counter_allowed = not ambush and not is_harmless(defender)
    was_stalking = is_stalking(attacker)

    defender_hp_before = defender.current_hp
    defender_hit = apply_damage(state, defender, attack_power)
    if defender_hit.landed:
        log_game_action(
            state,
            LogCategory.COMBAT,
            f"{format_card(attacker)} deals {defender_hit.damage} damage to {format_card(defender)} "
            f"({defender_hp_before} → {defender.current_hp})",
        )

    attacker_hit = HitResult()
    if counter_allowed:
        attacker_hp_before = attacker.current_hp
        attacker_hit = apply_damage(state, attacker, counter_power)
        if attacker_hit.landed:
            log_game_action(
                state,
                LogCategory.COMBAT,
                f"{format_card(defender)} deals {attacker_hit.damage} damage to {format_card(attacker)} "
                f"({attacker_hp_before} → {attacker.current_hp})",
            )

    _toxic(state, attacker, defender, defender_hit)
    if counter_allowed:
        _toxic(state, defender, attacker, attacker_hit)

    _neurotoxic(state, attacker, defender, defender_hit)
    if counter_allowed:
        _neurotoxic(state, defender, attacker, attacker_hit)

    if has_web(attacker) and defender_hit.landed and defender.current_hp > 0 and not is_webbed(defender):
        defender.webbed = True
        log_game_action(state, LogCategory.DEBUFF, f"{format_card(defender)} is caught in a web!")

    if defender.current_hp <= 0:
        _mark_slain(state, defender, attacker)
    if attacker.current_hp <= 0:
        _mark_slain(state, attacker, defender)

    if ambush:
        log_game_action(
            state,
            LogCategory.COMBAT,
            f"{format_keyword(Keyword.AMBUSH)}: {format_card(attacker)} avoids all damage!",
        )

    if has_poisonous(defender) and not ambush and attacker.current_hp > 0:
        attacker.current_hp = 0
        log_game_action(
            state,
            LogCategory.DEATH,
            f"{format_keyword(Keyword.POISONOUS)}: {format_card(attacker)} is poisoned by {format_card(defender)}!",
        )
        _mark_slain(state, attacker, defender)

    if was_stalking and end_stalking(attacker):
        log_game_action(state, LogCategory.COMBAT, f"{format_card(attacker)} strikes from the shadows and stops stalking.")

    state.notify()
    return CombatResult(attacker_hit=attacker_hit, defender_hit=defender_hit)


def resolve_direct_attack(
    state: GameState, attacker: CardInstance, opponent: PlayerState, attacker_owner_index: int
) -> int:
    damage = get_effective_attack(attacker, state, attacker_owner_index)
    before = opponent.hp
    opponent.hp -= damage
    log_game_action(
        state,
        LogCategory.COMBAT,
        f"DIRECT ATTACK: {format_card(attacker)} hits {opponent.name} for {damage} damage! "
        f"({before} → {opponent.hp} HP)",
    )
    end_stalking(attacker)
    state.notify()
    return damage


def has_pending_before_combat(card: CardInstance) -> bool:
    return (
        not card.before_combat_fired
        and are_abilities_active(card)
        and bool(card.effects.get(Trigger.ON_BEFORE_COMBAT))
    )


def initiate_combat(
    state: GameState,
    attacker: CardInstance,
    defender: CardInstance | None,
    attacker_owner_index: int,
    defender_owner_index: int,
) -> CombatResult | DirectAttackResult | BeforeCombatRequired:
    """Resolve an attack, or ask the caller to resolve ``onBeforeCombat`` first.

    The caller marks ``before_combat_fired`` after resolving the effect and
    calls this again.
    """
    if has_pending_before_combat(attacker):
        return BeforeCombatRequired(attacker.instance_id)
    if defender is None:
        damage = resolve_direct_attack(state, attacker, state.players[defender_owner_index], attacker_owner_index)
        return DirectAttackResult(damage)
    return resolve_creature_combat(state, attacker, defender, attacker_owner_index, defender_owner_index)


# ---------------------------------------------------------------------------
# Pride coordinated hunt


def get_available_pride_allies(state: GameState, attacker: CardInstance, owner_index: int) -> list[CardInstance]:
    if not has_pride(attacker):
        return []
    allies = []
    for card in state.players[owner_index].creatures():
        if card is attacker or not has_pride(card):
            continue
        if card.has_attacked or card.joined_pride_attack:
            continue
        if not can_attack(card):
            continue
        allies.append(card)
    return allies


def check_pride_coordinated_hunt(state: GameState, attacker: CardInstance, owner_index: int) -> bool:
    return bool(get_available_pride_allies(state, attacker, owner_index))


def resolve_pride_coordinated_damage(
    state: GameState,
    ally: CardInstance,
    defender: CardInstance | None,
    ally_owner_index: int,
    defender_owner_index: int,
) -> HitResult:
    """The ally strikes the same target and never takes counter-damage."""
    power = get_effective_attack(ally, state, ally_owner_index)
    ally.has_attacked = True
    ally.joined_pride_attack = True

    if defender is None:
        opponent = state.players[defender_owner_index]
        opponent.hp -= power
        log_game_action(
            state, LogCategory.COMBAT, f"{format_card(ally)} joins the hunt and hits {opponent.name} for {power}!"
        )
        hit = HitResult(damage=power)
    else:
        hit = apply_damage(state, defender, power)
        if hit.landed:
            log_game_action(
                state,
                LogCategory.COMBAT,
                f"{format_card(ally)} joins the hunt and deals {power} to {format_card(defender)}!",
            )
        _toxic(state, ally, defender, hit)
        if defender.current_hp <= 0:
            _mark_slain(state, defender, ally)

    if end_stalking(ally):
        log_game_action(state, LogCategory.COMBAT, f"{format_card(ally)} strikes from the shadows and stops stalking.")
    return hit


def reset_pride_flags(state: GameState) -> None:
    for ps in state.players:
        for card in ps.creatures():
            card.joined_pride_attack = False


# ---------------------------------------------------------------------------
# Cleanup


def _remove_dead(state: GameState, silent: bool) -> list[tuple[int, CardInstance]]:
    removed: list[tuple[int, CardInstance]] = []
    for p_i, ps in enumerate(state.players):
        for slot, card in enumerate(ps.field):
            if card is None or not card.is_creature or card.current_hp > 0:
                continue
            if not card.killed_by_toxic and trigger_molt(card):
                if not silent:
                    log_game_action(
                        state, LogCategory.BUFF, f"{format_card(card)} molts and survives at 1 HP, losing its keywords."
                    )
                continue
            ps.field[slot] = None
            removed.append((p_i, card))
            if card.is_token:
                if not silent:
                    log_game_action(state, LogCategory.DEATH, f"{format_card(card)} (token) is removed from the game.")
            else:
                ps.carrion.append(card)
                if not silent:
                    log_game_action(
                        state,
                        LogCategory.DEATH,
                        f"{format_card(card)} → {ps.name}'s Carrion ({len(ps.carrion)} cards)",
                    )
            if state.field_spell is not None and state.field_spell.instance_id == card.instance_id:
                state.field_spell = None
                if not silent:
                    log_game_action(state, LogCategory.DEATH, "Field spell removed.")
    return removed


def cleanup_destroyed(state: GameState, silent: bool = False) -> list[CardInstance]:
    """Remove dead creatures, apply Molt and fire ``onSlain``. Returns the dead.

    ``onSlain`` effects may kill more creatures; cleanup repeats until the
    field is stable.
    """
    destroyed: list[CardInstance] = []
    while True:
        removed = _remove_dead(state, silent)
        if not removed:
            break
        destroyed.extend(card for _, card in removed)
        if silent:
            continue
        for owner_index, card in removed:
            if not are_abilities_active(card):
                continue
            context = context_for(state, owner_index, card, killer=card.slain_by)
            result = resolve_card_effect(state, card, Trigger.ON_SLAIN, context)
            if result:
                log_game_action(state, LogCategory.DEATH, f"{format_card(card)} onSlain effect triggers...")
                resolve_effect_result(state, result, context)

    if destroyed and not silent:
        log_message(state, f"[Cleanup] {len(destroyed)} creature(s) destroyed.")
    if not silent:
        state.notify()
    return destroyed
