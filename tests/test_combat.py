from __future__ import annotations

from foodchain.engine.actions import AttackAction, ResolveSelectionAction, TargetRef
from foodchain.engine.combat import (
    apply_damage,
    check_pride_coordinated_hunt,
    cleanup_destroyed,
    get_available_pride_allies,
    get_valid_targets,
    reset_pride_flags,
    resolve_creature_combat,
)
from foodchain.engine.keywords import can_attack
from foodchain.engine.match import step
from foodchain.engine.types import Keyword, Phase


def test_toxic_kills_through_shell_and_blocks_molt(state, place) -> None:
    widow = place(0, "arachnid-predator-black-widow")
    crab = place(1, "crustacean-predator-king-crab")

    result = resolve_creature_combat(state, widow, crab, 0, 1)

    assert result.defender_hit.shell_absorbed == 1
    assert crab.current_hp == 0
    assert crab.killed_by_toxic
    assert crab.died_in_combat
    cleanup_destroyed(state)
    assert state.players[1].carrion == [crab]
    assert not crab.molted


def test_toxic_defender_kills_attacker(state, place) -> None:
    wolf = place(0, "canine-predator-gray-wolf")
    widow = place(1, "arachnid-predator-black-widow")

    resolve_creature_combat(state, wolf, widow, 0, 1)

    assert widow.current_hp == 0
    assert wolf.current_hp == 0
    assert wolf.killed_by_toxic
    assert wolf.slain_by is not None and wolf.slain_by.name == "Black Widow"


def test_ambush_avoids_counter_damage_and_poison(state, place) -> None:
    eel = place(0, "fish-predator-moray-eel")
    puffer = place(1, "fish-prey-pufferfish")

    result = resolve_creature_combat(state, eel, puffer, 0, 1)

    assert result.defender_damage == 2
    assert result.attacker_damage == 0
    assert eel.current_hp == 2
    assert not eel.died_in_combat
    assert puffer.died_in_combat
    assert puffer.slain_by is not None and puffer.slain_by.name == "Moray Eel"


def test_poisonous_defender_kills_attacker_after_combat(state, place) -> None:
    shark = place(0, "fish-predator-great-white-shark")
    puffer = place(1, "fish-prey-pufferfish")

    resolve_creature_combat(state, shark, puffer, 0, 1)

    assert puffer.current_hp <= 0
    assert shark.current_hp == 0
    assert shark.died_in_combat
    assert shark.slain_by is not None and shark.slain_by.name == "Pufferfish"


def test_neurotoxic_paralyzes_surviving_defender(state, place) -> None:
    spider = place(0, "arachnid-predator-funnel-web")
    lion = place(1, "feline-predator-lion")

    resolve_creature_combat(state, spider, lion, 0, 1)

    assert lion.current_hp == 2
    assert lion.paralyzed
    assert lion.paralyzed_until_turn == state.turn + 1
    assert lion.keywords == [Keyword.HARMLESS]
    assert lion.effects == {}
    assert lion.abilities_cancelled
    assert not can_attack(lion)
    # the lion's counter-strike was already computed
    assert spider.current_hp <= 0


def test_lethal_neurotoxic_hit_strips_molt(state, place) -> None:
    spider = place(0, "arachnid-predator-funnel-web")
    frog = place(1, "amphibian-prey-tree-frog")
    frog.keywords.append(Keyword.MOLT)
    frog.current_hp = 1

    resolve_creature_combat(state, spider, frog, 0, 1)

    assert frog.current_hp == 0
    assert frog.keywords == [Keyword.HARMLESS]
    assert frog.paralyzed

    cleanup_destroyed(state)

    assert not frog.molted
    assert state.players[1].field[0] is None
    assert state.players[1].carrion == [frog]


def test_web_sticks_until_damage(state, place) -> None:
    weaver = place(0, "arachnid-predator-orb-weaver")
    axolotl = place(1, "amphibian-predator-axolotl")

    resolve_creature_combat(state, weaver, axolotl, 0, 1)

    assert axolotl.webbed
    assert axolotl.current_hp == 2
    assert weaver.current_hp == 2
    assert not can_attack(axolotl)

    apply_damage(state, axolotl, 1)
    assert not axolotl.webbed


def test_harmless_defender_deals_no_counter_damage(state, place) -> None:
    wolf = place(0, "canine-predator-gray-wolf")
    frog = place(1, "amphibian-prey-tree-frog")
    frog.keywords.append(Keyword.HARMLESS)

    result = resolve_creature_combat(state, wolf, frog, 0, 1)

    assert result.attacker_damage == 0
    assert wolf.current_hp == 2


def test_lure_and_hidden_shape_valid_targets(state, place) -> None:
    wolf = place(0, "canine-predator-gray-wolf")
    glass = place(1, "amphibian-prey-glass-frog")
    frog = place(1, "amphibian-prey-tree-frog")

    valid = get_valid_targets(state, wolf, 0)
    assert valid.creatures == [frog]
    assert valid.player

    chameleon = place(0, "reptile-predator-chameleon")
    assert get_valid_targets(state, chameleon, 0).creatures == [glass, frog]

    blob = place(1, "fish-prey-blobfish")
    lured = get_valid_targets(state, wolf, 0)
    assert lured.creatures == [blob]
    assert not lured.player


def test_fresh_creature_needs_haste_to_hit_the_rival(state, place) -> None:
    frog = place(0, "amphibian-prey-tree-frog", fresh=True)
    sailfish = place(0, "fish-predator-sailfish", fresh=True)

    assert not get_valid_targets(state, frog, 0).player
    assert get_valid_targets(state, sailfish, 0).player

    state.phase = Phase.COMBAT
    res = step(state, AttackAction(player=0, attacker_slot=0, target=TargetRef.player_target(1)))
    assert not res.ok
    assert res.error == "Invalid target."

    res = step(state, AttackAction(player=0, attacker_slot=1, target=TargetRef.player_target(1)))
    assert res.ok
    assert state.players[1].hp == 8


def test_attacks_only_in_combat_and_once_per_turn(state, place) -> None:
    place(0, "canine-predator-gray-wolf")
    attack = AttackAction(player=0, attacker_slot=0, target=TargetRef.player_target(1))

    res = step(state, attack)
    assert not res.ok

    state.phase = Phase.COMBAT
    assert step(state, attack).ok
    res = step(state, attack)
    assert not res.ok
    assert res.error is not None and "already attacked" in res.error


def test_direct_attack_ends_stalking(state, place) -> None:
    leopard = place(0, "feline-predator-leopard")
    leopard.keywords.append(Keyword.STALKING)
    leopard.keywords.append(Keyword.HIDDEN)
    leopard.stalking_from_hidden = True
    leopard.stalk_bonus = 2
    state.phase = Phase.COMBAT

    res = step(state, AttackAction(player=0, attacker_slot=0, target=TargetRef.player_target(1)))

    assert res.ok
    assert state.players[1].hp == 10 - 4
    assert Keyword.STALKING not in leopard.keywords
    assert Keyword.HIDDEN not in leopard.keywords


def test_pride_ally_joins_without_counter_damage(state, place) -> None:
    lion = place(0, "feline-predator-lion")
    lioness = place(0, "feline-predator-lioness")
    crab = place(1, "crustacean-predator-king-crab")
    state.phase = Phase.COMBAT

    assert get_available_pride_allies(state, lion, 0) == [lioness]
    res = step(
        state,
        AttackAction(player=0, attacker_slot=0, target=TargetRef.creature_target(1, 0), pride_slots=(1,)),
    )

    assert res.ok
    assert lion.has_attacked
    assert lion.current_hp == 1
    assert lioness.has_attacked and lioness.joined_pride_attack
    assert lioness.current_hp == 2
    # the ally's strike finishes the crab, which molts
    assert crab.molted
    assert crab.current_hp == 1
    assert get_available_pride_allies(state, lion, 0) == []


def test_stalking_pride_ally_spends_its_bonus(state, place) -> None:
    place(0, "feline-predator-lion")
    lioness = place(0, "feline-predator-lioness")
    lioness.keywords.extend([Keyword.STALKING, Keyword.HIDDEN])
    lioness.stalking_from_hidden = True
    lioness.stalk_bonus = 3
    state.players[1].hp = 20
    state.phase = Phase.COMBAT

    res = step(
        state,
        AttackAction(player=0, attacker_slot=0, target=TargetRef.player_target(1), pride_slots=(1,)),
    )

    assert res.ok
    # lion 3 + 1 Pride, lioness 2 + 1 Pride + 3 Stalk
    assert state.players[1].hp == 20 - 4 - 6
    assert Keyword.STALKING not in lioness.keywords
    assert Keyword.HIDDEN not in lioness.keywords
    assert lioness.stalk_bonus == 0


def test_fresh_pride_ally_cannot_join_a_hit_on_the_rival(state, place) -> None:
    lion = place(0, "feline-predator-lion")
    place(0, "token-pride-cub", fresh=True)
    state.phase = Phase.COMBAT

    res = step(
        state,
        AttackAction(player=0, attacker_slot=0, target=TargetRef.player_target(1), pride_slots=(1,)),
    )

    assert not res.ok
    assert res.error == "Pride Cub cannot attack the rival this turn."
    assert not lion.has_attacked
    assert state.players[1].hp == 10


def test_before_combat_effect_resolves_before_the_attack(state, place) -> None:
    jaguar = place(0, "feline-predator-jaguar")
    axolotl = place(1, "amphibian-predator-axolotl")
    state.phase = Phase.COMBAT
    attack = AttackAction(player=0, attacker_slot=0, target=TargetRef.creature_target(1, 0))

    res = step(state, attack)
    assert res.ok
    assert jaguar.before_combat_fired
    assert not jaguar.has_attacked
    assert state.pending_decision is not None
    assert state.pending_decision.candidates == (axolotl.instance_id,)

    assert not step(state, attack).ok
    assert step(state, ResolveSelectionAction(player=0, target=TargetRef.creature_target(1, 0))).ok
    assert axolotl.current_hp == 2

    assert step(state, attack).ok
    assert jaguar.has_attacked
    assert state.players[1].field[0] is None
    assert state.players[1].carrion == [axolotl]


def test_pride_hunt_needs_an_available_ally(state, place) -> None:
    lion = place(0, "feline-predator-lion")
    assert not check_pride_coordinated_hunt(state, lion, 0)

    cub = place(0, "token-pride-cub")
    assert check_pride_coordinated_hunt(state, lion, 0)

    cub.joined_pride_attack = True
    assert not check_pride_coordinated_hunt(state, lion, 0)
    reset_pride_flags(state)
    assert check_pride_coordinated_hunt(state, lion, 0)
