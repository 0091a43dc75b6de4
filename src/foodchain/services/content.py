from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from jsonschema import Draft202012Validator

from foodchain.engine.types import (
    BuffPrideEffect,
    BuffSelfEffect,
    CardDatabase,
    CardDefinition,
    CardType,
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
    TransformSelfEffect,
    Trigger,
)

logger = logging.getLogger(__name__)


class ContentError(RuntimeError):
    pass


def _load_json(path: Path) -> object:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ContentError(f"Missing content file: {path}") from e
    except json.JSONDecodeError as e:
        raise ContentError(f"Invalid JSON in {path}: {e}") from e


def validate_json(instance: object, schema: object, *, context: str) -> None:
    validator = Draft202012Validator(schema)
    errors = sorted(validator.iter_errors(instance), key=lambda e: list(e.path))
    if errors:
        lines = [f"Schema validation failed for {context}:"]
        for err in errors[:10]:
            loc = "/".join(str(p) for p in err.absolute_path)
            lines.append(f"- {loc}: {err.message}")
        raise ContentError("\n".join(lines))


def _require_str(obj: Mapping[str, object], key: str) -> str:
    v = obj.get(key)
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _require_int(obj: Mapping[str, object], key: str) -> int:
    v = obj.get(key)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_int(obj: Mapping[str, object], key: str, default: int = 0) -> int:
    v = obj.get(key, default)
    if not isinstance(v, int):
        raise ContentError(f"Expected int for {key}")
    return v


def _optional_str(obj: Mapping[str, object], key: str) -> str | None:
    v = obj.get(key)
    if v is None:
        return None
    if not isinstance(v, str):
        raise ContentError(f"Expected string for {key}")
    return v


def _parse_keywords(raw: object) -> tuple[Keyword, ...]:
    if not isinstance(raw, list):
        raise ContentError("keywords must be a list")
    try:
        return tuple(Keyword(item) for item in raw)
    except ValueError as e:
        raise ContentError(str(e)) from e


def _parse_effect(raw: Mapping[str, object]) -> Effect:
    t = raw.get("type")
    if not isinstance(t, str):
        raise ContentError("Effect missing type")
    side = raw.get("side", "enemy")
    if t == "heal":
        return HealEffect(type="heal", amount=_require_int(raw, "amount"))
    if t == "damage_opponent":
        return DamageOpponentEffect(type="damage_opponent", amount=_require_int(raw, "amount"))
    if t == "draw":
        return DrawEffect(type="draw", count=_require_int(raw, "count"))
    if t == "buff_self":
        return BuffSelfEffect(
            type="buff_self", attack=_optional_int(raw, "attack"), health=_optional_int(raw, "health")
        )
    if t == "buff_pride":
        return BuffPrideEffect(
            type="buff_pride", attack=_optional_int(raw, "attack"), health=_optional_int(raw, "health")
        )
    if t == "summon_tokens":
        tokens = raw.get("tokens")
        if not isinstance(tokens, list) or not all(isinstance(x, str) for x in tokens):
            raise ContentError("summon_tokens.tokens must be a list of card ids")
        return SummonTokensEffect(type="summon_tokens", token_ids=tuple(tokens))
    if t == "damage_target":
        return DamageTargetEffect(
            type="damage_target", amount=_require_int(raw, "amount"), side=side  # type: ignore[arg-type]
        )
    if t == "kill_target":
        return KillTargetEffect(type="kill_target", side=side)  # type: ignore[arg-type]
    if t == "freeze_target":
        return FreezeTargetEffect(
            type="freeze_target", side=side, lethal=bool(raw.get("lethal", False))  # type: ignore[arg-type]
        )
    if t == "paralyze_target":
        return ParalyzeTargetEffect(type="paralyze_target", side=side)  # type: ignore[arg-type]
    if t == "freeze_enemies":
        return FreezeEnemiesEffect(type="freeze_enemies")
    if t == "grant_barrier":
        return GrantBarrierEffect(type="grant_barrier")
    if t == "enter_stalking":
        return EnterStalkingEffect(type="enter_stalking")
    if t == "copy_abilities":
        return CopyAbilitiesEffect(type="copy_abilities", side=raw.get("side", "any"))  # type: ignore[arg-type]
    if t == "transform_self":
        return TransformSelfEffect(type="transform_self", into=_require_str(raw, "into"))
    if t == "regen_self":
        return RegenSelfEffect(type="regen_self")
    raise ContentError(f"Unknown effect type: {t}")


def _parse_effects(raw: object) -> dict[Trigger, tuple[Effect, ...]]:
    if not isinstance(raw, dict):
        raise ContentError("effects must be an object keyed by trigger")
    out: dict[Trigger, tuple[Effect, ...]] = {}
    for trigger_name, items in raw.items():
        try:
            trigger = Trigger(trigger_name)
        except ValueError as e:
            raise ContentError(f"Unknown trigger: {trigger_name}") from e
        if not isinstance(items, list):
            raise ContentError(f"effects.{trigger_name} must be a list")
        out[trigger] = tuple(_parse_effect(item) for item in items if isinstance(item, dict))
    return out


def parse_card(item: Mapping[str, object]) -> CardDefinition:
    return CardDefinition(
        id=_require_str(item, "id"),
        name=_require_str(item, "name"),
        type=CardType(_require_str(item, "type")),
        atk=_optional_int(item, "atk"),
        hp=_optional_int(item, "hp"),
        nutrition=_optional_int(item, "nutrition"),
        tribe=_optional_str(item, "tribe"),
        keywords=_parse_keywords(item.get("keywords", [])),
        effects=_parse_effects(item.get("effects", {})),
        shell_level=_optional_int(item, "shell_level"),
        transform_on_start=_optional_str(item, "transform_on_start"),
        is_token=bool(item.get("is_token", False)),
        field_spell=bool(item.get("field_spell", False)),
        constricts=bool(item.get("constricts", False)),
        rules_text=_optional_str(item, "rules_text") or "",
    )


def _referenced_ids(card: CardDefinition) -> list[str]:
    refs: list[str] = []
    if card.transform_on_start:
        refs.append(card.transform_on_start)
    for effects in card.effects.values():
        for eff in effects:
            if isinstance(eff, SummonTokensEffect):
                refs.extend(eff.token_ids)
            elif isinstance(eff, TransformSelfEffect):
                refs.append(eff.into)
    return refs


@dataclass(frozen=True)
class DeckCatalog:
    decks: dict[str, tuple[str, ...]]

    def get(self, deck_id: str) -> tuple[str, ...]:
        return self.decks[deck_id]


class ContentService:
    def __init__(self, data_dir: Path, schema_dir: Path) -> None:
        self._data_dir = data_dir
        self._schema_dir = schema_dir

    def load_cards_db(self) -> CardDatabase:
        cards_path = self._data_dir / "cards.json"
        raw = _load_json(cards_path)
        schema = _load_json(self._schema_dir / "cards.schema.json")
        validate_json(raw, schema, context=str(cards_path))

        if not isinstance(raw, dict):
            raise ContentError("cards.json must be an object")
        raw_cards = raw.get("cards")
        if not isinstance(raw_cards, list):
            raise ContentError("cards.json.cards must be a list")

        cards: dict[str, CardDefinition] = {}
        for item in raw_cards:
            if not isinstance(item, dict):
                continue
            card = parse_card(item)
            if card.id in cards:
                raise ContentError(f"Duplicate card id: {card.id}")
            cards[card.id] = card

        for card in cards.values():
            for ref in _referenced_ids(card):
                if ref not in cards:
                    raise ContentError(f"{card.id} references unknown card {ref}")
        logger.info("Loaded %d cards from %s", len(cards), cards_path)
        return CardDatabase(cards=cards)

    def load_decks(self, cards: CardDatabase) -> DeckCatalog:
        path = self._data_dir / "decks.json"
        raw = _load_json(path)
        schema = _load_json(self._schema_dir / "decks.schema.json")
        validate_json(raw, schema, context=str(path))
        if not isinstance(raw, dict):
            raise ContentError("decks.json must be an object")
        raw_decks = raw.get("decks")
        if not isinstance(raw_decks, dict):
            raise ContentError("decks.json.decks must be an object")

        decks: dict[str, tuple[str, ...]] = {}
        for deck_id, entries in raw_decks.items():
            card_ids: list[str] = []
            for entry in entries:
                card_id = _require_str(entry, "card")
                if card_id not in cards.cards:
                    raise ContentError(f"Deck {deck_id} references unknown card {card_id}")
                if cards.get(card_id).is_token:
                    raise ContentError(f"Deck {deck_id} contains token {card_id}")
                card_ids.extend([card_id] * _optional_int(entry, "count", 1))
            decks[deck_id] = tuple(card_ids)
        return DeckCatalog(decks=decks)

    def validate_all(self) -> None:
        # Load is validation (schema + parse)
        cards = self.load_cards_db()
        _ = self.load_decks(cards)
