from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from foodchain.engine.state import GameState


@dataclass
class TelemetryService:
    path: Path

    def log(self, event_type: str, payload: Mapping[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        rec = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "type": event_type,
            "payload": dict(payload),
        }
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")

    def broadcast_hook(self) -> Callable[[GameState], None]:
        """A ``GameState.broadcast`` callback that records a public state summary."""

        def hook(state: GameState) -> None:
            self.log(
                "state",
                {
                    "turn": state.turn,
                    "phase": state.phase.value,
                    "active_player": state.active_player_index,
                    "hp": [p.hp for p in state.players],
                    "field": [[c.card_id if c else None for c in p.field] for p in state.players],
                    "winner": state.winner,
                },
            )

        return hook
