from __future__ import annotations

import json
from pathlib import Path

from foodchain.engine.actions import ChooseFirstPlayerAction, EndTurnAction
from foodchain.engine.match import new_match, step
from foodchain.services.telemetry import TelemetryService


def test_log_appends_jsonl(tmp_path: Path) -> None:
    sink = TelemetryService(tmp_path / "logs" / "events.jsonl")
    sink.log("match_start", {"seed": 1})
    sink.log("match_end", {"winner": 0})

    lines = (tmp_path / "logs" / "events.jsonl").read_text(encoding="utf-8").splitlines()
    records = [json.loads(line) for line in lines]
    assert [r["type"] for r in records] == ["match_start", "match_end"]
    assert records[1]["payload"] == {"winner": 0}
    assert "ts" in records[0]


def test_broadcast_hook_records_state_changes(tmp_path: Path, cards) -> None:
    sink = TelemetryService(tmp_path / "events.jsonl")
    deck = ["amphibian-prey-tree-frog"] * 8
    state = new_match(cards, deck, deck, seed=3, broadcast=sink.broadcast_hook())
    winner = state.setup.roll_winner_index
    assert winner is not None

    step(state, ChooseFirstPlayerAction(player=winner, first_player=0))
    step(state, EndTurnAction(player=0))

    records = [json.loads(line) for line in sink.path.read_text(encoding="utf-8").splitlines()]
    assert records
    assert all(r["type"] == "state" for r in records)
    last = records[-1]["payload"]
    assert last["active_player"] == 1
    assert last["phase"] == "Main 1"
    assert last["hp"] == [10, 10]
