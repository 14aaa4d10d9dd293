from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
import json

from poolrank.contracts import ActionRequest, ActionType, Prediction, Question
from poolrank.core import make_id
from poolrank.runtime.pool import PoolRuntime


@dataclass(slots=True)
class ReplayAction:
    action_type: str
    payload: dict
    actor: str = "admin"


@dataclass(slots=True)
class ReplayFixture:
    game_id: str
    questions: list[Question] = field(default_factory=list)
    predictions: list[Prediction] = field(default_factory=list)


class ReplayHarness:
    """Runs one action log against two fresh runtimes and fingerprints both."""

    def __init__(self, fixture: ReplayFixture) -> None:
        self.fixture = fixture
        self.actions: list[ReplayAction] = []

    def record(self, action_type: ActionType | str, payload: dict | None = None, actor: str = "admin") -> None:
        value = action_type.value if isinstance(action_type, ActionType) else action_type
        self.actions.append(ReplayAction(action_type=value, payload=payload or {}, actor=actor))

    def save(self, path: Path) -> None:
        data = {
            "game_id": self.fixture.game_id,
            "questions": [asdict(q) for q in self.fixture.questions],
            "predictions": [
                {**asdict(p), "created_date": p.created_date.isoformat()} for p in self.fixture.predictions
            ],
            "actions": [asdict(a) for a in self.actions],
        }
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    @staticmethod
    def load(path: Path) -> ReplayHarness:
        data = json.loads(path.read_text(encoding="utf-8"))
        fixture = ReplayFixture(
            game_id=data["game_id"],
            questions=[Question(**raw) for raw in data["questions"]],
            predictions=[
                Prediction(**{**raw, "created_date": datetime.fromisoformat(raw["created_date"])})
                for raw in data["predictions"]
            ],
        )
        harness = ReplayHarness(fixture)
        for raw in data["actions"]:
            harness.actions.append(ReplayAction(action_type=raw["action_type"], payload=raw["payload"], actor=raw["actor"]))
        return harness

    def replay(self, root: Path) -> tuple[dict, dict]:
        runtime_a = self._bootstrap_runtime(root / "replay_a")
        runtime_b = self._bootstrap_runtime(root / "replay_b")

        for action in self.actions:
            for runtime in (runtime_a, runtime_b):
                result = runtime.handle_action(ActionRequest(make_id("req"), action.action_type, action.payload, action.actor))
                if not result.success:
                    raise RuntimeError(f"replay action {action.action_type} failed: {result.message}")

        return self._fingerprint(runtime_a), self._fingerprint(runtime_b)

    def _fingerprint(self, runtime: PoolRuntime) -> dict:
        rows = runtime.store.list_rankings(runtime.game_id)
        # Timestamps differ between runs by construction; compare only derived values.
        return {
            "game_id": runtime.game_id,
            "rankings": [
                (
                    r.participant_id,
                    r.current_score,
                    r.current_position,
                    r.baseline_score,
                    r.baseline_position,
                    r.score_change,
                    r.position_change,
                    r.previous_score,
                    r.previous_position,
                )
                for r in rows
            ],
            "events": runtime.store.count_events(runtime.game_id),
        }

    def _bootstrap_runtime(self, root: Path) -> PoolRuntime:
        runtime = PoolRuntime(root=root, game_id=self.fixture.game_id, write_delay=0.0, sleep=lambda _: None)
        runtime.store.save_game(self.fixture.game_id, self.fixture.game_id)
        runtime.store.save_questions(self.fixture.game_id, self.fixture.questions)
        runtime.store.append_predictions(self.fixture.game_id, self.fixture.predictions)
        return runtime
