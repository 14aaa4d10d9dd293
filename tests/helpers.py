from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from poolrank.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    PlacementReward,
    PointScale,
    Prediction,
    PresenceRule,
    Question,
)
from poolrank.core import make_id
from poolrank.runtime import PoolRuntime
from poolrank.scoring import ScoringRules

GAME_ID = "G_WC2026"
T0 = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)

STANDARD = PointScale("standard", exact=10, difference=7, outcome=5)
REGIONAL = PointScale("regional", exact=6, difference=4, outcome=2)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def match(ref: str, table_id: str, question_id: str, home: str, away: str, actual: str | None = None) -> Question:
    return Question(
        id=ref,
        table_id=table_id,
        question_id=question_id,
        home_team=home,
        away_team=away,
        actual_result=actual,
    )


def text_q(
    ref: str,
    table_id: str,
    question_id: str,
    points: int,
    actual: str | None = None,
    text: str = "",
) -> Question:
    return Question(
        id=ref,
        table_id=table_id,
        question_id=question_id,
        possible_points=points,
        actual_result=actual,
        question_text=text,
    )


def pred(name: str | None, ref: str, value: str | None, minutes: int = 0) -> Prediction:
    return Prediction(participant_name=name, question_id=ref, text_prediction=value, created_date=at(minutes))


def make_rules(**overrides) -> ScoringRules:
    values = {
        "standard_scale": STANDARD,
        "regional_scale": REGIONAL,
        "excluded_table_ids": frozenset({"T1"}),
        "regional_table_ids": frozenset({"T20"}),
        "placement_table_ids": frozenset({"T14"}),
        "placement_rewards": {"T14": PlacementReward("T14", expected_count=2, teams_reward=20, order_reward=40)},
        "presence_rules": {
            "T11": PresenceRule("T11"),
            "T_THIRD_PLACE": PresenceRule("T_THIRD_PLACE", main_questions_only=True),
        },
    }
    values.update(overrides)
    return ScoringRules(**values)


def sample_questions() -> list[Question]:
    return [
        text_q("q_name", "T1", "1", 0, text="Your name"),
        match("q_m1", "T2", "1", "Brazil", "Chile", actual="2-1"),
        match("q_m2", "T2", "2", "Spain", "Italy", actual="0-0"),
        match("q_m3", "T2", "3", "France", "Peru"),
        text_q("q_top", "T3", "1", 15, actual="Mbappe", text="Top scorer"),
    ]


def sample_predictions() -> list[Prediction]:
    return [
        pred("Dana", "q_name", "Dana"),
        pred("Dana", "q_m1", "2-1"),
        pred("Dana", "q_m2", "1-1"),
        pred("Dana", "q_top", "Kane"),
        pred("Avi", "q_m1", "1-0"),
        pred("Avi", "q_m2", "0-0"),
        pred("Avi", "q_top", "Mbappe"),
        pred("Noa", "q_m1", "0-3"),
        pred("Noa", "q_m2", "2-1"),
        pred("Avi", "q_m1", "3-1", minutes=5),
    ]


def seeded_runtime(root: Path, questions=None, predictions=None, **kwargs) -> PoolRuntime:
    kwargs.setdefault("write_delay", 0.0)
    kwargs.setdefault("sleep", lambda _: None)
    runtime = PoolRuntime(root=root, game_id=GAME_ID, **kwargs)
    runtime.store.save_game(GAME_ID, "World Cup pool")
    runtime.store.save_questions(GAME_ID, sample_questions() if questions is None else questions)
    runtime.store.append_predictions(GAME_ID, sample_predictions() if predictions is None else predictions)
    return runtime


def act(runtime: PoolRuntime, action_type: ActionType, payload: dict | None = None) -> ActionResult:
    return runtime.handle_action(ActionRequest(make_id("req"), action_type, payload or {}, "admin"))
