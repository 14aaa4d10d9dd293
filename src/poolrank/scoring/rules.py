from __future__ import annotations

import string
from collections import Counter
from dataclasses import dataclass

from poolrank.contracts import (
    ClassifiedQuestion,
    MatchOutcome,
    ParticipantId,
    PlacementReward,
    PointScale,
    QuestionKind,
    ScoredItem,
)
from poolrank.scoring.config import UNDECIDED_MARKERS

# Form inputs carry non-breaking spaces and bidi marks around answers.
_EDGE_CHARS = string.whitespace + "\u00a0\u200b\u200e\u200f\ufeff"


def normalize_answer(value: str | None) -> str:
    if value is None:
        return ""
    return str(value).strip(_EDGE_CHARS)


def is_undecided(actual_result: str | None) -> bool:
    return normalize_answer(actual_result) in UNDECIDED_MARKERS


def parse_score(text: str | None) -> tuple[int, int] | None:
    raw = normalize_answer(text)
    parts = raw.split("-")
    if len(parts) != 2:
        return None
    home, away = parts[0].strip(), parts[1].strip()
    if not (home.isdecimal() and away.isdecimal()):
        return None
    return int(home), int(away)


def outcome(home: int, away: int) -> MatchOutcome:
    if home > away:
        return MatchOutcome.WIN_HOME
    if home < away:
        return MatchOutcome.WIN_AWAY
    return MatchOutcome.DRAW


def score_match(actual_result: str | None, prediction: str | None, scale: PointScale) -> int:
    if is_undecided(actual_result):
        return 0
    actual = parse_score(actual_result)
    predicted = parse_score(prediction)
    if actual is None or predicted is None:
        return 0
    if actual == predicted:
        return scale.exact
    if outcome(*actual) != outcome(*predicted):
        return 0
    if actual[0] - actual[1] == predicted[0] - predicted[1]:
        return scale.difference
    return scale.outcome


def score_text(actual_result: str | None, prediction: str | None, possible_points: int) -> int:
    if is_undecided(actual_result):
        return 0
    answer = normalize_answer(prediction)
    if answer and answer == normalize_answer(actual_result):
        return possible_points
    return 0


def score_presence(prediction: str | None, decided_answers: frozenset[str], possible_points: int) -> int:
    answer = normalize_answer(prediction)
    if answer and answer in decided_answers:
        return possible_points
    return 0


@dataclass(slots=True)
class PlacementOutcome:
    teams_awarded: int
    order_awarded: int

    @property
    def total(self) -> int:
        return self.teams_awarded + self.order_awarded


def score_placement_table(
    questions: list[ClassifiedQuestion],
    effective: dict[str, str | None],
    reward: PlacementReward,
) -> PlacementOutcome | None:
    """Table-level bonus for a placement table.

    Returns None while the table is incomplete or any position is undecided.
    The teams tier needs the predicted set of teams to match the actual set;
    the order tier stacks on top when every position is exact.
    """
    if len(questions) != reward.expected_count:
        return None
    if any(is_undecided(cq.question.actual_result) for cq in questions):
        return None
    actual = [normalize_answer(cq.question.actual_result) for cq in questions]
    predicted = [normalize_answer(effective.get(cq.question.id)) for cq in questions]
    if Counter(actual) != Counter(predicted):
        return PlacementOutcome(teams_awarded=0, order_awarded=0)
    order_awarded = reward.order_reward if actual == predicted else 0
    return PlacementOutcome(teams_awarded=reward.teams_reward, order_awarded=order_awarded)


class RuleBasedScorer:
    def max_score(self, cq: ClassifiedQuestion) -> int:
        if cq.kind == QuestionKind.SCORE and cq.scale is not None:
            return cq.scale.exact
        if cq.kind == QuestionKind.EXCLUDED:
            return 0
        return cq.question.possible_points

    def score(
        self,
        participant_id: ParticipantId,
        cq: ClassifiedQuestion,
        prediction: str | None,
        presence_answers: frozenset[str] = frozenset(),
    ) -> ScoredItem:
        if cq.kind == QuestionKind.EXCLUDED:
            raise ValueError(f"question {cq.question.id} belongs to an excluded table")
        question = cq.question
        decided = not is_undecided(question.actual_result)
        points = 0
        if decided:
            if cq.kind == QuestionKind.SCORE and cq.scale is not None:
                points = score_match(question.actual_result, prediction, cq.scale)
            elif cq.kind == QuestionKind.PRESENCE:
                points = score_presence(prediction, presence_answers, question.possible_points)
            else:
                points = score_text(question.actual_result, prediction, question.possible_points)
        return ScoredItem(
            participant_id=participant_id,
            question_ref=question.id,
            question_id=question.question_id,
            table_id=question.table_id,
            score=points,
            max_score=self.max_score(cq),
            is_bonus=cq.is_bonus,
            decided=decided,
        )
