from __future__ import annotations

from poolrank.contracts import ClassifiedQuestion, Question, QuestionKind
from poolrank.scoring.config import MATCH_SEPARATORS, ScoringRules
from poolrank.scoring.rules import is_undecided, parse_score


def split_match_text(text: str | None) -> tuple[str, str] | None:
    if not text:
        return None
    for separator in MATCH_SEPARATORS:
        if separator in text:
            parts = [p.strip() for p in text.split(separator)]
            if len(parts) == 2 and all(parts):
                return parts[0], parts[1]
            return None
    return None


def is_main_question(question: Question) -> bool:
    return "." not in question.question_id


class QuestionClassifier:
    def __init__(self, rules: ScoringRules) -> None:
        self._rules = rules

    def classify(self, question: Question) -> ClassifiedQuestion:
        table_id = question.table_id
        if self._rules.is_excluded(table_id):
            return ClassifiedQuestion(question=question, kind=QuestionKind.EXCLUDED)

        is_bonus = self._rules.is_placement(table_id)
        home, away = _clean(question.home_team), _clean(question.away_team)
        if home is None and away is None:
            derived = split_match_text(question.question_text)
            # A decided non-score answer means the separator belongs to a text question.
            if derived is not None and _accepts_score_result(question.actual_result):
                home, away = derived
        if home is not None and away is not None:
            return ClassifiedQuestion(
                question=question,
                kind=QuestionKind.SCORE,
                home_side=home,
                away_side=away,
                scale=self._rules.scale_for(table_id),
                is_bonus=is_bonus,
            )

        presence = self._rules.presence_rules.get(table_id)
        if presence is not None and (not presence.main_questions_only or is_main_question(question)):
            return ClassifiedQuestion(question=question, kind=QuestionKind.PRESENCE, is_bonus=is_bonus)
        return ClassifiedQuestion(question=question, kind=QuestionKind.TEXT, is_bonus=is_bonus)

    def classify_all(self, questions: list[Question]) -> list[ClassifiedQuestion]:
        return [self.classify(q) for q in questions]


def _accepts_score_result(actual_result: str | None) -> bool:
    return is_undecided(actual_result) or parse_score(actual_result) is not None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def table_sort_key(table_id: str) -> tuple[int, int, str]:
    """Numbered tables first in numeric order (T2 before T10), named tables after."""
    digits = table_id[1:] if table_id[:1].upper() == "T" else table_id
    if digits.isdecimal():
        return (0, int(digits), table_id)
    return (1, 0, table_id)


def question_sort_key(question_id: str) -> tuple[int, ...]:
    parts = question_id.split(".")
    if all(part.isdecimal() for part in parts):
        return tuple(int(part) for part in parts)
    return (10**9,)
