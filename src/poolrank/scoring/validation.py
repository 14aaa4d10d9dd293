from __future__ import annotations

from collections import Counter
from typing import Iterable

from poolrank.contracts import (
    Prediction,
    Question,
    QuestionKind,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)
from poolrank.scoring.classifier import QuestionClassifier
from poolrank.scoring.config import ScoringRules
from poolrank.scoring.rules import is_undecided, parse_score


class GameInputValidator:
    """Pre-scoring gate over one game's questions and prediction log.

    Blocking issues raise ValidationError; warnings are returned so callers
    can surface them next to the leaderboard.
    """

    def __init__(self, rules: ScoringRules) -> None:
        self._rules = rules
        self._classifier = QuestionClassifier(rules)

    def validate(self, questions: list[Question], predictions: Iterable[Prediction]) -> ValidationResult:
        issues: list[ValidationIssue] = []
        issues.extend(self._validate_questions(questions))
        issues.extend(self._validate_predictions(questions, predictions))
        return self._finalize(issues)

    def _finalize(self, issues: list[ValidationIssue]) -> ValidationResult:
        ordered = sorted(issues, key=lambda x: (x.severity, x.code, x.entity_id, x.field_path))
        blocking = [i for i in ordered if i.severity == "blocking"]
        if blocking:
            raise ValidationError(blocking)
        return ValidationResult(ok=True, issues=ordered)

    def _validate_questions(self, questions: list[Question]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        counts = Counter(q.id for q in questions)
        for question_ref, count in sorted(counts.items()):
            if count > 1:
                issues.append(
                    ValidationIssue(
                        code="DUPLICATE_QUESTION_ID",
                        severity="blocking",
                        field_path="questions.id",
                        entity_id=question_ref,
                        message=f"question id appears {count} times",
                    )
                )

        per_table: Counter[str] = Counter()
        for question in questions:
            cq = self._classifier.classify(question)
            if cq.kind == QuestionKind.EXCLUDED:
                continue
            per_table[question.table_id] += 1
            if question.possible_points < 0:
                issues.append(
                    ValidationIssue(
                        code="NEGATIVE_POSSIBLE_POINTS",
                        severity="blocking",
                        field_path="questions.possible_points",
                        entity_id=question.id,
                        message="possible_points must not be negative",
                    )
                )
            if cq.kind == QuestionKind.SCORE and not is_undecided(question.actual_result):
                if parse_score(question.actual_result) is None:
                    issues.append(
                        ValidationIssue(
                            code="MALFORMED_MATCH_RESULT",
                            severity="warning",
                            field_path="questions.actual_result",
                            entity_id=question.id,
                            message=f"'{question.actual_result}' is not an H-A score; nobody can score this match",
                        )
                    )

        for table_id in sorted(self._rules.placement_table_ids):
            reward = self._rules.placement_reward(table_id)
            found = per_table.get(table_id, 0)
            if found and found != reward.expected_count:
                issues.append(
                    ValidationIssue(
                        code="PLACEMENT_TABLE_SIZE_MISMATCH",
                        severity="warning",
                        field_path=f"tables.{table_id}",
                        entity_id=table_id,
                        message=f"expected {reward.expected_count} questions, found {found}; table bonus is never awarded",
                    )
                )
        return issues

    def _validate_predictions(self, questions: list[Question], predictions: Iterable[Prediction]) -> list[ValidationIssue]:
        issues: list[ValidationIssue] = []
        known = {q.id for q in questions}
        unknown: Counter[str] = Counter()
        anonymous = 0
        aware: set[bool] = set()
        for row in predictions:
            if row.participant_name is None or not row.participant_name.strip():
                anonymous += 1
            if row.question_id not in known:
                unknown[row.question_id] += 1
            aware.add(row.created_date.tzinfo is not None)

        for question_ref, count in sorted(unknown.items()):
            issues.append(
                ValidationIssue(
                    code="UNKNOWN_QUESTION_REFERENCE",
                    severity="warning",
                    field_path="predictions.question_id",
                    entity_id=question_ref,
                    message=f"{count} prediction rows reference a question outside this game",
                )
            )
        if anonymous:
            issues.append(
                ValidationIssue(
                    code="ANONYMOUS_PREDICTIONS_IGNORED",
                    severity="warning",
                    field_path="predictions.participant_name",
                    entity_id="*",
                    message=f"{anonymous} prediction rows have no participant name and are ignored",
                )
            )
        if len(aware) > 1:
            issues.append(
                ValidationIssue(
                    code="MIXED_TIMESTAMP_ZONES",
                    severity="blocking",
                    field_path="predictions.created_date",
                    entity_id="*",
                    message="created_date mixes timezone-aware and naive values; revisions cannot be ordered",
                )
            )
        return issues
