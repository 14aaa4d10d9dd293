from __future__ import annotations

from collections import defaultdict

from poolrank.contracts import ClassifiedQuestion, ParticipantId, ParticipantScore, QuestionKind, ScoredItem
from poolrank.scoring.config import ScoringRules
from poolrank.scoring.rules import RuleBasedScorer, is_undecided, normalize_answer, score_placement_table


class Aggregator:
    """Scores every in-scope question for one participant and sums the items."""

    def __init__(self, rules: ScoringRules, scorer: RuleBasedScorer | None = None) -> None:
        self._rules = rules
        self._scorer = scorer if scorer is not None else RuleBasedScorer()

    def prepare(self, classified: list[ClassifiedQuestion]) -> TableIndex:
        return TableIndex(self._rules, classified)

    def aggregate(
        self,
        participant_id: ParticipantId,
        index: TableIndex,
        effective: dict[str, str | None],
    ) -> ParticipantScore:
        breakdown: list[ScoredItem] = []
        for cq in index.scored_questions:
            presence = index.presence_answers(cq.question.table_id) if cq.kind == QuestionKind.PRESENCE else frozenset()
            breakdown.append(self._scorer.score(participant_id, cq, effective.get(cq.question.id), presence))

        for table_id, questions in index.placement_tables.items():
            reward = self._rules.placement_reward(table_id)
            outcome = score_placement_table(questions, effective, reward)
            if outcome is None:
                continue
            if outcome.teams_awarded > 0:
                breakdown.append(_bonus_item(participant_id, table_id, "TEAMS", outcome.teams_awarded))
            if outcome.order_awarded > 0:
                breakdown.append(_bonus_item(participant_id, table_id, "ORDER", outcome.order_awarded))

        return ParticipantScore(
            participant_id=participant_id,
            total=sum(item.score for item in breakdown),
            breakdown=breakdown,
        )


class TableIndex:
    def __init__(self, rules: ScoringRules, classified: list[ClassifiedQuestion]) -> None:
        self.scored_questions = [cq for cq in classified if cq.kind != QuestionKind.EXCLUDED]
        self.placement_tables: dict[str, list[ClassifiedQuestion]] = defaultdict(list)
        answers: dict[str, set[str]] = defaultdict(set)
        for cq in self.scored_questions:
            table_id = cq.question.table_id
            if rules.is_placement(table_id):
                self.placement_tables[table_id].append(cq)
            if cq.kind == QuestionKind.PRESENCE and not is_undecided(cq.question.actual_result):
                answers[table_id].add(normalize_answer(cq.question.actual_result))
        self._presence_answers = {table_id: frozenset(values) for table_id, values in answers.items()}

    def presence_answers(self, table_id: str) -> frozenset[str]:
        return self._presence_answers.get(table_id, frozenset())


def _bonus_item(participant_id: ParticipantId, table_id: str, tier: str, amount: int) -> ScoredItem:
    return ScoredItem(
        participant_id=participant_id,
        question_ref=f"{table_id}_{tier}",
        question_id=f"{table_id}_{tier}",
        table_id=table_id,
        score=amount,
        max_score=amount,
        is_bonus=True,
    )
