from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping

from poolrank.contracts import (
    ParticipantId,
    ParticipantScore,
    Prediction,
    Question,
    QuestionKind,
    RankingEntry,
    ScoringRun,
    TieBreak,
)
from poolrank.core import integrity_failure
from poolrank.scoring.aggregator import Aggregator
from poolrank.scoring.baseline import BaselineDiffer
from poolrank.scoring.classifier import QuestionClassifier
from poolrank.scoring.config import ScoringRules, load_scoring_rules
from poolrank.scoring.ranking import Ranker
from poolrank.scoring.resolver import PredictionLog, resolve_effective

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EngineRun:
    scoring: ScoringRun
    ranking: list[RankingEntry]

    def participant_score(self, participant_id: ParticipantId) -> ParticipantScore:
        return ParticipantScore(
            participant_id=participant_id,
            total=self.scoring.totals[participant_id],
            breakdown=list(self.scoring.breakdown[participant_id]),
        )


class ScoringEngine:
    """Pure scoring pipeline: resolve, classify, score, aggregate, rank, diff.

    Holds no state between calls beyond its configuration.
    """

    def __init__(
        self,
        rules: ScoringRules | None = None,
        tie_break: TieBreak = TieBreak.INPUT_ORDER,
    ) -> None:
        self.rules = rules if rules is not None else load_scoring_rules()
        self.rules.validate()
        self.classifier = QuestionClassifier(self.rules)
        self.aggregator = Aggregator(self.rules)
        self.ranker = Ranker(tie_break)
        self.differ = BaselineDiffer()

    def score(self, questions: list[Question], predictions: Iterable[Prediction]) -> ScoringRun:
        classified = self.classifier.classify_all(questions)
        excluded = {cq.question.id for cq in classified if cq.kind == QuestionKind.EXCLUDED}
        in_scope = {cq.question.id for cq in classified if cq.kind != QuestionKind.EXCLUDED}
        index = self.aggregator.prepare(classified)

        log = PredictionLog()
        log.extend(predictions)

        totals: dict[ParticipantId, int] = {}
        breakdown: dict[ParticipantId, list] = {}
        for pid in log.participant_ids():
            effective = resolve_effective(log.history(pid), excluded)
            if not any(ref in in_scope for ref in effective):
                continue
            result = self.aggregator.aggregate(pid, index, effective)
            totals[pid] = result.total
            breakdown[pid] = result.breakdown

        logger.debug(
            "scored %d participants over %d questions (%d excluded, %d anonymous rows ignored)",
            len(totals),
            len(in_scope),
            len(excluded),
            log.ignored_rows,
        )
        participants = {pid: log.registry.get(pid) for pid in totals}
        return ScoringRun(totals=totals, breakdown=breakdown, participants=participants)

    def rank(
        self,
        totals: Mapping[ParticipantId, int],
        names: Mapping[ParticipantId, str] | None = None,
    ) -> list[RankingEntry]:
        return self.ranker.rank(totals, names)

    def diff(self, current: list[RankingEntry], baseline: Iterable[RankingEntry]) -> list[RankingEntry]:
        return self.differ.diff(current, baseline)

    def capture_baseline(self, entries: Iterable[RankingEntry], at: datetime) -> list[RankingEntry]:
        return self.differ.capture(entries, at)

    def run(
        self,
        questions: list[Question],
        predictions: Iterable[Prediction],
        stored: Iterable[RankingEntry] = (),
        *,
        game_id: str = "",
    ) -> EngineRun:
        scoring = self.score(questions, predictions)
        names = {pid: p.display_name for pid, p in scoring.participants.items()}
        ranking = self.diff(self.rank(scoring.totals, names), stored)
        self._check_integrity(scoring, ranking, game_id)
        return EngineRun(scoring=scoring, ranking=ranking)

    def _check_integrity(self, scoring: ScoringRun, ranking: list[RankingEntry], game_id: str) -> None:
        for pid, total in scoring.totals.items():
            summed = sum(item.score for item in scoring.breakdown[pid])
            if summed != total:
                raise integrity_failure(
                    "TOTAL_BREAKDOWN_MISMATCH",
                    f"total {total} != breakdown sum {summed} for {pid}",
                    game_id=game_id,
                    state_snapshot={"participant_id": pid, "total": total, "summed": summed},
                    causal_fragment=["aggregate"],
                )
        ranked = [entry.participant_id for entry in ranking]
        if len(ranked) != len(set(ranked)) or set(ranked) != set(scoring.totals):
            raise integrity_failure(
                "RANKING_MEMBERSHIP_MISMATCH",
                "ranking does not list every scored participant exactly once",
                game_id=game_id,
                state_snapshot={"ranked": len(ranked), "scored": len(scoring.totals)},
                causal_fragment=["rank"],
            )
