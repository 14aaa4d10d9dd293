from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable

from poolrank.contracts import ParticipantId, RankingEntry


def index_by_participant(entries: Iterable[RankingEntry]) -> dict[ParticipantId, RankingEntry]:
    return {entry.participant_id: entry for entry in entries}


class BaselineDiffer:
    def diff(self, current: list[RankingEntry], stored: Iterable[RankingEntry]) -> list[RankingEntry]:
        """Attach baseline fields and deltas from the stored rows to the current ranking.

        A stored row without a captured baseline yields zero deltas. The stored
        row's current values become the entry's previous values.
        """
        by_id = index_by_participant(stored)
        out: list[RankingEntry] = []
        for entry in current:
            prior = by_id.get(entry.participant_id)
            if prior is None:
                out.append(replace(entry, score_change=0, position_change=0))
                continue
            merged = replace(
                entry,
                baseline_score=prior.baseline_score,
                baseline_position=prior.baseline_position,
                last_baseline_set=prior.last_baseline_set,
                previous_score=prior.current_score,
                previous_position=prior.current_position,
            )
            if merged.has_baseline:
                merged.score_change = merged.current_score - int(merged.baseline_score)
                merged.position_change = int(merged.baseline_position) - merged.current_position
            else:
                merged.score_change = 0
                merged.position_change = 0
            out.append(merged)
        return out

    def capture(self, entries: Iterable[RankingEntry], at: datetime) -> list[RankingEntry]:
        return [
            replace(
                entry,
                baseline_score=entry.current_score,
                baseline_position=entry.current_position,
                last_baseline_set=at,
                score_change=0,
                position_change=0,
            )
            for entry in entries
        ]
