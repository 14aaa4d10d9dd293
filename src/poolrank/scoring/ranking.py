from __future__ import annotations

from typing import Mapping

from poolrank.contracts import ParticipantId, RankingEntry, TieBreak


def competition_positions(scores: list[int]) -> list[int]:
    """Positions for scores already sorted descending: ties share, then skip."""
    positions: list[int] = []
    for idx, score in enumerate(scores):
        if idx > 0 and score == scores[idx - 1]:
            positions.append(positions[-1])
        else:
            positions.append(idx + 1)
    return positions


class Ranker:
    def __init__(self, tie_break: TieBreak = TieBreak.INPUT_ORDER) -> None:
        self.tie_break = tie_break

    def rank(
        self,
        totals: Mapping[ParticipantId, int],
        names: Mapping[ParticipantId, str] | None = None,
    ) -> list[RankingEntry]:
        names = names or {}
        ordered = list(totals.items())
        if self.tie_break == TieBreak.NAME:
            ordered.sort(key=lambda item: names.get(item[0], item[0]).casefold())
        # sorted() is stable, so equal scores keep the order established above.
        ordered = sorted(ordered, key=lambda item: item[1], reverse=True)
        positions = competition_positions([score for _, score in ordered])
        return [
            RankingEntry(
                participant_id=pid,
                participant_name=names.get(pid, pid),
                current_score=score,
                current_position=position,
            )
            for (pid, score), position in zip(ordered, positions)
        ]
