from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from poolrank.contracts import Participant, ParticipantId, Prediction
from poolrank.core import participant_id_for


class ParticipantRegistry:
    """Resolves display names to participant ids once, at the input boundary."""

    def __init__(self) -> None:
        self._by_id: dict[ParticipantId, Participant] = {}

    def resolve(self, display_name: str | None) -> ParticipantId | None:
        if display_name is None:
            return None
        name = display_name.strip()
        if not name:
            return None
        pid = participant_id_for(name)
        if pid not in self._by_id:
            self._by_id[pid] = Participant(participant_id=pid, display_name=name)
        return pid

    def get(self, participant_id: ParticipantId) -> Participant:
        return self._by_id[participant_id]

    def participants(self) -> dict[ParticipantId, Participant]:
        return dict(self._by_id)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


@dataclass(slots=True)
class PredictionLog:
    """Append-only prediction history for one game, keyed by participant id.

    Participants keep first-appearance order, which is the upstream order the
    ranker preserves for equal scores.
    """

    registry: ParticipantRegistry = field(default_factory=ParticipantRegistry)
    _rows: dict[ParticipantId, list[Prediction]] = field(default_factory=dict)
    ignored_rows: int = 0

    def append(self, prediction: Prediction) -> None:
        pid = self.registry.resolve(prediction.participant_name)
        if pid is None:
            self.ignored_rows += 1
            return
        self._rows.setdefault(pid, []).append(prediction)

    def extend(self, predictions: Iterable[Prediction]) -> None:
        for prediction in predictions:
            self.append(prediction)

    def participant_ids(self) -> list[ParticipantId]:
        return list(self._rows)

    def history(self, participant_id: ParticipantId) -> list[Prediction]:
        return list(self._rows.get(participant_id, []))


def resolve_effective(
    history: Iterable[Prediction],
    excluded_question_refs: frozenset[str] | set[str] = frozenset(),
) -> dict[str, str | None]:
    """Map question ref -> text of the latest submission.

    Equal timestamps keep the row seen first.
    """
    latest: dict[str, Prediction] = {}
    for row in history:
        if row.question_id in excluded_question_refs:
            continue
        current = latest.get(row.question_id)
        if current is None or row.created_date > current.created_date:
            latest[row.question_id] = row
    return {ref: row.text_prediction for ref, row in latest.items()}
