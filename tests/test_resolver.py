from __future__ import annotations

from poolrank.core import participant_id_for
from poolrank.scoring import ParticipantRegistry, PredictionLog, resolve_effective
from tests.helpers import pred


def test_latest_submission_wins_regardless_of_row_order() -> None:
    history = [pred("Dana", "q1", "2-1", minutes=10), pred("Dana", "q1", "0-0", minutes=0)]
    assert resolve_effective(history) == {"q1": "2-1"}


def test_equal_timestamps_keep_first_row() -> None:
    history = [pred("Dana", "q1", "2-1", minutes=3), pred("Dana", "q1", "1-1", minutes=3)]
    assert resolve_effective(history) == {"q1": "2-1"}


def test_excluded_questions_dropped_before_resolution() -> None:
    history = [pred("Dana", "name", "Dana"), pred("Dana", "q1", "1-0")]
    assert resolve_effective(history, {"name"}) == {"q1": "1-0"}


def test_participant_ids_are_stable_and_trimmed() -> None:
    registry = ParticipantRegistry()
    pid = registry.resolve("  Dana ")
    assert pid == participant_id_for("Dana")
    assert registry.resolve("Dana") == pid
    assert registry.get(pid).display_name == "Dana"
    assert len(registry) == 1


def test_blank_names_are_ignored() -> None:
    log = PredictionLog()
    log.extend([pred(None, "q1", "1-0"), pred("   ", "q1", "1-0"), pred("Avi", "q1", "2-0")])
    assert log.ignored_rows == 2
    assert log.participant_ids() == [participant_id_for("Avi")]


def test_participants_keep_first_appearance_order() -> None:
    log = PredictionLog()
    log.extend([pred("Noa", "q1", "1-0"), pred("Avi", "q1", "1-0"), pred("Noa", "q2", "1-0")])
    assert log.participant_ids() == [participant_id_for("Noa"), participant_id_for("Avi")]
    assert len(log.history(participant_id_for("Noa"))) == 2
