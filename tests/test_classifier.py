from __future__ import annotations

from poolrank.contracts import Question, QuestionKind
from poolrank.scoring import QuestionClassifier, question_sort_key, split_match_text, table_sort_key
from tests.helpers import make_rules, match, text_q


def test_excluded_table_wins_over_everything() -> None:
    cq = QuestionClassifier(make_rules()).classify(match("x", "T1", "1", "A", "B", actual="1-0"))
    assert cq.kind == QuestionKind.EXCLUDED


def test_match_question_from_team_fields() -> None:
    cq = QuestionClassifier(make_rules()).classify(match("m", "T2", "1", " Brazil ", "Chile"))
    assert cq.kind == QuestionKind.SCORE
    assert (cq.home_side, cq.away_side) == ("Brazil", "Chile")
    assert cq.scale.scale_id == "standard"


def test_match_question_falls_back_to_question_text() -> None:
    classifier = QuestionClassifier(make_rules())
    hebrew = classifier.classify(text_q("m", "T2", "1", 0, text="ברזיל נגד צ'ילה"))
    dashed = classifier.classify(text_q("m", "T2", "1", 0, text="Spain - Italy"))
    assert hebrew.kind == QuestionKind.SCORE
    assert (hebrew.home_side, hebrew.away_side) == ("ברזיל", "צ'ילה")
    assert (dashed.home_side, dashed.away_side) == ("Spain", "Italy")


def test_one_sided_teams_are_not_a_match() -> None:
    cq = QuestionClassifier(make_rules()).classify(Question(id="m", table_id="T2", question_id="1", home_team="Brazil", possible_points=5))
    assert cq.kind == QuestionKind.TEXT


def test_regional_table_uses_regional_scale() -> None:
    cq = QuestionClassifier(make_rules()).classify(match("r", "T20", "1", "A", "B"))
    assert cq.scale.scale_id == "regional"
    assert cq.scale.exact == 6


def test_presence_main_questions_only() -> None:
    classifier = QuestionClassifier(make_rules())
    main = classifier.classify(text_q("t", "T_THIRD_PLACE", "2", 4))
    sub = classifier.classify(text_q("t", "T_THIRD_PLACE", "2.1", 4))
    any_q = classifier.classify(text_q("t", "T11", "3.2", 4))
    assert main.kind == QuestionKind.PRESENCE
    assert sub.kind == QuestionKind.TEXT
    assert any_q.kind == QuestionKind.PRESENCE


def test_placement_questions_flagged_as_bonus() -> None:
    cq = QuestionClassifier(make_rules()).classify(text_q("p", "T14", "1", 0))
    assert cq.is_bonus


def test_split_match_text_rejects_partial_text() -> None:
    assert split_match_text("Brazil vs ") is None
    assert split_match_text("Who wins?") is None
    assert split_match_text(None) is None


def test_sort_keys_order_tables_and_questions_numerically() -> None:
    tables = ["T10", "T_TOP_FINISHERS", "T2", "T14"]
    assert sorted(tables, key=table_sort_key) == ["T2", "T10", "T14", "T_TOP_FINISHERS"]
    questions = ["10", "2", "2.1", "T14_TEAMS", "1"]
    assert sorted(questions, key=question_sort_key) == ["1", "2", "2.1", "10", "T14_TEAMS"]


def test_dashed_text_question_with_text_answer_stays_text() -> None:
    classifier = QuestionClassifier(make_rules())
    decided = classifier.classify(text_q("t", "T3", "1", 15, actual="Messi", text="Top scorer - Group A"))
    pending = classifier.classify(text_q("m", "T2", "1", 0, actual="__CLEAR__", text="Spain - Italy"))
    assert decided.kind == QuestionKind.TEXT
    assert pending.kind == QuestionKind.SCORE
