from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from pathlib import Path

import duckdb

from poolrank.contracts import ActionType, RankingEntry
from poolrank.persistence import AnalyticsStore, AuthoritativeStore, MigrationRunner, fetch_all_pages
from tests.helpers import GAME_ID, act, pred, sample_predictions, sample_questions, seeded_runtime


def _store(tmp_path: Path) -> AuthoritativeStore:
    store = AuthoritativeStore(tmp_path / "data" / "authoritative.sqlite3")
    store.initialize_schema()
    store.save_game(GAME_ID, "pool")
    return store


def test_migrations_are_idempotent(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.initialize_schema()
    with store.connect() as conn:
        assert MigrationRunner(conn).applied_versions() == [1]


def test_questions_and_predictions_round_trip_in_order(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.save_questions(GAME_ID, sample_questions())
    store.append_predictions(GAME_ID, sample_predictions())

    questions = store.list_questions(GAME_ID, limit=100, offset=0)
    predictions = store.list_predictions(GAME_ID, limit=100, offset=0)
    assert {q.id for q in questions} == {q.id for q in sample_questions()}
    assert predictions == sample_predictions()


def test_fetch_all_pages_collects_every_page(tmp_path: Path) -> None:
    store = _store(tmp_path)
    rows = [pred(f"P{i % 7}", f"q{i}", "1-0", minutes=i) for i in range(23)]
    store.append_predictions(GAME_ID, rows)
    calls: list[tuple[int, int]] = []

    def fetch(limit: int, offset: int):
        calls.append((limit, offset))
        return store.list_predictions(GAME_ID, limit, offset)

    assert fetch_all_pages(fetch, page_size=5) == rows
    assert calls == [(5, 0), (5, 5), (5, 10), (5, 15), (5, 20)]


def test_fetch_all_pages_exact_multiple_reads_one_empty_page() -> None:
    data = list(range(10))
    pages = []

    def fetch(limit: int, offset: int):
        pages.append(offset)
        return data[offset : offset + limit]

    assert fetch_all_pages(fetch, page_size=5) == data
    assert pages == [0, 5, 10]


def test_upsert_current_ranking_preserves_baseline(tmp_path: Path) -> None:
    store = _store(tmp_path)
    stamp = datetime(2024, 6, 2, tzinfo=UTC)
    store.upsert_current_ranking(GAME_ID, RankingEntry("p1", "Dana", 40, 3, last_updated=stamp))
    store.overwrite_baseline(
        GAME_ID,
        RankingEntry("p1", "Dana", 40, 3, baseline_score=40, baseline_position=3, last_baseline_set=stamp),
    )
    store.upsert_current_ranking(GAME_ID, RankingEntry("p1", "Dana", 55, 1, score_change=15, position_change=2))

    row = store.get_ranking(GAME_ID, "p1")
    assert (row.current_score, row.current_position) == (55, 1)
    assert (row.baseline_score, row.baseline_position, row.last_baseline_set) == (40, 3, stamp)
    assert (row.score_change, row.position_change) == (15, 2)
    with store.connect() as conn:
        assert conn.execute("SELECT COUNT(*) FROM rankings").fetchone()[0] == 1


def test_recompute_writes_one_row_per_participant_and_is_idempotent(tmp_path: Path) -> None:
    runtime = seeded_runtime(tmp_path)
    first = act(runtime, ActionType.RECOMPUTE_RANKING)
    second = act(runtime, ActionType.RECOMPUTE_RANKING)
    assert first.success and second.success
    assert (first.data["created"], first.data["updated"]) == (3, 0)
    assert (second.data["created"], second.data["updated"]) == (0, 3)

    with sqlite3.connect(runtime.paths.sqlite_path) as conn:
        rows = conn.execute("SELECT participant_name, current_score, current_position FROM rankings ORDER BY current_position").fetchall()
    assert rows == [("Avi", 30, 1), ("Dana", 17, 2), ("Noa", 0, 3)]


def test_analytics_marts_match_authoritative_rankings(tmp_path: Path) -> None:
    runtime = seeded_runtime(tmp_path)
    act(runtime, ActionType.RECOMPUTE_RANKING)

    analytics = AnalyticsStore(runtime.paths.duckdb_path)
    board = analytics.leaderboard(GAME_ID)
    assert [(r[2], r[3], r[4]) for r in board] == [("Avi", 30, 1), ("Dana", 17, 2), ("Noa", 0, 3)]

    with duckdb.connect(str(runtime.paths.duckdb_path)) as conn:
        items = conn.execute("SELECT COUNT(*), SUM(score) FROM mart_score_items WHERE game_id = ?", [GAME_ID]).fetchone()
    assert items == (12, 47)


def test_table_summary_reports_points_and_hit_rate(tmp_path: Path) -> None:
    runtime = seeded_runtime(tmp_path)
    result = act(runtime, ActionType.GET_TABLE_SUMMARY)
    assert result.success
    tables = {row["table_id"]: row for row in result.data["tables"]}
    assert list(tables) == ["T2", "T3"]
    assert tables["T2"]["decided_items"] == 6
    assert tables["T2"]["hits"] == 4
    assert tables["T2"]["points"] == 32
    assert tables["T2"]["max_points"] == 60
    assert tables["T2"]["hit_rate"] == 0.6667
    assert tables["T3"]["points"] == 15
    assert tables["T3"]["max_points"] == 45


def test_export_csv_parquet_row_count_parity(tmp_path: Path) -> None:
    runtime = seeded_runtime(tmp_path)
    act(runtime, ActionType.RECOMPUTE_RANKING)

    result = act(runtime, ActionType.EXPORT_LEADERBOARD)
    assert result.success
    outputs = [Path(p) for p in result.data["paths"]]
    csv_files = [p for p in outputs if p.suffix == ".csv"]
    parquet_files = [p for p in outputs if p.suffix == ".parquet"]
    assert len(csv_files) == 2 and len(parquet_files) == 2

    with duckdb.connect() as conn:
        for csv_path in csv_files:
            parquet_path = csv_path.with_suffix(".parquet")
            csv_count = conn.execute(f"SELECT COUNT(*) FROM read_csv_auto('{csv_path.as_posix()}')").fetchone()[0]
            parquet_count = conn.execute(f"SELECT COUNT(*) FROM parquet_scan('{parquet_path.as_posix()}')").fetchone()[0]
            assert csv_count == parquet_count
            assert csv_count > 0
