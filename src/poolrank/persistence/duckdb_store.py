from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Iterable

import duckdb

from poolrank.contracts import ScoredItem
from poolrank.scoring.classifier import table_sort_key


class AnalyticsStore:
    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> Any:
        return duckdb.connect(str(self.db_path))

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS mart_leaderboard (
                    game_id VARCHAR,
                    participant_id VARCHAR,
                    participant_name VARCHAR,
                    current_score INTEGER,
                    current_position INTEGER,
                    previous_score INTEGER,
                    previous_position INTEGER,
                    baseline_score INTEGER,
                    baseline_position INTEGER,
                    score_change INTEGER,
                    position_change INTEGER,
                    PRIMARY KEY(game_id, participant_id)
                );

                CREATE TABLE IF NOT EXISTS mart_score_items (
                    game_id VARCHAR,
                    participant_id VARCHAR,
                    question_ref VARCHAR,
                    question_id VARCHAR,
                    table_id VARCHAR,
                    score INTEGER,
                    max_score INTEGER,
                    is_bonus BOOLEAN,
                    decided BOOLEAN,
                    PRIMARY KEY(game_id, participant_id, question_ref)
                );
                """
            )

    def refresh_leaderboard_from_sqlite(self, sqlite_path: Path, game_id: str) -> int:
        self.initialize_schema()
        with sqlite3.connect(sqlite_path) as sconn, self.connect() as dconn:
            rows = sconn.execute(
                """
                SELECT game_id, participant_id, participant_name, current_score, current_position,
                       previous_score, previous_position, baseline_score, baseline_position,
                       score_change, position_change
                FROM rankings
                WHERE game_id = ?
                """,
                (game_id,),
            ).fetchall()
            self._replace_game_rows(dconn, "mart_leaderboard", game_id, rows)
        return len(rows)

    def load_score_items(self, game_id: str, items: Iterable[ScoredItem]) -> int:
        self.initialize_schema()
        rows = [
            (
                game_id,
                item.participant_id,
                item.question_ref,
                item.question_id,
                item.table_id,
                item.score,
                item.max_score,
                item.is_bonus,
                item.decided,
            )
            for item in items
        ]
        with self.connect() as conn:
            self._replace_game_rows(conn, "mart_score_items", game_id, rows)
        return len(rows)

    def table_summary(self, game_id: str) -> list[dict[str, Any]]:
        """Per-table rollup of decided items, points earned and hit rate."""
        self.initialize_schema()
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT table_id,
                       COUNT(DISTINCT participant_id) AS participants,
                       SUM(CASE WHEN decided AND NOT is_bonus THEN 1 ELSE 0 END) AS decided_items,
                       SUM(CASE WHEN decided AND NOT is_bonus AND score > 0 THEN 1 ELSE 0 END) AS hits,
                       SUM(score) AS points,
                       SUM(CASE WHEN decided THEN max_score ELSE 0 END) AS max_points
                FROM mart_score_items
                WHERE game_id = ?
                GROUP BY table_id
                """,
                [game_id],
            ).fetchall()
        summary = []
        for table_id, participants, decided_items, hits, points, max_points in rows:
            decided_items = int(decided_items or 0)
            hits = int(hits or 0)
            summary.append(
                {
                    "table_id": table_id,
                    "participants": int(participants),
                    "decided_items": decided_items,
                    "hits": hits,
                    "points": int(points or 0),
                    "max_points": int(max_points or 0),
                    "hit_rate": round(hits / decided_items, 4) if decided_items else 0.0,
                }
            )
        summary.sort(key=lambda row: table_sort_key(row["table_id"]))
        return summary

    def leaderboard(self, game_id: str) -> list[tuple]:
        self.initialize_schema()
        with self.connect() as conn:
            return conn.execute(
                "SELECT * FROM mart_leaderboard WHERE game_id = ? ORDER BY current_position, participant_name",
                [game_id],
            ).fetchall()

    def _replace_game_rows(self, conn: Any, table: str, game_id: str, rows: list[tuple]) -> None:
        conn.execute(f"DELETE FROM {table} WHERE game_id = ?", [game_id])
        if not rows:
            return
        values_placeholder = ",".join(["?"] * len(rows[0]))
        conn.executemany(f"INSERT INTO {table} VALUES ({values_placeholder})", rows)
