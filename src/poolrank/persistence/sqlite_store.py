from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Iterable

from poolrank.contracts import LeaderboardEvent, ParticipantId, Prediction, Question, RankingEntry
from poolrank.persistence.migrations import MigrationRunner

_RANKING_COLUMNS = (
    "participant_id, participant_name, current_score, current_position, previous_score, previous_position, "
    "baseline_score, baseline_position, score_change, position_change, last_baseline_set, last_updated"
)


class AuthoritativeStore:
    """SQLite store for games, questions, the prediction log and rankings."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize_schema(self) -> None:
        with self.connect() as conn:
            MigrationRunner(conn).apply()

    def save_game(self, game_id: str, name: str) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO games(game_id, name) VALUES (?, ?) ON CONFLICT(game_id) DO UPDATE SET name = excluded.name",
                (game_id, name),
            )

    def save_questions(self, game_id: str, questions: Iterable[Question]) -> None:
        with self.connect() as conn:
            conn.executemany(
                """
                INSERT OR REPLACE INTO questions(
                    id, game_id, table_id, question_id, stage_order, home_team, away_team,
                    question_text, validation_list, possible_points, actual_result
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        q.id,
                        game_id,
                        q.table_id,
                        q.question_id,
                        q.stage_order,
                        q.home_team,
                        q.away_team,
                        q.question_text,
                        q.validation_list,
                        q.possible_points,
                        q.actual_result,
                    )
                    for q in questions
                ],
            )

    def set_actual_result(self, question_ref: str, actual_result: str | None) -> bool:
        with self.connect() as conn:
            cur = conn.execute("UPDATE questions SET actual_result = ? WHERE id = ?", (actual_result, question_ref))
        return cur.rowcount > 0

    def append_predictions(self, game_id: str, predictions: Iterable[Prediction]) -> None:
        with self.connect() as conn:
            conn.executemany(
                """
                INSERT INTO predictions(game_id, participant_name, question_id, text_prediction, created_date)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (game_id, p.participant_name, p.question_id, p.text_prediction, p.created_date.isoformat())
                    for p in predictions
                ],
            )

    def list_questions(self, game_id: str, limit: int, offset: int) -> list[Question]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT id, table_id, question_id, possible_points, actual_result, home_team, away_team,
                       question_text, validation_list, stage_order
                FROM questions WHERE game_id = ?
                ORDER BY stage_order, id
                LIMIT ? OFFSET ?
                """,
                (game_id, limit, offset),
            ).fetchall()
        return [
            Question(
                id=r[0],
                table_id=r[1],
                question_id=r[2],
                possible_points=int(r[3]),
                actual_result=r[4],
                home_team=r[5],
                away_team=r[6],
                question_text=r[7],
                validation_list=r[8],
                stage_order=int(r[9]),
            )
            for r in rows
        ]

    def list_predictions(
        self,
        game_id: str,
        limit: int,
        offset: int,
    ) -> list[Prediction]:
        with self.connect() as conn:
            rows = conn.execute(
                """
                SELECT participant_name, question_id, text_prediction, created_date
                FROM predictions
                WHERE game_id = ?
                ORDER BY row_id
                LIMIT ? OFFSET ?
                """,
                (game_id, limit, offset),
            ).fetchall()
        return [
            Prediction(
                participant_name=r[0],
                question_id=r[1],
                text_prediction=r[2],
                created_date=datetime.fromisoformat(r[3]),
            )
            for r in rows
        ]

    def get_ranking(self, game_id: str, participant_id: ParticipantId) -> RankingEntry | None:
        with self.connect() as conn:
            row = conn.execute(
                f"SELECT {_RANKING_COLUMNS} FROM rankings WHERE game_id = ? AND participant_id = ?",
                (game_id, participant_id),
            ).fetchone()
        return _ranking_from_row(row) if row else None

    def list_rankings(self, game_id: str) -> list[RankingEntry]:
        with self.connect() as conn:
            rows = conn.execute(
                f"SELECT {_RANKING_COLUMNS} FROM rankings WHERE game_id = ? ORDER BY current_position, participant_name",
                (game_id,),
            ).fetchall()
        return [_ranking_from_row(r) for r in rows]

    def upsert_current_ranking(self, game_id: str, entry: RankingEntry) -> None:
        # Baseline columns are owned by overwrite_baseline and never touched here.
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO rankings(
                    game_id, participant_id, participant_name, current_score, current_position,
                    previous_score, previous_position, score_change, position_change, last_updated
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(game_id, participant_id) DO UPDATE SET
                    participant_name = excluded.participant_name,
                    current_score = excluded.current_score,
                    current_position = excluded.current_position,
                    previous_score = excluded.previous_score,
                    previous_position = excluded.previous_position,
                    score_change = excluded.score_change,
                    position_change = excluded.position_change,
                    last_updated = excluded.last_updated
                """,
                (
                    game_id,
                    entry.participant_id,
                    entry.participant_name,
                    entry.current_score,
                    entry.current_position,
                    entry.previous_score,
                    entry.previous_position,
                    entry.score_change,
                    entry.position_change,
                    _iso(entry.last_updated),
                ),
            )

    def overwrite_baseline(self, game_id: str, entry: RankingEntry) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                UPDATE rankings
                SET baseline_score = ?, baseline_position = ?, last_baseline_set = ?,
                    score_change = current_score - ?, position_change = ? - current_position
                WHERE game_id = ? AND participant_id = ?
                """,
                (
                    entry.baseline_score,
                    entry.baseline_position,
                    _iso(entry.last_baseline_set),
                    entry.baseline_score,
                    entry.baseline_position,
                    game_id,
                    entry.participant_id,
                ),
            )

    def save_event(self, event: LeaderboardEvent) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO ranking_events(event_id, game_id, time, scope, event_type, participant_count, details_json)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.event_id,
                    event.game_id,
                    event.time.isoformat(),
                    event.scope,
                    event.event_type,
                    event.participant_count,
                    json.dumps(event.details, default=str),
                ),
            )

    def count_events(self, game_id: str, scope: str | None = None) -> int:
        query = "SELECT COUNT(*) FROM ranking_events WHERE game_id = ?"
        params: tuple = (game_id,)
        if scope is not None:
            query += " AND scope = ?"
            params = (game_id, scope)
        with self.connect() as conn:
            return int(conn.execute(query, params).fetchone()[0])


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _ranking_from_row(r: tuple) -> RankingEntry:
    return RankingEntry(
        participant_id=ParticipantId(r[0]),
        participant_name=r[1],
        current_score=int(r[2]),
        current_position=int(r[3]),
        previous_score=r[4],
        previous_position=r[5],
        baseline_score=r[6],
        baseline_position=r[7],
        score_change=int(r[8]),
        position_change=int(r[9]),
        last_baseline_set=_parse(r[10]),
        last_updated=_parse(r[11]),
    )
