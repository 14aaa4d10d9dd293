from __future__ import annotations

import sqlite3

MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS games (
            game_id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS questions (
            id TEXT PRIMARY KEY,
            game_id TEXT NOT NULL,
            table_id TEXT NOT NULL,
            question_id TEXT NOT NULL,
            stage_order INTEGER NOT NULL DEFAULT 0,
            home_team TEXT,
            away_team TEXT,
            question_text TEXT NOT NULL DEFAULT '',
            validation_list TEXT,
            possible_points INTEGER NOT NULL DEFAULT 0,
            actual_result TEXT,
            FOREIGN KEY (game_id) REFERENCES games(game_id)
        );

        CREATE INDEX IF NOT EXISTS idx_questions_game ON questions(game_id, stage_order, id);

        CREATE TABLE IF NOT EXISTS predictions (
            row_id INTEGER PRIMARY KEY AUTOINCREMENT,
            game_id TEXT NOT NULL,
            participant_name TEXT,
            question_id TEXT NOT NULL,
            text_prediction TEXT,
            created_date TEXT NOT NULL,
            FOREIGN KEY (game_id) REFERENCES games(game_id)
        );

        CREATE INDEX IF NOT EXISTS idx_predictions_game ON predictions(game_id, row_id);
        CREATE INDEX IF NOT EXISTS idx_predictions_participant ON predictions(game_id, participant_name);

        CREATE TABLE IF NOT EXISTS rankings (
            game_id TEXT NOT NULL,
            participant_id TEXT NOT NULL,
            participant_name TEXT NOT NULL,
            current_score INTEGER NOT NULL,
            current_position INTEGER NOT NULL,
            previous_score INTEGER,
            previous_position INTEGER,
            baseline_score INTEGER,
            baseline_position INTEGER,
            score_change INTEGER NOT NULL DEFAULT 0,
            position_change INTEGER NOT NULL DEFAULT 0,
            last_baseline_set TEXT,
            last_updated TEXT,
            PRIMARY KEY (game_id, participant_id),
            FOREIGN KEY (game_id) REFERENCES games(game_id)
        );

        CREATE TABLE IF NOT EXISTS ranking_events (
            event_id TEXT PRIMARY KEY,
            game_id TEXT NOT NULL,
            time TEXT NOT NULL,
            scope TEXT NOT NULL,
            event_type TEXT NOT NULL,
            participant_count INTEGER NOT NULL,
            details_json TEXT NOT NULL
        );
        """,
    ),
]


class MigrationRunner:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def apply(self) -> None:
        self.conn.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version INTEGER PRIMARY KEY, applied_at TEXT DEFAULT CURRENT_TIMESTAMP)")
        applied = {
            row[0]
            for row in self.conn.execute("SELECT version FROM schema_migrations").fetchall()
        }
        for version, sql in MIGRATIONS:
            if version in applied:
                continue
            self.conn.executescript(sql)
            self.conn.execute("INSERT INTO schema_migrations(version) VALUES (?)", (version,))
        self.conn.commit()

    def applied_versions(self) -> list[int]:
        return [row[0] for row in self.conn.execute("SELECT version FROM schema_migrations ORDER BY version").fetchall()]
