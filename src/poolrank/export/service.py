from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import duckdb

logger = logging.getLogger(__name__)


class ExportService:
    def __init__(self, analytics_db: Path) -> None:
        self.analytics_db = analytics_db

    def export_leaderboard(self, game_id: str, output_dir: Path) -> list[Path]:
        output_dir.mkdir(parents=True, exist_ok=True)
        game = _sql_literal(game_id)
        outputs: list[Path] = []
        with duckdb.connect(str(self.analytics_db)) as conn:
            outputs.extend(
                self._export_query(
                    conn,
                    f"SELECT * FROM mart_leaderboard WHERE game_id = {game} ORDER BY current_position, participant_name",
                    output_dir / f"{game_id}_leaderboard",
                )
            )
            outputs.extend(
                self._export_query(
                    conn,
                    f"SELECT * FROM mart_score_items WHERE game_id = {game} ORDER BY participant_id, table_id, question_ref",
                    output_dir / f"{game_id}_score_items",
                )
            )
        logger.info("exported %d files for game %s to %s", len(outputs), game_id, output_dir)
        return outputs

    def _export_query(self, conn: Any, query: str, stem: Path) -> list[Path]:
        csv_path = stem.with_suffix(".csv")
        parquet_path = stem.with_suffix(".parquet")
        conn.execute(f"COPY ({query}) TO {_sql_literal(csv_path.as_posix())} (HEADER, DELIMITER ',')")
        conn.execute(f"COPY ({query}) TO {_sql_literal(parquet_path.as_posix())} (FORMAT PARQUET)")
        return [csv_path, parquet_path]


def _sql_literal(value: str) -> str:
    # COPY takes no bound parameters.
    return "'" + value.replace("'", "''") + "'"
