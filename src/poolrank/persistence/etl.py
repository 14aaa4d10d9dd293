from __future__ import annotations

import logging
from pathlib import Path

from poolrank.contracts import ScoredItem
from poolrank.persistence.duckdb_store import AnalyticsStore

logger = logging.getLogger(__name__)


def run_leaderboard_etl(
    sqlite_path: Path,
    duckdb_path: Path,
    game_id: str,
    score_items: list[ScoredItem] | None = None,
) -> None:
    store = AnalyticsStore(duckdb_path)
    store.refresh_leaderboard_from_sqlite(sqlite_path, game_id=game_id)
    if score_items is not None:
        store.load_score_items(game_id, score_items)
    logger.info("analytics refreshed for game %s", game_id)
