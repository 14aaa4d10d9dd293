from .duckdb_store import AnalyticsStore
from .etl import run_leaderboard_etl
from .migrations import MigrationRunner
from .paging import DEFAULT_PAGE_SIZE, fetch_all_pages
from .sqlite_store import AuthoritativeStore
from .writeback import PacedRankingWriter, WriteBackReport

__all__ = [
    "AnalyticsStore",
    "AuthoritativeStore",
    "DEFAULT_PAGE_SIZE",
    "MigrationRunner",
    "PacedRankingWriter",
    "WriteBackReport",
    "fetch_all_pages",
    "run_leaderboard_etl",
]
