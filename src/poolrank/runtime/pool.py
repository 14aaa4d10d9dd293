from __future__ import annotations

import logging
import time
from dataclasses import asdict, replace
from pathlib import Path
from typing import Any, Callable

from poolrank.contracts import (
    ActionRequest,
    ActionResult,
    ActionType,
    LeaderboardEvent,
    Prediction,
    Question,
    RankingEntry,
    TieBreak,
    ValidationError,
)
from poolrank.core import (
    EngineIntegrityError,
    EventBus,
    WriteBackError,
    build_forensic_artifact,
    make_id,
    now_utc,
    participant_id_for,
    persist_forensic_artifact,
)
from poolrank.export import ExportService
from poolrank.persistence import (
    DEFAULT_PAGE_SIZE,
    AnalyticsStore,
    AuthoritativeStore,
    PacedRankingWriter,
    fetch_all_pages,
    run_leaderboard_etl,
)
from poolrank.scoring import GameInputValidator, ScoringEngine, ScoringRules, question_sort_key, table_sort_key

logger = logging.getLogger(__name__)


class RuntimePaths:
    def __init__(self, root: Path) -> None:
        self.root = root

    @property
    def sqlite_path(self) -> Path:
        return self.root / "data" / "authoritative.sqlite3"

    @property
    def duckdb_path(self) -> Path:
        return self.root / "data" / "analytics.duckdb"

    @property
    def export_dir(self) -> Path:
        return self.root / "exports"

    @property
    def forensic_dir(self) -> Path:
        return self.root / "forensics"


class PoolRuntime:
    """Admin-facing dispatcher for one game's leaderboard.

    Every action reloads the full question set and prediction log from the
    authoritative store, so results never depend on state held between calls.
    """

    def __init__(
        self,
        root: Path,
        game_id: str,
        rules: ScoringRules | None = None,
        tie_break: TieBreak = TieBreak.INPUT_ORDER,
        page_size: int = DEFAULT_PAGE_SIZE,
        write_batch: int = 2,
        write_delay: float = 1.0,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.paths = RuntimePaths(root)
        self.paths.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self.game_id = game_id
        self.page_size = page_size

        self.engine = ScoringEngine(rules, tie_break)
        self.validator = GameInputValidator(self.engine.rules)
        self.store = AuthoritativeStore(self.paths.sqlite_path)
        self.store.initialize_schema()
        self.analytics = AnalyticsStore(self.paths.duckdb_path)
        self.writer = PacedRankingWriter(
            self.store,
            batch_size=write_batch,
            delay_seconds=write_delay,
            max_retries=max_retries,
            retry_delay=retry_delay,
            sleep=sleep,
        )
        self.event_bus = EventBus()
        self.event_bus.subscribe(self.store.save_event)

        self.halted = False
        self.last_forensic_path: str | None = None

    def handle_action(self, request: ActionRequest) -> ActionResult:
        if self.halted:
            return ActionResult(
                request.request_id,
                False,
                f"runtime halted after integrity failure; forensic={self.last_forensic_path}",
                {"forensic_path": self.last_forensic_path},
            )

        try:
            return self._handle_action_core(request)
        except ValidationError as exc:
            logger.warning("game %s: %s rejected: %s", self.game_id, request.action_type, exc)
            return ActionResult(
                request.request_id,
                False,
                "game input rejected by validation gate",
                {"issues": [asdict(i) for i in exc.issues]},
            )
        except WriteBackError as exc:
            return ActionResult(
                request.request_id,
                False,
                f"write-back failed: {exc}",
                {"participant_id": exc.participant_id, "attempts": exc.attempts},
            )
        except EngineIntegrityError as exc:
            self.last_forensic_path = str(persist_forensic_artifact(exc.artifact, self.paths.forensic_dir))
            self.halted = True
            logger.error("game %s: integrity failure %s; runtime halted", self.game_id, exc.artifact.error_code)
            return ActionResult(
                request.request_id,
                False,
                f"integrity failure: {exc.artifact.error_code}",
                {"forensic_path": self.last_forensic_path},
            )
        except Exception as exc:
            artifact = build_forensic_artifact(
                engine_scope="runtime",
                error_code="UNHANDLED_RUNTIME_EXCEPTION",
                message=str(exc),
                state_snapshot={"game_id": self.game_id},
                context={"action_type": str(request.action_type), "payload": request.payload},
                identifiers={"request_id": request.request_id, "actor": request.actor},
                causal_fragment=["runtime_dispatch"],
            )
            self.last_forensic_path = str(persist_forensic_artifact(artifact, self.paths.forensic_dir))
            self.halted = True
            logger.exception("game %s: unhandled runtime exception", self.game_id)
            return ActionResult(
                request.request_id,
                False,
                f"runtime hard-stopped: {exc}",
                {"forensic_path": self.last_forensic_path},
            )

    def _handle_action_core(self, request: ActionRequest) -> ActionResult:
        try:
            action = self._normalize_action(request.action_type)
        except ValueError:
            return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")
        logger.debug("game %s: handling %s from %s", self.game_id, action.value, request.actor)

        if action == ActionType.VALIDATE_GAME:
            questions, predictions = self._load_inputs()
            result = self.validator.validate(questions, predictions)
            return ActionResult(
                request.request_id,
                True,
                f"game input valid ({len(result.issues)} warnings)",
                data={"issues": [asdict(i) for i in result.issues]},
            )

        if action == ActionType.GET_LEADERBOARD:
            ranking, _, warnings = self._compute()
            return ActionResult(
                request.request_id,
                True,
                "leaderboard",
                data={"leaderboard": [_entry_row(e) for e in ranking], "warnings": warnings},
            )

        if action == ActionType.RECOMPUTE_RANKING:
            ranking, items, warnings = self._compute()
            at = now_utc()
            stamped = [replace(entry, last_updated=at) for entry in ranking]
            report = self.writer.write_current(self.game_id, stamped)
            run_leaderboard_etl(self.paths.sqlite_path, self.paths.duckdb_path, self.game_id, items)
            self._publish("recompute", "RANKING_RECOMPUTED", len(stamped), {"created": report.created, "updated": report.updated})
            return ActionResult(
                request.request_id,
                True,
                f"ranking recomputed for {len(stamped)} participants",
                data={
                    "created": report.created,
                    "updated": report.updated,
                    "leaderboard": [_entry_row(e) for e in stamped],
                    "warnings": warnings,
                },
            )

        if action == ActionType.SET_BASELINE:
            stored = self.store.list_rankings(self.game_id)
            if not stored:
                return ActionResult(request.request_id, False, "no current ranking to baseline; recompute first")
            captured = self.engine.capture_baseline(stored, now_utc())
            report = self.writer.write_baseline(self.game_id, captured)
            run_leaderboard_etl(self.paths.sqlite_path, self.paths.duckdb_path, self.game_id)
            self._publish("baseline", "BASELINE_SET", report.updated, {})
            return ActionResult(
                request.request_id,
                True,
                f"baseline set for {report.updated} participants",
                data={"baseline": [_entry_row(e) for e in captured]},
            )

        if action == ActionType.GET_PARTICIPANT_BREAKDOWN:
            name = str(request.payload.get("participant_name") or "").strip()
            if not name:
                return ActionResult(request.request_id, False, "participant_name required")
            return self._participant_breakdown(request, name)

        if action == ActionType.GET_TABLE_SUMMARY:
            _, items, _ = self._compute()
            self.analytics.load_score_items(self.game_id, items)
            return ActionResult(
                request.request_id,
                True,
                "table summary",
                data={"tables": self.analytics.table_summary(self.game_id)},
            )

        if action == ActionType.EXPORT_LEADERBOARD:
            paths = self.export()
            return ActionResult(request.request_id, True, f"exported {len(paths)} files", data={"paths": [str(p) for p in paths]})

        if action == ActionType.RECORD_RESULT:
            question_ref = request.payload.get("question_ref")
            if not question_ref:
                return ActionResult(request.request_id, False, "question_ref required")
            actual_result = request.payload.get("actual_result")
            updated = self.store.set_actual_result(str(question_ref), None if actual_result is None else str(actual_result))
            if not updated:
                return ActionResult(request.request_id, False, f"unknown question '{question_ref}'")
            return ActionResult(
                request.request_id,
                True,
                f"result recorded for {question_ref}",
                data={"question_ref": question_ref, "actual_result": actual_result},
            )

        return ActionResult(request.request_id, False, f"Unsupported action '{request.action_type}'")

    def export(self) -> list[Path]:
        _, items, _ = self._compute()
        run_leaderboard_etl(self.paths.sqlite_path, self.paths.duckdb_path, self.game_id, items)
        service = ExportService(self.paths.duckdb_path)
        return service.export_leaderboard(self.game_id, self.paths.export_dir)

    def _participant_breakdown(self, request: ActionRequest, name: str) -> ActionResult:
        questions = self._load_questions()
        pid = participant_id_for(name)
        # Same grouping as the leaderboard: by resolved id, not the raw stored name.
        predictions = [
            p for p in self._load_predictions() if p.participant_name and participant_id_for(p.participant_name) == pid
        ]
        self.validator.validate(questions, predictions)
        scoring = self.engine.score(questions, predictions)
        if pid not in scoring.totals:
            return ActionResult(request.request_id, False, f"no scored predictions for '{name}'")
        items = sorted(
            (item for item in scoring.breakdown[pid] if item.score > 0),
            key=lambda item: (table_sort_key(item.table_id), question_sort_key(item.question_id)),
        )
        return ActionResult(
            request.request_id,
            True,
            f"breakdown for {name}",
            data={
                "participant_id": pid,
                "participant_name": name,
                "total": scoring.totals[pid],
                "items": [asdict(item) for item in items],
            },
        )

    def _compute(self) -> tuple[list[RankingEntry], list, list[dict[str, Any]]]:
        questions, predictions = self._load_inputs()
        validation = self.validator.validate(questions, predictions)
        for issue in validation.issues:
            logger.warning("game %s: %s %s: %s", self.game_id, issue.code, issue.entity_id, issue.message)
        stored = self.store.list_rankings(self.game_id)
        run = self.engine.run(questions, predictions, stored, game_id=self.game_id)
        items = [item for pid in run.scoring.totals for item in run.scoring.breakdown[pid]]
        return run.ranking, items, [asdict(i) for i in validation.issues]

    def _load_inputs(self) -> tuple[list[Question], list[Prediction]]:
        return self._load_questions(), self._load_predictions()

    def _load_questions(self) -> list[Question]:
        return fetch_all_pages(
            lambda limit, offset: self.store.list_questions(self.game_id, limit, offset),
            self.page_size,
        )

    def _load_predictions(self) -> list[Prediction]:
        return fetch_all_pages(
            lambda limit, offset: self.store.list_predictions(self.game_id, limit, offset),
            self.page_size,
        )

    def _publish(self, scope: str, event_type: str, participant_count: int, details: dict[str, Any]) -> None:
        self.event_bus.publish(
            LeaderboardEvent(
                event_id=make_id("evt"),
                time=now_utc(),
                game_id=self.game_id,
                scope=scope,
                event_type=event_type,
                participant_count=participant_count,
                details=details,
            )
        )

    def _normalize_action(self, action: ActionType | str) -> ActionType:
        if isinstance(action, ActionType):
            return action
        return ActionType(action)


def _entry_row(entry: RankingEntry) -> dict[str, Any]:
    row = asdict(entry)
    for key in ("last_baseline_set", "last_updated"):
        if row[key] is not None:
            row[key] = row[key].isoformat()
    return row
