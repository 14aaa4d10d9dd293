from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, NewType, Sequence

ParticipantId = NewType("ParticipantId", str)


class QuestionKind(str, Enum):
    EXCLUDED = "excluded"
    SCORE = "score"
    TEXT = "text"
    PRESENCE = "presence"


class MatchOutcome(str, Enum):
    WIN_HOME = "win_home"
    DRAW = "draw"
    WIN_AWAY = "win_away"


class TieBreak(str, Enum):
    INPUT_ORDER = "input_order"
    NAME = "name"


class ActionType(str, Enum):
    VALIDATE_GAME = "validate_game"
    GET_LEADERBOARD = "get_leaderboard"
    RECOMPUTE_RANKING = "recompute_ranking"
    SET_BASELINE = "set_baseline"
    GET_PARTICIPANT_BREAKDOWN = "get_participant_breakdown"
    GET_TABLE_SUMMARY = "get_table_summary"
    EXPORT_LEADERBOARD = "export_leaderboard"
    RECORD_RESULT = "record_result"


@dataclass(slots=True)
class Question:
    id: str
    table_id: str
    question_id: str
    possible_points: int = 0
    actual_result: str | None = None
    home_team: str | None = None
    away_team: str | None = None
    question_text: str = ""
    validation_list: str | None = None
    stage_order: int = 0


@dataclass(slots=True)
class Prediction:
    participant_name: str | None
    question_id: str
    text_prediction: str | None
    created_date: datetime


@dataclass(slots=True)
class Participant:
    participant_id: ParticipantId
    display_name: str


@dataclass(slots=True)
class PointScale:
    scale_id: str
    exact: int
    difference: int
    outcome: int

    def validate(self) -> None:
        if not self.exact >= self.difference >= self.outcome >= 0:
            raise ValueError(f"point scale '{self.scale_id}' must be non-increasing and non-negative")


@dataclass(slots=True)
class PlacementReward:
    table_id: str
    expected_count: int
    teams_reward: int
    order_reward: int


@dataclass(slots=True)
class PresenceRule:
    table_id: str
    main_questions_only: bool = False


@dataclass(slots=True)
class ClassifiedQuestion:
    question: Question
    kind: QuestionKind
    home_side: str | None = None
    away_side: str | None = None
    scale: PointScale | None = None
    is_bonus: bool = False


@dataclass(slots=True)
class ScoredItem:
    participant_id: ParticipantId
    question_ref: str
    question_id: str
    table_id: str
    score: int
    max_score: int
    is_bonus: bool = False
    decided: bool = True


@dataclass(slots=True)
class ParticipantScore:
    participant_id: ParticipantId
    total: int
    breakdown: list[ScoredItem]


@dataclass(slots=True)
class ScoringRun:
    totals: dict[ParticipantId, int]
    breakdown: dict[ParticipantId, list[ScoredItem]]
    participants: dict[ParticipantId, Participant]


@dataclass(slots=True)
class RankingEntry:
    participant_id: ParticipantId
    participant_name: str
    current_score: int
    current_position: int
    baseline_score: int | None = None
    baseline_position: int | None = None
    score_change: int = 0
    position_change: int = 0
    previous_score: int | None = None
    previous_position: int | None = None
    last_baseline_set: datetime | None = None
    last_updated: datetime | None = None

    @property
    def has_baseline(self) -> bool:
        return self.baseline_score is not None and self.baseline_position is not None


@dataclass(slots=True)
class LeaderboardEvent:
    event_id: str
    time: datetime
    game_id: str
    scope: str
    event_type: str
    participant_count: int
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ActionRequest:
    request_id: str
    action_type: ActionType | str
    payload: dict[str, Any]
    actor: str = "admin"


@dataclass(slots=True)
class ActionResult:
    request_id: str
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ResourceManifest:
    resource_type: str
    schema_version: str
    resource_version: str
    generated_at: str
    checksum: str


@dataclass(slots=True)
class ValidationIssue:
    code: str
    severity: str
    field_path: str
    entity_id: str
    message: str


@dataclass(slots=True)
class ValidationResult:
    ok: bool
    issues: list[ValidationIssue]

    @property
    def blocking(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == "blocking"]


class ValidationError(ValueError):
    def __init__(self, issues: list[ValidationIssue]) -> None:
        message = "; ".join(f"{i.code}:{i.entity_id}:{i.message}" for i in issues)
        super().__init__(message)
        self.issues = issues


class ConfigurationError(ValidationError):
    """Raised when scoring rules are incomplete for the questions being scored."""


@dataclass(slots=True)
class StrictAuditFinding:
    finding_id: str
    scope: str
    severity: str
    summary: str
    location: str


@dataclass(slots=True)
class StrictAuditSection:
    section: str
    passed: bool
    findings: list[StrictAuditFinding]


@dataclass(slots=True)
class StrictAuditReport:
    report_id: str
    generated_at: datetime
    passed: bool
    sections: list[StrictAuditSection]


@dataclass(slots=True)
class ForensicArtifact:
    artifact_id: str
    timestamp: datetime
    engine_scope: str
    error_code: str
    message: str
    state_snapshot: Mapping[str, Any]
    context: Mapping[str, Any]
    identifiers: Mapping[str, str]
    causal_fragment: Sequence[str]
