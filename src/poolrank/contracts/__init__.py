from .types import (
    ActionRequest,
    ActionResult,
    ActionType,
    ClassifiedQuestion,
    ConfigurationError,
    ForensicArtifact,
    LeaderboardEvent,
    MatchOutcome,
    Participant,
    ParticipantId,
    ParticipantScore,
    PlacementReward,
    PointScale,
    Prediction,
    PresenceRule,
    Question,
    QuestionKind,
    RankingEntry,
    ResourceManifest,
    ScoredItem,
    ScoringRun,
    StrictAuditFinding,
    StrictAuditReport,
    StrictAuditSection,
    TieBreak,
    ValidationError,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "ActionRequest",
    "ActionResult",
    "ActionType",
    "ClassifiedQuestion",
    "ConfigurationError",
    "ForensicArtifact",
    "LeaderboardEvent",
    "MatchOutcome",
    "Participant",
    "ParticipantId",
    "ParticipantScore",
    "PlacementReward",
    "PointScale",
    "Prediction",
    "PresenceRule",
    "Question",
    "QuestionKind",
    "RankingEntry",
    "ResourceManifest",
    "ScoredItem",
    "ScoringRun",
    "StrictAuditFinding",
    "StrictAuditReport",
    "StrictAuditSection",
    "TieBreak",
    "ValidationError",
    "ValidationIssue",
    "ValidationResult",
]
