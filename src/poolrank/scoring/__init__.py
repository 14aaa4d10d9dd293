from .aggregator import Aggregator, TableIndex
from .baseline import BaselineDiffer
from .classifier import QuestionClassifier, question_sort_key, split_match_text, table_sort_key
from .config import ScoringRules, load_scoring_rules
from .engine import EngineRun, ScoringEngine
from .ranking import Ranker, competition_positions
from .resolver import ParticipantRegistry, PredictionLog, resolve_effective
from .rules import RuleBasedScorer, is_undecided, outcome, parse_score, score_match, score_text
from .validation import GameInputValidator

__all__ = [
    "Aggregator",
    "BaselineDiffer",
    "EngineRun",
    "GameInputValidator",
    "ParticipantRegistry",
    "PredictionLog",
    "QuestionClassifier",
    "Ranker",
    "RuleBasedScorer",
    "ScoringEngine",
    "ScoringRules",
    "TableIndex",
    "competition_positions",
    "is_undecided",
    "load_scoring_rules",
    "outcome",
    "parse_score",
    "question_sort_key",
    "resolve_effective",
    "score_match",
    "score_text",
    "split_match_text",
    "table_sort_key",
]
