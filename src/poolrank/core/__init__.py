from .errors import (
    EngineIntegrityError,
    WriteBackError,
    build_forensic_artifact,
    integrity_failure,
    persist_forensic_artifact,
)
from .events import EventBus
from .ids import make_id, now_utc, participant_id_for

__all__ = [
    "EngineIntegrityError",
    "EventBus",
    "WriteBackError",
    "build_forensic_artifact",
    "integrity_failure",
    "make_id",
    "now_utc",
    "participant_id_for",
    "persist_forensic_artifact",
]
