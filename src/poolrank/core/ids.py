from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from uuid import uuid4

from poolrank.contracts import ParticipantId


def now_utc() -> datetime:
    return datetime.now(UTC)


def make_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def participant_id_for(display_name: str) -> ParticipantId:
    # Stable across runs and stores: derived from the trimmed display name only.
    digest = hashlib.sha256(display_name.strip().encode("utf-8")).hexdigest()
    return ParticipantId(f"P_{digest[:12]}")
