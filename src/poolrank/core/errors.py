from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, UTC
from pathlib import Path
from uuid import uuid4

from poolrank.contracts import ForensicArtifact


class EngineIntegrityError(RuntimeError):
    def __init__(self, artifact: ForensicArtifact) -> None:
        super().__init__(artifact.message)
        self.artifact = artifact


class WriteBackError(RuntimeError):
    def __init__(self, participant_id: str, attempts: int, cause: Exception) -> None:
        super().__init__(f"write-back for {participant_id} failed after {attempts} attempts: {cause}")
        self.participant_id = participant_id
        self.attempts = attempts
        self.cause = cause


def build_forensic_artifact(
    engine_scope: str,
    error_code: str,
    message: str,
    state_snapshot: dict[str, object],
    context: dict[str, object],
    identifiers: dict[str, str],
    causal_fragment: list[str],
) -> ForensicArtifact:
    return ForensicArtifact(
        artifact_id=str(uuid4()),
        timestamp=datetime.now(UTC),
        engine_scope=engine_scope,
        error_code=error_code,
        message=message,
        state_snapshot=state_snapshot,
        context=context,
        identifiers=identifiers,
        causal_fragment=causal_fragment,
    )


def integrity_failure(
    error_code: str,
    message: str,
    *,
    game_id: str,
    state_snapshot: dict[str, object] | None = None,
    causal_fragment: list[str] | None = None,
) -> EngineIntegrityError:
    artifact = build_forensic_artifact(
        engine_scope="scoring",
        error_code=error_code,
        message=message,
        state_snapshot=state_snapshot or {},
        context={},
        identifiers={"game_id": game_id},
        causal_fragment=causal_fragment or [],
    )
    return EngineIntegrityError(artifact)


def persist_forensic_artifact(artifact: ForensicArtifact, output_dir: Path) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"forensic_{artifact.artifact_id}.json"
    path.write_text(json.dumps(asdict(artifact), default=str, indent=2), encoding="utf-8")
    return path
