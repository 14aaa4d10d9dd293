from __future__ import annotations

import re
import json
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path

from poolrank.contracts import StrictAuditFinding, StrictAuditReport, StrictAuditSection
from poolrank.core import make_id
from poolrank.scoring.config import bundle_checksum


class StrictAuditService:
    IMPURE_IMPORT_PATTERN = re.compile(
        r"^\s*(?:from|import)\s+(?:poolrank\.(?:persistence|runtime|export|devtools)|duckdb|sqlite3)\b",
        re.MULTILINE,
    )
    PAYLOAD_DEFAULT_PATTERN = re.compile(r"payload\.get\([^,)]+,\s*[^)]+\)")
    PRINT_PATTERN = re.compile(r"^\s*print\(", re.MULTILINE)

    def run(self, *, repo_root: Path) -> StrictAuditReport:
        src_root = repo_root / "src" / "poolrank"
        findings_static: list[StrictAuditFinding] = []
        findings_resource: list[StrictAuditFinding] = []
        findings_import: list[StrictAuditFinding] = []

        for py in sorted(src_root.rglob("*.py")):
            rel = py.relative_to(repo_root).as_posix()
            text = py.read_text(encoding="utf-8")
            if "/scoring/" in rel:
                if self.IMPURE_IMPORT_PATTERN.search(text):
                    findings_static.append(
                        StrictAuditFinding(
                            finding_id=make_id("saf"),
                            scope="static",
                            severity="blocking",
                            summary="scoring engine imports a persistence or runtime collaborator",
                            location=rel,
                        )
                    )
                if self.PRINT_PATTERN.search(text):
                    findings_static.append(
                        StrictAuditFinding(
                            finding_id=make_id("saf"),
                            scope="static",
                            severity="blocking",
                            summary="print() in scoring engine; use the module logger",
                            location=rel,
                        )
                    )
            if "/runtime/" in rel and self.PAYLOAD_DEFAULT_PATTERN.search(text):
                findings_static.append(
                    StrictAuditFinding(
                        finding_id=make_id("saf"),
                        scope="static",
                        severity="blocking",
                        summary="payload.get default rescue detected",
                        location=rel,
                    )
                )

        for resource in sorted((src_root / "resources" / "scoring").glob("*.json")):
            rel = resource.relative_to(repo_root).as_posix()
            payload = json.loads(resource.read_text(encoding="utf-8"))
            manifest = payload.get("manifest")
            resources = payload.get("resources")
            if not isinstance(manifest, dict) or not isinstance(resources, list):
                findings_resource.append(
                    StrictAuditFinding(
                        finding_id=make_id("saf"),
                        scope="resource",
                        severity="blocking",
                        summary="resource bundle payload is invalid",
                        location=rel,
                    )
                )
                continue
            if manifest.get("checksum") != bundle_checksum(resources):
                findings_resource.append(
                    StrictAuditFinding(
                        finding_id=make_id("saf"),
                        scope="resource",
                        severity="blocking",
                        summary="manifest checksum does not match resource payload",
                        location=rel,
                    )
                )
            seen: set[str] = set()
            for entry in resources:
                if not isinstance(entry, dict):
                    continue
                rid = str(entry.get("id", ""))
                if rid in seen:
                    findings_resource.append(
                        StrictAuditFinding(
                            finding_id=make_id("saf"),
                            scope="resource",
                            severity="blocking",
                            summary="duplicate resource id",
                            location=f"{rel}:{rid}",
                        )
                    )
                seen.add(rid)
                metadata = entry.get("metadata")
                if isinstance(metadata, dict) and metadata.get("placeholder") is True:
                    findings_resource.append(
                        StrictAuditFinding(
                            finding_id=make_id("saf"),
                            scope="resource",
                            severity="blocking",
                            summary="placeholder marker found in active resource metadata",
                            location=f"{rel}:{rid}",
                        )
                    )

        pool_py = src_root / "runtime" / "pool.py"
        pool_text = pool_py.read_text(encoding="utf-8")
        top_chunk = pool_text.split("class PoolRuntime", maxsplit=1)[0]
        if "from poolrank.devtools" in top_chunk or "import poolrank.devtools" in top_chunk:
            findings_import.append(
                StrictAuditFinding(
                    finding_id=make_id("saf"),
                    scope="import_boundary",
                    severity="blocking",
                    summary="normal runtime imports devtools at module load",
                    location="src/poolrank/runtime/pool.py",
                )
            )

        sections = [
            StrictAuditSection(section="static", passed=not findings_static, findings=findings_static),
            StrictAuditSection(section="resource", passed=not findings_resource, findings=findings_resource),
            StrictAuditSection(section="import_boundary", passed=not findings_import, findings=findings_import),
        ]
        passed = all(section.passed for section in sections)
        return StrictAuditReport(
            report_id=make_id("strict"),
            generated_at=datetime.now(UTC),
            passed=passed,
            sections=sections,
        )

    def to_dict(self, report: StrictAuditReport) -> dict[str, object]:
        return asdict(report)
