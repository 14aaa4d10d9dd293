from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from importlib import resources
from typing import Any

from poolrank.contracts import (
    ConfigurationError,
    PlacementReward,
    PointScale,
    PresenceRule,
    ResourceManifest,
    ValidationError,
    ValidationIssue,
)

EXPECTED_SCHEMA_VERSION = "1.0"
RULES_BUNDLE = "scoring_rules.json"
RULES_RESOURCE_TYPE = "scoring_rules"

UNDECIDED_MARKERS = frozenset({"", "__CLEAR__", "-", "null", "null-null", "null - null"})
MATCH_SEPARATORS = (" vs ", " נגד ", " - ")


@dataclass(slots=True)
class ScoringRules:
    """Table-level scoring configuration.

    Placement rewards are looked up here by table id; nothing in the scorer
    knows concrete table ids.
    """

    standard_scale: PointScale
    regional_scale: PointScale
    excluded_table_ids: frozenset[str] = frozenset({"T1"})
    regional_table_ids: frozenset[str] = frozenset()
    placement_table_ids: frozenset[str] = frozenset()
    placement_rewards: dict[str, PlacementReward] = field(default_factory=dict)
    presence_rules: dict[str, PresenceRule] = field(default_factory=dict)
    manifest: ResourceManifest | None = None

    def validate(self) -> None:
        self.standard_scale.validate()
        self.regional_scale.validate()
        issues: list[ValidationIssue] = []
        for table_id in sorted(self.placement_table_ids):
            reward = self.placement_rewards.get(table_id)
            if reward is None:
                issues.append(
                    ValidationIssue(
                        code="MISSING_PLACEMENT_REWARD",
                        severity="blocking",
                        field_path=f"placement_rewards.{table_id}",
                        entity_id=table_id,
                        message="placement table has no declared reward tiers",
                    )
                )
            elif reward.expected_count <= 0 or reward.teams_reward < 0 or reward.order_reward < 0:
                issues.append(
                    ValidationIssue(
                        code="INVALID_PLACEMENT_REWARD",
                        severity="blocking",
                        field_path=f"placement_rewards.{table_id}",
                        entity_id=table_id,
                        message="expected_count must be positive and rewards non-negative",
                    )
                )
        overlap = (self.placement_table_ids | set(self.presence_rules)) & self.excluded_table_ids
        for table_id in sorted(overlap):
            issues.append(
                ValidationIssue(
                    code="EXCLUDED_TABLE_SCORED",
                    severity="blocking",
                    field_path="excluded_table_ids",
                    entity_id=table_id,
                    message="excluded table is also configured for scoring",
                )
            )
        if issues:
            raise ConfigurationError(issues)

    def is_excluded(self, table_id: str) -> bool:
        return table_id in self.excluded_table_ids

    def is_placement(self, table_id: str) -> bool:
        return table_id in self.placement_table_ids

    def scale_for(self, table_id: str) -> PointScale:
        return self.regional_scale if table_id in self.regional_table_ids else self.standard_scale

    def placement_reward(self, table_id: str) -> PlacementReward:
        reward = self.placement_rewards.get(table_id)
        if reward is None:
            raise ConfigurationError(
                [
                    ValidationIssue(
                        code="MISSING_PLACEMENT_REWARD",
                        severity="blocking",
                        field_path=f"placement_rewards.{table_id}",
                        entity_id=table_id,
                        message="no reward tiers declared for placement table",
                    )
                ]
            )
        return reward


def load_scoring_rules(bundle_override: dict[str, Any] | None = None) -> ScoringRules:
    if bundle_override is not None:
        payload = bundle_override
    else:
        package = resources.files("poolrank.resources.scoring")
        payload = json.loads((package / RULES_BUNDLE).read_text(encoding="utf-8"))
    manifest, entries = _read_bundle(payload)

    scales: dict[str, PointScale] = {}
    excluded: set[str] = set()
    regional: dict[str, str] = {}
    placement: dict[str, PlacementReward] = {}
    placement_ids: set[str] = set()
    presence: dict[str, PresenceRule] = {}
    issues: list[ValidationIssue] = []

    for entry in entries:
        rid = str(entry["id"])
        kind = entry.get("kind")
        if kind == "scale":
            scales[rid] = PointScale(
                scale_id=rid,
                exact=int(entry["exact"]),
                difference=int(entry["difference"]),
                outcome=int(entry["outcome"]),
            )
        elif kind == "excluded_table":
            excluded.add(rid)
        elif kind == "regional_table":
            regional[rid] = str(entry.get("scale_id", "regional"))
        elif kind == "placement_table":
            placement_ids.add(rid)
            if "teams_reward" in entry and "expected_count" in entry:
                placement[rid] = PlacementReward(
                    table_id=rid,
                    expected_count=int(entry["expected_count"]),
                    teams_reward=int(entry["teams_reward"]),
                    order_reward=int(entry.get("order_reward", 0)),
                )
        elif kind == "presence_table":
            presence[rid] = PresenceRule(table_id=rid, main_questions_only=bool(entry.get("main_questions_only", False)))
        else:
            issues.append(
                ValidationIssue(
                    code="UNKNOWN_RULE_KIND",
                    severity="blocking",
                    field_path=f"{RULES_BUNDLE}.resources.{rid}",
                    entity_id=rid,
                    message=f"unsupported rule kind '{kind}'",
                )
            )

    for scale_id in ("standard", "regional"):
        if scale_id not in scales:
            issues.append(
                ValidationIssue(
                    code="MISSING_REQUIRED_RUNTIME_CONFIG",
                    severity="blocking",
                    field_path=f"{RULES_BUNDLE}.resources",
                    entity_id=scale_id,
                    message=f"point scale '{scale_id}' is not declared",
                )
            )
    for table_id, scale_id in sorted(regional.items()):
        if scale_id != "regional":
            issues.append(
                ValidationIssue(
                    code="UNKNOWN_SCALE_REFERENCE",
                    severity="blocking",
                    field_path=f"{RULES_BUNDLE}.resources.{table_id}.scale_id",
                    entity_id=table_id,
                    message=f"regional table must reference the regional scale, got '{scale_id}'",
                )
            )
    if issues:
        raise ValidationError(issues)

    rules = ScoringRules(
        standard_scale=scales["standard"],
        regional_scale=scales["regional"],
        excluded_table_ids=frozenset(excluded),
        regional_table_ids=frozenset(regional),
        placement_table_ids=frozenset(placement_ids),
        placement_rewards=placement,
        presence_rules=presence,
        manifest=manifest,
    )
    rules.validate()
    return rules


def bundle_checksum(entries: list[dict[str, Any]]) -> str:
    canonical = json.dumps(entries, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()


def _read_bundle(payload: dict[str, Any]) -> tuple[ResourceManifest, list[dict[str, Any]]]:
    manifest_data = payload.get("manifest")
    entries = payload.get("resources")
    if not isinstance(manifest_data, dict) or not isinstance(entries, list):
        raise ValidationError(
            [
                ValidationIssue(
                    code="INVALID_RESOURCE_BUNDLE",
                    severity="blocking",
                    field_path=RULES_BUNDLE,
                    entity_id=RULES_RESOURCE_TYPE,
                    message="resource bundle must provide manifest and resources list",
                )
            ]
        )

    required_manifest_fields = {"resource_type", "schema_version", "resource_version", "generated_at", "checksum"}
    missing = sorted(required_manifest_fields - set(manifest_data.keys()))
    if missing:
        raise ValidationError(
            [
                ValidationIssue(
                    code="MISSING_REQUIRED_RUNTIME_CONFIG",
                    severity="blocking",
                    field_path=f"{RULES_BUNDLE}.manifest",
                    entity_id=RULES_RESOURCE_TYPE,
                    message=f"manifest missing required fields {missing}",
                )
            ]
        )
    manifest = ResourceManifest(
        resource_type=str(manifest_data["resource_type"]),
        schema_version=str(manifest_data["schema_version"]),
        resource_version=str(manifest_data["resource_version"]),
        generated_at=str(manifest_data["generated_at"]),
        checksum=str(manifest_data["checksum"]),
    )

    issues: list[ValidationIssue] = []
    if manifest.resource_type != RULES_RESOURCE_TYPE:
        issues.append(
            ValidationIssue(
                code="RESOURCE_TYPE_MISMATCH",
                severity="blocking",
                field_path="manifest.resource_type",
                entity_id=RULES_RESOURCE_TYPE,
                message=f"expected '{RULES_RESOURCE_TYPE}', got '{manifest.resource_type}'",
            )
        )
    if manifest.schema_version != EXPECTED_SCHEMA_VERSION:
        issues.append(
            ValidationIssue(
                code="RESOURCE_SCHEMA_MISMATCH",
                severity="blocking",
                field_path="manifest.schema_version",
                entity_id=RULES_RESOURCE_TYPE,
                message=f"expected schema {EXPECTED_SCHEMA_VERSION}, got {manifest.schema_version}",
            )
        )
    if manifest.checksum != bundle_checksum(entries):
        issues.append(
            ValidationIssue(
                code="RESOURCE_CHECKSUM_MISMATCH",
                severity="blocking",
                field_path="manifest.checksum",
                entity_id=RULES_RESOURCE_TYPE,
                message="manifest checksum does not match resources payload",
            )
        )
    usable = [e for e in entries if isinstance(e, dict) and str(e.get("id", ""))]
    if not usable:
        issues.append(
            ValidationIssue(
                code="EMPTY_RESOURCE_SET",
                severity="blocking",
                field_path=RULES_BUNDLE,
                entity_id=RULES_RESOURCE_TYPE,
                message="resource bundle contains no usable resource ids",
            )
        )
    if issues:
        raise ValidationError(issues)
    return manifest, usable
