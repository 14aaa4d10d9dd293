from __future__ import annotations

import copy
import hashlib
import json
from importlib import resources

import pytest

from poolrank.contracts import ConfigurationError, ValidationError
from poolrank.scoring import ScoringEngine, load_scoring_rules
from tests.helpers import make_rules


def _bundle() -> dict:
    package = resources.files("poolrank.resources.scoring")
    return json.loads((package / "scoring_rules.json").read_text(encoding="utf-8"))


def _checksum(resources_payload: list[dict]) -> str:
    canonical = json.dumps(resources_payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(canonical).hexdigest()


def test_default_bundle_loads() -> None:
    rules = load_scoring_rules()
    assert rules.manifest is not None and rules.manifest.resource_type == "scoring_rules"
    assert rules.excluded_table_ids == frozenset({"T1"})
    assert rules.scale_for("T20").exact == 6
    assert rules.scale_for("T2").exact == 10
    assert rules.placement_reward("T17").expected_count == 12
    assert rules.placement_reward("T19").order_reward == 0
    assert rules.presence_rules["T_THIRD_PLACE"].main_questions_only


def test_checksum_mismatch_rejected() -> None:
    bundle = _bundle()
    bundle["resources"][0]["exact"] = 12
    with pytest.raises(ValidationError) as ex:
        load_scoring_rules(bundle)
    assert any(issue.code == "RESOURCE_CHECKSUM_MISMATCH" for issue in ex.value.issues)


def test_schema_version_mismatch_rejected() -> None:
    bundle = _bundle()
    bundle["manifest"]["schema_version"] = "9.9"
    with pytest.raises(ValidationError) as ex:
        load_scoring_rules(bundle)
    assert any(issue.code == "RESOURCE_SCHEMA_MISMATCH" for issue in ex.value.issues)


def test_placement_table_without_reward_fails_fast() -> None:
    bundle = _bundle()
    entry = next(e for e in bundle["resources"] if e["id"] == "T17")
    del entry["teams_reward"]
    bundle["manifest"]["checksum"] = _checksum(bundle["resources"])
    with pytest.raises(ConfigurationError) as ex:
        load_scoring_rules(bundle)
    assert [issue.code for issue in ex.value.issues] == ["MISSING_PLACEMENT_REWARD"]


def test_unknown_rule_kind_rejected() -> None:
    bundle = copy.deepcopy(_bundle())
    bundle["resources"].append({"id": "T99", "kind": "lottery_table"})
    bundle["manifest"]["checksum"] = _checksum(bundle["resources"])
    with pytest.raises(ValidationError) as ex:
        load_scoring_rules(bundle)
    assert any(issue.code == "UNKNOWN_RULE_KIND" for issue in ex.value.issues)


def test_injected_rules_validated_by_engine() -> None:
    rules = make_rules(placement_table_ids=frozenset({"T14", "T15"}))
    with pytest.raises(ConfigurationError):
        ScoringEngine(rules)


def test_excluded_table_cannot_be_scored() -> None:
    rules = make_rules(excluded_table_ids=frozenset({"T1", "T14"}))
    with pytest.raises(ConfigurationError) as ex:
        rules.validate()
    assert any(issue.code == "EXCLUDED_TABLE_SCORED" for issue in ex.value.issues)
