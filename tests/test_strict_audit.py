from __future__ import annotations

from pathlib import Path

from poolrank.devtools.strict_audit import StrictAuditService


def test_strict_audit_passes_on_current_repo() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    report = StrictAuditService().run(repo_root=repo_root)
    assert report.passed, report


def test_strict_audit_flags_impure_engine_module(tmp_path: Path) -> None:
    repo_root = Path(__file__).resolve().parents[1]
    fake_root = tmp_path / "repo"
    src = fake_root / "src" / "poolrank"
    (src / "scoring").mkdir(parents=True)
    (src / "runtime").mkdir(parents=True)
    (src / "resources" / "scoring").mkdir(parents=True)
    (src / "scoring" / "leaky.py").write_text("import sqlite3\n", encoding="utf-8")
    (src / "runtime" / "pool.py").write_text(
        "from poolrank.devtools import StrictAuditService\n\nclass PoolRuntime:\n    pass\n",
        encoding="utf-8",
    )
    bundle = repo_root / "src" / "poolrank" / "resources" / "scoring" / "scoring_rules.json"
    (src / "resources" / "scoring" / "scoring_rules.json").write_text(
        bundle.read_text(encoding="utf-8").replace('"exact": 10', '"exact": 11'),
        encoding="utf-8",
    )

    report = StrictAuditService().run(repo_root=fake_root)

    sections = {s.section: s for s in report.sections}
    assert not report.passed
    assert not sections["static"].passed
    assert not sections["resource"].passed
    assert not sections["import_boundary"].passed
