from __future__ import annotations

from pathlib import Path

from poolrank.cli import main
from tests.helpers import GAME_ID, seeded_runtime


def test_cli_recompute_then_leaderboard(tmp_path: Path, capsys) -> None:
    seeded_runtime(tmp_path)

    code = main(["--root", str(tmp_path), "--game", GAME_ID, "--write-delay", "0", "recompute"])
    assert code == 0
    out = capsys.readouterr().out
    assert "ranking recomputed for 3 participants" in out
    assert "Avi" in out

    code = main(["--root", str(tmp_path), "--game", GAME_ID, "breakdown", "Dana"])
    assert code == 0
    assert "total: 17" in capsys.readouterr().out


def test_cli_reports_failure_exit_code(tmp_path: Path, capsys) -> None:
    seeded_runtime(tmp_path)
    code = main(["--root", str(tmp_path), "--game", GAME_ID, "set-baseline"])
    assert code == 1
    assert "recompute first" in capsys.readouterr().out
