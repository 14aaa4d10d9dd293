from __future__ import annotations

import argparse
import logging
from pathlib import Path

from poolrank.contracts import ActionRequest, ActionResult, ActionType, TieBreak
from poolrank.core import make_id
from poolrank.persistence import DEFAULT_PAGE_SIZE
from poolrank.runtime import PoolRuntime


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="poolrank: prediction pool scoring and leaderboard admin")
    parser.add_argument("--root", type=Path, default=Path.cwd(), help="runtime root directory")
    parser.add_argument("--game", required=True, help="game id to operate on")
    parser.add_argument("--page-size", type=int, default=DEFAULT_PAGE_SIZE, help="rows per store page when loading inputs")
    parser.add_argument("--write-batch", type=int, default=2, help="ranking rows written per batch")
    parser.add_argument("--write-delay", type=float, default=1.0, help="seconds to pause between write batches")
    parser.add_argument(
        "--tie-break",
        choices=[t.value for t in TieBreak],
        default=TieBreak.INPUT_ORDER.value,
        help="display order inside a tie group",
    )
    parser.add_argument("--log-level", default="INFO", help="logging level (DEBUG, INFO, WARNING, ...)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("leaderboard", help="compute and print the live leaderboard without writing")
    sub.add_parser("recompute", help="recompute the ranking and persist it")
    sub.add_parser("set-baseline", help="snapshot the stored ranking as the new baseline")
    breakdown = sub.add_parser("breakdown", help="show scored items for one participant")
    breakdown.add_argument("name", help="participant display name")
    sub.add_parser("summary", help="per-table points and hit rate")
    sub.add_parser("export", help="export leaderboard marts to CSV and Parquet")
    sub.add_parser("validate", help="run the input validation gate")
    return parser


def _request(command: str, args: argparse.Namespace) -> ActionRequest:
    if command == "breakdown":
        return ActionRequest(make_id("req"), ActionType.GET_PARTICIPANT_BREAKDOWN, {"participant_name": args.name}, "cli")
    action = {
        "leaderboard": ActionType.GET_LEADERBOARD,
        "recompute": ActionType.RECOMPUTE_RANKING,
        "set-baseline": ActionType.SET_BASELINE,
        "summary": ActionType.GET_TABLE_SUMMARY,
        "export": ActionType.EXPORT_LEADERBOARD,
        "validate": ActionType.VALIDATE_GAME,
    }[command]
    return ActionRequest(make_id("req"), action, {}, "cli")


def _print_leaderboard(rows: list[dict]) -> None:
    for row in rows:
        change = row["position_change"]
        arrow = f"+{change}" if change > 0 else str(change)
        print(
            f"{row['current_position']:>4}. {row['participant_name']:<30} {row['current_score']:>5} "
            f"({row['score_change']:+d} pts, {arrow} pos)"
        )


def _print_result(command: str, result: ActionResult) -> None:
    print(result.message)
    data = result.data
    if not result.success:
        for issue in data.get("issues", []):
            print(f"- [{issue['severity']}] {issue['code']} {issue['entity_id']}: {issue['message']}")
        if data.get("forensic_path"):
            print(f"forensic artifact: {data['forensic_path']}")
        return

    if command in {"leaderboard", "recompute"}:
        _print_leaderboard(data["leaderboard"])
    elif command == "breakdown":
        print(f"total: {data['total']}")
        for item in data["items"]:
            tag = " (bonus)" if item["is_bonus"] else ""
            print(f"- {item['table_id']} {item['question_id']}: {item['score']}/{item['max_score']}{tag}")
    elif command == "summary":
        for row in data["tables"]:
            print(
                f"- {row['table_id']}: {row['points']}/{row['max_points']} pts, "
                f"hit rate {row['hit_rate']:.1%} over {row['decided_items']} decided items"
            )
    elif command == "export":
        for path in data["paths"]:
            print(f"- {path}")
    elif command == "validate":
        for issue in data["issues"]:
            print(f"- [{issue['severity']}] {issue['code']} {issue['entity_id']}: {issue['message']}")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    runtime = PoolRuntime(
        root=args.root,
        game_id=args.game,
        tie_break=TieBreak(args.tie_break),
        page_size=args.page_size,
        write_batch=args.write_batch,
        write_delay=args.write_delay,
    )
    result = runtime.handle_action(_request(args.command, args))
    _print_result(args.command, result)
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
