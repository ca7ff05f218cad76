from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from blast.config import DEFAULT_CONCURRENCY, DEFAULT_REQUESTS, RunConfig, TargetConfig, validate_config
from blast.errors import ConfigurationError
from blast.loadgen.runner import run_experiment, run_load
from blast.logging import configure_logging
from blast.report import render_summary
from blast.storage import DEFAULT_DB_PATH, default_storage


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="blast", description="HTTP load generator")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="DEBUG logs every request",
    )
    parser.add_argument("--json-logs", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Send requests to a target and report")
    run.add_argument("url", help="Target URL")
    run.add_argument("-n", "--requests", type=int, default=DEFAULT_REQUESTS, help="Number of requests")
    run.add_argument("-c", "--concurrency", type=int, default=DEFAULT_CONCURRENCY, help="Requests in flight")
    run.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout (sec)")
    run.add_argument("--run-timeout", type=float, default=None, help="Deadline for the whole run (sec)")
    run.add_argument("--save", action="store_true", help="Store the summary in the run history")
    run.add_argument("--db", type=Path, default=DEFAULT_DB_PATH)
    run.add_argument("--notes", default="")

    history = sub.add_parser("history", help="List stored runs")
    history.add_argument("--db", type=Path, default=DEFAULT_DB_PATH)
    return parser


def _run(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    config = RunConfig(
        target=TargetConfig(url=args.url, timeout_sec=args.timeout),
        requests=args.requests,
        concurrency=args.concurrency,
        run_timeout_sec=args.run_timeout,
        notes=args.notes,
    )
    try:
        validate_config(config)
    except ConfigurationError as exc:
        parser.error(str(exc))
    if args.save:
        result = asyncio.run(run_experiment(config, default_storage(args.db)))
    else:
        result = asyncio.run(run_load(config))
    print(render_summary(result.summary, config))
    if args.save:
        print(f"Run saved: {result.run_id}")


def _history(args: argparse.Namespace) -> None:
    runs = default_storage(args.db).list_runs()
    if runs.empty:
        print("No runs recorded")
        return
    print(runs.to_string(index=False))


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(json_output=args.json_logs, level=args.log_level)
    if args.command == "run":
        _run(args, parser)
    else:
        _history(args)


if __name__ == "__main__":
    main()
