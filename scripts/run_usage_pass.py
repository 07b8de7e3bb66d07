from __future__ import annotations

import argparse
import json
import os
from pathlib import Path

import quickdu.db.session as db_session_module
from quickdu.core.config import get_settings
from quickdu.core.logging import configure_logging
from quickdu.db.init_db import initialize_database
from quickdu.usage.types import UsageSnapshot
from quickdu.worker.pipeline import UsagePassError, run_usage_pass_once


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one disk usage pass and print the snapshot")
    parser.add_argument("--home-root", help="Monitored home directory (overrides QUICKDU_HOME_ROOT)")
    parser.add_argument("--state-root", help="State directory (overrides QUICKDU_STATE_ROOT)")
    parser.add_argument("--pacing", type=float, help="Seconds to sleep between directory measurements")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser.parse_args()


def configure_env(args: argparse.Namespace) -> None:
    if args.home_root:
        os.environ["QUICKDU_HOME_ROOT"] = Path(args.home_root).resolve().as_posix()
    if args.state_root:
        os.environ["QUICKDU_STATE_ROOT"] = Path(args.state_root).resolve().as_posix()
    if args.pacing is not None:
        os.environ["QUICKDU_DIRECTORY_PACING_SECONDS"] = str(args.pacing)

    get_settings.cache_clear()
    db_session_module.reset_engine()


def snapshot_to_dict(snapshot: UsageSnapshot) -> dict[str, object]:
    return {
        "last_run_start": snapshot.last_run_start.isoformat(),
        "last_run_end": snapshot.last_run_end.isoformat(),
        "directories": [
            {"display_name": item.display_name, "path": item.path.as_posix(), "size_kb": item.size_kb}
            for item in snapshot.directories
        ],
        "jobs": [
            {
                "display_name": item.display_name,
                "full_name": item.full_name,
                "path": item.path.as_posix(),
                "size_kb": item.size_kb,
            }
            for item in snapshot.jobs
        ],
    }


def main() -> int:
    args = parse_args()
    configure_env(args)
    configure_logging(args.log_level)
    initialize_database()

    try:
        snapshot = run_usage_pass_once()
    except UsagePassError as exc:
        print(json.dumps({"error": str(exc)}))
        return 1

    print(json.dumps(snapshot_to_dict(snapshot), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
