#!/usr/bin/env python3
"""Run one ingestion stage in-process.

Usage:
  python scripts/run_ingest.py --stage catalog
  python scripts/run_ingest.py --stage listings --init-db

Prints the run stats as JSON and exits non-zero when the stage fails.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.core.logging import get_logger  # noqa: E402
from backend.app.db.session import init_db  # noqa: E402
from backend.app.services.pipeline import STAGES, run_stage  # noqa: E402
from backend.app.services.stats import IngestStats  # noqa: E402

logger = get_logger("run_ingest")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--stage", choices=STAGES, default="catalog", help="Ingestion stage to run")
    ap.add_argument("--init-db", action="store_true", help="Create missing tables before running")
    args = ap.parse_args(argv)

    if args.init_db:
        init_db()

    stats = IngestStats()
    ok = True
    try:
        asyncio.run(run_stage(args.stage, stats))
    except Exception:
        logger.exception("Stage %s failed", args.stage)
        ok = False

    print(json.dumps({"ok": ok, "stage": args.stage, "stats": stats.as_dict()}, indent=2))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
