#!/usr/bin/env python3
"""
signature_migration_runner.py

Operator entry point for the signature diagnostic / repair / migration
steps. Every run writes a timestamped JSON result and a log file next to
it, and exits 0 on success, 1 otherwise.

Usage (from backend/):
  python -m formadb.jobs.signature_migration_runner diagnose
  python -m formadb.jobs.signature_migration_runner full --output-dir ./generated/migration
"""

from __future__ import annotations

import argparse
import datetime as dt
import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.orm import Session

from formadb.database import WriteSessionLocal
from formadb.errors import StoreFailure
from formadb.apps.signatures import diagnostic, migration, repair
from formadb.apps.signatures.schemas import FixReport, MigrationReport
from formadb.apps.signatures.storage import AssetStore, get_asset_store

logger = logging.getLogger("formadb.jobs.signature_migration")

DEFAULT_OUTPUT_DIR = Path(__file__).resolve().parents[2] / "generated" / "signature_migration"
DEFAULT_ACTOR = "signature_migration_runner"
PROGRESS_EVERY = 50

CommandResult = Tuple[bool, BaseModel]


def _log_progress(done: int, total: int) -> None:
    if done == total or done % PROGRESS_EVERY == 0:
        logger.info("Migration progress", extra={"done": done, "total": total})


# -----------------------------
# Commands
# -----------------------------

def cmd_diagnose(db: Session, assets: AssetStore, actor: str) -> CommandResult:
    report = diagnostic.run_full_diagnostic(db, assets)
    return report.error is None, report


def cmd_fix(db: Session, assets: AssetStore, actor: str) -> CommandResult:
    report = diagnostic.run_full_diagnostic(db, assets)
    if report.error:
        return False, FixReport(error=report.error)
    try:
        fixes = repair.apply_fixes(db, report, actor=actor)
    except StoreFailure as exc:
        return False, FixReport(error=str(exc))
    return not fixes.failed and fixes.error is None, fixes


def cmd_migrate(db: Session, assets: AssetStore, actor: str) -> CommandResult:
    try:
        report = migration.migrate_signatures_from_documents_table(db, assets, progress=_log_progress)
    except StoreFailure as exc:
        return False, MigrationReport(error=str(exc))
    return not report.failed_migrations and report.error is None, report


def cmd_verify(db: Session, assets: AssetStore, actor: str) -> CommandResult:
    summary = migration.verify_migration_results(db, assets)
    return summary.success, summary


def cmd_full(db: Session, assets: AssetStore, actor: str) -> CommandResult:
    report = migration.run_full_migration(db, assets, actor=actor, progress=_log_progress)
    return report.success, report


COMMANDS: Dict[str, Callable[[Session, AssetStore, str], CommandResult]] = {
    "diagnose": cmd_diagnose,
    "fix": cmd_fix,
    "migrate": cmd_migrate,
    "verify": cmd_verify,
    "full": cmd_full,
}


# -----------------------------
# Runner
# -----------------------------

def _attach_log_file(path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    if root.level > logging.INFO or root.level == logging.NOTSET:
        root.setLevel(logging.INFO)
    return handler


def run(
    command: str,
    *,
    output_dir: Path = DEFAULT_OUTPUT_DIR,
    actor: str = DEFAULT_ACTOR,
    db: Optional[Session] = None,
    assets: Optional[AssetStore] = None,
) -> Tuple[int, Path]:
    """
    Execute one command and write its result.

    Returns the exit code and the path of the JSON result.
    """
    if command not in COMMANDS:
        raise ValueError(f"Unknown command: {command}")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    result_path = output_dir / f"signatures_{command}_{stamp}.json"
    log_path = output_dir / f"signatures_{command}_{stamp}.log"

    handler = _attach_log_file(log_path)
    owns_session = db is None
    session = db if db is not None else WriteSessionLocal()
    payload: Dict[str, Any] = {"command": command, "started_at": dt.datetime.now(dt.timezone.utc).isoformat()}
    try:
        logger.info("Signature command started", extra={"command": command})
        success, report = COMMANDS[command](session, assets or get_asset_store(), actor)
        payload["success"] = success
        payload["result"] = report.model_dump(mode="json")
    except Exception as exc:
        session.rollback()
        logger.exception("Signature command crashed", extra={"command": command})
        payload["success"] = False
        payload["error"] = str(exc)
    finally:
        payload["finished_at"] = dt.datetime.now(dt.timezone.utc).isoformat()
        if owns_session:
            session.close()

    result_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(
        "Signature command finished",
        extra={"command": command, "success": payload["success"], "result_path": str(result_path)},
    )
    logging.getLogger().removeHandler(handler)
    handler.close()
    return (0 if payload["success"] else 1), result_path


def main(argv: Optional[list] = None) -> int:
    ap = argparse.ArgumentParser(description="Diagnose, repair and migrate stored signatures.")
    ap.add_argument("--output-dir", type=Path, default=DEFAULT_OUTPUT_DIR, help="Where result JSON and logs go")
    ap.add_argument("--actor", default=DEFAULT_ACTOR, help="Recorded as the actor of every repair event")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("diagnose", help="Scan both signature tables and storage; change nothing")
    sub.add_parser("fix", help="Apply the suggested single-field fixes")
    sub.add_parser("migrate", help="Copy legacy signature rows into document_signatures")
    sub.add_parser("verify", help="Check migration completeness")
    sub.add_parser("full", help="diagnose, fix, migrate, verify, diagnose")

    ns = ap.parse_args(argv)
    code, result_path = run(ns.cmd, output_dir=ns.output_dir, actor=ns.actor)
    print(f"{ns.cmd}: {'ok' if code == 0 else 'failed'} ({result_path})")
    return code


if __name__ == "__main__":
    sys.exit(main())
