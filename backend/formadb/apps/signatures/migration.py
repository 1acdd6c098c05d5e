# backend/formadb/apps/signatures/migration.py
"""
Move signature rows of the legacy "documents" table into document_signatures.

Rows are processed one at a time, ordered by training, each inside its own
savepoint: a failing row is listed in the report and the batch goes on.
Re-running the migration finds the rows already migrated and inserts
nothing new.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import RecordMappingFailure, StoreFailure
from . import models
from .diagnostic import find_missing_trainer_signatures, run_full_diagnostic, to_missing_entries
from .enums import SignatureType, document_type_from_string, requires_user_id
from .legacy import first_participant_id, legacy_signature_rows, signature_type_for_title
from .naming import canonical_asset_name
from .repair import apply_fixes
from .schemas import FullMigrationReport, MigrationReport, VerificationSummary
from .storage import AssetStore
from .store import SignatureStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

MIGRATED_FROM = "documents"


# ---------------------------------------------------------------------------
# RENAMING
# ---------------------------------------------------------------------------


def rename_signature_file(db: Session, assets: AssetStore, old_url: str, new_name: str) -> str:
    """
    Copy the asset behind ``old_url`` to ``new_name`` and point every row
    that referenced the old URL at the new one.

    The old object is left in storage for manual rollback.
    """
    old_name = assets.name_from_url(old_url)
    if not old_name:
        raise StoreFailure(f"Cannot derive an asset name from {old_url!r}")

    data = assets.download(old_name)
    assets.upload(new_name, data, overwrite=True)
    new_url = assets.public_url(new_name)

    for document in db.query(models.LegacyDocument).filter(models.LegacyDocument.url == old_url).all():
        document.url = new_url
    for signature in (
        db.query(models.DocumentSignature).filter(models.DocumentSignature.signature_url == old_url).all()
    ):
        signature.signature_url = new_url
        signature.path = new_name
    db.flush()

    logger.info("Signature asset renamed", extra={"old_name": old_name, "new_name": new_name})
    return new_url


# ---------------------------------------------------------------------------
# MIGRATION
# ---------------------------------------------------------------------------


def _resolve_user_id(db: Session, row: models.LegacyDocument, signature_type: SignatureType) -> Optional[str]:
    if row.user_id:
        return row.user_id
    if signature_type == SignatureType.TRAINER:
        user_id = row.created_by or first_participant_id(db, row.training_id)
        if not user_id:
            raise RecordMappingFailure(row.id, "Aucun utilisateur trouvé pour la signature du formateur")
        return user_id
    if requires_user_id(signature_type):
        raise RecordMappingFailure(row.id, "ID utilisateur manquant")
    return None


def _migrate_row(
    db: Session,
    store: SignatureStore,
    row: models.LegacyDocument,
    report: MigrationReport,
) -> models.DocumentSignature:
    signature_type = signature_type_for_title(row.title)
    if signature_type is None:
        raise RecordMappingFailure(row.id, f"Titre non reconnu: {row.title}")
    if not row.training_id:
        raise RecordMappingFailure(row.id, "ID formation manquant")
    if not row.url:
        raise RecordMappingFailure(row.id, "URL de signature manquante")

    document_type = document_type_from_string(row.type)
    user_id = _resolve_user_id(db, row, signature_type)

    existing = store.find(row.training_id, signature_type, document_type, user_id)
    if existing is not None:
        report.already_migrated += 1
        return existing

    record = models.DocumentSignature(
        training_id=row.training_id,
        user_id=user_id,
        company_id=row.company_id,
        document_type=document_type.value,
        signature_type=signature_type.value,
        signature_url=row.url,
        path=store.assets.name_from_url(row.url),
        metadata_json={
            "original_document_id": row.id,
            "migrated_from": MIGRATED_FROM,
            "original_title": row.title,
            "created_by": row.created_by,
        },
    )
    db.add(record)
    db.flush()
    return record


def _canonical_name_for(record: models.DocumentSignature) -> str:
    return canonical_asset_name(
        SignatureType(record.signature_type),
        document_type_from_string(record.document_type),
        record.training_id,
        record.user_id,
    )


def migrate_signatures_from_documents_table(
    db: Session,
    assets: AssetStore,
    progress: Optional[ProgressCallback] = None,
) -> MigrationReport:
    """
    Migrate every legacy signature row.

    Per-row problems land in the report. Raises StoreFailure only when the
    batch cannot be committed.
    """
    report = MigrationReport()
    store = SignatureStore(db, assets)
    rows = legacy_signature_rows(db)
    total = len(rows)

    for index, row in enumerate(rows, start=1):
        report.processed_records += 1
        try:
            with db.begin_nested():
                record = _migrate_row(db, store, row, report)
            report.successful_migrations += 1
        except RecordMappingFailure as failure:
            report.failed_migrations.append(row.id)
            report.errors[row.id] = failure.reason
            logger.info("Legacy signature not migrated", extra={"record_id": row.id, "reason": failure.reason})
            record = None
        except Exception as exc:
            report.failed_migrations.append(row.id)
            report.errors[row.id] = str(exc)
            logger.warning("Legacy signature migration failed", extra={"record_id": row.id, "error": str(exc)})
            record = None

        if record is not None:
            _rename_if_needed(db, assets, row, record, report)

        if progress is not None:
            progress(index, total)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreFailure(f"Could not commit signature migration: {exc}") from exc

    logger.info(
        "Signature migration finished",
        extra={
            "processed": report.processed_records,
            "succeeded": report.successful_migrations,
            "failed": len(report.failed_migrations),
            "renamed": report.renamed_assets,
        },
    )
    return report


def _rename_if_needed(
    db: Session,
    assets: AssetStore,
    row: models.LegacyDocument,
    record: models.DocumentSignature,
    report: MigrationReport,
) -> None:
    try:
        expected = _canonical_name_for(record)
    except ValueError as exc:
        report.rename_errors[row.id] = str(exc)
        return
    if assets.name_from_url(record.signature_url) == expected:
        return
    try:
        with db.begin_nested():
            rename_signature_file(db, assets, record.signature_url, expected)
        report.renamed_assets += 1
    except Exception as exc:
        report.rename_errors[row.id] = str(exc)
        logger.warning("Signature asset rename failed", extra={"record_id": row.id, "error": str(exc)})


# ---------------------------------------------------------------------------
# VERIFICATION
# ---------------------------------------------------------------------------


def verify_migration_results(db: Session, assets: AssetStore) -> VerificationSummary:
    summary = VerificationSummary()
    try:
        summary.documents_count = len(legacy_signature_rows(db))
        summary.document_signatures_count = db.query(models.DocumentSignature).count()
        summary.missing_signatures = to_missing_entries(find_missing_trainer_signatures(db, assets))
        summary.success = (
            summary.document_signatures_count >= summary.documents_count
            and not summary.missing_signatures
        )
    except Exception as exc:
        logger.exception("Signature migration verification failed")
        summary.error = str(exc)
        summary.success = False
    return summary


def run_full_migration(
    db: Session,
    assets: AssetStore,
    actor: Optional[str] = None,
    progress: Optional[ProgressCallback] = None,
) -> FullMigrationReport:
    """
    Diagnose, apply fixes, migrate, verify, diagnose again.

    Always returns the report; a step that raises stops the run and its
    message lands in ``error``.
    """
    report = FullMigrationReport(started_at=datetime.now(timezone.utc))
    try:
        report.initial_diagnostic = run_full_diagnostic(db, assets)
        report.fixes = apply_fixes(db, report.initial_diagnostic, actor=actor)
        report.migration = migrate_signatures_from_documents_table(db, assets, progress=progress)
        report.verification = verify_migration_results(db, assets)
        report.final_diagnostic = run_full_diagnostic(db, assets)
        report.success = (
            report.verification.success
            and not report.final_diagnostic.has_problems
            and report.final_diagnostic.error is None
        )
    except Exception as exc:
        db.rollback()
        logger.exception("Full signature migration failed")
        report.error = str(exc)
        report.success = False
    finally:
        report.finished_at = datetime.now(timezone.utc)
    return report
