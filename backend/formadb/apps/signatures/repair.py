# backend/formadb/apps/signatures/repair.py
"""
Apply the corrections proposed by the diagnostic.

Each fix runs in its own savepoint and leaves a repair_events row recording
whether the new value was certain or inferred. Canonical rows also carry the
provenance in their metadata so later readers can tell a repaired record
from an original one.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import StoreFailure
from ..audit import services as audit_services
from . import models
from .diagnostic import DOCUMENTS_TABLE, SIGNATURES_TABLE
from .enums import SignatureType
from .legacy import first_participant_id
from .schemas import DiagnosticReport, FixReport, FullDiagnostic, SuggestedFix

logger = logging.getLogger(__name__)

_TABLE_MODELS = {
    DOCUMENTS_TABLE: models.LegacyDocument,
    SIGNATURES_TABLE: models.DocumentSignature,
}

_ALLOWED_FIELDS = {
    DOCUMENTS_TABLE: {"user_id", "training_id", "type"},
    SIGNATURES_TABLE: {"user_id", "training_id", "signature_type", "document_type"},
}


def _iter_fixes(report: Union[DiagnosticReport, FullDiagnostic]) -> Iterable[SuggestedFix]:
    if isinstance(report, FullDiagnostic):
        yield from report.documents.suggested_fixes
        yield from report.document_signatures.suggested_fixes
    else:
        yield from report.suggested_fixes


def _apply_one(db: Session, fix: SuggestedFix, actor: Optional[str]) -> None:
    model = _TABLE_MODELS.get(fix.table)
    if model is None:
        raise ValueError(f"Unknown table {fix.table!r}")
    unknown = set(fix.fixes) - _ALLOWED_FIELDS[fix.table]
    if unknown:
        raise ValueError(f"Fields not repairable: {sorted(unknown)}")

    record = db.get(model, fix.id)
    if record is None:
        raise LookupError("Enregistrement introuvable")

    before = {field: getattr(record, field) for field in fix.fixes}
    for field, value in fix.fixes.items():
        setattr(record, field, value)
    if isinstance(record, models.DocumentSignature):
        metadata = dict(record.metadata_json or {})
        metadata["provenance"] = fix.provenance
        metadata["repaired_fields"] = sorted(set(metadata.get("repaired_fields", [])) | set(fix.fixes))
        record.metadata_json = metadata
    db.flush()

    audit_services.log_repair(
        db,
        entity_type=fix.table,
        entity_id=fix.id,
        action="apply_fix",
        provenance=fix.provenance,
        actor=actor,
        before=before,
        after=dict(fix.fixes),
        metadata={"reason": fix.reason} if fix.reason else None,
        critical=True,
    )


def apply_fixes(
    db: Session,
    report: Union[DiagnosticReport, FullDiagnostic],
    actor: Optional[str] = None,
) -> FixReport:
    """
    Apply every suggested fix of ``report``.

    A fix that fails is rolled back alone and listed in the result. Raises
    StoreFailure when the batch itself cannot be committed.
    """
    result = FixReport()
    for fix in _iter_fixes(report):
        result.attempted += 1
        try:
            with db.begin_nested():
                _apply_one(db, fix, actor)
            result.applied += 1
        except Exception as exc:
            logger.warning(
                "Signature fix failed",
                extra={"record_id": fix.id, "table": fix.table, "error": str(exc)},
            )
            result.failed[fix.id] = str(exc)

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreFailure(f"Could not commit signature fixes: {exc}") from exc

    logger.info(
        "Signature fixes applied",
        extra={"attempted": result.attempted, "applied": result.applied, "failed": len(result.failed)},
    )
    return result


def fix_trainer_signature_user_ids(db: Session, actor: Optional[str] = None) -> FixReport:
    """
    Give canonical trainer signatures without a user an owner: metadata
    created_by first, else the training's first participant (inferred).
    """
    rows = (
        db.query(models.DocumentSignature)
        .filter(
            models.DocumentSignature.signature_type == SignatureType.TRAINER.value,
            models.DocumentSignature.user_id.is_(None),
        )
        .all()
    )
    fixes = []
    skipped = {}
    for row in rows:
        created_by = (row.metadata_json or {}).get("created_by")
        if created_by:
            fixes.append(SuggestedFix(id=row.id, table=SIGNATURES_TABLE, fixes={"user_id": created_by}, provenance="certain"))
            continue
        participant_id = first_participant_id(db, row.training_id)
        if participant_id:
            fixes.append(
                SuggestedFix(
                    id=row.id,
                    table=SIGNATURES_TABLE,
                    fixes={"user_id": participant_id},
                    provenance="inferred",
                    reason="user_id from first participant",
                )
            )
        else:
            skipped[row.id] = "Aucun participant pour cette formation"

    result = apply_fixes(db, DiagnosticReport(table=SIGNATURES_TABLE, suggested_fixes=fixes), actor=actor)
    result.attempted += len(skipped)
    result.failed.update(skipped)
    return result
