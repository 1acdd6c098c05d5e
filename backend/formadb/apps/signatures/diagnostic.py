# backend/formadb/apps/signatures/diagnostic.py
"""
Read-only checks over both signature representations.

Nothing here writes: each check returns a report with the problems found
and the single-field corrections it would make. repair.apply_fixes()
applies them.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.orm import Session

from ...utils.identifiers import is_uuid
from ..trainings import models as training_models
from . import models
from .enums import (
    DOCUMENT_TYPE_VALUES,
    SIGNATURE_TYPE_VALUES,
    DocumentType,
    SignatureType,
    document_type_from_string,
    requires_user_id,
    signature_type_from_string,
)
from .legacy import (
    first_participant_id,
    infer_document_type_from_url,
    infer_signature_type_from_url,
    legacy_signature_rows,
    signature_type_for_title,
)
from .naming import parse_asset_name
from .schemas import (
    DiagnosticReport,
    FullDiagnostic,
    MissingTrainerSignature,
    ProblematicRecord,
    SuggestedFix,
)
from .storage import AssetStore

logger = logging.getLogger(__name__)

DOCUMENTS_TABLE = "documents"
SIGNATURES_TABLE = "document_signatures"

# Trainings in these states are not expected to carry a trainer signature.
_UNSIGNED_STATUSES = (
    training_models.TrainingStatus.DRAFT.value,
    training_models.TrainingStatus.CANCELLED.value,
)


class _Findings:
    """Accumulates issues and fixes for one record."""

    def __init__(self, record_id: str, table: str):
        self.record_id = record_id
        self.table = table
        self.issues: List[str] = []
        self.fixes: Dict[str, Any] = {}
        self.inferred = False
        self.reasons: List[str] = []
        self.unresolved = False

    def suggest(self, field: str, value: Any, *, inferred: bool, reason: str) -> None:
        self.fixes[field] = value
        self.inferred = self.inferred or inferred
        self.reasons.append(reason)

    def flush_into(self, report: DiagnosticReport) -> None:
        if self.issues:
            report.problematic_records.append(
                ProblematicRecord(id=self.record_id, table=self.table, issues=self.issues)
            )
        if self.fixes:
            report.suggested_fixes.append(
                SuggestedFix(
                    id=self.record_id,
                    table=self.table,
                    fixes=self.fixes,
                    provenance="inferred" if self.inferred else "certain",
                    reason="; ".join(self.reasons) or None,
                )
            )
        if self.unresolved:
            report.unresolved.append(self.record_id)


# ---------------------------------------------------------------------------
# LEGACY TABLE
# ---------------------------------------------------------------------------


def diagnose_documents_table(db: Session) -> DiagnosticReport:
    rows = legacy_signature_rows(db)
    report = DiagnosticReport(table=DOCUMENTS_TABLE, total_records=len(rows))

    for row in rows:
        found = _Findings(row.id, DOCUMENTS_TABLE)
        signature_type = signature_type_for_title(row.title)

        if signature_type is None:
            report.type_inconsistencies += 1
            found.issues.append(f"Titre non reconnu: {row.title}")
            found.unresolved = True

        if not row.user_id:
            if signature_type in (SignatureType.TRAINER, SignatureType.ORGANIZATION_SEAL):
                # Allowed structurally; still propose an owner for the migration.
                if row.created_by:
                    found.suggest("user_id", row.created_by, inferred=False, reason="user_id from created_by")
                else:
                    participant_id = first_participant_id(db, row.training_id)
                    if participant_id:
                        found.suggest("user_id", participant_id, inferred=True, reason="user_id from first participant")
            else:
                report.missing_user_ids += 1
                found.issues.append("ID utilisateur manquant")
                if row.created_by:
                    found.suggest("user_id", row.created_by, inferred=False, reason="user_id from created_by")
                else:
                    found.unresolved = True

        if not row.training_id:
            report.missing_training_ids += 1
            found.issues.append("ID formation manquant")
            found.unresolved = True

        if row.type not in DOCUMENT_TYPE_VALUES:
            report.type_inconsistencies += 1
            found.issues.append(f"Type de document incohérent: {row.type}")
            alias = document_type_from_string(row.type, default=None)
            if alias is not None:
                found.suggest("type", alias.value, inferred=False, reason=f"type alias {row.type!r}")
            else:
                found.suggest("type", DocumentType.CONVENTION.value, inferred=True, reason="default document type")

        found.flush_into(report)

    logger.info(
        "Documents table diagnosed",
        extra={
            "records": report.total_records,
            "missing_user_ids": report.missing_user_ids,
            "missing_training_ids": report.missing_training_ids,
            "type_inconsistencies": report.type_inconsistencies,
            "suggested_fixes": len(report.suggested_fixes),
        },
    )
    return report


# ---------------------------------------------------------------------------
# CANONICAL TABLE
# ---------------------------------------------------------------------------


def user_id_from_url(url: Optional[str]) -> Optional[str]:
    """Old uploads were stored as .../{user_id}/{file}; take that folder."""
    if not url:
        return None
    parts = [part for part in url.split("?", 1)[0].split("/") if part]
    if len(parts) < 2:
        return None
    candidate = parts[-2]
    return candidate if is_uuid(candidate) else None


def _check_signature_type(row: models.DocumentSignature, found: _Findings, report: DiagnosticReport) -> Optional[SignatureType]:
    if row.signature_type in SIGNATURE_TYPE_VALUES:
        return SignatureType(row.signature_type)

    report.type_inconsistencies += 1
    found.issues.append(f"Type de signature incohérent: {row.signature_type}")
    alias = signature_type_from_string(row.signature_type)
    if alias is not None:
        found.suggest("signature_type", alias.value, inferred=False, reason=f"signature type alias {row.signature_type!r}")
        return alias
    inferred = infer_signature_type_from_url(row.signature_url)
    if inferred is not None:
        found.suggest("signature_type", inferred.value, inferred=True, reason="signature type from URL")
        return inferred
    found.unresolved = True
    return None


def _check_document_type(row: models.DocumentSignature, found: _Findings, report: DiagnosticReport) -> None:
    if row.document_type in DOCUMENT_TYPE_VALUES:
        return

    report.type_inconsistencies += 1
    found.issues.append(f"Type de document incohérent: {row.document_type}")
    alias = document_type_from_string(row.document_type, default=None)
    if alias is not None:
        found.suggest("document_type", alias.value, inferred=False, reason=f"document type alias {row.document_type!r}")
        return
    inferred = infer_document_type_from_url(row.signature_url)
    if inferred is not None:
        found.suggest("document_type", inferred.value, inferred=True, reason="document type from URL")
        return
    found.unresolved = True


def diagnose_document_signatures(db: Session) -> DiagnosticReport:
    rows = db.query(models.DocumentSignature).order_by(models.DocumentSignature.training_id).all()
    report = DiagnosticReport(table=SIGNATURES_TABLE, total_records=len(rows))

    for row in rows:
        found = _Findings(row.id, SIGNATURES_TABLE)
        signature_type = _check_signature_type(row, found, report)
        _check_document_type(row, found, report)

        if not row.user_id and (signature_type is None or requires_user_id(signature_type)):
            report.missing_user_ids += 1
            found.issues.append("ID utilisateur manquant")
            from_url = user_id_from_url(row.signature_url)
            created_by = (row.metadata_json or {}).get("created_by")
            if from_url:
                found.suggest("user_id", from_url, inferred=True, reason="user_id from URL folder")
            elif created_by:
                found.suggest("user_id", created_by, inferred=False, reason="user_id from created_by")
            else:
                found.unresolved = True

        if not row.training_id:
            report.missing_training_ids += 1
            found.issues.append("ID formation manquant")
            parsed = parse_asset_name(row.path or row.signature_url or "")
            if parsed is not None and parsed.training_id:
                found.suggest("training_id", parsed.training_id, inferred=True, reason="training_id from asset name")
            else:
                found.unresolved = True

        found.flush_into(report)

    logger.info(
        "Document signatures diagnosed",
        extra={
            "records": report.total_records,
            "missing_user_ids": report.missing_user_ids,
            "missing_training_ids": report.missing_training_ids,
            "type_inconsistencies": report.type_inconsistencies,
        },
    )
    return report


# ---------------------------------------------------------------------------
# TRAINER SIGNATURES
# ---------------------------------------------------------------------------


def _trainings_with_legacy_trainer_signature(db: Session) -> Set[str]:
    return {
        row.training_id
        for row in legacy_signature_rows(db)
        if row.training_id and signature_type_for_title(row.title) == SignatureType.TRAINER
    }


def _trainings_with_canonical_trainer_signature(db: Session) -> Set[str]:
    rows = (
        db.query(models.DocumentSignature.training_id)
        .filter(models.DocumentSignature.signature_type == SignatureType.TRAINER.value)
        .distinct()
        .all()
    )
    return {training_id for (training_id,) in rows if training_id}


def _trainings_with_stored_trainer_asset(assets: AssetStore) -> Set[str]:
    found: Set[str] = set()
    for name in assets.list_by_prefix("trainer_"):
        parsed = parse_asset_name(name)
        if parsed is not None and parsed.signature_type == SignatureType.TRAINER and parsed.training_id:
            found.add(parsed.training_id)
    return found


def find_missing_trainer_signatures(db: Session, assets: AssetStore) -> List[training_models.Training]:
    """
    Trainings whose trainer signature is absent from the legacy table, the
    canonical table and the asset storage listing alike.

    StoreFailure from the asset listing propagates: without the third
    source the answer would be wrong.
    """
    trainings = (
        db.query(training_models.Training)
        .filter(training_models.Training.status.notin_(_UNSIGNED_STATUSES))
        .order_by(training_models.Training.created_at, training_models.Training.id)
        .all()
    )
    if not trainings:
        return []

    signed = (
        _trainings_with_legacy_trainer_signature(db)
        | _trainings_with_canonical_trainer_signature(db)
        | _trainings_with_stored_trainer_asset(assets)
    )
    missing = [training for training in trainings if training.id not in signed]
    if missing:
        logger.info("Trainings without trainer signature", extra={"count": len(missing)})
    return missing


def to_missing_entries(trainings: List[training_models.Training]) -> List[MissingTrainerSignature]:
    return [MissingTrainerSignature(training_id=training.id, title=training.title) for training in trainings]


def run_full_diagnostic(db: Session, assets: AssetStore) -> FullDiagnostic:
    """Both table reports plus missing trainer signatures; errors annotate the result."""
    documents = DiagnosticReport(table=DOCUMENTS_TABLE)
    signatures = DiagnosticReport(table=SIGNATURES_TABLE)
    result = FullDiagnostic(documents=documents, document_signatures=signatures)
    try:
        result.documents = diagnose_documents_table(db)
        result.document_signatures = diagnose_document_signatures(db)
        result.missing_trainer_signatures = to_missing_entries(find_missing_trainer_signatures(db, assets))
    except Exception as exc:
        logger.exception("Signature diagnostic failed")
        result.error = str(exc)
    return result
