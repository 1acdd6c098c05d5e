# backend/formadb/apps/signatures/router.py

from __future__ import annotations

import base64
import binascii
import hmac
import logging
import os
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from ...database import get_db
from ...errors import StoreFailure
from ..audit import schemas as audit_schemas
from ..audit import services as audit_services
from . import schemas
from .diagnostic import run_full_diagnostic
from .migration import migrate_signatures_from_documents_table, run_full_migration, verify_migration_results
from .repair import apply_fixes
from .storage import AssetStore, get_asset_store
from .store import SignatureStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/signatures", tags=["signatures"])


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


def _require_operator(x_admin_token: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    Guard for the repair/migration actions.

    When ADMIN_API_TOKEN is unset (local development) every caller passes.
    """
    expected = os.getenv("ADMIN_API_TOKEN", "")
    if not expected:
        return None
    if not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator token required.",
        )
    return "operator"


def _decode_image(data: Optional[str]) -> Optional[bytes]:
    if not data:
        return None
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="signature_data is not valid base64.",
        )


class SignatureSavePayload(schemas.SignatureSave):
    signature_data: Optional[str] = None
    share_with_company: bool = False


# ---------------------------------------------------------------------------
# SIGNATURE RECORDS
# ---------------------------------------------------------------------------


@router.get("/trainings/{training_id}", response_model=List[schemas.SignatureRead])
def list_training_signatures(
    training_id: str,
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
):
    return SignatureStore(db, assets).list_for_training(training_id)


@router.put("/", response_model=schemas.SignatureRead)
def save_signature(
    payload: SignatureSavePayload,
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
):
    store = SignatureStore(db, assets)
    data = schemas.SignatureSave(**payload.model_dump(exclude={"signature_data", "share_with_company"}))
    try:
        record = store.save(data, image_bytes=_decode_image(payload.signature_data))
        if payload.share_with_company and data.company_id and data.user_id:
            store.share_representative_signature(data.training_id, data.user_id, data.company_id)
        db.commit()
    except ValueError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoreFailure as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))
    db.refresh(record)
    return record


@router.delete("/", status_code=status.HTTP_204_NO_CONTENT)
def delete_signature(
    payload: schemas.SignatureDelete,
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
):
    deleted = SignatureStore(db, assets).delete(
        payload.signature_type,
        payload.document_type,
        payload.training_id,
        payload.user_id,
    )
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Signature not found.")
    db.commit()


@router.post("/share-representative")
def share_representative(
    payload: schemas.ShareRepresentativeRequest,
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
):
    shared = SignatureStore(db, assets).share_representative_signature(
        payload.training_id, payload.user_id, payload.company_id
    )
    db.commit()
    return {"shared": shared}


# ---------------------------------------------------------------------------
# OPERATOR ACTIONS
# ---------------------------------------------------------------------------


@router.post("/diagnostic", response_model=schemas.FullDiagnostic)
def diagnostic(
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
    _operator: Optional[str] = Depends(_require_operator),
):
    return run_full_diagnostic(db, assets)


@router.post("/fixes", response_model=schemas.FixReport)
def fixes(
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
    operator: Optional[str] = Depends(_require_operator),
):
    report = run_full_diagnostic(db, assets)
    if report.error:
        return schemas.FixReport(error=report.error)
    try:
        return apply_fixes(db, report, actor=operator)
    except StoreFailure as exc:
        logger.warning("Applying signature fixes failed", extra={"error": str(exc)})
        return schemas.FixReport(error=str(exc))


@router.post("/migration", response_model=schemas.MigrationReport)
def migration(
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
    _operator: Optional[str] = Depends(_require_operator),
):
    try:
        return migrate_signatures_from_documents_table(db, assets)
    except StoreFailure as exc:
        logger.warning("Signature migration failed", extra={"error": str(exc)})
        return schemas.MigrationReport(error=str(exc))


@router.post("/migration/verify", response_model=schemas.VerificationSummary)
def verify(
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
    _operator: Optional[str] = Depends(_require_operator),
):
    return verify_migration_results(db, assets)


@router.post("/migration/full", response_model=schemas.FullMigrationReport)
def full_migration(
    db: Session = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
    operator: Optional[str] = Depends(_require_operator),
):
    return run_full_migration(db, assets, actor=operator)


@router.get("/repairs", response_model=List[audit_schemas.RepairEventRead])
def list_repairs(
    entity_id: Optional[str] = None,
    db: Session = Depends(get_db),
    _operator: Optional[str] = Depends(_require_operator),
):
    return audit_services.list_repair_events(db, entity_id=entity_id)
