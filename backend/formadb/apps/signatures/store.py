# backend/formadb/apps/signatures/store.py
"""
Lookup/save/delete of signatures against the canonical table only.

The legacy "documents" rows are never read here; the migration and
diagnostic modules own everything that knows about them. The store
flushes but never commits: the caller owns the transaction.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..trainings import models as training_models
from . import models
from .enums import DOCUMENT_TYPE_VALUES, DocumentType, SignatureType, requires_user_id
from .naming import canonical_asset_name
from .schemas import SignatureSave
from .storage import AssetStore

logger = logging.getLogger(__name__)


class SignatureStore:
    def __init__(self, db: Session, assets: AssetStore):
        self.db = db
        self.assets = assets

    # ------------------------------------------------------------------
    # READ
    # ------------------------------------------------------------------

    def find(
        self,
        training_id: str,
        signature_type: SignatureType,
        document_type: DocumentType,
        user_id: Optional[str] = None,
    ) -> Optional[models.DocumentSignature]:
        signature_type = SignatureType(signature_type)
        query = self.db.query(models.DocumentSignature).filter(
            models.DocumentSignature.training_id == training_id,
            models.DocumentSignature.signature_type == signature_type.value,
            models.DocumentSignature.document_type == DocumentType(document_type).value,
        )
        if requires_user_id(signature_type):
            query = query.filter(models.DocumentSignature.user_id == user_id)
        return query.order_by(models.DocumentSignature.created_at.desc()).first()

    def list_for_training(self, training_id: str) -> List[models.DocumentSignature]:
        return (
            self.db.query(models.DocumentSignature)
            .filter(models.DocumentSignature.training_id == training_id)
            .order_by(models.DocumentSignature.created_at.asc())
            .all()
        )

    # ------------------------------------------------------------------
    # WRITE
    # ------------------------------------------------------------------

    def save(self, data: SignatureSave, image_bytes: Optional[bytes] = None) -> models.DocumentSignature:
        """
        Upsert the signature slot described by ``data``.

        When ``image_bytes`` is given the image is stored under its canonical
        name (overwriting any previous image for the same slot).
        """
        signature_type = SignatureType(data.signature_type)
        document_type = DocumentType(data.document_type)
        user_id = data.user_id if requires_user_id(signature_type) else (data.user_id or None)
        if requires_user_id(signature_type) and not user_id:
            raise ValueError(f"user_id is required for {signature_type.value} signatures")

        path: Optional[str] = None
        if image_bytes is not None:
            path = canonical_asset_name(signature_type, document_type, data.training_id, user_id)
            self.assets.upload(path, image_bytes, overwrite=True)
            signature_url = self.assets.public_url(path)
        elif data.signature_url:
            signature_url = data.signature_url
            path = self.assets.name_from_url(signature_url)
        else:
            raise ValueError("Either image bytes or signature_url is required")

        values = {
            "user_id": user_id,
            "company_id": data.company_id,
            "signature_url": signature_url,
            "path": path,
            "shared_from_user_id": data.shared_from_user_id,
        }
        existing = self.find(data.training_id, signature_type, document_type, user_id)
        if existing is not None:
            return self._update(existing, values)

        record = models.DocumentSignature(
            training_id=data.training_id,
            document_type=document_type.value,
            signature_type=signature_type.value,
            **values,
        )
        try:
            with self.db.begin_nested():
                self.db.add(record)
                self.db.flush()
        except IntegrityError:
            # Another writer filled the slot between find() and insert.
            existing = self.find(data.training_id, signature_type, document_type, user_id)
            if existing is None:
                raise
            return self._update(existing, values)
        logger.info(
            "Signature saved",
            extra={
                "training_id": data.training_id,
                "signature_type": signature_type.value,
                "document_type": document_type.value,
                "user_id": user_id,
            },
        )
        return record

    def _update(self, record: models.DocumentSignature, values: dict) -> models.DocumentSignature:
        for key, value in values.items():
            if key == "company_id" and value is None:
                continue
            setattr(record, key, value)
        self.db.flush()
        return record

    def delete(
        self,
        signature_type: SignatureType,
        document_type: DocumentType,
        training_id: str,
        user_id: Optional[str] = None,
    ) -> bool:
        record = self.find(training_id, signature_type, document_type, user_id)
        if record is None:
            return False
        self.db.delete(record)
        self.db.flush()
        return True

    def share_representative_signature(self, training_id: str, user_id: str, company_id: str) -> bool:
        """
        Copy ``user_id``'s representative signatures to every other learner of
        the same company on the same training.

        Existing copies are overwritten in place. Returns False when the
        source has no representative signature.
        """
        sources = (
            self.db.query(models.DocumentSignature)
            .filter(
                models.DocumentSignature.training_id == training_id,
                models.DocumentSignature.user_id == user_id,
                models.DocumentSignature.signature_type == SignatureType.REPRESENTATIVE.value,
            )
            .all()
        )
        if not sources:
            return False

        targets = (
            self.db.query(training_models.Participant)
            .filter(
                training_models.Participant.training_id == training_id,
                training_models.Participant.company_id == company_id,
                training_models.Participant.id != user_id,
            )
            .all()
        )
        for source in sources:
            if source.document_type not in DOCUMENT_TYPE_VALUES:
                continue
            for target in targets:
                self.save(
                    SignatureSave(
                        training_id=training_id,
                        user_id=target.id,
                        company_id=company_id,
                        document_type=DocumentType(source.document_type),
                        signature_type=SignatureType.REPRESENTATIVE,
                        signature_url=source.signature_url,
                        shared_from_user_id=user_id,
                    )
                )
        logger.info(
            "Representative signature shared",
            extra={"training_id": training_id, "user_id": user_id, "targets": len(targets)},
        )
        return True
