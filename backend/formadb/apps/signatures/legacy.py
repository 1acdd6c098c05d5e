# backend/formadb/apps/signatures/legacy.py
"""
Everything that knows the shape of signature rows in the legacy "documents"
table, plus the narrow URL heuristics used to repair canonical rows.

Once migration is verified on every environment this module, diagnostic.py
and migration.py can be removed together.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..trainings import models as training_models
from . import models
from .enums import DocumentType, SignatureType

# Exact titles written by the old signature pads. DocumentManager appended
# " pour {document}" to some of them.
LEGACY_TITLES: Sequence[Tuple[str, SignatureType]] = (
    ("signature du formateur", SignatureType.TRAINER),
    ("signature de l'apprenant", SignatureType.PARTICIPANT),
    ("signature du participant", SignatureType.PARTICIPANT),
    ("signature du stagiaire", SignatureType.PARTICIPANT),
    ("signature du représentant", SignatureType.REPRESENTATIVE),
    ("signature du representant", SignatureType.REPRESENTATIVE),
    ("tampon de l'entreprise", SignatureType.COMPANY_SEAL),
    ("tampon de l'organisme", SignatureType.ORGANIZATION_SEAL),
)

TRAINER_TITLE = "Signature du formateur"

# Ordered: the first substring found in a URL wins.
URL_SIGNATURE_HINTS: Sequence[Tuple[str, SignatureType]] = (
    ("organization_seal", SignatureType.ORGANIZATION_SEAL),
    ("organizationseal", SignatureType.ORGANIZATION_SEAL),
    ("seal_company", SignatureType.COMPANY_SEAL),
    ("companyseal", SignatureType.COMPANY_SEAL),
    ("trainer", SignatureType.TRAINER),
    ("representative", SignatureType.REPRESENTATIVE),
    ("participant", SignatureType.PARTICIPANT),
)

URL_DOCUMENT_HINTS: Sequence[Tuple[str, DocumentType]] = (
    ("convention", DocumentType.CONVENTION),
    ("emargement", DocumentType.ATTENDANCE_SHEET),
    ("attendance_sheet", DocumentType.ATTENDANCE_SHEET),
    ("attestation", DocumentType.ATTESTATION),
    ("certificate", DocumentType.CERTIFICATE),
)

_APOSTROPHES = re.compile(r"[’‘`´]")


def _clean_title(title: Optional[str]) -> str:
    return _APOSTROPHES.sub("'", (title or "").strip().lower())


def signature_type_for_title(title: Optional[str]) -> Optional[SignatureType]:
    """Map a legacy title to its signature type; None when not recognized."""
    cleaned = _clean_title(title)
    for base, signature_type in LEGACY_TITLES:
        if cleaned == base or cleaned.startswith(base + " pour "):
            return signature_type
    return None


def infer_signature_type_from_url(url: Optional[str]) -> Optional[SignatureType]:
    lowered = (url or "").lower()
    for needle, signature_type in URL_SIGNATURE_HINTS:
        if needle in lowered:
            return signature_type
    return None


def infer_document_type_from_url(url: Optional[str]) -> Optional[DocumentType]:
    """Only an unambiguous hint is returned."""
    lowered = (url or "").lower()
    found = {document_type for needle, document_type in URL_DOCUMENT_HINTS if needle in lowered}
    if len(found) == 1:
        return found.pop()
    return None


def legacy_signature_rows(db: Session) -> List[models.LegacyDocument]:
    """Signature and stamp rows of the documents table, grouped by training."""
    return (
        db.query(models.LegacyDocument)
        .filter(
            or_(
                models.LegacyDocument.title.like("Signature%"),
                models.LegacyDocument.title.like("Tampon%"),
            )
        )
        .order_by(models.LegacyDocument.training_id, models.LegacyDocument.created_at, models.LegacyDocument.id)
        .all()
    )


def first_participant_id(db: Session, training_id: Optional[str]) -> Optional[str]:
    if not training_id:
        return None
    participant = (
        db.query(training_models.Participant)
        .filter(training_models.Participant.training_id == training_id)
        .order_by(training_models.Participant.created_at, training_models.Participant.id)
        .first()
    )
    return participant.id if participant else None
