# backend/formadb/apps/signatures/enums.py

from __future__ import annotations

import enum
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class SignatureType(str, enum.Enum):
    PARTICIPANT = "participant"
    REPRESENTATIVE = "representative"
    TRAINER = "trainer"
    COMPANY_SEAL = "companySeal"
    ORGANIZATION_SEAL = "organizationSeal"


class DocumentType(str, enum.Enum):
    CONVENTION = "convention"
    ATTESTATION = "attestation"
    ATTENDANCE_SHEET = "emargement"
    CERTIFICATE = "certificate"


SIGNATURE_TYPE_VALUES = frozenset(item.value for item in SignatureType)
DOCUMENT_TYPE_VALUES = frozenset(item.value for item in DocumentType)

_DOCUMENT_TYPE_ALIASES = {
    "convention": DocumentType.CONVENTION,
    "attestation": DocumentType.ATTESTATION,
    "emargement": DocumentType.ATTENDANCE_SHEET,
    "émargement": DocumentType.ATTENDANCE_SHEET,
    "attendance_sheet": DocumentType.ATTENDANCE_SHEET,
    "attendance-sheet": DocumentType.ATTENDANCE_SHEET,
    "certificate": DocumentType.CERTIFICATE,
    "certificat": DocumentType.CERTIFICATE,
}

_SIGNATURE_TYPE_ALIASES = {
    "participant": SignatureType.PARTICIPANT,
    "representative": SignatureType.REPRESENTATIVE,
    "representant": SignatureType.REPRESENTATIVE,
    "représentant": SignatureType.REPRESENTATIVE,
    "trainer": SignatureType.TRAINER,
    "formateur": SignatureType.TRAINER,
    "companyseal": SignatureType.COMPANY_SEAL,
    "company_seal": SignatureType.COMPANY_SEAL,
    "company-seal": SignatureType.COMPANY_SEAL,
    "seal_company": SignatureType.COMPANY_SEAL,
    "organizationseal": SignatureType.ORGANIZATION_SEAL,
    "organization_seal": SignatureType.ORGANIZATION_SEAL,
    "organization-seal": SignatureType.ORGANIZATION_SEAL,
    "seal_organization": SignatureType.ORGANIZATION_SEAL,
}


def document_type_from_string(
    value: Optional[str],
    default: Optional[DocumentType] = DocumentType.CONVENTION,
) -> Optional[DocumentType]:
    """
    Tolerant parse of a stored document type.

    Unknown values fall back to ``default`` (convention unless told otherwise).
    """
    if value:
        found = _DOCUMENT_TYPE_ALIASES.get(value.strip().lower())
        if found is not None:
            return found
    if value:
        logger.info("Unknown document type, using default", extra={"value": value, "default": default})
    return default


def signature_type_from_string(value: Optional[str]) -> Optional[SignatureType]:
    """Tolerant parse of a stored signature type; unknown values give None."""
    if not value:
        return None
    return _SIGNATURE_TYPE_ALIASES.get(value.strip().lower())


def is_seal_type(signature_type: SignatureType) -> bool:
    return signature_type in (SignatureType.COMPANY_SEAL, SignatureType.ORGANIZATION_SEAL)


def requires_user_id(signature_type: SignatureType) -> bool:
    """Trainer signatures and the organization seal are not bound to a user."""
    return signature_type not in (SignatureType.TRAINER, SignatureType.ORGANIZATION_SEAL)


def determine_signature_type(
    document_type: DocumentType,
    is_student: bool = False,
    is_trainer: bool = False,
) -> SignatureType:
    if is_trainer:
        return SignatureType.TRAINER
    if document_type == DocumentType.CONVENTION and is_student:
        return SignatureType.REPRESENTATIVE
    return SignatureType.PARTICIPANT
