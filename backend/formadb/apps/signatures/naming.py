# backend/formadb/apps/signatures/naming.py
"""
Canonical asset names for signature images.

Names are derived from (signature type, document type, training, user) only,
so saving the same signature twice overwrites one object instead of leaving
timestamped copies behind.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .enums import DocumentType, SignatureType, requires_user_id

ASSET_EXTENSION = ".png"

_PREFIXES = {
    SignatureType.PARTICIPANT: "participant",
    SignatureType.REPRESENTATIVE: "representative",
    SignatureType.TRAINER: "trainer",
    SignatureType.COMPANY_SEAL: "seal_company",
    SignatureType.ORGANIZATION_SEAL: "organization_seal",
}

# One asset per training and document, whoever signed it.
_UNBOUND = (SignatureType.TRAINER, SignatureType.ORGANIZATION_SEAL)

_ID = r"[0-9A-Za-z-]+"
_NAME_PATTERN = re.compile(
    r"^(?P<prefix>participant|representative|trainer|seal_company|organization_seal)"
    r"_(?P<doc>[a-z]+)"
    rf"_(?P<training>{_ID})"
    rf"(?:_(?P<user>{_ID}))?"
    + re.escape(ASSET_EXTENSION)
    + "$"
)


@dataclass(frozen=True)
class ParsedAssetName:
    signature_type: SignatureType
    document_type: Optional[DocumentType]
    training_id: Optional[str]
    user_id: Optional[str]


def canonical_asset_name(
    signature_type: SignatureType,
    document_type: DocumentType,
    training_id: str,
    user_id: Optional[str] = None,
) -> str:
    """
    Build the storage name for a signature asset.

    participant_{doc}_{training}_{user}.png
    representative_{doc}_{training}_{user}.png
    trainer_{doc}_{training}.png
    seal_company_{doc}_{training}_{user}.png
    organization_seal_{doc}_{training}.png
    """
    signature_type = SignatureType(signature_type)
    document_type = DocumentType(document_type)
    if not training_id:
        raise ValueError("training_id is required for a signature asset name")
    if requires_user_id(signature_type) and not user_id:
        raise ValueError(f"user_id is required for {signature_type.value} signatures")

    parts = [_PREFIXES[signature_type], document_type.value, str(training_id)]
    if signature_type not in _UNBOUND:
        parts.append(str(user_id))
    return "_".join(parts) + ASSET_EXTENSION


def trainer_asset_prefix(document_type: DocumentType, training_id: str) -> str:
    return f"{_PREFIXES[SignatureType.TRAINER]}_{DocumentType(document_type).value}_{training_id}"


def parse_asset_name(name: str) -> Optional[ParsedAssetName]:
    """Inverse of canonical_asset_name; None for names outside the scheme."""
    base = name.rsplit("/", 1)[-1]
    match = _NAME_PATTERN.match(base)
    if not match:
        return None
    try:
        document_type = DocumentType(match.group("doc"))
    except ValueError:
        return None
    prefix = match.group("prefix")
    signature_type = next(key for key, value in _PREFIXES.items() if value == prefix)
    user_id = match.group("user")
    if signature_type in _UNBOUND and user_id:
        return None
    if signature_type not in _UNBOUND and not user_id:
        return None
    return ParsedAssetName(signature_type, document_type, match.group("training"), user_id)


def is_canonical_name(name: Optional[str], expected: str) -> bool:
    return bool(name) and name.rsplit("/", 1)[-1] == expected
