# backend/formadb/apps/signatures/models.py

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    UniqueConstraint,
)

from ...database import Base
from ...utils.identifiers import generate_uuid7


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# LEGACY STORE
# ---------------------------------------------------------------------------


class LegacyDocument(Base):
    """
    Generic "documents" rows.

    Signatures used to be saved here, tagged only by a French title such as
    "Signature du formateur". Read-only for the migration and diagnostic;
    nothing else writes signature rows to this table any more.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_training_title", "training_id", "title"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    title = Column(String(255), nullable=False)
    type = Column(String(64), nullable=True)
    training_id = Column(String(36), nullable=True, index=True)
    user_id = Column(String(36), nullable=True, index=True)
    company_id = Column(String(36), nullable=True)
    url = Column("file_url", Text, nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<LegacyDocument id={self.id} title={self.title!r}>"


# ---------------------------------------------------------------------------
# CANONICAL STORE
# ---------------------------------------------------------------------------


class DocumentSignature(Base):
    """
    One signature or stamp for (training, user, document type, signature type).

    Type columns are plain strings: rows written before the enums existed can
    hold other values, which the diagnostic reports.
    """

    __tablename__ = "document_signatures"
    __table_args__ = (
        UniqueConstraint(
            "training_id",
            "user_id",
            "document_type",
            "signature_type",
            name="uq_document_signatures_slot",
        ),
        Index("ix_document_signatures_training_type", "training_id", "signature_type"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid7, index=True)
    training_id = Column(String(36), ForeignKey("trainings.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(String(36), nullable=True, index=True)
    company_id = Column(String(36), nullable=True, index=True)
    document_type = Column(String(32), nullable=False)
    signature_type = Column(String(32), nullable=False)
    signature_url = Column(Text, nullable=False)
    path = Column(String(512), nullable=True)
    shared_from_user_id = Column(String(36), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<DocumentSignature id={self.id} training={self.training_id} "
            f"{self.signature_type}/{self.document_type} user={self.user_id}>"
        )
