# backend/formadb/apps/signatures/schemas.py

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import DocumentType, SignatureType

Provenance = Literal["certain", "inferred"]


# ---------------------------------------------------------------------------
# SIGNATURE RECORDS
# ---------------------------------------------------------------------------


class SignatureSave(BaseModel):
    training_id: str
    user_id: Optional[str] = None
    company_id: Optional[str] = None
    document_type: DocumentType
    signature_type: SignatureType
    signature_url: Optional[str] = Field(
        default=None,
        description="Existing asset URL; ignored when image bytes are uploaded with the save.",
    )
    shared_from_user_id: Optional[str] = None


class SignatureDelete(BaseModel):
    training_id: str
    user_id: Optional[str] = None
    document_type: DocumentType
    signature_type: SignatureType


class ShareRepresentativeRequest(BaseModel):
    training_id: str
    user_id: str
    company_id: str


class SignatureRead(BaseModel):
    id: str
    training_id: Optional[str] = None
    user_id: Optional[str] = None
    company_id: Optional[str] = None
    document_type: str
    signature_type: str
    signature_url: str
    path: Optional[str] = None
    shared_from_user_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# DIAGNOSTIC
# ---------------------------------------------------------------------------


class ProblematicRecord(BaseModel):
    id: str
    table: str
    issues: List[str] = Field(default_factory=list)


class SuggestedFix(BaseModel):
    id: str
    table: str
    fixes: Dict[str, Any]
    provenance: Provenance = "certain"
    reason: Optional[str] = None


class DiagnosticReport(BaseModel):
    table: str
    total_records: int = 0
    missing_user_ids: int = 0
    missing_training_ids: int = 0
    type_inconsistencies: int = 0
    problematic_records: List[ProblematicRecord] = Field(default_factory=list)
    suggested_fixes: List[SuggestedFix] = Field(default_factory=list)
    unresolved: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_problems(self) -> bool:
        return bool(
            self.missing_user_ids
            or self.missing_training_ids
            or self.type_inconsistencies
        )


class MissingTrainerSignature(BaseModel):
    training_id: str
    title: str

    model_config = ConfigDict(from_attributes=True)


class FullDiagnostic(BaseModel):
    documents: DiagnosticReport
    document_signatures: DiagnosticReport
    missing_trainer_signatures: List[MissingTrainerSignature] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def has_problems(self) -> bool:
        return (
            self.documents.has_problems
            or self.document_signatures.has_problems
            or bool(self.missing_trainer_signatures)
        )


# ---------------------------------------------------------------------------
# REPAIR / MIGRATION
# ---------------------------------------------------------------------------


class FixReport(BaseModel):
    attempted: int = 0
    applied: int = 0
    failed: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None


class MigrationReport(BaseModel):
    processed_records: int = 0
    successful_migrations: int = 0
    already_migrated: int = 0
    failed_migrations: List[str] = Field(default_factory=list)
    errors: Dict[str, str] = Field(default_factory=dict)
    renamed_assets: int = 0
    rename_errors: Dict[str, str] = Field(default_factory=dict)
    error: Optional[str] = None


class VerificationSummary(BaseModel):
    documents_count: int = 0
    document_signatures_count: int = 0
    missing_signatures: List[MissingTrainerSignature] = Field(default_factory=list)
    success: bool = False
    error: Optional[str] = None


class FullMigrationReport(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    initial_diagnostic: Optional[FullDiagnostic] = None
    fixes: Optional[FixReport] = None
    migration: Optional[MigrationReport] = None
    verification: Optional[VerificationSummary] = None
    final_diagnostic: Optional[FullDiagnostic] = None
    success: bool = False
    error: Optional[str] = None
