# backend/formadb/apps/trainings/services.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..signatures import models as signature_models
from ..signatures.enums import SignatureType
from . import models

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (copie)"

_COPIED_COLUMNS = (
    "content",
    "objectives",
    "evaluation_methods",
    "tracking_methods",
    "pedagogical_methods",
    "material_elements",
    "start_date",
    "end_date",
    "duration",
    "time_slots",
    "location",
    "trainer_id",
    "trainer_name",
    "price",
    "created_by",
)


class TrainingNotFound(Exception):
    """Raised when a training id does not exist."""


class ParticipantNotFound(Exception):
    """Raised when a participant is unknown or not attached to the training."""


@dataclass(frozen=True)
class TrainingBundle:
    training: models.Training
    participant: models.Participant
    company: Optional[models.Company]
    settings: Optional[models.OrganizationSettings]


def get_training(db: Session, training_id: str) -> models.Training:
    training = db.get(models.Training, training_id)
    if training is None:
        raise TrainingNotFound(training_id)
    return training


def get_training_bundle(db: Session, training_id: str, participant_id: str) -> TrainingBundle:
    """
    Resolve everything a document render needs, so the view model builder
    itself stays free of I/O.

    The participant's company wins over the training's company.
    """
    training = get_training(db, training_id)
    participant = db.get(models.Participant, participant_id)
    if participant is None or participant.training_id != training.id:
        raise ParticipantNotFound(participant_id)

    company_id = participant.company_id or training.company_id
    company = db.get(models.Company, company_id) if company_id else None
    return TrainingBundle(
        training=training,
        participant=participant,
        company=company,
        settings=load_organization_settings(db),
    )


def load_organization_settings(db: Session) -> Optional[models.OrganizationSettings]:
    """The single settings row; None until the organization has saved one."""
    return db.query(models.OrganizationSettings).order_by(models.OrganizationSettings.id).first()


def list_participants(db: Session, training_id: str):
    return (
        db.query(models.Participant)
        .filter(models.Participant.training_id == training_id)
        .order_by(models.Participant.created_at, models.Participant.id)
        .all()
    )


def duplicate_training(db: Session, training_id: str) -> models.Training:
    """
    Copy a training as a new draft.

    The copy has no company and no participants. Of the source's
    signatures only the organization seal is carried over.
    """
    source = get_training(db, training_id)
    copy = models.Training(
        title=f"{source.title}{COPY_SUFFIX}",
        status=models.TrainingStatus.DRAFT.value,
        company_id=None,
        **{column: getattr(source, column) for column in _COPIED_COLUMNS},
    )
    db.add(copy)
    db.flush()

    seals = (
        db.query(signature_models.DocumentSignature)
        .filter(
            signature_models.DocumentSignature.training_id == source.id,
            signature_models.DocumentSignature.signature_type == SignatureType.ORGANIZATION_SEAL.value,
        )
        .all()
    )
    for seal in seals:
        db.add(
            signature_models.DocumentSignature(
                training_id=copy.id,
                user_id=seal.user_id,
                document_type=seal.document_type,
                signature_type=seal.signature_type,
                signature_url=seal.signature_url,
                path=seal.path,
                metadata_json={"copied_from_training_id": source.id},
            )
        )
    db.flush()
    logger.info(
        "Training duplicated",
        extra={"source_id": source.id, "copy_id": copy.id, "seals_copied": len(seals)},
    )
    return copy
