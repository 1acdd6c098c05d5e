from __future__ import annotations

from formadb.apps.signatures import models
from formadb.apps.trainings import models as training_models
from formadb.utils.identifiers import generate_uuid7


def create_training(db, status=training_models.TrainingStatus.CONFIRMED.value, title="Premiers secours"):
    training = training_models.Training(title=title, status=status)
    db.add(training)
    db.flush()
    return training


def create_participant(db, training, first_name="Jean"):
    participant = training_models.Participant(training_id=training.id, first_name=first_name, last_name="Dupont")
    db.add(participant)
    db.flush()
    return participant


def create_legacy(db, title, training_id=None, user_id=None, type="convention", url=None, created_by=None):
    row = models.LegacyDocument(
        title=title,
        type=type,
        training_id=training_id,
        user_id=user_id,
        url=url if url is not None else f"https://files.test/signatures/legacy/{generate_uuid7()}.png",
        created_by=created_by,
    )
    db.add(row)
    db.flush()
    return row


def create_signature(db, training_id, signature_type, document_type="convention", user_id=None, url=None, **kwargs):
    record = models.DocumentSignature(
        training_id=training_id,
        user_id=user_id,
        document_type=document_type,
        signature_type=signature_type,
        signature_url=url or "https://files.test/signatures/other.png",
        **kwargs,
    )
    db.add(record)
    db.flush()
    return record
