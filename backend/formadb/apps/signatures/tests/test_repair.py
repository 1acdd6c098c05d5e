from __future__ import annotations

from formadb.apps.audit import models as audit_models
from formadb.apps.signatures import diagnostic, models, repair
from formadb.apps.signatures.schemas import DiagnosticReport, SuggestedFix

from .helpers import create_legacy, create_participant, create_signature, create_training


def test_apply_fixes_from_full_diagnostic_records_provenance(db_session, asset_store):
    training = create_training(db_session)
    legacy_row = create_legacy(db_session, "Signature du formateur", training_id=training.id, created_by="creator-1")
    signature = create_signature(db_session, training.id, "company_seal", user_id="u-1", document_type="certificat")
    db_session.commit()

    report = diagnostic.run_full_diagnostic(db_session, asset_store)
    result = repair.apply_fixes(db_session, report, actor="operator")

    assert result.attempted == 2
    assert result.applied == 2
    assert result.failed == {}
    assert db_session.get(models.LegacyDocument, legacy_row.id).user_id == "creator-1"
    repaired = db_session.get(models.DocumentSignature, signature.id)
    assert repaired.signature_type == "companySeal"
    assert repaired.document_type == "certificate"
    assert repaired.metadata_json == {
        "provenance": "certain",
        "repaired_fields": ["document_type", "signature_type"],
    }

    events = db_session.query(audit_models.RepairEvent).order_by(audit_models.RepairEvent.entity_id).all()
    assert len(events) == 2
    by_entity = {event.entity_id: event for event in events}
    assert by_entity[legacy_row.id].before == {"user_id": None}
    assert by_entity[legacy_row.id].after == {"user_id": "creator-1"}
    assert by_entity[legacy_row.id].actor == "operator"
    assert by_entity[legacy_row.id].entity_type == "documents"


def test_failed_fix_is_rolled_back_alone(db_session):
    training = create_training(db_session)
    row = create_legacy(db_session, "Signature du participant", training_id=training.id)
    db_session.commit()
    report = DiagnosticReport(
        table="documents",
        suggested_fixes=[
            SuggestedFix(id="missing", table="documents", fixes={"user_id": "u-1"}),
            SuggestedFix(id=row.id, table="documents", fixes={"title": "Autre"}),
            SuggestedFix(id=row.id, table="documents", fixes={"user_id": "u-2"}, provenance="inferred"),
        ],
    )

    result = repair.apply_fixes(db_session, report)

    assert result.attempted == 3
    assert result.applied == 1
    assert set(result.failed) == {"missing", row.id}
    stored = db_session.get(models.LegacyDocument, row.id)
    assert stored.title == "Signature du participant"
    assert stored.user_id == "u-2"
    event = db_session.query(audit_models.RepairEvent).one()
    assert event.provenance == "inferred"


def test_fix_trainer_signature_user_ids(db_session):
    with_creator = create_training(db_session, title="a")
    with_participant = create_training(db_session, title="b")
    first = create_participant(db_session, with_participant)
    create_participant(db_session, with_participant, first_name="Zoé")
    empty = create_training(db_session, title="c")
    by_creator = create_signature(db_session, with_creator.id, "trainer", metadata_json={"created_by": "creator-1"})
    by_participant = create_signature(db_session, with_participant.id, "trainer")
    orphan = create_signature(db_session, empty.id, "trainer")
    db_session.commit()

    result = repair.fix_trainer_signature_user_ids(db_session, actor="job")

    assert result.attempted == 3
    assert result.applied == 2
    assert list(result.failed) == [orphan.id]
    assert db_session.get(models.DocumentSignature, by_creator.id).user_id == "creator-1"
    inferred = db_session.get(models.DocumentSignature, by_participant.id)
    assert inferred.user_id == first.id
    assert inferred.metadata_json["provenance"] == "inferred"
    assert db_session.get(models.DocumentSignature, orphan.id).user_id is None
