from __future__ import annotations

import pytest

from formadb.apps.signatures import diagnostic
from formadb.apps.trainings import models as training_models
from formadb.errors import StoreFailure
from formadb.utils.identifiers import generate_uuid7

from .helpers import create_legacy, create_participant, create_signature, create_training


def _fix_for(report, record_id):
    return next(fix for fix in report.suggested_fixes if fix.id == record_id)


def test_documents_table_trainer_row_without_user_uses_created_by(db_session):
    training = create_training(db_session)
    row = create_legacy(db_session, "Signature du formateur", training_id=training.id, created_by="creator-1")

    report = diagnostic.diagnose_documents_table(db_session)

    assert report.total_records == 1
    assert report.missing_user_ids == 0
    fix = _fix_for(report, row.id)
    assert fix.fixes == {"user_id": "creator-1"}
    assert fix.provenance == "certain"


def test_documents_table_trainer_row_falls_back_to_first_participant(db_session):
    training = create_training(db_session)
    first = create_participant(db_session, training)
    row = create_legacy(db_session, "Signature du formateur", training_id=training.id)

    fix = _fix_for(diagnostic.diagnose_documents_table(db_session), row.id)

    assert fix.fixes == {"user_id": first.id}
    assert fix.provenance == "inferred"


def test_documents_table_counts_each_problem(db_session):
    training = create_training(db_session)
    no_user = create_legacy(db_session, "Signature du participant", training_id=training.id)
    no_training = create_legacy(db_session, "Tampon de l'organisme")
    alias = create_legacy(db_session, "Signature du stagiaire", training_id=training.id, user_id="u-1", type="émargement")
    unknown_type = create_legacy(db_session, "Signature du stagiaire", training_id=training.id, user_id="u-2", type="facture")
    unknown_title = create_legacy(db_session, "Signature libre", training_id=training.id, user_id="u-3")
    create_legacy(db_session, "Programme de formation", training_id=training.id)

    report = diagnostic.diagnose_documents_table(db_session)

    assert report.total_records == 5
    assert report.missing_user_ids == 1
    assert report.missing_training_ids == 1
    assert report.type_inconsistencies == 3
    assert set(report.unresolved) == {no_user.id, no_training.id, unknown_title.id}
    assert _fix_for(report, alias.id).fixes == {"type": "emargement"}
    assert _fix_for(report, alias.id).provenance == "certain"
    assert _fix_for(report, unknown_type.id).fixes == {"type": "convention"}
    assert _fix_for(report, unknown_type.id).provenance == "inferred"
    assert report.has_problems


def test_document_signatures_suggestions(db_session):
    training = create_training(db_session)
    owner = generate_uuid7()
    from_url = create_signature(
        db_session,
        training.id,
        "participant",
        url=f"https://files.test/uploads/{owner}/sig.png",
    )
    alias = create_signature(db_session, training.id, "company_seal", user_id="u-1", document_type="certificat")
    by_url = create_signature(
        db_session, None, "stamp", user_id="u-2", url="https://files.test/signatures/seal_company_convention_t-9_u-2.png"
    )
    from_metadata = create_signature(db_session, training.id, "representative", metadata_json={"created_by": "u-7"})

    report = diagnostic.diagnose_document_signatures(db_session)

    assert _fix_for(report, from_url.id).fixes == {"user_id": owner}
    assert _fix_for(report, from_url.id).provenance == "inferred"
    assert _fix_for(report, alias.id).fixes == {"signature_type": "companySeal", "document_type": "certificate"}
    assert _fix_for(report, alias.id).provenance == "certain"
    assert _fix_for(report, by_url.id).fixes == {"signature_type": "companySeal", "training_id": "t-9"}
    assert _fix_for(report, by_url.id).provenance == "inferred"
    assert _fix_for(report, from_metadata.id).fixes == {"user_id": "u-7"}
    assert report.missing_user_ids == 2
    assert report.missing_training_ids == 1
    assert report.type_inconsistencies == 3


def test_trainer_signature_without_user_is_not_a_problem(db_session):
    training = create_training(db_session)
    create_signature(db_session, training.id, "trainer")
    create_signature(db_session, training.id, "organizationSeal")

    report = diagnostic.diagnose_document_signatures(db_session)

    assert report.total_records == 2
    assert not report.has_problems
    assert report.suggested_fixes == []


def test_missing_trainer_signatures_checks_all_three_sources(db_session, asset_store):
    in_legacy = create_training(db_session, title="legacy")
    create_legacy(db_session, "Signature du formateur", training_id=in_legacy.id)
    in_table = create_training(db_session, title="table")
    create_signature(db_session, in_table.id, "trainer")
    in_storage = create_training(db_session, title="storage")
    asset_store.upload(f"trainer_attestation_{in_storage.id}.png", b"x")
    missing = create_training(db_session, title="missing")
    create_training(db_session, title="draft", status=training_models.TrainingStatus.DRAFT.value)
    create_training(db_session, title="cancelled", status=training_models.TrainingStatus.CANCELLED.value)

    result = diagnostic.find_missing_trainer_signatures(db_session, asset_store)

    assert [training.id for training in result] == [missing.id]


def _broken_listing(prefix):
    raise StoreFailure("down")


def test_missing_trainer_signatures_propagates_storage_failure(db_session, asset_store, monkeypatch):
    create_training(db_session)
    monkeypatch.setattr(asset_store, "list_by_prefix", _broken_listing)
    with pytest.raises(StoreFailure):
        diagnostic.find_missing_trainer_signatures(db_session, asset_store)


def test_full_diagnostic_reports_errors_instead_of_raising(db_session, asset_store, monkeypatch):
    create_training(db_session)
    monkeypatch.setattr(asset_store, "list_by_prefix", _broken_listing)

    result = diagnostic.run_full_diagnostic(db_session, asset_store)

    assert result.error == "down"


def test_full_diagnostic_combines_reports(db_session, asset_store):
    training = create_training(db_session)

    result = diagnostic.run_full_diagnostic(db_session, asset_store)

    assert result.error is None
    assert [entry.training_id for entry in result.missing_trainer_signatures] == [training.id]
    assert result.has_problems
