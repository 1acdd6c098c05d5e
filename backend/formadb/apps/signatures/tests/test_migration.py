from __future__ import annotations

import pytest

from formadb.apps.signatures import migration, models
from formadb.apps.signatures.enums import DocumentType, SignatureType
from formadb.apps.signatures.store import SignatureStore
from formadb.errors import StoreFailure

from .helpers import create_legacy, create_participant, create_signature, create_training


def _legacy_with_asset(db, assets, title, training, name, **kwargs):
    assets.upload(name, b"image:" + name.encode())
    return create_legacy(db, title, training_id=training.id, url=assets.public_url(name), **kwargs)


def test_migration_maps_rows_and_reports_failures(db_session, asset_store):
    training = create_training(db_session)
    participant = create_participant(db_session, training)
    trainer_row = _legacy_with_asset(
        db_session, asset_store, "Signature du formateur", training, "legacy/trainer.png", created_by="creator-1"
    )
    no_asset = create_legacy(
        db_session, "Signature du participant", training_id=training.id, user_id=participant.id, type="attestation"
    )
    no_user = create_legacy(db_session, "Signature du participant", training_id=training.id)
    unknown = create_legacy(db_session, "Signature libre", training_id=training.id, user_id=participant.id)
    db_session.commit()
    progress = []

    report = migration.migrate_signatures_from_documents_table(
        db_session, asset_store, progress=lambda done, total: progress.append((done, total))
    )

    assert report.processed_records == 4
    assert report.successful_migrations == 2
    assert sorted(report.failed_migrations) == sorted([no_user.id, unknown.id])
    assert report.errors[no_user.id] == "ID utilisateur manquant"
    assert report.renamed_assets == 1
    assert list(report.rename_errors) == [no_asset.id]
    assert progress[-1] == (4, 4)

    store = SignatureStore(db_session, asset_store)
    trainer = store.find(training.id, SignatureType.TRAINER, DocumentType.CONVENTION)
    expected_name = f"trainer_convention_{training.id}.png"
    assert trainer.user_id == "creator-1"
    assert trainer.path == expected_name
    assert trainer.signature_url == asset_store.public_url(expected_name)
    assert trainer.metadata_json["original_document_id"] == trainer_row.id
    assert trainer.metadata_json["migrated_from"] == "documents"
    assert asset_store.download(expected_name) == b"image:legacy/trainer.png"
    assert asset_store.download("legacy/trainer.png") == b"image:legacy/trainer.png"
    assert db_session.get(models.LegacyDocument, trainer_row.id).url == trainer.signature_url

    participant_sig = store.find(training.id, SignatureType.PARTICIPANT, DocumentType.ATTESTATION, participant.id)
    assert participant_sig.signature_url == no_asset.url


def test_migration_is_idempotent(db_session, asset_store):
    training = create_training(db_session)
    participant = create_participant(db_session, training)
    _legacy_with_asset(db_session, asset_store, "Signature du formateur", training, "legacy/t.png", created_by="c-1")
    _legacy_with_asset(
        db_session, asset_store, "Signature du représentant", training, "legacy/r.png", user_id=participant.id
    )
    db_session.commit()

    first = migration.migrate_signatures_from_documents_table(db_session, asset_store)
    count = db_session.query(models.DocumentSignature).count()
    second = migration.migrate_signatures_from_documents_table(db_session, asset_store)

    assert first.successful_migrations == 2
    assert first.already_migrated == 0
    assert first.renamed_assets == 2
    assert second.already_migrated == 2
    assert second.renamed_assets == 0
    assert db_session.query(models.DocumentSignature).count() == count == 2


def test_existing_canonical_row_is_not_duplicated(db_session, asset_store):
    training = create_training(db_session)
    create_signature(db_session, training.id, "trainer", user_id="someone")
    create_legacy(db_session, "Signature du formateur", training_id=training.id, created_by="c-1")
    db_session.commit()

    report = migration.migrate_signatures_from_documents_table(db_session, asset_store)

    assert report.already_migrated == 1
    assert db_session.query(models.DocumentSignature).count() == 1


def test_rename_signature_file_updates_every_reference(db_session, asset_store):
    training = create_training(db_session)
    asset_store.upload("old/sig.png", b"sig")
    old_url = asset_store.public_url("old/sig.png")
    row = create_legacy(db_session, "Signature du formateur", training_id=training.id, url=old_url)
    record = create_signature(db_session, training.id, "trainer", url=old_url)

    new_url = migration.rename_signature_file(db_session, asset_store, old_url, "trainer_convention_x.png")

    assert new_url == "https://files.test/signatures/trainer_convention_x.png"
    assert row.url == new_url
    assert record.signature_url == new_url
    assert record.path == "trainer_convention_x.png"
    assert asset_store.download("old/sig.png") == b"sig"


def test_rename_signature_file_without_source(db_session, asset_store):
    with pytest.raises(StoreFailure):
        migration.rename_signature_file(db_session, asset_store, asset_store.public_url("gone.png"), "new.png")


def test_verify_migration_results(db_session, asset_store):
    training = create_training(db_session)
    participant = create_participant(db_session, training)
    create_legacy(db_session, "Signature du formateur", training_id=training.id, created_by="c-1")
    create_legacy(db_session, "Signature du stagiaire", training_id=training.id, user_id=participant.id)
    db_session.commit()

    before = migration.verify_migration_results(db_session, asset_store)
    migration.migrate_signatures_from_documents_table(db_session, asset_store)
    after = migration.verify_migration_results(db_session, asset_store)

    assert before.documents_count == 2
    assert before.document_signatures_count == 0
    assert not before.success
    assert after.document_signatures_count == 2
    assert after.missing_signatures == []
    assert after.success


def test_run_full_migration(db_session, asset_store):
    training = create_training(db_session)
    participant = create_participant(db_session, training)
    trainer_row = create_legacy(db_session, "Signature du formateur", training_id=training.id, created_by="c-1")
    create_legacy(db_session, "Signature du stagiaire", training_id=training.id, user_id=participant.id)
    db_session.commit()

    report = migration.run_full_migration(db_session, asset_store, actor="operator")

    assert report.error is None
    assert report.fixes.applied == 1
    assert db_session.get(models.LegacyDocument, trainer_row.id).user_id == "c-1"
    assert report.migration.successful_migrations == 2
    assert report.verification.success
    assert not report.final_diagnostic.has_problems
    assert report.success
    assert report.finished_at >= report.started_at


def test_run_full_migration_captures_step_errors(db_session, asset_store, monkeypatch):
    def _boom(*args, **kwargs):
        raise StoreFailure("commit failed")

    monkeypatch.setattr(migration, "migrate_signatures_from_documents_table", _boom)

    report = migration.run_full_migration(db_session, asset_store)

    assert report.error == "commit failed"
    assert not report.success
    assert report.initial_diagnostic is not None
    assert report.finished_at is not None


def test_organization_seals_of_different_trainings_keep_their_own_image(db_session, asset_store):
    first = create_training(db_session, title="Premiers secours")
    second = create_training(db_session, title="Sécurité incendie")
    assets = {first.id: b"seal-one", second.id: b"seal-two"}
    for training, name in ((first, "legacy/s1.png"), (second, "legacy/s2.png")):
        asset_store.upload(name, assets[training.id])
        create_legacy(db_session, "Tampon de l'organisme", training_id=training.id, url=asset_store.public_url(name))
    db_session.commit()

    report = migration.migrate_signatures_from_documents_table(db_session, asset_store)

    assert report.successful_migrations == 2
    assert report.renamed_assets == 2
    store = SignatureStore(db_session, asset_store)
    for training in (first, second):
        seal = store.find(training.id, SignatureType.ORGANIZATION_SEAL, DocumentType.CONVENTION)
        assert seal.path == f"organization_seal_convention_{training.id}.png"
        assert asset_store.download(seal.path) == assets[training.id]
