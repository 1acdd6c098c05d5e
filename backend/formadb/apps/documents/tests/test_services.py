from __future__ import annotations

import base64
from datetime import date

import pytest
from fastapi import HTTPException
from pdfrw import PdfReader

from formadb.apps.documents import router as documents_router_module
from formadb.apps.documents import services
from formadb.apps.documents.router import download_bundle, download_document, preview_document
from formadb.apps.signatures import models as signature_models
from formadb.apps.signatures.enums import DocumentType, SignatureType
from formadb.apps.signatures.naming import canonical_asset_name
from formadb.apps.trainings import models
from formadb.apps.trainings.services import ParticipantNotFound
from formadb.errors import RENDER_FAILURE_MESSAGE, RenderFailure

from .fakes import FakeRenderer

FAKE_PDF = b"%PDF-1.4 fake"


def _create_training(db, **kwargs):
    values = {
        "title": "Sécurité incendie",
        "objectives": '["Évacuer les locaux"]',
        "start_date": date(2024, 3, 4),
        "end_date": date(2024, 3, 5),
        "status": models.TrainingStatus.CONFIRMED.value,
        "content": "Programme détaillé",
    }
    values.update(kwargs)
    training = models.Training(**values)
    db.add(training)
    db.flush()
    return training


def _create_participant(db, training, first_name="Jean", last_name="Dupont", **kwargs):
    participant = models.Participant(
        training_id=training.id, first_name=first_name, last_name=last_name, job_position="Agent", **kwargs
    )
    db.add(participant)
    db.flush()
    return participant


def _store_signature(db, assets, training, signature_type, document_type, user_id=None, data=b"png-bytes"):
    name = canonical_asset_name(signature_type, document_type, training.id, user_id)
    assets.upload(name, data, overwrite=True)
    record = signature_models.DocumentSignature(
        training_id=training.id,
        user_id=user_id,
        document_type=document_type.value,
        signature_type=signature_type.value,
        signature_url=assets.public_url(name),
        path=name,
    )
    db.add(record)
    db.flush()
    return record


@pytest.fixture()
def fake_pdf(monkeypatch):
    calls = []

    def _render(html, **kwargs):
        calls.append(html)
        return FAKE_PDF

    monkeypatch.setattr(services, "render_to_pdf", _render)
    return calls


def test_router_has_expected_routes():
    paths = {route.path for route in documents_router_module.router.routes}
    assert "/documents/trainings/{training_id}/participants/{participant_id}/{kind}" in paths
    assert "/documents/trainings/{training_id}/participants/{participant_id}/{kind}/html" in paths
    assert "/documents/trainings/{training_id}/bundle/{kind}" in paths


def test_collect_signatures_embeds_images_and_scopes_by_participant(db_session, asset_store):
    training = _create_training(db_session)
    jean = _create_participant(db_session, training)
    marie = _create_participant(db_session, training, first_name="Marie")
    _store_signature(db_session, asset_store, training, SignatureType.PARTICIPANT, DocumentType.ATTESTATION, jean.id)
    _store_signature(db_session, asset_store, training, SignatureType.TRAINER, DocumentType.ATTESTATION)

    for_jean = services.collect_signatures(db_session, asset_store, DocumentType.ATTESTATION, training.id, jean.id)
    for_marie = services.collect_signatures(db_session, asset_store, DocumentType.ATTESTATION, training.id, marie.id)

    expected = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode("ascii")
    assert for_jean["participant"] == expected
    assert for_jean["trainer"] == expected
    assert for_jean["organizationSeal"] is None
    assert for_marie["participant"] is None
    assert for_marie["trainer"] == expected


def test_missing_signature_image_renders_empty_slot(db_session, asset_store):
    training = _create_training(db_session)
    participant = _create_participant(db_session, training)
    record = _store_signature(
        db_session, asset_store, training, SignatureType.TRAINER, DocumentType.CONVENTION
    )
    (asset_store.root / record.path).unlink()

    images = services.collect_signatures(db_session, asset_store, DocumentType.CONVENTION, training.id, participant.id)
    assert images["trainer"] is None


def test_render_participant_html_lists_all_participants_on_convention(db_session, asset_store):
    training = _create_training(db_session)
    jean = _create_participant(db_session, training)
    _create_participant(db_session, training, first_name="Marie", last_name="Curie")

    html = services.render_participant_html(db_session, asset_store, training.id, jean.id, DocumentType.CONVENTION)

    assert "Marie Curie" in html
    assert "Évacuer les locaux" in html
    assert "Programme détaillé" in html


def test_render_participant_document_uses_filename_and_saves_copy(db_session, asset_store, fake_pdf, tmp_path, monkeypatch):
    monkeypatch.setattr(services, "PDF_OUTPUT_DIR", str(tmp_path / "pdf"))
    training = _create_training(db_session)
    participant = _create_participant(db_session, training)

    document = services.render_participant_document(
        db_session, asset_store, training.id, participant.id, DocumentType.ATTESTATION
    )

    assert document.filename == "Attestation_Jean_Dupont_Sécurité_incendie.pdf"
    assert document.pdf == FAKE_PDF
    assert (tmp_path / "pdf" / document.filename).read_bytes() == FAKE_PDF


def test_render_training_bundle_merges_one_document_per_participant(db_session, asset_store):
    training = _create_training(db_session)
    _create_participant(db_session, training)
    _create_participant(db_session, training, first_name="Marie")
    renderer = FakeRenderer(width=360, height=400)

    document = services.render_training_bundle(
        db_session, asset_store, training.id, DocumentType.CERTIFICATE, context=renderer
    )

    assert document.filename == "Certificat_Sécurité_incendie.pdf"
    assert len(renderer.seen) == 2
    assert len(PdfReader(fdata=document.pdf).pages) == 2


def test_render_training_bundle_without_participants(db_session, asset_store):
    training = _create_training(db_session)
    with pytest.raises(ParticipantNotFound):
        services.render_training_bundle(db_session, asset_store, training.id, DocumentType.CONVENTION)


def test_download_document_sets_content_disposition(db_session, asset_store, fake_pdf):
    training = _create_training(db_session)
    participant = _create_participant(db_session, training)

    response = download_document(
        training.id, participant.id, DocumentType.CONVENTION, db=db_session, assets=asset_store
    )

    assert response.media_type == "application/pdf"
    assert response.body == FAKE_PDF
    disposition = response.headers["content-disposition"]
    assert 'filename="Convention_Jean_Dupont_Securite_incendie.pdf"' in disposition
    assert "filename*=UTF-8''Convention_Jean_Dupont_S%C3%A9curit%C3%A9_incendie.pdf" in disposition


def test_download_document_unknown_participant(db_session, asset_store, fake_pdf):
    training = _create_training(db_session)
    with pytest.raises(HTTPException) as excinfo:
        download_document(training.id, "missing", DocumentType.CONVENTION, db=db_session, assets=asset_store)
    assert excinfo.value.status_code == 404
    assert fake_pdf == []


def test_download_document_unknown_training(db_session, asset_store):
    with pytest.raises(HTTPException) as excinfo:
        download_document("missing", "missing", DocumentType.CONVENTION, db=db_session, assets=asset_store)
    assert excinfo.value.status_code == 404
    assert excinfo.value.detail == "Training not found."


def test_download_document_render_failure_is_500(db_session, asset_store, monkeypatch):
    training = _create_training(db_session)
    participant = _create_participant(db_session, training)

    def _fail(html, **kwargs):
        raise RenderFailure()

    monkeypatch.setattr(services, "render_to_pdf", _fail)
    with pytest.raises(HTTPException) as excinfo:
        download_document(training.id, participant.id, DocumentType.CONVENTION, db=db_session, assets=asset_store)
    assert excinfo.value.status_code == 500
    assert excinfo.value.detail == RENDER_FAILURE_MESSAGE


def test_preview_document_returns_html(db_session, asset_store):
    training = _create_training(db_session)
    participant = _create_participant(db_session, training)

    response = preview_document(
        training.id, participant.id, DocumentType.ATTENDANCE_SHEET, db=db_session, assets=asset_store
    )

    assert response.media_type == "text/html"
    assert b"FEUILLE D" in response.body


def test_download_bundle_wraps_merge_failure(db_session, asset_store, fake_pdf, monkeypatch):
    training = _create_training(db_session)
    _create_participant(db_session, training)
    monkeypatch.setattr(services, "RendererContext", _NullRendererContext)

    # FAKE_PDF is not a real PDF, so merging fails.
    with pytest.raises(HTTPException) as excinfo:
        download_bundle(training.id, DocumentType.CONVENTION, db=db_session, assets=asset_store)
    assert excinfo.value.status_code == 500
    assert len(fake_pdf) == 1


class _NullRendererContext:
    def __init__(self, **kwargs):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


def test_organization_settings_reach_the_document(db_session, asset_store):
    db_session.add(models.OrganizationSettings(organization_name="Forma Nord", city="Lille"))
    training = _create_training(db_session)
    participant = _create_participant(db_session, training)

    html = services.render_participant_html(db_session, asset_store, training.id, participant.id, DocumentType.ATTESTATION)

    assert "Forma Nord" in html
    assert "Fait à Lille" in html
