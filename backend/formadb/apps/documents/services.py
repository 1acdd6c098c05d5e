# backend/formadb/apps/documents/services.py

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from ...errors import RenderFailure, StoreFailure
from ..signatures import models as signature_models
from ..signatures.enums import DocumentType, SignatureType
from ..signatures.storage import AssetStore
from ..signatures.store import SignatureStore
from ..trainings import services as training_services
from .pdf_renderer import DOCUMENT_LABELS, PageConfig, bundle_pdfs, document_filename, render_to_pdf
from .rasterizer import RendererContext
from .templates import render_document_html
from .view_model import build_document_model

logger = logging.getLogger(__name__)

PDF_OUTPUT_DIR = os.getenv("PDF_OUTPUT_DIR", "").strip()

# Signature slots keyed to the participant being rendered.
_PARTICIPANT_SLOTS = (SignatureType.PARTICIPANT, SignatureType.REPRESENTATIVE, SignatureType.COMPANY_SEAL)
_TRAINING_SLOTS = (SignatureType.TRAINER, SignatureType.ORGANIZATION_SEAL)


@dataclass(frozen=True)
class RenderedDocument:
    filename: str
    pdf: bytes


# ---------------------------------------------------------------------------
# SIGNATURES
# ---------------------------------------------------------------------------


def _image_data_uri(assets: AssetStore, record: signature_models.DocumentSignature) -> Optional[str]:
    name = record.path or assets.name_from_url(record.signature_url)
    if not name:
        return None
    try:
        data = assets.download(name)
    except StoreFailure as exc:
        logger.warning(
            "Signature image unavailable, rendering an empty slot",
            extra={"signature_id": record.id, "error": str(exc)},
        )
        return None
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


def collect_signatures(
    db: Session,
    assets: AssetStore,
    kind: DocumentType,
    training_id: str,
    participant_id: str,
) -> Dict[str, Optional[str]]:
    """Signature images for one document, as data URIs keyed by signature type."""
    store = SignatureStore(db, assets)
    images: Dict[str, Optional[str]] = {}
    for signature_type in _PARTICIPANT_SLOTS + _TRAINING_SLOTS:
        user_id = participant_id if signature_type in _PARTICIPANT_SLOTS else None
        record = store.find(training_id, signature_type, kind, user_id)
        images[signature_type.value] = _image_data_uri(assets, record) if record is not None else None
    return images


# ---------------------------------------------------------------------------
# RENDERING
# ---------------------------------------------------------------------------


def _participant_rows(db: Session, training_id: str) -> List[Dict[str, str]]:
    return [
        {"name": participant.full_name, "job_title": participant.job_position or ""}
        for participant in training_services.list_participants(db, training_id)
    ]


def _document_html(
    db: Session,
    assets: AssetStore,
    training_id: str,
    participant_id: str,
    kind: DocumentType,
) -> Tuple[str, training_services.TrainingBundle]:
    bundle = training_services.get_training_bundle(db, training_id, participant_id)
    model = build_document_model(bundle.training, bundle.participant, bundle.company, bundle.settings)
    signatures = collect_signatures(db, assets, kind, training_id, participant_id)
    participants = _participant_rows(db, training_id) if kind == DocumentType.CONVENTION else None
    html = render_document_html(
        kind,
        model,
        signatures,
        participants=participants,
        content=bundle.training.content,
    )
    return html, bundle


def render_participant_html(
    db: Session,
    assets: AssetStore,
    training_id: str,
    participant_id: str,
    kind: DocumentType,
) -> str:
    html, _bundle = _document_html(db, assets, training_id, participant_id, DocumentType(kind))
    return html


def render_participant_document(
    db: Session,
    assets: AssetStore,
    training_id: str,
    participant_id: str,
    kind: DocumentType,
    *,
    context: Any = None,
    config: PageConfig = PageConfig(),
) -> RenderedDocument:
    kind = DocumentType(kind)
    html, bundle = _document_html(db, assets, training_id, participant_id, kind)
    pdf = render_to_pdf(html, config=config, context=context)
    document = RenderedDocument(filename=document_filename(kind, bundle.participant, bundle.training), pdf=pdf)
    save_generated_pdf(document)
    return document


def render_training_bundle(
    db: Session,
    assets: AssetStore,
    training_id: str,
    kind: DocumentType,
    *,
    context: Any = None,
    config: PageConfig = PageConfig(),
) -> RenderedDocument:
    """
    One document per participant, merged into a single PDF.

    A single browser is shared by all the renders when ``context`` is not
    supplied.
    """
    kind = DocumentType(kind)
    training = training_services.get_training(db, training_id)
    participants = training_services.list_participants(db, training_id)
    if not participants:
        raise training_services.ParticipantNotFound(training_id)

    def _render_all(renderer: Any) -> List[bytes]:
        return [
            render_participant_document(
                db, assets, training_id, participant.id, kind, context=renderer, config=config
            ).pdf
            for participant in participants
        ]

    if context is not None:
        pdfs = _render_all(context)
    else:
        try:
            with RendererContext(scale=config.scale, viewport_width=config.viewport_width) as owned:
                pdfs = _render_all(owned)
        except RenderFailure:
            raise
        except Exception as exc:
            logger.exception("Training bundle rendering failed", extra={"training_id": training_id})
            raise RenderFailure() from exc

    title = "_".join((training.title or "").split())
    filename = f"{DOCUMENT_LABELS[kind]}_{title}.pdf" if title else f"{DOCUMENT_LABELS[kind]}.pdf"
    try:
        merged = bundle_pdfs(pdfs)
    except Exception as exc:
        logger.exception("Merging rendered PDFs failed", extra={"training_id": training_id})
        raise RenderFailure() from exc
    return RenderedDocument(filename=filename, pdf=merged)


def save_generated_pdf(document: RenderedDocument, output_dir: Optional[str] = None) -> Optional[Path]:
    """Keep a copy of the PDF on disk when an output directory is configured."""
    target_dir = output_dir if output_dir is not None else PDF_OUTPUT_DIR
    if not target_dir:
        return None
    path = Path(target_dir)
    path.mkdir(parents=True, exist_ok=True)
    target = path / document.filename
    target.write_bytes(document.pdf)
    logger.info("Generated PDF saved", extra={"path": str(target)})
    return target
