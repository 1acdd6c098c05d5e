# backend/formadb/apps/documents/router.py

from __future__ import annotations

import logging
import unicodedata
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from ...database import get_read_db
from ...errors import RenderFailure
from ..signatures.enums import DocumentType
from ..signatures.storage import AssetStore, get_asset_store
from ..trainings import services as training_services
from . import services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _content_disposition(filename: str) -> str:
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def _pdf_response(document: services.RenderedDocument) -> Response:
    return Response(
        content=document.pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": _content_disposition(document.filename)},
    )


def _not_found(exc: Exception) -> HTTPException:
    if isinstance(exc, training_services.TrainingNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Training not found.")
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found.")


# ---------------------------------------------------------------------------
# PARTICIPANT DOCUMENTS
# ---------------------------------------------------------------------------


@router.get("/trainings/{training_id}/participants/{participant_id}/{kind}")
def download_document(
    training_id: str,
    participant_id: str,
    kind: DocumentType,
    db: Session = Depends(get_read_db),
    assets: AssetStore = Depends(get_asset_store),
):
    try:
        document = services.render_participant_document(db, assets, training_id, participant_id, kind)
    except (training_services.TrainingNotFound, training_services.ParticipantNotFound) as exc:
        raise _not_found(exc)
    except RenderFailure as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.user_message)
    return _pdf_response(document)


@router.get(
    "/trainings/{training_id}/participants/{participant_id}/{kind}/html",
    response_class=HTMLResponse,
)
def preview_document(
    training_id: str,
    participant_id: str,
    kind: DocumentType,
    db: Session = Depends(get_read_db),
    assets: AssetStore = Depends(get_asset_store),
):
    try:
        html = services.render_participant_html(db, assets, training_id, participant_id, kind)
    except (training_services.TrainingNotFound, training_services.ParticipantNotFound) as exc:
        raise _not_found(exc)
    return HTMLResponse(content=html)


# ---------------------------------------------------------------------------
# TRAINING BUNDLES
# ---------------------------------------------------------------------------


@router.get("/trainings/{training_id}/bundle/{kind}")
def download_bundle(
    training_id: str,
    kind: DocumentType,
    db: Session = Depends(get_read_db),
    assets: AssetStore = Depends(get_asset_store),
):
    """Every participant's document of one kind, merged in a single PDF."""
    try:
        document = services.render_training_bundle(db, assets, training_id, kind)
    except (training_services.TrainingNotFound, training_services.ParticipantNotFound) as exc:
        raise _not_found(exc)
    except RenderFailure as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.user_message)
    return _pdf_response(document)
