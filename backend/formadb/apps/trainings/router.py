# backend/formadb/apps/trainings/router.py

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from . import schemas, services
from .normalizer import normalize_training

router = APIRouter(prefix="/trainings", tags=["trainings"])


@router.get("/{training_id}/normalized", response_model=schemas.NormalizedTrainingRead)
def get_normalized_training(training_id: str, db: Session = Depends(get_read_db)):
    try:
        training = services.get_training(db, training_id)
    except services.TrainingNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Training not found.")
    return asdict(normalize_training(training))


@router.post(
    "/{training_id}/duplicate",
    response_model=schemas.TrainingRead,
    status_code=status.HTTP_201_CREATED,
)
def duplicate(training_id: str, db: Session = Depends(get_db)):
    try:
        copy = services.duplicate_training(db, training_id)
    except services.TrainingNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Training not found.")
    db.commit()
    db.refresh(copy)
    return copy
