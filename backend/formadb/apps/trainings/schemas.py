# backend/formadb/apps/trainings/schemas.py

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class NormalizedTrainingRead(BaseModel):
    id: str
    title: str
    objectives: List[str]
    evaluation_methods: Dict[str, bool]
    tracking_methods: Dict[str, bool]
    pedagogical_methods: Dict[str, bool]
    material_elements: Dict[str, bool]
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration: Optional[str] = None
    location: Optional[str] = None
    trainer_name: Optional[str] = None
    price: Optional[float] = None
    status: Optional[str] = None
    time_slots: List[Any] = []

    model_config = ConfigDict(from_attributes=True)


class TrainingRead(BaseModel):
    id: str
    title: str
    status: str
    company_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)
