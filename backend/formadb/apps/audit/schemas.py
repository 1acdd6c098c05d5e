from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class RepairEventRead(BaseModel):
    id: str
    entity_type: str
    entity_id: str
    action: str
    provenance: str
    actor: Optional[str] = None
    occurred_at: datetime
    before: Optional[Dict[str, Any]] = None
    after: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="metadata_json")

    model_config = ConfigDict(from_attributes=True)
