from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy.orm import Session

from . import models

logger = logging.getLogger(__name__)


def log_repair(
    db: Session,
    *,
    entity_type: str,
    entity_id: str,
    action: str,
    provenance: str,
    actor: Optional[str] = None,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    metadata: Optional[dict] = None,
    critical: bool = False,
) -> Optional[models.RepairEvent]:
    """
    Best-effort repair trail.
    - Callers applying data fixes pass critical=True so a fix is never
      committed without its trail.
    - Other callers get a warning and continue.
    """
    try:
        event = models.RepairEvent(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            provenance=provenance,
            actor=actor,
            before=before,
            after=after,
            metadata_json=metadata,
        )
        db.add(event)
        db.flush()
        return event
    except Exception:
        logger.warning(
            "Failed to log repair event",
            extra={
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "critical": critical,
            },
        )
        if critical:
            raise
        return None


def list_repair_events(
    db: Session,
    *,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = 200,
) -> Sequence[models.RepairEvent]:
    query = db.query(models.RepairEvent)
    if entity_type:
        query = query.filter(models.RepairEvent.entity_type == entity_type)
    if entity_id:
        query = query.filter(models.RepairEvent.entity_id == entity_id)
    return query.order_by(models.RepairEvent.occurred_at.desc()).limit(limit).all()
