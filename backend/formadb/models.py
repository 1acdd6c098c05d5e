# backend/formadb/models.py
"""
Single import point that registers every ORM table on Base.metadata.
"""

from .apps.trainings import models as trainings_models            # trainings / participants / companies
from .apps.signatures import models as signatures_models          # legacy documents + canonical signatures
from .apps.audit import models as audit_models                    # repair events

__all__ = [
    "trainings_models",
    "signatures_models",
    "audit_models",
]
