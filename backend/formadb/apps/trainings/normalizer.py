# backend/formadb/apps/trainings/normalizer.py
"""
Decode the loosely-typed training columns into fixed internal shapes.

Objectives and method sets were saved as arrays, dicts, JSON-encoded
strings or free text depending on which form wrote them. Everything that
reads those columns goes through this module so that every document
built from the same training agrees with the others.

All functions are pure and never raise.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional

from ...errors import NormalizationAmbiguity

logger = logging.getLogger(__name__)

OBJECTIVES_PLACEHOLDER = "Objectif à définir"

BULLET_MARKERS = ("•", "-", "*", "–", "·")

_TRUTHY_STRINGS = {"true", "1", "yes", "on", "oui"}
_FALSY_STRINGS = {"false", "0", "no", "off", "non", ""}

# ---------------------------------------------------------------------------
# DEFAULT FLAG SETS
# ---------------------------------------------------------------------------

DEFAULT_PEDAGOGICAL_METHODS: Dict[str, bool] = {
    "needs_evaluation": False,
    "theoretical_content": False,
    "practical_exercises": False,
    "case_studies": False,
    "experience_sharing": False,
    "digital_support": False,
}

DEFAULT_MATERIAL_ELEMENTS: Dict[str, bool] = {
    "computer_provided": False,
    "pedagogical_material": False,
    "digital_support_provided": False,
}

DEFAULT_EVALUATION_METHODS: Dict[str, bool] = {
    "profile_evaluation": False,
    "skills_evaluation": False,
    "knowledge_evaluation": False,
    "satisfaction_survey": False,
}

DEFAULT_TRACKING_METHODS: Dict[str, bool] = {
    "attendance_sheet": False,
    "completion_certificate": False,
}


# ---------------------------------------------------------------------------
# OBJECTIVES
# ---------------------------------------------------------------------------


def _placeholder() -> List[str]:
    return [OBJECTIVES_PLACEHOLDER]


def _from_sequence(items: List[Any]) -> List[str]:
    if all(isinstance(item, str) for item in items):
        result = list(items)
    else:
        result = [str(item) for item in items if item is not None]
    return result or _placeholder()


def _strip_bullet(line: str) -> str:
    stripped = line.strip()
    while stripped and stripped[0] in BULLET_MARKERS:
        stripped = stripped[1:].lstrip()
    return stripped


def _from_text(text: str) -> List[str]:
    if not text.strip():
        return _placeholder()
    if "\n" in text or any(marker in text for marker in BULLET_MARKERS):
        lines = [_strip_bullet(line) for line in text.splitlines()]
        lines = [line for line in lines if line]
        return lines or _placeholder()
    return [text]


def _decode_json_text(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError) as exc:
        raise NormalizationAmbiguity(str(exc)) from exc


def normalize_objectives(raw: Any) -> List[str]:
    """
    Return objectives as a non-empty ordered list of strings.

    - list/tuple: unchanged when every item is a string, otherwise the
      non-null items are stringified
    - str: JSON-decoded when possible (list, dict values, scalar string),
      else split on lines when it contains a newline or a bullet marker,
      else wrapped as a single item
    - anything else: placeholder
    """
    if isinstance(raw, (list, tuple)):
        return _from_sequence(list(raw))
    if isinstance(raw, dict):
        return _from_sequence(list(raw.values()))
    if not isinstance(raw, str):
        return _placeholder()

    try:
        decoded = _decode_json_text(raw)
    except NormalizationAmbiguity:
        return _from_text(raw)

    if isinstance(decoded, list):
        return _from_sequence(decoded)
    if isinstance(decoded, dict):
        return _from_sequence(list(decoded.values()))
    if isinstance(decoded, str):
        return _from_text(decoded)
    # Numbers, booleans and null decoded from text: keep the original text.
    return _from_text(raw) if decoded is not None else _placeholder()


# ---------------------------------------------------------------------------
# METHOD SETS
# ---------------------------------------------------------------------------


def _coerce_flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUTHY_STRINGS:
            return True
        if lowered in _FALSY_STRINGS:
            return False
    return default


def _decode_method_source(raw: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(raw, Mapping):
        return raw
    if isinstance(raw, str):
        try:
            decoded = _decode_json_text(raw)
        except NormalizationAmbiguity:
            logger.debug("Unparseable method set ignored", extra={"raw": raw[:80]})
            return None
        if isinstance(decoded, Mapping):
            return decoded
    return None


def normalize_method_set(raw: Any, defaults: Mapping[str, bool]) -> Dict[str, bool]:
    """
    Merge a stored method set over its defaults.

    Only the keys present in ``defaults`` are returned, always as bools.
    """
    source = _decode_method_source(raw) or {}
    return {key: _coerce_flag(source.get(key), bool(default)) for key, default in defaults.items()}


# ---------------------------------------------------------------------------
# TRAINING DECODE
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NormalizedTraining:
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
    time_slots: List[Any] = field(default_factory=list)


def normalize_time_slots(raw: Any) -> List[Any]:
    if isinstance(raw, list):
        return list(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            decoded = _decode_json_text(raw)
        except NormalizationAmbiguity:
            return [line.strip() for line in raw.splitlines() if line.strip()]
        if isinstance(decoded, list):
            return decoded
        if isinstance(decoded, dict):
            return [decoded]
    return []


def normalize_training(training: Any) -> NormalizedTraining:
    """Decode a Training row (or any object with the same attributes)."""
    return NormalizedTraining(
        id=str(getattr(training, "id", "") or ""),
        title=(getattr(training, "title", None) or "").strip(),
        objectives=normalize_objectives(getattr(training, "objectives", None)),
        evaluation_methods=normalize_method_set(
            getattr(training, "evaluation_methods", None), DEFAULT_EVALUATION_METHODS
        ),
        tracking_methods=normalize_method_set(
            getattr(training, "tracking_methods", None), DEFAULT_TRACKING_METHODS
        ),
        pedagogical_methods=normalize_method_set(
            getattr(training, "pedagogical_methods", None), DEFAULT_PEDAGOGICAL_METHODS
        ),
        material_elements=normalize_method_set(
            getattr(training, "material_elements", None), DEFAULT_MATERIAL_ELEMENTS
        ),
        start_date=getattr(training, "start_date", None),
        end_date=getattr(training, "end_date", None),
        duration=getattr(training, "duration", None),
        location=getattr(training, "location", None),
        trainer_name=getattr(training, "trainer_name", None),
        price=getattr(training, "price", None),
        status=getattr(training, "status", None),
        time_slots=normalize_time_slots(getattr(training, "time_slots", None)),
    )
