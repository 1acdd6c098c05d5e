# backend/formadb/apps/documents/view_model.py
"""
Document view model: the one shape every template renders from.

build_document_model() is pure. Callers resolve the training, participant,
company and organization settings first (see trainings.services) and pass
them in; nothing here touches the database.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..trainings.normalizer import NormalizedTraining, normalize_training

METHOD_PLACEHOLDER = "Méthode non spécifiée"
DEFAULT_DURATION = "14 heures"
DEFAULT_LOCATION = "Dans vos locaux"
TO_COMPLETE = "À compléter"
PRICE_ON_QUOTE = "Sur devis"
VAT_RATE = 0.20

_UNSET_MARKERS = {"", "à définir", "à compléter"}

FRENCH_MONTHS = (
    "janvier",
    "février",
    "mars",
    "avril",
    "mai",
    "juin",
    "juillet",
    "août",
    "septembre",
    "octobre",
    "novembre",
    "décembre",
)

# ---------------------------------------------------------------------------
# FLAG -> SENTENCE TABLES (order is display order)
# ---------------------------------------------------------------------------

PEDAGOGICAL_SENTENCES: Tuple[Tuple[str, str], ...] = (
    ("needs_evaluation", "Évaluation des besoins et du profil du participant"),
    ("theoretical_content", "Apport théorique et méthodologique"),
    ("practical_exercises", "Questionnaires et exercices pratiques"),
    ("case_studies", "Études de cas"),
    ("experience_sharing", "Retours d'expériences"),
    ("digital_support", "Support de cours numérique"),
)

MATERIAL_SENTENCES: Tuple[Tuple[str, str], ...] = (
    ("computer_provided", "Mise à disposition du matériel informatique"),
    ("pedagogical_material", "Mise à disposition du matériel pédagogique"),
    ("digital_support_provided", "Support de cours au format numérique"),
)

EVALUATION_SENTENCES: Tuple[Tuple[str, str], ...] = (
    ("profile_evaluation", "Evaluation individuelle du profil, des attentes et des besoins"),
    ("skills_evaluation", "Evaluation des compétences en début et fin de formation"),
    ("knowledge_evaluation", "Évaluation des connaissances à chaque étape"),
    ("satisfaction_survey", "Questionnaire d'évaluation de la satisfaction"),
)

TRACKING_SENTENCES: Tuple[Tuple[str, str], ...] = (
    ("attendance_sheet", "Feuille d'émargement"),
    ("completion_certificate", "Attestation de fin de formation"),
)


# ---------------------------------------------------------------------------
# ORGANIZATION SETTINGS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OrganizationInfo:
    organization_name: str
    address: str
    postal_code: str
    city: str
    country: str
    siret: str
    activity_declaration_number: str
    representative_name: str
    representative_title: str

    @property
    def full_address(self) -> str:
        text = self.address
        if self.postal_code and self.city:
            text += f", {self.postal_code} {self.city}"
        if self.country and self.country != "France":
            text += f", {self.country}"
        return text


DEFAULT_ORGANIZATION_SETTINGS = OrganizationInfo(
    organization_name=os.getenv("ORGANIZATION_NAME", "PETITMAKER"),
    address=os.getenv("ORGANIZATION_ADDRESS", "2 rue Héraclès"),
    postal_code=os.getenv("ORGANIZATION_POSTAL_CODE", "59650"),
    city=os.getenv("ORGANIZATION_CITY", "Villeneuve-d'Ascq"),
    country=os.getenv("ORGANIZATION_COUNTRY", "France"),
    siret=os.getenv("ORGANIZATION_SIRET", "928 386 044 00012"),
    activity_declaration_number=os.getenv("ORGANIZATION_NDA", "32 59 10753 59"),
    representative_name=os.getenv("ORGANIZATION_REPRESENTATIVE", "Nicolas Cleton"),
    representative_title=os.getenv("ORGANIZATION_REPRESENTATIVE_TITLE", "Président"),
)


def organization_info(settings: Any = None) -> OrganizationInfo:
    """Merge a settings row over the defaults; blank columns keep the default."""
    if settings is None:
        return DEFAULT_ORGANIZATION_SETTINGS
    values = {}
    for item in fields(OrganizationInfo):
        name = item.name
        value = getattr(settings, name, None)
        values[name] = value.strip() if isinstance(value, str) and value.strip() else getattr(
            DEFAULT_ORGANIZATION_SETTINGS, name
        )
    return OrganizationInfo(**values)


# ---------------------------------------------------------------------------
# VIEW MODEL
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CompanyDisplay:
    label: str
    name: str
    address: str
    siret: str
    is_independent: bool = False


@dataclass(frozen=True)
class PriceInfo:
    on_quote: bool
    excluding_tax: Optional[str] = None
    vat: Optional[str] = None
    including_tax: Optional[str] = None

    @property
    def text(self) -> str:
        if self.on_quote:
            return PRICE_ON_QUOTE
        return f"{self.excluding_tax} HT + TVA (20%) : {self.vat} = {self.including_tax} TTC"


@dataclass(frozen=True)
class DocumentViewModel:
    training_id: str
    training_title: str
    date_range: str
    duration: str
    location: str
    objectives: List[str]
    pedagogical_methods: List[str]
    material_elements: List[str]
    evaluation_methods: List[str]
    tracking_methods: List[str]
    participant_id: str
    participant_first_name: str
    participant_last_name: str
    participant_job_title: str
    participant_email: Optional[str]
    company: CompanyDisplay
    organization: OrganizationInfo
    price: PriceInfo
    trainer_name: str
    signature_city: str
    signature_date: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    time_slots: List[Any] = field(default_factory=list)

    @property
    def participant_name(self) -> str:
        return f"{self.participant_first_name} {self.participant_last_name}".strip()


# ---------------------------------------------------------------------------
# FORMATTERS
# ---------------------------------------------------------------------------


def _is_set(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() not in _UNSET_MARKERS


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def format_french_date(value: date) -> str:
    """dd MMMM yyyy with French month names, independent of the OS locale."""
    return f"{value.day:02d} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def format_date_range(start: Any, end: Any, duration: Optional[str] = None) -> str:
    start_date = _as_date(start)
    end_date = _as_date(end)
    if start_date and end_date and start_date != end_date:
        return f"du {format_french_date(start_date)} au {format_french_date(end_date)}"
    if start_date:
        return f"le {format_french_date(start_date)}"
    if end_date:
        return f"jusqu'au {format_french_date(end_date)}"
    if _is_set(duration):
        return f"Calendrier à confirmer (durée : {duration.strip()})"
    return "Dates à définir"


def format_euros(amount: float) -> str:
    """fr-FR currency format: narrow no-break thousands, comma decimals."""
    text = f"{amount:,.2f}".replace(",", "\u202f").replace(".", ",")
    return f"{text}\u00a0€"


def price_info(price: Any) -> PriceInfo:
    try:
        amount = float(price) if price is not None else 0.0
    except (TypeError, ValueError):
        amount = 0.0
    if amount <= 0:
        return PriceInfo(on_quote=True)
    vat = round(amount * VAT_RATE, 2)
    return PriceInfo(
        on_quote=False,
        excluding_tax=format_euros(amount),
        vat=format_euros(vat),
        including_tax=format_euros(amount + vat),
    )


def method_sentences(flags: Mapping[str, bool], table: Sequence[Tuple[str, str]]) -> List[str]:
    sentences = [sentence for key, sentence in table if flags.get(key)]
    return sentences or [METHOD_PLACEHOLDER]


def training_location(location: Any, company: Any = None) -> str:
    if _is_set(location):
        return location.strip()
    city = getattr(company, "city", None)
    if _is_set(city):
        return city.strip()
    address = getattr(company, "address", None)
    if _is_set(address):
        parts = [part.strip() for part in address.split(",") if part.strip()]
        if len(parts) > 1:
            return parts[-1]
        return address.strip()
    return DEFAULT_LOCATION


def company_display(company: Any, participant: Any) -> CompanyDisplay:
    """
    Who the agreement is signed with.

    A company record wins, then the company name typed on the participant,
    then the participant themself when they are an independent worker.
    """
    name = getattr(company, "name", None)
    siret = getattr(company, "siret", None)
    if _is_set(name):
        address = getattr(company, "address", None) or TO_COMPLETE
        postal_code = getattr(company, "postal_code", None)
        city = getattr(company, "city", None)
        if postal_code and city:
            address += f", {postal_code} {city}"
        return CompanyDisplay(
            label="L'entreprise",
            name=name.strip(),
            address=address,
            siret=siret or TO_COMPLETE,
        )

    typed_name = getattr(participant, "company_name", None)
    if _is_set(typed_name):
        return CompanyDisplay(label="L'entreprise", name=typed_name.strip(), address=TO_COMPLETE, siret=TO_COMPLETE)

    participant_status = (getattr(participant, "status", None) or "").lower()
    if participant_status in {"auto-entrepreneur", "freelance"}:
        full_name = f"{getattr(participant, 'first_name', '')} {getattr(participant, 'last_name', '')}".strip()
        return CompanyDisplay(
            label="Apprenant indépendant",
            name=f"{full_name} (Auto-entrepreneur)",
            address=TO_COMPLETE,
            siret=siret or TO_COMPLETE,
            is_independent=True,
        )
    return CompanyDisplay(label="L'entreprise", name=TO_COMPLETE, address=TO_COMPLETE, siret=TO_COMPLETE)


# ---------------------------------------------------------------------------
# BUILDER
# ---------------------------------------------------------------------------


def build_document_model(
    training: Any,
    participant: Any,
    company: Any = None,
    org_settings: Any = None,
    *,
    today: Optional[date] = None,
) -> DocumentViewModel:
    """
    Merge training, participant, company and organization settings.

    ``training`` may be a Training row or an already NormalizedTraining.
    ``today`` fixes the signature date (defaults to the current date).
    """
    normalized = training if isinstance(training, NormalizedTraining) else normalize_training(training)
    organization = organization_info(org_settings)
    duration = normalized.duration.strip() if _is_set(normalized.duration) else DEFAULT_DURATION

    return DocumentViewModel(
        training_id=normalized.id,
        training_title=normalized.title or TO_COMPLETE,
        date_range=format_date_range(normalized.start_date, normalized.end_date, normalized.duration),
        duration=duration,
        location=training_location(normalized.location, company),
        objectives=list(normalized.objectives),
        pedagogical_methods=method_sentences(normalized.pedagogical_methods, PEDAGOGICAL_SENTENCES),
        material_elements=method_sentences(normalized.material_elements, MATERIAL_SENTENCES),
        evaluation_methods=method_sentences(normalized.evaluation_methods, EVALUATION_SENTENCES),
        tracking_methods=method_sentences(normalized.tracking_methods, TRACKING_SENTENCES),
        participant_id=str(getattr(participant, "id", "") or ""),
        participant_first_name=(getattr(participant, "first_name", None) or "").strip(),
        participant_last_name=(getattr(participant, "last_name", None) or "").strip(),
        participant_job_title=(getattr(participant, "job_position", None) or TO_COMPLETE),
        participant_email=getattr(participant, "email", None),
        company=company_display(company, participant),
        organization=organization,
        price=price_info(normalized.price),
        trainer_name=normalized.trainer_name or TO_COMPLETE,
        signature_city=organization.city or "_______________",
        signature_date=format_french_date(today or date.today()),
        start_date=_as_date(normalized.start_date),
        end_date=_as_date(normalized.end_date),
        time_slots=list(normalized.time_slots),
    )
