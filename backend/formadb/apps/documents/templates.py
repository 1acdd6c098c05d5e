# backend/formadb/apps/documents/templates.py
"""
HTML templates for the generated documents.

Every logical block is a `.section-content` element and the annex is an
`.annexe` element: the paginator keeps each of them on one page and always
starts the annex on a fresh page.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional

from jinja2 import BaseLoader, Environment, select_autoescape

from ..signatures.enums import DocumentType
from .view_model import DocumentViewModel, format_french_date

MAX_ATTENDANCE_DAYS = 31
HALF_DAYS = (("Matin", "9h00 - 12h30"), ("Après-midi", "13h30 - 17h00"))

_env = Environment(loader=BaseLoader(), autoescape=select_autoescape())

# ---------------------------------------------------------------------------
# SHARED PARTS
# ---------------------------------------------------------------------------

_BASE = """<!DOCTYPE html>
<html lang="fr">
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
</head>
<body>
<div id="document-root" class="document" data-document-type="{{ kind }}">
{{ body|safe }}
</div>
</body>
</html>
"""

_SIGNATURE_MACRO = """
{% macro signature(url, alt) -%}
  {% if url %}<img class="signature" src="{{ url }}" alt="{{ alt }}">{% else %}<div class="signature-empty"></div>{% endif %}
{%- endmacro %}
"""

# ---------------------------------------------------------------------------
# CONVENTION
# ---------------------------------------------------------------------------

CONVENTION_TEMPLATE = _SIGNATURE_MACRO + """
<div class="section-content header">
  <h1>CONVENTION DE FORMATION PROFESSIONNELLE</h1>
  <p class="subtitle">(Articles L.6353-1 du Code du travail)</p>
</div>

<div class="section-content parties">
  <p><strong>Entre</strong></p>
  <p>L'organisme de formation : {{ m.organization.organization_name }}</p>
  <p>Numéro de déclaration d'activité de l'organisme de formation : {{ m.organization.activity_declaration_number }}</p>
  <p>Numéro SIRET de l'organisme de formation : {{ m.organization.siret }}</p>
  <p>Adresse de l'organisme de formation : {{ m.organization.full_address }}</p>
  <p><strong>Et</strong></p>
  <p>{{ m.company.label }} : {{ m.company.name }}</p>
  <p>Adresse : {{ m.company.address }}</p>
  <p>SIRET : {{ m.company.siret }}</p>
</div>

<div class="section-content beneficiaries">
  <p>Pour le(s) bénéficiaire(s) : (ci-après dénommé(s) le(s) stagiaire(s))</p>
  <table>
    <tr><th>Stagiaire</th><th>Fonction</th></tr>
    {% for p in participants %}
    <tr><td>{{ p.name }}</td><td>{{ p.job_title }}</td></tr>
    {% else %}
    <tr><td colspan="2">Aucun stagiaire n'est inscrit à cette formation</td></tr>
    {% endfor %}
  </table>
</div>

<div class="section-content">
  <h2>I – OBJET</h2>
  <p>L'action de formation entre dans la catégorie : « Les actions de formation » prévue à l'article L.6313-1 du Code du travail.</p>
  <p>En exécution de la présente convention, l'organisme de formation s'engage à organiser l'action de formation professionnelle intitulée : {{ m.training_title }}</p>
</div>

<div class="section-content">
  <h2>II – NATURE ET CARACTERISTIQUES DE L'ACTION DE FORMATION</h2>
  <p>Permettre au stagiaire de :</p>
  <ul>{% for objective in m.objectives %}<li>{{ objective }}</li>{% endfor %}</ul>
  <p>La durée de la formation est fixée à {{ m.duration }}</p>
  <p>Horaires de Stage : de 9h00 à 12h30 et de 13h30 à 17h00</p>
  <p>Le programme détaillé de l'action de formation figure en annexe de la présente convention.</p>
</div>

<div class="section-content">
  <h2>III – NIVEAU DE CONNAISSANCES PREALABLES NÉCESSAIRE</h2>
  <p>Aucun prérequis n'est nécessaire.</p>
</div>

<div class="section-content">
  <h2>IV – ORGANISATION DE L'ACTION DE FORMATION</h2>
  <p>L'action de formation aura lieu (dates ou période) : {{ m.date_range }}</p>
  <p>Lieu de formation : {{ m.location }}</p>
  <p><em>Dans le cas où la formation a lieu au sein de l'entreprise bénéficiaire, l'entreprise s'engage à assurer la sécurité des participants.</em></p>
  <p>Les conditions générales dans lesquelles la formation est dispensée, notamment les moyens pédagogiques et techniques, sont les suivantes :</p>
  <ul>{% for item in m.pedagogical_methods %}<li>{{ item }}</li>{% endfor %}</ul>
  <p>Éléments matériels :</p>
  <ul>{% for item in m.material_elements %}<li>{{ item }}</li>{% endfor %}</ul>
</div>

<div class="section-content">
  <h2>V – MOYENS PERMETTANT D'APPRECIER LES RESULTATS DE L'ACTION</h2>
  <ul>{% for item in m.evaluation_methods %}<li>{{ item }}</li>{% endfor %}</ul>
</div>

<div class="section-content">
  <h2>VI – SANCTION DE LA FORMATION</h2>
  <p>En application de l'article L.6353-1 du Code du travail, une attestation mentionnant les objectifs, la nature et la durée de l'action et les résultats de l'évaluation des acquis de la formation sera remise au stagiaire à l'issue de la formation.</p>
</div>

<div class="section-content">
  <h2>VII – MOYENS PERMETTANT DE SUIVRE L'EXECUTION DE L'ACTION</h2>
  <ul>{% for item in m.tracking_methods %}<li>{{ item }}</li>{% endfor %}</ul>
</div>

<div class="section-content">
  <h2>VIII – NON-RÉALISATION DE LA PRESTATION DE FORMATION</h2>
  <p>En application de l'article L. 6354-1 du Code du travail, il est convenu entre les signataires de la présente convention, que faute de réalisation totale ou partielle de la prestation de formation, l'organisme prestataire doit rembourser au cocontractant les sommes indûment perçues de ce fait.</p>
</div>

<div class="section-content">
  <h2>IX – DISPOSITIONS FINANCIERES</h2>
  <p>Le prix de l'action de formation est fixé à : {{ m.price.text }}</p>
</div>

<div class="section-content">
  <h2>X – INTERRUPTION DU STAGE</h2>
  <p>En cas de cessation anticipée de la formation du fait de l'organisme de formation ou en cas de renoncement par le bénéficiaire pour un autre motif que la force majeure dûment reconnue, le présent contrat est résilié. Dans ce cas, seules les prestations effectivement dispensées sont dues au prorata temporis de leur valeur prévue au présent contrat.</p>
</div>

<div class="section-content">
  <h2>XI – CAS DE DIFFEREND</h2>
  <p>Si une contestation ou un différend n'ont pu être réglés à l'amiable, seul le tribunal de commerce dans le ressort de la juridiction du siège social du centre de formation sera compétent pour régler le litige.</p>
</div>

<div class="section-content signatures">
  <table class="signature-table">
    <tr>
      <td>
        <p><strong>Pour l'entreprise</strong></p>
        <p>Le dirigeant (Signature et cachet)</p>
        {{ signature(sig.representative, "Signature du représentant") }}
        {{ signature(sig.companySeal, "Tampon de l'entreprise") }}
      </td>
      <td>
        <p><strong>Pour l'organisme de formation</strong></p>
        <p>{{ m.organization.representative_name }}, {{ m.organization.representative_title }}</p>
        {{ signature(sig.trainer, "Signature du formateur") }}
        {{ signature(sig.organizationSeal, "Tampon de l'organisme") }}
      </td>
    </tr>
  </table>
  <p>Fait en double exemplaire, à {{ m.signature_city }}, le {{ m.signature_date }}</p>
</div>

<div class="annexe">
  <h2 class="annexe-title">ANNEXE – PROGRAMME DE LA FORMATION</h2>
  <p><strong>{{ m.training_title }}</strong></p>
  <p>Durée : {{ m.duration }} – {{ m.date_range }}</p>
  <p>Objectifs :</p>
  <ul>{% for objective in m.objectives %}<li>{{ objective }}</li>{% endfor %}</ul>
  {% if content %}<div class="annexe-content">{{ content }}</div>{% endif %}
</div>
"""

# ---------------------------------------------------------------------------
# ATTESTATION / CERTIFICATE
# ---------------------------------------------------------------------------

CERTIFICATE_TEMPLATE = _SIGNATURE_MACRO + """
<div class="section-content header">
  <h1>{{ heading }}</h1>
</div>

<div class="section-content">
  <p>Je soussigné(e), {{ m.organization.representative_name }}, {{ m.organization.representative_title }} de l'organisme de formation {{ m.organization.organization_name }}, atteste que :</p>
  <p class="participant"><strong>{{ m.participant_name }}</strong>{% if m.participant_job_title %} – {{ m.participant_job_title }}{% endif %}</p>
  <p>de l'entreprise : {{ m.company.name }}</p>
  <p>a suivi la formation : <strong>{{ m.training_title }}</strong></p>
  <p>Dates : {{ m.date_range }} – Durée : {{ m.duration }}</p>
  <p>Lieu : {{ m.location }}</p>
</div>

<div class="section-content">
  <h2>Objectifs de la formation</h2>
  <ul>{% for objective in m.objectives %}<li>{{ objective }}</li>{% endfor %}</ul>
</div>

<div class="section-content">
  <h2>Évaluation des acquis</h2>
  <ul>{% for item in m.evaluation_methods %}<li>{{ item }}</li>{% endfor %}</ul>
</div>

<div class="section-content signatures">
  <p>Fait à {{ m.signature_city }}, le {{ m.signature_date }}</p>
  <table class="signature-table">
    <tr>
      <td>
        <p><strong>Le stagiaire</strong></p>
        {{ signature(sig.participant, "Signature du participant") }}
      </td>
      <td>
        <p><strong>Pour l'organisme de formation</strong></p>
        {{ signature(sig.trainer, "Signature du formateur") }}
        {{ signature(sig.organizationSeal, "Tampon de l'organisme") }}
      </td>
    </tr>
  </table>
</div>
"""

# ---------------------------------------------------------------------------
# ATTENDANCE SHEET
# ---------------------------------------------------------------------------

ATTENDANCE_TEMPLATE = _SIGNATURE_MACRO + """
<div class="section-content header">
  <h1>FEUILLE D'ÉMARGEMENT</h1>
  <p><strong>{{ m.training_title }}</strong></p>
  <p>{{ m.date_range }} – {{ m.location }}</p>
  <p>Formateur : {{ m.trainer_name }}</p>
  <p>Stagiaire : {{ m.participant_name }} – {{ m.company.name }}</p>
</div>

{% for slot in slots %}
<div class="section-content slot">
  <table>
    <tr><th>Date</th><th>Demi-journée</th><th>Horaires</th><th>Signature du stagiaire</th></tr>
    <tr>
      <td>{{ slot.date }}</td><td>{{ slot.period }}</td><td>{{ slot.hours }}</td>
      <td>{{ signature(sig.participant, "Signature du participant") }}</td>
    </tr>
  </table>
</div>
{% else %}
<div class="section-content slot">
  <p>Dates à définir</p>
</div>
{% endfor %}

<div class="section-content signatures">
  <p><strong>Signature du formateur</strong></p>
  {{ signature(sig.trainer, "Signature du formateur") }}
  {{ signature(sig.organizationSeal, "Tampon de l'organisme") }}
</div>
"""

_TEMPLATES = {
    DocumentType.CONVENTION: CONVENTION_TEMPLATE,
    DocumentType.ATTESTATION: CERTIFICATE_TEMPLATE,
    DocumentType.CERTIFICATE: CERTIFICATE_TEMPLATE,
    DocumentType.ATTENDANCE_SHEET: ATTENDANCE_TEMPLATE,
}

_HEADINGS = {
    DocumentType.CONVENTION: "Convention de formation",
    DocumentType.ATTESTATION: "ATTESTATION DE FIN DE FORMATION",
    DocumentType.CERTIFICATE: "CERTIFICAT DE RÉALISATION",
    DocumentType.ATTENDANCE_SHEET: "Feuille d'émargement",
}


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


class _Signatures(dict):
    """Missing signature kinds read as None inside templates."""

    def __getattr__(self, name: str) -> Optional[str]:
        return self.get(name)


def _slot_from_entry(entry: Any) -> Optional[Dict[str, str]]:
    if isinstance(entry, str):
        return {"date": entry, "period": "", "hours": ""}
    if isinstance(entry, Mapping):
        day = entry.get("date") or entry.get("day") or ""
        start = entry.get("start") or entry.get("start_time") or ""
        end = entry.get("end") or entry.get("end_time") or ""
        return {
            "date": str(day),
            "period": str(entry.get("period") or entry.get("label") or ""),
            "hours": f"{start} - {end}".strip(" -"),
        }
    return None


def attendance_slots(model: DocumentViewModel) -> List[Dict[str, str]]:
    """
    One row per half-day: explicit time slots when stored, otherwise every
    weekday between the training dates (capped at a month).
    """
    explicit = [slot for slot in (_slot_from_entry(entry) for entry in model.time_slots) if slot]
    if explicit:
        return explicit
    if model.start_date is None:
        return []

    end = model.end_date or model.start_date
    slots: List[Dict[str, str]] = []
    day: date = model.start_date
    while day <= end and len(slots) < MAX_ATTENDANCE_DAYS * len(HALF_DAYS):
        if day.weekday() < 5 or day == model.start_date:
            for period, hours in HALF_DAYS:
                slots.append({"date": format_french_date(day), "period": period, "hours": hours})
        day += timedelta(days=1)
    return slots


def render_document_html(
    kind: DocumentType,
    model: DocumentViewModel,
    signatures: Optional[Mapping[str, Optional[str]]] = None,
    *,
    participants: Optional[List[Dict[str, str]]] = None,
    content: Optional[str] = None,
) -> str:
    """
    Render one document as a standalone HTML page.

    ``signatures`` maps a signature type value (participant, trainer,
    companySeal, ...) to an image URL or data URI.
    """
    kind = DocumentType(kind)
    if participants is None:
        participants = [{"name": model.participant_name, "job_title": model.participant_job_title}]
    body = _env.from_string(_TEMPLATES[kind]).render(
        heading=_HEADINGS[kind],
        m=model,
        sig=_Signatures(signatures or {}),
        participants=participants,
        slots=attendance_slots(model) if kind == DocumentType.ATTENDANCE_SHEET else [],
        content=content,
    )
    return _env.from_string(_BASE).render(
        kind=kind.value,
        title=f"{_HEADINGS[kind]} – {model.training_title}",
        body=body,
    )
