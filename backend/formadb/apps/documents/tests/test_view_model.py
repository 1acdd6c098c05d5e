from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from formadb.apps.documents.view_model import (
    DEFAULT_DURATION,
    DEFAULT_LOCATION,
    METHOD_PLACEHOLDER,
    PRICE_ON_QUOTE,
    TO_COMPLETE,
    build_document_model,
    company_display,
    format_date_range,
    format_euros,
    organization_info,
    price_info,
    training_location,
)
from formadb.apps.trainings.normalizer import OBJECTIVES_PLACEHOLDER

TODAY = date(2024, 6, 1)


def _training(**kwargs):
    values = {
        "id": "t-1",
        "title": "Habilitation électrique",
        "objectives": ["Connaître les risques"],
        "evaluation_methods": None,
        "tracking_methods": None,
        "pedagogical_methods": None,
        "material_elements": None,
        "start_date": date(2024, 3, 4),
        "end_date": date(2024, 3, 5),
        "duration": "14 heures",
        "location": None,
        "trainer_name": "Alice Martin",
        "price": None,
        "status": "confirmed",
        "time_slots": None,
    }
    values.update(kwargs)
    return SimpleNamespace(**values)


def _participant(**kwargs):
    values = {
        "id": "p-1",
        "first_name": "Jean",
        "last_name": "Dupont",
        "job_position": "Technicien",
        "email": "jean@example.test",
        "company_name": None,
        "status": None,
    }
    values.update(kwargs)
    return SimpleNamespace(**values)


@pytest.mark.parametrize(
    "start, end, duration, expected",
    [
        (date(2024, 3, 4), date(2024, 3, 5), None, "du 04 mars 2024 au 05 mars 2024"),
        (date(2024, 3, 4), date(2024, 3, 4), None, "le 04 mars 2024"),
        (date(2024, 8, 1), None, None, "le 01 août 2024"),
        (None, date(2024, 12, 20), None, "jusqu'au 20 décembre 2024"),
        (None, None, "7 heures", "Calendrier à confirmer (durée : 7 heures)"),
        (None, None, "à définir", "Dates à définir"),
        (None, None, None, "Dates à définir"),
        ("2024-02-10T00:00:00Z", "2024-02-11", None, "du 10 février 2024 au 11 février 2024"),
    ],
)
def test_format_date_range(start, end, duration, expected):
    assert format_date_range(start, end, duration) == expected


def test_format_euros_uses_french_separators():
    assert format_euros(1200.0) == "1\u202f200,00\u00a0€"
    assert format_euros(49.5) == "49,50\u00a0€"


def test_price_info_adds_twenty_percent_vat():
    info = price_info(1000)
    assert not info.on_quote
    assert info.text == "1\u202f000,00\u00a0€ HT + TVA (20%) : 200,00\u00a0€ = 1\u202f200,00\u00a0€ TTC"


@pytest.mark.parametrize("price", [None, 0, -5, "abc"])
def test_missing_price_is_on_quote(price):
    assert price_info(price).text == PRICE_ON_QUOTE


def test_training_location_falls_back_to_company_city_then_default():
    company = SimpleNamespace(city="Lille", address="3 rue Nationale, Lille")
    assert training_location("Salle 2", company) == "Salle 2"
    assert training_location("À définir", company) == "Lille"
    assert training_location(None, SimpleNamespace(city=None, address="3 rue Nationale, Roubaix")) == "Roubaix"
    assert training_location(None, None) == DEFAULT_LOCATION


def test_company_display_prefers_company_record():
    company = SimpleNamespace(name="ACME", address="1 rue X", postal_code="75002", city="Paris", siret="123")
    display = company_display(company, _participant(company_name="Autre"))
    assert display.name == "ACME"
    assert display.address == "1 rue X, 75002 Paris"
    assert display.siret == "123"


def test_company_display_uses_typed_company_name():
    display = company_display(None, _participant(company_name="Boulangerie Martin"))
    assert display.name == "Boulangerie Martin"
    assert display.address == TO_COMPLETE


def test_company_display_for_independent_worker():
    display = company_display(None, _participant(status="Auto-entrepreneur"))
    assert display.is_independent
    assert display.label == "Apprenant indépendant"
    assert display.name == "Jean Dupont (Auto-entrepreneur)"


def test_organization_info_keeps_defaults_for_blank_columns():
    settings = SimpleNamespace(organization_name="Forma+", city="  ", address=None)
    info = organization_info(settings)
    assert info.organization_name == "Forma+"
    assert info.city == organization_info(None).city


def test_build_document_model_from_legacy_json_text():
    training = _training(
        objectives='["Identifier les risques", "Appliquer les consignes"]',
        evaluation_methods=None,
        pedagogical_methods='{"case_studies": "true", "digital_support": 1}',
    )
    model = build_document_model(training, _participant(), today=TODAY)

    assert model.objectives == ["Identifier les risques", "Appliquer les consignes"]
    assert model.evaluation_methods == [METHOD_PLACEHOLDER]
    assert model.pedagogical_methods == ["Études de cas", "Support de cours numérique"]
    assert model.signature_date == "01 juin 2024"
    assert model.date_range == "du 04 mars 2024 au 05 mars 2024"
    assert model.participant_name == "Jean Dupont"


def test_build_document_model_fills_every_blank():
    training = _training(title="", objectives=None, duration=None, trainer_name=None, start_date=None, end_date=None)
    model = build_document_model(training, _participant(job_position=None), today=TODAY)

    assert model.training_title == TO_COMPLETE
    assert model.objectives == [OBJECTIVES_PLACEHOLDER]
    assert model.duration == DEFAULT_DURATION
    assert model.trainer_name == TO_COMPLETE
    assert model.participant_job_title == TO_COMPLETE
    assert model.date_range == "Dates à définir"
    assert model.price.on_quote
    for sentences in (
        model.pedagogical_methods,
        model.material_elements,
        model.evaluation_methods,
        model.tracking_methods,
    ):
        assert sentences == [METHOD_PLACEHOLDER]
