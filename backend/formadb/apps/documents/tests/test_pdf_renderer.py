from __future__ import annotations

from types import SimpleNamespace

import pytest
from pdfrw import PdfReader

from formadb.apps.documents.pdf_renderer import (
    PageConfig,
    bundle_pdfs,
    document_filename,
    render_to_pdf,
)
from formadb.apps.signatures.enums import DocumentType
from formadb.errors import RENDER_FAILURE_MESSAGE, RenderFailure

from .fakes import BrokenRenderer, FakeRenderer

HTML = '<html><body><div class="section-content"><p>Bonjour</p></div></body></html>'


def _page_count(pdf: bytes) -> int:
    return len(PdfReader(fdata=pdf).pages)


def test_page_config_content_area():
    config = PageConfig()
    assert config.content_width_mm == 180
    assert config.content_height_mm == 257
    assert config.page_height_px(180) == pytest.approx(257)


def test_render_to_pdf_paginates_tall_bitmap():
    # 360 px wide -> 514 px per page, so 1000 px need two pages.
    renderer = FakeRenderer(width=360, height=1000)
    pdf = render_to_pdf(HTML, context=renderer)

    assert pdf.startswith(b"%PDF")
    assert _page_count(pdf) == 2
    assert 'id="pdf-root"' in renderer.seen[0]


def test_render_to_pdf_two_full_pages_at_print_width():
    width = 2368
    height = int(round(2 * PageConfig().page_height_px(width)))
    pdf = render_to_pdf(HTML, context=FakeRenderer(width=width, height=height))
    assert _page_count(pdf) == 2


def test_render_to_pdf_keeps_sections_whole():
    renderer = FakeRenderer(width=360, height=900, sections=[(0, 300), (300, 500), (500, 900)])
    assert _page_count(render_to_pdf(HTML, context=renderer)) == 2


def test_render_to_pdf_flattens_transparent_bitmap():
    pdf = render_to_pdf(HTML, context=FakeRenderer(width=360, height=400, mode="RGBA"))
    assert _page_count(pdf) == 1


def test_render_to_pdf_reports_progress():
    steps = []
    render_to_pdf(HTML, context=FakeRenderer(width=360, height=1000), progress=lambda step, value: steps.append((step, value)))

    assert steps[0] == ("layout", 1.0)
    assert steps[1] == ("rasterize", 1.0)
    assert steps[-1] == ("pages", 1.0)


def test_render_to_pdf_wraps_rasterizer_errors():
    with pytest.raises(RenderFailure) as excinfo:
        render_to_pdf(HTML, context=BrokenRenderer())
    assert excinfo.value.user_message == RENDER_FAILURE_MESSAGE
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_render_to_pdf_rejects_empty_bitmap():
    with pytest.raises(RenderFailure):
        render_to_pdf(HTML, context=FakeRenderer(width=360, height=0))


def test_document_filename():
    participant = SimpleNamespace(first_name="Jean", last_name="De La Tour")
    training = SimpleNamespace(title="Sécurité incendie")
    assert (
        document_filename(DocumentType.ATTENDANCE_SHEET, participant, training)
        == "Emargement_Jean_De_La_Tour_Sécurité_incendie.pdf"
    )
    assert document_filename(DocumentType.CERTIFICATE, SimpleNamespace(), SimpleNamespace()) == "Certificat.pdf"


def test_bundle_pdfs_keeps_order_and_pages():
    first = render_to_pdf(HTML, context=FakeRenderer(width=360, height=1000))
    second = render_to_pdf(HTML, context=FakeRenderer(width=360, height=400))

    merged = bundle_pdfs([first, second])

    assert merged.startswith(b"%PDF")
    assert _page_count(merged) == 3
