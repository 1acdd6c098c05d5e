# backend/formadb/apps/documents/pdf_renderer.py
"""
HTML to paginated A4 PDF.

The document is restyled for print, rasterized once into a single tall
bitmap, cut into page slices along the tagged sections, and each slice is
placed as a JPEG on its own A4 page. Any failure surfaces as RenderFailure
and nothing partial is returned.
"""

from __future__ import annotations

import importlib.util
import logging
import re
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Callable, Iterable, List, Optional

from pdfrw import PdfReader, PdfWriter
from PIL import Image

from ...errors import RenderDependencyError, RenderFailure
from ..signatures.enums import DocumentType
from .pagination import Slice, compute_page_breaks
from .print_layout import prepare_print_html
from .rasterizer import Raster, RendererContext

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]

DOCUMENT_LABELS = {
    DocumentType.CONVENTION: "Convention",
    DocumentType.ATTESTATION: "Attestation",
    DocumentType.ATTENDANCE_SHEET: "Emargement",
    DocumentType.CERTIFICATE: "Certificat",
}


@dataclass(frozen=True)
class PageConfig:
    page_width_mm: float = 210
    page_height_mm: float = 297
    margin_mm: float = 15
    footer_mm: float = 10
    scale: float = 2
    viewport_width: int = 1200
    jpeg_quality: int = 95

    @property
    def content_width_mm(self) -> float:
        return self.page_width_mm - 2 * self.margin_mm

    @property
    def content_height_mm(self) -> float:
        return self.page_height_mm - 2 * self.margin_mm - self.footer_mm

    def page_height_px(self, bitmap_width: int) -> float:
        """Bitmap rows that fit in one page's content area."""
        return bitmap_width * self.content_height_mm / self.content_width_mm


# ---------------------------------------------------------------------------
# PDF ASSEMBLY
# ---------------------------------------------------------------------------


def _require_reportlab() -> None:
    if importlib.util.find_spec("reportlab") is None:
        raise RenderDependencyError(
            "Missing dependency 'reportlab'. Install it with 'pip install -e .'."
        )


def _slice_to_jpeg(image: Image.Image, start: int, end: int, quality: int) -> bytes:
    tile = image.crop((0, start, image.width, end))
    if tile.mode != "RGB":
        background = Image.new("RGB", tile.size, (255, 255, 255))
        background.paste(tile, mask=tile.split()[-1] if tile.mode in ("RGBA", "LA") else None)
        tile = background
    buffer = BytesIO()
    tile.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def _assemble_pdf(
    raster: Raster,
    slices: List[Slice],
    config: PageConfig,
    progress: Optional[ProgressCallback],
) -> bytes:
    _require_reportlab()
    from reportlab.lib.units import mm  # type: ignore[import-not-found]
    from reportlab.lib.utils import ImageReader  # type: ignore[import-not-found]
    from reportlab.pdfgen import canvas  # type: ignore[import-not-found]

    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(config.page_width_mm * mm, config.page_height_mm * mm))
    image_width = config.content_width_mm * mm

    with Image.open(BytesIO(raster.png)) as image:
        image.load()
        for index, (start, end) in enumerate(slices, start=1):
            jpeg = _slice_to_jpeg(image, start, end, config.jpeg_quality)
            image_height = (end - start) * config.content_width_mm / raster.width * mm
            pdf.drawImage(
                ImageReader(BytesIO(jpeg)),
                config.margin_mm * mm,
                config.page_height_mm * mm - config.margin_mm * mm - image_height,
                width=image_width,
                height=image_height,
            )
            pdf.showPage()
            if progress is not None:
                progress("pages", index / len(slices))

    pdf.save()
    return buffer.getvalue()


def render_to_pdf(
    html: str,
    config: PageConfig = PageConfig(),
    progress: Optional[ProgressCallback] = None,
    context: Any = None,
) -> bytes:
    """
    Render ``html`` to PDF bytes.

    ``context`` is anything with a ``rasterize(html) -> Raster`` method; a
    RendererContext is opened and closed around the call when omitted.
    """
    try:
        print_html = prepare_print_html(html)
        if progress is not None:
            progress("layout", 1.0)

        if context is None:
            with RendererContext(scale=config.scale, viewport_width=config.viewport_width) as owned:
                raster = owned.rasterize(print_html)
        else:
            raster = context.rasterize(print_html)
        if progress is not None:
            progress("rasterize", 1.0)

        slices = compute_page_breaks(raster.height, config.page_height_px(raster.width), raster.sections)
        if not slices:
            raise ValueError("Rendered document is empty.")

        pdf = _assemble_pdf(raster, slices, config, progress)
    except Exception as exc:
        logger.exception("PDF rendering failed", extra={"error": str(exc)})
        raise RenderFailure() from exc

    logger.info("PDF rendered", extra={"pages": len(slices), "bytes": len(pdf)})
    return pdf


# ---------------------------------------------------------------------------
# FILES
# ---------------------------------------------------------------------------


def _filename_part(value: Any) -> str:
    return re.sub(r"\s+", "_", str(value or "").strip())


def document_filename(kind: DocumentType, participant: Any, training: Any) -> str:
    label = DOCUMENT_LABELS[DocumentType(kind)]
    parts = [
        label,
        _filename_part(getattr(participant, "first_name", None)),
        _filename_part(getattr(participant, "last_name", None)),
        _filename_part(getattr(training, "title", None)),
    ]
    return "_".join(part for part in parts if part) + ".pdf"


def bundle_pdfs(pdfs: Iterable[bytes]) -> bytes:
    """Concatenate rendered PDFs into one file, in order."""
    writer = PdfWriter()
    for data in pdfs:
        writer.addpages(PdfReader(fdata=data).pages)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()
