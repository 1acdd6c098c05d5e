# backend/formadb/apps/documents/print_layout.py
"""
Print-only restyling of a rendered document.

The input HTML is parsed into a fresh lxml tree (or an element is deep
copied), so the caller's markup is never modified. All changes apply to
that copy: print CSS, French typography, list markers, section tagging and
a trailing spacer.
"""

from __future__ import annotations

import copy
import re
from typing import Union

from lxml import etree, html as lxml_html

PRINT_CONTAINER_CLASS = "pdf-temp-container"
SECTION_CLASSES = ("section-content", "annexe")
SECTION_ID_ATTR = "data-section-id"
SPACER_HEIGHT = "20mm"
NARROW_NBSP = "\u202f"

PRINT_CSS = """
.pdf-temp-container {
  background: #ffffff;
  color: #000000;
  font-family: "Times New Roman", Times, serif;
  font-size: 12pt;
  line-height: 1.4;
  overflow-wrap: break-word;
  padding: 0;
  width: 100%;
}
.pdf-temp-container h1 { font-size: 16pt; text-align: center; margin: 0 0 8pt 0; }
.pdf-temp-container h2 { font-size: 14pt; margin: 10pt 0 6pt 0; }
.pdf-temp-container h3 { font-size: 13pt; margin: 8pt 0 4pt 0; }
.pdf-temp-container p { margin: 0 0 5pt 0; text-align: justify; }
.pdf-temp-container ul, .pdf-temp-container ol { margin: 3pt 0 5pt 0; padding-left: 20pt; }
.pdf-temp-container li { margin-bottom: 3pt; text-align: justify; }
.pdf-temp-container table { width: 100%; border-collapse: collapse; margin: 6pt 0 8pt 0; }
.pdf-temp-container td, .pdf-temp-container th {
  border: 1pt solid #000000;
  padding: 5pt 6pt;
  text-align: center;
  vertical-align: middle;
}
.pdf-temp-container .signature-table td { border: none; vertical-align: top; text-align: left; }
.pdf-temp-container img.signature { max-height: 60pt; max-width: 180pt; }
.pdf-temp-container .signature-empty { height: 60pt; }
.pdf-temp-container .section-content, .pdf-temp-container .annexe { display: flow-root; }
"""

# Space before ; : ! ? and the closing guillemet becomes a narrow no-break
# space, as does the space after the opening one.
_SPACE_BEFORE_PUNCT = re.compile(r"[ \t\u00a0\u202f]+([;:!?\u00bb])")
_SPACE_AFTER_GUILLEMET = re.compile(r"\u00ab[ \t\u00a0\u202f]*")
_INVISIBLE_BREAKS = re.compile(r"[\u00ad\u200b]")

_SKIP_TEXT_TAGS = {"script", "style", "code", "pre"}

_LIST_STYLES = {"ul": "disc", "ol": "decimal"}

HtmlInput = Union[str, bytes, etree._Element]


def apply_french_typography(text: str) -> str:
    if not text:
        return text
    text = _INVISIBLE_BREAKS.sub("", text)
    text = _SPACE_BEFORE_PUNCT.sub(NARROW_NBSP + r"\1", text)
    text = _SPACE_AFTER_GUILLEMET.sub("\u00ab" + NARROW_NBSP, text)
    return text


def _typeset_tree(root: etree._Element) -> None:
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        if element.tag.lower() not in _SKIP_TEXT_TAGS and element.text:
            element.text = apply_french_typography(element.text)
        # The tail belongs to the parent's text flow.
        parent = element.getparent()
        if element.tail and (parent is None or parent.tag.lower() not in _SKIP_TEXT_TAGS):
            element.tail = apply_french_typography(element.tail)


def _fix_bullets(root: etree._Element) -> None:
    for item in root.iter("li"):
        parent = item.getparent()
        list_style = _LIST_STYLES.get(parent.tag.lower() if parent is not None else "")
        if not list_style:
            continue
        style = (item.get("style") or "").rstrip("; ")
        extra = f"list-style-type: {list_style}; list-style-position: outside; margin-left: 5pt; padding-left: 5pt"
        item.set("style", f"{style}; {extra}" if style else extra)


def _has_class(element: etree._Element, name: str) -> bool:
    return name in (element.get("class") or "").split()


def _tag_sections(root: etree._Element) -> int:
    index = 0
    for element in root.iter():
        if not isinstance(element.tag, str):
            continue
        if any(_has_class(element, name) for name in SECTION_CLASSES):
            element.set(SECTION_ID_ATTR, f"section-{index}")
            classes = (element.get("class") or "").split()
            if "dynamic-section" not in classes:
                element.set("class", " ".join(classes + ["dynamic-section"]))
            index += 1
    return index


def _parse(source: HtmlInput) -> etree._Element:
    if isinstance(source, etree._Element):
        root = copy.deepcopy(source)
        if root.tag.lower() == "html":
            return root
        document = lxml_html.document_fromstring("<html><head></head><body></body></html>")
        document.find("body").append(root)
        return document
    return lxml_html.document_fromstring(source)


def prepare_print_html(source: HtmlInput) -> str:
    """Return a print-ready HTML string built from a copy of ``source``."""
    document = _parse(source)

    head = document.find("head")
    if head is None:
        head = etree.Element("head")
        document.insert(0, head)
    style = etree.SubElement(head, "style", id="print-overrides")
    style.text = PRINT_CSS

    body = document.find("body")
    if body is None:
        body = etree.SubElement(document, "body")

    container = etree.Element("div", id="pdf-root")
    container.set("class", PRINT_CONTAINER_CLASS)
    for child in list(body):
        container.append(child)
    container.text, body.text = body.text, None
    body.append(container)

    _typeset_tree(container)
    _fix_bullets(container)
    _tag_sections(container)

    spacer = etree.SubElement(container, "div")
    spacer.set("class", "pdf-spacer")
    spacer.set("style", f"height: {SPACER_HEIGHT}; width: 100%")

    return lxml_html.tostring(document, encoding="unicode", doctype="<!DOCTYPE html>")
