# backend/formadb/apps/documents/pagination.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

Slice = Tuple[int, int]


@dataclass(frozen=True)
class Section:
    """A tagged block of the rasterized document, in bitmap pixels."""

    top: int
    bottom: int
    is_annex: bool = False
    section_id: Optional[str] = None

    @property
    def height(self) -> int:
        return self.bottom - self.top


def _clamped(sections: Iterable[Section], total_height: int) -> List[Section]:
    usable = []
    for section in sections:
        top = max(0, min(int(round(section.top)), total_height))
        bottom = max(0, min(int(round(section.bottom)), total_height))
        if bottom > top:
            usable.append(Section(top, bottom, section.is_annex, section.section_id))
    return sorted(usable, key=lambda s: (s.top, -s.bottom))


def compute_page_breaks(
    total_height: int,
    page_height: float,
    sections: Iterable[Section] = (),
) -> List[Slice]:
    """
    Split a bitmap of ``total_height`` pixels into page slices.

    Tagged sections stay on one page unless they are taller than a page, an
    annex always opens a new page, and content outside any section is cut
    at fixed page height. Returns ``(start, end)`` pixel rows, top to bottom,
    with no empty slice.
    """
    total_height = int(total_height)
    page = float(page_height)
    if total_height <= 0 or page < 1:
        return []

    slices: List[Slice] = []
    page_start = 0
    covered = 0

    def cut_full_pages(limit: int) -> None:
        # Cuts land on round(k * page) from where the run started so a
        # fractional page height never leaves a sliver page.
        nonlocal page_start
        origin = page_start
        k = 1
        end = origin + int(round(k * page))
        while limit > end:
            slices.append((page_start, end))
            page_start = end
            k += 1
            end = origin + int(round(k * page))

    for section in _clamped(sections, total_height):
        # Nested or overlapping blocks ride along with their container.
        if section.top < covered:
            continue

        cut_full_pages(section.top)

        if section.top > page_start and (section.is_annex or section.bottom - page_start > page):
            slices.append((page_start, section.top))
            page_start = section.top

        cut_full_pages(section.bottom)
        covered = section.bottom

    cut_full_pages(total_height)
    if total_height > page_start:
        slices.append((page_start, total_height))

    return [(start, end) for start, end in slices if end > start]
