"""
PDF generation mirroring the normalized contract layout
"""
from __future__ import annotations

import logging
import os
import textwrap
from collections.abc import Mapping
from io import BytesIO

import arabic_reshaper
from bidi.algorithm import get_display
from django.conf import settings
from reportlab.lib.pagesizes import A4, LETTER, landscape, portrait
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont
from reportlab.pdfgen import canvas

from .layout import normalize_layout

logger = logging.getLogger(__name__)

PAPER_SIZES = {'a4': A4, 'letter': LETTER}
ORIENTATIONS = ('portrait', 'landscape')

BASE_FONT = 'Times-Roman'
BOLD_FONT = 'Times-Bold'
ITALIC_FONT = 'Times-Italic'
ARABIC_FONT_NAME = 'ContractArabic'

_registered_arabic_font = None


def shape_arabic(text):
    """Joined letter forms in visual (right-to-left) order, as reportlab draws glyphs as given."""
    return get_display(arabic_reshaper.reshape(text))


def arabic_font():
    """Registered Arabic TTF font name, or None when PDF_ARABIC_FONT_PATH is unset or unreadable."""
    global _registered_arabic_font
    path = getattr(settings, 'PDF_ARABIC_FONT_PATH', '')
    if not path:
        return None
    if _registered_arabic_font == path:
        return ARABIC_FONT_NAME
    if not os.path.exists(path):
        logger.warning("PDF_ARABIC_FONT_PATH %s does not exist; using base font", path)
        return None
    try:
        pdfmetrics.registerFont(TTFont(ARABIC_FONT_NAME, path))
    except (TTFError, OSError) as e:
        logger.warning("Could not register Arabic font %s: %s", path, e)
        return None
    _registered_arabic_font = path
    return ARABIC_FONT_NAME


class ContractPdfWriter:
    """Draws normalized pages onto a reportlab canvas, one or more PDF pages per layout page."""

    def __init__(self, *, pagesize, reference_number='', include_watermark=False):
        self.buffer = BytesIO()
        self.pagesize = pagesize
        self.canvas = canvas.Canvas(self.buffer, pagesize=pagesize)
        self.width, self.height = pagesize
        self.left = 0.75 * inch
        self.right = self.width - 0.75 * inch
        self.top = self.height - 0.75 * inch
        self.bottom = 0.9 * inch
        self.reference_number = reference_number
        self.include_watermark = include_watermark
        self.arabic_font = arabic_font()
        self.page_number = 0
        self.y = self.top
        self._page_open = False

    # -- page lifecycle -----------------------------------------------------

    def start_page(self):
        if self._page_open:
            self.finish_page()
        self.page_number += 1
        self._page_open = True
        self.y = self.top
        if self.include_watermark:
            self._draw_watermark()

    def finish_page(self):
        self._draw_footer()
        self.canvas.showPage()
        self._page_open = False

    def _draw_watermark(self):
        c = self.canvas
        c.saveState()
        c.setFont(BOLD_FONT, 96)
        c.setFillGray(0.85)
        c.translate(self.width / 2, self.height / 2)
        c.rotate(45)
        c.drawCentredString(0, 0, 'DRAFT')
        c.restoreState()

    def _draw_footer(self):
        c = self.canvas
        c.saveState()
        c.setFont(BASE_FONT, 8)
        c.setFillGray(0.4)
        if self.reference_number:
            c.drawString(self.left, 0.5 * inch, f"Ref: {self.reference_number}")
        c.drawRightString(self.right, 0.5 * inch, f"Page {self.page_number}")
        c.restoreState()

    # -- drawing primitives -------------------------------------------------

    def _max_chars(self, size):
        return max(20, int((self.right - self.left) / (size * 0.5)))

    def line(self, text, *, font=BASE_FONT, size=11, arabic=False, gap=4):
        if self.y - size <= self.bottom:
            self.start_page()
        c = self.canvas
        if arabic:
            c.setFont(self.arabic_font or font, size)
            c.drawRightString(self.right, self.y - size, shape_arabic(text))
        else:
            c.setFont(font, size)
            c.drawString(self.left, self.y - size, text)
        self.y -= size + gap

    def paragraph(self, text, *, font=BASE_FONT, size=11, arabic=False):
        for raw_line in (text or '').splitlines() or ['']:
            wrapped = textwrap.wrap(raw_line, width=self._max_chars(size)) or ['']
            for wl in wrapped:
                self.line(wl, font=font, size=size, arabic=arabic)

    def spacer(self, amount=6):
        self.y -= amount

    def save(self) -> bytes:
        if self._page_open:
            self.finish_page()
        self.canvas.save()
        self.buffer.seek(0)
        return self.buffer.read()


def _bilingual_lines(writer, value, language, **kwargs):
    value = value if isinstance(value, Mapping) else {}
    if language in ('en', 'both') and value.get('en'):
        writer.paragraph(value['en'], **kwargs)
    if language in ('ar', 'both') and value.get('ar'):
        writer.paragraph(value['ar'], arabic=True, **kwargs)


def _draw_section(writer, section, *, language, include_signatures):
    section_type = section.get('type')

    if section_type == 'title':
        writer.spacer(4)
        _bilingual_lines(writer, section.get('content'), language, font=BOLD_FONT, size=14)
    elif section_type == 'note':
        _bilingual_lines(writer, section.get('content'), language, font=ITALIC_FONT, size=10)
    elif section_type == 'text':
        _bilingual_lines(writer, section.get('content'), language, size=11)
    elif section_type == 'photo_section':
        _bilingual_lines(writer, section.get('title'), language, font=BOLD_FONT, size=11)
        if section.get('image_url'):
            writer.paragraph(f"Image: {section['image_url']}", size=9)
    elif section_type == 'signature':
        if not include_signatures:
            return
        writer.spacer(10)
        for party in section.get('parties', []):
            name, role = party.get('name') or {}, party.get('role') or {}
            if language in ('en', 'both'):
                writer.line(f"{role.get('en', '')}: {name.get('en', '')}  ____________________", size=11)
            if language in ('ar', 'both'):
                writer.line(f"{role.get('ar', '')}: {name.get('ar', '')}", size=11, arabic=True)
            writer.spacer(8)
    writer.spacer(4)


def generate_contract_pdf(
    layout,
    *,
    language='both',
    paper_size='a4',
    orientation='portrait',
    include_signatures=True,
    include_watermark=False,
    reference_number=None,
) -> bytes:
    """Render a normalized layout (or anything `normalize_layout` accepts) to PDF bytes."""
    if not (isinstance(layout, Mapping) and 'source' in layout and 'pages' in layout):
        layout = normalize_layout(layout)

    pagesize = PAPER_SIZES.get(str(paper_size).lower(), A4)
    if orientation not in ORIENTATIONS:
        orientation = 'portrait'
    pagesize = landscape(pagesize) if orientation == 'landscape' else portrait(pagesize)
    if language not in ('en', 'ar', 'both'):
        language = 'both'
    if reference_number is None:
        reference_number = layout.get('reference_number', '')

    writer = ContractPdfWriter(
        pagesize=pagesize,
        reference_number=reference_number,
        include_watermark=include_watermark,
    )

    pages = layout.get('pages') or [{'sections': []}]
    for page in pages:
        writer.start_page()
        for section in page.get('sections', []):
            _draw_section(writer, section, language=language, include_signatures=include_signatures)

    return writer.save()
