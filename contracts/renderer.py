"""
Bilingual HTML rendering of normalized contract layouts
"""
from collections.abc import Mapping
from itertools import zip_longest

from django.template.loader import render_to_string

from .layout import normalize_layout

LANGUAGES = ('en', 'ar', 'both')


def _paragraphs(content):
    en = [p for p in (content.get('en') or '').split('\n') if p.strip()]
    ar = [p for p in (content.get('ar') or '').split('\n') if p.strip()]
    return list(zip_longest(en, ar, fillvalue=''))


def _prepare_pages(pages):
    prepared = []
    for page in pages:
        sections = []
        for section in page.get('sections', []):
            if section.get('type') == 'text':
                section = dict(section, paragraphs=_paragraphs(section.get('content') or {}))
            sections.append(section)
        prepared.append({'letterhead_url': page.get('letterhead_url', ''), 'sections': sections})
    return prepared


def render_contract_html(layout, language='both') -> str:
    """
    Render a normalized layout as a standalone HTML document.

    Anything that is not already normalized (a Contract, a raw stored shape)
    goes through `normalize_layout` first. Content is autoescaped.
    """
    if not (isinstance(layout, Mapping) and 'source' in layout and 'pages' in layout):
        layout = normalize_layout(layout)
    if language not in LANGUAGES:
        language = 'both'

    context = {
        'language': language,
        'show_en': language in ('en', 'both'),
        'show_ar': language in ('ar', 'both'),
        'reference_number': layout.get('reference_number', ''),
        'pages': _prepare_pages(layout.get('pages') or []),
    }
    return render_to_string('contracts/contract_layout.html', context)
