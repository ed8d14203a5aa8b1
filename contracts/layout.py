"""
Contract layout normalizer.

Stored contracts carry one of several historical JSON shapes. Everything that
renders a contract (HTML, PDF, edge endpoints) goes through
`normalize_layout`, which reduces any of them to::

    {
        'id': str,
        'reference_number': str,
        'pages': [{'letterhead_url': str, 'sections': [section, ...]}],
        'metadata': {...},
        'source': 'contract_template' | 'pages' | 'contract_layout'
                  | 'legacy_sections' | 'contract_data' | 'mock',
    }

where each section is exactly one of::

    {'type': 'title', 'content': {'en', 'ar'}}
    {'type': 'note', 'content': {'en', 'ar'}}
    {'type': 'text', 'content': {'en', 'ar'}}
    {'type': 'photo_section', 'title': {'en', 'ar'}, 'image_url': str}
    {'type': 'signature', 'parties': [{'name': {'en', 'ar'}, 'role': {'en', 'ar'}, 'signature'?: str}]}

`normalize_layout` never raises and always returns at least one page.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import date, datetime, timedelta

from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

SECTION_TAGS = ('title', 'note', 'text', 'photo_section', 'signature')

SOURCE_CONTRACT_TEMPLATE = 'contract_template'
SOURCE_PAGES = 'pages'
SOURCE_CONTRACT_LAYOUT = 'contract_layout'
SOURCE_LEGACY_SECTIONS = 'legacy_sections'
SOURCE_CONTRACT_DATA = 'contract_data'
SOURCE_MOCK = 'mock'

# (field prefix, English default, Arabic default)
METADATA_NAMES = [
    ('first_party_name', 'First Party', 'الطرف الأول'),
    ('second_party_name', 'Second Party', 'الطرف الثاني'),
    ('promoter_name', 'Promoter', 'المروج'),
    ('product_name', 'Product', 'المنتج'),
    ('location_name', 'Location', 'الموقع'),
]

FIRST_PARTY_ROLE = {'en': 'First Party', 'ar': 'الطرف الأول'}
SECOND_PARTY_ROLE = {'en': 'Second Party', 'ar': 'الطرف الثاني'}

ID_PHOTO_TITLE = {'en': 'ID Photo', 'ar': 'صورة الهوية'}
PASSPORT_PHOTO_TITLE = {'en': 'Passport Photo', 'ar': 'صورة جواز السفر'}

FLAT_CONTRACT_FIELDS = (
    'first_party_name_en',
    'second_party_name_en',
    'promoter_name_en',
    'product_name_en',
    'location_name_en',
)

PHOTO_PLACEHOLDER_URL = '/placeholder.svg?height=300&width=400'


def placeholder_letterhead():
    return getattr(settings, 'LETTERHEAD_PLACEHOLDER_URL', '/placeholder.svg?height=150&width=300')


# ---------------------------------------------------------------------------
# Primitive coercions
# ---------------------------------------------------------------------------

def _text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ''


def bilingual(value, default_en: str = '', default_ar: str | None = None) -> dict:
    """Coerce `value` to `{'en': str, 'ar': str}`.

    A bare string is used for both languages and a missing Arabic side falls
    back to English.
    """
    if isinstance(value, Mapping):
        en = _text(value.get('en'))
        ar = _text(value.get('ar'))
    else:
        en = ar = _text(value)
    if not ar:
        ar = en or (default_ar if default_ar is not None else default_en)
    return {'en': en or default_en, 'ar': ar}


def _pair(en, ar, default_en: str = '', default_ar: str = '') -> dict:
    en = _text(en).strip()
    ar = _text(ar).strip()
    return {
        'en': en or default_en,
        'ar': ar or en or default_ar,
    }


def is_real_url(value) -> bool:
    """True for a usable image URL, False for empty values and template placeholders."""
    url = _text(value).strip()
    if not url:
        return False
    if url.startswith('[') and url.endswith(']'):
        return False
    return 'placeholder' not in url


def _get(record, key):
    if record is None:
        return None
    if isinstance(record, Mapping):
        return record.get(key)
    return getattr(record, key, None)


def _iso(value) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return _text(value)


# ---------------------------------------------------------------------------
# Sections and pages
# ---------------------------------------------------------------------------

def _normalize_party(raw):
    if not isinstance(raw, Mapping):
        return None
    party = {
        'name': bilingual(raw.get('name')),
        'role': bilingual(raw.get('role')),
    }
    signature = _text(raw.get('signature')).strip()
    if signature:
        party['signature'] = signature
    return party


def normalize_section(raw):
    """Normalize one section in the current shape. Unknown types return None."""
    if not isinstance(raw, Mapping):
        return None

    section_type = raw.get('type')
    if section_type in ('title', 'note', 'text'):
        return {'type': section_type, 'content': bilingual(raw.get('content'))}

    if section_type == 'photo_section':
        return {
            'type': 'photo_section',
            'title': bilingual(raw.get('title')),
            'image_url': _text(raw.get('image_url')),
        }

    if section_type == 'signature':
        parties = raw.get('parties')
        if not isinstance(parties, (list, tuple)):
            parties = []
        normalized = [p for p in (_normalize_party(party) for party in parties) if p]
        return {'type': 'signature', 'parties': normalized}

    return None


def normalize_legacy_section(raw):
    """Map the pre-pages `sections` vocabulary onto the current section tags."""
    if not isinstance(raw, Mapping):
        return None

    section_type = raw.get('type')
    if section_type == 'header':
        return {'type': 'title', 'content': _pair(raw.get('title'), raw.get('title_ar'))}

    if section_type in ('text', 'note') and not isinstance(raw.get('content'), Mapping):
        return {'type': section_type, 'content': _pair(raw.get('content'), raw.get('content_ar'))}

    if section_type == 'promoter':
        return {
            'type': 'photo_section',
            'title': {'en': 'Promoter ID', 'ar': 'هوية المروج'},
            'image_url': _text(raw.get('id_photo')),
        }

    if section_type == 'signature' and not isinstance(raw.get('parties'), (list, tuple)):
        parties = []
        for key, role in (('first_party', FIRST_PARTY_ROLE), ('second_party', SECOND_PARTY_ROLE)):
            party = raw.get(key)
            party = party if isinstance(party, Mapping) else {}
            parties.append({
                'name': _pair(party.get('name'), party.get('name_ar')),
                'role': dict(role),
            })
        return {'type': 'signature', 'parties': parties}

    return normalize_section(raw)


def _normalize_pages(raw_pages, letterhead_fallback):
    if not isinstance(raw_pages, (list, tuple)):
        return []

    pages = []
    for raw in raw_pages:
        if not isinstance(raw, Mapping):
            continue
        raw_sections = raw.get('sections')
        if not isinstance(raw_sections, (list, tuple)):
            raw_sections = []
        sections = [s for s in (normalize_section(item) for item in raw_sections) if s]
        pages.append({
            'letterhead_url': _text(raw.get('letterhead_url')) or letterhead_fallback,
            'sections': sections,
        })
    return pages


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

def _contract_data(record) -> Mapping:
    data = _get(record, 'contract_data')
    return data if isinstance(data, Mapping) else {}


def _field(record, name):
    """Column or key on the record, else the same key inside contract_data."""
    value = _get(record, name)
    if value in (None, ''):
        value = _contract_data(record).get(name)
    return value


def _default_dates():
    today = timezone.now()
    return today.isoformat(), (today + timedelta(days=30)).isoformat()


def build_metadata(record, provided=None) -> dict:
    """Bilingual party/promoter/product/location names plus the contract dates.

    Values in `provided` (a shape's own metadata block) win over record fields.
    """
    provided = provided if isinstance(provided, Mapping) else {}
    metadata = {}

    for prefix, default_en, default_ar in METADATA_NAMES:
        given = provided.get(prefix)
        if isinstance(given, (Mapping, str)) and bilingual(given)['en']:
            metadata[prefix] = bilingual(given, default_en, default_ar)
        else:
            metadata[prefix] = _pair(
                _field(record, f'{prefix}_en'),
                _field(record, f'{prefix}_ar'),
                default_en,
                default_ar,
            )

    default_start, default_end = _default_dates()
    metadata['start_date'] = (
        _iso(provided.get('start_date')) or _iso(_field(record, 'start_date')) or default_start
    )
    metadata['end_date'] = (
        _iso(provided.get('end_date')) or _iso(_field(record, 'end_date')) or default_end
    )
    return metadata


def _record_letterhead(record):
    return _text(_field(record, 'letterhead_image_url'))


def _signature_block(metadata):
    return {
        'type': 'signature',
        'parties': [
            {'name': dict(metadata['first_party_name']), 'role': dict(FIRST_PARTY_ROLE)},
            {'name': dict(metadata['second_party_name']), 'role': dict(SECOND_PARTY_ROLE)},
        ],
    }


def _photo_sections(id_photo_url, passport_photo_url):
    sections = []
    if is_real_url(id_photo_url):
        sections.append({'type': 'photo_section', 'title': dict(ID_PHOTO_TITLE), 'image_url': id_photo_url})
    if is_real_url(passport_photo_url):
        sections.append({'type': 'photo_section', 'title': dict(PASSPORT_PHOTO_TITLE), 'image_url': passport_photo_url})
    return sections


# ---------------------------------------------------------------------------
# Shape parsers; each returns (pages, metadata, reference) or None
# ---------------------------------------------------------------------------

def _parse_contract_template(record, letterhead_fallback):
    template = _get(record, 'contract_template')
    version = _get(record, 'version')
    reference = _get(record, 'ref_number')

    layout = _get(record, 'contract_layout')
    if isinstance(layout, Mapping) and _text(layout.get('version')) == '2.0':
        version = version or layout.get('version')
        reference = reference or layout.get('ref_number')
        if not isinstance(template, Mapping):
            template = layout.get('contract_template')

    if _text(version) != '2.0' or not isinstance(template, Mapping):
        return None
    raw_pages = template.get('pages')
    if not isinstance(raw_pages, (list, tuple)) or not raw_pages:
        return None

    letterhead = _text(template.get('letterhead_image_url'))
    if not is_real_url(letterhead):
        letterhead = letterhead_fallback
    id_photo = _text(template.get('id_card_photo_url'))
    passport_photo = _text(template.get('passport_photo_url'))

    pages = []
    for raw in raw_pages:
        if not isinstance(raw, Mapping):
            continue
        sections = []
        raw_sections = raw.get('sections')
        for item in raw_sections if isinstance(raw_sections, (list, tuple)) else []:
            if not isinstance(item, Mapping):
                continue
            title = bilingual(item.get('title'))
            content = bilingual(item.get('content'))
            if '[ID_CARD_PHOTO_URL]' in content['en']:
                sections.append({'type': 'photo_section', 'title': title, 'image_url': id_photo})
                continue
            if '[PASSPORT_PHOTO_URL]' in content['en']:
                sections.append({'type': 'photo_section', 'title': title, 'image_url': passport_photo})
                continue
            if title['en'] or title['ar']:
                sections.append({'type': 'title', 'content': title})
            sections.append({'type': 'text', 'content': content})
        pages.append({'letterhead_url': letterhead, 'sections': sections})

    if not pages:
        return None

    metadata_source = _get(record, 'metadata')
    if not isinstance(metadata_source, Mapping) and isinstance(layout, Mapping):
        metadata_source = layout.get('metadata')
    metadata = build_metadata(record, metadata_source)

    pages[-1]['sections'].extend(_photo_sections(id_photo, passport_photo))
    pages[-1]['sections'].append(_signature_block(metadata))

    reference = _text(reference) or _text(template.get('ref_number'))
    return pages, metadata, reference


def _parse_pages(record, letterhead_fallback):
    pages = _normalize_pages(_get(record, 'pages'), letterhead_fallback)
    if not pages:
        return None
    return pages, build_metadata(record, _get(record, 'metadata')), ''


def _parse_contract_layout_pages(record, letterhead_fallback):
    layout = _get(record, 'contract_layout')
    if not isinstance(layout, Mapping):
        return None
    pages = _normalize_pages(layout.get('pages'), letterhead_fallback)
    if not pages:
        return None
    return pages, build_metadata(record, layout.get('metadata')), _text(layout.get('ref_number'))


def _parse_legacy_sections(record, letterhead_fallback):
    for key in ('contract_layout', 'layout'):
        layout = _get(record, key)
        if isinstance(layout, Mapping) and isinstance(layout.get('sections'), (list, tuple)):
            break
    else:
        return None

    header = layout.get('header')
    letterhead = _text(header.get('logo')) if isinstance(header, Mapping) else ''
    sections = [s for s in (normalize_legacy_section(item) for item in layout['sections']) if s]
    pages = [{'letterhead_url': letterhead or letterhead_fallback, 'sections': sections}]
    return pages, build_metadata(record, layout.get('metadata')), ''


def _has_contract_data(record):
    if _contract_data(record):
        return True
    return any(_text(_get(record, name)).strip() for name in FLAT_CONTRACT_FIELDS)


def build_layout_from_contract_data(record, letterhead_fallback=None):
    """Synthesize a one-page agreement from flat contract fields."""
    letterhead_fallback = letterhead_fallback or _record_letterhead(record) or placeholder_letterhead()
    contract_id = _text(_iso(_get(record, 'id')))
    metadata = build_metadata(record)
    first, second = metadata['first_party_name'], metadata['second_party_name']
    product, location = metadata['product_name'], metadata['location_name']

    sections = [
        {'type': 'title', 'content': {'en': 'PROMOTION AGREEMENT', 'ar': 'اتفاقية ترويج'}},
        {'type': 'note', 'content': {'en': f'Contract No. {contract_id}', 'ar': f'رقم العقد {contract_id}'}},
        {
            'type': 'text',
            'content': {
                'en': (
                    f'This Promotion Agreement is entered into by and between {first["en"]} '
                    f'(the "First Party") and {second["en"]} (the "Second Party") for the promotion '
                    f'of {product["en"]} at {location["en"]}.'
                ),
                'ar': (
                    f'تم إبرام اتفاقية الترويج هذه بين {first["ar"]} ("الطرف الأول") و'
                    f'{second["ar"]} ("الطرف الثاني") للترويج لـ {product["ar"]} في {location["ar"]}.'
                ),
            },
        },
    ]
    sections.extend(_photo_sections(_text(_field(record, 'id_photo_url')), _text(_field(record, 'passport_photo_url'))))
    sections.append(_signature_block(metadata))

    return [{'letterhead_url': letterhead_fallback, 'sections': sections}], metadata, ''


def build_mock_layout(contract_id=None) -> dict:
    """Two-page preview layout with placeholder parties."""
    contract_id = _text(contract_id)
    letterhead = placeholder_letterhead()
    start, end = _default_dates()
    metadata = {
        'first_party_name': {'en': 'Company A', 'ar': 'الشركة أ'},
        'second_party_name': {'en': 'Company B', 'ar': 'الشركة ب'},
        'promoter_name': {'en': 'John Doe', 'ar': 'جون دو'},
        'product_name': {'en': 'Product X', 'ar': 'المنتج س'},
        'location_name': {'en': 'Location Y', 'ar': 'الموقع ص'},
        'start_date': start,
        'end_date': end,
    }
    pages = [
        {
            'letterhead_url': letterhead,
            'sections': [
                {'type': 'title', 'content': {'en': 'PROMOTION AGREEMENT (PREVIEW)', 'ar': 'اتفاقية ترويج (معاينة)'}},
                {
                    'type': 'note',
                    'content': {
                        'en': f'Contract No. {contract_id} (Mock Data)',
                        'ar': f'رقم العقد {contract_id} (بيانات تجريبية)',
                    },
                },
                {
                    'type': 'text',
                    'content': {
                        'en': (
                            'This is a mock contract for preview purposes.\n\n'
                            'This contract is between Company A and Company B for the promotion of Product X.'
                        ),
                        'ar': (
                            'هذا عقد تجريبي لأغراض المعاينة.\n\n'
                            'هذا العقد بين الشركة أ والشركة ب لترويج المنتج س.'
                        ),
                    },
                },
            ],
        },
        {
            'letterhead_url': letterhead,
            'sections': [
                {'type': 'title', 'content': {'en': 'PROMOTER DETAILS', 'ar': 'تفاصيل المروج'}},
                {
                    'type': 'text',
                    'content': {
                        'en': 'The Promoter engaged by the First Party has the following details:\n\n'
                              'Name: John Doe\nID Number: 1234567890',
                        'ar': 'المروج المعين من قبل الطرف الأول لديه التفاصيل التالية:\n\n'
                              'الاسم: جون دو\nرقم الهوية: 1234567890',
                    },
                },
                {'type': 'photo_section', 'title': dict(ID_PHOTO_TITLE), 'image_url': PHOTO_PLACEHOLDER_URL},
                {'type': 'photo_section', 'title': dict(PASSPORT_PHOTO_TITLE), 'image_url': PHOTO_PLACEHOLDER_URL},
                _signature_block(metadata),
            ],
        },
    ]
    return {
        'id': contract_id,
        'reference_number': '',
        'pages': pages,
        'metadata': metadata,
        'source': SOURCE_MOCK,
    }


SHAPE_PARSERS = [
    (SOURCE_CONTRACT_TEMPLATE, _parse_contract_template),
    (SOURCE_PAGES, _parse_pages),
    (SOURCE_CONTRACT_LAYOUT, _parse_contract_layout_pages),
    (SOURCE_LEGACY_SECTIONS, _parse_legacy_sections),
]


def normalize_layout(record, *, preview=None) -> dict:
    """Reduce any stored contract shape to the normalized page/section model.

    `record` may be a Contract instance, a mapping or None. With `preview`
    (default: settings.PREVIEW_MODE) the mock layout is returned.
    """
    if preview is None:
        preview = getattr(settings, 'PREVIEW_MODE', False)

    contract_id = _iso(_get(record, 'id')) if record is not None else ''

    if preview or record is None:
        return build_mock_layout(contract_id)

    try:
        letterhead_fallback = _record_letterhead(record) or placeholder_letterhead()
        reference_number = _text(_get(record, 'reference_number'))

        for source, parser in SHAPE_PARSERS:
            parsed = parser(record, letterhead_fallback)
            if parsed:
                pages, metadata, reference = parsed
                return {
                    'id': contract_id,
                    'reference_number': reference_number or reference,
                    'pages': pages,
                    'metadata': metadata,
                    'source': source,
                }

        if _has_contract_data(record):
            pages, metadata, _ = build_layout_from_contract_data(record, letterhead_fallback)
            return {
                'id': contract_id,
                'reference_number': reference_number,
                'pages': pages,
                'metadata': metadata,
                'source': SOURCE_CONTRACT_DATA,
            }
    except Exception:
        logger.exception("Failed to normalize layout for contract %s; using mock layout", contract_id)

    return build_mock_layout(contract_id)
