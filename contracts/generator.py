"""
Contract layout generation from creation input
"""
from __future__ import annotations

import copy
import uuid
from datetime import date, datetime

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

TEMPLATE_PROMOTER_ASSIGNMENT = 'promoterAssignment'

PROMOTER_ASSIGNMENT_TEMPLATE = {
    'letterhead_image_url': '[LETTERHEAD_IMAGE_URL]',
    'id_card_photo_url': '[ID_CARD_PHOTO_URL]',
    'passport_photo_url': '[PASSPORT_PHOTO_URL]',
    'pages': [
        {
            'page_number': 1,
            'sections': [
                {
                    'title': {'en': 'Promoter Assignment Contract', 'ar': 'عقد تكليف مروج'},
                    'content': {
                        'en': 'This contract is made between [FIRST_PARTY_NAME_EN] and [SECOND_PARTY_NAME_EN] '
                              'regarding promotion of [PRODUCT_NAME_EN] at [LOCATION_EN].',
                        'ar': 'تم إبرام هذا العقد بين [FIRST_PARTY_NAME_AR] و [SECOND_PARTY_NAME_AR] '
                              'بخصوص الترويج لـ [PRODUCT_NAME_AR] في [LOCATION_AR].',
                    },
                },
                {
                    'title': {'en': 'Responsibilities', 'ar': 'المسؤوليات'},
                    'content': {
                        'en': 'The promoter [PROMOTER_NAME_EN] with ID [PROMOTER_ID] agrees to perform duties '
                              'as assigned by the second party from [START_DATE] to [END_DATE].',
                        'ar': 'يوافق المروج [PROMOTER_NAME_AR] بهوية رقم [PROMOTER_ID] على أداء المهام المحددة '
                              'من قبل الطرف الثاني من [START_DATE] إلى [END_DATE].',
                    },
                },
                {
                    'title': {'en': 'Financial Terms', 'ar': 'الشروط المالية'},
                    'content': {
                        'en': 'Payment will be processed upon completion of tasks as agreed.',
                        'ar': 'سيتم صرف الدفعة بعد إتمام المهام كما تم الاتفاق عليها.',
                    },
                },
            ],
        },
        {
            'page_number': 2,
            'sections': [
                {
                    'title': {'en': 'Promoter ID Card', 'ar': 'بطاقة هوية المروج'},
                    'content': {
                        'en': 'ID Card of [PROMOTER_NAME_EN]',
                        'ar': 'بطاقة هوية [PROMOTER_NAME_AR]',
                    },
                },
                {
                    'title': {'en': 'Promoter Passport Copy', 'ar': 'نسخة من جواز سفر المروج'},
                    'content': {
                        'en': 'Passport of [PROMOTER_NAME_EN]',
                        'ar': 'جواز سفر [PROMOTER_NAME_AR]',
                    },
                },
                {
                    'title': {'en': 'Signatures', 'ar': 'التوقيعات'},
                    'content': {
                        'en': 'First Party: [FIRST_PARTY_NAME_EN]\nSecond Party: [SECOND_PARTY_NAME_EN]\n'
                              'Promoter: [PROMOTER_NAME_EN]',
                        'ar': 'الطرف الأول: [FIRST_PARTY_NAME_AR]\nالطرف الثاني: [SECOND_PARTY_NAME_AR]\n'
                              'المروج: [PROMOTER_NAME_AR]',
                    },
                },
            ],
        },
    ],
}

CONTRACT_TEMPLATES = {
    TEMPLATE_PROMOTER_ASSIGNMENT: PROMOTER_ASSIGNMENT_TEMPLATE,
}


def generate_reference_number(now=None) -> str:
    """PAC-DDMMYYYY-<first 8 hex chars of a uuid4>"""
    now = now or timezone.now()
    return f"PAC-{now.strftime('%d%m%Y')}-{uuid.uuid4().hex[:8]}"


def _to_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        raw = value.strip()
        parsed = parse_date(raw[:10])
        if parsed:
            return parsed
        parsed_dt = parse_datetime(raw)
        if parsed_dt:
            return parsed_dt.date()
    return None


def format_date(value) -> str:
    parsed = _to_date(value)
    if parsed is None:
        return '' if value in (None, '') else str(value)
    return parsed.strftime('%d/%m/%Y')


def _s(data, key):
    value = data.get(key)
    return '' if value is None else str(value)


def _ar(data, key):
    return _s(data, f'{key}_ar') or _s(data, f'{key}_en')


def placeholder_values(data) -> dict:
    return {
        '[FIRST_PARTY_NAME_EN]': _s(data, 'first_party_name_en'),
        '[FIRST_PARTY_NAME_AR]': _ar(data, 'first_party_name'),
        '[SECOND_PARTY_NAME_EN]': _s(data, 'second_party_name_en'),
        '[SECOND_PARTY_NAME_AR]': _ar(data, 'second_party_name'),
        '[PRODUCT_NAME_EN]': _s(data, 'product_name_en'),
        '[PRODUCT_NAME_AR]': _ar(data, 'product_name'),
        '[LOCATION_EN]': _s(data, 'location_name_en'),
        '[LOCATION_AR]': _ar(data, 'location_name'),
        '[PROMOTER_NAME_EN]': _s(data, 'promoter_name_en'),
        '[PROMOTER_NAME_AR]': _ar(data, 'promoter_name'),
        '[PROMOTER_ID]': _s(data, 'promoter_id'),
        '[START_DATE]': format_date(data.get('start_date')),
        '[END_DATE]': format_date(data.get('end_date')),
        '[LETTERHEAD_IMAGE_URL]': _s(data, 'letterhead_image_url'),
        '[ID_CARD_PHOTO_URL]': _s(data, 'id_photo_url'),
        '[PASSPORT_PHOTO_URL]': _s(data, 'passport_photo_url'),
    }


def replace_placeholders(text, values) -> str:
    result = text or ''
    for placeholder, value in values.items():
        result = result.replace(placeholder, value)
    return result


def fill_contract_template(template, data) -> dict:
    """Deep copy of `template` with every placeholder replaced from `data`."""
    filled = copy.deepcopy(template)
    values = placeholder_values(data)

    if not filled.get('ref_number'):
        filled['ref_number'] = generate_reference_number()

    filled['letterhead_image_url'] = data.get('letterhead_image_url') or template.get('letterhead_image_url', '')
    filled['id_card_photo_url'] = data.get('id_photo_url') or template.get('id_card_photo_url', '')
    filled['passport_photo_url'] = data.get('passport_photo_url') or template.get('passport_photo_url', '')

    for page in filled.get('pages', []):
        for section in page.get('sections', []):
            for part in ('title', 'content'):
                block = section.get(part) or {}
                for lang in ('en', 'ar'):
                    block[lang] = replace_placeholders(block.get(lang, ''), values)
                section[part] = block

    return filled


def layout_metadata(data) -> dict:
    return {
        'first_party_name': {'en': _s(data, 'first_party_name_en'), 'ar': _ar(data, 'first_party_name')},
        'second_party_name': {'en': _s(data, 'second_party_name_en'), 'ar': _ar(data, 'second_party_name')},
        'promoter_name': {'en': _s(data, 'promoter_name_en'), 'ar': _ar(data, 'promoter_name')},
        'product_name': {'en': _s(data, 'product_name_en'), 'ar': _ar(data, 'product_name')},
        'location_name': {'en': _s(data, 'location_name_en'), 'ar': _ar(data, 'location_name')},
        'start_date': _s(data, 'start_date'),
        'end_date': _s(data, 'end_date'),
    }


def _promotion_agreement_pages(data, contract_id):
    meta = layout_metadata(data)
    first, second = meta['first_party_name'], meta['second_party_name']
    promoter, product, location = meta['promoter_name'], meta['product_name'], meta['location_name']
    first_cr, second_cr = _s(data, 'first_party_cr'), _s(data, 'second_party_cr')
    promoter_id = _s(data, 'promoter_id')

    start, end = _to_date(data.get('start_date')), _to_date(data.get('end_date'))
    start_text, end_text = format_date(data.get('start_date')), format_date(data.get('end_date'))
    duration = (end - start).days if start and end else 0

    page_one = [
        {'type': 'title', 'content': {'en': 'PROMOTION AGREEMENT', 'ar': 'اتفاقية ترويج'}},
        {'type': 'note', 'content': {'en': f'Contract No. {contract_id}', 'ar': f'رقم العقد {contract_id}'}},
        {
            'type': 'text',
            'content': {
                'en': (
                    f'This Promotion Agreement (the "Agreement") is entered into on {start_text} by and between:\n\n'
                    f'1. {first["en"]}, a company registered under the laws with Commercial Registration '
                    f'No. {first_cr} (hereinafter referred to as the "First Party"), and\n\n'
                    f'2. {second["en"]}, a company registered under the laws with Commercial Registration '
                    f'No. {second_cr} (hereinafter referred to as the "Second Party").\n\n'
                    'The First Party and Second Party shall collectively be referred to as the "Parties" '
                    'and individually as a "Party".'
                ),
                'ar': (
                    f'تم إبرام اتفاقية الترويج هذه ("الاتفاقية") في {start_text} بين:\n\n'
                    f'١. {first["ar"]}، شركة مسجلة بموجب القوانين برقم السجل التجاري {first_cr} '
                    '(يشار إليها فيما يلي باسم "الطرف الأول")، و\n\n'
                    f'٢. {second["ar"]}، شركة مسجلة بموجب القوانين برقم السجل التجاري {second_cr} '
                    '(يشار إليها فيما يلي باسم "الطرف الثاني").\n\n'
                    'يشار إلى الطرف الأول والطرف الثاني مجتمعين باسم "الأطراف" وبشكل فردي باسم "الطرف".'
                ),
            },
        },
        {'type': 'title', 'content': {'en': 'WHEREAS', 'ar': 'حيث أن'}},
        {
            'type': 'text',
            'content': {
                'en': (
                    'A. The First Party is engaged in the business of marketing and promotion.\n\n'
                    f'B. The Second Party wishes to engage the First Party to promote its product '
                    f'"{product["en"]}" at the location "{location["en"]}".\n\n'
                    'C. The Parties wish to set out the terms and conditions of their agreement in writing.'
                ),
                'ar': (
                    'أ. يعمل الطرف الأول في مجال التسويق والترويج.\n\n'
                    f'ب. يرغب الطرف الثاني في تكليف الطرف الأول بالترويج لمنتجه "{product["ar"]}" '
                    f'في الموقع "{location["ar"]}".\n\n'
                    'ج. يرغب الطرفان في تحديد شروط وأحكام اتفاقهما كتابةً.'
                ),
            },
        },
        {
            'type': 'title',
            'content': {'en': 'NOW, THEREFORE, THE PARTIES AGREE AS FOLLOWS', 'ar': 'وعليه، اتفق الطرفان على ما يلي'},
        },
        {
            'type': 'text',
            'content': {
                'en': (
                    '1. APPOINTMENT\n\n'
                    '1.1 The Second Party hereby appoints the First Party to promote the Product at the '
                    'Location during the Term (as defined below).\n\n'
                    f'1.2 The First Party shall engage the promoter {promoter["en"]} with ID number '
                    f'{promoter_id} (the "Promoter") to carry out the promotion activities.'
                ),
                'ar': (
                    '١. التعيين\n\n'
                    '١.١ يعين الطرف الثاني بموجب هذا الطرف الأول للترويج للمنتج في الموقع خلال المدة '
                    '(كما هو محدد أدناه).\n\n'
                    f'١.٢ يقوم الطرف الأول بتعيين المروج {promoter["ar"]} برقم الهوية {promoter_id} '
                    '("المروج") للقيام بأنشطة الترويج.'
                ),
            },
        },
        {
            'type': 'text',
            'content': {
                'en': (
                    '2. TERM\n\n'
                    f'2.1 This Agreement shall commence on {start_text} and shall continue until {end_text} '
                    f'(the "Term"), a total of {duration} days.\n\n'
                    '2.2 This Agreement may be extended by mutual written agreement of the Parties.'
                ),
                'ar': (
                    '٢. المدة\n\n'
                    f'٢.١ تبدأ هذه الاتفاقية في {start_text} وتستمر حتى {end_text} ("المدة")، '
                    f'بإجمالي {duration} يومًا.\n\n'
                    '٢.٢ يمكن تمديد هذه الاتفاقية بموجب اتفاق كتابي متبادل بين الطرفين.'
                ),
            },
        },
    ]

    page_two = [
        {'type': 'title', 'content': {'en': 'PROMOTER DETAILS', 'ar': 'تفاصيل المروج'}},
        {
            'type': 'text',
            'content': {
                'en': (
                    'The Promoter engaged by the First Party has the following details:\n\n'
                    f'Name: {promoter["en"]}\nID Number: {promoter_id}\n\n'
                    "The Promoter's identification documents have been verified and copies are attached "
                    'to this Agreement.'
                ),
                'ar': (
                    'المروج المعين من قبل الطرف الأول لديه التفاصيل التالية:\n\n'
                    f'الاسم: {promoter["ar"]}\nرقم الهوية: {promoter_id}\n\n'
                    'تم التحقق من وثائق هوية المروج وتم إرفاق نسخ منها بهذه الاتفاقية.'
                ),
            },
        },
        {
            'type': 'photo_section',
            'title': {'en': 'ID Photo', 'ar': 'صورة الهوية'},
            'image_url': _s(data, 'id_photo_url'),
        },
        {
            'type': 'photo_section',
            'title': {'en': 'Passport Photo', 'ar': 'صورة جواز السفر'},
            'image_url': _s(data, 'passport_photo_url'),
        },
        {'type': 'title', 'content': {'en': 'LOCATION AND PRODUCT', 'ar': 'الموقع والمنتج'}},
        {
            'type': 'text',
            'content': {
                'en': (
                    f'4.1 The promotion activities shall be carried out at {location["en"]} (the "Location").\n\n'
                    f'4.2 The product to be promoted is {product["en"]} (the "Product").'
                ),
                'ar': (
                    f'٤.١ يتم تنفيذ أنشطة الترويج في {location["ar"]} ("الموقع").\n\n'
                    f'٤.٢ المنتج المراد الترويج له هو {product["ar"]} ("المنتج").'
                ),
            },
        },
        {
            'type': 'note',
            'content': {
                'en': 'This contract is governed by the applicable laws and regulations.',
                'ar': 'يخضع هذا العقد للقوانين واللوائح المعمول بها.',
            },
        },
        {
            'type': 'signature',
            'parties': [
                {'name': dict(first), 'role': {'en': 'First Party', 'ar': 'الطرف الأول'}},
                {'name': dict(second), 'role': {'en': 'Second Party', 'ar': 'الطرف الثاني'}},
            ],
        },
    ]

    return [
        {'letterhead_url': _s(data, 'letterhead_image_url'), 'sections': page_one},
        {'sections': page_two},
    ]


def generate_contract_layout(data, template_type=None, contract_id=None) -> dict:
    """
    Stored layout for new contract input.

    `promoterAssignment` produces the filled 2.0 template document; anything
    else produces the 1.0 two-page promotion agreement.
    """
    data = dict(data or {})
    template_type = template_type or data.get('template_type')
    contract_id = str(contract_id or uuid.uuid4())
    created_at = timezone.now().isoformat()

    if template_type == TEMPLATE_PROMOTER_ASSIGNMENT:
        filled = fill_contract_template(CONTRACT_TEMPLATES[TEMPLATE_PROMOTER_ASSIGNMENT], data)
        if data.get('reference_number'):
            filled['ref_number'] = data['reference_number']
        return {
            'version': '2.0',
            'id': contract_id,
            'ref_number': filled['ref_number'],
            'created_at': created_at,
            'template_type': template_type,
            'contract_template': filled,
            'metadata': layout_metadata(data),
            'contract_data': data,
        }

    return {
        'version': '1.0',
        'id': contract_id,
        'created_at': created_at,
        'pages': _promotion_agreement_pages(data, contract_id),
        'metadata': layout_metadata(data),
        'contract_data': data,
    }
