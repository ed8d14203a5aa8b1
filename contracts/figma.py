"""
Figma-plugin friendly JSON export of a contract.

The document is DOCUMENT -> PAGE -> FRAME (one frame per A4 sheet) with
TEXT nodes for bilingual content, so the plugin can lay it out without
knowing the contract schema.
"""
from __future__ import annotations

import uuid

from .generator import _to_date, generate_reference_number
from .layout import build_metadata

A4_WIDTH = 595
A4_HEIGHT = 842
PAGE_PADDING = 40
CONTENT_WIDTH = A4_WIDTH - 2 * PAGE_PADDING

BLACK = {'r': 0.0, 'g': 0.0, 'b': 0.0}
GREY = {'r': 0.4, 'g': 0.4, 'b': 0.4}
WHITE = {'r': 1.0, 'g': 1.0, 'b': 1.0}


def _fill(color):
    return [{'type': 'SOLID', 'color': dict(color)}]


def text_node(characters, *, size=12, weight=400, align='LEFT', color=BLACK):
    return {
        'type': 'TEXT',
        'characters': characters,
        'style': {
            'fontFamily': 'Arial',
            'fontSize': size,
            'fontWeight': weight,
            'textAlignHorizontal': align,
            'textAlignVertical': 'TOP',
            'fills': _fill(color),
        },
    }


def frame(children, *, layout='VERTICAL', width=CONTENT_WIDTH, height=0, padding=0, spacing=8,
          primary='MIN', counter='MIN', fills=None):
    node = {
        'type': 'FRAME',
        'children': children,
        'layoutMode': layout,
        'primaryAxisAlignItems': primary,
        'counterAxisAlignItems': counter,
        'paddingLeft': padding,
        'paddingRight': padding,
        'paddingTop': padding,
        'paddingBottom': padding,
        'itemSpacing': spacing,
        'width': width,
        'height': height,
    }
    if fills:
        node['fills'] = fills
    return node


def bilingual_row(en, ar, *, size=12, weight=400):
    return frame(
        [
            text_node(en, size=size, weight=weight, align='LEFT'),
            text_node(ar, size=size, weight=weight, align='RIGHT'),
        ],
        layout='HORIZONTAL',
        primary='SPACE_BETWEEN',
        spacing=16,
    )


def page_frame(page_number, ref_number, title, blocks):
    children = [
        frame(
            [text_node(f"Ref: {ref_number} | Page {page_number}", size=10, align='RIGHT', color=GREY)],
            layout='HORIZONTAL',
            primary='SPACE_BETWEEN',
            counter='CENTER',
            height=24,
        ),
        bilingual_row(title['en'], title['ar'], size=18, weight=700),
    ]
    children.extend(blocks)
    return frame(
        children,
        width=A4_WIDTH,
        height=A4_HEIGHT,
        padding=PAGE_PADDING,
        spacing=24,
        counter='CENTER',
        fills=_fill(WHITE),
    )


def signature_block(party):
    children = [
        text_node(party['name']['en'], weight=700),
        text_node(party['name']['ar'], weight=700, align='RIGHT'),
        text_node(f"{party['role']['en']} / {party['role']['ar']}", size=10, color=GREY),
    ]
    if party.get('signature'):
        children.append({'type': 'IMAGE', 'imageHash': '', 'imageUrl': party['signature']})
    children.append({'type': 'RECTANGLE', 'fills': _fill(BLACK), 'cornerRadius': 0})
    return frame(children, width=CONTENT_WIDTH // 2 - 8, spacing=4)


def generate_figma_contract_json(contract) -> dict:
    """Build the Figma document for a Contract instance (or mapping with the same fields)."""
    meta = build_metadata(contract)
    first, second = meta['first_party_name'], meta['second_party_name']
    promoter, product, location = meta['promoter_name'], meta['product_name'], meta['location_name']

    get = contract.get if isinstance(contract, dict) else lambda key: getattr(contract, key, None)
    ref_number = get('reference_number') or generate_reference_number()

    start, end = _to_date(meta['start_date']), _to_date(meta['end_date'])
    start_text = start.strftime('%B %d, %Y') if start else ''
    end_text = end.strftime('%B %d, %Y') if end else ''
    duration = (end - start).days if start and end else 0

    intro = page_frame(1, ref_number, {'en': 'PROMOTION AGREEMENT', 'ar': 'اتفاقية ترويج'}, [
        bilingual_row(
            f'This Promotion Agreement (the "Agreement") is entered into on {start_text} by and between:\n\n'
            f'1. {first["en"]}, (hereinafter referred to as the "First Party"), and\n\n'
            f'2. {second["en"]}, (hereinafter referred to as the "Second Party").',
            f'تم إبرام اتفاقية الترويج هذه ("الاتفاقية") في {start_text} بين:\n\n'
            f'١. {first["ar"]}، (يشار إليها فيما يلي باسم "الطرف الأول")، و\n\n'
            f'٢. {second["ar"]}، (يشار إليها فيما يلي باسم "الطرف الثاني").',
        ),
        bilingual_row('WHEREAS', 'حيث أن', size=14, weight=700),
        bilingual_row(
            'A. The First Party is engaged in the business of marketing and promotion.\n\n'
            f'B. The Second Party wishes to engage the First Party to promote its product '
            f'"{product["en"]}" at the location "{location["en"]}".',
            'أ. يعمل الطرف الأول في مجال التسويق والترويج.\n\n'
            f'ب. يرغب الطرف الثاني في تكليف الطرف الأول بالترويج لمنتجه "{product["ar"]}" '
            f'في الموقع "{location["ar"]}".',
        ),
    ])

    terms = page_frame(2, ref_number, {'en': 'PROMOTER DETAILS', 'ar': 'تفاصيل المروج'}, [
        bilingual_row(
            f'The Promoter engaged by the First Party has the following details:\n\nName: {promoter["en"]}',
            f'المروج المعين من قبل الطرف الأول لديه التفاصيل التالية:\n\nالاسم: {promoter["ar"]}',
        ),
        bilingual_row('TERM', 'المدة', size=14, weight=700),
        bilingual_row(
            f'This Agreement shall commence on {start_text} and shall continue until {end_text} '
            f'(the "Term"), a total of {duration} days.',
            f'تبدأ هذه الاتفاقية في {start_text} وتستمر حتى {end_text} ("المدة")، بإجمالي {duration} يومًا.',
        ),
    ])

    parties = [
        {'name': first, 'role': {'en': 'First Party', 'ar': 'الطرف الأول'}, 'signature': get('signature_url') or ''},
        {'name': second, 'role': {'en': 'Second Party', 'ar': 'الطرف الثاني'}, 'signature': get('stamp_url') or ''},
    ]
    signatures = page_frame(3, ref_number, {'en': 'SIGNATURES', 'ar': 'التوقيعات'}, [
        frame([signature_block(p) for p in parties], layout='HORIZONTAL', primary='SPACE_BETWEEN', spacing=16),
    ])

    return {
        'id': str(get('id') or uuid.uuid4()),
        'version': '1.0',
        'type': 'contract',
        'metadata': {
            'title': 'Promotion Agreement',
            'titleAr': 'اتفاقية ترويج',
            'refNumber': ref_number,
            'firstParty': {'name': first['en'], 'nameAr': first['ar'], 'cr': get('first_party_cr') or ''},
            'secondParty': {'name': second['en'], 'nameAr': second['ar'], 'cr': get('second_party_cr') or ''},
            'promoter': {'name': promoter['en'], 'nameAr': promoter['ar']},
            'product': {'name': product['en'], 'nameAr': product['ar']},
            'location': {'name': location['en'], 'nameAr': location['ar']},
            'dates': {
                'start': start.isoformat() if start else '',
                'end': end.isoformat() if end else '',
                'durationDays': duration,
            },
        },
        'figmaDocument': {
            'type': 'DOCUMENT',
            'children': [
                {'type': 'PAGE', 'children': [intro, terms, signatures]},
            ],
        },
    }
