"""
Layout normalizer, generator and document builder tests (no HTTP)
"""
import uuid
from datetime import date, datetime
from unittest import mock

import arabic_reshaper
from bidi.algorithm import get_display
from django.test import SimpleTestCase, override_settings
from reportlab.pdfgen import canvas

from .figma import generate_figma_contract_json
from .generator import (
    TEMPLATE_PROMOTER_ASSIGNMENT,
    fill_contract_template,
    format_date,
    generate_contract_layout,
    generate_reference_number,
    PROMOTER_ASSIGNMENT_TEMPLATE,
)
from .layout import SECTION_TAGS, bilingual, is_real_url, normalize_layout
from .pdf import generate_contract_pdf, shape_arabic
from .renderer import render_contract_html

CONTRACT_DATA = {
    'first_party_name_en': 'Acme Trading LLC',
    'first_party_name_ar': 'شركة أكمي للتجارة',
    'first_party_cr': 'CR-1001',
    'second_party_name_en': 'Gulf Retail Co',
    'second_party_name_ar': '',
    'second_party_cr': 'CR-2002',
    'promoter_name_en': 'Sara Ali',
    'promoter_name_ar': 'سارة علي',
    'promoter_id': 'P-778899',
    'product_name_en': 'Orange Juice',
    'product_name_ar': 'عصير البرتقال',
    'location_name_en': 'City Mall',
    'location_name_ar': 'سيتي مول',
    'start_date': '2025-01-01',
    'end_date': '2025-03-31',
}


def assert_normalized(test, layout):
    test.assertIn(layout['source'], (
        'contract_template', 'pages', 'contract_layout', 'legacy_sections', 'contract_data', 'mock',
    ))
    test.assertTrue(layout['pages'])
    for page in layout['pages']:
        test.assertIsInstance(page['letterhead_url'], str)
        for section in page['sections']:
            test.assertIn(section['type'], SECTION_TAGS)
            if section['type'] in ('title', 'note', 'text'):
                test.assertEqual(set(section['content']), {'en', 'ar'})
            elif section['type'] == 'photo_section':
                test.assertEqual(set(section['title']), {'en', 'ar'})
                test.assertIsInstance(section['image_url'], str)
            else:
                for party in section['parties']:
                    test.assertEqual(set(party['name']), {'en', 'ar'})
                    test.assertEqual(set(party['role']), {'en', 'ar'})


class BilingualCoercionTest(SimpleTestCase):

    def test_string_is_used_for_both_languages(self):
        self.assertEqual(bilingual('Hello'), {'en': 'Hello', 'ar': 'Hello'})

    def test_missing_arabic_falls_back_to_english(self):
        self.assertEqual(bilingual({'en': 'Hello', 'ar': ''}), {'en': 'Hello', 'ar': 'Hello'})

    def test_non_text_values(self):
        self.assertEqual(bilingual(None), {'en': '', 'ar': ''})
        self.assertEqual(bilingual(['x']), {'en': '', 'ar': ''})
        self.assertEqual(bilingual(42), {'en': '42', 'ar': '42'})

    def test_real_url(self):
        self.assertTrue(is_real_url('https://cdn.example.com/logo.png'))
        self.assertFalse(is_real_url(''))
        self.assertFalse(is_real_url('[LETTERHEAD_IMAGE_URL]'))
        self.assertFalse(is_real_url('/placeholder.svg?height=150'))


@override_settings(PREVIEW_MODE=False)
class NormalizeLayoutTest(SimpleTestCase):

    def test_v1_generated_layout(self):
        record = {
            'id': 'c-1',
            'reference_number': 'PAC-01012025-abcdef12',
            'contract_layout': generate_contract_layout(CONTRACT_DATA, contract_id='c-1'),
        }
        layout = normalize_layout(record)

        assert_normalized(self, layout)
        self.assertEqual(layout['source'], 'contract_layout')
        self.assertEqual(layout['reference_number'], 'PAC-01012025-abcdef12')
        self.assertEqual(len(layout['pages']), 2)
        self.assertEqual(layout['metadata']['second_party_name'], {'en': 'Gulf Retail Co', 'ar': 'Gulf Retail Co'})

    def test_v2_template_layout(self):
        generated = generate_contract_layout(
            dict(CONTRACT_DATA, id_photo_url='https://cdn.example.com/id.png', reference_number='PAC-X'),
            template_type=TEMPLATE_PROMOTER_ASSIGNMENT,
        )
        record = {
            'id': 'c-2',
            'contract_layout': generated,
            'contract_template': generated['contract_template'],
        }
        layout = normalize_layout(record)

        assert_normalized(self, layout)
        self.assertEqual(layout['source'], 'contract_template')
        self.assertEqual(layout['reference_number'], 'PAC-X')
        last_page = layout['pages'][-1]['sections']
        self.assertEqual(last_page[-1]['type'], 'signature')
        photos = [s for s in last_page if s['type'] == 'photo_section']
        self.assertIn('https://cdn.example.com/id.png', [p['image_url'] for p in photos])

    def test_top_level_pages(self):
        record = {
            'pages': [
                {'sections': [
                    {'type': 'title', 'content': {'en': 'Agreement'}},
                    {'type': 'mystery', 'content': 'dropped'},
                    'not a section',
                    {'type': 'signature', 'parties': [{'name': 'Ann', 'role': {'en': 'Buyer', 'ar': 'المشتري'}}, 7]},
                ]},
                'not a page',
            ],
        }
        layout = normalize_layout(record)

        assert_normalized(self, layout)
        self.assertEqual(layout['source'], 'pages')
        self.assertEqual(len(layout['pages']), 1)
        sections = layout['pages'][0]['sections']
        self.assertEqual([s['type'] for s in sections], ['title', 'signature'])
        self.assertEqual(sections[0]['content'], {'en': 'Agreement', 'ar': 'Agreement'})
        self.assertEqual(len(sections[1]['parties']), 1)

    def test_legacy_sections(self):
        record = {
            'layout': {
                'header': {'logo': 'https://cdn.example.com/logo.png'},
                'sections': [
                    {'type': 'header', 'title': 'Contract', 'title_ar': 'عقد'},
                    {'type': 'text', 'content': 'Body', 'content_ar': 'نص'},
                    {'type': 'promoter', 'id_photo': 'https://cdn.example.com/id.png'},
                    {'type': 'signature', 'first_party': {'name': 'Ann'}, 'second_party': {'name': 'Bob', 'name_ar': 'بوب'}},
                ],
            },
        }
        layout = normalize_layout(record)

        assert_normalized(self, layout)
        self.assertEqual(layout['source'], 'legacy_sections')
        page = layout['pages'][0]
        self.assertEqual(page['letterhead_url'], 'https://cdn.example.com/logo.png')
        self.assertEqual([s['type'] for s in page['sections']], ['title', 'text', 'photo_section', 'signature'])
        self.assertEqual(page['sections'][0]['content'], {'en': 'Contract', 'ar': 'عقد'})
        self.assertEqual(page['sections'][3]['parties'][1]['name'], {'en': 'Bob', 'ar': 'بوب'})

    def test_flat_contract_fields(self):
        record = dict(CONTRACT_DATA, id=uuid.UUID('12345678-1234-5678-1234-567812345678'))
        layout = normalize_layout(record)

        assert_normalized(self, layout)
        self.assertEqual(layout['source'], 'contract_data')
        text = layout['pages'][0]['sections'][2]['content']['en']
        self.assertIn('Acme Trading LLC', text)
        self.assertIn('City Mall', text)

    def test_contract_data_only(self):
        layout = normalize_layout({'contract_data': {'promoter_name_en': 'Sara'}})
        self.assertEqual(layout['source'], 'contract_data')
        self.assertEqual(layout['metadata']['promoter_name']['en'], 'Sara')

    def test_empty_and_malformed_records_fall_back_to_mock(self):
        for record in (None, {}, {'contract_layout': 'garbage'}, {'pages': []}, {'contract_layout': {'pages': 5}}):
            with self.subTest(record=record):
                layout = normalize_layout(record)
                assert_normalized(self, layout)
                self.assertEqual(layout['source'], 'mock')
                self.assertEqual(len(layout['pages']), 2)

    def test_v2_without_pages_falls_through(self):
        record = {
            'version': '2.0',
            'contract_template': {'pages': []},
            'first_party_name_en': 'Acme Trading LLC',
        }
        layout = normalize_layout(record)
        self.assertEqual(layout['source'], 'contract_data')

    def test_preview_mode_returns_mock(self):
        record = {'contract_layout': generate_contract_layout(CONTRACT_DATA)}
        self.assertEqual(normalize_layout(record, preview=True)['source'], 'mock')
        with override_settings(PREVIEW_MODE=True):
            self.assertEqual(normalize_layout(record)['source'], 'mock')

    def test_missing_dates_get_defaults(self):
        layout = normalize_layout({'first_party_name_en': 'Acme'})
        self.assertTrue(layout['metadata']['start_date'])
        self.assertTrue(layout['metadata']['end_date'])


class GeneratorTest(SimpleTestCase):

    def test_reference_number_format(self):
        ref = generate_reference_number(datetime(2025, 4, 7, 12, 0))
        prefix, day, suffix = ref.split('-')
        self.assertEqual(prefix, 'PAC')
        self.assertEqual(day, '07042025')
        self.assertEqual(len(suffix), 8)
        self.assertNotEqual(ref, generate_reference_number(datetime(2025, 4, 7, 12, 0)))

    def test_format_date(self):
        self.assertEqual(format_date('2025-01-31'), '31/01/2025')
        self.assertEqual(format_date(date(2025, 2, 1)), '01/02/2025')
        self.assertEqual(format_date(None), '')
        self.assertEqual(format_date('soon'), 'soon')

    def test_fill_template_replaces_placeholders(self):
        filled = fill_contract_template(PROMOTER_ASSIGNMENT_TEMPLATE, CONTRACT_DATA)
        text = repr(filled['pages'])

        self.assertNotIn('[FIRST_PARTY_NAME_EN]', text)
        self.assertNotIn('[START_DATE]', text)
        self.assertIn('Acme Trading LLC', text)
        self.assertTrue(filled['ref_number'].startswith('PAC-'))
        # Source template is untouched
        self.assertIn('[FIRST_PARTY_NAME_EN]', repr(PROMOTER_ASSIGNMENT_TEMPLATE['pages']))

    def test_arabic_placeholder_falls_back_to_english(self):
        filled = fill_contract_template(PROMOTER_ASSIGNMENT_TEMPLATE, CONTRACT_DATA)
        arabic = ' '.join(
            section['content']['ar']
            for page in filled['pages'] for section in page['sections']
        )
        self.assertNotIn('[SECOND_PARTY_NAME_AR]', arabic)

    def test_v1_layout(self):
        layout = generate_contract_layout(CONTRACT_DATA, contract_id='c-9')
        self.assertEqual(layout['version'], '1.0')
        self.assertEqual(layout['id'], 'c-9')
        self.assertEqual(len(layout['pages']), 2)
        self.assertEqual(layout['metadata']['first_party_name']['ar'], 'شركة أكمي للتجارة')

    def test_v2_layout_keeps_reference_number(self):
        layout = generate_contract_layout(
            dict(CONTRACT_DATA, reference_number='PAC-01012025-00000000'),
            template_type=TEMPLATE_PROMOTER_ASSIGNMENT,
        )
        self.assertEqual(layout['version'], '2.0')
        self.assertEqual(layout['ref_number'], 'PAC-01012025-00000000')
        self.assertEqual(layout['contract_template']['ref_number'], 'PAC-01012025-00000000')


@override_settings(PREVIEW_MODE=False, PDF_ARABIC_FONT_PATH='')
class DocumentOutputTest(SimpleTestCase):

    def setUp(self):
        self.record = {
            'id': 'c-3',
            'reference_number': 'PAC-01012025-deadbeef',
            'contract_layout': generate_contract_layout(CONTRACT_DATA, contract_id='c-3'),
        }

    def test_html_languages(self):
        both = render_contract_html(self.record, 'both')
        self.assertIn('Acme Trading LLC', both)
        self.assertIn('شركة أكمي للتجارة', both)

        english = render_contract_html(self.record, 'en')
        self.assertNotIn('شركة أكمي للتجارة', english)
        self.assertNotIn('dir="rtl"', english.split('<body>')[0])

    def test_html_unknown_language_renders_both(self):
        html = render_contract_html(self.record, 'fr')
        self.assertIn('Acme Trading LLC', html)
        self.assertIn('شركة أكمي للتجارة', html)

    def test_pdf_options(self):
        for options in (
            {},
            {'language': 'ar', 'orientation': 'landscape'},
            {'paper_size': 'letter', 'include_watermark': True, 'include_signatures': False},
        ):
            with self.subTest(options=options):
                pdf = generate_contract_pdf(self.record, **options)
                self.assertTrue(pdf.startswith(b'%PDF'))

    def test_pdf_unknown_orientation_is_portrait(self):
        with mock.patch('contracts.pdf.canvas.Canvas', wraps=canvas.Canvas) as make_canvas:
            generate_contract_pdf(self.record, orientation='sideways')
        width, height = make_canvas.call_args.kwargs['pagesize']
        self.assertLess(width, height)

    def test_pdf_of_mock_layout(self):
        self.assertTrue(generate_contract_pdf(None).startswith(b'%PDF'))

    def test_pdf_arabic_lines_are_shaped(self):
        layout = {
            'source': 'pages',
            'pages': [{'sections': [
                {'type': 'title', 'content': {'en': 'Promotion Agreement', 'ar': 'اتفاقية ترويج'}},
                {'type': 'signature', 'parties': [
                    {'name': {'en': 'Sara Ali', 'ar': 'سارة علي'}, 'role': {'en': 'Promoter', 'ar': 'المروج'}},
                ]},
            ]}],
        }
        with mock.patch('contracts.pdf.canvas.Canvas.drawRightString', autospec=True) as draw:
            generate_contract_pdf(layout, language='ar')

        drawn = [c.args[3] for c in draw.call_args_list]
        self.assertIn(get_display(arabic_reshaper.reshape('اتفاقية ترويج')), drawn)
        self.assertIn(get_display(arabic_reshaper.reshape('المروج: سارة علي')), drawn)
        self.assertNotIn('اتفاقية ترويج', drawn)

    def test_shape_arabic_leaves_latin_text(self):
        self.assertEqual(shape_arabic('Ref 2025'), 'Ref 2025')


class FigmaDocumentTest(SimpleTestCase):

    def test_document_structure(self):
        record = dict(CONTRACT_DATA, id='c-4', reference_number='PAC-REF', signature_url='https://cdn.example.com/s.png')
        document = generate_figma_contract_json(record)

        self.assertEqual(document['id'], 'c-4')
        self.assertEqual(document['version'], '1.0')
        self.assertEqual(document['type'], 'contract')
        metadata = document['metadata']
        self.assertEqual(metadata['refNumber'], 'PAC-REF')
        self.assertEqual(metadata['firstParty'], {'name': 'Acme Trading LLC', 'nameAr': 'شركة أكمي للتجارة', 'cr': 'CR-1001'})
        self.assertEqual(metadata['dates'], {'start': '2025-01-01', 'end': '2025-03-31', 'durationDays': 89})

        page = document['figmaDocument']['children'][0]
        self.assertEqual(page['type'], 'PAGE')
        frames = page['children']
        self.assertEqual(len(frames), 3)
        self.assertTrue(all(f['type'] == 'FRAME' for f in frames))

    def test_missing_reference_is_generated(self):
        document = generate_figma_contract_json(dict(CONTRACT_DATA))
        self.assertTrue(document['metadata']['refNumber'].startswith('PAC-'))
        self.assertTrue(document['id'])
