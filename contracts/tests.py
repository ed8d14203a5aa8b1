"""
Contract, template, approval and integration endpoint tests
"""
import io
import json
import shutil
import tempfile
import uuid
from datetime import date, timedelta

from django.core import mail
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from authentication.models import User
from authentication.views import issue_tokens
from notifications.models import Notification

from .models import ApprovalToken, Contract, ContractTemplate, TemplateVersion
from .services import ContractService
from .tasks import expire_approval_tokens, send_pending_approval_reminders
from .template_library import PREDEFINED_TEMPLATES


def contract_payload(**overrides):
    payload = {
        'first_party_name_en': 'Acme Trading LLC',
        'first_party_name_ar': 'شركة أكمي للتجارة',
        'first_party_cr': 'CR-1001',
        'second_party_name_en': 'Gulf Retail Co',
        'second_party_name_ar': 'شركة الخليج للتجزئة',
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
    payload.update(overrides)
    return payload


class ContractTestCase(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.tenant_id = uuid.uuid4()
        self.admin = User.objects.create_user(
            email='admin@example.com', password='adminpass123', tenant_id=self.tenant_id, role='admin',
        )
        self.company = User.objects.create_user(
            email='company@example.com', password='companypass123', tenant_id=self.tenant_id, role='company',
        )
        self.other_company = User.objects.create_user(
            email='other@example.com', password='otherpass123', tenant_id=self.tenant_id, role='company',
        )
        self.promoter = User.objects.create_user(
            email='promoter@example.com', password='promoterpass123', tenant_id=self.tenant_id, role='promoter',
        )

    def create_contract(self, user=None, **overrides):
        user = user or self.company
        data = contract_payload(**overrides)
        data['start_date'] = date.fromisoformat(data['start_date'])
        data['end_date'] = date.fromisoformat(data['end_date'])
        return ContractService.create_contract(user, data)


class ContractAPITest(ContractTestCase):
    """Contract CRUD and ownership"""

    def test_create_contract(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contracts/', contract_payload(), format='json')

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['reference_number'].startswith('PAC-'))
        self.assertEqual(data['status'], 'draft')
        self.assertEqual(data['created_by'], str(self.company.user_id))
        self.assertEqual(data['contract_layout']['version'], '1.0')
        self.assertEqual(len(data['contract_layout']['pages']), 2)

        contract = Contract.objects.get(id=data['id'])
        self.assertEqual(contract.tenant_id, self.tenant_id)
        self.assertTrue(contract.activities.filter(action='created').exists())
        self.assertTrue(Notification.objects.filter(user_id=self.company.user_id, category='contract').exists())

    def test_create_with_promoter_assignment_template(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(
            '/api/v1/contracts/', contract_payload(template_type='promoterAssignment'), format='json',
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['contract_layout']['version'], '2.0')
        self.assertEqual(data['contract_layout']['ref_number'], data['reference_number'])
        self.assertIsNotNone(data['contract_template'])

    def test_create_accepts_day_month_year_dates(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(
            '/api/v1/contracts/', contract_payload(start_date='01/02/2025', end_date='28/02/2025'), format='json',
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['start_date'], '2025-02-01')

    def test_create_rejects_end_before_start(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(
            '/api/v1/contracts/', contract_payload(start_date='2025-03-01', end_date='2025-02-01'), format='json',
        )

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['error'], 'End date must be on or after the start date')
        self.assertIn('end_date', data['details'])

    def test_create_requires_party_names(self):
        self.client.force_authenticate(user=self.company)
        payload = contract_payload(first_party_name_en='A')
        del payload['promoter_id']
        response = self.client.post('/api/v1/contracts/', payload, format='json')

        self.assertEqual(response.status_code, 400)
        details = response.json()['details']
        self.assertIn('first_party_name_en', details)
        self.assertIn('promoter_id', details)

    def test_template_from_another_tenant_is_rejected(self):
        foreign = ContractTemplate.objects.create(
            tenant_id=uuid.uuid4(), name='Foreign', created_by=uuid.uuid4(),
        )
        self.client.force_authenticate(user=self.company)
        response = self.client.post(
            '/api/v1/contracts/', contract_payload(template=str(foreign.id)), format='json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn('template', response.json()['details'])

    def test_promoter_cannot_create(self):
        self.client.force_authenticate(user=self.promoter)
        response = self.client.post('/api/v1/contracts/', contract_payload(), format='json')
        self.assertEqual(response.status_code, 403)
        self.assertIn('error', response.json())

    def test_unauthenticated_request_is_rejected(self):
        response = self.client.get('/api/v1/contracts/')
        self.assertEqual(response.status_code, 401)

    def test_list_is_owner_scoped_for_non_admins(self):
        own = self.create_contract()
        self.create_contract(user=self.other_company)

        self.client.force_authenticate(user=self.company)
        response = self.client.get('/api/v1/contracts/')
        self.assertEqual(response.status_code, 200)
        ids = [c['id'] for c in response.json()['results']]
        self.assertEqual(ids, [str(own.id)])

        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/v1/contracts/')
        self.assertEqual(response.json()['count'], 2)

    def test_list_filters_by_search_and_status(self):
        self.create_contract(first_party_name_en='Blue Sky Media')
        approved = self.create_contract(first_party_name_en='Desert Rose')
        Contract.objects.filter(id=approved.id).update(status='approved')

        self.client.force_authenticate(user=self.company)
        response = self.client.get('/api/v1/contracts/', {'search': 'blue sky'})
        self.assertEqual(response.json()['count'], 1)

        response = self.client.get('/api/v1/contracts/', {'status': 'approved'})
        results = response.json()['results']
        self.assertEqual([c['id'] for c in results], [str(approved.id)])

    def test_other_tenant_contract_is_not_found(self):
        foreign_user = User.objects.create_user(
            email='foreign@example.com', password='foreignpass123', tenant_id=uuid.uuid4(), role='admin',
        )
        contract = self.create_contract()

        self.client.force_authenticate(user=foreign_user)
        response = self.client.get(f'/api/v1/contracts/{contract.id}/')
        self.assertEqual(response.status_code, 404)
        response = self.client.patch(f'/api/v1/contracts/{contract.id}/', {'promoter_name_en': 'Xy'}, format='json')
        self.assertEqual(response.status_code, 404)

    def test_non_owner_read_is_not_found_and_write_is_forbidden(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.other_company)

        response = self.client.get(f'/api/v1/contracts/{contract.id}/')
        self.assertEqual(response.status_code, 404)

        response = self.client.patch(
            f'/api/v1/contracts/{contract.id}/', {'product_name_en': 'Apple Juice'}, format='json',
        )
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f'/api/v1/contracts/{contract.id}/')
        self.assertEqual(response.status_code, 403)
        self.assertTrue(Contract.objects.filter(id=contract.id).exists())

    def test_owner_update_regenerates_layout(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)

        response = self.client.patch(
            f'/api/v1/contracts/{contract.id}/', {'product_name_en': 'Apple Juice'}, format='json',
        )

        self.assertEqual(response.status_code, 200)
        contract.refresh_from_db()
        self.assertEqual(contract.product_name_en, 'Apple Juice')
        self.assertEqual(contract.contract_layout['metadata']['product_name']['en'], 'Apple Juice')
        self.assertEqual(contract.contract_data['product_name_en'], 'Apple Juice')
        activity = contract.activities.get(action='updated')
        self.assertEqual(activity.metadata['fields'], ['product_name_en'])
        self.assertTrue(activity.metadata['layout_regenerated'])

    def test_partial_update_checks_dates_against_stored_values(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.patch(
            f'/api/v1/contracts/{contract.id}/', {'end_date': '2024-12-01'}, format='json',
        )
        self.assertEqual(response.status_code, 400)

    def test_admin_update_notifies_owner(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            f'/api/v1/contracts/{contract.id}/', {'location_name_en': 'Grand Mall'}, format='json',
        )

        self.assertEqual(response.status_code, 200)
        notification = Notification.objects.get(user_id=self.company.user_id, message__endswith='has been updated.')
        self.assertIn(contract.reference_number, notification.message)
        self.assertEqual(notification.related_item_id, str(contract.id))

    def test_owner_delete(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.delete(f'/api/v1/contracts/{contract.id}/')
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Contract.objects.filter(id=contract.id).exists())

    def test_approved_contract_only_deleted_by_admin(self):
        contract = self.create_contract()
        Contract.objects.filter(id=contract.id).update(status='approved')

        self.client.force_authenticate(user=self.company)
        response = self.client.delete(f'/api/v1/contracts/{contract.id}/')
        self.assertEqual(response.status_code, 400)

        self.client.force_authenticate(user=self.admin)
        response = self.client.delete(f'/api/v1/contracts/{contract.id}/')
        self.assertEqual(response.status_code, 204)

    def test_search(self):
        self.create_contract(first_party_name_en='Northwind Traders')
        self.create_contract(first_party_name_en='Contoso Foods')
        self.create_contract(user=self.other_company, first_party_name_en='Northwind Outlet')

        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contracts/search/', {'query': 'northwind'}, format='json')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['total'], 1)
        self.assertEqual(data['limit'], 10)
        self.assertEqual(data['offset'], 0)
        self.assertEqual(data['contracts'][0]['first_party_name_en'], 'Northwind Traders')

    def test_search_filters_and_limits(self):
        self.create_contract(start_date='2025-01-01', end_date='2025-01-31')
        self.create_contract(start_date='2025-06-01', end_date='2025-06-30')

        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contracts/search/', {
            'filters': {'start_date_from': '2025-05-01'},
        }, format='json')
        self.assertEqual(response.json()['total'], 1)

        response = self.client.post('/api/v1/contracts/search/', {'limit': 0}, format='json')
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/v1/contracts/search/', {'limit': 101}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_layout_endpoint(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.get(f'/api/v1/contracts/{contract.id}/layout/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['id'], str(contract.id))
        self.assertEqual(data['reference_number'], contract.reference_number)
        self.assertEqual(data['source'], 'contract_layout')
        self.assertEqual(data['metadata']['first_party_name']['ar'], 'شركة أكمي للتجارة')

    def test_activity_endpoint(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.get(f'/api/v1/contracts/{contract.id}/activity/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([a['action'] for a in response.json()], ['created'])


class ContractRenderingTest(ContractTestCase):
    """HTML and PDF output"""

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def test_html_escapes_user_content(self):
        contract = self.create_contract(first_party_name_en='<script>alert(1)</script>')
        self.client.force_authenticate(user=self.company)

        response = self.client.get(f'/api/v1/contracts/{contract.id}/html/', {'language': 'en'})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response['Content-Type'].startswith('text/html'))
        body = response.content.decode()
        self.assertNotIn('<script>alert(1)</script>', body)
        self.assertIn('&lt;script&gt;', body)

    def test_arabic_html_is_right_to_left(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.get(f'/api/v1/contracts/{contract.id}/html/', {'language': 'ar'})

        body = response.content.decode()
        self.assertIn('dir="rtl"', body)
        self.assertIn('اتفاقية ترويج', body)

    def test_html_rejects_unknown_language(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.get(f'/api/v1/contracts/{contract.id}/html/', {'language': 'fr'})
        self.assertEqual(response.status_code, 400)

    def test_generate_and_download_pdf(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)

        with override_settings(MEDIA_ROOT=self.media_root, BACKEND_URL='https://api.example.com'):
            response = self.client.post(
                f'/api/v1/contracts/{contract.id}/generate-pdf/',
                {'include_watermark': True, 'paper_size': 'letter'},
                format='json',
            )
            self.assertEqual(response.status_code, 200)
            data = response.json()
            self.assertTrue(data['success'])
            self.assertEqual(
                data['pdf_url'], f'https://api.example.com/api/v1/contracts/{contract.id}/download-pdf/',
            )

            response = self.client.get(f'/api/v1/contracts/{contract.id}/download-pdf/')
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response['Content-Type'], 'application/pdf')
            content = b''.join(response.streaming_content)
            response.close()

        self.assertTrue(content.startswith(b'%PDF'))
        contract.refresh_from_db()
        self.assertIsNotNone(contract.pdf_generated_at)
        self.assertTrue(contract.activities.filter(action='pdf_generated').exists())

    def test_download_without_stored_pdf_renders_on_the_fly(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        with override_settings(MEDIA_ROOT=self.media_root):
            response = self.client.get(f'/api/v1/contracts/{contract.id}/download-pdf/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.content.startswith(b'%PDF'))
        self.assertIn('attachment;', response['Content-Disposition'])

    def test_generate_pdf_rejects_bad_options(self):
        contract = self.create_contract()
        self.client.force_authenticate(user=self.company)
        response = self.client.post(
            f'/api/v1/contracts/{contract.id}/generate-pdf/', {'paper_size': 'a0'}, format='json',
        )
        self.assertEqual(response.status_code, 400)


class ContractApprovalTest(ContractTestCase):
    """Approval-by-link workflow"""

    def setUp(self):
        super().setUp()
        self.contract = self.create_contract()
        self.link_client = APIClient()

    def request_approval(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/request-approval/', {
            'parties': [
                {'party_role': 'first_party', 'party_name': 'Acme Trading LLC', 'party_email': 'acme@example.com'},
                {'party_role': 'second_party', 'party_name': 'Gulf Retail Co', 'party_email': 'gulf@example.com'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, 201)
        return response.json()

    @override_settings(FRONTEND_BASE_URL='https://portal.example.com')
    def test_request_approval_issues_tokens_and_emails(self):
        data = self.request_approval()

        self.assertEqual(data['status'], 'pending')
        self.assertEqual(len(data['tokens']), 2)
        token = data['tokens'][0]
        self.assertEqual(token['approval_url'], f"https://portal.example.com/approve/{token['token']}")
        self.assertEqual(len(mail.outbox), 2)
        self.assertIn(self.contract.reference_number, mail.outbox[0].subject + mail.outbox[0].body)

        self.contract.refresh_from_db()
        self.assertEqual(self.contract.status, 'pending')

    def test_request_without_parties_uses_contract_parties(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/request-approval/', {}, format='json')

        self.assertEqual(response.status_code, 201)
        roles = [t['party_role'] for t in response.json()['tokens']]
        self.assertEqual(roles, ['first_party', 'second_party'])
        self.assertEqual(len(mail.outbox), 0)

    def test_duplicate_party_roles_are_rejected(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/request-approval/', {
            'parties': [
                {'party_role': 'first_party', 'party_name': 'A'},
                {'party_role': 'first_party', 'party_name': 'B'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_non_owner_cannot_request_approval(self):
        self.client.force_authenticate(user=self.other_company)
        response = self.client.post(f'/api/v1/contracts/{self.contract.id}/request-approval/', {}, format='json')
        self.assertEqual(response.status_code, 403)

    def test_view_token_without_login(self):
        data = self.request_approval()
        token = data['tokens'][1]['token']

        response = self.link_client.get(f'/api/v1/approvals/{token}/')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['contract']['id'], str(self.contract.id))
        self.assertEqual(body['party']['role'], 'second_party')

    def test_all_parties_approve(self):
        data = self.request_approval()
        first, second = (t['token'] for t in data['tokens'])

        response = self.link_client.post(f'/api/v1/approvals/{first}/approve/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['contract_status'], 'pending')

        response = self.link_client.post(f'/api/v1/approvals/{second}/approve/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['contract_status'], 'approved')

        self.contract.refresh_from_db()
        self.assertEqual(self.contract.status, 'approved')
        self.assertIsNotNone(self.contract.approved_at)
        actions = list(self.contract.activities.values_list('action', flat=True))
        self.assertEqual(actions.count('party_approved'), 2)
        self.assertIn('approved', actions)
        self.assertTrue(
            Notification.objects.filter(user_id=self.company.user_id, category='approval').exists()
        )

    def test_token_is_single_use(self):
        data = self.request_approval()
        token = data['tokens'][0]['token']

        self.link_client.post(f'/api/v1/approvals/{token}/approve/')
        response = self.link_client.post(f'/api/v1/approvals/{token}/approve/')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Already approved')

    def test_expired_token(self):
        data = self.request_approval()
        token = data['tokens'][0]['token']
        ApprovalToken.objects.filter(token=token).update(expires_at=timezone.now() - timedelta(minutes=1))

        response = self.link_client.get(f'/api/v1/approvals/{token}/')
        self.assertEqual(response.status_code, 410)
        self.assertEqual(response.json()['error'], 'Approval link expired')

        response = self.link_client.post(f'/api/v1/approvals/{token}/approve/')
        self.assertEqual(response.status_code, 410)

    def test_unknown_or_malformed_token(self):
        response = self.link_client.get(f'/api/v1/approvals/{uuid.uuid4()}/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'Invalid approval link')

        response = self.link_client.post('/api/v1/approvals/not-a-token/approve/')
        self.assertEqual(response.status_code, 404)

    def test_new_request_replaces_unused_tokens(self):
        first = self.request_approval()
        self.request_approval()

        old_token = first['tokens'][0]['token']
        self.assertFalse(ApprovalToken.objects.filter(token=old_token).exists())
        self.assertEqual(self.contract.approval_tokens.count(), 2)

    def test_signed_in_approval(self):
        data = self.request_approval()
        token = data['tokens'][0]['token']

        self.client.force_authenticate(user=self.other_company)
        response = self.client.post('/api/v1/approvals/approve/', {'token': token}, format='json')

        self.assertEqual(response.status_code, 200)
        activity = self.contract.activities.get(action='party_approved')
        self.assertEqual(activity.performed_by, self.other_company.user_id)

        response = self.client.post('/api/v1/approvals/approve/', {}, format='json')
        self.assertEqual(response.status_code, 400)


class ContractTemplateAPITest(ContractTestCase):
    """Template CRUD, approval workflow and versions"""

    def create_template(self, **data):
        payload = {
            'name': 'Retail Promotion',
            'description': 'In-store promotion',
            'contract_type': 'Promotion',
            'responsibilities': 'Promote the product during opening hours.',
            'default_duration': 30,
            'category': 'services',
        }
        payload.update(data)
        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contract-templates/', payload, format='json')
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_create_template(self):
        data = self.create_template()
        self.assertEqual(data['approval_status'], 'draft')
        self.assertEqual(data['version'], 1)
        self.assertFalse(data['is_published'])
        self.assertEqual(data['created_by'], str(self.company.user_id))

    def test_default_duration_must_be_positive(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contract-templates/', {
            'name': 'Broken', 'default_duration': 0,
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_update_snapshots_previous_version(self):
        template = self.create_template()
        response = self.client.patch(f"/api/v1/contract-templates/{template['id']}/", {
            'name': 'Retail Promotion v2',
            'change_notes': 'Renamed',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['version'], 2)
        snapshot = TemplateVersion.objects.get(template_id=template['id'])
        self.assertEqual(snapshot.version, 1)
        self.assertEqual(snapshot.name, 'Retail Promotion')
        self.assertEqual(snapshot.change_notes, 'Renamed')

    def test_approval_workflow(self):
        template = self.create_template()
        url = f"/api/v1/contract-templates/{template['id']}"

        response = self.client.post(f'{url}/submit/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['approval_status'], 'pending_approval')
        self.assertTrue(
            Notification.objects.filter(user_id=self.admin.user_id, category='approval').exists()
        )

        response = self.client.post(f'{url}/submit/')
        self.assertEqual(response.status_code, 400)

        response = self.client.post(f'{url}/approve/')
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(f'{url}/approve/', {'comments': 'Looks good'}, format='json')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['approval_status'], 'approved')
        self.assertTrue(data['is_published'])
        self.assertEqual(data['approval_comments'], 'Looks good')

        self.client.force_authenticate(user=self.other_company)
        response = self.client.get('/api/v1/contract-templates/')
        self.assertIn(template['id'], [t['id'] for t in response.json()['results']])

    def test_reject_then_resubmit(self):
        template = self.create_template()
        url = f"/api/v1/contract-templates/{template['id']}"
        self.client.post(f'{url}/submit/')

        self.client.force_authenticate(user=self.admin)
        response = self.client.post(f'{url}/reject/', {'comments': 'Missing terms'}, format='json')
        self.assertEqual(response.json()['approval_status'], 'rejected')
        notification = Notification.objects.get(user_id=self.company.user_id, type='warning')
        self.assertIn('Retail Promotion', notification.message)

        self.client.force_authenticate(user=self.company)
        response = self.client.post(f'{url}/submit/')
        self.assertEqual(response.json()['approval_status'], 'pending_approval')

    def test_editing_approved_template_returns_it_to_draft(self):
        template = self.create_template()
        ContractTemplate.objects.filter(id=template['id']).update(approval_status='approved', is_published=True)

        response = self.client.patch(
            f"/api/v1/contract-templates/{template['id']}/", {'description': 'Changed'}, format='json',
        )
        data = response.json()
        self.assertEqual(data['approval_status'], 'draft')
        self.assertFalse(data['is_published'])

    def test_drafts_hidden_from_other_users(self):
        template = self.create_template()
        self.client.force_authenticate(user=self.other_company)

        response = self.client.get('/api/v1/contract-templates/')
        self.assertNotIn(template['id'], [t['id'] for t in response.json()['results']])
        response = self.client.get(f"/api/v1/contract-templates/{template['id']}/")
        self.assertEqual(response.status_code, 404)

    def test_non_owner_cannot_edit_published_template(self):
        template = self.create_template()
        ContractTemplate.objects.filter(id=template['id']).update(approval_status='approved', is_published=True)

        self.client.force_authenticate(user=self.other_company)
        response = self.client.patch(
            f"/api/v1/contract-templates/{template['id']}/", {'name': 'Hijacked'}, format='json',
        )
        self.assertEqual(response.status_code, 403)
        response = self.client.delete(f"/api/v1/contract-templates/{template['id']}/")
        self.assertEqual(response.status_code, 403)

    def test_versions_restore_and_compare(self):
        template = self.create_template()
        url = f"/api/v1/contract-templates/{template['id']}"
        self.client.patch(f'{url}/', {'name': 'Second Name', 'default_duration': 60}, format='json')

        response = self.client.get(f'{url}/versions/')
        self.assertEqual(response.status_code, 200)
        versions = response.json()
        self.assertEqual(len(versions), 1)
        first_version = versions[0]['id']

        response = self.client.get(f'{url}/compare/', {'a': first_version})
        self.assertEqual(response.status_code, 200)
        fields = response.json()['fields']
        self.assertTrue(fields['name']['changed'])
        self.assertEqual(fields['name']['before'], 'Retail Promotion')
        self.assertEqual(fields['name']['after'], 'Second Name')
        self.assertFalse(fields['category']['changed'])

        response = self.client.post(f'{url}/restore/', {'version_id': first_version}, format='json')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['name'], 'Retail Promotion')
        self.assertEqual(data['default_duration'], 30)
        self.assertEqual(data['version'], 3)
        self.assertEqual(TemplateVersion.objects.filter(template_id=template['id']).count(), 2)

    def test_compare_and_restore_errors(self):
        template = self.create_template()
        url = f"/api/v1/contract-templates/{template['id']}"

        response = self.client.get(f'{url}/compare/')
        self.assertEqual(response.status_code, 400)
        response = self.client.get(f'{url}/compare/', {'a': str(uuid.uuid4())})
        self.assertEqual(response.status_code, 404)
        response = self.client.post(f'{url}/restore/', {'version_id': str(uuid.uuid4())}, format='json')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], 'Version not found')

    def test_export_template(self):
        template = self.create_template()
        response = self.client.get(f"/api/v1/contract-templates/{template['id']}/export/")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['source_id'], template['id'])
        self.assertEqual(data['version'], 1)
        self.assertEqual(data['template']['name'], 'Retail Promotion')
        self.assertEqual(data['template']['responsibilities'], 'Promote the product during opening hours.')
        self.assertNotIn('approval_status', data['template'])

    def test_import_exported_template(self):
        template = self.create_template()
        self.client.post(f"/api/v1/contract-templates/{template['id']}/submit/")
        exported = self.client.get(f"/api/v1/contract-templates/{template['id']}/export/").json()

        self.client.force_authenticate(user=self.other_company)
        response = self.client.post('/api/v1/contract-templates/import/', exported, format='json')

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertNotEqual(data['id'], template['id'])
        self.assertEqual(data['name'], 'Retail Promotion')
        self.assertEqual(data['approval_status'], 'draft')
        self.assertEqual(data['version'], 1)
        self.assertEqual(data['created_by'], str(self.other_company.user_id))
        self.assertEqual(ContractTemplate.objects.filter(name='Retail Promotion').count(), 2)

    def test_import_pasted_json_text(self):
        self.client.force_authenticate(user=self.company)
        text = json.dumps({
            'name': 'Shared Template',
            'contract_type': 'Promotion',
            'responsibilities': 'Hand out samples.',
            'approval_status': 'approved',
            'version': 7,
        })
        response = self.client.post('/api/v1/contract-templates/import/', {'template': text}, format='json')

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['approval_status'], 'draft')
        self.assertEqual(response.json()['version'], 1)

    def test_import_rejects_invalid_json(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post(
            '/api/v1/contract-templates/import/', {'template': '{"name": '}, format='json',
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid template JSON')

        response = self.client.post('/api/v1/contract-templates/import/', ['not', 'a', 'template'], format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid template format')

    def test_import_requires_fields(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contract-templates/import/', {
            'name': 'Incomplete',
            'contract_type': 'Promotion',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('responsibilities', response.json()['details'])
        self.assertFalse(ContractTemplate.objects.filter(name='Incomplete').exists())

        response = self.client.post('/api/v1/contract-templates/import/', {
            'name': 'Blank type',
            'contract_type': '',
            'responsibilities': 'Something',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('contract_type', response.json()['details'])

    def test_predefined_templates(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.get('/api/v1/contract-templates/predefined/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), len(PREDEFINED_TEMPLATES))

    def test_seed_predefined_is_idempotent(self):
        self.client.force_authenticate(user=self.company)
        response = self.client.post('/api/v1/contract-templates/seed-predefined/')
        self.assertEqual(response.status_code, 403)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/api/v1/contract-templates/seed-predefined/')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['created'], len(PREDEFINED_TEMPLATES))
        self.assertTrue(all(t['approval_status'] == 'approved' for t in response.json()['templates']))

        response = self.client.post('/api/v1/contract-templates/seed-predefined/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['created'], 0)

    def test_seed_templates_command(self):
        call_command('seed_templates', '--tenant-id', str(self.tenant_id), stdout=io.StringIO())
        seeded = ContractTemplate.objects.filter(tenant_id=self.tenant_id).exclude(predefined_key='')
        self.assertEqual(seeded.count(), len(PREDEFINED_TEMPLATES))
        self.assertTrue(all(t.created_by == self.admin.user_id for t in seeded))


class AdminContractViewsTest(ContractTestCase):

    def test_stats(self):
        self.create_contract()
        approved = self.create_contract()
        Contract.objects.filter(id=approved.id).update(status='approved')
        ContractTemplate.objects.create(
            tenant_id=self.tenant_id, name='Pending', created_by=self.company.user_id,
            approval_status='pending_approval',
        )

        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/v1/admin/stats/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['users']['total'], 4)
        self.assertEqual(data['users']['by_role']['company'], 2)
        self.assertEqual(data['contracts']['total'], 2)
        self.assertEqual(data['contracts']['by_status']['approved'], 1)
        self.assertEqual(data['contracts']['by_status']['rejected'], 0)
        self.assertEqual(data['templates']['by_approval_status']['pending_approval'], 1)

    def test_pending_templates(self):
        pending = ContractTemplate.objects.create(
            tenant_id=self.tenant_id, name='Pending', created_by=self.company.user_id,
            approval_status='pending_approval', approval_requested_at=timezone.now(),
        )
        ContractTemplate.objects.create(tenant_id=self.tenant_id, name='Draft', created_by=self.company.user_id)

        self.client.force_authenticate(user=self.admin)
        response = self.client.get('/api/v1/admin/templates/pending/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual([t['id'] for t in response.json()['results']], [str(pending.id)])

    def test_admin_views_require_admin(self):
        self.client.force_authenticate(user=self.company)
        self.assertEqual(self.client.get('/api/v1/admin/stats/').status_code, 403)
        self.assertEqual(self.client.get('/api/v1/admin/templates/pending/').status_code, 403)


class EdgeFunctionTest(ContractTestCase):
    """Bearer-authenticated edge endpoints with wildcard CORS"""

    def bearer(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_tokens(user)['access']}")

    def test_preflight(self):
        response = self.client.options('/api/edge-functions/get-contract-layout')
        self.assertEqual(response.status_code, 204)
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')
        self.assertEqual(response['Access-Control-Allow-Headers'], 'Content-Type, Authorization')
        self.assertEqual(response['Access-Control-Max-Age'], '86400')

    def test_missing_token(self):
        response = self.client.get('/api/edge-functions/get-contract-layout', {'contractId': str(uuid.uuid4())})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {'success': False, 'error': 'Unauthorized: Missing or invalid token'})
        self.assertEqual(response['Access-Control-Allow-Origin'], '*')

    def test_get_contract_layout(self):
        contract = self.create_contract()
        self.bearer(self.company)

        response = self.client.get('/api/edge-functions/get-contract-layout', {'contractId': str(contract.id)})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(data['data']['id'], str(contract.id))
        self.assertEqual(data['data']['layout']['source'], 'contract_layout')

    def test_contract_id_from_body(self):
        contract = self.create_contract()
        self.bearer(self.promoter)
        response = self.client.post(
            '/api/edge-functions/get-contract-layout/', {'contractId': str(contract.id)}, format='json',
        )
        self.assertEqual(response.status_code, 200)

    def test_contract_id_validation(self):
        self.bearer(self.admin)
        response = self.client.get('/api/edge-functions/get-contract-layout')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Contract ID is required')

        response = self.client.get('/api/edge-functions/get-contract-layout', {'contractId': 'abc'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Invalid contract ID format')

    def test_company_only_sees_own_contract(self):
        contract = self.create_contract()
        self.bearer(self.other_company)
        response = self.client.get('/api/edge-functions/get-contract-layout', {'contractId': str(contract.id)})
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()['success'])

    def test_plain_user_is_forbidden(self):
        user = User.objects.create_user(
            email='viewer@example.com', password='viewerpass123', tenant_id=self.tenant_id, role='user',
        )
        self.bearer(user)
        response = self.client.get('/api/edge-functions/get-contract-layout', {'contractId': str(uuid.uuid4())})
        self.assertEqual(response.status_code, 403)

    def test_import_merge_preview_csv(self):
        self.bearer(self.company)
        content = 'name,email\nAnn,ann@example.com\nBob,bob@example.com\nAnn B,ann@example.com\n'
        response = self.client.post('/api/edge-functions/import-merge-preview', {
            'fileType': 'csv', 'fileContent': content,
        }, format='json')

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['totalItems'], 3)
        self.assertEqual(len(data['duplicates']), 1)
        self.assertEqual(data['duplicates'][0]['name'], 'Ann B')
        self.assertEqual(data['errors'], [])

    def test_import_merge_preview_json_and_errors(self):
        self.bearer(self.company)
        rows = [{'id': i} for i in range(12)] + [{'id': 3}]
        response = self.client.post('/api/edge-functions/import-merge-preview', {
            'fileType': 'json', 'fileContent': json.dumps(rows),
        }, format='json')
        data = response.json()['data']
        self.assertEqual(len(data['preview']), 10)
        self.assertEqual(data['totalItems'], 13)
        self.assertEqual(data['duplicates'], [{'id': 3}])

        response = self.client.post('/api/edge-functions/import-merge-preview', {
            'fileType': 'json', 'fileContent': '{not json',
        }, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['data']['errors'][0].startswith('Error parsing file'))

        response = self.client.post('/api/edge-functions/import-merge-preview', {
            'fileType': 'xml', 'fileContent': '<a/>',
        }, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "File type must be either 'json' or 'csv'")
        self.assertFalse(response.json()['success'])

    def test_promoter_cannot_import(self):
        self.bearer(self.promoter)
        response = self.client.post('/api/edge-functions/import-merge-preview', {
            'fileType': 'csv', 'fileContent': 'a\n1\n',
        }, format='json')
        self.assertEqual(response.status_code, 403)


@override_settings(FIGMA_PLUGIN_API_KEY='figma-test-key')
class FigmaExportTest(ContractTestCase):
    """API-key protected Figma plugin export"""

    def setUp(self):
        super().setUp()
        self.contract = self.create_contract()
        self.client.credentials(HTTP_X_API_KEY='figma-test-key')

    def test_missing_or_wrong_key(self):
        anonymous = APIClient()
        response = anonymous.get('/api/figma/contracts/')
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {'success': False, 'error': 'Unauthorized: Invalid API key'})

        anonymous.credentials(HTTP_X_API_KEY='wrong')
        self.assertEqual(anonymous.get('/api/figma/contracts/').status_code, 401)

    def test_list(self):
        self.create_contract(first_party_name_en='Zenith Foods')
        response = self.client.get('/api/figma/contracts/', {'search': 'zenith', 'limit': 500})

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['total'], 1)
        self.assertEqual(data['limit'], 100)
        self.assertEqual(data['contracts'][0]['first_party'], 'Zenith Foods')
        self.assertFalse(data['contracts'][0]['has_json_layout'])

    def test_detail_requires_generated_layout(self):
        response = self.client.get(f'/api/figma/contracts/{self.contract.id}/')
        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()['success'])

    def test_regenerate_then_fetch(self):
        response = self.client.post(
            '/api/figma/contracts/regenerate/', {'contractId': str(self.contract.id)}, format='json',
        )
        self.assertEqual(response.status_code, 200)
        layout = response.json()['data']['layout']
        self.assertEqual(layout['metadata']['refNumber'], self.contract.reference_number)
        self.assertEqual(layout['metadata']['dates']['durationDays'], 89)

        response = self.client.get(f'/api/figma/contracts/{self.contract.id}/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['layout']['figmaDocument']['type'], 'DOCUMENT')
        self.assertTrue(self.contract.activities.filter(action='json_regenerated').exists())

    def test_regenerate_validation(self):
        response = self.client.post('/api/figma/contracts/regenerate/', {}, format='json')
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/figma/contracts/regenerate/', {'contractId': 'nope'}, format='json')
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            '/api/figma/contracts/regenerate/', {'contractId': str(uuid.uuid4())}, format='json',
        )
        self.assertEqual(response.status_code, 404)


class ContractTasksTest(ContractTestCase):

    def test_pending_approval_reminders(self):
        ContractTemplate.objects.create(
            tenant_id=self.tenant_id, name='Pending', created_by=self.company.user_id,
            approval_status='pending_approval',
        )

        self.assertEqual(send_pending_approval_reminders('daily'), 1)
        notification = Notification.objects.get(user_id=self.admin.user_id)
        self.assertEqual(notification.message, 'Reminder: 1 template(s) pending your approval.')
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['admin@example.com'])

        # Inside the window nothing is sent again
        self.assertEqual(send_pending_approval_reminders('daily'), 0)
        self.assertEqual(send_pending_approval_reminders('weekly'), 1)

    def test_unknown_reminder_frequency(self):
        with self.assertRaises(ValueError):
            send_pending_approval_reminders('hourly')

    def test_expire_approval_tokens(self):
        contract = self.create_contract()
        stale = ApprovalToken.objects.create(
            contract=contract, party_role='first_party', expires_at=timezone.now() - timedelta(days=40),
        )
        recent = ApprovalToken.objects.create(
            contract=contract, party_role='second_party', expires_at=timezone.now() - timedelta(days=1),
        )

        self.assertEqual(expire_approval_tokens(), 1)
        self.assertFalse(ApprovalToken.objects.filter(id=stale.id).exists())
        self.assertTrue(ApprovalToken.objects.filter(id=recent.id).exists())
