"""
Notification template, inbox and read receipt tests
"""
import uuid
from datetime import timedelta

from django.core import mail
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from authentication.models import User
from notifications.email_service import EmailService
from notifications.models import Notification, ReadReceipt
from notifications.notification_templates import NOTIFICATION_TEMPLATES, create_notification_from_template
from notifications.services import NotificationService
from notifications.tasks import clear_expired_notifications


class NotificationTemplateTest(TestCase):

    def test_all_templates_present(self):
        expected = {
            'template-submitted', 'template-approved', 'template-rejected', 'approval-reminder',
            'contract-created', 'contract-updated', 'contract-expiring',
            'system-maintenance', 'system-error',
            'general-info', 'general-success', 'general-warning', 'general-error',
        }
        self.assertEqual(set(NOTIFICATION_TEMPLATES), expected)

    def test_params_are_substituted(self):
        fields = create_notification_from_template('template-submitted', {'template_name': 'NDA'})
        self.assertEqual(fields['message'], 'Template "NDA" has been submitted for approval.')
        self.assertEqual(fields['category'], 'approval')
        self.assertTrue(fields['important'])
        self.assertTrue(fields['requires_read_receipt'])
        self.assertIsNotNone(fields['expires_at'])

    def test_overrides_win(self):
        fields = create_notification_from_template(
            'contract-created', {'reference_number': 'PAC-1'}, important=True, category='general',
        )
        self.assertTrue(fields['important'])
        self.assertEqual(fields['category'], 'general')
        self.assertIsNone(fields['expires_at'])

    def test_unknown_template_raises(self):
        with self.assertRaises(KeyError):
            create_notification_from_template('no-such-template', {})


class NotificationAPITest(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.tenant_id = uuid.uuid4()
        self.user = User.objects.create_user(
            email='reader@example.com', password='readerpass', tenant_id=self.tenant_id, role='company',
        )
        self.other = User.objects.create_user(
            email='other@example.com', password='otherpass', tenant_id=self.tenant_id, role='company',
        )
        self.client.force_authenticate(user=self.user)

    def _notify(self, user=None, template_id='general-info', **overrides):
        user = user or self.user
        return NotificationService.notify(
            self.tenant_id, user.user_id, template_id, {'message': 'Hello'}, **overrides
        )

    def test_list_only_own_and_hides_expired(self):
        own = self._notify()
        self._notify(user=self.other)
        self._notify(expires_at=timezone.now() - timedelta(hours=1))

        response = self.client.get('/api/v1/notifications/')
        self.assertEqual(response.status_code, 200)
        ids = [n['id'] for n in response.json()['results']]
        self.assertEqual(ids, [str(own.id)])

    def test_unread_and_important_filters(self):
        self._notify(important=True)
        read = self._notify()
        read.read = True
        read.save()

        response = self.client.get('/api/v1/notifications/', {'unread': 'true'})
        self.assertEqual(response.json()['count'], 1)
        response = self.client.get('/api/v1/notifications/', {'important': 'true'})
        self.assertEqual(response.json()['count'], 1)

    def test_read_creates_receipt_when_required(self):
        notification = self._notify(template_id='template-approved')
        response = self.client.post(
            f'/api/v1/notifications/{notification.id}/read/', HTTP_USER_AGENT='TestBrowser/1.0',
        )
        self.assertEqual(response.status_code, 200)
        notification.refresh_from_db()
        self.assertTrue(notification.read)
        receipt = ReadReceipt.objects.get(notification=notification)
        self.assertEqual(receipt.device_info, 'TestBrowser/1.0')

        # Reading again keeps a single receipt
        self.client.post(f'/api/v1/notifications/{notification.id}/read/')
        self.assertEqual(ReadReceipt.objects.filter(notification=notification).count(), 1)

        response = self.client.get(f'/api/v1/notifications/{notification.id}/receipts/')
        self.assertEqual(len(response.json()), 1)

    def test_read_without_receipt(self):
        notification = self._notify()
        response = self.client.post(f'/api/v1/notifications/{notification.id}/read/')
        self.assertIsNone(response.json()['receipt'])
        self.assertFalse(ReadReceipt.objects.exists())

    def test_cannot_read_someone_elses_notification(self):
        notification = self._notify(user=self.other)
        response = self.client.post(f'/api/v1/notifications/{notification.id}/read/')
        self.assertEqual(response.status_code, 404)

    def test_read_all_and_unread_count(self):
        self._notify()
        self._notify()
        self.assertEqual(self.client.get('/api/v1/notifications/unread-count/').json()['unread_count'], 2)
        response = self.client.post('/api/v1/notifications/read-all/')
        self.assertEqual(response.json()['updated'], 2)
        self.assertEqual(self.client.get('/api/v1/notifications/unread-count/').json()['unread_count'], 0)

    def test_delete(self):
        notification = self._notify()
        response = self.client.delete(f'/api/v1/notifications/{notification.id}/')
        self.assertEqual(response.status_code, 204)
        self.assertFalse(Notification.objects.filter(id=notification.id).exists())

    def test_clear_expired(self):
        self._notify(expires_at=timezone.now() - timedelta(minutes=5))
        self._notify()
        response = self.client.post('/api/v1/notifications/clear-expired/')
        self.assertEqual(response.json()['deleted'], 1)
        self.assertEqual(Notification.objects.count(), 1)

    def test_clear_expired_task(self):
        self._notify(expires_at=timezone.now() - timedelta(minutes=5))
        self._notify(user=self.other, expires_at=timezone.now() - timedelta(minutes=5))
        self.assertEqual(clear_expired_notifications(), 2)

    def test_templates_endpoint(self):
        response = self.client.get('/api/v1/notifications/templates/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()), len(NOTIFICATION_TEMPLATES))

    def test_templates_endpoint_category_filter(self):
        response = self.client.get('/api/v1/notifications/templates/', {'category': 'general'})
        self.assertEqual(response.status_code, 200)
        ids = {item['id'] for item in response.json()}
        self.assertEqual(ids, {'general-info', 'general-success', 'general-warning', 'general-error'})

        response = self.client.get('/api/v1/notifications/templates/', {'category': 'nothing'})
        self.assertEqual(response.json(), [])


class AdminNotificationAPITest(TestCase):

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.tenant_id = uuid.uuid4()
        self.admin = User.objects.create_user(
            email='admin@example.com', password='adminpass', tenant_id=self.tenant_id, role='admin',
        )
        self.promoter = User.objects.create_user(
            email='promoter@example.com', password='promoterpass', tenant_id=self.tenant_id, role='promoter',
        )
        self.client.force_authenticate(user=self.admin)

    def test_send_templated_to_role(self):
        response = self.client.post('/api/v1/admin/notifications/', {
            'template_id': 'system-maintenance',
            'params': {'maintenance_date': '2026-01-01', 'downtime_duration': '1h'},
            'role': 'promoter',
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['count'], 1)
        notification = Notification.objects.get(user_id=self.promoter.user_id)
        self.assertIn('2026-01-01', notification.message)

    def test_send_free_form_to_user(self):
        response = self.client.post('/api/v1/admin/notifications/', {
            'title': 'Heads up',
            'message': 'Check your contracts',
            'user_id': str(self.promoter.user_id),
        }, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertTrue(Notification.objects.filter(title='Heads up').exists())

    def test_requires_recipient(self):
        response = self.client.post('/api/v1/admin/notifications/', {'title': 'x'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.json())

    def test_non_admin_forbidden(self):
        self.client.force_authenticate(user=self.promoter)
        response = self.client.post('/api/v1/admin/notifications/', {'title': 'x', 'role': 'admin'}, format='json')
        self.assertEqual(response.status_code, 403)


class EmailServiceTest(TestCase):

    def test_approval_link_email(self):
        sent = EmailService().send_approval_link_email(
            'party@example.com', 'Party <b>One</b>', 'PAC-01012026-abcdef12', 'http://x/approve/1',
            expires_at=timezone.now(),
        )
        self.assertTrue(sent)
        self.assertEqual(len(mail.outbox), 1)
        html = mail.outbox[0].alternatives[0][0]
        self.assertIn('PAC-01012026-abcdef12', html)
        self.assertIn('Party &lt;b&gt;One&lt;/b&gt;', html)

    def test_missing_recipient(self):
        self.assertFalse(EmailService().send_notification_email('', 'Title', 'Body'))
