"""
Authentication, role and admin API tests
"""
import uuid
from datetime import timedelta
from unittest import mock

import jwt
from django.conf import settings
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework.test import APIClient

from authentication.models import User
from authentication.roles import (
    ROLES,
    ROLE_PERMISSIONS,
    can_access_route,
    has_permission,
    permissions_for,
)


class RolePermissionMappingTest(TestCase):
    """Static role table"""

    def test_every_role_has_a_permission_list(self):
        for role in ROLES:
            self.assertIn(role, ROLE_PERMISSIONS)
            self.assertTrue(ROLE_PERMISSIONS[role])

    def test_admin_permissions(self):
        self.assertTrue(has_permission('admin', 'manage_users'))
        self.assertTrue(has_permission('admin', 'regenerate_contract_json'))
        self.assertFalse(has_permission('admin', 'edit_own_contracts'))

    def test_company_permissions(self):
        self.assertTrue(has_permission('company', 'create_contracts'))
        self.assertTrue(has_permission('company', 'edit_own_contracts'))
        self.assertFalse(has_permission('company', 'delete_contracts'))

    def test_promoter_and_user_permissions(self):
        self.assertEqual(permissions_for('promoter'), ['view_assigned_contracts', 'update_profile'])
        self.assertEqual(permissions_for('user'), ['view_public_contracts'])

    def test_unknown_role_has_no_permissions(self):
        self.assertFalse(has_permission('superhero', 'view_contracts'))
        self.assertFalse(has_permission(None, 'view_contracts'))
        self.assertEqual(permissions_for('superhero'), [])

    def test_route_access(self):
        self.assertTrue(can_access_route('admin', '/admin/placeholders'))
        self.assertFalse(can_access_route('company', '/admin'))
        self.assertFalse(can_access_route('company', '/admin/create'))
        self.assertTrue(can_access_route('company', '/contracts/new'))
        self.assertTrue(can_access_route('promoter', '/contracts'))
        self.assertFalse(can_access_route('user', '/contracts'))
        self.assertFalse(can_access_route('promoter', '/company'))
        self.assertTrue(can_access_route('promoter', '/promoter/profile'))
        self.assertFalse(can_access_route('company', '/edge-functions'))

    def test_unlisted_routes_are_open(self):
        self.assertTrue(can_access_route('user', '/dashboard'))
        self.assertFalse(can_access_route(None, '/'))
        self.assertFalse(can_access_route('', '/dashboard'))
        # Prefix matching is per path segment
        self.assertTrue(can_access_route('user', '/administrator-guide'))


class AuthenticationAPITest(TestCase):
    """Test authentication endpoints"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.test_email = 'test@example.com'
        self.test_password = 'testpass123'
        self.tenant_id = uuid.uuid4()
        self.user = User.objects.create_user(
            email=self.test_email,
            password=self.test_password,
            full_name='Test User',
            tenant_id=self.tenant_id,
            role='company',
        )

    def test_user_registration(self):
        """Registration returns tokens and the new user's permissions"""
        response = self.client.post('/api/auth/register/', {
            'email': 'newuser@example.com',
            'password': 'newpass123',
            'full_name': 'New User',
            'role': 'promoter',
        }, format='json')

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertIn('access', data)
        self.assertIn('refresh', data)
        self.assertEqual(data['user']['email'], 'newuser@example.com')
        self.assertEqual(data['user']['role'], 'promoter')
        self.assertEqual(data['user']['permissions'], ['view_assigned_contracts', 'update_profile'])

        user = User.objects.get(email='newuser@example.com')
        self.assertEqual(user.full_name, 'New User')

    def test_user_registration_duplicate_email(self):
        response = self.client.post('/api/auth/register/', {
            'email': self.test_email,
            'password': 'somepass123',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.json())

    def test_user_registration_weak_password(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'test2@example.com',
            'password': '123',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.json())

    def test_admin_cannot_self_register(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'sneaky@example.com',
            'password': 'sneaky123',
            'role': 'admin',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(User.objects.filter(email='sneaky@example.com').exists())

    @override_settings(CAPTCHA_SECRET_KEY='secret', PREVIEW_MODE=False)
    def test_registration_rejected_by_captcha(self):
        fake = mock.Mock(status_code=200)
        fake.json.return_value = {'success': False, 'error-codes': ['invalid-input-response']}
        with mock.patch('authentication.captcha.requests.post', return_value=fake) as post:
            response = self.client.post('/api/auth/register/', {
                'email': 'bot@example.com',
                'password': 'botpass123',
                'captcha_token': 'bad',
            }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'CAPTCHA verification failed')
        post.assert_called_once()

    @override_settings(CAPTCHA_SECRET_KEY='secret', PREVIEW_MODE=False)
    def test_registration_with_non_json_captcha_reply(self):
        fake = mock.Mock(status_code=200, text='<html>Bad gateway</html>')
        fake.json.side_effect = ValueError('Expecting value')
        with mock.patch('authentication.captcha.requests.post', return_value=fake):
            response = self.client.post('/api/auth/register/', {
                'email': 'proxy@example.com',
                'password': 'proxypass123',
                'captcha_token': 'token',
            }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'CAPTCHA verification failed')
        self.assertFalse(User.objects.filter(email='proxy@example.com').exists())

    @override_settings(CAPTCHA_SECRET_KEY='secret', PREVIEW_MODE=False)
    def test_registration_accepted_by_captcha(self):
        fake = mock.Mock(status_code=200)
        fake.json.return_value = {'success': True}
        with mock.patch('authentication.captcha.requests.post', return_value=fake):
            response = self.client.post('/api/auth/register/', {
                'email': 'human@example.com',
                'password': 'humanpass123',
                'captcha_token': 'good',
            }, format='json')

        self.assertEqual(response.status_code, 201)

    @override_settings(CAPTCHA_SECRET_KEY='secret', PREVIEW_MODE=True)
    def test_preview_mode_skips_captcha(self):
        with mock.patch('authentication.captcha.requests.post') as post:
            response = self.client.post('/api/auth/register/', {
                'email': 'preview@example.com',
                'password': 'previewpass',
            }, format='json')

        self.assertEqual(response.status_code, 201)
        post.assert_not_called()

    def test_user_login_success(self):
        response = self.client.post('/api/auth/login/', {
            'email': self.test_email,
            'password': self.test_password,
        }, format='json')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertIn('access', data)
        self.assertEqual(data['user']['role'], 'company')
        self.assertEqual(data['user']['tenant_id'], str(self.tenant_id))

    def test_user_login_invalid_password(self):
        response = self.client.post('/api/auth/login/', {
            'email': self.test_email,
            'password': 'wrongpassword',
        }, format='json')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Invalid credentials')

    def test_user_login_missing_fields(self):
        response = self.client.post('/api/auth/login/', {'email': self.test_email}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_user_login_inactive_account(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/auth/login/', {
            'email': self.test_email,
            'password': self.test_password,
        }, format='json')
        self.assertEqual(response.status_code, 403)

    def test_current_user_with_bearer_token(self):
        login = self.client.post('/api/auth/login/', {
            'email': self.test_email,
            'password': self.test_password,
        }, format='json').json()

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login['access']}")
        response = self.client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['email'], self.test_email)
        self.assertIn('create_contracts', data['permissions'])

    def test_current_user_without_token(self):
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)
        self.assertIn('error', response.json())

    def test_expired_token_is_rejected(self):
        token = jwt.encode({
            'token_type': 'access',
            'user_id': str(self.user.user_id),
            'exp': timezone.now() - timedelta(minutes=5),
        }, settings.SIMPLE_JWT['SIGNING_KEY'], algorithm='HS256')

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], 'Token has expired')

    def test_token_with_bad_signature_is_rejected(self):
        token = jwt.encode({'user_id': str(self.user.user_id)}, 'not-the-key', algorithm='HS256')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.status_code, 401)

    def test_role_claim_used_when_user_row_has_no_role(self):
        User.objects.filter(user_id=self.user.user_id).update(role='')
        token = jwt.encode({
            'token_type': 'access',
            'user_id': str(self.user.user_id),
            'role': 'promoter',
        }, settings.SIMPLE_JWT['SIGNING_KEY'], algorithm='HS256')

        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        response = self.client.get('/api/auth/me/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['role'], 'promoter')

    def test_logout(self):
        response = self.client.post('/api/auth/logout/')
        self.assertEqual(response.status_code, 200)

    def test_route_access_endpoint(self):
        self.client.force_authenticate(user=self.user)
        response = self.client.get('/api/auth/route-access/', {'path': '/admin'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {'path': '/admin', 'role': 'company', 'allowed': False})


class AdminUserAPITest(TestCase):
    """Admin user and role management"""

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.tenant_id = uuid.uuid4()
        self.admin = User.objects.create_user(
            email='admin@example.com', password='adminpass', tenant_id=self.tenant_id, role='admin',
        )
        self.member = User.objects.create_user(
            email='member@example.com', password='memberpass', full_name='Member One',
            tenant_id=self.tenant_id, role='user',
        )
        self.outsider = User.objects.create_user(
            email='outsider@example.com', password='outsiderpass', tenant_id=uuid.uuid4(), role='user',
        )
        self.client.force_authenticate(user=self.admin)

    def test_list_users_scoped_to_tenant(self):
        response = self.client.get('/api/v1/admin/users/')
        self.assertEqual(response.status_code, 200)
        emails = [u['email'] for u in response.json()['results']]
        self.assertIn('member@example.com', emails)
        self.assertNotIn('outsider@example.com', emails)

    def test_list_users_role_filter_and_search(self):
        response = self.client.get('/api/v1/admin/users/', {'role': 'user', 'search': 'member'})
        emails = [u['email'] for u in response.json()['results']]
        self.assertEqual(emails, ['member@example.com'])

    def test_non_admin_is_forbidden(self):
        self.client.force_authenticate(user=self.member)
        response = self.client.get('/api/v1/admin/users/')
        self.assertEqual(response.status_code, 403)
        self.assertIn('error', response.json())

    def test_update_user(self):
        response = self.client.patch(
            f'/api/v1/admin/users/{self.member.user_id}/',
            {'full_name': 'Renamed', 'is_active': False},
            format='json',
        )
        self.assertEqual(response.status_code, 200)
        self.member.refresh_from_db()
        self.assertEqual(self.member.full_name, 'Renamed')
        self.assertFalse(self.member.is_active)

    def test_admin_cannot_delete_self(self):
        response = self.client.delete(f'/api/v1/admin/users/{self.admin.user_id}/')
        self.assertEqual(response.status_code, 400)
        self.assertTrue(User.objects.filter(user_id=self.admin.user_id).exists())

    def test_delete_user(self):
        response = self.client.delete(f'/api/v1/admin/users/{self.member.user_id}/')
        self.assertEqual(response.status_code, 204)
        self.assertFalse(User.objects.filter(user_id=self.member.user_id).exists())

    def test_assign_role(self):
        with self.assertLogs('audit', level='INFO') as logs:
            response = self.client.post('/api/v1/admin/assign-role/', {
                'user_id': str(self.member.user_id),
                'role': 'company',
            }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['previous_role'], 'user')
        self.member.refresh_from_db()
        self.assertEqual(self.member.role, 'company')
        self.assertTrue(any('ROLE_ASSIGNED' in line for line in logs.output))

    def test_assign_role_missing_fields(self):
        response = self.client.post('/api/v1/admin/assign-role/', {'role': 'company'}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_assign_role_invalid_role(self):
        response = self.client.post('/api/v1/admin/assign-role/', {
            'user_id': str(self.member.user_id),
            'role': 'overlord',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_assign_role_to_self(self):
        response = self.client.post('/api/v1/admin/assign-role/', {
            'user_id': str(self.admin.user_id),
            'role': 'user',
        }, format='json')
        self.assertEqual(response.status_code, 400)

    def test_assign_role_to_self_with_upper_case_id(self):
        response = self.client.post('/api/v1/admin/assign-role/', {
            'user_id': str(self.admin.user_id).upper(),
            'role': 'user',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, 'admin')

    def test_assign_role_unknown_user(self):
        response = self.client.post('/api/v1/admin/assign-role/', {
            'user_id': str(uuid.uuid4()),
            'role': 'company',
        }, format='json')
        self.assertEqual(response.status_code, 404)

    def test_assign_role_other_tenant_user(self):
        response = self.client.post('/api/v1/admin/assign-role/', {
            'user_id': str(self.outsider.user_id),
            'role': 'company',
        }, format='json')
        self.assertEqual(response.status_code, 404)

    def test_roles_endpoint(self):
        response = self.client.get('/api/v1/admin/roles/')
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(set(data['roles']), set(ROLES))
        self.assertEqual(data['routes']['/admin'], ['admin'])
