"""
Tests for accounts, audit logging and the shared helpers
"""
from decimal import Decimal
from datetime import date
from io import StringIO
from django.contrib.auth.models import Group
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, RequestFactory
from rest_framework import status
from facilities.core.cache_utils import cached_query, invalidate_cache_pattern, make_cache_key
from facilities.core.models import AuditLog
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.core.utils import (
    create_audit_log, is_admin_or_manager, is_truthy, parse_decimal, parse_int, parse_date, parse_datetime,
    get_client_ip,
)


class UserModelTests(TestCase):

    def test_display_name_uses_email_local_part(self):
        user = TestDataFactory.create_user(username='jdoe', email='john.doe@example.com')
        self.assertEqual(user.display_name, 'john.doe')

    def test_display_name_falls_back_to_username(self):
        user = TestDataFactory.create_user(username='nomail')
        user.email = ''
        self.assertEqual(user.display_name, 'nomail')

    def test_default_role_is_staff(self):
        user = TestDataFactory.create_user()
        self.assertEqual(user.role, 'STAFF')


class AccessHelperTests(TestCase):

    def test_roles_and_groups_grant_privilege(self):
        self.assertTrue(is_admin_or_manager(TestDataFactory.create_user(role='ADMIN')))
        self.assertTrue(is_admin_or_manager(TestDataFactory.create_user(role='MANAGER')))
        self.assertTrue(is_admin_or_manager(TestDataFactory.create_user(is_staff=True)))
        staff = TestDataFactory.create_user()
        self.assertFalse(is_admin_or_manager(staff))
        staff.groups.add(Group.objects.create(name='Manager'))
        self.assertTrue(is_admin_or_manager(staff))

    def test_anonymous_is_not_privileged(self):
        self.assertFalse(is_admin_or_manager(None))


class ParsingHelperTests(TestCase):

    def test_is_truthy(self):
        for value in ('true', 'True', '1', 'yes', True):
            self.assertTrue(is_truthy(value))
        for value in ('false', '0', '', None, False):
            self.assertFalse(is_truthy(value))

    def test_parse_decimal(self):
        self.assertEqual(parse_decimal('12.50'), Decimal('12.50'))
        self.assertIsNone(parse_decimal('abc'))
        self.assertIsNone(parse_decimal(''))

    def test_parse_int_default(self):
        self.assertEqual(parse_int('7'), 7)
        self.assertEqual(parse_int('x', 3), 3)

    def test_parse_date_accepts_datetimes(self):
        self.assertEqual(parse_date('2024-03-05'), date(2024, 3, 5))
        self.assertEqual(parse_date('2024-03-05T10:00:00Z'), date(2024, 3, 5))
        self.assertIsNone(parse_date('05/03/2024'))

    def test_parse_datetime_is_aware(self):
        parsed = parse_datetime('2024-03-05')
        self.assertIsNotNone(parsed.tzinfo)
        self.assertIsNone(parse_datetime('nonsense'))


class AuditLogTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.factory = RequestFactory()

    def test_create_audit_log_records_ip(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2')
        request.user = self.user
        log = create_audit_log(request, 'create', 'Asset', 5, changes={'name': 'Desk'}, object_name='Desk')
        self.assertEqual(log.ip_address, '10.0.0.1')
        self.assertEqual(log.object_id, '5')
        self.assertEqual(log.user, self.user)

    def test_missing_fields_skip_logging(self):
        self.assertIsNone(create_audit_log(None, None, 'Asset', 1, user=self.user))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_client_ip_without_request(self):
        self.assertIsNone(get_client_ip(None))


class AuthAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()

    def test_register_creates_staff_user_with_tokens(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'newcomer',
            'email': 'newcomer@example.com',
            'password': 'Facil1ties!Pass',
            'password_confirm': 'Facil1ties!Pass',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)
        self.assertEqual(response.data['user']['role'], 'STAFF')

    def test_register_rejects_mismatched_passwords(self):
        response = self.client.post('/api/v1/auth/register/', {
            'username': 'mismatch',
            'password': 'Facil1ties!Pass',
            'password_confirm': 'Other1ties!Pass',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_login_returns_token_pair(self):
        TestDataFactory.create_user(username='loginuser', password='Facil1ties!Pass')
        response = self.client.post('/api/v1/auth/login/', {
            'username': 'loginuser', 'password': 'Facil1ties!Pass'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('refresh', response.data)

    def test_me_requires_authentication(self):
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_me_reports_access_flags(self):
        manager = TestDataFactory.create_user(role='MANAGER')
        self.client.authenticate_user(manager)
        response = self.client.get('/api/v1/auth/me/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_manager'])
        self.assertTrue(response.data['can_manage'])
        self.assertFalse(response.data['is_admin'])


class UserAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_user(is_staff=True)

    def test_non_staff_cannot_list_users(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_lists_users(self):
        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/users/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_cannot_delete_own_account(self):
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/users/{self.admin.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuditLogAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        create_audit_log(None, 'create', 'Asset', 1, user=self.user)
        create_audit_log(None, 'delete', 'Ticket', 2, user=self.other)

    def test_non_staff_see_only_their_entries(self):
        self.client.authenticate_user(self.user)
        response = self.client.get('/api/v1/audit-logs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['model_name'], 'Asset')

    def test_staff_filter_by_model(self):
        self.client.authenticate_user(TestDataFactory.create_user(is_staff=True))
        response = self.client.get('/api/v1/audit-logs/', {'model': 'Ticket'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['action'], 'delete')

    def test_detail_of_other_users_entry_is_forbidden(self):
        log = AuditLog.objects.get(model_name='Ticket')
        self.client.authenticate_user(self.user)
        response = self.client.get(f'/api/v1/audit-logs/{log.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class CachedQueryTests(TestCase):

    def setUp(self):
        cache.clear()
        self.calls = 0

    def test_cached_until_refresh(self):
        @cached_query(cache_ttl=60, key_prefix='test_counter')
        def counter(key):
            self.calls += 1
            return {'calls': self.calls}

        self.assertEqual(counter('a'), {'calls': 1})
        self.assertEqual(counter('a'), {'calls': 1})
        self.assertEqual(counter('a', refresh=True), {'calls': 2})
        self.assertEqual(counter('b'), {'calls': 3})

    def test_invalidation_without_redis(self):
        @cached_query(cache_ttl=60, key_prefix='test_invalidate')
        def counter():
            self.calls += 1
            return self.calls

        self.assertEqual(counter(), 1)
        self.assertEqual(counter(), 1)
        old_key = make_cache_key('test_invalidate')
        invalidate_cache_pattern('test_invalidate')
        self.assertNotEqual(make_cache_key('test_invalidate'), old_key)
        self.assertEqual(counter(), 2)
        self.assertEqual(counter(), 2)

    def test_invalidating_one_prefix_keeps_others(self):
        @cached_query(cache_ttl=60, key_prefix='test_kept')
        def counter():
            self.calls += 1
            return self.calls

        self.assertEqual(counter(), 1)
        invalidate_cache_pattern('test_other')
        self.assertEqual(counter(), 1)


class CreateUserGroupsCommandTests(TestCase):

    def test_creates_groups_once(self):
        out = StringIO()
        call_command('create_user_groups', stdout=out)
        call_command('create_user_groups', stdout=out)
        self.assertEqual(
            sorted(Group.objects.values_list('name', flat=True)), ['Admin', 'Manager', 'Staff']
        )
        self.assertIn('3 groups already existed', out.getvalue())
