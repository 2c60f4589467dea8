from datetime import timedelta
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from facilities.core.models import AuditLog
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.tickets.models import Ticket, TicketHistory
from facilities.tickets.utils import (
    format_resolution_time, generate_ticket_identifiers, normalize_priority, normalize_status,
)


class TicketUtilsTests(TestCase):

    def test_identifiers_follow_daily_sequence(self):
        display_id, barcode = generate_ticket_identifiers()
        date_part = timezone.now().strftime('%Y%m%d')
        self.assertEqual(display_id, f'TKT-{date_part}-0001')
        self.assertEqual(barcode, f'TKT{date_part}0001')

        TestDataFactory.create_ticket(TestDataFactory.create_user())
        display_id, _ = generate_ticket_identifiers()
        self.assertEqual(display_id, f'TKT-{date_part}-0002')

    def test_normalizers_fall_back_to_defaults(self):
        self.assertEqual(normalize_priority('high'), 'HIGH')
        self.assertEqual(normalize_priority('urgent'), 'MEDIUM')
        self.assertEqual(normalize_status('in_progress'), 'IN_PROGRESS')
        self.assertEqual(normalize_status(None), 'OPEN')

    def test_format_resolution_time(self):
        self.assertEqual(format_resolution_time(7500), '2 hours, 5 minutes')
        self.assertEqual(format_resolution_time(330), '5 minutes, 30 seconds')
        self.assertEqual(format_resolution_time(300), '5 minutes')
        self.assertEqual(format_resolution_time(3661), '1 hour, 1 minute')
        self.assertEqual(format_resolution_time(7200), '2 hours')
        self.assertEqual(format_resolution_time(61), '1 minute, 1 second')
        self.assertEqual(format_resolution_time(0), '0 seconds')


class TicketAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.other = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.user)

    def test_create_ticket_with_history(self):
        asset = TestDataFactory.create_asset()
        response = self.client.post('/api/v1/tickets/', {
            'title': 'Broken chair',
            'description': 'The backrest snapped off this morning',
            'priority': 'high',
            'asset': asset.id,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'OPEN')
        self.assertEqual(response.data['priority'], 'HIGH')
        self.assertEqual(response.data['asset_code'], asset.asset_id)

        ticket = Ticket.objects.get(pk=response.data['id'])
        self.assertEqual(ticket.history.get().comment, 'Ticket created')
        self.assertTrue(AuditLog.objects.filter(model_name='Ticket', action='create').exists())

    def test_create_validates_text_lengths(self):
        response = self.client.post('/api/v1/tickets/', {'title': 'No', 'description': 'Long enough text'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/tickets/', {'title': 'Leak', 'description': 'short'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_rejects_unknown_asset(self):
        response = self.client.post('/api/v1/tickets/', {
            'title': 'Leak', 'description': 'Water under the sink', 'asset': 9999
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_see_created_and_assigned_tickets(self):
        TestDataFactory.create_ticket(self.user)
        TestDataFactory.create_ticket(self.other, assigned_to=self.user)
        TestDataFactory.create_ticket(self.other)

        response = self.client.get('/api/v1/tickets/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 2)

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/tickets/')
        self.assertEqual(len(response.data), 3)

    def test_list_filters(self):
        TestDataFactory.create_ticket(self.user, priority='CRITICAL', title='Fire alarm fault')
        TestDataFactory.create_ticket(self.user, priority='LOW', status='RESOLVED')
        response = self.client.get('/api/v1/tickets/', {'priority': 'critical'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/tickets/', {'status': 'resolved'})
        self.assertEqual(len(response.data), 1)
        response = self.client.get('/api/v1/tickets/', {'search': 'alarm'})
        self.assertEqual(response.data[0]['title'], 'Fire alarm fault')

    def test_other_users_ticket_is_forbidden(self):
        ticket = TestDataFactory.create_ticket(self.other)
        response = self.client.get(f'/api/v1/tickets/{ticket.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_assignee_cannot_delete(self):
        ticket = TestDataFactory.create_ticket(self.other, assigned_to=self.user)
        response = self.client.delete(f'/api/v1/tickets/{ticket.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.other)
        response = self.client.delete(f'/api/v1/tickets/{ticket.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_status_flow_measures_resolution_time(self):
        ticket = TestDataFactory.create_ticket(self.user)
        url = f'/api/v1/tickets/{ticket.id}/'

        response = self.client.patch(url, {'status': 'IN_PROGRESS'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        started = TicketHistory.objects.get(ticket=ticket, status='IN_PROGRESS')
        self.assertIsNotNone(started.started_at)
        started.started_at = timezone.now() - timedelta(hours=2)
        started.save()

        response = self.client.patch(url, {'status': 'RESOLVED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['resolved_at'])
        entry = response.data['history_entry']
        self.assertGreaterEqual(entry['resolution_time'], 7200)
        self.assertIn('Resolution time: 2 hours', entry['comment'])
        self.assertTrue(AuditLog.objects.filter(action='ticket_status', object_id=str(ticket.id)).exists())

        response = self.client.patch(url, {'status': 'OPEN'}, format='json')
        self.assertIsNone(response.data['resolved_at'])

    def test_put_with_only_status_skips_text_validation(self):
        ticket = TestDataFactory.create_ticket(self.user)
        response = self.client.put(f'/api/v1/tickets/{ticket.id}/', {'status': 'CLOSED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'CLOSED')

    def test_put_full_update_validates_text(self):
        ticket = TestDataFactory.create_ticket(self.user)
        response = self.client.put(f'/api/v1/tickets/{ticket.id}/', {
            'title': 'OK', 'description': 'A reasonably long description'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_comment_history(self):
        ticket = TestDataFactory.create_ticket(self.user)
        url = f'/api/v1/tickets/{ticket.id}/history/'
        response = self.client.post(url, {'comment': '  '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'comment': 'Technician booked'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        response = self.client.get(url)
        self.assertEqual(response.data[0]['comment'], 'Technician booked')
        self.assertEqual(response.data[0]['user_email'], self.user.email)

    def test_lookup_by_barcode(self):
        ticket = TestDataFactory.create_ticket(self.user)
        response = self.client.get('/api/v1/tickets/barcode/', {'barcode': ticket.barcode.lower()})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], ticket.id)
        response = self.client.get('/api/v1/tickets/barcode/', {'barcode': 'TKT000'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TicketStatsTests(TestCase):

    def test_counts_for_visible_tickets(self):
        client = AuthenticatedAPIClient()
        user = TestDataFactory.create_user()
        client.authenticate_user(user)
        asset = TestDataFactory.create_asset()
        TestDataFactory.create_ticket(user, priority='CRITICAL', asset=asset)
        TestDataFactory.create_ticket(user, status='IN_PROGRESS')
        TestDataFactory.create_ticket(TestDataFactory.create_user())

        response = client.get('/api/v1/tickets/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        counts = response.data['counts']
        self.assertEqual(counts['total'], 2)
        self.assertEqual(counts['open'], 1)
        self.assertEqual(counts['in_progress'], 1)
        self.assertEqual(counts['critical'], 1)
        self.assertEqual(response.data['with_assets'], 1)
        self.assertEqual(sum(row['count'] for row in response.data['tickets_over_time']), 2)
