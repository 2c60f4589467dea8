import shutil
import tempfile
from datetime import date
from decimal import Decimal
from unittest import mock
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from facilities.core.models import AuditLog
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.assets.health import (
    calculate_health_score, calculate_tco, predict_maintenance, build_lifecycle_events, months_between,
)
from facilities.assets.models import Asset, AssetHistory, AssetMovement, AssetDocument
from facilities.assets.utils import generate_asset_id, sanitize_barcode, generate_unique_asset_identifiers


class AssetIdentifierTests(TestCase):

    def test_asset_id_prefix_and_length(self):
        asset_id = generate_asset_id('ELECTRONICS')
        self.assertTrue(asset_id.startswith('EL'))
        self.assertEqual(len(asset_id), 11)
        self.assertTrue(asset_id[2:].isdigit())

    def test_sanitize_barcode_pads_and_strips(self):
        self.assertEqual(sanitize_barcode('A-1'), 'A1000000')
        self.assertEqual(sanitize_barcode('FU123456789'), 'FU123456789')

    def test_reserved_identifiers_are_skipped(self):
        reserved = set()
        first = generate_unique_asset_identifiers('FURNITURE', reserved)
        second = generate_unique_asset_identifiers('FURNITURE', reserved)
        self.assertNotEqual(first, second)
        self.assertIn(first[0], reserved)


class AssetAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.vendor = TestDataFactory.create_vendor()
        self.client.authenticate_user(self.user)

    def test_register_asset_generates_identifiers(self):
        response = self.client.post('/api/v1/assets/', {
            'name': 'Standing Desk',
            'type': 'FURNITURE',
            'floor_number': '2',
            'room_number': '204',
            'vendor': self.vendor.id,
            'purchase_amount': '450.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['asset_id'].startswith('FU'))
        self.assertEqual(response.data['barcode'], response.data['asset_id'])
        self.assertEqual(response.data['owner']['id'], self.user.id)

        asset = Asset.objects.get(pk=response.data['id'])
        self.assertTrue(asset.history.filter(action='REGISTERED').exists())
        self.assertTrue(AuditLog.objects.filter(model_name='Asset', action='create').exists())

    def test_register_rejects_disposed_status(self):
        response = self.client.post('/api/v1/assets/', {
            'name': 'Chair', 'type': 'FURNITURE', 'vendor': self.vendor.id, 'status': 'DISPOSED',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_list_is_scoped_to_owner(self):
        TestDataFactory.create_asset(owner=self.user)
        TestDataFactory.create_asset(owner=self.admin)
        response = self.client.get('/api/v1/assets/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/assets/')
        self.assertEqual(len(response.data), 2)

    def test_list_filters_by_status_and_search(self):
        TestDataFactory.create_asset(owner=self.user, name='Blue Sofa', status='ACTIVE')
        TestDataFactory.create_asset(owner=self.user, name='Red Sofa', status='DAMAGED')
        response = self.client.get('/api/v1/assets/', {'status': 'damaged'})
        self.assertEqual([item['name'] for item in response.data], ['Red Sofa'])
        response = self.client.get('/api/v1/assets/', {'search': 'blue'})
        self.assertEqual([item['name'] for item in response.data], ['Blue Sofa'])

    def test_lookup_by_barcode(self):
        asset = TestDataFactory.create_asset(owner=self.user)
        response = self.client.get('/api/v1/assets/', {'barcode': asset.barcode.lower()})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['id'], asset.id)

        response = self.client.get('/api/v1/assets/', {'barcode': 'NOPE0000'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_scan_records_audit_entry(self):
        asset = TestDataFactory.create_asset(owner=self.user)
        response = self.client.get('/api/v1/assets/scan/', {'q': asset.asset_id})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(AuditLog.objects.filter(action='barcode_scan', object_id=str(asset.id)).exists())

        response = self.client.get('/api/v1/assets/scan/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_records_changed_fields(self):
        asset = TestDataFactory.create_asset(owner=self.user, name='Old Name')
        response = self.client.patch(f'/api/v1/assets/{asset.id}/', {'name': 'New Name', 'status': 'MAINTENANCE'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        updated = AssetHistory.objects.get(asset=asset, action='UPDATED')
        self.assertEqual(updated.details['changed_fields']['name'], {'from': 'Old Name', 'to': 'New Name'})
        self.assertTrue(AssetHistory.objects.filter(asset=asset, action='STATUS_CHANGED').exists())

    def test_non_owner_cannot_update(self):
        asset = TestDataFactory.create_asset(owner=self.admin)
        response = self.client.patch(f'/api/v1/assets/{asset.id}/', {'name': 'Mine now'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_cannot_delete_but_admin_can(self):
        asset = TestDataFactory.create_asset(owner=self.user)
        response = self.client.delete(f'/api/v1/assets/{asset.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/assets/{asset.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_stats_split_active_and_disposed_value(self):
        TestDataFactory.create_asset(owner=self.user, purchase_amount=Decimal('100.00'))
        TestDataFactory.create_asset(owner=self.user, purchase_amount=Decimal('40.00'), status='DISPOSED')
        response = self.client.get('/api/v1/assets/stats/')
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['disposed'], 1)
        self.assertEqual(Decimal(str(response.data['total_value'])), Decimal('100.00'))
        self.assertEqual(Decimal(str(response.data['disposed_value'])), Decimal('40.00'))


class AssetLifecycleActionTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.asset = TestDataFactory.create_asset(owner=self.user, status='IN_TRANSIT')

    def test_move_records_movement_and_activates(self):
        response = self.client.post(f'/api/v1/assets/{self.asset.id}/move/', {
            'floor_number': '5', 'room_number': '510', 'reason': 'Team relocation'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, 'ACTIVE')
        self.assertEqual(self.asset.room_number, '510')
        self.assertIsNotNone(self.asset.last_moved_at)
        movement = AssetMovement.objects.get(asset=self.asset)
        self.assertEqual((movement.from_floor, movement.to_floor), ('1', '5'))

    def test_move_requires_destination(self):
        response = self.client.post(f'/api/v1/assets/{self.asset.id}/move/', {'floor_number': '5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dispose_requires_reason_and_locks_asset(self):
        url = f'/api/v1/assets/{self.asset.id}/dispose/'
        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {'reason': 'Broken frame'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.asset.refresh_from_db()
        self.assertEqual(self.asset.status, 'DISPOSED')
        self.assertIsNotNone(self.asset.disposed_at)
        entry = AssetHistory.objects.get(asset=self.asset, action='DISPOSED')
        self.assertEqual(entry.details['previous_status'], 'IN_TRANSIT')

        response = self.client.post(url, {'reason': 'Again'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(f'/api/v1/assets/{self.asset.id}/move/', {
            'floor_number': '2', 'room_number': '1'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_change(self):
        url = f'/api/v1/assets/{self.asset.id}/status/'
        response = self.client.post(url, {'status': 'damaged'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'DAMAGED')

        response = self.client.post(url, {'status': 'DISPOSED'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_history_lists_entries_and_movements(self):
        self.client.post(f'/api/v1/assets/{self.asset.id}/move/', {
            'floor_number': '3', 'room_number': '301'
        }, format='json')
        response = self.client.get(f'/api/v1/assets/{self.asset.id}/history/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['history'][0]['action'], 'MOVED')
        self.assertEqual(len(response.data['movements']), 1)

    def test_tickets_linked_to_asset(self):
        TestDataFactory.create_ticket(self.user, asset=self.asset)
        TestDataFactory.create_ticket(self.user)
        response = self.client.get(f'/api/v1/assets/{self.asset.id}/tickets/')
        self.assertEqual(len(response.data), 1)


class AssetDuplicateTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)

    def test_duplicate_from_original(self):
        original = TestDataFactory.create_asset(owner=self.user, name='Office Chair')
        response = self.client.post('/api/v1/assets/duplicate/', {
            'original_asset_id': original.id, 'count': 3
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['count'], 3)
        ids = {item['asset_id'] for item in response.data['assets']}
        self.assertEqual(len(ids), 3)
        self.assertNotIn(original.asset_id, ids)
        self.assertEqual(Asset.objects.filter(name='Office Chair').count(), 4)

    def test_duplicate_gets_its_own_document_files(self):
        media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, media_root, ignore_errors=True)
        with override_settings(MEDIA_ROOT=media_root):
            original = TestDataFactory.create_asset(owner=self.user, name='Projector')
            upload = SimpleUploadedFile('manual.pdf', b'%PDF-1.4 manual', content_type='application/pdf')
            response = self.client.post(f'/api/v1/assets/{original.id}/documents/', {'file': upload},
                                        format='multipart')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
            source = AssetDocument.objects.get(asset=original)

            response = self.client.post('/api/v1/assets/duplicate/', {
                'original_asset_id': original.id, 'count': 1
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
            duplicate_id = response.data['assets'][0]['id']
            copied = AssetDocument.objects.get(asset_id=duplicate_id)
            self.assertNotEqual(copied.file.name, source.file.name)
            with copied.file.open('rb') as handle:
                self.assertEqual(handle.read(), b'%PDF-1.4 manual')

            response = self.client.delete(f'/api/v1/assets/{duplicate_id}/documents/?document_id={copied.id}')
            self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
            self.assertTrue(default_storage.exists(source.file.name))

    def test_duplicate_count_bounds(self):
        response = self.client.post('/api/v1/assets/duplicate/', {'count': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/assets/duplicate/', {'count': 101}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_without_original_needs_fields(self):
        response = self.client.post('/api/v1/assets/duplicate/', {'count': 2, 'name': 'Lamp'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('vendor', response.data['error'])


class AssetDocumentTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.asset = TestDataFactory.create_asset(owner=self.user)
        self.url = f'/api/v1/assets/{self.asset.id}/documents/'

    def test_link_document_and_delete(self):
        response = self.client.post(self.url, {'file_url': 'https://files.example.com/manual.pdf'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['file_name'], 'manual.pdf')
        document_id = response.data['id']

        response = self.client.get(self.url)
        self.assertEqual(len(response.data), 1)

        response = self.client.delete(f'{self.url}?document_id={document_id}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(AssetDocument.objects.filter(pk=document_id).exists())
        self.assertTrue(AssetHistory.objects.filter(asset=self.asset, action='DOCUMENT_DELETED').exists())

    def test_document_requires_file_or_url(self):
        response = self.client.post(self.url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @mock.patch('facilities.assets.views.requests.head')
    def test_verified_url_returning_404_is_rejected(self, mock_head):
        mock_head.return_value = mock.Mock(status_code=404)
        response = self.client.post(self.url, {
            'file_url': 'https://files.example.com/missing.pdf', 'verify_url': True
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Document URL returns 404')


class AssetLabelTests(TestCase):

    def test_label_is_png_data_url(self):
        client = AuthenticatedAPIClient()
        user = TestDataFactory.create_user()
        client.authenticate_user(user)
        asset = TestDataFactory.create_asset(owner=user)
        response = client.get(f'/api/v1/assets/{asset.id}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['image'].startswith('data:image/png;base64,'))


class AssetHealthTests(TestCase):

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_months_between(self):
        self.assertEqual(months_between(date(2023, 1, 31), date(2023, 3, 1)), 2)
        self.assertEqual(months_between(date(2023, 3, 1), date(2023, 1, 1)), 0)
        self.assertEqual(months_between(None, date(2023, 1, 1)), 0)

    def test_new_asset_is_excellent(self):
        asset = TestDataFactory.create_asset()
        result = calculate_health_score(asset)
        self.assertEqual(result['factors']['age'], 100)
        self.assertEqual(result['factors']['maintenance'], 100)
        self.assertEqual(result['factors']['condition'], 90)
        self.assertEqual(result['rating'], 'excellent')

    def test_unresolved_critical_ticket_lowers_maintenance_score(self):
        asset = TestDataFactory.create_asset()
        TestDataFactory.create_ticket(self.user, asset=asset, priority='CRITICAL')
        TestDataFactory.create_ticket(self.user, asset=asset, status='RESOLVED')
        result = calculate_health_score(asset)
        self.assertEqual(result['factors']['maintenance'], 30)
        self.assertEqual(result['ticket_count'], 2)

    def test_critical_status_predicts_immediate_attention(self):
        asset = TestDataFactory.create_asset(status='CRITICAL')
        predictions = predict_maintenance(asset)
        critical = [p for p in predictions if p['type'] == 'CRITICAL']
        self.assertEqual(len(critical), 1)
        self.assertEqual(critical[0]['confidence'], 99)

    def test_recurring_ticket_titles_predict_preventive_work(self):
        asset = TestDataFactory.create_asset()
        TestDataFactory.create_ticket(self.user, asset=asset, title='Wobbly leg')
        TestDataFactory.create_ticket(self.user, asset=asset, title='wobbly leg ')
        predictions = predict_maintenance(asset)
        self.assertTrue(any(p['title'] == 'Recurring issue' for p in predictions))

    def test_tco_for_year_old_electronics(self):
        today = timezone.localdate()
        asset = TestDataFactory.create_asset(asset_type='ELECTRONICS', purchase_amount=Decimal('1200.00'))
        asset.purchase_date = date(today.year - 1, today.month, 1)
        asset.save()
        TestDataFactory.create_ticket(self.user, asset=asset, priority='HIGH')

        tco = calculate_tco(asset)
        self.assertEqual(tco['age_in_months'], 12)
        self.assertEqual(tco['maintenance_costs'], 500)
        self.assertEqual(tco['depreciation'], 300)
        self.assertEqual(tco['operational_costs'], 288)
        self.assertEqual(tco['current_value'], 900)
        self.assertEqual(tco['total_cost'], 1988)

    def test_lifecycle_starts_with_registration_and_ends_with_disposal(self):
        asset = TestDataFactory.create_asset()
        TestDataFactory.create_ticket(self.user, asset=asset)
        asset.status = 'DISPOSED'
        asset.disposed_at = timezone.now()
        asset.save()
        events = build_lifecycle_events(asset)
        self.assertEqual(events[0]['type'], 'REGISTRATION')
        self.assertEqual(events[-1]['type'], 'DISPOSAL')

    def test_health_endpoint(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        asset = TestDataFactory.create_asset()
        response = client.get(f'/api/v1/assets/{asset.id}/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('overall_score', response.data)
        response = client.get(f'/api/v1/assets/{asset.id}/tco/')
        self.assertEqual(response.data['currency'], 'QAR')
