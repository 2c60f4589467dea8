from django.test import TestCase
from rest_framework import status
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.locations.models import Location


class LocationModelTests(TestCase):

    def test_display_name_prefers_name(self):
        location = TestDataFactory.create_location(name='Board Room')
        self.assertEqual(location.display_name, 'Board Room')

    def test_display_name_from_building_floor_room(self):
        location = TestDataFactory.create_location(floor_number='3', room_number='301', building='Tower A')
        self.assertEqual(location.display_name, 'Tower A Floor 3, Room 301')


class LocationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.staff = TestDataFactory.create_user()

    def test_list_returns_active_locations(self):
        TestDataFactory.create_location(room_number='101')
        inactive = TestDataFactory.create_location(room_number='102')
        inactive.is_active = False
        inactive.save()

        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/locations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/locations/', {'include_inactive': 'true'})
        self.assertEqual(len(response.data), 2)

    def test_list_filters_by_floor(self):
        TestDataFactory.create_location(floor_number='1')
        TestDataFactory.create_location(floor_number='2')
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/locations/', {'floor': '2'})
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['floor_number'], '2')

    def test_staff_cannot_create(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/locations/', {'floor_number': '1', 'room_number': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_creates_location(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/locations/', {'floor_number': '1', 'room_number': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['display_name'], 'Floor 1, Room 10')
        self.assertEqual(response.data['asset_count'], 0)

    def test_create_requires_room(self):
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/locations/', {'floor_number': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_room_rejected(self):
        TestDataFactory.create_location(floor_number='1', room_number='10')
        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/locations/', {'floor_number': '1', 'room_number': '10'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_removes_location(self):
        location = TestDataFactory.create_location()
        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/locations/{location.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Location.objects.filter(pk=location.id).exists())

    def test_patch_by_staff_forbidden(self):
        location = TestDataFactory.create_location()
        self.client.authenticate_user(self.staff)
        response = self.client.patch(f'/api/v1/locations/{location.id}/', {'name': 'X'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_asset_count_excludes_disposed(self):
        location = TestDataFactory.create_location()
        for asset_status in ('ACTIVE', 'DISPOSED'):
            asset = TestDataFactory.create_asset(status=asset_status)
            asset.location = location
            asset.save()
        self.client.authenticate_user(self.staff)
        response = self.client.get(f'/api/v1/locations/{location.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['asset_count'], 1)
