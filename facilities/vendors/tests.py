from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from facilities.core.models import AuditLog
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.vendors.models import Vendor, VendorEvaluation


class VendorModelTests(TestCase):

    def test_overall_score_averages_present_scores(self):
        vendor = TestDataFactory.create_vendor()
        self.assertIsNone(vendor.overall_score)
        vendor.reliability_score = 80
        vendor.quality_score = 91
        self.assertEqual(vendor.overall_score, 85.5)


class VendorAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)

    def test_create_normalizes_types(self):
        response = self.client.post('/api/v1/vendors/', {
            'name': '  Fresh Farms ', 'types': ['food', 'FOOD', 'maintenance']
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Fresh Farms')
        self.assertEqual(response.data['types'], ['FOOD', 'MAINTENANCE'])
        self.assertTrue(AuditLog.objects.filter(model_name='Vendor', action='create').exists())

    def test_create_rejects_unknown_type(self):
        response = self.client.post('/api/v1/vendors/', {'name': 'Odd', 'types': ['SPACESHIP']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters_by_type(self):
        TestDataFactory.create_vendor(name='Asset Co', types=['ASSET'])
        TestDataFactory.create_vendor(name='Food Co', types=['FOOD'])
        response = self.client.get('/api/v1/vendors/', {'type': 'food'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data], ['Food Co'])

    def test_list_search(self):
        TestDataFactory.create_vendor(name='Alpha')
        TestDataFactory.create_vendor(name='Beta')
        response = self.client.get('/api/v1/vendors/', {'search': 'alp'})
        self.assertEqual(len(response.data), 1)

    def test_staff_cannot_delete(self):
        vendor = TestDataFactory.create_vendor()
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_vendor_with_assets_cannot_be_deleted(self):
        vendor = TestDataFactory.create_vendor()
        TestDataFactory.create_asset(vendor=vendor)
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['asset_count'], 1)

    def test_admin_deletes_unused_vendor(self):
        vendor = TestDataFactory.create_vendor()
        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.delete(f'/api/v1/vendors/{vendor.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Vendor.objects.filter(pk=vendor.id).exists())


class VendorPerformanceTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.vendor = TestDataFactory.create_vendor()
        self.url = f'/api/v1/vendors/{self.vendor.id}/performance/'

    def test_evaluation_updates_scores_and_history(self):
        response = self.client.post(self.url, {'reliability_score': 90, 'quality_score': 70}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.reliability_score, 90)
        self.assertIsNotNone(self.vendor.last_review_date)

        evaluation = VendorEvaluation.objects.get(vendor=self.vendor)
        self.assertIsNone(evaluation.previous_scores['reliability_score'])
        self.assertEqual(evaluation.reviewer, self.user)

        response = self.client.get(self.url)
        self.assertEqual(response.data['overall_score'], 80.0)
        self.assertEqual(len(response.data['performance_history']), 1)

    def test_evaluation_requires_a_score(self):
        response = self.client.post(self.url, {'notes': 'nothing to score'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_scores_are_bounded(self):
        response = self.client.post(self.url, {'quality_score': 120}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class VendorAssetsTests(TestCase):

    def test_assets_with_total_value(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(TestDataFactory.create_user())
        vendor = TestDataFactory.create_vendor()
        TestDataFactory.create_asset(vendor=vendor, purchase_amount=Decimal('100.00'))
        TestDataFactory.create_asset(vendor=vendor, purchase_amount=Decimal('150.50'))
        TestDataFactory.create_asset()

        response = client.get(f'/api/v1/vendors/{vendor.id}/assets/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(Decimal(str(response.data['total_value'])), Decimal('250.50'))
        self.assertEqual(len(response.data['assets']), 2)
