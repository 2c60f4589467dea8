from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.kitchens import analytics
from facilities.kitchens.models import Kitchen, KitchenAssignment
from facilities.kitchens.utils import build_kitchen_barcode, visible_kitchens
from facilities.food_supply.models import KitchenBarcode


class KitchenUtilsTests(TestCase):

    def test_barcode_uses_hex_millisecond_timestamp(self):
        kitchen = TestDataFactory.create_kitchen()
        supply = TestDataFactory.create_food_supply()
        moment = datetime(2024, 1, 1, tzinfo=dt_timezone.utc)
        self.assertEqual(
            build_kitchen_barcode(kitchen, supply, moment),
            f'KIT{kitchen.id}SUP{supply.id}18CC251F400'
        )

    def test_visible_kitchens_for_staff(self):
        staff = TestDataFactory.create_user()
        assigned = TestDataFactory.create_kitchen(name='Main')
        TestDataFactory.create_kitchen(name='Annex')
        TestDataFactory.assign_kitchen(assigned, staff)
        self.assertEqual(list(visible_kitchens(staff)), [assigned])
        self.assertEqual(visible_kitchens(TestDataFactory.create_admin()).count(), 2)

    def test_efficiency_score(self):
        self.assertEqual(analytics.efficiency_score(80, 20, 0), 80.0)
        self.assertEqual(analytics.efficiency_score(0, 0, 0), 100.0)
        self.assertEqual(analytics.efficiency_score(0, 5, 0), 0.0)


class KitchenAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.staff = TestDataFactory.create_user()
        self.kitchen = TestDataFactory.create_kitchen(name='Main Kitchen')

    def test_staff_list_only_assigned(self):
        TestDataFactory.create_kitchen(name='Other Kitchen')
        TestDataFactory.assign_kitchen(self.kitchen, self.staff)
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/kitchens/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['name'] for item in response.data], ['Main Kitchen'])

    def test_create_requires_privilege(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/kitchens/', {'name': 'Cafe'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.post('/api/v1/kitchens/', {'name': 'Cafe', 'floor_number': '3'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['floor_number'], '3')

    def test_unassigned_staff_cannot_view(self):
        self.client.authenticate_user(self.staff)
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_detail_includes_counts_and_assignments(self):
        TestDataFactory.assign_kitchen(self.kitchen, self.staff)
        self.client.authenticate_user(self.staff)
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['counts']['consumptions'], 0)
        self.assertEqual(len(response.data['assigned_users']), 1)

    def test_delete_with_history_needs_force(self):
        supply = TestDataFactory.create_food_supply(kitchen=self.kitchen)
        TestDataFactory.create_consumption(supply, self.kitchen, 2)
        self.client.authenticate_user(self.admin)

        response = self.client.delete(f'/api/v1/kitchens/{self.kitchen.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['counts']['consumptions'], 1)

        response = self.client.delete(f'/api/v1/kitchens/{self.kitchen.id}/?force=true')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Kitchen.objects.filter(pk=self.kitchen.id).exists())


class KitchenAssignmentTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.staff = TestDataFactory.create_user()
        self.kitchen = TestDataFactory.create_kitchen()
        self.url = f'/api/v1/kitchens/{self.kitchen.id}/assignments/'
        self.client.authenticate_user(self.admin)

    def test_assign_and_unassign(self):
        response = self.client.post(self.url, {'user': self.staff.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['assigned_by']['id'], self.admin.id)

        response = self.client.post(self.url, {'user': self.staff.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f'{self.url}?user={self.staff.id}')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(KitchenAssignment.objects.exists())

        response = self.client.delete(f'{self.url}?user={self.staff.id}')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_unknown_user(self):
        response = self.client.post(self.url, {'user': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_cannot_assign(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post(self.url, {'user': self.staff.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class KitchenBarcodeTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.kitchen = TestDataFactory.create_kitchen()
        self.url = f'/api/v1/kitchens/{self.kitchen.id}/barcodes/'

    def test_generate_all_covers_owned_and_stocked_supplies(self):
        owned = TestDataFactory.create_food_supply(kitchen=self.kitchen)
        stocked = TestDataFactory.create_food_supply()
        TestDataFactory.stock_kitchen(self.kitchen, stocked)
        TestDataFactory.create_food_supply()

        response = self.client.post(self.url, {'generate_all': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 2)
        self.assertEqual(
            set(KitchenBarcode.objects.values_list('food_supply_id', flat=True)), {owned.id, stocked.id}
        )

        response = self.client.post(self.url, {'generate_all': True}, format='json')
        self.assertEqual(response.data['created'], 0)

    def test_single_barcode_is_unique_per_supply(self):
        supply = TestDataFactory.create_food_supply(kitchen=self.kitchen)
        response = self.client.post(self.url, {'food_supply': supply.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['barcode'].startswith(f'KIT{self.kitchen.id}SUP{supply.id}'))

        response = self.client.post(self.url, {'food_supply': supply.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(self.url)
        self.assertEqual(len(response.data), 1)


class KitchenReportTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.kitchen = TestDataFactory.create_kitchen()
        TestDataFactory.assign_kitchen(self.kitchen, self.user)
        self.client.authenticate_user(self.user)
        self.supply = TestDataFactory.create_food_supply(kitchen=self.kitchen, price_per_unit=Decimal('2.50'))
        TestDataFactory.create_consumption(self.supply, self.kitchen, 4, user=self.user)
        TestDataFactory.create_disposal(self.supply, 1, reason='expired', kitchen=self.kitchen, user=self.user)

    def test_consumption_summary(self):
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/consumption-summary/',
                                   {'include_trends': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['consumption']['total_quantity'], 4.0)
        self.assertEqual(response.data['consumption']['total_cost'], 10.0)
        self.assertEqual(response.data['waste']['expiration_cost'], 2.5)
        self.assertEqual(response.data['waste']['waste_percentage'], 20.0)
        self.assertEqual(response.data['efficiency'], 80.0)
        self.assertEqual(response.data['top_items'][0]['name'], self.supply.name)
        self.assertEqual(len(response.data['trends']), 1)

    def test_financial_metrics_compare_months(self):
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/financial-metrics/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['current_month']['consumption_cost'], 10.0)
        self.assertIsNone(response.data['change_percentage']['consumption_cost'])

    def test_monthly_consumption_series(self):
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/monthly-consumption/', {'months': 3})
        months = response.data['months']
        self.assertEqual(len(months), 3)
        self.assertEqual(months[-1]['month'], timezone.localtime().strftime('%Y-%m'))
        self.assertEqual(months[-1]['quantity'], 4.0)
        self.assertEqual(months[0]['quantity'], 0.0)

    def test_recent_activity_merges_events(self):
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/recent-activity/')
        self.assertEqual(sorted(event['type'] for event in response.data), ['consumption', 'disposal'])

    def test_waste_reasons(self):
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/waste-reasons/')
        self.assertEqual(response.data['total_waste'], 1.0)
        self.assertEqual(response.data['reasons'][0]['reason'], 'expired')
        self.assertEqual(response.data['reasons'][0]['percentage'], 100)

    def test_stock_rows(self):
        TestDataFactory.stock_kitchen(self.kitchen, TestDataFactory.create_food_supply(), quantity=Decimal('7'))
        response = self.client.get(f'/api/v1/kitchens/{self.kitchen.id}/stock/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(Decimal(str(response.data[0]['quantity'])), Decimal('7'))


class MonthlyBucketTimeZoneTests(TestCase):

    @override_settings(TIME_ZONE='Asia/Qatar')
    def test_months_follow_configured_time_zone(self):
        kitchen = TestDataFactory.create_kitchen()
        supply = TestDataFactory.create_food_supply(price_per_unit=Decimal('2.00'))
        consumption = TestDataFactory.create_consumption(supply, kitchen, 3)
        # 01:30 on 1 March in Doha
        consumption.created_at = datetime(2024, 2, 29, 22, 30, tzinfo=dt_timezone.utc)
        consumption.save()

        result = analytics.monthly_consumption(kitchen, months=2, now=datetime(2024, 3, 15, 12, tzinfo=dt_timezone.utc))
        self.assertEqual([item['month'] for item in result['months']], ['2024-02', '2024-03'])
        self.assertEqual(result['months'][0]['quantity'], 0.0)
        self.assertEqual(result['months'][1]['quantity'], 3.0)
        self.assertEqual(result['months'][1]['cost'], 6.0)
