from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from facilities.assets.models import AssetHistory
from facilities.core.models import AuditLog
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.insights import analysis, ml
from facilities.insights.models import NotificationRead


def daily_points(quantities, start=datetime(2024, 1, 1, tzinfo=dt_timezone.utc)):
    return [(start + timedelta(days=index), quantity) for index, quantity in enumerate(quantities)]


class RegressionTests(TestCase):

    def test_linear_regression(self):
        slope, intercept, r2 = ml.linear_regression([1, 2, 3], [0, 1, 2])
        self.assertAlmostEqual(slope, 1.0)
        self.assertAlmostEqual(intercept, 1.0)
        self.assertAlmostEqual(r2, 1.0)

    def test_flat_series_fits_perfectly(self):
        slope, _, r2 = ml.linear_regression([5, 5, 5], [0, 1, 2])
        self.assertEqual(slope, 0.0)
        self.assertEqual(r2, 1.0)

    def test_anomaly_flags(self):
        flags = ml.anomaly_flags([1] * 9 + [10])
        self.assertEqual(list(flags), [0] * 9 + [1])

    def test_short_series_has_no_seasonality(self):
        self.assertEqual(list(ml.seasonal_factors([1, 2, 3])), [1.0, 1.0, 1.0])

    def test_add_months_clamps_day(self):
        self.assertEqual(ml.add_months(date(2024, 1, 31), 1), date(2024, 2, 29))
        self.assertEqual(ml.add_months(date(2024, 1, 15), -2), date(2023, 11, 15))

    def test_t_critical(self):
        self.assertEqual(ml.t_critical(5), 2.57)
        self.assertEqual(ml.t_critical(11), 2.13)
        self.assertEqual(ml.t_critical(500), 1.96)


class ConsumptionModelTests(TestCase):

    def test_prediction_needs_three_points(self):
        result = ml.predict_consumption(daily_points([4, 6]))
        self.assertEqual(result['predicted_quantity'], 6.0)
        self.assertEqual(result['confidence'], 0.5)
        self.assertEqual(result['trend'], 'stable')

    def test_linear_growth_prediction(self):
        result = ml.predict_consumption(daily_points(range(1, 11)))
        self.assertAlmostEqual(result['predicted_quantity'], 40.0, places=4)
        self.assertEqual(result['trend'], 'increasing')
        self.assertAlmostEqual(result['confidence'], 1 - 1 / 10 ** 0.5, places=4)
        self.assertEqual(result['seasonality_factor'], 1.0)

    def test_optimization_with_little_data(self):
        result = ml.optimization_recommendation(daily_points([4, 6]), Decimal('10'))
        self.assertEqual(result['reason_code'], 'insufficient_data')
        self.assertAlmostEqual(result['recommended_quantity'], 4.75)
        self.assertAlmostEqual(result['potential_savings'], 2.5)

    def test_optimization_reasons(self):
        rising = ml.optimization_recommendation(daily_points([1, 2, 3, 4, 5]), 2)
        self.assertEqual(rising['reason_code'], 'increasing_trend')
        self.assertEqual(rising['reduction'], 0.10)
        self.assertEqual(rising['implementation_difficulty'], 'hard')

        stable = ml.optimization_recommendation(daily_points([5] * 5), 2)
        self.assertEqual(stable['reason_code'], 'stable_consumption')
        self.assertAlmostEqual(stable['potential_savings'], 5 * 0.05 * 2)

    def test_anomaly_needs_five_points(self):
        result = ml.consumption_anomaly([1, 2, 3])
        self.assertFalse(result['is_anomaly'])
        self.assertEqual(result['possible_causes'], ['Insufficient data for anomaly detection'])

    def test_recent_spike_is_an_anomaly(self):
        result = ml.consumption_anomaly([1] * 20 + [10] * 3)
        self.assertTrue(result['is_anomaly'])
        self.assertEqual(result['severity'], 'medium')
        self.assertEqual(result['possible_causes'][0], 'Sudden increase in consumption')

    def test_steady_series_is_normal(self):
        result = ml.consumption_anomaly([5, 5, 5, 5, 5, 5])
        self.assertFalse(result['is_anomaly'])
        self.assertEqual(result['possible_causes'], ['No anomalies detected'])


class BudgetForecastTests(TestCase):

    months = [date(2024, month, 1) for month in range(1, 7)]

    def test_short_history(self):
        result = ml.budget_forecast([100, 200], self.months[:2])
        self.assertEqual(result['predicted_amount'], 200.0)
        self.assertAlmostEqual(result['upper_bound'], 240.0)
        self.assertAlmostEqual(result['lower_bound'], 160.0)

    def test_flat_history(self):
        result = ml.budget_forecast([100] * 6, self.months)
        self.assertAlmostEqual(result['predicted_amount'], 100.0)
        self.assertAlmostEqual(result['upper_bound'], 100.0)
        self.assertAlmostEqual(result['lower_bound'], 100.0)
        self.assertAlmostEqual(result['confidence'], 1 - 1 / 6 ** 0.5, places=4)
        self.assertAlmostEqual(result['risk_factor'], 0.5)

    def test_growing_history_bounds(self):
        result = ml.budget_forecast([100, 180, 310, 390, 520, 590], self.months, months_ahead=3)
        self.assertGreater(result['predicted_amount'], 0)
        self.assertLessEqual(result['lower_bound'], result['predicted_amount'])
        self.assertGreaterEqual(result['upper_bound'], result['predicted_amount'])
        self.assertLessEqual(result['confidence'], 0.98)

    def test_rental_forecast_without_history(self):
        result = ml.rental_forecast([3000], self.months[:1], Decimal('4500'))
        self.assertEqual(result['predicted_amount'], 4500.0)
        self.assertEqual(result['confidence'], 0.95)

    def test_rental_forecast_after_recent_step(self):
        result = ml.rental_forecast([3000, 3000, 3000, 6000, 6000, 6000], self.months, 6000,
                                    now=datetime(2024, 7, 1))
        self.assertEqual(result['predicted_amount'], 6000.0)
        self.assertAlmostEqual(result['confidence'], 0.665)

    def test_combine_forecasts(self):
        food = {'predicted_amount': 100.0, 'confidence': 0.5, 'upper_bound': 120.0,
                'lower_bound': 80.0, 'risk_factor': 0.2}
        rental = {'predicted_amount': 300.0, 'confidence': 0.9, 'upper_bound': 310.0,
                  'lower_bound': 290.0, 'risk_factor': 0.1}
        combined = ml.combine_forecasts(food, rental)
        self.assertEqual(combined['predicted_amount'], 400.0)
        self.assertAlmostEqual(combined['confidence'], 0.8)
        self.assertEqual(combined['upper_bound'], 430.0)
        self.assertEqual(combined['risk_factor'], 0.2)


class FacilityAnomalyTests(TestCase):

    def test_kitchen_anomalies(self):
        rows = []
        for kitchen_id, name, quantity in ((1, 'Main', 10), (2, 'Annex', 2)):
            for _ in range(2):
                rows.append({
                    'kitchen_id': kitchen_id, 'kitchen_name': name, 'floor_number': '1',
                    'supply_id': 7, 'supply_name': 'Rice', 'unit': 'kg', 'quantity': quantity,
                })
        results = ml.kitchen_anomalies(rows)
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['kitchen_name'], 'Main')
        self.assertEqual(results[0]['severity'], 'high')
        self.assertAlmostEqual(results[0]['details'][0]['percentage_above_avg'], 200 / 3)

    def test_disposal_severity(self):
        self.assertEqual(ml.disposal_severity(1500), 'high')
        self.assertEqual(ml.disposal_severity(Decimal('600')), 'medium')
        self.assertEqual(ml.disposal_severity(None), 'low')

    def test_location_overpurchasing(self):
        now = timezone.now()
        assets = [
            {'floor_number': '1', 'room_number': '101', 'purchase_amount': Decimal('100'), 'created_at': now}
            for _ in range(5)
        ]
        assets += [
            {'floor_number': '2', 'room_number': '201', 'purchase_amount': None, 'created_at': now},
            {'floor_number': '', 'room_number': '', 'purchase_amount': None, 'created_at': now},
        ]
        results = ml.location_overpurchasing(assets, now - timedelta(days=30))
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0]['location'], 'Floor 1, Room 101')
        self.assertEqual(results[0]['severity'], 'high')
        self.assertEqual(results[0]['total_value'], 500.0)
        self.assertEqual(ml.location_overpurchasing([], now), [])


class AnalysisTests(TestCase):

    def setUp(self):
        self.main = TestDataFactory.create_kitchen(name='Main')
        self.annex = TestDataFactory.create_kitchen(name='Annex')
        self.rice = TestDataFactory.create_food_supply(name='Rice')
        self.oil = TestDataFactory.create_food_supply(name='Oil')

    def test_ml_analysis_covers_supplies(self):
        for days_ago, quantity in enumerate([5, 4, 3, 2, 1]):
            TestDataFactory.create_consumption(self.rice, self.main, quantity, days_ago=days_ago)
        result = analysis.build_ml_analysis()

        self.assertEqual(len(result['consumption_predictions']), 1)
        self.assertEqual(result['consumption_predictions'][0]['supply_name'], 'Rice')
        self.assertEqual(result['consumption_predictions'][0]['prediction']['trend'], 'increasing')
        self.assertEqual(len(result['optimization_recommendations']), 2)
        self.assertEqual([row['months'] for row in result['budget_predictions']], [1, 3, 6])
        self.assertEqual(result['anomaly_detections'], [])

    def test_kitchen_anomaly_key_point(self):
        for _ in range(2):
            TestDataFactory.create_consumption(self.rice, self.main, 10)
            TestDataFactory.create_consumption(self.rice, self.annex, 2)
        anomalies = analysis.find_kitchen_anomalies()
        insights = analysis.build_insights(analysis.build_ml_analysis(), anomalies, [], [])

        self.assertEqual(insights['kitchen_anomalies']['items'][0]['name'], 'Main')
        self.assertEqual(insights['kitchen_anomalies']['items'][0]['details'][0]['percentage_above_avg'], 67)
        self.assertTrue(any('Kitchen "Main"' in point for point in insights['summary']['key_points']))

    def test_disposed_asset_is_reported(self):
        asset = TestDataFactory.create_asset(name='Projector', status='DISPOSED', purchase_amount=Decimal('1500'))
        AssetHistory.objects.create(asset=asset, action='DISPOSED')
        disposals = analysis.find_asset_disposals()
        self.assertEqual(len(disposals), 1)
        self.assertEqual(disposals[0]['severity'], 'high')

        insights = analysis.build_insights(analysis.build_ml_analysis(), [], disposals, [])
        self.assertTrue(any('Projector' in point for point in insights['summary']['key_points']))

    def test_filter_insights(self):
        insights = analysis.build_insights(analysis.build_ml_analysis(), [], analysis.find_asset_disposals(), [])
        insights['asset_disposals']['items'] = [{'id': 1, 'severity': 'high'}, {'id': 2, 'severity': 'low'}]

        filtered = analysis.filter_insights(insights, severity='HIGH')
        self.assertEqual([item['id'] for item in filtered['asset_disposals']['items']], [1])
        filtered = analysis.filter_insights(insights, category='cost_optimization')
        self.assertEqual(filtered['asset_disposals']['items'], [])
        self.assertEqual(len(insights['asset_disposals']['items']), 2)

    def test_money_uses_default_currency(self):
        self.assertEqual(analysis.money(Decimal('1234.5')), 'QAR 1,234.50')
        self.assertEqual(analysis.as_percent(0.456), 46)


class MLPredictionsAPITests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_predictions_payload(self):
        kitchen = TestDataFactory.create_kitchen()
        supply = TestDataFactory.create_food_supply(name='Flour')
        for days_ago in range(4):
            TestDataFactory.create_consumption(supply, kitchen, 3, days_ago=days_ago)

        response = self.client.get('/api/v1/ai-analysis/ml-predictions/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['ml_analysis']['consumption_predictions']), 1)
        insights = response.data['insights']
        self.assertEqual(insights['predictions']['items'][0]['name'], 'Flour')
        self.assertEqual(len(insights['budget']['predictions']), 3)
        self.assertTrue(insights['summary']['key_points'])

        response = self.client.get('/api/v1/ai-analysis/ml-predictions/', {'category': 'asset_disposal'})
        self.assertEqual(response.data['insights']['predictions']['items'], [])

    def test_ai_analysis_feed(self):
        user = TestDataFactory.create_user()
        TestDataFactory.create_ticket(user, priority='CRITICAL')
        kitchen = TestDataFactory.create_kitchen()
        supply = TestDataFactory.create_food_supply()
        TestDataFactory.create_consumption(supply, kitchen, 4)
        TestDataFactory.create_disposal(supply, 2)

        response = self.client.get('/api/v1/ai-analysis/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        recommendations = response.data['recommendations']
        self.assertEqual(response.data['total'], len(recommendations))
        self.assertEqual(recommendations[0]['severity'], 'high')
        self.assertTrue(any(
            item['category'] == 'food_supply' and item['message'].startswith('Waste accounts for 33.3%')
            for item in recommendations
        ))

        response = self.client.get('/api/v1/ai-analysis/', {'category': 'tickets'})
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['recommendations'][0]['message'], '1 critical tickets are still open.')
        self.assertEqual(response.data['counts']['high'], 1)


class NotificationAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.url = '/api/v1/ai-analysis/notifications/'

        self.expired = TestDataFactory.create_food_supply(name='Milk', expiration_days=-1)
        TestDataFactory.create_food_supply(name='Bread', expiration_days=1)
        TestDataFactory.create_food_supply(name='Salt', quantity=Decimal('3'))
        TestDataFactory.create_ticket(self.user, priority='CRITICAL')
        TestDataFactory.create_asset(status='DAMAGED')
        TestDataFactory.create_rental(TestDataFactory.create_vehicle(), self.user, days=1, start_offset_days=3)

    def test_feed_is_derived_from_records(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        feed = response.data['notifications']
        self.assertEqual(
            sorted(item['type'] for item in feed),
            ['asset_condition', 'critical_ticket', 'food_expired', 'food_expiring', 'low_stock', 'rental_overdue']
        )
        self.assertEqual(response.data['unread_count'], 6)
        severities = [item['severity'] for item in feed]
        self.assertEqual(severities, sorted(severities, key=analysis.SEVERITY_ORDER.get))
        self.assertIn(f'food-expired-{self.expired.id}', [item['id'] for item in feed])

    def test_mark_one_read_and_unread(self):
        notification_id = f'food-expired-{self.expired.id}'
        response = self.client.put(self.url, {'id': notification_id, 'is_read': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(self.url)
        self.assertEqual(response.data['unread_count'], 5)
        item = next(item for item in response.data['notifications'] if item['id'] == notification_id)
        self.assertTrue(item['is_read'])

        self.client.put(self.url, {'id': notification_id, 'is_read': False}, format='json')
        self.assertFalse(NotificationRead.objects.filter(user=self.user).exists())

    def test_missing_id(self):
        response = self.client.put(self.url, {'is_read': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_mark_all_read(self):
        self.client.put(self.url, {'id': f'food-expired-{self.expired.id}'}, format='json')
        response = self.client.put(self.url, {'mark_all': True}, format='json')
        self.assertEqual(response.data['marked'], 6)
        self.assertEqual(NotificationRead.objects.filter(user=self.user).count(), 6)
        self.assertTrue(AuditLog.objects.filter(action='notifications_read').exists())

        response = self.client.get(self.url, {'unread': 'true'})
        self.assertEqual(response.data['notifications'], [])
        self.assertEqual(response.data['unread_count'], 0)

    def test_read_state_is_per_user(self):
        self.client.put(self.url, {'mark_all': True}, format='json')
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get(self.url)
        self.assertEqual(response.data['unread_count'], 6)


class DashboardStatsTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)

    def test_headline_figures(self):
        TestDataFactory.create_asset()
        TestDataFactory.create_asset(status='CRITICAL')
        TestDataFactory.create_asset(status='DISPOSED', purchase_amount=Decimal('90.00'))
        TestDataFactory.create_vehicle(rental_amount=Decimal('3000.00'))
        rented = TestDataFactory.create_vehicle(rental_amount=Decimal('1500.00'))
        TestDataFactory.create_rental(rented, self.user)
        TestDataFactory.create_ticket(self.user, priority='CRITICAL')
        TestDataFactory.create_ticket(self.user, status='RESOLVED')
        TestDataFactory.create_ticket(TestDataFactory.create_user())
        kitchen = TestDataFactory.create_kitchen()
        supply = TestDataFactory.create_food_supply(quantity=Decimal('4'), price_per_unit=Decimal('2.50'))
        TestDataFactory.create_consumption(supply, kitchen, 2)

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.data
        self.assertEqual(data['assets']['total'], 2)
        self.assertEqual(data['assets']['total_value'], 500.0)
        self.assertEqual(data['assets']['disposed_value'], 90.0)
        self.assertEqual(data['assets']['by_status']['CRITICAL'], 1)
        self.assertEqual(data['food']['low_stock'], 1)
        self.assertEqual(data['food']['month_consumption_cost'], 5.0)
        self.assertEqual(data['vehicles']['total'], 2)
        self.assertEqual(data['vehicles']['active_rentals'], 1)
        self.assertEqual(data['vehicles']['monthly_rental_total'], 4500.0)
        self.assertEqual(data['tickets'], {'open': 1, 'critical': 1})
        self.assertEqual(data['currency'], 'QAR')

    def test_stats_refresh_after_committed_write(self):
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['assets']['total'], 0)

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_asset()

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['assets']['total'], 1)
