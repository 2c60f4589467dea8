from datetime import timedelta
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from facilities.core.models import AuditLog
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.vehicles.models import Vehicle, VehicleRental, VehicleTrip, VehicleLocation, VehicleMaintenance
from facilities.vehicles.tracking import (
    validate_coordinates, haversine_km, path_distance_km, detect_stop_points, format_duration,
)


class TrackingTests(TestCase):

    def test_validate_coordinates(self):
        self.assertEqual(validate_coordinates('25.3', '51.5'), (25.3, 51.5))
        with self.assertRaises(ValueError):
            validate_coordinates(None, 51.5)
        with self.assertRaises(ValueError):
            validate_coordinates('north', '51.5')
        with self.assertRaises(ValueError):
            validate_coordinates(91, 0)
        with self.assertRaises(ValueError):
            validate_coordinates(0, -181)

    def test_path_distance_skips_gps_jumps(self):
        start = timezone.now()
        points = [
            (25.0, 51.0, start),
            (25.1, 51.0, start + timedelta(hours=1)),
            # 1000 km in a minute
            (34.0, 51.0, start + timedelta(hours=1, minutes=1)),
        ]
        self.assertAlmostEqual(path_distance_km(points), haversine_km(25.0, 51.0, 25.1, 51.0))
        self.assertAlmostEqual(path_distance_km(list(reversed(points))), haversine_km(25.0, 51.0, 25.1, 51.0))

    def test_detect_stop_points(self):
        start = timezone.now()
        points = [(25.0, 51.0, start + timedelta(minutes=minute)) for minute in range(6)]
        points.append((25.1, 51.0, start + timedelta(minutes=20)))
        stops = detect_stop_points(points)
        self.assertEqual(len(stops), 1)
        self.assertEqual(stops[0]['duration_seconds'], 300)
        self.assertAlmostEqual(stops[0]['latitude'], 25.0)

    def test_short_pause_is_not_a_stop(self):
        start = timezone.now()
        points = [(25.0, 51.0, start + timedelta(seconds=30 * index)) for index in range(4)]
        self.assertEqual(detect_stop_points(points), [])
        self.assertEqual(detect_stop_points(points[:2]), [])

    def test_format_duration(self):
        self.assertEqual(format_duration(90061000), '1d 1h 1m')
        self.assertEqual(format_duration(3723000), '1h 2m')
        self.assertEqual(format_duration(65000), '1m 5s')
        self.assertEqual(format_duration(4000), '4s')


class VehicleAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.staff = TestDataFactory.create_user()
        self.client.authenticate_user(self.admin)

    def test_create_vehicle(self):
        response = self.client.post('/api/v1/vehicles/', {
            'make': 'Nissan', 'model': 'Patrol', 'year': 2023, 'plate_number': ' ab-123 ',
            'type': 'SUV', 'rental_amount': '4500.00',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Nissan Patrol')
        self.assertEqual(response.data['plate_number'], 'AB-123')
        self.assertEqual(response.data['status'], 'AVAILABLE')
        self.assertTrue(AuditLog.objects.filter(model_name='Vehicle', action='create').exists())

    def test_create_validation(self):
        response = self.client.post('/api/v1/vehicles/', {
            'make': 'Nissan', 'model': 'Patrol', 'year': 1900, 'plate_number': 'X1', 'rental_amount': '10'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('year', response.data)

        response = self.client.post('/api/v1/vehicles/', {
            'make': 'Nissan', 'model': 'Patrol', 'year': 2020, 'plate_number': 'X1'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rental_amount', response.data)

    def test_staff_cannot_create(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/vehicles/', {
            'make': 'Kia', 'model': 'Rio', 'year': 2021, 'plate_number': 'K1', 'rental_amount': '900'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_staff_see_only_rented_vehicles(self):
        rented = TestDataFactory.create_vehicle(model='Corolla')
        TestDataFactory.create_vehicle(model='Yaris')
        TestDataFactory.create_rental(rented, self.staff)

        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/vehicles/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data], [rented.id])

        self.client.authenticate_user(self.admin)
        response = self.client.get('/api/v1/vehicles/', {'status': 'available'})
        self.assertEqual([item['name'] for item in response.data], ['Toyota Yaris'])

    def test_detail_includes_active_rental(self):
        vehicle = TestDataFactory.create_vehicle()
        rental = TestDataFactory.create_rental(vehicle, self.staff)
        response = self.client.get(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['active_rental']['id'], rental.id)

        other = TestDataFactory.create_vehicle()
        self.client.authenticate_user(self.staff)
        response = self.client.get(f'/api/v1/vehicles/{other.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_blocked_by_active_rental(self):
        vehicle = TestDataFactory.create_vehicle()
        rental = TestDataFactory.create_rental(vehicle, self.staff)
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        rental.status = 'COMPLETED'
        rental.save()
        response = self.client.delete(f'/api/v1/vehicles/{vehicle.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Vehicle.objects.filter(pk=vehicle.id).exists())

    def test_status_changes(self):
        vehicle = TestDataFactory.create_vehicle()
        url = f'/api/v1/vehicles/{vehicle.id}/status/'

        response = self.client.post(url, {'status': 'rented'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(url, {'status': 'flying'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post(url, {'status': 'retired'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'RETIRED')

        TestDataFactory.create_rental(vehicle, self.staff)
        response = self.client.post(url, {'status': 'MAINTENANCE'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_maintenance_records(self):
        vehicle = TestDataFactory.create_vehicle()
        url = f'/api/v1/vehicles/{vehicle.id}/maintenance/'
        response = self.client.post(url, {
            'description': 'Brake pads', 'cost': '350.00', 'set_status': True
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        vehicle.refresh_from_db()
        self.assertEqual(vehicle.status, 'MAINTENANCE')

        self.client.post(url, {'description': 'Oil change', 'cost': '150.00'}, format='json')
        response = self.client.get(url)
        self.assertEqual(response.data['total_cost'], 500.0)
        self.assertEqual(len(response.data['records']), 2)

        response = self.client.post(url, {'description': 'Refund', 'cost': '-5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class VehicleRentalTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.admin = TestDataFactory.create_admin()
        self.staff = TestDataFactory.create_user()
        self.vehicle = TestDataFactory.create_vehicle(rental_amount=Decimal('100.00'))
        self.client.authenticate_user(self.admin)

    def _assign(self, **overrides):
        start = timezone.now()
        payload = {
            'vehicle': self.vehicle.id,
            'user': self.staff.id,
            'start_date': start.isoformat(),
            'end_date': (start + timedelta(days=7)).isoformat(),
        }
        payload.update(overrides)
        return self.client.post('/api/v1/vehicles/assign/', payload, format='json')

    def test_assign_rents_vehicle(self):
        response = self._assign()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['display_id'].startswith(f"RNT-{timezone.now().strftime('%Y%m%d')}-"))
        self.assertEqual(Decimal(str(response.data['daily_rate'])), Decimal('100.00'))
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'RENTED')
        self.assertTrue(AuditLog.objects.filter(action='vehicle_assign').exists())

        response = self._assign()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_assign_validation(self):
        start = timezone.now()
        response = self._assign(end_date=(start - timedelta(days=1)).isoformat())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._assign(daily_rate='-1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._assign(user=9999)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._assign(end_date='')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(VehicleRental.objects.exists())

    def test_staff_cannot_assign(self):
        self.client.authenticate_user(self.staff)
        response = self._assign()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_end_rental_bills_ceiling_days(self):
        rental = TestDataFactory.create_rental(self.vehicle, self.staff)
        rental.start_date = timezone.now() - timedelta(days=2, hours=12)
        rental.save()

        self.client.authenticate_user(self.staff)
        response = self.client.post(f'/api/v1/vehicles/rentals/{rental.id}/end/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['days'], 3)
        self.assertEqual(Decimal(str(response.data['total_cost'])), Decimal('300.00'))
        self.assertEqual(response.data['status'], 'COMPLETED')
        self.vehicle.refresh_from_db()
        self.assertEqual(self.vehicle.status, 'AVAILABLE')

        response = self.client.post(f'/api/v1/vehicles/rentals/{rental.id}/end/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_end_rental_minimum_one_day_with_custom_rate(self):
        rental = TestDataFactory.create_rental(self.vehicle, self.staff)
        rental.daily_rate = Decimal('80.00')
        rental.save()
        response = self.client.post(f'/api/v1/vehicles/rentals/{rental.id}/end/', {}, format='json')
        self.assertEqual(response.data['days'], 1)
        self.assertEqual(Decimal(str(response.data['total_cost'])), Decimal('80.00'))

    def test_other_user_cannot_end_rental(self):
        rental = TestDataFactory.create_rental(self.vehicle, self.staff)
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.post(f'/api/v1/vehicles/rentals/{rental.id}/end/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_rental_list(self):
        TestDataFactory.create_rental(self.vehicle, self.staff)
        TestDataFactory.create_rental(TestDataFactory.create_vehicle(), self.staff, status='COMPLETED')
        TestDataFactory.create_rental(TestDataFactory.create_vehicle(), TestDataFactory.create_user())

        response = self.client.get('/api/v1/vehicles/rentals/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/vehicles/rentals/', {'status': 'all'})
        self.assertEqual(len(response.data), 3)

        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/vehicles/rentals/', {'status': 'all'})
        self.assertEqual(len(response.data), 2)


class VehicleTripTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.vehicle = TestDataFactory.create_vehicle()
        self.rental = TestDataFactory.create_rental(self.vehicle, self.user)
        self.client.authenticate_user(self.user)

    def _start(self, latitude=25.0, longitude=51.0):
        return self.client.post('/api/v1/vehicles/trips/start/',
                                {'latitude': latitude, 'longitude': longitude}, format='json')

    def _backdate(self, trip, hours):
        earlier = timezone.now() - timedelta(hours=hours)
        VehicleTrip.objects.filter(pk=trip['id']).update(start_time=earlier)
        VehicleLocation.objects.filter(trip_id=trip['id']).update(recorded_at=earlier)

    def test_start_requires_rental_and_coordinates(self):
        response = self._start(latitude=120)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.authenticate_user(TestDataFactory.create_user())
        response = self._start()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_trip_distance_and_stats(self):
        response = self._start()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIsNone(response.data['auto_ended_trip'])
        self._backdate(response.data['trip'], hours=1)

        response = self.client.post('/api/v1/vehicles/trips/end/', {'latitude': 25.1, 'longitude': 51.0},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['completion_status'], 'COMPLETED')
        self.assertAlmostEqual(float(response.data['distance']), 11.119, places=2)
        self.assertEqual(response.data['metadata']['point_count'], 2)

        response = self.client.get('/api/v1/vehicles/trips/stats/')
        self.assertEqual(response.data['trip_count'], 1)
        self.assertEqual(response.data['vehicle']['id'], self.vehicle.id)
        self.assertAlmostEqual(response.data['total_distance'], 11.119, places=2)
        self.assertGreaterEqual(response.data['total_duration_ms'], 3600 * 1000)

    def test_open_trip_is_auto_ended(self):
        first = self._start().data['trip']
        response = self._start(latitude=25.2)
        self.assertEqual(response.data['auto_ended_trip'], first['id'])
        closed = VehicleTrip.objects.get(pk=first['id'])
        self.assertEqual(closed.completion_status, 'INCOMPLETE')
        self.assertTrue(closed.is_auto_ended)
        self.assertEqual(VehicleTrip.objects.filter(end_time__isnull=True).count(), 1)

    def test_end_without_open_trip(self):
        response = self.client.post('/api/v1/vehicles/trips/end/', {'latitude': 25.1, 'longitude': 51.0},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_location_update_attaches_to_open_trip(self):
        trip = self._start().data['trip']
        response = self.client.post('/api/v1/vehicles/location/', {'latitude': 25.05, 'longitude': 51.0},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['trip'], trip['id'])
        self.assertEqual(response.data['vehicle'], self.vehicle.id)

    def test_location_update_checks_vehicle_access(self):
        other = TestDataFactory.create_vehicle()
        response = self.client.post('/api/v1/vehicles/location/',
                                    {'latitude': 25.05, 'longitude': 51.0, 'vehicle': other.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.post('/api/v1/vehicles/location/',
                                    {'latitude': 25.05, 'longitude': 51.0, 'vehicle': 9999}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_stats_without_rental(self):
        self.client.authenticate_user(TestDataFactory.create_user())
        response = self.client.get('/api/v1/vehicles/trips/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['vehicle'])
        self.assertEqual(response.data['total_duration'], '0s')

    def test_history_is_scoped_to_user(self):
        self._start()
        other = TestDataFactory.create_user()
        other_vehicle = TestDataFactory.create_vehicle()
        TestDataFactory.create_rental(other_vehicle, other)
        VehicleTrip.objects.create(vehicle=other_vehicle, user=other,
                                   start_latitude=Decimal('25'), start_longitude=Decimal('51'))

        response = self.client.get('/api/v1/vehicles/trips/history/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['user']['id'], self.user.id)

        self.client.authenticate_user(TestDataFactory.create_admin())
        response = self.client.get('/api/v1/vehicles/trips/history/')
        self.assertEqual(len(response.data), 2)
        response = self.client.get('/api/v1/vehicles/trips/history/', {'user': other.id})
        self.assertEqual(len(response.data), 1)


class RentalCostTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_fleet_costs(self):
        first = TestDataFactory.create_vehicle(rental_amount=Decimal('3000.00'))
        TestDataFactory.create_vehicle(rental_amount=Decimal('1500.00'))
        VehicleMaintenance.objects.create(vehicle=first, description='Tyres', cost=Decimal('200.00'))

        response = self.client.get('/api/v1/vehicles/rental-costs/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['monthly_rental_total'], 4500.0)
        self.assertEqual(response.data['yearly_rental_projection'], 54000.0)
        self.assertEqual(response.data['maintenance_month_to_date'], 200.0)
        self.assertEqual(response.data['monthly_total'], 4700.0)
        self.assertEqual(response.data['vehicle_count'], 2)
        self.assertEqual(response.data['currency'], 'QAR')

    def test_refresh_bypasses_cache(self):
        self.client.get('/api/v1/vehicles/rental-costs/')
        TestDataFactory.create_vehicle(rental_amount=Decimal('1000.00'))
        response = self.client.get('/api/v1/vehicles/rental-costs/')
        self.assertEqual(response.data['vehicle_count'], 0)
        response = self.client.get('/api/v1/vehicles/rental-costs/', {'refresh': 'true'})
        self.assertEqual(response.data['vehicle_count'], 1)
