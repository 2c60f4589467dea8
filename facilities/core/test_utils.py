"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from facilities.locations.models import Location
from facilities.vendors.models import Vendor
from facilities.assets.models import Asset
from facilities.assets.utils import generate_unique_asset_identifiers
from facilities.tickets.models import Ticket
from facilities.tickets.utils import generate_ticket_identifiers
from facilities.kitchens.models import Kitchen, KitchenAssignment
from facilities.food_supply.models import (
    FoodSupply, KitchenFoodSupply, Recipe, RecipeIngredient, FoodConsumption, FoodDisposal,
)
from facilities.vehicles.models import Vehicle, VehicleRental
from decimal import Decimal
from datetime import timedelta
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='STAFF',
                    is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_admin(username=None):
        """Create a user with the ADMIN role"""
        return TestDataFactory.create_user(username=username, role='ADMIN')

    @staticmethod
    def create_location(floor_number='1', room_number=None, building='', name=''):
        """Create a test location"""
        if not room_number:
            room_number = TestDataFactory.random_string(4).upper()
        return Location.objects.create(
            name=name,
            building=building,
            floor_number=floor_number,
            room_number=room_number
        )

    @staticmethod
    def create_vendor(name=None, types=None):
        """Create a test vendor"""
        if not name:
            name = f'Vendor_{TestDataFactory.random_string(6)}'
        return Vendor.objects.create(
            name=name,
            email=f'{name.lower()}@test.com',
            types=types if types is not None else ['ASSET']
        )

    @staticmethod
    def create_asset(vendor=None, name=None, asset_type='FURNITURE', status='ACTIVE', floor_number='1',
                     room_number='101', purchase_amount=None, owner=None):
        """Create a test asset with generated identifiers"""
        if not vendor:
            vendor = TestDataFactory.create_vendor()
        if not name:
            name = f'Asset_{TestDataFactory.random_string(6)}'
        if purchase_amount is None:
            purchase_amount = Decimal('250.00')
        asset_id, barcode = generate_unique_asset_identifiers(asset_type)
        return Asset.objects.create(
            asset_id=asset_id,
            barcode=barcode,
            name=name,
            type=asset_type,
            status=status,
            floor_number=floor_number,
            room_number=room_number,
            vendor=vendor,
            owner=owner,
            purchase_amount=purchase_amount
        )

    @staticmethod
    def create_ticket(user, title=None, description='Something needs attention', priority='MEDIUM',
                      status='OPEN', asset=None, assigned_to=None):
        """Create a test ticket"""
        display_id, barcode = generate_ticket_identifiers()
        return Ticket.objects.create(
            display_id=display_id,
            barcode=barcode,
            title=title or f'Ticket {TestDataFactory.random_string(6)}',
            description=description,
            priority=priority,
            status=status,
            asset=asset,
            created_by=user,
            assigned_to=assigned_to
        )

    @staticmethod
    def create_kitchen(name=None, floor_number='1', location=None):
        """Create a test kitchen"""
        if not name:
            name = f'Kitchen_{TestDataFactory.random_string(6)}'
        return Kitchen.objects.create(name=name, floor_number=floor_number, location=location)

    @staticmethod
    def assign_kitchen(kitchen, user, assigned_by=None):
        return KitchenAssignment.objects.create(kitchen=kitchen, user=user, assigned_by=assigned_by)

    @staticmethod
    def create_food_supply(name=None, kitchen=None, quantity=None, unit='kg', price_per_unit=None,
                           category='vegetables', expiration_days=30, vendor=None, barcode=None):
        """Create a test food supply"""
        if not name:
            name = f'Supply_{TestDataFactory.random_string(6)}'
        if quantity is None:
            quantity = Decimal('50')
        if price_per_unit is None:
            price_per_unit = Decimal('2.50')
        return FoodSupply.objects.create(
            name=name,
            category=category,
            quantity=quantity,
            unit=unit,
            price_per_unit=price_per_unit,
            expiration_date=timezone.localdate() + timedelta(days=expiration_days),
            kitchen=kitchen,
            vendor=vendor,
            barcode=barcode
        )

    @staticmethod
    def stock_kitchen(kitchen, food_supply, quantity=None, expiration_days=30):
        """Create a kitchen stock row for a supply"""
        if quantity is None:
            quantity = Decimal('20')
        return KitchenFoodSupply.objects.create(
            kitchen=kitchen,
            food_supply=food_supply,
            quantity=quantity,
            expiration_date=timezone.localdate() + timedelta(days=expiration_days)
        )

    @staticmethod
    def create_recipe(name=None, servings=4, selling_price=None, ingredients=None, user=None):
        """
        Create a test recipe.

        ingredients: list of (food_supply, quantity) or (food_supply, quantity, waste_percentage)
        """
        if not name:
            name = f'Recipe_{TestDataFactory.random_string(6)}'
        recipe = Recipe.objects.create(
            name=name,
            servings=servings,
            selling_price=selling_price if selling_price is not None else Decimal('40.00'),
            created_by=user
        )
        for ingredient in ingredients or []:
            supply, quantity = ingredient[0], ingredient[1]
            waste = ingredient[2] if len(ingredient) > 2 else Decimal('0')
            RecipeIngredient.objects.create(
                recipe=recipe, food_supply=supply, quantity=Decimal(str(quantity)), waste_percentage=Decimal(str(waste))
            )
        return recipe

    @staticmethod
    def create_consumption(food_supply, kitchen, quantity, user=None, days_ago=0, recipe=None):
        """Create a consumption row dated `days_ago` days back"""
        return FoodConsumption.objects.create(
            food_supply=food_supply,
            kitchen=kitchen,
            user=user,
            recipe=recipe,
            quantity=Decimal(str(quantity)),
            created_at=timezone.now() - timedelta(days=days_ago)
        )

    @staticmethod
    def create_disposal(food_supply, quantity, reason='expired', kitchen=None, user=None, days_ago=0):
        """Create a disposal row with its cost"""
        quantity = Decimal(str(quantity))
        return FoodDisposal.objects.create(
            food_supply=food_supply,
            kitchen=kitchen,
            user=user,
            quantity=quantity,
            reason=reason,
            cost=(quantity * food_supply.price_per_unit).quantize(Decimal('0.01')),
            created_at=timezone.now() - timedelta(days=days_ago)
        )

    @staticmethod
    def create_vehicle(make='Toyota', model='Camry', plate_number=None, status='AVAILABLE', rental_amount=None,
                       year=2022):
        """Create a test vehicle"""
        if not plate_number:
            plate_number = f'PL{TestDataFactory.random_string(6).upper()}'
        return Vehicle.objects.create(
            make=make,
            model=model,
            year=year,
            plate_number=plate_number,
            status=status,
            rental_amount=rental_amount if rental_amount is not None else Decimal('3000.00')
        )

    @staticmethod
    def create_rental(vehicle, user, days=30, status='ACTIVE', start_offset_days=0):
        """Create a rental starting `start_offset_days` ago and lasting `days` days"""
        start = timezone.now() - timedelta(days=start_offset_days)
        if status == 'ACTIVE' and vehicle.status != 'RENTED':
            vehicle.status = 'RENTED'
            vehicle.save()
        return VehicleRental.objects.create(
            display_id=f'RNT-{TestDataFactory.random_string(8).upper()}',
            vehicle=vehicle,
            user=user,
            start_date=start,
            end_date=start + timedelta(days=days),
            status=status
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
