"""
Tests for food supplies, stock movements, recipes and the food reports
"""
from decimal import Decimal
from io import StringIO
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status
from facilities.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from facilities.food_supply import analytics
from facilities.food_supply.inventory import expand_recipe, recipe_batch_cost, find_shortages, money
from facilities.food_supply.models import (
    FoodSupply, KitchenFoodSupply, KitchenBarcode, FoodConsumption, FoodDisposal, Recipe,
    RecipeIngredient, RecipeUsage,
)


class InventoryTests(TestCase):

    def setUp(self):
        self.lettuce = TestDataFactory.create_food_supply(name='Lettuce', price_per_unit=Decimal('2.50'))
        self.oil = TestDataFactory.create_food_supply(name='Olive Oil', price_per_unit=Decimal('4.00'))
        self.dressing = TestDataFactory.create_recipe(name='Dressing', servings=2, ingredients=[(self.oil, 1)])
        self.salad = TestDataFactory.create_recipe(name='Salad', servings=1, ingredients=[(self.lettuce, 1, 10)])
        RecipeIngredient.objects.create(recipe=self.salad, subrecipe=self.dressing, quantity=Decimal('1'))

    def test_expand_recipe_scales_sub_recipes(self):
        requirements = expand_recipe(self.salad)
        self.assertEqual(requirements[self.lettuce.id]['quantity'], Decimal('1'))
        self.assertEqual(requirements[self.lettuce.id]['waste_fraction'], Decimal('0.1'))
        self.assertEqual(requirements[self.oil.id]['quantity'], Decimal('0.5'))

    def test_waste_percentage_is_always_a_percentage(self):
        for stored, fraction in [('1', '0.01'), ('0.5', '0.005'), ('10', '0.1'), ('100', '1')]:
            ingredient = RecipeIngredient(recipe=self.salad, food_supply=self.lettuce, quantity=Decimal('1'),
                                          waste_percentage=Decimal(stored))
            self.assertEqual(ingredient.waste_fraction, Decimal(fraction))

    def test_expand_recipe_stops_on_cycles(self):
        RecipeIngredient.objects.create(recipe=self.dressing, subrecipe=self.salad, quantity=Decimal('1'))
        requirements = expand_recipe(self.salad)
        self.assertIn(self.lettuce.id, requirements)

    def test_batch_cost(self):
        self.assertEqual(recipe_batch_cost(self.salad), Decimal('4.50'))

    def test_shortages_against_kitchen_stock(self):
        kitchen = TestDataFactory.create_kitchen()
        TestDataFactory.stock_kitchen(kitchen, self.lettuce, quantity=Decimal('0.5'))
        shortages = find_shortages(expand_recipe(self.salad), kitchen)
        self.assertEqual([item['name'] for item in shortages], ['Lettuce'])

    def test_money_rounds_half_up(self):
        self.assertEqual(money(Decimal('0.625')), Decimal('0.63'))


class FoodSupplyAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client.authenticate_user(self.user)

    def test_create_supply(self):
        response = self.client.post('/api/v1/food-supply/', {
            'name': 'Milk', 'category': 'dairy', 'quantity': '12', 'unit': 'l',
            'price_per_unit': '1.20', 'expiration_date': '2030-01-01', 'barcode': ' milk-001 ',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['barcode'], 'MILK-001')
        self.assertFalse(response.data['is_expired'])

    def test_create_rejects_negative_quantity(self):
        response = self.client.post('/api/v1/food-supply/', {
            'name': 'Milk', 'quantity': '-1', 'unit': 'l', 'price_per_unit': '1.20', 'expiration_date': '2030-01-01',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_filters(self):
        kitchen = TestDataFactory.create_kitchen()
        TestDataFactory.create_food_supply(name='Cheese', category='dairy', quantity=Decimal('3'))
        TestDataFactory.create_food_supply(name='Rice', category='grains', expiration_days=60, kitchen=kitchen)
        TestDataFactory.create_food_supply(name='Basil', category='spices', expiration_days=3)

        response = self.client.get('/api/v1/food-supply/', {'category': 'DAIRY'})
        self.assertEqual([item['name'] for item in response.data], ['Cheese'])
        response = self.client.get('/api/v1/food-supply/', {'low_stock': 'true'})
        self.assertEqual([item['name'] for item in response.data], ['Cheese'])
        response = self.client.get('/api/v1/food-supply/', {'expiring_soon': 'true'})
        self.assertEqual([item['name'] for item in response.data], ['Basil'])
        response = self.client.get('/api/v1/food-supply/', {'kitchen': kitchen.id})
        self.assertEqual([item['name'] for item in response.data], ['Rice'])

    def test_delete_rules(self):
        supply = TestDataFactory.create_food_supply()
        TestDataFactory.create_recipe(ingredients=[(supply, 1)])
        response = self.client.delete(f'/api/v1/food-supply/{supply.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.admin)
        response = self.client.delete(f'/api/v1/food-supply/{supply.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        unused = TestDataFactory.create_food_supply()
        response = self.client.delete(f'/api/v1/food-supply/{unused.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class FoodSupplyScanTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user())

    def test_scan_own_barcode(self):
        supply = TestDataFactory.create_food_supply(barcode='EGG123')
        response = self.client.get('/api/v1/food-supply/scan/', {'barcode': 'egg123'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['food_supply']['id'], supply.id)
        self.assertIsNone(response.data['kitchen'])

    def test_scan_kitchen_barcode_reports_kitchen_stock(self):
        kitchen = TestDataFactory.create_kitchen()
        supply = TestDataFactory.create_food_supply()
        TestDataFactory.stock_kitchen(kitchen, supply, quantity=Decimal('8'))
        KitchenBarcode.objects.create(kitchen=kitchen, food_supply=supply, barcode='KIT1SUP1ABC')
        response = self.client.get('/api/v1/food-supply/scan/', {'barcode': 'kit1sup1abc'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['kitchen']['id'], kitchen.id)
        self.assertEqual(response.data['available_quantity'], 8.0)

    def test_scan_recipe_name_is_explained(self):
        recipe = TestDataFactory.create_recipe(name='Pancakes')
        response = self.client.get('/api/v1/food-supply/scan/', {'barcode': 'pancakes'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['recipe'], recipe.id)

    def test_scan_requires_code(self):
        response = self.client.get('/api/v1/food-supply/scan/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class StockMovementTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.kitchen = TestDataFactory.create_kitchen()
        TestDataFactory.assign_kitchen(self.kitchen, self.user)
        self.client.authenticate_user(self.user)
        self.supply = TestDataFactory.create_food_supply(quantity=Decimal('50'), price_per_unit=Decimal('2.50'))
        self.stock = TestDataFactory.stock_kitchen(self.kitchen, self.supply, quantity=Decimal('20'))

    def test_consume_draws_from_kitchen_stock(self):
        response = self.client.post('/api/v1/food-supply/consume/', {
            'supply': self.supply.id, 'kitchen': self.kitchen.id, 'quantity': '5',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['remaining'], 15.0)
        self.assertEqual(response.data['consumption']['cost'], 12.5)
        self.stock.refresh_from_db()
        self.supply.refresh_from_db()
        self.assertEqual(self.stock.quantity, Decimal('15'))
        self.assertEqual(self.supply.quantity, Decimal('50'))

    def test_consume_more_than_available(self):
        response = self.client.post('/api/v1/food-supply/consume/', {
            'supply': self.supply.id, 'kitchen': self.kitchen.id, 'quantity': '25',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['available'], 20.0)
        self.assertFalse(FoodConsumption.objects.exists())

    def test_consume_requires_kitchen_access(self):
        other = TestDataFactory.create_kitchen()
        response = self.client.post('/api/v1/food-supply/consume/', {
            'supply': self.supply.id, 'kitchen': other.id, 'quantity': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post('/api/v1/food-supply/consume/', {
            'supply': self.supply.id, 'quantity': '1',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_direct_disposal_tracks_waste(self):
        response = self.client.post('/api/v1/food-supply/dispose/', {
            'food_supply': self.supply.id, 'kitchen': self.kitchen.id, 'quantity': '3', 'reason': 'expired',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(str(response.data['disposal']['cost'])), Decimal('7.50'))
        self.supply.refresh_from_db()
        self.assertEqual(self.supply.total_wasted, Decimal('3'))
        self.stock.refresh_from_db()
        self.assertEqual(self.stock.quantity, Decimal('17'))

    def test_disposal_reason_is_validated(self):
        response = self.client.post('/api/v1/food-supply/dispose/', {
            'food_supply': self.supply.id, 'quantity': '1', 'reason': 'lost',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recipe_disposal_expands_ingredients(self):
        recipe = TestDataFactory.create_recipe(servings=4, ingredients=[(self.supply, 2)])
        response = self.client.post('/api/v1/food-supply/dispose/', {
            'source': 'recipe', 'recipe': recipe.id, 'servings': 2, 'reason': 'overproduction',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_cost'], 2.5)
        disposal = FoodDisposal.objects.get()
        self.assertEqual(disposal.source, 'recipe')
        self.assertEqual(disposal.quantity, Decimal('1'))
        self.supply.refresh_from_db()
        self.assertEqual(self.supply.quantity, Decimal('49'))

    def test_order_creates_then_tops_up_stock(self):
        fresh = TestDataFactory.create_food_supply()
        response = self.client.post('/api/v1/food-supply/order/', {
            'kitchen': self.kitchen.id,
            'items': [
                {'food_supply': fresh.id, 'quantity': 10, 'expiration_date': '2030-06-01'},
                {'food_supply': self.supply.id, 'quantity': 5},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        actions = {item['food_supply']: item for item in response.data['processed_items']}
        self.assertEqual(actions[fresh.id]['action'], 'created')
        self.assertEqual(actions[self.supply.id]['action'], 'updated')
        self.assertEqual(actions[self.supply.id]['new_quantity'], 25.0)

    def test_order_with_bad_item_rolls_back(self):
        response = self.client.post('/api/v1/food-supply/order/', {
            'kitchen': self.kitchen.id,
            'items': [{'food_supply': self.supply.id, 'quantity': 5}, {'food_supply': 9999, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Item 2: food supply not found')
        self.stock.refresh_from_db()
        self.assertEqual(self.stock.quantity, Decimal('20'))

    def test_consumption_history_is_scoped_to_assigned_kitchens(self):
        other = TestDataFactory.create_kitchen()
        TestDataFactory.create_consumption(self.supply, self.kitchen, 1)
        TestDataFactory.create_consumption(self.supply, other, 2)
        response = self.client.get('/api/v1/food-supply/consumption-history/')
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['kitchen'], self.kitchen.id)


class RecipeAPITests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.supply = TestDataFactory.create_food_supply(price_per_unit=Decimal('2.50'))

    def test_create_recipe_with_ingredients(self):
        response = self.client.post('/api/v1/recipes/', {
            'name': 'Side Salad', 'servings': 2, 'selling_price': '15.00',
            'ingredients': [{'food_supply': self.supply.id, 'quantity': '0.5'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_cost'], 1.25)
        self.assertEqual(response.data['cost_per_serving'], 0.63)
        self.assertEqual(len(response.data['ingredients']), 1)
        self.assertEqual(Recipe.objects.get().created_by, self.user)

    def test_ingredient_needs_exactly_one_target(self):
        sub = TestDataFactory.create_recipe()
        response = self.client.post('/api/v1/recipes/', {
            'name': 'Broken', 'servings': 1,
            'ingredients': [{'food_supply': self.supply.id, 'subrecipe': sub.id, 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recipe_cannot_contain_itself(self):
        recipe = TestDataFactory.create_recipe()
        response = self.client.patch(f'/api/v1/recipes/{recipe.id}/', {
            'ingredients': [{'subrecipe': recipe.id, 'quantity': '1'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_replaces_ingredients(self):
        recipe = TestDataFactory.create_recipe(ingredients=[(self.supply, 1)])
        other = TestDataFactory.create_food_supply()
        response = self.client.patch(f'/api/v1/recipes/{recipe.id}/', {
            'ingredients': [{'food_supply': other.id, 'quantity': '2'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['food_supply'] for item in response.data['ingredients']], [other.id])

    def test_sub_recipe_in_use_cannot_be_deleted(self):
        sub = TestDataFactory.create_recipe(name='Stock')
        main = TestDataFactory.create_recipe(name='Soup')
        RecipeIngredient.objects.create(recipe=main, subrecipe=sub, quantity=Decimal('1'))
        response = self.client.delete(f'/api/v1/recipes/{sub.id}/')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        response = self.client.delete(f'/api/v1/recipes/{main.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)


class RecipeUseTests(TestCase):

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.kitchen = TestDataFactory.create_kitchen()
        TestDataFactory.assign_kitchen(self.kitchen, self.user)
        self.client.authenticate_user(self.user)
        self.supply = TestDataFactory.create_food_supply(price_per_unit=Decimal('2.50'))
        self.stock = TestDataFactory.stock_kitchen(self.kitchen, self.supply, quantity=Decimal('20'))
        self.recipe = TestDataFactory.create_recipe(
            servings=4, selling_price=Decimal('40.00'), ingredients=[(self.supply, 2, 10)]
        )
        self.url = f'/api/v1/recipes/{self.recipe.id}/use/'

    def test_use_records_cost_waste_and_profit(self):
        response = self.client.post(self.url, {'kitchen': self.kitchen.id, 'servings': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        usage = RecipeUsage.objects.get()
        self.assertEqual(usage.cost, Decimal('2.50'))
        self.assertEqual(usage.waste_cost, Decimal('0.25'))
        self.assertEqual(usage.selling_price, Decimal('80.00'))
        self.assertEqual(usage.profit, Decimal('77.25'))

        self.stock.refresh_from_db()
        self.assertEqual(self.stock.quantity, Decimal('19'))
        consumption = FoodConsumption.objects.get()
        self.assertEqual(consumption.recipe, self.recipe)
        waste = FoodDisposal.objects.get()
        self.assertEqual(waste.reason, 'ingredient_waste')
        self.assertEqual(waste.quantity, Decimal('0.1'))

    def test_one_percent_waste_records_a_hundredth(self):
        recipe = TestDataFactory.create_recipe(
            servings=1, selling_price=Decimal('10.00'), ingredients=[(self.supply, 2, 1)]
        )
        response = self.client.post(f'/api/v1/recipes/{recipe.id}/use/', {'kitchen': self.kitchen.id, 'servings': 1},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        waste = FoodDisposal.objects.get()
        self.assertEqual(waste.quantity, Decimal('0.02'))
        usage = RecipeUsage.objects.get()
        self.assertEqual(usage.cost, Decimal('5.00'))
        self.assertEqual(usage.waste_cost, Decimal('0.05'))
        self.assertEqual(usage.profit, Decimal('4.95'))

    def test_shortage_blocks_unless_forced(self):
        self.stock.quantity = Decimal('0.5')
        self.stock.save()
        response = self.client.post(self.url, {'kitchen': self.kitchen.id, 'servings': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(len(response.data['insufficient_ingredients']), 1)

        response = self.client.post(self.url, {'kitchen': self.kitchen.id, 'servings': 2, 'force': True},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.stock.refresh_from_db()
        self.assertEqual(self.stock.quantity, Decimal('0'))

    def test_recipe_without_ingredients(self):
        empty = TestDataFactory.create_recipe()
        response = self.client.post(f'/api/v1/recipes/{empty.id}/use/', {'kitchen': self.kitchen.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class FoodReportTests(TestCase):

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.user = TestDataFactory.create_user()
        self.client.authenticate_user(self.user)
        self.kitchen = TestDataFactory.create_kitchen()

    def test_stats(self):
        supply = TestDataFactory.create_food_supply(price_per_unit=Decimal('2.50'))
        TestDataFactory.create_food_supply(expiration_days=-1)
        TestDataFactory.create_consumption(supply, self.kitchen, 4)
        TestDataFactory.create_disposal(supply, 1, reason='expired')

        response = self.client.get('/api/v1/food-supply/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_supplies'], 2)
        self.assertEqual(response.data['expired'], 1)
        self.assertEqual(response.data['expiring_soon'], 1)
        self.assertEqual(response.data['total_consumed'], 10.0)
        self.assertEqual(response.data['expiration_waste_cost'], 2.5)
        self.assertEqual(response.data['waste_percentage'], 20.0)
        self.assertEqual(response.data['currency'], 'QAR')

    def test_order_recommendations_for_kitchen(self):
        low = TestDataFactory.create_food_supply(name='Flour')
        plenty = TestDataFactory.create_food_supply(name='Sugar')
        TestDataFactory.stock_kitchen(self.kitchen, low, quantity=Decimal('2'))
        TestDataFactory.stock_kitchen(self.kitchen, plenty, quantity=Decimal('30'))
        self.client.authenticate_user(TestDataFactory.create_admin())

        response = self.client.get('/api/v1/food-supply/order-recommendations/', {'kitchen': self.kitchen.id})
        recommendations = response.data['recommendations']
        self.assertEqual(recommendations[0]['name'], 'Flour')
        self.assertTrue(recommendations[0]['is_low_stock'])
        self.assertEqual(recommendations[0]['recommended_quantity'], 18.0)
        self.assertEqual(recommendations[1]['recommended_quantity'], 10.0)
        self.assertEqual(response.data['average_stock'], 16.0)

    def test_waste_patterns_insights(self):
        supply = TestDataFactory.create_food_supply(category='vegetables')
        TestDataFactory.create_disposal(supply, 10, reason='expired')
        response = self.client.get('/api/v1/food-supply/waste-patterns/')
        self.assertEqual(response.data['categories'][0]['category'], 'vegetables')
        self.assertEqual(response.data['categories'][0]['trend'], 'increasing')
        titles = [insight['title'] for insight in response.data['insights']]
        self.assertIn('Vegetable over-ordering', titles)
        self.assertIn('Inventory rotation issues', titles)

    def test_waste_patterns_without_data_fall_back_to_standard_insights(self):
        result = analytics.waste_patterns(FoodSupply.objects.none(), FoodDisposal.objects.none())
        self.assertEqual(result['total_waste'], 0.0)
        self.assertEqual(len(result['insights']), 3)

    def test_waste_reasons_requires_kitchen(self):
        response = self.client.get('/api/v1/food-supply/waste-reasons/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_waste_reasons_limited_to_assigned_kitchens(self):
        supply = TestDataFactory.create_food_supply()
        TestDataFactory.create_disposal(supply, 2, reason='damaged', kitchen=self.kitchen)
        url = f'/api/v1/food-supply/waste-reasons/?kitchen={self.kitchen.id}'

        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        TestDataFactory.assign_kitchen(self.kitchen, self.user)
        response = self.client.get(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['reason'] for item in response.data['reasons']], ['damaged'])
        self.assertEqual(response.data['total_waste'], 2.0)

    def test_forecast_flags_critical_items(self):
        supply = TestDataFactory.create_food_supply(quantity=Decimal('5'), price_per_unit=Decimal('2.50'))
        TestDataFactory.create_consumption(supply, self.kitchen, 30, days_ago=1)
        response = self.client.get('/api/v1/food-supply/forecast/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        item = response.data['items'][0]
        self.assertEqual(item['daily_rate'], 1.0)
        self.assertEqual(item['forecast_demand'], 7.0)
        self.assertEqual(item['days_until_depletion'], 5.0)
        self.assertEqual(item['suggested_order'], 2.0)
        self.assertEqual(item['estimated_cost'], 5.0)
        self.assertEqual(response.data['totals']['critical_count'], 1)

    def test_classify_trend(self):
        self.assertEqual(analytics.classify_trend(12, 10), 'increasing')
        self.assertEqual(analytics.classify_trend(8, 10), 'decreasing')
        self.assertEqual(analytics.classify_trend(10.5, 10), 'stable')
        self.assertEqual(analytics.classify_trend(0, 0), 'stable')


class ReportExpiringSuppliesCommandTests(TestCase):

    def test_lists_expired_and_expiring(self):
        TestDataFactory.create_food_supply(name='Yogurt', expiration_days=-2)
        TestDataFactory.create_food_supply(name='Bread', expiration_days=2)
        TestDataFactory.create_food_supply(name='Rice', expiration_days=200)
        out = StringIO()
        call_command('report_expiring_supplies', '--days', '7', stdout=out)
        output = out.getvalue()
        self.assertIn('Yogurt', output)
        self.assertIn('(expired)', output)
        self.assertIn('Bread', output)
        self.assertNotIn('Rice', output)
