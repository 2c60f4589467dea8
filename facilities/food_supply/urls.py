from django.urls import path
from .views import (
    food_supply_list_create, food_supply_detail, food_supply_scan, food_supply_consume,
    food_supply_dispose, food_supply_order, food_supply_order_recommendations, food_supply_stats,
    food_supply_waste_reasons, food_supply_waste_patterns, food_supply_forecast, consumption_history,
    recipe_list_create, recipe_detail, recipe_use,
)

urlpatterns = [
    path('food-supply/', food_supply_list_create, name='food-supply-list-create'),
    path('food-supply/scan/', food_supply_scan, name='food-supply-scan'),
    path('food-supply/consume/', food_supply_consume, name='food-supply-consume'),
    path('food-supply/dispose/', food_supply_dispose, name='food-supply-dispose'),
    path('food-supply/order/', food_supply_order, name='food-supply-order'),
    path('food-supply/order-recommendations/', food_supply_order_recommendations, name='food-supply-order-recommendations'),
    path('food-supply/stats/', food_supply_stats, name='food-supply-stats'),
    path('food-supply/waste-reasons/', food_supply_waste_reasons, name='food-supply-waste-reasons'),
    path('food-supply/waste-patterns/', food_supply_waste_patterns, name='food-supply-waste-patterns'),
    path('food-supply/forecast/', food_supply_forecast, name='food-supply-forecast'),
    path('food-supply/consumption-history/', consumption_history, name='food-supply-consumption-history'),
    path('food-supply/<int:pk>/', food_supply_detail, name='food-supply-detail'),
    path('recipes/', recipe_list_create, name='recipe-list-create'),
    path('recipes/<int:pk>/', recipe_detail, name='recipe-detail'),
    path('recipes/<int:pk>/use/', recipe_use, name='recipe-use'),
]
