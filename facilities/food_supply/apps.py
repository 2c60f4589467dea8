from django.apps import AppConfig


class FoodSupplyConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'facilities.food_supply'
    verbose_name = 'Food supply'
