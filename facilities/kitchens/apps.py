from django.apps import AppConfig


class KitchensConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'facilities.kitchens'
