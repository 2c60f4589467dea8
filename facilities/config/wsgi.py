"""
WSGI config for the facilities project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'facilities.config.settings')

application = get_wsgi_application()
