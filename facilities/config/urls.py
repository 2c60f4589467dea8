"""
URL configuration for the facilities project.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Facilities Management Admin Panel"
admin.site.site_title = "Facilities Management Admin Portal"
admin.site.index_title = "Welcome to the Facilities Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('facilities.core.urls')),
    path('api/v1/', include('facilities.locations.urls')),
    path('api/v1/', include('facilities.vendors.urls')),
    path('api/v1/', include('facilities.assets.urls')),
    path('api/v1/', include('facilities.tickets.urls')),
    path('api/v1/', include('facilities.kitchens.urls')),
    path('api/v1/', include('facilities.food_supply.urls')),
    path('api/v1/', include('facilities.vehicles.urls')),
    path('api/v1/', include('facilities.insights.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
