from django.urls import path
from .views import vendor_list_create, vendor_detail, vendor_performance, vendor_assets

urlpatterns = [
    path('vendors/', vendor_list_create, name='vendor-list-create'),
    path('vendors/<int:pk>/', vendor_detail, name='vendor-detail'),
    path('vendors/<int:pk>/performance/', vendor_performance, name='vendor-performance'),
    path('vendors/<int:pk>/assets/', vendor_assets, name='vendor-assets'),
]
