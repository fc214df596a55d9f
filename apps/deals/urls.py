from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'deals'

# Router for ViewSets
router = SimpleRouter()
router.register(r'', views.DealViewSet, basename='deal')

urlpatterns = [
    # Public catalogue
    # GET    /api/deals/              - List claimable deals
    # GET    /api/deals/{id}/         - Deal details

    # Vendor endpoints
    path('vendor/register/', views.vendor_register, name='vendor-register'),
    path('vendor/deals/', views.vendor_deals, name='vendor-deals'),
    path('vendor/deals/<int:pk>/reset-pin/', views.vendor_reset_pin, name='vendor-reset-pin'),
    path('vendor/generate-pin/', views.vendor_generate_pin, name='vendor-generate-pin'),

    # Admin moderation
    path('admin/pending/', views.pending_deals, name='admin-pending'),
    path('admin/<int:pk>/approve/', views.approve, name='admin-approve'),
    path('admin/<int:pk>/reject/', views.reject, name='admin-reject'),
    path('admin/vendors/<int:pk>/approve/', views.approve_vendor_profile, name='admin-approve-vendor'),

    # Include router URLs
    path('', include(router.urls)),
]
