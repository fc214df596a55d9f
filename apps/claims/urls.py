from django.urls import path
from . import views

app_name = 'claims'

urlpatterns = [
    # Customer endpoints
    path('deals/<int:deal_id>/claim/', views.claim_deal, name='claim-deal'),
    path('deals/<int:deal_id>/verify-pin/', views.verify_pin, name='verify-pin'),
    path('mine/', views.my_claims, name='my-claims'),
    path('<int:pk>/', views.claim_detail, name='claim-detail'),
    path('<int:pk>/qr/', views.claim_qr_code, name='claim-qr'),

    # Vendor endpoints
    path('verify/', views.verify_claim_code, name='verify-code'),
    path('complete/', views.complete_transaction, name='complete-transaction'),
    path('vendor/', views.vendor_claims, name='vendor-claims'),
]
