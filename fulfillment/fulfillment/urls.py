"""
URL configuration for the fulfillment project.
"""
from django.contrib import admin
from django.urls import path, include
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods


@require_http_methods(["GET"])
def api_root(request):
    """API root view with available endpoints."""
    return JsonResponse({
        'message': 'Fulfillment Reallocation API',
        'version': '1.0.0',
        'endpoints': {
            'authentication': {
                'token': '/api/auth/token/',
                'token_refresh': '/api/auth/token/refresh/',
            },
            'picking': {
                'pick_lists': '/api/pick-lists/',
                'bulk_reassign': '/api/pick-lists/bulk-reassign/',
                'end_of_shift': '/api/pick-lists/end-of-shift/',
                'incomplete': '/api/pick-lists/incomplete/',
                'optimal_staff': '/api/pick-lists/optimal-staff/',
            },
            'back_orders': {
                'back_orders': '/api/back-orders/',
                'fulfill_batch': '/api/back-orders/fulfill-batch/',
                'by_order': '/api/back-orders/by-order/',
            },
            'packing': '/api/packing/{order_id}/plan/',
            'inventory': '/api/inventory/records/',
        }
    })


urlpatterns = [
    path("admin/", admin.site.urls),

    # API endpoints
    path('api/', api_root, name='api-root'),  # Exact match for /api/ (must be first)
    path('api/auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('api/auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('api/inventory/', include('inventory.urls')),
    path('api/', include('reallocation.urls')),

    # Browsable API login
    path('api/docs/', include('rest_framework.urls')),
]
