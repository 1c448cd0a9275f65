"""
URL configuration for the Fulfillment Reallocation Engine.

Provides API endpoints for pick lists, back orders and packing plans.
"""

from rest_framework.routers import DefaultRouter

from .views import PickListViewSet, BackOrderViewSet, PackingViewSet

router = DefaultRouter()
router.register(r'pick-lists', PickListViewSet, basename='picklist')
router.register(r'back-orders', BackOrderViewSet, basename='backorder')
router.register(r'packing', PackingViewSet, basename='packing')

urlpatterns = router.urls
