from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import InventoryRecordViewSet

router = DefaultRouter()
router.register(r"records", InventoryRecordViewSet, basename="inventoryrecord")

urlpatterns = [
    path("", include(router.urls)),
]
