"""
Fulfillment Reallocation Engine Views
"""

from .picking_views import PickListViewSet
from .backorder_views import BackOrderViewSet
from .packing_views import PackingViewSet

__all__ = [
    'PickListViewSet',
    'BackOrderViewSet',
    'PackingViewSet',
]
