"""
Fulfillment Reallocation Engine Serializers
"""

from .picking_serializers import (
    PickListItemSerializer, PickListListSerializer, PickListDetailSerializer,
    ReassignSerializer, BulkReassignSerializer, EndOfShiftSerializer,
    RecordPickSerializer, AuditEventSerializer,
)
from .backorder_serializers import BackOrderSerializer, FulfillBatchSerializer, GroupByOrderQuerySerializer
from .packing_serializers import PackingPlanSerializer

__all__ = [
    'PickListItemSerializer', 'PickListListSerializer', 'PickListDetailSerializer',
    'ReassignSerializer', 'BulkReassignSerializer', 'EndOfShiftSerializer',
    'RecordPickSerializer', 'AuditEventSerializer',
    'BackOrderSerializer', 'FulfillBatchSerializer', 'GroupByOrderQuerySerializer',
    'PackingPlanSerializer',
]
