"""
Fulfillment Reallocation Engine Models
"""

from .order import Order, OrderStatus, OrderLine
from .backorder import BackOrder, BackOrderStatus, BackOrderReason
from .picking import (
    PickList, PickListStatus, PickListItem, PickListItemStatus, ReassignmentReason,
    INCOMPLETE_PICKLIST_STATUSES, ACTIVE_PICKLIST_STATUSES, TERMINAL_ITEM_STATUSES,
)
from .audit import AuditEvent, AuditEventType

__all__ = [
    # Order models
    'Order', 'OrderStatus', 'OrderLine',

    # Back-order queue
    'BackOrder', 'BackOrderStatus', 'BackOrderReason',

    # Picking models
    'PickList', 'PickListStatus', 'PickListItem', 'PickListItemStatus', 'ReassignmentReason',
    'INCOMPLETE_PICKLIST_STATUSES', 'ACTIVE_PICKLIST_STATUSES', 'TERMINAL_ITEM_STATUSES',

    # Audit
    'AuditEvent', 'AuditEventType',
]
