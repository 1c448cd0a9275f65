"""
Fulfillment Reallocation Engine Services
"""

from .workflow import (
    validate_order_workflow, validate_back_order_workflow, validate_pick_list_workflow
)
from .reassignment_service import ReassignmentService, STRATEGY_SPLIT, STRATEGY_IN_PLACE
from .allocation_service import AllocationService
from .picking_service import PickingService
from .packing_service import PackingService

__all__ = [
    # Workflow validators
    'validate_order_workflow', 'validate_back_order_workflow', 'validate_pick_list_workflow',

    # Services
    'ReassignmentService', 'AllocationService', 'PickingService', 'PackingService',
    'STRATEGY_SPLIT', 'STRATEGY_IN_PLACE',
]
