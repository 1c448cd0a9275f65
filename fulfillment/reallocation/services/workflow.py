"""
Workflow service for the Fulfillment Reallocation Engine.

Manages allowed state transitions for orders, back orders and pick lists.
"""

from ..exceptions import InvalidTransitionException
from ..models import OrderStatus, BackOrderStatus, PickListStatus


class Workflow:
    """Transition table plus validation shared by every workflow."""

    ENTITY_TYPE = "entity"
    ALLOWED_TRANSITIONS = {}

    @classmethod
    def validate_transition(cls, entity, new_status: str) -> None:
        """
        Validate if a status transition is allowed.

        Args:
            entity: Model instance with a `status` attribute
            new_status: New status to transition to

        Raises:
            InvalidTransitionException: If transition is not allowed
        """
        current_status = entity.status

        if current_status == new_status:
            return  # Allow no-op transitions

        allowed_transitions = cls.ALLOWED_TRANSITIONS.get(current_status, [])

        if new_status not in allowed_transitions:
            raise InvalidTransitionException(
                current_status=current_status,
                attempted_status=new_status,
                entity_type=cls.ENTITY_TYPE
            )


class OrderWorkflow(Workflow):
    """Workflow rules for Order state transitions."""

    ENTITY_TYPE = "Order"
    ALLOWED_TRANSITIONS = {
        OrderStatus.PENDING: [OrderStatus.ALLOCATED, OrderStatus.BACKORDER, OrderStatus.CANCELLED],
        OrderStatus.BACKORDER: [OrderStatus.ALLOCATED, OrderStatus.CANCELLED],
        OrderStatus.ALLOCATED: [OrderStatus.PICKING, OrderStatus.CANCELLED],
        OrderStatus.PICKING: [OrderStatus.PICKED, OrderStatus.CANCELLED],
        OrderStatus.PICKED: [OrderStatus.PACKED, OrderStatus.CANCELLED],
        OrderStatus.PACKED: [OrderStatus.SHIPPED, OrderStatus.CANCELLED],
        OrderStatus.SHIPPED: [OrderStatus.FULFILLED],
        OrderStatus.FULFILLED: [],  # Final state
        OrderStatus.CANCELLED: [],  # Final state
    }


class BackOrderWorkflow(Workflow):
    """Back orders only ever move forward."""

    ENTITY_TYPE = "BackOrder"
    ALLOWED_TRANSITIONS = {
        BackOrderStatus.PENDING: [BackOrderStatus.ALLOCATED],
        BackOrderStatus.ALLOCATED: [BackOrderStatus.PICKING],
        BackOrderStatus.PICKING: [BackOrderStatus.PICKED],
        BackOrderStatus.PICKED: [BackOrderStatus.PACKED],
        BackOrderStatus.PACKED: [BackOrderStatus.FULFILLED],
        BackOrderStatus.FULFILLED: [],  # Final state
    }


class PickListWorkflow(Workflow):
    """
    Workflow rules for PickList state transitions.

    PARTIALLY_COMPLETED, COMPLETED and CANCELLED are terminal for the list
    instance; a split spawns a continuation instead of reopening one.
    """

    ENTITY_TYPE = "PickList"
    ALLOWED_TRANSITIONS = {
        PickListStatus.PENDING: [PickListStatus.ASSIGNED, PickListStatus.CANCELLED],
        PickListStatus.ASSIGNED: [
            PickListStatus.IN_PROGRESS, PickListStatus.PAUSED,
            PickListStatus.PARTIALLY_COMPLETED, PickListStatus.CANCELLED,
        ],
        PickListStatus.IN_PROGRESS: [
            PickListStatus.PAUSED, PickListStatus.ASSIGNED, PickListStatus.PARTIALLY_COMPLETED,
            PickListStatus.COMPLETED, PickListStatus.CANCELLED,
        ],
        PickListStatus.PAUSED: [
            PickListStatus.IN_PROGRESS, PickListStatus.ASSIGNED,
            PickListStatus.PARTIALLY_COMPLETED, PickListStatus.CANCELLED,
        ],
        PickListStatus.PARTIALLY_COMPLETED: [],  # Final state
        PickListStatus.COMPLETED: [],  # Final state
        PickListStatus.CANCELLED: [],  # Final state
    }


def validate_order_workflow(order, new_status: str) -> None:
    OrderWorkflow.validate_transition(order, new_status)


def validate_back_order_workflow(back_order, new_status: str) -> None:
    BackOrderWorkflow.validate_transition(back_order, new_status)


def validate_pick_list_workflow(pick_list, new_status: str) -> None:
    PickListWorkflow.validate_transition(pick_list, new_status)
