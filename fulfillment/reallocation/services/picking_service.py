"""
Picking Service for the Fulfillment Reallocation Engine.

Records pick progress on individual items and closes pick lists.
"""

import logging
from typing import Dict, Any
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from ..models import (
    PickList, PickListStatus, PickListItem, PickListItemStatus,
    AuditEvent, AuditEventType, TERMINAL_ITEM_STATUSES,
)
from ..exceptions import BusinessException, ValidationException, NotFoundException
from .workflow import validate_pick_list_workflow
from .notifications import notify_after_commit

logger = logging.getLogger(__name__)


class PickingService:
    """Service class for picking operations."""

    @staticmethod
    def _lock_pick_list(pick_list_id) -> PickList:
        try:
            return PickList.objects.select_for_update().get(id=pick_list_id)
        except (PickList.DoesNotExist, DjangoValidationError):
            raise NotFoundException('PickList', pick_list_id, 'PICKLIST_NOT_FOUND')

    @staticmethod
    def _lock_item(item_id, pick_list_id=None):
        """Lock the owning pick list first, then the item (same order as reassignment)."""
        queryset = PickListItem.objects.all()
        try:
            if pick_list_id is not None:
                queryset = queryset.filter(pick_list_id=pick_list_id)
            owner_id = queryset.values_list('pick_list_id', flat=True).get(id=item_id)
        except (PickListItem.DoesNotExist, DjangoValidationError):
            raise NotFoundException('PickListItem', item_id, 'ITEM_NOT_FOUND')

        pick_list = PickingService._lock_pick_list(owner_id)
        item = PickListItem.objects.select_for_update().get(id=item_id)
        if item.pick_list_id != pick_list.id:
            raise BusinessException(
                f"Item {item.id} was moved to another pick list",
                "ITEM_MOVED",
                {'pick_list_id': str(item.pick_list_id)}
            )
        return pick_list, item

    @staticmethod
    def _start_if_needed(pick_list: PickList) -> None:
        if pick_list.status in (PickListStatus.ASSIGNED, PickListStatus.PAUSED):
            validate_pick_list_workflow(pick_list, PickListStatus.IN_PROGRESS)
            pick_list.status = PickListStatus.IN_PROGRESS
            pick_list.start_time = pick_list.start_time or timezone.now()
        elif pick_list.status != PickListStatus.IN_PROGRESS:
            raise BusinessException(
                f"Pick list {pick_list.batch_number} is {pick_list.status} and cannot be picked",
                "PICKLIST_NOT_ACTIVE"
            )

    @staticmethod
    def record_pick(item_id, quantity_picked: int, actor=None, pick_list_id=None) -> Dict[str, Any]:
        """
        Set the picked count of one item.

        Args:
            item_id: PickListItem UUID
            quantity_picked: Total units picked so far for the item
            actor: User recording the pick
            pick_list_id: Optional pick list the item must belong to

        Returns:
            Updated item and list progress

        Raises:
            NotFoundException: If the item does not exist
            ValidationException: If the quantity is out of range or the item is terminal
        """
        with transaction.atomic():
            pick_list, item = PickingService._lock_item(item_id, pick_list_id)

            if item.is_terminal:
                raise ValidationException(
                    f"Item {item.id} is {item.status} and can no longer be picked",
                    {'status': item.status},
                    code='ITEM_TERMINAL'
                )
            if quantity_picked < 0 or quantity_picked > item.quantity_to_pick:
                raise ValidationException(
                    f"Picked quantity must be between 0 and {item.quantity_to_pick}",
                    {'quantity_picked': quantity_picked, 'quantity_to_pick': item.quantity_to_pick},
                    code='INVALID_QUANTITY'
                )

            PickingService._start_if_needed(pick_list)

            previous = item.quantity_picked
            item.quantity_picked = quantity_picked
            if quantity_picked == item.quantity_to_pick:
                item.status = PickListItemStatus.PICKED
                item.picked_at = timezone.now()
            item.save()

            pick_list.refresh_progress()
            pick_list.save(update_fields=['status', 'start_time', 'total_items', 'picked_items', 'updated_at'])

            AuditEvent.record(
                pick_list,
                AuditEventType.PICK_RECORDED,
                actor=actor,
                payload={
                    'item_id': item.id,
                    'previous_quantity': previous,
                    'quantity_picked': quantity_picked,
                    'quantity_to_pick': item.quantity_to_pick,
                    'item_status': item.status,
                },
            )

        logger.info(
            f"Recorded {quantity_picked}/{item.quantity_to_pick} picked for item {item.id} "
            f"on pick list {pick_list.batch_number}"
        )
        return {
            'success': True,
            'item_id': item.id,
            'item_status': item.status,
            'quantity_picked': item.quantity_picked,
            'quantity_to_pick': item.quantity_to_pick,
            'pick_list_status': pick_list.status,
            'progress_percentage': pick_list.progress_percentage,
        }

    @staticmethod
    def skip_item(item_id, actor=None, reason: str = "", pick_list_id=None) -> Dict[str, Any]:
        """
        Give up on an item.

        Nothing picked: the item becomes SKIPPED (terminal). Something picked:
        it becomes SHORT_PICK and stays open for reassignment.
        """
        with transaction.atomic():
            pick_list, item = PickingService._lock_item(item_id, pick_list_id)

            if item.is_terminal:
                raise ValidationException(
                    f"Item {item.id} is already {item.status}",
                    {'status': item.status},
                    code='ITEM_TERMINAL'
                )

            PickingService._start_if_needed(pick_list)

            item.status = PickListItemStatus.SHORT_PICK if item.quantity_picked > 0 else PickListItemStatus.SKIPPED
            if reason:
                item.notes = f"{item.notes}\n{reason}".strip()
            item.save()

            pick_list.refresh_progress()
            pick_list.save(update_fields=['status', 'start_time', 'total_items', 'picked_items', 'updated_at'])

            AuditEvent.record(
                pick_list,
                AuditEventType.PICK_ITEM_SKIPPED,
                actor=actor,
                payload={
                    'item_id': item.id,
                    'item_status': item.status,
                    'quantity_picked': item.quantity_picked,
                    'quantity_to_pick': item.quantity_to_pick,
                },
                notes=reason
            )

        logger.info(f"Item {item.id} on pick list {pick_list.batch_number} marked {item.status}")
        return {
            'success': True,
            'item_id': item.id,
            'item_status': item.status,
            'pick_list_status': pick_list.status,
        }

    @staticmethod
    def complete_pick_list(pick_list_id, actor=None) -> Dict[str, Any]:
        """
        Close an IN_PROGRESS pick list once every item is terminal.

        Raises:
            BusinessException: INCOMPLETE_PICKING if any item is still open
        """
        with transaction.atomic():
            pick_list = PickingService._lock_pick_list(pick_list_id)

            open_items = pick_list.items.exclude(status__in=TERMINAL_ITEM_STATUSES).count()
            if open_items:
                raise BusinessException(
                    f"Pick list {pick_list.batch_number} still has {open_items} open items",
                    "INCOMPLETE_PICKING",
                    {'open_items': open_items}
                )

            validate_pick_list_workflow(pick_list, PickListStatus.COMPLETED)
            pick_list.status = PickListStatus.COMPLETED
            pick_list.end_time = timezone.now()
            pick_list.refresh_progress()
            pick_list.save(update_fields=['status', 'end_time', 'total_items', 'picked_items', 'updated_at'])

            AuditEvent.record(
                pick_list,
                AuditEventType.PICKLIST_COMPLETED,
                actor=actor,
                payload={'total_items': pick_list.total_items, 'picked_items': pick_list.picked_items},
            )
            notify_after_commit('PICK_LIST_COMPLETED', {
                'pick_list_id': str(pick_list.id),
                'staff_id': pick_list.assigned_to_id,
            })

        logger.info(f"Pick list {pick_list.batch_number} completed")
        return {
            'success': True,
            'pick_list_id': pick_list.id,
            'status': pick_list.status,
            'end_time': pick_list.end_time,
        }
