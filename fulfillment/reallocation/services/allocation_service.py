"""
Allocation Service for the Fulfillment Reallocation Engine.

Matches available inventory to queued back orders, oldest claim first.
"""

import logging
from typing import List, Dict, Any
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction, DatabaseError
from django.utils import timezone

from inventory.exceptions import InventoryLedgerException
from inventory.models import InventoryRecord
from inventory.services.stock_service import StockService

from ..models import (
    Order, OrderStatus, BackOrder, BackOrderStatus, AuditEvent, AuditEventType
)
from ..exceptions import BusinessException, NotFoundException, AlreadyProcessedException
from .workflow import validate_order_workflow, validate_back_order_workflow
from .notifications import notify_after_commit

logger = logging.getLogger(__name__)


class AllocationService:
    """Service class for back-order allocation."""

    @staticmethod
    def fulfill_one(back_order_id, actor=None) -> Dict[str, Any]:
        """
        Allocate stock to one back order, all or nothing.

        The back order row and the InventoryRecord row for its
        (product, location) are locked in this order inside one transaction,
        so two calls racing for the same SKU linearize on the stock row.

        Args:
            back_order_id: BackOrder UUID
            actor: User triggering the allocation

        Returns:
            Result dict; `success` is False with code INSUFFICIENT_STOCK when
            the location cannot cover the whole remaining quantity

        Raises:
            NotFoundException: If the back order does not exist
            AlreadyProcessedException: If the back order is no longer PENDING
            InventoryLedgerException: If the ledger refuses the reservation
        """
        stock_service = StockService()

        with transaction.atomic():
            try:
                back_order = BackOrder.objects.select_for_update().get(id=back_order_id)
            except (BackOrder.DoesNotExist, DjangoValidationError):
                raise NotFoundException('BackOrder', back_order_id, 'BACKORDER_NOT_FOUND')

            if back_order.status != BackOrderStatus.PENDING:
                raise AlreadyProcessedException(back_order.id, back_order.status)

            needed = back_order.remaining_needed
            record = stock_service.lock_record(back_order.product_id, back_order.location_id)
            available = record.quantity_available if record else 0

            if available < needed:
                logger.info(
                    f"Back order {back_order.id} needs {needed} units, only {available} available "
                    f"at location {back_order.location_id}"
                )
                return {
                    'success': False,
                    'back_order_id': back_order.id,
                    'code': 'INSUFFICIENT_STOCK',
                    'needed': needed,
                    'available': available,
                    'reserved_qty': 0,
                }

            if needed > 0:
                stock_service.reserve_stock(record, needed)

            validate_back_order_workflow(back_order, BackOrderStatus.ALLOCATED)
            back_order.status = BackOrderStatus.ALLOCATED
            back_order.quantity_fulfilled = back_order.quantity_back_ordered
            back_order.allocated_at = timezone.now()
            back_order.save(update_fields=['status', 'quantity_fulfilled', 'allocated_at', 'updated_at'])

            all_allocated = AllocationService._release_order_if_complete(back_order.order_id, actor)

            AuditEvent.record(
                back_order,
                AuditEventType.BACKORDER_ALLOCATED,
                actor=actor,
                payload={
                    'order_id': back_order.order_id,
                    'product_id': back_order.product_id,
                    'location_id': back_order.location_id,
                    'reserved_qty': needed,
                    'available_before': available,
                },
                notes=f"Back order allocation - reserved {needed} units"
            )
            notify_after_commit('BACKORDER_ALLOCATED', {
                'back_order_id': str(back_order.id),
                'order_id': str(back_order.order_id),
                'reserved_qty': needed,
                'all_allocated': all_allocated,
            })

        logger.info(f"Back order {back_order.id} allocated {needed} units")
        return {
            'success': True,
            'back_order_id': back_order.id,
            'reserved_qty': needed,
            'location_id': back_order.location_id,
            'all_allocated': all_allocated,
        }

    @staticmethod
    def _release_order_if_complete(order_id, actor) -> bool:
        """
        Move the parent order out of BACKORDER once no back order is PENDING.

        Returns:
            True when every back order of the order is allocated or beyond
        """
        order = Order.objects.select_for_update().get(id=order_id)

        if BackOrder.objects.filter(order_id=order_id, status=BackOrderStatus.PENDING).exists():
            logger.info(f"Order {order.order_number} still has pending back orders")
            return False

        old_status = order.status
        if order.status == OrderStatus.BACKORDER:
            validate_order_workflow(order, OrderStatus.ALLOCATED)
            order.status = OrderStatus.ALLOCATED
        order.has_back_orders = False
        order.save(update_fields=['status', 'has_back_orders', 'updated_at'])

        if old_status != order.status:
            AuditEvent.record(
                order,
                AuditEventType.ORDER_STATUS_CHANGED,
                actor=actor,
                payload={'old_status': old_status, 'new_status': order.status},
                notes="All back orders allocated - ready for picking"
            )
        return True

    @staticmethod
    def fulfill_batch(back_order_ids: List, actor=None) -> List[Dict[str, Any]]:
        """
        Run fulfill_one for each id in its own transaction.

        A failing id never rolls back the others; partial success is the
        expected outcome.

        Returns:
            One result dict per id, in input order
        """
        results = []

        for back_order_id in back_order_ids:
            try:
                result = AllocationService.fulfill_one(back_order_id, actor)
            except (BusinessException, InventoryLedgerException) as e:
                result = {
                    'success': False,
                    'back_order_id': back_order_id,
                    'code': e.code,
                    'message': e.message,
                }
            except DatabaseError as e:
                logger.exception(f"Store failure while allocating back order {back_order_id}")
                result = {
                    'success': False,
                    'back_order_id': back_order_id,
                    'code': 'TRANSACTION_ABORTED',
                    'message': str(e),
                }
            results.append(result)

        succeeded = sum(1 for result in results if result['success'])
        logger.info(f"Batch allocation: {succeeded}/{len(results)} back orders allocated")
        return results

    @staticmethod
    def group_by_order(status: str = None) -> List[Dict[str, Any]]:
        """
        Read-only triage view of back orders grouped under their order.

        Demand is accumulated per (product, location) inside each group, so
        `can_fulfill_all` is False when two back orders of one order compete
        for the same stock.

        Args:
            status: Optional BackOrderStatus filter

        Returns:
            Groups ordered by their oldest back order
        """
        queryset = BackOrder.objects.select_related('order', 'product', 'location').fifo()
        if status:
            queryset = queryset.filter(status=status)
        back_orders = list(queryset)

        product_ids = {bo.product_id for bo in back_orders}
        location_ids = {bo.location_id for bo in back_orders}
        availability = {
            (record.product_id, record.location_id): record.quantity_available
            for record in InventoryRecord.objects.filter(
                product_id__in=product_ids, location_id__in=location_ids
            )
        }

        groups = {}
        for bo in back_orders:
            group = groups.get(bo.order_id)
            if group is None:
                group = groups[bo.order_id] = {
                    'order_id': bo.order_id,
                    'order_number': bo.order.order_number,
                    'customer_name': bo.order.customer_name,
                    'order_status': bo.order.status,
                    'back_orders': [],
                    'total_units_needed': 0,
                    'can_fulfill_all': True,
                    'demand': {},
                }

            key = (bo.product_id, bo.location_id)
            available = availability.get(key, 0)
            needed = bo.remaining_needed if bo.status == BackOrderStatus.PENDING else 0
            group['demand'][key] = group['demand'].get(key, 0) + needed

            group['back_orders'].append({
                'id': bo.id,
                'sku': bo.product.sku,
                'product_name': bo.product.name,
                'location_code': bo.location.code,
                'quantity_back_ordered': bo.quantity_back_ordered,
                'quantity_fulfilled': bo.quantity_fulfilled,
                'remaining_needed': needed,
                'status': bo.status,
                'reason': bo.reason,
                'created_at': bo.created_at,
                'available_inventory': available,
                'can_fulfill': available >= needed,
            })
            group['total_units_needed'] += needed
            if group['demand'][key] > available:
                group['can_fulfill_all'] = False

        for group in groups.values():
            del group['demand']
        return list(groups.values())

    @staticmethod
    def allocate_on_receipt(product_id, location_id, actor=None) -> Dict[str, Any]:
        """
        FIFO scan of PENDING back orders after stock arrives.

        Stops at the first back order that cannot be covered so a younger
        claim never overtakes an older one.
        """
        queued_ids = list(
            BackOrder.objects.queued_for(product_id, location_id).values_list('id', flat=True)
        )

        results = []
        for back_order_id in queued_ids:
            try:
                result = AllocationService.fulfill_one(back_order_id, actor)
            except AlreadyProcessedException:
                # Another caller allocated it between the scan and the lock
                continue
            except InventoryLedgerException as e:
                logger.warning(f"Ledger refused reservation for back order {back_order_id}: {e.code}")
                result = {
                    'success': False,
                    'back_order_id': back_order_id,
                    'code': e.code,
                    'message': e.message,
                }
            results.append(result)
            if not result['success']:
                break

        allocated = sum(1 for result in results if result['success'])
        logger.info(
            f"Receipt scan for product {product_id} at location {location_id}: "
            f"{allocated} of {len(queued_ids)} queued back orders allocated"
        )
        return {
            'product_id': product_id,
            'location_id': location_id,
            'queued': len(queued_ids),
            'allocated': allocated,
            'results': results,
        }

    @staticmethod
    def receive_stock(product_id, location_id, quantity: int, actor=None, auto_allocate: bool = True) -> Dict[str, Any]:
        """
        Book received units, then run the FIFO allocation scan.

        The receipt commits on its own before any allocation starts.
        """
        with transaction.atomic():
            record = StockService().receive_stock(product_id, location_id, quantity)
            AuditEvent.record(
                record,
                AuditEventType.STOCK_RECEIVED,
                actor=actor,
                payload={
                    'product_id': product_id,
                    'location_id': location_id,
                    'quantity': quantity,
                    'quantity_on_hand': record.quantity_on_hand,
                },
            )

        result = {
            'product_id': product_id,
            'location_id': location_id,
            'quantity_received': quantity,
            'quantity_on_hand': record.quantity_on_hand,
            'allocation': None,
        }
        if auto_allocate:
            result['allocation'] = AllocationService.allocate_on_receipt(product_id, location_id, actor)
        return result
