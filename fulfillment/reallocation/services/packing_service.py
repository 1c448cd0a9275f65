"""
Packing Service for the Fulfillment Reallocation Engine.

Works out what still has to go in the box for an order that shipped partially
from stock and partially from back orders.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Optional
from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError

from ..models import Order, OrderLine, BackOrderStatus
from ..exceptions import NotFoundException, NothingToPackException

logger = logging.getLogger(__name__)

GRAMS_TO_OUNCES = Decimal('0.035274')
GRAMS_TO_POUNDS = Decimal('0.00220462')
TWO_PLACES = Decimal('0.01')

DEFAULT_PACKING_SETTINGS = {
    'unit_weight_grams': '94',
    'unit_volume_cubic_inches': '100',
    'medium_box_over_volume': '500',
    'large_box_over_volume': '1000',
    'shipping_cost_per_oz': '0.15',
}

# Back order is being worked on in this shipment
IN_SHIPMENT_STATUSES = [BackOrderStatus.PICKING, BackOrderStatus.PICKED, BackOrderStatus.PACKED]
# Back order is still waiting on stock
AWAITING_STOCK_STATUSES = [BackOrderStatus.PENDING, BackOrderStatus.ALLOCATED]


def _money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _packing_settings() -> Dict[str, Decimal]:
    configured = {**DEFAULT_PACKING_SETTINGS, **getattr(settings, 'PACKING_DEFAULTS', {})}
    return {key: Decimal(str(value)) for key, value in configured.items()}


class PackingService:
    """Service class for packing operations."""

    @staticmethod
    def quantities_for_line(line: OrderLine, back_order=None) -> Dict[str, int]:
        """
        Split an order line into units to pack now and units already shipped.

        Args:
            line: OrderLine
            back_order: The line's BackOrder, or None

        Returns:
            Dict with quantity_to_pack and already_shipped
        """
        if back_order is None:
            return {'quantity_to_pack': line.quantity, 'already_shipped': 0}

        outstanding = back_order.quantity_back_ordered - back_order.quantity_fulfilled

        if back_order.status in IN_SHIPMENT_STATUSES:
            return {'quantity_to_pack': outstanding, 'already_shipped': line.quantity - outstanding}

        if back_order.status in AWAITING_STOCK_STATUSES:
            return {'quantity_to_pack': line.quantity - outstanding, 'already_shipped': 0}

        # FULFILLED
        return {'quantity_to_pack': 0, 'already_shipped': line.quantity}

    @staticmethod
    def compute_packing_plan(order_id) -> Dict[str, Any]:
        """
        Build the packing plan for an order.

        Pure read: calling it twice on unchanged data gives the same plan.

        Args:
            order_id: Order UUID

        Returns:
            Order header, the lines to pack and aggregate packing info

        Raises:
            NotFoundException: ORDER_NOT_FOUND
            NothingToPackException: Every line is shipped or awaiting stock
        """
        try:
            order = Order.objects.get(id=order_id)
        except (Order.DoesNotExist, DjangoValidationError):
            raise NotFoundException('Order', order_id, 'ORDER_NOT_FOUND')

        config = _packing_settings()
        lines = order.lines.select_related('product', 'back_order').order_by('created_at', 'id')

        items = []
        total_weight_grams = Decimal('0')
        total_volume = Decimal('0')

        for line in lines:
            back_order = PackingService._back_order_for(line)
            quantities = PackingService.quantities_for_line(line, back_order)
            quantity_to_pack = quantities['quantity_to_pack']
            if quantity_to_pack <= 0:
                continue

            product = line.product
            unit_weight = product.unit_weight_grams if product.unit_weight_grams else config['unit_weight_grams']
            unit_volume = product.unit_volume or config['unit_volume_cubic_inches']

            total_weight_grams += unit_weight * quantity_to_pack
            total_volume += unit_volume * quantity_to_pack

            items.append({
                'order_line_id': line.id,
                'sku': product.sku,
                'product_name': product.name,
                'quantity': line.quantity,
                'quantity_to_pack': quantity_to_pack,
                'already_shipped': quantities['already_shipped'],
                'back_order_status': back_order.status if back_order else None,
                'unit_weight_grams': _money(unit_weight),
                'unit_weight_oz': _money(unit_weight * GRAMS_TO_OUNCES),
                'unit_price': line.unit_price,
            })

        if not items:
            raise NothingToPackException(order.order_number)

        total_weight_oz = total_weight_grams * GRAMS_TO_OUNCES
        total_weight_lbs = total_weight_grams * GRAMS_TO_POUNDS

        if total_volume > config['large_box_over_volume']:
            suggested_box = 'LARGE'
        elif total_volume > config['medium_box_over_volume']:
            suggested_box = 'MEDIUM'
        else:
            suggested_box = 'SMALL'

        logger.debug(f"Packing plan for order {order.order_number}: {len(items)} lines, {suggested_box} box")
        return {
            'order': {
                'id': order.id,
                'order_number': order.order_number,
                'customer_name': order.customer_name,
                'status': order.status,
                'has_back_orders': order.has_back_orders,
            },
            'items': items,
            'packing_info': {
                'total_weight_grams': _money(total_weight_grams),
                'total_weight_oz': _money(total_weight_oz),
                'total_weight_lbs': _money(total_weight_lbs),
                'total_volume': _money(total_volume),
                'suggested_box': suggested_box,
                'estimated_shipping_cost': _money(total_weight_oz * config['shipping_cost_per_oz']),
            },
        }

    @staticmethod
    def _back_order_for(line: OrderLine) -> Optional[Any]:
        try:
            return line.back_order
        except ObjectDoesNotExist:
            return None
