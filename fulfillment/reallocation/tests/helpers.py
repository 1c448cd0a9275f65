"""
Shared fixture builders for reallocation tests.
"""

from datetime import timedelta
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils import timezone

from inventory.models import Product, StorageLocation, InventoryRecord

from ..models import (
    Order, OrderStatus, OrderLine, BackOrder, BackOrderStatus,
    PickList, PickListStatus, PickListItem, PickListItemStatus,
)


class FulfillmentFixtures:
    """Mixin with factory helpers for orders, pick lists and back orders."""

    def create_staff(self, username, is_staff=False, warehouse=True):
        user = get_user_model().objects.create_user(
            username=username,
            email=f'{username}@example.com',
            password='testpass123',
            is_staff=is_staff,
        )
        if warehouse:
            group, _ = Group.objects.get_or_create(name='warehouse_staff')
            user.groups.add(group)
        return user

    def create_product(self, sku, **kwargs):
        kwargs.setdefault('name', f'Product {sku}')
        return Product.objects.create(sku=sku, **kwargs)

    def create_location(self, code='A-01-01'):
        return StorageLocation.objects.create(code=code, name=f'Bin {code}', zone=code.split('-')[0])

    def create_stock(self, product, location, on_hand, reserved=0):
        return InventoryRecord.objects.create(
            product=product, location=location, quantity_on_hand=on_hand, quantity_reserved=reserved
        )

    def create_order(self, lines, status=OrderStatus.ALLOCATED, **kwargs):
        """lines: iterable of (product, quantity)"""
        order = Order.objects.create(customer_name=kwargs.pop('customer_name', 'Test Customer'), status=status, **kwargs)
        for product, quantity in lines:
            OrderLine.objects.create(order=order, product=product, quantity=quantity)
        return order

    def create_pick_list(self, batch_number, staff, items, status=PickListStatus.IN_PROGRESS, **kwargs):
        """items: iterable of (order, product, location, quantity_to_pick, quantity_picked)"""
        pick_list = PickList.objects.create(
            batch_number=batch_number, assigned_to=staff, status=status, **kwargs
        )
        for sequence, (order, product, location, to_pick, picked) in enumerate(items, start=1):
            PickListItem.objects.create(
                pick_list=pick_list,
                order=order,
                product=product,
                location=location,
                quantity_to_pick=to_pick,
                quantity_picked=picked,
                status=PickListItemStatus.PICKED if picked == to_pick else PickListItemStatus.PENDING,
                sequence=sequence,
            )
        pick_list.refresh_progress()
        pick_list.save()
        return pick_list

    def create_back_order(self, order, product, location, quantity, fulfilled=0,
                          status=BackOrderStatus.PENDING, age_minutes=0):
        line = order.lines.get(product=product)
        return BackOrder.objects.create(
            order=order,
            order_line=line,
            product=product,
            location=location,
            quantity_back_ordered=quantity,
            quantity_fulfilled=fulfilled,
            status=status,
            created_at=timezone.now() - timedelta(minutes=age_minutes),
        )
