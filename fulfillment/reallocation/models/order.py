"""
Order and OrderLine models for the Fulfillment Reallocation Engine.
"""

import uuid
from decimal import Decimal
from django.db import models
from django.conf import settings
from django.utils import timezone

from ..exceptions import ImmutableRecordException


class OrderStatus(models.TextChoices):
    """Order status enumeration with workflow states."""
    PENDING = 'PENDING', 'Pending'
    BACKORDER = 'BACKORDER', 'Back Ordered'
    ALLOCATED = 'ALLOCATED', 'Allocated'
    PICKING = 'PICKING', 'Picking'
    PICKED = 'PICKED', 'Picked'
    PACKED = 'PACKED', 'Packed'
    SHIPPED = 'SHIPPED', 'Shipped'
    FULFILLED = 'FULFILLED', 'Fulfilled'
    CANCELLED = 'CANCELLED', 'Cancelled'


class Order(models.Model):
    """
    Customer order moving through allocation, picking and packing.

    Orders are never deleted; the picker reference follows the pick list that
    currently holds the order's remaining work.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(
        max_length=50,
        unique=True,
        help_text="Unique order identifier (auto-generated)"
    )
    customer_name = models.CharField(max_length=255, blank=True)

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        help_text="Current order status in the fulfillment workflow"
    )
    picking_assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_picking_orders',
        help_text="Staff member currently holding this order's picking work"
    )
    has_back_orders = models.BooleanField(default=False)

    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='order_status_idx'),
            models.Index(fields=['picking_assigned_to', 'status'], name='order_picker_status_idx'),
            models.Index(fields=['created_at'], name='order_created_idx'),
        ]

    def __str__(self):
        return f"Order {self.order_number} - {self.status}"

    def save(self, *args, **kwargs):
        """Override save to auto-generate order number if not provided."""
        if not self.order_number:
            timestamp = timezone.now().strftime('%Y%m%d%H%M%S')
            self.order_number = f"ORD-{timestamp}-{str(self.id)[:8].upper()}"
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordException('Order')

    @property
    def is_allocated(self):
        return self.status in [OrderStatus.ALLOCATED, OrderStatus.PICKING, OrderStatus.PICKED,
                               OrderStatus.PACKED, OrderStatus.SHIPPED, OrderStatus.FULFILLED]

    @property
    def can_be_cancelled(self):
        return self.status not in [OrderStatus.SHIPPED, OrderStatus.FULFILLED, OrderStatus.CANCELLED]


class OrderLine(models.Model):
    """
    A product line on an order. Immutable once created.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.PROTECT,
        related_name='lines',
    )
    product = models.ForeignKey(
        'inventory.Product',
        on_delete=models.PROTECT,
        related_name='order_lines',
    )
    quantity = models.PositiveIntegerField(help_text="Units ordered")
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    line_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['order', 'created_at']
        constraints = [
            models.UniqueConstraint(fields=['order', 'product'], name='order_line_order_product_uniq'),
        ]

    def __str__(self):
        return f"{self.product_id} x {self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordException('OrderLine')
        self.line_total = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordException('OrderLine')
