"""
Back-order queue for the Fulfillment Reallocation Engine.
"""

import uuid
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from ..exceptions import ImmutableRecordException


class BackOrderStatus(models.TextChoices):
    """Back order lifecycle."""
    PENDING = 'PENDING', 'Pending'
    ALLOCATED = 'ALLOCATED', 'Allocated'
    PICKING = 'PICKING', 'Picking'
    PICKED = 'PICKED', 'Picked'
    PACKED = 'PACKED', 'Packed'
    FULFILLED = 'FULFILLED', 'Fulfilled'


class BackOrderReason(models.TextChoices):
    OUT_OF_STOCK = 'OUT_OF_STOCK', 'Out of Stock'
    INSUFFICIENT_STOCK = 'INSUFFICIENT_STOCK', 'Insufficient Stock'
    DAMAGED = 'DAMAGED', 'Damaged'
    OTHER = 'OTHER', 'Other'


class BackOrderQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=BackOrderStatus.PENDING)

    def fifo(self):
        """Oldest claim first; id breaks created_at ties."""
        return self.order_by('created_at', 'id')

    def queued_for(self, product_id, location_id):
        return self.pending().filter(product_id=product_id, location_id=location_id).fifo()


class BackOrder(models.Model):
    """
    The unfulfilled portion of one order line.

    Created when the line cannot be satisfied from stock, then only ever
    transitioned forward. created_at is the FIFO key for allocation.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        'Order',
        on_delete=models.PROTECT,
        related_name='back_orders',
    )
    order_line = models.OneToOneField(
        'OrderLine',
        on_delete=models.PROTECT,
        related_name='back_order',
    )
    product = models.ForeignKey(
        'inventory.Product',
        on_delete=models.PROTECT,
        related_name='back_orders',
    )
    location = models.ForeignKey(
        'inventory.StorageLocation',
        on_delete=models.PROTECT,
        related_name='back_orders',
        help_text="Location whose stock this back order is allocated from"
    )

    quantity_back_ordered = models.PositiveIntegerField()
    quantity_fulfilled = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=BackOrderStatus.choices,
        default=BackOrderStatus.PENDING,
    )
    reason = models.CharField(
        max_length=30,
        choices=BackOrderReason.choices,
        default=BackOrderReason.OUT_OF_STOCK,
    )
    reason_details = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    allocated_at = models.DateTimeField(null=True, blank=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BackOrderQuerySet.as_manager()

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['product', 'status', 'created_at'], name='backorder_fifo_idx'),
            models.Index(fields=['order', 'status'], name='backorder_order_status_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_back_ordered__gt=0),
                name='backorder_quantity_positive',
            ),
            models.CheckConstraint(
                condition=Q(quantity_fulfilled__lte=F('quantity_back_ordered')),
                name='backorder_fulfilled_lte_ordered',
            ),
        ]

    def __str__(self):
        return f"BackOrder {self.id} - {self.quantity_back_ordered} units ({self.status})"

    def delete(self, *args, **kwargs):
        raise ImmutableRecordException('BackOrder')

    @property
    def remaining_needed(self):
        return self.quantity_back_ordered - self.quantity_fulfilled
