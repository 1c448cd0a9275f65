"""
Pick list models for the Fulfillment Reallocation Engine.
"""

import uuid
from django.db import models
from django.db.models import F, Q
from django.conf import settings
from django.utils import timezone

from ..exceptions import ImmutableRecordException


class PickListStatus(models.TextChoices):
    """Pick list status enumeration."""
    PENDING = 'PENDING', 'Pending'
    ASSIGNED = 'ASSIGNED', 'Assigned'
    IN_PROGRESS = 'IN_PROGRESS', 'In Progress'
    PAUSED = 'PAUSED', 'Paused'
    PARTIALLY_COMPLETED = 'PARTIALLY_COMPLETED', 'Partially Completed'
    COMPLETED = 'COMPLETED', 'Completed'
    CANCELLED = 'CANCELLED', 'Cancelled'


# Lists that still hold someone's unfinished work
INCOMPLETE_PICKLIST_STATUSES = [PickListStatus.ASSIGNED, PickListStatus.IN_PROGRESS, PickListStatus.PAUSED]
ACTIVE_PICKLIST_STATUSES = [PickListStatus.ASSIGNED, PickListStatus.IN_PROGRESS]


class PickListItemStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    PICKED = 'PICKED', 'Picked'
    SHORT_PICK = 'SHORT_PICK', 'Short Pick'
    SKIPPED = 'SKIPPED', 'Skipped'


TERMINAL_ITEM_STATUSES = [PickListItemStatus.PICKED, PickListItemStatus.SKIPPED]


class ReassignmentReason(models.TextChoices):
    """Why a manager moved work off a picker."""
    STAFF_UNAVAILABLE = 'STAFF_UNAVAILABLE', 'Staff Unavailable'
    SHIFT_CHANGE = 'SHIFT_CHANGE', 'Shift Change'
    WORKLOAD_BALANCE = 'WORKLOAD_BALANCE', 'Workload Balance'
    EMERGENCY = 'EMERGENCY', 'Emergency'
    SKILL_MISMATCH = 'SKILL_MISMATCH', 'Skill Mismatch'
    EQUIPMENT_ISSUE = 'EQUIPMENT_ISSUE', 'Equipment Issue'
    PERFORMANCE_ISSUE = 'PERFORMANCE_ISSUE', 'Performance Issue'
    OTHER = 'OTHER', 'Other'


class PickList(models.Model):
    """
    A batch of pick tasks assigned to one staff member.

    A SPLIT reassignment closes this list and spawns a continuation whose
    parent_id points back here, so the lists form a tree walked by id.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    batch_number = models.CharField(
        max_length=100,
        unique=True,
        help_text="Unique batch identifier"
    )

    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_pick_lists',
        help_text="Warehouse staff assigned to this pick list"
    )

    status = models.CharField(
        max_length=30,
        choices=PickListStatus.choices,
        default=PickListStatus.PENDING,
    )
    priority = models.PositiveIntegerField(default=1, help_text="Lower runs first")

    parent = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='continuations',
        help_text="Pick list this one continues after a split reassignment"
    )

    # Progress tracking
    total_items = models.PositiveIntegerField(default=0)
    picked_items = models.PositiveIntegerField(default=0)

    # Optimistic concurrency counter, bumped on every reassignment or pause
    version = models.PositiveIntegerField(default=1)

    notes = models.TextField(blank=True)

    start_time = models.DateTimeField(null=True, blank=True)
    end_time = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['priority', 'created_at']
        indexes = [
            models.Index(fields=['assigned_to', 'status'], name='picklist_staff_status_idx'),
            models.Index(fields=['status', 'priority'], name='picklist_status_priority_idx'),
            models.Index(fields=['parent'], name='picklist_parent_idx'),
        ]

    def __str__(self):
        return f"Pick List {self.batch_number} - {self.status}"

    def refresh_progress(self):
        """Recount items and terminal items from the database."""
        items = self.items.all()
        self.total_items = items.count()
        self.picked_items = items.filter(status__in=TERMINAL_ITEM_STATUSES).count()

    @property
    def progress_percentage(self):
        if self.total_items == 0:
            return 100.0
        return (self.picked_items / self.total_items) * 100.0


class PickListItem(models.Model):
    """
    One location/product pick task inside a pick list.

    Once PICKED or SKIPPED the item is terminal and quantity_to_pick is frozen.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    pick_list = models.ForeignKey(
        PickList,
        on_delete=models.PROTECT,
        related_name='items',
    )
    order = models.ForeignKey(
        'Order',
        on_delete=models.PROTECT,
        related_name='pick_list_items',
    )
    product = models.ForeignKey(
        'inventory.Product',
        on_delete=models.PROTECT,
        related_name='pick_list_items',
    )
    location = models.ForeignKey(
        'inventory.StorageLocation',
        on_delete=models.PROTECT,
        related_name='pick_list_items',
    )

    quantity_to_pick = models.PositiveIntegerField()
    quantity_picked = models.PositiveIntegerField(default=0)

    status = models.CharField(
        max_length=20,
        choices=PickListItemStatus.choices,
        default=PickListItemStatus.PENDING,
    )
    sequence = models.PositiveIntegerField(default=0, help_text="Walk order within the list")
    notes = models.TextField(blank=True)

    picked_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['pick_list', 'sequence', 'created_at']
        indexes = [
            models.Index(fields=['pick_list', 'status'], name='picklist_item_status_idx'),
            models.Index(fields=['order'], name='picklist_item_order_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(quantity_picked__lte=F('quantity_to_pick')),
                name='picklist_item_picked_lte_to_pick',
            ),
        ]

    def __str__(self):
        return f"Picking {self.quantity_picked}/{self.quantity_to_pick} of {self.product_id}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_status = instance.__dict__.get('status')
        instance._loaded_quantity_to_pick = instance.__dict__.get('quantity_to_pick')
        return instance

    def save(self, *args, **kwargs):
        loaded_status = getattr(self, '_loaded_status', None)
        if (
            loaded_status in TERMINAL_ITEM_STATUSES
            and self.quantity_to_pick != self._loaded_quantity_to_pick
        ):
            raise ImmutableRecordException('Terminal PickListItem')
        super().save(*args, **kwargs)
        self._loaded_status = self.status
        self._loaded_quantity_to_pick = self.quantity_to_pick

    @property
    def remaining_to_pick(self):
        return self.quantity_to_pick - self.quantity_picked

    @property
    def is_terminal(self):
        return self.status in TERMINAL_ITEM_STATUSES

    @property
    def is_partial(self):
        return not self.is_terminal and 0 < self.quantity_picked < self.quantity_to_pick

    @property
    def is_untouched(self):
        return not self.is_terminal and self.quantity_picked == 0 and self.quantity_to_pick > 0
