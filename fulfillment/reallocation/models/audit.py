"""
Append-only audit log for the Fulfillment Reallocation Engine.
"""

import logging
import uuid
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models, transaction, DatabaseError
from django.conf import settings
from django.utils import timezone

from ..exceptions import ImmutableRecordException

logger = logging.getLogger(__name__)


class AuditEventType(models.TextChoices):
    PICK_SPLIT = 'PICK_SPLIT', 'Pick List Split'
    PICK_REASSIGNED = 'PICK_REASSIGNED', 'Pick List Reassigned'
    PICK_PAUSED = 'PICK_PAUSED', 'Pick List Paused'
    PICK_RECORDED = 'PICK_RECORDED', 'Pick Recorded'
    PICK_ITEM_SKIPPED = 'PICK_ITEM_SKIPPED', 'Pick Item Skipped'
    PICKLIST_COMPLETED = 'PICKLIST_COMPLETED', 'Pick List Completed'
    BACKORDER_ALLOCATED = 'BACKORDER_ALLOCATED', 'Back Order Allocated'
    ORDER_STATUS_CHANGED = 'ORDER_STATUS_CHANGED', 'Order Status Changed'
    STOCK_RECEIVED = 'STOCK_RECEIVED', 'Stock Received'


class AuditEventQuerySet(models.QuerySet):

    def update(self, **kwargs):
        raise ImmutableRecordException('AuditEvent')

    def delete(self):
        raise ImmutableRecordException('AuditEvent')


class AuditEvent(models.Model):
    """
    One state transition, recorded once and never touched again.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    subject_type = models.CharField(
        max_length=50,
        help_text="Type of entity (PickList, BackOrder, Order, ...)"
    )
    subject_id = models.CharField(max_length=64, help_text="Primary key of the entity")
    event_type = models.CharField(max_length=50, choices=AuditEventType.choices)

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_events',
    )

    timestamp = models.DateTimeField(default=timezone.now)
    payload = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    notes = models.TextField(blank=True)

    objects = AuditEventQuerySet.as_manager()

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['subject_type', 'subject_id', '-timestamp'], name='audit_subject_idx'),
            models.Index(fields=['event_type', '-timestamp'], name='audit_event_type_idx'),
        ]

    def __str__(self):
        return f"{self.subject_type} {self.subject_id} - {self.event_type} by {self.actor_id} at {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ImmutableRecordException('AuditEvent')
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ImmutableRecordException('AuditEvent')

    @classmethod
    def record(cls, subject, event_type: str, actor=None, payload=None, notes=""):
        """
        Append an audit event for `subject`.

        Best-effort: the insert runs in its own savepoint and a store failure
        is logged and swallowed so it never fails the caller's transaction.

        Returns:
            The created AuditEvent, or None if the write failed
        """
        try:
            with transaction.atomic():
                return cls.objects.create(
                    subject_type=subject.__class__.__name__,
                    subject_id=str(subject.pk),
                    event_type=event_type,
                    actor=actor if getattr(actor, 'pk', None) else None,
                    payload=payload or {},
                    notes=notes,
                )
        except DatabaseError:
            logger.exception(f"Failed to write {event_type} audit event for {subject.__class__.__name__} {subject.pk}")
            return None
