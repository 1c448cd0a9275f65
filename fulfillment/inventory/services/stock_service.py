import logging

from django.db import transaction
from django.db.models import F, Sum

from inventory.exceptions import InventoryLedgerException
from inventory.models import InventoryRecord

logger = logging.getLogger(__name__)


class StockService:
    """
    Ledger writes for InventoryRecord rows.

    Callers that need the availability read and the reservation write to be
    linearized must hold one transaction around lock_record() and
    reserve_stock(); both take the same row lock.
    """

    def lock_record(self, product_id, location_id):
        """
        Lock and return the record for (product, location).

        Must run inside transaction.atomic(). Returns None when no stock row
        exists yet.
        """
        return (
            InventoryRecord.objects.select_for_update()
            .filter(product_id=product_id, location_id=location_id)
            .first()
        )

    @transaction.atomic
    def receive_stock(self, product_id, location_id, quantity):
        """
        Add received units to on-hand, creating the record if needed.

        Args:
            product_id: Product primary key
            location_id: StorageLocation primary key
            quantity: Units received (must be positive)

        Returns:
            InventoryRecord instance
        """
        if quantity <= 0:
            raise InventoryLedgerException(
                f"Received quantity must be positive, got {quantity}", "INVALID_QUANTITY", {"quantity": quantity}
            )

        record, created = InventoryRecord.objects.select_for_update().get_or_create(
            product_id=product_id, location_id=location_id, defaults={"quantity_on_hand": quantity}
        )

        if not created:
            record.quantity_on_hand = F("quantity_on_hand") + quantity
            record.save(update_fields=["quantity_on_hand", "last_movement_date"])
            record.refresh_from_db()

        logger.info(f"Received {quantity} units of product {product_id} at location {location_id}")
        return record

    @transaction.atomic
    def reserve_stock(self, record, quantity):
        """
        Reserve units on an already-locked record.

        Raises:
            InventoryLedgerException: If fewer than `quantity` units are available
        """
        locked = InventoryRecord.objects.select_for_update().get(pk=record.pk)
        if quantity <= 0 or locked.quantity_available < quantity:
            raise InventoryLedgerException(
                f"Cannot reserve {quantity} units, only {locked.quantity_available} available",
                "INSUFFICIENT_STOCK",
                {"requested": quantity, "available": locked.quantity_available},
            )

        locked.quantity_reserved = F("quantity_reserved") + quantity
        locked.save(update_fields=["quantity_reserved", "last_movement_date"])
        locked.refresh_from_db()
        record.quantity_reserved = locked.quantity_reserved
        return locked

    @transaction.atomic
    def release_stock(self, product_id, location_id, quantity):
        """
        Release previously reserved units.

        Raises:
            InventoryLedgerException: If the release exceeds what is reserved
        """
        record = self.lock_record(product_id, location_id)
        if record is None or quantity <= 0 or record.quantity_reserved < quantity:
            reserved = record.quantity_reserved if record else 0
            raise InventoryLedgerException(
                f"Cannot release {quantity} units, only {reserved} reserved",
                "INVALID_RELEASE",
                {"requested": quantity, "reserved": reserved},
            )

        record.quantity_reserved = F("quantity_reserved") - quantity
        record.save(update_fields=["quantity_reserved", "last_movement_date"])
        record.refresh_from_db()
        return record

    def get_available(self, product_id, location_id):
        """Unlocked availability read, for projections only"""
        record = InventoryRecord.objects.filter(product_id=product_id, location_id=location_id).first()
        return record.quantity_available if record else 0

    def get_stock_by_product(self, product_id):
        """
        Get all records for a product with totals.

        Returns:
            Dict with records queryset and on-hand/reserved/available totals
        """
        records = InventoryRecord.objects.filter(product_id=product_id).select_related("location")
        totals = records.aggregate(on_hand=Sum("quantity_on_hand"), reserved=Sum("quantity_reserved"))
        on_hand = totals["on_hand"] or 0
        reserved = totals["reserved"] or 0
        return {
            "records": records,
            "total_on_hand": on_hand,
            "total_reserved": reserved,
            "total_available": on_hand - reserved,
        }
