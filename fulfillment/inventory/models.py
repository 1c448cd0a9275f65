from django.db import models
from django.db.models import F, Q
from django.core.validators import MinValueValidator


class Product(models.Model):
    sku = models.CharField(max_length=100, unique=True, db_index=True)
    name = models.CharField(max_length=255)
    unit_weight_grams = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    length_in = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    width_in = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    height_in = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        verbose_name = "Product"
        verbose_name_plural = "Products"
        ordering = ["sku"]

    def __str__(self):
        return f"{self.sku} - {self.name}"

    @property
    def unit_volume(self):
        """Cubic inches per unit, or None when any dimension is missing"""
        if self.length_in and self.width_in and self.height_in:
            return self.length_in * self.width_in * self.height_in
        return None


class StorageLocation(models.Model):
    code = models.CharField(max_length=50, unique=True, db_index=True)
    name = models.CharField(max_length=200)
    zone = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "storage_locations"
        verbose_name = "Storage Location"
        verbose_name_plural = "Storage Locations"
        ordering = ["code"]

    def __str__(self):
        return f"{self.code} - {self.name}"


class InventoryRecord(models.Model):
    """
    On-hand and reserved counters for one product at one location.

    Every write goes through StockService under a row lock; the check
    constraints are the last line against over-reservation.
    """

    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="inventory_records")
    location = models.ForeignKey(StorageLocation, on_delete=models.PROTECT, related_name="inventory_records")
    quantity_on_hand = models.PositiveIntegerField(default=0)
    quantity_reserved = models.PositiveIntegerField(default=0)
    last_movement_date = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "inventory_records"
        verbose_name = "Inventory Record"
        verbose_name_plural = "Inventory Records"
        constraints = [
            models.UniqueConstraint(fields=["product", "location"], name="inventory_record_product_location_uniq"),
            models.CheckConstraint(condition=Q(quantity_reserved__gte=0), name="inventory_reserved_non_negative"),
            models.CheckConstraint(
                condition=Q(quantity_reserved__lte=F("quantity_on_hand")),
                name="inventory_reserved_lte_on_hand",
            ),
        ]
        indexes = [
            models.Index(fields=["product"], name="inv_record_product_idx"),
            models.Index(fields=["location"], name="inv_record_location_idx"),
        ]

    def __str__(self):
        return f"{self.product.sku} at {self.location.code} - {self.quantity_on_hand} ({self.quantity_reserved} reserved)"

    @property
    def quantity_available(self):
        return self.quantity_on_hand - self.quantity_reserved
