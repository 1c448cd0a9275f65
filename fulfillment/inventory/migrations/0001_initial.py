import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sku", models.CharField(db_index=True, max_length=100, unique=True)),
                ("name", models.CharField(max_length=255)),
                (
                    "unit_weight_grams",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=10,
                        null=True,
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                ("length_in", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("width_in", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("height_in", models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Product",
                "verbose_name_plural": "Products",
                "db_table": "products",
                "ordering": ["sku"],
            },
        ),
        migrations.CreateModel(
            name="StorageLocation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(db_index=True, max_length=50, unique=True)),
                ("name", models.CharField(max_length=200)),
                ("zone", models.CharField(blank=True, max_length=50)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Storage Location",
                "verbose_name_plural": "Storage Locations",
                "db_table": "storage_locations",
                "ordering": ["code"],
            },
        ),
        migrations.CreateModel(
            name="InventoryRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity_on_hand", models.PositiveIntegerField(default=0)),
                ("quantity_reserved", models.PositiveIntegerField(default=0)),
                ("last_movement_date", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_records",
                        to="inventory.storagelocation",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_records",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "verbose_name": "Inventory Record",
                "verbose_name_plural": "Inventory Records",
                "db_table": "inventory_records",
                "indexes": [
                    models.Index(fields=["product"], name="inv_record_product_idx"),
                    models.Index(fields=["location"], name="inv_record_location_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "location"), name="inventory_record_product_location_uniq"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_reserved__gte", 0)), name="inventory_reserved_non_negative"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_reserved__lte", models.F("quantity_on_hand"))),
                        name="inventory_reserved_lte_on_hand",
                    ),
                ],
            },
        ),
    ]
