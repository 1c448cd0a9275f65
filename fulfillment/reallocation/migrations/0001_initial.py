import decimal
import uuid

import django.core.serializers.json
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("inventory", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "order_number",
                    models.CharField(help_text="Unique order identifier (auto-generated)", max_length=50, unique=True),
                ),
                ("customer_name", models.CharField(blank=True, max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("BACKORDER", "Back Ordered"),
                            ("ALLOCATED", "Allocated"),
                            ("PICKING", "Picking"),
                            ("PICKED", "Picked"),
                            ("PACKED", "Packed"),
                            ("SHIPPED", "Shipped"),
                            ("FULFILLED", "Fulfilled"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        help_text="Current order status in the fulfillment workflow",
                        max_length=20,
                    ),
                ),
                ("has_back_orders", models.BooleanField(default=False)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "picking_assigned_to",
                    models.ForeignKey(
                        blank=True,
                        help_text="Staff member currently holding this order's picking work",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_picking_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="order_status_idx"),
                    models.Index(fields=["picking_assigned_to", "status"], name="order_picker_status_idx"),
                    models.Index(fields=["created_at"], name="order_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLine",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity", models.PositiveIntegerField(help_text="Units ordered")),
                ("unit_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("line_total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="lines",
                        to="reallocation.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_lines",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "ordering": ["order", "created_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "product"), name="order_line_order_product_uniq"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BackOrder",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity_back_ordered", models.PositiveIntegerField()),
                ("quantity_fulfilled", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("ALLOCATED", "Allocated"),
                            ("PICKING", "Picking"),
                            ("PICKED", "Picked"),
                            ("PACKED", "Packed"),
                            ("FULFILLED", "Fulfilled"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("OUT_OF_STOCK", "Out of Stock"),
                            ("INSUFFICIENT_STOCK", "Insufficient Stock"),
                            ("DAMAGED", "Damaged"),
                            ("OTHER", "Other"),
                        ],
                        default="OUT_OF_STOCK",
                        max_length=30,
                    ),
                ),
                ("reason_details", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("allocated_at", models.DateTimeField(blank=True, null=True)),
                ("fulfilled_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "location",
                    models.ForeignKey(
                        help_text="Location whose stock this back order is allocated from",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="back_orders",
                        to="inventory.storagelocation",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="back_orders",
                        to="reallocation.order",
                    ),
                ),
                (
                    "order_line",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="back_order",
                        to="reallocation.orderline",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="back_orders",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["product", "status", "created_at"], name="backorder_fifo_idx"),
                    models.Index(fields=["order", "status"], name="backorder_order_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity_back_ordered__gt", 0)), name="backorder_quantity_positive"
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("quantity_fulfilled__lte", models.F("quantity_back_ordered"))),
                        name="backorder_fulfilled_lte_ordered",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PickList",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("batch_number", models.CharField(help_text="Unique batch identifier", max_length=100, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("ASSIGNED", "Assigned"),
                            ("IN_PROGRESS", "In Progress"),
                            ("PAUSED", "Paused"),
                            ("PARTIALLY_COMPLETED", "Partially Completed"),
                            ("COMPLETED", "Completed"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=30,
                    ),
                ),
                ("priority", models.PositiveIntegerField(default=1, help_text="Lower runs first")),
                ("total_items", models.PositiveIntegerField(default=0)),
                ("picked_items", models.PositiveIntegerField(default=0)),
                ("version", models.PositiveIntegerField(default=1)),
                ("notes", models.TextField(blank=True)),
                ("start_time", models.DateTimeField(blank=True, null=True)),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        help_text="Warehouse staff assigned to this pick list",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_pick_lists",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        help_text="Pick list this one continues after a split reassignment",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="continuations",
                        to="reallocation.picklist",
                    ),
                ),
            ],
            options={
                "ordering": ["priority", "created_at"],
                "indexes": [
                    models.Index(fields=["assigned_to", "status"], name="picklist_staff_status_idx"),
                    models.Index(fields=["status", "priority"], name="picklist_status_priority_idx"),
                    models.Index(fields=["parent"], name="picklist_parent_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PickListItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity_to_pick", models.PositiveIntegerField()),
                ("quantity_picked", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PICKED", "Picked"),
                            ("SHORT_PICK", "Short Pick"),
                            ("SKIPPED", "Skipped"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("sequence", models.PositiveIntegerField(default=0, help_text="Walk order within the list")),
                ("notes", models.TextField(blank=True)),
                ("picked_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "location",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pick_list_items",
                        to="inventory.storagelocation",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pick_list_items",
                        to="reallocation.order",
                    ),
                ),
                (
                    "pick_list",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="reallocation.picklist",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pick_list_items",
                        to="inventory.product",
                    ),
                ),
            ],
            options={
                "ordering": ["pick_list", "sequence", "created_at"],
                "indexes": [
                    models.Index(fields=["pick_list", "status"], name="picklist_item_status_idx"),
                    models.Index(fields=["order"], name="picklist_item_order_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("quantity_picked__lte", models.F("quantity_to_pick"))),
                        name="picklist_item_picked_lte_to_pick",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditEvent",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "subject_type",
                    models.CharField(help_text="Type of entity (PickList, BackOrder, Order, ...)", max_length=50),
                ),
                ("subject_id", models.CharField(help_text="Primary key of the entity", max_length=64)),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("PICK_SPLIT", "Pick List Split"),
                            ("PICK_REASSIGNED", "Pick List Reassigned"),
                            ("PICK_PAUSED", "Pick List Paused"),
                            ("PICK_RECORDED", "Pick Recorded"),
                            ("PICK_ITEM_SKIPPED", "Pick Item Skipped"),
                            ("PICKLIST_COMPLETED", "Pick List Completed"),
                            ("BACKORDER_ALLOCATED", "Back Order Allocated"),
                            ("ORDER_STATUS_CHANGED", "Order Status Changed"),
                            ("STOCK_RECEIVED", "Stock Received"),
                        ],
                        max_length=50,
                    ),
                ),
                ("timestamp", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "payload",
                    models.JSONField(blank=True, default=dict, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                ("notes", models.TextField(blank=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="audit_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["subject_type", "subject_id", "-timestamp"], name="audit_subject_idx"),
                    models.Index(fields=["event_type", "-timestamp"], name="audit_event_type_idx"),
                ],
            },
        ),
    ]
