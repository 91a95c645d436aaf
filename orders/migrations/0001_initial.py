import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("wallets", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=200)),
                ("price", models.BigIntegerField()),
                ("stock", models.IntegerField(default=0)),
                ("origin_lat", models.FloatField()),
                ("origin_lon", models.FloatField()),
                (
                    "seller",
                    models.ForeignKey(
                        limit_choices_to={"role": "SELLER"},
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="products",
                        to="wallets.account",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "abstract": False,
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "checkout_ref",
                    models.UUIDField(
                        db_index=True,
                        editable=False,
                        help_text="Shared by every order created in the same checkout.",
                    ),
                ),
                (
                    "driver_name",
                    models.CharField(blank=True, default="", max_length=120),
                ),
                ("product_name", models.CharField(max_length=200)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.BigIntegerField()),
                ("distance_km", models.FloatField()),
                ("shipping_fee", models.BigIntegerField()),
                ("buyer_service_fee", models.BigIntegerField()),
                ("total_charged_to_buyer", models.BigIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("CONFIRMED", "Confirmed by seller"),
                            ("DRIVER_EN_ROUTE_PICKUP", "Driver en route to pickup"),
                            ("IN_TRANSIT", "In transit"),
                            ("COMPLETED", "Completed"),
                        ],
                        default="PENDING",
                        max_length=24,
                    ),
                ),
                (
                    "delivery_address",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                ("delivery_lat", models.FloatField()),
                ("delivery_lon", models.FloatField()),
                ("settled", models.BooleanField(default=False, editable=False)),
                (
                    "settled_at",
                    models.DateTimeField(blank=True, editable=False, null=True),
                ),
                (
                    "buyer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to="wallets.account",
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="sales",
                        to="wallets.account",
                    ),
                ),
                (
                    "driver",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="deliveries",
                        to="wallets.account",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="orders.product",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "abstract": False,
            },
        ),
        migrations.AddConstraint(
            model_name="product",
            constraint=models.CheckConstraint(
                condition=models.Q(("stock__gte", 0)),
                name="product_stock_non_negative",
            ),
        ),
        migrations.AddConstraint(
            model_name="product",
            constraint=models.CheckConstraint(
                condition=models.Q(("price__gte", 0)),
                name="product_price_non_negative",
            ),
        ),
        migrations.AddConstraint(
            model_name="order",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    (
                        "total_charged_to_buyer",
                        models.F("unit_price") * models.F("quantity")
                        + models.F("shipping_fee")
                        + models.F("buyer_service_fee"),
                    )
                ),
                name="order_total_consistent",
            ),
        ),
        migrations.AddConstraint(
            model_name="order",
            constraint=models.CheckConstraint(
                condition=models.Q(
                    ("settled", False), ("status", "COMPLETED"), _connector="OR"
                ),
                name="order_settled_only_when_completed",
            ),
        ),
        migrations.AddIndex(
            model_name="order",
            index=models.Index(fields=["status", "driver"], name="idx_status_driver"),
        ),
    ]
