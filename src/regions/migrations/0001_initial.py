from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="RegionalLicensee",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("legal_entity_name", models.CharField(blank=True, default="", max_length=255)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("revenue_share_percent", models.DecimalField(
                    decimal_places=2,
                    default=Decimal("0.00"),
                    max_digits=5,
                    validators=[
                        django.core.validators.MinValueValidator(Decimal("0")),
                        django.core.validators.MaxValueValidator(Decimal("100")),
                    ],
                )),
                ("agreement_start_date", models.DateField()),
                ("agreement_end_date", models.DateField(blank=True, null=True)),
                ("status", models.CharField(
                    choices=[("ACTIVE", "Active"), ("SUSPENDED", "Suspended"), ("TERMINATED", "Terminated")],
                    db_index=True, default="ACTIVE", max_length=20,
                )),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Region",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("name", models.CharField(max_length=255)),
                ("code", models.CharField(max_length=20, unique=True)),
                ("country", models.CharField(blank=True, default="", max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                ("licensee", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="regions", to="regions.regionallicensee",
                )),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Settlement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("period_start", models.DateField()),
                ("period_end", models.DateField()),
                ("total_revenue", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("licensee_share", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("hrm8_share", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("status", models.CharField(
                    choices=[("PENDING", "Pending"), ("PAID", "Paid")],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("generated_at", models.DateTimeField()),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("payment_reference", models.CharField(blank=True, default="", max_length=255)),
                ("licensee", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="settlements", to="regions.regionallicensee",
                )),
            ],
            options={"ordering": ["-generated_at"]},
        ),
        migrations.CreateModel(
            name="RegionalRevenue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("period_start", models.DateField()),
                ("period_end", models.DateField()),
                ("total_revenue", models.DecimalField(decimal_places=2, max_digits=14)),
                ("licensee_share", models.DecimalField(decimal_places=2, max_digits=14)),
                ("hrm8_share", models.DecimalField(decimal_places=2, max_digits=14)),
                ("status", models.CharField(
                    choices=[("PENDING", "Pending"), ("CONFIRMED", "Confirmed"), ("PAID", "Paid")],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("licensee", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.PROTECT,
                    related_name="revenues", to="regions.regionallicensee",
                )),
                ("region", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="revenues", to="regions.region",
                )),
                ("settlement", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="revenues", to="regions.settlement",
                )),
            ],
            options={
                "ordering": ["-period_start", "id"],
                "indexes": [
                    models.Index(fields=["region", "period_start", "period_end"], name="revenue_region_period_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("region", "period_start"), name="unique_region_period_start"),
                ],
            },
        ),
    ]
