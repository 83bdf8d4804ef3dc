import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("regions", "0001_initial"),
        ("consultants", "0001_initial"),
        ("companies", "0001_initial"),
        ("jobs", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Commission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("type", models.CharField(
                    choices=[("SUBSCRIPTION_SALE", "Subscription sale"), ("PLACEMENT", "Placement")],
                    db_index=True, max_length=20,
                )),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("rate", models.DecimalField(decimal_places=4, max_digits=5)),
                ("status", models.CharField(
                    choices=[("PENDING", "Pending"), ("CONFIRMED", "Confirmed"), ("PAID", "Paid"), ("CANCELLED", "Cancelled")],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("notes", models.TextField(blank=True, default="")),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("payment_reference", models.CharField(blank=True, default="", max_length=255)),
                ("commission_expiry_date", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("consultant", models.ForeignKey(
                    on_delete=django.db.models.deletion.PROTECT,
                    related_name="commissions", to="consultants.consultant",
                )),
                ("job", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="commissions", to="jobs.job",
                )),
                ("region", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="commissions", to="regions.region",
                )),
                ("subscription", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="commissions", to="companies.subscription",
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "type", "created_at"], name="commission_sweep_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["CONFIRMED", "PAID"])),
                        fields=("job", "type"),
                        name="unique_settled_commission_per_job_type",
                    ),
                ],
            },
        ),
    ]
