import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("regions", "0001_initial"),
        ("consultants", "0001_initial"),
        ("companies", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Job",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("title", models.CharField(max_length=255)),
                ("category", models.CharField(blank=True, default="", max_length=100)),
                ("service_package", models.CharField(
                    choices=[
                        ("SELF_MANAGED", "Self-managed"),
                        ("SHORTLISTING", "Shortlisting"),
                        ("FULL_SERVICE", "Full service"),
                        ("EXECUTIVE_SEARCH", "Executive search"),
                    ],
                    default="SELF_MANAGED", max_length=20,
                )),
                ("payment_status", models.CharField(
                    choices=[("PENDING", "Pending"), ("PAID", "Paid"), ("REFUNDED", "Refunded")],
                    db_index=True, default="PENDING", max_length=20,
                )),
                ("payment_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("payment_completed_at", models.DateTimeField(blank=True, null=True)),
                ("assignment_source", models.CharField(blank=True, default="", max_length=20)),
                ("assigned_consultant", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="assigned_jobs", to="consultants.consultant",
                )),
                ("company", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="jobs", to="companies.company",
                )),
                ("region", models.ForeignKey(
                    blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL,
                    related_name="jobs", to="regions.region",
                )),
            ],
            options={"ordering": ["-created_at"]},
        ),
    ]
